"""Provider selection and fallback routing."""

from __future__ import annotations

import logging
from types import MappingProxyType
from typing import Dict, List, Mapping, Optional, Sequence

from .contracts import Capability
from .health import ProviderHealthRegistry

logger = logging.getLogger(__name__)


class ProviderRouter:
    """Pick providers for steps and supply alternates after a failure.

    The fallback table maps a provider to an ordered list of alternates. It
    is configuration: the router reads it but never changes it, and it never
    offers a provider that is not listed there.
    """

    def __init__(
        self,
        health: ProviderHealthRegistry,
        fallbacks: Mapping[str, Sequence[str]],
    ) -> None:
        self._health = health
        self._fallbacks: Mapping[str, tuple] = MappingProxyType(
            {provider: tuple(alternates) for provider, alternates in fallbacks.items()}
        )

    @property
    def fallbacks(self) -> Mapping[str, tuple]:
        return self._fallbacks

    def best_provider(self, capability: Capability | str) -> str:
        return self._health.best_provider(capability)

    def fallback_for(
        self, provider: str, capability: Capability | str
    ) -> Optional[str]:
        """Return the first healthy alternate of ``provider`` for ``capability``.

        Alternates equal to ``provider`` or registered for another capability
        are skipped, and a provider asked about a capability it does not serve
        gets no alternate. ``None`` means there is nothing to fall back to.
        """
        capability = Capability(capability)
        own = self._health.capability_of(provider)
        if own is not None and own != capability:
            logger.warning(
                f"No fallback for {provider}: it is a {own.value} provider, "
                f"not {capability.value}"
            )
            return None
        for alternate in self._fallbacks.get(provider, ()):
            if alternate == provider:
                continue
            if self._health.capability_of(alternate) != capability:
                logger.warning(
                    f"Skipping fallback {alternate} for {provider}: "
                    f"not a {capability.value} provider"
                )
                continue
            if not self._health.is_healthy(alternate):
                logger.debug(f"Skipping unhealthy fallback {alternate} for {provider}")
                continue
            return alternate
        return None

    def describe(self) -> Dict[str, List[str]]:
        return {provider: list(alternates) for provider, alternates in self._fallbacks.items()}
