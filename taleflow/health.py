"""Rolling per-provider health tracking."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Dict, Iterable, List, Optional

from .config import ProviderConfig
from .constants import (
    DEFAULT_PROVIDER_FOR,
    ERROR_DECAY,
    ERROR_WEIGHT,
    HEALTHY_ERROR_THRESHOLD,
    LATENCY_DECAY,
    LATENCY_WEIGHT,
)
from .contracts import Capability, ProviderHealth

logger = logging.getLogger(__name__)


class ProviderHealthRegistry:
    """Keeps a latency and error-rate estimate for every known provider.

    Records are created healthy at registration and never removed. All
    updates are synchronous in-memory mutations, so concurrent workflows on
    one event loop can share a single registry without locking.
    """

    def __init__(
        self,
        providers: Iterable[ProviderConfig] = (),
        defaults: Optional[Dict[str, str]] = None,
    ) -> None:
        self._records: Dict[str, ProviderHealth] = {}
        self._defaults = dict(defaults or DEFAULT_PROVIDER_FOR)
        for provider in providers:
            self.register(provider.name, provider.capability)

    def register(self, provider: str, capability: Capability | str) -> ProviderHealth:
        """Add ``provider`` with a healthy default record (idempotent)."""
        record = self._records.get(provider)
        if record is None:
            record = ProviderHealth(provider=provider, capability=Capability(capability))
            self._records[provider] = record
        return record

    def get(self, provider: str) -> Optional[ProviderHealth]:
        return self._records.get(provider)

    def capability_of(self, provider: str) -> Optional[Capability]:
        record = self._records.get(provider)
        return record.capability if record else None

    def is_healthy(self, provider: str) -> bool:
        record = self._records.get(provider)
        return bool(record and record.is_healthy)

    def record_outcome(self, provider: str, succeeded: bool, elapsed: float) -> None:
        """Fold one attempt into the provider's moving averages.

        ``elapsed`` is in seconds.
        """
        record = self._records.get(provider)
        if record is None:
            logger.debug(f"Ignoring outcome for unregistered provider {provider}")
            return

        elapsed = max(0.0, elapsed)
        record.latency = record.latency * LATENCY_DECAY + elapsed * LATENCY_WEIGHT
        error = 0.0 if succeeded else 1.0
        record.error_rate = min(
            1.0, max(0.0, record.error_rate * ERROR_DECAY + error * ERROR_WEIGHT)
        )
        record.is_healthy = record.error_rate < HEALTHY_ERROR_THRESHOLD
        record.last_used = datetime.now(timezone.utc)
        record.calls += 1
        if not succeeded:
            record.failures += 1

        logger.debug(
            f"Provider {provider} {'ok' if succeeded else 'failed'} in {elapsed:.3f}s "
            f"(latency={record.latency:.3f}s error_rate={record.error_rate:.3f})"
        )

    def record_cost(self, provider: str, amount: float) -> None:
        record = self._records.get(provider)
        if record is not None and amount > 0:
            record.cost_this_session += amount

    def total_cost(self) -> float:
        return sum(r.cost_this_session for r in self._records.values())

    def best_provider(self, capability: Capability | str) -> str:
        """Return the healthiest provider for ``capability``.

        Healthy providers are ranked by error rate, then latency; ties keep
        registration order. When none is healthy the fixed default for the
        capability is returned instead of failing.
        """
        capability = Capability(capability)
        candidates = [
            r
            for r in self._records.values()
            if r.capability == capability and r.is_healthy
        ]
        if not candidates:
            default = self._defaults[capability.value]
            logger.warning(
                f"No healthy {capability.value} provider, degrading to {default}"
            )
            return default

        best = min(candidates, key=lambda r: (r.error_rate, r.latency))
        return best.provider

    def status(self) -> List[ProviderHealth]:
        """Snapshot of every health record, in registration order."""
        return [record.model_copy() for record in self._records.values()]
