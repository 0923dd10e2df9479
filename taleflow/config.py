from __future__ import annotations

import os
from typing import Dict, List, Literal, Optional

import yaml
from pydantic import BaseModel, Field, model_validator

from .constants import (
    DEFAULT_CACHE_MAX_ENTRIES,
    DEFAULT_FALLBACKS,
    DEFAULT_PROVIDERS,
    DEFAULT_WORKFLOW_SETTINGS,
)
from .contracts import Capability


class WorkflowConfig(BaseModel):
    """Retry, timeout, caching and cost options of the orchestrator.

    Every field is required; defaults are applied at the application
    boundary by :func:`load_config`, never by the model itself. Times are
    milliseconds.
    """

    max_retries: int = Field(..., ge=0)
    retry_delay: float = Field(..., ge=0)
    timeout: float = Field(..., gt=0)
    enable_caching: bool
    cache_expiry: float = Field(..., ge=0)
    cost_limit: float = Field(..., ge=0)
    cache_max_entries: int = Field(default=DEFAULT_CACHE_MAX_ENTRIES, gt=0)
    cost_policy: Literal["warn", "enforce"] = "warn"


class ProviderConfig(BaseModel):
    """A known external provider."""

    name: str
    capability: Capability
    cost_per_call: float = Field(default=0.0, ge=0)


def _default_providers() -> List[ProviderConfig]:
    return [
        ProviderConfig(name=name, capability=capability, cost_per_call=cost)
        for name, capability, cost in DEFAULT_PROVIDERS
    ]


class TaleflowConfig(BaseModel):
    """Top-level configuration model."""

    workflow: WorkflowConfig = Field(
        default_factory=lambda: WorkflowConfig(**DEFAULT_WORKFLOW_SETTINGS)
    )
    providers: List[ProviderConfig] = Field(default_factory=_default_providers)
    fallbacks: Dict[str, List[str]] = Field(
        default_factory=lambda: {k: list(v) for k, v in DEFAULT_FALLBACKS.items()}
    )

    @model_validator(mode="after")
    def _check_fallbacks(self) -> "TaleflowConfig":
        known = {p.name for p in self.providers}
        for provider, alternates in self.fallbacks.items():
            unknown = [name for name in [provider, *alternates] if name not in known]
            if unknown:
                raise ValueError(
                    f"Fallback table for {provider!r} references unknown providers: {unknown}"
                )
        return self

    def provider(self, name: str) -> Optional[ProviderConfig]:
        return next((p for p in self.providers if p.name == name), None)


def _env_bool(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "on")


def load_config(path: Optional[str] = None) -> TaleflowConfig:
    """Load configuration from YAML file.

    Args:
        path: Optional path to config file. Falls back to TALEFLOW_CONFIG env
            variable or 'taleflow.yaml' in the current directory.

    Workflow options missing from the file are filled from
    ``DEFAULT_WORKFLOW_SETTINGS``; a handful of environment variables
    override the result.
    """

    config_path = path or os.getenv("TALEFLOW_CONFIG", "taleflow.yaml")
    data: dict = {}
    if os.path.exists(config_path):
        with open(config_path) as f:
            data = yaml.safe_load(f) or {}

    workflow = {**DEFAULT_WORKFLOW_SETTINGS, **(data.get("workflow") or {})}

    env_retries = os.getenv("TALEFLOW_MAX_RETRIES")
    if env_retries:
        workflow["max_retries"] = int(env_retries)
    env_timeout = os.getenv("TALEFLOW_TIMEOUT_MS")
    if env_timeout:
        workflow["timeout"] = float(env_timeout)
    env_caching = os.getenv("TALEFLOW_ENABLE_CACHING")
    if env_caching:
        workflow["enable_caching"] = _env_bool(env_caching)

    data["workflow"] = workflow
    # The default fallback table only makes sense for the default providers.
    if "providers" in data and "fallbacks" not in data:
        data["fallbacks"] = {}
    return TaleflowConfig(**data)
