"""Core data contracts for taleflow workflows."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field

from .errors import FailureReason, InvalidTransitionError

logger = logging.getLogger(__name__)


class Capability(str, Enum):
    """Kind of generation a step performs."""

    TEXT = "text"
    IMAGE = "image"
    AUDIO = "audio"


class StepStatus(str, Enum):
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


_ALLOWED_TRANSITIONS = {
    StepStatus.PENDING: {StepStatus.RUNNING},
    StepStatus.RUNNING: {StepStatus.COMPLETED, StepStatus.FAILED},
    StepStatus.COMPLETED: set(),
    StepStatus.FAILED: set(),
}

# Injected provider call: receives the live StepRecord, returns the result.
StepOperation = Callable[..., Awaitable[Any]]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class StepSpec(BaseModel):
    """Defines one step in a workflow as submitted by the caller."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    capability: Capability
    provider: str
    payload: Any = Field(
        default=None, description="Opaque description used for cache keys"
    )
    operation: Optional[StepOperation] = None
    cost: float = Field(default=0.0, ge=0)


class StepRecord(BaseModel):
    """Engine-owned execution record of a single step.

    Status only moves forward (pending -> running -> completed|failed) and the
    record refuses any mutation once it is terminal.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    id: str
    workflow_id: str
    ordinal: int
    capability: Capability
    provider: str
    payload: Any = None
    cost: float = 0.0
    status: StepStatus = StepStatus.PENDING
    started_at: Optional[datetime] = None
    ended_at: Optional[datetime] = None
    duration: Optional[float] = None
    error: Optional[str] = None
    failure_reason: Optional[FailureReason] = None
    result: Any = None
    attempts: int = 0
    cached: bool = False

    @classmethod
    def from_spec(cls, workflow_id: str, ordinal: int, spec: StepSpec) -> "StepRecord":
        return cls(
            id=f"{workflow_id}-{ordinal}",
            workflow_id=workflow_id,
            ordinal=ordinal,
            capability=spec.capability,
            provider=spec.provider,
            payload=spec.payload,
            cost=spec.cost,
        )

    @property
    def is_terminal(self) -> bool:
        return self.status in (StepStatus.COMPLETED, StepStatus.FAILED)

    def _transition(self, new_status: StepStatus) -> None:
        if new_status not in _ALLOWED_TRANSITIONS[self.status]:
            raise InvalidTransitionError(self.id, self.status.value, new_status.value)
        self.status = new_status

    def _ensure_mutable(self) -> None:
        if self.is_terminal:
            raise InvalidTransitionError(self.id, self.status.value, self.status.value)

    def _finish(self) -> None:
        self.ended_at = _utcnow()
        if self.started_at is not None:
            self.duration = (self.ended_at - self.started_at).total_seconds()

    def mark_running(self) -> None:
        self._transition(StepStatus.RUNNING)
        self.started_at = _utcnow()

    def switch_provider(self, provider: str) -> None:
        """Point subsequent attempts at ``provider``."""
        self._ensure_mutable()
        logger.debug(f"Step {self.id} provider {self.provider} -> {provider}")
        self.provider = provider

    def record_attempt(self) -> None:
        self._ensure_mutable()
        self.attempts += 1

    def mark_completed(self, result: Any, cached: bool = False) -> None:
        self._transition(StepStatus.COMPLETED)
        self.result = result
        self.cached = cached
        self._finish()

    def mark_failed(self, error: str, reason: FailureReason) -> None:
        self._transition(StepStatus.FAILED)
        self.error = error
        self.failure_reason = reason
        self._finish()


class ProviderHealth(BaseModel):
    """Rolling health record of one provider."""

    provider: str
    capability: Capability
    is_healthy: bool = True
    latency: float = Field(default=0.0, ge=0, description="EMA seconds")
    error_rate: float = Field(default=0.0, ge=0, le=1)
    last_used: datetime = Field(default_factory=_utcnow)
    cost_this_session: float = 0.0
    calls: int = 0
    failures: int = 0

    def summary(self) -> Dict[str, Any]:
        return {
            "provider": self.provider,
            "capability": self.capability.value,
            "healthy": self.is_healthy,
            "latency_ms": round(self.latency * 1000, 1),
            "error_rate": round(self.error_rate, 3),
            "calls": self.calls,
            "failures": self.failures,
            "cost": round(self.cost_this_session, 4),
        }
