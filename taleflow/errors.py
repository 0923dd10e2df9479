"""Exception types raised by the taleflow orchestrator."""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, Optional


class FailureReason(str, Enum):
    """Why a single attempt failed."""

    ERROR = "error"
    TIMEOUT = "timeout"


class TaleflowError(Exception):
    """Base class for all orchestrator errors."""


class DuplicateWorkflowError(TaleflowError):
    """A workflow with the same identifier is already running."""

    def __init__(self, workflow_id: str) -> None:
        super().__init__(f"Workflow {workflow_id!r} is already active")
        self.workflow_id = workflow_id


class InvalidTransitionError(TaleflowError):
    """A step record was asked to move to a status it cannot reach."""

    def __init__(self, step_id: str, current: str, requested: str) -> None:
        super().__init__(
            f"Step {step_id} cannot transition from {current} to {requested}"
        )
        self.step_id = step_id
        self.current = current
        self.requested = requested


class StepTimeoutError(TaleflowError):
    """One attempt did not settle within its time budget."""

    def __init__(self, timeout_ms: float) -> None:
        super().__init__(f"Operation timed out after {timeout_ms:g}ms")
        self.timeout_ms = timeout_ms


class CostLimitExceededError(TaleflowError):
    """Session spend reached the configured ceiling under the enforce policy."""

    def __init__(self, spent: float, limit: float) -> None:
        super().__init__(f"Session cost {spent:.4f} reached limit {limit:.4f}")
        self.spent = spent
        self.limit = limit


class StepFailedError(TaleflowError):
    """A step exhausted its attempt budget.

    Carries the structured details a caller needs to build a user-facing
    message: the failing step, its capability, the provider of the last
    attempt and the last error seen.
    """

    def __init__(
        self,
        step_id: str,
        capability: str,
        provider: str,
        last_error: str,
        reason: FailureReason = FailureReason.ERROR,
        attempts: int = 0,
    ) -> None:
        super().__init__(
            f"Step {step_id} ({capability} via {provider}) failed after "
            f"{attempts} attempt(s): {last_error}"
        )
        self.step_id = step_id
        self.capability = capability
        self.provider = provider
        self.last_error = last_error
        self.reason = reason
        self.attempts = attempts

    def to_dict(self) -> Dict[str, Any]:
        return {
            "step_id": self.step_id,
            "capability": self.capability,
            "provider": self.provider,
            "last_error": self.last_error,
            "reason": self.reason.value,
            "attempts": self.attempts,
        }


def describe_error(exc: Optional[BaseException]) -> str:
    """Return a short diagnostic message for ``exc``."""
    if exc is None:
        return "Unknown error"
    message = str(exc)
    return message or type(exc).__name__
