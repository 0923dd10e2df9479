"""Taleflow: multi-provider AI workflow orchestration for story generation."""

from .cache import ResponseCache, make_signature
from .config import ProviderConfig, TaleflowConfig, WorkflowConfig, load_config
from .contracts import Capability, ProviderHealth, StepRecord, StepSpec, StepStatus
from .engine import WorkflowEngine, get_engine, reset_engine
from .errors import (
    CostLimitExceededError,
    DuplicateWorkflowError,
    FailureReason,
    StepFailedError,
    TaleflowError,
)
from .execute import StepExecutor
from .health import ProviderHealthRegistry
from .routing import ProviderRouter

__version__ = "0.1.0"
__all__ = [
    "Capability",
    "CostLimitExceededError",
    "DuplicateWorkflowError",
    "FailureReason",
    "ProviderConfig",
    "ProviderHealth",
    "ProviderHealthRegistry",
    "ProviderRouter",
    "ResponseCache",
    "StepExecutor",
    "StepFailedError",
    "StepRecord",
    "StepSpec",
    "StepStatus",
    "TaleflowConfig",
    "TaleflowError",
    "WorkflowConfig",
    "WorkflowEngine",
    "get_engine",
    "load_config",
    "make_signature",
    "reset_engine",
]
