"""Sequential workflow engine for multi-provider generation steps."""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Sequence, Union

from .cache import ResponseCache
from .config import TaleflowConfig, load_config
from .contracts import ProviderHealth, StepOperation, StepRecord, StepSpec
from .errors import StepFailedError
from .execute import StepExecutor
from .health import ProviderHealthRegistry
from .metrics import PerformanceMonitor
from .registry import ActiveWorkflowRegistry
from .routing import ProviderRouter

logger = logging.getLogger(__name__)


class WorkflowEngine:
    """Runs workflows step by step through a :class:`StepExecutor`.

    The health registry and response cache are shared by every workflow the
    engine runs. Workflows with different ids may interleave on the event
    loop; the steps of one workflow never do.
    """

    def __init__(
        self,
        config: Optional[TaleflowConfig] = None,
        *,
        health: Optional[ProviderHealthRegistry] = None,
        cache: Optional[ResponseCache] = None,
        monitor: Optional[PerformanceMonitor] = None,
    ) -> None:
        self.config = config or TaleflowConfig()
        workflow = self.config.workflow
        self.health = health or ProviderHealthRegistry(self.config.providers)
        self.router = ProviderRouter(self.health, self.config.fallbacks)
        self.cache = cache or ResponseCache(
            ttl_ms=workflow.cache_expiry, max_entries=workflow.cache_max_entries
        )
        self.monitor = monitor or PerformanceMonitor()
        self._active = ActiveWorkflowRegistry()
        self._executor = StepExecutor(
            workflow,
            self.health,
            self.router,
            self.cache,
            monitor=self.monitor,
            provider_costs={p.name: p.cost_per_call for p in self.config.providers},
        )

    def _build_steps(
        self,
        workflow_id: str,
        specs: Sequence[Union[StepSpec, Dict[str, Any]]],
        operation_for: Optional[StepOperation],
    ) -> List[tuple]:
        planned = []
        for ordinal, raw in enumerate(specs):
            spec = raw if isinstance(raw, StepSpec) else StepSpec.model_validate(raw)
            operation = spec.operation or operation_for
            if operation is None:
                raise ValueError(
                    f"Step {ordinal} of workflow {workflow_id!r} has no operation to run"
                )
            planned.append((StepRecord.from_spec(workflow_id, ordinal, spec), operation))
        return planned

    async def run(
        self,
        workflow_id: str,
        steps: Sequence[Union[StepSpec, Dict[str, Any]]],
        operation_for: Optional[StepOperation] = None,
    ) -> List[Any]:
        """Execute ``steps`` in order and return their results.

        Args:
            workflow_id: Identifier of the workflow; must not already be active.
            steps: Step specifications, executed strictly one after another.
            operation_for: Operation used for steps that do not carry their own.

        Raises:
            DuplicateWorkflowError: ``workflow_id`` is already running.
            StepFailedError: A step exhausted its attempts; later steps are skipped
                and completed ones are not rolled back.
        """
        planned = self._build_steps(workflow_id, steps, operation_for)
        self._active.register(workflow_id, [record for record, _ in planned])
        logger.info(f"Starting workflow {workflow_id} with {len(planned)} step(s)")

        results: List[Any] = []
        try:
            for record, operation in planned:
                results.append(await self._executor.execute(record, operation))
        except StepFailedError as e:
            logger.error(f"Workflow {workflow_id} failed at step {e.step_id}: {e.last_error}")
            raise
        finally:
            self._active.remove(workflow_id)

        logger.info(f"Workflow {workflow_id} completed")
        return results

    def status_of(self, workflow_id: str) -> Optional[List[StepRecord]]:
        """Snapshot of an in-flight workflow's step records, or ``None``."""
        steps = self._active.get(workflow_id)
        if steps is None:
            return None
        return [record.model_copy() for record in steps]

    def active_workflows(self) -> List[str]:
        return self._active.list_ids()

    def provider_status(self) -> List[ProviderHealth]:
        return self.health.status()

    def best_provider(self, capability: str) -> str:
        return self.router.best_provider(capability)

    def clear_cache(self) -> None:
        self.cache.clear()

    def performance_metrics(self) -> Dict[str, Any]:
        return {
            "active_workflows": len(self._active),
            "cache_size": len(self.cache),
            "session_cost": self.health.total_cost(),
            "provider_status": [r.summary() for r in self.health.status()],
            "fallbacks": self.router.describe(),
            "operations": {
                key: stats.model_dump() for key, stats in self.monitor.snapshot().items()
            },
        }


_engine_instance: WorkflowEngine | None = None


def get_engine(config: Optional[TaleflowConfig] = None) -> WorkflowEngine:
    """Return the process-wide engine, creating it on first use.

    Library code should receive an engine explicitly; this accessor is meant
    for the application boundary. Passing ``config`` replaces the instance.
    """

    global _engine_instance
    if _engine_instance is not None and config is None:
        return _engine_instance
    _engine_instance = WorkflowEngine(config or load_config())
    return _engine_instance


def reset_engine() -> None:
    global _engine_instance
    _engine_instance = None
