"""Step execution with caching, retries, fallback and timeouts."""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Any, Mapping, Optional

from .cache import MISS, ResponseCache, make_signature
from .config import WorkflowConfig
from .contracts import StepOperation, StepRecord
from .errors import (
    CostLimitExceededError,
    FailureReason,
    StepFailedError,
    StepTimeoutError,
    describe_error,
)
from .health import ProviderHealthRegistry
from .metrics import PerformanceMonitor
from .routing import ProviderRouter
from .utils import retry

logger = logging.getLogger(__name__)


def _discard_late_result(task: asyncio.Future) -> None:
    """Consume the outcome of an operation that lost the timeout race."""
    if task.cancelled():
        return
    exc = task.exception()
    if exc is not None:
        logger.debug(f"Abandoned operation failed: {describe_error(exc)}")


class StepExecutor:
    """Runs one step record to a terminal state.

    Each call checks the response cache, then makes up to
    ``max_retries + 1`` attempts. The first failure may switch the step to a
    fallback provider; the swap consumes no extra attempts. Every attempt is
    reported to the health registry.
    """

    def __init__(
        self,
        config: WorkflowConfig,
        health: ProviderHealthRegistry,
        router: ProviderRouter,
        cache: ResponseCache,
        monitor: Optional[PerformanceMonitor] = None,
        provider_costs: Optional[Mapping[str, float]] = None,
    ) -> None:
        self._config = config
        self._health = health
        self._router = router
        self._cache = cache
        self._monitor = monitor or PerformanceMonitor()
        self._provider_costs = dict(provider_costs or {})

    async def _attempt(self, record: StepRecord, operation: StepOperation) -> Any:
        """Race ``operation`` against the per-attempt timeout.

        On timeout the operation keeps running in the background and its
        result is discarded.
        """
        task = asyncio.ensure_future(operation(record))
        try:
            done, _ = await asyncio.wait({task}, timeout=self._config.timeout / 1000)
        finally:
            # also reached when the caller is cancelled mid-wait
            if not task.done():
                task.add_done_callback(_discard_late_result)
        if task in done:
            return task.result()
        raise StepTimeoutError(self._config.timeout)

    def _check_cost_limit(self, record: StepRecord) -> None:
        limit = self._config.cost_limit
        if not limit or self._config.cost_policy != "enforce":
            return
        spent = self._health.total_cost()
        if spent >= limit:
            logger.error(f"Refusing step {record.id}: session cost {spent:.4f} >= {limit:.4f}")
            raise CostLimitExceededError(spent, limit)

    def _charge(self, record: StepRecord) -> None:
        amount = record.cost or self._provider_costs.get(record.provider, 0.0)
        self._health.record_cost(record.provider, amount)
        limit = self._config.cost_limit
        if limit and self._config.cost_policy == "warn":
            spent = self._health.total_cost()
            if spent >= limit:
                logger.warning(f"Session cost {spent:.4f} is over the limit of {limit:.4f}")

    async def execute(self, record: StepRecord, operation: StepOperation) -> Any:
        self._check_cost_limit(record)
        record.mark_running()
        started = time.monotonic()
        capability = record.capability.value
        caching = self._config.enable_caching

        requested = make_signature(record.capability, record.provider, record.payload)
        if caching:
            cached = self._cache.get(requested)
            if cached is not MISS:
                logger.debug(f"Using cached result for step {record.id}")
                self._health.record_outcome(
                    record.provider, True, time.monotonic() - started
                )
                record.mark_completed(cached, cached=True)
                return cached

        max_retries = self._config.max_retries
        last_error: Optional[BaseException] = None
        reason = FailureReason.ERROR

        for attempt in range(max_retries + 1):
            provider = record.provider
            record.record_attempt()
            tracker = self._monitor.track(provider, capability)
            attempt_started = time.monotonic()
            try:
                result = await self._attempt(record, operation)
            except Exception as exc:
                tracker.error()
                self._health.record_outcome(
                    provider, False, time.monotonic() - attempt_started
                )
                last_error = exc
                reason = (
                    FailureReason.TIMEOUT
                    if isinstance(exc, StepTimeoutError)
                    else FailureReason.ERROR
                )
                logger.warning(
                    f"Step {record.id} failed on {provider} "
                    f"(attempt {attempt + 1}/{max_retries + 1}): {describe_error(exc)}"
                )

                if attempt == 0:
                    fallback = self._router.fallback_for(provider, record.capability)
                    if fallback and fallback != provider:
                        logger.info(f"Falling back to {fallback} for step {record.id}")
                        record.switch_provider(fallback)
                        continue

                if attempt < max_retries:
                    delay = retry.compute_backoff(attempt, self._config.retry_delay)
                    logger.info(f"Waiting {delay:g}ms before retrying step {record.id}")
                    await retry.schedule_retry(attempt, self._config.retry_delay)
                continue

            tracker.success()
            self._health.record_outcome(provider, True, time.monotonic() - attempt_started)
            self._charge(record)
            if caching:
                produced = make_signature(record.capability, provider, record.payload)
                self._cache.put(produced, result)
                # a repeat of this step asks for the original provider again
                if produced != requested:
                    self._cache.put(requested, result)
            record.mark_completed(result)
            logger.info(
                f"Step {record.id} completed via {provider} after {record.attempts} attempt(s)"
            )
            return result

        message = describe_error(last_error)
        record.mark_failed(message, reason)
        raise StepFailedError(
            step_id=record.id,
            capability=capability,
            provider=record.provider,
            last_error=message,
            reason=reason,
            attempts=record.attempts,
        ) from last_error
