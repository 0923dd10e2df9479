"""Per-operation timing and error counters."""

from __future__ import annotations

import time
from typing import Dict

from pydantic import BaseModel


class OperationStats(BaseModel):
    calls: int = 0
    errors: int = 0
    last_duration: float = 0.0
    total_duration: float = 0.0

    @property
    def average_duration(self) -> float:
        return self.total_duration / self.calls if self.calls else 0.0


class OperationTracker:
    """Times one tracked call; settle it with ``success`` or ``error``."""

    def __init__(self, monitor: "PerformanceMonitor", key: str) -> None:
        self._monitor = monitor
        self._key = key
        self._started = time.monotonic()
        self._settled = False

    def _settle(self, failed: bool) -> None:
        if self._settled:
            return
        self._settled = True
        self._monitor.record(self._key, time.monotonic() - self._started, failed)

    def success(self) -> None:
        self._settle(failed=False)

    def error(self) -> None:
        self._settle(failed=True)


class PerformanceMonitor:
    """Aggregates durations and error counts keyed by ``provider-capability``."""

    def __init__(self) -> None:
        self._stats: Dict[str, OperationStats] = {}

    def track(self, provider: str, capability: str) -> OperationTracker:
        return OperationTracker(self, f"{provider}-{capability}")

    def record(self, key: str, duration: float, failed: bool) -> None:
        stats = self._stats.setdefault(key, OperationStats())
        stats.calls += 1
        stats.last_duration = duration
        stats.total_duration += duration
        if failed:
            stats.errors += 1

    def snapshot(self) -> Dict[str, OperationStats]:
        return {key: stats.model_copy() for key, stats in self._stats.items()}
