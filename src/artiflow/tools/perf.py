"""Lightweight in-process timing history."""

from __future__ import annotations

import logging
import time
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Awaitable, Callable, Deque, Dict, List, Mapping, TypeVar

from ..schema import utc_now

LOGGER = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(slots=True)
class PerformanceMetric:
    operation: str
    duration_ms: float
    timestamp: datetime = field(default_factory=utc_now)
    metadata: Dict[str, Any] = field(default_factory=dict)


@dataclass(slots=True)
class OperationStats:
    count: int = 0
    total_time: float = 0.0

    @property
    def avg_time(self) -> float:
        return self.total_time / self.count if self.count else 0.0


@dataclass(slots=True)
class PerformanceReport:
    total_operations: int
    average_time: float
    slowest_operations: List[PerformanceMetric]
    operation_stats: Dict[str, OperationStats]


class PerformanceTracker:
    """Keep the newest ``max_metrics`` timings and summarise them on demand."""

    def __init__(self, *, max_metrics: int = 1000) -> None:
        self._metrics: Deque[PerformanceMetric] = deque(maxlen=max_metrics)

    def track_timing(self, operation: str, duration_ms: float, metadata: Mapping[str, Any] | None = None) -> None:
        self._metrics.append(PerformanceMetric(operation, duration_ms, metadata=dict(metadata or {})))
        LOGGER.debug("[perf] %s: %.2fms", operation, duration_ms)

    def measure(
        self,
        operation: str,
        fn: Callable[[], T],
        metadata: Mapping[str, Any] | None = None,
    ) -> T:
        """Time ``fn()``; failures are recorded and re-raised."""
        started = time.perf_counter()
        try:
            result = fn()
        except Exception as error:
            self._record_failure(operation, started, metadata, error)
            raise
        self._record_success(operation, started, metadata)
        return result

    async def measure_async(
        self,
        operation: str,
        fn: Callable[[], Awaitable[T]],
        metadata: Mapping[str, Any] | None = None,
    ) -> T:
        started = time.perf_counter()
        try:
            result = await fn()
        except Exception as error:
            self._record_failure(operation, started, metadata, error)
            raise
        self._record_success(operation, started, metadata)
        return result

    def _record_success(self, operation: str, started: float, metadata: Mapping[str, Any] | None) -> None:
        elapsed = (time.perf_counter() - started) * 1000
        self.track_timing(operation, elapsed, {**(metadata or {}), "success": True})

    def _record_failure(
        self,
        operation: str,
        started: float,
        metadata: Mapping[str, Any] | None,
        error: BaseException,
    ) -> None:
        elapsed = (time.perf_counter() - started) * 1000
        self.track_timing(operation, elapsed, {**(metadata or {}), "success": False, "error": str(error)})

    def get_average_time(self, operation: str) -> float:
        durations = [metric.duration_ms for metric in self._metrics if metric.operation == operation]
        return sum(durations) / len(durations) if durations else 0.0

    def get_metrics(self, operation: str | None = None) -> List[PerformanceMetric]:
        if operation is None:
            return list(self._metrics)
        return [metric for metric in self._metrics if metric.operation == operation]

    def get_slowest_operations(self, limit: int = 10) -> List[PerformanceMetric]:
        return sorted(self._metrics, key=lambda metric: metric.duration_ms, reverse=True)[:limit]

    def generate_report(self) -> PerformanceReport:
        stats: Dict[str, OperationStats] = {}
        for metric in self._metrics:
            entry = stats.setdefault(metric.operation, OperationStats())
            entry.count += 1
            entry.total_time += metric.duration_ms
        total_time = sum(metric.duration_ms for metric in self._metrics)
        return PerformanceReport(
            total_operations=len(self._metrics),
            average_time=total_time / len(self._metrics) if self._metrics else 0.0,
            slowest_operations=self.get_slowest_operations(5),
            operation_stats=stats,
        )

    def clear(self) -> None:
        self._metrics.clear()


__all__ = ["OperationStats", "PerformanceMetric", "PerformanceReport", "PerformanceTracker"]
