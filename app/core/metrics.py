"""Performance metrics and timing instrumentation.

Utilities for tracking and logging pipeline stage performance.
"""

import time
from contextlib import contextmanager
from typing import Optional

from app.core.logging import get_logger

logger = get_logger(__name__)

# Durations (ms) above which a stage is logged as slow, by operation prefix
SLOW_THRESHOLDS_MS = {
    "analysis": 500,
    "generation": 500,
    "export": 3000,
    "load": 2000,
}


def _is_slow(operation_name: str, elapsed_ms: float) -> bool:
    lowered = operation_name.lower()
    for prefix, threshold in SLOW_THRESHOLDS_MS.items():
        if prefix in lowered:
            return elapsed_ms > threshold
    return False


@contextmanager
def timer(operation_name: str, session_id: Optional[str] = None, log_level: str = "info"):
    """
    Context manager for timing operations.

    Logs operation duration on completion. Stages that exceed their
    threshold in SLOW_THRESHOLDS_MS are logged at warning level.

    Args:
        operation_name: Name of the operation being timed
        session_id: Optional session id for context
        log_level: Log level ("debug", "info", "warning")

    Usage:
        with timer("generation - render", session.session_id):
            markup = render_document(body, context)
    """
    start = time.perf_counter()
    try:
        yield
    finally:
        elapsed_ms = (time.perf_counter() - start) * 1000

        extra = {
            "operation": operation_name,
            "duration_ms": round(elapsed_ms, 1),
        }
        if session_id:
            extra["session_id"] = session_id

        log_msg = f"{operation_name} took {elapsed_ms:.1f}ms"

        if _is_slow(operation_name, elapsed_ms):
            logger.warning(f"Slow stage: {log_msg}", extra=extra)
        elif log_level == "debug":
            logger.debug(log_msg, extra=extra)
        elif log_level == "warning":
            logger.warning(log_msg, extra=extra)
        else:
            logger.info(log_msg, extra=extra)


class PerformanceTracker:
    """
    Track performance metrics for a pipeline run.

    Accumulates analyzer runs, service calls, and translation cache hits/misses.
    """

    def __init__(self, operation: str, session_id: Optional[str] = None):
        self.operation = operation
        self.session_id = session_id
        self.start_time: Optional[float] = None
        self.analyzer_runs = 0
        self.service_calls = 0
        self.cache_hits = 0
        self.cache_misses = 0

    def start(self):
        """Start timing the operation."""
        self.start_time = time.perf_counter()

    def end(self) -> float:
        """
        End timing and log metrics.

        Returns:
            Duration in milliseconds
        """
        if not self.start_time:
            return 0

        elapsed_ms = (time.perf_counter() - self.start_time) * 1000

        extra = {
            "operation": self.operation,
            "duration_ms": round(elapsed_ms, 1),
            "analyzer_runs": self.analyzer_runs,
            "service_calls": self.service_calls,
            "cache_hits": self.cache_hits,
            "cache_misses": self.cache_misses,
        }
        if self.session_id:
            extra["session_id"] = self.session_id

        logger.info(
            f"{self.operation}: {elapsed_ms:.1f}ms "
            f"(Analyzers: {self.analyzer_runs}, Service: {self.service_calls}, "
            f"Cache: {self.cache_hits}H/{self.cache_misses}M)",
            extra=extra,
        )

        return elapsed_ms

    def record_analyzer_run(self, count: int = 1):
        self.analyzer_runs += count

    def record_service_call(self, count: int = 1):
        self.service_calls += count

    def record_cache_hit(self, count: int = 1):
        self.cache_hits += count

    def record_cache_miss(self, count: int = 1):
        self.cache_misses += count


@contextmanager
def track_performance(operation: str, session_id: Optional[str] = None):
    """
    Context manager for tracking operation performance with detailed metrics.

    Args:
        operation: Name of the operation
        session_id: Optional session id for context

    Yields:
        PerformanceTracker instance for recording metrics
    """
    tracker = PerformanceTracker(operation, session_id)
    tracker.start()
    try:
        yield tracker
    finally:
        tracker.end()
