"""Performance monitoring utilities for productivity batch runs."""
import time
import logging
import threading
import functools
from typing import Any, Callable, Dict

logger = logging.getLogger("productivity-engine.perf")


def timed(func: Callable) -> Callable:
    """
    Decorator that measures and logs execution time for synchronous functions.

    Usage::

        @timed
        def run_unit(...):
            ...
    """
    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        start = time.perf_counter()
        try:
            return func(*args, **kwargs)
        finally:
            duration_ms = round((time.perf_counter() - start) * 1000, 2)
            logger.debug(
                "function timed",
                extra={
                    "function_name": func.__qualname__,
                    "duration_ms": duration_ms,
                },
            )
    return wrapper


class PerformanceTracker:
    """
    Thread-safe in-memory tracker for batch-level metrics.

    Tracks:
    - Units processed, skipped (future date / no labor) and failed
    - Cumulative and average unit duration
    - Rejected input records broken down by record kind
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._units_processed: int = 0
        self._units_skipped: Dict[str, int] = {}      # status -> count
        self._units_failed: int = 0
        self._total_unit_duration_ms: float = 0.0
        self._rejections: Dict[str, int] = {}         # record kind -> count

    # ------------------------------------------------------------------
    # Public write API
    # ------------------------------------------------------------------

    def record_unit_complete(self, duration_ms: float) -> None:
        """Call once when a (location, date) unit produced a result."""
        with self._lock:
            self._units_processed += 1
            self._total_unit_duration_ms += duration_ms

    def record_unit_skipped(self, status: str) -> None:
        with self._lock:
            self._units_skipped[status] = self._units_skipped.get(status, 0) + 1

    def record_unit_failed(self) -> None:
        with self._lock:
            self._units_failed += 1

    def record_rejections(self, kind: str, count: int) -> None:
        if count <= 0:
            return
        with self._lock:
            self._rejections[kind] = self._rejections.get(kind, 0) + count

    # ------------------------------------------------------------------
    # Public read API
    # ------------------------------------------------------------------

    def get_metrics(self) -> Dict[str, Any]:
        """
        Return a snapshot of all collected metrics.

        Returns
        -------
        dict with keys:
            units_processed       : int
            avg_unit_duration_ms  : float  (0 if none processed)
            units_skipped         : dict  {status: count}
            units_failed          : int
            rejected_records      : int   (total across kinds)
            rejected_by_kind      : dict  {kind: count}
        """
        with self._lock:
            avg = (
                round(self._total_unit_duration_ms / self._units_processed, 2)
                if self._units_processed > 0
                else 0.0
            )
            return {
                "units_processed": self._units_processed,
                "avg_unit_duration_ms": avg,
                "units_skipped": dict(self._units_skipped),
                "units_failed": self._units_failed,
                "rejected_records": sum(self._rejections.values()),
                "rejected_by_kind": dict(self._rejections),
            }

    def reset(self) -> None:
        """Reset all counters (useful in tests)."""
        with self._lock:
            self._units_processed = 0
            self._units_skipped.clear()
            self._units_failed = 0
            self._total_unit_duration_ms = 0.0
            self._rejections.clear()


# Module-level singleton for background workers; engines may own their own.
tracker = PerformanceTracker()
