"""Performance Timing.

Times a block of control-plane work and reports slow runs.
"""

import logging
import time
from typing import Optional

from src.logging_config.config import DEFAULT_LOGGING_CONFIG

logger = logging.getLogger(__name__)


class PerformanceTimer:
    """Context manager measuring wall time of a block in milliseconds.

    Example:
        with PerformanceTimer("select_optimal_provider", threshold_ms=50) as timer:
            decision = router.select(...)
        stats.record_routing_time(timer.duration_ms)

    Completed runs log at DEBUG, runs at or over the threshold at WARNING,
    and failures at ERROR. Exceptions always propagate.
    """

    def __init__(
        self,
        operation_name: str,
        threshold_ms: Optional[float] = None,
        log: Optional[logging.Logger] = None,
    ):
        self.operation_name = operation_name
        self.threshold_ms = (
            DEFAULT_LOGGING_CONFIG.slow_threshold_ms if threshold_ms is None else threshold_ms
        )
        self._logger = log or logger
        self.start_time: float = 0.0
        self.duration_ms: float = 0.0

    def __enter__(self) -> "PerformanceTimer":
        self.start_time = time.perf_counter()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.duration_ms = (time.perf_counter() - self.start_time) * 1000
        extra = {"duration_ms": round(self.duration_ms, 3)}

        if exc_type is not None:
            self._logger.error(
                "%s failed after %.1fms: %s", self.operation_name, self.duration_ms, exc_type.__name__,
                extra=extra,
            )
        elif self.duration_ms >= self.threshold_ms:
            self._logger.warning(
                "Slow operation: %s took %.1fms", self.operation_name, self.duration_ms,
                extra=extra,
            )
        else:
            self._logger.debug(
                "%s completed in %.3fms", self.operation_name, self.duration_ms,
                extra=extra,
            )
