"""Per-provider latency, reliability and cost telemetry."""

import dataclasses
import logging
import threading
from datetime import datetime
from typing import Dict, Optional

from .config import EMA_ALPHA
from .rate_limiter import Clock, utcnow

logger = logging.getLogger(__name__)


@dataclasses.dataclass
class ProviderMetrics:
    """Smoothed performance of one provider."""

    average_response_time_ms: float = 0.0
    success_rate: float = 1.0
    cost_per_request: float = 0.0
    total_requests: int = 0
    failed_requests: int = 0
    last_updated: Optional[datetime] = None


class MetricsTracker:
    """Exponential-moving-average telemetry keyed by provider id."""

    def __init__(self, clock: Optional[Clock] = None, alpha: float = EMA_ALPHA) -> None:
        self._clock = clock or utcnow
        self._alpha = alpha
        self._metrics: Dict[str, ProviderMetrics] = {}
        self._lock = threading.RLock()

    @property
    def lock(self) -> threading.RLock:
        return self._lock

    def update_provider_metrics(
        self,
        provider_id: str,
        response_time_ms: float,
        success: bool,
        cost: float = 0.0,
    ) -> ProviderMetrics:
        """Fold one completed call into the provider's metrics.

        A zero ``cost`` means "unknown" and leaves the cost average alone.
        """
        alpha = self._alpha
        with self._lock:
            metrics = self._metrics.setdefault(provider_id, ProviderMetrics())
            metrics.average_response_time_ms = (
                alpha * response_time_ms + (1 - alpha) * metrics.average_response_time_ms
            )
            metrics.total_requests += 1
            if not success:
                metrics.failed_requests += 1
            metrics.success_rate = 1.0 - metrics.failed_requests / metrics.total_requests
            if cost > 0:
                metrics.cost_per_request = alpha * cost + (1 - alpha) * metrics.cost_per_request
            metrics.last_updated = self._clock()
            result = dataclasses.replace(metrics)

        logger.debug(
            "Updated metrics for %s: %.1f ms sample, success rate %.3f",
            provider_id, response_time_ms, result.success_rate,
            extra={"provider_id": provider_id},
        )
        return result

    def get_provider_metrics(self, provider_id: str) -> ProviderMetrics:
        """Return a copy of the provider's metrics, or defaults if unseen."""
        with self._lock:
            metrics = self._metrics.get(provider_id)
            return dataclasses.replace(metrics) if metrics else ProviderMetrics()

    def has_metrics(self, provider_id: str) -> bool:
        with self._lock:
            return provider_id in self._metrics

    def get_all_provider_metrics(self) -> Dict[str, ProviderMetrics]:
        with self._lock:
            return {pid: dataclasses.replace(m) for pid, m in self._metrics.items()}

    def reset(self) -> None:
        with self._lock:
            self._metrics.clear()
