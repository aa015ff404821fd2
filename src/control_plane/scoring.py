"""Weighted provider scoring from live telemetry."""

from typing import Optional

from .config import (
    COST_WEIGHT,
    NEUTRAL_PROVIDER_SCORE,
    SPEED_WEIGHT,
    SUCCESS_WEIGHT,
    WORST_COST_PER_REQUEST,
    WORST_RESPONSE_TIME_MS,
)
from .metrics import MetricsTracker, ProviderMetrics
from .models import GatewayRequest


class ProviderScorer:
    """Collapses a provider's metrics into one comparable score in [0, 1].

    Score = 0.4 * success_rate + 0.3 * speed + 0.3 * cost, where speed and
    cost are linear against a 5000 ms / $0.10 worst case. Providers with
    no telemetry get a neutral 0.5 so they still receive traffic.
    """

    def __init__(self, metrics: MetricsTracker) -> None:
        self._metrics = metrics

    def calculate_provider_score(
        self, provider_id: str, request: Optional[GatewayRequest] = None
    ) -> float:
        with self._metrics.lock:
            if not self._metrics.has_metrics(provider_id):
                return NEUTRAL_PROVIDER_SCORE
            metrics = self._metrics.get_provider_metrics(provider_id)
        return self.score_metrics(metrics)

    @staticmethod
    def score_metrics(metrics: ProviderMetrics) -> float:
        speed_score = max(0.0, 1.0 - metrics.average_response_time_ms / WORST_RESPONSE_TIME_MS)
        cost_score = max(0.0, 1.0 - metrics.cost_per_request / WORST_COST_PER_REQUEST)
        total = (
            SUCCESS_WEIGHT * metrics.success_rate
            + SPEED_WEIGHT * speed_score
            + COST_WEIGHT * cost_score
        )
        return min(1.0, max(0.0, total))
