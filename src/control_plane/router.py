"""Provider router: filters by admission, ranks by score."""

import logging
from typing import List, Sequence

from src.logging_config.performance import PerformanceTimer

from .exceptions import EmptyProviderListError
from .metrics import MetricsTracker
from .models import GatewayRequest, RoutingDecision
from .rate_limiter import ProviderRateLimiter
from .scoring import ProviderScorer
from .stats import StatsCollector

logger = logging.getLogger(__name__)

REASON_NO_PROVIDERS = "No providers available"
REASON_ALL_LIMITED = "All providers rate-limited or unavailable"
REASON_SELECTED = "Selected based on performance metrics and availability"


class ProviderRouter:
    """Selects the best provider for a request.

    Usage::

        router = ProviderRouter(limiter, scorer, metrics, stats)
        decision = router.select_optimal_provider(request, ["gemini", "openai"])
        if decision.selected_provider_id:
            limiter.record_request(decision.selected_provider_id)

    Routing never records admission; the caller does that once it acts on
    the decision.
    """

    def __init__(
        self,
        limiter: ProviderRateLimiter,
        scorer: ProviderScorer,
        metrics: MetricsTracker,
        stats: StatsCollector,
        slow_threshold_ms: float = 50.0,
    ) -> None:
        self._limiter = limiter
        self._scorer = scorer
        self._metrics = metrics
        self._stats = stats
        self._slow_threshold_ms = slow_threshold_ms

    def select_optimal_provider(
        self, request: GatewayRequest, candidate_providers: Sequence[str]
    ) -> RoutingDecision:
        with PerformanceTimer("select_optimal_provider", self._slow_threshold_ms, logger) as timer:
            decision = self._select(request, candidate_providers)
        self._stats.record_routing_time(timer.duration_ms)
        return decision

    def get_cheapest_provider(self, providers: Sequence[str]) -> str:
        """Lowest smoothed cost among providers with telemetry, else the first."""
        if not providers:
            raise EmptyProviderListError("get_cheapest_provider")
        cheapest = ""
        lowest = float("inf")
        for provider_id in providers:
            metrics = self._metrics.get_provider_metrics(provider_id)
            if metrics.total_requests > 0 and metrics.cost_per_request < lowest:
                lowest = metrics.cost_per_request
                cheapest = provider_id
        return cheapest or providers[0]

    def get_fastest_provider(self, providers: Sequence[str]) -> str:
        """Lowest smoothed latency among providers with telemetry, else the first."""
        if not providers:
            raise EmptyProviderListError("get_fastest_provider")
        fastest = ""
        lowest = float("inf")
        for provider_id in providers:
            metrics = self._metrics.get_provider_metrics(provider_id)
            if metrics.total_requests > 0 and metrics.average_response_time_ms < lowest:
                lowest = metrics.average_response_time_ms
                fastest = provider_id
        return fastest or providers[0]

    def get_load_balanced_provider(self, providers: Sequence[str]) -> str:
        """Provider with the fewest recorded requests; ties go to input order."""
        if not providers:
            raise EmptyProviderListError("get_load_balanced_provider")
        return min(providers, key=self._stats.requests_for)

    # ── internals ────────────────────────────────────────────────────

    def _select(
        self, request: GatewayRequest, candidate_providers: Sequence[str]
    ) -> RoutingDecision:
        if not candidate_providers:
            return RoutingDecision(reason=REASON_NO_PROVIDERS, confidence_score=0.0)

        available: List[str] = [
            provider_id
            for provider_id in candidate_providers
            if self._limiter.check_rate_limit(provider_id, request.user_id)
        ]
        if not available:
            logger.warning(
                "No routable provider among %s", list(candidate_providers),
            )
            return RoutingDecision(reason=REASON_ALL_LIMITED, confidence_score=0.0)

        scored = [
            (provider_id, self._scorer.calculate_provider_score(provider_id, request))
            for provider_id in available
        ]
        # sorted() is stable with reverse=True, so equal scores keep input order
        ranked = sorted(scored, key=lambda item: item[1], reverse=True)
        best_id, best_score = ranked[0]

        logger.info(
            "Selected provider %s (score %.3f) for %s",
            best_id, best_score, request.task_type.value,
            extra={"provider_id": best_id},
        )
        return RoutingDecision(
            selected_provider_id=best_id,
            reason=REASON_SELECTED,
            confidence_score=best_score,
        )
