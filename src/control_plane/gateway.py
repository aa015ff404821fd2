"""Control-plane gateway: admission, routing and screening behind one object."""

import logging
import threading
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Union

from src.logging_config.context import RequestContext
from src.settings import Settings, get_settings

from .config import RateLimitConfig
from .exceptions import GatewayClosedError
from .metrics import MetricsTracker, ProviderMetrics
from .models import GatewayRequest, RoutingDecision, SecurityAssessment
from .rate_limiter import Clock, ProviderRateLimiter
from .router import ProviderRouter
from .scoring import ProviderScorer
from .security import SECURITY_MANAGER_FEATURES, SecurityManager
from .stats import GatewayStats, StatsCollector
from .threats import ThreatAssessor, gateway_rule_table

logger = logging.getLogger(__name__)

REASON_BLOCKED = "Request blocked due to security concerns"


@dataclass
class GatewayOutcome:
    """Result of running one request through screening and routing."""

    assessment: SecurityAssessment = field(default_factory=SecurityAssessment)
    decision: RoutingDecision = field(default_factory=RoutingDecision)

    @property
    def allowed(self) -> bool:
        return self.assessment.allow_request and bool(self.decision.selected_provider_id)


class ControlPlaneGateway:
    """Central gateway composing rate limiting, telemetry, routing and screening.

    Construct one per process (or per test); there is no module-level
    instance. Call ``initialize()`` to apply the default provider quotas
    and ``close()`` when done, or use ``create_gateway()`` as a context
    manager.
    """

    def __init__(self, settings: Optional[Settings] = None, clock: Optional[Clock] = None) -> None:
        self._settings = settings or get_settings()
        self._stats = StatsCollector()
        self._rate_limiter = ProviderRateLimiter(
            self._stats,
            clock=clock,
            enforce_daily_limit=self._settings.enforce_daily_limit,
        )
        self._metrics = MetricsTracker(clock=clock)
        self._scorer = ProviderScorer(self._metrics)
        self._router = ProviderRouter(
            self._rate_limiter,
            self._scorer,
            self._metrics,
            self._stats,
            slow_threshold_ms=self._settings.slow_routing_ms,
        )
        self._threat_assessor = ThreatAssessor(
            self._stats,
            features=self._settings.security_config(),
            rules=gateway_rule_table(self._settings.max_input_length),
        )
        self._security_manager = SecurityManager(
            anomaly_length_threshold=self._settings.anomaly_length_threshold,
            oversized_request_length=self._settings.oversized_request_length,
        )
        self._closed = False
        self._lifecycle_lock = threading.Lock()

    # ── lifecycle ────────────────────────────────────────────────────

    def initialize(self) -> bool:
        """Apply the default quota to every default provider."""
        self._ensure_open("initialize")
        logger.info("Initializing control-plane gateway")
        default_config = self.default_rate_limit()
        for provider_id in self._settings.default_providers:
            self._rate_limiter.configure_rate_limit(provider_id, default_config)
        logger.info(
            "Gateway initialized with %d providers", len(self._settings.default_providers),
        )
        return True

    def close(self) -> None:
        """Drop all state. Further calls raise ``GatewayClosedError``."""
        with self._lifecycle_lock:
            if self._closed:
                return
            self._closed = True
        self._rate_limiter.clear()
        with self._metrics.lock, self._stats.lock:
            self._metrics.reset()
            self._stats.reset()
        self._security_manager.reset_stats()
        logger.info("Gateway closed")

    @property
    def closed(self) -> bool:
        return self._closed

    def __enter__(self) -> "ControlPlaneGateway":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def default_rate_limit(self) -> RateLimitConfig:
        s = self._settings
        return RateLimitConfig(
            requests_per_minute=s.requests_per_minute,
            requests_per_hour=s.requests_per_hour,
            requests_per_day=s.requests_per_day,
            enabled=s.rate_limiting_enabled,
        )

    # ── rate limiting ────────────────────────────────────────────────

    def configure_rate_limit(self, provider_id: str, config: RateLimitConfig) -> None:
        self._ensure_open("configure rate limits")
        self._rate_limiter.configure_rate_limit(provider_id, config)

    def check_rate_limit(self, provider_id: str, user_id: str = "") -> bool:
        self._ensure_open("check rate limits")
        return self._rate_limiter.check_rate_limit(provider_id, user_id)

    def record_request(self, provider_id: str, user_id: str = "") -> None:
        self._ensure_open("record requests")
        self._rate_limiter.record_request(provider_id, user_id)

    def try_acquire(self, provider_id: str, user_id: str = "") -> bool:
        self._ensure_open("admit requests")
        return self._rate_limiter.try_acquire(provider_id, user_id)

    def get_rate_limit_status(self, provider_id: str) -> Dict:
        self._ensure_open("read rate limits")
        return self._rate_limiter.get_rate_limit_status(provider_id)

    # ── telemetry ────────────────────────────────────────────────────

    def update_provider_metrics(
        self, provider_id: str, response_time_ms: float, success: bool, cost: float = 0.0
    ) -> ProviderMetrics:
        self._ensure_open("update metrics")
        return self._metrics.update_provider_metrics(provider_id, response_time_ms, success, cost)

    def get_provider_metrics(self, provider_id: str) -> ProviderMetrics:
        self._ensure_open("read metrics")
        return self._metrics.get_provider_metrics(provider_id)

    def get_all_provider_metrics(self) -> Dict[str, ProviderMetrics]:
        self._ensure_open("read metrics")
        return self._metrics.get_all_provider_metrics()

    def calculate_provider_score(
        self, provider_id: str, request: Optional[GatewayRequest] = None
    ) -> float:
        self._ensure_open("score providers")
        return self._scorer.calculate_provider_score(provider_id, request)

    # ── routing ──────────────────────────────────────────────────────

    def select_optimal_provider(
        self, request: GatewayRequest, candidate_providers: Sequence[str]
    ) -> RoutingDecision:
        self._ensure_open("route requests")
        return self._router.select_optimal_provider(request, candidate_providers)

    def get_cheapest_provider(self, providers: Sequence[str]) -> str:
        self._ensure_open("route requests")
        return self._router.get_cheapest_provider(providers)

    def get_fastest_provider(self, providers: Sequence[str]) -> str:
        self._ensure_open("route requests")
        return self._router.get_fastest_provider(providers)

    def get_load_balanced_provider(self, providers: Sequence[str]) -> str:
        self._ensure_open("route requests")
        return self._router.get_load_balanced_provider(providers)

    # ── security ─────────────────────────────────────────────────────

    def assess_request_security(
        self, request: Union[GatewayRequest, str], user_context: str = ""
    ) -> SecurityAssessment:
        self._ensure_open("assess requests")
        if isinstance(request, GatewayRequest):
            with RequestContext(request_id=request.request_id, user_id=request.user_id):
                return self._threat_assessor.assess_request_security(request.input_text, user_context)
        return self._threat_assessor.assess_request_security(request, user_context)

    def detect_threats(self, request_content: str) -> List[str]:
        self._ensure_open("assess requests")
        return self._threat_assessor.detect_threats(request_content)

    def enable_security_feature(self, feature_name: str, enabled: bool) -> None:
        self._ensure_open("change security features")
        self._threat_assessor.enable_feature(feature_name, enabled)
        if feature_name in SECURITY_MANAGER_FEATURES:
            self._security_manager.enable_feature(feature_name, enabled)

    def get_security_config(self) -> Dict[str, bool]:
        self._ensure_open("read security features")
        return self._threat_assessor.get_security_config()

    # ── pipeline ─────────────────────────────────────────────────────

    def process_request(
        self,
        request: GatewayRequest,
        candidate_providers: Sequence[str],
        user_context: str = "",
    ) -> GatewayOutcome:
        """Screen, route and record one request.

        Pipeline:
        1. Threat assessment (blocked requests are never routed)
        2. Provider selection among admissible candidates
        3. Admission recorded against the selected provider
        """
        self._ensure_open("process requests")
        with RequestContext(request_id=request.request_id, user_id=request.user_id) as ctx:
            assessment = self._threat_assessor.assess_request_security(
                request.input_text, user_context,
            )
            if not assessment.allow_request:
                decision = RoutingDecision(reason=REASON_BLOCKED, confidence_score=0.0)
                return GatewayOutcome(assessment=assessment, decision=decision)

            decision = self._router.select_optimal_provider(request, candidate_providers)
            if decision.selected_provider_id:
                ctx.bind(provider_id=decision.selected_provider_id)
                self._rate_limiter.record_request(decision.selected_provider_id, request.user_id)
            return GatewayOutcome(assessment=assessment, decision=decision)

    # ── stats ────────────────────────────────────────────────────────

    def get_gateway_stats(self) -> GatewayStats:
        self._ensure_open("read stats")
        return self._stats.snapshot()

    def reset_metrics(self) -> None:
        """Clear provider metrics and zero gateway stats as one step."""
        self._ensure_open("reset metrics")
        with self._metrics.lock, self._stats.lock:
            self._metrics.reset()
            self._stats.reset()
        logger.info("Gateway metrics reset")

    def snapshot(self) -> Dict:
        """Stats and provider metrics read under both locks."""
        self._ensure_open("read stats")
        with self._metrics.lock, self._stats.lock:
            return {
                "stats": self._stats.snapshot(),
                "provider_metrics": self._metrics.get_all_provider_metrics(),
            }

    # ── health ───────────────────────────────────────────────────────

    def get_health(self) -> Dict:
        if self._closed:
            return {"gateway": "closed"}
        security = self._threat_assessor.get_security_config()
        return {
            "gateway": "healthy",
            "configured_providers": len(self._rate_limiter.configured_providers()),
            **{name: "enabled" if on else "disabled" for name, on in security.items()},
        }

    # ── properties for external access ───────────────────────────────

    @property
    def settings(self) -> Settings:
        return self._settings

    @property
    def rate_limiter(self) -> ProviderRateLimiter:
        return self._rate_limiter

    @property
    def metrics(self) -> MetricsTracker:
        return self._metrics

    @property
    def router(self) -> ProviderRouter:
        return self._router

    @property
    def threat_assessor(self) -> ThreatAssessor:
        return self._threat_assessor

    @property
    def security_manager(self) -> SecurityManager:
        return self._security_manager

    # ── internals ────────────────────────────────────────────────────

    def _ensure_open(self, operation: str) -> None:
        if self._closed:
            raise GatewayClosedError(operation)


def create_gateway(
    settings: Optional[Settings] = None, clock: Optional[Clock] = None
) -> ControlPlaneGateway:
    """Construct and initialize a gateway."""
    gateway = ControlPlaneGateway(settings=settings, clock=clock)
    gateway.initialize()
    return gateway
