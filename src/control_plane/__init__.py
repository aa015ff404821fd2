"""AI provider control plane: rate limiting, performance routing, threat screening."""

from .config import (
    DEFAULT_PROVIDERS,
    UNLIMITED_RATE_LIMIT,
    RateLimitConfig,
    SecurityFeature,
    TaskType,
    ThreatCategory,
    ThreatLevel,
)
from .exceptions import (
    ControlPlaneError,
    EmptyProviderListError,
    GatewayClosedError,
)
from .gateway import (
    ControlPlaneGateway,
    GatewayOutcome,
    create_gateway,
)
from .metrics import (
    MetricsTracker,
    ProviderMetrics,
)
from .models import (
    AnomalyDetection,
    GatewayRequest,
    RoutingDecision,
    SecurityAssessment,
)
from .rate_limiter import (
    ProviderRateLimiter,
    RateLimitTracker,
)
from .router import ProviderRouter
from .scoring import ProviderScorer
from .security import (
    SecurityManager,
    SecurityStats,
)
from .stats import (
    GatewayStats,
    StatsCollector,
)
from .threats import (
    COUNT_POLICY,
    SEVERITY_POLICY,
    RuleTable,
    ThreatAssessor,
    ThreatPolicy,
    ThreatRule,
)

__all__ = [
    # Config
    "DEFAULT_PROVIDERS",
    "UNLIMITED_RATE_LIMIT",
    "RateLimitConfig",
    "SecurityFeature",
    "TaskType",
    "ThreatCategory",
    "ThreatLevel",
    # Exceptions
    "ControlPlaneError",
    "EmptyProviderListError",
    "GatewayClosedError",
    # Gateway
    "ControlPlaneGateway",
    "GatewayOutcome",
    "create_gateway",
    # Telemetry
    "MetricsTracker",
    "ProviderMetrics",
    "ProviderScorer",
    # Models
    "AnomalyDetection",
    "GatewayRequest",
    "RoutingDecision",
    "SecurityAssessment",
    # Rate limiting
    "ProviderRateLimiter",
    "RateLimitTracker",
    # Routing
    "ProviderRouter",
    # Security
    "COUNT_POLICY",
    "SEVERITY_POLICY",
    "RuleTable",
    "SecurityManager",
    "SecurityStats",
    "ThreatAssessor",
    "ThreatPolicy",
    "ThreatRule",
    # Stats
    "GatewayStats",
    "StatsCollector",
]
