"""Request descriptors and decision value types."""

import uuid
from dataclasses import dataclass, field
from typing import Dict, List

from .config import TaskType, ThreatLevel


@dataclass
class GatewayRequest:
    """One inbound AI request as seen by the control plane."""

    input_text: str = ""
    task_type: TaskType = TaskType.TEXT_GENERATION
    request_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    user_id: str = ""
    context_id: str = ""
    custom_params: Dict[str, str] = field(default_factory=dict)


@dataclass
class RoutingDecision:
    """Which provider should serve a request, and how confidently."""

    selected_provider_id: str = ""
    reason: str = ""
    confidence_score: float = 1.0
    use_cache: bool = False


@dataclass
class SecurityAssessment:
    """Outcome of screening request content."""

    threat_level: ThreatLevel = ThreatLevel.NONE
    detected_threats: List[str] = field(default_factory=list)
    allow_request: bool = True
    mitigation_action: str = ""
    mitigation_actions: List[str] = field(default_factory=list)
    confidence_score: float = 1.0


@dataclass
class AnomalyDetection:
    """Outcome of behavioral anomaly screening."""

    anomaly_detected: bool = False
    anomaly_type: str = ""
    anomaly_score: float = 0.0
    description: str = ""
    recommended_actions: List[str] = field(default_factory=list)
