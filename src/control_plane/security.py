"""Extended request screening: prompt threats, threat intelligence,
script content, URLs and behavioral anomalies.

Shares the rule engine in ``threats`` with the gateway assessor; only the
rule tables and the level policy differ.
"""

import logging
import threading
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional

from .config import ThreatCategory, ThreatLevel
from .models import AnomalyDetection, GatewayRequest, SecurityAssessment
from .threats import SEVERITY_POLICY, RuleTable, ThreatRule

logger = logging.getLogger(__name__)

BLOCK_ACTIONS = ["Block request", "Log security incident", "Notify user of potential threat"]

DEFAULT_KNOWN_THREATS = [
    "ignore previous instructions",
    "forget everything above",
    "system prompt override",
    "jailbreak attempt",
    "extract training data",
    "reveal system information",
]

SUSPICIOUS_KEYWORDS = (
    "bypass", "override", "hack", "exploit", "vulnerability",
    "admin", "root", "system", "debug", "internal",
)

SUSPICIOUS_DOMAINS = (
    "malware.example.com",
    "phishing.test.com",
    "suspicious.domain.net",
)

SCRIPT_CONTENT_TYPES = ("javascript", "script")

PROMPT_THREAT_RULES = RuleTable([
    ThreatRule(
        name="prompt_injection",
        category=ThreatCategory.PROMPT_INJECTION,
        patterns=(
            "ignore previous instructions",
            "forget everything above",
            "new instructions:",
            "system override",
            "admin mode",
        ),
        severity=ThreatLevel.HIGH,
        label="Prompt injection detected",
    ),
    ThreatRule(
        name="data_exfiltration",
        category=ThreatCategory.DATA_EXFILTRATION,
        patterns=(
            "show me your training data",
            "reveal system prompt",
            "extract internal information",
            "dump configuration",
            "show source code",
        ),
        severity=ThreatLevel.CRITICAL,
        label="Data exfiltration attempt",
    ),
    ThreatRule(
        name="malicious_instructions",
        category=ThreatCategory.MALICIOUS_INSTRUCTIONS,
        patterns=(
            "generate harmful content",
            "create malware",
            "bypass security",
            "exploit vulnerability",
            "social engineering",
        ),
        severity=ThreatLevel.HIGH,
        label="Malicious instruction detected",
    ),
])

SUSPICIOUS_KEYWORD_RULE = ThreatRule(
    name="suspicious_keyword",
    category=ThreatCategory.SUSPICIOUS_KEYWORD,
    patterns=SUSPICIOUS_KEYWORDS,
    severity=ThreatLevel.MEDIUM,
    label="Suspicious keyword",
)

SCRIPT_RULES = RuleTable([
    ThreatRule(
        name="Potentially malicious script content",
        category=ThreatCategory.MALICIOUS_SCRIPT,
        patterns=("eval(", "document.cookie", "localStorage"),
        severity=ThreatLevel.HIGH,
        case_sensitive=True,
    ),
])

URL_RULES = RuleTable([
    ThreatRule(
        name="suspicious_domain",
        category=ThreatCategory.SUSPICIOUS_DOMAIN,
        patterns=SUSPICIOUS_DOMAINS,
        severity=ThreatLevel.HIGH,
        label="Suspicious domain",
        case_sensitive=True,
    ),
])

SECURITY_MANAGER_FEATURES = (
    "prompt_threat_detection",
    "malicious_prompt_detection",
    "behavioral_anomaly_detection",
    "content_security_analysis",
    "url_scanning",
)


@dataclass
class SecurityStats:
    """Counters for prompt threat assessments."""

    total_assessments: int = 0
    threats_detected: int = 0
    requests_blocked: int = 0
    threat_types: Dict[str, int] = field(default_factory=dict)


class SecurityManager:
    """Richer screening surface layered on the shared rule engine.

    Prompt threats are graded by the most severe category matched: data
    exfiltration is CRITICAL, injection and malicious instructions are
    HIGH. Anything at HIGH or above is blocked.
    """

    def __init__(
        self,
        known_threats: Optional[Iterable[str]] = None,
        anomaly_length_threshold: int = 5_000,
        oversized_request_length: int = 10_000,
    ) -> None:
        self._known_threats: List[str] = list(known_threats or DEFAULT_KNOWN_THREATS)
        self._features: Dict[str, bool] = {name: True for name in SECURITY_MANAGER_FEATURES}
        self._anomaly_length_threshold = anomaly_length_threshold
        self._oversized_request_length = oversized_request_length
        self._stats = SecurityStats()
        self._lock = threading.RLock()

    # ── features ─────────────────────────────────────────────────────

    def enable_feature(self, feature_name: str, enabled: bool) -> None:
        with self._lock:
            self._features[feature_name] = enabled
        logger.info("Security feature %s %s", feature_name, "enabled" if enabled else "disabled")

    def is_feature_enabled(self, feature_name: str) -> bool:
        with self._lock:
            return self._features.get(feature_name, False)

    # ── prompt screening ─────────────────────────────────────────────

    def detect_prompt_threats(self, prompt: str, user_context: str = "") -> SecurityAssessment:
        if not self.is_feature_enabled("prompt_threat_detection"):
            return SecurityAssessment()

        matches = PROMPT_THREAT_RULES.scan(prompt)
        assessment = SEVERITY_POLICY.evaluate(matches)
        if not assessment.allow_request:
            assessment.mitigation_actions = list(BLOCK_ACTIONS)
            assessment.mitigation_action = BLOCK_ACTIONS[0]
        assessment.confidence_score = 0.85

        with self._lock:
            self._stats.total_assessments += 1
            if assessment.detected_threats:
                self._stats.threats_detected += 1
                for match in matches:
                    category = match.rule.category.value
                    self._stats.threat_types[category] = (
                        self._stats.threat_types.get(category, 0) + len(match.tags)
                    )
                if not assessment.allow_request:
                    self._stats.requests_blocked += 1

        if not assessment.allow_request:
            logger.warning(
                "Prompt threat %s blocked (context=%s): %s",
                assessment.threat_level.name, user_context or "-", assessment.detected_threats,
                extra={"threat_level": assessment.threat_level.name},
            )
        return assessment

    def detect_malicious_prompt(self, prompt: str) -> SecurityAssessment:
        """Match the prompt against threat intelligence and suspicious keywords."""
        if not self.is_feature_enabled("malicious_prompt_detection"):
            return SecurityAssessment()

        with self._lock:
            known = tuple(self._known_threats)
        table = RuleTable([
            ThreatRule(
                name="known_threat",
                category=ThreatCategory.KNOWN_THREAT,
                patterns=known,
                severity=ThreatLevel.HIGH,
                label="Malicious pattern",
            ),
            SUSPICIOUS_KEYWORD_RULE,
        ])
        assessment = SEVERITY_POLICY.evaluate(table.scan(prompt))
        assessment.confidence_score = 0.75
        return assessment

    def update_threat_intelligence(self, threat_indicators: Iterable[str]) -> None:
        indicators = list(threat_indicators)
        with self._lock:
            self._known_threats.extend(indicators)
        logger.info("Updated threat intelligence with %d new indicators", len(indicators))

    def get_known_threats(self) -> List[str]:
        with self._lock:
            return list(self._known_threats)

    # ── content and URL screening ────────────────────────────────────

    def analyze_content_security(self, content: str, content_type: str) -> SecurityAssessment:
        if not self.is_feature_enabled("content_security_analysis"):
            return SecurityAssessment()
        if content_type in SCRIPT_CONTENT_TYPES:
            assessment = SEVERITY_POLICY.evaluate(SCRIPT_RULES.scan(content))
        else:
            assessment = SecurityAssessment()
        assessment.confidence_score = 0.7
        return assessment

    def scan_url(self, url: str) -> SecurityAssessment:
        if not self.is_feature_enabled("url_scanning"):
            return SecurityAssessment()
        assessment = SEVERITY_POLICY.evaluate(URL_RULES.scan(url))
        assessment.confidence_score = 0.9
        if not assessment.allow_request:
            logger.warning("Blocked URL %s: %s", url, assessment.detected_threats)
        return assessment

    # ── behavioral anomalies ─────────────────────────────────────────

    def detect_behavioral_anomaly(self, request: GatewayRequest, user_id: str = "") -> AnomalyDetection:
        detection = AnomalyDetection()
        if not self.is_feature_enabled("behavioral_anomaly_detection"):
            return detection

        text = request.input_text
        if len(text) > self._anomaly_length_threshold or "repeat" in text:
            detection.anomaly_detected = True
            detection.anomaly_type = "unusual_request_pattern"
            detection.anomaly_score = self.calculate_anomaly_score(text)
            detection.description = "Detected unusual request pattern for user"
            detection.recommended_actions = [
                "Monitor user activity",
                "Apply additional security checks",
            ]

        if len(text) > self._oversized_request_length:
            detection.anomaly_detected = True
            detection.anomaly_type = "oversized_request"
            detection.anomaly_score = 0.8
            detection.description = "Request size exceeds normal parameters"
            detection.recommended_actions.append("Limit request size")

        if detection.anomaly_detected:
            logger.info(
                "Anomaly %s for user %s (score %.2f)",
                detection.anomaly_type, user_id or request.user_id or "-", detection.anomaly_score,
            )
        return detection

    def calculate_anomaly_score(self, text: str) -> float:
        score = 0.0
        if len(text) > 1000:
            score += 0.3
        if len(text) > self._anomaly_length_threshold:
            score += 0.4
        if "repeat" in text:
            score += 0.2
        if "system" in text:
            score += 0.1
        return min(score, 1.0)

    # ── stats ────────────────────────────────────────────────────────

    def get_security_stats(self) -> SecurityStats:
        with self._lock:
            return SecurityStats(
                total_assessments=self._stats.total_assessments,
                threats_detected=self._stats.threats_detected,
                requests_blocked=self._stats.requests_blocked,
                threat_types=dict(self._stats.threat_types),
            )

    def reset_stats(self) -> None:
        with self._lock:
            self._stats = SecurityStats()
