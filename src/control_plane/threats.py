"""Keyword threat rules and the gateway's request threat assessor.

Every content scanner in the control plane is expressed as a ``RuleTable``
of ``ThreatRule`` entries (pattern -> tag -> severity). A ``ThreatPolicy``
then turns the matches into a ``ThreatLevel`` and an allow/deny verdict.
"""

import logging
import threading
from dataclasses import dataclass, field
from typing import Callable, Dict, Iterable, List, Optional, Tuple

from .config import DEFAULT_MAX_INPUT_LENGTH, SecurityFeature, ThreatCategory, ThreatLevel
from .models import SecurityAssessment
from .stats import StatsCollector

logger = logging.getLogger(__name__)

BLOCKED_MITIGATION = "Request blocked due to security concerns"


@dataclass(frozen=True)
class ThreatRule:
    """One detection rule.

    A rule matches when any of its ``patterns`` is a substring of the
    content (case-insensitive unless ``case_sensitive``), or, for size
    rules, when the content is longer than ``max_length``. With a
    ``label`` the rule emits one ``"<label>: <pattern>"`` tag per matched
    pattern; otherwise it emits ``name`` once.
    """

    name: str
    category: ThreatCategory
    patterns: Tuple[str, ...] = ()
    severity: ThreatLevel = ThreatLevel.LOW
    feature: Optional[str] = None
    label: str = ""
    case_sensitive: bool = False
    max_length: Optional[int] = None

    def match(self, content: str, lowered: str) -> List[str]:
        """Return the patterns (or the size marker) this content triggers."""
        if self.max_length is not None:
            return [f"length>{self.max_length}"] if len(content) > self.max_length else []
        haystack = content if self.case_sensitive else lowered
        hits = []
        for pattern in self.patterns:
            needle = pattern if self.case_sensitive else pattern.lower()
            if needle in haystack:
                hits.append(pattern)
        return hits

    def tags(self, hits: List[str]) -> List[str]:
        if not hits:
            return []
        if self.label:
            return [f"{self.label}: {hit}" for hit in hits]
        return [self.name]


@dataclass
class RuleMatch:
    rule: ThreatRule
    tags: List[str] = field(default_factory=list)


class RuleTable:
    """Ordered collection of rules scanned as one pass over the content."""

    def __init__(self, rules: Iterable[ThreatRule] = ()) -> None:
        self._rules: List[ThreatRule] = list(rules)

    @property
    def rules(self) -> List[ThreatRule]:
        return list(self._rules)

    def add(self, rule: ThreatRule) -> None:
        self._rules.append(rule)

    def scan(
        self,
        content: str,
        is_enabled: Optional[Callable[[str], bool]] = None,
    ) -> List[RuleMatch]:
        """Apply every enabled rule; rules with no feature are always on."""
        lowered = content.lower()
        matches = []
        for rule in self._rules:
            if rule.feature and is_enabled is not None and not is_enabled(rule.feature):
                continue
            hits = rule.match(content, lowered)
            if hits:
                matches.append(RuleMatch(rule=rule, tags=rule.tags(hits)))
        return matches


# ── level policies ───────────────────────────────────────────────────


def level_by_tag_count(matches: List[RuleMatch]) -> ThreatLevel:
    """Escalate on breadth: how many distinct tags fired."""
    count = len({tag for m in matches for tag in m.tags})
    if count == 0:
        return ThreatLevel.NONE
    if count == 1:
        return ThreatLevel.LOW
    if count == 2:
        return ThreatLevel.MEDIUM
    return ThreatLevel.HIGH


def level_by_severity(matches: List[RuleMatch]) -> ThreatLevel:
    """Escalate on depth: the most severe rule that fired."""
    if not matches:
        return ThreatLevel.NONE
    return max(m.rule.severity for m in matches)


@dataclass(frozen=True)
class ThreatPolicy:
    """Maps rule matches to a level; levels at or above ``block_at`` are denied."""

    level_for: Callable[[List[RuleMatch]], ThreatLevel]
    block_at: ThreatLevel = ThreatLevel.HIGH

    def evaluate(self, matches: List[RuleMatch]) -> SecurityAssessment:
        level = self.level_for(matches)
        return SecurityAssessment(
            threat_level=level,
            detected_threats=[tag for m in matches for tag in m.tags],
            allow_request=level < self.block_at,
        )


COUNT_POLICY = ThreatPolicy(level_for=level_by_tag_count)
SEVERITY_POLICY = ThreatPolicy(level_for=level_by_severity)


# ── gateway rule table ───────────────────────────────────────────────

PII_RULE = ThreatRule(
    name="potential_pii_detected",
    category=ThreatCategory.PII,
    patterns=("ssn", "social security", "credit card", "password"),
    feature=SecurityFeature.PII_DETECTION.value,
)

PROMPT_INJECTION_RULE = ThreatRule(
    name="potential_prompt_injection",
    category=ThreatCategory.PROMPT_INJECTION,
    patterns=("ignore previous instructions", "jailbreak", "pretend you are"),
    severity=ThreatLevel.HIGH,
    feature=SecurityFeature.MALICIOUS_PROMPT_DETECTION.value,
)


def input_size_rule(max_length: int = DEFAULT_MAX_INPUT_LENGTH) -> ThreatRule:
    return ThreatRule(
        name="excessive_input_length",
        category=ThreatCategory.INPUT_SIZE,
        severity=ThreatLevel.MEDIUM,
        max_length=max_length,
    )


def gateway_rule_table(max_input_length: int = DEFAULT_MAX_INPUT_LENGTH) -> RuleTable:
    return RuleTable([PII_RULE, PROMPT_INJECTION_RULE, input_size_rule(max_input_length)])


DEFAULT_SECURITY_CONFIG: Dict[str, bool] = {feature.value: True for feature in SecurityFeature}


class ThreatAssessor:
    """Screens request content before it leaves the process.

    Threat level counts distinct tags: none -> NONE, one -> LOW,
    two -> MEDIUM, three or more -> HIGH. HIGH and above is blocked.
    """

    def __init__(
        self,
        stats: StatsCollector,
        features: Optional[Dict[str, bool]] = None,
        rules: Optional[RuleTable] = None,
        policy: ThreatPolicy = COUNT_POLICY,
    ) -> None:
        self._stats = stats
        self._features: Dict[str, bool] = dict(DEFAULT_SECURITY_CONFIG)
        if features:
            self._features.update(features)
        self._rules = rules or gateway_rule_table()
        self._policy = policy
        self._lock = threading.Lock()

    # ── feature toggles ──────────────────────────────────────────────

    def enable_feature(self, feature_name: str, enabled: bool) -> None:
        with self._lock:
            self._features[feature_name] = enabled
        logger.info("Security feature %s %s", feature_name, "enabled" if enabled else "disabled")

    def is_enabled(self, feature_name: str) -> bool:
        with self._lock:
            return self._features.get(feature_name, False)

    def get_security_config(self) -> Dict[str, bool]:
        with self._lock:
            return dict(self._features)

    # ── assessment ───────────────────────────────────────────────────

    def detect_threats(self, request_content: str) -> List[str]:
        """Return the threat tags present in the content, in rule order."""
        if not self.is_enabled(SecurityFeature.THREAT_DETECTION.value):
            return []
        matches = self._rules.scan(request_content, self.is_enabled)
        return [tag for m in matches for tag in m.tags]

    def assess_request_security(
        self, request_content: str, user_context: str = ""
    ) -> SecurityAssessment:
        if not self.is_enabled(SecurityFeature.THREAT_DETECTION.value):
            return SecurityAssessment()

        assessment = self._policy.evaluate(self._rules.scan(request_content, self.is_enabled))

        if not assessment.allow_request:
            assessment.mitigation_action = BLOCKED_MITIGATION
            self._stats.record_blocked()
            logger.warning(
                "Request blocked: threat level %s, threats %s (context=%s)",
                assessment.threat_level.name,
                assessment.detected_threats,
                user_context or "-",
                extra={"threat_level": assessment.threat_level.name},
            )
        elif assessment.detected_threats:
            logger.info(
                "Request allowed with threat level %s: %s",
                assessment.threat_level.name,
                assessment.detected_threats,
            )
        return assessment
