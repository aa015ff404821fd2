"""Configuration types for the AI provider control plane."""

from dataclasses import dataclass
from enum import Enum, IntEnum
from typing import List


class ThreatLevel(IntEnum):
    """Ordinal severity of a security assessment."""

    NONE = 0
    LOW = 1
    MEDIUM = 2
    HIGH = 3
    CRITICAL = 4


class TaskType(str, Enum):
    """Task classification carried by an inbound AI request."""

    TEXT_GENERATION = "text_generation"
    TEXT_SUMMARIZATION = "text_summarization"
    CONTENT_ANALYSIS = "content_analysis"
    IMAGE_ANALYSIS = "image_analysis"
    CODE_GENERATION = "code_generation"
    QUESTION_ANSWERING = "question_answering"
    TRANSLATION = "translation"
    CUSTOM = "custom"


class SecurityFeature(str, Enum):
    """Named toggles gating request threat assessment."""

    THREAT_DETECTION = "threat_detection"
    CONTENT_FILTERING = "content_filtering"
    PII_DETECTION = "pii_detection"
    MALICIOUS_PROMPT_DETECTION = "malicious_prompt_detection"


class ThreatCategory(str, Enum):
    """Family a threat rule belongs to."""

    PII = "pii"
    PROMPT_INJECTION = "prompt_injection"
    INPUT_SIZE = "input_size"
    DATA_EXFILTRATION = "data_exfiltration"
    MALICIOUS_INSTRUCTIONS = "malicious_instructions"
    KNOWN_THREAT = "known_threat"
    SUSPICIOUS_KEYWORD = "suspicious_keyword"
    MALICIOUS_SCRIPT = "malicious_script"
    SUSPICIOUS_DOMAIN = "suspicious_domain"


@dataclass
class RateLimitConfig:
    """Per-provider admission quotas."""

    requests_per_minute: int = 60
    requests_per_hour: int = 1000
    requests_per_day: int = 10000
    enabled: bool = True


# Applied to providers nobody configured: they are admitted without limit.
UNLIMITED_RATE_LIMIT = RateLimitConfig(enabled=False)

DEFAULT_PROVIDERS: List[str] = ["gemini", "openai", "claude", "copilot"]

# Telemetry smoothing factor for latency and cost.
EMA_ALPHA = 0.1

# Provider scoring
NEUTRAL_PROVIDER_SCORE = 0.5
SUCCESS_WEIGHT = 0.4
SPEED_WEIGHT = 0.3
COST_WEIGHT = 0.3
WORST_RESPONSE_TIME_MS = 5000.0
WORST_COST_PER_REQUEST = 0.10

# Rate-limit windows (seconds)
MINUTE_WINDOW_SECONDS = 60
HOUR_WINDOW_SECONDS = 60 * 60
DAY_WINDOW_SECONDS = 24 * 60 * 60

DEFAULT_MAX_INPUT_LENGTH = 50_000
