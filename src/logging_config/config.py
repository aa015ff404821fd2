"""Logging Configuration.

Level, output format and slow-operation threshold for control-plane logs.
"""

from dataclasses import dataclass
from enum import Enum


class LogLevel(str, Enum):
    """Log level options."""
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class LogFormat(str, Enum):
    """Log output format."""
    JSON = "json"
    CONSOLE = "console"


@dataclass
class LoggingConfig:
    """Structured logging configuration."""

    level: LogLevel = LogLevel.INFO
    format: LogFormat = LogFormat.JSON
    include_caller: bool = True
    slow_threshold_ms: float = 50.0
    service_name: str = "ai-control-plane"


DEFAULT_LOGGING_CONFIG = LoggingConfig()

# Record attributes copied into JSON output when callers pass them via ``extra=``
EXTRA_FIELDS = ("duration_ms", "provider_id", "threat_level", "extra_data")
