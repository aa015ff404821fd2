"""Structured logging for the AI provider control plane.

JSON or console log output, request-scoped context binding, and timing
of routing work.
"""

from src.logging_config.config import LogFormat, LoggingConfig, LogLevel
from src.logging_config.context import RequestContext, generate_request_id
from src.logging_config.performance import PerformanceTimer
from src.logging_config.setup import configure_logging, get_logger

__all__ = [
    "LogFormat",
    "LogLevel",
    "LoggingConfig",
    "PerformanceTimer",
    "RequestContext",
    "configure_logging",
    "generate_request_id",
    "get_logger",
]
