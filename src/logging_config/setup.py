"""Logging Setup.

One-call configuration of the root logger for processes embedding the
control plane: JSON lines for collectors, coloured text for terminals.
"""

import dataclasses
import json
import logging
import os
import sys
from datetime import datetime, timezone
from typing import Optional

from src.logging_config.config import (
    DEFAULT_LOGGING_CONFIG,
    EXTRA_FIELDS,
    LogFormat,
    LoggingConfig,
    LogLevel,
)
from src.logging_config.context import get_context_dict

LEVEL_ENV_VAR = "CONTROL_PLANE_LOG_LEVEL"
FORMAT_ENV_VAR = "CONTROL_PLANE_LOG_FORMAT"


class StructuredFormatter(logging.Formatter):
    """One JSON object per record.

    Always carries timestamp, level, logger, message and service; adds
    caller info, the bound request context, exception details and any
    of ``EXTRA_FIELDS`` found on the record.
    """

    def __init__(self, service_name: str = "ai-control-plane", include_caller: bool = True):
        super().__init__()
        self.service_name = service_name
        self.include_caller = include_caller

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "service": self.service_name,
        }

        if self.include_caller:
            entry["module"] = record.module
            entry["function"] = record.funcName
            entry["line"] = record.lineno

        entry.update(get_context_dict())

        if record.exc_info and record.exc_info[0] is not None:
            entry["exception"] = {
                "type": record.exc_info[0].__name__,
                "message": str(record.exc_info[1]),
                "traceback": self.formatException(record.exc_info),
            }

        for key in EXTRA_FIELDS:
            if hasattr(record, key):
                entry[key] = getattr(record, key)

        return json.dumps(entry, default=str)


class ConsoleFormatter(logging.Formatter):
    """Human-readable, level-coloured lines for development."""

    COLORS = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[35m",
    }
    RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        color = self.COLORS.get(record.levelname, self.RESET)
        timestamp = datetime.fromtimestamp(record.created, timezone.utc).strftime("%H:%M:%S.%f")[:-3]

        ctx = get_context_dict()
        provider_id = getattr(record, "provider_id", None)
        if provider_id:
            ctx = {**ctx, "provider_id": provider_id}
        ctx_str = ""
        if ctx:
            ctx_str = " [" + ", ".join(f"{k}={v}" for k, v in ctx.items()) + "]"

        line = (
            f"{color}{timestamp} {record.levelname:8s}{self.RESET} "
            f"{record.name}: {record.getMessage()}{ctx_str}"
        )
        if record.exc_info and record.exc_info[0] is not None:
            line += "\n" + self.formatException(record.exc_info)
        return line


def _apply_env_overrides(config: LoggingConfig) -> LoggingConfig:
    env_level = os.environ.get(LEVEL_ENV_VAR, "").upper()
    if env_level in LogLevel.__members__:
        config = dataclasses.replace(config, level=LogLevel(env_level))

    env_format = os.environ.get(FORMAT_ENV_VAR, "").lower()
    if env_format in {f.value for f in LogFormat}:
        config = dataclasses.replace(config, format=LogFormat(env_format))
    return config


def configure_logging(config: Optional[LoggingConfig] = None) -> LoggingConfig:
    """Install a single stdout handler on the root logger.

    ``CONTROL_PLANE_LOG_LEVEL`` and ``CONTROL_PLANE_LOG_FORMAT`` override
    the given config. Returns the effective config.
    """
    config = _apply_env_overrides(config or DEFAULT_LOGGING_CONFIG)

    if config.format == LogFormat.JSON:
        formatter: logging.Formatter = StructuredFormatter(
            service_name=config.service_name,
            include_caller=config.include_caller,
        )
    else:
        formatter = ConsoleFormatter()

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(getattr(logging, config.level.value))
    return config


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)
