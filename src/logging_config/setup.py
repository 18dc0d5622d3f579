"""Logging Setup.

One-call configuration for the client's logging. JSON lines for
production, colored console output for development. Both formatters
attach the operation context bound by ``OperationContext``.
"""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any, Optional, TextIO

from src.logging_config.config import DEFAULT_LOGGING_CONFIG, LogFormat, LoggingConfig
from src.logging_config.context import get_context_dict

HANDLER_NAME = "tradestation"

# Attributes passed through ``extra=`` that are copied into JSON entries
RECORD_FIELDS = ("duration_ms", "status_code", "delay_s")


def _exception_fields(formatter: logging.Formatter, record: logging.LogRecord) -> Optional[dict[str, Any]]:
    if not record.exc_info or record.exc_info[0] is None:
        return None
    exc_type, exc, _ = record.exc_info
    return {
        "type": exc_type.__name__,
        "message": str(exc),
        "traceback": formatter.formatException(record.exc_info),
    }


class StructuredFormatter(logging.Formatter):
    """One JSON object per line.

    Fields: timestamp, level, logger, message, service, the caller
    location (optional), the bound operation context and any of
    ``RECORD_FIELDS`` present on the record.
    """

    def __init__(self, service_name: str = "tradestation", include_caller: bool = True):
        super().__init__()
        self.service_name = service_name
        self.include_caller = include_caller

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "service": self.service_name,
        }
        if self.include_caller:
            entry.update(module=record.module, function=record.funcName, line=record.lineno)
        entry.update(get_context_dict())
        entry.update({k: getattr(record, k) for k in RECORD_FIELDS if hasattr(record, k)})

        exception = _exception_fields(self, record)
        if exception:
            entry["exception"] = exception
        return json.dumps(entry, default=str)


class ConsoleFormatter(logging.Formatter):
    """Human-readable, level-colored lines for a terminal."""

    LEVEL_COLORS = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[35m",
    }
    RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        color = self.LEVEL_COLORS.get(record.levelname, "")
        stamp = datetime.fromtimestamp(record.created, timezone.utc).strftime("%H:%M:%S.%f")[:-3]
        context = " ".join(f"{k}={v}" for k, v in get_context_dict().items())

        line = f"{stamp} {color}{record.levelname:<8}{self.RESET} {record.name}: {record.getMessage()}"
        if context:
            line = f"{line}  [{context}]"
        if record.exc_info and record.exc_info[0] is not None:
            line = f"{line}\n{self.formatException(record.exc_info)}"
        return line


def _build_formatter(config: LoggingConfig) -> logging.Formatter:
    if config.format == LogFormat.CONSOLE:
        return ConsoleFormatter()
    return StructuredFormatter(service_name=config.service_name, include_caller=config.include_caller)


def configure_logging(
    config: Optional[LoggingConfig] = None,
    stream: Optional[TextIO] = None,
) -> logging.Handler:
    """Install the client's log handler on the root logger.

    Calling again replaces the handler installed by a previous call and
    leaves other handlers alone. Level and format can be overridden with
    the TRADESTATION_LOG_LEVEL and TRADESTATION_LOG_FORMAT env vars.
    """
    config = (config or DEFAULT_LOGGING_CONFIG).with_env_overrides()

    handler = logging.StreamHandler(stream or sys.stdout)
    handler.set_name(HANDLER_NAME)
    handler.setFormatter(_build_formatter(config))

    root = logging.getLogger()
    for existing in [h for h in root.handlers if h.get_name() == HANDLER_NAME]:
        root.removeHandler(existing)
    root.addHandler(handler)
    root.setLevel(config.level.numeric)

    for name in config.quiet_loggers:
        logging.getLogger(name).setLevel(logging.WARNING)
    return handler


def get_logger(name: str) -> logging.Logger:
    """Return a standard library logger (routes through configure_logging)."""
    return logging.getLogger(name)
