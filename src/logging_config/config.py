"""Logging Configuration.

Levels, output formats and the environment overrides read at startup.
"""

import dataclasses
import logging
import os
from dataclasses import dataclass
from enum import Enum

ENV_LEVEL = "TRADESTATION_LOG_LEVEL"
ENV_FORMAT = "TRADESTATION_LOG_FORMAT"


class LogLevel(str, Enum):
    """Log level options."""
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"

    @property
    def numeric(self) -> int:
        return getattr(logging, self.value)


class LogFormat(str, Enum):
    """Log output format."""
    JSON = "json"
    CONSOLE = "console"


@dataclass(frozen=True)
class LoggingConfig:
    """Logging configuration for the client process."""

    level: LogLevel = LogLevel.INFO
    format: LogFormat = LogFormat.JSON
    include_caller: bool = True
    slow_threshold_ms: float = 2000.0
    service_name: str = "tradestation"
    # httpx logs every request at INFO
    quiet_loggers: tuple[str, ...] = ("httpx", "httpcore", "asyncio")

    def with_env_overrides(self) -> "LoggingConfig":
        """Apply TRADESTATION_LOG_LEVEL / TRADESTATION_LOG_FORMAT when set to known values."""
        changes = {}
        level = os.environ.get(ENV_LEVEL, "").upper()
        if level in LogLevel.__members__:
            changes["level"] = LogLevel(level)
        fmt = os.environ.get(ENV_FORMAT, "").lower()
        if fmt in {f.value for f in LogFormat}:
            changes["format"] = LogFormat(fmt)
        return dataclasses.replace(self, **changes) if changes else self


DEFAULT_LOGGING_CONFIG = LoggingConfig()
