"""Structured Logging & Operation Context.

Provides JSON/console log formatting, task-local operation context
(operation, symbol, account) and timing of client round trips.
"""

from src.logging_config.config import LogFormat, LoggingConfig, LogLevel
from src.logging_config.context import OperationContext, generate_call_id, get_context_dict
from src.logging_config.performance import log_performance
from src.logging_config.setup import configure_logging, get_logger

__all__ = [
    "LogFormat",
    "LogLevel",
    "LoggingConfig",
    "OperationContext",
    "configure_logging",
    "generate_call_id",
    "get_context_dict",
    "get_logger",
    "log_performance",
]
