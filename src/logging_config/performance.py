"""Performance Logging.

Timing for client round trips: every call at DEBUG, slow calls at
WARNING and failures at ERROR.
"""

import asyncio
import functools
import logging
import time
from typing import Any, Callable, Optional

from src.logging_config.config import DEFAULT_LOGGING_CONFIG


def _elapsed_ms(started: float) -> float:
    return round((time.perf_counter() - started) * 1000, 2)


def log_performance(
    threshold_ms: Optional[float] = None,
    logger_name: Optional[str] = None,
) -> Callable:
    """Decorate a coroutine function with timing logs.

    Example:
        @log_performance(threshold_ms=500)
        async def get_json(self, url):
            ...
    """
    limit = DEFAULT_LOGGING_CONFIG.slow_threshold_ms if threshold_ms is None else threshold_ms

    def decorator(func: Callable) -> Callable:
        if not asyncio.iscoroutinefunction(func):
            raise TypeError(f"log_performance expects a coroutine function, got {func!r}")

        log = logging.getLogger(logger_name or func.__module__)
        name = func.__qualname__

        @functools.wraps(func)
        async def timed(*args: Any, **kwargs: Any) -> Any:
            started = time.perf_counter()
            try:
                result = await func(*args, **kwargs)
            except Exception as exc:
                elapsed = _elapsed_ms(started)
                log.error(
                    f"{name} raised {type(exc).__name__} after {elapsed:.1f}ms",
                    extra={"duration_ms": elapsed},
                )
                raise

            elapsed = _elapsed_ms(started)
            if elapsed >= limit:
                log.warning(f"Slow call: {name} took {elapsed:.1f}ms", extra={"duration_ms": elapsed})
            else:
                log.debug(f"{name} finished in {elapsed:.1f}ms", extra={"duration_ms": elapsed})
            return result

        return timed

    return decorator
