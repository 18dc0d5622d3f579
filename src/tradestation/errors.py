"""TradeStation Client Exceptions.

Typed exceptions for the failure classes of the brokerage client.
HTTP status failures are not wrapped: ``httpx.HTTPStatusError`` is
raised as-is by the REST paths that do not degrade.
"""

from typing import Optional


class TradeStationError(Exception):
    """Base exception for all TradeStation client errors."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ConfigurationError(TradeStationError):
    """Raised when client configuration is incomplete or invalid."""

    def __init__(self, message: str = "Invalid configuration", problems: Optional[list[str]] = None):
        self.problems = problems or []
        if self.problems:
            message = f"{message}: {'; '.join(self.problems)}"
        super().__init__(message)


class UsageError(TradeStationError, ValueError):
    """Raised for invalid argument combinations, before any I/O."""


class RangeTooLargeError(UsageError):
    """Raised when requested history exceeds the provider's bar capacity."""

    def __init__(self, required_bars: float, max_bars: int):
        self.required_bars = required_bars
        self.max_bars = max_bars
        super().__init__(
            f"Date range too large: requires {required_bars:g} bars, "
            f"maximum is {max_bars}"
        )


class AuthenticationError(TradeStationError):
    """Raised when the OAuth refresh-token exchange fails."""

    def __init__(self, message: str = "Access token refresh failed", status_code: Optional[int] = None):
        self.status_code = status_code
        super().__init__(message)


class DataFormatError(TradeStationError, ValueError):
    """Raised when a response is missing fields or carries malformed values."""

    def __init__(self, message: str, field: Optional[str] = None):
        self.field = field
        super().__init__(message)
