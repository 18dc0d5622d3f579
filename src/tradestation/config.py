"""TradeStation Client Configuration.

Connection settings, credentials and tuning knobs for the REST and
streaming client.
"""

from dataclasses import dataclass
from typing import Optional
from urllib.parse import urlparse


@dataclass
class TradeStationConfig:
    """Configuration for TradeStation API connection."""
    api_key: str = ""
    api_secret: str = ""
    refresh_token: str = ""
    account_id: str = ""
    base_url: str = "https://signin.tradestation.com"
    api_url: str = "https://api.tradestation.com/v3"
    # Token
    token_freshness_seconds: int = 600
    # Market session
    market_timezone: str = "America/New_York"
    # Transport
    request_timeout: float = 30.0
    # Streaming reconnect backoff
    stream_reconnect_delay: float = 1.0
    stream_max_reconnect_delay: float = 60.0
    # Failed-symbol suppression; None keeps symbols ignored for the client lifetime
    ignore_ttl_seconds: Optional[float] = None

    @property
    def token_url(self) -> str:
        return f"{self.base_url.rstrip('/')}/oauth/token"

    def barcharts_url(self, symbol: str) -> str:
        return f"{self.api_url.rstrip('/')}/marketdata/barcharts/{symbol}"

    def stream_barcharts_url(self, symbol: str) -> str:
        return f"{self.api_url.rstrip('/')}/marketdata/stream/barcharts/{symbol}"

    def stream_quotes_url(self, symbol: str) -> str:
        return f"{self.api_url.rstrip('/')}/marketdata/stream/quotes/{symbol}"

    @property
    def orders_url(self) -> str:
        return f"{self.api_url.rstrip('/')}/orderexecution/orders"

    @property
    def positions_url(self) -> str:
        return f"{self.api_url.rstrip('/')}/brokerage/accounts/{self.account_id}/positions"

    @property
    def balances_url(self) -> str:
        return f"{self.api_url.rstrip('/')}/brokerage/accounts/{self.account_id}/balances"

    def validate(self) -> list[str]:
        """Return a list of configuration problems (empty when valid)."""
        problems = []
        if not self.api_key:
            problems.append("API Key is required")
        if not self.api_secret:
            problems.append("API Secret is required")
        if not self.refresh_token:
            problems.append("Refresh Token is required")
        if not self.account_id:
            problems.append("Account ID is required")
        if not _is_absolute_url(self.base_url):
            problems.append("Base URL must be a valid URI")
        if not _is_absolute_url(self.api_url):
            problems.append("API URL must be a valid URI")
        if self.token_freshness_seconds <= 0:
            problems.append("Token freshness window must be positive")
        if self.stream_reconnect_delay < 0 or self.stream_max_reconnect_delay < self.stream_reconnect_delay:
            problems.append("Stream reconnect delays must satisfy 0 <= initial <= max")
        return problems

    @property
    def is_valid(self) -> bool:
        return not self.validate()


def _is_absolute_url(url: str) -> bool:
    if not url:
        return False
    parsed = urlparse(url)
    return bool(parsed.scheme and parsed.netloc)
