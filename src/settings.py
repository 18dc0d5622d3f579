"""Centralized settings for the TradeStation client.

Uses pydantic-settings to load from environment variables (prefixed
TRADESTATION_) or a .env file, with defaults matching
``TradeStationConfig``.
"""

from functools import lru_cache
from typing import Optional

from pydantic import field_validator
from pydantic_settings import BaseSettings

from src.logging_config import LogFormat, LoggingConfig, LogLevel
from src.tradestation.config import TradeStationConfig
from src.tradestation.errors import ConfigurationError


class Settings(BaseSettings):
    """TradeStation settings loaded from environment variables."""

    # --- Credentials ---
    api_key: str = ""
    api_secret: str = ""
    refresh_token: str = ""
    account_id: str = ""

    # --- Endpoints ---
    base_url: str = "https://signin.tradestation.com"
    api_url: str = "https://api.tradestation.com/v3"

    # --- Client tuning ---
    token_freshness_seconds: int = 600
    market_timezone: str = "America/New_York"
    request_timeout: float = 30.0
    stream_reconnect_delay: float = 1.0
    stream_max_reconnect_delay: float = 60.0
    ignore_ttl_seconds: Optional[float] = None  # None: never expire

    # --- Logging ---
    log_level: LogLevel = LogLevel.INFO
    log_format: LogFormat = LogFormat.JSON

    model_config = {
        "env_prefix": "TRADESTATION_",
        "env_file": ".env",
        "extra": "ignore",
    }

    @field_validator("log_level", mode="before")
    @classmethod
    def _upper_level(cls, value):
        return value.upper() if isinstance(value, str) else value

    @field_validator("log_format", mode="before")
    @classmethod
    def _lower_format(cls, value):
        return value.lower() if isinstance(value, str) else value

    def to_logging_config(self) -> LoggingConfig:
        return LoggingConfig(level=self.log_level, format=self.log_format)

    def to_client_config(self) -> TradeStationConfig:
        """Build a validated client configuration.

        Raises:
            ConfigurationError: a required credential or URL is missing or invalid.
        """
        config = TradeStationConfig(
            api_key=self.api_key,
            api_secret=self.api_secret,
            refresh_token=self.refresh_token,
            account_id=self.account_id,
            base_url=self.base_url,
            api_url=self.api_url,
            token_freshness_seconds=self.token_freshness_seconds,
            market_timezone=self.market_timezone,
            request_timeout=self.request_timeout,
            stream_reconnect_delay=self.stream_reconnect_delay,
            stream_max_reconnect_delay=self.stream_max_reconnect_delay,
            ignore_ttl_seconds=self.ignore_ttl_seconds,
        )
        problems = config.validate()
        if problems:
            raise ConfigurationError("Invalid TradeStation settings", problems)
        return config


@lru_cache
def get_settings() -> Settings:
    """Get cached settings singleton."""
    return Settings()
