"""OAuth2 Token Management.

Exchanges the long-lived refresh token for short-lived bearer tokens and
caches the result for a fixed freshness window. Refreshes are serialized
behind an ``asyncio.Lock`` so that a burst of concurrent callers triggers
a single network round trip.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional
import asyncio
import logging

import httpx

from src.tradestation.config import TradeStationConfig
from src.tradestation.errors import AuthenticationError, DataFormatError
from src.tradestation.market_hours import Clock, utc_now
from src.tradestation.parsing import decode_json

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AccessToken:
    """Bearer token and the instant it was issued."""
    value: str
    refreshed_at: datetime

    def age(self, now: datetime) -> timedelta:
        return now - self.refreshed_at

    def is_fresh(self, now: datetime, window: timedelta) -> bool:
        return self.age(now) < window

    def auth_headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self.value}"}


class TokenManager:
    """Owns the access token for one client instance.

    Example:
        tokens = TokenManager(config, http_client)
        token = await tokens.ensure_token()
        headers = token.auth_headers()
    """

    def __init__(
        self,
        config: TradeStationConfig,
        http_client: httpx.AsyncClient,
        clock: Optional[Clock] = None,
    ):
        self._config = config
        self._http = http_client
        self._clock = clock or utc_now
        self._window = timedelta(seconds=config.token_freshness_seconds)
        self._refresh_token = config.refresh_token
        self._token: Optional[AccessToken] = None
        self._lock = asyncio.Lock()
        self._refresh_count = 0

    @property
    def token(self) -> Optional[AccessToken]:
        return self._token

    @property
    def refresh_count(self) -> int:
        """Number of successful refresh round trips."""
        return self._refresh_count

    def _is_fresh(self, token: Optional[AccessToken]) -> bool:
        return token is not None and token.is_fresh(self._clock(), self._window)

    async def ensure_token(self, force: bool = False) -> AccessToken:
        """Return a fresh token, refreshing it first when stale or forced."""
        seen = self._token
        if not force and self._is_fresh(seen):
            return seen

        async with self._lock:
            current = self._token
            if force:
                # Another caller refreshed while we waited on the lock
                if current is not seen and current is not None:
                    return current
            elif self._is_fresh(current):
                return current

            self._token = await self._refresh()
            return self._token

    async def auth_headers(self) -> dict[str, str]:
        token = await self.ensure_token()
        return token.auth_headers()

    async def _refresh(self) -> AccessToken:
        try:
            resp = await self._http.post(
                self._config.token_url,
                data={
                    "grant_type": "refresh_token",
                    "client_id": self._config.api_key,
                    "client_secret": self._config.api_secret,
                    "refresh_token": self._refresh_token,
                },
            )
        except httpx.HTTPError as e:
            logger.error(f"Token refresh request failed: {e}")
            raise AuthenticationError(f"Token refresh request failed: {e}") from e

        if not resp.is_success:
            logger.error(
                f"Token refresh rejected: HTTP {resp.status_code}",
                extra={"status_code": resp.status_code},
            )
            raise AuthenticationError(
                f"Token refresh rejected: HTTP {resp.status_code}",
                status_code=resp.status_code,
            )

        try:
            body = decode_json(resp.content)
        except DataFormatError as e:
            raise AuthenticationError(f"Malformed token response: {e}") from e

        access = body.get("access_token") if isinstance(body, dict) else None
        if not isinstance(access, str) or not access:
            raise AuthenticationError("Token response is missing 'access_token'")

        rotated = body.get("refresh_token")
        if isinstance(rotated, str) and rotated:
            self._refresh_token = rotated

        self._refresh_count += 1
        logger.info("Access token refreshed successfully")
        return AccessToken(value=access, refreshed_at=self._clock())
