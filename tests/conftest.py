"""Pytest configuration and shared fixtures."""

import json
import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path

import httpx
import pytest

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from src.tradestation.client import TradeStationClient  # noqa: E402
from src.tradestation.config import TradeStationConfig  # noqa: E402


# Wednesday 2024-01-03 10:00 America/New_York, market open
MARKET_HOURS_UTC = datetime(2024, 1, 3, 15, 0, tzinfo=timezone.utc)

API = "/v3"
TOKEN_PATH = "/oauth/token"


class FakeClock:
    """Manually advanced UTC clock."""

    def __init__(self, now: datetime = MARKET_HOURS_UTC):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


class FakeBroker:
    """Routes MockTransport requests by exact URL path and records them.

    A route responder is either an ``httpx.Response`` or a callable taking
    the request. The token endpoint answers ``token-1``, ``token-2``, ...
    unless overridden.
    """

    def __init__(self):
        self.requests: list[httpx.Request] = []
        self.routes: dict[str, object] = {TOKEN_PATH: self._issue_token}
        self.token_calls = 0

    def _issue_token(self, request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"access_token": f"token-{self.token_calls}"})

    def on(self, path: str, responder) -> None:
        self.routes[path] = responder

    def calls(self, path: str) -> list[httpx.Request]:
        return [r for r in self.requests if r.url.path == path]

    @property
    def api_calls(self) -> list[httpx.Request]:
        return [r for r in self.requests if r.url.path != TOKEN_PATH]

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if request.url.path == TOKEN_PATH:
            self.token_calls += 1
        responder = self.routes.get(request.url.path)
        if responder is None:
            return httpx.Response(404, json={"Message": "not found"})
        if callable(responder):
            return responder(request)
        return httpx.Response(responder.status_code, headers=responder.headers, content=responder.content)

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)


def bar_json(timestamp: str = "2024-01-02T15:00:00Z", close: str = "101.25", volume: int = 1200) -> dict:
    return {
        "TimeStamp": timestamp,
        "Open": "100.10",
        "High": "102.00",
        "Low": "99.50",
        "Close": close,
        "TotalVolume": volume,
    }


def ndjson(*records) -> bytes:
    return "".join(
        (r if isinstance(r, str) else json.dumps(r)) + "\n" for r in records
    ).encode()


@pytest.fixture
def fake_clock():
    return FakeClock()


@pytest.fixture
def config():
    return TradeStationConfig(
        api_key="key",
        api_secret="secret",
        refresh_token="refresh",
        account_id="SIM123",
        stream_reconnect_delay=0.5,
        stream_max_reconnect_delay=4.0,
    )


@pytest.fixture
def broker():
    return FakeBroker()


@pytest.fixture
def sleeps():
    return []


@pytest.fixture
def make_client(config, broker, fake_clock, sleeps):
    """Factory for clients wired to the fake broker; overrides replace config fields."""

    async def fake_sleep(delay: float) -> None:
        sleeps.append(delay)

    def factory(**overrides) -> TradeStationClient:
        cfg = TradeStationConfig(**{**config.__dict__, **overrides})
        http = httpx.AsyncClient(transport=broker.transport())
        return TradeStationClient(cfg, http_client=http, clock=fake_clock, sleep=fake_sleep)

    return factory


@pytest.fixture
def client(make_client):
    return make_client()
