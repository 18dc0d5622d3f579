"""TradeStation Client.

Facade that owns the HTTP connection pool and token state for one
account and exposes every operation of the component classes.
"""

from typing import Any, AsyncIterator, Callable, Iterable, Optional, Sequence, Union
import asyncio
import logging

import httpx

from src.tradestation.account import AccountAccessor
from src.tradestation.auth import AccessToken, TokenManager
from src.tradestation.config import TradeStationConfig
from src.tradestation.errors import ConfigurationError
from src.tradestation.market_data import BatchResult, DateLike, IgnoreSet, MarketDataFetcher
from src.tradestation.market_hours import Clock, MarketClock, utc_now
from src.tradestation.models import AccountBalances, Bar, OrderAck, OrderType, Position, Quote
from src.tradestation.orders import OrderComposer, PriceLike
from src.tradestation.session import AuthorizedSession
from src.tradestation.streaming import StreamingConsumer

logger = logging.getLogger(__name__)


class TradeStationClient:
    """Async TradeStation brokerage client.

    Example:
        config = TradeStationConfig(
            api_key="KEY", api_secret="SECRET",
            refresh_token="REFRESH", account_id="SIM123",
        )
        async with TradeStationClient(config) as client:
            bars = await client.get_bars("MSFT", 1, "Daily", bars_back=10)
            positions = await client.get_positions()
    """

    def __init__(
        self,
        config: TradeStationConfig,
        http_client: Optional[httpx.AsyncClient] = None,
        clock: Optional[Clock] = None,
        sleep: Callable[[float], Any] = asyncio.sleep,
    ):
        problems = config.validate()
        if problems:
            raise ConfigurationError("Invalid TradeStation configuration", problems)

        self._config = config
        self._owns_http = http_client is None
        self._http = http_client or httpx.AsyncClient(timeout=config.request_timeout)
        clock = clock or utc_now

        self._tokens = TokenManager(config, self._http, clock=clock)
        self._session = AuthorizedSession(self._http, self._tokens)
        self._market_clock = MarketClock(config.market_timezone, clock=clock)
        self._ignored = IgnoreSet(config.ignore_ttl_seconds, clock=clock)

        self.market_data = MarketDataFetcher(config, self._session, self._market_clock, self._ignored)
        self.streaming = StreamingConsumer(config, self._session, sleep=sleep)
        self.orders = OrderComposer(config, self._session, self._market_clock)
        self.account = AccountAccessor(config, self._session)

    @property
    def config(self) -> TradeStationConfig:
        return self._config

    @property
    def tokens(self) -> TokenManager:
        return self._tokens

    @property
    def market_clock(self) -> MarketClock:
        return self._market_clock

    @property
    def ignore_set(self) -> IgnoreSet:
        return self._ignored

    # ── Lifecycle ───────────────────────────────────────────────────

    async def close(self) -> None:
        """Release the connection pool if this client created it."""
        if self._owns_http:
            await self._http.aclose()
        logger.info("TradeStation client closed")

    async def __aenter__(self) -> "TradeStationClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    # ── Auth ────────────────────────────────────────────────────────

    async def ensure_token(self, force: bool = False) -> AccessToken:
        return await self._tokens.ensure_token(force=force)

    # ── Market data ─────────────────────────────────────────────────

    async def get_bars(
        self,
        symbol: str,
        interval: int,
        unit: str,
        bars_back: Optional[int] = None,
        first_date: Optional[str] = None,
        last_date: Optional[str] = None,
    ) -> list[Bar]:
        return await self.market_data.get_bars(symbol, interval, unit, bars_back, first_date, last_date)

    async def get_current_day_intraday_bars(self, symbol: str) -> list[Bar]:
        return await self.market_data.get_current_day_intraday_bars(symbol)

    async def get_historical_daily_bars(
        self, symbol: str, days_back: int, last_date: Optional[DateLike] = None
    ) -> list[Bar]:
        return await self.market_data.get_historical_daily_bars(symbol, days_back, last_date)

    async def get_historical_intraday_data(
        self,
        symbols: Iterable[str],
        start_date: DateLike,
        end_date: Optional[DateLike] = None,
        interval: int = 1,
    ) -> BatchResult:
        return await self.market_data.get_historical_intraday_data(symbols, start_date, end_date, interval)

    async def get_intraday_data(self, symbols: Sequence[str], dates: Sequence[DateLike]) -> BatchResult:
        return await self.market_data.get_intraday_data(symbols, dates)

    # ── Streaming ───────────────────────────────────────────────────

    def stream_bars(self, symbol: str, interval: int = 5, unit: str = "Minute") -> AsyncIterator[Bar]:
        return self.streaming.stream_bars(symbol, interval, unit)

    def stream_quotes(self, symbol: str) -> AsyncIterator[Quote]:
        return self.streaming.stream_quotes(symbol)

    # ── Orders ──────────────────────────────────────────────────────

    async def open_position(
        self,
        symbol: str,
        size: int,
        order_type: Union[OrderType, str] = OrderType.MARKET,
        price: Optional[PriceLike] = None,
        take_profit: Optional[PriceLike] = 0,
        stop_loss: Optional[PriceLike] = 0,
    ) -> list[OrderAck]:
        return await self.orders.open_position(symbol, size, order_type, price, take_profit, stop_loss)

    async def close_position(
        self,
        symbol: str,
        size: int,
        order_type: Union[OrderType, str] = OrderType.MARKET,
        limit_price: Optional[PriceLike] = None,
    ) -> None:
        await self.orders.close_position(symbol, size, order_type, limit_price)

    # ── Account ─────────────────────────────────────────────────────

    async def get_positions(self) -> list[Position]:
        return await self.account.get_positions()

    async def get_balances(self) -> AccountBalances:
        return await self.account.get_balances()
