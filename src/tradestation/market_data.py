"""TradeStation Market Data Fetcher.

Historical and intraday bar retrieval over the barcharts endpoint:
query construction, range-capacity checks, concurrent multi-symbol
fan-out with per-symbol failure isolation, and a process-lifetime
ignore-set for symbols whose historical requests failed.
"""

from dataclasses import dataclass, field
from datetime import date, datetime, timedelta, timezone
from typing import Iterable, Iterator, Optional, Sequence, Union
import asyncio
import logging

from src.logging_config import OperationContext
from src.tradestation.config import TradeStationConfig
from src.tradestation.errors import RangeTooLargeError, UsageError
from src.tradestation.market_hours import (
    Clock,
    MarketClock,
    bars_per_session,
    count_business_days,
    utc_now,
)
from src.tradestation.models import Bar
from src.tradestation.parsing import parse_bars
from src.tradestation.session import AuthorizedSession

logger = logging.getLogger(__name__)

MAX_BARS_BACK = 57_600
INTRADAY_INTERVAL = 5
INTRADAY_BARS_BACK = 78  # one regular session of 5-minute bars
STALE_AFTER_DAYS = 5

DateLike = Union[date, datetime]


def _format_date(value: DateLike) -> str:
    return value.strftime("%Y-%m-%d")


# =====================================================================
# Per-symbol results
# =====================================================================


@dataclass
class SymbolResult:
    """Outcome of one symbol's request within a batch."""
    symbol: str
    bars: list[Bar] = field(default_factory=list)
    error: Optional[BaseException] = None
    skipped: bool = False

    @property
    def ok(self) -> bool:
        return self.error is None and not self.skipped


@dataclass
class BatchResult:
    """Aggregated results of a multi-symbol fetch, in request order."""
    items: list[SymbolResult] = field(default_factory=list)

    def __iter__(self) -> Iterator[SymbolResult]:
        return iter(self.items)

    def __len__(self) -> int:
        return len(self.items)

    @property
    def bars(self) -> list[Bar]:
        return [bar for item in self.items for bar in item.bars]

    @property
    def failures(self) -> list[SymbolResult]:
        return [item for item in self.items if item.error is not None]

    @property
    def skipped(self) -> list[SymbolResult]:
        return [item for item in self.items if item.skipped]

    def for_symbol(self, symbol: str) -> list[SymbolResult]:
        return [item for item in self.items if item.symbol == symbol]


# =====================================================================
# Ignore-set
# =====================================================================


class IgnoreSet:
    """Symbols whose historical requests failed.

    With ``ttl_seconds=None`` entries never expire for the lifetime of the
    owning client; a TTL evicts them lazily on lookup.
    """

    def __init__(self, ttl_seconds: Optional[float] = None, clock: Optional[Clock] = None):
        self._ttl = timedelta(seconds=ttl_seconds) if ttl_seconds is not None else None
        self._clock = clock or utc_now
        self._added: dict[str, datetime] = {}

    def add(self, symbol: str) -> None:
        self._added[symbol] = self._clock()

    def __contains__(self, symbol: object) -> bool:
        added = self._added.get(symbol)  # type: ignore[arg-type]
        if added is None:
            return False
        if self._ttl is not None and self._clock() - added >= self._ttl:
            del self._added[symbol]  # type: ignore[arg-type]
            return False
        return True

    def __len__(self) -> int:
        return sum(1 for symbol in list(self._added) if symbol in self)

    def clear(self) -> None:
        self._added.clear()


# =====================================================================
# Fetcher
# =====================================================================


class MarketDataFetcher:
    """Bar retrieval for single symbols and concurrent symbol batches.

    Example:
        fetcher = MarketDataFetcher(config, session, MarketClock())
        bars = await fetcher.get_bars("MSFT", 1, "Daily", bars_back=10)
        batch = await fetcher.get_historical_intraday_data(["MSFT", "AAPL"], date(2024, 1, 2))
    """

    def __init__(
        self,
        config: TradeStationConfig,
        session: AuthorizedSession,
        market_clock: MarketClock,
        ignore_set: Optional[IgnoreSet] = None,
    ):
        self._config = config
        self._session = session
        self._clock = market_clock
        self._ignored = ignore_set if ignore_set is not None else IgnoreSet(config.ignore_ttl_seconds)

    @property
    def ignore_set(self) -> IgnoreSet:
        return self._ignored

    async def _fetch(self, symbol: str, params: dict[str, str]) -> list[Bar]:
        data = await self._session.get_json(self._config.barcharts_url(symbol), params=params)
        return parse_bars(data, symbol)

    # ── Single symbol ───────────────────────────────────────────────

    async def get_bars(
        self,
        symbol: str,
        interval: int,
        unit: str,
        bars_back: Optional[int] = None,
        first_date: Optional[str] = None,
        last_date: Optional[str] = None,
    ) -> list[Bar]:
        """Fetch bars; exactly one of ``bars_back`` / ``first_date`` is required."""
        has_bars_back = bars_back is not None
        has_first_date = bool(first_date)
        if has_bars_back == has_first_date:
            raise UsageError("Either bars_back or first_date must be provided, not both")

        params = {"interval": str(interval), "unit": unit}
        if has_bars_back:
            params["barsback"] = str(bars_back)
        if has_first_date:
            params["firstdate"] = first_date
        if last_date:
            params["lastdate"] = last_date

        with OperationContext(operation="get_bars", symbol=symbol):
            return await self._fetch(symbol, params)

    async def get_current_day_intraday_bars(self, symbol: str) -> list[Bar]:
        """5-minute bars from today's 09:30 open to now; empty on failure."""
        start = self._clock.session_open().astimezone(timezone.utc)
        params = {
            "interval": str(INTRADAY_INTERVAL),
            "unit": "Minute",
            "firstdate": start.strftime("%Y-%m-%dT%H:%M:%SZ"),
        }
        with OperationContext(operation="get_current_day_intraday_bars", symbol=symbol):
            try:
                return await self._fetch(symbol, params)
            except Exception as e:
                logger.error(f"Error getting current day intraday bars for {symbol}: {e}", exc_info=True)
                return []

    async def get_historical_daily_bars(
        self,
        symbol: str,
        days_back: int,
        last_date: Optional[DateLike] = None,
    ) -> list[Bar]:
        """Daily bars ending at ``last_date``.

        Returns an empty list when the request fails or when the most
        recent bar is more than five days older than ``last_date``.
        """
        last = last_date or self._clock.today()
        if isinstance(last, datetime):
            last = last.date()
        params = {
            "interval": "1",
            "unit": "Daily",
            "barsback": str(days_back),
            "lastdate": _format_date(last),
        }
        with OperationContext(operation="get_historical_daily_bars", symbol=symbol):
            try:
                bars = await self._fetch(symbol, params)
            except Exception as e:
                logger.error(f"Error getting historical daily bars for {symbol}: {e}", exc_info=True)
                return []

            if bars and bars[-1].date < last - timedelta(days=STALE_AFTER_DAYS):
                logger.info(f"Discarding stale daily bars for {symbol}: last bar {bars[-1].date}")
                return []
            return bars

    # ── Batches ─────────────────────────────────────────────────────

    async def get_historical_intraday_data(
        self,
        symbols: Iterable[str],
        start_date: DateLike,
        end_date: Optional[DateLike] = None,
        interval: int = 1,
    ) -> BatchResult:
        """Minute bars for each symbol between two dates, fetched concurrently.

        Raises:
            RangeTooLargeError: the range needs more than 57,600 bars.
        """
        if interval <= 0:
            raise UsageError(f"interval must be positive, got {interval}")
        end = end_date or self._clock.now()
        required = count_business_days(start_date, end) * bars_per_session(interval)
        if required > MAX_BARS_BACK:
            raise RangeTooLargeError(required, MAX_BARS_BACK)

        params = {
            "interval": str(interval),
            "unit": "Minute",
            "lastdate": _format_date(end),
            "firstdate": _format_date(start_date),
        }

        async def fetch_one(symbol: str) -> SymbolResult:
            if symbol in self._ignored:
                return SymbolResult(symbol=symbol, skipped=True)
            with OperationContext(operation="get_historical_intraday_data", symbol=symbol):
                try:
                    return SymbolResult(symbol=symbol, bars=await self._fetch(symbol, params))
                except Exception as e:
                    logger.error(f"Error getting historical intraday data for {symbol}: {e}", exc_info=True)
                    self._ignored.add(symbol)
                    return SymbolResult(symbol=symbol, error=e)

        results = await asyncio.gather(*(fetch_one(s) for s in symbols))
        return BatchResult(items=list(results))

    async def get_intraday_data(
        self,
        symbols: Sequence[str],
        dates: Sequence[DateLike],
    ) -> BatchResult:
        """One session of 5-minute bars per (symbol, date) pair.

        Pairs are formed positionally; the shorter sequence truncates.
        Future dates are clamped to now.
        """
        now = self._clock.now()

        def clamp(value: DateLike) -> DateLike:
            if isinstance(value, datetime):
                aware = value if value.tzinfo else value.replace(tzinfo=self._clock.tz)
                return now if aware > now else value
            return min(value, now.date())

        async def fetch_one(symbol: str, when: DateLike) -> SymbolResult:
            params = {
                "interval": str(INTRADAY_INTERVAL),
                "unit": "Minute",
                "lastdate": _format_date(clamp(when)),
                "barsback": str(INTRADAY_BARS_BACK),
            }
            with OperationContext(operation="get_intraday_data", symbol=symbol):
                try:
                    return SymbolResult(symbol=symbol, bars=await self._fetch(symbol, params))
                except Exception as e:
                    logger.error(f"Error getting intraday data for {symbol}: {e}", exc_info=True)
                    return SymbolResult(symbol=symbol, error=e)

        results = await asyncio.gather(*(fetch_one(s, d) for s, d in zip(symbols, dates)))
        return BatchResult(items=list(results))
