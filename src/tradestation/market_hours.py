"""Market Session Helpers.

Regular-session hours, business-day counting and time-in-force selection.
"""

from datetime import date, datetime, time, timedelta, timezone
from typing import Callable, Optional
from zoneinfo import ZoneInfo

from src.tradestation.models import Duration

MARKET_OPEN = time(9, 30)
MARKET_CLOSE = time(16, 0)
SESSION_MINUTES = 390  # 09:30 to 16:00

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def count_business_days(start: date, end: date) -> int:
    """Count Monday-Friday days in [start, end], both endpoints inclusive."""
    if isinstance(start, datetime):
        start = start.date()
    if isinstance(end, datetime):
        end = end.date()
    if end < start:
        return 0
    total_days = (end - start).days + 1
    full_weeks, remainder = divmod(total_days, 7)
    days = full_weeks * 5
    for offset in range(remainder):
        if (start + timedelta(days=offset)).weekday() < 5:
            days += 1
    return days


def bars_per_session(interval: int) -> float:
    """Number of ``interval``-minute bars in one regular session."""
    return SESSION_MINUTES / interval


class MarketClock:
    """Session-aware clock in the exchange's timezone.

    Example:
        clock = MarketClock("America/New_York")
        if clock.is_market_open():
            ...
    """

    def __init__(self, tz_name: str = "America/New_York", clock: Optional[Clock] = None):
        self._tz = ZoneInfo(tz_name)
        self._clock = clock or utc_now

    @property
    def tz(self) -> ZoneInfo:
        return self._tz

    def now(self) -> datetime:
        """Current time in the market timezone."""
        return self._clock().astimezone(self._tz)

    def today(self) -> date:
        return self.now().date()

    def session_open(self, day: Optional[date] = None) -> datetime:
        """Regular-session open (09:30 local) for ``day``, default today."""
        day = day or self.today()
        return datetime.combine(day, MARKET_OPEN, tzinfo=self._tz)

    def is_market_open(self, at: Optional[datetime] = None) -> bool:
        """True between 09:30 and 16:00 inclusive, Monday to Friday."""
        at = at.astimezone(self._tz) if at is not None else self.now()
        if at.weekday() >= 5:
            return False
        return MARKET_OPEN <= at.time() <= MARKET_CLOSE

    def time_in_force(self, at: Optional[datetime] = None) -> Duration:
        """DAY during the regular session, otherwise DYP (next session)."""
        return Duration.DAY if self.is_market_open(at) else Duration.DYP
