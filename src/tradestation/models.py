"""TradeStation Data Models.

Immutable records for bars, quotes, positions, balances and order
acknowledgments, plus the create-order intent and its wire payload.
Prices are ``Decimal`` throughout; conversion from raw API payloads
lives in ``src.tradestation.parsing``.
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Optional


# =====================================================================
# Enums
# =====================================================================


class OrderType(str, Enum):
    """Supported order types."""
    MARKET = "Market"
    LIMIT = "Limit"
    STOP_MARKET = "StopMarket"


class TradeAction(str, Enum):
    """Order side."""
    BUY = "BUY"
    SELL = "SELL"


class Duration(str, Enum):
    """Time-in-force durations."""
    DAY = "DAY"
    DYP = "DYP"  # day-plus: queued for the next session


class OrderStatus(str, Enum):
    """Lifecycle status of a submitted order."""
    PENDING = "Pending"
    ACTIVE = "Active"
    FILLED = "Filled"
    CANCELLED = "Cancelled"
    REJECTED = "Rejected"


OSO_GROUP_TYPE = "OCO"


# =====================================================================
# Market Data
# =====================================================================


@dataclass(frozen=True)
class Bar:
    """OHLCV bar over a fixed interval."""
    timestamp: datetime
    open: Decimal
    high: Decimal
    low: Decimal
    close: Decimal
    volume: int
    symbol: Optional[str] = None

    @property
    def date(self) -> date:
        return self.timestamp.date()


@dataclass(frozen=True)
class Quote:
    """Quote snapshot for a symbol."""
    symbol: str
    open: Optional[Decimal] = None
    previous_close: Optional[Decimal] = None
    last: Optional[Decimal] = None
    ask: Optional[Decimal] = None
    ask_size: Optional[int] = None
    bid: Optional[Decimal] = None
    bid_size: Optional[int] = None
    net_change: Optional[Decimal] = None
    net_change_pct: Optional[Decimal] = None
    high_52_week: Optional[Decimal] = None
    high_52_week_timestamp: Optional[datetime] = None
    low_52_week: Optional[Decimal] = None
    low_52_week_timestamp: Optional[datetime] = None
    volume: Optional[int] = None
    previous_volume: Optional[int] = None
    close: Optional[Decimal] = None
    daily_open_interest: Optional[int] = None
    trade_time: Optional[datetime] = None
    tick_size_tier: Optional[int] = None

    @property
    def spread(self) -> Optional[Decimal]:
        if self.ask is None or self.bid is None:
            return None
        return self.ask - self.bid


# =====================================================================
# Brokerage
# =====================================================================


@dataclass(frozen=True)
class Position:
    """Open position held at the brokerage. Negative quantity is short."""
    symbol: str
    quantity: int
    average_price: Decimal
    timestamp: Optional[datetime] = None

    @property
    def is_long(self) -> bool:
        return self.quantity > 0

    @property
    def is_short(self) -> bool:
        return self.quantity < 0


@dataclass(frozen=True)
class AccountBalances:
    """Account balance snapshot."""
    account_id: str = ""
    cash_balance: Optional[Decimal] = None
    equity: Optional[Decimal] = None
    market_value: Optional[Decimal] = None
    buying_power: Optional[Decimal] = None
    raw: dict[str, Any] = field(default_factory=dict, compare=False)


@dataclass(frozen=True)
class OrderAck:
    """Acknowledgment for one submitted order."""
    order_id: str = ""
    message: str = ""
    error: Optional[str] = None
    raw: dict[str, Any] = field(default_factory=dict, compare=False)

    @property
    def accepted(self) -> bool:
        return self.error is None

    @property
    def status(self) -> OrderStatus:
        """Status at submission time: rejected with an error, else pending."""
        return OrderStatus.PENDING if self.accepted else OrderStatus.REJECTED


# =====================================================================
# Orders
# =====================================================================


@dataclass(frozen=True)
class CreateOrder:
    """Order intent, optionally carrying bracket children sent on fill."""
    account_id: str
    symbol: str
    quantity: int
    order_type: OrderType
    time_in_force: Duration
    trade_action: TradeAction
    limit_price: Optional[Decimal] = None
    stop_price: Optional[Decimal] = None
    osos: tuple["CreateOrder", ...] = ()

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "AccountID": self.account_id,
            "Symbol": self.symbol,
            "Quantity": str(self.quantity),
            "OrderType": self.order_type.value,
            "TimeInForce": {"Duration": self.time_in_force.value},
            "TradeAction": self.trade_action.value,
        }
        if self.limit_price is not None:
            payload["LimitPrice"] = str(self.limit_price)
        if self.stop_price is not None:
            payload["StopPrice"] = str(self.stop_price)
        if self.osos:
            payload["OSOs"] = [
                {
                    "Type": OSO_GROUP_TYPE,
                    "Orders": [child.to_payload() for child in self.osos],
                }
            ]
        return payload
