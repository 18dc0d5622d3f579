"""TradeStation Brokerage Client.

Async client for TradeStation's v3 API: OAuth2 refresh-token auth with a
cached bearer token, historical and intraday bar retrieval with
concurrent multi-symbol fan-out, reconnecting bar and quote streams,
bracket order composition, and account positions and balances.

Example:
    from src.tradestation import TradeStationClient, TradeStationConfig

    config = TradeStationConfig(
        api_key="YOUR_KEY",
        api_secret="YOUR_SECRET",
        refresh_token="YOUR_REFRESH_TOKEN",
        account_id="SIM123456",
    )
    async with TradeStationClient(config) as client:
        bars = await client.get_bars("MSFT", 1, "Daily", bars_back=10)
        async for bar in client.stream_bars("MSFT"):
            ...
"""

from src.tradestation.auth import AccessToken, TokenManager
from src.tradestation.client import TradeStationClient
from src.tradestation.config import TradeStationConfig
from src.tradestation.errors import (
    AuthenticationError,
    ConfigurationError,
    DataFormatError,
    RangeTooLargeError,
    TradeStationError,
    UsageError,
)
from src.tradestation.market_data import (
    MAX_BARS_BACK,
    BatchResult,
    IgnoreSet,
    MarketDataFetcher,
    SymbolResult,
)
from src.tradestation.market_hours import MarketClock, count_business_days
from src.tradestation.models import (
    AccountBalances,
    Bar,
    CreateOrder,
    Duration,
    OrderAck,
    OrderStatus,
    OrderType,
    Position,
    Quote,
    TradeAction,
)
from src.tradestation.orders import OrderComposer, round_price
from src.tradestation.parsing import parse_bars
from src.tradestation.streaming import StreamingConsumer
from src.tradestation.account import AccountAccessor
from src.tradestation.tools import (
    GetBarsParams,
    PlaceBuyOrderParams,
    PlaceSellOrderParams,
    ToolHandler,
    ToolResponse,
)

__all__ = [
    # Client
    "TradeStationClient",
    "TradeStationConfig",
    # Components
    "TokenManager",
    "AccessToken",
    "MarketDataFetcher",
    "StreamingConsumer",
    "OrderComposer",
    "AccountAccessor",
    "MarketClock",
    "IgnoreSet",
    # Results
    "SymbolResult",
    "BatchResult",
    # Models
    "Bar",
    "Quote",
    "Position",
    "AccountBalances",
    "OrderAck",
    "CreateOrder",
    "OrderType",
    "TradeAction",
    "Duration",
    "OrderStatus",
    # Helpers
    "parse_bars",
    "round_price",
    "count_business_days",
    "MAX_BARS_BACK",
    # Tools
    "ToolHandler",
    "ToolResponse",
    "GetBarsParams",
    "PlaceBuyOrderParams",
    "PlaceSellOrderParams",
    # Errors
    "TradeStationError",
    "ConfigurationError",
    "UsageError",
    "RangeTooLargeError",
    "AuthenticationError",
    "DataFormatError",
]
