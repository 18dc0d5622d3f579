"""TradeStation Order Composer.

Builds entry orders with optional take-profit / stop-loss brackets sent
on fill (OSO), and exit orders, then submits them to the order
execution endpoint.
"""

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Optional, Union
import logging

from src.logging_config import OperationContext
from src.tradestation.config import TradeStationConfig
from src.tradestation.errors import UsageError
from src.tradestation.market_hours import MarketClock
from src.tradestation.models import CreateOrder, Duration, OrderAck, OrderType, TradeAction
from src.tradestation.parsing import decode_json, parse_order_acks
from src.tradestation.session import AuthorizedSession

logger = logging.getLogger(__name__)

PriceLike = Union[Decimal, float, int, str]

_CENT = Decimal("0.01")


def round_price(value: PriceLike) -> Decimal:
    """Round a price to cents, half away from zero."""
    text = repr(value) if isinstance(value, float) else value
    try:
        price = Decimal(text)
        if not price.is_finite():
            raise InvalidOperation
        return price.quantize(_CENT, rounding=ROUND_HALF_UP)
    except (InvalidOperation, TypeError) as e:
        raise UsageError(f"Invalid price {value!r}") from e


def _order_type(value: Union[OrderType, str]) -> OrderType:
    if isinstance(value, OrderType):
        return value
    for member in OrderType:
        if member.value.lower() == str(value).lower():
            return member
    raise UsageError(
        f"Unsupported order type {value!r}; expected one of "
        f"{', '.join(m.value for m in OrderType)}"
    )


def _positive_price(value: Optional[PriceLike]) -> Optional[Decimal]:
    if value is None:
        return None
    price = round_price(value)
    return price if price > 0 else None


def _entry_prices(order_type: OrderType, price: Optional[PriceLike]) -> tuple[Optional[Decimal], Optional[Decimal]]:
    """Return (limit_price, stop_price) for the order type."""
    if order_type == OrderType.MARKET:
        return None, None
    rounded = _positive_price(price)
    if rounded is None:
        raise UsageError(f"{order_type.value} orders require a positive price")
    if order_type == OrderType.LIMIT:
        return rounded, None
    return None, rounded


def _check_size(size: int) -> None:
    if isinstance(size, bool) or not isinstance(size, int) or size <= 0:
        raise UsageError(f"Order size must be a positive integer, got {size!r}")


class OrderComposer:
    """Composes and submits entry and exit orders for the configured account.

    Example:
        composer = OrderComposer(config, session, MarketClock())
        acks = await composer.open_position("MSFT", 10, take_profit=450, stop_loss=400)
        await composer.close_position("MSFT", 10)
    """

    def __init__(self, config: TradeStationConfig, session: AuthorizedSession, market_clock: MarketClock):
        self._config = config
        self._session = session
        self._clock = market_clock

    def build_open_position(
        self,
        symbol: str,
        size: int,
        order_type: Union[OrderType, str] = OrderType.MARKET,
        price: Optional[PriceLike] = None,
        take_profit: Optional[PriceLike] = 0,
        stop_loss: Optional[PriceLike] = 0,
    ) -> CreateOrder:
        """Build a BUY entry order with up to two SELL bracket children."""
        _check_size(size)
        entry_type = _order_type(order_type)
        limit_price, stop_price = _entry_prices(entry_type, price)
        duration = self._clock.time_in_force()
        symbol = symbol.upper()

        children = []
        tp = _positive_price(take_profit)
        if tp is not None:
            children.append(CreateOrder(
                account_id=self._config.account_id,
                symbol=symbol,
                quantity=size,
                order_type=OrderType.LIMIT,
                time_in_force=duration,
                trade_action=TradeAction.SELL,
                limit_price=tp,
            ))
        sl = _positive_price(stop_loss)
        if sl is not None:
            children.append(CreateOrder(
                account_id=self._config.account_id,
                symbol=symbol,
                quantity=size,
                order_type=OrderType.STOP_MARKET,
                time_in_force=duration,
                trade_action=TradeAction.SELL,
                stop_price=sl,
            ))

        return CreateOrder(
            account_id=self._config.account_id,
            symbol=symbol,
            quantity=size,
            order_type=entry_type,
            time_in_force=duration,
            trade_action=TradeAction.BUY,
            limit_price=limit_price,
            stop_price=stop_price,
            osos=tuple(children),
        )

    def build_close_position(
        self,
        symbol: str,
        size: int,
        order_type: Union[OrderType, str] = OrderType.MARKET,
        limit_price: Optional[PriceLike] = None,
    ) -> CreateOrder:
        """Build a plain SELL exit order with DAY time-in-force.

        ``limit_price`` is the order's trigger price for both Limit and
        StopMarket exits.
        """
        _check_size(size)
        exit_type = _order_type(order_type)
        limit, stop = _entry_prices(exit_type, limit_price)
        return CreateOrder(
            account_id=self._config.account_id,
            symbol=symbol.upper(),
            quantity=size,
            order_type=exit_type,
            time_in_force=Duration.DAY,
            trade_action=TradeAction.SELL,
            limit_price=limit,
            stop_price=stop,
        )

    async def open_position(
        self,
        symbol: str,
        size: int,
        order_type: Union[OrderType, str] = OrderType.MARKET,
        price: Optional[PriceLike] = None,
        take_profit: Optional[PriceLike] = 0,
        stop_loss: Optional[PriceLike] = 0,
    ) -> list[OrderAck]:
        """Submit an entry order with its brackets; returns the order acknowledgments."""
        order = self.build_open_position(symbol, size, order_type, price, take_profit, stop_loss)
        with OperationContext(operation="open_position", symbol=order.symbol, account_id=order.account_id):
            logger.info(
                f"Submitting {order.order_type.value} BUY {order.quantity} {order.symbol} "
                f"({order.time_in_force.value}) with {len(order.osos)} bracket order(s)"
            )
            resp = await self._session.post_json(self._config.orders_url, order.to_payload())
            acks = parse_order_acks(decode_json(resp.content))
            for ack in acks:
                if not ack.accepted:
                    logger.warning(f"Order {ack.order_id or '?'} for {order.symbol} rejected: {ack.error}")
            return acks

    async def close_position(
        self,
        symbol: str,
        size: int,
        order_type: Union[OrderType, str] = OrderType.MARKET,
        limit_price: Optional[PriceLike] = None,
    ) -> None:
        """Submit an exit order; HTTP failures propagate."""
        order = self.build_close_position(symbol, size, order_type, limit_price)
        with OperationContext(operation="close_position", symbol=order.symbol, account_id=order.account_id):
            logger.info(f"Submitting {order.order_type.value} SELL {order.quantity} {order.symbol}")
            await self._session.post_json(self._config.orders_url, order.to_payload())
