"""Tool Call Boundary.

Validates named tool calls with pydantic parameter models and dispatches
them to a ``TradeStationClient``. Results are returned as JSON text
responses.
"""

from dataclasses import asdict, is_dataclass
from datetime import date
from decimal import Decimal
from typing import Any, Optional
import json
import logging

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from src.tradestation.client import TradeStationClient
from src.tradestation.errors import UsageError

logger = logging.getLogger(__name__)

TOOL_PREFIX = "tradestation"


# ─── Parameters ─────────────────────────────────────────────────────────


class GetBarsParams(BaseModel):
    """Arguments of the get_bars tool."""

    model_config = ConfigDict(populate_by_name=True)

    symbol: str = Field(min_length=1)
    interval: int = Field(ge=1)
    unit: str = "Minute"
    bars_back: Optional[int] = Field(default=None, ge=1)
    first_date: Optional[str] = Field(default=None, alias="firstdate")
    last_date: Optional[str] = Field(default=None, alias="lastdate")


class PlaceBuyOrderParams(BaseModel):
    """Arguments of the place_buy_order tool."""

    symbol: str = Field(min_length=1)
    size: int = Field(ge=1)
    order_type: str = "Market"
    price: Optional[Decimal] = None
    take_profit: Decimal = Decimal(0)
    stop_loss: Decimal = Decimal(0)


class PlaceSellOrderParams(BaseModel):
    """Arguments of the place_sell_order tool."""

    symbol: str = Field(min_length=1)
    size: int = Field(ge=1)
    order_type: str = "Market"
    price: Optional[Decimal] = None


class ToolResponse(BaseModel):
    """A single text payload returned from a tool call."""

    type: str = "text"
    text: str


# ─── Serialization ──────────────────────────────────────────────────────


def _plain(value: Any) -> Any:
    if is_dataclass(value) and not isinstance(value, type):
        return asdict(value)
    if isinstance(value, list):
        return [_plain(item) for item in value]
    return value


def _json_default(value: Any) -> str:
    if isinstance(value, date):
        return value.isoformat()
    return str(value)


def text_response(content: Any) -> ToolResponse:
    """Serialize a result to JSON; decimals become strings, timestamps ISO-8601."""
    return ToolResponse(type="text", text=json.dumps(_plain(content), default=_json_default))


def _parse(model: type[BaseModel], arguments: Optional[dict[str, Any]]) -> Any:
    try:
        return model.model_validate(arguments or {})
    except ValidationError as e:
        raise UsageError(f"Invalid arguments for {model.__name__}: {e}") from e


# ─── Handler ────────────────────────────────────────────────────────────


class ToolHandler:
    """Routes ``tradestation*`` tool calls to the client.

    Example:
        handler = ToolHandler(client)
        [resp] = await handler.handle_tool_call(
            "tradestation_get_bars", {"symbol": "MSFT", "interval": 1, "unit": "Daily", "bars_back": 5}
        )
    """

    def __init__(self, client: TradeStationClient):
        self._client = client
        self._handlers = {
            "get_bars": self._get_bars,
            "place_buy_order": self._place_buy_order,
            "place_sell_order": self._place_sell_order,
            "get_positions": self._get_positions,
            "get_balances": self._get_balances,
        }

    async def handle_tool_call(
        self, name: str, arguments: Optional[dict[str, Any]] = None
    ) -> list[ToolResponse]:
        if not name.lower().startswith(TOOL_PREFIX):
            raise UsageError(f"Invalid tool name prefix. Expected: {TOOL_PREFIX}")

        for suffix, handler in self._handlers.items():
            if name.endswith(suffix):
                try:
                    return await handler(arguments)
                except Exception as e:
                    logger.error(f"Tool call {name} failed: {e}")
                    raise
        raise UsageError(f"Unknown tool name: {name}")

    async def _get_bars(self, arguments: Optional[dict[str, Any]]) -> list[ToolResponse]:
        params = _parse(GetBarsParams, arguments)
        bars = await self._client.get_bars(
            params.symbol,
            params.interval,
            params.unit,
            bars_back=params.bars_back,
            first_date=params.first_date,
            last_date=params.last_date,
        )
        return [text_response(bars)]

    async def _place_buy_order(self, arguments: Optional[dict[str, Any]]) -> list[ToolResponse]:
        params = _parse(PlaceBuyOrderParams, arguments)
        acks = await self._client.open_position(
            params.symbol,
            params.size,
            order_type=params.order_type,
            price=params.price,
            take_profit=params.take_profit,
            stop_loss=params.stop_loss,
        )
        return [text_response(acks)]

    async def _place_sell_order(self, arguments: Optional[dict[str, Any]]) -> list[ToolResponse]:
        params = _parse(PlaceSellOrderParams, arguments)
        await self._client.close_position(
            params.symbol,
            params.size,
            order_type=params.order_type,
            limit_price=params.price,
        )
        return [text_response({"Status": "Success"})]

    async def _get_positions(self, arguments: Optional[dict[str, Any]]) -> list[ToolResponse]:
        return [text_response(await self._client.get_positions())]

    async def _get_balances(self, arguments: Optional[dict[str, Any]]) -> list[ToolResponse]:
        return [text_response(await self._client.get_balances())]
