"""TradeStation Response Parsing.

Converts raw API payloads into the records in ``src.tradestation.models``.

Bar responses come in two shapes: an object carrying a ``Bars`` array,
or a bare single-bar object (streamed bars arrive this way). Numeric
fields are parsed as ``Decimal``; response bodies should be decoded with
``decode_json`` so that JSON numbers never pass through ``float``.

Any missing or malformed field raises ``DataFormatError`` and aborts the
whole parse.
"""

import json
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Optional, Union

from src.tradestation.errors import DataFormatError
from src.tradestation.models import AccountBalances, Bar, OrderAck, Position, Quote


def decode_json(text: Union[str, bytes]) -> Any:
    """Decode a JSON document, reading every non-integer number as Decimal."""
    try:
        return json.loads(text, parse_float=Decimal)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise DataFormatError(f"Malformed JSON: {e}") from e


# ── Field coercion ──────────────────────────────────────────────────


def _require(data: Any, key: str) -> Any:
    if not isinstance(data, dict):
        raise DataFormatError(
            f"Expected an object holding '{key}', got {type(data).__name__}", field=key
        )
    if key not in data:
        raise DataFormatError(f"Missing field '{key}'", field=key)
    return data[key]


def to_decimal(value: Any, field: str = "") -> Decimal:
    """Coerce a JSON scalar to an exact, finite Decimal."""
    if isinstance(value, bool) or value is None:
        raise DataFormatError(f"Field '{field}' is not numeric: {value!r}", field=field)
    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, int):
        result = Decimal(value)
    elif isinstance(value, float):
        result = Decimal(repr(value))
    elif isinstance(value, str):
        try:
            result = Decimal(value.strip())
        except InvalidOperation as e:
            raise DataFormatError(
                f"Field '{field}' is not numeric: {value!r}", field=field
            ) from e
    else:
        raise DataFormatError(f"Field '{field}' is not numeric: {value!r}", field=field)

    if not result.is_finite():
        raise DataFormatError(f"Field '{field}' is not finite: {value!r}", field=field)
    return result


def to_int(value: Any, field: str = "") -> int:
    """Coerce a JSON scalar to an int; fractional values are rejected."""
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    number = to_decimal(value, field)
    if number != number.to_integral_value():
        raise DataFormatError(f"Field '{field}' is not an integer: {value!r}", field=field)
    return int(number)


def parse_timestamp(value: Any, field: str = "TimeStamp") -> datetime:
    """Parse an ISO-8601 timestamp (``Z`` suffix accepted)."""
    if isinstance(value, datetime):
        return value
    if not isinstance(value, str) or not value.strip():
        raise DataFormatError(f"Field '{field}' is not a timestamp: {value!r}", field=field)
    text = value.strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    try:
        return datetime.fromisoformat(text)
    except ValueError as e:
        raise DataFormatError(f"Field '{field}' is not a timestamp: {value!r}", field=field) from e


def _optional(data: dict, key: str, convert) -> Any:
    value = data.get(key)
    if value is None or value == "":
        return None
    return convert(value, key)


def unwrap(response: Any, key: str, expected: type) -> Any:
    """Return ``response[key]`` after checking it has the expected shape."""
    value = _require(response, key)
    if not isinstance(value, expected):
        raise DataFormatError(
            f"Field '{key}' should be {expected.__name__}, got {type(value).__name__}",
            field=key,
        )
    return value


# ── Bars ────────────────────────────────────────────────────────────


def parse_bar(data: Any, symbol: str = "") -> Bar:
    """Parse one bar object."""
    return Bar(
        timestamp=parse_timestamp(_require(data, "TimeStamp")),
        open=to_decimal(_require(data, "Open"), "Open"),
        high=to_decimal(_require(data, "High"), "High"),
        low=to_decimal(_require(data, "Low"), "Low"),
        close=to_decimal(_require(data, "Close"), "Close"),
        volume=to_int(_require(data, "TotalVolume"), "TotalVolume"),
        symbol=symbol or None,
    )


def parse_bars(response: Any, symbol: str = "") -> list[Bar]:
    """Parse a bar-chart response in either accepted shape."""
    if not isinstance(response, dict):
        raise DataFormatError(
            f"Expected a bar object, got {type(response).__name__}"
        )
    if "Bars" not in response:
        return [parse_bar(response, symbol)]
    return [parse_bar(item, symbol) for item in unwrap(response, "Bars", list)]


# ── Quotes ──────────────────────────────────────────────────────────


def parse_quote(data: Any) -> Quote:
    """Parse a quote snapshot; only ``Symbol`` is mandatory."""
    symbol = _require(data, "Symbol")
    if not isinstance(symbol, str) or not symbol:
        raise DataFormatError(f"Field 'Symbol' is invalid: {symbol!r}", field="Symbol")
    return Quote(
        symbol=symbol,
        open=_optional(data, "Open", to_decimal),
        previous_close=_optional(data, "PreviousClose", to_decimal),
        last=_optional(data, "Last", to_decimal),
        ask=_optional(data, "Ask", to_decimal),
        ask_size=_optional(data, "AskSize", to_int),
        bid=_optional(data, "Bid", to_decimal),
        bid_size=_optional(data, "BidSize", to_int),
        net_change=_optional(data, "NetChange", to_decimal),
        net_change_pct=_optional(data, "NetChangePct", to_decimal),
        high_52_week=_optional(data, "High52Week", to_decimal),
        high_52_week_timestamp=_optional(data, "High52WeekTimestamp", parse_timestamp),
        low_52_week=_optional(data, "Low52Week", to_decimal),
        low_52_week_timestamp=_optional(data, "Low52WeekTimestamp", parse_timestamp),
        volume=_optional(data, "Volume", to_int),
        previous_volume=_optional(data, "PreviousVolume", to_int),
        close=_optional(data, "Close", to_decimal),
        daily_open_interest=_optional(data, "DailyOpenInterest", to_int),
        trade_time=_optional(data, "TradeTime", parse_timestamp),
        tick_size_tier=_optional(data, "TickSizeTier", to_int),
    )


# ── Brokerage envelopes ─────────────────────────────────────────────


def parse_position(data: Any) -> Position:
    symbol = _require(data, "Symbol")
    quantity = to_int(_require(data, "Quantity"), "Quantity")
    # Some payloads report an unsigned quantity alongside LongShort
    if quantity > 0 and str(data.get("LongShort", "")).lower() == "short":
        quantity = -quantity
    return Position(
        symbol=str(symbol),
        quantity=quantity,
        average_price=to_decimal(_require(data, "AveragePrice"), "AveragePrice"),
        timestamp=_optional(data, "Timestamp", parse_timestamp),
    )


def parse_positions(response: Any) -> list[Position]:
    return [parse_position(item) for item in unwrap(response, "Positions", list)]


def parse_balances(response: Any) -> AccountBalances:
    balances = unwrap(response, "Balances", dict)
    return AccountBalances(
        account_id=str(balances.get("AccountID", "")),
        cash_balance=_optional(balances, "CashBalance", to_decimal),
        equity=_optional(balances, "Equity", to_decimal),
        market_value=_optional(balances, "MarketValue", to_decimal),
        buying_power=_optional(balances, "BuyingPower", to_decimal),
        raw=balances,
    )


def parse_order_acks(response: Any) -> list[OrderAck]:
    acks = []
    for item in unwrap(response, "Orders", list):
        if not isinstance(item, dict):
            raise DataFormatError(f"Order acknowledgment is not an object: {item!r}", field="Orders")
        error: Optional[str] = item.get("Error") or None
        acks.append(OrderAck(
            order_id=str(item.get("OrderID", "")),
            message=str(item.get("Message", "")),
            error=str(error) if error is not None else None,
            raw=item,
        ))
    return acks
