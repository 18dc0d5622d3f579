"""TradeStation Streaming Consumer.

Long-lived newline-delimited JSON streams for bars and quotes, exposed
as async generators that survive disconnects. Each connection is opened
with a freshly resolved token. Lines that are not JSON are logged and
skipped. Dropped connections and upstream ``Error`` records end the
current connection and trigger a reconnect after a bounded exponential
backoff; only cancelling the consuming task (or closing the generator)
ends the sequence.
"""

from typing import Any, AsyncIterator, Callable, Optional
import asyncio
import logging

import httpx

from src.tradestation.config import TradeStationConfig
from src.tradestation.errors import AuthenticationError, DataFormatError
from src.tradestation.models import Bar, Quote
from src.tradestation.parsing import decode_json, parse_bars, parse_quote
from src.tradestation.session import AuthorizedSession

logger = logging.getLogger(__name__)

# Marks a bar record; anything else on a bar stream is a control message
BAR_MARKER = "High"
QUOTE_MARKER = "Symbol"
ERROR_FIELD = "Error"


class _StreamError(Exception):
    """Upstream sent an explicit error record; the connection is abandoned."""


class StreamingConsumer:
    """Produces bars and quotes from TradeStation's streaming endpoints.

    Example:
        consumer = StreamingConsumer(config, session)
        async for bar in consumer.stream_bars("MSFT"):
            handle(bar)
    """

    def __init__(
        self,
        config: TradeStationConfig,
        session: AuthorizedSession,
        sleep: Callable[[float], Any] = asyncio.sleep,
    ):
        self._config = config
        self._session = session
        self._sleep = sleep
        self._connections = 0

    @property
    def connection_count(self) -> int:
        """Number of connections opened so far."""
        return self._connections

    def stream_bars(
        self, symbol: str, interval: int = 5, unit: str = "Minute"
    ) -> AsyncIterator[Bar]:
        """Endless sequence of streamed bars for ``symbol``."""
        params = {"interval": str(interval), "unit": unit}

        def parse(record: Any) -> Optional[list[Bar]]:
            if BAR_MARKER not in record:
                return None
            return parse_bars(record, symbol)

        return self._consume(
            "stream_bars", symbol, self._config.stream_barcharts_url(symbol), params, parse
        )

    def stream_quotes(self, symbol: str) -> AsyncIterator[Quote]:
        """Endless sequence of streamed quote snapshots for ``symbol``."""

        def parse(record: Any) -> Optional[list[Quote]]:
            if ERROR_FIELD in record or QUOTE_MARKER not in record:
                return None
            return [parse_quote(record)]

        return self._consume(
            "stream_quotes", symbol, self._config.stream_quotes_url(symbol), None, parse
        )

    async def _consume(
        self,
        operation: str,
        symbol: str,
        url: str,
        params: Optional[dict[str, str]],
        parse: Callable[[Any], Optional[list]],
    ) -> AsyncIterator[Any]:
        delay = self._config.stream_reconnect_delay
        while True:
            produced = False
            try:
                self._connections += 1
                async with self._session.stream_lines(url, params) as lines:
                    async for line in lines:
                        records = self._handle_line(line, parse)
                        if not records:
                            continue
                        for record in records:
                            yield record
                        produced = True
                        delay = self._config.stream_reconnect_delay
                logger.info(f"{operation} for {symbol} ended, reconnecting")
            except _StreamError as e:
                logger.error(f"Error in {operation} for {symbol}: {e}")
            except (httpx.HTTPError, AuthenticationError) as e:
                logger.warning(f"{operation} for {symbol} dropped: {e}")

            if not produced and delay > 0:
                logger.debug(
                    f"Reconnecting {operation} for {symbol} in {delay:.1f}s",
                    extra={"delay_s": delay},
                )
                await self._sleep(delay)
                delay = min(delay * 2, self._config.stream_max_reconnect_delay)

    @staticmethod
    def _handle_line(line: str, parse: Callable[[Any], Optional[list]]) -> Optional[list]:
        if not line or not line.strip():
            return None
        try:
            record = decode_json(line)
        except DataFormatError:
            logger.warning(f"Skipping non-JSON stream line: {line[:80]!r}")
            return None
        if not isinstance(record, dict):
            return None
        parsed = parse(record)
        if parsed is None:
            if ERROR_FIELD in record:
                raise _StreamError(str(record[ERROR_FIELD]))
            return None
        return parsed
