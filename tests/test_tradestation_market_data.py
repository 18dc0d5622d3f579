"""Tests for TradeStation market data retrieval."""

from datetime import date, datetime, timezone

import httpx
import pytest

from src.tradestation.errors import RangeTooLargeError, UsageError
from src.tradestation.market_data import MAX_BARS_BACK, BatchResult, IgnoreSet, SymbolResult
from src.tradestation.market_hours import count_business_days

from conftest import API, bar_json


def _bars_path(symbol: str) -> str:
    return f"{API}/marketdata/barcharts/{symbol}"


def _serve_bars(broker, symbol: str, *bars) -> None:
    broker.on(_bars_path(symbol), httpx.Response(200, json={"Bars": list(bars) or [bar_json()]}))


# =====================================================================
# Test: get_bars
# =====================================================================


class TestGetBars:
    """Tests for single-symbol bar retrieval."""

    @pytest.mark.asyncio
    async def test_both_bars_back_and_first_date(self, client, broker):
        with pytest.raises(UsageError):
            await client.get_bars("MSFT", 1, "Daily", bars_back=10, first_date="2024-01-01")
        assert broker.requests == []

    @pytest.mark.asyncio
    async def test_neither_bars_back_nor_first_date(self, client, broker):
        with pytest.raises(UsageError):
            await client.get_bars("MSFT", 1, "Daily")
        assert broker.requests == []

    @pytest.mark.asyncio
    async def test_bars_back(self, client, broker):
        _serve_bars(broker, "MSFT", bar_json("2024-01-02T00:00:00Z"), bar_json("2024-01-03T00:00:00Z"))
        bars = await client.get_bars("MSFT", 1, "Daily", bars_back=2)
        assert len(bars) == 2
        [request] = broker.calls(_bars_path("MSFT"))
        assert dict(request.url.params) == {"interval": "1", "unit": "Daily", "barsback": "2"}
        assert request.headers["Authorization"] == "Bearer token-1"

    @pytest.mark.asyncio
    async def test_first_and_last_date(self, client, broker):
        _serve_bars(broker, "MSFT")
        await client.get_bars("MSFT", 5, "Minute", first_date="2024-01-02", last_date="2024-01-03")
        [request] = broker.calls(_bars_path("MSFT"))
        assert request.url.params["firstdate"] == "2024-01-02"
        assert request.url.params["lastdate"] == "2024-01-03"
        assert "barsback" not in request.url.params

    @pytest.mark.asyncio
    async def test_single_bar_object(self, client, broker):
        broker.on(_bars_path("MSFT"), httpx.Response(200, json=bar_json()))
        bars = await client.get_bars("MSFT", 1, "Daily", bars_back=1)
        assert len(bars) == 1
        assert bars[0].symbol == "MSFT"

    @pytest.mark.asyncio
    async def test_http_error_propagates(self, client, broker):
        broker.on(_bars_path("MSFT"), httpx.Response(500))
        with pytest.raises(httpx.HTTPStatusError):
            await client.get_bars("MSFT", 1, "Daily", bars_back=1)

    @pytest.mark.asyncio
    async def test_token_reused_across_calls(self, client, broker):
        _serve_bars(broker, "MSFT")
        await client.get_bars("MSFT", 1, "Daily", bars_back=1)
        await client.get_bars("MSFT", 1, "Daily", bars_back=1)
        assert broker.token_calls == 1


# =====================================================================
# Test: single-symbol convenience fetches
# =====================================================================


class TestCurrentDayAndDaily:
    """Tests for current-day intraday and historical daily bars."""

    @pytest.mark.asyncio
    async def test_current_day_starts_at_open(self, client, broker):
        _serve_bars(broker, "MSFT")
        bars = await client.get_current_day_intraday_bars("MSFT")
        assert len(bars) == 1
        [request] = broker.calls(_bars_path("MSFT"))
        assert dict(request.url.params) == {
            "interval": "5",
            "unit": "Minute",
            "firstdate": "2024-01-03T14:30:00Z",
        }

    @pytest.mark.asyncio
    async def test_current_day_failure_is_empty(self, client, broker):
        broker.on(_bars_path("MSFT"), httpx.Response(503))
        assert await client.get_current_day_intraday_bars("MSFT") == []

    @pytest.mark.asyncio
    async def test_daily_defaults_to_today(self, client, broker):
        _serve_bars(broker, "MSFT", bar_json("2024-01-02T00:00:00Z"))
        bars = await client.get_historical_daily_bars("MSFT", 30)
        assert len(bars) == 1
        [request] = broker.calls(_bars_path("MSFT"))
        assert dict(request.url.params) == {
            "interval": "1",
            "unit": "Daily",
            "barsback": "30",
            "lastdate": "2024-01-03",
        }

    @pytest.mark.asyncio
    async def test_daily_stale_result_discarded(self, client, broker):
        _serve_bars(broker, "MSFT", bar_json("2023-12-20T00:00:00Z"), bar_json("2023-12-27T00:00:00Z"))
        assert await client.get_historical_daily_bars("MSFT", 5, last_date=date(2024, 1, 3)) == []

    @pytest.mark.asyncio
    async def test_daily_five_days_old_is_kept(self, client, broker):
        _serve_bars(broker, "MSFT", bar_json("2023-12-29T00:00:00Z"))
        bars = await client.get_historical_daily_bars("MSFT", 5, last_date=date(2024, 1, 3))
        assert len(bars) == 1

    @pytest.mark.asyncio
    async def test_daily_failure_is_empty(self, client, broker):
        broker.on(_bars_path("MSFT"), httpx.Response(404))
        assert await client.get_historical_daily_bars("MSFT", 5) == []


# =====================================================================
# Test: historical intraday fan-out
# =====================================================================


class TestHistoricalIntraday:
    """Tests for the concurrent multi-symbol historical fetch."""

    @pytest.mark.asyncio
    async def test_range_too_large_makes_no_calls(self, client, broker):
        with pytest.raises(RangeTooLargeError) as exc_info:
            await client.get_historical_intraday_data(
                ["MSFT", "AAPL"], date(2023, 1, 2), date(2023, 12, 29)
            )
        assert exc_info.value.required_bars == 260 * 390
        assert exc_info.value.max_bars == MAX_BARS_BACK
        assert broker.requests == []

    @pytest.mark.asyncio
    async def test_range_error_is_usage_error(self, client):
        with pytest.raises(UsageError):
            await client.get_historical_intraday_data(["MSFT"], date(2023, 1, 2), date(2023, 12, 29))

    @pytest.mark.asyncio
    async def test_wider_interval_fits(self, client, broker):
        _serve_bars(broker, "MSFT")
        batch = await client.get_historical_intraday_data(
            ["MSFT"], date(2023, 1, 2), date(2023, 12, 29), interval=5
        )
        assert batch.failures == []

    @pytest.mark.asyncio
    async def test_invalid_interval(self, client, broker):
        with pytest.raises(UsageError):
            await client.get_historical_intraday_data(["MSFT"], date(2024, 1, 2), interval=0)
        assert broker.requests == []

    @pytest.mark.asyncio
    async def test_query_params(self, client, broker):
        _serve_bars(broker, "MSFT")
        await client.get_historical_intraday_data(["MSFT"], date(2024, 1, 2), date(2024, 1, 3))
        [request] = broker.calls(_bars_path("MSFT"))
        assert dict(request.url.params) == {
            "interval": "1",
            "unit": "Minute",
            "firstdate": "2024-01-02",
            "lastdate": "2024-01-03",
        }

    @pytest.mark.asyncio
    async def test_end_defaults_to_now(self, client, broker):
        _serve_bars(broker, "MSFT")
        await client.get_historical_intraday_data(["MSFT"], date(2024, 1, 2))
        [request] = broker.calls(_bars_path("MSFT"))
        assert request.url.params["lastdate"] == "2024-01-03"

    @pytest.mark.asyncio
    async def test_failure_isolated_and_ignored(self, client, broker):
        _serve_bars(broker, "MSFT")
        _serve_bars(broker, "AAPL", bar_json(), bar_json())
        broker.on(_bars_path("BAD"), httpx.Response(500))

        batch = await client.get_historical_intraday_data(
            ["MSFT", "BAD", "AAPL"], date(2024, 1, 2), date(2024, 1, 3)
        )
        assert [item.symbol for item in batch] == ["MSFT", "BAD", "AAPL"]
        [bad] = batch.failures
        assert bad.symbol == "BAD"
        assert bad.bars == []
        assert isinstance(bad.error, httpx.HTTPStatusError)
        assert len(batch.for_symbol("AAPL")[0].bars) == 2
        assert len(batch.bars) == 3
        assert "BAD" in client.ignore_set

    @pytest.mark.asyncio
    async def test_ignored_symbol_skipped_without_network(self, client, broker):
        _serve_bars(broker, "MSFT")
        broker.on(_bars_path("BAD"), httpx.Response(500))
        await client.get_historical_intraday_data(["MSFT", "BAD"], date(2024, 1, 2), date(2024, 1, 3))

        batch = await client.get_historical_intraday_data(["BAD"], date(2024, 1, 2), date(2024, 1, 3))
        [item] = batch
        assert item.skipped
        assert item.bars == []
        assert item.error is None
        assert len(broker.calls(_bars_path("BAD"))) == 1

    @pytest.mark.asyncio
    async def test_ignore_ttl_allows_retry(self, make_client, broker, fake_clock):
        client = make_client(ignore_ttl_seconds=300)
        broker.on(_bars_path("BAD"), httpx.Response(500))
        await client.get_historical_intraday_data(["BAD"], date(2024, 1, 2), date(2024, 1, 3))

        _serve_bars(broker, "BAD")
        fake_clock.advance(minutes=5)
        batch = await client.get_historical_intraday_data(["BAD"], date(2024, 1, 2), date(2024, 1, 3))
        assert batch.items[0].ok
        assert len(broker.calls(_bars_path("BAD"))) == 2

    @pytest.mark.asyncio
    async def test_ignore_set_is_per_client(self, make_client, broker):
        first = make_client()
        broker.on(_bars_path("BAD"), httpx.Response(500))
        await first.get_historical_intraday_data(["BAD"], date(2024, 1, 2), date(2024, 1, 3))
        second = make_client()
        assert "BAD" in first.ignore_set
        assert "BAD" not in second.ignore_set


# =====================================================================
# Test: intraday pairs
# =====================================================================


class TestIntradayPairs:
    """Tests for per (symbol, date) intraday windows."""

    @pytest.mark.asyncio
    async def test_pairs_truncate_to_shorter(self, client, broker):
        _serve_bars(broker, "MSFT")
        batch = await client.get_intraday_data(["MSFT", "AAPL"], [date(2024, 1, 2)])
        assert [item.symbol for item in batch] == ["MSFT"]
        assert broker.calls(_bars_path("AAPL")) == []

    @pytest.mark.asyncio
    async def test_window_params(self, client, broker):
        _serve_bars(broker, "MSFT")
        await client.get_intraday_data(["MSFT"], [date(2024, 1, 2)])
        [request] = broker.calls(_bars_path("MSFT"))
        assert dict(request.url.params) == {
            "interval": "5",
            "unit": "Minute",
            "lastdate": "2024-01-02",
            "barsback": "78",
        }

    @pytest.mark.asyncio
    async def test_future_date_clamped_to_now(self, client, broker):
        _serve_bars(broker, "MSFT")
        _serve_bars(broker, "AAPL")
        await client.get_intraday_data(
            ["MSFT", "AAPL"],
            [date(2024, 6, 1), datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)],
        )
        assert broker.calls(_bars_path("MSFT"))[0].url.params["lastdate"] == "2024-01-03"
        assert broker.calls(_bars_path("AAPL"))[0].url.params["lastdate"] == "2024-01-03"

    @pytest.mark.asyncio
    async def test_pair_failure_isolated(self, client, broker):
        _serve_bars(broker, "MSFT")
        broker.on(_bars_path("BAD"), httpx.Response(500))
        batch = await client.get_intraday_data(["MSFT", "BAD"], [date(2024, 1, 2), date(2024, 1, 2)])
        assert batch.for_symbol("MSFT")[0].ok
        assert batch.for_symbol("BAD")[0].bars == []
        assert "BAD" not in client.ignore_set


# =====================================================================
# Test: helpers
# =====================================================================


class TestBusinessDaysAndIgnoreSet:
    """Tests for business-day counting, batch results and the ignore-set."""

    def test_business_days_inclusive(self):
        assert count_business_days(date(2024, 1, 1), date(2024, 1, 5)) == 5
        assert count_business_days(date(2024, 1, 6), date(2024, 1, 7)) == 0
        assert count_business_days(date(2024, 1, 5), date(2024, 1, 8)) == 2
        assert count_business_days(date(2024, 1, 3), date(2024, 1, 3)) == 1

    def test_business_days_reversed_range(self):
        assert count_business_days(date(2024, 1, 5), date(2024, 1, 1)) == 0

    def test_business_days_full_year(self):
        assert count_business_days(date(2023, 1, 2), date(2023, 12, 29)) == 260

    def test_ignore_set_never_expires_by_default(self, fake_clock):
        ignored = IgnoreSet(clock=fake_clock)
        ignored.add("BAD")
        fake_clock.advance(days=365)
        assert "BAD" in ignored
        assert len(ignored) == 1

    def test_ignore_set_ttl(self, fake_clock):
        ignored = IgnoreSet(ttl_seconds=60, clock=fake_clock)
        ignored.add("BAD")
        fake_clock.advance(seconds=59)
        assert "BAD" in ignored
        fake_clock.advance(seconds=1)
        assert "BAD" not in ignored
        assert len(ignored) == 0

    def test_ignore_set_clear(self, fake_clock):
        ignored = IgnoreSet(clock=fake_clock)
        ignored.add("A")
        ignored.clear()
        assert "A" not in ignored

    def test_batch_result_views(self):
        batch = BatchResult(items=[
            SymbolResult("A"),
            SymbolResult("B", error=RuntimeError("boom")),
            SymbolResult("C", skipped=True),
        ])
        assert len(batch) == 3
        assert [r.symbol for r in batch.failures] == ["B"]
        assert [r.symbol for r in batch.skipped] == ["C"]
        assert batch.items[0].ok
        assert not batch.items[2].ok
