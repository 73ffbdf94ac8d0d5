# tests/test_aggregator.py
"""
Aggregator Tests - Unit Tests for Fetch, Retry, Fallback and Cache

Providers are replaced with in-memory fakes; backoff sleeps are recorded
instead of awaited.

Files that USE this module:
- pytest (test runner executes these tests)

Files that this module USES:
- crashrisk.application.aggregator (MarketAggregator, ProviderChain)
- crashrisk.application.cache (RevalidationCache)
- tests.fakes (in-memory providers, fake clock and sleep)
- crashrisk.shared.retry (RetryPolicy)
"""
import asyncio

import pytest

from crashrisk.application.aggregator import ProviderChain
from crashrisk.application.cache import RevalidationCache
from crashrisk.domain.catalogue import INDICATORS, INDEX_INSTRUMENTS, stock_instrument
from crashrisk.domain.errors import AdapterError, ErrorCode, ProviderError, TransportError
from crashrisk.shared.retry import RetryPolicy
from fakes import (
    FRED_VALUES,
    MANUAL_VALUES,
    AnyQuote,
    FakeClock,
    FakeSource,
    RecordingSleep,
    make_aggregator as _aggregator,
)


class TestRetryPolicy:
    def test_delay_doubles_up_to_ceiling(self):
        policy = RetryPolicy(attempts=5, base_delay=10.0, max_delay=30.0)
        assert [policy.delay(i) for i in range(5)] == [10.0, 20.0, 30.0, 30.0, 30.0]
        assert policy.total_calls == 6


class TestIndicator:
    def test_success(self):
        reading = asyncio.run(_aggregator().indicator("yield_curve"))
        assert reading.value == 0.21
        assert reading.status.value == "warning"
        assert not reading.is_fallback

    def test_manual_source(self):
        manual = FakeSource("manual", MANUAL_VALUES)
        reading = asyncio.run(_aggregator(manual=manual).indicator("buffett"))
        assert reading.value == 228.0
        assert manual.calls == ["buffett"]

    def test_retry_then_success(self):
        sleep = RecordingSleep()
        fred = FakeSource("fred", FRED_VALUES, errors={
            "T10Y3M": [TransportError("HTTP 503"), ProviderError("limit", ErrorCode.RATE_LIMITED)],
        })

        reading = asyncio.run(_aggregator(fred=fred, sleep=sleep).indicator("yield_curve"))

        assert reading.value == 0.21
        assert fred.calls == ["T10Y3M"] * 3
        assert sleep.delays == [1.0, 2.0]

    def test_exhausted_retries_give_fallback(self):
        sleep = RecordingSleep()
        fred = FakeSource("fred", FRED_VALUES, errors={
            "BAMLH0A0HYM2": [ProviderError("limit", ErrorCode.RATE_LIMITED, "fred")] * 3,
        })

        reading = asyncio.run(_aggregator(fred=fred, sleep=sleep).indicator("credit_spreads"))

        assert reading.is_fallback
        assert reading.value == INDICATORS["credit_spreads"].fallback_value
        assert reading.error_code == "RATE_LIMITED"
        assert "limit" in reading.source_error
        assert len(fred.calls) == 3
        assert sleep.delays == [1.0, 2.0]

    def test_missing_credentials_not_retried(self):
        sleep = RecordingSleep()
        fred = FakeSource("fred", FRED_VALUES, errors={
            "T10Y3M": [ProviderError("no key", ErrorCode.MISSING_CREDENTIALS, "fred")],
        })

        reading = asyncio.run(_aggregator(fred=fred, sleep=sleep).indicator("yield_curve"))

        assert reading.is_fallback
        assert reading.error_code == "MISSING_CREDENTIALS"
        assert fred.calls == ["T10Y3M"]
        assert sleep.delays == []

    def test_unexpected_exception_becomes_fallback(self):
        manual = FakeSource("manual", MANUAL_VALUES, errors={"cape": [RuntimeError("boom")]})

        reading = asyncio.run(_aggregator(manual=manual).indicator("cape"))

        assert reading.is_fallback
        assert reading.error_code == "INVALID_RESPONSE"
        assert manual.calls == ["cape"]

    def test_timeout_is_network_error(self):
        fred = FakeSource("fred", FRED_VALUES, delays={"T10Y3M": 0.5})

        reading = asyncio.run(
            _aggregator(fred=fred, attempts=0, source_timeout=0.05).indicator("yield_curve")
        )

        assert reading.is_fallback
        assert reading.error_code == "NETWORK_ERROR"
        assert reading.source_error.startswith("fred: yield_curve timed out")

    def test_explicit_zero_timeout_kept(self):
        assert _aggregator(source_timeout=0).source_timeout == 0

    def test_vix_indicator_from_quote(self):
        reading = asyncio.run(_aggregator().indicator("vix"))
        assert reading.value == pytest.approx(26.42)
        assert reading.status.value == "warning"

    def test_unknown_indicator(self):
        with pytest.raises(KeyError):
            asyncio.run(_aggregator().indicator("nope"))


class TestCaching:
    def test_fresh_reading_served_from_cache(self):
        clock = FakeClock()
        fred = FakeSource("fred", FRED_VALUES)
        agg = _aggregator(fred=fred, clock=clock)

        async def run():
            first = await agg.indicator("yield_curve")
            clock.now += 3599
            second = await agg.indicator("yield_curve")
            return first, second

        first, second = asyncio.run(run())
        assert first is second
        assert fred.calls == ["T10Y3M"]

    def test_stale_reading_refetched(self):
        clock = FakeClock()
        fred = FakeSource("fred", FRED_VALUES)
        agg = _aggregator(fred=fred, clock=clock)

        async def run():
            await agg.indicator("yield_curve")
            clock.now += 3600
            fred.values["T10Y3M"] = -0.1
            return await agg.indicator("yield_curve")

        reading = asyncio.run(run())
        assert reading.value == -0.1
        assert reading.status.value == "danger"
        assert fred.calls == ["T10Y3M", "T10Y3M"]

    def test_fallback_is_cached_too(self):
        clock = FakeClock()
        fred = FakeSource("fred", FRED_VALUES, errors={
            "T10Y3M": [ProviderError("no key", ErrorCode.MISSING_CREDENTIALS)],
        })
        agg = _aggregator(fred=fred, clock=clock)

        async def run():
            first = await agg.indicator("yield_curve")
            second = await agg.indicator("yield_curve")
            return first, second

        first, second = asyncio.run(run())
        assert first.is_fallback and second is first
        assert fred.calls == ["T10Y3M"]

    def test_quote_window_shorter_than_macro(self):
        clock = FakeClock()
        finnhub = AnyQuote("finnhub")
        agg = _aggregator(finnhub=finnhub, clock=clock)
        spec = stock_instrument("AAPL")

        async def run():
            await agg.quote(spec)
            clock.now += 61
            await agg.quote(spec)

        asyncio.run(run())
        assert finnhub.calls == ["AAPL", "AAPL"]


class TestQuotes:
    def test_index_quote_uses_ratio(self):
        quote = asyncio.run(_aggregator().quote(INDEX_INSTRUMENTS["sp500"]))
        assert quote.ok
        assert quote.value == pytest.approx(1000.0)
        assert quote.source == "finnhub"

    def test_index_falls_back_to_alternate_feed(self):
        finnhub = AnyQuote("finnhub", errors={"DIA": [ProviderError("limit", ErrorCode.RATE_LIMITED)]})
        alphavantage = AnyQuote("alphavantage")

        quote = asyncio.run(
            _aggregator(finnhub=finnhub, alphavantage=alphavantage).quote(INDEX_INSTRUMENTS["dowjones"])
        )

        assert quote.ok
        assert quote.source == "alphavantage"
        assert quote.value == pytest.approx(10000.0)
        assert alphavantage.calls == ["DIA"]

    def test_failed_quote_shape(self):
        finnhub = AnyQuote("finnhub", errors={"TSLA": [ProviderError("zero", ErrorCode.ZERO_VALUE)] * 3})
        alphavantage = AnyQuote("alphavantage", errors={"TSLA": [TransportError("HTTP 500")] * 3})

        quote = asyncio.run(
            _aggregator(finnhub=finnhub, alphavantage=alphavantage).quote(stock_instrument("TSLA"))
        )

        assert not quote.ok
        assert quote.value == quote.change == quote.change_percent == 0
        assert quote.error_code == "ZERO_VALUE"
        assert quote.to_dict()["code"] == "ZERO_VALUE"


class TestProviderChain:
    def test_primary_used_first(self):
        chain = ProviderChain(AnyQuote("finnhub"), AnyQuote("alphavantage"))
        assert chain.quote("SPY", 10.0).source == "finnhub"

    def test_both_fail(self):
        primary = AnyQuote("finnhub", errors={"QQQ": [ProviderError("limit", ErrorCode.RATE_LIMITED, "finnhub")]})
        fallback = AnyQuote("alphavantage", errors={"QQQ": [ProviderError("no key", ErrorCode.MISSING_CREDENTIALS)]})
        chain = ProviderChain(primary, fallback)

        with pytest.raises(AdapterError) as exc:
            chain.quote("QQQ", 4.0)
        assert exc.value.code == ErrorCode.RATE_LIMITED
        assert "primary=" in exc.value.message and "fallback=" in exc.value.message


class TestRefresh:
    def test_full_refresh(self):
        snapshot = asyncio.run(_aggregator().refresh())

        assert list(snapshot.indicators) == list(INDICATORS)
        assert snapshot.errors == {}
        assert snapshot.indicators["cape"].status.value == "danger"
        assert snapshot.indicators["vix"].value == pytest.approx(26.42)
        assert snapshot.quotes["vix"].value == pytest.approx(26.42)
        assert "stock:AAPL" in snapshot.quotes
        assert "crypto:BTC" in snapshot.quotes
        assert "commodity:GOLD" in snapshot.quotes
        assert 0 <= snapshot.breakdown.total_score <= 100

    def test_one_slow_source_only_flags_itself(self):
        fred = FakeSource("fred", FRED_VALUES, delays={"BAMLH0A0HYM2": 1.0})

        snapshot = asyncio.run(_aggregator(fred=fred, attempts=0, source_timeout=0.25).refresh())

        assert set(snapshot.errors) == {"credit_spreads"}
        credit = snapshot.indicators["credit_spreads"]
        assert credit.is_fallback
        assert credit.error_code == "NETWORK_ERROR"
        assert set(snapshot.breakdown.components) == set(INDICATORS)
        assert 0 <= snapshot.breakdown.total_score <= 100

    def test_slow_sources_do_not_starve_each_other(self):
        fred = FakeSource("fred", FRED_VALUES, delay=0.3)
        finnhub = AnyQuote("finnhub", delay=0.3)
        manual = FakeSource("manual", MANUAL_VALUES, delay=0.3)
        agg = _aggregator(fred=fred, finnhub=finnhub, manual=manual, attempts=0, source_timeout=1.0)

        snapshot = asyncio.run(agg.refresh())

        assert snapshot.errors == {}

    def test_close_releases_pool_and_next_refresh_recreates_it(self):
        agg = _aggregator()

        asyncio.run(agg.refresh())
        agg.close()
        assert agg._executor is None

        agg.cache = RevalidationCache(clock=FakeClock())
        assert asyncio.run(agg.refresh()).errors == {}

    def test_vix_failure_degrades_indicator_and_quote(self):
        fred = FakeSource("fred", FRED_VALUES, errors={
            "VIXCLS": [ProviderError("missing", ErrorCode.INVALID_RESPONSE)] * 3,
        })

        snapshot = asyncio.run(_aggregator(fred=fred).refresh())

        assert snapshot.indicators["vix"].is_fallback
        assert not snapshot.quotes["vix"].ok
        assert set(snapshot.errors) == {"vix", "quote:vix"}

    def test_snapshot_to_dict(self):
        d = asyncio.run(_aggregator().refresh()).to_dict()
        assert set(d) == {"breakdown", "indicators", "errors", "generatedAt"}
        assert d["indicators"]["yield_curve"] == {"value": 0.21, "status": "warning"}


class TestConcurrentCallers:
    def test_route_lookup_during_refresh_shares_fetch(self):
        manual = FakeSource("manual", MANUAL_VALUES, delays={"cape": 0.2})
        agg = _aggregator(manual=manual)

        async def run():
            return await asyncio.gather(agg.refresh(), agg.indicator("cape"))

        snapshot, reading = asyncio.run(run())

        assert manual.calls.count("cape") == 1
        assert snapshot.indicators["cape"] is reading
        assert agg._in_flight == {}

    def test_concurrent_quotes_share_fetch(self):
        finnhub = AnyQuote("finnhub", delays={"AAPL": 0.1})
        agg = _aggregator(finnhub=finnhub)
        spec = stock_instrument("AAPL")

        async def run():
            return await asyncio.gather(agg.quote(spec), agg.quote(spec), agg.quote(spec))

        first, second, third = asyncio.run(run())

        assert finnhub.calls == ["AAPL"]
        assert first is second is third

    def test_failed_fetch_shared_as_fallback(self):
        fred = FakeSource("fred", FRED_VALUES, delays={"T10Y3M": 0.1}, errors={
            "T10Y3M": [ProviderError("no key", ErrorCode.MISSING_CREDENTIALS, "fred")],
        })
        agg = _aggregator(fred=fred)

        async def run():
            return await asyncio.gather(agg.indicator("yield_curve"), agg.indicator("yield_curve"))

        first, second = asyncio.run(run())

        assert first.is_fallback and second is first
        assert fred.calls == ["T10Y3M"]
