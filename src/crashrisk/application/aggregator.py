# src/crashrisk/application/aggregator.py
"""
Market Aggregator - Concurrent Fetch, Retry, Fallback and Cache

This module contains the orchestration for one dashboard refresh:
- every source is fetched concurrently; blocking provider calls run on
  the aggregator's own thread pool, each bounded by its own timeout
- concurrent callers asking for the same key share one fetch
- retryable failures are retried with bounded exponential backoff
- a source that still fails yields fallback data of the same shape
- results (real or fallback) are cached per key for the window of the
  source class

Nothing raised by a provider crosses this module's public methods.

Files that USE this module:
- crashrisk.application.poller (runs refresh() on a schedule)
- crashrisk.adapters.http.routes (single indicator and quote lookups)
- tests.test_aggregator (unit tests)

Files that this module USES:
- crashrisk.adapters.providers (FRED, Finnhub, Alpha Vantage, manual dataset)
- crashrisk.application.cache (RevalidationCache)
- crashrisk.application.normalizers (readings and fallbacks)
- crashrisk.application.scorer (calculate_crash_risk)
- crashrisk.shared.retry (RetryPolicy)
"""
from __future__ import annotations

import asyncio
import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Awaitable, Callable, Dict, Mapping, Optional, Tuple, TypeVar

from crashrisk.adapters.providers.alphavantage import AlphaVantageProvider
from crashrisk.adapters.providers.base import QuoteProvider, SeriesProvider
from crashrisk.adapters.providers.finnhub import FinnhubProvider
from crashrisk.adapters.providers.fred import FredProvider
from crashrisk.adapters.providers.manual import ManualDatasetProvider
from crashrisk.application.cache import RevalidationCache
from crashrisk.application.normalizers import fallback_reading, normalize, reading_from_quote
from crashrisk.application.scorer import calculate_crash_risk
from crashrisk.config import settings
from crashrisk.domain.catalogue import (
    INDICATORS,
    SOURCE_MANUAL,
    SOURCE_QUOTE,
    InstrumentSpec,
    dashboard_instruments,
    index_instrument,
)
from crashrisk.domain.errors import AdapterError, ErrorCode, TransportError
from crashrisk.domain.models import DashboardSnapshot, IndicatorReading, Quote, utc_now_iso
from crashrisk.shared.retry import RetryPolicy

log = logging.getLogger(__name__)

T = TypeVar("T")


def _provider_name(provider: Any) -> str:
    return getattr(provider, "name", type(provider).__name__)


class ProviderChain:
    """Quote chain that tries a primary provider, then a fallback."""

    def __init__(self, primary: QuoteProvider, fallback: QuoteProvider):
        self.primary = primary
        self.fallback = fallback

    @property
    def name(self) -> str:
        return f"{_provider_name(self.primary)}/{_provider_name(self.fallback)}"

    def quote(self, symbol: str, ratio: float = 1.0, alternate_symbol: Optional[str] = None) -> Quote:
        """
        Raises:
            AdapterError: If both providers fail (carries the primary's code)
        """
        try:
            return self.primary.quote(symbol, ratio)
        except AdapterError as e:
            log.warning("Primary quote provider failed for %s, trying fallback: %s", symbol, e)
            try:
                return self.fallback.quote(alternate_symbol or symbol, ratio)
            except AdapterError as e2:
                log.warning("Both quote providers failed for %s. Primary: %s, Fallback: %s", symbol, e, e2)
                raise AdapterError(
                    f"all providers failed: primary={e}, fallback={e2}",
                    e.code,
                    provider=e.provider,
                    status_code=e.status_code,
                ) from e2


class MarketAggregator:
    """
    Fetches every indicator and quote, applying timeout, retry, fallback
    and revalidation.
    """

    def __init__(
        self,
        fred: Optional[FredProvider] = None,
        finnhub: Optional[QuoteProvider] = None,
        alphavantage: Optional[QuoteProvider] = None,
        manual: Optional[SeriesProvider] = None,
        cache: Optional[RevalidationCache] = None,
        retry: Optional[RetryPolicy] = None,
        source_timeout: Optional[float] = None,
        windows: Optional[Mapping[str, float]] = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        """
        Args:
            fred: Series and FRED-backed quote provider
            finnhub: Primary quote provider
            alphavantage: Fallback quote provider for equities and index ETFs
            manual: Provider for the hand-maintained dataset
            cache: Revalidation cache (a fresh one by default)
            retry: Retry policy (defaults from settings)
            source_timeout: Outer bound in seconds for one source call
            windows: Revalidation window per source class, in seconds
            sleep: Awaitable used for backoff (replaced in tests)
        """
        self.fred = fred or FredProvider()
        self.finnhub = finnhub or FinnhubProvider()
        self.alphavantage = alphavantage or AlphaVantageProvider()
        self.manual = manual or ManualDatasetProvider()
        self.quote_chain = ProviderChain(self.finnhub, self.alphavantage)
        self.cache = cache if cache is not None else RevalidationCache()
        self.retry = retry or RetryPolicy(
            attempts=settings.retry_attempts,
            base_delay=settings.retry_base_delay_seconds,
            max_delay=settings.retry_max_delay_seconds,
        )
        self.source_timeout = (
            source_timeout if source_timeout is not None else settings.source_timeout_seconds
        )
        self.windows: Dict[str, float] = dict(windows or settings.source_windows_seconds)
        self._sleep = sleep
        self._executor: Optional[ThreadPoolExecutor] = None
        self._in_flight: Dict[str, asyncio.Future] = {}

    # ---- source calls ----

    @property
    def max_workers(self) -> int:
        """
        One thread per source for every attempt of a cycle, so a timed-out
        call still holding its thread never delays a sibling's fetch.
        """
        fan_out = len(INDICATORS) + len(dashboard_instruments())
        return fan_out * self.retry.total_calls

    def _get_executor(self) -> ThreadPoolExecutor:
        if self._executor is None:
            self._executor = ThreadPoolExecutor(
                max_workers=self.max_workers, thread_name_prefix="crashrisk-fetch"
            )
        return self._executor

    def close(self) -> None:
        """Release the fetch threads; a later fetch starts a new pool."""
        if self._executor is not None:
            self._executor.shutdown(wait=False, cancel_futures=True)
            self._executor = None

    async def _call(self, label: str, fetch: Callable[[], T], provider: str = "") -> T:
        """Run one blocking fetch on the fetch pool, bounded by the source timeout."""
        loop = asyncio.get_running_loop()
        try:
            return await asyncio.wait_for(
                loop.run_in_executor(self._get_executor(), fetch), self.source_timeout
            )
        except asyncio.TimeoutError:
            raise TransportError(
                f"{label} timed out after {self.source_timeout}s",
                ErrorCode.NETWORK_ERROR,
                provider=provider,
            ) from None

    async def _fetch_with_retry(self, label: str, fetch: Callable[[], T], provider: str = "") -> T:
        """
        Call fetch, retrying retryable adapter errors with backoff.

        Raises:
            AdapterError: When the last attempt failed or the error is not retryable
        """
        for attempt in range(self.retry.total_calls):
            try:
                return await self._call(label, fetch, provider)
            except AdapterError as e:
                if not e.retryable or attempt >= self.retry.attempts:
                    raise
                delay = self.retry.delay(attempt)
                log.info("%s failed (%s), retry %d/%d in %.1fs",
                         label, e, attempt + 1, self.retry.attempts, delay)
                await self._sleep(delay)
        raise AssertionError("unreachable")  # pragma: no cover

    async def _guarded(self, label: str, fetch: Callable[[], T], provider: str = "") -> T:
        """_fetch_with_retry, with unexpected exceptions turned into AdapterError."""
        try:
            return await self._fetch_with_retry(label, fetch, provider)
        except AdapterError:
            raise
        except Exception as e:
            log.error("Unexpected error fetching %s: %s", label, e, exc_info=True)
            raise AdapterError(
                f"unexpected error: {e}", ErrorCode.INVALID_RESPONSE, provider=provider
            ) from e

    async def _single_flight(self, cache_key: str, window: float,
                             produce: Callable[[], Awaitable[T]]) -> T:
        """
        Serve cache_key from the cache, or from the one fetch in progress for it.

        Only the fetch that starts a key writes it to the cache; callers
        arriving while it runs await the same result.
        """
        cached = self.cache.get(cache_key)
        if cached is not None:
            return cached

        pending = self._in_flight.get(cache_key)
        if pending is None:
            async def run() -> T:
                value = await produce()
                self.cache.put(cache_key, value, window)
                return value

            pending = asyncio.ensure_future(run())
            self._in_flight[cache_key] = pending
            pending.add_done_callback(lambda _: self._in_flight.pop(cache_key, None))
        # A cancelled caller must not cancel the fetch other callers share
        return await asyncio.shield(pending)

    # ---- public API ----

    def _series_fetch(self, key: str) -> Tuple[str, Callable[[], Any]]:
        spec = INDICATORS[key]
        provider: SeriesProvider = self.manual if spec.source_class == SOURCE_MANUAL else self.fred
        return _provider_name(provider), lambda: provider.latest(spec.series_id)

    def _quote_fetch(self, spec: InstrumentSpec) -> Tuple[str, Callable[[], Quote]]:
        if spec.provider == "fred":
            return _provider_name(self.fred), lambda: self.fred.quote(spec.symbol, spec.ratio)
        if spec.alternate_symbol:
            return self.quote_chain.name, lambda: self.quote_chain.quote(
                spec.symbol, spec.ratio, spec.alternate_symbol
            )
        return _provider_name(self.finnhub), lambda: self.finnhub.quote(spec.symbol, spec.ratio)

    async def indicator(self, key: str) -> IndicatorReading:
        """
        Current reading for indicator `key`; a fallback reading when the
        source failed.

        Raises:
            KeyError: If key is not in the catalogue
        """
        spec = INDICATORS[key]
        if spec.source_class == SOURCE_QUOTE:
            quote = await self.quote(index_instrument(spec.series_id))
            return reading_from_quote(key, quote)

        async def produce() -> IndicatorReading:
            provider, fetch = self._series_fetch(key)
            try:
                raw = await self._guarded(key, fetch, provider)
            except AdapterError as e:
                log.warning("Indicator %s unavailable, serving fallback: %s", key, e)
                return fallback_reading(key, str(e), e.code)
            reading = normalize(key, raw)
            log.debug("Indicator %s = %s (%s)", key, reading.value, reading.status.value)
            return reading

        return await self._single_flight(f"indicator:{key}", self.windows[spec.source_class], produce)

    async def quote(self, spec: InstrumentSpec) -> Quote:
        """Current quote for an instrument; a failed Quote when every attempt failed."""
        async def produce() -> Quote:
            provider, fetch = self._quote_fetch(spec)
            try:
                return await self._guarded(spec.key, fetch, provider)
            except AdapterError as e:
                log.warning("Quote %s unavailable: %s", spec.key, e)
                return Quote.failed(spec.symbol, str(e), e.code.value)

        return await self._single_flight(f"quote:{spec.key}", self.windows[spec.source_class], produce)

    async def refresh(self) -> DashboardSnapshot:
        """
        Fetch every indicator and dashboard quote concurrently and score the result.

        The breakdown is computed only after every source has settled.
        """
        series_keys = [k for k, s in INDICATORS.items() if s.source_class != SOURCE_QUOTE]
        instruments = dashboard_instruments()

        results = await asyncio.gather(
            *(self.indicator(k) for k in series_keys),
            *(self.quote(i) for i in instruments),
        )
        series_readings = dict(zip(series_keys, results[:len(series_keys)]))
        quotes = {i.key: q for i, q in zip(instruments, results[len(series_keys):])}

        indicators: Dict[str, IndicatorReading] = {}
        for key, spec in INDICATORS.items():
            if spec.source_class == SOURCE_QUOTE:
                indicators[key] = reading_from_quote(key, quotes[spec.series_id])
            else:
                indicators[key] = series_readings[key]

        breakdown = calculate_crash_risk(indicators.values())
        snapshot = DashboardSnapshot(
            indicators=indicators,
            quotes=quotes,
            breakdown=breakdown,
            generated_at=utc_now_iso(),
        )
        log.info("Refresh complete: score=%d (%s), %d source error(s)",
                 breakdown.total_score, breakdown.risk_level.value, len(snapshot.errors))
        return snapshot
