# src/crashrisk/adapters/providers/fred.py
"""
FRED API Provider for Macro Series, VIX and Commodity Prices

This module implements the St. Louis Fed FRED client. It reads the
`series/observations` endpoint (newest first) and exposes:
- latest(series_id): the newest valid observation (yield curve, credit spreads)
- quote(series_id): a Quote built from the two newest observations (VIX, commodities)

Files that USE this module:
- crashrisk.application.aggregator (macro series and FRED-backed quotes)
- tests.test_providers (unit tests)

Files that this module USES:
- crashrisk.adapters.providers.base (JsonHttpProvider, SeriesProvider, QuoteProvider)
- crashrisk.config (settings for API configuration)
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, List, Optional

from crashrisk.adapters.providers.base import JsonHttpProvider, QuoteProvider, SeriesProvider
from crashrisk.config import settings
from crashrisk.domain.errors import ErrorCode, ProviderError
from crashrisk.domain.models import Quote, SeriesValue
from crashrisk.shared.validators import parse_numeric

log = logging.getLogger(__name__)

PROVIDER_NAME = "fred"

# FRED publishes end-of-day values; stamp them at the US market close
CLOSE_TIME_UTC_HOUR = 16


@dataclass(frozen=True)
class Observation:
    date: str
    value: Optional[float]  # None for the "." missing-value sentinel


def observation_timestamp(date: str) -> str:
    """Convert a FRED observation date (YYYY-MM-DD) to an ISO timestamp at 16:00 UTC."""
    try:
        day = datetime.strptime(date, "%Y-%m-%d")
    except (TypeError, ValueError):
        return datetime.now(timezone.utc).isoformat()
    return day.replace(hour=CLOSE_TIME_UTC_HOUR, tzinfo=timezone.utc).isoformat()


def parse_observations(payload: Any) -> List[Observation]:
    """
    Parse a FRED observations payload.

    Raises:
        ProviderError: On an embedded error marker or a missing observations list
    """
    if not isinstance(payload, dict):
        raise ProviderError("FRED returned non-dict JSON", ErrorCode.INVALID_RESPONSE, PROVIDER_NAME)

    if payload.get("error_code") or payload.get("error_message"):
        message = str(payload.get("error_message") or "unknown FRED error")
        code = ErrorCode.RATE_LIMITED if payload.get("error_code") == 429 else ErrorCode.INVALID_RESPONSE
        raise ProviderError(message, code, PROVIDER_NAME)

    rows = payload.get("observations")
    if not isinstance(rows, list) or not rows:
        raise ProviderError("no observations in FRED response", ErrorCode.INVALID_RESPONSE, PROVIDER_NAME)

    out: List[Observation] = []
    for row in rows:
        if not isinstance(row, dict):
            continue
        out.append(Observation(date=str(row.get("date", "")), value=parse_numeric(row.get("value"))))
    return out


class FredProvider(JsonHttpProvider, SeriesProvider, QuoteProvider):
    name = PROVIDER_NAME

    def __init__(self, api_key: Optional[str] = None, base_url: Optional[str] = None,
                 timeout: Optional[int] = None, lookback: int = 5):
        """
        Initialize FRED API provider.

        Args:
            api_key: Optional API key (defaults to settings.fred_api_key)
            base_url: Optional custom API URL (defaults to settings.fred_url)
            timeout: Optional HTTP timeout in seconds (defaults to settings.http_timeout_seconds)
            lookback: Observations requested per call so missing days can be skipped
        """
        super().__init__(
            base_url=base_url or settings.fred_url,
            api_key=settings.fred_api_key if api_key is None else api_key,
            timeout=timeout or settings.http_timeout_seconds,
        )
        self.lookback = lookback

    def get_observations(self, series_id: str, limit: Optional[int] = None) -> List[Observation]:
        """
        Fetch observations for a series, newest first.

        Raises:
            TransportError, ProviderError
        """
        params = {
            "series_id": series_id,
            "api_key": self._require_key(),
            "file_type": "json",
            "limit": str(limit or self.lookback),
            "sort_order": "desc",
        }
        log.info("Fetching FRED series %s", series_id)
        return parse_observations(self._get_json(params))

    def _valid_observations(self, series_id: str) -> List[Observation]:
        valid = [o for o in self.get_observations(series_id) if o.value is not None]
        if not valid:
            raise ProviderError(
                f"no valid value for {series_id} in FRED response",
                ErrorCode.INVALID_RESPONSE,
                PROVIDER_NAME,
            )
        return valid

    def latest(self, series_id: str) -> SeriesValue:
        latest = self._valid_observations(series_id)[0]
        log.debug("FRED %s latest=%s (%s)", series_id, latest.value, latest.date)
        return SeriesValue(
            value=float(latest.value),  # type: ignore[arg-type]
            timestamp=observation_timestamp(latest.date),
            source=PROVIDER_NAME,
        )

    def quote(self, symbol: str, ratio: float = 1.0) -> Quote:
        """
        Build a quote from the two newest valid observations of series `symbol`.

        Raises:
            ProviderError: ZERO_VALUE when the newest value is zero
        """
        valid = self._valid_observations(symbol)
        latest = valid[0]
        value = float(latest.value) * ratio  # type: ignore[arg-type]
        if value == 0:
            raise ProviderError(f"{symbol} value is zero", ErrorCode.ZERO_VALUE, PROVIDER_NAME)

        previous = float(valid[1].value) * ratio if len(valid) > 1 else value  # type: ignore[arg-type]
        change = value - previous
        change_percent = (change / previous) * 100 if previous != 0 else 0.0
        return Quote(
            symbol=symbol,
            value=value,
            change=change,
            change_percent=change_percent,
            timestamp=observation_timestamp(latest.date),
            source=PROVIDER_NAME,
        )
