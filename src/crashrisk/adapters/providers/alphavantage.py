# src/crashrisk/adapters/providers/alphavantage.py
"""
Alpha Vantage Provider - Fallback Quote Source

This module implements the Alpha Vantage GLOBAL_QUOTE client. It is used
as the secondary source for equities and index ETFs when Finnhub fails.

Alpha Vantage reports most failures with HTTP 200:
- "Error Message": bad symbol or request -> INVALID_RESPONSE
- "Note" / "Information": call frequency exceeded -> RATE_LIMITED

Files that USE this module:
- crashrisk.application.aggregator (fallback in the quote chain)
- tests.test_providers (unit tests)

Files that this module USES:
- crashrisk.adapters.providers.base (JsonHttpProvider, QuoteProvider)
- crashrisk.config (settings for API configuration)
"""
from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Optional

from crashrisk.adapters.providers.base import JsonHttpProvider, QuoteProvider
from crashrisk.config import settings
from crashrisk.domain.errors import ErrorCode, ProviderError
from crashrisk.domain.models import Quote, utc_now_iso
from crashrisk.shared.validators import parse_numeric

log = logging.getLogger(__name__)

PROVIDER_NAME = "alphavantage"


def _trading_day_timestamp(day: Any) -> str:
    try:
        parsed = datetime.strptime(str(day), "%Y-%m-%d")
    except ValueError:
        return utc_now_iso()
    return parsed.replace(hour=16, tzinfo=timezone.utc).isoformat()


def parse_global_quote(payload: Any, symbol: str, ratio: float = 1.0) -> Quote:
    """
    Parse an Alpha Vantage GLOBAL_QUOTE payload.

    Raises:
        ProviderError: On an embedded error/notice or a missing or zero price
    """
    if not isinstance(payload, dict):
        raise ProviderError("Alpha Vantage returned non-dict JSON", ErrorCode.INVALID_RESPONSE, PROVIDER_NAME)

    if payload.get("Error Message"):
        raise ProviderError(str(payload["Error Message"]), ErrorCode.INVALID_RESPONSE, PROVIDER_NAME)
    for notice in ("Note", "Information"):
        if payload.get(notice):
            raise ProviderError(str(payload[notice]), ErrorCode.RATE_LIMITED, PROVIDER_NAME)

    data = payload.get("Global Quote")
    if not isinstance(data, dict) or not data:
        raise ProviderError(f"no quote data for {symbol}", ErrorCode.INVALID_RESPONSE, PROVIDER_NAME)

    price = parse_numeric(data.get("05. price"))
    if price is None:
        raise ProviderError(f"missing price for {symbol}", ErrorCode.INVALID_RESPONSE, PROVIDER_NAME)
    if price == 0:
        raise ProviderError(f"zero price for {symbol}", ErrorCode.ZERO_VALUE, PROVIDER_NAME)

    change = parse_numeric(data.get("09. change")) or 0.0
    change_percent = parse_numeric(data.get("10. change percent")) or 0.0

    return Quote(
        symbol=symbol,
        value=price * ratio,
        change=change * ratio,
        change_percent=change_percent,
        timestamp=_trading_day_timestamp(data.get("07. latest trading day")),
        source=PROVIDER_NAME,
    )


class AlphaVantageProvider(JsonHttpProvider, QuoteProvider):
    name = PROVIDER_NAME

    def __init__(self, api_key: Optional[str] = None, base_url: Optional[str] = None,
                 timeout: Optional[int] = None):
        super().__init__(
            base_url=base_url or settings.alpha_vantage_url,
            api_key=settings.alpha_vantage_api_key if api_key is None else api_key,
            timeout=timeout or settings.http_timeout_seconds,
        )

    def quote(self, symbol: str, ratio: float = 1.0) -> Quote:
        params = {"function": "GLOBAL_QUOTE", "symbol": symbol, "apikey": self._require_key()}
        log.info("Fetching Alpha Vantage quote for %s", symbol)
        return parse_global_quote(self._get_json(params), symbol, ratio)
