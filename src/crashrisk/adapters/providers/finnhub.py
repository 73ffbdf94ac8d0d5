# src/crashrisk/adapters/providers/finnhub.py
"""
Finnhub Quote Provider for Equities, Index ETFs and Crypto

This module implements the Finnhub `/quote` client. The payload carries
the current price `c`, previous close `pc` and epoch seconds `t`; an
`error` field means the request was refused even when the status is 200.

Index levels are approximated by multiplying ETF prices by a fixed ratio
(see crashrisk.domain.catalogue).

Files that USE this module:
- crashrisk.application.aggregator (primary quote source)
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

PROVIDER_NAME = "finnhub"


def _error_code_for(message: str) -> ErrorCode:
    lowered = message.lower()
    if "limit" in lowered:
        return ErrorCode.RATE_LIMITED
    if "api key" in lowered or "token" in lowered:
        return ErrorCode.MISSING_CREDENTIALS
    return ErrorCode.INVALID_RESPONSE


def parse_quote(payload: Any, symbol: str, ratio: float = 1.0) -> Quote:
    """
    Parse a Finnhub quote payload.

    Args:
        payload: Decoded JSON body
        symbol: Symbol the quote is reported under
        ratio: Multiplier applied to price and change

    Raises:
        ProviderError: On an error field, missing price or a zero price
    """
    if not isinstance(payload, dict):
        raise ProviderError("Finnhub returned non-dict JSON", ErrorCode.INVALID_RESPONSE, PROVIDER_NAME)

    if payload.get("error"):
        message = str(payload["error"])
        raise ProviderError(message, _error_code_for(message), PROVIDER_NAME)

    current = parse_numeric(payload.get("c"))
    if current is None:
        raise ProviderError(f"missing price for {symbol}", ErrorCode.INVALID_RESPONSE, PROVIDER_NAME)
    # Finnhub answers unknown symbols with an all-zero body
    if current == 0:
        raise ProviderError(f"zero price for {symbol}", ErrorCode.ZERO_VALUE, PROVIDER_NAME)

    previous = parse_numeric(payload.get("pc"))
    if previous:
        change = (current - previous) * ratio
        change_percent = ((current - previous) / previous) * 100
    else:
        change = 0.0
        change_percent = 0.0

    epoch = parse_numeric(payload.get("t"))
    timestamp = (
        datetime.fromtimestamp(epoch, tz=timezone.utc).isoformat() if epoch else utc_now_iso()
    )

    return Quote(
        symbol=symbol,
        value=current * ratio,
        change=change,
        change_percent=change_percent,
        timestamp=timestamp,
        source=PROVIDER_NAME,
    )


class FinnhubProvider(JsonHttpProvider, QuoteProvider):
    name = PROVIDER_NAME

    def __init__(self, api_key: Optional[str] = None, base_url: Optional[str] = None,
                 timeout: Optional[int] = None):
        """
        Initialize Finnhub API provider.

        Args:
            api_key: Optional API key (defaults to settings.finnhub_api_key)
            base_url: Optional custom API URL (defaults to settings.finnhub_url)
            timeout: Optional HTTP timeout in seconds (defaults to settings.http_timeout_seconds)
        """
        super().__init__(
            base_url=base_url or settings.finnhub_url,
            api_key=settings.finnhub_api_key if api_key is None else api_key,
            timeout=timeout or settings.http_timeout_seconds,
        )

    def quote(self, symbol: str, ratio: float = 1.0) -> Quote:
        """
        Fetch the latest quote for symbol.

        Raises:
            TransportError, ProviderError
        """
        params = {"symbol": symbol, "token": self._require_key()}
        log.info("Fetching Finnhub quote for %s", symbol)
        quote = parse_quote(self._get_json(params), symbol, ratio)
        log.debug("Finnhub %s = %.4f (%.2f%%)", symbol, quote.value, quote.change_percent)
        return quote
