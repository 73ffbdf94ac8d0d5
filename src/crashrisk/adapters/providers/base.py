# src/crashrisk/adapters/providers/base.py
"""
Base Provider Interfaces for Market Data Providers

This module defines the contracts every provider adapter follows and the
shared HTTP step that validates transport before any payload is parsed:
- SeriesProvider: returns the latest observation of a time series
- QuoteProvider: returns a Quote for a tradable instrument
- JsonHttpProvider: GET + status/content-type validation -> dict

Adapters never retry; retries belong to the aggregation layer.

Files that USE this module:
- crashrisk.adapters.providers.fred (FredProvider)
- crashrisk.adapters.providers.finnhub (FinnhubProvider)
- crashrisk.adapters.providers.alphavantage (AlphaVantageProvider)
- crashrisk.adapters.providers.manual (ManualDatasetProvider implements SeriesProvider)
- tests.test_providers (unit tests)

Files that this module USES:
- crashrisk.domain.errors (typed adapter errors)
"""
from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

import requests

from crashrisk.domain.errors import ErrorCode, ProviderError, TransportError
from crashrisk.domain.models import Quote, SeriesValue

log = logging.getLogger(__name__)


class SeriesProvider(ABC):
    @abstractmethod
    def latest(self, series_id: str) -> SeriesValue:
        """Return the most recent valid observation of a series."""
        raise NotImplementedError


class QuoteProvider(ABC):
    @abstractmethod
    def quote(self, symbol: str, ratio: float = 1.0) -> Quote:
        """Return the latest quote for symbol, scaled by ratio."""
        raise NotImplementedError


def _status_to_code(status_code: int) -> ErrorCode:
    if status_code in (401, 403):
        return ErrorCode.MISSING_CREDENTIALS
    if status_code == 429:
        return ErrorCode.RATE_LIMITED
    return ErrorCode.NETWORK_ERROR


class JsonHttpProvider:
    """
    Shared GET step for JSON APIs.

    Subclasses set `name` and may override `_error_message` to pull the
    provider's own error text out of a non-2xx JSON body.
    """

    name = "http"

    def __init__(self, base_url: str, api_key: str, timeout: int):
        self.url = base_url
        self.api_key = api_key
        self.timeout = timeout

    def _require_key(self) -> str:
        if not self.api_key:
            raise ProviderError(
                f"{self.name} API key is not configured",
                ErrorCode.MISSING_CREDENTIALS,
                provider=self.name,
            )
        return self.api_key

    @staticmethod
    def _error_message(data: Any) -> Optional[str]:
        if isinstance(data, dict):
            for field in ("error", "error_message", "message"):
                if data.get(field):
                    return str(data[field])
        return None

    def _get_json(self, params: Dict[str, Any]) -> Any:
        """
        GET self.url with params and return the decoded JSON body.

        Raises:
            TransportError: On timeout, connection failure, non-2xx status
                or a response that is not JSON
        """
        try:
            resp = requests.get(self.url, params=params, timeout=self.timeout)
        except requests.exceptions.Timeout:
            log.warning("%s API timeout after %d seconds", self.name, self.timeout)
            raise TransportError(f"timeout after {self.timeout}s", provider=self.name)
        except requests.exceptions.RequestException as e:
            log.warning("%s API request failed: %s", self.name, e)
            raise TransportError(f"request failed: {e}", provider=self.name) from e

        content_type = resp.headers.get("Content-Type", "") or ""
        is_json = "application/json" in content_type.lower()

        if not 200 <= resp.status_code < 300:
            detail = None
            if is_json:
                try:
                    detail = self._error_message(resp.json())
                except ValueError:
                    detail = None
            message = f"HTTP {resp.status_code}" + (f": {detail}" if detail else "")
            log.warning("%s API returned %s", self.name, message)
            raise TransportError(
                message,
                code=_status_to_code(resp.status_code),
                provider=self.name,
                status_code=resp.status_code,
            )

        if not is_json:
            log.warning("%s API returned non-JSON content type: %r", self.name, content_type)
            raise TransportError(
                f"expected JSON but got {content_type or 'no content type'}",
                provider=self.name,
                status_code=resp.status_code,
            )

        try:
            return resp.json()
        except ValueError as e:
            log.warning("%s API returned invalid JSON: %s", self.name, e)
            raise TransportError(f"invalid JSON: {e}", provider=self.name) from e
