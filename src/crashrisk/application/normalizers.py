# src/crashrisk/application/normalizers.py
"""
Indicator Normalizers - Raw Values to Classified Readings

Turns a provider's SeriesValue into an IndicatorReading using the
indicator's catalogue row. These functions are pure: same row and same raw
value always give the same reading.

Files that USE this module:
- crashrisk.application.aggregator (normalizes fetched values and builds fallbacks)
- tests.test_normalizers (unit tests)

Files that this module USES:
- crashrisk.domain.catalogue (INDICATORS table)
- crashrisk.domain.models (IndicatorReading, Quote, SeriesValue)
"""
from __future__ import annotations

from typing import Optional

from crashrisk.domain.catalogue import INDICATORS, IndicatorSpec
from crashrisk.domain.errors import ErrorCode
from crashrisk.domain.models import IndicatorReading, Quote, SeriesValue, utc_now_iso


def _reading(spec: IndicatorSpec, value: float, timestamp: str,
             source_error: Optional[str] = None, error_code: Optional[str] = None) -> IndicatorReading:
    return IndicatorReading(
        key=spec.key,
        value=value,
        historical_average=spec.historical_average,
        warning_level=spec.warning_level,
        danger_level=spec.danger_level,
        direction_inverted=spec.inverted,
        timestamp=timestamp,
        description=spec.description,
        unit=spec.unit,
        source_error=source_error,
        error_code=error_code,
    )


def normalize(key: str, raw: SeriesValue) -> IndicatorReading:
    """
    Build the reading for indicator `key` from a raw provider value.

    Raises:
        KeyError: If key is not in the catalogue
    """
    return _reading(INDICATORS[key], raw.value, raw.timestamp)


def fallback_reading(key: str, reason: str, code: Optional[ErrorCode] = None,
                     timestamp: Optional[str] = None) -> IndicatorReading:
    """
    Reading served when the source for `key` failed.

    The value is the catalogue fallback value and the status is classified
    from it like any other reading.
    """
    spec = INDICATORS[key]
    return _reading(
        spec,
        spec.fallback_value,
        timestamp or utc_now_iso(),
        source_error=reason,
        error_code=code.value if code is not None else None,
    )


def reading_from_quote(key: str, quote: Quote) -> IndicatorReading:
    """Reading for a quote-backed indicator (VIX); a failed quote yields the fallback."""
    if not quote.ok:
        code = ErrorCode(quote.error_code) if quote.error_code else None
        return fallback_reading(key, quote.source_error or "quote unavailable", code, quote.timestamp)
    return _reading(INDICATORS[key], quote.value, quote.timestamp)
