# tests/test_normalizers.py
"""
Normalizer Tests - Unit Tests for Reading Construction and Fallbacks

Files that USE this module:
- pytest (test runner executes these tests)

Files that this module USES:
- crashrisk.application.normalizers (normalize, fallback_reading, reading_from_quote)
"""
import dataclasses

import pytest

from crashrisk.application.normalizers import fallback_reading, normalize, reading_from_quote
from crashrisk.domain.catalogue import INDICATORS
from crashrisk.domain.classifier import IndicatorStatus
from crashrisk.domain.errors import ErrorCode
from crashrisk.domain.models import Quote, SeriesValue

TS = "2025-10-16T16:00:00+00:00"


class TestNormalize:
    def test_reading_carries_catalogue_row(self):
        reading = normalize("cape", SeriesValue(39.2, TS, "manual"))
        spec = INDICATORS["cape"]
        assert reading.value == 39.2
        assert reading.historical_average == spec.historical_average
        assert reading.warning_level == spec.warning_level
        assert reading.danger_level == spec.danger_level
        assert reading.direction_inverted is False
        assert reading.timestamp == TS
        assert reading.description == spec.description
        assert reading.status == IndicatorStatus.DANGER
        assert not reading.is_fallback

    def test_inverted_indicator(self):
        reading = normalize("yield_curve", SeriesValue(0.21, TS))
        assert reading.direction_inverted is True
        assert reading.status == IndicatorStatus.WARNING

    def test_unknown_key(self):
        with pytest.raises(KeyError):
            normalize("not_an_indicator", SeriesValue(1.0, TS))

    def test_status_cannot_be_overridden(self):
        reading = normalize("vix", SeriesValue(35.0, TS))
        with pytest.raises(dataclasses.FrozenInstanceError):
            reading.status = IndicatorStatus.SAFE

    def test_to_dict(self):
        d = normalize("credit_spreads", SeriesValue(2.9, TS)).to_dict()
        assert d == {
            "value": 2.9,
            "status": "safe",
            "historicalAvg": 4.0,
            "warningLevel": 5.0,
            "dangerLevel": 7.0,
            "timestamp": TS,
            "description": INDICATORS["credit_spreads"].description,
        }


class TestFallbackReading:
    @pytest.mark.parametrize("key", list(INDICATORS))
    def test_fallback_uses_catalogue_value(self, key):
        reading = fallback_reading(key, "fred: HTTP 500 [NETWORK_ERROR]", ErrorCode.NETWORK_ERROR)
        assert reading.value == INDICATORS[key].fallback_value
        assert reading.is_fallback
        assert reading.error_code == "NETWORK_ERROR"
        assert reading.to_dict()["error"] == "fred: HTTP 500 [NETWORK_ERROR]"

    def test_fallback_status_is_classified(self):
        # The long-run average of every indicator sits in the safe tier
        for key in INDICATORS:
            assert fallback_reading(key, "down").status == IndicatorStatus.SAFE


class TestReadingFromQuote:
    def test_successful_quote(self):
        quote = Quote("VIXCLS", 26.42, 6.42, 32.1, TS, source="fred")
        reading = reading_from_quote("vix", quote)
        assert reading.value == 26.42
        assert reading.status == IndicatorStatus.WARNING
        assert not reading.is_fallback

    def test_failed_quote_gives_fallback(self):
        quote = Quote.failed("VIXCLS", "fred: timed out [NETWORK_ERROR]", "NETWORK_ERROR")
        reading = reading_from_quote("vix", quote)
        assert reading.is_fallback
        assert reading.value == INDICATORS["vix"].fallback_value
        assert reading.error_code == "NETWORK_ERROR"
