# src/crashrisk/domain/models.py
"""
Domain Models - Pure Business Objects

This module contains the immutable value objects that flow through the
pipeline:
- SeriesValue: one normalized observation returned by a provider adapter
- Quote: one price point for a tradable instrument
- IndicatorReading: a classified macro/valuation indicator
- CrashRiskBreakdown: the composite score
- DashboardSnapshot: everything produced by one poll cycle

Files that USE this module:
- crashrisk.adapters.providers.* (adapters build SeriesValue and Quote)
- crashrisk.application.* (services normalize, cache and score these objects)
- crashrisk.adapters.http.routes (serializes them to JSON)

Files that this module USES:
- crashrisk.domain.classifier (IndicatorReading derives its status)
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Mapping, Optional

from crashrisk.domain.classifier import IndicatorStatus, classify


def utc_now_iso() -> str:
    """Current UTC time as an ISO-8601 string."""
    return datetime.now(timezone.utc).isoformat()


class RiskLevel(str, Enum):
    LOW = "Low"
    MODERATE = "Moderate"
    ELEVATED = "Elevated"
    HIGH = "High"
    CRITICAL = "Critical"


@dataclass(frozen=True)
class SeriesValue:
    """
    One normalized observation from a provider.

    Attributes:
        value: Observation in the indicator's native unit
        timestamp: ISO-8601 timestamp of the observation
        source: Provider name that produced it
    """
    value: float
    timestamp: str
    source: str = ""


@dataclass(frozen=True)
class Quote:
    """
    Price point for an instrument (equity, index proxy, crypto, commodity, VIX).

    A failed quote keeps the same shape with zero values and source_error set.
    """
    symbol: str
    value: float
    change: float
    change_percent: float
    timestamp: str
    source: str = ""
    source_error: Optional[str] = None
    error_code: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.source_error is None

    @classmethod
    def failed(cls, symbol: str, reason: str, error_code: Optional[str] = None,
               timestamp: Optional[str] = None) -> "Quote":
        return cls(
            symbol=symbol,
            value=0.0,
            change=0.0,
            change_percent=0.0,
            timestamp=timestamp or utc_now_iso(),
            source_error=reason,
            error_code=error_code,
        )

    def to_dict(self) -> Dict[str, Any]:
        d: Dict[str, Any] = {
            "value": self.value,
            "change": self.change,
            "changePercent": self.change_percent,
            "timestamp": self.timestamp,
        }
        if self.source_error is not None:
            d["error"] = self.source_error
            d["code"] = self.error_code
        return d


@dataclass(frozen=True)
class IndicatorReading:
    """
    Point-in-time assessment of a macro or valuation indicator.

    status is not an init argument: it is always derived from
    (value, warning_level, danger_level, direction_inverted).
    """
    key: str
    value: float
    historical_average: float
    warning_level: float
    danger_level: float
    direction_inverted: bool
    timestamp: str
    description: str
    unit: str = ""
    source_error: Optional[str] = None
    error_code: Optional[str] = None
    status: IndicatorStatus = field(init=False)

    def __post_init__(self) -> None:
        object.__setattr__(
            self,
            "status",
            classify(self.value, self.warning_level, self.danger_level, self.direction_inverted),
        )

    @property
    def is_fallback(self) -> bool:
        return self.source_error is not None

    def to_dict(self) -> Dict[str, Any]:
        d: Dict[str, Any] = {
            "value": self.value,
            "status": self.status.value,
            "historicalAvg": self.historical_average,
            "warningLevel": self.warning_level,
            "dangerLevel": self.danger_level,
            "timestamp": self.timestamp,
            "description": self.description,
        }
        if self.source_error is not None:
            d["error"] = self.source_error
        return d


@dataclass(frozen=True)
class CrashRiskBreakdown:
    """
    Composite crash-risk result.

    Attributes:
        components: indicator key -> sub-score (0..100)
        weights: indicator key -> weight (sums to 1.0)
        total_score: weighted sum capped at 100 and rounded half-up
        risk_level: bucket derived from total_score
        active_warnings: number of components in [40, 70)
        critical_warnings: number of components in [70, 100]
    """
    components: Mapping[str, float]
    weights: Mapping[str, float]
    total_score: int
    risk_level: RiskLevel
    active_warnings: int
    critical_warnings: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "totalScore": self.total_score,
            "riskLevel": self.risk_level.value,
            "components": dict(self.components),
            "weights": dict(self.weights),
            "activeWarnings": self.active_warnings,
            "criticalWarnings": self.critical_warnings,
        }


@dataclass(frozen=True)
class DashboardSnapshot:
    """Everything produced by one poll cycle."""
    indicators: Mapping[str, IndicatorReading]
    quotes: Mapping[str, Quote]
    breakdown: CrashRiskBreakdown
    generated_at: str

    @property
    def errors(self) -> Dict[str, str]:
        """Failed sources mapped to their failure reason."""
        out: Dict[str, str] = {}
        for key, reading in self.indicators.items():
            if reading.source_error is not None:
                out[key] = reading.source_error
        for name, quote in self.quotes.items():
            if quote.source_error is not None:
                out[f"quote:{name}"] = quote.source_error
        return out

    def to_dict(self) -> Dict[str, Any]:
        return {
            "breakdown": self.breakdown.to_dict(),
            "indicators": {
                key: {"value": r.value, "status": r.status.value}
                for key, r in self.indicators.items()
            },
            "errors": self.errors,
            "generatedAt": self.generated_at,
        }
