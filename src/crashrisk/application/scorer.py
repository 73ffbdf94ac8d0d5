# src/crashrisk/application/scorer.py
"""
Crash-Risk Scorer - Composite Score from Indicator Readings

Each indicator value is mapped to a 0-100 sub-score by a piecewise-linear
curve taken from the catalogue; the composite is the weighted sum, capped
at 100 and rounded half-up.

Warning counts are taken from the sub-scores (40-70 active, 70+ critical),
not from the per-indicator status.

This module is pure: no I/O and no clock.

Files that USE this module:
- crashrisk.application.aggregator (builds the breakdown after each refresh)
- tests.test_scorer (unit tests)

Files that this module USES:
- crashrisk.domain.catalogue (weights and curve breakpoints)
- crashrisk.domain.models (CrashRiskBreakdown, IndicatorReading, RiskLevel)
"""
from __future__ import annotations

from bisect import bisect_right
from decimal import ROUND_HALF_UP, Decimal
from typing import Dict, Iterable, Mapping, Optional, Sequence, Tuple

from crashrisk.domain.catalogue import INDICATORS
from crashrisk.domain.models import CrashRiskBreakdown, IndicatorReading, RiskLevel

WEIGHT_TOLERANCE = 1e-9

ACTIVE_WARNING_SCORE = 40.0
CRITICAL_WARNING_SCORE = 70.0

# (upper bound exclusive, level), checked in order
RISK_LEVEL_BOUNDS: Tuple[Tuple[int, RiskLevel], ...] = (
    (30, RiskLevel.LOW),
    (50, RiskLevel.MODERATE),
    (65, RiskLevel.ELEVATED),
    (80, RiskLevel.HIGH),
)


class ScoreCurve:
    """
    Piecewise-linear map from an indicator value to a 0-100 score.

    Breakpoints are (value, score) pairs ordered from the safest value to
    the most extreme one. For an inverted indicator the values decrease
    along the list. Values outside the breakpoints take the end score.
    """

    def __init__(self, breakpoints: Sequence[Tuple[float, float]], inverted: bool = False):
        if len(breakpoints) < 2:
            raise ValueError("a score curve needs at least two breakpoints")
        sign = -1.0 if inverted else 1.0
        xs = [sign * float(x) for x, _ in breakpoints]
        scores = [float(s) for _, s in breakpoints]
        if any(b <= a for a, b in zip(xs, xs[1:])):
            raise ValueError("breakpoint values must move strictly away from the safe end")
        if any(b < a for a, b in zip(scores, scores[1:])):
            raise ValueError("breakpoint scores must not decrease")
        if scores[0] < 0 or scores[-1] > 100:
            raise ValueError("breakpoint scores must lie in [0, 100]")
        self.inverted = inverted
        self._sign = sign
        self._xs = xs
        self._scores = scores

    def score(self, value: float) -> float:
        x = self._sign * value
        xs, scores = self._xs, self._scores
        if x <= xs[0]:
            return scores[0]
        if x >= xs[-1]:
            return scores[-1]
        i = bisect_right(xs, x)
        x0, x1 = xs[i - 1], xs[i]
        s0, s1 = scores[i - 1], scores[i]
        return s0 + (x - x0) / (x1 - x0) * (s1 - s0)


def validate_weights(weights: Mapping[str, float]) -> None:
    """
    Raises:
        ValueError: If any weight is negative or the weights do not sum to 1.0
    """
    if any(w < 0 for w in weights.values()):
        raise ValueError("weights must not be negative")
    total = sum(weights.values())
    if abs(total - 1.0) > WEIGHT_TOLERANCE:
        raise ValueError(f"weights sum to {total}, expected 1.0")


WEIGHTS: Dict[str, float] = {key: spec.weight for key, spec in INDICATORS.items()}
CURVES: Dict[str, ScoreCurve] = {
    key: ScoreCurve(spec.curve, spec.inverted) for key, spec in INDICATORS.items()
}

validate_weights(WEIGHTS)


def risk_level_for(total_score: int) -> RiskLevel:
    for bound, level in RISK_LEVEL_BOUNDS:
        if total_score < bound:
            return level
    return RiskLevel.CRITICAL


def round_half_up(value: float) -> int:
    return int(Decimal(str(value)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def score_indicator(key: str, value: float) -> float:
    """Sub-score (0-100) for one indicator value."""
    return CURVES[key].score(value)


def build_breakdown(components: Mapping[str, float],
                    weights: Optional[Mapping[str, float]] = None) -> CrashRiskBreakdown:
    """
    Combine sub-scores into a breakdown.

    Args:
        components: indicator key -> sub-score (0..100)
        weights: indicator key -> weight (defaults to the catalogue weights)
    """
    weights = dict(WEIGHTS if weights is None else weights)
    validate_weights(weights)

    weighted = sum(components.get(key, 0.0) * w for key, w in weights.items())
    total_score = round_half_up(max(0.0, min(100.0, weighted)))

    return CrashRiskBreakdown(
        components=dict(components),
        weights=weights,
        total_score=total_score,
        risk_level=risk_level_for(total_score),
        active_warnings=sum(
            1 for s in components.values() if ACTIVE_WARNING_SCORE <= s < CRITICAL_WARNING_SCORE
        ),
        critical_warnings=sum(1 for s in components.values() if s >= CRITICAL_WARNING_SCORE),
    )


def calculate_crash_risk(readings: Iterable[IndicatorReading]) -> CrashRiskBreakdown:
    """
    Compute the composite crash-risk breakdown.

    Readings for keys outside the catalogue are ignored. A catalogue
    indicator with no reading is scored at its fallback value.
    """
    by_key = {r.key: r for r in readings}
    components: Dict[str, float] = {}
    for key, spec in INDICATORS.items():
        reading = by_key.get(key)
        value = reading.value if reading is not None else spec.fallback_value
        components[key] = score_indicator(key, value)
    return build_breakdown(components)
