# src/crashrisk/domain/classifier.py
"""
Status Classifier - Three-Tier Safety Classification

Maps an indicator value and its thresholds to safe / warning / danger.
A value equal to a threshold always lands in the worse tier, whichever
direction the indicator runs.

Files that USE this module:
- crashrisk.domain.models (IndicatorReading derives its status here)
- tests.test_classifier (unit tests)
"""
from __future__ import annotations

from enum import Enum


class IndicatorStatus(str, Enum):
    SAFE = "safe"
    WARNING = "warning"
    DANGER = "danger"


# Severity order of the tiers, least severe first
STATUS_ORDER = {
    IndicatorStatus.SAFE: 0,
    IndicatorStatus.WARNING: 1,
    IndicatorStatus.DANGER: 2,
}


def classify(value: float, warning: float, danger: float, inverted: bool = False) -> IndicatorStatus:
    """
    Classify a value against warning/danger thresholds.

    Args:
        value: Current indicator value
        warning: Warning threshold
        danger: Danger threshold
        inverted: True when lower values are worse (e.g. yield curve spread)

    Returns:
        IndicatorStatus tier
    """
    if inverted:
        if value <= danger:
            return IndicatorStatus.DANGER
        if value <= warning:
            return IndicatorStatus.WARNING
        return IndicatorStatus.SAFE

    if value >= danger:
        return IndicatorStatus.DANGER
    if value >= warning:
        return IndicatorStatus.WARNING
    return IndicatorStatus.SAFE
