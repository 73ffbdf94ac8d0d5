# src/crashrisk/domain/__init__.py
"""
Domain Layer - Pure Business Objects

This package contains domain models, the indicator catalogue and the
status classifier. No dependencies on infrastructure or external systems.
"""

from crashrisk.domain.catalogue import INDICATORS, IndicatorSpec, InstrumentSpec
from crashrisk.domain.classifier import IndicatorStatus, classify
from crashrisk.domain.errors import (
    AdapterError,
    DomainError,
    ErrorCode,
    ProviderError,
    TransportError,
)
from crashrisk.domain.models import (
    CrashRiskBreakdown,
    DashboardSnapshot,
    IndicatorReading,
    Quote,
    RiskLevel,
    SeriesValue,
)

__all__ = [
    "INDICATORS",
    "IndicatorSpec",
    "InstrumentSpec",
    "IndicatorStatus",
    "classify",
    "AdapterError",
    "DomainError",
    "ErrorCode",
    "ProviderError",
    "TransportError",
    "CrashRiskBreakdown",
    "DashboardSnapshot",
    "IndicatorReading",
    "Quote",
    "RiskLevel",
    "SeriesValue",
]
