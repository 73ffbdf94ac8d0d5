# src/crashrisk/application/__init__.py
"""
Application Layer - Use Cases and Services

This package contains the services that orchestrate the domain logic:
normalization, caching, aggregation, scoring, polling and health.
"""

from crashrisk.application.aggregator import MarketAggregator, ProviderChain
from crashrisk.application.cache import RevalidationCache
from crashrisk.application.health import HealthChecker, health_checker
from crashrisk.application.normalizers import fallback_reading, normalize, reading_from_quote
from crashrisk.application.poller import DashboardPoller
from crashrisk.application.scorer import ScoreCurve, calculate_crash_risk, risk_level_for

__all__ = [
    "MarketAggregator",
    "ProviderChain",
    "RevalidationCache",
    "HealthChecker",
    "health_checker",
    "fallback_reading",
    "normalize",
    "reading_from_quote",
    "DashboardPoller",
    "ScoreCurve",
    "calculate_crash_risk",
    "risk_level_for",
]
