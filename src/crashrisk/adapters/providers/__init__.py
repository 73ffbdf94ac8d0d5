# src/crashrisk/adapters/providers/__init__.py
"""
Provider Adapters - External API Clients

This package contains adapters for the market and macro data sources.
Series sources implement SeriesProvider, quote sources implement QuoteProvider.
"""

from crashrisk.adapters.providers.alphavantage import AlphaVantageProvider
from crashrisk.adapters.providers.base import QuoteProvider, SeriesProvider
from crashrisk.adapters.providers.finnhub import FinnhubProvider
from crashrisk.adapters.providers.fred import FredProvider
from crashrisk.adapters.providers.manual import ManualDatasetProvider

__all__ = [
    "QuoteProvider",
    "SeriesProvider",
    "AlphaVantageProvider",
    "FinnhubProvider",
    "FredProvider",
    "ManualDatasetProvider",
]
