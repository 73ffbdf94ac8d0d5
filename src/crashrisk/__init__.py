# src/crashrisk/__init__.py
"""
CrashRisk - Market Risk Dashboard Core

Aggregates macro and valuation indicators plus market quotes from FRED,
Finnhub, Alpha Vantage and a hand-maintained dataset, classifies each
indicator and combines them into a composite 0-100 crash-risk score.
"""

__version__ = "1.0.0"
