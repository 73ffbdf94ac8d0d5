# src/crashrisk/domain/catalogue.py
"""
Indicator & Instrument Catalogue - Declarative Domain Knowledge

One row per indicator holds everything the classifier and the scorer need:
unit, historical average, thresholds, direction, weight, score curve
breakpoints and the fallback value served when the source is down.
Quote instruments are described the same way (provider, symbol, ETF ratio).

Nothing in this module performs I/O; adding an indicator means adding a row.

Files that USE this module:
- crashrisk.application.normalizers (builds IndicatorReading from a row)
- crashrisk.application.scorer (weights and curves)
- crashrisk.application.aggregator (source bindings and instrument lookup)
- tests.* (thresholds are asserted directly)
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Optional, Tuple

from crashrisk.domain.errors import ErrorCode, ProviderError

# Source classes share one revalidation window each
SOURCE_QUOTE = "quote"
SOURCE_MACRO = "macro"
SOURCE_MANUAL = "manual"


@dataclass(frozen=True)
class IndicatorSpec:
    """
    Attributes:
        key: Stable indicator key (also the scorer component key)
        name: Display name
        description: Static human-readable definition
        unit: Native unit
        historical_average: Long-run reference value (informational)
        warning_level: Warning threshold
        danger_level: Danger threshold
        inverted: True when lower values are worse
        weight: Weight in the composite score
        curve: (value, score) breakpoints, ordered from safest to most extreme
        fallback_value: Value served when the source fails
        source_class: SOURCE_MACRO, SOURCE_MANUAL or SOURCE_QUOTE
        series_id: Series/dataset key (FRED series, manual dataset key, instrument key)
        route: URL slug used by the HTTP boundary
    """
    key: str
    name: str
    description: str
    unit: str
    historical_average: float
    warning_level: float
    danger_level: float
    inverted: bool
    weight: float
    curve: Tuple[Tuple[float, float], ...]
    fallback_value: float
    source_class: str
    series_id: str
    route: str


INDICATORS: Dict[str, IndicatorSpec] = {
    spec.key: spec
    for spec in (
        IndicatorSpec(
            key="cape",
            name="CAPE Ratio",
            description="Shiller P/E - Cyclically Adjusted Price-to-Earnings",
            unit="ratio",
            historical_average=16.8,
            warning_level=25.0,
            danger_level=30.0,
            inverted=False,
            weight=0.20,
            curve=((0.0, 0.0), (20.0, 20.0), (25.0, 40.0), (30.0, 70.0), (50.0, 100.0)),
            fallback_value=16.8,
            source_class=SOURCE_MANUAL,
            series_id="cape",
            route="cape",
        ),
        IndicatorSpec(
            key="yield_curve",
            name="Yield Curve Spread",
            description="10-Year minus 3-Month Treasury Spread",
            unit="%",
            historical_average=1.5,
            warning_level=0.5,
            danger_level=0.0,
            inverted=True,
            weight=0.20,
            curve=((7.0, 0.0), (2.0, 10.0), (1.0, 20.0), (0.5, 50.0), (0.0, 70.0), (-1.0, 100.0)),
            fallback_value=1.5,
            source_class=SOURCE_MACRO,
            series_id="T10Y3M",
            route="yield-curve",
        ),
        IndicatorSpec(
            key="margin_debt",
            name="Margin Debt / GDP",
            description="Margin Debt as percentage of GDP",
            unit="%",
            historical_average=1.8,
            warning_level=2.5,
            danger_level=3.0,
            inverted=False,
            weight=0.15,
            curve=((0.0, 0.0), (1.5, 20.0), (2.5, 40.0), (3.0, 70.0), (5.0, 100.0)),
            fallback_value=1.8,
            source_class=SOURCE_MANUAL,
            series_id="margin_debt",
            route="margin-debt",
        ),
        IndicatorSpec(
            key="credit_spreads",
            name="High Yield Credit Spread",
            description="ICE BofA High Yield Option-Adjusted Spread",
            unit="%",
            historical_average=4.0,
            warning_level=5.0,
            danger_level=7.0,
            inverted=False,
            weight=0.15,
            curve=((0.0, 0.0), (3.0, 20.0), (5.0, 40.0), (7.0, 70.0), (12.0, 100.0)),
            fallback_value=4.0,
            source_class=SOURCE_MACRO,
            series_id="BAMLH0A0HYM2",
            route="credit-spreads",
        ),
        IndicatorSpec(
            key="buffett",
            name="Buffett Indicator",
            description="Market Capitalization / GDP Ratio",
            unit="%",
            historical_average=80.0,
            warning_level=115.0,
            danger_level=160.0,
            inverted=False,
            weight=0.15,
            curve=((0.0, 0.0), (80.0, 10.0), (115.0, 30.0), (160.0, 70.0), (240.0, 100.0)),
            fallback_value=80.0,
            source_class=SOURCE_MANUAL,
            series_id="buffett",
            route="buffett",
        ),
        IndicatorSpec(
            key="vix",
            name="VIX",
            description="CBOE Volatility Index - implied 30-day S&P 500 volatility",
            unit="index pts",
            historical_average=19.5,
            warning_level=20.0,
            danger_level=30.0,
            inverted=False,
            weight=0.15,
            curve=((0.0, 0.0), (15.0, 20.0), (20.0, 40.0), (30.0, 70.0), (50.0, 100.0)),
            fallback_value=19.5,
            source_class=SOURCE_QUOTE,
            series_id="vix",
            route="vix",
        ),
    )
}

INDICATOR_ROUTES: Dict[str, str] = {spec.route: spec.key for spec in INDICATORS.values()}


@dataclass(frozen=True)
class InstrumentSpec:
    """
    Attributes:
        key: Instrument key used in snapshots (e.g. "sp500", "stock:AAPL")
        provider: "finnhub" or "fred"
        symbol: Provider symbol or series id
        ratio: Multiplier applied to the provider price (ETF -> index level)
        alternate_symbol: Alpha Vantage symbol used when the primary feed fails
        source_class: Revalidation window class
    """
    key: str
    provider: str
    symbol: str
    ratio: float = 1.0
    alternate_symbol: Optional[str] = None
    source_class: str = SOURCE_QUOTE


# Index levels are approximated from tracking ETFs at fixed ratios:
# SPY ~ 1/10 of the S&P 500, DIA ~ 1/100 of the Dow, QQQ ~ 1/4 of the Nasdaq-100.
SPY_TO_INDEX_RATIO = 10.0
DIA_TO_INDEX_RATIO = 100.0
QQQ_TO_INDEX_RATIO = 4.0

INDEX_INSTRUMENTS: Dict[str, InstrumentSpec] = {
    "sp500": InstrumentSpec("sp500", "finnhub", "SPY", SPY_TO_INDEX_RATIO, alternate_symbol="SPY"),
    "dowjones": InstrumentSpec("dowjones", "finnhub", "DIA", DIA_TO_INDEX_RATIO, alternate_symbol="DIA"),
    "nasdaq": InstrumentSpec("nasdaq", "finnhub", "QQQ", QQQ_TO_INDEX_RATIO, alternate_symbol="QQQ"),
    "vix": InstrumentSpec("vix", "fred", "VIXCLS"),
}

CRYPTO_SYMBOLS: Dict[str, str] = {
    "BTC": "BINANCE:BTCUSDT",
    "ETH": "BINANCE:ETHUSDT",
    "XRP": "BINANCE:XRPUSDT",
}

COMMODITY_SERIES: Dict[str, str] = {
    "GOLD": "GOLDAMGBD228NLBM",  # London fixing
    "SILVER": "SLVPRUSD",
    "OIL": "DCOILWTICO",  # WTI crude
}

# Instruments refreshed on every poll cycle
DASHBOARD_STOCKS = ("GOOGL", "AMZN", "AAPL", "TSLA", "META", "MSFT", "NVDA")
DASHBOARD_CRYPTO = tuple(CRYPTO_SYMBOLS)
DASHBOARD_COMMODITIES = tuple(COMMODITY_SERIES)

VOLATILITY_INSTRUMENT = "vix"


def stock_instrument(symbol: str) -> InstrumentSpec:
    symbol = symbol.upper()
    return InstrumentSpec(f"stock:{symbol}", "finnhub", symbol, alternate_symbol=symbol)


def crypto_instrument(symbol: str) -> InstrumentSpec:
    symbol = symbol.upper()
    if symbol not in CRYPTO_SYMBOLS:
        raise ProviderError(f"Unsupported crypto symbol: {symbol}", ErrorCode.UNSUPPORTED_INSTRUMENT)
    return InstrumentSpec(f"crypto:{symbol}", "finnhub", CRYPTO_SYMBOLS[symbol])


def commodity_instrument(symbol: str) -> InstrumentSpec:
    symbol = symbol.upper()
    if symbol not in COMMODITY_SERIES:
        raise ProviderError(f"Unsupported commodity symbol: {symbol}", ErrorCode.UNSUPPORTED_INSTRUMENT)
    # Commodities are published daily; they share the macro window
    return InstrumentSpec(f"commodity:{symbol}", "fred", COMMODITY_SERIES[symbol], source_class=SOURCE_MACRO)


def index_instrument(name: str) -> InstrumentSpec:
    try:
        return INDEX_INSTRUMENTS[name.lower()]
    except KeyError:
        raise ProviderError(f"Unsupported instrument: {name}", ErrorCode.UNSUPPORTED_INSTRUMENT) from None


def dashboard_instruments() -> Tuple[InstrumentSpec, ...]:
    """All instruments polled on every cycle, in display order."""
    return (
        tuple(INDEX_INSTRUMENTS.values())
        + tuple(stock_instrument(s) for s in DASHBOARD_STOCKS)
        + tuple(crypto_instrument(s) for s in DASHBOARD_CRYPTO)
        + tuple(commodity_instrument(s) for s in DASHBOARD_COMMODITIES)
    )
