# src/crashrisk/adapters/http/routes.py
"""
API Routes - Consumer Boundary for the Dashboard

Endpoints organized by:
- Economic indicators (always 200; degraded readings carry "error")
- Market data (quote, or 500/404 with a zeroed body and error code)
- Crash risk (latest composite breakdown)
- Health (per-source status of the latest snapshot)

The poller and its aggregator are taken from app.state (set by crashrisk.app).

Files that USE this module:
- crashrisk.app (includes the router under /api)
- tests.test_routes (unit tests)

Files that this module USES:
- crashrisk.application.poller (DashboardPoller)
- crashrisk.application.health (health_checker)
- crashrisk.domain.catalogue (route and instrument lookup)
"""
from __future__ import annotations

import logging

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from crashrisk.application.health import health_checker
from crashrisk.application.poller import DashboardPoller
from crashrisk.domain.catalogue import (
    INDICATOR_ROUTES,
    SOURCE_QUOTE,
    INDICATORS,
    InstrumentSpec,
    commodity_instrument,
    crypto_instrument,
    index_instrument,
    stock_instrument,
)
from crashrisk.domain.errors import ErrorCode, ProviderError
from crashrisk.domain.models import Quote
from crashrisk.shared.validators import validate_symbol

log = logging.getLogger(__name__)

router = APIRouter()


def _poller(request: Request) -> DashboardPoller:
    return request.app.state.poller


def _unsupported(symbol: str, reason: str) -> JSONResponse:
    body = Quote.failed(symbol, reason, ErrorCode.UNSUPPORTED_INSTRUMENT.value).to_dict()
    return JSONResponse(status_code=404, content=body)


async def _quote_response(request: Request, spec: InstrumentSpec) -> JSONResponse:
    quote = await _poller(request).aggregator.quote(spec)
    if not quote.ok:
        return JSONResponse(status_code=500, content=quote.to_dict())
    return JSONResponse(content=quote.to_dict())


# ============================================================
# Economic indicators
# ============================================================
@router.get("/economic-indicators/{name}")
async def economic_indicator(name: str, request: Request):
    key = INDICATOR_ROUTES.get(name)
    if key is None or INDICATORS[key].source_class == SOURCE_QUOTE:
        return JSONResponse(status_code=404, content={"error": f"Unknown indicator: {name}"})
    reading = await _poller(request).aggregator.indicator(key)
    return reading.to_dict()


# ============================================================
# Market data
# ============================================================
@router.get("/market-data/stocks/{symbol}")
async def stock_quote(symbol: str, request: Request):
    if not validate_symbol(symbol):
        return _unsupported(symbol, f"Invalid stock symbol: {symbol}")
    return await _quote_response(request, stock_instrument(symbol))


@router.get("/market-data/crypto/{symbol}")
async def crypto_quote(symbol: str, request: Request):
    try:
        spec = crypto_instrument(symbol)
    except ProviderError as e:
        return _unsupported(symbol, e.message)
    return await _quote_response(request, spec)


@router.get("/market-data/commodities/{symbol}")
async def commodity_quote(symbol: str, request: Request):
    try:
        spec = commodity_instrument(symbol)
    except ProviderError as e:
        return _unsupported(symbol, e.message)
    return await _quote_response(request, spec)


@router.get("/market-data/{name}")
async def index_quote(name: str, request: Request):
    try:
        spec = index_instrument(name)
    except ProviderError as e:
        return _unsupported(name, e.message)
    return await _quote_response(request, spec)


# ============================================================
# Crash risk
# ============================================================
@router.get("/crash-risk")
async def crash_risk(request: Request):
    """Latest composite breakdown; runs a poll first when none has completed yet."""
    snapshot = await _poller(request).ensure_snapshot()
    return snapshot.to_dict()


# ============================================================
# Health
# ============================================================
@router.get("/health")
async def health(request: Request):
    return health_checker.get_overall_health(_poller(request).latest)
