# src/crashrisk/app.py
"""
Application Entry Point - API Initialization and Startup

This module serves as the composition root for the crash-risk dashboard
API. It wires the poller into a FastAPI application and runs it with
uvicorn.

Files that USE this module:
- python -m crashrisk (module entry point)
- tests.test_routes (create_app with a stubbed poller)

Files that this module USES:
- crashrisk.shared.logging_conf (setup_logging for logging configuration)
- crashrisk.config (settings for configuration management)
- crashrisk.application.poller (DashboardPoller)
- crashrisk.adapters.http (API router)
"""

from __future__ import annotations

import logging
import os
from contextlib import asynccontextmanager
from typing import Optional

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from crashrisk import __version__
from crashrisk.adapters.http import router
from crashrisk.application.poller import DashboardPoller
from crashrisk.config import settings
from crashrisk.shared.logging_conf import setup_logging

log = logging.getLogger(__name__)


def create_app(poller: Optional[DashboardPoller] = None, start_scheduler: bool = True) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        poller: Poller to serve from (a default one is created if omitted)
        start_scheduler: Start the interval job in the lifespan
    """
    poller = poller or DashboardPoller()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if start_scheduler:
            poller.start()
        yield
        poller.shutdown()

    app = FastAPI(
        title="Crash Risk Dashboard",
        description="Market indicators, quotes and composite crash-risk score",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.poller = poller

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET"],
        allow_headers=["*"],
    )
    app.include_router(router, prefix="/api")

    @app.get("/")
    async def root():
        return {"name": "Crash Risk Dashboard", "version": __version__, "status": "running"}

    return app


def main() -> None:
    """Configure logging and serve the API until interrupted."""
    setup_logging(
        level=settings.log_level,
        log_file=settings.log_file,
        log_dir=settings.log_dir,
        log_stdout=settings.log_stdout,
        max_bytes=settings.log_max_bytes,
        backup_count=settings.log_backup_count,
    )
    log.info("Working directory: %s", os.getcwd())
    log.info("Manual dataset: %s", settings.manual_data_file)
    for name, key in (
        ("FRED", settings.fred_api_key),
        ("Finnhub", settings.finnhub_api_key),
        ("Alpha Vantage", settings.alpha_vantage_api_key),
    ):
        if not key:
            log.warning("%s API key not configured; its sources will serve fallback data", name)

    try:
        uvicorn.run(create_app(), host=settings.api_host, port=settings.api_port, log_config=None)
    except KeyboardInterrupt:
        log.info("Stopped by user (KeyboardInterrupt)")


if __name__ == "__main__":
    main()
