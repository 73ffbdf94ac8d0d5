# src/crashrisk/application/poller.py
"""
Dashboard Poller - Scheduled Refresh and Latest Snapshot

Owns an APScheduler AsyncIOScheduler with a single interval job that runs
a full refresh and keeps the latest DashboardSnapshot for the HTTP layer.
The revalidation cache inside the aggregator decides which sources are
actually re-fetched on each tick.

Files that USE this module:
- crashrisk.app (starts/stops the poller in the FastAPI lifespan)
- crashrisk.adapters.http.routes (reads the latest snapshot)
- tests.test_poller (unit tests)

Files that this module USES:
- crashrisk.application.aggregator (MarketAggregator.refresh)
"""
from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from typing import Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from crashrisk.application.aggregator import MarketAggregator
from crashrisk.config import settings
from crashrisk.domain.models import DashboardSnapshot

log = logging.getLogger(__name__)

POLL_JOB_ID = "dashboard_poll"


class DashboardPoller:
    def __init__(self, aggregator: Optional[MarketAggregator] = None,
                 interval_seconds: Optional[int] = None):
        self.aggregator = aggregator or MarketAggregator()
        self.interval_seconds = (
            interval_seconds if interval_seconds is not None else settings.poll_interval_seconds
        )
        self.scheduler: Optional[AsyncIOScheduler] = None
        self._latest: Optional[DashboardSnapshot] = None
        self._lock = asyncio.Lock()

    @property
    def latest(self) -> Optional[DashboardSnapshot]:
        return self._latest

    async def poll_once(self) -> DashboardSnapshot:
        """Run one refresh and store its snapshot. Overlapping calls share one refresh at a time."""
        async with self._lock:
            snapshot = await self.aggregator.refresh()
            self._latest = snapshot
            return snapshot

    async def ensure_snapshot(self) -> DashboardSnapshot:
        """Latest snapshot, polling first if none exists yet."""
        if self._latest is not None:
            return self._latest
        return await self.poll_once()

    async def _poll_job(self) -> None:
        try:
            await self.poll_once()
        except Exception as e:
            log.error("Scheduled poll failed: %s", e, exc_info=True)

    def start(self) -> None:
        """Schedule the interval job; the first run happens immediately."""
        if self.scheduler is not None and self.scheduler.running:
            return
        self.scheduler = AsyncIOScheduler()
        self.scheduler.add_job(
            self._poll_job,
            IntervalTrigger(seconds=self.interval_seconds),
            id=POLL_JOB_ID,
            name="Dashboard refresh",
            replace_existing=True,
            max_instances=1,
            coalesce=True,
            next_run_time=datetime.now(timezone.utc),  # first run immediately
        )
        self.scheduler.start()
        log.info("Dashboard poller started (every %ds)", self.interval_seconds)

    def shutdown(self) -> None:
        if self.scheduler is not None and self.scheduler.running:
            self.scheduler.shutdown(wait=False)
            log.info("Dashboard poller stopped")
        self.scheduler = None
        self.aggregator.close()

