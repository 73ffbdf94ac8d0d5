# src/crashrisk/application/health.py
"""
Health Checker - Per-source Status from the Latest Snapshot

Reports, for every indicator and quote source, whether the last poll cycle
got real data or had to fall back, plus an overall status. No provider is
called here; health reflects what the dashboard is actually serving.

Files that USE this module:
- crashrisk.adapters.http.routes (/api/health)
- tests.test_health (unit tests)

Files that this module USES:
- crashrisk.domain.models (DashboardSnapshot)
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from crashrisk.domain.models import DashboardSnapshot

logger = logging.getLogger(__name__)


@dataclass
class HealthStatus:
    """Represents the health status of one source."""
    is_healthy: bool
    message: str
    last_check: datetime
    details: Optional[Dict[str, Any]] = None


class HealthChecker:
    def check_snapshot(self, snapshot: DashboardSnapshot) -> Dict[str, HealthStatus]:
        now = datetime.now(timezone.utc)
        checks: Dict[str, HealthStatus] = {}

        for key, reading in snapshot.indicators.items():
            if reading.is_fallback:
                checks[key] = HealthStatus(
                    is_healthy=False,
                    message=f"Serving fallback: {reading.source_error}",
                    last_check=now,
                    details={"code": reading.error_code, "value": reading.value},
                )
            else:
                checks[key] = HealthStatus(
                    is_healthy=True,
                    message=f"{reading.value} ({reading.status.value})",
                    last_check=now,
                    details={"timestamp": reading.timestamp},
                )

        for name, quote in snapshot.quotes.items():
            key = f"quote:{name}"
            if quote.ok:
                checks[key] = HealthStatus(
                    is_healthy=True,
                    message=f"{quote.value:.2f} via {quote.source}",
                    last_check=now,
                    details={"timestamp": quote.timestamp, "source": quote.source},
                )
            else:
                checks[key] = HealthStatus(
                    is_healthy=False,
                    message=f"Unavailable: {quote.source_error}",
                    last_check=now,
                    details={"code": quote.error_code},
                )
        return checks

    def get_overall_health(self, snapshot: Optional[DashboardSnapshot]) -> Dict[str, Any]:
        """
        Get overall health status of all sources.

        Returns degraded status if any source failed, and "starting" before
        the first poll has completed.
        """
        timestamp = datetime.now(timezone.utc).isoformat()
        if snapshot is None:
            return {
                "overall_healthy": False,
                "status": "starting",
                "message": "No data collected yet",
                "healthy_components": [],
                "failed_components": [],
                "timestamp": timestamp,
                "checks": {},
            }

        checks = self.check_snapshot(snapshot)
        healthy_checks = [name for name, check in checks.items() if check.is_healthy]
        failed_checks = [name for name, check in checks.items() if not check.is_healthy]
        overall_healthy = not failed_checks

        if overall_healthy:
            status_message = "All sources healthy"
        else:
            status_message = f"Degraded - {len(failed_checks)} source(s) failed: {', '.join(failed_checks)}"
            logger.debug("Health degraded: %s", failed_checks)

        return {
            "overall_healthy": overall_healthy,
            "status": "healthy" if overall_healthy else "degraded",
            "message": status_message,
            "healthy_components": healthy_checks,
            "failed_components": failed_checks,
            "timestamp": timestamp,
            "snapshot_generated_at": snapshot.generated_at,
            "checks": {
                name: {
                    "healthy": check.is_healthy,
                    "message": check.message,
                    "last_check": check.last_check.isoformat(),
                    "details": check.details,
                }
                for name, check in checks.items()
            },
        }


# Global health checker instance
health_checker = HealthChecker()
