"""
Health check aggregation across the store and the weather feed.

Checks:
    • Alert / SOS store reachability (a count query each)
    • Weather feed configuration and last sync outcome

Returns a structured health report suitable for:
    - Kubernetes liveness/readiness checks
    - Load balancer health checks

A missing OpenWeather key only degrades the report: the service still
serves alerts, it just stops syncing feed advisories.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from backend.app.core.config import settings
from backend.app.core.errors import StoreError
from backend.app.ingestion.reconciler import WeatherReconciler
from backend.app.storage.base import AlertStore, SosStore

logger = logging.getLogger(__name__)


class HealthStatus(str, Enum):
    HEALTHY = "healthy"
    DEGRADED = "degraded"  # partial functionality
    UNHEALTHY = "unhealthy"


@dataclass
class ComponentHealth:
    name: str
    status: HealthStatus = HealthStatus.HEALTHY
    latency_ms: float = 0.0
    message: str = ""
    details: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        d: Dict[str, Any] = {
            "name": self.name,
            "status": self.status.value,
            "latency_ms": round(self.latency_ms, 2),
        }
        if self.message:
            d["message"] = self.message
        if self.details:
            d["details"] = self.details
        return d


@dataclass
class HealthReport:
    status: HealthStatus = HealthStatus.HEALTHY
    version: str = settings.APP_VERSION
    environment: str = settings.ENVIRONMENT
    timestamp: str = ""
    uptime_seconds: float = 0.0
    components: List[ComponentHealth] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "status": self.status.value,
            "version": self.version,
            "environment": self.environment,
            "timestamp": self.timestamp or datetime.now(timezone.utc).isoformat(),
            "uptime_seconds": round(self.uptime_seconds, 1),
            "components": [c.to_dict() for c in self.components],
        }


# Track application start time
_start_time = time.monotonic()


async def check_store(alert_store: AlertStore, sos_store: SosStore) -> ComponentHealth:
    """Count both collections; any store failure is unhealthy."""
    comp = ComponentHealth(name="store")
    start = time.monotonic()
    try:
        comp.details = {
            "backend": type(alert_store).__name__,
            "alerts": await alert_store.count(),
            "sos": await sos_store.count(),
        }
        comp.message = "Store reachable"
    except StoreError as e:
        comp.status = HealthStatus.UNHEALTHY
        comp.message = "Store unavailable"
        logger.error("Health check: store unavailable: %s", e.reason or e.message)
    comp.latency_ms = (time.monotonic() - start) * 1000
    return comp


def check_weather_feed(reconciler: Optional[WeatherReconciler]) -> ComponentHealth:
    """Feed key present and last pass outcome."""
    comp = ComponentHealth(name="weather_feed")
    if reconciler is None or not reconciler.feed.configured:
        comp.status = HealthStatus.DEGRADED
        comp.message = "OPENWEATHER_API_KEY not set; weather sync disabled"
        return comp

    report = reconciler.last_report
    comp.details = {"localities": len(reconciler.localities)}
    if report is None:
        comp.message = "No sync completed yet"
        return comp

    comp.details.update({
        "last_sync": report.completed_at.isoformat() if report.completed_at else None,
        "last_upserted": report.upserted,
        "failed_localities": report.failed_localities,
    })
    if report.outcomes and len(report.failed_localities) == len(report.outcomes):
        comp.status = HealthStatus.DEGRADED
        comp.message = "Last sync failed for every locality"
    else:
        comp.message = "Weather sync active"
    return comp


async def run_health_check(
    alert_store: AlertStore,
    sos_store: SosStore,
    reconciler: Optional[WeatherReconciler] = None,
) -> HealthReport:
    """Run all health checks and aggregate into a report."""
    report = HealthReport(
        timestamp=datetime.now(timezone.utc).isoformat(),
        uptime_seconds=time.monotonic() - _start_time,
    )

    report.components.append(await check_store(alert_store, sos_store))
    report.components.append(check_weather_feed(reconciler))

    statuses = [c.status for c in report.components]
    if HealthStatus.UNHEALTHY in statuses:
        report.status = HealthStatus.UNHEALTHY
    elif HealthStatus.DEGRADED in statuses:
        report.status = HealthStatus.DEGRADED
    else:
        report.status = HealthStatus.HEALTHY

    return report
