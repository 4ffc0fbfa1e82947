"""
FastAPI dependencies — hand the services built in the app lifespan to routes.

Services live on ``app.state`` (see backend.app.main.create_app).
"""

from __future__ import annotations

from fastapi import Request

from backend.app.alerts.alert_service import AlertService
from backend.app.core.errors import AlertRelayError
from backend.app.ingestion.reconciler import WeatherReconciler
from backend.app.mesh.sos_service import SosService
from backend.app.risk.scanner import RiskScanService


def get_alert_service(request: Request) -> AlertService:
    return request.app.state.alert_service


def get_scan_service(request: Request) -> RiskScanService:
    return request.app.state.scan_service


def get_sos_service(request: Request) -> SosService:
    return request.app.state.sos_service


def get_reconciler(request: Request) -> WeatherReconciler:
    return request.app.state.reconciler


def require_manual_sync(request: Request) -> None:
    """Reject on-demand syncs unless WEATHER_MANUAL_SYNC_ENABLED is set."""
    if not request.app.state.manual_sync_enabled:
        raise AlertRelayError(
            "Manual weather sync is disabled",
            status_code=403,
            error_code="SYNC_DISABLED",
        )
