"""
FastAPI routes: OpenWeather alert sync.

    GET  /api/weather/localities — monitored localities and their coordinates
    POST /api/weather/sync       — run one reconciliation pass now (WEATHER_MANUAL_SYNC_ENABLED)
"""

from __future__ import annotations

from fastapi import APIRouter, Depends

from backend.app.api.deps import get_reconciler, require_manual_sync
from backend.app.api.schemas import SyncResponse
from backend.app.ingestion.reconciler import WeatherReconciler

router = APIRouter(prefix="/weather", tags=["weather-sync"])


@router.get(
    "/localities",
    summary="Monitored localities",
)
async def list_localities(reconciler: WeatherReconciler = Depends(get_reconciler)):
    return {
        "feed_configured": reconciler.feed.configured,
        "localities": [
            {"district": name, "lat": lat, "lon": lon}
            for name, (lat, lon) in reconciler.localities.items()
        ],
    }


@router.post(
    "/sync",
    response_model=SyncResponse,
    summary="Run a weather alert sync now",
    dependencies=[Depends(require_manual_sync)],
    description=(
        "Fetches advisories for every monitored locality and upserts them. "
        "Per-locality failures are reported in the body, not as an error "
        "status. Without an OpenWeather key the pass is skipped. Answers "
        "403 unless WEATHER_MANUAL_SYNC_ENABLED is set."
    ),
)
async def sync_now(reconciler: WeatherReconciler = Depends(get_reconciler)):
    report = await reconciler.reconcile_once()
    message = "Weather sync skipped" if report.skipped else "Weather sync complete"
    return {"message": message, "report": report.to_dict()}
