"""
FastAPI routes: hazard alerts.

    GET  /api/alerts?lat&lon&radius  — alerts (optionally within radius km), newest first
    POST /api/alerts                 — add a manual (government) alert
"""

from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from backend.app.alerts.alert_service import AlertService
from backend.app.api.deps import get_alert_service
from backend.app.api.schemas import AlertCreate, AlertCreatedResponse, AlertOut

router = APIRouter(tags=["alerts"])


@router.get(
    "/alerts",
    response_model=List[AlertOut],
    summary="List alerts",
    description=(
        "All stored alerts, newest first. When lat, lon and radius are all "
        "given and numeric, only alerts with coordinates within radius km "
        "are returned; otherwise no filter is applied."
    ),
)
async def list_alerts(
    lat: Optional[str] = Query(None, examples=["28.7041"]),
    lon: Optional[str] = Query(None, examples=["77.1025"]),
    radius: Optional[str] = Query(None, description="Radius in km", examples=["5"]),
    service: AlertService = Depends(get_alert_service),
):
    alerts = await service.list_alerts(lat, lon, radius)
    return [a.to_dict() for a in alerts]


@router.post(
    "/alerts",
    response_model=AlertCreatedResponse,
    summary="Add a manual alert",
)
async def create_alert(
    body: AlertCreate,
    service: AlertService = Depends(get_alert_service),
):
    alert = await service.submit_manual(
        district=body.district,
        alert=body.alert,
        severity=body.severity,
        description=body.description,
        lat=body.lat,
        lon=body.lon,
        type=body.type,
    )
    return {"message": "Govt Alert added", "alert": alert.to_dict()}
