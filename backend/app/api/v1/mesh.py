"""
FastAPI routes: offline mesh SOS relay.

    POST /api/mesh/sos               — store a relayed SOS
    GET  /api/mesh/sos?lat&lon&radius — relayed SOS (optionally within radius km), store order
"""

from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from backend.app.api.deps import get_sos_service
from backend.app.api.schemas import SosCreate, SosCreatedResponse, SosOut
from backend.app.mesh.sos_service import SosService

router = APIRouter(prefix="/mesh", tags=["mesh"])


@router.post(
    "/sos",
    response_model=SosCreatedResponse,
    summary="Relay an SOS",
)
async def relay_sos(
    body: SosCreate,
    service: SosService = Depends(get_sos_service),
):
    record = await service.relay(body.senderId, body.msg, lat=body.lat, lon=body.lon)
    return {"message": "SOS stored for mesh sync", "record": record.to_dict()}


@router.get(
    "/sos",
    response_model=List[SosOut],
    summary="List relayed SOS",
)
async def list_sos(
    lat: Optional[str] = Query(None),
    lon: Optional[str] = Query(None),
    radius: Optional[str] = Query(None, description="Radius in km"),
    service: SosService = Depends(get_sos_service),
):
    records = await service.list_sos(lat, lon, radius)
    return [r.to_dict() for r in records]
