"""
FastAPI route: image risk scan.

    POST /api/ai-scan — classify an uploaded image (placeholder) and store an alert
"""

from __future__ import annotations

from fastapi import APIRouter, Depends

from backend.app.api.deps import get_scan_service
from backend.app.api.schemas import ScanRequest, ScanResponse
from backend.app.risk.scanner import RiskScanService

router = APIRouter(tags=["ai-scan"])


@router.post(
    "/ai-scan",
    response_model=ScanResponse,
    summary="Scan an image for hazards",
    description=(
        "Runs the configured risk classifier on the image payload and "
        "stores the outcome as an 'ai-scan' alert. The default classifier "
        "is a random placeholder and does not inspect the image."
    ),
)
async def ai_scan(
    body: ScanRequest,
    service: RiskScanService = Depends(get_scan_service),
):
    result = await service.scan(
        body.imageBase64,
        lat=body.lat,
        lon=body.lon,
        reporter=body.reporter,
    )
    return {"message": "AI analysis complete", "result": result.to_dict()}
