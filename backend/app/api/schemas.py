"""
Pydantic schemas for the alert / scan / mesh API.

Request fields the service treats as "required" are still declared
Optional here: a missing field must produce the service's own 400 message
("district, alert, and severity required"), not a generic schema error.
Wrong JSON types (``"lat": "north"``) are rejected by pydantic and also
surface as 400.

Wire names are camelCase (``issuedOn``, ``senderId``, ``imageBase64``).
"""

from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, Field


# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------

class AlertCreate(BaseModel):
    """Body for POST /api/alerts."""
    district: Optional[str] = Field(None, examples=["Delhi"])
    alert: Optional[str] = Field(None, description="Headline", examples=["Heavy Rain"])
    severity: Optional[str] = Field(None, examples=["High"])
    description: Optional[str] = Field(None, examples=["Waterlogging expected in low areas"])
    lat: Optional[float] = Field(None, ge=-90.0, le=90.0, examples=[28.7041])
    lon: Optional[float] = Field(None, ge=-180.0, le=180.0, examples=[77.1025])
    type: Optional[str] = Field(
        None, examples=["flood"],
        description="structural / fire / flood / landslide / cyclone / other; free text accepted",
    )


class ScanRequest(BaseModel):
    """Body for POST /api/ai-scan."""
    imageBase64: Optional[str] = Field(None, description="Opaque image payload")
    lat: Optional[float] = Field(None, ge=-90.0, le=90.0, examples=[19.076])
    lon: Optional[float] = Field(None, ge=-180.0, le=180.0, examples=[72.8777])
    reporter: Optional[str] = Field(None, examples=["volunteer-17"])


class SosCreate(BaseModel):
    """Body for POST /api/mesh/sos."""
    senderId: Optional[str] = Field(None, examples=["node-a41f"])
    msg: Optional[str] = Field(None, examples=["Trapped on roof, 3 people"])
    lat: Optional[float] = Field(None, ge=-90.0, le=90.0, examples=[13.0827])
    lon: Optional[float] = Field(None, ge=-180.0, le=180.0, examples=[80.2707])


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------

class AlertOut(BaseModel):
    id: Optional[str] = None
    district: str
    alert: str
    severity: str
    description: str
    lat: Optional[float] = None
    lon: Optional[float] = None
    type: str
    issuedOn: Optional[str] = None
    source: str


class SosOut(BaseModel):
    id: Optional[str] = None
    senderId: str
    msg: str
    lat: Optional[float] = None
    lon: Optional[float] = None
    timestamp: Optional[str] = None


class AlertCreatedResponse(BaseModel):
    message: str
    alert: AlertOut


class ScanResultOut(BaseModel):
    severity: str
    detectedType: str
    aiAlert: AlertOut


class ScanResponse(BaseModel):
    message: str
    result: ScanResultOut


class SosCreatedResponse(BaseModel):
    message: str
    record: SosOut


class LocalityOutcomeOut(BaseModel):
    district: str
    upserted: int
    error: Optional[str] = None


class SyncReportOut(BaseModel):
    started_at: str
    completed_at: Optional[str] = None
    skipped: bool
    upserted: int
    failed_localities: List[str]
    localities: List[LocalityOutcomeOut]


class SyncResponse(BaseModel):
    message: str
    report: SyncReportOut
