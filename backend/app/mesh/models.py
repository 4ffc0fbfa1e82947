"""Offline mesh SOS record."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Optional

from backend.app.alerts.models import isoformat, utc_now


@dataclass(frozen=True)
class SosRecord:
    """A distress message relayed from the device mesh. Immutable once stored."""
    sender_id: str
    msg: str
    lat: Optional[float] = None
    lon: Optional[float] = None
    timestamp: datetime = field(default_factory=utc_now)
    id: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "senderId": self.sender_id,
            "msg": self.msg,
            "lat": self.lat,
            "lon": self.lon,
            "timestamp": isoformat(self.timestamp),
        }
