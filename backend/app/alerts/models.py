"""
models.py — Shared data structures for the alert store.

Defines:
    • HazardType  — coarse hazard classification (open set)
    • AlertSource — where an alert came from
    • Alert       — a stored hazard notice
    • FeedAlertKey — natural key for weather-feed reconciliation

═══════════════════════════════════════════════════════════════════════════
ALERT SOURCES
═══════════════════════════════════════════════════════════════════════════

    Source        Created by                 Updated by
    ──────────    ─────────────────────────  ──────────────────────
    manual        POST /api/alerts           never
    ai-scan       POST /api/ai-scan          never
    openweather   WeatherReconciler          WeatherReconciler (upsert)

Only ``openweather`` alerts are keyed: at most one stored record per
(alert text, district). Manual and ai-scan alerts are free to repeat
headlines. Nothing in the service deletes alerts.

═══════════════════════════════════════════════════════════════════════════
HAZARD TYPES
═══════════════════════════════════════════════════════════════════════════

Upstream vocabulary is uncontrolled, so ``Alert.type`` is a plain string.
HazardType lists the values the service itself produces; manual
submissions may carry any other label and it is stored verbatim.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, NamedTuple, Optional


DEFAULT_DESCRIPTION = "No description provided"


# ═══════════════════════════════════════════════════════════════════════════
# Enums
# ═══════════════════════════════════════════════════════════════════════════

class HazardType(str, Enum):
    """Known hazard labels. ``DEFAULT`` is the unclassified fallback."""
    STRUCTURAL = "structural"
    FIRE       = "fire"
    FLOOD      = "flood"
    LANDSLIDE  = "landslide"
    CYCLONE    = "cyclone"
    OTHER      = "other"
    DEFAULT    = "default"

    @classmethod
    def normalise(cls, value: Optional[str]) -> str:
        """Map a known label to its canonical value; keep unknown labels."""
        if not value:
            return cls.DEFAULT.value
        try:
            return cls(value.strip().lower()).value
        except ValueError:
            return value


class AlertSource(str, Enum):
    MANUAL      = "manual"
    AI_SCAN     = "ai-scan"
    OPENWEATHER = "openweather"


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(ts: datetime) -> datetime:
    """Timezone-aware UTC; naive datetimes are taken to be UTC already."""
    if ts.tzinfo is None:
        return ts.replace(tzinfo=timezone.utc)
    return ts.astimezone(timezone.utc)


def isoformat(ts: Optional[datetime]) -> Optional[str]:
    if ts is None:
        return None
    return as_utc(ts).isoformat()


# ═══════════════════════════════════════════════════════════════════════════
# Alert
# ═══════════════════════════════════════════════════════════════════════════

class FeedAlertKey(NamedTuple):
    """Reconciliation identity: (headline, district, source)."""
    alert: str
    district: str
    source: str = AlertSource.OPENWEATHER.value


@dataclass
class Alert:
    """A hazard notice as held by the alert store."""
    district: str
    alert: str
    severity: str
    description: str = DEFAULT_DESCRIPTION
    lat: Optional[float] = None
    lon: Optional[float] = None
    type: str = HazardType.DEFAULT.value
    issued_on: datetime = field(default_factory=utc_now)
    source: str = AlertSource.MANUAL.value

    # Assigned by the store on insert
    id: Optional[str] = None

    @property
    def feed_key(self) -> FeedAlertKey:
        return FeedAlertKey(self.alert, self.district, self.source)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "district": self.district,
            "alert": self.alert,
            "severity": self.severity,
            "description": self.description,
            "lat": self.lat,
            "lon": self.lon,
            "type": self.type,
            "issuedOn": isoformat(self.issued_on),
            "source": self.source,
        }
