"""
reconciler.py — Merge OpenWeather advisories into the alert store.

═══════════════════════════════════════════════════════════════════════════
ONE PASS
═══════════════════════════════════════════════════════════════════════════

    for each monitored locality L (lat, lon):
        advisories = feed.fetch(lat, lon)            # may fail → log, next L
        for each advisory A:
            type  = classify_hazard(A.event)
            store.upsert(key = (A.event, L, "openweather"), fields…)

    Feed key missing → the whole pass is skipped (warned once).

Field mapping (advisory → Alert):

    Alert field   Value
    ───────────   ──────────────────────────────────────────────
    district      L
    alert         A.event
    type          classify_hazard(A.event)
    issued_on     A.start
    severity      ", ".join(A.tags)  or "General"
    description   A.description      or "No description"
    lat / lon     L's reference coordinate
    source        "openweather"

Identity is the event text only. If the feed renames an advisory
mid-lifecycle a second alert appears; this is accepted, the feed carries
no stable advisory id in this response.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Optional, Protocol, Tuple

from backend.app.alerts.models import Alert, AlertSource, HazardType, utc_now
from backend.app.core.errors import StoreError, UpstreamFetchError
from backend.app.ingestion.weather_service import WeatherAdvisory
from backend.app.storage.base import AlertStore

logger = logging.getLogger(__name__)


# ═══════════════════════════════════════════════════════════════════════════
# Constants
# ═══════════════════════════════════════════════════════════════════════════

MONITORED_LOCALITIES: Dict[str, Tuple[float, float]] = {
    "Delhi":     (28.7041, 77.1025),
    "Mumbai":    (19.0760, 72.8777),
    "Chennai":   (13.0827, 80.2707),
    "Kolkata":   (22.5726, 88.3639),
    "Bengaluru": (12.9716, 77.5946),
    "Hyderabad": (17.3850, 78.4867),
    "Ahmedabad": (23.0225, 72.5714),
    "Pune":      (18.5204, 73.8567),
    "Jaipur":    (26.9124, 75.7873),
    "Lucknow":   (26.8467, 80.9462),
}

FEED_SEVERITY_FALLBACK = "General"
FEED_DESCRIPTION_FALLBACK = "No description"


class AdvisoryFeed(Protocol):
    """What the reconciler needs from a feed client."""

    @property
    def configured(self) -> bool: ...

    async def fetch_advisories(self, latitude: float, longitude: float) -> List[WeatherAdvisory]: ...


# ═══════════════════════════════════════════════════════════════════════════
# Pure helpers
# ═══════════════════════════════════════════════════════════════════════════

def classify_hazard(event: str) -> str:
    """
    Coarse hazard type from free-text event names.

    >>> classify_hazard("Flood Warning")
    'flood'
    >>> classify_hazard("Severe Storm Watch")
    'cyclone'
    >>> classify_hazard("Heat Wave")
    'default'
    """
    text = (event or "").lower()
    if "flood" in text:
        return HazardType.FLOOD.value
    if "storm" in text:
        return HazardType.CYCLONE.value
    return HazardType.DEFAULT.value


def advisory_to_alert(advisory: WeatherAdvisory, district: str, coords: Tuple[float, float]) -> Alert:
    """Build the Alert that represents ``advisory`` for one locality."""
    tags = [t for t in advisory.tags if t]
    return Alert(
        district=district,
        alert=advisory.event,
        type=classify_hazard(advisory.event),
        issued_on=advisory.start,
        severity=", ".join(tags) if tags else FEED_SEVERITY_FALLBACK,
        description=advisory.description or FEED_DESCRIPTION_FALLBACK,
        lat=coords[0],
        lon=coords[1],
        source=AlertSource.OPENWEATHER.value,
    )


# ═══════════════════════════════════════════════════════════════════════════
# Reports
# ═══════════════════════════════════════════════════════════════════════════

@dataclass
class LocalityOutcome:
    district: str
    upserted: int = 0
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass
class ReconcileReport:
    started_at: datetime = field(default_factory=utc_now)
    completed_at: Optional[datetime] = None
    skipped: bool = False
    outcomes: List[LocalityOutcome] = field(default_factory=list)

    @property
    def upserted(self) -> int:
        return sum(o.upserted for o in self.outcomes)

    @property
    def failed_localities(self) -> List[str]:
        return [o.district for o in self.outcomes if not o.ok]

    def to_dict(self) -> Dict[str, object]:
        return {
            "started_at": self.started_at.isoformat(),
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "skipped": self.skipped,
            "upserted": self.upserted,
            "failed_localities": self.failed_localities,
            "localities": [
                {"district": o.district, "upserted": o.upserted, "error": o.error}
                for o in self.outcomes
            ],
        }


# ═══════════════════════════════════════════════════════════════════════════
# Reconciler
# ═══════════════════════════════════════════════════════════════════════════

class WeatherReconciler:
    """
    Pulls advisories for every monitored locality and upserts them.

    Usage:
        reconciler = WeatherReconciler(store, OpenWeatherClient())
        report = await reconciler.reconcile_once()
    """

    def __init__(
        self,
        store: AlertStore,
        feed: AdvisoryFeed,
        localities: Optional[Dict[str, Tuple[float, float]]] = None,
    ):
        self.store = store
        self.feed = feed
        self.localities = dict(localities if localities is not None else MONITORED_LOCALITIES)
        self.last_report: Optional[ReconcileReport] = None
        self._warned_unconfigured = False

    async def reconcile_once(self) -> ReconcileReport:
        """Run one full pass. Never raises for feed or store failures."""
        report = ReconcileReport()

        if not self.feed.configured:
            log = logger.debug if self._warned_unconfigured else logger.warning
            log("OPENWEATHER_API_KEY not set, skipping weather alert sync")
            self._warned_unconfigured = True
            report.skipped = True
            report.completed_at = utc_now()
            self.last_report = report
            return report

        for district, coords in self.localities.items():
            report.outcomes.append(await self._reconcile_locality(district, coords))

        report.completed_at = utc_now()
        self.last_report = report

        logger.info(
            "Weather sync: %d advisories upserted across %d localities, %d failed",
            report.upserted, len(report.outcomes), len(report.failed_localities),
            extra={"locality_count": len(report.outcomes), "advisory_count": report.upserted},
        )
        return report

    async def _reconcile_locality(self, district: str, coords: Tuple[float, float]) -> LocalityOutcome:
        outcome = LocalityOutcome(district=district)
        try:
            advisories = await self.feed.fetch_advisories(*coords)
            for advisory in advisories:
                await self.store.upsert(advisory_to_alert(advisory, district, coords))
                outcome.upserted += 1
        except UpstreamFetchError as e:
            outcome.error = e.message
            logger.error(
                "Error fetching OpenWeather alerts for %s [%s]: %s",
                district, e.status, e.message,
                extra={"district": district, "source": AlertSource.OPENWEATHER.value},
            )
        except StoreError as e:
            outcome.error = e.message
            logger.error(
                "Error storing OpenWeather alerts for %s: %s",
                district, e.reason or e.message,
                extra={"district": district, "source": AlertSource.OPENWEATHER.value},
            )
        except Exception as e:
            # One bad locality must not end the pass
            outcome.error = str(e) or type(e).__name__
            logger.exception("Unexpected weather sync failure for %s", district)
        return outcome
