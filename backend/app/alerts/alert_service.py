"""
alert_service.py — Alert submission and geo-filtered retrieval.

    list_alerts()   → all alerts, optional radius filter, newest first
    submit_manual() → validate + insert a government/manual alert

Ordering: after filtering, alerts are sorted by ``issued_on`` descending.
The sort is stable, so alerts issued at the same instant keep the store's
insertion order.
"""

from __future__ import annotations

import logging
from typing import Any, List, Optional

from backend.app.alerts.models import (
    Alert,
    AlertSource,
    DEFAULT_DESCRIPTION,
    HazardType,
    as_utc,
)
from backend.app.core.errors import ValidationError
from backend.app.spatial.radius_utils import apply_radius_query, parse_radius_query
from backend.app.storage.base import AlertStore

logger = logging.getLogger(__name__)


def _blank(value: Optional[str]) -> bool:
    return value is None or not str(value).strip()


def sort_newest_first(alerts: List[Alert]) -> List[Alert]:
    return sorted(alerts, key=lambda a: as_utc(a.issued_on), reverse=True)


class AlertService:

    def __init__(self, store: AlertStore):
        self.store = store

    async def list_alerts(
        self,
        lat: Any = None,
        lon: Any = None,
        radius: Any = None,
    ) -> List[Alert]:
        """Alerts within ``radius`` km of (lat, lon), or all alerts when the triple is incomplete."""
        query = parse_radius_query(lat, lon, radius)
        alerts = apply_radius_query(query, await self.store.find_all())
        return sort_newest_first(alerts)

    async def submit_manual(
        self,
        district: Optional[str],
        alert: Optional[str],
        severity: Optional[str],
        description: Optional[str] = None,
        lat: Optional[float] = None,
        lon: Optional[float] = None,
        type: Optional[str] = None,
    ) -> Alert:
        missing = [
            name for name, value in
            (("district", district), ("alert", alert), ("severity", severity))
            if _blank(value)
        ]
        if missing:
            raise ValidationError("district, alert, and severity required", fields=missing)

        stored = await self.store.insert(Alert(
            district=district,
            alert=alert,
            severity=severity,
            description=description or DEFAULT_DESCRIPTION,
            lat=lat,
            lon=lon,
            type=HazardType.normalise(type),
            source=AlertSource.MANUAL.value,
        ))
        logger.info(
            "Manual alert added for %s: %s", stored.district, stored.alert,
            extra={"alert_id": stored.id, "district": stored.district, "source": stored.source},
        )
        return stored
