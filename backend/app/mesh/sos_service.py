"""
sos_service.py — Store and look up SOS messages relayed over the offline mesh.

Records are append-only. Lookups return store order; a radius filter, when
requested, only removes records and never reorders them.
"""

from __future__ import annotations

import logging
from typing import Any, List, Optional

from backend.app.core.errors import ValidationError
from backend.app.mesh.models import SosRecord
from backend.app.spatial.radius_utils import apply_radius_query, parse_radius_query
from backend.app.storage.base import SosStore

logger = logging.getLogger(__name__)


class SosService:

    def __init__(self, store: SosStore):
        self.store = store

    async def relay(
        self,
        sender_id: Optional[str],
        msg: Optional[str],
        lat: Optional[float] = None,
        lon: Optional[float] = None,
    ) -> SosRecord:
        missing = [
            name for name, value in (("senderId", sender_id), ("msg", msg))
            if value is None or not str(value).strip()
        ]
        if missing:
            raise ValidationError("senderId and msg required", fields=missing)

        record = await self.store.insert(SosRecord(sender_id=sender_id, msg=msg, lat=lat, lon=lon))
        logger.info(
            "SOS stored for mesh sync from %s", record.sender_id,
            extra={"sender_id": record.sender_id},
        )
        return record

    async def list_sos(self, lat: Any = None, lon: Any = None, radius: Any = None) -> List[SosRecord]:
        query = parse_radius_query(lat, lon, radius)
        return apply_radius_query(query, await self.store.find_all())
