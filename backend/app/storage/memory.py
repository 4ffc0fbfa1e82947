"""
memory.py — In-process stores.

Default backend when DATABASE_URL is unset, and the fake used by the test
suite. Every method body runs without an ``await`` between lookup and
write, so on a single event loop each insert/upsert is atomic.
"""

from __future__ import annotations

import uuid
from dataclasses import replace
from typing import Dict, List

from backend.app.alerts.models import Alert, FeedAlertKey
from backend.app.mesh.models import SosRecord
from backend.app.storage.base import AlertStore, SosStore


def _new_id() -> str:
    return uuid.uuid4().hex


class InMemoryAlertStore(AlertStore):

    def __init__(self) -> None:
        self._alerts: List[Alert] = []
        self._feed_index: Dict[FeedAlertKey, int] = {}

    async def insert(self, alert: Alert) -> Alert:
        stored = replace(alert, id=alert.id or _new_id())
        self._alerts.append(stored)
        return replace(stored)

    async def find_all(self) -> List[Alert]:
        return [replace(a) for a in self._alerts]

    async def upsert(self, alert: Alert) -> Alert:
        self._check_upsert_source(alert)
        key = alert.feed_key
        position = self._feed_index.get(key)

        if position is None:
            stored = replace(alert, id=alert.id or _new_id())
            self._feed_index[key] = len(self._alerts)
            self._alerts.append(stored)
        else:
            # Overwrite in place, identity (id, position) unchanged
            stored = replace(alert, id=self._alerts[position].id)
            self._alerts[position] = stored

        return replace(stored)

    async def count(self) -> int:
        return len(self._alerts)

    def clear(self) -> None:
        self._alerts.clear()
        self._feed_index.clear()


class InMemorySosStore(SosStore):

    def __init__(self) -> None:
        self._records: List[SosRecord] = []

    async def insert(self, record: SosRecord) -> SosRecord:
        stored = replace(record, id=record.id or _new_id())
        self._records.append(stored)
        return stored

    async def find_all(self) -> List[SosRecord]:
        return list(self._records)

    async def count(self) -> int:
        return len(self._records)

    def clear(self) -> None:
        self._records.clear()
