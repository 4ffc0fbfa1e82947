"""
base.py — Repository interfaces for alerts and mesh SOS records.

The service logic (reconciler, risk scan, API) only talks to these
interfaces, so it runs unchanged against the in-memory stores or the
SQLAlchemy stores.

Contract for implementations:
    • insert()  — single atomic write; assigns ``id``; returns the stored copy
    • find_all() — every record, in insertion order
    • upsert()  — single atomic conditional write keyed by
                  (alert, district, source='openweather'); never a
                  read-then-write, so overlapping reconcile passes converge
    • failures of the backing store raise StoreError
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import List

from backend.app.alerts.models import Alert, AlertSource
from backend.app.mesh.models import SosRecord


class AlertStore(ABC):
    """Durable collection of Alert records."""

    @abstractmethod
    async def insert(self, alert: Alert) -> Alert:
        ...

    @abstractmethod
    async def find_all(self) -> List[Alert]:
        ...

    @abstractmethod
    async def upsert(self, alert: Alert) -> Alert:
        """Insert, or overwrite in place the record sharing ``alert.feed_key``."""

    @abstractmethod
    async def count(self) -> int:
        ...

    @staticmethod
    def _check_upsert_source(alert: Alert) -> None:
        if alert.source != AlertSource.OPENWEATHER.value:
            raise ValueError(
                f"Only '{AlertSource.OPENWEATHER.value}' alerts are keyed, "
                f"got source={alert.source!r}"
            )


class SosStore(ABC):
    """Durable, append-only collection of relayed SOS records."""

    @abstractmethod
    async def insert(self, record: SosRecord) -> SosRecord:
        ...

    @abstractmethod
    async def find_all(self) -> List[SosRecord]:
        ...

    @abstractmethod
    async def count(self) -> int:
        ...
