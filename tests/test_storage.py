"""
Tests for the alert / SOS stores.

Both backends run the same scenarios: the in-memory stores directly, the
SQLAlchemy stores against a throwaway SQLite file (aiosqlite).

Covers:
    • insert assigns ids, find_all keeps insertion order
    • upsert is keyed on (alert, district) for openweather alerts only
    • upsert overwrites in place (same id, same position)
    • concurrent upserts of one advisory converge on one record
    • upsert refuses non-feed alerts
    • store failures surface as StoreError
"""

from __future__ import annotations

import asyncio
from datetime import datetime, timezone

import pytest

from backend.app.alerts.models import Alert, AlertSource
from backend.app.core.database import Database
from backend.app.core.errors import StoreError
from backend.app.mesh.models import SosRecord
from backend.app.storage.memory import InMemoryAlertStore, InMemorySosStore
from backend.app.storage.sql import SqlAlertStore, SqlSosStore


T0 = datetime(2026, 7, 1, 6, 0, tzinfo=timezone.utc)
T1 = datetime(2026, 7, 2, 6, 0, tzinfo=timezone.utc)


def _feed_alert(
    alert: str = "Flood Warning",
    district: str = "Delhi",
    severity: str = "Flood",
    issued_on: datetime = T0,
) -> Alert:
    return Alert(
        district=district,
        alert=alert,
        severity=severity,
        description="River levels rising",
        lat=28.7041,
        lon=77.1025,
        type="flood",
        issued_on=issued_on,
        source=AlertSource.OPENWEATHER.value,
    )


def _manual_alert(alert: str = "Flood Warning", district: str = "Delhi") -> Alert:
    return Alert(district=district, alert=alert, severity="High", issued_on=T0)


# ═══════════════════════════════════════════════════════════════════════════
# Backend harness
# ═══════════════════════════════════════════════════════════════════════════

@pytest.fixture(params=["memory", "sqlite"])
def backend(request, tmp_path):
    """Returns ``run(scenario)``; the scenario receives (alert_store, sos_store)."""

    def run(scenario):
        async def go():
            if request.param == "memory":
                return await scenario(InMemoryAlertStore(), InMemorySosStore())
            db = Database(f"sqlite+aiosqlite:///{tmp_path / 'relay.db'}")
            await db.init()
            try:
                return await scenario(SqlAlertStore(db), SqlSosStore(db))
            finally:
                await db.close()
        return asyncio.run(go())

    return run


class TestAlertStore:

    def test_insert_assigns_id_and_keeps_order(self, backend):
        async def scenario(alerts, _):
            first = await alerts.insert(_manual_alert("A"))
            second = await alerts.insert(_manual_alert("B"))
            return first, second, await alerts.find_all()

        first, second, stored = backend(scenario)
        assert first.id is not None and second.id is not None
        assert first.id != second.id
        assert [a.alert for a in stored] == ["A", "B"]

    def test_round_trip_fields(self, backend):
        async def scenario(alerts, _):
            await alerts.insert(_feed_alert())
            return (await alerts.find_all())[0]

        stored = backend(scenario)
        assert stored.district == "Delhi"
        assert stored.severity == "Flood"
        assert stored.type == "flood"
        assert stored.source == "openweather"
        assert (stored.lat, stored.lon) == (28.7041, 77.1025)
        assert stored.to_dict()["issuedOn"] == "2026-07-01T06:00:00+00:00"

    def test_upsert_inserts_then_overwrites_in_place(self, backend):
        async def scenario(alerts, _):
            await alerts.insert(_manual_alert("Before"))
            created = await alerts.upsert(_feed_alert())
            await alerts.insert(_manual_alert("After"))
            updated = await alerts.upsert(_feed_alert(severity="Extreme", issued_on=T1))
            return created, updated, await alerts.find_all()

        created, updated, stored = backend(scenario)
        assert updated.id == created.id
        assert [a.alert for a in stored] == ["Before", "Flood Warning", "After"]
        assert stored[1].severity == "Extreme"
        assert stored[1].to_dict()["issuedOn"] == "2026-07-02T06:00:00+00:00"

    def test_upsert_key_includes_district(self, backend):
        async def scenario(alerts, _):
            await alerts.upsert(_feed_alert(district="Delhi"))
            await alerts.upsert(_feed_alert(district="Mumbai"))
            await alerts.upsert(_feed_alert(district="Delhi"))
            return await alerts.count()

        assert backend(scenario) == 2

    def test_upsert_ignores_manual_alert_with_same_text(self, backend):
        async def scenario(alerts, _):
            await alerts.insert(_manual_alert())
            await alerts.insert(_manual_alert())
            await alerts.upsert(_feed_alert())
            await alerts.upsert(_feed_alert())
            return await alerts.find_all()

        stored = backend(scenario)
        assert [a.source for a in stored] == ["manual", "manual", "openweather"]

    def test_concurrent_upserts_converge(self, backend):
        async def scenario(alerts, _):
            await asyncio.gather(*(
                alerts.upsert(_feed_alert(severity=f"Tag {i}")) for i in range(8)
            ))
            return await alerts.find_all()

        stored = backend(scenario)
        assert len(stored) == 1
        assert stored[0].severity.startswith("Tag ")

    def test_upsert_rejects_non_feed_alert(self, backend):
        async def scenario(alerts, _):
            with pytest.raises(ValueError):
                await alerts.upsert(_manual_alert())
            return await alerts.count()

        assert backend(scenario) == 0


class TestSosStore:

    def test_insert_and_list(self, backend):
        async def scenario(_, sos):
            await sos.insert(SosRecord(sender_id="node-1", msg="help", lat=13.08, lon=80.27))
            await sos.insert(SosRecord(sender_id="node-2", msg="water rising"))
            return await sos.find_all(), await sos.count()

        records, count = backend(scenario)
        assert count == 2
        assert [r.sender_id for r in records] == ["node-1", "node-2"]
        assert all(r.id is not None for r in records)
        assert records[1].lat is None


# ═══════════════════════════════════════════════════════════════════════════
# Failures
# ═══════════════════════════════════════════════════════════════════════════

class TestSqlFailures:

    def _uninitialised(self, tmp_path) -> Database:
        # No init(): every query hits a missing table
        return Database(f"sqlite+aiosqlite:///{tmp_path / 'empty.db'}")

    def test_find_all_raises_store_error(self, tmp_path):
        async def go():
            db = self._uninitialised(tmp_path)
            try:
                await SqlAlertStore(db).find_all()
            finally:
                await db.close()

        with pytest.raises(StoreError) as exc_info:
            asyncio.run(go())
        assert exc_info.value.message == "Error fetching alerts"
        assert exc_info.value.operation == "alert.find_all"
        assert exc_info.value.reason

    def test_insert_raises_store_error(self, tmp_path):
        async def go():
            db = self._uninitialised(tmp_path)
            try:
                await SqlSosStore(db).insert(SosRecord(sender_id="n", msg="m"))
            finally:
                await db.close()

        with pytest.raises(StoreError) as exc_info:
            asyncio.run(go())
        assert exc_info.value.message == "Error storing SOS"
        assert exc_info.value.status_code == 500
