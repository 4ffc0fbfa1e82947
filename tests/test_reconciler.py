"""
Tests for the OpenWeather → alert store reconciliation.

Covers:
    • Hazard classification heuristic
    • Advisory → Alert field mapping (fallbacks included)
    • Idempotence: repeated passes never duplicate
    • In-place update when an advisory changes
    • Per-locality failure containment (feed and store)
    • Missing credential → pass skipped, warned once
    • Scheduler start / stop

Run with:
    pytest tests/test_reconciler.py -v
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from typing import Dict, List, Optional, Tuple

import pytest

from backend.app.alerts.models import Alert, AlertSource
from backend.app.core.errors import StoreError, UpstreamFetchError
from backend.app.ingestion.reconciler import (
    MONITORED_LOCALITIES,
    WeatherReconciler,
    advisory_to_alert,
    classify_hazard,
)
from backend.app.ingestion.scheduler import ReconcileScheduler
from backend.app.ingestion.weather_service import WeatherAdvisory
from backend.app.storage.memory import InMemoryAlertStore


DELHI = (28.7041, 77.1025)
MUMBAI = (19.0760, 72.8777)
CHENNAI = (13.0827, 80.2707)
LOCALITIES = {"Delhi": DELHI, "Mumbai": MUMBAI, "Chennai": CHENNAI}

START = datetime(2026, 7, 1, 6, 0, tzinfo=timezone.utc)


def _advisory(
    event: str = "Flood Warning",
    start: datetime = START,
    description: str = "River levels rising",
    tags: Optional[List[str]] = None,
) -> WeatherAdvisory:
    return WeatherAdvisory(
        event=event,
        start=start,
        description=description,
        sender_name="IMD",
        tags=["Flood"] if tags is None else tags,
    )


class FakeFeed:
    """Feed double keyed by coordinate; an Exception value is raised."""

    def __init__(self, responses: Optional[Dict[Tuple[float, float], object]] = None, configured: bool = True):
        self.responses = responses or {}
        self._configured = configured
        self.calls: List[Tuple[float, float]] = []

    @property
    def configured(self) -> bool:
        return self._configured

    async def fetch_advisories(self, latitude: float, longitude: float) -> List[WeatherAdvisory]:
        self.calls.append((latitude, longitude))
        result = self.responses.get((latitude, longitude), [])
        if isinstance(result, Exception):
            raise result
        return list(result)


class FailingUpsertStore(InMemoryAlertStore):
    """Rejects upserts for one district."""

    def __init__(self, bad_district: str):
        super().__init__()
        self.bad_district = bad_district

    async def upsert(self, alert: Alert) -> Alert:
        if alert.district == self.bad_district:
            raise StoreError("alert.upsert", "connection reset")
        return await super().upsert(alert)


def _run(coro):
    return asyncio.run(coro)


# ═══════════════════════════════════════════════════════════════════════════
# Classification
# ═══════════════════════════════════════════════════════════════════════════

class TestClassifyHazard:

    @pytest.mark.parametrize("event,expected", [
        ("Flood Warning", "flood"),
        ("FLASH FLOOD WATCH", "flood"),
        ("Severe Storm", "cyclone"),
        ("Thunderstorm advisory", "cyclone"),
        ("Heat Wave", "default"),
        ("Cyclone Alert", "default"),
        ("", "default"),
    ])
    def test_substring_rules(self, event, expected):
        assert classify_hazard(event) == expected

    def test_flood_wins_over_storm(self):
        assert classify_hazard("Storm surge flooding") == "flood"


# ═══════════════════════════════════════════════════════════════════════════
# Field mapping
# ═══════════════════════════════════════════════════════════════════════════

class TestAdvisoryToAlert:

    def test_all_fields(self):
        alert = advisory_to_alert(
            _advisory(tags=["Flood", "Rain"]), "Delhi", DELHI,
        )
        assert alert.district == "Delhi"
        assert alert.alert == "Flood Warning"
        assert alert.type == "flood"
        assert alert.issued_on == START
        assert alert.severity == "Flood, Rain"
        assert alert.description == "River levels rising"
        assert (alert.lat, alert.lon) == DELHI
        assert alert.source == "openweather"

    def test_no_tags_gives_general(self):
        assert advisory_to_alert(_advisory(tags=[]), "Delhi", DELHI).severity == "General"

    def test_no_description_placeholder(self):
        alert = advisory_to_alert(_advisory(description=""), "Delhi", DELHI)
        assert alert.description == "No description"


# ═══════════════════════════════════════════════════════════════════════════
# Reconcile passes
# ═══════════════════════════════════════════════════════════════════════════

class TestReconcileOnce:

    def test_inserts_one_alert_per_event_and_locality(self):
        store = InMemoryAlertStore()
        feed = FakeFeed({
            DELHI: [_advisory("Flood Warning"), _advisory("Severe Storm")],
            MUMBAI: [_advisory("Flood Warning")],
        })
        report = _run(WeatherReconciler(store, feed, LOCALITIES).reconcile_once())

        alerts = _run(store.find_all())
        assert report.upserted == 3
        assert sorted((a.district, a.alert) for a in alerts) == [
            ("Delhi", "Flood Warning"),
            ("Delhi", "Severe Storm"),
            ("Mumbai", "Flood Warning"),
        ]
        assert {a.source for a in alerts} == {"openweather"}

    def test_identical_passes_are_idempotent(self):
        store = InMemoryAlertStore()
        feed = FakeFeed({DELHI: [_advisory("Flood Warning"), _advisory("Severe Storm")]})
        reconciler = WeatherReconciler(store, feed, LOCALITIES)

        _run(reconciler.reconcile_once())
        first = [a.to_dict() for a in _run(store.find_all())]
        _run(reconciler.reconcile_once())
        second = [a.to_dict() for a in _run(store.find_all())]

        assert len(second) == 2
        assert first == second

    def test_updates_existing_alert_in_place(self):
        store = InMemoryAlertStore()
        feed = FakeFeed({DELHI: [_advisory(tags=["Flood"])]})
        reconciler = WeatherReconciler(store, feed, LOCALITIES)
        _run(reconciler.reconcile_once())
        original_id = _run(store.find_all())[0].id

        later = datetime(2026, 7, 2, tzinfo=timezone.utc)
        feed.responses[DELHI] = [_advisory(start=later, description="Updated", tags=["Extreme"])]
        _run(reconciler.reconcile_once())

        alerts = _run(store.find_all())
        assert len(alerts) == 1
        assert alerts[0].id == original_id
        assert alerts[0].severity == "Extreme"
        assert alerts[0].description == "Updated"
        assert alerts[0].issued_on == later

    def test_renamed_advisory_creates_second_alert(self):
        store = InMemoryAlertStore()
        feed = FakeFeed({DELHI: [_advisory("Flood Warning")]})
        reconciler = WeatherReconciler(store, feed, LOCALITIES)
        _run(reconciler.reconcile_once())
        feed.responses[DELHI] = [_advisory("Flood Warning (Updated)")]
        _run(reconciler.reconcile_once())
        assert _run(store.count()) == 2

    def test_manual_alert_with_same_text_untouched(self):
        store = InMemoryAlertStore()
        manual = _run(store.insert(Alert(
            district="Delhi", alert="Flood Warning", severity="High",
            source=AlertSource.MANUAL.value,
        )))
        feed = FakeFeed({DELHI: [_advisory("Flood Warning")]})
        _run(WeatherReconciler(store, feed, LOCALITIES).reconcile_once())

        alerts = _run(store.find_all())
        assert len(alerts) == 2
        assert alerts[0].id == manual.id
        assert alerts[0].severity == "High"
        assert alerts[0].source == "manual"

    def test_fetch_failure_does_not_stop_other_localities(self, caplog):
        store = InMemoryAlertStore()
        feed = FakeFeed({
            DELHI: [_advisory("Flood Warning")],
            MUMBAI: UpstreamFetchError("openweather", "timed out after 10s", status="timeout"),
            CHENNAI: [_advisory("Severe Storm")],
        })
        with caplog.at_level(logging.ERROR):
            report = _run(WeatherReconciler(store, feed, LOCALITIES).reconcile_once())

        assert feed.calls == [DELHI, MUMBAI, CHENNAI]
        assert report.failed_localities == ["Mumbai"]
        assert {a.district for a in _run(store.find_all())} == {"Delhi", "Chennai"}
        assert "Mumbai" in caplog.text

    def test_unexpected_error_is_contained(self):
        store = InMemoryAlertStore()
        feed = FakeFeed({DELHI: RuntimeError("boom"), MUMBAI: [_advisory()]})
        report = _run(WeatherReconciler(store, feed, LOCALITIES).reconcile_once())
        assert report.failed_localities == ["Delhi"]
        assert _run(store.count()) == 1

    def test_store_failure_is_contained(self):
        store = FailingUpsertStore(bad_district="Delhi")
        feed = FakeFeed({DELHI: [_advisory()], MUMBAI: [_advisory()]})
        report = _run(WeatherReconciler(store, feed, LOCALITIES).reconcile_once())
        assert report.failed_localities == ["Delhi"]
        assert [a.district for a in _run(store.find_all())] == ["Mumbai"]

    def test_missing_credential_skips_pass(self):
        store = InMemoryAlertStore()
        feed = FakeFeed({DELHI: [_advisory()]}, configured=False)
        report = _run(WeatherReconciler(store, feed, LOCALITIES).reconcile_once())
        assert report.skipped
        assert feed.calls == []
        assert _run(store.count()) == 0

    def test_missing_credential_warns_once(self, caplog):
        reconciler = WeatherReconciler(InMemoryAlertStore(), FakeFeed(configured=False), LOCALITIES)
        with caplog.at_level(logging.WARNING):
            _run(reconciler.reconcile_once())
            _run(reconciler.reconcile_once())
        warnings = [r for r in caplog.records if "OPENWEATHER_API_KEY" in r.getMessage()]
        assert len(warnings) == 1

    def test_last_report_recorded(self):
        reconciler = WeatherReconciler(InMemoryAlertStore(), FakeFeed(), LOCALITIES)
        report = _run(reconciler.reconcile_once())
        assert reconciler.last_report is report
        assert report.completed_at is not None
        assert report.to_dict()["failed_localities"] == []

    def test_default_localities(self):
        reconciler = WeatherReconciler(InMemoryAlertStore(), FakeFeed())
        assert len(reconciler.localities) == 10
        assert reconciler.localities["Delhi"] == DELHI
        assert MONITORED_LOCALITIES["Lucknow"] == (26.8467, 80.9462)


# ═══════════════════════════════════════════════════════════════════════════
# Scheduler
# ═══════════════════════════════════════════════════════════════════════════

class TestReconcileScheduler:

    def test_first_pass_runs_on_start(self):
        async def scenario():
            store = InMemoryAlertStore()
            feed = FakeFeed({DELHI: [_advisory()]})
            scheduler = ReconcileScheduler(WeatherReconciler(store, feed, LOCALITIES), interval_seconds=3600)
            await scheduler.start()
            for _ in range(50):
                if await store.count():
                    break
                await asyncio.sleep(0.01)
            await scheduler.stop()
            return store, scheduler

        store, scheduler = _run(scenario())
        assert _run(store.count()) == 1
        assert not scheduler.running

    def test_repeats_on_interval(self):
        async def scenario():
            feed = FakeFeed()
            scheduler = ReconcileScheduler(
                WeatherReconciler(InMemoryAlertStore(), feed, {"Delhi": DELHI}),
                interval_seconds=0.01,
            )
            await scheduler.start()
            await asyncio.sleep(0.2)
            await scheduler.stop()
            return feed

        feed = _run(scenario())
        assert len(feed.calls) >= 2

    def test_start_twice_is_noop(self):
        async def scenario():
            scheduler = ReconcileScheduler(
                WeatherReconciler(InMemoryAlertStore(), FakeFeed(), LOCALITIES),
                interval_seconds=3600,
            )
            await scheduler.start()
            first = scheduler._timer_task
            await scheduler.start()
            same = scheduler._timer_task is first
            await scheduler.stop()
            return same

        assert _run(scenario())
