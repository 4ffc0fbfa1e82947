"""
scheduler.py — Fixed-interval trigger for the weather reconciler.

Fires one pass at start-up and then every WEATHER_SYNC_INTERVAL_SECONDS.
Each tick launches its pass as its own task, so the timer keeps wall-clock
cadence even when a pass runs long; overlapping passes are allowed since
every upsert is atomic and they converge on the same rows.

Usage:
    scheduler = ReconcileScheduler(reconciler, interval_seconds=300)
    await scheduler.start()
    ...
    await scheduler.stop()
"""

from __future__ import annotations

import asyncio
import logging
from typing import Optional, Set

from backend.app.ingestion.reconciler import WeatherReconciler

logger = logging.getLogger(__name__)


class ReconcileScheduler:

    def __init__(self, reconciler: WeatherReconciler, interval_seconds: float = 300.0):
        self.reconciler = reconciler
        self.interval_seconds = interval_seconds
        self._running = False
        self._timer_task: Optional[asyncio.Task] = None
        self._passes: Set[asyncio.Task] = set()

    @property
    def running(self) -> bool:
        return self._running

    async def start(self) -> None:
        """Start the timer (first pass fires immediately)."""
        if self._running:
            return
        self._running = True
        self._timer_task = asyncio.create_task(self._run_timer())
        logger.info("Weather sync scheduler started (every %.0fs)", self.interval_seconds)

    async def stop(self) -> None:
        """Stop the timer and cancel passes still in flight."""
        self._running = False
        tasks = [t for t in (self._timer_task, *self._passes) if t is not None]
        for task in tasks:
            task.cancel()
        for task in tasks:
            try:
                await task
            except asyncio.CancelledError:
                pass
        self._timer_task = None
        self._passes.clear()
        logger.info("Weather sync scheduler stopped")

    def _launch_pass(self) -> None:
        task = asyncio.create_task(self.reconciler.reconcile_once())
        self._passes.add(task)
        task.add_done_callback(self._passes.discard)

    async def _run_timer(self) -> None:
        while self._running:
            self._launch_pass()
            await asyncio.sleep(self.interval_seconds)
