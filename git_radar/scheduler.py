"""Periodic trigger for full scans."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from datetime import timedelta

from .scanner import ScanOrchestrator

LOGGER = logging.getLogger(__name__)


class ScanScheduler:
    """Triggers a full scan on start and then every ``interval`` until stopped.

    Triggers never wait for the previous scan; the orchestrator drops a trigger
    that arrives while a pass is still running.
    """

    def __init__(self, orchestrator: ScanOrchestrator, interval: timedelta) -> None:
        if interval <= timedelta(0):
            raise ValueError("Scan interval must be positive")
        self._orchestrator = orchestrator
        self._interval = interval
        self._loop_task: asyncio.Task[None] | None = None
        self._scan_tasks: set[asyncio.Task] = set()
        self._stop_event = asyncio.Event()

    @property
    def running(self) -> bool:
        return self._loop_task is not None and not self._loop_task.done()

    async def start(self) -> None:
        if self.running:
            LOGGER.warning("Scan scheduler already running")
            return
        self._stop_event.clear()
        self._loop_task = asyncio.create_task(self._loop(), name="git-radar-scheduler")
        LOGGER.info("Scan scheduler started with a %s interval", self._interval)

    async def stop(self) -> None:
        self._stop_event.set()
        if self._loop_task is not None:
            await self._loop_task
            self._loop_task = None
        for task in list(self._scan_tasks):
            task.cancel()
        for task in list(self._scan_tasks):
            with contextlib.suppress(asyncio.CancelledError):
                await task
        LOGGER.info("Scan scheduler stopped")

    async def run(self) -> None:
        """Start the scheduler and block until :meth:`stop` is called or the task is cancelled."""

        await self.start()
        try:
            await self._stop_event.wait()
        finally:
            await self.stop()

    def trigger(self) -> asyncio.Task:
        """Start a full scan in the background and return its task."""

        task = asyncio.create_task(self._orchestrator.perform_full_scan())
        self._scan_tasks.add(task)
        task.add_done_callback(self._scan_tasks.discard)
        return task

    async def _loop(self) -> None:
        while not self._stop_event.is_set():
            self.trigger()
            try:
                await asyncio.wait_for(self._stop_event.wait(), timeout=self._interval.total_seconds())
            except asyncio.TimeoutError:
                continue


__all__ = ["ScanScheduler"]
