from __future__ import annotations

import asyncio
from datetime import datetime, timedelta

import pytest

from git_radar.config import ScanSettings, UTC
from git_radar.scanner import ScanOrchestrator
from git_radar.scheduler import ScanScheduler


class CountingOrchestrator:
    def __init__(self) -> None:
        self.calls = 0

    async def perform_full_scan(self):
        self.calls += 1
        return None


class HangingSource:
    """Search blocks forever, so the first scan never finishes on its own."""

    def __init__(self) -> None:
        self.search_calls = 0

    async def search(self, language, **kwargs):
        self.search_calls += 1
        await asyncio.Event().wait()

    async def fetch_readme(self, full_name):  # pragma: no cover - never reached
        return None


class EmptyDatabase:
    async def find_by_external_id(self, external_id):  # pragma: no cover - never reached
        return None


def test_scheduler_triggers_immediately_on_start():
    orchestrator = CountingOrchestrator()
    scheduler = ScanScheduler(orchestrator, timedelta(hours=12))

    async def scenario() -> None:
        await scheduler.start()
        for _ in range(5):
            await asyncio.sleep(0)
        assert scheduler.running is True
        await scheduler.stop()

    asyncio.run(scenario())

    assert orchestrator.calls == 1
    assert scheduler.running is False


def test_scheduler_triggers_periodically():
    orchestrator = CountingOrchestrator()
    scheduler = ScanScheduler(orchestrator, timedelta(milliseconds=10))

    async def scenario() -> None:
        await scheduler.start()
        await asyncio.sleep(0.1)
        await scheduler.stop()

    asyncio.run(scenario())

    assert orchestrator.calls >= 3


def test_overlapping_triggers_do_not_start_a_second_pass():
    source = HangingSource()
    settings = ScanSettings(languages=("Python",), item_delay=0.0, language_delay=0.0)
    orchestrator = ScanOrchestrator(settings, source, EmptyDatabase(), clock=lambda: datetime.now(tz=UTC))
    scheduler = ScanScheduler(orchestrator, timedelta(milliseconds=10))

    async def scenario() -> None:
        await scheduler.start()
        await asyncio.sleep(0.1)
        assert orchestrator.in_progress is True
        await scheduler.stop()

    asyncio.run(scenario())

    assert source.search_calls == 1
    assert orchestrator.in_progress is False


def test_run_returns_after_stop():
    orchestrator = CountingOrchestrator()
    scheduler = ScanScheduler(orchestrator, timedelta(hours=1))

    async def scenario() -> None:
        runner = asyncio.create_task(scheduler.run())
        await asyncio.sleep(0.01)
        await scheduler.stop()
        await asyncio.wait_for(runner, timeout=1.0)

    asyncio.run(scenario())

    assert orchestrator.calls == 1


def test_scheduler_rejects_non_positive_interval():
    with pytest.raises(ValueError):
        ScanScheduler(CountingOrchestrator(), timedelta(0))
