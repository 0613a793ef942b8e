"""High level orchestration of the scan-and-score pipeline."""

from __future__ import annotations

import asyncio
import dataclasses
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable

from .analyzer import analyze
from .config import ScanSettings, UTC
from .db import Database
from .github_client import GitHubClientError
from .models import RepositoryRecord, RepositorySnapshot
from .source import GitHubRepositorySource
from .staleness import needs_scan

LOGGER = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(tz=UTC)


@dataclass(slots=True)
class FullScanResult:
    processed: dict[str, int]
    started_at: datetime
    finished_at: datetime

    @property
    def total(self) -> int:
        return sum(self.processed.values())


@dataclass(slots=True, frozen=True)
class ScanStatus:
    in_progress: bool
    last_started_at: datetime | None
    last_finished_at: datetime | None
    last_processed: int | None
    completed_runs: int
    last_error: str | None


@dataclass(slots=True, frozen=True)
class HealthReport:
    scan: ScanStatus
    repository_count: int
    last_scanned_at: datetime | None


@dataclass(slots=True)
class ScanState:
    in_progress: bool = False
    last_started_at: datetime | None = None
    last_finished_at: datetime | None = None
    last_processed: int | None = None
    completed_runs: int = 0
    last_error: str | None = None
    processed_by_language: dict[str, int] = field(default_factory=dict)


class ScanOrchestrator:
    """Runs scan passes over the tracked languages, one repository at a time."""

    def __init__(
        self,
        settings: ScanSettings,
        source: GitHubRepositorySource,
        database: Database,
        *,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._settings = settings
        self._source = source
        self._database = database
        self._clock = clock
        self._state = ScanState()

    @property
    def in_progress(self) -> bool:
        return self._state.in_progress

    def status(self) -> ScanStatus:
        state = self._state
        return ScanStatus(
            in_progress=state.in_progress,
            last_started_at=state.last_started_at,
            last_finished_at=state.last_finished_at,
            last_processed=state.last_processed,
            completed_runs=state.completed_runs,
            last_error=state.last_error,
        )

    async def health(self) -> HealthReport:
        summary = await self._database.scan_summary()
        return HealthReport(
            scan=self.status(),
            repository_count=summary.repository_count,
            last_scanned_at=summary.last_scanned_at,
        )

    async def perform_full_scan(self) -> FullScanResult | None:
        """Scan every tracked language; returns ``None`` when a pass is already running."""

        if self._state.in_progress:
            LOGGER.info("Scan already in progress; ignoring trigger")
            return None

        # No await between the check above and this assignment.
        self._state.in_progress = True
        started_at = self._clock()
        self._state.last_started_at = started_at
        self._state.processed_by_language = {}
        languages = self._settings.languages
        LOGGER.info("Starting full scan over %s", ", ".join(languages))

        try:
            for index, language in enumerate(languages):
                if index:
                    await asyncio.sleep(self._settings.language_delay)
                self._state.processed_by_language[language] = await self.scan_language(language)
        except Exception as exc:
            self._state.last_error = f"{type(exc).__name__}: {exc}"
            LOGGER.exception("Full scan aborted")
            return None
        else:
            self._state.last_error = None
            result = FullScanResult(
                processed=dict(self._state.processed_by_language),
                started_at=started_at,
                finished_at=self._clock(),
            )
            self._state.completed_runs += 1
            LOGGER.info("Full scan finished with %s repositories processed", result.total)
            return result
        finally:
            self._state.in_progress = False
            self._state.last_finished_at = self._clock()
            self._state.last_processed = sum(self._state.processed_by_language.values())

    async def scan_language(self, language: str) -> int:
        """Scan one page of ``language`` repositories and return how many were stored."""

        LOGGER.info("Scanning %s repositories", language)
        try:
            snapshots = await self._source.search(
                language,
                min_stars=self._settings.min_stars,
                exclude_archived=True,
                page_size=self._settings.batch_size,
            )
        except GitHubClientError as exc:
            LOGGER.error("Search for %s failed; skipping language this cycle: %s", language, exc)
            return 0

        LOGGER.info("Found %s %s repositories", len(snapshots), language)
        processed = 0
        for snapshot in snapshots:
            try:
                existing = await self._database.find_by_external_id(snapshot.external_id)
            except Exception:
                LOGGER.exception("Lookup failed for %s", snapshot.full_name)
                continue
            if not needs_scan(existing, self._settings.freshness_window, self._clock()):
                LOGGER.debug("Skipping %s; scanned at %s", snapshot.full_name, existing.last_scanned_at)
                continue

            try:
                if await self._process(snapshot):
                    processed += 1
            except Exception:
                LOGGER.exception("Failed to process %s", snapshot.full_name)
            await asyncio.sleep(self._settings.item_delay)

        LOGGER.info("Stored %s %s repositories", processed, language)
        return processed

    async def _process(self, snapshot: RepositorySnapshot) -> bool:
        readme = await self._source.fetch_readme(snapshot.full_name)
        if not readme or len(readme) < self._settings.min_readme_length:
            LOGGER.info("No usable README for %s", snapshot.full_name)
            return False

        snapshot = dataclasses.replace(snapshot, readme=readme)
        analysis = analyze(snapshot, readme)
        record = RepositoryRecord.from_snapshot(
            snapshot,
            readme,
            analysis,
            scanned_at=self._clock(),
            scan_version=self._settings.scan_version,
        )
        await self._database.upsert_repository(record)
        LOGGER.debug(
            "Saved %s (category=%s, score=%s)",
            snapshot.full_name,
            analysis.category.value,
            analysis.utility_score,
        )
        return True


__all__ = [
    "FullScanResult",
    "HealthReport",
    "ScanOrchestrator",
    "ScanStatus",
]
