"""Decides whether a stored repository is due for another scan."""

from __future__ import annotations

from datetime import datetime, timedelta

from .config import UTC
from .models import RepositoryRecord


def needs_scan(record: RepositoryRecord | None, window: timedelta, now: datetime | None = None) -> bool:
    """Return ``True`` for unknown repositories or records older than ``window``."""

    if record is None:
        return True
    now = now or datetime.now(tz=UTC)
    return now - record.last_scanned_at > window


__all__ = ["needs_scan"]
