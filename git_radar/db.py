"""Persistence layer for scanned repositories and user preferences."""

from __future__ import annotations

import json
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any

import asyncpg

from .config import DatabaseSettings
from .models import RepositoryRecord
from .queries import REPOSITORY_COLUMNS, SearchFilters, build_repository_query

SQL_DIR = Path(__file__).resolve().parent / "sql"
REPOSITORIES_SCHEMA = SQL_DIR / "repositories.sql"
USERS_SCHEMA = SQL_DIR / "users.sql"

UPSERT_SQL = """
    INSERT INTO repositories (
        github_id,
        full_name,
        name,
        description,
        language,
        stars,
        forks,
        github_created_at,
        github_updated_at,
        homepage,
        readme_content,
        has_docs_folder,
        ai_analysis,
        last_scanned_at,
        scan_version
    ) VALUES (
        $1, $2, $3, $4, $5, $6, $7, $8, $9, $10, $11, $12, $13, $14, $15
    )
    ON CONFLICT (github_id) DO UPDATE SET
        full_name = EXCLUDED.full_name,
        name = EXCLUDED.name,
        description = EXCLUDED.description,
        language = EXCLUDED.language,
        stars = EXCLUDED.stars,
        forks = EXCLUDED.forks,
        github_created_at = EXCLUDED.github_created_at,
        github_updated_at = EXCLUDED.github_updated_at,
        homepage = EXCLUDED.homepage,
        readme_content = EXCLUDED.readme_content,
        has_docs_folder = EXCLUDED.has_docs_folder,
        ai_analysis = EXCLUDED.ai_analysis,
        last_scanned_at = EXCLUDED.last_scanned_at,
        scan_version = EXCLUDED.scan_version
"""


@dataclass(slots=True)
class RepositoryStats:
    total: int
    by_language: list[tuple[str, int]]
    by_category: list[tuple[str, int]]


@dataclass(slots=True)
class ScanSummary:
    repository_count: int
    last_scanned_at: datetime | None


class _PostgresStore:
    """Connection pool handling shared by both stores."""

    schema_path: Path

    def __init__(self, dsn: str, statement_timeout: float) -> None:
        self._dsn = dsn
        self._statement_timeout = statement_timeout
        self._pool: asyncpg.Pool | None = None

    async def connect(self) -> None:
        if self._pool is not None:
            return
        self._pool = await asyncpg.create_pool(
            dsn=self._dsn,
            init=self._init_connection,
            command_timeout=self._statement_timeout,
        )

    async def close(self) -> None:
        if self._pool:
            await self._pool.close()
            self._pool = None

    async def __aenter__(self):
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:  # type: ignore[override]
        await self.close()

    async def create_schema(self) -> None:
        pool = self._ensure_pool()
        statements = _load_sql_statements(self.schema_path)
        async with pool.acquire() as conn:
            for statement in statements:
                await conn.execute(statement)

    def _ensure_pool(self) -> asyncpg.Pool:
        if self._pool is None:
            raise RuntimeError("Database pool has not been initialized")
        return self._pool

    async def _init_connection(self, conn: asyncpg.Connection) -> None:
        await conn.execute("SET TIME ZONE 'UTC'")
        await conn.execute(f"SET statement_timeout = {int(self._statement_timeout * 1000)}")
        await conn.set_type_codec("jsonb", encoder=json.dumps, decoder=json.loads, schema="pg_catalog")


class Database(_PostgresStore):
    """Async access to the repository store."""

    schema_path = REPOSITORIES_SCHEMA

    def __init__(self, settings: DatabaseSettings) -> None:
        super().__init__(settings.dsn, settings.statement_timeout)

    async def find_by_external_id(self, external_id: int) -> RepositoryRecord | None:
        pool = self._ensure_pool()
        row = await pool.fetchrow(
            f"SELECT {REPOSITORY_COLUMNS} FROM repositories WHERE github_id = $1",
            external_id,
        )
        return RepositoryRecord.from_row(row) if row else None

    async def upsert_repository(self, record: RepositoryRecord) -> None:
        """Insert or replace the record stored under ``record.external_id``."""

        pool = self._ensure_pool()
        await pool.execute(
            UPSERT_SQL,
            record.external_id,
            record.full_name,
            record.name,
            record.description,
            record.language,
            record.stars,
            record.forks,
            record.github_created_at,
            record.github_updated_at,
            record.homepage,
            record.readme,
            record.has_docs_folder,
            record.analysis.to_dict(),
            record.last_scanned_at,
            record.scan_version,
        )

    async def search_repositories(self, filters: SearchFilters) -> list[RepositoryRecord]:
        pool = self._ensure_pool()
        sql, args = build_repository_query(filters)
        rows = await pool.fetch(sql, *args)
        return [RepositoryRecord.from_row(row) for row in rows]

    async def repository_stats(self, top: int = 10) -> RepositoryStats:
        pool = self._ensure_pool()
        async with pool.acquire() as conn:
            total = await conn.fetchval("SELECT COUNT(*) FROM repositories")
            languages = await conn.fetch(
                """
                SELECT language AS key, COUNT(*) AS count
                FROM repositories
                WHERE language IS NOT NULL
                GROUP BY language
                ORDER BY count DESC, key
                LIMIT $1
                """,
                top,
            )
            categories = await conn.fetch(
                """
                SELECT ai_analysis->>'category' AS key, COUNT(*) AS count
                FROM repositories
                WHERE ai_analysis ? 'category'
                GROUP BY key
                ORDER BY count DESC, key
                LIMIT $1
                """,
                top,
            )
        return RepositoryStats(
            total=total,
            by_language=[(row["key"], row["count"]) for row in languages],
            by_category=[(row["key"], row["count"]) for row in categories],
        )

    async def scan_summary(self) -> ScanSummary:
        pool = self._ensure_pool()
        row = await pool.fetchrow("SELECT COUNT(*) AS total, MAX(last_scanned_at) AS last_scan FROM repositories")
        return ScanSummary(repository_count=row["total"], last_scanned_at=row["last_scan"])


class UserDatabase(_PostgresStore):
    """Read-only view of the user store used for personalization."""

    schema_path = USERS_SCHEMA

    def __init__(self, settings: DatabaseSettings) -> None:
        super().__init__(settings.users_dsn, settings.statement_timeout)

    async def read_user_preferences(self, user_id: int) -> dict[str, Any]:
        pool = self._ensure_pool()
        preferences = await pool.fetchval("SELECT preferences FROM users WHERE id = $1", user_id)
        return preferences if isinstance(preferences, dict) else {}


def _load_sql_statements(path: Path) -> list[str]:
    script = path.read_text(encoding="utf-8")
    statements: list[str] = []
    for part in script.split(";"):
        statement = part.strip()
        if statement:
            statements.append(statement)
    return statements


__all__ = ["Database", "RepositoryStats", "ScanSummary", "UserDatabase"]
