"""Parameterized SQL for searching stored repositories."""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, Field, field_validator

from .models import Category


REPOSITORY_COLUMNS = """
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
"""


class SortKey(str, Enum):
    UTILITY = "utility"
    STARS = "stars"
    RECENT = "recent"


ORDER_BY: dict[SortKey, str] = {
    SortKey.UTILITY: "(ai_analysis->>'utility_score')::numeric DESC",
    SortKey.STARS: "stars DESC",
    SortKey.RECENT: "github_updated_at DESC NULLS LAST",
}


class SearchFilters(BaseModel):
    """Filters accepted by the repository search."""

    language: str | None = None
    category: Category | None = None
    min_stars: int | None = Field(default=None, ge=0)
    search: str | None = Field(default=None, description="Free text matched against name and description.")
    sort: SortKey = SortKey.UTILITY
    limit: int = Field(default=50, ge=1, le=100)

    @field_validator("language", "search")
    @classmethod
    def _blank_to_none(cls, value: str | None) -> str | None:
        if value is None:
            return None
        value = value.strip()
        return value or None


def build_repository_query(filters: SearchFilters) -> tuple[str, list[Any]]:
    """Return ``(sql, args)`` for ``filters`` using asyncpg ``$n`` placeholders."""

    clauses: list[str] = []
    args: list[Any] = []

    def bind(value: Any) -> str:
        args.append(value)
        return f"${len(args)}"

    if filters.language:
        clauses.append(f"lower(language) = lower({bind(filters.language)})")
    if filters.category:
        clauses.append(f"ai_analysis->>'category' = {bind(filters.category.value)}")
    if filters.min_stars is not None:
        clauses.append(f"stars >= {bind(filters.min_stars)}")
    if filters.search:
        pattern = bind(f"%{_escape_like(filters.search)}%")
        clauses.append(f"(name ILIKE {pattern} OR description ILIKE {pattern})")

    sql = f"SELECT {REPOSITORY_COLUMNS} FROM repositories"
    if clauses:
        sql += " WHERE " + " AND ".join(clauses)
    sql += f" ORDER BY {ORDER_BY[filters.sort]}, github_id"
    sql += f" LIMIT {bind(filters.limit)}"
    return sql, args


def _escape_like(value: str) -> str:
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


__all__ = ["ORDER_BY", "REPOSITORY_COLUMNS", "SearchFilters", "SortKey", "build_repository_query"]
