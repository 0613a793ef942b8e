"""Domain models used by the scanner."""

from __future__ import annotations

import json
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Mapping

from .config import UTC


class Category(str, Enum):
    AUTHENTICATION = "authentication"
    DATABASE = "database"
    API = "api"
    UI_COMPONENT = "ui-component"
    FRAMEWORK = "framework"
    TESTING = "testing"
    DEVOPS = "devops"
    AI_ML = "ai-ml"
    DATA_SCIENCE = "data-science"
    CLI_TOOL = "cli-tool"
    WEB_FRAMEWORK = "web-framework"
    MOBILE = "mobile"
    GENERAL = "general"


class Complexity(str, Enum):
    BEGINNER = "beginner"
    INTERMEDIATE = "intermediate"
    ADVANCED = "advanced"


@dataclass(slots=True, frozen=True)
class RepositorySnapshot:
    """A repository as returned by one search page, plus its README once fetched."""

    external_id: int
    full_name: str
    name: str
    owner_login: str
    language: str | None
    description: str
    stars: int
    forks: int
    created_at: datetime | None
    updated_at: datetime | None
    homepage: str | None
    is_archived: bool
    has_docs_folder: bool
    fetched_at: datetime
    readme: str | None = None

    @classmethod
    def from_graphql(cls, payload: dict[str, Any], fetched_at: datetime) -> "RepositorySnapshot":
        """Convert a GraphQL search node into a :class:`RepositorySnapshot`."""

        owner = payload.get("owner") or {}
        primary_language = payload.get("primaryLanguage") or {}

        return cls(
            external_id=int(payload["databaseId"]),
            full_name=payload.get("nameWithOwner") or "",
            name=payload.get("name") or "",
            owner_login=owner.get("login") or "",
            language=primary_language.get("name"),
            description=payload.get("description") or "",
            stars=payload.get("stargazerCount") or 0,
            forks=payload.get("forkCount") or 0,
            created_at=parse_timestamp(payload.get("createdAt")),
            updated_at=parse_timestamp(payload.get("updatedAt")),
            homepage=payload.get("homepageUrl") or None,
            is_archived=bool(payload.get("isArchived")),
            has_docs_folder=bool(payload.get("docsFolder")),
            fetched_at=fetched_at.astimezone(UTC),
        )


@dataclass(slots=True, frozen=True)
class AnalysisResult:
    """Heuristic metadata derived from a repository and its README."""

    category: Category
    use_case: str
    problem_solved: str
    target_audience: str
    tech_stack: tuple[str, ...]
    utility_score: float
    complexity: Complexity
    production_ready: bool
    best_for: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "category": self.category.value,
            "use_case": self.use_case,
            "problem_solved": self.problem_solved,
            "target_audience": self.target_audience,
            "tech_stack": list(self.tech_stack),
            "utility_score": self.utility_score,
            "complexity": self.complexity.value,
            "production_ready": self.production_ready,
            "best_for": self.best_for,
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), sort_keys=True, ensure_ascii=False)

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "AnalysisResult":
        """Rebuild an analysis from its stored form, tolerating older records."""

        try:
            category = Category(payload.get("category") or Category.GENERAL.value)
        except ValueError:
            category = Category.GENERAL
        try:
            complexity = Complexity(payload.get("complexity") or Complexity.BEGINNER.value)
        except ValueError:
            complexity = Complexity.BEGINNER

        return cls(
            category=category,
            use_case=payload.get("use_case") or "",
            problem_solved=payload.get("problem_solved") or "",
            target_audience=payload.get("target_audience") or "",
            tech_stack=tuple(payload.get("tech_stack") or ()),
            utility_score=float(payload.get("utility_score") or 0.0),
            complexity=complexity,
            production_ready=bool(payload.get("production_ready")),
            best_for=payload.get("best_for") or "",
        )


@dataclass(slots=True)
class RepositoryRecord:
    """Stored representation of a scanned repository, keyed by ``external_id``."""

    external_id: int
    full_name: str
    name: str
    description: str
    language: str | None
    stars: int
    forks: int
    github_created_at: datetime | None
    github_updated_at: datetime | None
    homepage: str | None
    readme: str | None
    has_docs_folder: bool
    analysis: AnalysisResult
    last_scanned_at: datetime
    scan_version: str

    @classmethod
    def from_snapshot(
        cls,
        snapshot: RepositorySnapshot,
        readme: str,
        analysis: AnalysisResult,
        scanned_at: datetime,
        scan_version: str,
    ) -> "RepositoryRecord":
        return cls(
            external_id=snapshot.external_id,
            full_name=snapshot.full_name,
            name=snapshot.name,
            description=snapshot.description,
            language=snapshot.language,
            stars=snapshot.stars,
            forks=snapshot.forks,
            github_created_at=snapshot.created_at,
            github_updated_at=snapshot.updated_at,
            homepage=snapshot.homepage,
            readme=readme,
            has_docs_folder=snapshot.has_docs_folder or _links_docs_folder(readme),
            analysis=analysis,
            last_scanned_at=scanned_at.astimezone(UTC),
            scan_version=scan_version,
        )

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "RepositoryRecord":
        """Convert a ``repositories`` row into a :class:`RepositoryRecord`."""

        analysis = row["ai_analysis"]
        if isinstance(analysis, str):
            analysis = json.loads(analysis)

        return cls(
            external_id=row["github_id"],
            full_name=row["full_name"],
            name=row["name"],
            description=row["description"] or "",
            language=row["language"],
            stars=row["stars"],
            forks=row["forks"],
            github_created_at=row["github_created_at"],
            github_updated_at=row["github_updated_at"],
            homepage=row["homepage"],
            readme=row["readme_content"],
            has_docs_folder=row["has_docs_folder"],
            analysis=AnalysisResult.from_dict(analysis or {}),
            last_scanned_at=row["last_scanned_at"],
            scan_version=row["scan_version"],
        )


def parse_timestamp(value: str | None) -> datetime | None:
    if not value:
        return None
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(value)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed.astimezone(UTC)


def _links_docs_folder(readme: str) -> bool:
    lowered = readme.lower()
    return "](docs/" in lowered or "](./docs/" in lowered


__all__ = [
    "AnalysisResult",
    "Category",
    "Complexity",
    "RepositoryRecord",
    "RepositorySnapshot",
    "parse_timestamp",
]
