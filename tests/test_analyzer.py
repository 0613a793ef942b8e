from __future__ import annotations

from datetime import datetime, timedelta

import pytest

from git_radar.analyzer import (
    CATEGORY_RULES,
    analyze,
    assess_complexity,
    detect_category,
    extract_tech_stack,
    is_production_ready,
    utility_score,
)
from git_radar.config import UTC
from git_radar.models import Category, Complexity, RepositorySnapshot


NOW = datetime(2026, 1, 15, 12, 0, tzinfo=UTC)


def make_snapshot(**overrides) -> RepositorySnapshot:
    fields = {
        "external_id": 1,
        "full_name": "acme/demo",
        "name": "demo",
        "owner_login": "acme",
        "language": "Python",
        "description": "",
        "stars": 0,
        "forks": 0,
        "created_at": NOW - timedelta(days=900),
        "updated_at": NOW - timedelta(days=90),
        "homepage": None,
        "is_archived": False,
        "has_docs_folder": False,
        "fetched_at": NOW,
    }
    fields.update(overrides)
    return RepositorySnapshot(**fields)


def documented_readme(length: int = 2500) -> str:
    text = (
        "# Demo\n\n"
        "A production grade toolkit.\n\n"
        "## Installation\n\n"
        "pip install demo\n\n"
        "## Usage\n\n"
        "run it\n"
    )
    return text + "." * (length - len(text))


def test_category_priority_prefers_earlier_rule():
    assert detect_category("auth jwt database orm") is Category.AUTHENTICATION
    assert analyze(make_snapshot(), "auth jwt database orm").category is Category.AUTHENTICATION


def test_category_table_follows_documented_order():
    assert [category for category, _ in CATEGORY_RULES] == [
        Category.AUTHENTICATION,
        Category.DATABASE,
        Category.API,
        Category.UI_COMPONENT,
        Category.FRAMEWORK,
        Category.TESTING,
        Category.DEVOPS,
        Category.AI_ML,
        Category.DATA_SCIENCE,
        Category.CLI_TOOL,
        Category.WEB_FRAMEWORK,
        Category.MOBILE,
    ]


def test_category_uses_description_and_falls_back_to_general():
    snapshot = make_snapshot(description="Pandas helpers for notebooks")
    assert analyze(snapshot, "Nothing specific here at all.").category is Category.DATA_SCIENCE
    assert analyze(make_snapshot(), "Nothing specific here at all.").category is Category.GENERAL


def test_production_ready_negative_marker_short_circuits():
    snapshot = make_snapshot(stars=50_000)
    result = analyze(snapshot, "production ready but still beta")
    assert result.production_ready is False


def test_production_ready_positive_markers():
    assert is_production_ready(make_snapshot(), "a stable library") is True
    assert is_production_ready(make_snapshot(), "released as v2.3 last month") is True
    assert is_production_ready(make_snapshot(), "battle-tested in the field") is True


def test_production_ready_fallbacks_on_stars_and_idle_time():
    idle = make_snapshot(stars=700, updated_at=NOW - timedelta(days=400))
    active = make_snapshot(stars=700, updated_at=NOW - timedelta(days=10))
    popular = make_snapshot(stars=1_500, updated_at=NOW - timedelta(days=10))

    assert is_production_ready(idle, "plain text") is True
    assert is_production_ready(active, "plain text") is False
    assert is_production_ready(popular, "plain text") is True


def test_tech_stack_starts_with_language_and_is_deduplicated():
    readme = "Built with Python, FastAPI and Redis. Ships in Docker. FastAPI again."
    assert extract_tech_stack("Python", readme) == ("python", "fastapi", "docker", "redis")
    assert extract_tech_stack(None, readme) == ("python", "fastapi", "docker", "redis")
    assert extract_tech_stack("TypeScript", "plain") == ("typescript",)


def test_keywords_do_not_match_inside_other_words():
    prose = "A high performance web framework with great information on the platform."
    assert analyze(make_snapshot(), prose).category is Category.FRAMEWORK
    assert detect_category("Written by the original author, with interest in rapid client scenarios.") is Category.GENERAL


def test_keywords_match_whole_words_and_plurals():
    assert detect_category("A fast ORM for modern apps") is Category.DATABASE
    assert detect_category("Expose REST endpoints quickly") is Category.API
    assert detect_category("Reusable widgets for dashboards") is Category.UI_COMPONENT
    assert detect_category("Drop-in OAuth2 for your app") is Category.AUTHENTICATION


def test_tech_stack_ignores_embedded_keywords():
    assert extract_tech_stack("Go", "We trust this reactive regular expression engine") == ("go",)
    assert extract_tech_stack("Go", "Rust bindings, an Express adapter and React hooks") == ("go", "react", "express", "rust")


def test_readiness_markers_require_whole_words():
    popular = make_snapshot(stars=5_000, updated_at=NOW - timedelta(days=10))
    assert is_production_ready(popular, "Sorted in alphabetical order. Used in production.") is True
    assert is_production_ready(make_snapshot(), "Public alpha, expect breaking changes") is False


def test_star_bonus_uses_highest_tier_only():
    readme = "short"
    old = NOW - timedelta(days=365)
    assert utility_score(make_snapshot(stars=15_000, updated_at=old), readme) == 6.5
    assert utility_score(make_snapshot(stars=1_500, updated_at=old), readme) == 6.0
    assert utility_score(make_snapshot(stars=150, updated_at=old), readme) == 5.5
    assert utility_score(make_snapshot(stars=50, updated_at=old), readme) == 5.0


@pytest.mark.parametrize("stars", [0, 101, 10_001, 10**12])
def test_utility_score_stays_within_bounds(stars):
    readme = documented_readme(6000) + " Examples"
    score = utility_score(make_snapshot(stars=stars, updated_at=NOW), readme)
    assert 0.0 <= score <= 10.0


def test_complexity_thresholds():
    assert assess_complexity("x" * 2000) is Complexity.BEGINNER
    assert assess_complexity("x" * 2001) is Complexity.INTERMEDIATE
    assert assess_complexity("x" * 5001) is Complexity.ADVANCED


def test_analyze_is_deterministic():
    snapshot = make_snapshot(stars=1234, description="A REST api toolkit")
    readme = documented_readme()

    first = analyze(snapshot, readme)
    second = analyze(snapshot, readme)

    assert first == second
    assert first.to_json() == second.to_json()


def test_documented_popular_repository_scores_nine():
    snapshot = make_snapshot(external_id=42, stars=15_000, updated_at=NOW)
    readme = documented_readme(2500)

    result = analyze(snapshot, readme)

    assert len(readme) == 2500
    assert result.utility_score == 9.0
    assert result.production_ready is True
    assert result.complexity is Complexity.INTERMEDIATE
    assert result.category is Category.GENERAL
    assert result.tech_stack == ("python",)
    assert result.use_case == "A production grade toolkit."
    assert result.target_audience == "developers"


def test_missing_fields_use_safe_defaults():
    snapshot = make_snapshot(language=None, description="", updated_at=None, stars=0)
    result = analyze(snapshot, "Some readme text")

    assert result.tech_stack == ()
    assert result.utility_score == 5.0
    assert result.use_case == "Some readme text"
