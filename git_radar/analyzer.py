"""Deterministic README heuristics used to score repositories.

Everything here is a pure function of a :class:`RepositorySnapshot` and its
README text. The keyword tables are evaluated in the order they are written:
category detection is a priority list, not a vote, so reordering a table
changes results. Keywords match whole words only (an optional plural "s" is
allowed), so "orm" does not fire on "performance".
"""

from __future__ import annotations

import re
from datetime import timedelta

from .models import AnalysisResult, Category, Complexity, RepositorySnapshot


CATEGORY_RULES: tuple[tuple[Category, tuple[str, ...]], ...] = (
    (
        Category.AUTHENTICATION,
        ("auth", "authentication", "authorization", "oauth", "oauth2", "jwt", "login", "single sign-on"),
    ),
    (Category.DATABASE, ("database", "orm", "sql", "postgresql", "mysql", "sqlite", "query builder", "migrations")),
    (Category.API, ("api", "rest", "graphql", "endpoint")),
    (Category.UI_COMPONENT, ("ui component", "component library", "ui kit", "design system", "widget")),
    (Category.FRAMEWORK, ("framework",)),
    (Category.TESTING, ("testing", "test runner", "unit test", "assertion", "mocking")),
    (Category.DEVOPS, ("devops", "docker", "kubernetes", "ci/cd", "deployment", "terraform")),
    (
        Category.AI_ML,
        ("machine learning", "deep learning", "neural network", "llm", "artificial intelligence", "pytorch", "tensorflow"),
    ),
    (Category.DATA_SCIENCE, ("data science", "pandas", "numpy", "jupyter", "data analysis", "visualization")),
    (Category.CLI_TOOL, ("command line", "command-line", "cli", "terminal")),
    (Category.WEB_FRAMEWORK, ("web framework", "http server", "routing", "middleware")),
    (Category.MOBILE, ("android", "ios", "mobile", "react native", "flutter")),
)

# keyword -> tag, in detection order
TECH_KEYWORDS: dict[str, str] = {
    "typescript": "typescript",
    "javascript": "javascript",
    "python": "python",
    "react": "react",
    "vue": "vue",
    "angular": "angular",
    "node.js": "nodejs",
    "nodejs": "nodejs",
    "express": "express",
    "django": "django",
    "flask": "flask",
    "fastapi": "fastapi",
    "spring": "spring",
    "docker": "docker",
    "kubernetes": "kubernetes",
    "postgres": "postgresql",
    "postgresql": "postgresql",
    "mysql": "mysql",
    "sqlite": "sqlite",
    "mongodb": "mongodb",
    "redis": "redis",
    "graphql": "graphql",
    "grpc": "grpc",
    "tensorflow": "tensorflow",
    "pytorch": "pytorch",
    "rust": "rust",
    "webassembly": "webassembly",
    "async": "async",
    "asyncio": "async",
}

PROBLEM_SOLVED: dict[Category, str] = {
    Category.AUTHENTICATION: "Securing user identity and access control",
    Category.DATABASE: "Storing, querying and migrating application data",
    Category.API: "Building or consuming web APIs",
    Category.UI_COMPONENT: "Assembling user interfaces from reusable components",
    Category.FRAMEWORK: "Providing structure for building applications",
    Category.TESTING: "Verifying code correctness automatically",
    Category.DEVOPS: "Automating build, deployment and infrastructure",
    Category.AI_ML: "Training and serving machine learning models",
    Category.DATA_SCIENCE: "Analysing and visualising data",
    Category.CLI_TOOL: "Automating tasks from the terminal",
    Category.WEB_FRAMEWORK: "Serving HTTP applications",
    Category.MOBILE: "Building mobile applications",
    Category.GENERAL: "General-purpose development needs",
}

BEST_FOR: dict[Category, str] = {
    Category.AUTHENTICATION: "adding login and permissions to an app",
    Category.DATABASE: "data-heavy backends",
    Category.API: "service integration",
    Category.UI_COMPONENT: "frontend projects",
    Category.FRAMEWORK: "starting new applications",
    Category.TESTING: "improving test coverage",
    Category.DEVOPS: "shipping and operating services",
    Category.AI_ML: "ML experimentation and inference",
    Category.DATA_SCIENCE: "notebooks and analytics",
    Category.CLI_TOOL: "developer productivity",
    Category.WEB_FRAMEWORK: "web backends",
    Category.MOBILE: "mobile apps",
    Category.GENERAL: "general use",
}

TARGET_AUDIENCE: dict[Complexity, str] = {
    Complexity.BEGINNER: "beginners",
    Complexity.INTERMEDIATE: "developers",
    Complexity.ADVANCED: "experienced developers",
}

NEGATIVE_READINESS = ("beta", "alpha", "experimental", "work in progress", "work-in-progress")
POSITIVE_READINESS = ("production", "stable", "battle-tested", "battle tested")
RELEASE_MARKER = re.compile(r"\bv\d+\.\d+")

BASE_SCORE = 5.0
STAR_TIERS = ((10_000, 1.5), (1_000, 1.0), (100, 0.5))
LONG_README = 2_000
SECTION_BONUSES = (("installation", 0.5), ("usage", 0.5), ("examples", 0.5))
RECENT_WINDOW = timedelta(days=30)
RECENT_BONUS = 0.5

ADVANCED_README = 5_000
INTERMEDIATE_README = 2_000

STABLE_STARS = 500
STABLE_IDLE = timedelta(days=365)
POPULAR_STARS = 1_000

USE_CASE_LIMIT = 200


def keyword_pattern(keyword: str) -> re.Pattern[str]:
    """Match ``keyword`` as whole words, allowing a trailing plural ``s``."""

    return re.compile(rf"\b{re.escape(keyword)}s?\b")


_CATEGORY_PATTERNS = tuple(
    (category, tuple(keyword_pattern(keyword) for keyword in keywords)) for category, keywords in CATEGORY_RULES
)
_TECH_PATTERNS = tuple((keyword_pattern(keyword), tag) for keyword, tag in TECH_KEYWORDS.items())
_NEGATIVE_PATTERNS = tuple(keyword_pattern(marker) for marker in NEGATIVE_READINESS)
_POSITIVE_PATTERNS = tuple(keyword_pattern(marker) for marker in POSITIVE_READINESS)


def _mentions(patterns, text: str) -> bool:
    return any(pattern.search(text) for pattern in patterns)


def analyze(snapshot: RepositorySnapshot, readme: str) -> AnalysisResult:
    """Derive an :class:`AnalysisResult` from a snapshot and its README.

    Recency is measured against ``snapshot.fetched_at``, so the same inputs
    always produce the same result.
    """

    readme = readme or ""
    description = snapshot.description or ""
    text = f"{readme} {description}".lower()

    category = detect_category(text)
    complexity = assess_complexity(readme)
    return AnalysisResult(
        category=category,
        use_case=summarize_use_case(snapshot, readme),
        problem_solved=PROBLEM_SOLVED[category],
        target_audience=TARGET_AUDIENCE[complexity],
        tech_stack=extract_tech_stack(snapshot.language, readme),
        utility_score=utility_score(snapshot, readme),
        complexity=complexity,
        production_ready=is_production_ready(snapshot, text),
        best_for=BEST_FOR[category],
    )


def detect_category(text: str) -> Category:
    lowered = text.lower()
    for category, patterns in _CATEGORY_PATTERNS:
        if _mentions(patterns, lowered):
            return category
    return Category.GENERAL


def extract_tech_stack(language: str | None, readme: str) -> tuple[str, ...]:
    stack: list[str] = []
    if language:
        stack.append(language.lower())
    lowered = readme.lower()
    for pattern, tag in _TECH_PATTERNS:
        if tag not in stack and pattern.search(lowered):
            stack.append(tag)
    return tuple(stack)


def utility_score(snapshot: RepositorySnapshot, readme: str) -> float:
    """Weighted sum of popularity, documentation and recency signals in [0, 10]."""

    score = BASE_SCORE

    stars = snapshot.stars or 0
    for threshold, bonus in STAR_TIERS:
        if stars > threshold:
            score += bonus
            break

    if len(readme) > LONG_README:
        score += 1.0
    lowered = readme.lower()
    for marker, bonus in SECTION_BONUSES:
        if marker in lowered:
            score += bonus

    if snapshot.updated_at is not None and snapshot.fetched_at - snapshot.updated_at <= RECENT_WINDOW:
        score += RECENT_BONUS

    return round(min(max(score, 0.0), 10.0), 1)


def assess_complexity(readme: str) -> Complexity:
    length = len(readme)
    if length > ADVANCED_README:
        return Complexity.ADVANCED
    if length > INTERMEDIATE_README:
        return Complexity.INTERMEDIATE
    return Complexity.BEGINNER


def is_production_ready(snapshot: RepositorySnapshot, text: str) -> bool:
    """Evaluate readiness indicators in a fixed order.

    Negative markers win over positive ones. Without any marker, a popular
    repository that has been idle for a year is treated as stable; this is a
    loose heuristic and can misread an abandoned project.
    """

    lowered = text.lower()
    if _mentions(_NEGATIVE_PATTERNS, lowered):
        return False
    if _mentions(_POSITIVE_PATTERNS, lowered) or RELEASE_MARKER.search(lowered):
        return True

    stars = snapshot.stars or 0
    if (
        stars > STABLE_STARS
        and snapshot.updated_at is not None
        and snapshot.fetched_at - snapshot.updated_at > STABLE_IDLE
    ):
        return True
    return stars > POPULAR_STARS


def summarize_use_case(snapshot: RepositorySnapshot, readme: str) -> str:
    description = (snapshot.description or "").strip()
    if description:
        return description[:USE_CASE_LIMIT]
    for line in readme.splitlines():
        stripped = line.strip()
        if not stripped or stripped.startswith(("#", "!", "<", "[!", "---", "===", "```")):
            continue
        return stripped[:USE_CASE_LIMIT]
    language = snapshot.language or "software"
    return f"General-purpose {language} project"


__all__ = [
    "CATEGORY_RULES",
    "TECH_KEYWORDS",
    "analyze",
    "assess_complexity",
    "detect_category",
    "extract_tech_stack",
    "is_production_ready",
    "keyword_pattern",
    "utility_score",
]
