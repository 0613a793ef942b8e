"""Keyword-driven repository recommendations."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Any, Mapping

from .db import Database
from .models import Category, RepositoryRecord
from .queries import SearchFilters, SortKey

LOGGER = logging.getLogger(__name__)

_WORD = re.compile(r"[a-z0-9+#]+")

LANGUAGE_INTENTS: tuple[tuple[str, frozenset[str]], ...] = (
    ("JavaScript", frozenset({"javascript", "js"})),
    ("Python", frozenset({"python", "py"})),
    ("Java", frozenset({"java"})),
    ("TypeScript", frozenset({"typescript", "ts"})),
    ("Go", frozenset({"go", "golang"})),
)

CATEGORY_INTENTS: tuple[tuple[Category, frozenset[str]], ...] = (
    (Category.AUTHENTICATION, frozenset({"auth", "authentication", "authentification", "login"})),
    (Category.API, frozenset({"api", "rest"})),
    (Category.DATABASE, frozenset({"database", "db"})),
    (Category.UI_COMPONENT, frozenset({"ui", "interface", "component"})),
    (Category.TESTING, frozenset({"test", "testing"})),
    (Category.CLI_TOOL, frozenset({"cli", "terminal"})),
)


@dataclass(slots=True, frozen=True)
class Intent:
    language: str | None
    category: Category | None
    query: str


@dataclass(slots=True)
class Recommendation:
    intent: Intent
    repositories: list[RepositoryRecord]


def detect_intent(text: str) -> Intent:
    words = set(_WORD.findall(text.lower()))
    language = next((name for name, keys in LANGUAGE_INTENTS if words & keys), None)
    category = next((cat for cat, keys in CATEGORY_INTENTS if words & keys), None)
    return Intent(language=language, category=category, query=text)


def apply_preferences(intent: Intent, preferences: Mapping[str, Any] | None) -> Intent:
    """Fill gaps in ``intent`` from a user's stored preferences.

    Preferences are an opaque blob owned by the user store; only the
    ``languages`` and ``categories`` lists are consulted and anything
    malformed is ignored.
    """

    if not preferences:
        return intent
    language = intent.language or _first_string(preferences.get("languages"))
    category = intent.category
    if category is None:
        preferred = _first_string(preferences.get("categories"))
        if preferred:
            try:
                category = Category(preferred.lower())
            except ValueError:
                LOGGER.debug("Ignoring unknown preferred category %r", preferred)
    return Intent(language=language, category=category, query=intent.query)


async def recommend(
    database: Database,
    text: str,
    preferences: Mapping[str, Any] | None = None,
    limit: int = 10,
) -> Recommendation:
    intent = apply_preferences(detect_intent(text), preferences)
    filters = SearchFilters(
        language=intent.language,
        category=intent.category,
        sort=SortKey.UTILITY,
        limit=limit,
    )
    repositories = await database.search_repositories(filters)
    LOGGER.debug(
        "Recommendation for %r: language=%s category=%s -> %s results",
        text,
        intent.language,
        intent.category,
        len(repositories),
    )
    return Recommendation(intent=intent, repositories=repositories)


def _first_string(value: Any) -> str | None:
    if isinstance(value, str):
        return value or None
    if isinstance(value, (list, tuple)):
        for item in value:
            if isinstance(item, str) and item:
                return item
    return None


__all__ = ["Intent", "Recommendation", "apply_preferences", "detect_intent", "recommend"]
