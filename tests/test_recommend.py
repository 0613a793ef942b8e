from __future__ import annotations

import asyncio

from git_radar.models import Category
from git_radar.queries import SortKey
from git_radar.recommend import Intent, apply_preferences, detect_intent, recommend


class RecordingDatabase:
    def __init__(self) -> None:
        self.filters = []

    async def search_repositories(self, filters):
        self.filters.append(filters)
        return []


def test_detect_intent_language_and_category():
    intent = detect_intent("I need a Python auth library")

    assert intent.language == "Python"
    assert intent.category is Category.AUTHENTICATION
    assert intent.query == "I need a Python auth library"


def test_detect_intent_does_not_confuse_java_and_javascript():
    assert detect_intent("javascript rest api").language == "JavaScript"
    assert detect_intent("java orm").language == "Java"
    assert detect_intent("java orm").category is None
    assert detect_intent("golang database driver").language == "Go"
    assert detect_intent("golang database driver").category is Category.DATABASE


def test_detect_intent_ignores_substrings():
    intent = detect_intent("lightweight tools for gophers")

    assert intent.language is None
    assert intent.category is None


def test_preferences_fill_only_missing_fields():
    intent = Intent(language="Go", category=None, query="go")
    preferences = {"languages": ["Python"], "categories": ["Testing"]}

    filled = apply_preferences(intent, preferences)

    assert filled.language == "Go"
    assert filled.category is Category.TESTING


def test_malformed_preferences_are_ignored():
    intent = Intent(language=None, category=None, query="anything")

    filled = apply_preferences(intent, {"languages": 3, "categories": ["astrology"]})

    assert filled == intent


def test_recommend_queries_by_utility():
    database = RecordingDatabase()

    result = asyncio.run(recommend(database, "typescript ui", {"languages": ["Go"]}, limit=5))

    assert result.repositories == []
    assert result.intent.language == "TypeScript"
    filters = database.filters[0]
    assert filters.language == "TypeScript"
    assert filters.category is Category.UI_COMPONENT
    assert filters.sort is SortKey.UTILITY
    assert filters.limit == 5
