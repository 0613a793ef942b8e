from __future__ import annotations

import asyncio
from datetime import datetime, timezone
from types import SimpleNamespace

import pytest

from git_radar.config import RateLimitInfo
from git_radar.github_client import GitHubClientError, ReadmeResponse
from git_radar.source import GitHubRepositorySource, build_search_query


def node(database_id: int | None, name: str, stars: int, archived: bool = False) -> dict:
    return {
        "databaseId": database_id,
        "name": name,
        "nameWithOwner": f"acme/{name}",
        "stargazerCount": stars,
        "isArchived": archived,
        "primaryLanguage": {"name": "Go"},
        "owner": {"login": "acme"},
    }


class FakeClient:
    def __init__(self, nodes: list[dict], readme: str | None = None, fail: bool = False) -> None:
        self._nodes = nodes
        self._readme = readme
        self._fail = fail
        self.variables: list[dict] = []

    async def execute(self, query: str, variables: dict):
        self.variables.append(variables)
        if self._fail:
            raise GitHubClientError("search unavailable")
        rate_limit = RateLimitInfo(cost=1, remaining=4000, reset_at=datetime.now(timezone.utc))
        return SimpleNamespace(data={"search": {"nodes": self._nodes}}, rate_limit=rate_limit)

    async def fetch_readme(self, full_name: str) -> ReadmeResponse:
        return ReadmeResponse(content=self._readme, rate_limit=None)


def test_build_search_query_for_plain_language():
    assert build_search_query("Python", 100) == "language:Python stars:>100 archived:false sort:stars-desc"


def test_build_search_query_quotes_special_languages():
    query = build_search_query("C++", 50, exclude_archived=False)
    assert query == 'language:"C++" stars:>50 sort:stars-desc'


def test_search_keeps_order_and_drops_unusable_nodes():
    client = FakeClient(
        [
            node(1, "big", 900),
            node(None, "ghost", 800),
            node(2, "old", 700, archived=True),
            "not-a-node",
            node(3, "small", 600),
        ]
    )
    source = GitHubRepositorySource(client)

    snapshots = asyncio.run(source.search("Go", min_stars=100, page_size=50))

    assert [snapshot.external_id for snapshot in snapshots] == [1, 3]
    assert client.variables == [{"query": "language:Go stars:>100 archived:false sort:stars-desc", "first": 50}]
    assert source.rate_limit_remaining == 4000


def test_search_propagates_client_errors():
    source = GitHubRepositorySource(FakeClient([], fail=True))

    with pytest.raises(GitHubClientError):
        asyncio.run(source.search("Go", min_stars=100))


def test_fetch_readme_returns_content():
    source = GitHubRepositorySource(FakeClient([], readme="# hello"))

    assert asyncio.run(source.fetch_readme("acme/big")) == "# hello"
