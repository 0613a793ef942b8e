"""Repository search and README retrieval on top of :class:`GitHubClient`."""

from __future__ import annotations

import logging
import re
from datetime import datetime

from .config import UTC
from .github_client import GitHubClient
from .graphql_queries import REPOSITORY_SEARCH_QUERY
from .models import RepositorySnapshot
from .rate_limiter import RateLimiter

LOGGER = logging.getLogger(__name__)

_PLAIN_QUALIFIER = re.compile(r"^[A-Za-z0-9_.-]+$")


def build_search_query(language: str, min_stars: int, exclude_archived: bool = True) -> str:
    """Build the GitHub search string for one language, most-starred first."""

    if not _PLAIN_QUALIFIER.match(language):
        language = f'"{language}"'
    parts = [f"language:{language}", f"stars:>{min_stars}"]
    if exclude_archived:
        parts.append("archived:false")
    parts.append("sort:stars-desc")
    return " ".join(parts)


class GitHubRepositorySource:
    """Pages through GitHub search results and fetches READMEs, one request at a time."""

    def __init__(self, client: GitHubClient) -> None:
        self._client = client
        self._search_limiter = RateLimiter("GraphQL")
        self._rest_limiter = RateLimiter("REST")

    async def search(
        self,
        language: str,
        *,
        min_stars: int,
        exclude_archived: bool = True,
        page_size: int = 100,
    ) -> list[RepositorySnapshot]:
        """Return one page of repositories for ``language`` ordered by stars descending."""

        variables = {
            "query": build_search_query(language, min_stars, exclude_archived),
            "first": page_size,
        }
        await self._search_limiter.acquire()
        try:
            response = await self._client.execute(REPOSITORY_SEARCH_QUERY, variables)
        except Exception:
            await self._search_limiter.reset()
            raise
        await self._search_limiter.record(response.rate_limit)

        nodes = (response.data.get("search") or {}).get("nodes") or []
        fetched_at = datetime.now(tz=UTC)
        snapshots: list[RepositorySnapshot] = []
        for node in nodes:
            if not isinstance(node, dict) or node.get("databaseId") is None:
                continue
            snapshot = RepositorySnapshot.from_graphql(node, fetched_at=fetched_at)
            if exclude_archived and snapshot.is_archived:
                LOGGER.debug("Dropping archived repository %s", snapshot.full_name)
                continue
            snapshots.append(snapshot)
        LOGGER.debug("Search for %s returned %s repositories", language, len(snapshots))
        return snapshots

    async def fetch_readme(self, full_name: str) -> str | None:
        await self._rest_limiter.acquire()
        try:
            response = await self._client.fetch_readme(full_name)
        except Exception:
            await self._rest_limiter.reset()
            raise
        await self._rest_limiter.record(response.rate_limit)
        return response.content

    @property
    def rate_limit_remaining(self) -> int | None:
        latest = self._search_limiter.latest
        return latest.remaining if latest else None


__all__ = ["GitHubRepositorySource", "build_search_query"]
