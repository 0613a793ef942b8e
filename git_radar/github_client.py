"""HTTP client for GitHub's GraphQL and REST APIs."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from typing import Any, Iterable
from urllib.parse import quote

import httpx

from .config import GitHubSettings, RateLimitInfo

LOGGER = logging.getLogger(__name__)

RAW_MEDIA_TYPE = "application/vnd.github.raw+json"
TRANSIENT_STATUSES = frozenset({502, 503, 504})


class GitHubClientError(RuntimeError):
    """Raised when a GitHub request fails permanently."""


@dataclass(slots=True)
class GraphQLResponse:
    data: dict[str, Any]
    rate_limit: RateLimitInfo | None


@dataclass(slots=True)
class ReadmeResponse:
    content: str | None
    rate_limit: RateLimitInfo | None


class GitHubClient:
    """Light-weight GitHub client with retry and rate-limit support."""

    def __init__(self, settings: GitHubSettings, client: httpx.AsyncClient | None = None) -> None:
        self._settings = settings
        self._graphql_url = settings.graphql_url.rstrip("/")
        self._api_url = settings.api_url.rstrip("/")
        self._headers = {
            "Accept": "application/vnd.github+json",
            "User-Agent": "git-radar-scanner",
        }
        if settings.token:
            self._headers["Authorization"] = f"bearer {settings.token}"
        self._client = client or httpx.AsyncClient(timeout=settings.request_timeout)
        self._owns_client = client is None

    async def __aenter__(self) -> "GitHubClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:  # type: ignore[override]
        await self.close()

    async def close(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def execute(self, query: str, variables: dict[str, Any] | None = None) -> GraphQLResponse:
        """Execute a GraphQL query with retries and exponential backoff."""

        backoff = self._settings.initial_backoff
        attempt = 0

        while True:
            attempt += 1
            response = await self._send(
                "POST",
                self._graphql_url,
                json={"query": query, "variables": variables or {}},
            )
            payload = _json_body(response)

            errors = payload.get("errors")
            if errors:
                if _is_retryable(errors) and attempt < self._settings.max_retries:
                    delay = _retry_delay(errors) or backoff
                    LOGGER.info("Retrying GraphQL call after error: %s", errors)
                    await asyncio.sleep(min(delay, self._settings.max_backoff))
                    backoff = min(backoff * 2, self._settings.max_backoff)
                    continue
                raise GitHubClientError(str(errors))

            data = payload.get("data")
            if data is None:
                raise GitHubClientError("Response payload missing 'data'")

            rate_limit = None
            if rate := data.get("rateLimit"):
                rate_limit = RateLimitInfo(
                    cost=rate.get("cost", 0),
                    remaining=rate.get("remaining", 0),
                    reset_at=_parse_datetime(rate.get("resetAt")),
                )
            return GraphQLResponse(data=data, rate_limit=rate_limit)

    async def fetch_readme(self, full_name: str) -> ReadmeResponse:
        """Fetch the raw README of ``owner/name``; ``content`` is ``None`` when there is none."""

        url = f"{self._api_url}/repos/{quote(full_name, safe='/')}/readme"
        response = await self._send("GET", url, headers={"Accept": RAW_MEDIA_TYPE}, accept_statuses={404})
        rate_limit = rate_limit_from_headers(response.headers)
        if response.status_code == 404:
            return ReadmeResponse(content=None, rate_limit=rate_limit)
        return ReadmeResponse(content=response.text, rate_limit=rate_limit)

    async def _send(
        self,
        method: str,
        url: str,
        *,
        json: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
        accept_statuses: Iterable[int] = (),
    ) -> httpx.Response:
        """Send one request, retrying transport errors, gateway errors and rate limits."""

        backoff = self._settings.initial_backoff
        attempt = 0
        request_headers = {**self._headers, **(headers or {})}
        accepted = frozenset(accept_statuses)

        while True:
            attempt += 1
            try:
                response = await self._client.request(method, url, json=json, headers=request_headers)
            except httpx.RequestError as exc:
                LOGGER.warning("GitHub request error for %s: %s", url, exc)
                if attempt >= self._settings.max_retries:
                    raise GitHubClientError("Maximum retries exceeded") from exc
                await asyncio.sleep(backoff)
                backoff = min(backoff * 2, self._settings.max_backoff)
                continue

            if response.status_code in TRANSIENT_STATUSES:
                LOGGER.info("GitHub transient HTTP %s", response.status_code)
                if attempt >= self._settings.max_retries:
                    raise GitHubClientError(
                        f"GitHub service unavailable after {self._settings.max_retries} attempts"
                    )
                await asyncio.sleep(backoff)
                backoff = min(backoff * 2, self._settings.max_backoff)
                continue

            if response.status_code in {403, 429}:
                message_text = _error_message(response)
                rate_limited = response.status_code == 429 or "rate limit" in message_text.lower()
                if rate_limited and attempt < self._settings.max_retries:
                    delay = _retry_after_seconds(response) or backoff
                    LOGGER.warning("GitHub rate limited: %s", message_text)
                    await asyncio.sleep(min(delay, self._settings.max_backoff))
                    backoff = min(max(backoff * 2, delay), self._settings.max_backoff)
                    continue
                raise GitHubClientError(message_text)

            if response.status_code >= 400 and response.status_code not in accepted:
                raise GitHubClientError(f"GitHub HTTP {response.status_code}: {_error_message(response)}")

            return response


def rate_limit_from_headers(headers: httpx.Headers) -> RateLimitInfo | None:
    """Read the ``X-RateLimit-*`` headers sent with REST responses."""

    remaining = headers.get("X-RateLimit-Remaining")
    reset = headers.get("X-RateLimit-Reset")
    if remaining is None or reset is None:
        return None
    try:
        return RateLimitInfo(
            cost=1,
            remaining=int(remaining),
            reset_at=datetime.fromtimestamp(int(reset), tz=timezone.utc),
        )
    except (TypeError, ValueError):
        return None


def _json_body(response: httpx.Response) -> dict[str, Any]:
    try:
        payload = response.json()
    except ValueError as exc:
        raise GitHubClientError(f"GitHub returned a non-JSON body (HTTP {response.status_code})") from exc
    if not isinstance(payload, dict):
        raise GitHubClientError("GitHub returned an unexpected payload")
    return payload


def _error_message(response: httpx.Response) -> str:
    try:
        payload = response.json()
    except ValueError:
        return response.text or f"HTTP {response.status_code}"
    if isinstance(payload, dict) and payload.get("message"):
        return str(payload["message"])
    return f"HTTP {response.status_code}"


def _is_retryable(errors: Iterable[dict[str, Any]]) -> bool:
    for error in errors:
        error_type = error.get("type") or ""
        message = (error.get("message") or "").lower()
        if error_type in {"RATE_LIMITED", "ABUSE_DETECTED"}:
            return True
        if "timeout" in message or "try again" in message or "temporary" in message:
            return True
    return False


def _retry_delay(errors: Iterable[dict[str, Any]]) -> float | None:
    for error in errors:
        if "retryAfter" in error:
            try:
                return float(error["retryAfter"])
            except (TypeError, ValueError):
                continue
    return None


def _retry_after_seconds(response: httpx.Response) -> float | None:
    value = response.headers.get("Retry-After")
    if not value:
        return None
    try:
        return max(float(value), 0.0)
    except (TypeError, ValueError):
        pass

    try:
        retry_at = parsedate_to_datetime(value)
    except (TypeError, ValueError):  # pragma: no cover - malformed header
        return None
    if retry_at.tzinfo is None:
        retry_at = retry_at.replace(tzinfo=timezone.utc)
    delta = (retry_at - datetime.now(timezone.utc)).total_seconds()
    return max(delta, 0.0)


def _parse_datetime(value: str | None) -> datetime:
    if not value:
        raise GitHubClientError("Rate limit missing resetAt timestamp")
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    return datetime.fromisoformat(value)


__all__ = [
    "GitHubClient",
    "GitHubClientError",
    "GraphQLResponse",
    "ReadmeResponse",
    "rate_limit_from_headers",
]
