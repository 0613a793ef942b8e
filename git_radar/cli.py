"""Command line interface for the repository scanner."""

from __future__ import annotations

import asyncio
import logging
from typing import Optional

import typer

from .config import AppConfig
from .db import Database, UserDatabase
from .github_client import GitHubClient
from .models import Category
from .queries import SearchFilters, SortKey
from .recommend import recommend as recommend_repositories
from .scanner import ScanOrchestrator
from .scheduler import ScanScheduler
from .source import GitHubRepositorySource

app = typer.Typer(add_completion=False)

LOGGER = logging.getLogger(__name__)


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )


def _load_config(dsn: Optional[str] = None, github_token: Optional[str] = None) -> AppConfig:
    overrides = {}
    if dsn:
        overrides["database_dsn"] = dsn
    if github_token:
        overrides["github_token"] = github_token
    return AppConfig.from_env(overrides=overrides)


@app.command("init-db")
def init_db(
    dsn: Optional[str] = typer.Option(None, help="Repository store DSN"),
    users_dsn: Optional[str] = typer.Option(None, help="User store DSN"),
    log_level: str = typer.Option("INFO", help="Logging level"),
) -> None:
    """Create both database schemas."""

    configure_logging(log_level)
    overrides = {"database_dsn": dsn, "users_database_dsn": users_dsn}
    config = AppConfig.from_env(overrides={key: value for key, value in overrides.items() if value})

    async def runner() -> None:
        async with Database(config.database) as database:
            await database.create_schema()
        async with UserDatabase(config.database) as users:
            await users.create_schema()

    asyncio.run(runner())


@app.command("scan")
def scan(
    language: Optional[str] = typer.Option(None, help="Scan a single language instead of all tracked ones"),
    dsn: Optional[str] = typer.Option(None, help="Repository store DSN"),
    github_token: Optional[str] = typer.Option(None, envvar="GITHUB_TOKEN", help="GitHub token"),
    log_level: str = typer.Option("INFO", help="Logging level"),
) -> None:
    """Run one scan pass and report how many repositories were stored."""

    configure_logging(log_level)
    config = _load_config(dsn, github_token)
    if not config.github.token:
        raise typer.BadParameter("A GitHub token is required")

    async def runner() -> None:
        async with GitHubClient(config.github) as client:
            async with Database(config.database) as database:
                source = GitHubRepositorySource(client)
                orchestrator = ScanOrchestrator(config.scan, source, database)
                if language:
                    processed = {language: await orchestrator.scan_language(language)}
                else:
                    result = await orchestrator.perform_full_scan()
                    processed = result.processed if result else {}
                for name, count in processed.items():
                    typer.echo(f"{name}: {count} repositories stored")
                typer.echo(f"Remaining search rate limit: {source.rate_limit_remaining}")

    asyncio.run(runner())


@app.command("run")
def run(
    dsn: Optional[str] = typer.Option(None, help="Repository store DSN"),
    github_token: Optional[str] = typer.Option(None, envvar="GITHUB_TOKEN", help="GitHub token"),
    log_level: str = typer.Option("INFO", help="Logging level"),
) -> None:
    """Scan now and then on the configured interval until interrupted."""

    configure_logging(log_level)
    config = _load_config(dsn, github_token)
    if not config.github.token:
        raise typer.BadParameter("A GitHub token is required")

    async def runner() -> None:
        async with GitHubClient(config.github) as client:
            async with Database(config.database) as database:
                orchestrator = ScanOrchestrator(config.scan, GitHubRepositorySource(client), database)
                scheduler = ScanScheduler(orchestrator, config.scan.scan_interval)
                await scheduler.run()

    try:
        asyncio.run(runner())
    except KeyboardInterrupt:
        LOGGER.info("Interrupted; scheduler shut down")


@app.command("search")
def search(
    language: Optional[str] = typer.Option(None, help="Primary language"),
    category: Optional[Category] = typer.Option(None, help="Analysis category"),
    min_stars: Optional[int] = typer.Option(None, help="Minimum star count"),
    query: Optional[str] = typer.Option(None, "--query", "-q", help="Text matched against name and description"),
    sort: SortKey = typer.Option(SortKey.UTILITY, help="Sort order"),
    limit: int = typer.Option(50, min=1, max=100, help="Maximum number of results"),
    dsn: Optional[str] = typer.Option(None, help="Repository store DSN"),
    log_level: str = typer.Option("WARNING", help="Logging level"),
) -> None:
    """List stored repositories matching the given filters."""

    configure_logging(log_level)
    config = _load_config(dsn)
    filters = SearchFilters(
        language=language,
        category=category,
        min_stars=min_stars,
        search=query,
        sort=sort,
        limit=limit,
    )

    async def runner() -> None:
        async with Database(config.database) as database:
            for record in await database.search_repositories(filters):
                typer.echo(
                    f"{record.analysis.utility_score:>4}  {record.stars:>7}  "
                    f"{record.full_name}  [{record.analysis.category.value}]"
                )

    asyncio.run(runner())


@app.command("stats")
def stats(
    dsn: Optional[str] = typer.Option(None, help="Repository store DSN"),
    log_level: str = typer.Option("WARNING", help="Logging level"),
) -> None:
    """Summarize the repository store."""

    configure_logging(log_level)
    config = _load_config(dsn)

    async def runner() -> None:
        async with Database(config.database) as database:
            summary = await database.repository_stats()
            scan_summary = await database.scan_summary()
        typer.echo(f"Total repositories: {summary.total}")
        last_scan = scan_summary.last_scanned_at.isoformat() if scan_summary.last_scanned_at else "never"
        typer.echo(f"Last scan: {last_scan}")
        typer.echo("By language:")
        for name, count in summary.by_language:
            typer.echo(f"  {name}: {count}")
        typer.echo("By category:")
        for name, count in summary.by_category:
            typer.echo(f"  {name}: {count}")

    asyncio.run(runner())


@app.command("recommend")
def recommend(
    text: str = typer.Argument(..., help="What you are looking for, in plain words"),
    user_id: Optional[int] = typer.Option(None, help="Personalize with this user's preferences"),
    limit: int = typer.Option(10, min=1, max=100, help="Maximum number of results"),
    dsn: Optional[str] = typer.Option(None, help="Repository store DSN"),
    log_level: str = typer.Option("WARNING", help="Logging level"),
) -> None:
    """Recommend repositories for a free-text request."""

    configure_logging(log_level)
    config = _load_config(dsn)

    async def runner() -> None:
        preferences = None
        if user_id is not None:
            async with UserDatabase(config.database) as users:
                preferences = await users.read_user_preferences(user_id)
        async with Database(config.database) as database:
            result = await recommend_repositories(database, text, preferences, limit=limit)
        category = result.intent.category.value if result.intent.category else "any"
        typer.echo(f"Language: {result.intent.language or 'any'}  Category: {category}")
        for record in result.repositories:
            typer.echo(f"{record.analysis.utility_score:>4}  {record.full_name}  {record.analysis.use_case}")

    asyncio.run(runner())


__all__ = ["app"]
