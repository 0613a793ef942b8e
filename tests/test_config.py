from __future__ import annotations

from datetime import timedelta

import pytest
from pydantic import ValidationError

from git_radar.config import DEFAULT_LANGUAGES, AppConfig


def test_defaults_without_environment():
    config = AppConfig.from_env(env={})

    assert config.github.token is None
    assert config.scan.languages == DEFAULT_LANGUAGES
    assert config.scan.batch_size == 100
    assert config.scan.freshness_window == timedelta(hours=12)
    assert config.scan.scan_interval == timedelta(hours=12)
    assert config.scan.min_readme_length == 100
    assert config.scan.item_delay == 0.5
    assert config.scan.language_delay == 2.0


def test_environment_values_are_parsed():
    env = {
        "GH_TOKEN": "abc",
        "DATABASE_URL": "postgresql://db/repos",
        "USERS_DATABASE_DSN": "postgresql://db/users",
        "SCAN_LANGUAGES": "Rust, Go ,",
        "SCAN_ITEM_DELAY": "0",
        "SCAN_FRESHNESS_HOURS": "1.5",
        "SCAN_MIN_STARS": "1000",
    }

    config = AppConfig.from_env(env=env)

    assert config.github.token == "abc"
    assert config.database.dsn == "postgresql://db/repos"
    assert config.database.users_dsn == "postgresql://db/users"
    assert config.scan.languages == ("Rust", "Go")
    assert config.scan.item_delay == 0.0
    assert config.scan.freshness_window == timedelta(minutes=90)
    assert config.scan.min_stars == 1000


def test_overrides_win_over_environment():
    config = AppConfig.from_env(
        env={"GITHUB_TOKEN": "from-env", "SCAN_BATCH_SIZE": "50"},
        overrides={"github_token": "from-cli", "scan_batch_size": 10},
    )

    assert config.github.token == "from-cli"
    assert config.scan.batch_size == 10


def test_batch_size_is_capped_by_search_page_limit():
    with pytest.raises(ValidationError):
        AppConfig.from_env(env={"SCAN_BATCH_SIZE": "500"})


def test_empty_language_list_is_rejected():
    with pytest.raises(ValidationError):
        AppConfig.from_env(env={"SCAN_LANGUAGES": " , "})
