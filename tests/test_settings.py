"""Configuration settings behaviour tests."""

from __future__ import annotations

import pytest

from app.config import Settings


def test_defaults_point_at_public_feeds() -> None:
    settings = Settings(_env_file=None)

    assert settings.letterboxd_root == "https://letterboxd.com"
    assert settings.goodreads_root == "https://www.goodreads.com"
    assert settings.database_url.startswith("sqlite+aiosqlite://")
    assert settings.sync_interval_seconds == 0
    assert settings.cron_secret is None
    assert settings.user_id_header == "X-User-Id"


def test_base_urls_drop_trailing_slash() -> None:
    settings = Settings(_env_file=None, LETTERBOXD_BASE_URL="http://localhost:8080/lb/")

    assert settings.letterboxd_root == "http://localhost:8080/lb"


def test_blank_cron_secret_disables_check() -> None:
    """An empty secret should behave as if none were configured."""

    settings = Settings(_env_file=None, CRON_SECRET="   ")

    assert settings.cron_secret is None


def test_environment_variables_are_read(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("SYNC_INTERVAL", "900")
    monkeypatch.setenv("FEED_TIMEOUT", "5")
    monkeypatch.setenv("USER_ID_HEADER", " X-Forwarded-User ")

    settings = Settings(_env_file=None)

    assert settings.sync_interval_seconds == 900
    assert settings.feed_timeout_seconds == 5.0
    assert settings.user_id_header == "X-Forwarded-User"


@pytest.mark.parametrize(
    "overrides",
    [
        {"USER_ID_HEADER": "  "},
        {"SYNC_INTERVAL": -1},
        {"FEED_TIMEOUT": 0},
        {"LETTERBOXD_BASE_URL": "not a url"},
    ],
)
def test_invalid_values_raise(overrides: dict) -> None:
    with pytest.raises(ValueError):
        Settings(_env_file=None, **overrides)
