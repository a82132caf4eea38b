"""Tests for the ``python -m medialog`` entry point."""

from __future__ import annotations

import asyncio
import json
from typing import Any

import httpx
import pytest

import medialog.__main__ as cli
from app.config import Settings
from app.database import Database
from app.db_models import ConsumptionLog
from app.services.library import LibraryService

from helpers import count_rows, open_database, rss_document, rss_item


def build_settings(**overrides: Any) -> Settings:
    return Settings(_env_file=None, **overrides)  # type: ignore[arg-type]


class TrackingDatabase(Database):
    """Database that remembers whether it was disposed."""

    instances: list["TrackingDatabase"] = []

    def __init__(self, database_url: str):
        super().__init__(database_url)
        self.disposed = False
        TrackingDatabase.instances.append(self)

    async def dispose(self) -> None:
        self.disposed = True
        await super().dispose()


def test_run_sync_once_reports_and_disposes(
    database_url, monkeypatch: pytest.MonkeyPatch
) -> None:
    settings = build_settings(DATABASE_URL=database_url)
    feed = rss_document(
        rss_item(
            "Heat, 1995",
            "https://letterboxd.com/alice/film/heat/",
            "Sat, 13 Jan 2024 21:04:11 +1300",
        )
    )
    transport = httpx.MockTransport(
        lambda request: httpx.Response(200, text=feed)
        if str(request.url) == "https://letterboxd.com/alice/rss/"
        else httpx.Response(404)
    )

    async def link() -> None:
        database = await open_database(database_url)
        await LibraryService(settings, database.session_factory).link_account(
            "user-1", "letterboxd", "alice"
        )
        await database.dispose()

    asyncio.run(link())
    TrackingDatabase.instances.clear()
    monkeypatch.setattr(cli, "Database", TrackingDatabase)

    payload = asyncio.run(cli.run_sync_once(settings, transport=transport))

    assert payload == {"success": 1, "total": 1, "failed": 0}
    [used] = TrackingDatabase.instances
    assert used.disposed is True

    async def logged_rows() -> int:
        database = Database(database_url)
        try:
            return await count_rows(database, ConsumptionLog)
        finally:
            await database.dispose()

    assert asyncio.run(logged_rows()) == 1


def test_sync_command_prints_json_report(
    database_url, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    monkeypatch.setattr(cli, "settings", build_settings(DATABASE_URL=database_url))

    cli.main(["sync"])

    output = capsys.readouterr().out
    assert json.loads(output) == {"success": 0, "total": 0, "failed": 0}


def test_unknown_command_is_rejected() -> None:
    with pytest.raises(SystemExit):
        cli.main(["migrate"])
