"""Tests for account linking, goals and log queries."""

from __future__ import annotations

import asyncio
from datetime import datetime
from typing import Any

from sqlalchemy import update

from app.config import Settings
from app.db_models import LinkedAccount
from app.services.catalog import CatalogReconciler
from app.services.consumption_log import ConsumptionLogWriter
from app.services.library import LibraryService, serialize_account, serialize_log

from helpers import open_database


def build_settings(**overrides: Any) -> Settings:
    return Settings(_env_file=None, **overrides)  # type: ignore[arg-type]


async def _log(database, user_id, source, external_id, media_type, title, consumed_at):
    item = await CatalogReconciler(database.session_factory).reconcile(
        source, external_id, media_type, title
    )
    await ConsumptionLogWriter(database.session_factory).record(user_id, item.id, consumed_at)


def test_relinking_replaces_username_and_keeps_watermark(database_url) -> None:
    async def runner() -> None:
        database = await open_database(database_url)
        library = LibraryService(build_settings(), database.session_factory)

        account = await library.link_account("user-1", "letterboxd", " alice ")
        synced_at = datetime(2024, 5, 1, 12, 0)
        async with database.session_factory() as session:
            await session.execute(
                update(LinkedAccount)
                .where(LinkedAccount.id == account.id)
                .values(last_synced_at=synced_at)
            )
            await session.commit()

        relinked = await library.link_account("user-1", "letterboxd", "alice2")
        await library.link_account("user-1", "goodreads", "12345")
        await library.link_account("user-2", "letterboxd", "bob")

        assert relinked.id == account.id
        assert relinked.username == "alice2"
        assert relinked.feed_url == "https://letterboxd.com/alice2/rss/"
        assert relinked.last_synced_at == synced_at

        accounts = await library.list_accounts("user-1")
        assert [serialize_account(a)["type"] for a in accounts] == ["goodreads", "letterboxd"]
        assert serialize_account(accounts[1])["lastSyncedAt"] == "2024-05-01T12:00:00"
        await database.dispose()

    asyncio.run(runner())


def test_yearly_goals_are_upserted(database_url) -> None:
    async def runner() -> None:
        database = await open_database(database_url)
        library = LibraryService(build_settings(), database.session_factory)

        await library.save_yearly_goal("user-1", 2024, "movie", 50)
        await library.save_yearly_goal("user-1", 2024, "movie", 80)
        await library.save_yearly_goal("user-1", 2024, "book", 12)
        await library.save_yearly_goal("user-1", 2023, "book", 5)

        goals = await library.get_yearly_goals("user-1", 2024)
        assert sorted((goal.media_type, goal.target) for goal in goals) == [
            ("book", 12),
            ("movie", 80),
        ]
        assert await library.get_yearly_goals("user-2", 2024) == []
        await database.dispose()

    asyncio.run(runner())


def test_media_for_year_filters_and_orders(database_url) -> None:
    async def runner() -> None:
        database = await open_database(database_url)
        library = LibraryService(build_settings(), database.session_factory)
        await _log(database, "user-1", "letterboxd", "heat", "movie", "Heat", datetime(2024, 1, 13))
        await _log(database, "user-1", "letterboxd", "alien", "movie", "Alien", datetime(2024, 3, 2))
        await _log(database, "user-1", "goodreads", "1", "book", "Dune", datetime(2024, 2, 1))
        await _log(database, "user-1", "letterboxd", "ran", "movie", "Ran", datetime(2023, 12, 31))
        await _log(database, "user-2", "letterboxd", "heat", "movie", "Heat", datetime(2024, 5, 5))

        everything = await library.media_for_year("user-1", 2024)
        movies = await library.media_for_year("user-1", 2024, "movie")
        recent = await library.recent_media("user-1", limit=2)

        assert [log.media_item.title for log in everything] == ["Alien", "Dune", "Heat"]
        assert [log.media_item.title for log in movies] == ["Alien", "Heat"]
        assert [log.media_item.title for log in recent] == ["Alien", "Dune"]
        payload = serialize_log(movies[1])
        assert payload["consumedAt"] == "2024-01-13T00:00:00"
        assert payload["mediaItem"]["externalId"] == "heat"
        assert payload["mediaItem"]["type"] == "movie"
        await database.dispose()

    asyncio.run(runner())


def test_year_progress_caps_percentage(database_url) -> None:
    async def runner() -> None:
        database = await open_database(database_url)
        library = LibraryService(build_settings(), database.session_factory)
        for day, slug in enumerate(["heat", "alien", "ran"], start=1):
            await _log(database, "user-1", "letterboxd", slug, "movie", slug, datetime(2024, 1, day))
        await _log(database, "user-1", "goodreads", "1", "book", "Dune", datetime(2024, 2, 1))
        await library.save_yearly_goal("user-1", 2024, "movie", 2)

        progress = {entry.media_type: entry.to_payload() for entry in await library.year_progress("user-1", 2024)}

        assert progress["movie"] == {"type": "movie", "current": 3, "target": 2, "percentage": 100}
        assert progress["book"] == {"type": "book", "current": 1, "target": 0, "percentage": 0}
        await database.dispose()

    asyncio.run(runner())
