from __future__ import annotations

import asyncio

from sqlalchemy import create_engine, inspect, text

from app.database import Database


def test_create_all_builds_schema(tmp_path) -> None:
    """All tables and their uniqueness constraints should be created."""

    database_path = tmp_path / "schema.db"
    database = Database(f"sqlite+aiosqlite:///{database_path}")
    asyncio.run(database.create_all())
    # Running twice must be harmless.
    asyncio.run(database.create_all())
    asyncio.run(database.dispose())

    inspector_engine = create_engine(f"sqlite:///{database_path}")
    try:
        inspector = inspect(inspector_engine)
        assert set(inspector.get_table_names()) == {
            "linked_accounts",
            "media_items",
            "media_log",
            "yearly_goals",
        }
        unique = {
            table: {tuple(c["column_names"]) for c in inspector.get_unique_constraints(table)}
            for table in ("linked_accounts", "media_items", "media_log", "yearly_goals")
        }
        assert ("user_id", "provider") in unique["linked_accounts"]
        assert ("source", "external_id") in unique["media_items"]
        assert ("user_id", "media_item_id", "consumed_at") in unique["media_log"]
        assert ("user_id", "year", "media_type") in unique["yearly_goals"]
        [foreign_key] = inspector.get_foreign_keys("media_log")
        assert foreign_key["referred_table"] == "media_items"
    finally:
        inspector_engine.dispose()


def test_sqlite_connections_enforce_foreign_keys(tmp_path) -> None:
    async def runner() -> int:
        database = Database(f"sqlite+aiosqlite:///{tmp_path / 'fk.db'}")
        try:
            async with database.session() as session:
                result = await session.execute(text("PRAGMA foreign_keys"))
                return int(result.scalar_one())
        finally:
            await database.dispose()

    assert asyncio.run(runner()) == 1
