"""Shared builders for database and feed fixtures."""

from __future__ import annotations

from sqlalchemy import func, select

from app.database import Database


async def open_database(url: str) -> Database:
    """Create a database with all tables in place."""

    database = Database(url)
    await database.create_all()
    return database


async def count_rows(database: Database, model) -> int:
    async with database.session_factory() as session:
        result = await session.execute(select(func.count()).select_from(model))
        return int(result.scalar_one())


def rss_item(title: str, link: str, pub_date: str | None = None, *, cdata: bool = True) -> str:
    """Render a single RSS ``<item>`` block."""

    title_xml = f"<title><![CDATA[{title}]]></title>" if cdata else f"<title>{title}</title>"
    pub_xml = f"<pubDate>{pub_date}</pubDate>" if pub_date else ""
    return f"<item>{title_xml}<link>{link}</link>{pub_xml}</item>"


def rss_document(*items: str) -> str:
    """Wrap item blocks in a minimal RSS channel."""

    body = "\n".join(items)
    return (
        '<?xml version="1.0" encoding="utf-8"?>\n'
        '<rss version="2.0"><channel><title>Feed</title>\n'
        f"{body}\n"
        "</channel></rss>"
    )
