"""Module executed when running ``python -m medialog``.

``python -m medialog`` (or ``serve``) starts the web server; ``sync`` runs a
single feed sync pass and prints the report, for use from an external cron.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
from typing import Sequence

import httpx
import uvicorn

from app.config import Settings, settings
from app.database import Database
from app.services.feeds import FeedClient
from app.services.sync import SyncService


async def run_sync_once(
    app_settings: Settings | None = None,
    *,
    transport: httpx.AsyncBaseTransport | None = None,
) -> dict[str, object]:
    """Sync every linked account once and return the report payload."""

    app_settings = app_settings or settings
    database = Database(app_settings.database_url)
    try:
        await database.create_all()
        async with httpx.AsyncClient(
            timeout=httpx.Timeout(
                app_settings.feed_timeout_seconds,
                connect=app_settings.feed_connect_timeout_seconds,
            ),
            transport=transport,
        ) as http_client:
            service = SyncService(
                app_settings,
                FeedClient(app_settings, http_client),
                database.session_factory,
            )
            report = await service.sync_all()
    finally:
        await database.dispose()
    return report.to_payload()


def main(argv: Sequence[str] | None = None) -> None:
    """Dispatch to the server or the one-off sync command."""

    parser = argparse.ArgumentParser(prog="medialog")
    parser.add_argument(
        "command", nargs="?", choices=("serve", "sync"), default="serve"
    )
    args = parser.parse_args(argv)

    if args.command == "sync":
        logging.basicConfig(level=logging.INFO)
        print(json.dumps(asyncio.run(run_sync_once())))
        return

    uvicorn.run(
        "app.main:app",
        host=settings.server_host,
        port=settings.server_port,
        reload=settings.environment == "development",
    )


if __name__ == "__main__":  # pragma: no cover - runtime entrypoint
    main()
