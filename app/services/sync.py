"""Scheduled ingestion of linked account feeds."""

from __future__ import annotations

import asyncio
import logging
from contextlib import suppress
from dataclasses import dataclass
from typing import Any

from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ..config import Settings
from ..database import StorageUnavailableError
from ..db_models import LinkedAccount
from ..models import media_type_for
from ..utils import parse_timestamp, utcnow
from .catalog import CatalogReconciler
from .consumption_log import ConsumptionLogWriter
from .feed_parser import parse_feed
from .feeds import FeedClient
from .identity import resolve_feed_identity

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class AccountSyncResult:
    """Counts produced by syncing a single account."""

    account_id: str
    entries: int = 0
    inserted: int = 0


@dataclass(slots=True)
class SyncReport:
    """Aggregate outcome of a sync run across all linked accounts."""

    total: int = 0
    success: int = 0
    failed: int = 0

    def to_payload(self) -> dict[str, Any]:
        # The tally replaces the boolean ``success`` flag, as clients expect.
        return {"success": self.success, "total": self.total, "failed": self.failed}


class SyncService:
    """Pulls every linked account's feed into the shared media log."""

    def __init__(
        self,
        settings: Settings,
        feed_client: FeedClient,
        session_factory: async_sessionmaker[AsyncSession],
        *,
        reconciler: CatalogReconciler | None = None,
        log_writer: ConsumptionLogWriter | None = None,
    ):
        self._settings = settings
        self._feeds = feed_client
        self._session_factory = session_factory
        self._reconciler = reconciler or CatalogReconciler(session_factory)
        self._log_writer = log_writer or ConsumptionLogWriter(session_factory)
        self._sync_task: asyncio.Task[None] | None = None

    async def start(self) -> None:
        """Launch the periodic sync loop when an interval is configured."""

        interval = self._settings.sync_interval_seconds
        if interval <= 0 or self._sync_task is not None:
            return
        logger.info("Starting background feed sync every %s seconds", interval)
        self._sync_task = asyncio.create_task(self._sync_loop(interval))

    async def stop(self) -> None:
        """Stop the periodic sync loop."""

        if self._sync_task is None:
            return
        self._sync_task.cancel()
        with suppress(asyncio.CancelledError):
            await self._sync_task
        self._sync_task = None

    async def _sync_loop(self, interval: int) -> None:
        while True:
            await asyncio.sleep(interval)
            try:
                await self.sync_all()
            except Exception as exc:
                logger.exception("Scheduled feed sync failed: %s", exc)

    async def sync_all(self) -> SyncReport:
        """Sync every linked account, isolating failures per account.

        Accounts are processed one after another. An account that raises is
        logged and counted as failed; its partial writes are kept and the
        next run picks up where it left off.
        """

        accounts = await self._load_accounts()
        report = SyncReport(total=len(accounts))

        for account in accounts:
            try:
                result = await self.sync_account(account)
            except Exception:
                logger.exception(
                    "Failed to sync %s account %s for user %s",
                    account.provider,
                    account.id,
                    account.user_id,
                )
                report.failed += 1
                continue
            report.success += 1
            logger.info(
                "Synced %s account %s: %s entries, %s new",
                account.provider,
                account.id,
                result.entries,
                result.inserted,
            )

        logger.info(
            "Feed sync finished: %s total, %s succeeded, %s failed",
            report.total,
            report.success,
            report.failed,
        )
        return report

    async def sync_account(self, account: LinkedAccount) -> AccountSyncResult:
        """Ingest one account's feed and stamp its sync watermark."""

        body = await self._feeds.fetch(account.feed_url)
        entries = parse_feed(body)
        media_type = media_type_for(account.provider)
        fetched_at = utcnow()
        result = AccountSyncResult(account_id=account.id, entries=len(entries))

        for entry in entries:
            consumed_at = parse_timestamp(entry.pub_date)
            if consumed_at is None:
                if entry.pub_date:
                    logger.warning(
                        "Unparseable pubDate %r in feed %s; using sync time",
                        entry.pub_date,
                        account.feed_url,
                    )
                consumed_at = fetched_at
            external_id = resolve_feed_identity(account.provider, entry.link)
            item = await self._reconciler.reconcile(
                account.provider, external_id, media_type, entry.title
            )
            outcome = await self._log_writer.record(
                account.user_id, item.id, consumed_at
            )
            if outcome.inserted:
                result.inserted += 1

        await self._mark_synced(account.id)
        return result

    async def _load_accounts(self) -> list[LinkedAccount]:
        try:
            async with self._session_factory() as session:
                result = await session.execute(
                    select(LinkedAccount).order_by(LinkedAccount.created_at)
                )
                return list(result.scalars().all())
        except SQLAlchemyError as exc:
            raise StorageUnavailableError("Database not available") from exc

    async def _mark_synced(self, account_id: str) -> None:
        async with self._session_factory() as session:
            await session.execute(
                update(LinkedAccount)
                .where(LinkedAccount.id == account_id)
                .values(last_synced_at=utcnow())
            )
            await session.commit()
