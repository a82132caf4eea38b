"""Batch import of CSV-derived rows into the media log."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ..models import ImportItem, media_type_for
from .catalog import CatalogReconciler
from .consumption_log import ConsumptionLogWriter
from .csv_export import parse_export

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class ImportResult:
    """Outcome of a batch import."""

    imported: int = 0
    inserted: int = 0

    def to_payload(self) -> dict[str, object]:
        return {"success": True, "imported": self.imported}


class ImportService:
    """Reconciles uploaded rows through the same dedup model as feed sync.

    ``imported`` counts every row that reached the log writer, including rows
    that turned out to be duplicates; ``inserted`` counts fresh rows only.
    Unlike feed sync, a row that raises aborts the rest of the batch.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        *,
        reconciler: CatalogReconciler | None = None,
        log_writer: ConsumptionLogWriter | None = None,
    ):
        self._reconciler = reconciler or CatalogReconciler(session_factory)
        self._log_writer = log_writer or ConsumptionLogWriter(session_factory)

    async def import_batch(
        self, user_id: str, source: str, items: Iterable[ImportItem]
    ) -> ImportResult:
        media_type = media_type_for(source)
        valid_items = [item for item in items if item.is_complete()]
        result = ImportResult()

        for item in valid_items:
            catalog_item = await self._reconciler.reconcile(
                source, item.external_id, media_type, item.title
            )
            outcome = await self._log_writer.record(
                user_id, catalog_item.id, item.consumed_at, item.rating  # type: ignore[arg-type]
            )
            result.imported += 1
            if outcome.inserted:
                result.inserted += 1

        logger.info(
            "Imported %s %s rows for user %s (%s new)",
            result.imported,
            source,
            user_id,
            result.inserted,
        )
        return result

    async def import_csv(self, user_id: str, source: str, text: str) -> ImportResult:
        """Parse an export file and import its rows."""

        items = parse_export(source, text)
        if not items:
            logger.warning("No importable %s rows found for user %s", source, user_id)
        return await self.import_batch(user_id, source, items)
