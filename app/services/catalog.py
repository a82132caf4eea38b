"""Reconciliation of external entries against the shared catalog."""

from __future__ import annotations

import logging

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ..db_models import CatalogItem

logger = logging.getLogger(__name__)


class CatalogReconciler:
    """Maps (source, external id) pairs onto exactly one catalog item.

    Creation is insert-first: the unique constraint on ``(source,
    external_id)`` decides which caller wins, and losers read back the
    existing row. The stored title is never overwritten.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    async def reconcile(
        self,
        source: str,
        external_id: str,
        media_type: str,
        title: str,
    ) -> CatalogItem:
        async with self._session_factory() as session:
            item = CatalogItem(
                source=source,
                external_id=external_id,
                media_type=media_type,
                title=title,
            )
            session.add(item)
            try:
                await session.commit()
                return item
            except IntegrityError:
                await session.rollback()
                existing = await self._lookup(session, source, external_id)
                if existing is None:
                    raise
                logger.debug(
                    "Catalog item %s/%s already exists as %s",
                    source,
                    external_id,
                    existing.id,
                )
                return existing

    async def get(self, source: str, external_id: str) -> CatalogItem | None:
        """Return the catalog item for a key, if any."""

        async with self._session_factory() as session:
            return await self._lookup(session, source, external_id)

    @staticmethod
    async def _lookup(
        session: AsyncSession, source: str, external_id: str
    ) -> CatalogItem | None:
        stmt = select(CatalogItem).where(
            CatalogItem.source == source,
            CatalogItem.external_id == external_id,
        )
        result = await session.execute(stmt)
        return result.scalar_one_or_none()
