"""Append-only writer for per-user consumption log rows."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ..db_models import ConsumptionLog
from ..utils import to_naive_utc


@dataclass(slots=True)
class RecordResult:
    """Outcome of a log write."""

    inserted: bool


class ConsumptionLogWriter:
    """Records consumption events, skipping ones already logged.

    A row is identified by ``(user_id, media_item_id, consumed_at)``; writing
    the same triple again is a no-op and existing rows are never updated.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    async def record(
        self,
        user_id: str,
        media_item_id: str,
        consumed_at: datetime,
        rating: int | None = None,
    ) -> RecordResult:
        consumed_at = to_naive_utc(consumed_at)
        async with self._session_factory() as session:
            session.add(
                ConsumptionLog(
                    user_id=user_id,
                    media_item_id=media_item_id,
                    consumed_at=consumed_at,
                    year_consumed=consumed_at.year,
                    rating=rating,
                )
            )
            try:
                await session.commit()
            except IntegrityError:
                await session.rollback()
                if not await self._exists(
                    session, user_id, media_item_id, consumed_at
                ):
                    raise
                return RecordResult(inserted=False)
        return RecordResult(inserted=True)

    @staticmethod
    async def _exists(
        session: AsyncSession,
        user_id: str,
        media_item_id: str,
        consumed_at: datetime,
    ) -> bool:
        stmt = (
            select(ConsumptionLog.id)
            .where(
                ConsumptionLog.user_id == user_id,
                ConsumptionLog.media_item_id == media_item_id,
                ConsumptionLog.consumed_at == consumed_at,
            )
            .limit(1)
        )
        result = await session.execute(stmt)
        return result.scalar_one_or_none() is not None
