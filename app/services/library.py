"""User-facing library operations: linked accounts, goals and log queries."""

from __future__ import annotations

import logging
from typing import Any, get_args

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.orm import selectinload

from ..config import Settings
from ..db_models import CatalogItem, ConsumptionLog, LinkedAccount, YearlyGoal
from ..models import GoalProgress, MediaType
from .feeds import build_feed_url

logger = logging.getLogger(__name__)


def serialize_account(account: LinkedAccount) -> dict[str, Any]:
    return {
        "id": account.id,
        "type": account.provider,
        "username": account.username,
        "feedUrl": account.feed_url,
        "lastSyncedAt": (
            account.last_synced_at.isoformat() if account.last_synced_at else None
        ),
    }


def serialize_log(log: ConsumptionLog) -> dict[str, Any]:
    item = log.media_item
    return {
        "id": log.id,
        "consumedAt": log.consumed_at.isoformat(),
        "yearConsumed": log.year_consumed,
        "rating": log.rating,
        "mediaItem": {
            "id": item.id,
            "type": item.media_type,
            "source": item.source,
            "externalId": item.external_id,
            "title": item.title,
            "posterUrl": item.poster_url,
            "author": item.author,
            "releaseYear": item.release_year,
        },
    }


def serialize_goal(goal: YearlyGoal) -> dict[str, Any]:
    return {
        "id": goal.id,
        "year": goal.year,
        "type": goal.media_type,
        "target": goal.target,
    }


class LibraryService:
    """CRUD around the ingestion pipeline, always scoped to one user."""

    def __init__(
        self,
        settings: Settings,
        session_factory: async_sessionmaker[AsyncSession],
    ):
        self._settings = settings
        self._session_factory = session_factory

    async def link_account(
        self, user_id: str, provider: str, username: str
    ) -> LinkedAccount:
        """Create or relink the user's account for ``provider``.

        Relinking replaces the username and feed URL but keeps the sync
        watermark.
        """

        cleaned = username.strip()
        feed_url = build_feed_url(provider, cleaned, self._settings)
        async with self._session_factory() as session:
            stmt = select(LinkedAccount).where(
                LinkedAccount.user_id == user_id,
                LinkedAccount.provider == provider,
            )
            account = (await session.execute(stmt)).scalar_one_or_none()
            if account is None:
                account = LinkedAccount(
                    user_id=user_id,
                    provider=provider,
                    username=cleaned,
                    feed_url=feed_url,
                )
                session.add(account)
            else:
                account.username = cleaned
                account.feed_url = feed_url
            await session.commit()
            await session.refresh(account)
        logger.info("Linked %s account %s for user %s", provider, cleaned, user_id)
        return account

    async def list_accounts(self, user_id: str) -> list[LinkedAccount]:
        async with self._session_factory() as session:
            stmt = (
                select(LinkedAccount)
                .where(LinkedAccount.user_id == user_id)
                .order_by(LinkedAccount.provider)
            )
            result = await session.execute(stmt)
            return list(result.scalars().all())

    async def save_yearly_goal(
        self, user_id: str, year: int, media_type: str, target: int
    ) -> None:
        """Upsert the user's target for a year and media type."""

        async with self._session_factory() as session:
            stmt = select(YearlyGoal).where(
                YearlyGoal.user_id == user_id,
                YearlyGoal.year == year,
                YearlyGoal.media_type == media_type,
            )
            goal = (await session.execute(stmt)).scalar_one_or_none()
            if goal is None:
                session.add(
                    YearlyGoal(
                        user_id=user_id,
                        year=year,
                        media_type=media_type,
                        target=target,
                    )
                )
            else:
                goal.target = target
            await session.commit()

    async def get_yearly_goals(self, user_id: str, year: int) -> list[YearlyGoal]:
        async with self._session_factory() as session:
            stmt = select(YearlyGoal).where(
                YearlyGoal.user_id == user_id,
                YearlyGoal.year == year,
            )
            result = await session.execute(stmt)
            return list(result.scalars().all())

    async def media_for_year(
        self, user_id: str, year: int, media_type: str | None = None
    ) -> list[ConsumptionLog]:
        """Return the user's log rows for a year, newest first."""

        async with self._session_factory() as session:
            stmt = (
                select(ConsumptionLog)
                .options(selectinload(ConsumptionLog.media_item))
                .where(
                    ConsumptionLog.user_id == user_id,
                    ConsumptionLog.year_consumed == year,
                )
                .order_by(ConsumptionLog.consumed_at.desc())
            )
            if media_type is not None:
                stmt = stmt.join(ConsumptionLog.media_item).where(
                    CatalogItem.media_type == media_type
                )
            result = await session.execute(stmt)
            return list(result.scalars().all())

    async def recent_media(
        self, user_id: str, limit: int = 10
    ) -> list[ConsumptionLog]:
        async with self._session_factory() as session:
            stmt = (
                select(ConsumptionLog)
                .options(selectinload(ConsumptionLog.media_item))
                .where(ConsumptionLog.user_id == user_id)
                .order_by(ConsumptionLog.consumed_at.desc())
                .limit(limit)
            )
            result = await session.execute(stmt)
            return list(result.scalars().all())

    async def year_progress(self, user_id: str, year: int) -> list[GoalProgress]:
        """Return goal progress for every media type in ``year``."""

        async with self._session_factory() as session:
            count_stmt = (
                select(CatalogItem.media_type, func.count(ConsumptionLog.id))
                .select_from(ConsumptionLog)
                .join(CatalogItem, ConsumptionLog.media_item_id == CatalogItem.id)
                .where(
                    ConsumptionLog.user_id == user_id,
                    ConsumptionLog.year_consumed == year,
                )
                .group_by(CatalogItem.media_type)
            )
            counts = {
                media_type: count
                for media_type, count in (await session.execute(count_stmt)).all()
            }
            goal_stmt = select(YearlyGoal).where(
                YearlyGoal.user_id == user_id,
                YearlyGoal.year == year,
            )
            targets = {
                goal.media_type: goal.target
                for goal in (await session.execute(goal_stmt)).scalars().all()
            }

        return [
            GoalProgress(
                media_type=media_type,
                current=counts.get(media_type, 0),
                target=targets.get(media_type, 0),
            )
            for media_type in get_args(MediaType)
        ]
