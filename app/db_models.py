"""SQLAlchemy ORM models backing the persistent state."""

from __future__ import annotations

from datetime import datetime
from uuid import uuid4

from sqlalchemy import DateTime, ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .database import Base
from .utils import utcnow


def _new_id() -> str:
    return uuid4().hex


class LinkedAccount(Base):
    """A user's connection to Letterboxd or Goodreads via its RSS feed."""

    __tablename__ = "linked_accounts"
    __table_args__ = (
        UniqueConstraint("user_id", "provider", name="uq_linked_account_user_provider"),
    )

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=_new_id)
    user_id: Mapped[str] = mapped_column(String(64), index=True)
    provider: Mapped[str] = mapped_column(String(16))
    username: Mapped[str] = mapped_column(String(200))
    feed_url: Mapped[str] = mapped_column(Text)
    last_synced_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)


class CatalogItem(Base):
    """Canonical movie or book shared by every user who logged it."""

    __tablename__ = "media_items"
    __table_args__ = (
        UniqueConstraint("source", "external_id", name="uq_media_item_source_external"),
    )

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=_new_id)
    media_type: Mapped[str] = mapped_column(String(16))
    external_id: Mapped[str] = mapped_column(String(512))
    source: Mapped[str] = mapped_column(String(16))
    title: Mapped[str] = mapped_column(Text)
    poster_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    author: Mapped[str | None] = mapped_column(String(255), nullable=True)
    release_year: Mapped[int | None] = mapped_column(Integer, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)

    logs: Mapped[list["ConsumptionLog"]] = relationship(
        back_populates="media_item", cascade="all, delete-orphan"
    )


class ConsumptionLog(Base):
    """A user's record of watching or reading an item at a point in time."""

    __tablename__ = "media_log"
    __table_args__ = (
        UniqueConstraint(
            "user_id",
            "media_item_id",
            "consumed_at",
            name="uq_media_log_user_item_consumed",
        ),
    )

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=_new_id)
    user_id: Mapped[str] = mapped_column(String(64), index=True)
    media_item_id: Mapped[str] = mapped_column(
        String(32), ForeignKey("media_items.id", ondelete="CASCADE")
    )
    consumed_at: Mapped[datetime] = mapped_column(DateTime)
    year_consumed: Mapped[int] = mapped_column(Integer, index=True)
    rating: Mapped[int | None] = mapped_column(Integer, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)

    media_item: Mapped[CatalogItem] = relationship(back_populates="logs")


class YearlyGoal(Base):
    """Target count of movies or books for a user in a given year."""

    __tablename__ = "yearly_goals"
    __table_args__ = (
        UniqueConstraint(
            "user_id", "year", "media_type", name="uq_yearly_goal_user_year_type"
        ),
    )

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=_new_id)
    user_id: Mapped[str] = mapped_column(String(64), index=True)
    year: Mapped[int] = mapped_column(Integer)
    media_type: Mapped[str] = mapped_column(String(16))
    target: Mapped[int] = mapped_column(Integer)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)
