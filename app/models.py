"""Pydantic models describing API payloads."""

from __future__ import annotations

import math
from datetime import datetime
from typing import Any, Literal

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from .utils import parse_timestamp

Provider = Literal["letterboxd", "goodreads"]
MediaType = Literal["movie", "book"]

PROVIDER_MEDIA_TYPES: dict[str, MediaType] = {
    "letterboxd": "movie",
    "goodreads": "book",
}


def media_type_for(source: str) -> MediaType:
    """Return the media type produced by a provider."""

    try:
        return PROVIDER_MEDIA_TYPES[source]
    except KeyError as exc:
        raise ValueError(f"Unsupported source: {source}") from exc


class ImportItem(BaseModel):
    """A single row submitted for batch import.

    Fields are lenient on purpose: rows lacking a title, identifier or a
    parseable consumption date are filtered by the importer instead of failing
    the whole request.
    """

    model_config = ConfigDict(populate_by_name=True)

    title: str = ""
    external_id: str = Field(
        default="", validation_alias=AliasChoices("externalId", "external_id")
    )
    consumed_at: datetime | None = Field(
        default=None, validation_alias=AliasChoices("consumedAt", "consumed_at")
    )
    rating: int | None = Field(default=None, ge=0, le=10)

    @field_validator("title", "external_id", mode="before")
    @classmethod
    def _strip_text(cls, value: object) -> object:
        if value is None:
            return ""
        if isinstance(value, (int, float)):
            return str(value)
        if isinstance(value, str):
            return value.strip()
        return value

    @field_validator("consumed_at", mode="before")
    @classmethod
    def _parse_consumed_at(cls, value: object) -> object:
        if value is None or isinstance(value, datetime):
            return value
        if isinstance(value, str):
            return parse_timestamp(value)
        return value

    def is_complete(self) -> bool:
        return bool(self.title and self.external_id and self.consumed_at)


class ImportRequest(BaseModel):
    """Body of the JSON import handler."""

    source: Provider = Field(validation_alias=AliasChoices("type", "source"))
    items: list[ImportItem] = Field(default_factory=list)


class LinkAccountRequest(BaseModel):
    """Body of the account linking action."""

    provider: Provider = Field(validation_alias=AliasChoices("type", "provider"))
    username: str = Field(min_length=1, max_length=200)

    @field_validator("username", mode="before")
    @classmethod
    def _strip_username(cls, value: object) -> object:
        if isinstance(value, str):
            return value.strip()
        return value


class YearlyGoalRequest(BaseModel):
    """Body of the yearly goal settings action."""

    year: int = Field(ge=1900, le=3000)
    media_type: MediaType = Field(validation_alias=AliasChoices("type", "mediaType"))
    target: int = Field(ge=0, le=100_000)


class GoalProgress(BaseModel):
    """Progress towards a yearly goal for one media type."""

    media_type: MediaType
    current: int
    target: int

    @property
    def percentage(self) -> float:
        if self.target <= 0:
            return 0.0
        return min(self.current / self.target * 100, 100.0)

    def to_payload(self) -> dict[str, Any]:
        return {
            "type": self.media_type,
            "current": self.current,
            "target": self.target,
            "percentage": math.floor(self.percentage + 0.5),
        }
