"""Utility helpers for the media log service."""

from __future__ import annotations

import re
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime


WHITESPACE_RE = re.compile(r"\s+")

_DATE_FORMATS: tuple[str, ...] = ("%Y-%m-%d", "%Y/%m/%d", "%Y-%m-%d %H:%M:%S")


def utcnow() -> datetime:
    """Return the current UTC time as a naive datetime."""

    return datetime.now(timezone.utc).replace(tzinfo=None)


def slugify(value: str) -> str:
    """Return a lower-cased slug with whitespace runs collapsed to hyphens."""

    value = (value or "").strip().lower()
    return WHITESPACE_RE.sub("-", value)


def to_naive_utc(value: datetime) -> datetime:
    """Normalise an aware datetime to naive UTC; naive values are assumed UTC."""

    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def parse_timestamp(value: str | None) -> datetime | None:
    """Parse feed and export timestamps into naive UTC datetimes.

    Accepts RFC 822 dates as published in RSS ``pubDate`` elements, ISO 8601
    strings, and the plain ``YYYY-MM-DD`` / ``YYYY/MM/DD`` dates found in
    Letterboxd and Goodreads CSV exports. Returns ``None`` when nothing matches.
    """

    raw = (value or "").strip()
    if not raw:
        return None

    for fmt in _DATE_FORMATS:
        try:
            return datetime.strptime(raw, fmt)
        except ValueError:
            continue

    try:
        return to_naive_utc(datetime.fromisoformat(raw.replace("Z", "+00:00")))
    except ValueError:
        pass

    try:
        parsed = parsedate_to_datetime(raw)
    except (TypeError, ValueError, IndexError):
        return None
    if parsed is None:
        return None
    return to_naive_utc(parsed)
