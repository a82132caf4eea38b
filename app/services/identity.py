"""Derivation of stable external identifiers for catalog entries."""

from __future__ import annotations

import re
from typing import Mapping

from ..utils import slugify

LETTERBOXD_FILM_RE = re.compile(r"/film/([^/?#]+)")
GOODREADS_SHOW_RE = re.compile(r"/show/(\d+)")


def letterboxd_external_id(link: str) -> str:
    """Return the film slug of a Letterboxd permalink, or the link itself.

    ``https://letterboxd.com/alice/film/heat/`` resolves to ``heat``. ``link`` must
    be non-empty; the fallback returns it unchanged.
    """

    match = LETTERBOXD_FILM_RE.search(link)
    return match.group(1) if match else link


def goodreads_external_id(link: str) -> str:
    """Return the review id of a Goodreads permalink, or the link itself.

    ``https://www.goodreads.com/review/show/123456789`` resolves to
    ``123456789``. ``link`` must be non-empty; the fallback returns it
    unchanged.
    """

    match = GOODREADS_SHOW_RE.search(link)
    return match.group(1) if match else link


def resolve_feed_identity(provider: str, link: str) -> str:
    """Resolve the identifier of a feed entry for the given provider.

    Never fails for a known provider: any non-empty ``link`` yields a non-empty
    identifier. ``parse_feed`` only emits entries that have a link.
    """

    if provider == "letterboxd":
        return letterboxd_external_id(link)
    if provider == "goodreads":
        return goodreads_external_id(link)
    raise ValueError(f"Unsupported provider: {provider}")


def letterboxd_row_identity(row: Mapping[str, str]) -> str:
    """Return the identifier of a ``diary.csv`` row.

    Uses the last path segment of ``Letterboxd URI`` and falls back to the
    slugified ``Name`` when the URI is missing.
    """

    uri = (row.get("Letterboxd URI") or "").strip().rstrip("/")
    segment = uri.rsplit("/", 1)[-1] if uri else ""
    return segment or slugify(row.get("Name") or "")


def goodreads_row_identity(row: Mapping[str, str]) -> str:
    """Return the identifier of a Goodreads library export row."""

    book_id = (row.get("Book Id") or "").strip()
    return book_id or slugify(row.get("Title") or "")
