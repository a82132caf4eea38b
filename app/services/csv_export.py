"""Readers for Letterboxd and Goodreads CSV exports."""

from __future__ import annotations

import csv
import io
import logging
import math
from typing import Callable, Mapping

from ..models import ImportItem
from .identity import goodreads_row_identity, letterboxd_row_identity

logger = logging.getLogger(__name__)


def read_csv_rows(text: str) -> list[dict[str, str]]:
    """Return the rows of a CSV document keyed by trimmed header names.

    Quoted fields may contain commas, quotes and line breaks. Missing trailing
    values are returned as empty strings.
    """

    content = (text or "").lstrip("\ufeff").strip()
    if not content:
        return []

    reader = csv.reader(io.StringIO(content))
    try:
        headers = [header.strip() for header in next(reader)]
    except StopIteration:
        return []

    rows: list[dict[str, str]] = []
    for values in reader:
        if not any(value.strip() for value in values):
            continue
        row: dict[str, str] = {}
        for index, header in enumerate(headers):
            row[header] = values[index].strip() if index < len(values) else ""
        rows.append(row)
    return rows


def _letterboxd_rating(raw: str) -> int | None:
    if not raw:
        return None
    try:
        stars = float(raw)
    except ValueError:
        logger.warning("Ignoring unparseable Letterboxd rating %r", raw)
        return None
    return int(math.floor(stars * 2 + 0.5))


def _goodreads_rating(raw: str) -> int | None:
    if not raw:
        return None
    try:
        rating = int(raw)
    except ValueError:
        logger.warning("Ignoring unparseable Goodreads rating %r", raw)
        return None
    # Goodreads exports unrated books as 0.
    return rating or None


def letterboxd_items(rows: list[Mapping[str, str]]) -> list[ImportItem]:
    """Map ``diary.csv`` rows to import items.

    Rows without ``Name`` or ``Watched Date`` are dropped.
    """

    items: list[ImportItem] = []
    for row in rows:
        title = row.get("Name") or ""
        watched = row.get("Watched Date") or ""
        if not (title and watched):
            continue
        items.append(
            ImportItem(
                title=title,
                external_id=letterboxd_row_identity(row),
                consumed_at=watched,
                rating=_letterboxd_rating(row.get("Rating") or ""),
            )
        )
    return items


def goodreads_items(rows: list[Mapping[str, str]]) -> list[ImportItem]:
    """Map ``goodreads_library_export.csv`` rows to import items.

    Only books on the ``read`` exclusive shelf with a ``Title`` and a
    ``Date Read`` are kept.
    """

    items: list[ImportItem] = []
    for row in rows:
        title = row.get("Title") or ""
        date_read = row.get("Date Read") or ""
        if not (title and date_read):
            continue
        if row.get("Exclusive Shelf") != "read":
            continue
        items.append(
            ImportItem(
                title=title,
                external_id=goodreads_row_identity(row),
                consumed_at=date_read,
                rating=_goodreads_rating(row.get("My Rating") or ""),
            )
        )
    return items


_READERS: dict[str, Callable[[list[Mapping[str, str]]], list[ImportItem]]] = {
    "letterboxd": letterboxd_items,
    "goodreads": goodreads_items,
}


def parse_export(source: str, text: str) -> list[ImportItem]:
    """Parse an export file for ``source`` into import items."""

    try:
        reader = _READERS[source]
    except KeyError as exc:
        raise ValueError(f"Unsupported source: {source}") from exc
    return reader(read_csv_rows(text))
