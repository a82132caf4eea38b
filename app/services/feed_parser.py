"""Lenient extraction of entries from Letterboxd and Goodreads RSS feeds.

Neither feed is guaranteed to be well-formed XML, so entries are pulled out
with pattern matching rather than a validating parser. Each ``<item>`` block
is examined on its own; a block that is missing what we need is skipped
without affecting its neighbours.

For every tagged field the CDATA form (``<title><![CDATA[...]]></title>``)
wins over the plain text form (``<title>...</title>``). Plain text has XML
entities unescaped; CDATA content is taken verbatim.
"""

from __future__ import annotations

import html
import re
from dataclasses import dataclass

ITEM_RE = re.compile(r"<item\b[^>]*>(.*?)</item>", re.DOTALL)

_CDATA_TEMPLATE = r"<{tag}\b[^>]*>\s*<!\[CDATA\[(.*?)\]\]>\s*</{tag}>"
_PLAIN_TEMPLATE = r"<{tag}\b[^>]*>(.*?)</{tag}>"


@dataclass(slots=True)
class FeedEntry:
    """A single entry pulled from a feed."""

    title: str
    link: str
    pub_date: str = ""


def _field_patterns(tag: str) -> tuple[re.Pattern[str], re.Pattern[str]]:
    escaped = re.escape(tag)
    return (
        re.compile(_CDATA_TEMPLATE.format(tag=escaped), re.DOTALL),
        re.compile(_PLAIN_TEMPLATE.format(tag=escaped), re.DOTALL),
    )


_TITLE_PATTERNS = _field_patterns("title")
_LINK_PATTERNS = _field_patterns("link")
_PUB_DATE_PATTERNS = _field_patterns("pubDate")


def _extract(
    block: str, patterns: tuple[re.Pattern[str], re.Pattern[str]]
) -> str:
    cdata_pattern, plain_pattern = patterns
    match = cdata_pattern.search(block)
    if match:
        return match.group(1).strip()
    match = plain_pattern.search(block)
    if match:
        return html.unescape(match.group(1)).strip()
    return ""


def parse_feed(text: str) -> list[FeedEntry]:
    """Return the entries of an RSS document in feed order.

    Items without a title or a link are dropped. A document with no items
    produces an empty list.
    """

    entries: list[FeedEntry] = []
    for match in ITEM_RE.finditer(text or ""):
        block = match.group(1)
        title = _extract(block, _TITLE_PATTERNS)
        link = _extract(block, _LINK_PATTERNS)
        if not (title and link):
            continue
        entries.append(
            FeedEntry(
                title=title,
                link=link,
                pub_date=_extract(block, _PUB_DATE_PATTERNS),
            )
        )
    return entries
