"""Text and date helpers shared by extraction, validation and dedup."""

import html
import re
from datetime import date, datetime, timezone
from typing import List, Optional, Union

import pendulum

_WHITESPACE = re.compile(r"\s+")
_PARAGRAPH_BREAK = re.compile(r"\n\s*\n")


def normalize_whitespace(text: str) -> str:
    """Decode leftover entities and collapse whitespace runs to single spaces."""
    if not text:
        return ""
    return _WHITESPACE.sub(" ", html.unescape(text)).strip()


def count_words(text: str) -> int:
    """Count whitespace-delimited tokens."""
    if not text:
        return 0
    return len(text.split())


def split_paragraphs(text: str) -> List[str]:
    """Split body text on blank lines, dropping empty paragraphs."""
    if not text:
        return []
    return [p.strip() for p in _PARAGRAPH_BREAK.split(text) if p.strip()]


def join_paragraphs(paragraphs: List[str]) -> str:
    """Normalize each paragraph and join them with blank lines."""
    cleaned = [normalize_whitespace(p) for p in paragraphs]
    return "\n\n".join(p for p in cleaned if p)


def parse_datetime(value: Union[str, datetime, date, None]) -> Optional[datetime]:
    """Parse a loosely formatted date into an aware UTC datetime, or None."""
    if value is None:
        return None
    if isinstance(value, datetime):
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day, tzinfo=timezone.utc)

    text = str(value).strip()
    if not text:
        return None

    try:
        parsed = pendulum.parse(text, strict=False)
    except (ValueError, TypeError, OverflowError):
        return None

    if isinstance(parsed, datetime):
        return pendulum.instance(parsed).in_timezone("UTC")
    if isinstance(parsed, date):
        return datetime(parsed.year, parsed.month, parsed.day, tzinfo=timezone.utc)
    return None
