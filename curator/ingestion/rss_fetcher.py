"""RSS/Atom feed parsing and feed autodiscovery."""

import calendar
import logging
from datetime import datetime, timedelta, timezone
from typing import List, Optional

import feedparser
from bs4 import BeautifulSoup

from ..errors import InvalidUrlError
from .models import CandidateURL, DiscoveryStrategy, FeedResult
from .text_utils import join_paragraphs, normalize_whitespace
from .url_utils import normalize_url

logger = logging.getLogger(__name__)

FEED_TYPES = {
    "application/rss+xml",
    "application/atom+xml",
    "application/feed+json",
    "application/xml",
    "text/xml",
}


def _entry_datetime(entry) -> Optional[datetime]:
    for key in ("published_parsed", "updated_parsed", "created_parsed"):
        parsed = entry.get(key)
        if parsed:
            try:
                return datetime.fromtimestamp(calendar.timegm(parsed), tz=timezone.utc)
            except (OverflowError, ValueError, TypeError):
                continue
    return None


def summary_to_text(summary: Optional[str]) -> Optional[str]:
    """Strip markup from a feed summary, keeping paragraph breaks."""
    if not summary:
        return None
    if "<" not in summary:
        return normalize_whitespace(summary) or None
    soup = BeautifulSoup(summary, "lxml")
    blocks = [p.get_text(" ") for p in soup.find_all("p")]
    text = join_paragraphs(blocks) if blocks else normalize_whitespace(soup.get_text(" "))
    return text or None


def parse_feed(
    text: str,
    feed_url: str,
    max_age_days: Optional[int] = None,
    now: Optional[datetime] = None,
) -> FeedResult:
    """Parse feed text into candidate URLs.

    Entries older than ``max_age_days`` are skipped. Entries without a
    publication date are kept. Entry links are resolved against the feed URL.
    """
    feed = feedparser.parse(text)

    if feed.bozo and not feed.entries:
        return FeedResult(
            feed_url=feed_url,
            success=False,
            error=f"Invalid feed: {feed.get('bozo_exception')}",
        )
    if not feed.get("version") and not feed.entries:
        return FeedResult(feed_url=feed_url, success=False, error="Not a feed")

    now = now or datetime.now(timezone.utc)
    cutoff = now - timedelta(days=max_age_days) if max_age_days else None

    items: List[CandidateURL] = []
    seen = set()
    skipped_old = 0
    skipped_invalid = 0

    for entry in feed.entries:
        link = entry.get("link")
        if not link:
            skipped_invalid += 1
            continue
        try:
            normalized = normalize_url(link, feed_url)
        except InvalidUrlError as e:
            logger.debug("Skipping feed entry in %s: %s", feed_url, e)
            skipped_invalid += 1
            continue
        if normalized in seen:
            continue

        published = _entry_datetime(entry)
        if cutoff and published and published < cutoff:
            skipped_old += 1
            continue

        seen.add(normalized)
        items.append(
            CandidateURL(
                url=link,
                normalized_url=normalized,
                strategy=DiscoveryStrategy.RSS,
                title=normalize_whitespace(entry.get("title", "")) or None,
                published=published,
                author=entry.get("author") or None,
                summary=summary_to_text(entry.get("summary") or entry.get("description")),
            )
        )

    return FeedResult(
        feed_url=feed_url,
        success=True,
        title=feed.feed.get("title"),
        items=items,
        skipped_old=skipped_old,
        skipped_invalid=skipped_invalid,
    )


def find_feed_links(html: str, base_url: str) -> List[str]:
    """Find feed URLs advertised with ``<link rel="alternate">``."""
    if not html:
        return []
    soup = BeautifulSoup(html, "lxml")
    links = []
    for tag in soup.find_all("link", href=True):
        rel = tag.get("rel") or []
        if isinstance(rel, str):
            rel = rel.split()
        if "alternate" not in [r.lower() for r in rel]:
            continue
        if (tag.get("type") or "").lower() not in FEED_TYPES:
            continue
        try:
            url = normalize_url(tag["href"], base_url)
        except InvalidUrlError:
            continue
        if url not in links:
            links.append(url)
    return links
