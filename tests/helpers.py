"""Builders for HTML pages, feeds and models used across tests."""

import itertools
from datetime import datetime, timezone
from typing import List, Optional

import httpx

from curator.db import DuplicateConflict
from curator.ingestion.models import ExtractedArticle
from curator.models import ContentSource

VOCABULARY = (
    "council planning school residents budget transport library harbour "
    "community police volunteers market festival housing road funding "
    "committee report meeting teachers parents station flood museum"
).split()


def words(n: int, offset: int = 0) -> str:
    """``n`` words of plausible filler, varied by ``offset``."""
    size = len(VOCABULARY)
    return " ".join(VOCABULARY[(i * 7 + offset) % size] for i in range(n))


def paragraphs(total_words: int, per_paragraph: int = 50, offset: int = 0) -> List[str]:
    result = []
    remaining = total_words
    i = 0
    while remaining > 0:
        count = min(per_paragraph, remaining)
        result.append(words(count, offset + i * 3))
        remaining -= count
        i += 1
    return result


def article_page(
    body_words: int = 500,
    body_class: str = "entry-content",
    title: str = "Council approves new harbour budget",
    extra: str = "",
) -> str:
    """A news article page with a body container and sidebar noise."""
    body = "".join(f"<p>{p}</p>" for p in paragraphs(body_words))
    return f"""
    <html>
      <head><title>{title} | Bourne Free</title></head>
      <body>
        <nav><a href="/">Home</a> <a href="/news">News</a></nav>
        <article>
          <h1 class="entry-title">{title}</h1>
          <span class="byline">By Jane Smith</span>
          <time datetime="2024-05-01T09:30:00+01:00">1 May 2024</time>
          <div class="{body_class}">{body}</div>
        </article>
        <aside class="sidebar"><p>{words(30, 5)}</p></aside>
        {extra}
        <footer>Copyright Bourne Free</footer>
      </body>
    </html>
    """


def rss_feed(items: List[dict], title: str = "Bourne Free") -> str:
    entries = []
    for item in items:
        parts = [f"<title>{item.get('title', 'Untitled')}</title>", f"<link>{item['link']}</link>"]
        if "description" in item:
            parts.append(f"<description><![CDATA[{item['description']}]]></description>")
        if "pubDate" in item:
            parts.append(f"<pubDate>{item['pubDate']}</pubDate>")
        if "author" in item:
            parts.append(f"<author>{item['author']}</author>")
        entries.append("<item>" + "".join(parts) + "</item>")
    return f"""<?xml version="1.0" encoding="UTF-8"?>
    <rss version="2.0">
      <channel>
        <title>{title}</title>
        <link>https://www.bournefree.co.uk/</link>
        <description>Local news</description>
        {''.join(entries)}
      </channel>
    </rss>
    """


def make_source(**overrides) -> ContentSource:
    data = dict(
        id=1,
        name="Bourne Free",
        canonical_domain="bournefree.co.uk",
        homepage_url="https://www.bournefree.co.uk/",
        scraping_method="auto",
        topic_ids=[10],
        topic_keywords=["council", "harbour"],
    )
    data.update(overrides)
    return ContentSource(**data)


def make_extracted(
    body_words: int = 300,
    title: str = "Council approves new harbour budget",
    per_paragraph: int = 50,
    page_title: Optional[str] = None,
    **overrides,
) -> ExtractedArticle:
    data = dict(
        url="https://www.bournefree.co.uk/news/harbour-budget",
        title=title,
        body="\n\n".join(paragraphs(body_words, per_paragraph)),
        extraction_method=".entry-content",
        page_title=page_title,
    )
    data.update(overrides)
    return ExtractedArticle(**data)


def utc(*args) -> datetime:
    return datetime(*args, tzinfo=timezone.utc)


class FakeHistory:
    """In-memory URL history with the store's lookup interface."""

    def __init__(self, seen=(), discarded=()):
        self.seen = set(seen)
        self.discarded = set(discarded)
        self.marked = []
        self.lookups = []

    def is_recently_seen(self, normalized_url, source_id, window_hours):
        self.lookups.append((normalized_url, source_id, window_hours))
        return window_hours > 0 and normalized_url in self.seen

    def is_discarded(self, normalized_url, topic_ids):
        return bool(topic_ids) and normalized_url in self.discarded

    def mark_seen(self, normalized_url, source_id, status="seen"):
        self.marked.append((normalized_url, status))
        self.seen.add(normalized_url)


class FakeSite:
    """Mock transport serving fixed pages by URL; everything else is a 404."""

    def __init__(self, pages=None):
        self.pages = dict(pages or {})
        self.requests = []

    def __call__(self, request):
        url = str(request.url)
        self.requests.append(url)
        page = self.pages.get(url)
        if page is None:
            return httpx.Response(404, text="not found")
        if isinstance(page, httpx.Response):
            return page
        content_type = "application/xml" if page.lstrip().startswith("<?xml") else "text/html"
        return httpx.Response(200, text=page, headers={"Content-Type": content_type})

    def client(self):
        return httpx.AsyncClient(transport=httpx.MockTransport(self))


async def no_sleep(seconds):
    return None


class FakeSourceManager:
    def __init__(self, locked_elsewhere=()):
        self.health_updates = []
        self.locked_elsewhere = set(locked_elsewhere)
        self.held = set()
        self.released = []

    def try_lock_source(self, conn, source_id):
        if source_id in self.locked_elsewhere or source_id in self.held:
            return False
        self.held.add(source_id)
        return True

    def unlock_source(self, conn, source_id):
        self.held.discard(source_id)
        self.released.append(source_id)

    def update_source_health(self, conn, source_id, success, response_time_ms=None, error_message=None):
        self.health_updates.append(
            {"source_id": source_id, "success": success, "response_time_ms": response_time_ms, "error": error_message}
        )


class FakeArticleStorage:
    def __init__(self, corpus=None, conflicts=None):
        self.articles = {}
        self.corpus = list(corpus or [])
        self.conflicts = dict(conflicts or {})
        self.duplicate_pairs = []
        self._ids = itertools.count(1)

    def get_recent_fingerprints(self, conn, days=14, limit=500):
        return list(self.corpus)

    def save_article(self, conn, article):
        if article.normalized_url in self.conflicts:
            return DuplicateConflict(existing_id=self.conflicts[article.normalized_url], method="checksum")
        article_id = next(self._ids)
        self.articles[article_id] = article
        return article_id

    def record_duplicates(self, conn, article_id, matches):
        self.duplicate_pairs.extend((article_id, m) for m in matches)
        return len(matches)


class FakeRunManager:
    def __init__(self):
        self.runs = {}

    def create_run(self, conn, source_id, started_at=None, status="running"):
        run_id = len(self.runs) + 1
        self.runs[run_id] = {"source_id": source_id, "status": status, "stats": None}
        return run_id

    def update_run_status(self, conn, run_id, status, stats_json=None, finished_at=None):
        self.runs[run_id].update(status=status, stats=stats_json)


class FakeErrorLog:
    def __init__(self):
        self.tickets = []

    def log_error(self, ticket_type, details, severity="medium"):
        self.tickets.append((ticket_type, severity, details))

    def types(self):
        return [t[0] for t in self.tickets]
