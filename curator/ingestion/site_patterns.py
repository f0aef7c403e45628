"""Built-in selector knowledge and per-source selector resolution."""

from dataclasses import dataclass, field
from typing import Dict, Optional, Tuple

from ..config.models import SelectorOverrides

# Site-family selectors (WordPress and common CMS themes) come first,
# then generic semantic containers, then bare fallbacks.
FAMILY_BODY_SELECTORS = (
    ".entry-content",
    ".post-content",
    ".article-content",
    ".article-body",
    ".story-body",
    ".post-body",
    "[itemprop=articleBody]",
)

GENERIC_BODY_SELECTORS = (
    "article .content",
    "article",
    "[role=main] .entry-content",
    "[role=main]",
    "main .content",
    "main",
    ".content",
)

TITLE_SELECTORS = (
    "h1.entry-title",
    ".entry-title",
    "h1.post-title",
    "h1.article-title",
    "article h1",
    "h1",
)

DATE_SELECTORS = (
    "time[datetime]",
    "meta[property='article:published_time']",
    "meta[name='pubdate']",
    "meta[itemprop=datePublished]",
    ".published",
    ".post-date",
    ".entry-date",
    ".date",
    ".timestamp",
)

AUTHOR_SELECTORS = (
    ".author-name",
    ".byline",
    ".post-author",
    "[rel=author]",
    "[itemprop=author]",
    ".author",
    "meta[name=author]",
)

EXCLUDE_SELECTORS = (
    "nav",
    "footer",
    "aside",
    ".sidebar",
    ".widget",
    ".widget-area",
    ".related",
    ".related-posts",
    ".related-articles",
    ".comments",
    ".comments-area",
    ".social",
    ".social-share",
    ".share",
    ".advertisement",
    ".ad",
    ".navigation",
    ".newsletter",
    ".cookie-banner",
)


@dataclass(frozen=True)
class SitePattern:
    """Selectors known to work for a specific domain."""

    body: Tuple[str, ...] = ()
    title: Tuple[str, ...] = ()
    author: Tuple[str, ...] = ()
    date: Tuple[str, ...] = ()
    exclude: Tuple[str, ...] = ()


SITE_PATTERNS: Dict[str, SitePattern] = {
    "bournefree.co.uk": SitePattern(
        body=(".entry-content", ".post-content", "article .content", ".article-body"),
        title=(".entry-title", "h1.post-title", "article h1"),
        author=(".author-name", ".byline", ".post-author"),
        exclude=(".sidebar", ".widget", ".related-posts", ".comments", ".social-share"),
    ),
    "eastbournereporter.co.uk": SitePattern(
        body=(".entry-content", ".post-body", "article .content"),
        exclude=(".sidebar", ".widget-area", ".related-articles", ".comments-area"),
    ),
}


def _merge(*groups: Tuple[str, ...]) -> Tuple[str, ...]:
    """Concatenate selector groups, keeping the first occurrence of each."""
    seen = set()
    merged = []
    for group in groups:
        for selector in group:
            if selector not in seen:
                seen.add(selector)
                merged.append(selector)
    return tuple(merged)


@dataclass(frozen=True)
class SelectorSet:
    """Fully merged selector priority lists for one source run."""

    title: Tuple[str, ...] = TITLE_SELECTORS
    body: Tuple[str, ...] = FAMILY_BODY_SELECTORS + GENERIC_BODY_SELECTORS
    date: Tuple[str, ...] = DATE_SELECTORS
    author: Tuple[str, ...] = AUTHOR_SELECTORS
    exclude: Tuple[str, ...] = EXCLUDE_SELECTORS
    overridden: Tuple[str, ...] = field(default=(), compare=False)


def resolve_selectors(
    domain: Optional[str] = None,
    overrides: Optional[SelectorOverrides] = None,
) -> SelectorSet:
    """Build the selector set for a source.

    Order per field: per-source overrides, known site pattern for the domain,
    then the built-in family/generic lists.
    """
    pattern = SITE_PATTERNS.get((domain or "").lower().removeprefix("www."), SitePattern())
    overrides = overrides or SelectorOverrides()

    return SelectorSet(
        title=_merge(tuple(overrides.title), pattern.title, TITLE_SELECTORS),
        body=_merge(
            tuple(overrides.body),
            pattern.body,
            FAMILY_BODY_SELECTORS,
            GENERIC_BODY_SELECTORS,
        ),
        date=_merge(tuple(overrides.date), pattern.date, DATE_SELECTORS),
        author=_merge(tuple(overrides.author), pattern.author, AUTHOR_SELECTORS),
        exclude=_merge(tuple(overrides.exclude), pattern.exclude, EXCLUDE_SELECTORS),
        overridden=tuple(overrides.body) + pattern.body,
    )
