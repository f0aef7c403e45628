"""Selector-priority article extraction."""

import logging
import re
from dataclasses import dataclass
from typing import Iterable, List, Optional, Tuple, Union

import trafilatura
from bs4 import BeautifulSoup
from bs4.element import Tag
from soupsieve import SelectorSyntaxError
from trafilatura.metadata import extract_metadata

from .models import ExtractedArticle, ExtractionFailure
from .site_patterns import FAMILY_BODY_SELECTORS, SelectorSet
from .text_utils import count_words, join_paragraphs, normalize_whitespace, parse_datetime

logger = logging.getLogger(__name__)

NOISE_TAGS = ["script", "style", "noscript", "template", "iframe", "form", "svg"]

TRAFILATURA_METHOD = "trafilatura"
PARAGRAPHS_METHOD = "paragraphs"

# " | Site Name", " - Site Name", " – Site Name"
TITLE_SUFFIX = re.compile(r"\s+[|\-–—:]\s+[^|\-–—:]{2,60}$")
BYLINE_PREFIX = re.compile(r"^by\s+", re.I)


@dataclass
class _BodyCandidate:
    method: str
    body: str
    words: int
    confidence: float


def strip_title_suffix(title: str) -> str:
    """Drop a trailing site-name segment from a page title."""
    stripped = TITLE_SUFFIX.sub("", title).strip()
    return stripped or title


def calculate_quality_score(body: str, title: str) -> int:
    """Heuristic 0-100 content quality score."""
    score = 0
    words = count_words(body)

    if words > 500:
        score += 40
    elif words > 300:
        score += 30
    elif words > 150:
        score += 20
    elif words > 50:
        score += 10

    if "\n\n" in body:
        score += 10
    if title and len(title) > 10:
        score += 10

    if len(body) > 1000:
        score += 20
    elif len(body) > 500:
        score += 15
    elif len(body) > 200:
        score += 10

    if words < 50:
        score -= 20
    if len(body) < 200:
        score -= 15

    return max(0, min(100, score))


class SelectorExtractor:
    """Extract title/body/date/author from raw HTML using ordered selectors.

    The first body selector whose text reaches ``substantial_words`` wins.
    If none does, trafilatura and a plain paragraph sweep are tried, and as a
    last resort the longest candidate seen is used with low confidence.
    """

    def __init__(
        self,
        selectors: Optional[SelectorSet] = None,
        substantial_words: int = 100,
        use_trafilatura: bool = True,
    ) -> None:
        self.selectors = selectors or SelectorSet()
        self.substantial_words = substantial_words
        self.use_trafilatura = use_trafilatura

    def _select(self, root: Union[BeautifulSoup, Tag], selector: str) -> List[Tag]:
        try:
            return root.select(selector)
        except SelectorSyntaxError:
            logger.warning("Ignoring invalid selector %r", selector)
            return []

    def _select_one(self, root: Union[BeautifulSoup, Tag], selector: str) -> Optional[Tag]:
        matches = self._select(root, selector)
        return matches[0] if matches else None

    def _element_text(self, element: Tag) -> str:
        """Text of an element as paragraphs, falling back to its full text."""
        full_text = normalize_whitespace(element.get_text(" "))
        if element.name == "p":
            return full_text

        paragraphs = join_paragraphs([p.get_text(" ") for p in element.find_all("p")])
        if paragraphs and count_words(paragraphs) * 2 >= count_words(full_text):
            return paragraphs
        return full_text

    def _strip_noise(self, soup: BeautifulSoup) -> None:
        for tag in soup(NOISE_TAGS):
            tag.decompose()
        for selector in self.selectors.exclude:
            for element in self._select(soup, selector):
                element.decompose()

    def _selector_confidence(self, selector: str) -> float:
        if selector in self.selectors.overridden:
            return 0.95
        if selector in FAMILY_BODY_SELECTORS:
            return 0.9
        return 0.8

    def extract_title(self, soup: BeautifulSoup) -> Tuple[str, Optional[str]]:
        """Return (title, raw page <title>)."""
        page_title = None
        if soup.title and soup.title.string:
            page_title = normalize_whitespace(soup.title.get_text())

        for selector in self.selectors.title:
            element = self._select_one(soup, selector)
            if element is not None:
                text = normalize_whitespace(element.get_text(" "))
                if text:
                    return text, page_title

        og_title = soup.find("meta", attrs={"property": "og:title"})
        if og_title and og_title.get("content"):
            return normalize_whitespace(og_title["content"]), page_title

        if page_title:
            return strip_title_suffix(page_title), page_title
        return "", page_title

    def extract_author(self, soup: BeautifulSoup) -> Optional[str]:
        for selector in self.selectors.author:
            element = self._select_one(soup, selector)
            if element is None:
                continue
            value = element.get("content") if element.name == "meta" else element.get_text(" ")
            text = BYLINE_PREFIX.sub("", normalize_whitespace(value or ""))
            if text and len(text) <= 100:
                return text
        return None

    def extract_published(self, soup: BeautifulSoup):
        for selector in self.selectors.date:
            element = self._select_one(soup, selector)
            if element is None:
                continue
            value = element.get("datetime") or element.get("content") or element.get_text(" ")
            parsed = parse_datetime(normalize_whitespace(value or ""))
            if parsed is not None:
                return parsed
        return None

    def _paragraph_sweep(self, soup: BeautifulSoup) -> str:
        paragraphs = [
            text
            for text in (normalize_whitespace(p.get_text(" ")) for p in soup.find_all("p"))
            if len(text) > 50
        ]
        return join_paragraphs(paragraphs)

    def _trafilatura_body(self, html: str, url: str) -> str:
        extracted = trafilatura.extract(
            html,
            include_comments=False,
            include_tables=False,
            deduplicate=True,
            favor_precision=True,
            url=url,
        )
        if not extracted:
            return ""
        return join_paragraphs(extracted.splitlines())

    def _extract_body(
        self,
        soup: BeautifulSoup,
        html: str,
        url: str,
        skip: Iterable[str],
    ) -> Tuple[Optional[_BodyCandidate], List[str]]:
        skip = set(skip)
        tried: List[str] = []
        candidates: List[_BodyCandidate] = []

        for selector in self.selectors.body:
            if selector in skip:
                continue
            tried.append(selector)
            for element in self._select(soup, selector):
                body = self._element_text(element)
                words = count_words(body)
                if not words:
                    continue
                candidate = _BodyCandidate(selector, body, words, self._selector_confidence(selector))
                if words >= self.substantial_words:
                    return candidate, tried
                candidates.append(candidate)

        if self.use_trafilatura and TRAFILATURA_METHOD not in skip:
            tried.append(TRAFILATURA_METHOD)
            body = self._trafilatura_body(html, url)
            words = count_words(body)
            if words:
                candidate = _BodyCandidate(TRAFILATURA_METHOD, body, words, 0.7)
                if words >= self.substantial_words:
                    return candidate, tried
                candidates.append(candidate)

        if PARAGRAPHS_METHOD not in skip:
            tried.append(PARAGRAPHS_METHOD)
            body = self._paragraph_sweep(soup)
            words = count_words(body)
            if words:
                candidate = _BodyCandidate(PARAGRAPHS_METHOD, body, words, 0.6)
                if words >= self.substantial_words:
                    return candidate, tried
                candidates.append(candidate)

        if not candidates:
            return None, tried

        longest = max(candidates, key=lambda c: c.words)
        longest.confidence = 0.3
        return longest, tried

    def extract(
        self,
        html: str,
        url: str,
        skip: Iterable[str] = (),
    ) -> Union[ExtractedArticle, ExtractionFailure]:
        """Extract an article, or explain why no body could be found.

        Args:
            html: Raw page HTML
            url: Page URL (used for relative metadata and logging)
            skip: Body methods already tried, for retrying with the next strategy
        """
        if not html or not html.strip():
            return ExtractionFailure(url=url, reason="empty_html")

        soup = BeautifulSoup(html, "lxml")
        title, page_title = self.extract_title(soup)
        author = self.extract_author(soup)
        published_at = self.extract_published(soup)

        self._strip_noise(soup)
        best, tried = self._extract_body(soup, html, url, skip)

        if best is None:
            logger.info("No body content found for %s (tried %d methods)", url, len(tried))
            return ExtractionFailure(url=url, reason="no_content", tried=tried)

        if author is None or published_at is None:
            metadata = extract_metadata(html, default_url=url)
            if metadata is not None:
                author = author or metadata.author
                published_at = published_at or parse_datetime(metadata.date)

        low_confidence = best.confidence < 0.5
        if low_confidence:
            logger.info(
                "Low-confidence extraction for %s: longest candidate %r has %d words",
                url,
                best.method,
                best.words,
            )

        return ExtractedArticle(
            url=url,
            title=title,
            body=best.body,
            author=author,
            published_at=published_at,
            extraction_method=best.method,
            confidence=best.confidence,
            low_confidence=low_confidence,
            quality_score=calculate_quality_score(best.body, title),
            page_title=page_title,
        )
