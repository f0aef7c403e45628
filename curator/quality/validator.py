"""Content quality gate for extracted articles."""

import logging
import re
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field

from ..config.models import ValidationConfig
from ..ingestion.models import ExtractedArticle
from ..ingestion.text_utils import split_paragraphs

logger = logging.getLogger(__name__)

TAG_LIKE = re.compile(r"<[^<>]{1,200}>")
SITE_SUFFIX = re.compile(r"\s(\||-|–|—|::?)\s\S")

GENERIC_TITLES = {
    "home",
    "homepage",
    "news",
    "latest news",
    "blog",
    "index",
    "untitled",
    "page not found",
    "404",
    "access denied",
    "just a moment...",
}


class Verdict(str, Enum):
    """Outcome of the quality gate."""

    PASS = "pass"
    FAIL = "fail"
    RETRY = "retry"


class Reason(str, Enum):
    """Why an article failed a quality rule."""

    TOO_SHORT = "too_short"
    TOO_LONG = "too_long"
    TOO_FEW_PARAGRAPHS = "too_few_paragraphs"
    MISSING_TITLE = "missing_title"
    TITLE_LENGTH = "title_length"
    GENERIC_TITLE = "generic_title"
    MARKUP_HEAVY = "markup_heavy"
    BOILERPLATE_ONLY = "boilerplate_only"


# A different extraction strategy can plausibly fix these
RETRYABLE_REASONS = frozenset(
    {
        Reason.TOO_SHORT,
        Reason.TOO_LONG,
        Reason.TOO_FEW_PARAGRAPHS,
        Reason.MARKUP_HEAVY,
        Reason.BOILERPLATE_ONLY,
    }
)


class ValidationResult(BaseModel):
    """Quality gate verdict with the reasons behind it."""

    verdict: Verdict = Field(...)
    reasons: List[Reason] = Field(default_factory=list)
    quality_score: int = Field(0, ge=0, le=100)
    meets_quality_target: bool = Field(False)
    markup_ratio: float = Field(0.0, ge=0.0, le=1.0)

    @property
    def passed(self) -> bool:
        return self.verdict == Verdict.PASS

    def describe(self) -> str:
        """Comma-separated reasons, for logs and error tickets."""
        return ", ".join(r.value for r in self.reasons) or "ok"


def markup_ratio(body: str) -> float:
    """Share of the body made of tag-like ``<...>`` runs."""
    if not body:
        return 0.0
    tagged = sum(len(m.group(0)) for m in TAG_LIKE.finditer(body))
    return min(1.0, tagged / len(body))


def is_generic_title(title: str, page_title: Optional[str]) -> bool:
    """Whether a title looks like a page/site fallback rather than a headline."""
    lowered = title.strip().lower()
    if lowered in GENERIC_TITLES:
        return True
    if page_title and title.strip() == page_title.strip():
        return bool(SITE_SUFFIX.search(title))
    return False


class ContentValidator:
    """Apply the quality rules to an extracted article."""

    def __init__(self, config: Optional[ValidationConfig] = None) -> None:
        self.config = config or ValidationConfig()
        self._phrases = [p.lower() for p in self.config.blacklist_phrases]

    def _is_boilerplate_only(self, body: str) -> bool:
        paragraphs = split_paragraphs(body)
        if not paragraphs or not self._phrases:
            return False
        return all(any(phrase in p.lower() for phrase in self._phrases) for p in paragraphs)

    def validate(
        self,
        article: ExtractedArticle,
        min_paragraphs: Optional[int] = None,
        is_summary: bool = False,
    ) -> ValidationResult:
        """Validate an article.

        Args:
            article: Extracted article
            min_paragraphs: Per-source paragraph floor overriding the configured one
            is_summary: Content came from a feed summary, so re-extraction cannot help

        Returns:
            ValidationResult with PASS, RETRY (alternate extraction may help) or FAIL
        """
        cfg = self.config
        reasons: List[Reason] = []

        if article.word_count < cfg.min_word_count_hard_fail:
            reasons.append(Reason.TOO_SHORT)
        if article.word_count > cfg.max_word_count:
            reasons.append(Reason.TOO_LONG)

        floor = cfg.min_paragraphs if min_paragraphs is None else min_paragraphs
        if article.paragraph_count < floor:
            reasons.append(Reason.TOO_FEW_PARAGRAPHS)

        title = (article.title or "").strip()
        if not title:
            reasons.append(Reason.MISSING_TITLE)
        else:
            if not cfg.title_min_length <= len(title) <= cfg.title_max_length:
                reasons.append(Reason.TITLE_LENGTH)
            if is_generic_title(title, article.page_title):
                reasons.append(Reason.GENERIC_TITLE)

        ratio = markup_ratio(article.body)
        if ratio >= cfg.max_markup_ratio:
            reasons.append(Reason.MARKUP_HEAVY)

        if self._is_boilerplate_only(article.body):
            reasons.append(Reason.BOILERPLATE_ONLY)

        if not reasons:
            verdict = Verdict.PASS
        elif not is_summary and not article.degraded and all(r in RETRYABLE_REASONS for r in reasons):
            verdict = Verdict.RETRY
        else:
            verdict = Verdict.FAIL

        result = ValidationResult(
            verdict=verdict,
            reasons=reasons,
            quality_score=article.quality_score,
            meets_quality_target=article.word_count >= cfg.min_word_count_quality_target,
            markup_ratio=ratio,
        )
        if not result.passed:
            logger.debug("Validation %s for %s: %s", verdict.value, article.url, result.describe())
        return result
