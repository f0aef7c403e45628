"""Tests for the content quality gate."""

import pytest
from helpers import make_extracted, words

from curator.config import ValidationConfig
from curator.quality import ContentValidator, Reason, Verdict
from curator.quality.validator import is_generic_title, markup_ratio


@pytest.fixture
def validator():
    return ContentValidator(ValidationConfig())


class TestVerdicts:
    def test_good_article_passes(self, validator):
        result = validator.validate(make_extracted(300))

        assert result.verdict == Verdict.PASS
        assert result.passed
        assert result.reasons == []
        assert result.meets_quality_target
        assert result.describe() == "ok"

    def test_short_article_is_retried(self, validator):
        result = validator.validate(make_extracted(30, per_paragraph=15))

        assert result.verdict == Verdict.RETRY
        assert result.reasons == [Reason.TOO_SHORT]

    def test_between_floor_and_target_passes_without_target(self, validator):
        result = validator.validate(make_extracted(120))

        assert result.passed
        assert not result.meets_quality_target

    def test_single_paragraph_is_retried(self, validator):
        result = validator.validate(make_extracted(150, per_paragraph=150))

        assert result.verdict == Verdict.RETRY
        assert Reason.TOO_FEW_PARAGRAPHS in result.reasons

    def test_source_paragraph_floor_overrides_config(self, validator):
        result = validator.validate(make_extracted(150, per_paragraph=150), min_paragraphs=1)
        assert result.passed

    def test_too_long_is_retried(self):
        validator = ContentValidator(ValidationConfig(max_word_count=200))
        result = validator.validate(make_extracted(300))

        assert result.verdict == Verdict.RETRY
        assert result.reasons == [Reason.TOO_LONG]

    def test_missing_title_fails(self, validator):
        result = validator.validate(make_extracted(300, title=""))

        assert result.verdict == Verdict.FAIL
        assert Reason.MISSING_TITLE in result.reasons

    def test_mixed_reasons_fail(self, validator):
        result = validator.validate(make_extracted(30, per_paragraph=15, title="Home"))

        assert result.verdict == Verdict.FAIL
        assert set(result.reasons) >= {Reason.TOO_SHORT, Reason.GENERIC_TITLE}

    def test_summary_is_never_retried(self, validator):
        result = validator.validate(make_extracted(30, per_paragraph=15), is_summary=True)
        assert result.verdict == Verdict.FAIL

    def test_degraded_is_never_retried(self, validator):
        result = validator.validate(make_extracted(30, per_paragraph=15, degraded=True))
        assert result.verdict == Verdict.FAIL

    def test_title_length_bounds(self, validator):
        assert Reason.TITLE_LENGTH in validator.validate(make_extracted(300, title="Short")).reasons
        assert Reason.TITLE_LENGTH in validator.validate(make_extracted(300, title="x" * 201)).reasons


class TestContentRules:
    def test_markup_heavy_body_fails(self, validator):
        body = "\n\n".join(f'<div class="x"><span>{words(5, i)}</span></div>' for i in range(12))
        article = make_extracted(300).model_copy(update={"body": body})
        result = validator.validate(article)

        assert Reason.MARKUP_HEAVY in result.reasons
        assert result.verdict == Verdict.FAIL

    def test_boilerplate_only_fails(self, validator):
        body = "\n\n".join(
            [
                "We use cookies to improve your experience on this site. " + words(40),
                "Subscribe to our newsletter for the latest updates. " + words(40, 3),
            ]
        )
        article = make_extracted(300).model_copy(update={"body": body})
        result = validator.validate(article)

        assert Reason.BOILERPLATE_ONLY in result.reasons
        assert result.verdict == Verdict.FAIL

    def test_one_cookie_paragraph_is_not_boilerplate(self, validator):
        body = "\n\n".join(["We use cookies on this site. " + words(40), words(120, 2), words(80, 5)])
        article = make_extracted(300).model_copy(update={"body": body})

        assert Reason.BOILERPLATE_ONLY not in validator.validate(article).reasons


class TestHelpers:
    def test_markup_ratio(self):
        assert markup_ratio("") == 0.0
        assert markup_ratio("plain text only") == 0.0
        assert markup_ratio("<b></b>") == 1.0

    @pytest.mark.parametrize(
        "title,page_title,expected",
        [
            ("Home", None, True),
            ("Latest News", None, True),
            ("Bourne Free | Local news for Bourne", "Bourne Free | Local news for Bourne", True),
            ("Council approves harbour budget", "Council approves harbour budget | Bourne Free", False),
            ("Council approves harbour budget", None, False),
        ],
    )
    def test_generic_titles(self, title, page_title, expected):
        assert is_generic_title(title, page_title) is expected
