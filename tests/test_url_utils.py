"""Tests for URL normalization and URL heuristics."""

import pytest

from curator.errors import InvalidUrlError
from curator.ingestion.url_utils import (
    extract_domain,
    is_likely_article_url,
    is_same_site,
    normalize_url,
    url_hash,
)


class TestNormalizeUrl:
    """Normalization used for dedup and history lookups."""

    def test_lowercases_scheme_and_host(self):
        assert normalize_url("HTTPS://Example.COM/News/Story") == "https://example.com/News/Story"

    def test_strips_tracking_params_and_sorts_the_rest(self):
        url = "https://example.com/a?utm_source=x&b=2&fbclid=abc&a=1&UTM_Medium=y"
        assert normalize_url(url) == "https://example.com/a?a=1&b=2"

    def test_drops_fragment_and_trailing_slash(self):
        assert normalize_url("https://example.com/story/#comments") == "https://example.com/story"

    def test_keeps_root_slash(self):
        assert normalize_url("https://example.com") == "https://example.com/"
        assert normalize_url("https://example.com/") == "https://example.com/"

    def test_drops_default_port_keeps_custom_port(self):
        assert normalize_url("https://example.com:443/a") == "https://example.com/a"
        assert normalize_url("http://example.com:80/a") == "http://example.com/a"
        assert normalize_url("http://example.com:8080/a") == "http://example.com:8080/a"

    def test_resolves_relative_against_base(self):
        base = "https://example.com/news/index.html"
        assert normalize_url("../2024/story", base) == "https://example.com/2024/story"
        assert normalize_url("/about", base) == "https://example.com/about"

    def test_www_prefix_is_kept(self):
        assert normalize_url("https://www.example.com/a") == "https://www.example.com/a"

    def test_custom_strip_params(self):
        url = "https://example.com/a?session=1&ref=home"
        assert normalize_url(url, strip_params=["session"]) == "https://example.com/a?ref=home"

    @pytest.mark.parametrize(
        "url",
        [
            "https://Example.com/a/b/?utm_campaign=z&q=hello+world&page=2#top",
            "http://example.com:8080/./x/../y/",
            "https://example.com/path%20with%20space?b=&a=1",
            "https://example.com",
        ],
    )
    def test_idempotent(self, url):
        once = normalize_url(url)
        assert normalize_url(once) == once

    @pytest.mark.parametrize(
        "url",
        ["", "   ", "ftp://example.com/file", "mailto:news@example.com", "https:///no-host", "/relative/only"],
    )
    def test_invalid_urls_raise(self, url):
        with pytest.raises(InvalidUrlError):
            normalize_url(url)

    def test_invalid_url_error_is_a_value_error(self):
        with pytest.raises(ValueError):
            normalize_url("javascript:void(0)")


class TestUrlHeuristics:
    def test_extract_domain_strips_www(self):
        assert extract_domain("https://www.BourneFree.co.uk/news") == "bournefree.co.uk"
        assert extract_domain("not a url") == "unknown"

    def test_same_site_ignores_www(self):
        assert is_same_site("https://www.example.com/a", "https://example.com/")
        assert not is_same_site("https://other.com/a", "https://example.com/")

    @pytest.mark.parametrize(
        "url",
        [
            "https://example.com/2024/05/01/council-approves-budget",
            "https://example.com/news/new-school-opens",
            "https://example.com/local-elections-results-announced",
            "https://example.com/story-12345",
        ],
    )
    def test_article_like_urls(self, url):
        assert is_likely_article_url(url)

    @pytest.mark.parametrize(
        "url",
        [
            "https://example.com/category/politics",
            "https://example.com/tag/schools",
            "https://example.com/images/front-page-photo.jpg",
            "https://example.com/feed",
            "https://example.com/",
            "mailto:someone@example.com",
        ],
    )
    def test_non_article_urls(self, url):
        assert not is_likely_article_url(url)

    def test_url_hash_matches_for_equivalent_urls(self):
        assert url_hash("https://example.com/a/?utm_source=x") == url_hash("https://EXAMPLE.com/a")
