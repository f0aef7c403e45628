"""Tests for feed parsing and feed autodiscovery."""

from email.utils import format_datetime

from helpers import rss_feed, utc

from curator.ingestion import DiscoveryStrategy, find_feed_links, parse_feed
from curator.ingestion.rss_fetcher import summary_to_text

FEED_URL = "https://www.bournefree.co.uk/feed"
NOW = utc(2024, 5, 10, 12, 0)


def test_parses_items_with_metadata():
    text = rss_feed(
        [
            {
                "title": "Council approves harbour budget",
                "link": "https://www.bournefree.co.uk/news/harbour-budget?utm_source=rss",
                "description": "<p>The council met on Tuesday.</p><p>Funding was agreed.</p>",
                "pubDate": format_datetime(utc(2024, 5, 9, 18, 0)),
                "author": "news@bournefree.co.uk (Jane Smith)",
            }
        ]
    )
    result = parse_feed(text, FEED_URL, now=NOW)

    assert result.success
    assert result.title == "Bourne Free"
    assert result.item_count == 1
    item = result.items[0]
    assert item.strategy == DiscoveryStrategy.RSS
    assert item.normalized_url == "https://www.bournefree.co.uk/news/harbour-budget"
    assert item.title == "Council approves harbour budget"
    assert item.published == utc(2024, 5, 9, 18, 0)
    assert item.summary == "The council met on Tuesday.\n\nFunding was agreed."


def test_relative_links_resolve_against_feed_and_duplicates_collapse():
    text = rss_feed(
        [
            {"title": "One", "link": "/news/story-one"},
            {"title": "One again", "link": "https://www.bournefree.co.uk/news/story-one/#top"},
            {"title": "Two", "link": "/news/story-two"},
        ]
    )
    result = parse_feed(text, FEED_URL, now=NOW)

    assert [i.normalized_url for i in result.items] == [
        "https://www.bournefree.co.uk/news/story-one",
        "https://www.bournefree.co.uk/news/story-two",
    ]


def test_old_entries_are_skipped_undated_kept():
    text = rss_feed(
        [
            {"title": "Fresh", "link": "/news/fresh", "pubDate": format_datetime(utc(2024, 5, 8))},
            {"title": "Stale", "link": "/news/stale", "pubDate": format_datetime(utc(2024, 3, 1))},
            {"title": "Undated", "link": "/news/undated"},
        ]
    )
    result = parse_feed(text, FEED_URL, max_age_days=14, now=NOW)

    assert [i.title for i in result.items] == ["Fresh", "Undated"]
    assert result.skipped_old == 1


def test_entries_without_links_are_counted():
    text = rss_feed([{"title": "No link", "link": ""}, {"title": "Has link", "link": "/news/ok"}])
    result = parse_feed(text, FEED_URL, now=NOW)

    assert result.item_count == 1
    assert result.skipped_invalid == 1


def test_html_page_is_not_a_feed():
    result = parse_feed("<html><body><h1>Welcome</h1></body></html>", FEED_URL)

    assert not result.success
    assert result.error
    assert result.items == []


def test_atom_feed():
    text = """<?xml version="1.0" encoding="utf-8"?>
    <feed xmlns="http://www.w3.org/2005/Atom">
      <title>Reporter</title>
      <entry>
        <title>Station reopens after flood</title>
        <link href="https://www.eastbournereporter.co.uk/station-reopens-after-flood"/>
        <updated>2024-05-09T07:00:00Z</updated>
        <summary>Trains are running again.</summary>
      </entry>
    </feed>
    """
    result = parse_feed(text, "https://www.eastbournereporter.co.uk/feed", now=NOW)

    assert result.success
    assert result.items[0].published == utc(2024, 5, 9, 7, 0)
    assert result.items[0].summary == "Trains are running again."


def test_summary_to_text():
    assert summary_to_text(None) is None
    assert summary_to_text("  plain   text ") == "plain text"
    assert summary_to_text("<b>bold</b> lead &amp; more") == "bold lead & more"


def test_find_feed_links():
    html = """
    <html><head>
      <link rel="alternate" type="application/rss+xml" href="/feed/">
      <link rel="alternate" type="application/atom+xml" href="https://www.bournefree.co.uk/atom.xml">
      <link rel="alternate" hreflang="fr" href="/fr/">
      <link rel="stylesheet" type="text/css" href="/style.css">
    </head><body></body></html>
    """
    assert find_feed_links(html, "https://www.bournefree.co.uk/") == [
        "https://www.bournefree.co.uk/feed",
        "https://www.bournefree.co.uk/atom.xml",
    ]
