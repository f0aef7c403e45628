"""Tests for the offline CLI commands."""

import pytest
from helpers import article_page
from typer.testing import CliRunner

from curator.cli.app import app
from curator.config import ScrapingConfig, SourceConfig, load_sources, save_sources
from curator.ingestion import FetchedPage, FetchFailure, FetchFailureKind

runner = CliRunner()
STORY = "https://www.bournefree.co.uk/news/harbour-budget"


@pytest.fixture
def config_dir(tmp_path, monkeypatch, restore_root_logger):
    (tmp_path / "config.yaml").write_text("logging:\n  level: WARNING\n")
    save_sources(
        [
            SourceConfig(
                name="Bourne Free",
                url="https://www.bournefree.co.uk/",
                topics=["Local News"],
                scraping_config=ScrapingConfig(trusted_max_age_days=14),
            )
        ],
        tmp_path / "sources.yaml",
        topics=[],
    )
    monkeypatch.setenv("CURATOR_CONFIG", str(tmp_path / "config.yaml"))
    return tmp_path


def fake_fetch(result):
    async def fetch(config, url):
        return result

    return fetch


class TestSourcesCommands:
    def test_list(self, config_dir):
        result = runner.invoke(app, ["sources", "list"])

        assert result.exit_code == 0
        assert "Bourne Free" in result.output

    def test_add(self, config_dir):
        result = runner.invoke(
            app,
            ["sources", "add", "--name", "Harbour Herald", "--url", "https://harbourherald.example/", "--method", "rss"],
        )

        assert result.exit_code == 0
        sources = load_sources(config_dir / "sources.yaml")
        assert [s.name for s in sources] == ["Bourne Free", "Harbour Herald"]
        assert sources[1].scraping_method == "rss"

    def test_add_rejects_same_url(self, config_dir):
        result = runner.invoke(app, ["sources", "add", "--name", "Copy", "--url", "https://WWW.bournefree.co.uk"])

        assert result.exit_code == 1
        assert "already exists" in result.output

    def test_add_rejects_unknown_method(self, config_dir):
        result = runner.invoke(
            app, ["sources", "add", "--name", "New", "--url", "https://new.example/", "--method", "fax"]
        )

        assert result.exit_code == 1

    def test_missing_config(self, tmp_path, monkeypatch, restore_root_logger):
        monkeypatch.setenv("CURATOR_CONFIG", str(tmp_path / "absent.yaml"))
        result = runner.invoke(app, ["sources", "list"])

        assert result.exit_code == 1
        assert "curator init" in result.output


class TestExtractCommand:
    def test_good_article_passes(self, config_dir, mocker):
        page = FetchedPage(url=STORY, final_url=STORY, status_code=200, html=article_page(500))
        mocker.patch("curator.cli.inspect._fetch", fake_fetch(page))

        result = runner.invoke(app, ["extract", STORY, "--source", "Bourne Free"])

        assert result.exit_code == 0
        assert ".entry-content" in result.output
        assert "pass" in result.output

    def test_fetch_failure_exits_nonzero(self, config_dir, mocker):
        failure = FetchFailure(url=STORY, kind=FetchFailureKind.ACCESS_DENIED, status_code=403)
        mocker.patch("curator.cli.inspect._fetch", fake_fetch(failure))

        result = runner.invoke(app, ["extract", STORY])

        assert result.exit_code == 1
        assert "access_denied" in result.output

    def test_unknown_source(self, config_dir):
        result = runner.invoke(app, ["extract", STORY, "--source", "Nowhere"])

        assert result.exit_code == 1
        assert "not found" in result.output
