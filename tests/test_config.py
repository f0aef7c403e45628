"""Tests for configuration loading and the sources file."""

import pytest
from pydantic import ValidationError

from curator.config import (
    Config,
    ConfigModel,
    FetcherConfig,
    RelevanceConfig,
    SourceConfig,
    TopicConfig,
    load_config,
    load_sources,
    load_topics,
    save_config,
    save_sources,
)


class TestLoadConfig:
    def test_empty_file_uses_defaults(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("")
        config = load_config(path)

        assert config.fetcher.max_attempts == 3
        assert config.fetcher.retry_delays == [1.0, 3.0, 5.0]
        assert config.discovery.max_candidates == 20
        assert config.health.failing_threshold == 3

    def test_sections_override_defaults(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("fetcher:\n  timeout: 5\nvalidation:\n  min_paragraphs: 1\n")
        config = load_config(path)

        assert config.fetcher.timeout == 5.0
        assert config.validation.min_paragraphs == 1

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_config(tmp_path / "missing.yaml")

    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("fetcher: [unclosed\n")
        with pytest.raises(ValueError, match="Invalid YAML"):
            load_config(path)

    def test_invalid_values(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("fetcher:\n  max_attempts: 0\n")
        with pytest.raises(ValueError, match="Invalid configuration"):
            load_config(path)

    def test_save_then_load(self, tmp_path):
        path = tmp_path / "nested" / "config.yaml"
        save_config(ConfigModel(fetcher=FetcherConfig(timeout=7)), path)

        assert load_config(path).fetcher.timeout == 7.0


class TestConfigModels:
    def test_relevance_weights_must_sum_to_one(self):
        with pytest.raises(ValidationError):
            RelevanceConfig(keyword_weight=0.5, recency_weight=0.3)

    def test_retry_delays_must_not_be_empty(self):
        with pytest.raises(ValidationError):
            FetcherConfig(retry_delays=[])

    def test_unknown_scraping_method(self):
        with pytest.raises(ValidationError):
            SourceConfig(name="X", url="https://x.example/", scraping_method="carrier-pigeon")

    def test_topic_slug(self):
        assert TopicConfig(name="Local  News").slug == "local-news"


class TestConfigManager:
    def test_path_from_environment(self, tmp_path, monkeypatch):
        path = tmp_path / "custom.yaml"
        monkeypatch.setenv("CURATOR_CONFIG", str(path))

        config = Config()
        assert config.config_path == path
        assert config.sources_path == tmp_path / "sources.yaml"

    def test_password_from_environment(self, tmp_path, monkeypatch):
        path = tmp_path / "config.yaml"
        path.write_text("postgres:\n  password_env: CURATOR_TEST_PASSWORD\n")
        monkeypatch.setenv("CURATOR_TEST_PASSWORD", "s3cret")

        db_config = Config(path).get_db_config()
        assert db_config["password"] == "s3cret"
        assert db_config["database"] == "curator"


class TestSourcesFile:
    def test_invalid_entries_are_skipped(self, tmp_path):
        path = tmp_path / "sources.yaml"
        path.write_text(
            "sources:\n"
            "  - name: Bourne Free\n"
            "    url: https://www.bournefree.co.uk/\n"
            "  - name: Broken\n"
            "  - name: Bad method\n"
            "    url: https://bad.example/\n"
            "    scraping_method: fax\n"
        )

        assert [s.name for s in load_sources(path)] == ["Bourne Free"]

    def test_empty_file_has_no_sources(self, tmp_path):
        path = tmp_path / "sources.yaml"
        path.write_text("")
        assert load_sources(path) == []
        assert load_topics(path) == []

    def test_save_keeps_existing_topics(self, tmp_path):
        path = tmp_path / "sources.yaml"
        topic = TopicConfig(name="Local News", keywords=["council"])
        source = SourceConfig(name="Bourne Free", url="https://www.bournefree.co.uk/", topics=["Local News"])
        save_sources([source], path, topics=[topic])

        save_sources([source, SourceConfig(name="Other", url="https://other.example/")], path)

        assert [t.name for t in load_topics(path)] == ["Local News"]
        assert [s.name for s in load_sources(path)] == ["Bourne Free", "Other"]
