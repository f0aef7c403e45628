"""Configuration loader."""

import logging
import os
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml
from pydantic import ValidationError

from .models import ConfigModel, SourceConfig, TopicConfig

logger = logging.getLogger(__name__)


class Config:
    """Configuration manager."""

    def __init__(self, config_path: Optional[Path] = None) -> None:
        """Initialize config manager."""
        if config_path is None:
            env_path = os.environ.get("CURATOR_CONFIG")
            if env_path:
                config_path = Path(env_path).expanduser()
            else:
                config_path = Path.home() / ".config" / "curator" / "config.yaml"
        self.config_path = config_path
        self._config: Optional[ConfigModel] = None

    @property
    def config(self) -> ConfigModel:
        """Get loaded config."""
        if self._config is None:
            self._config = load_config(self.config_path)
        return self._config

    @property
    def sources_path(self) -> Path:
        """Path of the sources file that sits next to the config."""
        return self.config_path.parent / "sources.yaml"

    def get_db_config(self) -> Dict[str, Any]:
        """Get database configuration dict."""
        db_config = self.config.postgres.model_dump()

        # Handle password from environment if specified
        if db_config.get("password_env"):
            password = os.environ.get(db_config["password_env"])
            if password:
                db_config["password"] = password

        return db_config


def load_config(config_path: Path) -> ConfigModel:
    """Load configuration from YAML file."""
    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    try:
        with open(config_path) as f:
            config_data = yaml.safe_load(f)

        if config_data is None:
            config_data = {}

        return ConfigModel(**config_data)
    except yaml.YAMLError as e:
        raise ValueError(f"Invalid YAML in config file: {e}")
    except ValidationError as e:
        raise ValueError(f"Invalid configuration: {e}")


def _read_sources_file(sources_path: Path) -> Dict[str, Any]:
    if not sources_path.exists():
        raise FileNotFoundError(f"Sources file not found: {sources_path}")

    try:
        with open(sources_path) as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ValueError(f"Invalid YAML in sources file: {e}")

    return data or {}


def load_sources(sources_path: Path) -> List[SourceConfig]:
    """Load sources from YAML file, skipping invalid entries."""
    data = _read_sources_file(sources_path)

    sources = []
    for source_data in data.get("sources") or []:
        try:
            sources.append(SourceConfig(**source_data))
        except ValidationError as e:
            logger.warning("Skipping invalid source %s: %s", source_data.get("name", "unknown"), e)

    return sources


def load_topics(sources_path: Path) -> List[TopicConfig]:
    """Load topics from the sources file."""
    data = _read_sources_file(sources_path)

    topics = []
    for topic_data in data.get("topics") or []:
        try:
            topics.append(TopicConfig(**topic_data))
        except ValidationError as e:
            logger.warning("Skipping invalid topic %s: %s", topic_data.get("name", "unknown"), e)

    return topics


def save_config(config: ConfigModel, config_path: Path) -> None:
    """Save configuration to YAML file."""
    config_path.parent.mkdir(parents=True, exist_ok=True)

    with open(config_path, "w") as f:
        yaml.dump(config.model_dump(), f, default_flow_style=False, sort_keys=False)


def save_sources(
    sources: List[SourceConfig],
    sources_path: Path,
    topics: Optional[List[TopicConfig]] = None,
) -> None:
    """Save sources (and topics) to YAML file.

    Topics already in the file are preserved when ``topics`` is not given.
    """
    sources_path.parent.mkdir(parents=True, exist_ok=True)

    if topics is None and sources_path.exists():
        topics = load_topics(sources_path)

    sources_data = {
        "topics": [t.model_dump() for t in topics or []],
        "sources": [s.model_dump(exclude_none=True) for s in sources],
    }

    with open(sources_path, "w") as f:
        yaml.dump(sources_data, f, default_flow_style=False, sort_keys=False)
