"""Configuration management for the topic curator."""

from .loader import (
    Config,
    load_config,
    load_sources,
    load_topics,
    save_config,
    save_sources,
)
from .models import (
    ConfigModel,
    DiscoveryConfig,
    DuplicateConfig,
    ExtractionConfig,
    FetcherConfig,
    HealthConfig,
    PipelineConfig,
    RelevanceConfig,
    ScrapingConfig,
    SelectorOverrides,
    SourceConfig,
    TopicConfig,
    ValidationConfig,
)

__all__ = [
    "Config",
    "ConfigModel",
    "DiscoveryConfig",
    "DuplicateConfig",
    "ExtractionConfig",
    "FetcherConfig",
    "HealthConfig",
    "PipelineConfig",
    "RelevanceConfig",
    "ScrapingConfig",
    "SelectorOverrides",
    "SourceConfig",
    "TopicConfig",
    "ValidationConfig",
    "load_config",
    "load_sources",
    "load_topics",
    "save_config",
    "save_sources",
]
