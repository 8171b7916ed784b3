"""Configuration and prompt settings."""

from masterflasher_core.settings.config import (
    DEFAULT_MODEL,
    ChainedConfigProvider,
    ConfigProvider,
    EnvConfigProvider,
    GeminiConfig,
    MissingConfigurationError,
    PipelineConfig,
    StoredConfigProvider,
    require_config,
)
from masterflasher_core.settings.prompts import (
    DefaultPromptProvider,
    PromptProvider,
    ResolvedPrompts,
    StoredPromptProvider,
)
from masterflasher_core.settings.storage import InMemoryKeyValueStore, KeyValueStore

__all__ = [
    # Gemini configuration
    "DEFAULT_MODEL",
    "GeminiConfig",
    "ConfigProvider",
    "EnvConfigProvider",
    "StoredConfigProvider",
    "ChainedConfigProvider",
    "MissingConfigurationError",
    "require_config",
    "PipelineConfig",
    # Prompts
    "PromptProvider",
    "DefaultPromptProvider",
    "StoredPromptProvider",
    "ResolvedPrompts",
    # Storage
    "KeyValueStore",
    "InMemoryKeyValueStore",
]
