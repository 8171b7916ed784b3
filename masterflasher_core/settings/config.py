"""Gemini and pipeline configuration.

API credentials come from one of two places: environment variables (set at
build time or in development) or the device's secure key-value store. The
pipeline only ever talks to a ``ConfigProvider``; which source wins is decided
by how the provider is composed, never by the pipeline itself.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from masterflasher_core.schemas.cards import DEFAULT_DECK_NAME
from masterflasher_core.settings.storage import KeyValueStore
from masterflasher_core.utils.logging import get_logger

logger = get_logger(__name__)

DEFAULT_MODEL = "gemini-2.5-flash-lite"

API_KEY_STORAGE_KEY = "gemini_api_key"
MODEL_STORAGE_KEY = "gemini_model"


class MissingConfigurationError(RuntimeError):
    """Raised when no Gemini API key can be resolved."""

    def __init__(
        self,
        message: str = "Gemini API key not configured. Please set your API key in Settings.",
    ):
        super().__init__(message)


class GeminiConfig(BaseModel):
    """Resolved credentials for the generative model."""

    api_key: str = Field(..., min_length=1)
    model_name: str = Field(DEFAULT_MODEL, min_length=1)


class ConfigProvider(ABC):
    """Source of Gemini configuration."""

    @abstractmethod
    async def get_config(self) -> GeminiConfig | None:
        """Return the configuration, or None when no API key is set."""


class EnvSettings(BaseSettings):
    """Gemini settings read from ``MASTERFLASHER_*`` environment variables."""

    gemini_api_key: str | None = None
    gemini_model_name: str | None = None

    model_config = SettingsConfigDict(
        env_prefix="MASTERFLASHER_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )


class EnvConfigProvider(ConfigProvider):
    """Configuration from environment variables or a ``.env`` file."""

    def __init__(self, settings: EnvSettings | None = None):
        self._settings = settings

    async def get_config(self) -> GeminiConfig | None:
        settings = self._settings or EnvSettings()
        if not settings.gemini_api_key:
            return None
        return GeminiConfig(
            api_key=settings.gemini_api_key,
            model_name=settings.gemini_model_name or DEFAULT_MODEL,
        )


class StoredConfigProvider(ConfigProvider):
    """Configuration persisted in the device's secure store."""

    def __init__(self, store: KeyValueStore):
        self.store = store

    async def _read(self, key: str) -> str | None:
        try:
            value = await self.store.get(key)
        except Exception as e:
            # An unreadable entry means "not configured"; the user re-enters it.
            logger.warning(f"Could not read {key} from secure storage: {e}")
            return None
        return value.strip() if value and value.strip() else None

    async def get_config(self) -> GeminiConfig | None:
        api_key = await self._read(API_KEY_STORAGE_KEY)
        if not api_key:
            return None
        model_name = await self._read(MODEL_STORAGE_KEY) or DEFAULT_MODEL
        return GeminiConfig(api_key=api_key, model_name=model_name)

    async def set_api_key(self, value: str) -> None:
        await self.store.set(API_KEY_STORAGE_KEY, value)

    async def set_model(self, value: str) -> None:
        await self.store.set(MODEL_STORAGE_KEY, value)

    async def clear(self) -> None:
        await self.store.delete(API_KEY_STORAGE_KEY)
        await self.store.delete(MODEL_STORAGE_KEY)


class ChainedConfigProvider(ConfigProvider):
    """Try several providers in order; the first non-null result wins."""

    def __init__(self, *providers: ConfigProvider):
        self.providers = providers

    async def get_config(self) -> GeminiConfig | None:
        for provider in self.providers:
            config = await provider.get_config()
            if config is not None:
                return config
        return None


async def require_config(provider: ConfigProvider) -> GeminiConfig:
    """Resolve configuration or fail before any model call is made.

    Raises:
        MissingConfigurationError: If the provider has no API key
    """
    config = await provider.get_config()
    if config is None:
        raise MissingConfigurationError()
    return config


@dataclass(frozen=True)
class PipelineConfig:
    """Tunables for chunking, batching, throttling, and filtering."""

    # Chunking: ~15k chars keeps one extraction call well inside the output budget
    max_chunk_chars: int = 15000

    # Batching and throttling for the sequential stages
    scoring_batch_size: int = 50
    flashcard_batch_size: int = 25
    batch_delay_seconds: float = 0.5
    max_output_tokens: int = 8192

    # Filtering
    score_threshold: int = 9
    max_facts_to_pass: int = 40
    recompute_score_total: bool = True
    skip_scoring: bool = False

    # Output
    deck_name: str = DEFAULT_DECK_NAME
    max_facts: int = 1000
    max_cards: int = 200
