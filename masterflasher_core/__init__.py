"""masterflasher-core: turn captured text into spaced-repetition flashcards.

The pipeline chunks source text, asks a generative model for atomic facts,
scores and filters those facts for learning value, and turns the survivors
into validated question/answer cards.

    >>> from masterflasher_core import create_flashcards, EnvConfigProvider
    >>> result = await create_flashcards(text, EnvConfigProvider())
    >>> result.flashcards.cards

Each stage is also usable on its own with any ``BaseModelAdapter``; see the
``pipeline`` subpackage.
"""

from masterflasher_core.graph import (
    PipelineResult,
    build_flashcard_graph,
    create_flashcards,
)
from masterflasher_core.model_adapters import BaseModelAdapter, GoogleAdapter
from masterflasher_core.pipeline import (
    chunk_text,
    extract_facts,
    filter_scored_facts,
    generate_flashcards,
    score_facts,
)
from masterflasher_core.schemas import (
    Fact,
    FactScore,
    FactsResponse,
    Flashcard,
    FlashcardsResponse,
    ScoredFact,
)
from masterflasher_core.settings import (
    EnvConfigProvider,
    MissingConfigurationError,
    PipelineConfig,
)
from masterflasher_core.validation import SchemaViolationError, validate

__version__ = "0.1.0"

__all__ = [
    # Pipeline
    "create_flashcards",
    "build_flashcard_graph",
    "PipelineResult",
    "PipelineConfig",
    # Stages
    "chunk_text",
    "extract_facts",
    "score_facts",
    "filter_scored_facts",
    "generate_flashcards",
    "validate",
    # Model backends
    "BaseModelAdapter",
    "GoogleAdapter",
    "EnvConfigProvider",
    # Schemas
    "Fact",
    "FactsResponse",
    "FactScore",
    "ScoredFact",
    "Flashcard",
    "FlashcardsResponse",
    # Errors
    "MissingConfigurationError",
    "SchemaViolationError",
]
