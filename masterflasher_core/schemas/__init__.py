"""Data schemas for the fact-to-flashcard pipeline."""

from masterflasher_core.schemas.cards import (
    AnkiNote,
    ExtractedContent,
    Flashcard,
    FlashcardsResponse,
)
from masterflasher_core.schemas.facts import (
    Fact,
    FactScore,
    FactScores,
    FactsResponse,
    ScoredFact,
)
from masterflasher_core.schemas.results import Ok, PartialFailure, StageReport

__all__ = [
    # Facts
    "Fact",
    "FactsResponse",
    "FactScore",
    "FactScores",
    "ScoredFact",
    # Cards
    "Flashcard",
    "FlashcardsResponse",
    "AnkiNote",
    "ExtractedContent",
    # Unit outcomes
    "Ok",
    "PartialFailure",
    "StageReport",
]
