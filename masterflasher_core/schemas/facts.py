"""Fact and fact-score schemas.

A fact is an atomic, explicitly stated claim pulled out of source text. Facts
are created by the extractor with a locally generated id and never mutated;
the scorer enriches them into ``ScoredFact`` instances, and the filter strips
the score again before card generation.
"""

import math
import uuid
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

FACT_MAX_CHARS = 240
SCORE_DIMENSION_MAX = 3
CENTRALITY_WEIGHT = 2
SCORE_TOTAL_MAX = SCORE_DIMENSION_MAX * (CENTRALITY_WEIGHT + 4)


def new_fact_id() -> str:
    """Generate a fresh, globally unique fact id."""
    return str(uuid.uuid4())


class Fact(BaseModel):
    """An atomic statement extracted from source text."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=new_fact_id, min_length=1, description="Opaque unique id")
    fact: str = Field(
        ..., min_length=1, max_length=FACT_MAX_CHARS, description="Short declarative sentence"
    )
    context: str | None = Field(None, description="Optional surrounding context")


class FactsResponse(BaseModel):
    """Merged output of fact extraction for one source."""

    model_config = ConfigDict(populate_by_name=True, serialize_by_alias=True)

    source_title: str | None = Field(None, alias="sourceTitle")
    facts: list[Fact] = Field(default_factory=list)


def _coerce_dimension(value: Any) -> int:
    """Round a model-supplied dimension score into the 0-3 integer range."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return 0
    if math.isnan(value):
        return 0
    return max(0, min(SCORE_DIMENSION_MAX, int(round(value))))


class FactScores(BaseModel):
    """Learning-value dimensions, each an integer from 0 to 3."""

    model_config = ConfigDict(frozen=True)

    centrality: int = Field(0, ge=0, le=SCORE_DIMENSION_MAX)
    non_obviousness: int = Field(0, ge=0, le=SCORE_DIMENSION_MAX)
    leverage: int = Field(0, ge=0, le=SCORE_DIMENSION_MAX)
    testability: int = Field(0, ge=0, le=SCORE_DIMENSION_MAX)
    transfer: int = Field(0, ge=0, le=SCORE_DIMENSION_MAX)

    @field_validator(
        "centrality",
        "non_obviousness",
        "leverage",
        "testability",
        "transfer",
        mode="before",
    )
    @classmethod
    def _clamp(cls, value: Any) -> int:
        return _coerce_dimension(value)

    def weighted_total(self) -> int:
        """Return centrality x2 plus the other four dimensions."""
        return (
            self.centrality * CENTRALITY_WEIGHT
            + self.non_obviousness
            + self.leverage
            + self.testability
            + self.transfer
        )


class FactScore(BaseModel):
    """Score assigned to one fact, keyed by the fact's id."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., min_length=1)
    scores: FactScores
    score_total: float = Field(..., description="Declared total, 0-18")

    @property
    def is_consistent(self) -> bool:
        """Whether the declared total matches the weighted sum."""
        return self.score_total == self.scores.weighted_total()

    def reconciled(self) -> "FactScore":
        """Return a copy whose total is recomputed from the dimensions."""
        if self.is_consistent:
            return self
        return self.model_copy(update={"score_total": self.scores.weighted_total()})


class ScoredFact(Fact):
    """A fact joined with its score, if scoring produced one."""

    score: FactScore | None = None

    @property
    def score_total(self) -> float | None:
        return self.score.score_total if self.score else None

    def to_fact(self) -> Fact:
        """Drop the score and return the plain fact."""
        return Fact(id=self.id, fact=self.fact, context=self.context)
