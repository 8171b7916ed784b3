"""Flashcard schemas."""

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

CARD_TYPE_BASIC = "basic"
DEFAULT_DECK_NAME = "MasterFlasher"


class Flashcard(BaseModel):
    """A single question/answer card generated from one fact."""

    model_config = ConfigDict(frozen=True)

    type: Literal["basic"] = Field(CARD_TYPE_BASIC, description="Card discriminator")
    front: str = Field(..., min_length=1, description="Question/prompt side")
    back: str = Field(..., min_length=1, description="Answer side")
    tags: list[str] = Field(default_factory=list, description="Short topical tags")

    @field_validator("tags", mode="before")
    @classmethod
    def _normalize_tags(cls, value: Any) -> list[str]:
        if value is None:
            return []
        if not isinstance(value, (list, tuple)):
            return value
        tags = [str(tag).strip() for tag in value if tag is not None]
        return [tag for tag in tags if tag]


class FlashcardsResponse(BaseModel):
    """Deck name plus the validated cards produced by the pipeline."""

    deck: str = Field(DEFAULT_DECK_NAME, description="Target deck name")
    cards: list[Flashcard] = Field(default_factory=list)


class AnkiNote(BaseModel):
    """A note in the shape the AnkiDroid bridge accepts."""

    deck_name: str = Field(..., alias="deckName")
    model_key: str = Field("Basic", alias="modelKey")
    front: str
    back: str
    tags: list[str] = Field(default_factory=list)

    model_config = ConfigDict(populate_by_name=True, serialize_by_alias=True)


class ExtractedContent(BaseModel):
    """Text captured from a share, a URL clip, OCR, or a PDF."""

    text: str = Field(..., description="Raw source text")
    title: str | None = Field(None, description="Source title if known")
    url: str | None = Field(None, description="Origin URL for web clips")
