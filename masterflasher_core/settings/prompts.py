"""Prompt text for the Gemini stages.

Users may replace the instruction text for fact extraction and flashcard
creation. The system constraints and the scoring prompt are fixed: the stage
builders append the constraints after whatever instruction text is in effect,
so output-format rules survive any user edit.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass

from masterflasher_core.settings.storage import KeyValueStore
from masterflasher_core.utils.logging import get_logger

logger = get_logger(__name__)

FACT_EXTRACTION_PROMPT_KEY = "fact_extraction_prompt"
FLASHCARD_CREATION_PROMPT_KEY = "flashcard_creation_prompt"

DEFAULT_FACT_EXTRACTION_PROMPT = """Extract explicit, atomic factual statements from the provided text.

Rules:
1. Each fact must be explicitly stated in the text (no inference, paraphrasing, or interpretation).
2. Each fact must be atomic (one fact per sentence; no "and", "or", or compound clauses).
3. Use clear declarative sentences.
4. Maximum length per fact: 240 characters.
5. Preserve original terminology and wording as much as possible.
6. Do not include obvious statements or filler.
7. Do not summarize; extract facts as written."""

DEFAULT_FLASHCARD_CREATION_PROMPT = """Using the provided concepts, generate one recall-optimized flashcard per concept.

Rules:
1. The front must require active recall (the answer must not appear or be hinted at on the front).
2. The front should ask for one specific, unambiguous answer.
3. The back should be concise (ideally a word, phrase, or short sentence).
4. Avoid multiple facts, lists, or "and/or" questions.
5. Prefer "What is / Who is / Which / When / Where" formulations when appropriate.

Formatting:
Front: a clear question or prompt
Back: the correct answer only
Tags: 1-4 short, relevant tags"""

FACT_EXTRACTION_SYSTEM_CONSTRAINTS = """

---
SYSTEM CONSTRAINTS (do not override):
- Return a JSON object with a "facts" array; each element has a "fact" string.
- If no concepts matching the criteria are found in this text, return an empty facts array.
- Focus on quality and relevance over quantity.
- Each concept must be directly stated in the source text."""

FLASHCARD_CREATION_SYSTEM_CONSTRAINTS = """

---
SYSTEM CONSTRAINTS (do not override):
- Return a JSON object with a "deck" string and a "cards" array.
- Generate exactly one flashcard per concept provided, in the order given.
- Front must be a question or prompt, back must be the answer.
- If no concepts are provided, return an empty cards array."""

FACT_SCORING_PROMPT = """You are scoring candidate facts extracted from a document.

Goal:
Assign a learning-value score to each fact so that the highest-scoring facts represent the most important, non-obvious, high-impact ideas in the document.

Scoring Dimensions:
For each fact, assign an integer score from 0-3 on each dimension:

- centrality: How essential is this fact to the document's main message or argument?
- non_obviousness: Would an informed but non-expert reader already know this?
- leverage: Does this fact help explain, unlock, or contextualize other ideas?
- testability: Can this fact be turned into a clear recall-based flashcard with one unambiguous answer?
- transfer: Does this fact apply beyond a single example or narrow context?

Weighting:
- score_total = centrality * 2 + non_obviousness + leverage + testability + transfer (0-18).

Rules:
- Return a JSON array with one object per fact: {"id", "scores", "score_total"}.
- Copy each fact's id exactly as given.
- Score each fact independently.
- Do not drop or filter facts.
- Do not rewrite or merge facts.
- Do not add new facts.
- Use the full 0-3 range where appropriate.

Notes:
- Higher scores should reflect facts that would still be worth remembering a month from now.
- Trivial, generic, or obvious facts should receive low scores.
- Big, non-obvious, explanatory ideas should receive high scores."""


@dataclass(frozen=True)
class ResolvedPrompts:
    """Instruction text in effect for one pipeline run."""

    fact_extraction: str = DEFAULT_FACT_EXTRACTION_PROMPT
    flashcard_creation: str = DEFAULT_FLASHCARD_CREATION_PROMPT


class PromptProvider(ABC):
    """Source of user-editable instruction text."""

    @abstractmethod
    async def get_fact_extraction_prompt(self) -> str:
        """Return the fact extraction instructions."""

    @abstractmethod
    async def get_flashcard_creation_prompt(self) -> str:
        """Return the flashcard creation instructions."""

    async def resolve(self) -> ResolvedPrompts:
        return ResolvedPrompts(
            fact_extraction=await self.get_fact_extraction_prompt(),
            flashcard_creation=await self.get_flashcard_creation_prompt(),
        )


class DefaultPromptProvider(PromptProvider):
    """Always returns the built-in instructions."""

    async def get_fact_extraction_prompt(self) -> str:
        return DEFAULT_FACT_EXTRACTION_PROMPT

    async def get_flashcard_creation_prompt(self) -> str:
        return DEFAULT_FLASHCARD_CREATION_PROMPT


class StoredPromptProvider(PromptProvider):
    """User-customized instructions from the settings store.

    Blank or unreadable entries fall back to the built-in defaults.
    """

    def __init__(self, store: KeyValueStore):
        self.store = store

    async def _get_custom(self, key: str) -> str | None:
        try:
            value = await self.store.get(key)
        except Exception as e:
            logger.warning(f"Failed to read custom prompt {key}, using default: {e}")
            return None
        return value if value and value.strip() else None

    async def get_fact_extraction_prompt(self) -> str:
        return (
            await self._get_custom(FACT_EXTRACTION_PROMPT_KEY)
            or DEFAULT_FACT_EXTRACTION_PROMPT
        )

    async def get_flashcard_creation_prompt(self) -> str:
        return (
            await self._get_custom(FLASHCARD_CREATION_PROMPT_KEY)
            or DEFAULT_FLASHCARD_CREATION_PROMPT
        )

    async def set_fact_extraction_prompt(self, prompt: str) -> None:
        await self.store.set(FACT_EXTRACTION_PROMPT_KEY, prompt)

    async def set_flashcard_creation_prompt(self, prompt: str) -> None:
        await self.store.set(FLASHCARD_CREATION_PROMPT_KEY, prompt)

    async def reset_fact_extraction_prompt(self) -> None:
        await self.store.delete(FACT_EXTRACTION_PROMPT_KEY)

    async def reset_flashcard_creation_prompt(self) -> None:
        await self.store.delete(FLASHCARD_CREATION_PROMPT_KEY)

    async def has_custom_fact_extraction_prompt(self) -> bool:
        return await self._get_custom(FACT_EXTRACTION_PROMPT_KEY) is not None

    async def has_custom_flashcard_creation_prompt(self) -> bool:
        return await self._get_custom(FLASHCARD_CREATION_PROMPT_KEY) is not None
