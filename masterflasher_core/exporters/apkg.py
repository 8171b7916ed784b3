"""APKG export for Anki decks."""

import hashlib
from pathlib import Path

from masterflasher_core.schemas.cards import AnkiNote, FlashcardsResponse
from masterflasher_core.utils.logging import get_logger

logger = get_logger(__name__)

_CARD_CSS = """
.card {
    font-family: arial;
    font-size: 20px;
    text-align: center;
    color: black;
    background-color: white;
}
"""


def _generate_id(name: str) -> int:
    """Derive a stable 31-bit Anki id from a name."""
    digest = hashlib.md5(name.encode("utf-8")).digest()
    return int.from_bytes(digest[:4], "big") & 0x7FFFFFFF


def _basic_model(deck_name: str) -> "genanki.Model":
    import genanki

    return genanki.Model(
        _generate_id(f"{deck_name}_model"),
        f"{deck_name} Basic",
        fields=[{"name": "Front"}, {"name": "Back"}],
        templates=[
            {
                "name": "Card 1",
                "qfmt": "{{Front}}",
                "afmt": '{{FrontSide}}<hr id="answer">{{Back}}',
            }
        ],
        css=_CARD_CSS,
    )


def export_apkg(response: FlashcardsResponse, output: str | Path) -> Path:
    """Write the cards to an Anki package.

    Deck and note-type ids derive from the deck name, so re-exporting the
    same deck updates it in Anki instead of creating a duplicate.

    Args:
        response: Generated flashcards
        output: Output ``.apkg`` path

    Returns:
        Path to the written package
    """
    import genanki

    logger.info(f"Exporting APKG: {response.deck} ({len(response.cards)} cards)")

    model = _basic_model(response.deck)
    deck = genanki.Deck(_generate_id(response.deck), response.deck)
    for card in response.cards:
        deck.add_note(
            genanki.Note(
                model=model,
                fields=[card.front, card.back],
                tags=[tag.replace(" ", "_") for tag in card.tags],
                guid=genanki.guid_for(response.deck, card.front, card.back),
            )
        )

    output_path = Path(output)
    genanki.Package(deck).write_to_file(str(output_path))
    logger.info(f"Created APKG at {output_path}")
    return output_path


def to_anki_notes(response: FlashcardsResponse, model_key: str = "Basic") -> list[AnkiNote]:
    """Map cards onto notes for the AnkiDroid bridge."""
    return [
        AnkiNote(
            deck_name=response.deck,
            model_key=model_key,
            front=card.front,
            back=card.back,
            tags=card.tags,
        )
        for card in response.cards
    ]
