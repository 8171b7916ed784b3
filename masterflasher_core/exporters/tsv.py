"""TSV export for Anki import."""

import csv
from io import StringIO
from pathlib import Path

from masterflasher_core.schemas.cards import FlashcardsResponse


def export_tsv(
    response: FlashcardsResponse,
    output: str | Path | None = None,
    include_tags: bool = True,
) -> str:
    """Export cards as tab-separated front/back(/tags) rows.

    Args:
        response: Generated flashcards
        output: Optional file path to write
        include_tags: Append a space-separated tags column

    Returns:
        TSV content
    """
    buffer = StringIO()
    writer = csv.writer(
        buffer, delimiter="\t", quoting=csv.QUOTE_MINIMAL, lineterminator="\n"
    )

    # Anki reads these header lines to configure the import
    buffer.write("#separator:tab\n")
    buffer.write(f"#deck:{response.deck}\n")
    if include_tags:
        buffer.write("#tags column:3\n")

    for card in response.cards:
        row = [card.front, card.back]
        if include_tags:
            row.append(" ".join(tag.replace(" ", "_") for tag in card.tags))
        writer.writerow(row)

    content = buffer.getvalue()
    if output:
        Path(output).write_text(content, encoding="utf-8")
    return content
