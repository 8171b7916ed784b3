"""Export formats for flashcards."""

from masterflasher_core.exporters.apkg import export_apkg, to_anki_notes
from masterflasher_core.exporters.tsv import export_tsv

__all__ = ["export_apkg", "export_tsv", "to_anki_notes"]
