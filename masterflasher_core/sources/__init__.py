"""Turning shared text and PDFs into pipeline input."""

from masterflasher_core.sources.pdf import (
    PDFExtractionError,
    clean_extracted_text,
    extract_pdf_text,
    validate_pdf,
)
from masterflasher_core.sources.share import IncomingShare, parse_incoming_share

__all__ = [
    "IncomingShare",
    "parse_incoming_share",
    "PDFExtractionError",
    "clean_extracted_text",
    "extract_pdf_text",
    "validate_pdf",
]
