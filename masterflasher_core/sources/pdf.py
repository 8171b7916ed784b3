"""PDF text extraction."""

import re
from io import BytesIO

from masterflasher_core.utils.logging import get_logger

logger = get_logger(__name__)

PDF_MAGIC = b"%PDF"


class PDFExtractionError(Exception):
    """Raised when a PDF cannot be read."""

    pass


def validate_pdf(data: bytes) -> None:
    """Check that data looks like a PDF file.

    Raises:
        PDFExtractionError: If the data is empty, tiny, or lacks the PDF header
    """
    if not data:
        raise PDFExtractionError("Empty file data")
    if len(data) < len(PDF_MAGIC):
        raise PDFExtractionError("File too small to be a valid PDF")
    if not data.startswith(PDF_MAGIC):
        raise PDFExtractionError(
            f"Invalid PDF: missing PDF magic bytes. Got: {data[:4]!r}"
        )


def clean_extracted_text(text: str) -> str:
    """Clean common PDF text extraction artifacts.

    Joins words hyphenated across line breaks, collapses runs of spaces and
    tabs, limits blank runs to one empty line, and trims every line.
    """
    text = re.sub(r"(\w)-\n(\w)", r"\1\2", text)
    text = re.sub(r"[ \t]+", " ", text)
    text = re.sub(r"\n{3,}", "\n\n", text)
    text = "\n".join(line.strip() for line in text.split("\n"))
    return text.strip()


def extract_pdf_text(data: bytes) -> str:
    """Extract cleaned text from every page of a PDF.

    Args:
        data: Raw PDF bytes

    Returns:
        Page texts joined by blank lines, cleaned

    Raises:
        PDFExtractionError: If the file is not a PDF, is encrypted, or cannot
            be parsed
    """
    validate_pdf(data)

    import pdfplumber

    try:
        with pdfplumber.open(BytesIO(data)) as pdf:
            pages = [page.extract_text() or "" for page in pdf.pages]
    except Exception as e:
        detail = f"{type(e).__name__}: {e}".lower()
        if "password" in detail or "encrypt" in detail:
            raise PDFExtractionError(
                "This PDF is password-protected. Please use an unprotected PDF."
            ) from e
        raise PDFExtractionError(f"Failed to extract PDF text: {e}") from e

    logger.info(f"Extracted text from {len(pages)} PDF page(s)")
    return clean_extracted_text("\n\n".join(pages))
