"""Text extraction for uploaded files."""

import logging
from pathlib import Path

import fitz  # PyMuPDF

logger = logging.getLogger(__name__)


TEXT_EXTENSIONS = {".txt", ".md", ".log"}
PDF_EXTENSION = ".pdf"


class TextExtractionError(ValueError):
    """No usable text could be extracted from a file."""


class UnsupportedFileType(TextExtractionError):
    """The file extension has no text extractor."""


def load_pdf_text(path: str) -> str:
    """
    Extract the text layer of a PDF, one page after another.

    Raises:
        TextExtractionError: If the file is not a readable PDF or has no text
    """
    try:
        doc = fitz.open(path)
    except RuntimeError as e:
        raise TextExtractionError(f"Could not read PDF: {e}") from e

    try:
        logger.info(f"PDF has {doc.page_count} page(s)")
        pages = [page.get_text() for page in doc]
    finally:
        doc.close()

    text = "\n".join(page.strip() for page in pages if page.strip())
    if not text:
        raise TextExtractionError("No text content found in PDF")
    return text


def load_text(path: str) -> str:
    """
    Read the text content of an uploaded file.

    Args:
        path: Path to a .txt, .md, .log or .pdf file

    Returns:
        File contents; plain text is decoded as UTF-8 (undecodable bytes replaced)

    Raises:
        UnsupportedFileType: For any other extension
        TextExtractionError: For a PDF without extractable text
    """
    file_path = Path(path)
    ext = file_path.suffix.lower()

    logger.info(f"Extracting text from {file_path.name}")
    if ext == PDF_EXTENSION:
        return load_pdf_text(str(file_path))
    if ext not in TEXT_EXTENSIONS:
        raise UnsupportedFileType(f"Unsupported file type: {ext or '(none)'}")
    return file_path.read_text(encoding="utf-8", errors="replace")
