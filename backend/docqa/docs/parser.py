"""Upload parsing - extract plain text from .txt, .md, .pdf and .docx files."""

import io
import logging
import zipfile
from pathlib import PurePath
from xml.etree import ElementTree

import docx2txt
from pypdf import PdfReader
from pypdf.errors import PdfReadError

from backend.docqa.errors import UnsupportedFileType, ValidationError

logger = logging.getLogger(__name__)

ALLOWED_EXTENSIONS = (".txt", ".pdf", ".md", ".docx")


def get_file_extension(filename: str) -> str:
    """Lower-cased extension including the dot ("" when there is none)."""
    return PurePath(filename).suffix.lower()


def is_allowed_file(filename: str) -> bool:
    """Whether the upload extension is supported."""
    return get_file_extension(filename) in ALLOWED_EXTENSIONS


def _parse_pdf(data: bytes) -> str:
    try:
        reader = PdfReader(io.BytesIO(data))
        parts = [page.extract_text() or "" for page in reader.pages]
    except PdfReadError as e:
        raise ValidationError("PDF could not be parsed.") from e

    text = "\n".join(part for part in parts if part)
    if not text.strip():
        raise ValidationError(
            "PDF appears to be empty or contains only images (no extractable text)."
        )
    return text


def _parse_docx(data: bytes) -> str:
    try:
        text = docx2txt.process(io.BytesIO(data))
    except (zipfile.BadZipFile, KeyError, ElementTree.ParseError) as e:
        raise ValidationError("DOCX could not be parsed.") from e

    if not text or not text.strip():
        raise ValidationError("DOCX appears to be empty or could not be parsed.")
    return text


def parse_file(filename: str, data: bytes) -> str:
    """Extract text from an uploaded file.

    Args:
        filename: Original upload name (selects the parser)
        data: Raw file bytes

    Returns:
        Extracted text

    Raises:
        UnsupportedFileType: If the extension is not allowed
        ValidationError: If the file is empty or has no extractable text
    """
    ext = get_file_extension(filename)
    if ext not in ALLOWED_EXTENSIONS:
        raise UnsupportedFileType()

    if ext in (".txt", ".md"):
        text = data.decode("utf-8", errors="replace")
        if not text.strip():
            raise ValidationError("File is empty.")
        return text

    if ext == ".pdf":
        text = _parse_pdf(data)
    else:
        text = _parse_docx(data)

    logger.info(f"Extracted {len(text)} chars from {filename}")
    return text
