"""PDF text extraction for submitted decks (pypdf)."""

from __future__ import annotations

import base64
import binascii
import io
import logging

from pypdf import PdfReader
from pypdf.errors import PdfReadError

logger = logging.getLogger(__name__)

# Keep prompts bounded; long decks are truncated rather than rejected
MAX_DOCUMENT_CHARS = 60_000

PDF_MAGIC = b"%PDF"


class DocumentError(ValueError):
    """Raised when a document cannot be decoded or read."""


def decode_document(data: bytes | str) -> bytes:
    """Return raw bytes for a document given as bytes or a base64 string."""
    if isinstance(data, bytes):
        return data
    payload = data.strip()
    if payload.startswith("data:") and "," in payload:
        payload = payload.split(",", 1)[1]
    try:
        return base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise DocumentError(f"Document is not valid base64: {exc}") from exc


def looks_like_pdf(data: bytes) -> bool:
    return data[:1024].lstrip().startswith(PDF_MAGIC)


def extract_document_text(data: bytes | str, max_chars: int = MAX_DOCUMENT_CHARS) -> str:
    """Extract plain text from PDF bytes (or base64) page by page.

    Pages that fail to extract are skipped. Raises DocumentError when the
    payload is not a readable PDF.
    """
    raw = decode_document(data)
    if not looks_like_pdf(raw):
        raise DocumentError("Document is not a PDF")
    try:
        reader = PdfReader(io.BytesIO(raw))
        pages = list(reader.pages)
    except (PdfReadError, ValueError, OSError) as exc:
        raise DocumentError(f"Could not read PDF: {exc}") from exc

    parts: list[str] = []
    for number, page in enumerate(pages, start=1):
        try:
            text = page.extract_text()
        except Exception as exc:  # pypdf raises assorted errors on broken pages
            logger.debug("pdf_page_extract_failed: page=%d error=%s", number, exc)
            continue
        if text:
            parts.append(text)

    text = "\n\n".join(parts).strip()
    if len(text) > max_chars:
        logger.info("document_text_truncated: chars=%d limit=%d", len(text), max_chars)
        text = text[:max_chars]
    return text
