from __future__ import annotations

import asyncio
import logging
import re
from dataclasses import dataclass
from io import BytesIO

from docx import Document

from app.core.config import settings
from app.core.errors import InputValidationError, UnsupportedMediaError, UpstreamServiceError

logger = logging.getLogger(__name__)

PDF_MIME = "application/pdf"
DOC_MIME = "application/msword"
DOCX_MIME = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"
TEXT_MIME = "text/plain"

ALLOWED_MIME_TYPES = (DOC_MIME, DOCX_MIME, TEXT_MIME)
WORD_MIME_TYPES = (DOC_MIME, DOCX_MIME)

MIN_TEXT_CHARS = 10
PREVIEW_CHARS = 200

ZIP_MAGICS = (b"PK\x03\x04", b"PK\x05\x06", b"PK\x07\x08")

_CONTROL_CHARS_RE = re.compile(r"[\x00-\x08\x0B\x0C\x0E-\x1F\x7F-\x9F]")
_WHITESPACE_RE = re.compile(r"\s+")


@dataclass(frozen=True)
class ProcessedFile:
    text: str
    filename: str
    size: int
    type: str

    @property
    def preview(self) -> str:
        return self.text[:PREVIEW_CHARS] + "..."


def normalize_mime_type(content_type: str | None) -> str:
    return (content_type or "").split(";")[0].strip().lower()


def validate_upload(*, content_type: str, size: int, max_bytes: int | None = None) -> None:
    limit = settings.max_upload_bytes if max_bytes is None else max_bytes
    mime = normalize_mime_type(content_type)
    if mime == PDF_MIME:
        raise UnsupportedMediaError(
            "PDF processing is temporarily unavailable. "
            "Please upload a Word document (.docx) or text file (.txt) instead."
        )
    if mime not in ALLOWED_MIME_TYPES:
        raise UnsupportedMediaError("Invalid file type. Only DOC, DOCX, and TXT files are allowed.")
    if size > limit:
        raise UnsupportedMediaError(f"File too large. Maximum size is {limit // (1024 * 1024)}MB.")


def clean_text(text: str | None) -> str:
    """Strip control characters, collapse whitespace runs to one space and trim."""
    if not text or not isinstance(text, str):
        return ""
    text = _CONTROL_CHARS_RE.sub("", text)
    return _WHITESPACE_RE.sub(" ", text).strip()


def _is_zip_payload(content: bytes) -> bool:
    return any(content.startswith(prefix) for prefix in ZIP_MAGICS)


def _extract_docx_text(content: bytes) -> str:
    document = Document(BytesIO(content))
    paragraphs = [p.text for p in document.paragraphs if p.text and p.text.strip()]
    for table in document.tables:
        for row in table.rows:
            cells = [cell.text.strip() for cell in row.cells if cell.text and cell.text.strip()]
            if cells:
                paragraphs.append(" ".join(cells))
    return "\n".join(paragraphs)


def _decode_text(content: bytes) -> str:
    return content.decode("utf-8", errors="replace")


def extract_word_text(content: bytes) -> str:
    """Word text via python-docx, falling back to a raw UTF-8 decode.

    Legacy ``.doc`` files are not OOXML archives, so they always take the
    fallback path.
    """
    if _is_zip_payload(content):
        try:
            text = _extract_docx_text(content)
            if text.strip():
                return text
            logger.warning("docx_extract_empty size=%s", len(content))
        except Exception as exc:  # noqa: BLE001 - raw decode fallback
            logger.warning("docx_extract_failed size=%s: %s", len(content), exc)
    return _decode_text(content)


def extract_text(content: bytes, content_type: str) -> str:
    mime = normalize_mime_type(content_type)
    if mime in WORD_MIME_TYPES:
        return extract_word_text(content)
    if mime == TEXT_MIME:
        return _decode_text(content)
    raise UnsupportedMediaError(f"Unsupported file type: {mime or 'unknown'}")


def _check_usable(text: str) -> None:
    if len(text) < MIN_TEXT_CHARS:
        raise InputValidationError(
            "Extracted text is too short. No meaningful text content could be extracted "
            f"from the file (extracted {len(text)} characters, need at least {MIN_TEXT_CHARS}).",
            error="Text too short",
        )


async def process_file(
    *,
    filename: str,
    content: bytes,
    content_type: str,
    timeout_s: float | None = None,
) -> ProcessedFile:
    mime = normalize_mime_type(content_type)
    validate_upload(content_type=mime, size=len(content))

    timeout = settings.upload_timeout_s if timeout_s is None else timeout_s
    try:
        raw = await asyncio.wait_for(asyncio.to_thread(extract_text, content, mime), timeout=timeout)
    except asyncio.TimeoutError as exc:
        logger.warning("upload_extract_timeout file=%s size=%s timeout_s=%s", filename, len(content), timeout)
        raise UpstreamServiceError(
            "Text extraction took too long. Please try a smaller file.",
            error="Upload failed",
            code="extract_timeout",
        ) from exc

    text = clean_text(raw)
    _check_usable(text)
    logger.info("upload_processed file=%s type=%s size=%s text_len=%s", filename, mime, len(content), len(text))
    return ProcessedFile(text=text, filename=filename, size=len(content), type=mime)
