"""Upload validation and data URI encoding.

Works entirely on bytes; the PDF itself is only opened to count pages; text
extraction is left to the OCR stage.
"""

from __future__ import annotations

import base64
import binascii
import logging
import re
from dataclasses import dataclass
from io import BytesIO

import pdfplumber

logger = logging.getLogger(__name__)

PDF_MIME_TYPE = "application/pdf"

_DATA_URI_RE = re.compile(r"^data:(?P<mime>[\w.+-]+/[\w.+-]+)(?P<params>(?:;[\w.+-]+=[^;,]*)*);base64,(?P<payload>.*)$", re.DOTALL)


class UploadError(Exception):
    """Base class for upload errors."""

    pass


class UploadValidationError(UploadError):
    """The upload was rejected before any processing started.

    Raised for: empty file, wrong content type, not a PDF, unreadable,
    too many pages, malformed data URI.
    """

    pass


class FileTooLargeError(UploadValidationError):
    """Upload exceeds the configured size ceiling."""

    pass


@dataclass(frozen=True, slots=True)
class PreparedUpload:
    """Validated upload ready for the OCR stage."""

    data_uri: str
    page_count: int
    size: int


def to_data_uri(data: bytes, mime_type: str) -> str:
    """Encode bytes as ``data:<mime>;base64,<payload>``."""
    payload = base64.b64encode(data).decode("ascii")
    return f"data:{mime_type};base64,{payload}"


def parse_data_uri(uri: str) -> tuple[str, bytes]:
    """Split a base64 data URI into its MIME type and decoded bytes.

    Raises:
        UploadValidationError: Missing MIME type, not base64, or bad payload.
    """
    match = _DATA_URI_RE.match(uri or "")
    if match is None:
        raise UploadValidationError(
            "malformed data URI: expected 'data:<mime type>;base64,<payload>'"
        )
    try:
        data = base64.b64decode(match.group("payload"), validate=True)
    except (binascii.Error, ValueError) as e:
        raise UploadValidationError(f"malformed data URI: invalid base64 payload ({e})") from e
    return match.group("mime"), data


def _count_pages(data: bytes) -> int:
    try:
        with pdfplumber.open(BytesIO(data)) as pdf:
            return len(pdf.pages)
    except Exception as e:
        logger.warning("PDF open failed: %s", e, exc_info=True)
        raise UploadValidationError(f"failed to read PDF: {type(e).__name__}") from e


def prepare_pdf_upload(
    data: bytes,
    *,
    content_type: str | None,
    max_size_mb: int = 5,
    max_pages: int = 100,
) -> PreparedUpload:
    """Validate an uploaded PDF and encode it for the OCR stage.

    Args:
        data: Raw file bytes.
        content_type: MIME type declared by the client.
        max_size_mb: Maximum allowed file size in MiB.
        max_pages: Maximum allowed page count.

    Returns:
        PreparedUpload with the data URI and page count.

    Raises:
        FileTooLargeError: File exceeds ``max_size_mb``.
        UploadValidationError: Empty, wrong content type, not a PDF,
            unreadable or too many pages.
    """
    # 1. Presence and declared type (cheap)
    if not data:
        raise UploadValidationError("A PDF document is required.")
    if content_type != PDF_MIME_TYPE:
        raise UploadValidationError("Only PDF files are accepted.")

    # 2. Size ceiling (cheap)
    max_size_bytes = max_size_mb * 1024 * 1024
    if len(data) > max_size_bytes:
        raise FileTooLargeError(f"File size must be {max_size_mb}MB or less.")

    # 3. Magic bytes (cheap)
    if not data.startswith(b"%PDF"):
        raise UploadValidationError("unsupported content: missing PDF header")

    # 4. Page count (opens the document)
    page_count = _count_pages(data)
    if page_count > max_pages:
        raise UploadValidationError(f"too many pages: {page_count} > {max_pages}")

    return PreparedUpload(
        data_uri=to_data_uri(data, PDF_MIME_TYPE),
        page_count=page_count,
        size=len(data),
    )


__all__ = [
    "FileTooLargeError",
    "PDF_MIME_TYPE",
    "PreparedUpload",
    "UploadError",
    "UploadValidationError",
    "parse_data_uri",
    "prepare_pdf_upload",
    "to_data_uri",
]
