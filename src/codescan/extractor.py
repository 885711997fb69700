"""PDF text extraction.

Parsing runs in a worker thread so the event loop stays responsive while
pypdf walks the document.
"""

from __future__ import annotations

import asyncio
import io

import structlog
from pypdf import PdfReader

from codescan.errors import CodeScanError, ErrorCode
from codescan.models.measure import ExtractedText, RawDocument

log = structlog.get_logger()


def read_pdf_text(payload: bytes) -> tuple[str, int]:
    """Return ``(text, page_count)`` for a PDF payload.

    Page texts are joined with newlines. Raises whatever pypdf raises on a
    payload it cannot parse.
    """
    reader = PdfReader(io.BytesIO(payload))
    pages = [page.extract_text() or "" for page in reader.pages]
    return "\n".join(pages), len(pages)


class PdfExtractor:
    """Turns a RawDocument into ExtractedText, classifying unusable payloads."""

    def __init__(self, min_chars: int = 100) -> None:
        self._min_chars = min_chars

    async def extract(self, document: RawDocument) -> ExtractedText:
        try:
            text, page_count = await asyncio.to_thread(read_pdf_text, document.content)
        except Exception as exc:
            raise CodeScanError(
                code=ErrorCode.MALFORMED_DOCUMENT,
                message=f"Could not parse PDF from {document.address}: {exc}",
                suggestion="The downloaded file is not a readable PDF. Verify the URL manually.",
                recoverable=False,
            ) from exc

        stripped_length = len(text.strip())
        if stripped_length < self._min_chars:
            raise CodeScanError(
                code=ErrorCode.EMPTY_EXTRACTION,
                message=(
                    f"PDF from {document.address} yielded only {stripped_length} characters "
                    f"of text across {page_count} page(s)"
                ),
                suggestion="The document may be scanned or image-only; open it to check.",
                recoverable=False,
            )

        log.info(
            "extract_complete",
            url=document.address,
            page_count=page_count,
            char_count=len(text),
        )
        return ExtractedText(full_text=text, page_count=page_count, char_count=len(text))
