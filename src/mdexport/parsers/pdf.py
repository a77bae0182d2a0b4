"""PDF → document tree (lossy)."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from io import BytesIO
from typing import Callable, Optional

from mdexport.core.errors import ParseError
from mdexport.core.tree import Root, count_nodes

from .text import reconstruct

__all__ = ["ExtractedText", "extract_pdf_text", "parse_pdf"]

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ExtractedText:
    """Plain text pulled out of a PDF plus its page count."""

    text: str
    page_count: int


def extract_pdf_text(data: bytes) -> ExtractedText:
    """Extract text with pdfminer.six; raises on corrupt documents."""

    from pdfminer.high_level import extract_text
    from pdfminer.pdfpage import PDFPage

    stream = BytesIO(data)
    text = extract_text(stream)
    stream.seek(0)
    page_count = sum(1 for _ in PDFPage.get_pages(stream))
    return ExtractedText(text=text or "", page_count=page_count)


def parse_pdf(
    data: object,
    *,
    extract: Optional[Callable[[bytes], ExtractedText]] = None,
) -> Root:
    """Reconstruct a document tree from PDF bytes.

    Empty input, or a PDF without extractable text, yields an empty root.
    Extraction failures are raised as :class:`ParseError`.
    """

    if not isinstance(data, (bytes, bytearray, memoryview)) or not len(data):
        return Root()

    extractor = extract or extract_pdf_text
    try:
        extracted = extractor(bytes(data))
    except Exception as exc:
        raise ParseError(f"Failed to parse PDF: {exc}", cause=exc) from exc

    if not extracted.text.strip():
        logger.debug("No text content found in PDF")
        return Root()

    # Form feeds separate pages; treat them as paragraph boundaries.
    tree = reconstruct(extracted.text.replace("\f", "\n\n"))
    logger.debug(
        "Parsed PDF input",
        extra={
            "page_count": extracted.page_count,
            "node_count": count_nodes(tree),
        },
    )
    return tree
