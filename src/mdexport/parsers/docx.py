"""DOCX → document tree.

mammoth converts the document to HTML, which goes through the regular HTML
parser. When no markup comes back, the raw text is reconstructed the same
way PDF text is.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from io import BytesIO
from typing import Callable, Optional

from mdexport.core.errors import ParseError
from mdexport.core.tree import Root, count_nodes

from .html import parse_html
from .text import reconstruct

__all__ = ["ExtractedMarkup", "extract_docx_markup", "parse_docx"]

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ExtractedMarkup:
    """HTML (when available) and raw text pulled out of a DOCX file."""

    markup: Optional[str]
    raw_text: str = ""
    messages: tuple[str, ...] = ()


def extract_docx_markup(data: bytes) -> ExtractedMarkup:
    """Extract markup with mammoth; raises on corrupt documents."""

    import mammoth

    result = mammoth.convert_to_html(BytesIO(data))
    messages = tuple(str(message) for message in result.messages)
    if result.value:
        return ExtractedMarkup(markup=result.value, messages=messages)
    raw = mammoth.extract_raw_text(BytesIO(data))
    return ExtractedMarkup(
        markup=None,
        raw_text=raw.value or "",
        messages=messages + tuple(str(message) for message in raw.messages),
    )


def parse_docx(
    data: object,
    *,
    extract: Optional[Callable[[bytes], ExtractedMarkup]] = None,
) -> Root:
    """Build a document tree from DOCX bytes."""

    if not isinstance(data, (bytes, bytearray, memoryview)) or not len(data):
        return Root()

    extractor = extract or extract_docx_markup
    try:
        extracted = extractor(bytes(data))
    except Exception as exc:
        raise ParseError(f"Failed to parse DOCX: {exc}", cause=exc) from exc

    if extracted.messages:
        logger.debug(
            "mammoth conversion messages",
            extra={"messages": list(extracted.messages)},
        )

    if extracted.markup:
        tree = parse_html(extracted.markup)
        source = "html"
    else:
        tree = reconstruct(extracted.raw_text)
        source = "raw_text"
    logger.debug(
        "Parsed DOCX input",
        extra={"via": source, "node_count": count_nodes(tree)},
    )
    return tree
