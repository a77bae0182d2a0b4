"""Structure reconstruction for text extracted from PDF and DOCX files.

Extracted text carries no reliable structure, so blocks are inferred with a
single forward scan and one line of lookahead. The thresholds below are
fixed; callers and tests depend on the exact boundary values.
"""

from __future__ import annotations

import re
from typing import List, Optional

from mdexport.core.tree import (
    Block,
    ListBlock,
    ListItem,
    Root,
    create_heading,
    create_paragraph,
)

__all__ = [
    "heading_depth",
    "is_likely_heading",
    "is_list_item",
    "is_title_case",
    "reconstruct",
]

_BULLET_RE = re.compile(r"^\s*[-*•·‣▪]\s+")
_ENUMERATED_RE = re.compile(r"^\s*(\d+|[a-z]|[ivx]+)[.)]\s+", re.IGNORECASE)
_SECTION_RE = re.compile(r"^\d+(\.\d+)*\s+[A-Z]")
_SECTION_PREFIX_RE = re.compile(r"^\d+(\.\d+)*")
_TERMINAL_PUNCTUATION = tuple(".!?,;:")
_TITLE_CASE_WORD_RE = re.compile(r"^[A-Z]")
_MINOR_WORDS = frozenset(
    {"a", "an", "the", "and", "or", "but", "in", "on", "at", "to", "for", "of"}
)

SHORT_LINE_LIMIT = 60
TITLE_CASE_LIMIT = 50
SECTION_LINE_LIMIT = 80


def is_list_item(line: str) -> bool:
    return bool(_BULLET_RE.match(line) or _ENUMERATED_RE.match(line))


def is_title_case(line: str) -> bool:
    words = line.split()
    if len(words) < 2:
        return False
    return all(
        _TITLE_CASE_WORD_RE.match(word)
        for word in words
        if word.lower() not in _MINOR_WORDS
    )


def is_likely_heading(line: str, next_line: str, first_content: bool) -> bool:
    """Return ``True`` when ``line`` should become a heading.

    ``line`` and ``next_line`` are expected to be stripped already.
    """

    length = len(line)
    if line == line.upper() and 2 < length < SHORT_LINE_LIMIT:
        return True
    if (
        length < SHORT_LINE_LIMIT
        and next_line == ""
        and not line.endswith(_TERMINAL_PUNCTUATION)
    ):
        if first_content:
            return True
        if length < TITLE_CASE_LIMIT and is_title_case(line):
            return True
    if _SECTION_RE.match(line) and length < SECTION_LINE_LIMIT:
        return True
    return False


def heading_depth(line: str) -> int:
    if line == line.upper():
        return 1
    prefix = _SECTION_PREFIX_RE.match(line)
    if prefix:
        return min(prefix.group(0).count(".") + 1, 6)
    length = len(line)
    if length < 25:
        return 1
    if length < 40:
        return 2
    if length < 60:
        return 3
    return 4


def reconstruct(text: Optional[str]) -> Root:
    """Infer headings, paragraphs and lists from raw extracted text."""

    if not text or not isinstance(text, str):
        return Root()

    lines = text.replace("\r\n", "\n").replace("\r", "\n").split("\n")
    blocks: List[Block] = []
    paragraph: List[str] = []
    items: List[str] = []
    ordered = False
    seen_content = False

    def flush_paragraph() -> None:
        if paragraph:
            blocks.append(create_paragraph(" ".join(paragraph)))
            paragraph.clear()

    def flush_list() -> None:
        if items:
            blocks.append(
                ListBlock(
                    ordered,
                    tuple(
                        ListItem((create_paragraph(item),)) for item in items
                    ),
                )
            )
            items.clear()

    for index, raw in enumerate(lines):
        line = raw.strip()
        next_line = lines[index + 1].strip() if index + 1 < len(lines) else ""

        if not line:
            flush_paragraph()
            flush_list()
            continue

        first_content = not seen_content
        seen_content = True

        if is_list_item(line):
            flush_paragraph()
            bullet = _BULLET_RE.match(line)
            if not items:
                ordered = bullet is None
            if bullet is not None:
                items.append(line[bullet.end():])
            else:
                items.append(_ENUMERATED_RE.sub("", line, count=1))
            continue

        flush_list()

        if is_likely_heading(line, next_line, first_content):
            flush_paragraph()
            blocks.append(create_heading(line, heading_depth(line)))
            continue

        paragraph.append(line)

    flush_paragraph()
    flush_list()
    return Root(tuple(blocks))
