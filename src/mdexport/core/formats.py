"""Supported formats and content-based input detection."""

from __future__ import annotations

import re
from enum import Enum

__all__ = [
    "DOCX_SIGNATURE",
    "InputFormat",
    "OutputFormat",
    "PDF_SIGNATURE",
    "detect_format",
]

DOCX_SIGNATURE = b"PK\x03\x04"
PDF_SIGNATURE = b"%PDF-"

_VOID_TAGS = frozenset({"br", "hr", "img", "input", "meta", "link"})
_OPENING_TAG_RE = re.compile(r"^<([a-z][a-z0-9]*)\b[^>]*>", re.IGNORECASE)


class InputFormat(Enum):
    """Formats a conversion can read."""

    TEXT = "text"
    MARKDOWN = "md"
    HTML = "html"
    PDF = "pdf"
    DOCX = "docx"

    @property
    def is_binary(self) -> bool:
        return self in (InputFormat.PDF, InputFormat.DOCX)

    @classmethod
    def from_value(cls, value: "str | InputFormat") -> "InputFormat":
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            normalized = value.strip().lower()
            for member in cls:
                if member.value == normalized:
                    return member
        expected = ", ".join(member.value for member in cls)
        raise ValueError(
            f"Unknown input format '{value}'. Expected one of: {expected}."
        )


class OutputFormat(Enum):
    """Formats a conversion can produce."""

    MARKDOWN = "md"
    HTML = "html"
    PDF = "pdf"
    DOCX = "docx"

    @property
    def is_binary(self) -> bool:
        return self in (OutputFormat.PDF, OutputFormat.DOCX)

    @classmethod
    def from_value(cls, value: "str | OutputFormat") -> "OutputFormat":
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            normalized = value.strip().lower()
            for member in cls:
                if member.value == normalized:
                    return member
        expected = ", ".join(member.value for member in cls)
        raise ValueError(
            f"Unknown output format '{value}'. Expected one of: {expected}."
        )


def detect_format(source: object) -> InputFormat:
    """Classify ``source`` as markdown, html, pdf or docx.

    Bytes are checked for the DOCX and PDF signatures first and otherwise
    decoded as UTF-8; undecodable payloads fall back to markdown. Never
    raises, and never returns :attr:`InputFormat.TEXT`.
    """

    if isinstance(source, (bytes, bytearray, memoryview)):
        data = bytes(source)
        if data[:4] == DOCX_SIGNATURE:
            return InputFormat.DOCX
        if data[:5] == PDF_SIGNATURE:
            return InputFormat.PDF
        try:
            source = data.decode("utf-8")
        except UnicodeDecodeError:
            return InputFormat.MARKDOWN

    if not isinstance(source, str):
        return InputFormat.MARKDOWN

    text = source.strip()
    if not text:
        return InputFormat.MARKDOWN
    lowered = text.lower()
    if lowered.startswith("<!doctype") or lowered.startswith("<html"):
        return InputFormat.HTML
    if _looks_like_element(text):
        return InputFormat.HTML
    return InputFormat.MARKDOWN


def _looks_like_element(text: str) -> bool:
    match = _OPENING_TAG_RE.match(text)
    if match is None:
        return False
    tag = match.group(1).lower()
    if tag in _VOID_TAGS:
        return True
    if match.group(0).endswith("/>"):
        return True
    return f"</{tag}>" in text.lower()
