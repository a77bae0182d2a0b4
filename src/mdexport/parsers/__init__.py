"""Parsers turning each supported input format into a document tree."""

from .docx import ExtractedMarkup, extract_docx_markup, parse_docx
from .html import parse_html
from .markdown import normalize_text, parse_markdown
from .pdf import ExtractedText, extract_pdf_text, parse_pdf
from .text import reconstruct

__all__ = [
    "ExtractedMarkup",
    "ExtractedText",
    "extract_docx_markup",
    "extract_pdf_text",
    "normalize_text",
    "parse_docx",
    "parse_html",
    "parse_markdown",
    "parse_pdf",
    "reconstruct",
]
