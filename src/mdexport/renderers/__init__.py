"""Renderers turning a document tree into each output format."""

from .base import RenderOptions, RenderSettings
from .docx import render_docx
from .html import render_html
from .markdown import render_markdown
from .pdf import render_pdf

__all__ = [
    "RenderOptions",
    "RenderSettings",
    "render_docx",
    "render_html",
    "render_markdown",
    "render_pdf",
]
