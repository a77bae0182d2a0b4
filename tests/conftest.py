from __future__ import annotations

import importlib
import sys
from io import BytesIO
from pathlib import Path
from typing import Callable, Iterator

import pytest

TESTS_DIR = Path(__file__).resolve().parent
ROOT = TESTS_DIR.parent
SRC = str(ROOT / "src")
if SRC not in sys.path:
    sys.path.insert(0, SRC)

from mdexport.templates import TemplateRegistry  # noqa: E402


def _weasyprint_importable() -> bool:
    try:
        importlib.import_module("weasyprint")
    except (ImportError, OSError):
        return False
    return True


@pytest.fixture
def requires_weasyprint() -> None:
    """Skip tests that need WeasyPrint's native libraries when missing."""

    if not _weasyprint_importable():
        pytest.skip("WeasyPrint (with Cairo/Pango) is not available")


@pytest.fixture
def registry() -> Iterator[TemplateRegistry]:
    templates = TemplateRegistry()
    yield templates
    templates.clear()


@pytest.fixture
def make_docx() -> Callable[..., bytes]:
    """Build a small DOCX in memory with python-docx."""

    from docx import Document

    def _build(
        *,
        heading: str | None = None,
        paragraphs: tuple[str, ...] = (),
        bullets: tuple[str, ...] = (),
    ) -> bytes:
        document = Document()
        if heading:
            document.add_heading(heading, level=1)
        for text in paragraphs:
            document.add_paragraph(text)
        for text in bullets:
            document.add_paragraph(text, style="List Bullet")
        buffer = BytesIO()
        document.save(buffer)
        return buffer.getvalue()

    return _build
