"""Options shared by the renderers."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Optional

from mdexport.core.errors import ConversionError
from mdexport.core.metadata import DocumentMetadata

if TYPE_CHECKING:  # pragma: no cover - typing only
    from mdexport.templates import Template

__all__ = [
    "RenderOptions",
    "RenderSettings",
    "conversion_failure",
]

_FORMAT_LABELS = {
    "md": "Markdown",
    "html": "HTML",
    "pdf": "PDF",
    "docx": "DOCX",
}


@dataclass(frozen=True)
class RenderSettings:
    """Layout knobs that come from configuration rather than the caller."""

    paper_size: str = "a4"
    orientation: str = "portrait"
    margin: str = "72pt"
    highlight_style: str = "default"
    docx_font_family: str = "Calibri"
    docx_margin_inches: float = 1.0


@dataclass(frozen=True)
class RenderOptions:
    """Per-call inputs handed to every renderer."""

    metadata: Optional[DocumentMetadata] = None
    template: Optional["Template"] = None
    settings: RenderSettings = field(default_factory=RenderSettings)


def conversion_failure(fmt: str, exc: BaseException) -> ConversionError:
    """Wrap ``exc`` as a :class:`ConversionError` tagged with ``fmt``."""

    label = _FORMAT_LABELS.get(fmt, fmt)
    return ConversionError(f"Failed to render {label}: {exc}", fmt, exc)
