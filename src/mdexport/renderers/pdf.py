"""Document tree → PDF through WeasyPrint.

The tree is serialized to a print-oriented HTML document (packaged
``print.html`` + ``print.css``, Pygments highlighting for code with a known
language) and WeasyPrint lays it out. ``<title>`` and the author /
description / keywords ``<meta>`` tags become the PDF document info.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from functools import lru_cache
from typing import Any, List, Optional, Tuple

from jinja2 import Environment
from markupsafe import Markup
from pygments import highlight
from pygments.formatters import HtmlFormatter
from pygments.lexers import get_lexer_by_name
from pygments.util import ClassNotFound

from mdexport.core.errors import ConversionError
from mdexport.core.tree import CodeBlock, Root
from mdexport.templates import TemplateType, load_packaged_template

from .base import RenderOptions, RenderSettings, conversion_failure
from .html import render_fragment, resolve_title

__all__ = [
    "PAPER_SIZES",
    "Margin",
    "build_page_css",
    "build_print_html",
    "default_highlight_css",
    "highlight_code_block",
    "parse_margin_shorthand",
    "render_pdf",
]

logger = logging.getLogger(__name__)

PAPER_SIZES = {"letter": "Letter", "a4": "A4", "legal": "Legal", "a5": "A5"}


@dataclass
class Margin:
    top: str
    right: str
    bottom: str
    left: str


# ------------- CSS generation -------------

_CSS_UNIT_RE = re.compile(r"^(?:\d+\.?\d*|\d*\.\d+)(?:in|cm|mm|pt)$")


def _validate_unit(value: str) -> str:
    v = value.strip()
    if not _CSS_UNIT_RE.match(v):
        raise ValueError(
            f"Invalid CSS size '{value}'. Use units in, mm, cm, pt "
            "(e.g., '72pt', '1in', '10mm')."
        )
    return v


def parse_margin_shorthand(margin: Optional[str]) -> Optional[Margin]:
    if not margin:
        return None
    vals = [_validate_unit(p) for p in margin.split()]
    if len(vals) == 1:
        return Margin(vals[0], vals[0], vals[0], vals[0])
    if len(vals) == 2:
        return Margin(vals[0], vals[1], vals[0], vals[1])
    if len(vals) == 3:
        return Margin(vals[0], vals[1], vals[2], vals[1])
    if len(vals) == 4:
        return Margin(*vals)
    raise ValueError(
        "Margin accepts 1-4 CSS size values (e.g., '1in' or '1in 0.5in')."
    )


def build_page_css(
    *,
    paper_size: str = "a4",
    orientation: str = "portrait",
    margin_shorthand: Optional[str] = "72pt",
) -> str:
    size_keyword = PAPER_SIZES.get(paper_size.lower())
    if not size_keyword:
        raise ValueError(
            f"Unsupported paper size: {paper_size}. Choose from "
            f"{sorted(PAPER_SIZES)}"
        )
    if orientation not in {"portrait", "landscape"}:
        raise ValueError("orientation must be 'portrait' or 'landscape'")

    margin = parse_margin_shorthand(margin_shorthand) or Margin(
        "72pt", "72pt", "72pt", "72pt"
    )
    return (
        "@page {\n"
        f"  size: {size_keyword} {orientation};\n"
        f"  margin: {margin.top} {margin.right} {margin.bottom} "
        f"{margin.left};\n"
        "}\n"
    )


def default_highlight_css(style_name: str = "default") -> str:
    formatter = HtmlFormatter(style=style_name)
    return formatter.get_style_defs(".highlight")


def highlight_code_block(node: CodeBlock, style: str = "default") -> Optional[str]:
    """Return Pygments markup for ``node``, or ``None`` if unhighlightable."""

    if not node.lang:
        return None
    try:
        lexer = get_lexer_by_name(node.lang)
    except ClassNotFound:
        return None
    formatter = HtmlFormatter(style=style, cssclass="highlight")
    return highlight(node.value, lexer, formatter)


# ------------- Print document assembly -------------


@lru_cache(maxsize=1)
def _environment() -> Environment:
    return Environment(autoescape=True)


def build_print_html(tree: Root, options: Optional[RenderOptions] = None) -> str:
    """Assemble the HTML document WeasyPrint will lay out."""

    options = options or RenderOptions()
    settings = options.settings
    metadata = options.metadata
    style = settings.highlight_style

    content = render_fragment(
        tree, highlight=lambda node: highlight_code_block(node, style)
    )
    styles = "\n".join(
        [load_packaged_template("print.css"), default_highlight_css(style)]
    )
    keywords = ", ".join(metadata.keywords) if metadata is not None else ""
    template = _environment().from_string(load_packaged_template("print.html"))
    return template.render(
        title=resolve_title(tree, metadata),
        author=metadata.author if metadata is not None else None,
        description=metadata.description if metadata is not None else None,
        keywords=keywords,
        date_str=metadata.date if metadata is not None else None,
        show_title_page=bool(metadata is not None and metadata.title),
        styles=Markup(styles),
        content=Markup(content),
    )


def render_pdf(tree: Root, options: Optional[RenderOptions] = None) -> bytes:
    """Render ``tree`` to PDF bytes (starting with ``%PDF``)."""

    options = options or RenderOptions()
    logger.debug("Rendering to PDF")
    try:
        html_doc = build_print_html(tree, options)
        html_cls, css_cls = _load_weasyprint()
        stylesheets = _build_stylesheets(css_cls, options)
        data = html_cls(string=html_doc).write_pdf(stylesheets=stylesheets)
    except ConversionError:
        raise
    except Exception as exc:
        raise conversion_failure("pdf", exc) from exc
    logger.debug("PDF rendering complete", extra={"size": len(data)})
    return data


def _build_stylesheets(css_cls: Any, options: RenderOptions) -> List[Any]:
    settings: RenderSettings = options.settings
    page_css = build_page_css(
        paper_size=settings.paper_size,
        orientation=settings.orientation,
        margin_shorthand=settings.margin,
    )
    stylesheets = [css_cls(string=page_css)]
    template = options.template
    if (
        template is not None
        and template.type is TemplateType.PDF
        and template.content
    ):
        stylesheets.append(css_cls(string=template.content))
    return stylesheets


def _load_weasyprint() -> Tuple[Any, Any]:
    try:
        from weasyprint import CSS, HTML
    except (ImportError, OSError) as exc:
        raise RuntimeError(
            "WeasyPrint is required. Install system libraries (Cairo, Pango) "
            "and the 'weasyprint' package."
        ) from exc
    return HTML, CSS
