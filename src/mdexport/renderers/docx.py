"""Document tree → DOCX through python-docx."""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from io import BytesIO
from typing import Any, Optional, Sequence

from docx import Document
from docx.enum.text import WD_ALIGN_PARAGRAPH
from docx.oxml import OxmlElement
from docx.oxml.ns import qn
from docx.shared import Inches, Pt, RGBColor

from mdexport.core.errors import ConversionError
from mdexport.core.metadata import DocumentMetadata
from mdexport.core.tree import (
    Blockquote,
    CodeBlock,
    Emphasis,
    Heading,
    Image,
    InlineCode,
    LineBreak,
    Link,
    ListBlock,
    Paragraph,
    Root,
    Strong,
    Text,
    ThematicBreak,
)
from mdexport.templates import Template, TemplateType

from .base import RenderOptions, RenderSettings, conversion_failure

__all__ = ["render_docx"]

logger = logging.getLogger(__name__)

CODE_FONT = "Courier New"
CODE_FONT_SIZE = Pt(10)
CODE_SHADING = "F6F8FA"
QUOTE_COLOR = "6A737D"
QUOTE_BORDER = "DFE2E5"
RULE_COLOR = "E1E4E8"
LIST_INDENT_INCHES = 0.5
DEFAULT_TITLE = "Document"
DEFAULT_AUTHOR = "mdexport"


@dataclass(frozen=True)
class _RunFormat:
    bold: bool = False
    italic: bool = False
    underline: bool = False
    code: bool = False
    color: Optional[str] = None


def render_docx(tree: Root, options: Optional[RenderOptions] = None) -> bytes:
    """Render ``tree`` to DOCX bytes (a ZIP container starting with ``PK``)."""

    options = options or RenderOptions()
    logger.debug("Rendering to DOCX")
    try:
        document = _new_document(options.template)
        _apply_settings(document, options.settings)
        _apply_core_properties(document, options.metadata)
        metadata = options.metadata
        if metadata is not None and metadata.title:
            _add_title_block(document, metadata)
        _DocxWriter(document).blocks(tree.children)
        buffer = BytesIO()
        document.save(buffer)
        data = buffer.getvalue()
    except ConversionError:
        raise
    except Exception as exc:
        raise conversion_failure("docx", exc) from exc
    logger.debug("DOCX rendering complete", extra={"size": len(data)})
    return data


def _new_document(template: Optional[Template]) -> Any:
    if template is not None and template.type is TemplateType.DOCX:
        return Document(str(template.path))
    return Document()


def _apply_settings(document: Any, settings: RenderSettings) -> None:
    margin = Inches(settings.docx_margin_inches)
    for section in document.sections:
        section.top_margin = margin
        section.bottom_margin = margin
        section.left_margin = margin
        section.right_margin = margin
    try:
        document.styles["Normal"].font.name = settings.docx_font_family
    except KeyError:  # pragma: no cover - depends on caller template
        logger.debug("Template has no Normal style; keeping its font")


def _apply_core_properties(
    document: Any, metadata: Optional[DocumentMetadata]
) -> None:
    props = document.core_properties
    props.title = (metadata.title if metadata else None) or DEFAULT_TITLE
    props.author = (metadata.author if metadata else None) or DEFAULT_AUTHOR
    if metadata is not None:
        if metadata.description:
            props.subject = metadata.description
        if metadata.keywords:
            props.keywords = ", ".join(metadata.keywords)


def _add_title_block(document: Any, metadata: DocumentMetadata) -> None:
    title = _styled_paragraph(document, "Title")
    title.alignment = WD_ALIGN_PARAGRAPH.CENTER
    title.add_run(metadata.title or "")
    if metadata.author:
        byline = document.add_paragraph()
        byline.alignment = WD_ALIGN_PARAGRAPH.CENTER
        byline.add_run(f"By {metadata.author}").italic = True
    if metadata.date:
        dated = document.add_paragraph()
        dated.alignment = WD_ALIGN_PARAGRAPH.CENTER
        dated.add_run(metadata.date)


def _styled_paragraph(document: Any, style: str) -> Any:
    try:
        return document.add_paragraph(style=style)
    except KeyError:
        logger.debug("Style missing from template", extra={"style": style})
        return document.add_paragraph()


def _shade(paragraph: Any, fill: str) -> None:
    p_pr = paragraph._p.get_or_add_pPr()
    shd = OxmlElement("w:shd")
    shd.set(qn("w:val"), "clear")
    shd.set(qn("w:color"), "auto")
    shd.set(qn("w:fill"), fill)
    p_pr.append(shd)


def _border(paragraph: Any, side: str, *, size: int, color: str) -> None:
    p_pr = paragraph._p.get_or_add_pPr()
    borders = p_pr.find(qn("w:pBdr"))
    if borders is None:
        borders = OxmlElement("w:pBdr")
        p_pr.append(borders)
    edge = OxmlElement(f"w:{side}")
    edge.set(qn("w:val"), "single")
    edge.set(qn("w:sz"), str(size))
    edge.set(qn("w:space"), "4")
    edge.set(qn("w:color"), color)
    borders.append(edge)


class _DocxWriter:
    def __init__(self, document: Any) -> None:
        self.document = document

    def blocks(
        self, nodes: Sequence[Any], *, quote: bool = False, level: int = 0
    ) -> None:
        for node in nodes:
            self.block(node, quote=quote, level=level)

    def block(self, node: Any, *, quote: bool = False, level: int = 0) -> None:
        if isinstance(node, Heading):
            paragraph = _styled_paragraph(
                self.document, f"Heading {node.depth}"
            )
            self.inlines(paragraph, node.children, _RunFormat())
        elif isinstance(node, Paragraph):
            self.paragraph(node, quote=quote, level=level)
        elif isinstance(node, ListBlock):
            self.list(node, quote=quote, level=level)
        elif isinstance(node, CodeBlock):
            self.code(node)
        elif isinstance(node, Blockquote):
            self.blocks(node.children, quote=True, level=level)
        elif isinstance(node, ThematicBreak):
            rule = self.document.add_paragraph()
            _border(rule, "bottom", size=6, color=RULE_COLOR)

    def paragraph(
        self,
        node: Paragraph,
        *,
        quote: bool = False,
        level: int = 0,
        prefix: Optional[str] = None,
    ) -> Any:
        paragraph = self.document.add_paragraph()
        fmt = _RunFormat()
        indent_steps = level
        if quote:
            fmt = _RunFormat(italic=True, color=QUOTE_COLOR)
            indent_steps += 1
            _border(paragraph, "left", size=12, color=QUOTE_BORDER)
        if indent_steps:
            paragraph.paragraph_format.left_indent = Inches(
                LIST_INDENT_INCHES * indent_steps
            )
        if prefix:
            self.run(paragraph, prefix, fmt)
        self.inlines(paragraph, node.children, fmt)
        return paragraph

    def list(self, node: ListBlock, *, quote: bool, level: int) -> None:
        for index, item in enumerate(node.children, start=1):
            prefix = f"{index}. " if node.ordered else "• "
            used_prefix = False
            for child in item.children:
                if isinstance(child, Paragraph):
                    self.paragraph(
                        child,
                        quote=quote,
                        level=level + 1,
                        prefix=None if used_prefix else prefix,
                    )
                    used_prefix = True
                elif isinstance(child, ListBlock):
                    self.list(child, quote=quote, level=level + 1)
                else:
                    self.block(child, quote=quote, level=level + 1)
            if not used_prefix and not item.children:
                self.paragraph(
                    Paragraph(), quote=quote, level=level + 1, prefix=prefix
                )

    def code(self, node: CodeBlock) -> None:
        for line in node.value.split("\n"):
            paragraph = self.document.add_paragraph()
            paragraph.paragraph_format.space_after = Pt(0)
            _shade(paragraph, CODE_SHADING)
            self.run(paragraph, line, _RunFormat(code=True))
        self.document.add_paragraph()

    def inlines(self, paragraph: Any, nodes: Sequence[Any], fmt: _RunFormat) -> None:
        for node in nodes:
            if isinstance(node, Text):
                self.run(paragraph, node.value.replace("\n", " "), fmt)
            elif isinstance(node, Strong):
                self.inlines(paragraph, node.children, replace(fmt, bold=True))
            elif isinstance(node, Emphasis):
                self.inlines(
                    paragraph, node.children, replace(fmt, italic=True)
                )
            elif isinstance(node, InlineCode):
                self.run(paragraph, node.value, replace(fmt, code=True))
            elif isinstance(node, Link):
                self.inlines(
                    paragraph, node.children, replace(fmt, underline=True)
                )
            elif isinstance(node, Image):
                self.run(paragraph, f"[{node.alt or 'image'}]", fmt)
            elif isinstance(node, LineBreak):
                paragraph.add_run().add_break()

    def run(self, paragraph: Any, text: str, fmt: _RunFormat) -> Any:
        run = paragraph.add_run(text)
        if fmt.bold:
            run.bold = True
        if fmt.italic:
            run.italic = True
        if fmt.underline:
            run.underline = True
        if fmt.code:
            run.font.name = CODE_FONT
            run.font.size = CODE_FONT_SIZE
        if fmt.color:
            run.font.color.rgb = RGBColor.from_string(fmt.color)
        return run
