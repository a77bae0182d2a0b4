from __future__ import annotations

from io import BytesIO
from pathlib import Path

import pytest
from docx import Document
from docx.shared import Inches

from mdexport.core.errors import ConversionError
from mdexport.core.metadata import DocumentMetadata
from mdexport.core.tree import (
    CodeBlock,
    Emphasis,
    InlineCode,
    Link,
    Paragraph,
    Root,
    Strong,
    Text,
    ThematicBreak,
    create_blockquote,
    create_heading,
    create_list,
    create_paragraph,
    create_root,
)
from mdexport.renderers.base import RenderOptions, RenderSettings
from mdexport.renderers.docx import render_docx
from mdexport.templates import Template, TemplateType


def _read(data: bytes):
    return Document(BytesIO(data))


def test_render_docx_produces_zip_container():
    data = render_docx(Root())

    assert data[:2] == b"PK"
    document = _read(data)
    assert document.core_properties.title == "Document"
    assert document.core_properties.author == "mdexport"


def test_render_docx_blocks_and_runs():
    tree = create_root(
        [
            create_heading("Heading Two", 2),
            Paragraph(
                (
                    Text("plain "),
                    Strong((Text("bold"),)),
                    Text(" "),
                    Emphasis((Text("italic"),)),
                    Text(" "),
                    InlineCode("code"),
                    Text(" "),
                    Link("https://x.dev", (Text("link"),)),
                )
            ),
            create_list(["alpha", "beta"]),
            create_list(["first", "second"], ordered=True),
            CodeBlock("line one\nline two", "python"),
            create_blockquote("quoted text"),
            ThematicBreak(),
        ]
    )

    document = _read(render_docx(tree))
    paragraphs = document.paragraphs
    texts = [p.text for p in paragraphs]

    assert paragraphs[0].style.name == "Heading 2"
    assert texts[0] == "Heading Two"

    runs = {run.text: run for run in paragraphs[1].runs}
    assert runs["bold"].bold is True
    assert runs["italic"].italic is True
    assert runs["code"].font.name == "Courier New"
    assert runs["link"].underline is True

    assert "• alpha" in texts
    assert "• beta" in texts
    assert "1. first" in texts
    assert "2. second" in texts
    alpha = paragraphs[texts.index("• alpha")]
    assert alpha.paragraph_format.left_indent == Inches(0.5)

    assert "line one" in texts and "line two" in texts
    quote = paragraphs[texts.index("quoted text")]
    assert all(run.italic for run in quote.runs)


def test_render_docx_metadata_and_title_block():
    metadata = DocumentMetadata(
        {
            "title": "Report",
            "author": "Kim",
            "description": "Quarterly numbers",
            "keywords": ["q1", "sales"],
            "date": "2024-04-01",
        }
    )

    document = _read(
        render_docx(
            create_root([create_paragraph("Body")]),
            RenderOptions(metadata=metadata),
        )
    )

    props = document.core_properties
    assert props.title == "Report"
    assert props.author == "Kim"
    assert props.subject == "Quarterly numbers"
    assert props.keywords == "q1, sales"
    texts = [p.text for p in document.paragraphs]
    assert texts[:4] == ["Report", "By Kim", "2024-04-01", "Body"]


def test_render_docx_applies_settings():
    settings = RenderSettings(docx_font_family="Arial", docx_margin_inches=0.5)

    document = _read(
        render_docx(create_root(), RenderOptions(settings=settings))
    )

    assert document.styles["Normal"].font.name == "Arial"
    assert document.sections[0].left_margin == Inches(0.5)


def test_render_docx_uses_template_file(tmp_path: Path):
    base = Document()
    base.core_properties.comments = "from template"
    template_path = tmp_path / "base.docx"
    base.save(str(template_path))
    template = Template(
        id="base",
        name="Base",
        type=TemplateType.DOCX,
        path=template_path,
    )

    document = _read(
        render_docx(
            create_root([create_paragraph("x")]),
            RenderOptions(template=template),
        )
    )

    assert document.core_properties.comments == "from template"


def test_render_docx_missing_template_file_is_conversion_error(tmp_path: Path):
    template = Template(
        id="gone",
        name="Gone",
        type=TemplateType.DOCX,
        path=tmp_path / "gone.docx",
    )

    with pytest.raises(ConversionError, match="Failed to render DOCX"):
        render_docx(Root(), RenderOptions(template=template))
