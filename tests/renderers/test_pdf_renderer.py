from __future__ import annotations

from pathlib import Path

import pytest

from mdexport.core.errors import ConversionError
from mdexport.core.metadata import DocumentMetadata
from mdexport.core.tree import (
    CodeBlock,
    create_heading,
    create_paragraph,
    create_root,
)
from mdexport.renderers import pdf as pdf_renderer
from mdexport.renderers.base import RenderOptions, RenderSettings
from mdexport.renderers.pdf import (
    build_page_css,
    build_print_html,
    highlight_code_block,
    parse_margin_shorthand,
    render_pdf,
)
from mdexport.templates import Template, TemplateType


def test_build_page_css_defaults_and_overrides():
    css = build_page_css()
    assert "size: A4 portrait;" in css
    assert "margin: 72pt 72pt 72pt 72pt;" in css

    css2 = build_page_css(
        paper_size="Letter", orientation="landscape", margin_shorthand="1in 0.5in"
    )
    assert "Letter landscape" in css2
    assert "margin: 1in 0.5in 1in 0.5in;" in css2

    with pytest.raises(ValueError):
        build_page_css(paper_size="bogus")
    with pytest.raises(ValueError):
        build_page_css(margin_shorthand="5")
    with pytest.raises(ValueError):
        build_page_css(orientation="diagonal")


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        ("1in", ("1in", "1in", "1in", "1in")),
        ("1in 2in", ("1in", "2in", "1in", "2in")),
        ("1in 2in 3in", ("1in", "2in", "3in", "2in")),
        ("1in 2in 3in 4in", ("1in", "2in", "3in", "4in")),
    ],
)
def test_parse_margin_shorthand_variations(value, expected):
    margin = parse_margin_shorthand(value)

    assert (margin.top, margin.right, margin.bottom, margin.left) == expected


def test_parse_margin_shorthand_invalid_count():
    assert parse_margin_shorthand("") is None
    with pytest.raises(ValueError):
        parse_margin_shorthand("1in 2in 3in 4in 5in")


def test_highlight_code_block():
    highlighted = highlight_code_block(CodeBlock("def f(): pass", "python"))

    assert highlighted is not None
    assert 'class="highlight"' in highlighted
    assert highlight_code_block(CodeBlock("x")) is None
    assert highlight_code_block(CodeBlock("x", "no-such-lexer")) is None


def test_build_print_html_with_title_page():
    metadata = DocumentMetadata(
        {
            "title": "Guide",
            "author": "Sam",
            "date": "2024-03-01",
            "keywords": ["a", "b"],
        }
    )
    tree = create_root(
        [
            create_heading("Intro"),
            create_paragraph("Body"),
            CodeBlock("print(1)", "python"),
        ]
    )

    document = build_print_html(tree, RenderOptions(metadata=metadata))

    assert "<title>Guide</title>" in document
    assert '<meta name="author" content="Sam">' in document
    assert '<meta name="keywords" content="a, b">' in document
    assert '<h1 class="doc-title">Guide</h1>' in document
    assert "By Sam" in document
    assert "2024-03-01" in document
    assert '<div class="page-break"></div>' in document
    assert "<h1>Intro</h1>" in document
    assert 'class="highlight"' in document
    assert ".highlight" in document  # pygments stylesheet


def test_build_print_html_without_metadata():
    document = build_print_html(create_root([create_heading("Only")]))

    assert "<title>Only</title>" in document
    body = document.split("<body>")[1]
    assert "doc-title" not in body
    assert "page-break" not in body


class _FakeHTML:
    calls: list[dict] = []

    def __init__(self, *, string: str) -> None:
        self.string = string

    def write_pdf(self, *, stylesheets):
        _FakeHTML.calls.append({"string": self.string, "stylesheets": stylesheets})
        return b"%PDF-1.7 fake"


class _FakeCSS:
    def __init__(self, *, string: str) -> None:
        self.string = string


def test_render_pdf_passes_page_and_template_css(monkeypatch, tmp_path: Path):
    _FakeHTML.calls.clear()
    monkeypatch.setattr(
        pdf_renderer, "_load_weasyprint", lambda: (_FakeHTML, _FakeCSS)
    )
    template = Template(
        id="print",
        name="Print",
        type=TemplateType.PDF,
        path=tmp_path / "print.css",
        content="body { color: red; }",
    )
    options = RenderOptions(
        template=template,
        settings=RenderSettings(paper_size="letter", margin="1in"),
    )

    data = render_pdf(create_root([create_paragraph("x")]), options)

    assert data.startswith(b"%PDF")
    call = _FakeHTML.calls[-1]
    css = [sheet.string for sheet in call["stylesheets"]]
    assert "size: Letter portrait;" in css[0]
    assert "margin: 1in 1in 1in 1in;" in css[0]
    assert css[1] == "body { color: red; }"


def test_render_pdf_wraps_failures(monkeypatch):
    def missing():
        raise RuntimeError("WeasyPrint is required.")

    monkeypatch.setattr(pdf_renderer, "_load_weasyprint", missing)

    with pytest.raises(ConversionError, match="Failed to render PDF") as excinfo:
        render_pdf(create_root([create_paragraph("x")]))
    assert excinfo.value.format == "pdf"


def test_render_pdf_bad_settings_are_conversion_errors(monkeypatch):
    monkeypatch.setattr(
        pdf_renderer, "_load_weasyprint", lambda: (_FakeHTML, _FakeCSS)
    )
    options = RenderOptions(settings=RenderSettings(paper_size="b5"))

    with pytest.raises(ConversionError, match="Unsupported paper size"):
        render_pdf(create_root(), options)


def test_render_pdf_with_weasyprint(requires_weasyprint):
    tree = create_root(
        [
            create_heading("Real PDF"),
            create_paragraph("Rendered by WeasyPrint."),
            CodeBlock("print('hi')", "python"),
        ]
    )

    data = render_pdf(
        tree, RenderOptions(metadata=DocumentMetadata({"title": "Real"}))
    )

    assert data[:4] == b"%PDF"
