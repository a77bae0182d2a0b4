from __future__ import annotations

import pytest

from mdexport.core.errors import ParseError
from mdexport.core.tree import (
    Heading,
    ListBlock,
    Paragraph,
    Root,
    Text,
    node_text,
)
from mdexport.parsers.docx import ExtractedMarkup, parse_docx
from mdexport.parsers.pdf import ExtractedText, parse_pdf


def test_parse_pdf_reconstructs_extracted_text():
    seen: list[bytes] = []

    def fake_extract(data: bytes) -> ExtractedText:
        seen.append(data)
        return ExtractedText(
            text="OVERVIEW\n\nFirst page body.\fSecond page body.\n",
            page_count=2,
        )

    tree = parse_pdf(bytearray(b"%PDF-fake"), extract=fake_extract)

    assert seen == [b"%PDF-fake"]
    assert tree.children == (
        Heading(1, (Text("OVERVIEW"),)),
        Paragraph((Text("First page body."),)),
        Paragraph((Text("Second page body."),)),
    )


def test_parse_pdf_without_text_is_empty():
    tree = parse_pdf(b"%PDF-", extract=lambda _: ExtractedText(" \n", 1))

    assert tree == Root()


def test_parse_pdf_empty_input_skips_extraction():
    def fail(_: bytes) -> ExtractedText:  # pragma: no cover - must not run
        raise AssertionError("extractor should not be called")

    assert parse_pdf(b"", extract=fail) == Root()
    assert parse_pdf("not bytes", extract=fail) == Root()


def test_parse_pdf_wraps_extractor_failures():
    def broken(_: bytes) -> ExtractedText:
        raise ValueError("bad xref")

    with pytest.raises(ParseError, match="Failed to parse PDF: bad xref"):
        parse_pdf(b"%PDF-1.4 junk", extract=broken)


def test_parse_pdf_corrupt_bytes_with_pdfminer():
    with pytest.raises(ParseError):
        parse_pdf(b"%PDF-1.4\nthis is not really a pdf")


def test_parse_docx_uses_markup():
    extracted = ExtractedMarkup(
        markup="<h1>Heading</h1><ul><li>item</li></ul>",
        messages=("Unrecognised style",),
    )

    tree = parse_docx(b"PK\x03\x04", extract=lambda _: extracted)

    assert tree.children[0] == Heading(1, (Text("Heading"),))
    assert isinstance(tree.children[1], ListBlock)


def test_parse_docx_falls_back_to_raw_text():
    extracted = ExtractedMarkup(markup=None, raw_text="SUMMARY\n\nBody text.")

    tree = parse_docx(b"PK\x03\x04", extract=lambda _: extracted)

    assert tree.children == (
        Heading(1, (Text("SUMMARY"),)),
        Paragraph((Text("Body text."),)),
    )


def test_parse_docx_wraps_failures():
    def broken(_: bytes) -> ExtractedMarkup:
        raise KeyError("word/document.xml")

    with pytest.raises(ParseError, match="Failed to parse DOCX"):
        parse_docx(b"PK\x03\x04", extract=broken)


def test_parse_docx_with_mammoth(make_docx):
    data = make_docx(
        heading="Project Plan",
        paragraphs=("The plan has two phases.",),
        bullets=("Design", "Build"),
    )

    tree = parse_docx(data)

    assert tree.children[0] == Heading(1, (Text("Project Plan"),))
    text = node_text(tree)
    assert "The plan has two phases." in text
    assert "Design" in text and "Build" in text


def test_parse_docx_corrupt_bytes_with_mammoth():
    with pytest.raises(ParseError):
        parse_docx(b"PK\x03\x04 definitely not a zip archive")
