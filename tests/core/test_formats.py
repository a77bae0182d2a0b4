from __future__ import annotations

import pytest

from mdexport.core.formats import (
    DOCX_SIGNATURE,
    PDF_SIGNATURE,
    InputFormat,
    OutputFormat,
    detect_format,
)


@pytest.mark.parametrize(
    ("source", "expected"),
    [
        ("# Heading\n\nBody", InputFormat.MARKDOWN),
        ("plain words only", InputFormat.MARKDOWN),
        ("", InputFormat.MARKDOWN),
        ("   \n  ", InputFormat.MARKDOWN),
        ("<!DOCTYPE html><html></html>", InputFormat.HTML),
        ("  <html><body>x</body></html>", InputFormat.HTML),
        ("<p>Hello</p>", InputFormat.HTML),
        ("<br>", InputFormat.HTML),
        ("<div/>", InputFormat.HTML),
        ("<p>unclosed paragraph", InputFormat.MARKDOWN),
        ("<not a tag", InputFormat.MARKDOWN),
        ("a < b and b > c", InputFormat.MARKDOWN),
    ],
)
def test_detect_format_for_text(source, expected):
    assert detect_format(source) is expected


def test_detect_format_for_binary_signatures():
    assert detect_format(DOCX_SIGNATURE + b"rest") is InputFormat.DOCX
    assert detect_format(PDF_SIGNATURE + b"1.7") is InputFormat.PDF
    assert detect_format(bytearray(PDF_SIGNATURE)) is InputFormat.PDF
    assert detect_format(memoryview(DOCX_SIGNATURE)) is InputFormat.DOCX


def test_detect_format_decodes_other_bytes():
    assert detect_format(b"<p>x</p>") is InputFormat.HTML
    assert detect_format(b"# Title") is InputFormat.MARKDOWN
    assert detect_format(b"\xff\xfe\x00garbage") is InputFormat.MARKDOWN


@pytest.mark.parametrize("value", [None, 42, object(), ["<p>x</p>"]])
def test_detect_format_never_raises(value):
    assert detect_format(value) is InputFormat.MARKDOWN


def test_detect_format_never_returns_text():
    samples = ["x", "<p>y</p>", b"%PDF-", b"PK\x03\x04"]
    assert all(detect_format(s) is not InputFormat.TEXT for s in samples)


def test_from_value_normalizes_and_rejects():
    assert OutputFormat.from_value(" MD ") is OutputFormat.MARKDOWN
    assert InputFormat.from_value("Text") is InputFormat.TEXT
    assert OutputFormat.from_value(OutputFormat.PDF) is OutputFormat.PDF
    with pytest.raises(ValueError):
        OutputFormat.from_value("text")
    with pytest.raises(ValueError):
        InputFormat.from_value(3)  # type: ignore[arg-type]


def test_binary_flags():
    assert OutputFormat.PDF.is_binary and OutputFormat.DOCX.is_binary
    assert not OutputFormat.HTML.is_binary
    assert InputFormat.PDF.is_binary
    assert not InputFormat.MARKDOWN.is_binary
