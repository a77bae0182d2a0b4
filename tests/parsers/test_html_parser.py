from __future__ import annotations

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
    node_text,
)
from mdexport.parsers.html import parse_html


def test_parse_html_document_structure():
    markup = """<!DOCTYPE html>
<html>
<head><title>Ignored</title><style>p { color: red; }</style></head>
<body>
  <h1>Title</h1>
  <p>Hello <b>bold</b> and <i>italic</i> <code>x = 1</code>.</p>
  <ul><li>one</li><li>two</li></ul>
  <ol><li><p>first</p></li></ol>
  <pre><code class="language-python">print(1)
</code></pre>
  <blockquote><p>quoted</p></blockquote>
  <hr>
</body>
</html>"""

    tree = parse_html(markup)

    assert [type(b) for b in tree.children] == [
        Heading,
        Paragraph,
        ListBlock,
        ListBlock,
        CodeBlock,
        Blockquote,
        ThematicBreak,
    ]
    assert tree.children[0] == Heading(1, (Text("Title"),))
    paragraph = tree.children[1]
    assert paragraph.children == (
        Text("Hello "),
        Strong((Text("bold"),)),
        Text(" and "),
        Emphasis((Text("italic"),)),
        Text(" "),
        InlineCode("x = 1"),
        Text("."),
    )
    assert tree.children[2].ordered is False
    assert len(tree.children[2].children) == 2
    assert tree.children[3].ordered is True
    assert tree.children[4] == CodeBlock("print(1)", "python")
    assert node_text(tree.children[5]) == "quoted"
    assert "Ignored" not in node_text(tree)


def test_parse_html_links_images_and_breaks():
    tree = parse_html(
        '<p><a href="https://x.dev">site</a><br>'
        '<img src="a.png" alt="pic"></p>'
    )

    assert tree.children[0].children == (
        Link("https://x.dev", (Text("site"),)),
        LineBreak(),
        Image("a.png", "pic"),
    )


def test_parse_html_collapses_whitespace():
    tree = parse_html("<p>\n   lots   of\n\n  space  </p>")

    assert tree.children[0] == Paragraph((Text("lots of space"),))


def test_parse_html_loose_inline_content_becomes_paragraph():
    tree = parse_html("<div>loose <em>text</em><p>para</p>tail</div>")

    assert tree.children == (
        Paragraph((Text("loose "), Emphasis((Text("text"),)))),
        Paragraph((Text("para"),)),
        Paragraph((Text("tail"),)),
    )


def test_parse_html_nested_lists():
    tree = parse_html("<ul><li>outer<ul><li>inner</li></ul></li></ul>")

    outer = tree.children[0]
    item = outer.children[0]
    assert item.children[0] == Paragraph((Text("outer"),))
    assert isinstance(item.children[1], ListBlock)
    assert node_text(item.children[1]) == "inner"


def test_parse_html_tables_become_row_paragraphs():
    tree = parse_html(
        "<table><tr><th>A</th><th>B</th></tr>"
        "<tr><td>1</td><td>2</td></tr></table>"
    )

    assert tree.children == (
        Paragraph((Text("A | B"),)),
        Paragraph((Text("1 | 2"),)),
    )


def test_parse_html_skips_scripts_and_empty_elements():
    tree = parse_html("<script>alert(1)</script><p></p><h2> </h2><p>ok</p>")

    assert tree.children == (Paragraph((Text("ok"),)),)


def test_parse_html_recovers_from_malformed_markup():
    tree = parse_html("<p>open <b>bold</p><p>next")

    assert "open" in node_text(tree)
    assert "next" in node_text(tree)


def test_parse_html_empty_or_non_string():
    assert parse_html("") == Root()
    assert parse_html("   ") == Root()
    assert parse_html(None) == Root()
