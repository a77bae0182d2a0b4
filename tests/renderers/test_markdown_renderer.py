from __future__ import annotations

from datetime import date

from mdexport.core.metadata import DocumentMetadata
from mdexport.core.tree import (
    Blockquote,
    CodeBlock,
    Emphasis,
    Image,
    InlineCode,
    LineBreak,
    Link,
    ListBlock,
    ListItem,
    Paragraph,
    Root,
    Strong,
    Text,
    ThematicBreak,
    create_heading,
    create_list,
    create_paragraph,
    create_root,
    extract_all_text,
)
from mdexport.parsers.markdown import parse_markdown
from mdexport.renderers.base import RenderOptions
from mdexport.renderers.markdown import (
    escape_yaml_value,
    render_front_matter,
    render_markdown,
)


def _options(**metadata) -> RenderOptions:
    return RenderOptions(metadata=DocumentMetadata(metadata))


def test_render_basic_blocks():
    tree = create_root(
        [
            create_heading("Title", 1),
            create_paragraph("Body."),
            create_list(["one", "two"]),
            create_list(["first", "second"], ordered=True),
            CodeBlock("x = 1", "python"),
            Blockquote((create_paragraph("quoted"),)),
            ThematicBreak(),
        ]
    )

    assert render_markdown(tree) == (
        "# Title\n\n"
        "Body.\n\n"
        "- one\n- two\n\n"
        "1. first\n2. second\n\n"
        "```python\nx = 1\n```\n\n"
        "> quoted\n\n"
        "***\n"
    )


def test_render_inlines():
    paragraph = Paragraph(
        (
            Strong((Text("b"),)),
            Text(" "),
            Emphasis((Text("i"),)),
            Text(" "),
            InlineCode("c"),
            Text(" "),
            Link("https://x.dev", (Text("l"),)),
            Text(" "),
            Image("a.png", "alt"),
            LineBreak(),
            Text("next"),
        )
    )

    assert render_markdown(Root((paragraph,))) == (
        "**b** _i_ `c` [l](https://x.dev) ![alt](a.png)\\\nnext\n"
    )


def test_render_empty_tree():
    assert render_markdown(Root()) == ""


def test_front_matter_precedes_body():
    tree = create_root([create_heading("Sample Document")])

    output = render_markdown(tree, _options(title="Sample Document"))

    assert output == (
        "---\ntitle: Sample Document\n---\n# Sample Document\n"
    )


def test_front_matter_value_shapes():
    block = render_front_matter(
        DocumentMetadata(
            {
                "title": "A: B",
                "tags": ["x", "y z"],
                "extra": {"draft": True},
                "date": date(2024, 1, 2),
                "skip": None,
            }
        )
    )

    assert block == (
        "---\n"
        'title: "A: B"\n'
        "tags:\n  - x\n  - y z\n"
        "extra:\n  draft: true\n"
        "date: 2024-01-02\n"
        "---"
    )


def test_front_matter_omitted_without_values():
    assert render_front_matter(DocumentMetadata({"title": None})) == ""
    assert render_markdown(
        create_root([create_paragraph("x")]), _options(title=None)
    ) == "x\n"


def test_escape_yaml_value():
    assert escape_yaml_value("plain") == "plain"
    assert escape_yaml_value('say "hi": now') == '"say \\"hi\\": now"'
    assert escape_yaml_value(" lead") == '" lead"'
    assert escape_yaml_value("a#b") == '"a#b"'
    assert escape_yaml_value("C:\\path") == '"C:\\\\path"'
    assert escape_yaml_value('a\\"b: c') == '"a\\\\\\"b: c"'


def test_text_that_looks_like_markup_is_escaped():
    tree = create_root(
        [
            create_paragraph("Intro sentence."),
            create_paragraph("# not a heading"),
            create_paragraph("1. not a list"),
            create_paragraph("- not a bullet"),
            create_paragraph("*stars* and _unders_ [brackets] <tag> &amp;"),
        ]
    )

    output = render_markdown(tree)

    assert "\\# not a heading" in output
    assert "1\\. not a list" in output
    assert "\\- not a bullet" in output
    assert "\\*stars\\* and \\_unders\\_ \\[brackets\\] \\<tag> \\&amp;" in output
    reparsed = parse_markdown(output)
    assert [type(b) for b in reparsed.children] == [Paragraph] * 5
    assert extract_all_text(reparsed) == extract_all_text(tree)


def test_code_fence_grows_with_backticks():
    output = render_markdown(create_root([CodeBlock("a ``` b")]))

    assert output == "````\na ``` b\n````\n"


def test_inline_code_with_backticks():
    tree = create_root([Paragraph((InlineCode("a`b"),))])

    assert render_markdown(tree) == "``a`b``\n"


def test_link_url_with_spaces_is_bracketed():
    tree = create_root(
        [Paragraph((Link("my file (1).md", (Text("f"),)),))]
    )

    assert render_markdown(tree) == "[f](<my file (1).md>)\n"


def test_loose_list_items_are_separated():
    item = ListItem((create_paragraph("para one"), create_paragraph("para two")))
    tree = create_root([ListBlock(False, (item, ListItem((create_paragraph("b"),))))])

    assert render_markdown(tree) == "- para one\n\n  para two\n\n- b\n"


def test_nested_list_indentation():
    inner = create_list(["inner"])
    outer = ListBlock(
        True, (ListItem((create_paragraph("outer"), inner)),)
    )

    assert render_markdown(create_root([outer])) == "1. outer\n   - inner\n"


def test_markdown_round_trip_is_stable():
    source = (
        "# Title\n\n"
        "Some **bold** and _em_ text with `code`.\n\n"
        "- one\n- two\n\n"
        "```js\nlet x = 1;\n```\n\n"
        "> quote\n"
    )

    first = render_markdown(parse_markdown(source))
    second = render_markdown(parse_markdown(first))

    assert first == source
    assert second == first
