"""Plain text / Markdown → document tree.

Text is normalised first (line endings, setext headings, a title-looking
first line, bullet glyphs, ``N)`` ordinals, runs of blank lines) and then
parsed with markdown-it-py's CommonMark grammar.
"""

from __future__ import annotations

import logging
import re
from typing import List, Optional

from markdown_it import MarkdownIt
from markdown_it.tree import SyntaxTreeNode

from mdexport.core.errors import ParseError
from mdexport.core.tree import (
    Block,
    Blockquote,
    CodeBlock,
    Emphasis,
    Heading,
    Image,
    Inline,
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
    count_nodes,
)

from .html import html_to_blocks

__all__ = ["build_markdown_it", "normalize_text", "parse_markdown"]

logger = logging.getLogger(__name__)

_SETEXT_H1_RE = re.compile(r"^=+\s*$")
_SETEXT_H2_RE = re.compile(r"^-+\s*$")
_TERMINAL_PUNCTUATION = tuple(".!?,;:")
_LIST_START_RE = re.compile(r"^(?:[-*+•·]|\d+[.)])")
_FENCE_RE = re.compile(r"^(?:```|~~~)")
_BULLET_GLYPH_RE = re.compile(r"^[ \t]*[•·][ \t]*", re.MULTILINE)
_PAREN_ORDINAL_RE = re.compile(r"^([ \t]*)(\d+)\)[ \t]+", re.MULTILINE)
_BLANK_RUN_RE = re.compile(r"\n{3,}")
_BR_RE = re.compile(r"^<br\s*/?>$", re.IGNORECASE)

TITLE_MAX_LENGTH = 60


def build_markdown_it() -> MarkdownIt:
    return MarkdownIt("commonmark", options_update={"html": True})


def normalize_text(text: str) -> str:
    """Apply the plain-text clean-up rules ahead of Markdown parsing."""

    if not text or not isinstance(text, str):
        return ""
    result = text.replace("\r\n", "\n").replace("\r", "\n")
    result = _detect_headings(result)
    result = _BULLET_GLYPH_RE.sub("- ", result)
    result = _PAREN_ORDINAL_RE.sub(r"\1\2. ", result)
    result = _BLANK_RUN_RE.sub("\n\n", result)
    return result.strip()


def _detect_headings(text: str) -> str:
    lines = text.split("\n")
    result: List[str] = []
    i = 0
    while i < len(lines):
        line = lines[i]
        next_line = lines[i + 1] if i + 1 < len(lines) else ""
        if line.strip() and next_line and _SETEXT_H1_RE.match(next_line):
            result.append(f"# {line}")
            i += 2
            continue
        if line.strip() and next_line and _SETEXT_H2_RE.match(next_line):
            result.append(f"## {line}")
            i += 2
            continue
        if i == 0 and _looks_like_title(line):
            result.append(f"# {line}")
            i += 1
            continue
        result.append(line)
        i += 1
    return "\n".join(result)


def _looks_like_title(line: str) -> bool:
    stripped = line.strip()
    if not stripped or len(stripped) >= TITLE_MAX_LENGTH:
        return False
    if stripped.endswith(_TERMINAL_PUNCTUATION):
        return False
    if _LIST_START_RE.match(stripped):
        return False
    if stripped.startswith("#") or _FENCE_RE.match(stripped):
        return False
    return True


def parse_markdown(text: object, *, md: Optional[MarkdownIt] = None) -> Root:
    """Parse plain text or Markdown into a :class:`Root`."""

    if not isinstance(text, str):
        return Root()
    try:
        normalized = normalize_text(text)
        parser = md or build_markdown_it()
        syntax = SyntaxTreeNode(parser.parse(normalized))
        tree = Root(tuple(_convert_blocks(syntax.children)))
    except ParseError:
        raise
    except Exception as exc:
        raise ParseError(
            f"Failed to parse markdown: {exc}", cause=exc
        ) from exc
    logger.debug(
        "Parsed markdown input",
        extra={"node_count": count_nodes(tree), "input_length": len(text)},
    )
    return tree


def _convert_blocks(nodes: List[SyntaxTreeNode]) -> List[Block]:
    blocks: List[Block] = []
    for node in nodes:
        blocks.extend(_convert_block(node))
    return blocks


def _convert_block(node: SyntaxTreeNode) -> List[Block]:
    kind = node.type
    if kind == "heading":
        return [Heading(int(node.tag[1:]), tuple(_inline_of(node)))]
    if kind == "paragraph":
        return [Paragraph(tuple(_inline_of(node)))]
    if kind in ("bullet_list", "ordered_list"):
        items = tuple(
            ListItem(tuple(_convert_blocks(item.children)))
            for item in node.children
        )
        return [ListBlock(kind == "ordered_list", items)]
    if kind == "fence":
        info = (node.info or "").strip()
        lang = info.split()[0] if info else None
        return [CodeBlock(_strip_final_newline(node.content), lang)]
    if kind == "code_block":
        return [CodeBlock(_strip_final_newline(node.content))]
    if kind == "blockquote":
        return [Blockquote(tuple(_convert_blocks(node.children)))]
    if kind == "hr":
        return [ThematicBreak()]
    if kind == "html_block":
        return html_to_blocks(node.content)
    return _convert_blocks(node.children)


def _inline_of(node: SyntaxTreeNode) -> List[Inline]:
    collected: List[Inline] = []
    for child in node.children:
        if child.type == "inline":
            collected.extend(_convert_inlines(child.children))
        else:
            collected.extend(_convert_inlines([child]))
    return collected


def _convert_inlines(nodes: List[SyntaxTreeNode]) -> List[Inline]:
    result: List[Inline] = []
    for node in nodes:
        for converted in _convert_inline(node):
            if (
                isinstance(converted, Text)
                and result
                and isinstance(result[-1], Text)
            ):
                result[-1] = Text(result[-1].value + converted.value)
            else:
                result.append(converted)
    return result


def _convert_inline(node: SyntaxTreeNode) -> List[Inline]:
    kind = node.type
    if kind == "text":
        return [Text(node.content)] if node.content else []
    if kind == "softbreak":
        return [Text("\n")]
    if kind == "hardbreak":
        return [LineBreak()]
    if kind == "code_inline":
        return [InlineCode(node.content)]
    if kind == "strong":
        return [Strong(tuple(_convert_inlines(node.children)))]
    if kind == "em":
        return [Emphasis(tuple(_convert_inlines(node.children)))]
    if kind == "link":
        href = str(node.attrs.get("href", ""))
        return [Link(href, tuple(_convert_inlines(node.children)))]
    if kind == "image":
        src = str(node.attrs.get("src", ""))
        return [Image(src, node.content)]
    if kind == "html_inline":
        if _BR_RE.match(node.content.strip()):
            return [LineBreak()]
        return []
    return _convert_inlines(node.children)


def _strip_final_newline(value: str) -> str:
    return value[:-1] if value.endswith("\n") else value
