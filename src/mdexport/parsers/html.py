"""HTML → document tree via BeautifulSoup."""

from __future__ import annotations

import logging
import re
from typing import Iterable, List, Optional

from bs4 import BeautifulSoup
from bs4.element import (
    Comment,
    Declaration,
    Doctype,
    NavigableString,
    PageElement,
    ProcessingInstruction,
    Tag,
)

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

__all__ = ["parse_html", "html_to_blocks"]

logger = logging.getLogger(__name__)

_HEADING_DEPTHS = {f"h{depth}": depth for depth in range(1, 7)}
_SKIPPED_TAGS = frozenset(
    {"head", "script", "style", "template", "title", "noscript"}
)
_STRONG_TAGS = frozenset({"strong", "b"})
_EMPHASIS_TAGS = frozenset({"em", "i"})
_CODE_TAGS = frozenset({"code", "kbd", "samp", "tt"})
_INLINE_TAGS = (
    _STRONG_TAGS
    | _EMPHASIS_TAGS
    | _CODE_TAGS
    | frozenset(
        {
            "a",
            "abbr",
            "br",
            "cite",
            "del",
            "font",
            "img",
            "ins",
            "label",
            "mark",
            "q",
            "s",
            "small",
            "span",
            "sub",
            "sup",
            "time",
            "u",
        }
    )
)
_IGNORED_STRINGS = (Comment, Declaration, Doctype, ProcessingInstruction)
_LANG_PREFIXES = ("language-", "lang-")
_WHITESPACE_RE = re.compile(r"\s+")
_MULTISPACE_RE = re.compile(r" {2,}")


def parse_html(markup: object) -> Root:
    """Parse ``markup`` into a :class:`Root`.

    Empty or non-string input yields an empty root. The stdlib-backed
    ``html.parser`` builder recovers from bad nesting on its own; anything
    it still raises is surfaced as :class:`ParseError`.
    """

    if not isinstance(markup, str) or not markup.strip():
        return Root()
    try:
        tree = Root(tuple(html_to_blocks(markup)))
    except Exception as exc:
        raise ParseError(f"Failed to parse HTML: {exc}", cause=exc) from exc
    logger.debug(
        "Parsed HTML input",
        extra={"node_count": count_nodes(tree), "input_length": len(markup)},
    )
    return tree


def html_to_blocks(markup: str) -> List[Block]:
    """Return the block nodes for an HTML fragment or document."""

    soup = BeautifulSoup(markup, "html.parser")
    return _convert_blocks(soup.children)


def _convert_blocks(nodes: Iterable[PageElement]) -> List[Block]:
    blocks: List[Block] = []
    pending: List[Inline] = []

    def flush() -> None:
        inlines = _normalize_inlines(pending, trim=True)
        if inlines:
            blocks.append(Paragraph(tuple(inlines)))
        pending.clear()

    for node in nodes:
        if isinstance(node, Tag) and node.name not in _INLINE_TAGS:
            flush()
            blocks.extend(_convert_block(node))
        else:
            pending.extend(_convert_inline(node))
    flush()
    return blocks


def _convert_block(tag: Tag) -> List[Block]:
    name = tag.name
    if name in _SKIPPED_TAGS:
        return []
    if name in _HEADING_DEPTHS:
        inlines = _inline_children(tag)
        if not inlines:
            return []
        return [Heading(_HEADING_DEPTHS[name], tuple(inlines))]
    if name == "p":
        inlines = _inline_children(tag)
        return [Paragraph(tuple(inlines))] if inlines else []
    if name in ("ul", "ol"):
        items = [
            ListItem(tuple(_convert_blocks(item.children)))
            for item in tag.find_all("li", recursive=False)
        ]
        if not items:
            return []
        return [ListBlock(name == "ol", tuple(items))]
    if name == "pre":
        return [_convert_pre(tag)]
    if name == "blockquote":
        return [Blockquote(tuple(_convert_blocks(tag.children)))]
    if name == "hr":
        return [ThematicBreak()]
    if name == "table":
        return _convert_table(tag)
    return _convert_blocks(tag.children)


def _convert_pre(tag: Tag) -> CodeBlock:
    value = tag.get_text()
    if value.endswith("\n"):
        value = value[:-1]
    lang = _language_from(tag)
    if lang is None:
        code = tag.find("code")
        if isinstance(code, Tag):
            lang = _language_from(code)
    return CodeBlock(value, lang)


def _language_from(tag: Tag) -> Optional[str]:
    classes = tag.get("class") or []
    if isinstance(classes, str):
        classes = classes.split()
    for cls in classes:
        for prefix in _LANG_PREFIXES:
            if cls.startswith(prefix) and len(cls) > len(prefix):
                return cls[len(prefix):]
    return None


def _convert_table(tag: Tag) -> List[Block]:
    rows: List[Block] = []
    for row in tag.find_all("tr"):
        cells = [
            cell.get_text(" ", strip=True)
            for cell in row.find_all(["td", "th"])
        ]
        if any(cells):
            rows.append(Paragraph((Text(" | ".join(cells)),)))
    return rows


def _inline_children(tag: Tag) -> List[Inline]:
    collected: List[Inline] = []
    for child in tag.children:
        collected.extend(_convert_inline(child))
    return _normalize_inlines(collected, trim=True)


def _convert_inline(node: PageElement) -> List[Inline]:
    if isinstance(node, _IGNORED_STRINGS):
        return []
    if isinstance(node, NavigableString):
        text = _WHITESPACE_RE.sub(" ", str(node))
        return [Text(text)] if text else []
    if not isinstance(node, Tag):
        return []

    name = node.name
    if name in _SKIPPED_TAGS:
        return []
    if name == "br":
        return [LineBreak()]
    if name == "img":
        return [Image(str(node.get("src") or ""), str(node.get("alt") or ""))]
    if name in _CODE_TAGS:
        value = node.get_text()
        return [InlineCode(value)] if value else []

    children: List[Inline] = []
    for child in node.children:
        children.extend(_convert_inline(child))
    children = _normalize_inlines(children, trim=False)

    if name in _STRONG_TAGS:
        return [Strong(tuple(children))] if children else []
    if name in _EMPHASIS_TAGS:
        return [Emphasis(tuple(children))] if children else []
    if name == "a":
        return [Link(str(node.get("href") or ""), tuple(children))]
    return children


def _normalize_inlines(inlines: Iterable[Inline], *, trim: bool) -> List[Inline]:
    merged: List[Inline] = []
    for node in inlines:
        if isinstance(node, Text) and merged and isinstance(merged[-1], Text):
            merged[-1] = Text(merged[-1].value + node.value)
        else:
            merged.append(node)

    result: List[Inline] = []
    for index, node in enumerate(merged):
        if isinstance(node, Text):
            value = _MULTISPACE_RE.sub(" ", node.value)
            before = merged[index - 1] if index > 0 else None
            after = merged[index + 1] if index + 1 < len(merged) else None
            if (trim and before is None) or isinstance(before, LineBreak):
                value = value.lstrip()
            if (trim and after is None) or isinstance(after, LineBreak):
                value = value.rstrip()
            if not value:
                continue
            node = Text(value)
        result.append(node)

    if trim:
        while result and isinstance(result[-1], LineBreak):
            result.pop()
    return result
