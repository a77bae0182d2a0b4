"""Document tree → Markdown with optional front matter."""

from __future__ import annotations

import logging
import re
from datetime import date, datetime
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence

from mdexport.core.errors import ConversionError
from mdexport.core.tree import (
    Blockquote,
    CodeBlock,
    Emphasis,
    Heading,
    Image,
    InlineCode,
    Link,
    ListBlock,
    Paragraph,
    Root,
    Strong,
    Text,
)

from .base import RenderOptions, conversion_failure

__all__ = ["render_front_matter", "render_markdown", "escape_yaml_value"]

logger = logging.getLogger(__name__)

_ESCAPED_CHARS_RE = re.compile(r"([\\`*_\[\]<])")
_ENTITY_RE = re.compile(r"&(?=#?[A-Za-z0-9]+;)")
_LINE_START_RE = re.compile(r"^(\s*)([#>+=-])", re.MULTILINE)
_LINE_START_ORDINAL_RE = re.compile(r"^(\s*)(\d{1,9})([.)])", re.MULTILINE)
_BACKTICK_RUN_RE = re.compile(r"`+")
_YAML_SPECIAL_RE = re.compile(r"[:#\[\]{}|>&*!?,]")
_URL_NEEDS_BRACKETS_RE = re.compile(r"[\s()<>]")


def render_markdown(tree: Root, options: Optional[RenderOptions] = None) -> str:
    """Serialize ``tree`` as Markdown, prefixed by front matter if any."""

    options = options or RenderOptions()
    logger.debug("Rendering to Markdown")
    try:
        body = "\n\n".join(_render_blocks(tree.children))
        if body:
            body += "\n"
        front_matter = (
            render_front_matter(options.metadata)
            if options.metadata is not None
            else ""
        )
        result = f"{front_matter}\n{body}" if front_matter else body
    except ConversionError:
        raise
    except Exception as exc:
        raise conversion_failure("md", exc) from exc
    logger.debug("Markdown rendering complete", extra={"length": len(result)})
    return result


# ------------- Front matter -------------


def render_front_matter(metadata: Mapping[str, Any]) -> str:
    """Render ``metadata`` as a ``---`` delimited YAML-style block.

    Returns an empty string when no key carries a value.
    """

    lines = ["---"]
    for key, value in metadata.items():
        if value is None:
            continue
        if isinstance(value, Mapping):
            lines.append(f"{key}:")
            for sub_key, sub_value in value.items():
                if sub_value is None:
                    continue
                lines.append(
                    f"  {sub_key}: {escape_yaml_value(_scalar(sub_value))}"
                )
        elif isinstance(value, (list, tuple, set, frozenset)):
            lines.append(f"{key}:")
            for item in value:
                lines.append(f"  - {escape_yaml_value(_scalar(item))}")
        else:
            lines.append(f"{key}: {escape_yaml_value(_scalar(value))}")
    if len(lines) == 1:
        return ""
    lines.append("---")
    return "\n".join(lines)


def escape_yaml_value(value: str) -> str:
    if (
        _YAML_SPECIAL_RE.search(value)
        or "\n" in value
        or value.startswith(" ")
    ):
        escaped = value.replace("\\", "\\\\").replace('"', '\\"')
        return f'"{escaped}"'
    return value


def _scalar(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    return str(value)


# ------------- Blocks -------------


def _render_blocks(blocks: Sequence[Any]) -> List[str]:
    rendered = (_render_block(block) for block in blocks)
    return [part for part in rendered if part]


def _render_block(node: Any) -> str:
    renderer = _BLOCK_RENDERERS.get(node.type)
    if renderer is None:
        return ""
    return renderer(node)


def _render_heading(node: Heading) -> str:
    text = _render_inlines(node.children, single_line=True).strip()
    if text.endswith("#"):
        text = text[:-1] + "\\#"
    marker = "#" * node.depth
    return f"{marker} {text}" if text else marker


def _render_paragraph(node: Paragraph) -> str:
    text = _render_inlines(node.children)
    return _escape_line_starts(text)


def _render_code(node: CodeBlock) -> str:
    longest = max(
        (len(run) for run in _BACKTICK_RUN_RE.findall(node.value)), default=0
    )
    fence = "`" * max(3, longest + 1)
    info = node.lang or ""
    if node.value:
        return f"{fence}{info}\n{node.value}\n{fence}"
    return f"{fence}{info}\n{fence}"


def _render_thematic_break(node: Any) -> str:
    return "***"


def _render_blockquote(node: Blockquote) -> str:
    inner = "\n\n".join(_render_blocks(node.children))
    return "\n".join(
        f"> {line}" if line else ">" for line in inner.split("\n")
    )


def _render_list(node: ListBlock) -> str:
    tight = all(
        sum(1 for child in item.children if not isinstance(child, ListBlock))
        <= 1
        for item in node.children
    )
    block_sep = "\n" if tight else "\n\n"
    rendered_items: List[str] = []
    for index, item in enumerate(node.children):
        marker = f"{index + 1}." if node.ordered else "-"
        indent = " " * (len(marker) + 1)
        content = block_sep.join(_render_blocks(item.children))
        lines = content.split("\n") if content else [""]
        first = f"{marker} {lines[0]}" if lines[0] else marker
        rest = [f"{indent}{line}" if line else "" for line in lines[1:]]
        rendered_items.append("\n".join([first, *rest]))
    return ("\n" if tight else "\n\n").join(rendered_items)


_BLOCK_RENDERERS: Dict[str, Callable[[Any], str]] = {
    "heading": _render_heading,
    "paragraph": _render_paragraph,
    "code": _render_code,
    "thematicBreak": _render_thematic_break,
    "blockquote": _render_blockquote,
    "list": _render_list,
}


# ------------- Inlines -------------


def _render_inlines(nodes: Sequence[Any], *, single_line: bool = False) -> str:
    return "".join(_render_inline(node, single_line) for node in nodes)


def _render_inline(node: Any, single_line: bool) -> str:
    if isinstance(node, Text):
        text = _escape_text(node.value)
        return text.replace("\n", " ") if single_line else text
    if isinstance(node, Strong):
        return f"**{_render_inlines(node.children, single_line=single_line)}**"
    if isinstance(node, Emphasis):
        return f"_{_render_inlines(node.children, single_line=single_line)}_"
    if isinstance(node, InlineCode):
        return _render_inline_code(node.value)
    if isinstance(node, Link):
        label = _render_inlines(node.children, single_line=single_line)
        return f"[{label}]({_format_url(node.url)})"
    if isinstance(node, Image):
        return f"![{_escape_text(node.alt)}]({_format_url(node.url)})"
    if node.type == "break":
        return " " if single_line else "\\\n"
    return ""


def _render_inline_code(value: str) -> str:
    value = value.replace("\n", " ")
    longest = max(
        (len(run) for run in _BACKTICK_RUN_RE.findall(value)), default=0
    )
    fence = "`" * (longest + 1)
    if value.startswith("`") or value.endswith("`"):
        value = f" {value} "
    return f"{fence}{value}{fence}"


def _format_url(url: str) -> str:
    if _URL_NEEDS_BRACKETS_RE.search(url):
        cleaned = url.replace("<", "%3C").replace(">", "%3E")
        return f"<{cleaned}>"
    return url


def _escape_text(value: str) -> str:
    escaped = _ESCAPED_CHARS_RE.sub(r"\\\1", value)
    return _ENTITY_RE.sub(r"\\&", escaped)


def _escape_line_starts(text: str) -> str:
    text = _LINE_START_RE.sub(r"\1\\\2", text)
    return _LINE_START_ORDINAL_RE.sub(r"\1\2\\\3", text)
