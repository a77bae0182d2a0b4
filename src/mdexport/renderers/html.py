"""Document tree → standalone HTML document."""

from __future__ import annotations

import logging
from functools import lru_cache
from html import escape
from typing import Any, Callable, Dict, List, Optional, Sequence

from jinja2 import Environment
from markupsafe import Markup

from mdexport.core.errors import ConversionError
from mdexport.core.metadata import DocumentMetadata
from mdexport.core.tree import (
    CodeBlock,
    Heading,
    ListBlock,
    Paragraph,
    Root,
    extract_title,
)
from mdexport.templates import load_packaged_template

from .base import RenderOptions, conversion_failure

__all__ = [
    "default_styles",
    "render_fragment",
    "render_html",
    "render_meta_tags",
    "resolve_title",
]

logger = logging.getLogger(__name__)

DEFAULT_TITLE = "Document"


@lru_cache(maxsize=1)
def default_styles() -> str:
    return load_packaged_template("default.css")


@lru_cache(maxsize=1)
def _environment() -> Environment:
    return Environment(autoescape=True)


def render_html(tree: Root, options: Optional[RenderOptions] = None) -> str:
    """Render ``tree`` into a full HTML document.

    The wrapping document comes from ``options.template`` when given and the
    packaged ``default.html`` otherwise.
    """

    options = options or RenderOptions()
    logger.debug("Rendering to HTML")
    try:
        content = render_fragment(tree)
        source = (
            options.template.content
            if options.template is not None and options.template.content
            else load_packaged_template("default.html")
        )
        title = resolve_title(tree, options.metadata)
        meta = render_meta_tags(options.metadata)
        context = {
            "content": Markup(content),
            "title": title,
            "styles": Markup(default_styles()),
            "meta": Markup(meta),
        }
        context.update({key.upper(): value for key, value in context.items()})
        document = _environment().from_string(source).render(**context)
    except ConversionError:
        raise
    except Exception as exc:
        raise conversion_failure("html", exc) from exc
    logger.debug("HTML rendering complete", extra={"length": len(document)})
    return document


def resolve_title(tree: Root, metadata: Optional[DocumentMetadata]) -> str:
    if metadata is not None and metadata.title:
        return metadata.title
    return extract_title(tree) or DEFAULT_TITLE


def render_meta_tags(metadata: Optional[DocumentMetadata]) -> str:
    if metadata is None:
        return ""
    tags: List[str] = []
    if metadata.author:
        tags.append(_meta("author", metadata.author))
    if metadata.description:
        tags.append(_meta("description", metadata.description))
    if metadata.keywords:
        tags.append(_meta("keywords", ", ".join(metadata.keywords)))
    return "\n  ".join(tags)


def _meta(name: str, content: str) -> str:
    return f'<meta name="{name}" content="{_esc(content)}">'


CodeHighlighter = Callable[[CodeBlock], Optional[str]]


def render_fragment(
    tree: Root, *, highlight: Optional[CodeHighlighter] = None
) -> str:
    """Serialize the blocks of ``tree`` without the wrapping document.

    ``highlight`` may return replacement markup for a code block, or
    ``None`` to keep the plain ``<pre><code>`` rendering.
    """

    return _FragmentWriter(highlight).blocks(tree.children)


def _esc(value: str) -> str:
    return escape(value, quote=True)


class _FragmentWriter:
    def __init__(self, highlight: Optional[CodeHighlighter]) -> None:
        self._highlight = highlight
        self._dispatch: Dict[str, Callable[[Any], str]] = {
            "heading": self._heading,
            "paragraph": lambda node: f"<p>{self.children(node)}</p>",
            "list": self._list,
            "listItem": self._list_item,
            "code": self._code,
            "blockquote": lambda node: (
                f"<blockquote>\n{self.blocks(node.children)}\n</blockquote>"
            ),
            "thematicBreak": lambda node: "<hr>",
            "text": lambda node: _esc(node.value),
            "strong": lambda node: f"<strong>{self.children(node)}</strong>",
            "emphasis": lambda node: f"<em>{self.children(node)}</em>",
            "inlineCode": lambda node: f"<code>{_esc(node.value)}</code>",
            "link": lambda node: (
                f'<a href="{_esc(node.url)}">{self.children(node)}</a>'
            ),
            "image": lambda node: (
                f'<img src="{_esc(node.url)}" alt="{_esc(node.alt)}">'
            ),
            "break": lambda node: "<br>",
        }

    def blocks(self, blocks: Sequence[Any]) -> str:
        return "\n".join(self.node(block) for block in blocks)

    def children(self, node: Any) -> str:
        return "".join(self.node(child) for child in node.children)

    def node(self, node: Any) -> str:
        renderer = self._dispatch.get(node.type)
        if renderer is None:
            return ""
        return renderer(node)

    def _heading(self, node: Heading) -> str:
        return f"<h{node.depth}>{self.children(node)}</h{node.depth}>"

    def _list(self, node: ListBlock) -> str:
        tag = "ol" if node.ordered else "ul"
        items = "\n".join(self.node(item) for item in node.children)
        return f"<{tag}>\n{items}\n</{tag}>"

    def _list_item(self, node: Any) -> str:
        children = node.children
        if len(children) == 1 and isinstance(children[0], Paragraph):
            return f"<li>{self.children(children[0])}</li>"
        return f"<li>{self.blocks(children)}</li>"

    def _code(self, node: CodeBlock) -> str:
        if self._highlight is not None:
            highlighted = self._highlight(node)
            if highlighted is not None:
                return highlighted
        lang = f' class="language-{_esc(node.lang)}"' if node.lang else ""
        return f"<pre><code{lang}>{_esc(node.value)}</code></pre>"
