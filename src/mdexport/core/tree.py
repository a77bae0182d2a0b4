"""Document tree shared by every parser and renderer.

Each node variant is a frozen dataclass tagged with a class-level ``type``
string. Child sequences are stored as tuples, so a tree cannot be changed
once a parser has built it; :func:`clone_tree` is the only way to get an
independent copy.
"""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from typing import ClassVar, Iterable, Iterator, Optional, Sequence, Union

__all__ = [
    "Block",
    "Blockquote",
    "CodeBlock",
    "Emphasis",
    "Heading",
    "Image",
    "Inline",
    "InlineCode",
    "LineBreak",
    "Link",
    "ListBlock",
    "ListItem",
    "Node",
    "Paragraph",
    "Root",
    "Strong",
    "Text",
    "ThematicBreak",
    "clone_tree",
    "count_nodes",
    "count_nodes_by_type",
    "create_blockquote",
    "create_code_block",
    "create_heading",
    "create_list",
    "create_paragraph",
    "create_root",
    "extract_all_text",
    "extract_title",
    "first_heading",
    "is_empty",
    "node_text",
    "walk",
]


def _freeze(node: object, children: Iterable[object]) -> None:
    object.__setattr__(node, "children", tuple(children))


# ------------- Inline nodes -------------


@dataclass(frozen=True)
class Text:
    type: ClassVar[str] = "text"

    value: str


@dataclass(frozen=True)
class InlineCode:
    type: ClassVar[str] = "inlineCode"

    value: str


@dataclass(frozen=True)
class LineBreak:
    type: ClassVar[str] = "break"


@dataclass(frozen=True)
class Image:
    type: ClassVar[str] = "image"

    url: str
    alt: str = ""


@dataclass(frozen=True)
class Strong:
    type: ClassVar[str] = "strong"

    children: tuple["Inline", ...] = ()

    def __post_init__(self) -> None:
        _freeze(self, self.children)


@dataclass(frozen=True)
class Emphasis:
    type: ClassVar[str] = "emphasis"

    children: tuple["Inline", ...] = ()

    def __post_init__(self) -> None:
        _freeze(self, self.children)


@dataclass(frozen=True)
class Link:
    type: ClassVar[str] = "link"

    url: str
    children: tuple["Inline", ...] = ()

    def __post_init__(self) -> None:
        _freeze(self, self.children)


Inline = Union[Text, InlineCode, LineBreak, Image, Strong, Emphasis, Link]


# ------------- Block nodes -------------


@dataclass(frozen=True)
class Heading:
    type: ClassVar[str] = "heading"

    depth: int
    children: tuple[Inline, ...] = ()

    def __post_init__(self) -> None:
        if not isinstance(self.depth, int) or not 1 <= self.depth <= 6:
            raise ValueError(
                f"Heading depth must be between 1 and 6, got {self.depth!r}"
            )
        _freeze(self, self.children)


@dataclass(frozen=True)
class Paragraph:
    type: ClassVar[str] = "paragraph"

    children: tuple[Inline, ...] = ()

    def __post_init__(self) -> None:
        _freeze(self, self.children)


@dataclass(frozen=True)
class CodeBlock:
    type: ClassVar[str] = "code"

    value: str
    lang: Optional[str] = None


@dataclass(frozen=True)
class ThematicBreak:
    type: ClassVar[str] = "thematicBreak"


@dataclass(frozen=True)
class ListItem:
    type: ClassVar[str] = "listItem"

    children: tuple["Block", ...] = ()

    def __post_init__(self) -> None:
        _freeze(self, self.children)


@dataclass(frozen=True)
class ListBlock:
    type: ClassVar[str] = "list"

    ordered: bool = False
    children: tuple[ListItem, ...] = ()

    def __post_init__(self) -> None:
        _freeze(self, self.children)


@dataclass(frozen=True)
class Blockquote:
    type: ClassVar[str] = "blockquote"

    children: tuple["Block", ...] = ()

    def __post_init__(self) -> None:
        _freeze(self, self.children)


Block = Union[
    Heading, Paragraph, CodeBlock, ThematicBreak, ListBlock, Blockquote
]


@dataclass(frozen=True)
class Root:
    type: ClassVar[str] = "root"

    children: tuple[Block, ...] = field(default=())

    def __post_init__(self) -> None:
        _freeze(self, self.children)


Node = Union[Root, Block, ListItem, Inline]


# ------------- Builders -------------


def create_root(children: Iterable[Block] = ()) -> Root:
    return Root(tuple(children))


def create_paragraph(text: str) -> Paragraph:
    return Paragraph((Text(text),))


def create_heading(text: str, depth: int = 1) -> Heading:
    return Heading(depth, (Text(text),))


def create_list(items: Sequence[str], ordered: bool = False) -> ListBlock:
    return ListBlock(
        ordered,
        tuple(ListItem((create_paragraph(item),)) for item in items),
    )


def create_code_block(code: str, lang: Optional[str] = None) -> CodeBlock:
    return CodeBlock(code, lang or None)


def create_blockquote(text: str) -> Blockquote:
    return Blockquote((create_paragraph(text),))


# ------------- Traversal -------------


def walk(
    node: Node, parent: Optional[Node] = None
) -> Iterator[tuple[Node, Optional[Node]]]:
    """Yield ``(node, parent)`` pairs in document (pre-)order."""

    yield node, parent
    for child in getattr(node, "children", ()):
        yield from walk(child, node)


def count_nodes(node: Node) -> int:
    return sum(1 for _ in walk(node))


def count_nodes_by_type(tree: Node, type_name: str) -> int:
    return sum(1 for node, _ in walk(tree) if node.type == type_name)


def node_text(node: Node) -> str:
    """Concatenate the literal text below ``node`` without separators."""

    value = getattr(node, "value", None)
    if isinstance(value, str):
        return value
    return "".join(node_text(child) for child in getattr(node, "children", ()))


def extract_all_text(tree: Node) -> str:
    """Join every text leaf in the tree with single spaces."""

    return " ".join(
        node.value for node, _ in walk(tree) if isinstance(node, Text)
    )


def first_heading(tree: Root) -> Optional[Heading]:
    for child in tree.children:
        if isinstance(child, Heading):
            return child
    return None


def extract_title(tree: Root) -> Optional[str]:
    """Return the text of the first depth-1 heading, if any."""

    for child in tree.children:
        if isinstance(child, Heading) and child.depth == 1:
            return node_text(child)
    return None


def is_empty(tree: Root) -> bool:
    if not tree.children:
        return True
    return not extract_all_text(tree).strip()


def clone_tree(tree: Root) -> Root:
    return copy.deepcopy(tree)
