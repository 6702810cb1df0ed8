"""Immutable block document: the position model the engine reads."""

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Iterator, Optional

from ..errors import StepError


@dataclass(frozen=True)
class Node:
    """A top-level text block.

    Occupies ``len(text) + 2`` positions: an opening token, one position per
    character, and a closing token.  ``attrs`` carries schema details such
    as a code block's ``language``.
    """

    type: str
    text: str = ""
    attrs: MappingProxyType = field(default_factory=lambda: MappingProxyType({}))

    def __post_init__(self) -> None:
        if not isinstance(self.attrs, MappingProxyType):
            object.__setattr__(self, "attrs", MappingProxyType(dict(self.attrs)))

    @property
    def node_size(self) -> int:
        return len(self.text) + 2

    def with_text(self, text: str) -> "Node":
        return Node(self.type, text, self.attrs)

    def __hash__(self) -> int:
        return hash((self.type, self.text, tuple(sorted(self.attrs.items()))))


@dataclass(frozen=True)
class ResolvedPos:
    """Where a position lands: between nodes, or inside one node's text.

    ``index`` is the node the position sits in, or the node that follows a
    boundary (``len(children)`` at the document end).  ``offset`` is the text
    offset inside that node, or ``None`` for a boundary.
    """

    pos: int
    index: int
    offset: Optional[int]
    node_start: int

    @property
    def at_boundary(self) -> bool:
        return self.offset is None


@dataclass(frozen=True)
class Document:
    """Ordered tuple of top-level blocks; positions are linear offsets."""

    children: tuple = ()

    def __post_init__(self) -> None:
        if not isinstance(self.children, tuple):
            object.__setattr__(self, "children", tuple(self.children))

    @classmethod
    def of(cls, *nodes: Node) -> "Document":
        return cls(tuple(nodes))

    @property
    def content_size(self) -> int:
        return sum(node.node_size for node in self.children)

    def positioned(self) -> Iterator[tuple[Node, int]]:
        """Yield ``(node, pos)`` for every block in document order."""
        pos = 0
        for node in self.children:
            yield node, pos
            pos += node.node_size

    def resolve(self, pos: int) -> ResolvedPos:
        if pos < 0 or pos > self.content_size:
            raise StepError(
                f"position {pos} outside document of size {self.content_size}"
            )
        start = 0
        for index, node in enumerate(self.children):
            if pos == start:
                return ResolvedPos(pos, index, None, start)
            end = start + node.node_size
            if pos < end:
                return ResolvedPos(pos, index, pos - start - 1, start)
            start = end
        return ResolvedPos(pos, len(self.children), None, start)

    def replace_children(self, start: int, end: int, nodes: tuple) -> "Document":
        return Document(self.children[:start] + tuple(nodes) + self.children[end:])

    def __repr__(self) -> str:
        inner: list[Any] = [f"{n.type}({n.text!r})" for n in self.children]
        return f"Document({', '.join(inner)})"
