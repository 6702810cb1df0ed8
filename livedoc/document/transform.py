"""Document steps, position mapping and transactions."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Union

from ..errors import StepError
from .model import Document, Node

# Transaction metadata keys
SYSTEM_WRITE = "livedoc.system_write"
ADD_TO_HISTORY = "add_to_history"

Slice = Union[str, tuple]


# ---------------------------------------------------------------------------
# Position mapping
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class StepMap:
    """Maps positions across one replaced range.

    Positions before the range are unchanged, positions after it shift by
    the size difference.  Positions inside the replaced range collapse onto
    its start (``assoc < 0``) or the end of the inserted content
    (``assoc > 0``).
    """

    start: int
    old_size: int
    new_size: int

    def map(self, pos: int, assoc: int = 1) -> int:
        if pos < self.start:
            return pos
        end = self.start + self.old_size
        if pos > end:
            return pos + self.new_size - self.old_size
        if not self.old_size:
            side = assoc
        elif pos == self.start:
            side = -1
        elif pos == end:
            side = 1
        else:
            side = assoc
        return self.start + self.new_size if side > 0 else self.start


class Mapping:
    """Composition of step maps, in application order."""

    def __init__(self, maps: list[StepMap] | None = None) -> None:
        self.maps: list[StepMap] = list(maps or [])

    def append(self, step_map: StepMap) -> None:
        self.maps.append(step_map)

    def map(self, pos: int, assoc: int = 1) -> int:
        for step_map in self.maps:
            pos = step_map.map(pos, assoc)
        return pos

    def __len__(self) -> int:
        return len(self.maps)


# ---------------------------------------------------------------------------
# ReplaceStep
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ReplaceStep:
    """Replace ``[from_, to)`` with either text or whole nodes.

    A text slice needs both ends inside text blocks.  When the ends fall in
    different blocks, the first block absorbs the tail of the last one.  A
    node slice needs both ends on node boundaries.
    """

    from_: int
    to: int
    slice: Slice = ""

    def __post_init__(self) -> None:
        if self.from_ > self.to:
            raise StepError(f"step range is inverted: {self.from_} > {self.to}")
        if not isinstance(self.slice, (str, tuple)):
            object.__setattr__(self, "slice", tuple(self.slice))

    @property
    def inserted_size(self) -> int:
        if isinstance(self.slice, str):
            return len(self.slice)
        return sum(node.node_size for node in self.slice)

    def get_map(self) -> StepMap:
        return StepMap(self.from_, self.to - self.from_, self.inserted_size)

    def apply(self, doc: Document) -> Document:
        start = doc.resolve(self.from_)
        end = doc.resolve(self.to)

        if isinstance(self.slice, tuple):
            if not (start.at_boundary and end.at_boundary):
                raise StepError(
                    f"node slice needs node boundaries, got {self.from_}..{self.to}"
                )
            return doc.replace_children(start.index, end.index, self.slice)

        if start.at_boundary or end.at_boundary:
            raise StepError(
                f"text slice needs positions inside text blocks, got {self.from_}..{self.to}"
            )
        first: Node = doc.children[start.index]
        last: Node = doc.children[end.index]
        joined = first.with_text(
            first.text[: start.offset] + self.slice + last.text[end.offset :]
        )
        return doc.replace_children(start.index, end.index + 1, (joined,))


# ---------------------------------------------------------------------------
# Transaction
# ---------------------------------------------------------------------------


class Transaction:
    """An ordered batch of steps against one starting document.

    Every builder method applies its step immediately, so later steps are
    expressed in positions of the document produced by the earlier ones;
    ``mapping`` carries positions of ``before`` forward.
    """

    def __init__(self, doc: Document) -> None:
        self.before = doc
        self.doc = doc
        self.steps: list[ReplaceStep] = []
        self.docs: list[Document] = []
        self.mapping = Mapping()
        self.meta: dict[str, Any] = {}

    @property
    def doc_changed(self) -> bool:
        return bool(self.steps)

    def step(self, step: ReplaceStep) -> "Transaction":
        new_doc = step.apply(self.doc)
        self.docs.append(self.doc)
        self.steps.append(step)
        self.mapping.append(step.get_map())
        self.doc = new_doc
        return self

    def replace(self, from_: int, to: int, slice: Slice = "") -> "Transaction":
        return self.step(ReplaceStep(from_, to, slice))

    def replace_text(self, from_: int, to: int, text: str) -> "Transaction":
        return self.replace(from_, to, text)

    def insert_text(self, pos: int, text: str) -> "Transaction":
        return self.replace(pos, pos, text)

    def insert(self, pos: int, *nodes: Node) -> "Transaction":
        return self.replace(pos, pos, tuple(nodes))

    def delete(self, from_: int, to: int) -> "Transaction":
        """Delete a range; a range on node boundaries removes whole nodes."""
        resolved = self.doc.resolve(from_)
        if resolved.at_boundary and self.doc.resolve(to).at_boundary:
            return self.replace(from_, to, ())
        return self.replace(from_, to, "")

    def set_meta(self, key: str, value: Any) -> "Transaction":
        self.meta[key] = value
        return self

    def get_meta(self, key: str, default: Any = None) -> Any:
        return self.meta.get(key, default)
