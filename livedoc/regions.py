"""Region Finder: code blocks, their adjacent results, and change tokens.

A region is a code node plus the result node that immediately follows it.
Adjacency is the only link between the two: a result node that does not
start exactly where a code node ends belongs to no region and is invisible
to the engine.

Regions carry no identity of their own.  They are addressed by index in
document order, and :func:`compute_snapshot` decides what changed between
two scans by comparing code text and positions index by index.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from .config import CODE_BLOCK, RESULT_BLOCK
from .document.model import Document, Node

NEVER_RUN = -1


@dataclass(frozen=True)
class NodeRef:
    """A node together with the position it starts at."""

    node: Node
    pos: int

    @property
    def size(self) -> int:
        return self.node.node_size

    @property
    def end(self) -> int:
        return self.pos + self.node.node_size


@dataclass(frozen=True)
class CodeRegion:
    code: NodeRef
    result: Optional[NodeRef] = None

    def __post_init__(self) -> None:
        if self.result is not None and self.result.pos != self.code.end:
            raise ValueError(
                f"result at {self.result.pos} is not adjacent to code ending at {self.code.end}"
            )

    @property
    def end(self) -> int:
        """End of the result span if present, else of the code span."""
        return self.result.end if self.result is not None else self.code.end

    @property
    def code_text(self) -> str:
        return self.code.node.text


@dataclass(frozen=True)
class RegionSnapshot:
    """Regions of one document plus the two change tokens.

    ``code_only_iteration`` advances when any region's code node changes or
    regions are added or removed.  ``code_or_positions_iteration`` also
    advances when regions merely move or gain, lose or change a result.
    """

    regions: tuple = ()
    code_only_iteration: int = NEVER_RUN
    code_or_positions_iteration: int = NEVER_RUN

    def __len__(self) -> int:
        return len(self.regions)


def find_code_blocks(
    doc: Document,
    code_type: str = CODE_BLOCK,
    result_type: str = RESULT_BLOCK,
) -> list[CodeRegion]:
    """Scan *doc* once and return its regions in document order."""
    regions: list[CodeRegion] = []
    pending: Optional[NodeRef] = None
    for node, pos in doc.positioned():
        if node.type == code_type:
            if pending is not None:
                regions.append(CodeRegion(pending))
            pending = NodeRef(node, pos)
            continue
        if pending is not None:
            if node.type == result_type and pending.end == pos:
                regions.append(CodeRegion(pending, NodeRef(node, pos)))
            else:
                regions.append(CodeRegion(pending))
            pending = None
    if pending is not None:
        regions.append(CodeRegion(pending))
    return regions


def _layout(region: CodeRegion) -> tuple:
    result = region.result
    return (
        region.code.pos,
        region.code.size,
        None if result is None else (result.pos, result.size),
    )


def compute_snapshot(
    doc: Document,
    previous: Optional[RegionSnapshot] = None,
    *,
    code_type: str = CODE_BLOCK,
    result_type: str = RESULT_BLOCK,
) -> RegionSnapshot:
    """Scan *doc* and bump the counters of *previous* where warranted.

    Pure: the same document and previous snapshot always produce the same
    result.  With no previous snapshot both counters move from
    ``NEVER_RUN`` to 0.
    """
    regions = tuple(find_code_blocks(doc, code_type, result_type))
    if previous is None:
        return RegionSnapshot(regions, NEVER_RUN + 1, NEVER_RUN + 1)

    old = previous.regions
    code_changed = len(old) != len(regions) or any(
        a.code.node != b.code.node for a, b in zip(old, regions)
    )
    layout_changed = code_changed or any(
        _layout(a) != _layout(b) for a, b in zip(old, regions)
    )
    return RegionSnapshot(
        regions,
        previous.code_only_iteration + (1 if code_changed else 0),
        previous.code_or_positions_iteration + (1 if layout_changed else 0),
    )


class RegionFinder:
    """Keeps the last snapshot so each scan is compared with the previous one."""

    def __init__(
        self,
        code_type: str = CODE_BLOCK,
        result_type: str = RESULT_BLOCK,
    ) -> None:
        self.code_type = code_type
        self.result_type = result_type
        self.snapshot: Optional[RegionSnapshot] = None

    def update(self, doc: Document) -> RegionSnapshot:
        self.snapshot = compute_snapshot(
            doc,
            self.snapshot,
            code_type=self.code_type,
            result_type=self.result_type,
        )
        return self.snapshot

    def find(self, doc: Document) -> list[CodeRegion]:
        """Scan without touching the stored snapshot."""
        return find_code_blocks(doc, self.code_type, self.result_type)
