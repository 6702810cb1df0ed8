"""Edit Guard: keeps user edits from destroying generated result text.

Every replace step of an incoming transaction is classified against the
regions of the document it applies to:

- ``only``             the step lies inside a single region
- ``leading``          the step starts inside a region and runs past its end
- ``trailing``         the step starts at or before a region and ends inside it
- ``wholly_contained`` the step spans whole regions

Code text is always editable.  A step is rejected when it overlaps a result
span *significantly*; one rejected step drops the whole transaction.
Engine write-backs carry ``SYSTEM_WRITE`` and bypass the guard.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional, Sequence

from .config import EngineConfig
from .document.transform import SYSTEM_WRITE, ReplaceStep, Transaction
from .regions import CodeRegion, NodeRef, find_code_blocks

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Overlap classification
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class SpanOverlap:
    pos: int
    size: int
    is_significant: bool


@dataclass(frozen=True)
class RegionOverlap:
    region: CodeRegion
    code: Optional[SpanOverlap]
    result: Optional[SpanOverlap]

    @property
    def result_significant(self) -> bool:
        return self.result is not None and self.result.is_significant


@dataclass(frozen=True)
class StepOverlap:
    only: Optional[RegionOverlap] = None
    leading: Optional[RegionOverlap] = None
    trailing: Optional[RegionOverlap] = None
    wholly_contained: tuple = ()

    def rejects(self) -> bool:
        if self.only is not None:
            return self.only.result_significant
        affected = [self.leading, self.trailing, *self.wholly_contained]
        return any(o is not None and o.result_significant for o in affected)


def span_overlap(
    from_: int,
    to: int,
    pos: int,
    size: int,
    *,
    ratio: float = 2 / 3,
    min_positions: int = 3,
) -> Optional[SpanOverlap]:
    """Overlap between the step range and ``[pos, pos + size)``.

    A zero-width step inside the span (an insertion) is an overlap of size
    0, never significant.
    """
    common_pos = max(from_, pos)
    common_end = min(to, pos + size)
    touching_insert = common_end == to and from_ >= pos and to <= pos + size
    if common_end > common_pos or touching_insert:
        common_size = max(0, common_end - common_pos)
        return SpanOverlap(
            common_pos,
            common_size,
            common_size > size * ratio or common_size >= min_positions,
        )
    return None


def _region_overlap(
    from_: int, to: int, region: CodeRegion, ratio: float, min_positions: int
) -> RegionOverlap:
    def over(ref: Optional[NodeRef]) -> Optional[SpanOverlap]:
        if ref is None:
            return None
        return span_overlap(
            from_, to, ref.pos, ref.size, ratio=ratio, min_positions=min_positions
        )

    return RegionOverlap(region, over(region.code), over(region.result))


def classify_step(
    from_: int,
    to: int,
    regions: Sequence[CodeRegion],
    *,
    ratio: float = 2 / 3,
    min_positions: int = 3,
) -> Optional[StepOverlap]:
    """Classify one step range against ordered *regions*; ``None`` if untouched."""
    leading: Optional[RegionOverlap] = None
    trailing: Optional[RegionOverlap] = None
    wholly: list[RegionOverlap] = []

    for region in regions:
        if region.code.pos > to:
            break  # regions are ordered; nothing further can overlap
        if from_ > region.end:
            continue

        overlap = _region_overlap(from_, to, region, ratio, min_positions)
        if from_ > region.code.pos:
            if to < region.end:
                return StepOverlap(only=overlap)
            leading = overlap
        elif to < region.end:
            trailing = overlap
        else:
            wholly.append(overlap)

    if leading is None and trailing is None and not wholly:
        return None
    return StepOverlap(leading=leading, trailing=trailing, wholly_contained=tuple(wholly))


# ---------------------------------------------------------------------------
# EditGuard
# ---------------------------------------------------------------------------


class EditGuard:
    """Transaction filter protecting result regions.

    Usable directly via :meth:`should_allow` or installed on an
    :class:`~livedoc.document.editor.Editor` as a plugin.
    """

    def __init__(self, config: Optional[EngineConfig] = None) -> None:
        self.config = config or EngineConfig()

    def _regions(self, tr: Transaction, index: int) -> list[CodeRegion]:
        return find_code_blocks(
            tr.docs[index], self.config.code_node_type, self.config.result_node_type
        )

    def should_allow(
        self, tr: Transaction, regions: Optional[Sequence[CodeRegion]] = None
    ) -> bool:
        """Return ``False`` when any step of *tr* would corrupt a result.

        *regions* describes ``tr.before``; later steps are checked against
        the document each of them was applied to.
        """
        if tr.get_meta(SYSTEM_WRITE):
            return True

        for index, step in enumerate(tr.steps):
            if not isinstance(step, ReplaceStep):
                continue
            if index == 0 and regions is not None:
                step_regions: Sequence[CodeRegion] = regions
            else:
                step_regions = self._regions(tr, index)
            overlap = classify_step(
                step.from_,
                step.to,
                step_regions,
                ratio=self.config.significant_ratio,
                min_positions=self.config.significant_min_positions,
            )
            if overlap is not None and overlap.rejects():
                logger.debug(
                    "Rejecting transaction: step %d (%d..%d) overlaps a result: %s",
                    index,
                    step.from_,
                    step.to,
                    overlap,
                )
                return False
        return True

    def filter_transaction(self, tr: Transaction, editor: object) -> bool:
        return self.should_allow(tr)
