"""ResultView: writes one region's rendered state into its result node."""

from __future__ import annotations

import logging
from typing import Optional

from .config import RESULT_BLOCK
from .document.decorations import Decoration
from .document.model import Node
from .document.transform import ADD_TO_HISTORY, SYSTEM_WRITE, Transaction
from .regions import CodeRegion
from .render import decorations_for, flatten_text, render
from .state import ScriptRuntimeState

logger = logging.getLogger(__name__)


def mark_system_write(tr: Transaction) -> Transaction:
    """Tag *tr* as an engine write: exempt from the guard and from history."""
    return tr.set_meta(SYSTEM_WRITE, True).set_meta(ADD_TO_HISTORY, False)


def set_result_text(
    tr: Transaction,
    region: CodeRegion,
    text: str,
    result_type: str = RESULT_BLOCK,
) -> bool:
    """Make *region*'s result node hold *text*, adding one when missing.

    *region* positions refer to ``tr.before``; they are mapped through the
    steps already in *tr*.  Returns ``False`` when nothing had to change.
    """
    if region.result is not None:
        if region.result.node.text == text:
            return False
        start = tr.mapping.map(region.result.pos + 1, -1)
        end = tr.mapping.map(region.result.end - 1, 1)
        tr.replace_text(start, end, text)
        return True

    insert_pos = tr.mapping.map(region.code.end, 1)
    tr.insert(insert_pos, Node(result_type, text))
    return True


class ResultView:
    """Rendered spans of one region, kept in step with its runtime state."""

    def __init__(self, result_type: str = RESULT_BLOCK) -> None:
        self.result_type = result_type
        self.state: Optional[ScriptRuntimeState] = None
        self.spans: tuple = ()

    def reflect_state(
        self, tr: Transaction, region: CodeRegion, state: ScriptRuntimeState
    ) -> bool:
        """Render *state* and stage its text into *tr*; ``True`` if *tr* grew."""
        if state is not self.state:
            self.state = state
            self.spans = render(state)
        return set_result_text(tr, region, self.text, self.result_type)

    @property
    def text(self) -> str:
        return flatten_text(self.spans)

    def decorations(self, region: CodeRegion) -> list[Decoration]:
        # spans only describe the node while it still holds the rendered text
        if region.result is None or region.result.node.text != self.text:
            return []
        return decorations_for(self.spans, region.result.pos + 1)
