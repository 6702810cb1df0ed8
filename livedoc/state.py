"""Per-region execution state machine and the document-wide state.

Every state is a frozen dataclass; transitions return new objects.  The
``stale`` field carries the last settled (``succeeded`` / ``failed``) state
through ``unknown``, ``parsed`` and ``executing`` so a view can keep
showing the previous result while a new one is computed.

Transitions::

    (none) ──parse ok──▶ parsed ──schedule──▶ executing ──▶ succeeded | failed
      any  ──parse ok──▶ parsed
      any  ──no artifact──▶ unknown

There is no terminal state.
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass
from enum import Enum
from typing import Any, ClassVar, Optional, Union

from .errors import StateTransitionError


class Phase(str, Enum):
    UNKNOWN = "unknown"
    PARSED = "parsed"
    EXECUTING = "executing"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


@dataclass(frozen=True)
class ScriptSucceeded:
    phase: ClassVar[Phase] = Phase.SUCCEEDED

    started: float
    completed: float
    logs: tuple = ()
    result: Any = None


@dataclass(frozen=True)
class ScriptFailed:
    phase: ClassVar[Phase] = Phase.FAILED

    started: float
    completed: float
    logs: tuple = ()
    error: Any = None


SettledState = Union[ScriptSucceeded, ScriptFailed]


@dataclass(frozen=True)
class ScriptUnknown:
    """No parse artifact for the region (parse failed, or no runtime claimed it)."""

    phase: ClassVar[Phase] = Phase.UNKNOWN

    stale: Optional[SettledState] = None


@dataclass(frozen=True)
class ScriptParsed:
    phase: ClassVar[Phase] = Phase.PARSED

    variables: tuple = ()
    stale: Optional[SettledState] = None


@dataclass(frozen=True)
class ScriptExecuting:
    phase: ClassVar[Phase] = Phase.EXECUTING

    started: float
    logs: tuple = ()
    stale: Optional[SettledState] = None


ScriptRuntimeState = Union[
    ScriptUnknown, ScriptParsed, ScriptExecuting, ScriptSucceeded, ScriptFailed
]

_LOGGING_STATES = (ScriptExecuting, ScriptSucceeded, ScriptFailed)


# ---------------------------------------------------------------------------
# Transitions
# ---------------------------------------------------------------------------


def propagate_to_stale(state: Optional[ScriptRuntimeState]) -> Optional[SettledState]:
    """The settled snapshot a successor state should carry forward.

    A settled state is itself the snapshot; other states pass on whatever
    they were already carrying.
    """
    if isinstance(state, (ScriptSucceeded, ScriptFailed)):
        return state
    if state is None:
        return None
    return state.stale


def to_unknown(prev: Optional[ScriptRuntimeState]) -> ScriptUnknown:
    return ScriptUnknown(stale=propagate_to_stale(prev))


def to_parsed(prev: Optional[ScriptRuntimeState], variables: Any = ()) -> ScriptParsed:
    return ScriptParsed(variables=tuple(variables), stale=propagate_to_stale(prev))


def to_executing(prev: Optional[ScriptRuntimeState], started: float) -> ScriptExecuting:
    if prev is None or isinstance(prev, ScriptUnknown):
        raise StateTransitionError(
            f"cannot execute a region in state {getattr(prev, 'phase', None)!r}"
        )
    return ScriptExecuting(started=started, stale=propagate_to_stale(prev))


def _require_executing(prev: Optional[ScriptRuntimeState], target: Phase) -> ScriptExecuting:
    if not isinstance(prev, ScriptExecuting):
        raise StateTransitionError(
            f"{target.value} requires an executing state, got "
            f"{getattr(prev, 'phase', None)!r}"
        )
    return prev


def to_succeeded(
    prev: Optional[ScriptRuntimeState], result: Any, started: float, completed: float
) -> ScriptSucceeded:
    executing = _require_executing(prev, Phase.SUCCEEDED)
    return ScriptSucceeded(started, completed, executing.logs, result)


def to_failed(
    prev: Optional[ScriptRuntimeState], error: Any, started: float, completed: float
) -> ScriptFailed:
    executing = _require_executing(prev, Phase.FAILED)
    return ScriptFailed(started, completed, executing.logs, error)


def accepts_logs(state: Optional[ScriptRuntimeState]) -> bool:
    return isinstance(state, _LOGGING_STATES)


def with_log(state: ScriptRuntimeState, output: Any) -> ScriptRuntimeState:
    if not accepts_logs(state):
        raise StateTransitionError(
            f"state {getattr(state, 'phase', None)!r} does not collect logs"
        )
    return dataclasses.replace(state, logs=state.logs + (output,))  # type: ignore[union-attr]


# ---------------------------------------------------------------------------
# DocumentRuntimeState
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class DocumentRuntimeState:
    """All region states, index-aligned with the regions, plus declared names.

    Never mutated: every transition builds a new instance, so ``is``
    comparison tells a consumer whether anything changed.
    """

    code_block_states: tuple = ()
    global_variables: tuple = ()

    def __post_init__(self) -> None:
        if not isinstance(self.code_block_states, tuple):
            object.__setattr__(self, "code_block_states", tuple(self.code_block_states))
        if not isinstance(self.global_variables, tuple):
            object.__setattr__(self, "global_variables", tuple(self.global_variables))

    def __getitem__(self, index: int) -> Optional[ScriptRuntimeState]:
        if 0 <= index < len(self.code_block_states):
            return self.code_block_states[index]
        return None

    def __len__(self) -> int:
        return len(self.code_block_states)

    def replace(self, **changes: Any) -> "DocumentRuntimeState":
        return dataclasses.replace(self, **changes)

    def with_block(self, index: int, state: Optional[ScriptRuntimeState]) -> "DocumentRuntimeState":
        states = list(self.code_block_states)
        if index >= len(states):
            states.extend([None] * (index + 1 - len(states)))
        states[index] = state
        return self.replace(code_block_states=tuple(states))
