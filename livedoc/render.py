"""Result Renderer: one span sequence per state, two derived views.

``render(state)`` returns a tuple of spans: plain strings, styled
:class:`RenderedSpan` text, and :class:`RenderedWidget` markers.  The text
of every non-widget span, concatenated, is what gets written into the
result node (:func:`flatten_text`).  The same sequence, walked from the
result node's content start, yields the live overlay
(:func:`decorations_for`).  Widgets take no text and are never persisted.
"""

from __future__ import annotations

import inspect
import json
import traceback
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Optional, Sequence, Union

from .document.decorations import Decoration, InlineDecoration, WidgetDecoration
from .state import (
    ScriptExecuting,
    ScriptFailed,
    ScriptParsed,
    ScriptRuntimeState,
    ScriptSucceeded,
    ScriptUnknown,
    SettledState,
)

NO_AST = "No AST"
SPINNER = "spinner"

CLS_UNKNOWN = "livedoc-unknown"
CLS_PARSED = "livedoc-parsed"
CLS_STALE = "livedoc-stale"
CLS_LOG = "livedoc-log"
CLS_RESULT = "livedoc-result"
CLS_ERROR = "livedoc-error"


@dataclass(frozen=True)
class RenderedSpan:
    text: str
    css_class: str


@dataclass(frozen=True)
class RenderedWidget:
    widget: Any
    spec: MappingProxyType = field(default_factory=lambda: MappingProxyType({}))


Span = Union[str, RenderedSpan, RenderedWidget]


# ---------------------------------------------------------------------------
# Formatting
# ---------------------------------------------------------------------------


def _type_label(value: Any) -> str:
    return "None" if value is None else type(value).__name__


def _truthy(value: Any) -> bool:
    try:
        return bool(value)
    except Exception:  # e.g. array-likes with ambiguous truth
        return True


def _json_default(value: Any) -> Any:
    if isinstance(value, (set, frozenset)):
        return sorted(value, key=repr)
    return repr(value)


def format_value(value: Any) -> str:
    """Text form of a block's result.

    Callables show their source; falsy values show ``"<type> <value>"``
    (just the type when the two read the same); anything else is indented
    JSON with ``repr`` for what JSON cannot express.
    """
    if callable(value) and not isinstance(value, type):
        try:
            return inspect.getsource(value).rstrip("\n")
        except (OSError, TypeError):
            return repr(value)
    if not _truthy(value):
        label = _type_label(value)
        text = str(value)
        return label if text == label else f"{label} {text}"
    try:
        return json.dumps(value, indent=2, default=_json_default)
    except (TypeError, ValueError):
        return repr(value)


def format_error(error: Any) -> str:
    """Traceback when *error* is an exception, ``str()`` otherwise."""
    if isinstance(error, BaseException):
        return "".join(
            traceback.format_exception(type(error), error, error.__traceback__)
        ).rstrip("\n")
    return str(error)


def _log_spans(logs: Sequence[Any]) -> list[Span]:
    return [RenderedSpan(getattr(log, "text", str(log)), CLS_LOG) for log in logs]


def _settled_text(state: SettledState) -> str:
    return flatten_text(render(state))


# ---------------------------------------------------------------------------
# render
# ---------------------------------------------------------------------------


def render(state: Optional[ScriptRuntimeState]) -> tuple:
    """Span sequence for *state*; empty for a region with no state."""
    if state is None:
        return ()
    if isinstance(state, ScriptUnknown):
        return (RenderedSpan(NO_AST, CLS_UNKNOWN),)
    if isinstance(state, ScriptParsed):
        if state.stale is not None:
            return (RenderedSpan(_settled_text(state.stale), CLS_STALE),)
        if not state.variables:
            return ()
        return (RenderedSpan("declares " + ", ".join(state.variables), CLS_PARSED),)
    if isinstance(state, ScriptExecuting):
        spans: list[Span] = [RenderedWidget(SPINNER)]
        if state.logs:
            spans.extend(_log_spans(state.logs))
        elif state.stale is not None:
            spans.append(RenderedSpan(_settled_text(state.stale), CLS_STALE))
        return tuple(spans)
    if isinstance(state, ScriptSucceeded):
        return (*_log_spans(state.logs), RenderedSpan(format_value(state.result), CLS_RESULT))
    if isinstance(state, ScriptFailed):
        return (*_log_spans(state.logs), RenderedSpan(format_error(state.error), CLS_ERROR))
    raise TypeError(f"not a script runtime state: {state!r}")


# ---------------------------------------------------------------------------
# Derived views
# ---------------------------------------------------------------------------


def flatten_text(spans: Sequence[Span]) -> str:
    """Persisted text: every non-widget span, concatenated."""
    return "".join(
        span if isinstance(span, str) else getattr(span, "text", "") for span in spans
    )


def decorations_for(spans: Sequence[Span], base_pos: int) -> list[Decoration]:
    """Live overlay for *spans* laid out from *base_pos* onward."""
    decorations: list[Decoration] = []
    pos = base_pos
    for span in spans:
        if isinstance(span, str):
            pos += len(span)
        elif isinstance(span, RenderedWidget):
            decorations.append(WidgetDecoration(pos, span.widget, span.spec))
        else:
            decorations.append(InlineDecoration(pos, pos + len(span.text), span.css_class))
            pos += len(span.text)
    return decorations
