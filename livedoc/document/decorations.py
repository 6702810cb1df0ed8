"""Overlay records: styling or widgets attached to positions, never text."""

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Union


@dataclass(frozen=True)
class InlineDecoration:
    """Styles ``[from_, to)`` with a CSS class."""

    from_: int
    to: int
    css_class: str


@dataclass(frozen=True)
class WidgetDecoration:
    """Places an opaque widget at ``pos`` without occupying a position."""

    pos: int
    widget: Any
    spec: MappingProxyType = field(default_factory=lambda: MappingProxyType({}))


Decoration = Union[InlineDecoration, WidgetDecoration]
