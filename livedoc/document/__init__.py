"""Minimal block document host: model, steps, transactions and the editor."""

from .decorations import Decoration, InlineDecoration, WidgetDecoration
from .editor import Editor
from .model import Document, Node, ResolvedPos
from .transform import (
    ADD_TO_HISTORY,
    SYSTEM_WRITE,
    Mapping,
    ReplaceStep,
    StepMap,
    Transaction,
)

__all__ = [
    "ADD_TO_HISTORY",
    "SYSTEM_WRITE",
    "Decoration",
    "Document",
    "Editor",
    "InlineDecoration",
    "Mapping",
    "Node",
    "ReplaceStep",
    "ResolvedPos",
    "StepMap",
    "Transaction",
    "WidgetDecoration",
]
