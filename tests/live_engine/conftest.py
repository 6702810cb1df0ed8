"""Shared fixtures and fake runtimes for live engine tests.

The fakes implement the runtime protocol without a sandbox so scheduling,
cancellation and log attribution can be driven step by step.
"""

from __future__ import annotations

import asyncio
from typing import Any, Callable, Optional

import pytest

from livedoc import EngineConfig, ParsedBlock
from livedoc.document import Document, Node

# ---------------------------------------------------------------------------
# Document helpers
# ---------------------------------------------------------------------------


def code(text: str, language: str = "python") -> Node:
    return Node("code_block", text, {"language": language})


def result(text: str) -> Node:
    return Node("code_block_execution_state", text)


def para(text: str) -> Node:
    return Node("paragraph", text)


def doc(*nodes: Node) -> Document:
    return Document.of(*nodes)


def fast_config(**overrides: Any) -> EngineConfig:
    """No debounce and no inter-region yield delay."""
    values: dict[str, Any] = {"debounce_seconds": 0.0, "yield_seconds": 0.0}
    values.update(overrides)
    return EngineConfig(**values)


# ---------------------------------------------------------------------------
# Fake runtimes
# ---------------------------------------------------------------------------


class ScriptedRuntime:
    """Claims every region; runs by looking the code text up in *outcomes*.

    An outcome is a value, an exception instance (raised), or a callable
    taking the block index.  Unknown code returns the code text itself.
    ``calls`` records the index of every run in start order.
    """

    def __init__(self, outcomes: Optional[dict[str, Any]] = None, variables: Optional[dict[str, tuple]] = None):
        self.outcomes = dict(outcomes or {})
        self.variables = dict(variables or {})
        self.on_log: Optional[Callable] = None
        self.codes: list[str] = []
        self.calls: list[int] = []
        self.parse_count = 0

    def parse(self, regions, doc):
        self.parse_count += 1
        self.codes = [r.code_text for r in regions]
        return [ParsedBlock(self.variables.get(c, ())) for c in self.codes]

    def settle(self, text: str, index: int) -> Any:
        outcome = self.outcomes.get(text, text)
        if isinstance(outcome, BaseException):
            raise outcome
        if callable(outcome):
            return outcome(index)
        return outcome

    async def run_code_block(self, index: int) -> Any:
        self.calls.append(index)
        text = self.codes[index]
        await asyncio.sleep(0)
        return self.settle(text, index)


class GatedRuntime(ScriptedRuntime):
    """Each run waits for its gate; ``started`` is set once a run begins."""

    def __init__(self, outcomes: Optional[dict[str, Any]] = None):
        super().__init__(outcomes)
        self.gates: dict[int, asyncio.Event] = {}
        self.started: dict[int, asyncio.Event] = {}

    def gate(self, index: int) -> asyncio.Event:
        return self.gates.setdefault(index, asyncio.Event())

    def started_event(self, index: int) -> asyncio.Event:
        return self.started.setdefault(index, asyncio.Event())

    async def run_code_block(self, index: int) -> Any:
        self.calls.append(index)
        text = self.codes[index]
        self.started_event(index).set()
        await self.gate(index).wait()
        return self.settle(text, index)


class NothingRuntime:
    """Parses nothing."""

    def __init__(self):
        self.on_log = None

    def parse(self, regions, doc):
        return [None] * len(regions)

    async def run_code_block(self, index: int) -> Any:
        raise AssertionError("never scheduled")


class BrokenParseRuntime(NothingRuntime):
    def parse(self, regions, doc):
        raise RuntimeError("parser crashed")


class WriteRecorder:
    """Editor plugin recording every committed engine write's resulting texts."""

    def __init__(self):
        self.writes: list[list[str]] = []

    def apply(self, tr, old_doc, new_doc):
        from livedoc.document import SYSTEM_WRITE

        if tr.get_meta(SYSTEM_WRITE):
            self.writes.append(
                [n.text for n in new_doc.children if n.type == "code_block_execution_state"]
            )


# ---------------------------------------------------------------------------
# Pytest fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def config():
    return fast_config()


@pytest.fixture
def recorder():
    return WriteRecorder()
