"""Structural protocol and value types for execution runtimes."""

from __future__ import annotations

import time
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any, Callable, Optional, Protocol, runtime_checkable

from ..document.model import Document
from ..regions import CodeRegion


@dataclass(frozen=True)
class LogOutput:
    """One chunk of output a runtime emitted while (or after) running a block."""

    text: str
    level: str = "stdout"
    timestamp: float = field(default_factory=time.time)


@dataclass(frozen=True)
class ParsedBlock:
    """Static analysis artifact for one region.

    Its presence is what matters: a runtime returning a ``ParsedBlock`` for
    an index claims that region, even with no variables.
    """

    variables: tuple = ()

    def __post_init__(self) -> None:
        if not isinstance(self.variables, tuple):
            object.__setattr__(self, "variables", tuple(self.variables))


LogHandler = Callable[[LogOutput], None]


@runtime_checkable
class ExecutionRuntime(Protocol):
    """Minimal interface a runtime must satisfy to be registered.

    ``parse`` is synchronous and index-aligned with *regions*: entry ``i``
    is a :class:`ParsedBlock` when this runtime can run region ``i``, or
    ``None``.  ``run_code_block`` runs one previously parsed region and
    returns its value or raises.  Regions of one document share a single
    execution environment, so a later block sees bindings from earlier ones.
    A runtime may also define ``reset()``; the manager calls it before every
    pass so each pass starts from an empty environment.

    The manager assigns ``on_log``; a runtime may call it any number of
    times, on the event loop thread, during or after a run.
    """

    on_log: Optional[LogHandler]

    def parse(
        self, regions: Sequence[CodeRegion], doc: Document
    ) -> Sequence[Optional[ParsedBlock]]: ...

    async def run_code_block(self, index: int) -> Any: ...
