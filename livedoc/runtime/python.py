"""PythonRuntime: parses and runs Python code blocks in a shared sandbox."""

from __future__ import annotations

import ast
import asyncio
import functools
import logging
from collections.abc import Sequence
from typing import Any, Optional

from ..document.model import Document
from ..errors import SandboxTimeoutError
from ..regions import CodeRegion
from .protocol import LogHandler, LogOutput, ParsedBlock
from .sandbox import Sandbox

logger = logging.getLogger(__name__)

PYTHON_LANGUAGES = frozenset({"", "python", "py", "python3"})


def _target_names(target: ast.AST) -> list[str]:
    if isinstance(target, ast.Name):
        return [target.id]
    if isinstance(target, (ast.Tuple, ast.List)):
        names: list[str] = []
        for element in target.elts:
            names.extend(_target_names(element))
        return names
    if isinstance(target, ast.Starred):
        return _target_names(target.value)
    return []


def declared_names(tree: ast.Module) -> list[str]:
    """Names bound at the top level of *tree*, first occurrence order."""
    found: dict[str, None] = {}

    def add(names: list[str]) -> None:
        for name in names:
            found.setdefault(name, None)

    for stmt in tree.body:
        if isinstance(stmt, ast.Assign):
            for target in stmt.targets:
                add(_target_names(target))
        elif isinstance(stmt, (ast.AugAssign, ast.AnnAssign)):
            add(_target_names(stmt.target))
        elif isinstance(stmt, (ast.FunctionDef, ast.AsyncFunctionDef, ast.ClassDef)):
            add([stmt.name])
        elif isinstance(stmt, (ast.Import, ast.ImportFrom)):
            add([(alias.asname or alias.name).split(".")[0] for alias in stmt.names if alias.name != "*"])
        elif isinstance(stmt, (ast.For, ast.AsyncFor)):
            add(_target_names(stmt.target))
        elif isinstance(stmt, (ast.With, ast.AsyncWith)):
            for item in stmt.items:
                if item.optional_vars is not None:
                    add(_target_names(item.optional_vars))
    return list(found)


class PythonRuntime:
    """Runs ``python`` code blocks (and blocks without a language).

    The sandbox is created on the first run and lives as long as this
    runtime, so every block of the document shares one namespace;
    :meth:`reset` empties it before a fresh pass.  Blocks run in a worker
    thread; printed output is handed to ``on_log`` on the event loop thread.

    A block that exceeds ``run_timeout`` cannot be interrupted.  Its thread
    is left to finish with its output dropped, and the next run waits for
    it, so two blocks never execute at the same time.
    """

    def __init__(
        self,
        *,
        run_timeout: Optional[float] = None,
        languages: frozenset = PYTHON_LANGUAGES,
    ) -> None:
        self.run_timeout = run_timeout
        self.languages = languages
        self.on_log: Optional[LogHandler] = None
        self._sources: list[Optional[str]] = []
        self._sandbox: Optional[Sandbox] = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._run_id = 0
        self._abandoned: Optional[asyncio.Future] = None

    # ------------------------------------------------------------------
    # Sandbox lifecycle
    # ------------------------------------------------------------------

    @property
    def sandbox(self) -> Sandbox:
        if self._sandbox is None:
            self._sandbox = Sandbox()
        return self._sandbox

    def reset(self) -> None:
        """Drop the bindings of earlier blocks."""
        if self._sandbox is not None:
            self._sandbox.reset()

    def _emit(self, run_id: int, text: str, level: str) -> None:
        """Called from the worker thread; forwards onto the loop thread."""
        if run_id != self._run_id:
            return
        handler = self.on_log
        loop = self._loop
        if handler is None or loop is None or loop.is_closed():
            return
        output = LogOutput(text=text, level=level)
        loop.call_soon_threadsafe(handler, output)

    # ------------------------------------------------------------------
    # ExecutionRuntime
    # ------------------------------------------------------------------

    def handles(self, region: CodeRegion) -> bool:
        language = str(region.code.node.attrs.get("language", "") or "").lower()
        return language in self.languages

    def parse(
        self, regions: Sequence[CodeRegion], doc: Document
    ) -> list[Optional[ParsedBlock]]:
        self._sources = []
        parsed: list[Optional[ParsedBlock]] = []
        for index, region in enumerate(regions):
            if not self.handles(region):
                self._sources.append(None)
                parsed.append(None)
                continue
            try:
                tree = ast.parse(region.code_text, filename=self.filename(index))
            except SyntaxError as exc:
                logger.debug("Block %d does not parse: %s", index, exc)
                self._sources.append(None)
                parsed.append(None)
                continue
            self._sources.append(region.code_text)
            parsed.append(ParsedBlock(tuple(declared_names(tree))))
        return parsed

    async def run_code_block(self, index: int) -> Any:
        source = self._sources[index] if index < len(self._sources) else None
        if source is None:
            raise LookupError(f"code block {index} has not been parsed by this runtime")

        await self._wait_abandoned()
        self._loop = asyncio.get_running_loop()
        self._run_id += 1
        sink = functools.partial(self._emit, self._run_id)
        work = asyncio.ensure_future(
            asyncio.to_thread(self.sandbox.execute, source, self.filename(index), sink)
        )
        if self.run_timeout is None:
            result = await work
        else:
            try:
                result = await asyncio.wait_for(asyncio.shield(work), self.run_timeout)
            except asyncio.TimeoutError:
                self._abandoned = work
                self._run_id += 1
                raise SandboxTimeoutError(index, self.run_timeout) from None

        if result.exception is not None:
            raise result.exception
        return result.value

    async def _wait_abandoned(self) -> None:
        pending = self._abandoned
        if pending is None:
            return
        if not pending.done():
            logger.debug("Waiting for a timed-out block to finish")
            await asyncio.wait({pending})
        self._abandoned = None

    @staticmethod
    def filename(index: int) -> str:
        return f"<livedoc block {index + 1}>"
