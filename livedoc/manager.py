"""ExecutiveManager: reparse, debounce, run in order, write results back.

The manager is an editor plugin.  Every committed transaction goes through
:meth:`ExecutiveManager.apply`, which rescans the regions.  When the
code-only change token moved, every runtime re-parses the document at once
and a pass is scheduled behind a debounce window.

A pass runs the regions one at a time in document order.  After each state
transition it re-checks the token and, while it still matches, flushes the
new states into the document as a system write.  A token mismatch is a
cooperative cancellation: the pass stops producing writes and an in-flight
run is left to finish with its result discarded.
"""

from __future__ import annotations

import asyncio
import logging
import time
from contextlib import aclosing
from typing import Any, AsyncIterator, Optional

from .config import EngineConfig
from .document.decorations import Decoration
from .document.editor import Editor
from .document.model import Document
from .document.transform import Transaction
from .regions import NEVER_RUN, RegionFinder, RegionSnapshot
from .runtime.protocol import ExecutionRuntime, LogOutput, ParsedBlock
from .state import (
    DocumentRuntimeState,
    accepts_logs,
    to_executing,
    to_failed,
    to_parsed,
    to_succeeded,
    to_unknown,
    with_log,
)
from .view import ResultView, mark_system_write

logger = logging.getLogger(__name__)


class ExecutiveManager:
    """Owns the region list, the runtime state and the run scheduler.

    Runtimes are appended with :meth:`register_runtime` and never removed.
    ``document_state`` is replaced, never mutated, on every transition.
    """

    def __init__(
        self,
        doc: Optional[Document] = None,
        *,
        config: Optional[EngineConfig] = None,
    ) -> None:
        self.config = config or EngineConfig()
        self.finder = RegionFinder(self.config.code_node_type, self.config.result_node_type)
        self.editor: Optional[Editor] = None
        self.doc = doc if doc is not None else Document()
        self.snapshot: RegionSnapshot = self.finder.update(self.doc)

        self.runtimes: list[ExecutionRuntime] = []
        self.active_runtimes: list[Optional[ExecutionRuntime]] = []
        self.document_state = DocumentRuntimeState()
        self.views: list[Optional[ResultView]] = []

        # Code-only token of the last reparse; NEVER_RUN forces the first check through
        self.parsed_iteration = NEVER_RUN
        # Bumped by every reparse; a pass holding an older value is superseded
        self.generation = 0
        self.executing_index = -1
        self.last_active_index = -1

        self._debounce_task: Optional[asyncio.Task] = None
        self._pass_tasks: set[asyncio.Task] = set()
        self._run_lock = asyncio.Lock()

    # ------------------------------------------------------------------
    # Editor plugin hooks
    # ------------------------------------------------------------------

    def init_view(self, editor: Editor) -> None:
        self.editor = editor
        self.check_and_rerun(editor.doc)

    def apply(self, tr: Transaction, old_doc: Document, new_doc: Document) -> None:
        self.check_and_rerun(new_doc)

    def decorations(self, doc: Document) -> list[Decoration]:
        decorations: list[Decoration] = []
        for index, region in enumerate(self.snapshot.regions):
            view = self.views[index] if index < len(self.views) else None
            if view is None or self.document_state[index] is None:
                continue
            decorations.extend(view.decorations(region))
        return decorations

    # ------------------------------------------------------------------
    # Runtimes
    # ------------------------------------------------------------------

    def register_runtime(self, runtime: ExecutionRuntime) -> None:
        self.runtimes.append(runtime)
        runtime.on_log = lambda output: self.handle_runtime_log(runtime, output)
        # A new runtime may claim regions nobody could parse before
        self.parsed_iteration = NEVER_RUN
        self.check_and_rerun(self.doc)

    # ------------------------------------------------------------------
    # Change detection
    # ------------------------------------------------------------------

    @property
    def code_only_iteration(self) -> int:
        return self.snapshot.code_only_iteration

    def is_current(self, generation: int) -> bool:
        return (
            generation == self.generation
            and self.snapshot.code_only_iteration == self.parsed_iteration
        )

    def check_and_rerun(self, doc: Document) -> None:
        """Rescan *doc*; reparse and schedule a pass when code changed."""
        if doc is not self.doc:
            self.doc = doc
            self.snapshot = self.finder.update(doc)

        if self.editor is None or not self.runtimes:
            return
        if self.snapshot.code_only_iteration == self.parsed_iteration:
            return

        self.parsed_iteration = self.snapshot.code_only_iteration
        self.reparse()
        self._schedule_pass(self.generation)

    def reparse(self) -> None:
        """Parse every region with every runtime; pick one owner per region.

        The first runtime returning an artifact for an index owns it.  A
        later runtime's artifact for the same index is dropped with a
        warning; its declared names still count towards ``global_variables``.
        """
        self.generation += 1
        self.executing_index = -1
        regions = self.snapshot.regions
        count = len(regions)

        global_variables: dict[str, None] = {}
        combined: list[Optional[ParsedBlock]] = [None] * count
        owners: list[Optional[ExecutionRuntime]] = [None] * count

        for runtime in self.runtimes:
            try:
                outputs = list(runtime.parse(regions, self.doc))
            except Exception:
                logger.exception("Runtime %s failed to parse the document", type(runtime).__name__)
                continue
            for index in range(min(count, len(outputs))):
                parsed = outputs[index]
                if not parsed:
                    continue
                for name in parsed.variables:
                    global_variables.setdefault(name, None)
                if combined[index] is not None:
                    logger.warning(
                        "Code block %d parsed by both %s and %s; keeping the first",
                        index,
                        type(owners[index]).__name__,
                        type(runtime).__name__,
                    )
                    continue
                combined[index] = parsed
                owners[index] = runtime

        previous = self.document_state
        states = []
        for index in range(count):
            prev = previous[index]
            parsed = combined[index]
            states.append(to_unknown(prev) if parsed is None else to_parsed(prev, parsed.variables))

        self.document_state = DocumentRuntimeState(tuple(states), tuple(global_variables))
        self.active_runtimes = owners
        logger.debug(
            "Reparsed %d code block(s) at iteration %d", count, self.parsed_iteration
        )

    # ------------------------------------------------------------------
    # Scheduling
    # ------------------------------------------------------------------

    def _schedule_pass(self, generation: int) -> None:
        if self._debounce_task is not None and not self._debounce_task.done():
            self._debounce_task.cancel()
        loop = asyncio.get_running_loop()
        self._debounce_task = loop.create_task(self._debounce_then_run(generation))

    async def _debounce_then_run(self, generation: int) -> None:
        await asyncio.sleep(self.config.debounce_seconds)
        task = asyncio.get_running_loop().create_task(self.run_pass(generation))
        self._pass_tasks.add(task)
        task.add_done_callback(self._pass_tasks.discard)

    async def wait_idle(self) -> None:
        """Wait until no debounce or pass is pending."""
        while True:
            pending = [
                task
                for task in (self._debounce_task, *self._pass_tasks)
                if task is not None and not task.done()
            ]
            if not pending:
                return
            await asyncio.gather(*pending, return_exceptions=True)

    async def aclose(self) -> None:
        """Cancel pending work; runs already inside a runtime are not interrupted."""
        tasks = [
            task
            for task in (self._debounce_task, *self._pass_tasks)
            if task is not None and not task.done()
        ]
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)

    # ------------------------------------------------------------------
    # Pass
    # ------------------------------------------------------------------

    async def run_pass(self, generation: Optional[int] = None) -> None:
        """Run every parsed region in order for *generation* (default: current).

        Passes are serialized; a pass whose token is already outdated when
        it acquires the lock returns without writing.
        """
        if generation is None:
            generation = self.generation
        async with self._run_lock:
            if not self.is_current(generation):
                return
            # every pass runs from the first region in a fresh environment
            for runtime in self.runtimes:
                reset = getattr(runtime, "reset", None)
                if reset is not None:
                    reset()
            self.update_with_doc_state()
            await asyncio.sleep(self.config.yield_seconds)

            async with aclosing(self._run_code_blocks()) as transitions:
                async for _ in transitions:
                    if not self.is_current(generation):
                        logger.debug("Pass for generation %d superseded", generation)
                        break
                    self.update_with_doc_state()
                    await asyncio.sleep(self.config.yield_seconds)

    async def _run_code_blocks(self) -> AsyncIterator[None]:
        """Drive each region through executing → settled, yielding between steps.

        Every yield is a point where the consumer may stop; state is only
        touched after the consumer resumes the generator.
        """
        try:
            for index in range(len(self.snapshot.regions)):
                prev = self.document_state[index]
                if prev is None:
                    continue
                runtime = self.active_runtimes[index] if index < len(self.active_runtimes) else None
                if runtime is None:
                    logger.debug("Code block %d has no parse artifact: No AST", index)
                    continue

                self._set_state(index, to_executing(prev, time.time()))
                self.executing_index = index
                self.last_active_index = index
                yield

                started = time.time()
                try:
                    result: Any = await runtime.run_code_block(index)
                except Exception as error:
                    completed = time.time()
                    yield
                    self._set_state(
                        index, to_failed(self.document_state[index], error, started, completed)
                    )
                    logger.debug("Code block %d failed: %s", index, type(error).__name__)
                    yield
                else:
                    completed = time.time()
                    yield
                    self._set_state(
                        index, to_succeeded(self.document_state[index], result, started, completed)
                    )
                    yield
        finally:
            self.executing_index = -1

    def _set_state(self, index: int, state: Any) -> None:
        self.document_state = self.document_state.with_block(index, state)

    # ------------------------------------------------------------------
    # Write-back
    # ------------------------------------------------------------------

    def update_with_doc_state(self) -> bool:
        """Flush region states into the document as one system write.

        Returns ``True`` when a transaction was dispatched.
        """
        if self.editor is None:
            return False

        regions = self.snapshot.regions
        del self.views[len(regions):]
        self.views.extend([None] * (len(regions) - len(self.views)))

        tr = mark_system_write(self.editor.tr)
        for index, region in enumerate(regions):
            state = self.document_state[index]
            if state is None:
                self.views[index] = None
                continue
            view = self.views[index]
            if view is None:
                view = self.views[index] = ResultView(self.config.result_node_type)
            view.reflect_state(tr, region, state)

        if not tr.doc_changed:
            return False
        return self.editor.dispatch(tr)

    # ------------------------------------------------------------------
    # Logs
    # ------------------------------------------------------------------

    def handle_runtime_log(self, runtime: ExecutionRuntime, output: LogOutput) -> None:
        """Attach *output* to the executing region, or the best guess.

        With nothing executing, the last region that ran is assumed; failing
        that, the first region whose state collects logs.  Outside a run the
        new text is written back straight away.
        """
        states = self.document_state.code_block_states
        target = -1
        for candidate in (self.executing_index, self.last_active_index):
            if 0 <= candidate < len(states) and accepts_logs(states[candidate]):
                target = candidate
                break
        else:
            target = next((i for i, s in enumerate(states) if accepts_logs(s)), -1)

        if target < 0:
            logger.warning(
                "No code block expects logs from %s: %r", type(runtime).__name__, output
            )
            return
        self._set_state(target, with_log(states[target], output))
        if self.executing_index < 0:
            self.update_with_doc_state()
