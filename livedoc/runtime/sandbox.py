"""Sandbox: one shared Python namespace for the blocks of a document."""

from __future__ import annotations

import ast
import builtins
import io
import linecache
import logging
import threading
from dataclasses import dataclass
from typing import Any, Callable, Optional

logger = logging.getLogger(__name__)


@dataclass
class ExecutionResult:
    """Outcome of running one block."""

    value: Any = None
    stdout: str = ""
    stderr: str = ""
    exception: Optional[BaseException] = None

    @property
    def success(self) -> bool:
        return self.exception is None


class Sandbox:
    """Executes code blocks in one persistent namespace.

    Not a security boundary.  It only removes builtins that would block or
    terminate the host process.  ``print`` is replaced by a version that
    feeds the run's sink (``output_sink`` unless ``execute`` is given one)
    in addition to the captured stdout.  Both are per thread, so a run left
    behind by a timeout never writes into a later run's output.
    """

    BLOCKED_BUILTINS = frozenset({"input", "exit", "quit", "breakpoint"})

    def __init__(self, output_sink: Optional[Callable[[str, str], None]] = None) -> None:
        self.output_sink = output_sink
        self._local = threading.local()
        self.namespace: dict[str, Any] = {}
        self.reset()

    # ------------------------------------------------------------------
    # Namespace management
    # ------------------------------------------------------------------

    def reset(self) -> None:
        """Drop every binding made by earlier blocks."""
        safe_builtins = {
            name: value
            for name, value in vars(builtins).items()
            if name not in self.BLOCKED_BUILTINS
        }
        safe_builtins["print"] = self._print
        self.namespace = {"__builtins__": safe_builtins, "__name__": "__livedoc__"}

    def inject(self, name: str, value: Any) -> None:
        self.namespace[name] = value

    # ------------------------------------------------------------------
    # Output
    # ------------------------------------------------------------------

    def _print(self, *args: Any, sep: str = " ", end: str = "\n", file: Any = None, flush: bool = False) -> None:
        if file is not None:
            builtins.print(*args, sep=sep, end=end, file=file, flush=flush)
            return
        text = sep.join(str(arg) for arg in args) + end
        stdout = getattr(self._local, "stdout", None)
        if stdout is not None:
            stdout.write(text)
        sink = getattr(self._local, "sink", None) or self.output_sink
        if sink is not None:
            sink(text, "stdout")

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------

    @staticmethod
    def register_source(filename: str, code: str) -> None:
        """Make *code* visible to ``traceback`` and ``inspect.getsource``."""
        lines = code.splitlines(keepends=True)
        if lines and not lines[-1].endswith("\n"):
            lines[-1] += "\n"
        linecache.cache[filename] = (len(code), None, lines, filename)

    def execute(
        self,
        code: str,
        filename: str = "<livedoc>",
        sink: Optional[Callable[[str, str], None]] = None,
    ) -> ExecutionResult:
        """Run *code*; the value of a trailing expression becomes the result.

        Exceptions raised by the block are captured on the result, never
        raised.
        """
        self.register_source(filename, code)
        stdout = io.StringIO()
        self._local.stdout = stdout
        self._local.sink = sink if sink is not None else self.output_sink
        result = ExecutionResult()
        try:
            tree = ast.parse(code, filename=filename, mode="exec")
            trailing: Optional[ast.Expression] = None
            if tree.body and isinstance(tree.body[-1], ast.Expr):
                trailing = ast.Expression(tree.body.pop().value)

            if tree.body:
                exec(compile(tree, filename, "exec"), self.namespace)
            if trailing is not None:
                result.value = eval(compile(trailing, filename, "eval"), self.namespace)
        except Exception as exc:
            logger.debug("Block %s raised %s", filename, type(exc).__name__)
            result.exception = exc
        finally:
            result.stdout = stdout.getvalue()
            self._local.stdout = None
            self._local.sink = None
        return result
