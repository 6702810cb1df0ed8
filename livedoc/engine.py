"""Install the live engine into an editor."""

from __future__ import annotations

from typing import Iterable, Optional

from .config import EngineConfig
from .document.editor import Editor
from .guard import EditGuard
from .manager import ExecutiveManager
from .runtime.protocol import ExecutionRuntime
from .runtime.python import PythonRuntime


def install(
    editor: Editor,
    runtimes: Optional[Iterable[ExecutionRuntime]] = None,
    *,
    config: Optional[EngineConfig] = None,
) -> ExecutiveManager:
    """Attach the edit guard and an executive manager to *editor*.

    With *runtimes* left as ``None`` a :class:`PythonRuntime` is registered.
    Must be called with an event loop running: registering a runtime
    schedules the first pass.
    """
    config = config or EngineConfig()
    editor.add_plugin(EditGuard(config))

    manager = ExecutiveManager(editor.doc, config=config)
    editor.add_plugin(manager)

    if runtimes is None:
        runtimes = [PythonRuntime(run_timeout=config.run_timeout_seconds)]
    for runtime in runtimes:
        manager.register_runtime(runtime)
    return manager
