"""Live code execution inside a block document.

Public surface::

    from livedoc import (
        install,
        ExecutiveManager,
        EditGuard,
        EngineConfig,
        PythonRuntime,
        ExecutionRuntime,
        ParsedBlock,
        LogOutput,
        DocumentRuntimeState,
        Phase,
        RegionFinder,
        CodeRegion,
        render,
    )
"""

from .config import CODE_BLOCK, RESULT_BLOCK, EngineConfig
from .engine import install
from .errors import (
    EngineConfigError,
    SandboxTimeoutError,
    StateTransitionError,
    StepError,
)
from .guard import EditGuard, classify_step, span_overlap
from .manager import ExecutiveManager
from .regions import (
    NEVER_RUN,
    CodeRegion,
    NodeRef,
    RegionFinder,
    RegionSnapshot,
    compute_snapshot,
    find_code_blocks,
)
from .render import decorations_for, flatten_text, format_error, format_value, render
from .runtime import ExecutionRuntime, LogOutput, ParsedBlock, PythonRuntime, Sandbox
from .state import (
    DocumentRuntimeState,
    Phase,
    ScriptExecuting,
    ScriptFailed,
    ScriptParsed,
    ScriptRuntimeState,
    ScriptSucceeded,
    ScriptUnknown,
)
from .view import ResultView

__all__ = [
    "CODE_BLOCK",
    "RESULT_BLOCK",
    "NEVER_RUN",
    "CodeRegion",
    "DocumentRuntimeState",
    "EditGuard",
    "EngineConfig",
    "EngineConfigError",
    "ExecutionRuntime",
    "ExecutiveManager",
    "LogOutput",
    "NodeRef",
    "ParsedBlock",
    "Phase",
    "PythonRuntime",
    "RegionFinder",
    "RegionSnapshot",
    "ResultView",
    "Sandbox",
    "SandboxTimeoutError",
    "ScriptExecuting",
    "ScriptFailed",
    "ScriptParsed",
    "ScriptRuntimeState",
    "ScriptSucceeded",
    "ScriptUnknown",
    "StateTransitionError",
    "StepError",
    "classify_step",
    "compute_snapshot",
    "decorations_for",
    "find_code_blocks",
    "flatten_text",
    "format_error",
    "format_value",
    "install",
    "render",
    "span_overlap",
]
