"""Execution runtimes: the adapter protocol and the built-in Python runtime."""

from .protocol import ExecutionRuntime, LogHandler, LogOutput, ParsedBlock
from .python import PythonRuntime, declared_names
from .sandbox import ExecutionResult, Sandbox

__all__ = [
    "ExecutionResult",
    "ExecutionRuntime",
    "LogHandler",
    "LogOutput",
    "ParsedBlock",
    "PythonRuntime",
    "Sandbox",
    "declared_names",
]
