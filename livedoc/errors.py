"""Live document engine error types."""

from __future__ import annotations


class StepError(ValueError):
    """A document step cannot be applied to the document it targets.

    Raised for out-of-range positions, text slices whose ends fall on node
    boundaries, and node slices whose ends fall inside a text block.
    """


class StateTransitionError(Exception):
    """A script runtime state was asked to move to a phase it cannot reach.

    Examples:
    - ``succeeded`` from anything other than ``executing``.
    - Appending logs to a ``parsed`` state.
    """


class EngineConfigError(Exception):
    """Invalid engine configuration value."""


class SandboxTimeoutError(TimeoutError):
    """A code block did not settle within the configured run timeout.

    The worker thread running the block is not interrupted; its eventual
    result is discarded.
    """

    def __init__(self, index: int, timeout: float) -> None:
        self.index = index
        self.timeout = timeout
        super().__init__(
            f"code block {index} did not finish within {timeout:g}s"
        )
