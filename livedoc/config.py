"""Engine configuration."""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional

from .errors import EngineConfigError

CODE_BLOCK = "code_block"
RESULT_BLOCK = "code_block_execution_state"

_ENV_PREFIX = "LIVEDOC_"


@dataclass
class EngineConfig:
    """Timing, edit-protection and schema settings for the live engine."""

    # Scheduling
    debounce_seconds: float = 0.4
    yield_seconds: float = 0.005
    run_timeout_seconds: Optional[float] = None

    # Edit guard: an overlap is significant above this share of the result
    # node, or at this many positions outright
    significant_ratio: float = 2 / 3
    significant_min_positions: int = 3

    # Document schema
    code_node_type: str = CODE_BLOCK
    result_node_type: str = RESULT_BLOCK

    def __post_init__(self) -> None:
        if self.debounce_seconds < 0 or self.yield_seconds < 0:
            raise EngineConfigError("debounce/yield delays must be >= 0")
        if self.run_timeout_seconds is not None and self.run_timeout_seconds <= 0:
            raise EngineConfigError("run_timeout_seconds must be positive or None")
        if not 0 < self.significant_ratio <= 1:
            raise EngineConfigError(
                f"significant_ratio must be in (0, 1], got {self.significant_ratio!r}"
            )
        if self.significant_min_positions < 1:
            raise EngineConfigError("significant_min_positions must be >= 1")
        if self.code_node_type == self.result_node_type:
            raise EngineConfigError("code and result node types must differ")

    @classmethod
    def from_env(cls, **overrides: object) -> "EngineConfig":
        """Build a config from ``LIVEDOC_*`` environment variables.

        A ``.env`` file in the working directory is loaded first.  Explicit
        keyword *overrides* win over the environment.
        """
        from dotenv import load_dotenv

        load_dotenv()

        values: dict[str, object] = {}
        for name, convert in (
            ("debounce_seconds", float),
            ("yield_seconds", float),
            ("run_timeout_seconds", float),
            ("significant_ratio", float),
            ("significant_min_positions", int),
            ("code_node_type", str),
            ("result_node_type", str),
        ):
            raw = os.environ.get(_ENV_PREFIX + name.upper())
            if raw is None or raw == "":
                continue
            try:
                values[name] = convert(raw)
            except ValueError as exc:
                raise EngineConfigError(
                    f"{_ENV_PREFIX}{name.upper()}={raw!r} is not a valid {convert.__name__}"
                ) from exc
        values.update(overrides)
        return cls(**values)  # type: ignore[arg-type]
