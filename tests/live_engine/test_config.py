"""EngineConfig validation and environment loading."""

from __future__ import annotations

import pytest

from livedoc import EngineConfig, EngineConfigError


@pytest.mark.unit
class TestEngineConfig:
    def test_defaults(self):
        config = EngineConfig()
        assert config.debounce_seconds == 0.4
        assert config.run_timeout_seconds is None
        assert config.code_node_type == "code_block"
        assert config.result_node_type == "code_block_execution_state"

    @pytest.mark.parametrize(
        "overrides",
        [
            {"debounce_seconds": -1},
            {"run_timeout_seconds": 0},
            {"significant_ratio": 0},
            {"significant_ratio": 1.5},
            {"significant_min_positions": 0},
            {"result_node_type": "code_block"},
        ],
    )
    def test_invalid_values(self, overrides):
        with pytest.raises(EngineConfigError):
            EngineConfig(**overrides)


@pytest.mark.unit
class TestFromEnv:
    @pytest.fixture(autouse=True)
    def clean_env(self, monkeypatch):
        for name in (
            "DEBOUNCE_SECONDS",
            "YIELD_SECONDS",
            "RUN_TIMEOUT_SECONDS",
            "SIGNIFICANT_RATIO",
            "SIGNIFICANT_MIN_POSITIONS",
            "CODE_NODE_TYPE",
            "RESULT_NODE_TYPE",
        ):
            monkeypatch.delenv("LIVEDOC_" + name, raising=False)

    def test_reads_prefixed_variables(self, monkeypatch):
        monkeypatch.setenv("LIVEDOC_DEBOUNCE_SECONDS", "0.1")
        monkeypatch.setenv("LIVEDOC_SIGNIFICANT_MIN_POSITIONS", "5")
        monkeypatch.setenv("LIVEDOC_CODE_NODE_TYPE", "fence")
        config = EngineConfig.from_env()
        assert config.debounce_seconds == 0.1
        assert config.significant_min_positions == 5
        assert config.code_node_type == "fence"

    def test_empty_value_keeps_default(self, monkeypatch):
        monkeypatch.setenv("LIVEDOC_RUN_TIMEOUT_SECONDS", "")
        assert EngineConfig.from_env().run_timeout_seconds is None

    def test_overrides_win(self, monkeypatch):
        monkeypatch.setenv("LIVEDOC_DEBOUNCE_SECONDS", "0.1")
        assert EngineConfig.from_env(debounce_seconds=2.0).debounce_seconds == 2.0

    def test_unparseable_value(self, monkeypatch):
        monkeypatch.setenv("LIVEDOC_SIGNIFICANT_MIN_POSITIONS", "many")
        with pytest.raises(EngineConfigError, match="LIVEDOC_SIGNIFICANT_MIN_POSITIONS"):
            EngineConfig.from_env()
