"""Tests for configuration loading."""

from __future__ import annotations

from pathlib import Path

import pytest

from variantlab.config import (
    BridgeConfig,
    ConfigLoadError,
    GridConfig,
    VariantLabConfig,
    load_config,
)
from variantlab.errors import UnknownModelError


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in ("VL_MODEL", "VL_STORAGE_PATH", "VL_REQUEST_TIMEOUT"):
        monkeypatch.delenv(name, raising=False)


class TestDefaults:
    def test_grid_policy(self) -> None:
        grid = GridConfig()
        assert (grid.concurrency, grid.batch_delay) == (2, 2.0)
        assert (grid.retry_base_delay, grid.overload_base_delay) == (1.0, 5.0)
        assert grid.prefetch

    def test_top_level(self) -> None:
        config = VariantLabConfig()
        assert config.model == "haiku-4.5"
        assert config.storage_path is None
        assert config.bridge == BridgeConfig(batch_delay=0.5)
        assert config.retry.max_attempts == 3


class TestFromDict:
    def test_partial_sections(self) -> None:
        config = VariantLabConfig.from_dict(
            {
                "model": "sonnet-4.5",
                "storage_path": "~/vl/sessions.db",
                "grid": {"concurrency": 3, "prefetch": False},
                "retry": {"max_attempts": 5},
            }
        )
        assert config.model == "sonnet-4.5"
        assert config.storage_path == Path("~/vl/sessions.db").expanduser()
        assert config.grid.concurrency == 3
        assert config.grid.batch_delay == 2.0
        assert not config.grid.prefetch
        assert config.retry.max_attempts == 5
        assert config.filters.step_delay == 0.0

    def test_empty_sections(self) -> None:
        config = VariantLabConfig.from_dict({"grid": None, "bridge": None})
        assert config.grid == GridConfig()


class TestLoadConfig:
    def test_explicit_file(self, tmp_path: Path) -> None:
        path = tmp_path / "config.yaml"
        path.write_text("model: gemini-2.5-flash\nbridge:\n  batch_delay: 0.25\n")
        config = load_config(path)
        assert config.model == "gemini-2.5-flash"
        assert config.bridge.batch_delay == 0.25

    def test_missing_explicit_file(self, tmp_path: Path) -> None:
        with pytest.raises(ConfigLoadError, match="File not found"):
            load_config(tmp_path / "nope.yaml")

    def test_empty_file(self, tmp_path: Path) -> None:
        path = tmp_path / "config.yaml"
        path.write_text("")
        assert load_config(path) == VariantLabConfig()

    def test_non_mapping(self, tmp_path: Path) -> None:
        path = tmp_path / "config.yaml"
        path.write_text("- a\n- b\n")
        with pytest.raises(ConfigLoadError, match="mapping"):
            load_config(path)

    def test_bad_value(self, tmp_path: Path) -> None:
        path = tmp_path / "config.yaml"
        path.write_text("grid:\n  concurrency: many\n")
        with pytest.raises(ConfigLoadError):
            load_config(path)

    def test_invalid_yaml(self, tmp_path: Path) -> None:
        path = tmp_path / "config.yaml"
        path.write_text("grid: [unclosed\n")
        with pytest.raises(ConfigLoadError):
            load_config(path)


class TestEnvironment:
    def test_env_overrides_file(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        path = tmp_path / "config.yaml"
        path.write_text("model: sonnet-4.5\nrequest_timeout: 30\n")
        monkeypatch.setenv("VL_MODEL", "gemini-2.5-flash")
        monkeypatch.setenv("VL_STORAGE_PATH", str(tmp_path / "s.db"))
        monkeypatch.setenv("VL_REQUEST_TIMEOUT", "12.5")

        config = load_config(path)

        assert config.model == "gemini-2.5-flash"
        assert config.storage_path == tmp_path / "s.db"
        assert config.request_timeout == 12.5

    def test_bad_timeout(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("VL_REQUEST_TIMEOUT", "soon")
        with pytest.raises(ConfigLoadError, match="not a number"):
            VariantLabConfig().apply_env()


def test_validate_rejects_unknown_model() -> None:
    with pytest.raises(UnknownModelError):
        VariantLabConfig(model="gpt-9").validate()
