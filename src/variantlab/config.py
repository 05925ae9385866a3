"""Configuration loading.

Resolution order (later wins): built-in defaults, the YAML config file,
then environment variables (``VL_MODEL``, ``VL_STORAGE_PATH``,
``VL_REQUEST_TIMEOUT``).
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from ruamel.yaml import YAML

from variantlab.providers.model_info import DEFAULT_MODEL_ID, get_model_profile

DEFAULT_CONFIG_PATH = Path("~/.config/variantlab/config.yaml")
DEFAULT_STORAGE_PATH = Path("~/.local/share/variantlab/sessions.db")


@dataclass
class RetryConfig:
    """Attempts per generator call, including the first."""

    max_attempts: int = 3

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> RetryConfig:
        return cls(max_attempts=int(data.get("max_attempts", 3)))


@dataclass
class GridConfig:
    """Fixed grid rate-limit policy, independent of the model.

    Attributes:
        concurrency: Coordinates generated per batch.
        batch_delay: Seconds between batches.
        retry_base_delay: Backoff base for generic failures.
        overload_base_delay: Backoff base when the provider is overloaded.
        prefetch: Generate neighbours of an explored coordinate.
    """

    concurrency: int = 2
    batch_delay: float = 2.0
    retry_base_delay: float = 1.0
    overload_base_delay: float = 5.0
    prefetch: bool = True

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> GridConfig:
        return cls(
            concurrency=int(data.get("concurrency", 2)),
            batch_delay=float(data.get("batch_delay", 2.0)),
            retry_base_delay=float(data.get("retry_base_delay", 1.0)),
            overload_base_delay=float(data.get("overload_base_delay", 5.0)),
            prefetch=bool(data.get("prefetch", True)),
        )


@dataclass
class BridgeConfig:
    """Bridge policy. Concurrency and backoff come from the model profile."""

    batch_delay: float = 0.5

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> BridgeConfig:
        return cls(batch_delay=float(data.get("batch_delay", 0.5)))


@dataclass
class FilterConfig:
    """Filter steps always run one at a time."""

    step_delay: float = 0.0

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> FilterConfig:
        return cls(step_delay=float(data.get("step_delay", 0.0)))


@dataclass
class VariantLabConfig:
    """Top-level configuration."""

    model: str = DEFAULT_MODEL_ID
    storage_path: Path | None = None
    request_timeout: float = 60.0
    grid: GridConfig = field(default_factory=GridConfig)
    bridge: BridgeConfig = field(default_factory=BridgeConfig)
    filters: FilterConfig = field(default_factory=FilterConfig)
    retry: RetryConfig = field(default_factory=RetryConfig)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> VariantLabConfig:
        storage = data.get("storage_path")
        return cls(
            model=str(data.get("model", DEFAULT_MODEL_ID)),
            storage_path=Path(storage).expanduser() if storage else None,
            request_timeout=float(data.get("request_timeout", 60.0)),
            grid=GridConfig.from_dict(dict(data.get("grid") or {})),
            bridge=BridgeConfig.from_dict(dict(data.get("bridge") or {})),
            filters=FilterConfig.from_dict(dict(data.get("filters") or {})),
            retry=RetryConfig.from_dict(dict(data.get("retry") or {})),
        )

    def apply_env(self) -> VariantLabConfig:
        """Override fields from ``VL_*`` environment variables, in place."""
        if model := os.getenv("VL_MODEL"):
            self.model = model
        if storage := os.getenv("VL_STORAGE_PATH"):
            self.storage_path = Path(storage).expanduser()
        if timeout := os.getenv("VL_REQUEST_TIMEOUT"):
            try:
                self.request_timeout = float(timeout)
            except ValueError as e:
                raise ConfigLoadError(
                    Path("VL_REQUEST_TIMEOUT"), f"not a number: {timeout!r}"
                ) from e
        return self

    def validate(self) -> VariantLabConfig:
        """Check the model is known.

        Raises:
            UnknownModelError: If ``model`` has no profile.
        """
        get_model_profile(self.model)
        return self


class ConfigLoadError(Exception):
    """Raised when a configuration file cannot be loaded."""

    def __init__(self, path: Path, reason: str) -> None:
        self.path = path
        self.reason = reason
        super().__init__(f"Failed to load config at {path}: {reason}")


def _read_yaml(config_path: Path) -> dict[str, Any]:
    yaml = YAML(typ="safe")
    try:
        with config_path.open("r", encoding="utf-8") as f:
            data = yaml.load(f)
    except Exception as e:
        raise ConfigLoadError(config_path, str(e)) from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigLoadError(config_path, "Expected a mapping at top level")
    return dict(data)


def load_config(path: Path | None = None) -> VariantLabConfig:
    """Load configuration.

    Args:
        path: Explicit config file; must exist. When None the default
            location is used if present.

    Returns:
        VariantLabConfig with environment overrides applied.

    Raises:
        ConfigLoadError: If the file is missing (explicit path only) or malformed.
    """
    if path is not None:
        config_path = path.expanduser()
        if not config_path.exists():
            raise ConfigLoadError(config_path, "File not found")
        data = _read_yaml(config_path)
    else:
        config_path = DEFAULT_CONFIG_PATH.expanduser()
        data = _read_yaml(config_path) if config_path.exists() else {}

    try:
        config = VariantLabConfig.from_dict(data)
    except (TypeError, ValueError) as e:
        raise ConfigLoadError(config_path, str(e)) from e
    return config.apply_env()
