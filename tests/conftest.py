"""Pytest configuration and shared fixtures."""

from __future__ import annotations

from pathlib import Path

import pytest

from tests.fixtures.fake_generator import ScriptedGenerator
from variantlab.config import BridgeConfig, FilterConfig, GridConfig, VariantLabConfig
from variantlab.session.models import Adjectives
from variantlab.session.store import MemorySessionStore

SAMPLE_TEXT = (
    "The quarterly report shows steady growth across all regions, with the "
    "northern branch leading in new accounts and customer retention."
)
SAMPLE_TEXT_B = (
    "Under a pale winter moon, the old lighthouse keeper climbed the spiral "
    "stairs one last time, listening to the sea whisper below."
)


@pytest.fixture(autouse=True)
def clear_concurrency_override(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep model concurrency deterministic regardless of the shell env."""
    monkeypatch.delenv("VL_MAX_CONCURRENCY", raising=False)


@pytest.fixture
def project_root() -> Path:
    """Return the project root directory."""
    return Path(__file__).parent.parent


@pytest.fixture
def generator() -> ScriptedGenerator:
    return ScriptedGenerator()


@pytest.fixture
def store() -> MemorySessionStore:
    return MemorySessionStore()


@pytest.fixture
def fast_config() -> VariantLabConfig:
    """Config with every delay set to zero."""
    return VariantLabConfig(
        grid=GridConfig(batch_delay=0.0, retry_base_delay=0.0, overload_base_delay=0.0),
        bridge=BridgeConfig(batch_delay=0.0),
        filters=FilterConfig(step_delay=0.0),
    )


@pytest.fixture
def adjectives() -> Adjectives:
    return Adjectives(
        x_positive="formal", x_negative="casual", y_positive="happy", y_negative="sad"
    )


@pytest.fixture
def sample_text() -> str:
    return SAMPLE_TEXT


@pytest.fixture
def sample_text_b() -> str:
    return SAMPLE_TEXT_B
