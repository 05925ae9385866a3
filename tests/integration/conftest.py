"""Integration test configuration and fixtures.

Live-provider tests are skipped unless the matching API key is configured.
"""

from __future__ import annotations

import os
from pathlib import Path  # noqa: TC003 - Used at runtime in fixtures
from typing import TYPE_CHECKING

import pytest
from dotenv import load_dotenv

from variantlab.session.store import open_session_store

# Load .env file at import time so provider availability checks work
load_dotenv()

if TYPE_CHECKING:
    from collections.abc import Iterator

    from variantlab.session.store import FallbackSessionStore


def _anthropic_available() -> bool:
    return bool(os.getenv("ANTHROPIC_API_KEY"))


def _google_available() -> bool:
    return bool(os.getenv("GOOGLE_API_KEY"))


requires_anthropic = pytest.mark.skipif(
    not _anthropic_available(), reason="ANTHROPIC_API_KEY not set"
)

requires_google = pytest.mark.skipif(not _google_available(), reason="GOOGLE_API_KEY not set")


@pytest.fixture
def sqlite_store(tmp_path: Path) -> Iterator[FallbackSessionStore]:
    """Session store backed by a real SQLite file."""
    store = open_session_store(tmp_path / "sessions.db")
    assert not store.using_memory_fallback
    yield store


def pytest_collection_modifyitems(items: list[pytest.Item]) -> None:
    """Mark everything under tests/integration as integration."""
    for item in items:
        if "integration" in str(item.fspath):
            item.add_marker(pytest.mark.integration)
