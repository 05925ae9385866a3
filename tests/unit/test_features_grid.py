"""Tests for the adjective grid controller."""

from __future__ import annotations

import asyncio

import pytest

from tests.fixtures.fake_generator import ScriptedGenerator, no_sleep
from variantlab.config import VariantLabConfig
from variantlab.errors import (
    InvalidCoordinateError,
    InvalidInputError,
    SessionNotInitializedError,
    UnknownModelError,
)
from variantlab.features import GridExplorer
from variantlab.pipeline.tasks import TaskStatus
from variantlab.providers.base import ProviderError, SafetyBlockedError
from variantlab.session.models import Adjectives
from variantlab.session.store import MemorySessionStore


def make_grid(
    store: MemorySessionStore, generator: ScriptedGenerator, config: VariantLabConfig
) -> GridExplorer:
    return GridExplorer(store, generator, config, sleep=no_sleep)


async def settle(grid: GridExplorer, expected: int) -> None:
    """Wait until background prefetch has filled the cache."""
    for _ in range(200):
        if len(grid.cache) >= expected:
            return
        await asyncio.sleep(0.005)
    raise AssertionError(f"cache stuck at {len(grid.cache)} entries")


class TestSetup:
    def test_rejects_invalid_inputs(
        self, store: MemorySessionStore, generator: ScriptedGenerator, fast_config: VariantLabConfig
    ) -> None:
        grid = make_grid(store, generator, fast_config)
        with pytest.raises(InvalidInputError):
            grid.setup("too short", Adjectives())
        assert not grid.has_session

    def test_rejects_unknown_model(
        self,
        store: MemorySessionStore,
        generator: ScriptedGenerator,
        fast_config: VariantLabConfig,
        sample_text: str,
        adjectives: Adjectives,
    ) -> None:
        with pytest.raises(UnknownModelError):
            make_grid(store, generator, fast_config).setup(sample_text, adjectives, "gpt-9")

    def test_requires_setup(
        self, store: MemorySessionStore, generator: ScriptedGenerator, fast_config: VariantLabConfig
    ) -> None:
        with pytest.raises(SessionNotInitializedError):
            make_grid(store, generator, fast_config).start_generation()

    def test_session_is_persisted(
        self,
        store: MemorySessionStore,
        generator: ScriptedGenerator,
        fast_config: VariantLabConfig,
        sample_text: str,
        adjectives: Adjectives,
    ) -> None:
        make_grid(store, generator, fast_config).setup(f"  {sample_text}  ", adjectives)
        stored = store.get("grid")
        assert stored is not None
        assert stored["original_text"] == sample_text
        assert stored["model_id"] == "haiku-4.5"


class TestGeneration:
    @pytest.mark.asyncio
    async def test_rings_fill_center_outward(
        self,
        store: MemorySessionStore,
        generator: ScriptedGenerator,
        fast_config: VariantLabConfig,
        sample_text: str,
        adjectives: Adjectives,
    ) -> None:
        grid = make_grid(store, generator, fast_config)
        grid.setup(sample_text, adjectives)

        report = await grid.start_generation(max_ring=1)

        assert len(report.completed) == 9
        assert "exactly as written" in generator.calls[0].prompt
        assert grid.completed_rings() == 2
        assert grid.session.progress.status == "complete"
        assert grid.session.progress.total_generated == 9
        assert grid.get_status("1,1") is TaskStatus.COMPLETE
        assert grid.get_status("2,2") is TaskStatus.PENDING
        assert grid.session.token_usage.total == 9 * 15

    @pytest.mark.asyncio
    async def test_resume_reuses_cache(
        self,
        store: MemorySessionStore,
        generator: ScriptedGenerator,
        fast_config: VariantLabConfig,
        sample_text: str,
        adjectives: Adjectives,
    ) -> None:
        grid = make_grid(store, generator, fast_config)
        grid.setup(sample_text, adjectives)
        await grid.start_generation(max_ring=1)

        again = make_grid(store, ScriptedGenerator(), fast_config)
        session = again.setup(sample_text, adjectives)
        assert len(session.cache) == 9
        report = await again.start_generation(max_ring=1)
        assert report.calls == 0

    @pytest.mark.asyncio
    async def test_changed_adjectives_start_fresh(
        self,
        store: MemorySessionStore,
        generator: ScriptedGenerator,
        fast_config: VariantLabConfig,
        sample_text: str,
        adjectives: Adjectives,
    ) -> None:
        grid = make_grid(store, generator, fast_config)
        grid.setup(sample_text, adjectives)
        await grid.start_generation(max_ring=0)

        other = adjectives.model_copy(update={"y_positive": "angry"})
        assert grid.setup(sample_text, other).cache == {}

    @pytest.mark.asyncio
    async def test_failed_cell_does_not_block_siblings(
        self,
        store: MemorySessionStore,
        fast_config: VariantLabConfig,
        sample_text: str,
        adjectives: Adjectives,
    ) -> None:
        generator = ScriptedGenerator().fail_when(
            lambda p: "exactly as written" in p, ProviderError("anthropic", "server error")
        )
        grid = make_grid(store, generator, fast_config)
        grid.setup(sample_text, adjectives)

        report = await grid.start_generation(max_ring=1)

        assert list(report.failed) == ["0,0"]
        assert len(generator.prompts_containing("exactly as written")) == 3
        assert len(report.completed) == 8
        assert grid.get_status("0,0") is TaskStatus.ERROR
        assert grid.get_error("0,0")
        assert grid.session.progress.status == "error"

        generator.failures.clear()
        rerun = await grid.start_generation(max_ring=1)
        assert rerun.completed == ["0,0"]
        assert grid.get_status("0,0") is TaskStatus.COMPLETE

    @pytest.mark.asyncio
    async def test_new_run_supersedes_old(
        self,
        store: MemorySessionStore,
        fast_config: VariantLabConfig,
        sample_text: str,
        adjectives: Adjectives,
    ) -> None:
        generator = ScriptedGenerator(delay=0.05)
        grid = make_grid(store, generator, fast_config)
        grid.setup(sample_text, adjectives)

        first = grid.start_generation()
        while not generator.calls:
            await asyncio.sleep(0.001)
        grid.cancel()
        assert await grid.wait() is None
        assert first.cancelled()
        assert not grid.is_running
        assert len(grid.cache) == 0
        assert grid.get_status("0,0") is TaskStatus.PENDING
        assert grid.session.progress.status == "idle"

    @pytest.mark.asyncio
    async def test_restart_keeps_status_of_new_run(
        self,
        store: MemorySessionStore,
        fast_config: VariantLabConfig,
        sample_text: str,
        adjectives: Adjectives,
    ) -> None:
        generator = ScriptedGenerator(delay=0.2)
        grid = make_grid(store, generator, fast_config)
        grid.setup(sample_text, adjectives)

        first = grid.start_generation(max_ring=0)
        while not generator.calls:
            await asyncio.sleep(0.001)
        grid.start_generation(max_ring=0)
        while len(generator.calls) < 2:
            await asyncio.sleep(0.001)
        await asyncio.sleep(0.01)

        assert first.cancelled()
        assert grid.get_status("0,0") is TaskStatus.GENERATING
        assert grid.session.progress.status == "generating"

        report = await grid.wait()
        assert report is not None
        assert report.completed == ["0,0"]
        assert grid.get_status("0,0") is TaskStatus.COMPLETE
        assert grid.session.progress.status == "complete"

    @pytest.mark.asyncio
    async def test_stale_generating_progress_resumes_idle(
        self,
        store: MemorySessionStore,
        fast_config: VariantLabConfig,
        sample_text: str,
        adjectives: Adjectives,
    ) -> None:
        """A session saved mid-run is idle when another process picks it up."""
        grid = make_grid(store, ScriptedGenerator(delay=0.5), fast_config)
        grid.setup(sample_text, adjectives)
        grid.start_generation(max_ring=0)
        assert store.get("grid")["progress"]["status"] == "generating"  # type: ignore[index]

        resumed = make_grid(store, ScriptedGenerator(), fast_config)
        session = resumed.resume()

        assert session is not None
        assert session.progress.status == "idle"
        grid.cancel()
        assert await grid.wait() is None


class TestRequestVariant:
    @pytest.mark.asyncio
    async def test_on_demand_then_prefetch(
        self,
        store: MemorySessionStore,
        generator: ScriptedGenerator,
        fast_config: VariantLabConfig,
        sample_text: str,
        adjectives: Adjectives,
    ) -> None:
        grid = make_grid(store, generator, fast_config)
        grid.setup(sample_text, adjectives)

        text = await grid.request_variant("3,-2")

        assert text == grid.cache["3,-2"]
        assert "moderately more sad and strongly more formal" in generator.calls[0].prompt
        await settle(grid, 5)
        assert {"3,-1", "3,-3", "2,-2", "4,-2"} <= set(grid.cache)

    @pytest.mark.asyncio
    async def test_without_prefetch(
        self,
        store: MemorySessionStore,
        generator: ScriptedGenerator,
        fast_config: VariantLabConfig,
        sample_text: str,
        adjectives: Adjectives,
    ) -> None:
        grid = make_grid(store, generator, fast_config)
        grid.setup(sample_text, adjectives)
        await grid.request_variant("0,0", prefetch=False)
        await grid.request_variant("0,0", prefetch=False)
        assert len(generator.calls) == 1

    @pytest.mark.asyncio
    async def test_error_is_raised_and_retriable(
        self,
        store: MemorySessionStore,
        fast_config: VariantLabConfig,
        sample_text: str,
        adjectives: Adjectives,
    ) -> None:
        generator = ScriptedGenerator().fail_when(
            lambda p: True, SafetyBlockedError("google", "blocked"), times=1
        )
        grid = make_grid(store, generator, fast_config)
        grid.setup(sample_text, adjectives)

        with pytest.raises(SafetyBlockedError):
            await grid.request_variant("1,0", prefetch=False)
        assert grid.get_status("1,0") is TaskStatus.ERROR

        assert await grid.request_variant("1,0", prefetch=False)
        assert grid.get_status("1,0") is TaskStatus.COMPLETE

    @pytest.mark.asyncio
    async def test_invalid_coordinate(
        self,
        store: MemorySessionStore,
        generator: ScriptedGenerator,
        fast_config: VariantLabConfig,
        sample_text: str,
        adjectives: Adjectives,
    ) -> None:
        grid = make_grid(store, generator, fast_config)
        grid.setup(sample_text, adjectives)
        with pytest.raises(InvalidCoordinateError):
            await grid.request_variant("6,0")
        assert generator.calls == []


def test_start_over_clears_store(
    store: MemorySessionStore,
    generator: ScriptedGenerator,
    fast_config: VariantLabConfig,
    sample_text: str,
    adjectives: Adjectives,
) -> None:
    grid = make_grid(store, generator, fast_config)
    grid.setup(sample_text, adjectives)
    grid.start_over()
    assert store.get("grid") is None
    assert not grid.has_session
