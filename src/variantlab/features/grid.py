"""Adjective grid: one source text rewritten at each of 121 coordinates."""

from __future__ import annotations

from typing import TYPE_CHECKING

from variantlab.features.base import FeatureController
from variantlab.observability.logging import get_logger
from variantlab.pipeline.planner import plan_grid, plan_grid_on_demand
from variantlab.pipeline.retry import RetryPolicy
from variantlab.providers.model_info import DEFAULT_MODEL_ID, get_model_profile
from variantlab.session.models import Adjectives, GridSession
from variantlab.session.store import load_session
from variantlab.spaces.coordinates import MAX_RING, completed_rings, parse_coordinate
from variantlab.validation import validate_grid_inputs

if TYPE_CHECKING:
    import asyncio

    from variantlab.pipeline.tasks import RunReport
    from variantlab.spaces.coordinates import Coordinate

log = get_logger(__name__)


class GridExplorer(FeatureController[GridSession]):
    """Generates the grid center-outward, ring by ring.

    Every cell derives from the original text and adjectives alone, so cells
    never wait on each other; rings are a priority order only.
    """

    namespace = "grid"

    def setup(
        self, text: str, adjectives: Adjectives, model_id: str | None = None
    ) -> GridSession:
        """Validate inputs and open the session.

        A stored session is reused only if text, adjectives and model all
        match; otherwise it is discarded.

        Raises:
            InvalidInputError: If the text or adjectives are invalid.
            UnknownModelError: If the model is not known.
        """
        model = model_id or DEFAULT_MODEL_ID
        validate_grid_inputs(text, adjectives)
        get_model_profile(model)
        text = text.strip()
        adjectives = adjectives.normalized()

        self.cancel()
        stored = load_session(self.store, self.namespace, GridSession)
        if stored is not None and stored.matches(text, adjectives, model):
            log.info("session_resumed", feature=self.namespace, cached=len(stored.cache))
            return self._bind(stored, protected=())

        if stored is not None:
            log.info("session_invalidated", feature=self.namespace)
        self.statuses.forget()
        return self._bind(
            GridSession(original_text=text, adjectives=adjectives, model_id=model),
            protected=(),
        )

    def resume(self) -> GridSession | None:
        """Reopen the stored session as-is, if there is one."""
        stored = load_session(self.store, self.namespace, GridSession)
        if stored is None:
            return None
        return self._bind(stored, protected=())

    def _retry_policy(self) -> RetryPolicy:
        grid = self.config.grid
        return RetryPolicy(
            max_attempts=self.config.retry.max_attempts,
            base_delay=grid.retry_base_delay,
            overload_base_delay=grid.overload_base_delay,
        )

    def _concurrency(self) -> int:
        return self.config.grid.concurrency

    def _batch_delay(self) -> float:
        return self.config.grid.batch_delay

    def start_generation(self, max_ring: int = MAX_RING) -> asyncio.Task[RunReport]:
        """Generate every uncached cell of rings 0..max_ring in the background.

        Error cells from earlier runs are planned again.
        """
        session = self.session
        plan = plan_grid(session.original_text, session.adjectives, self.cache, max_ring)
        session.progress.status = "generating"
        self.save()
        return self._launch(plan)

    async def request_variant(
        self, coordinate: Coordinate | str, *, prefetch: bool | None = None
    ) -> str:
        """Return one cell's text, generating it now if needed.

        Uncached orthogonal neighbours are then prefetched in the background.

        Raises:
            InvalidCoordinateError: For malformed coordinates.
            ProviderError: If generation failed (the original error).
        """
        coord = parse_coordinate(coordinate)
        session = self.session
        if coord.key not in self.cache:
            plan = plan_grid_on_demand(
                coord, session.original_text, session.adjectives, self.cache, prefetch=False
            )
            report = await self._run_now(plan)
            self._raise_for(coord.key, report)

        if self.config.grid.prefetch if prefetch is None else prefetch:
            neighbours = plan_grid_on_demand(
                coord, session.original_text, session.adjectives, self.cache, prefetch=True
            )
            if not neighbours.is_empty:
                self._spawn(neighbours)
        return self.cache[coord.key]

    def completed_rings(self) -> int:
        return completed_rings(self.cache)

    def _after_run(self, report: RunReport) -> None:
        progress = self.session.progress
        progress.current_wave = completed_rings(self.cache)
        progress.total_generated = len(self.cache)
        progress.status = "error" if report.failed else "complete"
