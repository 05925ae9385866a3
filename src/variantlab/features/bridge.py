"""Bridge: recursive midpoints between two anchor texts."""

from __future__ import annotations

from typing import TYPE_CHECKING

from variantlab.errors import InvalidPositionError
from variantlab.features.base import FeatureController
from variantlab.observability.logging import get_logger
from variantlab.pipeline.planner import plan_bridge, plan_bridge_position
from variantlab.pipeline.retry import RetryPolicy
from variantlab.providers.model_info import DEFAULT_MODEL_ID, get_model_profile
from variantlab.session.models import BridgeSession
from variantlab.session.store import load_session
from variantlab.spaces.bridge import ANCHORS, ROUNDS, positions_for_round, round_of
from variantlab.validation import validate_bridge_inputs

if TYPE_CHECKING:
    import asyncio

    from variantlab.pipeline.tasks import RunReport

log = get_logger(__name__)

_ANCHOR_KEYS = tuple(str(p) for p in ANCHORS)


def _parse_position(value: int | str) -> int:
    if isinstance(value, str):
        if not value.strip().isdigit():
            raise InvalidPositionError(value, "0-10")
        value = int(value)
    round_of(value)
    return value


class BridgeExplorer(FeatureController[BridgeSession]):
    """Generates positions 1-9 round by round from the anchors at 0 and 10.

    A position is only generated once both of its neighbours exist, so a
    failed position fails its dependants instead of feeding them bad input.
    """

    namespace = "bridge"

    def setup(self, text_a: str, text_b: str, model_id: str | None = None) -> BridgeSession:
        """Validate inputs and open the session.

        Raises:
            InvalidInputError: If either text is invalid.
            UnknownModelError: If the model is not known.
        """
        model = model_id or DEFAULT_MODEL_ID
        validate_bridge_inputs(text_a, text_b)
        get_model_profile(model)
        text_a, text_b = text_a.strip(), text_b.strip()

        self.cancel()
        stored = load_session(self.store, self.namespace, BridgeSession)
        if stored is not None and stored.matches(text_a, text_b, model):
            log.info("session_resumed", feature=self.namespace, cached=len(stored.cache))
            return self._bind(stored, protected=_ANCHOR_KEYS)

        if stored is not None:
            log.info("session_invalidated", feature=self.namespace)
        self.statuses.forget()
        return self._bind(
            BridgeSession(text_a=text_a, text_b=text_b, model_id=model),
            protected=_ANCHOR_KEYS,
        )

    def resume(self) -> BridgeSession | None:
        stored = load_session(self.store, self.namespace, BridgeSession)
        if stored is None:
            return None
        return self._bind(stored, protected=_ANCHOR_KEYS)

    def _retry_policy(self) -> RetryPolicy:
        return RetryPolicy.from_profile(
            get_model_profile(self.session.model_id),
            max_attempts=self.config.retry.max_attempts,
        )

    def _concurrency(self) -> int:
        return get_model_profile(self.session.model_id).max_concurrency

    def _batch_delay(self) -> float:
        return self.config.bridge.batch_delay

    def start_generation(self) -> asyncio.Task[RunReport]:
        """Generate every uncached position, rounds 1 to 4, in the background."""
        plan = plan_bridge(self.cache)
        self.session.progress.status = "generating"
        self.save()
        return self._launch(plan)

    async def request_variant(self, position: int | str) -> str:
        """Return one position's text, generating it and its missing ancestors.

        Raises:
            InvalidPositionError: For positions outside 0-10.
            ProviderError: If generation failed (the original error).
            DependencyNotReadyError: If an ancestor failed.
        """
        pos = _parse_position(position)
        key = str(pos)
        if key not in self.cache:
            report = await self._run_now(plan_bridge_position(pos, self.cache))
            self._raise_for(key, report)
        return self.cache[key]

    def positions(self) -> list[str | None]:
        """Texts for positions 0-10, None where missing."""
        return [self.cache.get(str(p)) for p in range(11)]

    def completed_rounds(self) -> int:
        done = 0
        for round_number in ROUNDS:
            if all(str(p) in self.cache for p in positions_for_round(round_number)):
                done = round_number
            else:
                break
        return done

    def _after_run(self, report: RunReport) -> None:
        progress = self.session.progress
        progress.current_wave = self.completed_rounds()
        progress.total_generated = len(self.cache.derived_keys())
        progress.status = "error" if report.failed else "complete"
