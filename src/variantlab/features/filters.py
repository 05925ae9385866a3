"""Filter stack: layered transforms over one text, cached per chain prefix.

Layers are held in visual order (index 0 = top). Editing a layer that
feeds other cached results deletes those results: changing its intensity,
disabling it, moving it or removing it invalidates its own key and every
key built on top of it.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from variantlab.features.base import FeatureController
from variantlab.filters.chain import (
    ORIGINAL_KEY,
    build_cache_key,
    chain_summary,
    enabled_layers,
    estimate_calls,
    invalidation_set,
    parse_cache_key,
)
from variantlab.filters.definitions import (
    AVAILABLE_FILTERS,
    FilterLayer,
    parse_filter_id,
    validate_intensity,
)
from variantlab.observability.logging import get_logger
from variantlab.pipeline.planner import plan_filter_chain
from variantlab.pipeline.retry import RetryPolicy
from variantlab.providers.model_info import DEFAULT_MODEL_ID, get_model_profile
from variantlab.session.models import FilterSession, LayerRecord
from variantlab.session.store import load_session
from variantlab.validation import validate_filter_inputs

if TYPE_CHECKING:
    import asyncio

    from variantlab.filters.definitions import FilterId
    from variantlab.pipeline.tasks import RunReport

log = get_logger(__name__)


class FilterStack(FeatureController[FilterSession]):
    """Applies an ordered stack of filters, bottom layer first."""

    namespace = "filters"

    def setup(self, text: str, model_id: str | None = None) -> FilterSession:
        """Validate the text and open the session.

        A stored session with the same text and model is resumed together
        with its layers; anything else starts fresh.

        Raises:
            InvalidInputError: If the text is too short or too long.
            UnknownModelError: If the model is not known.
        """
        model = model_id or DEFAULT_MODEL_ID
        validate_filter_inputs(text)
        get_model_profile(model)
        text = text.strip()

        self.cancel()
        stored = load_session(self.store, self.namespace, FilterSession)
        if stored is not None and stored.matches(text, model):
            log.info("session_resumed", feature=self.namespace, cached=len(stored.cache))
            return self._bind(stored, protected=(ORIGINAL_KEY,))

        if stored is not None:
            log.info("session_invalidated", feature=self.namespace)
        self.statuses.forget()
        return self._bind(
            FilterSession(original_text=text, model_id=model), protected=(ORIGINAL_KEY,)
        )

    def resume(self) -> FilterSession | None:
        stored = load_session(self.store, self.namespace, FilterSession)
        if stored is None:
            return None
        return self._bind(stored, protected=(ORIGINAL_KEY,))

    # -- layers ----------------------------------------------------------------

    @property
    def layers(self) -> list[FilterLayer]:
        """All layers in visual order, disabled ones included."""
        return [record.to_layer() for record in self.session.layers]

    @property
    def active_layers(self) -> list[FilterLayer]:
        return enabled_layers(self.layers)

    @property
    def current_key(self) -> str:
        return build_cache_key(self.active_layers)

    @property
    def final_result(self) -> str | None:
        return self.session.final_result

    def summary(self) -> str:
        return chain_summary(self.active_layers)

    def estimate_calls(self) -> int:
        return estimate_calls(self.active_layers, self.cache)

    def _set_layers(self, layers: list[FilterLayer]) -> None:
        self.session.layers = [LayerRecord.from_layer(layer) for layer in layers]
        self.save()

    def _check_index(self, index: int) -> None:
        count = len(self.session.layers)
        if not 0 <= index < count:
            raise IndexError(f"layer index {index} out of range for {count} layers")

    def _invalidate_from(self, layers: list[FilterLayer], index: int) -> list[str]:
        """Invalidate from the deepest enabled layer at or above ``index``.

        ``layers`` is the stack before the edit, in visual order.
        """
        enabled_indices = [i for i, layer in enumerate(layers) if layer.enabled and i <= index]
        if not enabled_indices:
            return []
        active = enabled_layers(layers)
        changed = len(enabled_indices) - 1
        removed = self.cache.discard(invalidation_set(active, changed, self.cache))
        if removed:
            self.statuses.forget(removed)
            log.info("filter_cache_invalidated", keys=removed)
        return removed

    def add_layer(self, filter_id: FilterId | str, intensity: int | None = None) -> FilterLayer:
        """Put a new enabled layer on top of the stack.

        Raises:
            UnknownFilterError: If ``filter_id`` is not a known filter.
            InvalidIntensityError: If ``intensity`` is not 25, 50, 75 or 100.
        """
        fid = parse_filter_id(filter_id)
        layer = FilterLayer(
            fid, AVAILABLE_FILTERS[fid].default_intensity if intensity is None else intensity
        )
        self._set_layers([layer, *self.layers])
        return layer

    def toggle_layer(self, index: int) -> FilterLayer:
        """Flip a layer's enabled flag. Disabling invalidates dependent results."""
        self._check_index(index)
        layers = self.layers
        layer = layers[index]
        if layer.enabled:
            self._invalidate_from(layers, index)
        layers[index] = layer.with_enabled(not layer.enabled)
        self._set_layers(layers)
        return layers[index]

    def set_intensity(self, index: int, intensity: int) -> FilterLayer:
        """Change a layer's intensity, invalidating dependent results if it changed.

        Raises:
            InvalidIntensityError: If ``intensity`` is not 25, 50, 75 or 100.
        """
        self._check_index(index)
        validate_intensity(intensity)
        layers = self.layers
        layer = layers[index]
        if layer.intensity == intensity:
            return layer
        if layer.enabled:
            self._invalidate_from(layers, index)
        layers[index] = layer.with_intensity(intensity)
        self._set_layers(layers)
        return layers[index]

    def move_layer(self, from_index: int, to_index: int) -> None:
        """Move a layer to a new visual position."""
        self._check_index(from_index)
        self._check_index(to_index)
        if from_index == to_index:
            return
        layers = self.layers
        if layers[from_index].enabled:
            self._invalidate_from(layers, max(from_index, to_index))
        layer = layers.pop(from_index)
        layers.insert(to_index, layer)
        self._set_layers(layers)

    def remove_layer(self, index: int) -> FilterLayer:
        self._check_index(index)
        layers = self.layers
        if layers[index].enabled:
            self._invalidate_from(layers, index)
        layer = layers.pop(index)
        self._set_layers(layers)
        return layer

    def replace_layers(self, layers: list[FilterLayer]) -> None:
        """Set the whole stack at once (visual order).

        Cached results stay: every key names the exact chain it came from,
        so entries for chains no longer on the stack are simply unused.
        """
        self._set_layers(list(layers))

    def reset_all(self) -> None:
        """Drop every layer and every cached result except the original text."""
        self.cancel()
        removed = self.cache.clear_derived()
        self.statuses.forget()
        self.session.final_result = None
        self._set_layers([])
        log.info("filter_stack_reset", removed=len(removed))

    # -- generation ------------------------------------------------------------

    def _retry_policy(self) -> RetryPolicy:
        return RetryPolicy.from_profile(
            get_model_profile(self.session.model_id),
            max_attempts=self.config.retry.max_attempts,
        )

    def _concurrency(self) -> int:
        return 1

    def _batch_delay(self) -> float:
        return self.config.filters.step_delay

    def start_generation(self) -> asyncio.Task[RunReport]:
        """Realise the current stack in the background.

        Supersedes any run still in flight.
        """
        return self._launch(plan_filter_chain(self.layers, self.cache))

    async def apply(self) -> str:
        """Realise the current stack and return the final text.

        An empty or all-disabled stack returns the original text with no
        generator calls.

        Raises:
            ChainStepFailedError: If a step failed; later steps were not run.
        """
        report = await self.start_generation()
        if report.chain_failure is not None:
            raise report.chain_failure
        return self.cache[self.current_key]

    async def request_variant(self, key: str) -> str:
        """Return the text for any chain key, generating missing steps now.

        Raises:
            InvalidCacheKeyError: If ``key`` is malformed.
            ChainStepFailedError: If a step failed.
        """
        if key in self.cache:
            return self.cache[key]
        report = await self._run_now(plan_filter_chain(parse_cache_key(key), self.cache))
        if report.chain_failure is not None and not report.cancelled:
            raise report.chain_failure
        self._raise_for(key, report)
        return self.cache[key]

    def _after_run(self, report: RunReport) -> None:
        key = self.current_key
        self.session.final_result = self.cache.get(key)
        failure = report.chain_failure
        if failure is not None:
            log.warning(
                "filter_chain_failed", step=failure.step, key=failure.key, reason=failure.reason
            )
