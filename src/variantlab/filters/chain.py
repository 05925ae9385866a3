"""Content-addressed cache keys and generation plans for filter stacks.

Two orderings meet here and nowhere else:

- visual order: the list as stored and shown, index 0 = top layer;
- processing order: bottom layer first, each later layer applied to the
  previous layer's output.

Every function in this module takes *enabled* layers in visual order.
A chain's key lists its segments newest-first: each processing step
prefixes ``"{filter_id}-{intensity}"`` onto the previous step's key, so
``"humor-75|simplify-50"`` is simplify@50 applied to the original and then
humor@75. Two stacks sharing their bottom layers share a key suffix, and the
cache entry for that suffix is reused instead of regenerated.
"""

from __future__ import annotations

import math
from collections.abc import Mapping, Sequence
from dataclasses import dataclass

from variantlab.errors import InvalidCacheKeyError, ValidationError
from variantlab.filters.definitions import (
    AVAILABLE_FILTERS,
    VALID_INTENSITIES,
    FilterId,
    FilterLayer,
    parse_filter_id,
)

ORIGINAL_KEY = "original"
SEGMENT_SEPARATOR = "|"


@dataclass(frozen=True)
class CachedMatch:
    """Deepest reusable point of a chain.

    Attributes:
        match_index: Visual index of the top-most layer whose cumulative key
            is cached, or None when only the original text is reusable.
        key: Cache key of that point (``"original"`` if none matched).
        text: Cached text at that point (None if even the original is missing).
    """

    match_index: int | None
    key: str
    text: str | None


@dataclass
class PlanStep:
    """One filter application the chain still needs.

    Attributes:
        layer_index: Visual index of the layer being applied.
        filter_id: Transform kind.
        intensity: Rounded intensity.
        cache_key: Key this step produces.
        previous_key: Key of the text this step transforms.
        input_text: Concrete input text for the first step; None for later
            steps until the executor fills it from the previous step's output.
    """

    layer_index: int
    filter_id: FilterId
    intensity: int
    cache_key: str
    previous_key: str
    input_text: str | None = None


def round_intensity(value: int | float) -> int:
    """Round half-up to the nearest multiple of 25."""
    return int(math.floor(value / 25 + 0.5)) * 25


def processing_order(layers: Sequence[FilterLayer]) -> list[FilterLayer]:
    """Convert visual order (top first) to processing order (bottom first)."""
    return list(reversed(layers))


def enabled_layers(layers: Sequence[FilterLayer]) -> list[FilterLayer]:
    """Drop disabled layers, keeping visual order."""
    return [layer for layer in layers if layer.enabled]


def layer_segment(layer: FilterLayer) -> str:
    """Return the ``"{filter_id}-{intensity}"`` key segment for a layer."""
    return f"{layer.filter_id.value}-{round_intensity(layer.intensity)}"


def _extend_key(previous_key: str, segment: str) -> str:
    if previous_key == ORIGINAL_KEY:
        return segment
    return f"{segment}{SEGMENT_SEPARATOR}{previous_key}"


def build_cache_key(layers: Sequence[FilterLayer]) -> str:
    """Return the cache key for a full chain of enabled layers (visual order).

    An empty chain is ``"original"``.
    """
    key = ORIGINAL_KEY
    for layer in processing_order(layers):
        key = _extend_key(key, layer_segment(layer))
    return key


def cache_key_for_prefix(layers: Sequence[FilterLayer], top_index: int) -> str:
    """Return the key of the chain from ``layers[top_index]`` down to the bottom.

    That is "this layer and everything below it". An index past the bottom
    yields ``"original"``.
    """
    if top_index < 0:
        raise IndexError(f"top_index must be >= 0, got {top_index}")
    return build_cache_key(layers[top_index:])


def find_longest_cached_suffix(
    layers: Sequence[FilterLayer], cache: Mapping[str, str]
) -> CachedMatch:
    """Find the deepest point of the chain whose text is already cached.

    Checks the full chain first, then progressively shorter chains toward
    the bottom layer; falls back to ``cache["original"]``.
    """
    for index in range(len(layers)):
        key = cache_key_for_prefix(layers, index)
        if key in cache:
            return CachedMatch(match_index=index, key=key, text=cache[key])
    return CachedMatch(match_index=None, key=ORIGINAL_KEY, text=cache.get(ORIGINAL_KEY))


def calculate_generation_plan(
    layers: Sequence[FilterLayer], cache: Mapping[str, str]
) -> list[PlanStep]:
    """Return the steps needed to realise the full chain, in processing order.

    Starts from the longest cached point and walks upward to the top layer.
    Only the first step has a concrete ``input_text``; each later step reads
    the previous step's output once it exists. An empty list means the full
    chain is already cached (or there are no layers).
    """
    if not layers:
        return []

    match = find_longest_cached_suffix(layers, cache)
    first_uncached = len(layers) - 1 if match.match_index is None else match.match_index - 1

    plan: list[PlanStep] = []
    previous_key = match.key
    input_text = match.text
    for index in range(first_uncached, -1, -1):
        layer = layers[index]
        key = _extend_key(previous_key, layer_segment(layer))
        plan.append(
            PlanStep(
                layer_index=index,
                filter_id=layer.filter_id,
                intensity=round_intensity(layer.intensity),
                cache_key=key,
                previous_key=previous_key,
                input_text=input_text,
            )
        )
        previous_key = key
        input_text = None
    return plan


def invalidation_set(
    layers: Sequence[FilterLayer], changed_index: int, cache: Mapping[str, str]
) -> list[str]:
    """Return cached keys derived from the layer at ``changed_index``.

    These are the keys of the changed layer and of every layer above it
    (toward the top), listed from the changed layer upward. ``layers`` must
    be the enabled stack *before* the change.
    """
    if not 0 <= changed_index < len(layers):
        raise IndexError(f"changed_index {changed_index} out of range for {len(layers)} layers")
    keys = []
    for index in range(changed_index, -1, -1):
        key = cache_key_for_prefix(layers, index)
        if key in cache:
            keys.append(key)
    return keys


def clear_invalidated(cache: dict[str, str], keys: Sequence[str]) -> list[str]:
    """Delete ``keys`` from ``cache`` in place, never touching ``"original"``.

    Returns:
        The keys actually removed.
    """
    removed = []
    for key in keys:
        if key != ORIGINAL_KEY and key in cache:
            del cache[key]
            removed.append(key)
    return removed


def parse_cache_key(key: str) -> list[FilterLayer]:
    """Invert :func:`build_cache_key` into enabled layers in visual order.

    Raises:
        InvalidCacheKeyError: If the key is malformed.
    """
    if key == ORIGINAL_KEY:
        return []
    if not key:
        raise InvalidCacheKeyError(key, "empty key")

    layers = []
    for segment in key.split(SEGMENT_SEPARATOR):
        filter_id, sep, intensity = segment.rpartition("-")
        if not sep or not filter_id or not intensity.isdigit():
            raise InvalidCacheKeyError(key, f"malformed segment {segment!r}")
        try:
            layers.append(FilterLayer(parse_filter_id(filter_id), int(intensity)))
        except ValidationError as e:
            raise InvalidCacheKeyError(key, str(e)) from e
    return layers


def is_valid_cache_key(key: str) -> bool:
    try:
        parse_cache_key(key)
    except InvalidCacheKeyError:
        return False
    return True


def chain_summary(layers: Sequence[FilterLayer]) -> str:
    """Render the chain in processing order, e.g. ``Simplify (50%) → Add Humor (75%)``."""
    if not layers:
        return "No filters applied"
    return " → ".join(
        f"{AVAILABLE_FILTERS[layer.filter_id].name} ({layer.intensity}%)"
        for layer in processing_order(layers)
    )


def estimate_calls(layers: Sequence[FilterLayer], cache: Mapping[str, str]) -> int:
    """Return how many generator calls realising the chain would take."""
    return len(calculate_generation_plan(layers, cache))


__all__ = [
    "ORIGINAL_KEY",
    "VALID_INTENSITIES",
    "CachedMatch",
    "PlanStep",
    "build_cache_key",
    "cache_key_for_prefix",
    "calculate_generation_plan",
    "chain_summary",
    "clear_invalidated",
    "enabled_layers",
    "estimate_calls",
    "find_longest_cached_suffix",
    "invalidation_set",
    "is_valid_cache_key",
    "layer_segment",
    "parse_cache_key",
    "processing_order",
    "round_intensity",
]
