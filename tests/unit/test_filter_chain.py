"""Tests for filters.chain module."""

from __future__ import annotations

import pytest

from variantlab.errors import InvalidCacheKeyError
from variantlab.filters.chain import (
    ORIGINAL_KEY,
    build_cache_key,
    cache_key_for_prefix,
    calculate_generation_plan,
    chain_summary,
    clear_invalidated,
    enabled_layers,
    estimate_calls,
    find_longest_cached_suffix,
    invalidation_set,
    is_valid_cache_key,
    parse_cache_key,
    processing_order,
    round_intensity,
)
from variantlab.filters.definitions import FilterId, FilterLayer

ORIGINAL = "x" * 200


def layer(filter_id: str, intensity: int = 50, enabled: bool = True) -> FilterLayer:
    return FilterLayer(FilterId(filter_id), intensity, enabled)


class TestCacheKey:
    def test_empty_chain_is_original(self) -> None:
        assert build_cache_key([]) == ORIGINAL_KEY

    def test_single_layer(self) -> None:
        assert build_cache_key([layer("simplify")]) == "simplify-50"

    def test_latest_segment_comes_first(self) -> None:
        """Visual [formalize (top), simplify (bottom)] keys as formalize|simplify."""
        layers = [layer("formalize", 75), layer("simplify", 50)]
        assert build_cache_key(layers) == "formalize-75|simplify-50"

    def test_deterministic(self) -> None:
        layers = [layer("humor", 75), layer("concise", 25)]
        assert build_cache_key(layers) == build_cache_key(list(layers))

    def test_order_matters(self) -> None:
        a = [layer("humor"), layer("simplify")]
        b = [layer("simplify"), layer("humor")]
        assert build_cache_key(a) != build_cache_key(b)

    def test_shared_bottom_layers_share_prefix_key(self) -> None:
        """Stacks agreeing on their bottom layers agree on that prefix's key."""
        one = [layer("humor", 75), layer("formalize", 25), layer("simplify")]
        two = [layer("dramatize", 100), layer("formalize", 25), layer("simplify")]
        assert cache_key_for_prefix(one, 1) == cache_key_for_prefix(two, 1)
        assert cache_key_for_prefix(one, 1) == "formalize-25|simplify-50"
        assert build_cache_key(one).endswith(cache_key_for_prefix(one, 1))

    def test_prefix_past_bottom_is_original(self) -> None:
        assert cache_key_for_prefix([layer("humor")], 1) == ORIGINAL_KEY

    @pytest.mark.parametrize(
        ("value", "expected"), [(25, 25), (37, 25), (38, 50), (62.5, 75), (100, 100)]
    )
    def test_round_intensity(self, value: float, expected: int) -> None:
        assert round_intensity(value) == expected

    def test_processing_order_reverses(self) -> None:
        layers = [layer("humor"), layer("simplify")]
        assert processing_order(layers) == [layers[1], layers[0]]

    def test_disabled_layers_are_excluded(self) -> None:
        layers = [layer("humor", 75, enabled=False), layer("simplify")]
        assert build_cache_key(enabled_layers(layers)) == "simplify-50"


class TestLongestCachedSuffix:
    def test_falls_back_to_original(self) -> None:
        match = find_longest_cached_suffix([layer("humor")], {"original": ORIGINAL})
        assert match.match_index is None
        assert match.key == ORIGINAL_KEY
        assert match.text == ORIGINAL

    def test_finds_deepest_cached_point(self) -> None:
        layers = [layer("humor", 75), layer("formalize", 25), layer("simplify")]
        cache = {
            "original": ORIGINAL,
            "simplify-50": "S",
            "formalize-25|simplify-50": "FS",
        }
        match = find_longest_cached_suffix(layers, cache)
        assert match.match_index == 1
        assert match.key == "formalize-25|simplify-50"
        assert match.text == "FS"

    def test_full_chain_cached(self) -> None:
        layers = [layer("humor", 75), layer("simplify")]
        cache = {"original": ORIGINAL, "humor-75|simplify-50": "HS"}
        assert find_longest_cached_suffix(layers, cache).match_index == 0


class TestGenerationPlan:
    def test_plan_minimality(self) -> None:
        """With simplify-50 cached, formalize-75 on top needs exactly one step."""
        cache = {"original": ORIGINAL, "simplify-50": "simplified"}
        plan = calculate_generation_plan([layer("formalize", 75), layer("simplify", 50)], cache)
        assert len(plan) == 1
        step = plan[0]
        assert step.cache_key == "formalize-75|simplify-50"
        assert step.input_text == "simplified"
        assert step.previous_key == "simplify-50"
        assert step.layer_index == 0

    def test_two_step_plan_from_empty_cache(self) -> None:
        """Bottom step reads the original; the next step waits on its output."""
        layers = [layer("humor", 75), layer("simplify", 50)]
        plan = calculate_generation_plan(layers, {"original": ORIGINAL})
        assert [s.cache_key for s in plan] == ["simplify-50", "humor-75|simplify-50"]
        assert plan[0].input_text == ORIGINAL
        assert plan[0].previous_key == ORIGINAL_KEY
        assert plan[1].input_text is None
        assert plan[1].previous_key == "simplify-50"
        assert [s.layer_index for s in plan] == [1, 0]
        assert plan[1].filter_id is FilterId.HUMOR
        assert plan[1].intensity == 75

    def test_idempotence(self) -> None:
        """Once every planned key is cached, the plan is empty."""
        layers = [layer("humor", 75), layer("formalize", 25), layer("simplify")]
        cache = {"original": ORIGINAL}
        for step in calculate_generation_plan(layers, cache):
            cache[step.cache_key] = f"text for {step.cache_key}"
        assert calculate_generation_plan(layers, cache) == []

    def test_empty_stack_has_no_steps(self) -> None:
        assert calculate_generation_plan([], {"original": ORIGINAL}) == []

    def test_all_disabled_has_no_steps(self) -> None:
        layers = [layer("humor", enabled=False), layer("simplify", enabled=False)]
        active = enabled_layers(layers)
        assert build_cache_key(active) == ORIGINAL_KEY
        assert calculate_generation_plan(active, {"original": ORIGINAL}) == []

    def test_shorter_chain_reuses_cached_prefix(self) -> None:
        """Dropping the top layer needs no new steps when the rest is cached."""
        cache = {"original": ORIGINAL, "simplify-50": "S", "humor-75|simplify-50": "HS"}
        assert calculate_generation_plan([layer("simplify")], cache) == []

    def test_estimate_calls(self) -> None:
        layers = [layer("humor", 75), layer("simplify")]
        assert estimate_calls(layers, {"original": ORIGINAL}) == 2
        assert estimate_calls(layers, {"original": ORIGINAL, "simplify-50": "S"}) == 1


class TestInvalidation:
    def test_cascade_from_bottom_layer(self) -> None:
        """Changing the bottom of two layers invalidates both keys, not the original."""
        layers = [layer("humor", 75), layer("simplify", 50)]
        cache = {"original": ORIGINAL, "simplify-50": "S", "humor-75|simplify-50": "HS"}
        keys = invalidation_set(layers, 1, cache)
        assert set(keys) == {"simplify-50", "humor-75|simplify-50"}
        assert ORIGINAL_KEY not in keys

    def test_top_layer_only_invalidates_itself(self) -> None:
        layers = [layer("humor", 75), layer("simplify", 50)]
        cache = {"original": ORIGINAL, "simplify-50": "S", "humor-75|simplify-50": "HS"}
        assert invalidation_set(layers, 0, cache) == ["humor-75|simplify-50"]

    def test_only_existing_keys(self) -> None:
        layers = [layer("humor", 75), layer("simplify", 50)]
        cache = {"original": ORIGINAL, "simplify-50": "S"}
        assert invalidation_set(layers, 1, cache) == ["simplify-50"]

    def test_index_out_of_range(self) -> None:
        with pytest.raises(IndexError):
            invalidation_set([layer("humor")], 1, {})

    def test_clear_invalidated_keeps_original(self) -> None:
        cache = {"original": ORIGINAL, "simplify-50": "S"}
        removed = clear_invalidated(cache, ["original", "simplify-50", "missing"])
        assert removed == ["simplify-50"]
        assert cache == {"original": ORIGINAL}


class TestKeyParsing:
    def test_parse_inverts_build(self) -> None:
        layers = [layer("humor", 75), layer("formalize", 25), layer("simplify", 100)]
        assert parse_cache_key(build_cache_key(layers)) == layers

    def test_parse_original(self) -> None:
        assert parse_cache_key("original") == []

    @pytest.mark.parametrize(
        "key", ["", "humor", "humor-", "humor-60", "sarcasm-50", "humor-50||simplify-50", "-50"]
    )
    def test_invalid_keys(self, key: str) -> None:
        with pytest.raises(InvalidCacheKeyError):
            parse_cache_key(key)
        assert not is_valid_cache_key(key)

    def test_valid_key(self) -> None:
        assert is_valid_cache_key("humor-75|simplify-50")


def test_chain_summary_reads_in_processing_order() -> None:
    layers = [layer("humor", 75), layer("simplify", 50)]
    assert chain_summary(layers) == "Simplify (50%) → Add Humor (75%)"
    assert chain_summary([]) == "No filters applied"
