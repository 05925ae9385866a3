"""Filter catalogue and filter-chain cache keys."""

from variantlab.filters.chain import (
    ORIGINAL_KEY,
    CachedMatch,
    PlanStep,
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
    layer_segment,
    parse_cache_key,
    processing_order,
    round_intensity,
)
from variantlab.filters.definitions import (
    AVAILABLE_FILTERS,
    INTENSITY_WORDS,
    VALID_INTENSITIES,
    FilterDefinition,
    FilterId,
    FilterLayer,
    parse_filter_id,
    validate_intensity,
)

__all__ = [
    "AVAILABLE_FILTERS",
    "INTENSITY_WORDS",
    "ORIGINAL_KEY",
    "VALID_INTENSITIES",
    "CachedMatch",
    "FilterDefinition",
    "FilterId",
    "FilterLayer",
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
    "parse_filter_id",
    "round_intensity",
    "validate_intensity",
]
