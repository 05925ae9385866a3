"""Pure coordinate spaces for the grid and bridge features."""

from variantlab.spaces.bridge import (
    ANCHORS,
    dependencies_of,
    dependency_closure,
    generation_order,
    is_generable,
    next_generable_positions,
    positions_for_round,
    round_of,
    total_positions_up_to_round,
)
from variantlab.spaces.coordinates import (
    Coordinate,
    adjacent_coordinates,
    all_coordinates,
    completed_rings,
    coordinates_in_ring,
    coordinates_up_to_ring,
    is_valid_coordinate,
    parse_coordinate,
    ring_of,
)

__all__ = [
    "ANCHORS",
    "Coordinate",
    "adjacent_coordinates",
    "all_coordinates",
    "completed_rings",
    "coordinates_in_ring",
    "coordinates_up_to_ring",
    "dependencies_of",
    "dependency_closure",
    "generation_order",
    "is_generable",
    "is_valid_coordinate",
    "next_generable_positions",
    "parse_coordinate",
    "positions_for_round",
    "ring_of",
    "round_of",
    "total_positions_up_to_round",
]
