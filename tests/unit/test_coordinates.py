"""Tests for spaces.coordinates module."""

from __future__ import annotations

import pytest

from variantlab.errors import InvalidCoordinateError, ValidationError
from variantlab.spaces.coordinates import (
    GRID_SIZE,
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


class TestRings:
    """Ring membership and completeness."""

    def test_ring_sizes(self) -> None:
        """Rings 0..5 hold 1, 8, 16, 24, 32, 40 coordinates."""
        assert [len(coordinates_in_ring(r)) for r in range(6)] == [1, 8, 16, 24, 32, 40]

    def test_rings_partition_the_grid(self) -> None:
        """Rings are disjoint and together cover all 121 coordinates."""
        seen: set[Coordinate] = set()
        for ring in range(6):
            members = set(coordinates_in_ring(ring))
            assert not members & seen
            seen |= members
        expected = {Coordinate(x, y) for x in range(-5, 6) for y in range(-5, 6)}
        assert seen == expected
        assert len(seen) == GRID_SIZE

    def test_every_member_has_its_ring_distance(self) -> None:
        for ring in range(6):
            assert all(ring_of(c) == ring for c in coordinates_in_ring(ring))

    def test_ring_zero_is_origin(self) -> None:
        assert coordinates_in_ring(0) == [Coordinate(0, 0)]

    def test_ring_order_is_x_major(self) -> None:
        ring = coordinates_in_ring(1)
        assert ring[0] == Coordinate(-1, -1)
        assert ring == sorted(ring)

    @pytest.mark.parametrize("ring", [-1, 6])
    def test_out_of_range_ring(self, ring: int) -> None:
        with pytest.raises(ValueError):
            coordinates_in_ring(ring)

    def test_up_to_ring_is_center_outward(self) -> None:
        coords = coordinates_up_to_ring(2)
        assert len(coords) == 25
        assert coords[0] == Coordinate(0, 0)
        assert [ring_of(c) for c in coords] == sorted(ring_of(c) for c in coords)

    def test_all_coordinates(self) -> None:
        assert len(all_coordinates()) == 121


class TestParsing:
    def test_parse_key(self) -> None:
        assert parse_coordinate("-2,3") == Coordinate(-2, 3)

    def test_parse_tolerates_spaces(self) -> None:
        assert parse_coordinate(" 1 , -1 ") == Coordinate(1, -1)

    def test_key_roundtrip(self) -> None:
        assert Coordinate(4, -5).key == "4,-5"
        assert str(Coordinate(0, 0)) == "0,0"

    @pytest.mark.parametrize("value", ["6,0", "0,-6", "a,b", "1", "1,2,3", "", "1.5,2"])
    def test_invalid_strings(self, value: str) -> None:
        with pytest.raises(InvalidCoordinateError):
            parse_coordinate(value)

    def test_invalid_coordinate_is_validation_error(self) -> None:
        with pytest.raises(ValidationError):
            Coordinate(0, 9)

    def test_rejects_non_integers(self) -> None:
        with pytest.raises(InvalidCoordinateError):
            Coordinate(1.0, 0)  # type: ignore[arg-type]

    def test_is_valid_coordinate(self) -> None:
        assert is_valid_coordinate("5,-5")
        assert not is_valid_coordinate("5,6")
        assert not is_valid_coordinate(None)


class TestAdjacency:
    def test_interior_has_four_neighbours(self) -> None:
        assert adjacent_coordinates("0,0") == [
            Coordinate(0, 1),
            Coordinate(0, -1),
            Coordinate(-1, 0),
            Coordinate(1, 0),
        ]

    def test_corner_is_clipped(self) -> None:
        assert set(adjacent_coordinates("5,5")) == {Coordinate(5, 4), Coordinate(4, 5)}

    def test_edge_is_clipped(self) -> None:
        assert len(adjacent_coordinates("-5,0")) == 3


class TestCompletedRings:
    def test_empty(self) -> None:
        assert completed_rings({}) == 0

    def test_counts_leading_complete_rings(self) -> None:
        keys = {c.key for c in coordinates_up_to_ring(2)}
        assert completed_rings(keys) == 3

    def test_gap_stops_count(self) -> None:
        keys = {c.key for c in coordinates_up_to_ring(3)} - {"0,1"}
        assert completed_rings(keys) == 1
