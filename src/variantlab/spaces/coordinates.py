"""Grid coordinate space.

The grid is the 11x11 integer plane [-5, 5] x [-5, 5]. Rings group
coordinates by Chebyshev distance from the origin and only set generation
priority (center outward): every cell derives from the original text and
adjectives alone, never from another cell.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass

from variantlab.errors import InvalidCoordinateError

GRID_RADIUS = 5
MAX_RING = GRID_RADIUS
GRID_SIZE = (2 * GRID_RADIUS + 1) ** 2


@dataclass(frozen=True, order=True)
class Coordinate:
    """A point on the grid.

    Attributes:
        x: Horizontal offset in [-5, 5].
        y: Vertical offset in [-5, 5].
    """

    x: int
    y: int

    def __post_init__(self) -> None:
        for value in (self.x, self.y):
            if isinstance(value, bool) or not isinstance(value, int):
                raise InvalidCoordinateError((self.x, self.y), "components must be integers")
            if abs(value) > GRID_RADIUS:
                raise InvalidCoordinateError((self.x, self.y), "components must be in [-5, 5]")

    @property
    def key(self) -> str:
        """Cache key, e.g. ``"-2,3"``."""
        return f"{self.x},{self.y}"

    @property
    def ring(self) -> int:
        return ring_of(self)

    def __str__(self) -> str:
        return self.key


def parse_coordinate(value: str | Coordinate) -> Coordinate:
    """Parse an ``"x,y"`` key into a Coordinate.

    Raises:
        InvalidCoordinateError: If the string is malformed or out of range.
    """
    if isinstance(value, Coordinate):
        return value
    if not isinstance(value, str):
        raise InvalidCoordinateError(value, "expected a string 'x,y'")

    parts = value.split(",")
    if len(parts) != 2:
        raise InvalidCoordinateError(value)
    try:
        x, y = (int(p.strip()) for p in parts)
    except ValueError as e:
        raise InvalidCoordinateError(value, "components must be integers") from e
    return Coordinate(x, y)


def is_valid_coordinate(value: object) -> bool:
    """Return True if ``value`` is a well-formed in-range coordinate key."""
    if not isinstance(value, str):
        return False
    try:
        parse_coordinate(value)
    except InvalidCoordinateError:
        return False
    return True


def ring_of(coordinate: Coordinate | str) -> int:
    """Return the ring number, max(|x|, |y|)."""
    c = parse_coordinate(coordinate)
    return max(abs(c.x), abs(c.y))


def coordinates_in_ring(ring: int) -> list[Coordinate]:
    """Return every coordinate with max(|x|, |y|) == ring.

    Ring 0 is the origin alone; ring n > 0 holds 8n coordinates. Results
    are ordered x-major, y-minor ascending.

    Raises:
        ValueError: If ring is outside 0..5.
    """
    if not 0 <= ring <= MAX_RING:
        raise ValueError(f"ring must be in 0..{MAX_RING}, got {ring}")
    if ring == 0:
        return [Coordinate(0, 0)]

    return [
        Coordinate(x, y)
        for x in range(-ring, ring + 1)
        for y in range(-ring, ring + 1)
        if max(abs(x), abs(y)) == ring
    ]


def coordinates_up_to_ring(max_ring: int) -> list[Coordinate]:
    """Return rings 0..max_ring concatenated in ring order."""
    coords: list[Coordinate] = []
    for ring in range(max_ring + 1):
        coords.extend(coordinates_in_ring(ring))
    return coords


def all_coordinates() -> list[Coordinate]:
    """Return all 121 grid coordinates, center outward."""
    return coordinates_up_to_ring(MAX_RING)


def adjacent_coordinates(coordinate: Coordinate | str) -> list[Coordinate]:
    """Return the in-bounds orthogonal neighbors (up, down, left, right)."""
    c = parse_coordinate(coordinate)
    neighbors = []
    for dx, dy in ((0, 1), (0, -1), (-1, 0), (1, 0)):
        x, y = c.x + dx, c.y + dy
        if abs(x) <= GRID_RADIUS and abs(y) <= GRID_RADIUS:
            neighbors.append(Coordinate(x, y))
    return neighbors


def completed_rings(available: Mapping[str, object] | Iterable[str]) -> int:
    """Count leading rings whose every coordinate key is available."""
    keys = set(available)
    count = 0
    for ring in range(MAX_RING + 1):
        if all(c.key in keys for c in coordinates_in_ring(ring)):
            count += 1
        else:
            break
    return count
