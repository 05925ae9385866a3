"""Bridge position space.

Positions 0 and 10 are anchors (the user's two texts). Each derived
position 1-9 is the blend of its two nearest already-known neighbors, so
the positions are produced by recursive midpoint subdivision in four
rounds: {5}, {2, 7}, {1, 3, 6, 8}, {4, 9}. A position's dependencies always
come from an earlier round, so generating rounds in order never reads a
missing input.
"""

from __future__ import annotations

from collections.abc import Collection

from variantlab.errors import InvalidPositionError

LEFT_ANCHOR = 0
RIGHT_ANCHOR = 10
ANCHORS = (LEFT_ANCHOR, RIGHT_ANCHOR)
ALL_POSITIONS = tuple(range(LEFT_ANCHOR, RIGHT_ANCHOR + 1))

ROUND_POSITIONS: dict[int, tuple[int, ...]] = {
    1: (5,),  # center
    2: (2, 7),  # quarters
    3: (1, 3, 6, 8),  # eighths
    4: (4, 9),  # final gaps
}
ROUNDS = tuple(ROUND_POSITIONS)

DEPENDENCIES: dict[int, tuple[int, int]] = {
    5: (0, 10),
    2: (0, 5),
    7: (5, 10),
    1: (0, 2),
    3: (2, 5),
    6: (5, 7),
    8: (7, 10),
    4: (3, 5),
    9: (8, 10),
}

_ROUND_OF = {pos: rnd for rnd, positions in ROUND_POSITIONS.items() for pos in positions}


def _check_position(position: object) -> int:
    if isinstance(position, bool) or not isinstance(position, int):
        raise InvalidPositionError(position, "0-10")
    if position not in ALL_POSITIONS:
        raise InvalidPositionError(position, "0-10")
    return position


def positions_for_round(round_number: int) -> list[int]:
    """Return the positions generated in a round (1-4); empty for other values."""
    return list(ROUND_POSITIONS.get(round_number, ()))


def dependencies_of(position: int) -> tuple[int, int]:
    """Return the (left, right) positions a derived position blends.

    Raises:
        InvalidPositionError: If position is not in 1-9.
    """
    if isinstance(position, bool) or position not in DEPENDENCIES:
        raise InvalidPositionError(position)
    return DEPENDENCIES[position]


def is_anchor(position: int) -> bool:
    return _check_position(position) in ANCHORS


def is_generable(position: int, available: Collection[int]) -> bool:
    """Return True iff both dependencies of ``position`` are in ``available``.

    Anchors and unknown positions are never generable.
    """
    if position not in DEPENDENCIES:
        return False
    left, right = DEPENDENCIES[position]
    return left in available and right in available


def round_of(position: int) -> int:
    """Return the generation round (1-4), or 0 for anchors.

    Raises:
        InvalidPositionError: If position is outside 0-10.
    """
    return _ROUND_OF.get(_check_position(position), 0)


def generation_order() -> list[int]:
    """Return derived positions in a valid generation order."""
    return [pos for rnd in ROUNDS for pos in ROUND_POSITIONS[rnd]]


def next_generable_positions(available: Collection[int]) -> list[int]:
    """Return positions not yet available whose dependencies both are."""
    return [
        pos
        for pos in generation_order()
        if pos not in available and is_generable(pos, available)
    ]


def total_positions_up_to_round(round_number: int) -> int:
    """Return how many derived positions exist after rounds 1..round_number."""
    return sum(len(ROUND_POSITIONS[r]) for r in ROUNDS if r <= round_number)


def dependency_closure(position: int) -> list[int]:
    """Return every derived position needed to produce ``position``.

    The result includes ``position`` itself and is in generation order.

    Raises:
        InvalidPositionError: If position is not in 1-9.
    """
    needed: set[int] = set()
    stack = [position]
    dependencies_of(position)
    while stack:
        current = stack.pop()
        if current in ANCHORS or current in needed:
            continue
        needed.add(current)
        stack.extend(DEPENDENCIES[current])
    return [pos for pos in generation_order() if pos in needed]
