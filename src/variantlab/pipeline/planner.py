"""Turn a feature's inputs and cache snapshot into a GenerationPlan.

- Grid: one wave per ring, center outward; cells are independent.
- Bridge: one wave per round; each task names its two neighbour keys.
- Filters: one single-task wave per chain step, halting on failure.

Only uncached keys become tasks.
"""

from __future__ import annotations

from functools import partial
from typing import TYPE_CHECKING

from variantlab.filters.chain import calculate_generation_plan, enabled_layers
from variantlab.pipeline.tasks import GenerationPlan, GenerationTask
from variantlab.prompts.builders import (
    build_bridge_prompt,
    build_filter_prompt,
    build_grid_prompt,
)
from variantlab.spaces.bridge import (
    ROUNDS,
    dependencies_of,
    dependency_closure,
    positions_for_round,
    round_of,
)
from variantlab.spaces.coordinates import (
    MAX_RING,
    adjacent_coordinates,
    coordinates_in_ring,
    parse_coordinate,
)

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence

    from variantlab.filters.definitions import FilterId, FilterLayer
    from variantlab.session.models import Adjectives
    from variantlab.spaces.coordinates import Coordinate


def _grid_prompt(
    text: str, coordinate: Coordinate, adjectives: Adjectives, _inputs: Mapping[str, str]
) -> str:
    return build_grid_prompt(text, coordinate, adjectives)


def _bridge_prompt(left_key: str, right_key: str, inputs: Mapping[str, str]) -> str:
    return build_bridge_prompt(inputs[left_key], inputs[right_key])


def _filter_prompt(
    filter_id: FilterId, intensity: int, previous_key: str, inputs: Mapping[str, str]
) -> str:
    return build_filter_prompt(inputs[previous_key], filter_id, intensity)


def _grid_task(
    text: str, coordinate: Coordinate, adjectives: Adjectives, label: str
) -> GenerationTask:
    return GenerationTask(
        key=coordinate.key,
        build_prompt=partial(_grid_prompt, text, coordinate, adjectives),
        label=label,
    )


def plan_grid(
    text: str,
    adjectives: Adjectives,
    cache: Mapping[str, str],
    max_ring: int = MAX_RING,
) -> GenerationPlan:
    """Plan every uncached coordinate of rings 0..max_ring, one wave per ring."""
    plan = GenerationPlan(feature="grid")
    for ring in range(max_ring + 1):
        wave = [
            _grid_task(text, coord, adjectives, f"ring {ring}")
            for coord in coordinates_in_ring(ring)
            if coord.key not in cache
        ]
        if wave:
            plan.waves.append(wave)
    return plan


def plan_grid_on_demand(
    coordinate: Coordinate | str,
    text: str,
    adjectives: Adjectives,
    cache: Mapping[str, str],
    *,
    prefetch: bool = True,
) -> GenerationPlan:
    """Plan one requested cell first, then its uncached orthogonal neighbours."""
    coord = parse_coordinate(coordinate)
    plan = GenerationPlan(feature="grid")
    if coord.key not in cache:
        plan.waves.append([_grid_task(text, coord, adjectives, "requested")])
    if prefetch:
        neighbours = [
            _grid_task(text, n, adjectives, "prefetch")
            for n in adjacent_coordinates(coord)
            if n.key not in cache
        ]
        if neighbours:
            plan.waves.append(neighbours)
    return plan


def _bridge_task(position: int, cache: Mapping[str, str]) -> GenerationTask:
    left, right = (str(p) for p in dependencies_of(position))
    return GenerationTask(
        key=str(position),
        build_prompt=partial(_bridge_prompt, left, right),
        inputs={left: cache.get(left), right: cache.get(right)},
        label=f"round {round_of(position)}",
    )


def plan_bridge(cache: Mapping[str, str]) -> GenerationPlan:
    """Plan every uncached midpoint, one wave per round (1 to 4)."""
    plan = GenerationPlan(feature="bridge")
    for round_number in ROUNDS:
        wave = [
            _bridge_task(position, cache)
            for position in positions_for_round(round_number)
            if str(position) not in cache
        ]
        if wave:
            plan.waves.append(wave)
    return plan


def plan_bridge_position(position: int, cache: Mapping[str, str]) -> GenerationPlan:
    """Plan one position plus any uncached positions it transitively needs."""
    plan = GenerationPlan(feature="bridge")
    needed = [p for p in dependency_closure(position) if str(p) not in cache]
    for round_number in ROUNDS:
        wave = [_bridge_task(p, cache) for p in needed if round_of(p) == round_number]
        if wave:
            plan.waves.append(wave)
    return plan


def plan_filter_chain(
    layers: Sequence[FilterLayer], cache: Mapping[str, str]
) -> GenerationPlan:
    """Plan the uncached steps of a filter stack.

    Args:
        layers: The full stack in visual order; disabled layers are skipped.
        cache: Snapshot of the filter session cache.
    """
    plan = GenerationPlan(feature="filters", halt_on_failure=True)
    steps = calculate_generation_plan(enabled_layers(layers), cache)
    for number, step in enumerate(steps, start=1):
        plan.waves.append(
            [
                GenerationTask(
                    key=step.cache_key,
                    build_prompt=partial(
                        _filter_prompt, step.filter_id, step.intensity, step.previous_key
                    ),
                    inputs={step.previous_key: step.input_text},
                    label=f"step {number}",
                )
            ]
        )
    return plan
