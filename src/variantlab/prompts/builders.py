"""Prompt construction for the three features."""

from __future__ import annotations

from typing import TYPE_CHECKING

from variantlab.filters.definitions import INTENSITY_WORDS, parse_filter_id, validate_intensity
from variantlab.prompts.loader import PromptLoader, substitute
from variantlab.spaces.coordinates import Coordinate, parse_coordinate

if TYPE_CHECKING:
    from variantlab.filters.definitions import FilterId
    from variantlab.session.models import Adjectives

# Index = |x| or |y| distance from the origin.
DISTANCE_WORDS = ("", "slightly", "moderately", "strongly", "very strongly", "extremely")

# Module-level loader for caching efficiency
_prompt_loader: PromptLoader | None = None


def _get_loader() -> PromptLoader:
    global _prompt_loader
    if _prompt_loader is None:
        _prompt_loader = PromptLoader()
    return _prompt_loader


def _axis_instruction(value: int, positive: str, negative: str) -> str | None:
    if value == 0:
        return None
    direction = positive if value > 0 else negative
    return f"{DISTANCE_WORDS[abs(value)]} more {direction}".strip()


def build_grid_prompt(
    text: str, coordinate: Coordinate | str, adjectives: Adjectives
) -> str:
    """Build the rewrite prompt for one grid cell.

    The y-axis instruction comes first, then x. The origin asks for the
    text back verbatim.
    """
    coord = parse_coordinate(coordinate)
    transformations = [
        part
        for part in (
            _axis_instruction(coord.y, adjectives.y_positive, adjectives.y_negative),
            _axis_instruction(coord.x, adjectives.x_positive, adjectives.x_negative),
        )
        if part
    ]
    if not transformations:
        return substitute(_get_loader().load("grid_center").user, {"text": text})
    return substitute(
        _get_loader().load("grid").user,
        {"text": text, "transformations": " and ".join(transformations)},
    )


def build_bridge_prompt(left: str, right: str) -> str:
    """Build the 50/50 blend prompt for a bridge midpoint."""
    return substitute(_get_loader().load("bridge").user, {"left": left, "right": right})


def build_filter_prompt(text: str, filter_id: FilterId | str, intensity: int) -> str:
    """Build the prompt applying one filter layer to ``text``.

    Raises:
        UnknownFilterError: If ``filter_id`` is not a known filter.
        InvalidIntensityError: If ``intensity`` is not 25, 50, 75 or 100.
    """
    fid = parse_filter_id(filter_id)
    word = INTENSITY_WORDS[validate_intensity(intensity)]
    template = _get_loader().load("filter")
    instruction = substitute(template.instructions[fid.value], {"intensity": word})
    return substitute(template.user, {"instruction": instruction, "text": text})
