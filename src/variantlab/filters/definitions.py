"""Filter catalogue and the FilterLayer record."""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum

from variantlab.errors import InvalidIntensityError, UnknownFilterError


class FilterId(str, Enum):
    """The ten transform kinds a layer can apply."""

    SIMPLIFY = "simplify"
    FORMALIZE = "formalize"
    HUMOR = "humor"
    ELABORATE = "elaborate"
    CONCISE = "concise"
    DRAMATIZE = "dramatize"
    CASUAL = "casual"
    TECHNICAL = "technical"
    EMPATHETIC = "empathetic"
    PERSUASIVE = "persuasive"

    def __str__(self) -> str:
        return self.value


VALID_INTENSITIES = (25, 50, 75, 100)

INTENSITY_WORDS: dict[int, str] = {
    25: "slightly",
    50: "moderately",
    75: "strongly",
    100: "extremely",
}


@dataclass(frozen=True)
class FilterDefinition:
    """Display metadata for one filter kind."""

    id: FilterId
    name: str
    description: str
    default_intensity: int = 50


AVAILABLE_FILTERS: dict[FilterId, FilterDefinition] = {
    d.id: d
    for d in (
        FilterDefinition(FilterId.SIMPLIFY, "Simplify", "Make clearer and more direct"),
        FilterDefinition(FilterId.FORMALIZE, "Formalize", "Use sophisticated vocabulary"),
        FilterDefinition(FilterId.HUMOR, "Add Humor", "Add wit and playfulness"),
        FilterDefinition(FilterId.ELABORATE, "Elaborate", "Add detail and examples"),
        FilterDefinition(FilterId.CONCISE, "Make Concise", "Reduce length, keep message"),
        FilterDefinition(FilterId.DRAMATIZE, "Dramatize", "Heighten emotional intensity"),
        FilterDefinition(FilterId.CASUAL, "Make Casual", "Use conversational tone"),
        FilterDefinition(FilterId.TECHNICAL, "Make Technical", "Use precise, specialized language"),
        FilterDefinition(FilterId.EMPATHETIC, "Add Empathy", "Show understanding and compassion"),
        FilterDefinition(FilterId.PERSUASIVE, "Make Persuasive", "Add compelling arguments"),
    )
}


def parse_filter_id(value: str | FilterId) -> FilterId:
    """Coerce a string to a FilterId.

    Raises:
        UnknownFilterError: If the value names no known filter.
    """
    if isinstance(value, FilterId):
        return value
    try:
        return FilterId(value)
    except ValueError as e:
        raise UnknownFilterError(value, [f.value for f in FilterId]) from e


def validate_intensity(value: object) -> int:
    """Return ``value`` if it is 25, 50, 75 or 100.

    Raises:
        InvalidIntensityError: For anything else, including 0 and > 100.
    """
    if isinstance(value, bool) or not isinstance(value, int) or value not in VALID_INTENSITIES:
        raise InvalidIntensityError(value)
    return value


@dataclass(frozen=True)
class FilterLayer:
    """One entry of a filter stack.

    Layers are kept in visual order (index 0 is the top, most recently
    applied). Processing runs bottom to top.

    Attributes:
        filter_id: Transform kind.
        intensity: 25, 50, 75 or 100.
        enabled: Disabled layers are skipped entirely.
    """

    filter_id: FilterId
    intensity: int = 50
    enabled: bool = True

    def __post_init__(self) -> None:
        object.__setattr__(self, "filter_id", parse_filter_id(self.filter_id))
        validate_intensity(self.intensity)

    @property
    def definition(self) -> FilterDefinition:
        return AVAILABLE_FILTERS[self.filter_id]

    def with_intensity(self, intensity: int) -> FilterLayer:
        return replace(self, intensity=intensity)

    def with_enabled(self, enabled: bool) -> FilterLayer:
        return replace(self, enabled=enabled)
