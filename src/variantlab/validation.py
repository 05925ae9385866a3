"""Setup input validation.

Every check collects all problems before raising, so a caller can show the
full list at once.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from variantlab.errors import InvalidInputError
from variantlab.observability.logging import get_logger

if TYPE_CHECKING:
    from variantlab.session.models import Adjectives

log = get_logger(__name__)

MIN_TEXT_LENGTH = 50
MAX_TEXT_LENGTH = 1000


def text_problems(text: str | None, label: str = "Text") -> list[str]:
    """Return length problems for one source text."""
    problems = []
    if not text or len(text.strip()) < MIN_TEXT_LENGTH:
        problems.append(f"{label} must be at least {MIN_TEXT_LENGTH} characters")
    elif len(text.strip()) > MAX_TEXT_LENGTH:
        problems.append(f"{label} must be at most {MAX_TEXT_LENGTH} characters")
    return problems


def adjective_problems(adjectives: Adjectives) -> list[str]:
    problems = []
    for axis, value in (
        ("Y-axis positive", adjectives.y_positive),
        ("Y-axis negative", adjectives.y_negative),
        ("X-axis positive", adjectives.x_positive),
        ("X-axis negative", adjectives.x_negative),
    ):
        if not value or not value.strip():
            problems.append(f"{axis} adjective is required")
    return problems


def validate_grid_inputs(text: str, adjectives: Adjectives) -> None:
    """Validate grid setup.

    Raises:
        InvalidInputError: With every problem found.
    """
    problems = text_problems(text) + adjective_problems(adjectives)
    if problems:
        raise InvalidInputError(problems)


def validate_bridge_inputs(text_a: str, text_b: str) -> None:
    """Validate bridge setup.

    Identical texts are accepted; the bridge will simply have no variation.

    Raises:
        InvalidInputError: With every problem found.
    """
    problems = text_problems(text_a, "Text A") + text_problems(text_b, "Text B")
    if problems:
        raise InvalidInputError(problems)
    if text_a.strip() == text_b.strip():
        log.warning("bridge_texts_identical", length=len(text_a.strip()))


def validate_filter_inputs(text: str) -> None:
    """Validate the filter stack's original text.

    Raises:
        InvalidInputError: If the text is too short or too long.
    """
    problems = text_problems(text)
    if problems:
        raise InvalidInputError(problems)
