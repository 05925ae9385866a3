"""Prompt templates and builders."""

from variantlab.prompts.builders import (
    DISTANCE_WORDS,
    build_bridge_prompt,
    build_filter_prompt,
    build_grid_prompt,
)
from variantlab.prompts.loader import (
    PromptLoader,
    PromptTemplate,
    TemplateNotFoundError,
    TemplateParseError,
    substitute,
)

__all__ = [
    "DISTANCE_WORDS",
    "PromptLoader",
    "PromptTemplate",
    "TemplateNotFoundError",
    "TemplateParseError",
    "build_bridge_prompt",
    "build_filter_prompt",
    "build_grid_prompt",
    "substitute",
]
