"""Text generator integrations."""

from variantlab.providers.anthropic import AnthropicGenerator
from variantlab.providers.base import (
    GenerationResult,
    ProviderConfigError,
    ProviderConnectionError,
    ProviderError,
    ProviderOverloadedError,
    SafetyBlockedError,
    TextGenerator,
    TokenLimitExceededError,
)
from variantlab.providers.factory import RoutingGenerator, create_text_generator
from variantlab.providers.google import GeminiGenerator
from variantlab.providers.logging_wrapper import LoggingGenerator
from variantlab.providers.model_info import (
    DEFAULT_MODEL_ID,
    KNOWN_MODELS,
    ModelProfile,
    available_models,
    get_model_profile,
)

__all__ = [
    "DEFAULT_MODEL_ID",
    "KNOWN_MODELS",
    "AnthropicGenerator",
    "GeminiGenerator",
    "GenerationResult",
    "LoggingGenerator",
    "ModelProfile",
    "ProviderConfigError",
    "ProviderConnectionError",
    "ProviderError",
    "ProviderOverloadedError",
    "RoutingGenerator",
    "SafetyBlockedError",
    "TextGenerator",
    "TokenLimitExceededError",
    "available_models",
    "create_text_generator",
    "get_model_profile",
]
