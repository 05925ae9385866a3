"""Model profiles: provider routing, limits and rate-limit policy."""

from __future__ import annotations

import os
from dataclasses import dataclass, replace

from variantlab.errors import UnknownModelError


@dataclass(frozen=True)
class ModelProfile:
    """Everything the pipeline needs to know about one selectable model.

    Attributes:
        model_id: Public identifier (e.g. "haiku-4.5").
        provider: Provider name used for routing ("anthropic" or "google").
        api_model: Model name sent to the provider API.
        max_output_tokens: Output token cap sent with every request.
        max_concurrency: Concurrent calls per batch (bridge and on-demand).
        retry_base_delay: Backoff base in seconds for generic failures.
        overload_base_delay: Backoff base in seconds for overload failures.
    """

    model_id: str
    provider: str
    api_model: str
    max_output_tokens: int = 1000
    max_concurrency: int = 1
    retry_base_delay: float = 1.0
    overload_base_delay: float = 3.0


# Providers with tighter rate limits get fewer concurrent calls and longer
# backoff.
KNOWN_MODELS: dict[str, ModelProfile] = {
    "haiku-4.5": ModelProfile(
        model_id="haiku-4.5",
        provider="anthropic",
        api_model="claude-haiku-4-5-20251001",
        max_output_tokens=1000,
        max_concurrency=1,
    ),
    "sonnet-4.5": ModelProfile(
        model_id="sonnet-4.5",
        provider="anthropic",
        api_model="claude-sonnet-4-5-20250929",
        max_output_tokens=1000,
        max_concurrency=2,
    ),
    "gemini-2.5-flash": ModelProfile(
        model_id="gemini-2.5-flash",
        provider="google",
        api_model="gemini-2.5-flash",
        max_output_tokens=8192,
        max_concurrency=4,
        retry_base_delay=0.3,
        overload_base_delay=1.0,
    ),
}

DEFAULT_MODEL_ID = "haiku-4.5"


def get_model_profile(model_id: str) -> ModelProfile:
    """Look up a model profile, applying the concurrency override.

    ``VL_MAX_CONCURRENCY`` overrides the per-model concurrency. Values
    <= 0 clamp to 1; non-integer values are ignored.

    Args:
        model_id: Public model identifier.

    Returns:
        ModelProfile for the model.

    Raises:
        UnknownModelError: If the model is not registered.
    """
    profile = KNOWN_MODELS.get(model_id)
    if profile is None:
        raise UnknownModelError(model_id, sorted(KNOWN_MODELS))

    env_concurrency = os.environ.get("VL_MAX_CONCURRENCY")
    if env_concurrency is not None:
        try:
            max_concurrency = max(1, int(env_concurrency))
        except ValueError:
            return profile
        return replace(profile, max_concurrency=max_concurrency)

    return profile


def available_models() -> list[str]:
    """Return the selectable model ids in registry order."""
    return list(KNOWN_MODELS)
