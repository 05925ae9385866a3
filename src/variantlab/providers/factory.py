"""Factory for creating text generators.

``RoutingGenerator`` picks the provider-specific generator from the model
profile on every call, creating each provider client lazily so missing
credentials for one provider only fail calls routed to it.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from variantlab.observability.logging import get_logger
from variantlab.providers.anthropic import AnthropicGenerator
from variantlab.providers.base import ProviderError
from variantlab.providers.google import GeminiGenerator
from variantlab.providers.logging_wrapper import LoggingGenerator
from variantlab.providers.model_info import get_model_profile

if TYPE_CHECKING:
    from variantlab.observability.call_log import GenerationCallLogger
    from variantlab.providers.base import GenerationResult

log = get_logger(__name__)

_KNOWN_PROVIDERS = frozenset({"anthropic", "google"})


def create_provider_generator(
    provider_name: str, timeout: float = 60.0
) -> AnthropicGenerator | GeminiGenerator:
    """Create the generator for one provider.

    Args:
        provider_name: "anthropic" or "google".
        timeout: Per-call timeout in seconds.

    Raises:
        ProviderConfigError: If the provider's API key is missing.
        ProviderError: If the provider is unknown.
    """
    provider = provider_name.lower()
    if provider not in _KNOWN_PROVIDERS:
        log.error("provider_unknown", provider=provider)
        raise ProviderError(provider, f"Unknown provider: {provider}")

    if provider == "anthropic":
        generator: AnthropicGenerator | GeminiGenerator = AnthropicGenerator(timeout=timeout)
    else:
        generator = GeminiGenerator(timeout=timeout)

    log.info("generator_created", provider=provider)
    return generator


class RoutingGenerator:
    """TextGenerator that routes each call by the model's provider."""

    def __init__(self, timeout: float = 60.0) -> None:
        self.timeout = timeout
        self._generators: dict[str, AnthropicGenerator | GeminiGenerator] = {}

    async def generate(self, prompt: str, model_id: str) -> GenerationResult:
        """Generate text with the provider that serves ``model_id``."""
        profile = get_model_profile(model_id)
        generator = self._generators.get(profile.provider)
        if generator is None:
            generator = create_provider_generator(profile.provider, timeout=self.timeout)
            self._generators[profile.provider] = generator
        return await generator.generate(prompt, model_id)

    async def close(self) -> None:
        """Close every provider client created so far."""
        for generator in self._generators.values():
            await generator.close()
        self._generators.clear()

    async def __aenter__(self) -> RoutingGenerator:
        """Enter async context."""
        return self

    async def __aexit__(self, *_: object) -> None:
        """Exit async context and close clients."""
        await self.close()


def create_text_generator(
    timeout: float = 60.0,
    call_logger: GenerationCallLogger | None = None,
    feature: str = "",
) -> RoutingGenerator | LoggingGenerator:
    """Create the default generator, optionally wrapped with call logging.

    Args:
        timeout: Per-call timeout in seconds.
        call_logger: When given, every call is appended to its JSONL log.
        feature: Feature name recorded in call log entries.
    """
    generator = RoutingGenerator(timeout=timeout)
    if call_logger is not None and call_logger.enabled:
        return LoggingGenerator(generator, call_logger, feature=feature)
    return generator
