"""Base protocol and types for text generators."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol, runtime_checkable


@dataclass(frozen=True)
class GenerationResult:
    """Result of a single generation call.

    Attributes:
        text: Generated text, stripped of surrounding whitespace.
        model: Model identifier that produced the text.
        input_tokens: Prompt tokens, or None if the provider didn't report them.
        output_tokens: Completion tokens, or None if not reported.
    """

    text: str
    model: str
    input_tokens: int | None = None
    output_tokens: int | None = None

    @property
    def tokens_used(self) -> int:
        """Total tokens, counting unreported values as zero."""
        return (self.input_tokens or 0) + (self.output_tokens or 0)


@runtime_checkable
class TextGenerator(Protocol):
    """Protocol for text generators.

    A generator turns one prompt into one piece of text using the model
    named by ``model_id`` (one of the keys of ``KNOWN_MODELS``).
    """

    async def generate(self, prompt: str, model_id: str) -> GenerationResult:
        """Generate text for a prompt.

        Raises:
            ProviderError: On transient failures (retryable).
            ProviderConfigError: If credentials for the provider are absent.
            SafetyBlockedError: If the provider refused the content.
            TokenLimitExceededError: If the output hit the token limit.
        """
        ...


class ProviderError(Exception):
    """Base exception for provider errors."""

    retryable = True

    def __init__(self, provider: str, message: str) -> None:
        self.provider = provider
        self.message = message
        super().__init__(f"[{provider}] {message}")


class ProviderConnectionError(ProviderError):
    """Raised when the provider can't be reached or the call timed out."""

    pass


class ProviderOverloadedError(ProviderError):
    """Raised when the provider signals overload or rate limiting."""

    pass


class ProviderConfigError(ProviderError):
    """Raised when credentials for the selected provider are absent."""

    retryable = False


class SafetyBlockedError(ProviderError):
    """Raised when the provider blocked the content for safety reasons."""

    retryable = False


class TokenLimitExceededError(ProviderError):
    """Raised when the response was cut off by the output token limit."""

    retryable = False
