"""Anthropic Messages API generator."""

from __future__ import annotations

import os

import httpx

from variantlab.providers.base import (
    GenerationResult,
    ProviderConfigError,
    ProviderConnectionError,
    ProviderError,
    ProviderOverloadedError,
)
from variantlab.providers.model_info import get_model_profile

ANTHROPIC_API_URL = "https://api.anthropic.com/v1/messages"
ANTHROPIC_VERSION = "2023-06-01"

# 529 is Anthropic's "overloaded" status
_OVERLOAD_STATUSES = frozenset({429, 529})


class AnthropicGenerator:
    """Text generator backed by the Anthropic Messages API.

    Attributes:
        api_key: API key, from the constructor or ANTHROPIC_API_KEY.
    """

    def __init__(
        self,
        api_key: str | None = None,
        timeout: float = 60.0,
        base_url: str = ANTHROPIC_API_URL,
    ) -> None:
        """Initialize the generator.

        Args:
            api_key: API key. Defaults to the ANTHROPIC_API_KEY env var.
            timeout: Per-call timeout in seconds.
            base_url: Messages endpoint URL.

        Raises:
            ProviderConfigError: If no API key is available.
        """
        self.api_key = api_key or os.getenv("ANTHROPIC_API_KEY")
        if not self.api_key:
            raise ProviderConfigError("anthropic", "Anthropic API key not configured")
        self.base_url = base_url
        self._client = httpx.AsyncClient(timeout=timeout)

    async def generate(self, prompt: str, model_id: str) -> GenerationResult:
        """Generate text for a single user prompt.

        Raises:
            ProviderConnectionError: If the API can't be reached or times out.
            ProviderOverloadedError: If the API reports overload or rate limiting.
            ProviderError: For other API errors.
        """
        profile = get_model_profile(model_id)
        payload = {
            "model": profile.api_model,
            "max_tokens": profile.max_output_tokens,
            "messages": [{"role": "user", "content": prompt}],
        }
        headers = {
            "content-type": "application/json",
            "x-api-key": self.api_key or "",
            "anthropic-version": ANTHROPIC_VERSION,
        }

        try:
            response = await self._client.post(self.base_url, json=payload, headers=headers)
        except httpx.TimeoutException as e:
            raise ProviderConnectionError("anthropic", f"Request timed out: {e}") from e
        except httpx.NetworkError as e:
            raise ProviderConnectionError("anthropic", f"Failed to connect: {e}") from e

        if response.status_code != 200:
            message = _error_message(response)
            if response.status_code in _OVERLOAD_STATUSES or "overloaded" in message.lower():
                raise ProviderOverloadedError("anthropic", f"Overloaded: {message}")
            raise ProviderError(
                "anthropic",
                f"API error (status {response.status_code}): {message}",
            )

        try:
            data = response.json()
        except ValueError as e:
            raise ProviderError("anthropic", f"Invalid JSON response: {e}") from e

        content = data.get("content") or []
        if not content or "text" not in content[0]:
            raise ProviderError("anthropic", "Response contained no text content")

        usage = data.get("usage", {})
        return GenerationResult(
            text=content[0]["text"].strip(),
            model=model_id,
            input_tokens=usage.get("input_tokens"),
            output_tokens=usage.get("output_tokens"),
        )

    async def close(self) -> None:
        """Close the HTTP client."""
        await self._client.aclose()

    async def __aenter__(self) -> AnthropicGenerator:
        """Enter async context."""
        return self

    async def __aexit__(self, *_: object) -> None:
        """Exit async context and close client."""
        await self.close()


def _error_message(response: httpx.Response) -> str:
    try:
        data = response.json()
    except ValueError:
        return response.text[:200]
    error = data.get("error") if isinstance(data, dict) else None
    if isinstance(error, dict):
        if error.get("type") == "overloaded_error":
            return f"Overloaded ({error.get('message', '')})"
        return str(error.get("message") or "Claude API error")
    return "Claude API error"
