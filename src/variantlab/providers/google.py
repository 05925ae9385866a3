"""Google Gemini generateContent API generator."""

from __future__ import annotations

import os

import httpx

from variantlab.providers.base import (
    GenerationResult,
    ProviderConfigError,
    ProviderConnectionError,
    ProviderError,
    ProviderOverloadedError,
    SafetyBlockedError,
    TokenLimitExceededError,
)
from variantlab.providers.model_info import get_model_profile

GEMINI_API_ROOT = "https://generativelanguage.googleapis.com/v1beta/models"


class GeminiGenerator:
    """Text generator backed by the Gemini generateContent endpoint."""

    def __init__(
        self,
        api_key: str | None = None,
        timeout: float = 60.0,
        api_root: str = GEMINI_API_ROOT,
    ) -> None:
        """Initialize the generator.

        Args:
            api_key: API key. Defaults to the GOOGLE_API_KEY env var.
            timeout: Per-call timeout in seconds.
            api_root: Base URL for model endpoints.

        Raises:
            ProviderConfigError: If no API key is available.
        """
        self.api_key = api_key or os.getenv("GOOGLE_API_KEY")
        if not self.api_key:
            raise ProviderConfigError("google", "Google API key is not configured")
        self.api_root = api_root
        self._client = httpx.AsyncClient(timeout=timeout)

    async def generate(self, prompt: str, model_id: str) -> GenerationResult:
        """Generate text for a single prompt.

        Raises:
            ProviderConnectionError: If the API can't be reached or times out.
            ProviderOverloadedError: On 429/503 responses.
            TokenLimitExceededError: If the candidate stopped at MAX_TOKENS.
            SafetyBlockedError: If the candidate was blocked for safety.
            ProviderError: For other API errors or malformed responses.
        """
        profile = get_model_profile(model_id)
        url = f"{self.api_root}/{profile.api_model}:generateContent"
        payload = {
            "contents": [{"parts": [{"text": prompt}]}],
            "generationConfig": {
                "maxOutputTokens": profile.max_output_tokens,
                "temperature": 0.7,
                "candidateCount": 1,
                "topK": 40,
                "topP": 0.95,
            },
        }

        try:
            response = await self._client.post(url, json=payload, params={"key": self.api_key})
        except httpx.TimeoutException as e:
            raise ProviderConnectionError("google", f"Request timed out: {e}") from e
        except httpx.NetworkError as e:
            raise ProviderConnectionError("google", f"Failed to connect: {e}") from e

        if response.status_code != 200:
            message = _error_message(response)
            if response.status_code in (429, 503):
                raise ProviderOverloadedError("google", f"Overloaded: {message}")
            raise ProviderError("google", message)

        try:
            data = response.json()
        except ValueError as e:
            raise ProviderError("google", f"Invalid JSON response: {e}") from e

        candidates = data.get("candidates") or []
        if not candidates:
            raise ProviderError("google", "Invalid response from Gemini API")

        candidate = candidates[0]
        finish_reason = candidate.get("finishReason")
        if finish_reason == "MAX_TOKENS":
            raise TokenLimitExceededError(
                "google",
                "Gemini API hit token limit. Try shorter text or simpler transformations.",
            )
        if finish_reason == "SAFETY":
            raise SafetyBlockedError("google", "Gemini API blocked the content for safety reasons.")

        parts = (candidate.get("content") or {}).get("parts") or []
        if not parts or not parts[0].get("text"):
            raise ProviderError(
                "google",
                "Gemini API returned no text content "
                f"(finish reason: {finish_reason or 'unknown'})",
            )

        usage = data.get("usageMetadata") or {}
        return GenerationResult(
            text=parts[0]["text"].strip(),
            model=model_id,
            input_tokens=usage.get("promptTokenCount"),
            output_tokens=usage.get("candidatesTokenCount"),
        )

    async def close(self) -> None:
        """Close the HTTP client."""
        await self._client.aclose()

    async def __aenter__(self) -> GeminiGenerator:
        """Enter async context."""
        return self

    async def __aexit__(self, *_: object) -> None:
        """Exit async context and close client."""
        await self.close()


def _error_message(response: httpx.Response) -> str:
    try:
        data = response.json()
    except ValueError:
        return f"Gemini API error ({response.status_code}): {response.text[:200]}"
    if isinstance(data, dict):
        error = data.get("error")
        if isinstance(error, dict) and error.get("message"):
            return str(error["message"])
        if data.get("message"):
            return str(data["message"])
    return f"Gemini API error ({response.status_code})"
