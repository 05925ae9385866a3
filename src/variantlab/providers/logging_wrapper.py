"""Logging wrapper for text generators."""

from __future__ import annotations

import time
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from variantlab.observability.call_log import GenerationCallLogger
    from variantlab.providers.base import GenerationResult, TextGenerator


class LoggingGenerator:
    """Wrapper that logs every generator call to a GenerationCallLogger.

    Failed calls are logged with their error and then re-raised.
    """

    def __init__(
        self,
        generator: TextGenerator,
        logger: GenerationCallLogger,
        feature: str = "",
    ) -> None:
        self._generator = generator
        self._logger = logger
        self._feature = feature

    async def generate(self, prompt: str, model_id: str) -> GenerationResult:
        """Generate text and log the call."""
        start_time = time.perf_counter()

        try:
            result = await self._generator.generate(prompt, model_id)
        except Exception as e:
            entry = self._logger.create_entry(
                feature=self._feature,
                model=model_id,
                prompt=prompt,
                text="",
                duration_seconds=time.perf_counter() - start_time,
                error=str(e),
            )
            self._logger.log(entry)
            raise

        entry = self._logger.create_entry(
            feature=self._feature,
            model=result.model,
            prompt=prompt,
            text=result.text,
            duration_seconds=time.perf_counter() - start_time,
            input_tokens=result.input_tokens,
            output_tokens=result.output_tokens,
        )
        self._logger.log(entry)
        return result

    async def close(self) -> None:
        """Close the wrapped generator if it supports closing."""
        if hasattr(self._generator, "close"):
            await self._generator.close()

    async def __aenter__(self) -> LoggingGenerator:
        """Enter async context."""
        return self

    async def __aexit__(self, *_: object) -> None:
        """Exit async context."""
        await self.close()
