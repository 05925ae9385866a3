"""Retry policy for generator calls."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import TYPE_CHECKING

from variantlab.pipeline.batching import is_connectivity_error
from variantlab.providers.base import ProviderError, ProviderOverloadedError

if TYPE_CHECKING:
    from variantlab.providers.model_info import ModelProfile


@dataclass(frozen=True)
class RetryPolicy:
    """Exponential backoff: ``base * 2**attempt`` after a failed attempt.

    Attributes:
        max_attempts: Total attempts per task, including the first.
        base_delay: Base in seconds for generic retryable failures.
        overload_base_delay: Base in seconds when the provider is overloaded.
    """

    max_attempts: int = 3
    base_delay: float = 1.0
    overload_base_delay: float = 3.0

    @classmethod
    def from_profile(cls, profile: ModelProfile, max_attempts: int = 3) -> RetryPolicy:
        return cls(
            max_attempts=max_attempts,
            base_delay=profile.retry_base_delay,
            overload_base_delay=profile.overload_base_delay,
        )

    def is_retryable(self, exc: BaseException) -> bool:
        """Transient provider failures, timeouts and dropped connections."""
        if isinstance(exc, ProviderError):
            return exc.retryable
        if isinstance(exc, asyncio.TimeoutError):
            return True
        return isinstance(exc, Exception) and is_connectivity_error(exc)

    def delay_for(self, attempt: int, exc: BaseException) -> float:
        """Seconds to wait after failed attempt number ``attempt`` (0-based)."""
        base = (
            self.overload_base_delay
            if isinstance(exc, ProviderOverloadedError)
            else self.base_delay
        )
        return base * (2**attempt)
