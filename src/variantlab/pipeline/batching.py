"""Bounded-concurrency batch helpers for generator calls.

``gather_bounded`` wraps asyncio.Semaphore to limit concurrent calls and
preserves input order in results. ``run_in_batches`` slices a wave into
batches of that size with a fixed delay between them to smooth the request
rate.
"""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Generic, TypeVar

from variantlab.observability.logging import get_logger

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable, Sequence

log = get_logger(__name__)

T = TypeVar("T")
Item = TypeVar("Item")


def is_connectivity_error(exc: Exception) -> bool:
    """Check if an exception indicates provider connectivity loss.

    Recognises httpx network/timeout errors, Python built-in
    ConnectionError, and ProviderConnectionError. Walks the ``__cause__``
    chain so wrapped errors are also detected.
    """
    import httpx

    from variantlab.providers.base import ProviderConnectionError

    if isinstance(
        exc,
        (
            httpx.NetworkError,  # ConnectError, ReadError, WriteError, CloseError
            httpx.TimeoutException,  # ConnectTimeout, ReadTimeout, PoolTimeout
            ConnectionError,  # Python built-in (Refused, Reset, Aborted)
            ProviderConnectionError,
        ),
    ):
        return True

    cause = exc.__cause__
    if cause is not None and isinstance(cause, Exception):
        return is_connectivity_error(cause)

    return False


async def gather_bounded(
    items: Sequence[Item],
    call_fn: Callable[[Item], Awaitable[T]],
    max_concurrency: int = 2,
) -> tuple[list[T | None], list[tuple[int, Exception]]]:
    """Run ``call_fn`` over ``items`` with bounded parallelism.

    Errors are collected, never raised, so one failure does not cancel its
    siblings. Cancellation of the caller still propagates.

    Returns:
        Tuple of:
            - results: List in input order (None for failed items).
            - errors: List of (index, exception) for failed items.
    """
    if not items:
        return [], []

    semaphore = asyncio.Semaphore(max(1, max_concurrency))
    results: list[T | None] = [None] * len(items)
    errors: list[tuple[int, Exception]] = []

    async def _run_one(idx: int, item: Item) -> None:
        async with semaphore:
            try:
                results[idx] = await call_fn(item)
            except Exception as e:
                errors.append((idx, e))
                log.debug("batch_item_failed", index=idx, error=str(e))

    await asyncio.gather(*(_run_one(i, item) for i, item in enumerate(items)))
    errors.sort(key=lambda pair: pair[0])
    return results, errors


@dataclass
class BatchResult(Generic[Item, T]):
    """One dispatched batch and what came back."""

    items: list[Item]
    results: list[T | None]
    errors: list[tuple[Item, Exception]] = field(default_factory=list)
    seconds: float = 0.0


async def run_in_batches(
    items: Sequence[Item],
    call_fn: Callable[[Item], Awaitable[T]],
    batch_size: int,
    batch_delay: float = 0.0,
    *,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    should_stop: Callable[[], bool] | None = None,
    delay_first: bool = False,
) -> list[BatchResult[Item, T]]:
    """Dispatch ``items`` in consecutive batches of ``batch_size``.

    Each batch runs concurrently and fully settles before the next one
    starts. ``batch_delay`` seconds separate consecutive batches (and
    precede the first one when ``delay_first``). ``should_stop`` is checked
    before every batch.
    """
    size = max(1, batch_size)
    outcomes: list[BatchResult[Item, T]] = []
    for start in range(0, len(items), size):
        if should_stop is not None and should_stop():
            break
        if batch_delay > 0 and (start > 0 or delay_first):
            await sleep(batch_delay)
            if should_stop is not None and should_stop():
                break

        batch = list(items[start : start + size])
        started = time.monotonic()
        results, errors = await gather_bounded(batch, call_fn, max_concurrency=size)
        outcome = BatchResult(
            items=batch,
            results=results,
            errors=[(batch[idx], exc) for idx, exc in errors],
            seconds=time.monotonic() - started,
        )
        outcomes.append(outcome)
        log.debug(
            "batch_complete",
            size=len(batch),
            failed=len(errors),
            seconds=round(outcome.seconds, 3),
        )
    return outcomes
