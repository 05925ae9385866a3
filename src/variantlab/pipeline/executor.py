"""Execute a GenerationPlan against a TextGenerator.

Waves run in order. Each wave is split into batches of ``concurrency``
tasks that run in parallel, with ``batch_delay`` seconds between batches.
For every task the executor:

1. re-checks the cache and skips the call if the key appeared meanwhile;
2. resolves placeholder inputs from the cache, failing with
   DependencyNotReadyError if one is still missing;
3. calls the generator, retrying retryable failures with backoff;
4. drops the result if the run was cancelled, otherwise writes it to the
   cache and binds it into every queued task waiting on that key.

A failed task never aborts its siblings. Plans with ``halt_on_failure``
(filter chains) stop at the first failed step.
"""

from __future__ import annotations

import asyncio
import time
from typing import TYPE_CHECKING

import structlog

from variantlab.errors import (
    ChainStepFailedError,
    DependencyNotReadyError,
    RetriesExhaustedError,
)
from variantlab.observability.logging import get_logger
from variantlab.pipeline.batching import run_in_batches
from variantlab.pipeline.retry import RetryPolicy
from variantlab.pipeline.tasks import (
    BatchTiming,
    RunHandle,
    RunReport,
    StatusBoard,
    TaskStatus,
)

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from variantlab.pipeline.tasks import GenerationPlan, GenerationTask
    from variantlab.providers.base import GenerationResult, TextGenerator
    from variantlab.session.cache import VariantCache

log = get_logger(__name__)

# Outcomes of a single task, as returned to the batch runner.
_GENERATED = "generated"
_SKIPPED = "skipped"
_DISCARDED = "discarded"


class GenerationExecutor:
    """Runs plans for one feature session.

    Args:
        generator: Produces text for a prompt.
        cache: The session's variant cache (written through on success).
        model_id: Model passed to every generator call.
        retry: Attempts and backoff delays.
        concurrency: Tasks per batch.
        batch_delay: Seconds between consecutive batches.
        statuses: Board updated as tasks move through their states.
        sleep: Awaitable sleep, replaceable in tests.
    """

    def __init__(
        self,
        generator: TextGenerator,
        cache: VariantCache,
        model_id: str,
        *,
        retry: RetryPolicy | None = None,
        concurrency: int = 1,
        batch_delay: float = 0.0,
        statuses: StatusBoard | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self.generator = generator
        self.cache = cache
        self.model_id = model_id
        self.retry = retry or RetryPolicy()
        self.concurrency = max(1, concurrency)
        self.batch_delay = batch_delay
        self.statuses = statuses or StatusBoard()
        self._sleep = sleep

    async def run(self, plan: GenerationPlan, handle: RunHandle | None = None) -> RunReport:
        """Execute ``plan`` until done, halted or cancelled.

        Cancelling the surrounding asyncio task abandons in-flight calls;
        their keys go back to pending. Every log event of the run carries
        ``feature`` and ``run_id``.
        """
        handle = handle or RunHandle()
        with structlog.contextvars.bound_contextvars(feature=plan.feature, run_id=handle.run_id):
            return await self._run_plan(plan, handle)

    async def _run_plan(self, plan: GenerationPlan, handle: RunHandle) -> RunReport:
        report = RunReport(feature=plan.feature, run_id=handle.run_id)
        started = time.monotonic()
        step_numbers = {id(task): n for n, task in enumerate(plan.tasks, start=1)}
        in_flight: set[str] = set()

        log.info(
            "run_started",
            tasks=len(plan),
            waves=len(plan.waves),
            concurrency=self.concurrency,
        )

        try:
            first_batch = True
            for wave_index, wave in enumerate(plan.waves):
                if handle.cancelled:
                    break
                log.debug("wave_started", wave=wave_index, tasks=len(wave))

                async def _run(task: GenerationTask) -> str:
                    return await self._execute_task(plan, task, handle, report, in_flight)

                batches = await run_in_batches(
                    wave,
                    _run,
                    self.concurrency,
                    self.batch_delay,
                    sleep=self._sleep,
                    should_stop=lambda: handle.cancelled,
                    delay_first=not first_batch,
                )
                first_batch = first_batch and not batches

                for batch in batches:
                    report.batch_timings.append(BatchTiming(len(batch.items), batch.seconds))
                    for task, outcome in zip(batch.items, batch.results, strict=True):
                        if outcome == _GENERATED:
                            report.completed.append(task.key)
                        elif outcome == _SKIPPED:
                            report.skipped.append(task.key)
                    for task, exc in batch.errors:
                        self._record_failure(task, exc, report)

                if plan.halt_on_failure and report.failed:
                    failed_task = next(t for t in wave if t.key in report.failed)
                    report.chain_failure = ChainStepFailedError(
                        step=step_numbers[id(failed_task)],
                        key=failed_task.key,
                        reason=report.failed[failed_task.key],
                    )
                    report.halted = [
                        t.key for later in plan.waves[wave_index + 1 :] for t in later
                    ]
                    log.warning(
                        "chain_halted",
                        step=report.chain_failure.step,
                        key=failed_task.key,
                        halted=len(report.halted),
                    )
                    break
        except asyncio.CancelledError:
            handle.cancel()
            raise
        finally:
            if handle.cancelled:
                report.cancelled = True
                reset = self.statuses.reset_generating(sorted(in_flight), run_id=handle.run_id)
                if reset:
                    log.debug("run_cancelled_reset", keys=reset)
            report.duration_seconds = time.monotonic() - started
            log.info("run_complete", **report.summary())

        return report

    async def _execute_task(
        self,
        plan: GenerationPlan,
        task: GenerationTask,
        handle: RunHandle,
        report: RunReport,
        in_flight: set[str],
    ) -> str:
        if task.key in self.cache:
            self.statuses.set(task.key, TaskStatus.COMPLETE)
            log.debug("task_skipped_cached", key=task.key)
            return _SKIPPED
        if handle.cancelled:
            return _DISCARDED

        inputs = self._resolve_inputs(task)
        prompt = task.build_prompt(inputs)

        self.statuses.set(task.key, TaskStatus.GENERATING, run_id=handle.run_id)
        in_flight.add(task.key)
        result = await self._generate_with_retry(task, prompt, handle, report)
        if result is None or handle.cancelled:
            log.debug("late_result_discarded", key=task.key)
            return _DISCARDED

        report.input_tokens += result.input_tokens or 0
        report.output_tokens += result.output_tokens or 0
        self.cache.put(task.key, result.text, result.input_tokens, result.output_tokens)
        self.statuses.set(task.key, TaskStatus.COMPLETE)
        bound = plan.bind(task.key, result.text)
        log.debug("task_complete", key=task.key, label=task.label, bound=bound)
        return _GENERATED

    def _resolve_inputs(self, task: GenerationTask) -> dict[str, str]:
        resolved: dict[str, str] = {}
        for key, text in task.inputs.items():
            if text is None:
                text = self.cache.get(key)
                if text is None:
                    raise DependencyNotReadyError(task.key, key)
                task.inputs[key] = text
            resolved[key] = text
        return resolved

    async def _generate_with_retry(
        self,
        task: GenerationTask,
        prompt: str,
        handle: RunHandle,
        report: RunReport,
    ) -> GenerationResult | None:
        """Call the generator up to ``max_attempts`` times.

        Returns None if the run is cancelled between attempts.

        Raises:
            RetriesExhaustedError: Every attempt failed with a retryable error.
            Exception: Any non-retryable error, unchanged.
        """
        attempts = self.retry.max_attempts
        for attempt in range(attempts):
            if handle.cancelled:
                return None
            report.calls += 1
            try:
                return await self.generator.generate(prompt, self.model_id)
            except Exception as e:
                if not self.retry.is_retryable(e):
                    raise
                if attempt + 1 >= attempts:
                    raise RetriesExhaustedError(task.key, attempts, str(e)) from e
                delay = self.retry.delay_for(attempt, e)
                log.warning(
                    "task_retry",
                    key=task.key,
                    attempt=attempt + 1,
                    delay=delay,
                    error=str(e),
                )
                await self._sleep(delay)
        return None

    def _record_failure(self, task: GenerationTask, exc: Exception, report: RunReport) -> None:
        message = str(exc)
        report.failed[task.key] = message
        report.errors[task.key] = exc
        self.statuses.set(task.key, TaskStatus.ERROR, message)
        log.warning(
            "task_failed",
            key=task.key,
            label=task.label,
            error_type=type(exc).__name__,
            error=message,
        )
