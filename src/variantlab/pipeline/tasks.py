"""Generation tasks, plans, per-key status and run reports."""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator, Mapping

    from variantlab.errors import ChainStepFailedError


class TaskStatus(str, Enum):
    """Lifecycle of one cache key: pending -> generating -> complete | error."""

    PENDING = "pending"
    GENERATING = "generating"
    COMPLETE = "complete"
    ERROR = "error"

    def __str__(self) -> str:
        return self.value


@dataclass
class GenerationTask:
    """One cache entry to produce.

    Attributes:
        key: Cache key the result is written to.
        build_prompt: Builds the prompt from resolved input texts.
        inputs: Texts this task derives from, keyed by cache key. A value of
            None is a placeholder, bound when the upstream task completes or
            read from the cache just before the call.
        label: Short description for logs ("ring 2", "round 3", "step 1").
    """

    key: str
    build_prompt: Callable[[Mapping[str, str]], str]
    inputs: dict[str, str | None] = field(default_factory=dict)
    label: str = ""

    @property
    def unresolved(self) -> list[str]:
        return [k for k, v in self.inputs.items() if v is None]


@dataclass
class GenerationPlan:
    """Ordered waves of tasks.

    Tasks inside a wave are independent of each other; a wave starts only
    after the previous wave has been attempted. With ``halt_on_failure`` a
    failed task stops every later wave (filter chains).
    """

    feature: str
    waves: list[list[GenerationTask]] = field(default_factory=list)
    halt_on_failure: bool = False

    @property
    def tasks(self) -> list[GenerationTask]:
        return [task for wave in self.waves for task in wave]

    @property
    def keys(self) -> list[str]:
        return [task.key for task in self.tasks]

    @property
    def is_empty(self) -> bool:
        return not any(self.waves)

    def __len__(self) -> int:
        return sum(len(wave) for wave in self.waves)

    def bind(self, key: str, text: str) -> int:
        """Fill every placeholder input for ``key`` with ``text``.

        Returns:
            Number of tasks patched.
        """
        patched = 0
        for task in self.tasks:
            if key in task.inputs and task.inputs[key] is None:
                task.inputs[key] = text
                patched += 1
        return patched


@dataclass
class RunHandle:
    """Cancellation token for one executor run.

    Results that arrive after ``cancel()`` are discarded instead of being
    written to the cache.
    """

    run_id: str = field(default_factory=lambda: uuid.uuid4().hex[:8])
    cancelled: bool = False

    def cancel(self) -> None:
        self.cancelled = True


class StatusBoard:
    """Per-key task status and last error, owned by one feature session.

    A generating status remembers the run that set it, so a superseded run
    cannot reset a key that a newer run is already generating.
    """

    def __init__(self) -> None:
        self._statuses: dict[str, TaskStatus] = {}
        self._errors: dict[str, str] = {}
        self._owners: dict[str, str] = {}

    def get(self, key: str) -> TaskStatus:
        return self._statuses.get(key, TaskStatus.PENDING)

    def set(
        self,
        key: str,
        status: TaskStatus,
        error: str | None = None,
        *,
        run_id: str | None = None,
    ) -> None:
        self._statuses[key] = status
        if status is TaskStatus.GENERATING and run_id is not None:
            self._owners[key] = run_id
        else:
            self._owners.pop(key, None)
        if status is TaskStatus.ERROR and error is not None:
            self._errors[key] = error
        elif status is not TaskStatus.ERROR:
            self._errors.pop(key, None)

    def owner_of(self, key: str) -> str | None:
        """Run id of the run generating ``key``, if any."""
        return self._owners.get(key)

    def error_for(self, key: str) -> str | None:
        return self._errors.get(key)

    def reset_generating(
        self, keys: list[str] | None = None, *, run_id: str | None = None
    ) -> list[str]:
        """Return in-flight keys to pending (after a cancelled run).

        Only keys still marked generating are reset; ``keys`` limits the
        reset to one run's tasks and ``run_id`` to keys that run still owns.
        """
        candidates = list(self._statuses) if keys is None else keys
        keys = [
            k
            for k in candidates
            if self._statuses.get(k) is TaskStatus.GENERATING
            and (run_id is None or self._owners.get(k) == run_id)
        ]
        for key in keys:
            self._statuses[key] = TaskStatus.PENDING
            self._owners.pop(key, None)
        return keys

    def forget(self, keys: list[str] | None = None) -> None:
        """Drop statuses for ``keys``, or for everything when None."""
        if keys is None:
            self._statuses.clear()
            self._errors.clear()
            self._owners.clear()
            return
        for key in keys:
            self._statuses.pop(key, None)
            self._errors.pop(key, None)
            self._owners.pop(key, None)

    def errored(self) -> list[str]:
        return [k for k, s in self._statuses.items() if s is TaskStatus.ERROR]

    def __iter__(self) -> Iterator[str]:
        return iter(self._statuses)


@dataclass
class BatchTiming:
    size: int
    seconds: float


@dataclass
class RunReport:
    """Outcome of one executor run.

    Attributes:
        feature: "grid", "bridge" or "filters".
        run_id: Id of the RunHandle the run used.
        completed: Keys generated and written during this run.
        skipped: Keys already cached when their turn came.
        failed: Key -> error message for tasks that ended in error.
        errors: Key -> the exception behind each failure.
        halted: Keys never attempted because an earlier chain step failed.
        chain_failure: The failed filter-chain step, if any.
        cancelled: Whether the run was cancelled before finishing.
        calls: Generator calls made, counting retries.
        input_tokens: Prompt tokens across successful calls.
        output_tokens: Completion tokens across successful calls.
        duration_seconds: Wall-clock time of the run.
        batch_timings: One entry per dispatched batch.
    """

    feature: str
    run_id: str = ""
    completed: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)
    failed: dict[str, str] = field(default_factory=dict)
    errors: dict[str, Exception] = field(default_factory=dict, repr=False)
    halted: list[str] = field(default_factory=list)
    chain_failure: ChainStepFailedError | None = None
    cancelled: bool = False
    calls: int = 0
    input_tokens: int = 0
    output_tokens: int = 0
    duration_seconds: float = 0.0
    batch_timings: list[BatchTiming] = field(default_factory=list)

    @property
    def succeeded(self) -> bool:
        return not self.failed and not self.cancelled and self.chain_failure is None

    def summary(self) -> dict[str, object]:
        """Flat dict suitable for a structured log event."""
        return {
            "feature": self.feature,
            "run_id": self.run_id,
            "completed": len(self.completed),
            "skipped": len(self.skipped),
            "failed": len(self.failed),
            "halted": len(self.halted),
            "cancelled": self.cancelled,
            "calls": self.calls,
            "input_tokens": self.input_tokens,
            "output_tokens": self.output_tokens,
            "duration_seconds": round(self.duration_seconds, 3),
            "batches": len(self.batch_timings),
        }
