"""Shared lifecycle for the three feature controllers.

A controller owns one session (loaded from and saved to a SessionStore),
its variant cache, a status board, and at most one background run. Starting
a new run cancels the previous one first; results that arrive after the
cancellation are discarded by the executor.
"""

from __future__ import annotations

import asyncio
from datetime import datetime, timezone
from typing import TYPE_CHECKING, ClassVar, Generic, TypeVar

from pydantic import BaseModel

from variantlab.config import VariantLabConfig
from variantlab.errors import SessionNotInitializedError
from variantlab.observability.logging import get_logger
from variantlab.pipeline.executor import GenerationExecutor
from variantlab.pipeline.tasks import RunHandle, StatusBoard, TaskStatus
from variantlab.session.cache import VariantCache
from variantlab.session.store import save_session

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable, Iterable

    from variantlab.pipeline.retry import RetryPolicy
    from variantlab.pipeline.tasks import GenerationPlan, RunReport
    from variantlab.providers.base import TextGenerator
    from variantlab.session.store import SessionStore

log = get_logger(__name__)

SessionT = TypeVar("SessionT", bound=BaseModel)


class FeatureController(Generic[SessionT]):
    """Base class for GridExplorer, BridgeExplorer and FilterStack.

    Args:
        store: Where the session is persisted.
        generator: TextGenerator used for every call.
        config: Rate-limit and retry settings.
        sleep: Awaitable sleep used for backoff and batch delays.
    """

    namespace: ClassVar[str]

    def __init__(
        self,
        store: SessionStore,
        generator: TextGenerator,
        config: VariantLabConfig | None = None,
        *,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self.store = store
        self.generator = generator
        self.config = config or VariantLabConfig()
        self.statuses = StatusBoard()
        self.last_report: RunReport | None = None
        self._sleep = sleep
        self._session: SessionT | None = None
        self._cache: VariantCache | None = None
        self._handle: RunHandle | None = None
        self._task: asyncio.Task[RunReport] | None = None
        self._side_runs: dict[asyncio.Task[RunReport], RunHandle] = {}

    # -- session ---------------------------------------------------------------

    @property
    def session(self) -> SessionT:
        if self._session is None:
            raise SessionNotInitializedError(self.namespace)
        return self._session

    @property
    def cache(self) -> VariantCache:
        if self._cache is None:
            raise SessionNotInitializedError(self.namespace)
        return self._cache

    @property
    def has_session(self) -> bool:
        return self._session is not None

    def _bind(self, session: SessionT, protected: Iterable[str]) -> SessionT:
        self._session = session
        self._cache = VariantCache(
            session.cache,  # type: ignore[attr-defined]
            session.token_usage,  # type: ignore[attr-defined]
            protected=protected,
            on_change=self.save,
        )
        if not self.is_running:
            self._settle_interrupted()
        self.save()
        return session

    def _settle_interrupted(self) -> None:
        """Mark progress left "generating" by a run that no longer exists as idle."""
        progress = getattr(self._session, "progress", None)
        if progress is not None and progress.status == "generating":
            progress.status = "idle"

    def save(self) -> None:
        """Persist the current session."""
        if self._session is None:
            return
        self._session.last_modified = datetime.now(timezone.utc)  # type: ignore[attr-defined]
        save_session(self.store, self.namespace, self._session)

    def start_over(self) -> None:
        """Cancel any run and drop the session entirely."""
        self.cancel()
        self.store.clear(self.namespace)
        self._session = None
        self._cache = None
        self.statuses.forget()
        log.info("session_cleared", feature=self.namespace)

    # -- status ----------------------------------------------------------------

    def get_status(self, key: str) -> TaskStatus:
        """Return the status of one cache key; cached keys are always complete."""
        if self._cache is not None and key in self._cache:
            return TaskStatus.COMPLETE
        return self.statuses.get(key)

    def get_error(self, key: str) -> str | None:
        return self.statuses.error_for(key)

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    # -- runs ------------------------------------------------------------------

    def _retry_policy(self) -> RetryPolicy:
        raise NotImplementedError

    def _concurrency(self) -> int:
        raise NotImplementedError

    def _batch_delay(self) -> float:
        raise NotImplementedError

    def _executor(self) -> GenerationExecutor:
        return GenerationExecutor(
            self.generator,
            self.cache,
            self.session.model_id,  # type: ignore[attr-defined]
            retry=self._retry_policy(),
            concurrency=self._concurrency(),
            batch_delay=self._batch_delay(),
            statuses=self.statuses,
            sleep=self._sleep,
        )

    def _after_run(self, report: RunReport) -> None:
        """Hook for updating session progress once a run settles."""

    async def _run(self, plan: GenerationPlan, handle: RunHandle) -> RunReport:
        report = await self._executor().run(plan, handle)
        if not handle.cancelled:
            self.last_report = report
            self._after_run(report)
            self.save()
        return report

    def _launch(self, plan: GenerationPlan) -> asyncio.Task[RunReport]:
        """Cancel the current run and start ``plan`` in the background."""
        self._cancel_runs()
        handle = RunHandle()
        self._handle = handle
        self._task = asyncio.create_task(self._run(plan, handle))
        log.debug("run_launched", feature=self.namespace, run_id=handle.run_id, tasks=len(plan))
        return self._task

    async def _run_now(self, plan: GenerationPlan) -> RunReport:
        """Run ``plan`` alongside any background run, awaiting it."""
        handle = RunHandle()
        task = asyncio.create_task(self._executor().run(plan, handle))
        self._side_runs[task] = handle
        try:
            return await task
        finally:
            self._side_runs.pop(task, None)

    def _spawn(self, plan: GenerationPlan) -> asyncio.Task[RunReport]:
        """Start ``plan`` alongside any background run without awaiting it."""
        handle = RunHandle()
        task = asyncio.create_task(self._executor().run(plan, handle))
        self._side_runs[task] = handle
        task.add_done_callback(lambda t: self._side_runs.pop(t, None))
        return task

    def cancel(self) -> None:
        """Cancel the background run and any on-demand runs.

        In-flight calls are abandoned and their keys return to pending. A
        session whose background run was stopped goes back to idle.
        """
        if self._cancel_runs() and self._session is not None:
            self._settle_interrupted()
            self.save()

    def _cancel_runs(self) -> bool:
        """Cancel every run; True if the background run was still going."""
        background_active = self.is_running
        runs = [(handle, task) for task, handle in self._side_runs.items()]
        if self._handle is not None and self._task is not None:
            runs.append((self._handle, self._task))
        for handle, task in runs:
            handle.cancel()
            if not task.done():
                task.cancel()
                log.info("run_cancelled", feature=self.namespace, run_id=handle.run_id)
        self._side_runs.clear()
        return background_active

    async def wait(self) -> RunReport | None:
        """Wait for the background run; None if there is none or it was cancelled."""
        if self._task is None:
            return None
        try:
            return await self._task
        except asyncio.CancelledError:
            if self._task.cancelled():
                return None
            raise

    @staticmethod
    def _raise_for(key: str, report: RunReport) -> None:
        """Re-raise the error behind a failed on-demand key."""
        if report.cancelled:
            raise asyncio.CancelledError(f"generation of {key!r} was cancelled")
        exc = report.errors.get(key)
        if exc is not None:
            raise exc
