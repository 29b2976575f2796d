import asyncio
import inspect
import logging
import threading
import uuid
from dataclasses import dataclass
from typing import Any, Callable, Optional
from runledger.core.errors import JobNotFoundError
from runledger.core.hashing import stable_input_hash
from runledger.models import Run, RUNNING, SUCCESS, ERROR, CANCELLED
from runledger.services.artifacts import ArtifactsService
from runledger.services.context import (
    CancellationToken,
    JobContext,
    ProgressCallback,
    RunLogger,
    create_job_context,
)
from runledger.services.logs import LogsService
from runledger.services.runs import RunsService
from runledger.services.workspace import WorkspaceService

logger = logging.getLogger(__name__)


def new_trace_id() -> str:
    return uuid.uuid4().hex


@dataclass
class JobDefinition:
    """A named unit of work.

    Attributes:
        key: Unique registry key, e.g. 'hello-world:greet'.
        run: ``run(ctx, input)``. Coroutine functions run on the event loop;
            plain functions run in a worker thread.
        max_run_duration_ms: Wall-clock limit in milliseconds. ``None`` or
            ``0`` disables the timeout.
    """
    key: str
    run: Callable[[JobContext, Any], Any]
    max_run_duration_ms: Optional[int] = None


@dataclass
class _LiveRun:
    job_key: str
    trace_id: str
    token: CancellationToken
    loop: asyncio.AbstractEventLoop
    timer: Optional[asyncio.TimerHandle] = None


class JobsService:
    """Job registry and executor driving each run to exactly one terminal status.

    The executor acts as a supervisor: for every live run it holds the
    cancellation token and the timeout timer handle. A run settles through
    whichever of {body settles, ``cancel``, timeout} reaches the executor
    first. Every path claims the live handle under a lock before touching the
    run row, so the other two paths find nothing to claim and become no-ops.
    The stored status is checked again before writing, so a run finished by
    other means is never overwritten.
    """
    def __init__(
        self,
        runs: RunsService,
        logs: LogsService,
        artifacts: ArtifactsService,
        workspace: WorkspaceService,
        is_shutdown: Callable[[], bool] = lambda: False
    ):
        self.runs = runs
        self.logs = logs
        self.artifacts = artifacts
        self.workspace = workspace
        self._is_shutdown = is_shutdown
        self._registry: dict[str, JobDefinition] = {}
        self._live: dict[str, _LiveRun] = {}
        self._tasks: dict[str, asyncio.Task] = {}
        self._lock = threading.Lock()

    # Registry

    def register(self, job_def: JobDefinition) -> None:
        if job_def.key in self._registry:
            logger.warning(f"Replacing job definition for {job_def.key}")
        self._registry[job_def.key] = job_def

    def is_registered(self, job_key: str) -> bool:
        return job_key in self._registry

    def list_registered(self) -> list[str]:
        return list(self._registry.keys())

    def active_runs(self) -> list[str]:
        """Returns the ids of runs the executor still supervises.

        Handles of runs finished outside the executor (``runs.finish_run``,
        ``history.fail_orphaned_runs``) are dropped here and their tokens
        signalled, so a body that never settles does not stay listed.
        """
        self._release_finished()
        with self._lock:
            return list(self._live.keys())

    # Execution

    def run(
        self,
        job_key: str,
        input: Any = None,
        *,
        trace_id: Optional[str] = None,
        on_progress: Optional[ProgressCallback] = None
    ) -> str:
        """Starts a run of ``job_key`` and returns its id without waiting for it.

        Must be called from within a running event loop; the job body is
        spawned as an independent task on that loop.

        Args:
            job_key: Registered job key.
            input: JSON-serializable job input.
            trace_id: Correlation token; generated when omitted.
            on_progress: Receives whatever the body reports via ``ctx.progress``.

        Returns:
            The new run id. The run is ``running`` at this point.

        Raises:
            JobNotFoundError: If no job is registered under ``job_key``.
                No run row is created.
            InvalidInputError: If ``input`` is not made of JSON values.
                No run row is created.
        """
        job_def = self._registry.get(job_key)
        if job_def is None:
            raise JobNotFoundError(job_key)
        loop = asyncio.get_running_loop()

        trace_id = trace_id or new_trace_id()
        input_hash = stable_input_hash(input)
        run_id = self.runs.start_run(trace_id)
        token = CancellationToken()

        run_logger = RunLogger(self.logs.append_log, run_id, trace_id)

        def write_artifact(path: str, content: str):
            return self.artifacts.write_artifact(
                run_id=run_id,
                trace_id=trace_id,
                path=path,
                content=content,
                job_key=job_key,
                input_hash=input_hash,
            )

        ctx = create_job_context(run_id, run_logger, self.workspace, write_artifact, token, on_progress)

        live = _LiveRun(job_key=job_key, trace_id=trace_id, token=token, loop=loop)
        with self._lock:
            self._live[run_id] = live

        duration_ms = job_def.max_run_duration_ms
        if duration_ms and duration_ms > 0:
            live.timer = loop.call_later(duration_ms / 1000, self._on_timeout, run_id, duration_ms)

        task = loop.create_task(self._execute(run_id, job_def, ctx, input), name=f"run:{run_id}")
        self._tasks[run_id] = task
        task.add_done_callback(lambda _t: self._tasks.pop(run_id, None))

        logger.info(f"Started run {run_id} of {job_key} (trace {trace_id})")
        return run_id

    async def _execute(self, run_id: str, job_def: JobDefinition, ctx: JobContext, input: Any) -> None:
        try:
            if inspect.iscoroutinefunction(job_def.run):
                await job_def.run(ctx, input)
            else:
                result = await asyncio.to_thread(job_def.run, ctx, input)
                if inspect.isawaitable(result):
                    await result
        except asyncio.CancelledError:
            self._settle(run_id, CANCELLED)
            raise
        except Exception:
            logger.exception(f"Job {job_def.key} failed in run {run_id}")
            self._settle(run_id, ERROR)
        else:
            self._settle(run_id, SUCCESS)

    def cancel(self, run_id: str) -> bool:
        """Signals a live run's token and finishes it as ``cancelled``.

        The body is expected to notice the token and stop; whatever it does
        afterwards no longer affects the run's status.

        Returns:
            True if a live run was cancelled, False for terminal or unknown ids.
        """
        live = self._claim(run_id)
        if live is None:
            return False
        live.token.cancel("cancelled")
        self._finish(run_id, CANCELLED)
        return True

    async def join(self, run_id: str, timeout: Optional[float] = None) -> Optional[Run]:
        """Waits for a run's body to settle (up to ``timeout`` seconds) and returns its row."""
        task = self._tasks.get(run_id)
        if task is not None:
            await asyncio.wait({task}, timeout=timeout)
        return self.runs.get_run(run_id)

    def shutdown(self) -> None:
        """Signals every live run and drops all handles. Their rows stay ``running``."""
        with self._lock:
            live_runs = list(self._live.items())
            self._live.clear()
        for run_id, live in live_runs:
            self._cancel_timer(live)
            live.token.cancel("shutdown")
            logger.warning(f"Abandoning run {run_id} of {live.job_key} at shutdown")

    # Settlement

    def _claim(self, run_id: str) -> Optional[_LiveRun]:
        with self._lock:
            live = self._live.pop(run_id, None)
        if live is not None:
            self._cancel_timer(live)
        return live

    def _cancel_timer(self, live: _LiveRun) -> None:
        timer, live.timer = live.timer, None
        if timer is None:
            return
        try:
            running = asyncio.get_running_loop()
        except RuntimeError:
            running = None
        if running is live.loop:
            timer.cancel()
        elif not live.loop.is_closed():
            live.loop.call_soon_threadsafe(timer.cancel)

    def _release_finished(self) -> None:
        with self._lock:
            candidates = list(self._live.keys())
        for run_id in candidates:
            if self.runs.get_status(run_id) == RUNNING:
                continue
            live = self._claim(run_id)
            if live is not None:
                live.token.cancel("finished")
                logger.info(f"Released run {run_id} of {live.job_key}: finished outside the executor")

    def _may_finish(self, run_id: str) -> bool:
        if self._is_shutdown():
            return False
        return self.runs.get_status(run_id) == RUNNING

    def _finish(self, run_id: str, status: str) -> bool:
        if not self._may_finish(run_id):
            return False
        self.runs.finish_run(run_id, status)
        logger.info(f"Run {run_id} finished with status {status}")
        return True

    def _settle(self, run_id: str, status: str) -> bool:
        live = self._claim(run_id)
        if live is None:
            return False
        return self._finish(run_id, status)

    def _on_timeout(self, run_id: str, duration_ms: int) -> None:
        with self._lock:
            live = self._live.pop(run_id, None)
        if live is None:
            return
        # Timer already fired; nothing left to cancel
        live.timer = None
        if not self._may_finish(run_id):
            return
        self.logs.append_log(
            run_id=run_id,
            trace_id=live.trace_id,
            level="error",
            message=f"Job timed out after {duration_ms}ms",
        )
        live.token.cancel("timeout")
        self.runs.finish_run(run_id, ERROR)
        logger.warning(f"Run {run_id} of {live.job_key} timed out after {duration_ms}ms")
