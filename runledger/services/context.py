import threading
from dataclasses import dataclass
from typing import Any, Callable, Optional, Union
from runledger.models import Artifact
from runledger.services.workspace import WorkspaceService

Progress = Union[float, dict[str, int]]
ProgressCallback = Callable[[Progress], None]
ArtifactWriter = Callable[[str, str], Artifact]


class CancellationToken:
    """Advisory cancellation signal handed to a job body.

    Backed by a ``threading.Event`` so both coroutine bodies (polling
    ``cancelled``) and plain bodies running in a worker thread (``wait``) can
    observe it. Only the executor calls ``cancel``.
    """
    def __init__(self):
        self._event = threading.Event()
        self.reason: Optional[str] = None

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self, reason: str = "cancelled") -> None:
        if not self._event.is_set():
            self.reason = reason
            self._event.set()

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Blocks until cancelled or ``timeout`` seconds pass; returns ``cancelled``."""
        return self._event.wait(timeout)


class RunLogger:
    """Log writer bound to one run and its trace id."""
    def __init__(self, append: Callable[..., Any], run_id: str, trace_id: str):
        self._append = append
        self.run_id = run_id
        self.trace_id = trace_id

    def __call__(self, level: str, message: str) -> None:
        self._append(run_id=self.run_id, trace_id=self.trace_id, level=level, message=message)

    def debug(self, message: str) -> None:
        self("debug", message)

    def info(self, message: str) -> None:
        self("info", message)

    def warning(self, message: str) -> None:
        self("warn", message)

    def error(self, message: str) -> None:
        self("error", message)


def _no_progress(value: Progress) -> None:
    pass


@dataclass(frozen=True)
class JobContext:
    """Everything a job body can reach: nothing here leads to the store or other runs."""
    run_id: str
    logger: RunLogger
    workspace: WorkspaceService
    write_artifact: ArtifactWriter
    cancel_token: CancellationToken
    progress: ProgressCallback = _no_progress


def create_job_context(
    run_id: str,
    logger: RunLogger,
    workspace: WorkspaceService,
    write_artifact: ArtifactWriter,
    cancel_token: CancellationToken,
    progress: Optional[ProgressCallback] = None
) -> JobContext:
    return JobContext(
        run_id=run_id,
        logger=logger,
        workspace=workspace,
        write_artifact=write_artifact,
        cancel_token=cancel_token,
        progress=progress or _no_progress,
    )
