import logging
from pathlib import Path
from typing import Optional
from runledger.core.database import Store
from runledger.services import (
    WorkspaceService,
    RunsService,
    LogsService,
    ArtifactsService,
    JobsService,
    TokensService,
    ValidationService,
    HistoryService,
)
from runledger.services.tokens import resolve_tokens_path
from runledger.services.workspace import RESERVED_DIR

logger = logging.getLogger(__name__)

DB_FILENAME = "runledger.sqlite"


class Ledger:
    """One job execution and provenance ledger bound to one workspace.

    Wires the store and the services together and exposes them as
    ``workspace``, ``runs``, ``logs``, ``artifacts``, ``jobs``, ``tokens``,
    ``validation`` and ``history``. Hosts construct one ledger per workspace
    and hand it to module ``init`` functions that register jobs.

    ``shutdown`` is the single teardown point. Runs still in flight are
    signalled and abandoned; their rows stay ``running`` until
    ``history.fail_orphaned_runs`` is called by a later process.
    """
    def __init__(
        self,
        workspace_root: str | Path,
        db_path: Optional[str | Path] = None,
        tokens_path: Optional[str | Path] = None
    ):
        self.workspace = WorkspaceService(workspace_root)
        tokens_rel = resolve_tokens_path(self.workspace.root, tokens_path)
        self.workspace.init_workspace()

        self.db_path = Path(db_path) if db_path else self.workspace.root / RESERVED_DIR / DB_FILENAME
        self.store = Store(self.db_path)
        self._shut_down = False

        self.runs = RunsService(self.store)
        self.logs = LogsService(self.store)
        self.artifacts = ArtifactsService(self.store, self.workspace)
        self.jobs = JobsService(self.runs, self.logs, self.artifacts, self.workspace, lambda: self._shut_down)
        self.tokens = TokensService(self.workspace, tokens_rel)
        self.validation = ValidationService()
        self.history = HistoryService(self.store, self.workspace, self.logs)
        logger.info(f"Ledger opened for workspace {self.workspace.root}")

    @property
    def is_shut_down(self) -> bool:
        return self._shut_down

    def shutdown(self) -> None:
        if self._shut_down:
            return
        self._shut_down = True
        self.jobs.shutdown()
        self.logs.clear_subscriptions()
        self.store.close()
        logger.info(f"Ledger for workspace {self.workspace.root} shut down")

    def __enter__(self) -> "Ledger":
        return self

    def __exit__(self, *exc_info) -> None:
        self.shutdown()


def create_ledger(
    workspace_root: str | Path,
    db_path: Optional[str | Path] = None,
    tokens_path: Optional[str | Path] = None
) -> Ledger:
    return Ledger(workspace_root, db_path=db_path, tokens_path=tokens_path)
