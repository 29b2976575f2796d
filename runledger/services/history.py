import logging
import shutil
from datetime import timedelta
from typing import Optional
from sqlmodel import select, desc, delete
from runledger.core.database import Store
from runledger.models import Run, LogEntry, Artifact, RUNNING, ERROR
from runledger.models.run import utcnow
from runledger.services.artifacts import ARTIFACTS_DIR
from runledger.services.logs import LogsService
from runledger.services.workspace import WorkspaceService

logger = logging.getLogger(__name__)

INTERRUPTED_MESSAGE = "[SYSTEM] Run interrupted by server restart."


class HistoryService:
    """Maintenance operations over the run ledger: deletion, retention and restart recovery.

    None of this runs as part of normal job execution. Hosts call it
    explicitly (on startup, from the retention scheduler, or on an operator
    request); the executor never deletes anything.
    """
    def __init__(self, store: Store, workspace: WorkspaceService, logs: LogsService):
        self.store = store
        self.workspace = workspace
        self.logs = logs

    def delete_run(self, run_id: str) -> bool:
        """Permanently deletes a terminal run with its logs, artifact rows and files.

        Args:
            run_id: The run to delete.

        Returns:
            True if deleted; False if the run is unknown or still running.
        """
        with self.store.session() as session:
            run = session.exec(select(Run).where(Run.id == run_id)).first()
            if run is None or run.status == RUNNING:
                return False
            self._delete_runs(session, [run_id])
            session.commit()
        self._remove_artifact_dirs([run_id])
        return True

    def apply_retention_policies(self, retention_days: int, max_runs: Optional[int] = None) -> int:
        """Prunes terminal runs by age, then by count (keeping the most recent).

        Why: Prevents the store and the artifacts directory from growing
        indefinitely. Running rows are never touched.

        Args:
            retention_days: Terminal runs started before now minus this many
                days are deleted.
            max_runs: If positive, only this many of the most recent terminal
                runs are kept.

        Returns:
            The number of runs deleted.
        """
        to_delete: set[str] = set()
        with self.store.session() as session:
            terminal = select(Run.id).where(Run.status != RUNNING)

            # 1. Prune by age
            cutoff = utcnow() - timedelta(days=retention_days)
            to_delete.update(session.exec(terminal.where(Run.started_at < cutoff)).all())

            # 2. Prune by count (keep most recent)
            if max_runs and max_runs > 0:
                keep_ids = session.exec(
                    terminal.order_by(desc(Run.started_at), desc(Run.seq)).limit(max_runs)
                ).all()
                to_delete.update(session.exec(terminal.where(Run.id.not_in(keep_ids))).all())

            if to_delete:
                self._delete_runs(session, list(to_delete))
                session.commit()

        self._remove_artifact_dirs(to_delete)
        if to_delete:
            logger.info(f"Retention pruned {len(to_delete)} runs")
        return len(to_delete)

    def fail_orphaned_runs(self) -> int:
        """Force-fails runs left in a 'running' state by a previous process.

        Why: A run still in flight when its process stopped stays 'running'
        forever. Hosts call this at startup, before any job is launched, so
        history reflects that those runs were interrupted.

        Returns:
            The number of runs marked as 'error'.
        """
        with self.store.session() as session:
            orphaned = session.exec(select(Run).where(Run.status == RUNNING)).all()
            now = utcnow()
            for run in orphaned:
                run.status = ERROR
                run.finished_at = now
                session.add(run)
            session.commit()

        for run in orphaned:
            self.logs.append_log(run_id=run.id, trace_id=run.trace_id, level="error", message=INTERRUPTED_MESSAGE)
        if orphaned:
            logger.warning(f"Found {len(orphaned)} orphaned runs, marked as error")
        return len(orphaned)

    @staticmethod
    def _delete_runs(session, run_ids: list[str]) -> None:
        session.exec(delete(LogEntry).where(LogEntry.run_id.in_(run_ids)))
        session.exec(delete(Artifact).where(Artifact.run_id.in_(run_ids)))
        session.exec(delete(Run).where(Run.id.in_(run_ids)))

    def _remove_artifact_dirs(self, run_ids) -> None:
        for run_id in run_ids:
            run_dir = self.workspace.resolve(f"{ARTIFACTS_DIR}/{run_id}")
            if run_dir.exists():
                try:
                    shutil.rmtree(run_dir)
                except OSError as e:
                    logger.error(f"Could not remove artifact directory {run_dir}: {e}")
