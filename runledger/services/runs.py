from typing import Optional
from sqlmodel import select, desc
from runledger.core.database import Store
from runledger.core.errors import InvalidRunStatusError
from runledger.models import Run, RUNNING, TERMINAL_STATUSES
from runledger.models.run import utcnow

class RunsService:
    """Creates, finishes and reads rows of the run ledger.

    The service itself does not gate transitions: ``finish_run`` on an
    already-terminal run simply overwrites it. The job executor is the layer
    that guarantees each run is finished exactly once.
    """
    def __init__(self, store: Store):
        self.store = store

    def start_run(self, trace_id: Optional[str] = None) -> str:
        """Inserts a new ``running`` row and returns its id.

        Args:
            trace_id: Correlation token. Manually started runs with no
                caller-supplied context store an empty string.

        Returns:
            The generated run id.
        """
        now = utcnow()
        run = Run(trace_id=trace_id or "", status=RUNNING, started_at=now, created_at=now)
        with self.store.session() as session:
            session.add(run)
            session.commit()
            return run.id

    def finish_run(self, run_id: str, status: str) -> None:
        """Marks a run terminal with the given status and ``finished_at = now``.

        Args:
            run_id: The run to finish.
            status: One of 'success', 'error', 'cancelled'.
        """
        if status not in TERMINAL_STATUSES:
            raise InvalidRunStatusError(status)
        with self.store.session() as session:
            run = session.exec(select(Run).where(Run.id == run_id)).first()
            if run is None:
                return
            run.status = status
            run.finished_at = utcnow()
            session.add(run)
            session.commit()

    def get_run(self, run_id: str) -> Optional[Run]:
        with self.store.session() as session:
            return session.exec(select(Run).where(Run.id == run_id)).first()

    def get_status(self, run_id: str) -> Optional[str]:
        with self.store.session() as session:
            return session.exec(select(Run.status).where(Run.id == run_id)).first()

    def list_runs(self, status: Optional[str] = None) -> list[Run]:
        """Lists runs newest-started first, insertion order breaking ties.

        Args:
            status: Optional exact status filter (e.g. 'running', 'error').
        """
        query = select(Run).order_by(desc(Run.started_at), desc(Run.seq))
        if status and status != 'all':
            query = query.where(Run.status == status)
        with self.store.session() as session:
            return list(session.exec(query).all())
