import logging
import threading
from typing import Callable
from sqlmodel import select
from runledger.core.database import Store
from runledger.models import LogEntry

logger = logging.getLogger(__name__)

LogHandler = Callable[[LogEntry], None]
Unsubscribe = Callable[[], None]


class _Subscription:
    # Identity-keyed, so subscribing the same handler twice yields two registrations
    __slots__ = ("handler",)

    def __init__(self, handler: LogHandler):
        self.handler = handler


class LogsService:
    """Persists run log lines and fans them out to live subscribers.

    Persistence always happens before fan-out: a subscriber that raises is
    logged and skipped, it can neither lose the row nor block delivery to the
    subscribers registered after it.

    Subscriptions are held per run id (observer pattern), so clearing them at
    shutdown is a bounded operation.
    """
    def __init__(self, store: Store):
        self.store = store
        self._subscriptions: dict[str, list[_Subscription]] = {}
        self._lock = threading.Lock()

    def append_log(self, run_id: str, trace_id: str, level: str, message: str) -> LogEntry:
        """Persists one log line, then notifies the run's subscribers.

        Args:
            run_id: Owning run.
            trace_id: Trace id copied from the owning run.
            level: Free-form severity string ('info', 'warn', 'error', ...).
            message: The log text.

        Returns:
            The persisted entry, including its generated id and timestamp.
        """
        entry = LogEntry(run_id=run_id, trace_id=trace_id or "", level=level, message=message)
        with self.store.session() as session:
            session.add(entry)
            session.commit()

        with self._lock:
            subscribers = list(self._subscriptions.get(run_id, ()))
        for sub in subscribers:
            try:
                sub.handler(entry)
            except Exception:
                logger.exception(f"Log subscriber failed for run {run_id}")
        return entry

    def list_logs(self, run_id: str) -> list[LogEntry]:
        """Returns all persisted log lines for a run in append order."""
        query = select(LogEntry).where(LogEntry.run_id == run_id).order_by(LogEntry.seq)
        with self.store.session() as session:
            return list(session.exec(query).all())

    def subscribe(self, run_id: str, handler: LogHandler) -> Unsubscribe:
        """Registers ``handler`` for entries appended to ``run_id`` from now on.

        Returns:
            A function that removes this registration. Calling it more than
            once is harmless.
        """
        sub = _Subscription(handler)
        with self._lock:
            self._subscriptions.setdefault(run_id, []).append(sub)

        def unsubscribe() -> None:
            with self._lock:
                subs = self._subscriptions.get(run_id)
                if not subs:
                    return
                try:
                    subs.remove(sub)
                except ValueError:
                    return
                if not subs:
                    del self._subscriptions[run_id]

        return unsubscribe

    def subscriber_count(self, run_id: str) -> int:
        with self._lock:
            return len(self._subscriptions.get(run_id, ()))

    def clear_subscriptions(self) -> None:
        """Drops every registration; persisted logs are untouched."""
        with self._lock:
            self._subscriptions.clear()
