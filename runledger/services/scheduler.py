from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger
from typing import Optional
import logging
from runledger.services.history import HistoryService

logger = logging.getLogger(__name__)

RETENTION_JOB_ID = "apply_retention_policies"


class SchedulerService:
    """Runs the host's periodic maintenance with APScheduler.

    Only ledger upkeep is scheduled here (retention pruning). Job runs
    themselves are started on demand and never queued.
    """
    def __init__(self, history: HistoryService, retention_days: int, max_runs: Optional[int], interval_minutes: int):
        self.history = history
        self.retention_days = retention_days
        self.max_runs = max_runs
        self.interval_minutes = interval_minutes
        self.scheduler = AsyncIOScheduler()

    def periodic_retention(self) -> None:
        """Applies retention policies; a failing pass is logged, not raised."""
        logger.info("Scheduler: Applying run retention policies")
        try:
            self.history.apply_retention_policies(self.retention_days, self.max_runs)
        except Exception:
            logger.exception("Scheduler: Retention pass failed")

    def start(self) -> None:
        if not self.scheduler.running:
            self.scheduler.start()
            self.scheduler.add_job(
                self.periodic_retention,
                IntervalTrigger(minutes=self.interval_minutes),
                id=RETENTION_JOB_ID,
                replace_existing=True
            )
            logger.info(f"Scheduler started with retention every {self.interval_minutes} minutes.")

    def shutdown(self) -> None:
        if self.scheduler.running:
            self.scheduler.shutdown(wait=False)
