"""
Timeout reconciliation scheduler

Periodically moves stale IN_PROGRESS test results to TIMEOUT. A run
that is still going when the next trigger fires makes that trigger a
no-op: runs are skipped, never queued.
"""
import logging
from typing import Optional

from apscheduler.schedulers.background import BackgroundScheduler
from sqlalchemy.orm import sessionmaker

from quizcore.config import settings
from quizcore.utils.resilience import Bulkhead

logger = logging.getLogger(__name__)

JOB_ID = "test_result_timeout_sweep"


class TimeoutReconciliationScheduler:
    """Runs ResultCalculationService.process_timed_out_attempts on an interval"""

    def __init__(
        self,
        session_factory: sessionmaker,
        result_service,
        interval_minutes: Optional[int] = None,
        timeout_minutes: Optional[int] = None
    ):
        self.session_factory = session_factory
        self.result_service = result_service
        self.interval_minutes = interval_minutes or settings.RESULT_CLEANUP_INTERVAL_MINUTES
        self.timeout_minutes = timeout_minutes or settings.RESULT_TIMEOUT_MINUTES
        self.bulkhead = Bulkhead(JOB_ID, max_concurrent=1)
        self._scheduler: Optional[BackgroundScheduler] = None

    def run_once(self) -> Optional[int]:
        """
        One sweep; returns the number of results timed out, or None if
        skipped because another sweep is running or the sweep failed
        """
        if not self.bulkhead.try_acquire():
            logger.info("Previous timeout sweep still running, skipping this run")
            return None

        try:
            logger.info("Running scheduled cleanup for timed out test attempts")
            with self.session_factory() as db:
                return self.result_service.process_timed_out_attempts(db, self.timeout_minutes)
        except Exception as e:
            logger.error(f"Error processing timed out attempts: {str(e)}", exc_info=True)
            return None
        finally:
            self.bulkhead.release()

    def start(self) -> None:
        if self._scheduler and self._scheduler.running:
            logger.info("Timeout scheduler already running")
            return

        self._scheduler = BackgroundScheduler(timezone="UTC")
        self._scheduler.add_job(
            self.run_once,
            trigger="interval",
            minutes=self.interval_minutes,
            id=JOB_ID,
            max_instances=1,
            coalesce=True,
            replace_existing=True
        )
        self._scheduler.start()
        logger.info(
            f"Timeout sweep scheduled every {self.interval_minutes} minutes "
            f"(timeout: {self.timeout_minutes} minutes)"
        )

    def shutdown(self) -> None:
        if self._scheduler and self._scheduler.running:
            self._scheduler.shutdown(wait=False)
            logger.info("Timeout scheduler stopped")
        self._scheduler = None
