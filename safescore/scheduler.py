"""
Scheduler module for automated settlement and cache warm-up.

This module provides scheduling functionality using APScheduler to settle
pending predictions and pre-fetch standings at configurable intervals. It
handles execution safety, overlap prevention, and graceful shutdown.
"""

import logging
import threading
from datetime import datetime, timezone
from typing import Any, Callable, Optional

import pytz
from apscheduler.events import EVENT_JOB_ERROR, EVENT_JOB_EXECUTED
from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger

from safescore.config import Config

# Configure module logger
logger = logging.getLogger(__name__)

SETTLE_JOB_ID = "settle_job"
WARM_JOB_ID = "warm_cache_job"


class Scheduler:
    """
    Scheduler for periodic settlement and standings warm-up.

    Both jobs share one execution lock, so a slow settlement run and a
    warm-up never hit the rate-limited API at the same time.
    """

    def __init__(self):
        """Initialize the scheduler."""
        self.scheduler: Optional[BackgroundScheduler] = None
        self.jobs: dict[str, Callable[[], Any]] = {}
        self.intervals: dict[str, int] = {}
        self.is_running = False
        self._execution_lock = threading.Lock()

    def start(
        self,
        settle_function: Callable[[], Any],
        warm_function: Optional[Callable[[], Any]] = None,
        settle_interval_hours: Optional[int] = None,
        warm_interval_hours: Optional[int] = None
    ) -> bool:
        """
        Start the scheduler.

        Args:
            settle_function: Callable that settles pending predictions
            warm_function: Optional callable that warms the standings cache
            settle_interval_hours: Hours between settlement runs. If None, uses Config.SETTLE_INTERVAL_HOURS
            warm_interval_hours: Hours between warm-ups. If None, uses Config.WARM_INTERVAL_HOURS

        Returns:
            True if scheduler started successfully, False otherwise
        """
        if self.is_running:
            logger.warning("Scheduler is already running")
            return False

        if not callable(settle_function) or (warm_function is not None and not callable(warm_function)):
            logger.error("Scheduled job functions must be callable")
            return False

        if settle_interval_hours is None:
            settle_interval_hours = Config.SETTLE_INTERVAL_HOURS
        if warm_interval_hours is None:
            warm_interval_hours = Config.WARM_INTERVAL_HOURS

        if settle_interval_hours < 1 or warm_interval_hours < 1:
            logger.error(
                f"Invalid intervals: settle={settle_interval_hours}, warm={warm_interval_hours}. Must be >= 1"
            )
            return False

        self.jobs = {SETTLE_JOB_ID: settle_function}
        self.intervals = {SETTLE_JOB_ID: settle_interval_hours}
        if warm_function is not None:
            self.jobs[WARM_JOB_ID] = warm_function
            self.intervals[WARM_JOB_ID] = warm_interval_hours

        try:
            # Create scheduler with timezone support
            tz = pytz.timezone(Config.REPORT_TIMEZONE)
            self.scheduler = BackgroundScheduler(timezone=tz)

            self.scheduler.add_listener(
                self._on_job_executed,
                EVENT_JOB_EXECUTED | EVENT_JOB_ERROR
            )

            for job_id, hours in self.intervals.items():
                self.scheduler.add_job(
                    func=self._safe_execute,
                    args=[job_id],
                    trigger=IntervalTrigger(hours=hours),
                    id=job_id,
                    name=job_id.replace("_", " ").title(),
                    replace_existing=True,
                    max_instances=1  # Prevent overlapping runs
                )
                logger.info(f"Scheduled {job_id} every {hours} hour(s)")

            self.scheduler.start()
            self.is_running = True

            logger.info("Scheduler started")
            return True

        except pytz.UnknownTimeZoneError as e:
            logger.error(f"Failed to start scheduler, unknown timezone: {e}")
            self.is_running = False
            return False

    def stop(self, wait: bool = True) -> bool:
        """
        Stop the scheduler gracefully.

        Args:
            wait: Whether to wait for running jobs to complete

        Returns:
            True if scheduler stopped successfully, False otherwise
        """
        if not self.is_running or not self.scheduler:
            logger.warning("Scheduler is not running")
            return False

        logger.info("Stopping scheduler...")
        self.scheduler.shutdown(wait=wait)

        self.is_running = False
        self.scheduler = None

        logger.info("Scheduler stopped successfully")
        return True

    def run_now(self, job_id: str) -> None:
        """Execute a registered job immediately in the calling thread."""
        self._safe_execute(job_id)

    def _safe_execute(self, job_id: str) -> None:
        """
        Execute a job with overlap prevention.

        Errors are logged and swallowed so one failing run does not
        unschedule the job.
        """
        if not self._execution_lock.acquire(blocking=False):
            logger.warning(f"{job_id} skipped: previous run still in progress")
            return

        start_time = datetime.now(timezone.utc)

        try:
            logger.info("=" * 80)
            logger.info(f"Scheduled {job_id} started at {start_time.isoformat()}")

            job = self.jobs.get(job_id)
            if job is None:
                logger.error(f"No function registered for {job_id}")
                return

            result = job()

            duration = (datetime.now(timezone.utc) - start_time).total_seconds()
            logger.info(f"{job_id} completed in {duration:.2f} seconds: {result}")
            logger.info("=" * 80)

        except KeyboardInterrupt:
            duration = (datetime.now(timezone.utc) - start_time).total_seconds()
            logger.warning(f"{job_id} interrupted by user after {duration:.2f} seconds")
            raise

        except Exception as e:
            duration = (datetime.now(timezone.utc) - start_time).total_seconds()
            logger.error(f"{job_id} failed after {duration:.2f} seconds: {e}", exc_info=True)
            logger.info("=" * 80)

        finally:
            self._execution_lock.release()

    def _on_job_executed(self, event) -> None:
        """Log job execution status for monitoring."""
        if event.exception:
            logger.error(f"Job {event.job_id} raised an exception: {event.exception}")
        else:
            logger.debug(f"Job {event.job_id} executed successfully")

    def get_next_run_time(self, job_id: str = SETTLE_JOB_ID) -> Optional[datetime]:
        if not self.is_running or not self.scheduler:
            return None

        job = self.scheduler.get_job(job_id)
        return job.next_run_time if job else None

    def is_job_running(self) -> bool:
        return self._execution_lock.locked()

    def get_status(self) -> dict:
        """
        Get current scheduler status.

        Returns:
            Dictionary with scheduler status information
        """
        status = {
            "is_running": self.is_running,
            "jobs": sorted(self.jobs),
            "job_running": self.is_job_running(),
            "intervals": dict(self.intervals) if self.is_running else {},
            "next_run_times": {},
        }

        if self.is_running:
            for job_id in self.jobs:
                next_run = self.get_next_run_time(job_id)
                if next_run:
                    status["next_run_times"][job_id] = next_run.isoformat()

        return status


# Global scheduler instance
_scheduler_instance: Optional[Scheduler] = None


def start_scheduler(
    settle_callable: Callable[[], Any],
    warm_callable: Optional[Callable[[], Any]] = None,
    settle_interval_hours: Optional[int] = None,
    warm_interval_hours: Optional[int] = None
) -> bool:
    """
    Start the global scheduler instance.

    Returns:
        True if scheduler started successfully, False otherwise
    """
    global _scheduler_instance

    if _scheduler_instance is None:
        _scheduler_instance = Scheduler()

    return _scheduler_instance.start(
        settle_callable,
        warm_callable,
        settle_interval_hours=settle_interval_hours,
        warm_interval_hours=warm_interval_hours,
    )


def stop_scheduler(wait: bool = True) -> bool:
    """Stop the global scheduler instance."""
    if _scheduler_instance is None:
        logger.warning("Scheduler instance does not exist")
        return False

    return _scheduler_instance.stop(wait)


def get_scheduler() -> Optional[Scheduler]:
    return _scheduler_instance


def get_scheduler_status() -> dict:
    """
    Get status of the global scheduler instance.

    Returns:
        Dictionary with scheduler status information
    """
    if _scheduler_instance is None:
        return {
            "is_running": False,
            "jobs": [],
            "job_running": False,
            "intervals": {},
            "next_run_times": {},
        }

    return _scheduler_instance.get_status()
