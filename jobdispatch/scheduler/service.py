"""Scheduler service for the periodic escalation pass."""

import threading
from datetime import datetime, timezone
from typing import Callable, Optional

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger

from jobdispatch.logging import get_logger

logger = get_logger(__name__, component="scheduler")

ESCALATION_JOB_ID = "escalation-pass"


class SchedulerService:
    """
    Wraps APScheduler to run the escalation pass at a fixed interval.

    Uses BackgroundScheduler so the main thread stays free to handle signals
    and coordinate shutdown. ``max_instances=1`` keeps passes from
    overlapping inside one process; the escalation lease covers several
    processes.
    """

    def __init__(
        self,
        pass_callable: Callable[[], object],
        interval_seconds: int,
        shutdown_event: Optional[threading.Event] = None,
    ):
        """
        Initialize the scheduler service.

        Args:
            pass_callable: Function to call on each run (e.g. EscalationScheduler.run_pass)
            interval_seconds: Interval between runs in seconds
            shutdown_event: Optional event to set on shutdown for coordination
        """
        self.pass_callable = pass_callable
        self.interval_seconds = interval_seconds
        self.shutdown_event = shutdown_event

        self.scheduler = BackgroundScheduler(
            job_defaults={
                "max_instances": 1,
                "coalesce": True,
                "misfire_grace_time": interval_seconds,
            },
            timezone=timezone.utc,
        )

    def start(self) -> None:
        """
        Register the escalation job and start the scheduler.

        The first pass runs immediately; later passes follow the interval.
        Calling start on a running scheduler does nothing.
        """
        if self.scheduler.running:
            logger.warning(
                "Scheduler already running; start ignored",
                extra={"event": "scheduler.already_running"},
            )
            return

        trigger = IntervalTrigger(
            seconds=self.interval_seconds,
            timezone=timezone.utc,
        )

        next_run = datetime.now(timezone.utc)
        self.scheduler.add_job(
            func=self._run,
            trigger=trigger,
            id=ESCALATION_JOB_ID,
            name="Escalation pass",
            replace_existing=True,
            next_run_time=next_run,
        )

        self.scheduler.start()

        logger.info(
            f"Scheduler started with interval: {self.interval_seconds} seconds",
            extra={
                "event": "scheduler.started",
                "interval_seconds": self.interval_seconds,
                "next_run_time": next_run.isoformat(),
            },
        )

    def shutdown(self, wait: bool = False) -> None:
        """
        Shutdown the scheduler gracefully.

        Args:
            wait: If True, wait for a running pass to complete before returning
        """
        logger.info(
            "Shutting down scheduler",
            extra={
                "event": "scheduler.stopping",
                "wait_for_jobs": wait,
            },
        )

        if self.scheduler.running:
            self.scheduler.shutdown(wait=wait)

        if self.shutdown_event:
            self.shutdown_event.set()

        logger.info("Scheduler shutdown complete", extra={"event": "scheduler.stopped"})

    def trigger_now(self):
        """Run one pass synchronously in the current thread and return its result."""
        logger.info(
            "Triggering immediate escalation pass",
            extra={"event": "scheduler.trigger_now"},
        )
        return self.pass_callable()

    def is_running(self) -> bool:
        return self.scheduler.running

    def get_next_run_time(self) -> Optional[datetime]:
        """
        Get the next scheduled run time.

        Returns:
            Next run time as a datetime, or None if not scheduled
        """
        job = self.scheduler.get_job(ESCALATION_JOB_ID)
        return job.next_run_time if job else None

    def _run(self) -> None:
        # A failing pass must not unschedule the job
        try:
            self.pass_callable()
        except Exception as e:
            logger.error(
                f"Escalation pass failed: {e}",
                exc_info=True,
                extra={"event": "scheduler.run.failed", "error_type": type(e).__name__},
            )
