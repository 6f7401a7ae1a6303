"""In-process scheduler for periodic maintenance jobs.

Single-process deployments run the maintenance jobs (usage counter resets,
approval expiry, binding code purge) here instead of Celery Beat. Each job
runs on its own daemon thread and sleeps on a shared stop event, so stop()
returns promptly.

Jobs either repeat on a fixed interval or follow a calendar rule. The usage
resets use the same wall-clock times as the beat schedule (daily at 00:00
UTC, monthly on the 1st at 00:05 UTC) so they do not drift with uptime.
"""

import threading
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, List, Optional

from ..config import get_settings
from ..observability.logging_config import get_logger

logger = get_logger(__name__)

MAX_JOBS = 16

MONTHLY_RESET_OFFSET = timedelta(minutes=5)


def next_utc_midnight(now: datetime) -> datetime:
    """First 00:00 UTC strictly after `now`."""
    today = now.astimezone(timezone.utc).replace(hour=0, minute=0, second=0, microsecond=0)
    return today + timedelta(days=1)


def next_month_start(now: datetime, offset: timedelta = MONTHLY_RESET_OFFSET) -> datetime:
    """First `1st of the month 00:00 UTC + offset` strictly after `now`."""
    now = now.astimezone(timezone.utc)
    this_month = now.replace(day=1, hour=0, minute=0, second=0, microsecond=0) + offset
    if this_month > now:
        return this_month
    if now.month == 12:
        following = now.replace(year=now.year + 1, month=1, day=1, hour=0, minute=0, second=0, microsecond=0)
    else:
        following = now.replace(month=now.month + 1, day=1, hour=0, minute=0, second=0, microsecond=0)
    return following + offset


@dataclass(frozen=True)
class ScheduledJob:
    task_id: str
    handler: Callable[[], object]
    interval: Optional[float] = None  # seconds
    next_run: Optional[Callable[[datetime], datetime]] = None

    def seconds_until_next_run(self, now: datetime) -> float:
        if self.next_run is None:
            return self.interval
        return max((self.next_run(now) - now).total_seconds(), 0.0)


class Scheduler:
    """Owns a bounded set of interval and calendar jobs.

    Usage:
        scheduler = Scheduler()
        scheduler.add("approvals.expire_stale", 300, run_expire_stale)
        scheduler.add_calendar("capabilities.reset_daily_usage", next_utc_midnight, run_daily_usage_reset)
        scheduler.start()
        ...
        scheduler.stop()
    """

    def __init__(self, max_jobs: int = MAX_JOBS, clock: Optional[Callable[[], datetime]] = None):
        self.max_jobs = max_jobs
        self.clock = clock or (lambda: datetime.now(timezone.utc))
        self._jobs: Dict[str, ScheduledJob] = {}
        self._threads: List[threading.Thread] = []
        self._stop = threading.Event()

    @property
    def jobs(self) -> List[ScheduledJob]:
        return list(self._jobs.values())

    @property
    def running(self) -> bool:
        return any(thread.is_alive() for thread in self._threads)

    def _register(self, job: ScheduledJob) -> ScheduledJob:
        if self._threads:
            raise RuntimeError("Cannot add jobs to a started scheduler")
        if job.task_id in self._jobs:
            raise ValueError(f"Job {job.task_id} already registered")
        if len(self._jobs) >= self.max_jobs:
            raise ValueError(f"Scheduler holds at most {self.max_jobs} jobs")
        self._jobs[job.task_id] = job
        return job

    def add(self, task_id: str, interval: float, handler: Callable[[], object]) -> ScheduledJob:
        """Register a job repeating every `interval` seconds.

        Raises:
            ValueError: Duplicate task_id, non-positive interval, or the
                scheduler is full
            RuntimeError: Scheduler already started
        """
        if interval <= 0:
            raise ValueError("interval must be positive")
        return self._register(ScheduledJob(task_id=task_id, handler=handler, interval=interval))

    def add_calendar(
        self,
        task_id: str,
        next_run: Callable[[datetime], datetime],
        handler: Callable[[], object],
    ) -> ScheduledJob:
        """Register a job run at the times produced by next_run(now)."""
        return self._register(ScheduledJob(task_id=task_id, handler=handler, next_run=next_run))

    def run_job(self, task_id: str) -> bool:
        """Run one job now. Failures are logged; returns False on failure."""
        job = self._jobs[task_id]
        try:
            job.handler()
        except Exception:
            logger.exception(f"Scheduled job {task_id} failed")
            return False
        return True

    def _loop(self, job: ScheduledJob) -> None:
        while not self._stop.wait(job.seconds_until_next_run(self.clock())):
            self.run_job(job.task_id)

    def start(self) -> None:
        if self._threads:
            return
        self._stop.clear()
        for job in self._jobs.values():
            thread = threading.Thread(target=self._loop, args=(job,), name=f"scheduler-{job.task_id}", daemon=True)
            thread.start()
            self._threads.append(thread)
        logger.info(f"Scheduler started with {len(self._jobs)} jobs")

    def stop(self, timeout: Optional[float] = 5.0) -> None:
        self._stop.set()
        for thread in self._threads:
            thread.join(timeout=timeout)
        self._threads = []
        logger.info("Scheduler stopped")


def build_default_scheduler() -> Scheduler:
    """Scheduler preloaded with the maintenance jobs."""
    from ..approvals.tasks import run_expire_stale
    from ..capabilities.tasks import run_daily_usage_reset, run_monthly_usage_reset
    from ..workspace.tasks import run_binding_code_purge

    settings = get_settings()
    scheduler = Scheduler()
    scheduler.add_calendar("capabilities.reset_daily_usage", next_utc_midnight, run_daily_usage_reset)
    scheduler.add_calendar("capabilities.reset_monthly_usage", next_month_start, run_monthly_usage_reset)
    scheduler.add("approvals.expire_stale", settings.APPROVAL_SWEEP_INTERVAL_SECONDS, run_expire_stale)
    scheduler.add("workspace.purge_binding_codes", settings.BINDING_CODE_PURGE_INTERVAL_SECONDS, run_binding_code_purge)
    return scheduler
