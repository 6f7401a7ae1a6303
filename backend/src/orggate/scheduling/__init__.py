"""In-process periodic job scheduler."""

from .scheduler import ScheduledJob, Scheduler, build_default_scheduler

__all__ = ["ScheduledJob", "Scheduler", "build_default_scheduler"]
