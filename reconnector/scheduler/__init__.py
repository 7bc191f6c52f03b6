"""Fixed-interval scheduler hosting reconnector jobs."""

from reconnector.scheduler.interval_scheduler import IntervalScheduler
from reconnector.scheduler.job_stats import JobStats

__all__ = ["IntervalScheduler", "JobStats"]
