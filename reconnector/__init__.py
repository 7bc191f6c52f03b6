"""Reconnector package: keeps a long-lived connection client connected.

A scheduler fires a reconnect task on a fixed interval. Each tick asks the
injected connection client to (re)connect and returns straight away; the
client owns the socket and any retry logic of its own.
"""

from reconnector.config.reconnect_job_config import ReconnectJobConfig
from reconnector.connectable import Connectable
from reconnector.errors import ConnectionNotConfiguredError, ReconnectorError
from reconnector.job import Job, TickContext
from reconnector.scheduler.interval_scheduler import IntervalScheduler
from reconnector.scheduler.job_stats import JobStats
from reconnector.supervisor import ReconnectSupervisor
from reconnector.task.reconnect_task import ReconnectTask

__all__ = [
    "Connectable",
    "ConnectionNotConfiguredError",
    "IntervalScheduler",
    "Job",
    "JobStats",
    "ReconnectJobConfig",
    "ReconnectSupervisor",
    "ReconnectTask",
    "ReconnectorError",
    "TickContext",
]
