"""Defines the `Job` interface and the `TickContext` passed on each tick."""

import datetime
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class TickContext:
    """Execution context for one scheduled invocation of a job.

    Attributes:
        job_id: Identity of the job under which the tick fired.
        tick_number: 1-based count of ticks fired for this job, including
            ticks fired by hand through `IntervalScheduler.trigger`.
        scheduled_time: When the tick was due (UTC).
        fire_time: When the tick was actually handed to a worker (UTC).
        previous_fire_time: `fire_time` of the prior tick, if any.
    """

    job_id: str
    tick_number: int
    scheduled_time: datetime.datetime
    fire_time: datetime.datetime
    previous_fire_time: Optional[datetime.datetime] = None


class Job(ABC):
    """A unit of work fired by `IntervalScheduler`.

    Subclasses that touch shared state without locking should set
    `disallow_concurrent_execution` to True. The scheduler then skips any tick
    that fires while a previous execution under the same job id is running.
    """

    disallow_concurrent_execution: bool = False

    @abstractmethod
    def execute(self, context: Optional[TickContext]) -> None:
        """Runs one tick of this job.

        Args:
            context: Details of the tick, or None when invoked outside of a
                scheduler.
        """
