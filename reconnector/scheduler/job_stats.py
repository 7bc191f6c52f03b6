"""Per-job execution counters kept by `IntervalScheduler`."""

from dataclasses import dataclass


@dataclass(frozen=True)
class JobStats:
    """Snapshot of a job's counters.

    Attributes:
        fired: Ticks handed to the worker pool.
        completed: Executions that returned normally.
        failed: Executions that raised.
        skipped: Ticks dropped because an earlier execution of the same job
            was still in flight.
    """

    fired: int = 0
    completed: int = 0
    failed: int = 0
    skipped: int = 0

    @property
    def in_flight(self) -> int:
        """Executions handed to the pool that have not finished yet."""
        return self.fired - self.completed - self.failed
