"""Configuration for the periodic reconnect job."""

from dataclasses import dataclass

DEFAULT_JOB_ID = "reconnect"


@dataclass(frozen=True)
class ReconnectJobConfig:
    """Settings used by `ReconnectSupervisor` to schedule its reconnect task.

    Attributes:
        job_id: Identity of the job in the scheduler. The non-overlap
            guarantee applies per job id.
        interval_seconds: Time between consecutive ticks. Must be positive.
        initial_delay_seconds: Time between starting the scheduler and the
            first tick. Zero fires the first tick immediately.
        max_workers: Size of the worker pool used to run ticks. Must be at
            least 1.
    """

    job_id: str = DEFAULT_JOB_ID
    interval_seconds: float = 60.0
    initial_delay_seconds: float = 0.0
    max_workers: int = 2

    def __post_init__(self) -> None:
        if not isinstance(self.job_id, str) or not self.job_id:
            raise ValueError(
                f"job_id must be a non-empty string, got {self.job_id!r}."
            )
        if self.interval_seconds <= 0:
            raise ValueError(
                f"interval_seconds must be positive, got {self.interval_seconds}."
            )
        if self.initial_delay_seconds < 0:
            raise ValueError(
                "initial_delay_seconds must be non-negative, got "
                f"{self.initial_delay_seconds}."
            )
        if self.max_workers < 1:
            raise ValueError(
                f"max_workers must be at least 1, got {self.max_workers}."
            )
