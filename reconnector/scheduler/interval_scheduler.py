"""Defines IntervalScheduler, a fixed-interval job scheduler on a thread pool."""

import dataclasses
import datetime
import logging
import threading
import time
from collections.abc import Callable
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Dict, List, Optional, Tuple

from reconnector.job import Job, TickContext
from reconnector.scheduler.job_stats import JobStats
from reconnector.threading.single_flight_guard import SingleFlightGuard
from reconnector.threading.thread_watcher import ThreadWatcher


class _ScheduledJob:
    """Book-keeping for one registered job. Guarded by the scheduler's lock."""

    def __init__(
        self, job_id: str, job: Job, interval_seconds: float, next_fire: float
    ) -> None:
        self.job_id = job_id
        self.job = job
        self.interval_seconds = interval_seconds
        self.next_fire = next_fire
        self.guard = SingleFlightGuard()
        self.tick_number = 0
        self.previous_fire_time: Optional[datetime.datetime] = None
        self.stats = JobStats()


class IntervalScheduler:
    """
    Fires registered jobs every `interval_seconds` on a shared worker pool.

    A single timer thread decides when ticks are due; executions run on a
    `ThreadPoolExecutor` so any worker may pick up any tick. For jobs that set
    `disallow_concurrent_execution`, a tick that fires while a previous
    execution under the same job id is still running is skipped, not queued.

    Ticks follow the schedule rather than the end of the previous execution.
    If the timer falls more than one interval behind (for example because the
    process was suspended), the late tick fires once and the schedule is
    re-anchored to the current time.

    Exceptions escaping a job are logged, counted in `JobStats.failed` and
    reported to the scheduler's `ThreadWatcher`. They never stop the timer.

    NOTE: A scheduler cannot be restarted once stopped.
    """

    def __init__(
        self,
        watcher: Optional[ThreadWatcher] = None,
        max_workers: int = 2,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Initializes the IntervalScheduler.

        Args:
            watcher: Receives exceptions from the timer thread and from job
                executions. A new `ThreadWatcher` is created if None.
            max_workers: Size of the worker pool.
            clock: Monotonic clock, in seconds, used for scheduling.

        Raises:
            TypeError: If `watcher` is not a `ThreadWatcher`.
            ValueError: If `max_workers` is less than 1.
        """
        if watcher is not None and not isinstance(watcher, ThreadWatcher):
            raise TypeError(
                f"Watcher must be an instance of ThreadWatcher, got {type(watcher).__name__}."
            )
        if max_workers < 1:
            raise ValueError(f"max_workers must be at least 1, got {max_workers}.")

        self.__watcher = watcher if watcher is not None else ThreadWatcher()
        self.__clock = clock
        self.__condition = threading.Condition()
        self.__jobs: Dict[str, _ScheduledJob] = {}
        self.__executor = ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix="reconnector-worker"
        )
        self.__timer_thread: Optional[threading.Thread] = None
        self.__is_running = False
        self.__is_stopped = False

    @property
    def watcher(self) -> ThreadWatcher:
        """The watcher that background errors are reported to."""
        return self.__watcher

    @property
    def is_running(self) -> bool:
        """Whether the timer thread has been started and not yet stopped."""
        with self.__condition:
            return self.__is_running

    @property
    def job_ids(self) -> List[str]:
        """Ids of all registered jobs."""
        with self.__condition:
            return list(self.__jobs)

    def add_job(
        self,
        job_id: str,
        job: Job,
        interval_seconds: float,
        initial_delay_seconds: float = 0.0,
    ) -> None:
        """Registers |job| to fire every |interval_seconds| under |job_id|.

        May be called before or after `start()`.

        Args:
            job_id: Identity of the job. Non-overlap is enforced per id.
            job: The job to run.
            interval_seconds: Time between ticks. Must be positive.
            initial_delay_seconds: Time until the first tick, counted from
                now. Must be non-negative.

        Raises:
            TypeError: If `job` is not a `Job`.
            ValueError: On a duplicate id or invalid timings.
            RuntimeError: If the scheduler has been stopped.
        """
        if not isinstance(job, Job):
            raise TypeError(f"job must be an instance of Job, got {type(job).__name__}.")
        if interval_seconds <= 0:
            raise ValueError(
                f"interval_seconds must be positive, got {interval_seconds}."
            )
        if initial_delay_seconds < 0:
            raise ValueError(
                f"initial_delay_seconds must be non-negative, got {initial_delay_seconds}."
            )

        with self.__condition:
            if self.__is_stopped:
                raise RuntimeError("Cannot add jobs to a stopped IntervalScheduler.")
            if job_id in self.__jobs:
                raise ValueError(f"A job with id '{job_id}' is already registered.")

            self.__jobs[job_id] = _ScheduledJob(
                job_id,
                job,
                interval_seconds,
                self.__clock() + initial_delay_seconds,
            )
            self.__condition.notify_all()

        logging.info(
            "Registered job '%s' (%s) every %.3fs, first tick in %.3fs.",
            job_id,
            type(job).__name__,
            interval_seconds,
            initial_delay_seconds,
        )

    def remove_job(self, job_id: str) -> None:
        """Unregisters |job_id|. An in-flight execution is left to finish.

        Raises:
            KeyError: If no job is registered under |job_id|.
        """
        with self.__condition:
            if job_id not in self.__jobs:
                raise KeyError(f"No job registered with id '{job_id}'.")
            del self.__jobs[job_id]
            self.__condition.notify_all()

        logging.info("Removed job '%s'.", job_id)

    def start(self) -> None:
        """Starts the timer thread.

        Raises:
            RuntimeError: If already started, or if the scheduler was stopped.
        """
        with self.__condition:
            if self.__is_stopped:
                raise RuntimeError("IntervalScheduler cannot be restarted after stop().")
            if self.__is_running:
                raise RuntimeError("IntervalScheduler is already running.")

            self.__is_running = True
            self.__timer_thread = self.__watcher.create_tracked_thread(
                self.__run_timer, name="reconnector-timer"
            )
            timer_thread = self.__timer_thread

        timer_thread.start()
        logging.info("IntervalScheduler started.")

    def stop(self, wait: bool = True) -> None:
        """Stops firing ticks and shuts down the worker pool.

        In-flight executions are not interrupted. Safe to call more than once.

        Args:
            wait: Whether to block until in-flight executions finish.
        """
        with self.__condition:
            if self.__is_stopped:
                return
            self.__is_stopped = True
            self.__is_running = False
            self.__condition.notify_all()
            timer_thread = self.__timer_thread

        if timer_thread is not None and timer_thread is not threading.current_thread():
            timer_thread.join()

        self.__executor.shutdown(wait=wait)
        logging.info("IntervalScheduler stopped.")

    def trigger(self, job_id: str) -> Optional[Future[None]]:
        """Fires one tick of |job_id| now, independent of its schedule.

        The regular schedule is not affected.

        Returns:
            The future of the submitted execution, or None if the tick was
            skipped because an execution of the same job is still in flight.

        Raises:
            KeyError: If no job is registered under |job_id|.
            RuntimeError: If the scheduler has been stopped.
        """
        with self.__condition:
            if self.__is_stopped:
                raise RuntimeError("Cannot trigger jobs on a stopped IntervalScheduler.")
            entry = self.__jobs.get(job_id)
            if entry is None:
                raise KeyError(f"No job registered with id '{job_id}'.")

        return self.__fire(entry, self.__clock())

    def stats(self, job_id: str) -> JobStats:
        """Returns a snapshot of |job_id|'s counters.

        Raises:
            KeyError: If no job is registered under |job_id|.
        """
        with self.__condition:
            entry = self.__jobs.get(job_id)
            if entry is None:
                raise KeyError(f"No job registered with id '{job_id}'.")
            return entry.stats

    def __run_timer(self) -> None:
        while True:
            due: List[Tuple[_ScheduledJob, float]] = []
            with self.__condition:
                if not self.__is_running:
                    return

                now = self.__clock()
                for entry in self.__jobs.values():
                    if entry.next_fire > now:
                        continue
                    due.append((entry, entry.next_fire))
                    entry.next_fire += entry.interval_seconds
                    if entry.next_fire < now:
                        entry.next_fire = now + entry.interval_seconds

                if not due:
                    next_fire = min(
                        (entry.next_fire for entry in self.__jobs.values()),
                        default=None,
                    )
                    timeout = None if next_fire is None else max(0.0, next_fire - now)
                    self.__condition.wait(timeout)
                    continue

            for entry, scheduled_at in due:
                try:
                    self.__fire(entry, scheduled_at)
                except RuntimeError:
                    # Executor rejects submissions once stop() shut it down.
                    with self.__condition:
                        if self.__is_stopped:
                            return
                    raise

    def __fire(
        self, entry: _ScheduledJob, scheduled_at: float
    ) -> Optional[Future[None]]:
        exclusive = entry.job.disallow_concurrent_execution
        if exclusive and not entry.guard.try_acquire():
            with self.__condition:
                entry.stats = dataclasses.replace(
                    entry.stats, skipped=entry.stats.skipped + 1
                )
            logging.info(
                "Skipping tick of job '%s': previous execution still running.",
                entry.job_id,
            )
            return None

        lateness = max(0.0, self.__clock() - scheduled_at)
        fire_time = datetime.datetime.now(datetime.timezone.utc)
        with self.__condition:
            entry.tick_number += 1
            context = TickContext(
                job_id=entry.job_id,
                tick_number=entry.tick_number,
                scheduled_time=fire_time - datetime.timedelta(seconds=lateness),
                fire_time=fire_time,
                previous_fire_time=entry.previous_fire_time,
            )
            entry.previous_fire_time = fire_time
            entry.stats = dataclasses.replace(entry.stats, fired=entry.stats.fired + 1)

        try:
            return self.__executor.submit(self.__execute, entry, context, exclusive)
        except RuntimeError:
            if exclusive:
                entry.guard.release()
            with self.__condition:
                entry.stats = dataclasses.replace(
                    entry.stats, fired=entry.stats.fired - 1
                )
            raise

    def __execute(
        self, entry: _ScheduledJob, context: TickContext, exclusive: bool
    ) -> None:
        try:
            entry.job.execute(context)
        except Exception as e:
            logging.error(
                "Job '%s' raised on tick %d: %r",
                entry.job_id,
                context.tick_number,
                e,
                exc_info=True,
            )
            with self.__condition:
                entry.stats = dataclasses.replace(
                    entry.stats, failed=entry.stats.failed + 1
                )
            self.__watcher.on_exception_seen(e)
            raise
        else:
            with self.__condition:
                entry.stats = dataclasses.replace(
                    entry.stats, completed=entry.stats.completed + 1
                )
        finally:
            if exclusive:
                entry.guard.release()
