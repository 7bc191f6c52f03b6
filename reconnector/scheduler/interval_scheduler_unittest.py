"""Unit tests for IntervalScheduler."""

import threading
import time
from typing import Callable, List, Optional

import pytest

from reconnector.job import Job, TickContext
from reconnector.scheduler.interval_scheduler import IntervalScheduler
from reconnector.scheduler.job_stats import JobStats
from reconnector.threading.thread_watcher import ThreadWatcher


class JobFailure(Exception):
    pass


class RecordingJob(Job):
    def __init__(self) -> None:
        self.contexts: List[Optional[TickContext]] = []
        self.lock = threading.Lock()

    def execute(self, context: Optional[TickContext]) -> None:
        with self.lock:
            self.contexts.append(context)

    @property
    def count(self) -> int:
        with self.lock:
            return len(self.contexts)


class BlockingJob(Job):
    """Blocks every execution until `release` is set."""

    def __init__(self, exclusive: bool = True) -> None:
        self.disallow_concurrent_execution = exclusive
        self.release = threading.Event()
        self.started = threading.Semaphore(0)
        self.lock = threading.Lock()
        self.calls = 0

    def execute(self, context: Optional[TickContext]) -> None:
        with self.lock:
            self.calls += 1
        self.started.release()
        assert self.release.wait(timeout=10)


class FailingJob(Job):
    def execute(self, context: Optional[TickContext]) -> None:
        raise JobFailure("job exploded")


def wait_for(predicate: Callable[[], bool], timeout: float = 5.0) -> bool:
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.01)
    return predicate()


@pytest.fixture
def scheduler():
    instance = IntervalScheduler(max_workers=4)
    yield instance
    instance.stop(wait=False)


class TestIntervalSchedulerRegistration:

    def test_rejects_non_job(self, scheduler):
        with pytest.raises(TypeError):
            scheduler.add_job("job", object(), 1.0)  # type: ignore[arg-type]

    @pytest.mark.parametrize("interval", [0, -1])
    def test_rejects_non_positive_interval(self, scheduler, interval):
        with pytest.raises(ValueError, match="interval_seconds"):
            scheduler.add_job("job", RecordingJob(), interval)

    def test_rejects_negative_initial_delay(self, scheduler):
        with pytest.raises(ValueError, match="initial_delay_seconds"):
            scheduler.add_job("job", RecordingJob(), 1.0, initial_delay_seconds=-1)

    def test_rejects_duplicate_id(self, scheduler):
        scheduler.add_job("job", RecordingJob(), 1.0)
        with pytest.raises(ValueError, match="already registered"):
            scheduler.add_job("job", RecordingJob(), 1.0)

    def test_remove_job(self, scheduler):
        scheduler.add_job("job", RecordingJob(), 1.0)
        assert scheduler.job_ids == ["job"]

        scheduler.remove_job("job")

        assert scheduler.job_ids == []
        with pytest.raises(KeyError):
            scheduler.stats("job")

    def test_remove_unknown_job(self, scheduler):
        with pytest.raises(KeyError):
            scheduler.remove_job("missing")

    def test_trigger_unknown_job(self, scheduler):
        with pytest.raises(KeyError):
            scheduler.trigger("missing")

    def test_rejects_bad_watcher(self):
        with pytest.raises(TypeError):
            IntervalScheduler(watcher=object())  # type: ignore[arg-type]

    def test_rejects_zero_workers(self):
        with pytest.raises(ValueError):
            IntervalScheduler(max_workers=0)

    def test_uses_given_watcher(self):
        watcher = ThreadWatcher()
        instance = IntervalScheduler(watcher=watcher)
        assert instance.watcher is watcher
        instance.stop()


class TestIntervalSchedulerLifecycle:

    def test_start_twice_raises(self, scheduler):
        scheduler.start()
        assert scheduler.is_running
        with pytest.raises(RuntimeError, match="already running"):
            scheduler.start()

    def test_stop_is_idempotent(self, scheduler):
        scheduler.start()
        scheduler.stop()
        scheduler.stop()
        assert not scheduler.is_running

    def test_stop_without_start(self, scheduler):
        scheduler.stop()
        assert not scheduler.is_running

    def test_cannot_restart(self, scheduler):
        scheduler.start()
        scheduler.stop()
        with pytest.raises(RuntimeError, match="restarted"):
            scheduler.start()

    def test_cannot_add_or_trigger_after_stop(self, scheduler):
        scheduler.add_job("job", RecordingJob(), 1.0)
        scheduler.stop()

        with pytest.raises(RuntimeError):
            scheduler.add_job("other", RecordingJob(), 1.0)
        with pytest.raises(RuntimeError):
            scheduler.trigger("job")

    def test_stats_survive_stop(self, scheduler):
        job = RecordingJob()
        scheduler.add_job("job", job, 100.0, initial_delay_seconds=100.0)
        scheduler.trigger("job").result(timeout=5)
        scheduler.stop()

        assert scheduler.stats("job") == JobStats(fired=1, completed=1)


class TestIntervalSchedulerTrigger:

    def test_trigger_runs_job_with_context(self, scheduler):
        job = RecordingJob()
        scheduler.add_job("job", job, 100.0, initial_delay_seconds=100.0)

        scheduler.trigger("job").result(timeout=5)
        scheduler.trigger("job").result(timeout=5)

        first, second = job.contexts
        assert first.job_id == "job"
        assert first.tick_number == 1
        assert first.previous_fire_time is None
        assert first.scheduled_time <= first.fire_time
        assert second.tick_number == 2
        assert second.previous_fire_time == first.fire_time
        assert scheduler.stats("job") == JobStats(fired=2, completed=2)

    def test_exclusive_job_skips_overlapping_tick(self, scheduler):
        job = BlockingJob(exclusive=True)
        scheduler.add_job("job", job, 100.0, initial_delay_seconds=100.0)

        first = scheduler.trigger("job")
        assert first is not None
        assert job.started.acquire(timeout=5)

        assert scheduler.trigger("job") is None
        assert scheduler.trigger("job") is None
        assert job.calls == 1
        assert scheduler.stats("job").skipped == 2
        assert scheduler.stats("job").in_flight == 1

        job.release.set()
        first.result(timeout=5)

        second = scheduler.trigger("job")
        assert second is not None
        second.result(timeout=5)
        assert job.calls == 2
        assert scheduler.stats("job") == JobStats(fired=2, completed=2, skipped=2)

    def test_non_exclusive_job_may_overlap(self, scheduler):
        job = BlockingJob(exclusive=False)
        scheduler.add_job("job", job, 100.0, initial_delay_seconds=100.0)

        first = scheduler.trigger("job")
        second = scheduler.trigger("job")
        assert first is not None and second is not None
        assert job.started.acquire(timeout=5)
        assert job.started.acquire(timeout=5)
        assert job.calls == 2

        job.release.set()
        first.result(timeout=5)
        second.result(timeout=5)
        assert scheduler.stats("job").skipped == 0

    def test_exclusion_is_per_job_id(self, scheduler):
        job = BlockingJob(exclusive=True)
        scheduler.add_job("a", job, 100.0, initial_delay_seconds=100.0)
        scheduler.add_job("b", job, 100.0, initial_delay_seconds=100.0)

        first = scheduler.trigger("a")
        second = scheduler.trigger("b")
        assert first is not None and second is not None

        job.release.set()
        first.result(timeout=5)
        second.result(timeout=5)
        assert job.calls == 2

    def test_failing_job_is_reported(self, scheduler):
        scheduler.add_job("job", FailingJob(), 100.0, initial_delay_seconds=100.0)

        future = scheduler.trigger("job")
        with pytest.raises(JobFailure):
            future.result(timeout=5)

        assert scheduler.stats("job") == JobStats(fired=1, failed=1)
        with pytest.raises(JobFailure, match="job exploded"):
            scheduler.watcher.check_for_exception()

    def test_failing_exclusive_job_releases_guard(self, scheduler):
        class FailingExclusiveJob(FailingJob):
            disallow_concurrent_execution = True

        scheduler.add_job(
            "job", FailingExclusiveJob(), 100.0, initial_delay_seconds=100.0
        )

        with pytest.raises(JobFailure):
            scheduler.trigger("job").result(timeout=5)

        future = scheduler.trigger("job")
        assert future is not None
        with pytest.raises(JobFailure):
            future.result(timeout=5)


class TestIntervalSchedulerTimer:

    def test_fires_repeatedly(self, scheduler):
        job = RecordingJob()
        scheduler.add_job("job", job, 0.05)
        scheduler.start()

        assert wait_for(lambda: job.count >= 3)
        ticks = sorted(context.tick_number for context in job.contexts)
        assert ticks[:3] == [1, 2, 3]

    def test_respects_initial_delay(self, scheduler):
        job = RecordingJob()
        scheduler.add_job("job", job, 0.05, initial_delay_seconds=60.0)
        scheduler.start()

        time.sleep(0.2)
        assert job.count == 0

    def test_job_added_after_start_fires(self, scheduler):
        scheduler.start()
        job = RecordingJob()
        scheduler.add_job("job", job, 60.0)

        assert wait_for(lambda: job.count == 1)

    def test_blocked_exclusive_job_skips_ticks(self, scheduler):
        job = BlockingJob(exclusive=True)
        scheduler.add_job("job", job, 0.02)
        scheduler.start()

        assert job.started.acquire(timeout=5)
        assert wait_for(lambda: scheduler.stats("job").skipped >= 3)
        assert job.calls == 1

        job.release.set()
        assert wait_for(lambda: scheduler.stats("job").completed >= 2)

    def test_failing_job_does_not_stop_timer(self, scheduler):
        scheduler.add_job("job", FailingJob(), 0.02)
        scheduler.start()

        assert wait_for(lambda: scheduler.stats("job").failed >= 3)
        assert scheduler.is_running

    def test_late_tick_fires_once_and_reanchors(self):
        now = [0.0]
        clock_lock = threading.Lock()

        def clock() -> float:
            with clock_lock:
                return now[0]

        instance = IntervalScheduler(clock=clock)
        job = RecordingJob()
        instance.add_job("job", job, 0.05)
        instance.start()
        try:
            assert wait_for(lambda: job.count == 1)

            with clock_lock:
                now[0] = 1.0

            assert wait_for(lambda: job.count == 2)
            time.sleep(0.3)
            assert job.count == 2

            late = job.contexts[1]
            lateness = (late.fire_time - late.scheduled_time).total_seconds()
            assert lateness == pytest.approx(0.95, abs=0.01)
        finally:
            instance.stop()

    def test_tick_exactly_one_interval_late_keeps_schedule(self):
        """Only ticks more than one interval late re-anchor the schedule."""
        now = [0.0]
        clock_lock = threading.Lock()

        def clock() -> float:
            with clock_lock:
                return now[0]

        instance = IntervalScheduler(clock=clock)
        job = RecordingJob()
        instance.add_job("job", job, 0.1)
        instance.start()
        try:
            assert wait_for(lambda: job.count == 1)

            with clock_lock:
                now[0] = 0.2

            # The tick due at 0.1 fires late, the tick due at 0.2 on time.
            assert wait_for(lambda: job.count == 3)
            time.sleep(0.3)
            assert job.count == 3

            lateness = [
                (context.fire_time - context.scheduled_time).total_seconds()
                for context in sorted(job.contexts, key=lambda c: c.tick_number)
            ]
            assert lateness[1] == pytest.approx(0.1, abs=0.01)
            assert lateness[2] == pytest.approx(0.0, abs=0.01)
        finally:
            instance.stop()

    def test_stop_without_wait_returns_while_job_runs(self, scheduler):
        job = BlockingJob(exclusive=True)
        scheduler.add_job("job", job, 0.02)
        scheduler.start()
        assert job.started.acquire(timeout=5)

        try:
            stopper = threading.Thread(target=scheduler.stop, kwargs={"wait": False})
            stopper.start()
            stopper.join(timeout=2)
            assert not stopper.is_alive()
            assert not scheduler.is_running

            fired = scheduler.stats("job").fired
            assert scheduler.stats("job").in_flight == 1
            time.sleep(0.2)
            assert job.calls == 1
            assert scheduler.stats("job").fired == fired
        finally:
            job.release.set()
