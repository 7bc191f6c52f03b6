"""End-to-end tests: supervisor, scheduler and reconnect task together."""

import threading
import time

import pytest

from reconnector.config.reconnect_job_config import ReconnectJobConfig
from reconnector.connectable import Connectable
from reconnector.errors import ConnectionNotConfiguredError
from reconnector.scheduler.job_stats import JobStats
from reconnector.supervisor import ReconnectSupervisor


class FakeWebSocketClient(Connectable):
    """Records connect() calls; can be told to block or to fail."""

    def __init__(self) -> None:
        self.lock = threading.Lock()
        self.connect_calls = 0
        self.active_calls = 0
        self.max_active_calls = 0
        self.block = threading.Event()
        self.block.set()
        self.entered = threading.Semaphore(0)
        self.error: Exception | None = None

    def connect(self) -> None:
        with self.lock:
            self.connect_calls += 1
            self.active_calls += 1
            self.max_active_calls = max(self.max_active_calls, self.active_calls)
        self.entered.release()
        try:
            self.block.wait()
            if self.error is not None:
                raise self.error
        finally:
            with self.lock:
                self.active_calls -= 1


def wait_for(predicate, timeout=5.0):
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.01)
    return predicate()


MANUAL_CONFIG = ReconnectJobConfig(interval_seconds=100.0, initial_delay_seconds=100.0)


@pytest.mark.timeout(30)
def test_five_sequential_ticks_connect_five_times():
    client = FakeWebSocketClient()
    with ReconnectSupervisor(client, MANUAL_CONFIG) as supervisor:
        for expected in range(1, 6):
            future = supervisor.trigger()
            assert future is not None
            future.result(timeout=5)
            assert client.connect_calls == expected

        assert supervisor.stats == JobStats(fired=5, completed=5)
    assert client.max_active_calls == 1


@pytest.mark.timeout(30)
def test_blocked_connect_suppresses_overlapping_ticks():
    client = FakeWebSocketClient()
    client.block.clear()
    config = ReconnectJobConfig(interval_seconds=0.02, max_workers=4)

    supervisor = ReconnectSupervisor(client, config)
    supervisor.start()
    try:
        assert client.entered.acquire(timeout=5)
        assert wait_for(lambda: supervisor.stats.skipped >= 5)
        assert supervisor.trigger() is None

        assert client.connect_calls == 1
        assert supervisor.stats.in_flight == 1
    finally:
        client.block.set()
        supervisor.stop()

    assert client.max_active_calls == 1


@pytest.mark.timeout(30)
def test_ticks_resume_after_blocked_connect_returns():
    client = FakeWebSocketClient()
    client.block.clear()
    config = ReconnectJobConfig(interval_seconds=0.02)

    with ReconnectSupervisor(client, config) as supervisor:
        assert client.entered.acquire(timeout=5)
        assert wait_for(lambda: supervisor.stats.skipped >= 1)

        client.block.set()
        assert wait_for(lambda: client.connect_calls >= 3)

    assert client.max_active_calls == 1


@pytest.mark.timeout(30)
def test_connect_failure_is_not_surfaced_to_scheduler():
    client = FakeWebSocketClient()
    client.error = ConnectionRefusedError("server down")
    seen = []

    with ReconnectSupervisor(
        client, MANUAL_CONFIG, connect_error_cb=seen.append
    ) as supervisor:
        future = supervisor.trigger()
        assert future.result(timeout=5) is None
        assert future.exception() is None

        assert supervisor.stats == JobStats(fired=1, completed=1)
        supervisor.scheduler.watcher.check_for_exception()

    assert client.connect_calls == 1
    assert len(seen) == 1
    assert isinstance(seen[0], ConnectionRefusedError)


def test_missing_client_fails_at_startup():
    supervisor = ReconnectSupervisor(None, MANUAL_CONFIG)

    with pytest.raises(ConnectionNotConfiguredError):
        supervisor.start()

    assert not supervisor.scheduler.is_running
    supervisor.stop()


@pytest.mark.timeout(30)
def test_client_removed_after_startup_fails_the_tick():
    """A client cleared at runtime fails loudly on the next tick."""
    client = FakeWebSocketClient()

    with ReconnectSupervisor(client, MANUAL_CONFIG) as supervisor:
        supervisor.task.connection = None

        future = supervisor.trigger()
        with pytest.raises(ConnectionNotConfiguredError):
            future.result(timeout=5)

        assert supervisor.stats == JobStats(fired=1, failed=1)
        with pytest.raises(ConnectionNotConfiguredError):
            supervisor.scheduler.watcher.check_for_exception()

    assert client.connect_calls == 0
