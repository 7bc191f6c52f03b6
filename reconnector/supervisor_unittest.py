"""Unit tests for ReconnectSupervisor."""

import asyncio
import threading
import time

import pytest

from reconnector.config.reconnect_job_config import ReconnectJobConfig
from reconnector.connectable import Connectable
from reconnector.errors import ConnectionNotConfiguredError
from reconnector.scheduler.interval_scheduler import IntervalScheduler
from reconnector.scheduler.job_stats import JobStats
from reconnector.supervisor import ReconnectSupervisor
from reconnector.task.reconnect_task import ReconnectTask
from reconnector.threading.thread_watcher import ThreadWatcher


# First tick far in the future, so only trigger() connects.
MANUAL_CONFIG = ReconnectJobConfig(interval_seconds=100.0, initial_delay_seconds=100.0)


def wait_for(predicate, timeout=5.0):
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.01)
    return predicate()


@pytest.fixture
def mock_connection(mocker):
    connection = mocker.MagicMock(spec=Connectable)
    connection.connect.return_value = None
    return connection


class TestReconnectSupervisor:

    def test_rejects_bad_config(self, mock_connection):
        with pytest.raises(TypeError):
            ReconnectSupervisor(mock_connection, config={"interval_seconds": 1})  # type: ignore[arg-type]

    def test_defaults(self, mock_connection):
        supervisor = ReconnectSupervisor(mock_connection)
        assert supervisor.config == ReconnectJobConfig()
        assert isinstance(supervisor.task, ReconnectTask)
        assert supervisor.task.connection is mock_connection
        assert supervisor.stats == JobStats()

    def test_start_without_connection_fails_fast(self):
        supervisor = ReconnectSupervisor(None, MANUAL_CONFIG)

        with pytest.raises(ConnectionNotConfiguredError):
            supervisor.start()

        assert not supervisor.scheduler.is_running
        assert supervisor.scheduler.job_ids == []

    def test_start_with_invalid_client_fails_fast(self):
        supervisor = ReconnectSupervisor(object(), MANUAL_CONFIG)  # type: ignore[arg-type]

        with pytest.raises(TypeError):
            supervisor.start()

        assert not supervisor.scheduler.is_running

    def test_first_tick_connects_immediately_by_default(self, mock_connection):
        config = ReconnectJobConfig(interval_seconds=100.0)
        with ReconnectSupervisor(mock_connection, config) as supervisor:
            assert wait_for(lambda: supervisor.stats.completed == 1)

        mock_connection.connect.assert_called_once_with()

    def test_reconnects_on_interval(self, mock_connection):
        config = ReconnectJobConfig(interval_seconds=0.05)
        with ReconnectSupervisor(mock_connection, config):
            assert wait_for(lambda: mock_connection.connect.call_count >= 3)

    def test_start_twice_raises(self, mock_connection):
        supervisor = ReconnectSupervisor(mock_connection, MANUAL_CONFIG)
        supervisor.start()
        try:
            with pytest.raises(RuntimeError, match="already started"):
                supervisor.start()
        finally:
            supervisor.stop()

    def test_stop_before_start_and_twice(self, mock_connection):
        supervisor = ReconnectSupervisor(mock_connection, MANUAL_CONFIG)
        supervisor.stop()
        supervisor.start()
        supervisor.stop()
        supervisor.stop()
        assert not supervisor.scheduler.is_running

    def test_stop_leaves_connection_alone(self, mock_connection):
        with ReconnectSupervisor(mock_connection, MANUAL_CONFIG):
            pass

        assert mock_connection.mock_calls == []

    def test_trigger_before_start_raises(self, mock_connection):
        supervisor = ReconnectSupervisor(mock_connection, MANUAL_CONFIG)
        with pytest.raises(RuntimeError, match="not started"):
            supervisor.trigger()

    def test_trigger_connects(self, mock_connection):
        with ReconnectSupervisor(mock_connection, MANUAL_CONFIG) as supervisor:
            supervisor.trigger().result(timeout=5)
            assert supervisor.stats == JobStats(fired=1, completed=1)

        mock_connection.connect.assert_called_once_with()

    def test_connect_error_reaches_hook(self, mocker, mock_connection):
        error = ConnectionError("refused")
        mock_connection.connect.side_effect = error
        hook = mocker.MagicMock()

        with ReconnectSupervisor(
            mock_connection, MANUAL_CONFIG, connect_error_cb=hook
        ) as supervisor:
            supervisor.trigger().result(timeout=5)
            assert supervisor.stats.failed == 0

        hook.assert_called_once_with(error)
        supervisor.scheduler.watcher.check_for_exception()

    def test_uses_given_watcher(self, mock_connection):
        watcher = ThreadWatcher()
        supervisor = ReconnectSupervisor(mock_connection, MANUAL_CONFIG, watcher=watcher)
        assert supervisor.scheduler.watcher is watcher

    def test_injected_scheduler_is_not_started_or_stopped(self, mock_connection):
        scheduler = IntervalScheduler()
        supervisor = ReconnectSupervisor(
            mock_connection, MANUAL_CONFIG, scheduler=scheduler
        )
        try:
            supervisor.start()
            assert scheduler.job_ids == [MANUAL_CONFIG.job_id]
            assert not scheduler.is_running

            supervisor.trigger().result(timeout=5)
            mock_connection.connect.assert_called_once_with()

            supervisor.stop()
            assert scheduler.job_ids == []
            assert supervisor.stats == JobStats()
        finally:
            scheduler.stop()

    def test_two_supervisors_share_scheduler(self, mock_connection, mocker):
        other_connection = mocker.MagicMock(spec=Connectable)
        other_connection.connect.return_value = None
        scheduler = IntervalScheduler()
        first = ReconnectSupervisor(
            mock_connection, ReconnectJobConfig(job_id="first"), scheduler=scheduler
        )
        second = ReconnectSupervisor(
            other_connection, ReconnectJobConfig(job_id="second"), scheduler=scheduler
        )
        try:
            first.start()
            second.start()
            scheduler.start()

            assert wait_for(lambda: first.stats.completed == 1)
            assert wait_for(lambda: second.stats.completed == 1)
        finally:
            scheduler.stop()

        mock_connection.connect.assert_called_once_with()
        other_connection.connect.assert_called_once_with()

    def test_start_captures_running_event_loop(self):
        connected = threading.Event()

        class AsyncClient:
            async def connect(self):
                connected.set()

        async def main():
            supervisor = ReconnectSupervisor(AsyncClient(), MANUAL_CONFIG)  # type: ignore[arg-type]
            supervisor.start()
            try:
                assert supervisor.task.event_loop is asyncio.get_running_loop()
                supervisor.trigger()
                for _ in range(500):
                    if connected.is_set():
                        break
                    await asyncio.sleep(0.01)
            finally:
                supervisor.stop()

        asyncio.run(main())
        assert connected.is_set()

    def test_run_until_exception_raises_background_error(self, mock_connection):
        supervisor = ReconnectSupervisor(mock_connection, MANUAL_CONFIG)
        error = RuntimeError("background failure")
        supervisor.scheduler.watcher.on_exception_seen(error)

        with pytest.raises(RuntimeError, match="background failure"):
            supervisor.run_until_exception()

    @pytest.mark.timeout(30)
    def test_stop_without_wait_does_not_join_blocked_connect(self, mock_connection):
        entered = threading.Event()
        release = threading.Event()

        def blocking_connect():
            entered.set()
            release.wait(timeout=10)

        mock_connection.connect.side_effect = blocking_connect
        supervisor = ReconnectSupervisor(
            mock_connection, ReconnectJobConfig(interval_seconds=100.0)
        )
        supervisor.start()
        try:
            assert entered.wait(timeout=5)

            stopper = threading.Thread(target=supervisor.stop, kwargs={"wait": False})
            stopper.start()
            stopper.join(timeout=2)

            assert not stopper.is_alive()
            assert not supervisor.scheduler.is_running
            assert supervisor.stats.in_flight == 1
        finally:
            release.set()

        assert wait_for(lambda: supervisor.stats.completed == 1)

    def test_stop_tolerates_job_removed_from_injected_scheduler(self, mock_connection):
        scheduler = IntervalScheduler()
        supervisor = ReconnectSupervisor(
            mock_connection, MANUAL_CONFIG, scheduler=scheduler
        )
        try:
            supervisor.start()
            scheduler.remove_job(MANUAL_CONFIG.job_id)

            supervisor.stop()

            assert supervisor.stats == JobStats()
            with pytest.raises(RuntimeError, match="not started"):
                supervisor.trigger()
        finally:
            scheduler.stop()
