"""Unit tests for ReconnectTask."""

import asyncio
import logging
import threading

import pytest

from reconnector.connectable import Connectable
from reconnector.errors import ConnectionNotConfiguredError, ReconnectorError
from reconnector.job import Job
from reconnector.task.reconnect_task import ReconnectTask


class ConnectFailure(Exception):
    pass


class CountingConnection(Connectable):
    def __init__(self):
        self.connect_count = 0

    def connect(self) -> None:
        self.connect_count += 1


@pytest.fixture
def mock_connection(mocker):
    connection = mocker.MagicMock(spec=Connectable)
    connection.connect.return_value = None
    return connection


class TestReconnectTask:

    def test_is_exclusive_job(self):
        task = ReconnectTask()
        assert isinstance(task, Job)
        assert task.disallow_concurrent_execution is True

    def test_execute_calls_connect_once(self, mock_connection):
        task = ReconnectTask(mock_connection)

        task.execute(None)

        mock_connection.connect.assert_called_once_with()

    def test_execute_ignores_context(self, mocker, mock_connection):
        task = ReconnectTask(mock_connection)
        context = mocker.MagicMock()

        task.execute(context)

        mock_connection.connect.assert_called_once_with()
        assert context.mock_calls == []

    def test_sequential_executions_each_connect(self):
        connection = CountingConnection()
        task = ReconnectTask(connection)

        for _ in range(5):
            task.execute(None)

        assert connection.connect_count == 5

    def test_execute_without_connection_raises_configuration_error(self):
        task = ReconnectTask()

        with pytest.raises(ConnectionNotConfiguredError):
            task.execute(None)

    def test_configuration_error_is_reconnector_error(self):
        assert issubclass(ConnectionNotConfiguredError, ReconnectorError)

    def test_connection_assigned_after_construction(self, mock_connection):
        task = ReconnectTask()
        task.connection = mock_connection

        task.execute(None)

        assert task.connection is mock_connection
        mock_connection.connect.assert_called_once_with()

    def test_validate_without_connection(self):
        with pytest.raises(ConnectionNotConfiguredError):
            ReconnectTask().validate()

    def test_validate_rejects_object_without_connect(self):
        task = ReconnectTask(object())  # type: ignore[arg-type]
        with pytest.raises(TypeError, match="connect"):
            task.validate()

    def test_validate_accepts_duck_typed_client(self):
        class DuckClient:
            def connect(self):
                pass

        ReconnectTask(DuckClient()).validate()  # type: ignore[arg-type]

    def test_connect_error_is_not_propagated(self, mock_connection, caplog):
        mock_connection.connect.side_effect = ConnectFailure("socket refused")
        task = ReconnectTask(mock_connection)

        with caplog.at_level(logging.WARNING):
            task.execute(None)

        mock_connection.connect.assert_called_once_with()
        assert "Reconnect attempt failed" in caplog.text

    def test_connect_error_reaches_hook(self, mocker, mock_connection):
        error = ConnectFailure("socket refused")
        mock_connection.connect.side_effect = error
        hook = mocker.MagicMock()
        task = ReconnectTask(mock_connection, connect_error_cb=hook)

        task.execute(None)

        hook.assert_called_once_with(error)

    def test_failing_hook_is_not_propagated(self, mocker, mock_connection, caplog):
        mock_connection.connect.side_effect = ConnectFailure("socket refused")
        hook = mocker.MagicMock(side_effect=RuntimeError("hook broke"))
        task = ReconnectTask(mock_connection, connect_error_cb=hook)

        with caplog.at_level(logging.ERROR):
            task.execute(None)

        hook.assert_called_once()
        assert "connect_error_cb raised" in caplog.text

    def test_successful_connect_does_not_call_hook(self, mocker, mock_connection):
        hook = mocker.MagicMock()
        task = ReconnectTask(mock_connection, connect_error_cb=hook)

        task.execute(None)

        hook.assert_not_called()


class TestReconnectTaskAsyncClient:

    def test_returns_before_async_connect_completes(self, loop_in_thread):
        started = threading.Event()
        release = threading.Event()
        finished = threading.Event()

        class AsyncClient:
            async def connect(self):
                started.set()
                await asyncio.get_running_loop().run_in_executor(
                    None, release.wait
                )
                finished.set()

        task = ReconnectTask(AsyncClient(), event_loop=loop_in_thread)  # type: ignore[arg-type]

        task.execute(None)

        assert started.wait(timeout=5)
        assert not finished.is_set()
        release.set()
        assert finished.wait(timeout=5)

    def test_async_connect_error_reaches_hook(self, loop_in_thread):
        seen = []
        hook_called = threading.Event()

        def hook(error):
            seen.append(error)
            hook_called.set()

        class AsyncClient:
            async def connect(self):
                raise ConnectFailure("handshake failed")

        task = ReconnectTask(
            AsyncClient(), connect_error_cb=hook, event_loop=loop_in_thread  # type: ignore[arg-type]
        )

        task.execute(None)

        assert hook_called.wait(timeout=5)
        assert len(seen) == 1
        assert isinstance(seen[0], ConnectFailure)

    def test_async_connect_without_loop_reports_error(self, mocker):
        hook = mocker.MagicMock()

        class AsyncClient:
            async def connect(self):
                pass

        task = ReconnectTask(AsyncClient(), connect_error_cb=hook)  # type: ignore[arg-type]

        task.execute(None)

        hook.assert_called_once()
        error = hook.call_args.args[0]
        assert isinstance(error, RuntimeError)
        assert "event loop" in str(error)

    def test_async_connect_on_closed_loop_reports_error(self, mocker):
        hook = mocker.MagicMock()
        loop = asyncio.new_event_loop()
        loop.close()

        class AsyncClient:
            async def connect(self):
                pass

        task = ReconnectTask(
            AsyncClient(), connect_error_cb=hook, event_loop=loop  # type: ignore[arg-type]
        )

        task.execute(None)

        hook.assert_called_once()
        assert isinstance(hook.call_args.args[0], RuntimeError)
