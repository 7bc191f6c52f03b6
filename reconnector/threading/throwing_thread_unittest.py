import logging
import threading

from reconnector.threading.throwing_thread import ThrowingThread


class TargetError(Exception):
    pass


def test_passes_args_and_kwargs(mocker) -> None:
    target = mocker.MagicMock()
    on_error = mocker.MagicMock()

    thread = ThrowingThread(
        target=target, on_error_cb=on_error, args=(1, 2), kwargs={"key": "value"}
    )
    thread.start()
    thread.join(timeout=5)

    target.assert_called_once_with(1, 2, key="value")
    on_error.assert_not_called()


def test_reports_exception_to_callback(caplog) -> None:
    seen = []
    reported = threading.Event()

    def on_error(e: Exception) -> None:
        seen.append(e)
        reported.set()

    def target() -> None:
        raise TargetError("timer died")

    thread = ThrowingThread(target=target, on_error_cb=on_error, name="timer")
    with caplog.at_level(logging.ERROR):
        thread.start()
        thread.join(timeout=5)

    assert reported.is_set()
    assert isinstance(seen[0], TargetError)
    assert "timer" in caplog.text


def test_is_daemon_by_default(mocker) -> None:
    thread = ThrowingThread(target=mocker.MagicMock(), on_error_cb=mocker.MagicMock())
    assert thread.daemon
