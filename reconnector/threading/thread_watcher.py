"""
Defines the `ThreadWatcher` class.

`ThreadWatcher` is the `ErrorWatcher` used across reconnector. It creates the
scheduler's timer thread (as a `ThrowingThread`) and receives exceptions from
job executions, surfacing them to whoever calls `run_until_exception()` or
`check_for_exception()`.
"""

import threading
from collections.abc import Callable
from typing import Optional

from reconnector.threading.error_watcher import ErrorWatcher
from reconnector.threading.throwing_thread import ThrowingThread


class ThreadWatcher(ErrorWatcher):
    """Tracks background threads and surfaces the exceptions they raise."""

    def __init__(self) -> None:
        self.__barrier = threading.Event()
        # Protects __first_exception and __exception_count.
        self.__exceptions_lock = threading.Lock()
        self.__first_exception: Optional[Exception] = None
        self.__exception_count = 0

    def create_tracked_thread(
        self,
        target: Callable[[], None],
        name: str | None = None,
        is_daemon: bool = True,
    ) -> ThrowingThread:
        """
        Creates a thread whose uncaught exceptions are reported here.

        Args:
            target: Callable invoked when the thread starts.
            name: Optional thread name, useful in logs.
            is_daemon: Whether the thread is a daemon thread.

        Returns:
            The created (not yet started) `ThrowingThread`.
        """
        return ThrowingThread(
            target=target,
            on_error_cb=self.on_exception_seen,
            name=name,
            daemon=is_daemon,
        )

    @property
    def first_exception(self) -> Optional[Exception]:
        """The first exception reported, or None."""
        with self.__exceptions_lock:
            return self.__first_exception

    @property
    def exception_count(self) -> int:
        """How many exceptions have been reported in total."""
        with self.__exceptions_lock:
            return self.__exception_count

    def on_exception_seen(self, e: Exception) -> None:
        """
        Records |e| and wakes any thread blocked in `run_until_exception()`.

        Only the first exception is retained; later ones are counted. A job
        that fails on every tick therefore does not grow memory.

        May be called from any thread.
        """
        with self.__exceptions_lock:
            self.__exception_count += 1
            if self.__first_exception is None:
                self.__first_exception = e
            self.__barrier.set()

    def run_until_exception(self) -> None:
        """
        Blocks until an exception is reported, then raises the first one.

        Raises:
            Exception: First exception reported to this watcher.
        """
        while True:
            self.__barrier.wait()
            with self.__exceptions_lock:
                if self.__first_exception is None:
                    self.__barrier.clear()
                    continue

                raise self.__first_exception

    def check_for_exception(self) -> None:
        """
        Raises the first reported exception, if there is one.

        Raises:
            Exception: First exception reported to this watcher.
        """
        if not self.__barrier.is_set():
            return

        with self.__exceptions_lock:
            if self.__first_exception is not None:
                raise self.__first_exception
