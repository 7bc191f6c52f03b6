"""Provides SingleFlightGuard, a non-blocking per-job execution flag."""

import threading
from contextlib import contextmanager
from typing import Iterator


class SingleFlightGuard:
    """
    Tracks whether an execution of a job is currently in flight.

    Unlike a plain lock, acquisition never blocks and release may happen on a
    different thread than acquisition: the scheduler's timer thread acquires
    the guard when a tick fires, and the worker that runs the tick releases it.
    """

    def __init__(self) -> None:
        self.__lock = threading.Lock()
        self.__in_flight = False

    @property
    def is_in_flight(self) -> bool:
        """Whether an execution currently holds this guard."""
        with self.__lock:
            return self.__in_flight

    def try_acquire(self) -> bool:
        """
        Marks an execution as in flight, unless one already is.

        Returns:
            True if the caller now holds the guard, False if another execution
            already held it.
        """
        with self.__lock:
            if self.__in_flight:
                return False
            self.__in_flight = True
            return True

    def release(self) -> None:
        """
        Clears the in-flight flag.

        Raises:
            RuntimeError: If the guard is not held.
        """
        with self.__lock:
            if not self.__in_flight:
                raise RuntimeError("Released a SingleFlightGuard that was not held.")
            self.__in_flight = False

    @contextmanager
    def hold(self) -> Iterator[bool]:
        """
        Context manager form of `try_acquire()` / `release()`.

        Yields whether the guard was acquired. The guard is only released on
        exit if it was acquired here.
        """
        acquired = self.try_acquire()
        try:
            yield acquired
        finally:
            if acquired:
                self.release()
