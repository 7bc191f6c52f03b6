"""
Defines the `ErrorWatcher` abstract base class.

An `ErrorWatcher` collects exceptions raised on background threads (the
scheduler's timer thread and its workers) so the hosting application has one
place to wait on or poll for them.
"""

from abc import ABC, abstractmethod


class ErrorWatcher(ABC):
    """Interface for objects that collect and re-raise background errors."""

    @abstractmethod
    def on_exception_seen(self, e: Exception) -> None:
        """Records an exception caught on a background thread."""

    @abstractmethod
    def run_until_exception(self) -> None:
        """
        Blocks until an exception has been recorded, then raises it.

        Raises:
            Exception: The first exception recorded.
        """

    @abstractmethod
    def check_for_exception(self) -> None:
        """
        Raises the first recorded exception, if any. Never blocks.

        Raises:
            Exception: The first exception recorded.
        """
