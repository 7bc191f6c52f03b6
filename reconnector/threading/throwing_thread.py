"""Defines ThrowingThread, a thread that reports exceptions from its target."""

import logging
import threading
from collections.abc import Callable
from typing import Any, Optional


class ThrowingThread(threading.Thread):
    """
    `threading.Thread` that hands exceptions from its target to a callback.

    Without this, an exception on the scheduler's timer thread would only be
    printed by `threading.excepthook` and the scheduler would silently stop
    firing.
    """

    # pylint: disable=too-many-arguments
    def __init__(
        self,
        target: Callable[..., Any],
        on_error_cb: Callable[[Exception], None],
        args: tuple[Any, ...] = (),
        kwargs: Optional[dict[str, Any]] = None,
        name: Optional[str] = None,
        daemon: bool = True,
    ) -> None:
        """
        Initializes a ThrowingThread.

        Args:
            target: Callable run on the new thread.
            on_error_cb: Receives any exception raised by |target|.
            args: Positional arguments for |target|.
            kwargs: Keyword arguments for |target|.
            name: Thread name.
            daemon: Whether the thread is a daemon thread.
        """
        assert on_error_cb is not None, "on_error_cb cannot be None"
        self.__on_error_cb = on_error_cb
        self.__target = target
        self.__args = args
        self.__kwargs = kwargs if kwargs is not None else {}

        super().__init__(name=name, daemon=daemon)

    def run(self) -> None:
        """Runs the target, reporting any exception it raises."""
        try:
            self.__target(*self.__args, **self.__kwargs)
        # pylint: disable=broad-exception-caught # Reported to the watcher.
        except Exception as e:
            logging.error(
                "Exception caught in thread %s (%s): %r",
                self.name,
                threading.get_ident(),
                e,
                exc_info=True,
            )
            self.__on_error_cb(e)
