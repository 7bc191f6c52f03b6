"""Defines ReconnectTask, the job that asks a connection client to reconnect."""

import asyncio
import concurrent.futures
import inspect
import logging
from collections.abc import Callable
from typing import Any, Awaitable, Optional

from reconnector.connectable import Connectable
from reconnector.errors import ConnectionNotConfiguredError
from reconnector.job import Job, TickContext
from reconnector.threading.aio_utils import run_on_event_loop


class ReconnectTask(Job):
    """Fire-and-forget reconnect job.

    Each execution issues exactly one `connect()` call on the injected
    connection client and returns as soon as that call has been issued. The
    task never waits for the connection to be confirmed and never surfaces a
    connect failure to its caller: failures are logged and handed to the
    optional `connect_error_cb`. Retrying is left to the client and to the
    next tick.

    The task takes no lock around the client, so it declares
    `disallow_concurrent_execution` and relies on the scheduler to never run
    two executions for the same job id at once.

    If the client's `connect()` returns an awaitable, it is scheduled on
    `event_loop` and the task returns without awaiting it.
    """

    disallow_concurrent_execution = True

    def __init__(
        self,
        connection: Optional[Connectable] = None,
        connect_error_cb: Optional[Callable[[Exception], None]] = None,
        event_loop: Optional[asyncio.AbstractEventLoop] = None,
    ) -> None:
        """Initializes the ReconnectTask.

        Args:
            connection: The shared connection client. May be assigned later
                through the `connection` property, but must be set before the
                first execution.
            connect_error_cb: Optional hook receiving every exception raised by
                `connect()` (or by the awaitable it returned).
            event_loop: Loop on which awaitables returned by `connect()` are
                scheduled. Required only for asyncio clients.
        """
        self.__connection: Optional[Connectable] = connection
        self.__connect_error_cb = connect_error_cb
        self.__event_loop = event_loop

    @property
    def connection(self) -> Optional[Connectable]:
        """The connection client this task drives. Not owned by the task."""
        return self.__connection

    @connection.setter
    def connection(self, connection: Optional[Connectable]) -> None:
        self.__connection = connection

    @property
    def event_loop(self) -> Optional[asyncio.AbstractEventLoop]:
        """Loop used for asyncio clients, if any."""
        return self.__event_loop

    @event_loop.setter
    def event_loop(self, event_loop: Optional[asyncio.AbstractEventLoop]) -> None:
        self.__event_loop = event_loop

    def validate(self) -> None:
        """Checks that the task can run, without running it.

        Raises:
            ConnectionNotConfiguredError: If no connection client is set.
            TypeError: If the client has no callable `connect`.
        """
        connection = self.__require_connection()
        if not callable(getattr(connection, "connect", None)):
            raise TypeError(
                "Connection client must expose a callable connect(), got "
                f"{type(connection).__name__}."
            )

    def execute(self, context: Optional[TickContext] = None) -> None:
        """Issues one `connect()` call on the connection client.

        Args:
            context: Details of the tick. Unused.

        Raises:
            ConnectionNotConfiguredError: If no connection client is set.
        """
        connection = self.__require_connection()

        # pylint: disable=broad-exception-caught # Connect failures are not surfaced.
        try:
            result = connection.connect()
        except Exception as e:
            self.__on_connect_error(e)
            return

        if inspect.isawaitable(result):
            self.__schedule(result)

    def __require_connection(self) -> Connectable:
        if self.__connection is None:
            raise ConnectionNotConfiguredError(
                "ReconnectTask has no connection client. Assign one before "
                "the first tick."
            )
        return self.__connection

    def __schedule(self, awaitable: Awaitable[Any]) -> None:
        if self.__event_loop is None:
            if asyncio.iscoroutine(awaitable):
                awaitable.close()
            self.__on_connect_error(
                RuntimeError(
                    "connect() returned an awaitable but ReconnectTask has no "
                    "event loop to run it on."
                )
            )
            return

        # pylint: disable=broad-exception-caught # Scheduling failures are connect failures.
        try:
            future = run_on_event_loop(awaitable, self.__event_loop)
        except Exception as e:
            self.__on_connect_error(e)
            return

        future.add_done_callback(self.__on_scheduled_connect_done)

    def __on_scheduled_connect_done(
        self, future: concurrent.futures.Future[Any]
    ) -> None:
        if future.cancelled():
            logging.info("Asynchronous connect() was cancelled.")
            return

        error = future.exception()
        if isinstance(error, Exception):
            self.__on_connect_error(error)

    def __on_connect_error(self, error: Exception) -> None:
        logging.warning(
            "Reconnect attempt failed: %r. Not retrying until the next tick.",
            error,
            exc_info=error,
        )
        if self.__connect_error_cb is None:
            return

        # pylint: disable=broad-exception-caught # A failing hook must not escape.
        try:
            self.__connect_error_cb(error)
        except Exception as hook_error:
            logging.error(
                "connect_error_cb raised while handling a connect failure: %r",
                hook_error,
                exc_info=True,
            )
