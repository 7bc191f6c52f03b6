"""Defines ReconnectSupervisor, the application-level reconnect wiring."""

import asyncio
import logging
from collections.abc import Callable
from concurrent.futures import Future
from types import TracebackType
from typing import Optional, Type

from reconnector.config.reconnect_job_config import ReconnectJobConfig
from reconnector.connectable import Connectable
from reconnector.scheduler.interval_scheduler import IntervalScheduler
from reconnector.scheduler.job_stats import JobStats
from reconnector.task.reconnect_task import ReconnectTask
from reconnector.threading.aio_utils import get_running_loop_or_none
from reconnector.threading.thread_watcher import ThreadWatcher


class ReconnectSupervisor:
    """Keeps a shared connection client connected by reconnecting on a timer.

    Owns a `ReconnectTask` and, unless one is injected, an
    `IntervalScheduler`. The connection client is never owned: `stop()`
    leaves it untouched.

    Configuration problems are raised from `start()` rather than from the
    first tick: a missing client raises `ConnectionNotConfiguredError` before
    the scheduler starts.

    NOTE: A supervisor that created its own scheduler cannot be restarted
    once stopped.
    """

    # pylint: disable=too-many-arguments
    def __init__(
        self,
        connection: Optional[Connectable],
        config: Optional[ReconnectJobConfig] = None,
        *,
        scheduler: Optional[IntervalScheduler] = None,
        watcher: Optional[ThreadWatcher] = None,
        connect_error_cb: Optional[Callable[[Exception], None]] = None,
        event_loop: Optional[asyncio.AbstractEventLoop] = None,
    ) -> None:
        """Initializes the ReconnectSupervisor.

        Args:
            connection: The shared connection client.
            config: Job settings. Defaults to `ReconnectJobConfig()`.
            scheduler: Scheduler to register with. If None, one is created
                with `config.max_workers` workers and owned by this instance.
            watcher: Watcher for background errors. Ignored when `scheduler`
                is given, since the scheduler already has one.
            connect_error_cb: Optional hook for failed connect attempts.
            event_loop: Loop for asyncio clients. If None and `start()` is
                called from a running loop, that loop is used.

        Raises:
            TypeError: If `config` is not a `ReconnectJobConfig`.
        """
        if config is None:
            config = ReconnectJobConfig()
        if not isinstance(config, ReconnectJobConfig):
            raise TypeError(
                f"config must be a ReconnectJobConfig, got {type(config).__name__}."
            )

        self.__config = config
        self.__owns_scheduler = scheduler is None
        self.__scheduler = (
            scheduler
            if scheduler is not None
            else IntervalScheduler(watcher=watcher, max_workers=config.max_workers)
        )
        self.__task = ReconnectTask(
            connection,
            connect_error_cb=connect_error_cb,
            event_loop=event_loop,
        )
        self.__is_started = False

    @property
    def config(self) -> ReconnectJobConfig:
        return self.__config

    @property
    def task(self) -> ReconnectTask:
        return self.__task

    @property
    def scheduler(self) -> IntervalScheduler:
        return self.__scheduler

    @property
    def stats(self) -> JobStats:
        """Counters of the reconnect job. All zero before `start()`."""
        try:
            return self.__scheduler.stats(self.__config.job_id)
        except KeyError:
            return JobStats()

    def start(self) -> None:
        """Validates configuration, registers the reconnect job and starts.

        Raises:
            ConnectionNotConfiguredError: If no connection client was given.
            TypeError: If the client has no callable `connect`.
            RuntimeError: If already started.
        """
        if self.__is_started:
            raise RuntimeError("ReconnectSupervisor is already started.")

        self.__task.validate()
        if self.__task.event_loop is None:
            self.__task.event_loop = get_running_loop_or_none()

        self.__scheduler.add_job(
            self.__config.job_id,
            self.__task,
            self.__config.interval_seconds,
            self.__config.initial_delay_seconds,
        )
        if self.__owns_scheduler:
            self.__scheduler.start()

        self.__is_started = True
        logging.info(
            "ReconnectSupervisor started: job '%s' every %.3fs.",
            self.__config.job_id,
            self.__config.interval_seconds,
        )

    def stop(self, wait: bool = True) -> None:
        """Stops reconnecting. The connection client is left as it is.

        Safe to call more than once, and before `start()`.

        Args:
            wait: Whether to block until an in-flight reconnect finishes. Only
                applies to a scheduler owned by this instance; an injected
                scheduler is never stopped here.
        """
        if not self.__is_started:
            return
        self.__is_started = False

        if self.__owns_scheduler:
            self.__scheduler.stop(wait=wait)
        else:
            try:
                self.__scheduler.remove_job(self.__config.job_id)
            except KeyError:
                logging.warning(
                    "Reconnect job '%s' was already removed from the scheduler.",
                    self.__config.job_id,
                )
        logging.info("ReconnectSupervisor stopped.")

    def trigger(self) -> Optional[Future[None]]:
        """Fires one reconnect tick now, outside of the regular schedule.

        Returns:
            The future of the execution, or None if the tick was skipped
            because a reconnect is already in flight.

        Raises:
            RuntimeError: If not started.
        """
        if not self.__is_started:
            raise RuntimeError("ReconnectSupervisor is not started.")
        return self.__scheduler.trigger(self.__config.job_id)

    def run_until_exception(self) -> None:
        """Blocks until a background thread reports an error, then raises it."""
        self.__scheduler.watcher.run_until_exception()

    def __enter__(self) -> "ReconnectSupervisor":
        self.start()
        return self

    def __exit__(
        self,
        exc_type: Optional[Type[BaseException]],
        exc_value: Optional[BaseException],
        traceback: Optional[TracebackType],
    ) -> None:
        self.stop()
