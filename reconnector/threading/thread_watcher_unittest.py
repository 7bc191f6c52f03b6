import threading
import time
from typing import List

import pytest

from reconnector.threading.thread_watcher import ThreadWatcher
from reconnector.threading.throwing_thread import ThrowingThread


class ExcOne(Exception):
    pass


class ExcTwo(Exception):
    pass


class TestThreadWatcher:

    def setup_method(self) -> None:
        self.watcher = ThreadWatcher()

    def test_check_for_exception_no_error(self) -> None:
        self.watcher.check_for_exception()
        assert self.watcher.first_exception is None
        assert self.watcher.exception_count == 0

    def test_on_exception_seen_and_check(self) -> None:
        self.watcher.on_exception_seen(ExcOne("Test error 1"))

        with pytest.raises(ExcOne, match="Test error 1"):
            self.watcher.check_for_exception()

    def test_first_exception_is_raised(self) -> None:
        first = ExcOne("First error")
        second = ExcTwo("Second error")
        self.watcher.on_exception_seen(first)
        self.watcher.on_exception_seen(second)

        with pytest.raises(ExcOne, match="First error"):
            self.watcher.run_until_exception()
        assert self.watcher.first_exception is first
        assert self.watcher.exception_count == 2

    def test_run_until_exception_blocks_until_reported(self) -> None:
        thread_exceptions: List[Exception] = []

        def run_watcher_in_thread() -> None:
            try:
                self.watcher.run_until_exception()
            except Exception as e:
                thread_exceptions.append(e)

        watcher_thread = threading.Thread(target=run_watcher_in_thread)
        watcher_thread.start()

        time.sleep(0.05)
        assert watcher_thread.is_alive()

        self.watcher.on_exception_seen(ExcTwo("Test error 2"))
        watcher_thread.join(timeout=5)

        assert not watcher_thread.is_alive()
        assert len(thread_exceptions) == 1
        assert isinstance(thread_exceptions[0], ExcTwo)

    def test_tracked_thread_reports_exception(self) -> None:
        def target() -> None:
            raise ExcOne("from tracked thread")

        thread = self.watcher.create_tracked_thread(target, name="tracked")
        assert isinstance(thread, ThrowingThread)
        assert thread.name == "tracked"
        assert thread.daemon

        thread.start()
        thread.join(timeout=5)

        with pytest.raises(ExcOne, match="from tracked thread"):
            self.watcher.check_for_exception()

    def test_tracked_thread_without_error(self) -> None:
        ran = threading.Event()
        thread = self.watcher.create_tracked_thread(ran.set, is_daemon=False)
        assert not thread.daemon

        thread.start()
        thread.join(timeout=5)

        assert ran.is_set()
        self.watcher.check_for_exception()

    def test_repeated_failures_retain_only_first(self) -> None:
        """A job failing every tick must not accumulate exceptions."""
        first = ExcOne("tick 1")
        self.watcher.on_exception_seen(first)
        for tick in range(2, 1001):
            self.watcher.on_exception_seen(ExcTwo(f"tick {tick}"))

        assert self.watcher.exception_count == 1000
        assert self.watcher.first_exception is first
        with pytest.raises(ExcOne, match="tick 1"):
            self.watcher.check_for_exception()
