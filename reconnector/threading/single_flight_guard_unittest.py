import threading

import pytest

from reconnector.threading.single_flight_guard import SingleFlightGuard


def test_starts_idle() -> None:
    guard = SingleFlightGuard()
    assert not guard.is_in_flight


def test_second_acquire_fails_until_release() -> None:
    guard = SingleFlightGuard()

    assert guard.try_acquire()
    assert guard.is_in_flight
    assert not guard.try_acquire()

    guard.release()
    assert not guard.is_in_flight
    assert guard.try_acquire()


def test_release_when_idle_raises() -> None:
    guard = SingleFlightGuard()
    with pytest.raises(RuntimeError):
        guard.release()


def test_release_from_other_thread() -> None:
    """The timer thread acquires and a worker thread releases."""
    guard = SingleFlightGuard()
    assert guard.try_acquire()

    worker = threading.Thread(target=guard.release)
    worker.start()
    worker.join(timeout=5)

    assert not guard.is_in_flight


def test_hold_releases_on_exit() -> None:
    guard = SingleFlightGuard()

    with guard.hold() as acquired:
        assert acquired
        assert guard.is_in_flight

    assert not guard.is_in_flight


def test_hold_does_not_release_foreign_acquisition() -> None:
    guard = SingleFlightGuard()
    assert guard.try_acquire()

    with guard.hold() as acquired:
        assert not acquired

    assert guard.is_in_flight


def test_hold_releases_on_exception() -> None:
    guard = SingleFlightGuard()

    with pytest.raises(ValueError):
        with guard.hold():
            raise ValueError("boom")

    assert not guard.is_in_flight


def test_only_one_of_many_threads_acquires() -> None:
    guard = SingleFlightGuard()
    barrier = threading.Barrier(8)
    results = []
    results_lock = threading.Lock()

    def contend() -> None:
        barrier.wait()
        acquired = guard.try_acquire()
        with results_lock:
            results.append(acquired)

    threads = [threading.Thread(target=contend) for _ in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=5)

    assert results.count(True) == 1
    assert results.count(False) == 7
