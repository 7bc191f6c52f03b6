"""Threading utils for reconnector: tracked threads, watchers, guards."""

from reconnector.threading.single_flight_guard import SingleFlightGuard
from reconnector.threading.thread_watcher import ThreadWatcher
from reconnector.threading.throwing_thread import ThrowingThread

__all__ = [
    "SingleFlightGuard",
    "ThreadWatcher",
    "ThrowingThread",
]
