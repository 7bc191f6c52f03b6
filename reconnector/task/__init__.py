"""Jobs shipped with reconnector."""

from reconnector.task.reconnect_task import ReconnectTask

__all__ = ["ReconnectTask"]
