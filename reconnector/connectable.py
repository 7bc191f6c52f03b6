"""Defines Connectable ABC, the capability a reconnect task drives."""

from abc import ABC, abstractmethod
from typing import Any, Awaitable


# pylint: disable=R0903 # Abstract interface for connection clients
class Connectable(ABC):
    """Represents a connection client that can be asked to (re)connect.

    Implementations own their socket and are free to return early if already
    connected. `connect()` may either complete synchronously (returning None)
    or return an awaitable, in which case the caller schedules it on an event
    loop without waiting for it.

    Subclassing is optional: any object with a callable, zero-argument
    `connect` attribute is accepted where a `Connectable` is expected.
    """

    @abstractmethod
    def connect(self) -> Awaitable[Any] | None:
        """Establishes the connection, or re-establishes it if it dropped."""
