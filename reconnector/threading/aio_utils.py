"""
Utilities for handing awaitables from worker threads to an asyncio loop.
"""

import asyncio
import concurrent.futures
from asyncio import AbstractEventLoop
from typing import Any, Awaitable, TypeVar

T = TypeVar("T")


def get_running_loop_or_none() -> AbstractEventLoop | None:
    """
    Returns the event loop this function was called from, or None if not
    called from an event loop.
    """
    try:
        return asyncio.get_running_loop()
    except RuntimeError:
        return None


async def _await(awaitable: Awaitable[T]) -> T:
    return await awaitable


def run_on_event_loop(
    awaitable: Awaitable[T], event_loop: AbstractEventLoop
) -> concurrent.futures.Future[T]:
    """
    Schedules |awaitable| on |event_loop| from any thread.

    Unlike `asyncio.run_coroutine_threadsafe`, any awaitable is accepted, not
    only coroutine objects.

    Args:
        awaitable: The awaitable to run.
        event_loop: The loop to run it on. Must be running, or about to run.

    Returns:
        A future that resolves with the awaitable's result.

    Raises:
        RuntimeError: If |event_loop| is closed.
    """
    if event_loop.is_closed():
        if asyncio.iscoroutine(awaitable):
            awaitable.close()
        raise RuntimeError("Cannot schedule on a closed event loop.")

    coro: Any = awaitable if asyncio.iscoroutine(awaitable) else _await(awaitable)
    return asyncio.run_coroutine_threadsafe(coro, event_loop)
