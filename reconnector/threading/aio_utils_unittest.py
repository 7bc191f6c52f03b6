import asyncio

import pytest

from reconnector.threading.aio_utils import (
    get_running_loop_or_none,
    run_on_event_loop,
)


class Ready:
    """A non-coroutine awaitable."""

    def __await__(self):
        yield from asyncio.sleep(0).__await__()
        return "ready"


def test_get_running_loop_or_none_outside_loop() -> None:
    assert get_running_loop_or_none() is None


def test_get_running_loop_or_none_inside_loop() -> None:
    async def capture():
        return get_running_loop_or_none(), asyncio.get_running_loop()

    captured, running = asyncio.run(capture())
    assert captured is running


def test_run_coroutine_on_loop(loop_in_thread) -> None:
    async def add(a: int, b: int) -> int:
        await asyncio.sleep(0)
        return a + b

    future = run_on_event_loop(add(2, 3), loop_in_thread)
    assert future.result(timeout=5) == 5


def test_run_plain_awaitable_on_loop(loop_in_thread) -> None:
    future = run_on_event_loop(Ready(), loop_in_thread)
    assert future.result(timeout=5) == "ready"


def test_closed_loop_raises() -> None:
    loop = asyncio.new_event_loop()
    loop.close()

    async def never() -> None:
        pass

    with pytest.raises(RuntimeError, match="closed"):
        run_on_event_loop(never(), loop)
