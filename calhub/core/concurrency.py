"""Running blocking client libraries from coroutines."""

import asyncio
from collections.abc import Callable
from typing import TypeVar

T = TypeVar("T")


async def run_blocking(fn: Callable[..., T], *args, timeout: float) -> T:
    """Run a blocking call in a worker thread, bounded by ``timeout`` seconds.

    Raises ``TimeoutError`` when the deadline passes. The worker thread is
    not interrupted; its eventual result is discarded.
    """
    return await asyncio.wait_for(asyncio.to_thread(fn, *args), timeout=timeout)
