"""A collection of helper utilities for async code"""

import asyncio
import functools
from collections.abc import AsyncIterable, AsyncIterator, Awaitable, Callable, Iterable
from typing import TypeVar

T = TypeVar("T")
D = TypeVar("D")


def with_timeout(
    handler: Callable[[D], Awaitable[T]], timeout_s: float
) -> Callable[[D], Awaitable[T]]:
    """Wraps an async handler so that every call fails with a :code:`TimeoutError`
    if it does not complete within :code:`timeout_s` seconds.

    The deadline applies per call. The wrapped operation is cancelled when it expires.

    Parameters
    ----------
    handler : Callable[[D], Awaitable[T]]
        The handler to wrap
    timeout_s : float
        Deadline per call in seconds

    Returns
    -------
    Callable[[D], Awaitable[T]]
        The wrapped handler

    Raises
    ------
    ValueError
        If the timeout is not positive.
    """
    if timeout_s <= 0:
        raise ValueError(f"timeout must be > 0, got: {timeout_s}")

    @functools.wraps(handler)
    async def handle_with_deadline(item: D) -> T:
        return await asyncio.wait_for(handler(item), timeout_s)

    return handle_with_deadline


async def iterate(source: Iterable[T] | AsyncIterable[T]) -> AsyncIterator[T]:
    """Iterates over a sync or async iterable from async code.

    Parameters
    ----------
    source : Iterable[T] | AsyncIterable[T]
        The source to consume

    Yields
    ------
    T
        The items of the source
    """
    if isinstance(source, AsyncIterable):
        async for item in source:
            yield item
    else:
        for item in source:
            yield item
