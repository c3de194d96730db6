# pylint: disable=missing-docstring
"""Async handlers used as test doubles."""

import asyncio
from typing import Any


async def run_pending(iterations: int = 20) -> None:
    """Let the event loop run scheduled callbacks and task steps."""
    for _ in range(iterations):
        await asyncio.sleep(0)


class ControlledHandler:
    """Handler whose operations only settle when the test resolves or rejects them."""

    def __init__(self, ignore_cancel: bool = False) -> None:
        self.ignore_cancel = ignore_cancel
        self.futures: dict[Any, asyncio.Future] = {}
        self.started: list[Any] = []
        self.cancelled: list[Any] = []
        self.in_flight = 0
        self.max_in_flight = 0

    async def __call__(self, item: Any) -> Any:
        future = asyncio.get_running_loop().create_future()
        self.futures[item] = future
        self.started.append(item)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            return await future
        except asyncio.CancelledError:
            self.cancelled.append(item)
            if self.ignore_cancel:
                return await self.futures.setdefault(("late", item), future.get_loop().create_future())
            raise
        finally:
            self.in_flight -= 1

    def resolve(self, item: Any, value: Any = None) -> None:
        self.futures[item].set_result(item if value is None else value)

    def reject(self, item: Any, error: BaseException) -> None:
        self.futures[item].set_exception(error)

    def resolve_late(self, item: Any, value: Any = None) -> None:
        """Settle an operation that ignored its cancellation."""
        self.futures[("late", item)].set_result(item if value is None else value)


class CountingHandler:
    """Handler completing after a per item delay, recording the maximum concurrency seen."""

    def __init__(self, fail_on: Any = None, delay_s: float = 0.001) -> None:
        self.fail_on = fail_on
        self.delay_s = delay_s
        self.in_flight = 0
        self.max_in_flight = 0
        self.calls: list[Any] = []

    async def __call__(self, item: Any) -> Any:
        self.calls.append(item)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep(self.delay_s * (1 + item % 3) if isinstance(item, int) else 0)
            if item == self.fail_on:
                raise ValueError(f"failed on {item}")
            return item * 2
        finally:
            self.in_flight -= 1


async def double_value(document: dict) -> dict:
    await asyncio.sleep(0)
    return {"value": document["value"] * 2}


async def fail_on_three(document: dict) -> dict:
    await asyncio.sleep(0)
    if document["value"] == 3:
        raise ValueError("three is not allowed")
    return document


async def slow_echo(document: dict) -> dict:
    await asyncio.sleep(document.get("sleep", 0))
    return document


def not_a_coroutine(document: dict) -> dict:
    return document


NOT_CALLABLE = 42
