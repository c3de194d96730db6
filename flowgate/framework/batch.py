"""Run a handler over a finite collection with bounded concurrency."""

import asyncio
import logging
from collections.abc import Iterable

from flowgate.framework.executor import BoundedExecutor, Handler, Input, Output

logger = logging.getLogger("Batch")


async def run_all(
    items: Iterable[Input],
    concurrency: int,
    handler: Handler[Input, Output],
    *,
    name: str = "batch",
) -> int:
    """Run :code:`handler` for every item with at most :code:`concurrency` operations in flight.

    The first failing operation cancels everything that is still queued or running and is
    raised without waiting for the cancelled operations to finish.

    Parameters
    ----------
    items : Iterable[Input]
        The items to process.
    concurrency : int
        Maximum number of operations in flight. Must be >= 1.
    handler : Callable[[Input], Awaitable[Output]]
        The operation to run per item.
    name : str
        Name used for logging and metric labels.

    Returns
    -------
    int
        Number of successfully processed items.

    Raises
    ------
    InvalidConcurrencyLimitError
        If :code:`concurrency` is not an integer >= 1.
    """
    processed = 0
    failures: list[BaseException] = []

    def count(_: Output) -> None:
        nonlocal processed
        processed += 1

    executor = BoundedExecutor(
        concurrency, handler, on_result=count, on_error=failures.append, name=name
    )
    admitted = 0
    try:
        for item in items:
            executor.admit(item)
            admitted += 1
    except BaseException:
        executor.cancel_all()
        raise
    logger.debug("Admitted %d items to '%s'", admitted, name)
    try:
        await executor.drain_and_wait()
    except asyncio.CancelledError:
        executor.cancel_all()
        raise
    if failures:
        raise failures[0]
    logger.debug("Processed %d items in '%s'", processed, name)
    return processed
