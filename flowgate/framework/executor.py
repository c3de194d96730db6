"""
Bounded executor.

The executor owns the concurrency limit, the FIFO queue of pending items and the set of
running jobs. Admission and advancement are the only places where jobs enter the running
set, and both are gated by the same size check, so the number of running jobs never
exceeds the configured limit.

Every admitted item is turned into a :code:`Job`. Running jobs wrap the awaitable returned
by the handler into an :code:`asyncio.Future` whose done callback reports the outcome back
to the executor. The outcome is then forwarded to the registered callbacks:

* :code:`on_result(value)` for every successful job,
* :code:`on_error(error)` for the first failed job, after which everything outstanding is
  cancelled and the executor stops accepting items,
* :code:`on_advance(item)` whenever a queued item is started because a slot became free,
* :code:`on_idle()` whenever the last running job settled and the queue is empty.

A raising :code:`on_result`, :code:`on_advance` or :code:`on_idle` is handled like a failed
operation.

All callbacks run on the event loop thread. Cancellation of running jobs is best effort: the
future is asked to cancel and whatever it eventually settles with is discarded.
"""

import asyncio
import functools
import logging
import time
from collections import deque
from collections.abc import Awaitable, Callable
from enum import Enum
from typing import Any, Generic, TypeVar

from attrs import define, field

from flowgate.framework.errors import (
    ExecutorShutdownError,
    InvalidConcurrencyLimitError,
    OperationCancelledError,
)
from flowgate.metrics import metrics
from flowgate.metrics.metrics import CounterMetric, GaugeMetric, HistogramMetric

logger = logging.getLogger("Executor")

Input = TypeVar("Input")
Output = TypeVar("Output")

Handler = Callable[[Input], Awaitable[Output]]


class JobState(Enum):
    """Lifecycle states of a job."""

    QUEUED = "queued"
    """Admitted but waiting for a free slot."""
    RUNNING = "running"
    """The operation is in flight."""
    SETTLED = "settled"
    """The operation completed with a result or an error."""
    CANCELLED = "cancelled"
    """The job was discarded by :code:`cancel_all`."""


class Admission(Enum):
    """Outcome of :code:`BoundedExecutor.admit`."""

    STARTED = "started"
    QUEUED = "queued"


@define(eq=False)
class Job:
    """One admitted unit of work, owned by its executor until it settles."""

    item: Any
    state: JobState = field(default=JobState.QUEUED)
    future: asyncio.Future | None = field(default=None)
    started_at: float | None = field(default=None)


def validate_concurrency(concurrency: object) -> int:
    """Return the concurrency limit or raise if it is not an integer >= 1."""
    if isinstance(concurrency, bool) or not isinstance(concurrency, int) or concurrency < 1:
        raise InvalidConcurrencyLimitError(concurrency)
    return concurrency


class BoundedExecutor(Generic[Input, Output]):
    """Runs an async handler for admitted items with at most :code:`concurrency` in flight."""

    @define(kw_only=True)
    class Metrics(metrics.Metrics):
        """Tracks statistics about an executor"""

        number_of_admitted_items: CounterMetric = field(
            factory=lambda: CounterMetric(
                description="Number of items admitted to the executor",
                name="number_of_admitted_items",
            )
        )
        """Number of items admitted to the executor"""
        number_of_started_jobs: CounterMetric = field(
            factory=lambda: CounterMetric(
                description="Number of jobs whose operation was started",
                name="number_of_started_jobs",
            )
        )
        """Number of jobs whose operation was started"""
        number_of_succeeded_jobs: CounterMetric = field(
            factory=lambda: CounterMetric(
                description="Number of jobs that settled with a result",
                name="number_of_succeeded_jobs",
            )
        )
        """Number of jobs that settled with a result"""
        number_of_failed_jobs: CounterMetric = field(
            factory=lambda: CounterMetric(
                description="Number of jobs that settled with an error",
                name="number_of_failed_jobs",
            )
        )
        """Number of jobs that settled with an error"""
        number_of_cancelled_jobs: CounterMetric = field(
            factory=lambda: CounterMetric(
                description="Number of queued or running jobs discarded by a cancellation",
                name="number_of_cancelled_jobs",
            )
        )
        """Number of queued or running jobs discarded by a cancellation"""
        number_of_running_jobs: GaugeMetric = field(
            factory=lambda: GaugeMetric(
                description="Number of jobs currently in flight",
                name="number_of_running_jobs",
            )
        )
        """Number of jobs currently in flight"""
        number_of_queued_items: GaugeMetric = field(
            factory=lambda: GaugeMetric(
                description="Number of items waiting for a free slot",
                name="number_of_queued_items",
            )
        )
        """Number of items waiting for a free slot"""
        processing_time_per_job: HistogramMetric = field(
            factory=lambda: HistogramMetric(
                description="Time in seconds from starting a job until it settled",
                name="processing_time_per_job",
            )
        )
        """Time in seconds from starting a job until it settled"""

    def __init__(
        self,
        concurrency: int,
        handler: Handler[Input, Output],
        *,
        on_result: Callable[[Output], None] | None = None,
        on_error: Callable[[BaseException], None] | None = None,
        on_advance: Callable[[Input], None] | None = None,
        on_idle: Callable[[], None] | None = None,
        name: str = "executor",
    ) -> None:
        self._concurrency = validate_concurrency(concurrency)
        self._handler = handler
        self._on_result = on_result
        self._on_error = on_error
        self._on_advance = on_advance
        self._on_idle = on_idle
        self.name = name

        self._queue: deque[Job] = deque()
        self._running: set[Job] = set()
        self._accepting = True
        self._cancelled = False
        self._idle_waiters: list[asyncio.Future[None]] = []

        self.metrics = self.Metrics(labels={"executor": name})

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}(name={self.name!r}, concurrency={self._concurrency}, "
            f"running={len(self._running)}, queued={len(self._queue)})"
        )

    @property
    def concurrency(self) -> int:
        """The maximum number of jobs in flight"""
        return self._concurrency

    @property
    def running_count(self) -> int:
        """Number of jobs in flight"""
        return len(self._running)

    @property
    def queued_count(self) -> int:
        """Number of items waiting for a free slot"""
        return len(self._queue)

    @property
    def is_idle(self) -> bool:
        """True if nothing is running and nothing is queued"""
        return not self._running and not self._queue

    @property
    def accepting(self) -> bool:
        """True as long as :code:`admit` accepts new items"""
        return self._accepting

    @property
    def cancelled(self) -> bool:
        """True once :code:`cancel_all` was called"""
        return self._cancelled

    def admit(self, item: Input) -> Admission:
        """Start the operation for :code:`item` now if a slot is free, otherwise queue it.

        Items are only started directly if no other item is waiting, so start order always
        equals admission order.

        Parameters
        ----------
        item : Input
            The item to pass to the handler.

        Returns
        -------
        Admission
            :code:`Admission.STARTED` or :code:`Admission.QUEUED`.

        Raises
        ------
        ExecutorShutdownError
            If the executor is draining or was cancelled.
        """
        if not self._accepting:
            raise ExecutorShutdownError(self.name)
        self.metrics.number_of_admitted_items += 1
        job = Job(item)
        if not self._queue and len(self._running) < self._concurrency:
            self._start(job)
            return Admission.STARTED
        self._queue.append(job)
        self._update_gauges()
        logger.debug("Queued item in '%s' (%d queued)", self.name, len(self._queue))
        return Admission.QUEUED

    def advance(self) -> bool:
        """Start the oldest queued item if a slot is free.

        Returns
        -------
        bool
            True if an item was started.
        """
        if self._cancelled or not self._queue or len(self._running) >= self._concurrency:
            return False
        job = self._queue.popleft()
        self._start(job)
        if self._on_advance is not None:
            self._on_advance(job.item)
        return True

    def drain(self) -> bool:
        """Stop accepting items. Queued and running jobs keep going.

        Returns
        -------
        bool
            True if the executor is already idle.
        """
        if self._accepting:
            logger.debug("Draining '%s'", self.name)
        self._accepting = False
        return self.is_idle

    async def drain_and_wait(self) -> None:
        """Stop accepting items and wait until every running and queued job is gone."""
        if self.drain():
            return
        waiter = asyncio.get_running_loop().create_future()
        self._idle_waiters.append(waiter)
        await waiter

    def cancel_all(self) -> None:
        """Discard every queued item and ask every running operation to cancel.

        The executor neither accepts nor starts anything afterwards. Outcomes of operations
        that settle later are ignored.
        """
        self._accepting = False
        self._cancelled = True
        queued, running = list(self._queue), list(self._running)
        self._queue.clear()
        self._running.clear()
        for job in queued:
            job.state = JobState.CANCELLED
        for job in running:
            job.state = JobState.CANCELLED
            job.future.cancel()
        if queued or running:
            self.metrics.number_of_cancelled_jobs += len(queued) + len(running)
            logger.debug(
                "Cancelled %d running and %d queued jobs in '%s'",
                len(running),
                len(queued),
                self.name,
            )
        self._update_gauges()
        self._wake_idle_waiters()

    def _start(self, job: Job) -> None:
        job.state = JobState.RUNNING
        job.started_at = time.perf_counter()
        self._running.add(job)
        self.metrics.number_of_started_jobs += 1
        try:
            job.future = asyncio.ensure_future(self._handler(job.item))
        # pylint: disable=broad-except
        except Exception as error:
            job.future = asyncio.get_running_loop().create_future()
            job.future.set_exception(error)
        # pylint: enable=broad-except
        job.future.add_done_callback(functools.partial(self._on_settle, job))
        self._update_gauges()

    def _on_settle(self, job: Job, future: asyncio.Future) -> None:
        if job not in self._running:
            if not future.cancelled():
                future.exception()
            logger.debug("Discarded outcome of cancelled job in '%s'", self.name)
            return
        self._running.discard(job)
        job.state = JobState.SETTLED
        self.metrics.processing_time_per_job += time.perf_counter() - job.started_at
        error = OperationCancelledError(job.item) if future.cancelled() else future.exception()
        if error is not None:
            self._fail(error)
            return
        self.metrics.number_of_succeeded_jobs += 1
        self._update_gauges()
        try:
            if self._on_result is not None:
                self._on_result(future.result())
            self.advance()
            self._check_idle()
        # pylint: disable=broad-except
        except Exception as error:
            self._fail(error)
        # pylint: enable=broad-except

    def _fail(self, error: BaseException) -> None:
        self.metrics.number_of_failed_jobs += 1
        logger.warning("Operation failed in '%s': %s", self.name, error)
        self.cancel_all()
        if self._on_error is not None:
            self._on_error(error)

    def _check_idle(self) -> None:
        if not self.is_idle:
            return
        if self._on_idle is not None and not self._cancelled:
            self._on_idle()
        if not self._accepting:
            self._wake_idle_waiters()

    def _wake_idle_waiters(self) -> None:
        waiters, self._idle_waiters = self._idle_waiters, []
        for waiter in waiters:
            if not waiter.done():
                waiter.set_result(None)

    def _update_gauges(self) -> None:
        self.metrics.number_of_running_jobs += len(self._running)
        self.metrics.number_of_queued_items += len(self._queue)
