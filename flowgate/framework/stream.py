"""
Transform stream.

A :code:`TransformStream` puts a :code:`BoundedExecutor` behind a writable/readable
interface. Producers push items with :code:`write` and are told to pause when the item had
to be queued. Consumers observe results through a single tagged event channel.

..  code-block:: python
    :caption: Streaming records through an async handler

    stream = TransformStream(8, enrich, name="enrich")
    stream.subscribe(print)
    await stream.pipe_from(records)
    await stream.wait_closed()

Writable side
-------------

:code:`write(item)` returns :code:`False` when the item could not be started because all
slots are busy. The producer should stop writing until the stream emits a
:code:`EventKind.RESUME` event, or simply :code:`await stream.wait_ready()`.
:code:`await stream.send(item)` combines both. :code:`end()` requests a graceful shutdown,
:code:`close()` a forced one.

Readable side
-------------

Every observer registered with :code:`subscribe` receives :code:`StreamEvent` objects:

* :code:`DATA` once per successful operation, carrying the result,
* :code:`ERROR` once for the first failed operation, carrying the exception,
* :code:`END` once all work finished after :code:`end()`,
* :code:`CLOSE` exactly once, always last.

Results are emitted in completion order, not in admission order.
"""

import asyncio
import logging
from collections import deque
from collections.abc import AsyncIterable, AsyncIterator, Callable, Iterable
from enum import Enum
from typing import Any, Generic, TypeVar

from attrs import define, field

from flowgate.framework.errors import StreamStateError
from flowgate.framework.executor import Admission, BoundedExecutor, Handler
from flowgate.util.async_helpers import iterate

logger = logging.getLogger("TransformStream")

Input = TypeVar("Input")
Output = TypeVar("Output")

_NOTHING = object()


class StreamState(Enum):
    """Lifecycle states of a stream."""

    OPEN = "open"
    ENDING = "ending"
    CLOSED = "closed"


class EventKind(Enum):
    """Kinds of events emitted by a stream."""

    DATA = "data"
    ERROR = "error"
    END = "end"
    CLOSE = "close"
    RESUME = "resume"


@define(frozen=True)
class StreamEvent:
    """A single message on the event channel of a stream."""

    kind: EventKind
    value: Any = field(default=None)


Listener = Callable[[StreamEvent], None]


class TransformStream(Generic[Input, Output]):
    """Duplex stream running an async handler for every written item with bounded concurrency."""

    def __init__(self, concurrency: int, handler: Handler[Input, Output], *, name: str = "stream"):
        self.name = name
        self._executor: BoundedExecutor[Input, Output] = BoundedExecutor(
            concurrency,
            handler,
            on_result=self._on_result,
            on_error=self._on_error,
            on_advance=self._on_advance,
            on_idle=self._on_idle,
            name=name,
        )
        self._state = StreamState.OPEN
        self._error: BaseException | None = None
        self._listeners: list[Listener] = []
        self._pending: deque[StreamEvent] = deque()
        self._dispatching = False
        self._needs_resume = False
        self._ready = asyncio.Event()
        self._ready.set()
        self._closed = asyncio.Event()

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(name={self.name!r}, state={self._state.value})"

    def __aiter__(self) -> AsyncIterator[Output]:
        return self.results()

    @property
    def state(self) -> StreamState:
        """The current lifecycle state"""
        return self._state

    @property
    def closed(self) -> bool:
        """True once the stream reached its terminal state"""
        return self._state is StreamState.CLOSED

    @property
    def error(self) -> BaseException | None:
        """The failure that closed the stream, if any"""
        return self._error

    @property
    def concurrency(self) -> int:
        """The maximum number of operations in flight"""
        return self._executor.concurrency

    @property
    def running_count(self) -> int:
        """Number of operations in flight"""
        return self._executor.running_count

    @property
    def queued_count(self) -> int:
        """Number of written items waiting for a free slot"""
        return self._executor.queued_count

    def subscribe(self, listener: Listener) -> None:
        """Register a callable receiving every emitted :code:`StreamEvent`."""
        self._listeners.append(listener)

    def unsubscribe(self, listener: Listener) -> None:
        """Remove a previously registered listener."""
        if listener in self._listeners:
            self._listeners.remove(listener)

    def write(self, item: Input) -> bool:
        """Admit an item.

        Returns
        -------
        bool
            False if the item was queued and the producer should wait for a resume.

        Raises
        ------
        StreamStateError
            If the stream is not open anymore.
        """
        if self._state is not StreamState.OPEN:
            raise StreamStateError(self.name, "write to", self._state.value)
        if self._executor.admit(item) is Admission.STARTED:
            return True
        self._needs_resume = True
        self._ready.clear()
        return False

    async def wait_ready(self) -> None:
        """Wait until a paused producer may write again or the stream closed."""
        await self._ready.wait()

    async def send(self, item: Input) -> None:
        """Write an item and wait for the resume signal if the stream asked to pause."""
        if not self.write(item):
            await self.wait_ready()

    def end(self, item: Any = _NOTHING) -> None:
        """Request a graceful shutdown after all written items were processed.

        Parameters
        ----------
        item : Input, optional
            A last item to write before ending.
        """
        if item is not _NOTHING:
            self.write(item)
        if self._state is not StreamState.OPEN:
            return
        logger.debug("Ending stream '%s'", self.name)
        self._state = StreamState.ENDING
        if self._executor.drain():
            self._finalize()

    def close(self) -> None:
        """Cancel all outstanding work and close the stream. Calling it again has no effect."""
        if self._state is StreamState.CLOSED:
            return
        self._terminate()

    async def wait_closed(self) -> None:
        """Wait until the stream closed, gracefully or not."""
        await self._closed.wait()

    def results(self) -> AsyncIterator[Output]:
        """Iterate over the results emitted from now on.

        The iterator raises the stream failure and stops once the stream ended or closed.
        """
        channel: asyncio.Queue[StreamEvent] = asyncio.Queue()
        if self._state is StreamState.CLOSED:
            if self._error is not None:
                channel.put_nowait(StreamEvent(EventKind.ERROR, self._error))
            channel.put_nowait(StreamEvent(EventKind.CLOSE))
        else:
            self.subscribe(channel.put_nowait)
        return self._iterate(channel)

    async def _iterate(self, channel: "asyncio.Queue[StreamEvent]") -> AsyncIterator[Output]:
        try:
            while True:
                event = await channel.get()
                if event.kind is EventKind.DATA:
                    yield event.value
                elif event.kind is EventKind.ERROR:
                    raise event.value
                elif event.kind in (EventKind.END, EventKind.CLOSE):
                    return
        finally:
            self.unsubscribe(channel.put_nowait)

    async def pipe_from(self, source: Iterable[Input] | AsyncIterable[Input], end: bool = True) -> int:
        """Write every item of :code:`source`, pausing whenever the stream asks to.

        Stops early if the stream stops being open.

        Parameters
        ----------
        source : Iterable | AsyncIterable
            The items to write.
        end : bool
            Call :code:`end()` once the source is exhausted. Defaults to :code:`True`.

        Returns
        -------
        int
            Number of items written.
        """
        written = 0
        async for item in iterate(source):
            if self._state is not StreamState.OPEN:
                logger.debug("Stream '%s' is %s, stop reading", self.name, self._state.value)
                break
            if not self.write(item):
                await self.wait_ready()
            written += 1
        if end:
            self.end()
        return written

    def pipe(self, destination: Any, end: bool = True) -> Any:
        """Forward every result to :code:`destination.write` and the end to :code:`destination.end`.

        If the destination refuses a write because it is not open anymore, this stream is closed.

        Returns
        -------
        Any
            The destination, to allow chaining.
        """

        def forward(event: StreamEvent) -> None:
            if event.kind is EventKind.DATA:
                try:
                    destination.write(event.value)
                except StreamStateError as error:
                    logger.warning("Pipe destination of '%s' rejected data: %s", self.name, error)
                    self.close()
            elif event.kind is EventKind.END and end:
                destination.end()

        self.subscribe(forward)
        return destination

    def _emit(self, kind: EventKind, value: Any = None) -> None:
        if self._state is StreamState.CLOSED:
            return
        self._dispatch(StreamEvent(kind, value))

    def _dispatch(self, *events: StreamEvent) -> None:
        """Deliver events to every listener in order.

        Events emitted by a listener while a dispatch is running are appended and delivered
        after the current event reached all listeners. A raising listener does not keep the
        event from the others, the first error is raised once everything was delivered.
        """
        self._pending.extend(events)
        if self._dispatching:
            return
        self._dispatching = True
        listener_error: Exception | None = None
        try:
            while self._pending:
                event = self._pending.popleft()
                for listener in list(self._listeners):
                    try:
                        listener(event)
                    # pylint: disable=broad-except
                    except Exception as error:
                        if listener_error is None:
                            listener_error = error
                    # pylint: enable=broad-except
        finally:
            self._dispatching = False
        if listener_error is not None:
            raise listener_error

    def _terminate(self, *events: StreamEvent) -> None:
        """Cancel all work, enter CLOSED and deliver :code:`events` followed by CLOSE."""
        self._executor.cancel_all()
        self._state = StreamState.CLOSED
        logger.debug("Closed stream '%s'", self.name)
        try:
            self._dispatch(*events, StreamEvent(EventKind.CLOSE))
        finally:
            self._ready.set()
            self._closed.set()

    def _on_result(self, value: Output) -> None:
        self._emit(EventKind.DATA, value)

    def _on_advance(self, _: Input) -> None:
        if not self._needs_resume:
            return
        self._needs_resume = False
        self._ready.set()
        self._emit(EventKind.RESUME)

    def _on_idle(self) -> None:
        if self._state is StreamState.ENDING:
            self._finalize()

    def _on_error(self, error: BaseException) -> None:
        if self._state is StreamState.CLOSED:
            return
        logger.error("Stream '%s' failed: %s", self.name, error)
        self._error = error
        self._terminate(StreamEvent(EventKind.ERROR, error))

    def _finalize(self) -> None:
        logger.debug("Stream '%s' drained", self.name)
        self._terminate(StreamEvent(EventKind.END))
