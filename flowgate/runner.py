"""
Runner module

The runner reads a JSON lines file, streams every decoded line through the configured
handler with bounded concurrency and writes every result as one JSON line.
"""

import asyncio
import contextlib
import logging
import sys
from collections.abc import Iterator
from typing import IO, Any, Callable

import msgspec

from flowgate.framework.errors import OperationFailedError
from flowgate.framework.stream import EventKind, StreamEvent, TransformStream
from flowgate.util.async_helpers import with_timeout
from flowgate.util.configuration import Configuration
from flowgate.util.helper import import_handler

logger = logging.getLogger("Runner")


class Runner:
    """Runs one configured stream from the input file to the output."""

    instance: "Runner | None" = None

    _decoder: msgspec.json.Decoder = msgspec.json.Decoder()
    _encoder: msgspec.json.Encoder = msgspec.json.Encoder()

    def __init__(self, configuration: Configuration) -> None:
        """Initialize the runner and resolve the configured handler.

        Raises
        ------
        HandlerImportError
            If the handler can not be imported.
        """
        self.configuration = configuration
        self.handler = self._load_handler()
        self.stream: TransformStream | None = None
        self._loop: asyncio.AbstractEventLoop | None = None
        Runner.instance = self

    def _load_handler(self) -> Callable:
        handler = import_handler(self.configuration.handler)
        if self.configuration.timeout is not None:
            handler = with_timeout(handler, self.configuration.timeout)

        async def handle_and_encode(item: Any) -> bytes:
            return self._encoder.encode(await handler(item)) + b"\n"

        return handle_and_encode

    def setup_logging(self) -> None:
        """Applies the logger configuration."""
        self.configuration.logger.setup_logging()

    def run(self) -> int:
        """Process the whole input.

        Returns
        -------
        int
            Number of results written.

        Raises
        ------
        OperationFailedError
            If one handler call failed. The stream is closed on the first failure.
        """
        return asyncio.run(self._run())

    def stop(self) -> None:
        """Close the running stream. Safe to call from a signal handler."""
        if self.stream is None or self._loop is None or self._loop.is_closed():
            return
        logger.info("Stopping stream '%s'", self.stream.name)
        self._loop.call_soon_threadsafe(self.stream.close)

    async def _run(self) -> int:
        self._loop = asyncio.get_running_loop()
        stream = TransformStream(self.configuration.concurrency, self.handler, name="runner")
        self.stream = stream
        written = 0
        with self._open_output() as output:

            def write_result(event: StreamEvent) -> None:
                nonlocal written
                if event.kind is EventKind.DATA:
                    output.write(event.value)
                    written += 1

            stream.subscribe(write_result)
            with open(self.configuration.input, "rb") as source:
                try:
                    read = await stream.pipe_from(self._read_lines(source))
                except Exception:
                    stream.close()
                    raise
                logger.debug("Read %d items from %s", read, self.configuration.input)
                await stream.wait_closed()
            output.flush()
        if stream.error is not None:
            raise OperationFailedError(stream.name, stream.error) from stream.error
        logger.info("Wrote %d results", written)
        return written

    def _read_lines(self, source: IO[bytes]) -> Iterator[Any]:
        for line in source:
            if line.strip():
                yield self._decoder.decode(line)

    def _open_output(self) -> contextlib.AbstractContextManager[IO[bytes]]:
        if self.configuration.output is None:
            return contextlib.nullcontext(sys.stdout.buffer)
        return open(self.configuration.output, "wb")
