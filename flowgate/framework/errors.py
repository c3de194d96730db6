"""This module contains errors raised by the executor and the stream adapter."""

from flowgate.abc.exceptions import FlowgateException


class InvalidConfigurationError(FlowgateException):
    """Raise if configuration is invalid."""


class InvalidConcurrencyLimitError(InvalidConfigurationError):
    """Raise if the concurrency limit is not a positive integer."""

    def __init__(self, concurrency: object) -> None:
        super().__init__(f"Concurrency limit must be an integer >= 1, got: {concurrency!r}")


class ExecutorShutdownError(FlowgateException):
    """Raise if an item is admitted after the executor stopped accepting work."""

    def __init__(self, name: str) -> None:
        super().__init__(f"Executor '{name}' does not accept new items")


class StreamStateError(FlowgateException):
    """Raise if a stream operation is not valid in the current stream state."""

    def __init__(self, name: str, operation: str, state: str) -> None:
        super().__init__(f"Cannot {operation} stream '{name}' in state '{state}'")


class OperationCancelledError(FlowgateException):
    """Raise if a running operation was cancelled by someone other than its executor."""

    def __init__(self, item: object) -> None:
        super().__init__(f"Operation for item {item!r} was cancelled")


class OperationFailedError(FlowgateException):
    """Raise if a stream was closed because one of its operations failed."""

    def __init__(self, name: str, error: BaseException) -> None:
        super().__init__(f"Stream '{name}' failed: {type(error).__name__}: {error}")
