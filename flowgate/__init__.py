"""flowgate runs async operations for a stream of items with bounded concurrency."""

from flowgate._version import __version__
from flowgate.framework.batch import run_all
from flowgate.framework.errors import (
    ExecutorShutdownError,
    InvalidConcurrencyLimitError,
    InvalidConfigurationError,
    OperationCancelledError,
    OperationFailedError,
    StreamStateError,
)
from flowgate.framework.executor import Admission, BoundedExecutor, JobState
from flowgate.framework.stream import EventKind, StreamEvent, StreamState, TransformStream
from flowgate.util.async_helpers import with_timeout

__all__ = [
    "__version__",
    "Admission",
    "BoundedExecutor",
    "EventKind",
    "ExecutorShutdownError",
    "InvalidConcurrencyLimitError",
    "InvalidConfigurationError",
    "JobState",
    "OperationCancelledError",
    "OperationFailedError",
    "StreamEvent",
    "StreamState",
    "StreamStateError",
    "TransformStream",
    "run_all",
    "with_timeout",
]
