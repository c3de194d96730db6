# pylint: disable=missing-docstring
# pylint: disable=attribute-defined-outside-init
import re

import pytest

from flowgate.abc.exceptions import FlowgateException
from flowgate.framework.errors import (
    ExecutorShutdownError,
    InvalidConcurrencyLimitError,
    InvalidConfigurationError,
    OperationCancelledError,
    OperationFailedError,
    StreamStateError,
)


class ExceptionBaseTest:
    exception: type
    exception_args: tuple
    error_message: str

    def test_error_message(self):
        with pytest.raises(self.exception, match=self.error_message):
            raise self.exception(*self.exception_args)

    def test_is_flowgate_exception(self):
        assert isinstance(self.exception(*self.exception_args), FlowgateException)

    def test_equal_for_same_arguments(self):
        assert self.exception(*self.exception_args) == self.exception(*self.exception_args)
        assert len({self.exception(*self.exception_args), self.exception(*self.exception_args)}) == 1


class TestInvalidConcurrencyLimitError(ExceptionBaseTest):
    exception = InvalidConcurrencyLimitError
    exception_args = (0,)
    error_message = r"Concurrency limit must be an integer >= 1, got: 0"

    def test_is_configuration_error(self):
        assert isinstance(self.exception(*self.exception_args), InvalidConfigurationError)


class TestExecutorShutdownError(ExceptionBaseTest):
    exception = ExecutorShutdownError
    exception_args = ("batch",)
    error_message = r"Executor 'batch' does not accept new items"


class TestStreamStateError(ExceptionBaseTest):
    exception = StreamStateError
    exception_args = ("enrich", "write to", "closed")
    error_message = r"Cannot write to stream 'enrich' in state 'closed'"


class TestOperationCancelledError(ExceptionBaseTest):
    exception = OperationCancelledError
    exception_args = ({"id": 1},)
    error_message = re.escape("Operation for item {'id': 1} was cancelled")


class TestOperationFailedError(ExceptionBaseTest):
    exception = OperationFailedError
    error = ValueError("bad value")
    exception_args = ("runner", error)
    error_message = r"Stream 'runner' failed: ValueError: bad value"
