# pylint: disable=missing-docstring
import asyncio
from unittest import mock

import pytest

from flowgate.framework.batch import run_all
from flowgate.framework.errors import InvalidConcurrencyLimitError
from tests.testdata.handlers import ControlledHandler, CountingHandler, run_pending


@pytest.mark.asyncio
class TestRunAll:
    async def test_processes_every_item_with_bounded_concurrency(self, name):
        handler = CountingHandler()
        processed = await run_all(range(10), 3, handler, name=name)
        assert processed == 10
        assert handler.max_in_flight <= 3
        assert handler.calls == list(range(10))

    async def test_limit_of_one_processes_sequentially(self, name):
        handler = CountingHandler()
        assert await run_all(range(5), 1, handler, name=name) == 5
        assert handler.max_in_flight == 1

    async def test_empty_input_returns_zero(self, handler, name):
        assert await run_all([], 3, handler, name=name) == 0
        assert not handler.started

    async def test_invalid_limit_raises_before_any_call(self, name):
        handler = mock.MagicMock()
        with pytest.raises(InvalidConcurrencyLimitError):
            await run_all(range(10), 0, handler, name=name)
        handler.assert_not_called()

    async def test_first_failure_is_raised_and_remaining_items_are_dropped(self, name):
        handler = ControlledHandler()
        task = asyncio.ensure_future(run_all(range(10), 3, handler, name=name))
        await run_pending()
        for item in [1, 0, 2]:
            handler.resolve(item)
            await run_pending()
        error = ValueError("fourth")
        handler.reject(4, error)
        await run_pending()
        with pytest.raises(ValueError, match="fourth"):
            await task
        assert handler.started == [0, 1, 2, 3, 4, 5]
        assert sorted(handler.cancelled) == [3, 5]

    async def test_failure_does_not_wait_for_cancelled_operations(self, name):
        handler = ControlledHandler(ignore_cancel=True)
        task = asyncio.ensure_future(run_all(["a", "b", "c"], 2, handler, name=name))
        await run_pending()
        handler.reject("a", RuntimeError("boom"))
        await run_pending()
        assert task.done()
        with pytest.raises(RuntimeError, match="boom"):
            task.result()
        assert handler.cancelled == ["b"]
        handler.resolve_late("b")
        await run_pending()

    async def test_cancelling_the_caller_cancels_operations(self, handler, name):
        task = asyncio.ensure_future(run_all(range(5), 2, handler, name=name))
        await run_pending()
        task.cancel()
        await run_pending()
        assert task.cancelled()
        assert sorted(handler.cancelled) == [0, 1]
        assert handler.started == [0, 1]

    async def test_accepts_generators(self, name):
        handler = CountingHandler()
        items = (item for item in range(7))
        assert await run_all(items, 4, handler, name=name) == 7

    async def test_failing_source_cancels_started_operations(self, handler, name):
        def source():
            yield 1
            yield 2
            raise RuntimeError("source broke")

        with pytest.raises(RuntimeError, match="source broke"):
            await run_all(source(), 3, handler, name=name)
        await run_pending()
        assert handler.started == []
        assert handler.in_flight == 0
