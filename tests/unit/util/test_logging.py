# pylint: disable=missing-docstring
import logging
import logging.config
import sys
from copy import deepcopy
from socket import gethostname

from flowgate.util.defaults import DEFAULT_LOG_CONFIG
from flowgate.util.logging import FlowgateFormatter


class TestFlowgateFormatter:
    def test_formatter_init_with_default(self):
        default_formatter = FlowgateFormatter()
        assert default_formatter

    def test_format_returns_str(self):
        formatter = FlowgateFormatter()
        record = logging.LogRecord(
            name="test_logger",
            level=logging.INFO,
            pathname="test_path",
            lineno=1,
            msg="test message",
            args=None,
            exc_info=None,
        )
        formatted_record = formatter.format(record)
        assert isinstance(formatted_record, str)
        assert "test message" in formatted_record

    def test_format_adds_hostname(self):
        formatter = FlowgateFormatter("%(hostname)s %(name)s: %(message)s")
        record = logging.LogRecord(
            name="Executor",
            level=logging.INFO,
            pathname="test_path",
            lineno=1,
            msg="started %d jobs",
            args=(3,),
            exc_info=None,
        )
        assert formatter.format(record) == f"{gethostname()} Executor: started 3 jobs"


class TestLogDictConfig:
    """this tests the flowgate.util.defaults.DEFAULT_LOG_CONFIG dict"""

    def setup_method(self):
        self.root_handlers = list(logging.getLogger().handlers)
        self.root_level = logging.getLogger().level

    def teardown_method(self):
        root = logging.getLogger()
        root.handlers = self.root_handlers
        root.setLevel(self.root_level)

    def test_root_logger_uses_flowgate_formatter_on_stderr(self):
        logging.config.dictConfig(deepcopy(DEFAULT_LOG_CONFIG))
        console = [
            handler
            for handler in logging.getLogger().handlers
            if isinstance(handler, logging.StreamHandler) and handler.stream is sys.stderr
        ]
        assert len(console) == 1
        assert isinstance(console[0].formatter, FlowgateFormatter)

    def test_asyncio_logger_is_quiet(self):
        logging.config.dictConfig(deepcopy(DEFAULT_LOG_CONFIG))
        assert logging.getLogger("asyncio").level == logging.WARNING
