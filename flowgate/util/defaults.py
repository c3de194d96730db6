"""Default values for flowgate."""

from enum import IntEnum


class EXITCODES(IntEnum):
    """Exit codes for flowgate."""

    SUCCESS = 0
    """Successful execution."""
    ERROR = 1
    """General unspecified error."""
    CONFIGURATION_ERROR = 2
    """An error in the configuration."""
    PIPELINE_ERROR = 3
    """An operation failed and the stream was closed."""


DEFAULT_CONCURRENCY = 10
DEFAULT_METRICS_PORT = 8000
DEFAULT_LOG_FORMAT = "%(asctime)-15s %(name)-15s %(levelname)-8s: %(message)s"
DEFAULT_LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# dictconfig as described in
# https://docs.python.org/3/library/logging.config.html#configuration-dictionary-schema
# stdout carries the results of the runner, so logs go to stderr
DEFAULT_LOG_CONFIG: dict = {
    "version": 1,
    "formatters": {
        "flowgate": {
            "class": "flowgate.util.logging.FlowgateFormatter",
            "format": DEFAULT_LOG_FORMAT,
            "datefmt": DEFAULT_LOG_DATE_FORMAT,
        }
    },
    "handlers": {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "flowgate",
            "stream": "ext://sys.stderr",
        },
    },
    "loggers": {
        "root": {"level": "INFO", "handlers": ["console"]},
        "asyncio": {"level": "WARNING"},
    },
    "filters": {},
    "disable_existing_loggers": False,
}
