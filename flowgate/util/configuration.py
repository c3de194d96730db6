"""
Configuration is done via a YAML or JSON file which is passed to :code:`flowgate run`.

..  code-block:: bash
    :caption: Valid Run Examples

    flowgate run /path/to/flowgate.yml
    flowgate print /path/to/flowgate.yml --output json

Configuration File Structure
----------------------------

..  code-block:: yaml
    :caption: Example of a complete configuration file

    version: "1"
    concurrency: 8
    timeout: 5.0
    handler: mypackage.handlers:enrich
    input: /data/records.jsonl
    output: /data/enriched.jsonl
    logger:
        level: INFO
        loggers:
            Executor: {level: DEBUG}
    metrics:
        enabled: true
        port: 8000

Every line of :code:`input` is decoded as one JSON document and passed to the
:code:`handler`, an async callable given by its import path. Every result is written
as one JSON line to :code:`output`, or to stdout if no output is configured.
"""

import json
import logging
from copy import deepcopy
from logging.config import dictConfig
from pathlib import Path
from typing import Any, Optional

from attrs import asdict, define, field, validators
from ruamel.yaml import YAML
from ruamel.yaml.compat import StringIO
from ruamel.yaml.error import YAMLError

from flowgate.framework.errors import InvalidConfigurationError
from flowgate.util.defaults import DEFAULT_CONCURRENCY, DEFAULT_LOG_CONFIG, DEFAULT_METRICS_PORT
from flowgate.util.helper import HANDLER_PATH_PATTERN

logger = logging.getLogger("Config")


class MyYAML(YAML):
    """helper class to dump yaml with ruamel.yaml"""

    def dump(self, data: Any, stream: Any | None = None, **kw: Any) -> Any:
        inefficient = False
        if stream is None:
            inefficient = True
            stream = StringIO()
        YAML.dump(self, data, stream, **kw)
        if inefficient:
            return stream.getvalue()


yaml = MyYAML(typ="safe", pure=True)


class ConfigGetterException(InvalidConfigurationError):
    """Raise if the configuration file can not be read."""

    def __init__(self, message: str) -> None:
        super().__init__(message)


@define(kw_only=True, frozen=True)
class MetricsConfig:
    """the metrics config class used in Configuration"""

    enabled: bool = field(validator=validators.instance_of(bool), default=False)
    port: int = field(
        validator=[
            validators.instance_of(int),
            validators.not_(validators.instance_of(bool)),
            validators.ge(0),
            validators.le(65535),
        ],
        default=DEFAULT_METRICS_PORT,
    )


@define(kw_only=True)
class LoggerConfig:
    """The logger config class used in Configuration.
    The schema for this class is derived from the python logging module:
    https://docs.python.org/3/library/logging.config.html#dictionary-schema-details
    """

    _LOG_LEVELS = (
        logging.NOTSET,  # 0
        logging.DEBUG,  # 10
        logging.INFO,  # 20
        logging.WARNING,  # 30
        logging.ERROR,  # 40
        logging.CRITICAL,  # 50
    )

    version: int = field(validator=validators.instance_of(int), default=1)
    formatters: dict = field(validator=validators.instance_of(dict), factory=dict)
    filters: dict = field(validator=validators.instance_of(dict), factory=dict)
    handlers: dict = field(validator=validators.instance_of(dict), factory=dict)
    disable_existing_loggers: bool = field(validator=validators.instance_of(bool), default=False)
    level: str = field(
        default="INFO",
        validator=[
            validators.instance_of(str),
            validators.in_([logging.getLevelName(level) for level in _LOG_LEVELS]),
        ],
        eq=False,
    )
    """The log level of the root logger. Defaults to :code:`INFO`."""
    format: str = field(default="", validator=validators.instance_of(str), eq=False)
    """The format of the log message as supported by the :code:`FlowgateFormatter`.
    Defaults to :code:`"%(asctime)-15s %(name)-15s %(levelname)-8s: %(message)s"`.
    """
    datefmt: str = field(default="", validator=validators.instance_of(str), eq=False)
    """The date format of the log message. Defaults to :code:`"%Y-%m-%d %H:%M:%S"`."""
    loggers: dict = field(validator=validators.instance_of(dict), factory=dict)
    """The loggers loglevel configuration. Defaults to:

    .. csv-table::

        "root", "INFO"
        "asyncio", "WARNING"

    flowgate uses flat logger names like :code:`Executor`, :code:`TransformStream`,
    :code:`Batch`, :code:`Runner`, :code:`Config` and :code:`Exporter`, so the level can be
    set per component:

    .. code-block:: yaml
        :caption: Example of a custom logger configuration

        logger:
            level: WARNING
            format: "%(asctime)-15s %(hostname)-5s %(name)-10s %(levelname)-8s: %(message)s"
            loggers:
                "Executor": {"level": "DEBUG"}
    """

    def __attrs_post_init__(self) -> None:
        defaults = deepcopy(DEFAULT_LOG_CONFIG)
        if not self.formatters:
            self.formatters = defaults["formatters"]
        if not self.handlers:
            self.handlers = defaults["handlers"]
        for formatter in self.formatters.values():
            if self.format:
                formatter["format"] = self.format
            if self.datefmt:
                formatter["datefmt"] = self.datefmt
        loggers = defaults["loggers"]
        for logger_name, logger_config in self.loggers.items():
            loggers.setdefault(logger_name, {}).update(logger_config)
        loggers["root"]["level"] = self.level
        self.loggers = loggers

    def setup_logging(self) -> None:
        """Setup the logging configuration.
        is called in the :code:`flowgate.run_flowgate` module.
        """
        dictConfig(self.as_dict_config())

    def as_dict_config(self) -> dict:
        """Return the configuration in the schema expected by :code:`logging.config.dictConfig`."""
        loggers = deepcopy(self.loggers)
        return {
            "version": self.version,
            "formatters": self.formatters,
            "filters": self.filters,
            "handlers": self.handlers,
            "disable_existing_loggers": self.disable_existing_loggers,
            "root": loggers.pop("root"),
            "loggers": loggers,
        }


def _to_optional_float(value: Any) -> Any:
    if value is None or isinstance(value, bool):
        return value
    try:
        return float(value)
    except (TypeError, ValueError):
        return value


@define(kw_only=True)
class Configuration:
    """the configuration class"""

    version: str = field(validator=validators.instance_of(str), converter=str, default="unset")
    """It is optionally possible to set a version to your configuration file which
    can be printed via :code:`flowgate run --version config.yml`.
    Defaults to :code:`unset`."""
    handler: str = field(
        validator=[validators.instance_of(str), validators.matches_re(HANDLER_PATH_PATTERN)]
    )
    """Import path of the async handler in the form :code:`package.module:attribute`.
    The handler is called with one decoded input document and has to return an awaitable."""
    input: str = field(validator=validators.instance_of(str))
    """Path of a JSON lines file to read the items from."""
    output: Optional[str] = field(
        validator=validators.optional(validators.instance_of(str)), default=None
    )
    """Path of a JSON lines file to write the results to. Defaults to stdout."""
    concurrency: int = field(
        validator=[
            validators.instance_of(int),
            validators.not_(validators.instance_of(bool)),
            validators.ge(1),
        ],
        default=DEFAULT_CONCURRENCY,
    )
    """Maximum number of handler calls in flight. Defaults to :code:`10`."""
    timeout: Optional[float] = field(
        validator=validators.optional([validators.instance_of(float), validators.gt(0)]),
        converter=_to_optional_float,
        default=None,
    )
    """Deadline in seconds for every single handler call. A call exceeding it fails the
    stream like any other failing call. Defaults to :code:`None`, meaning no deadline."""
    logger: LoggerConfig = field(
        validator=validators.instance_of(LoggerConfig),
        factory=LoggerConfig,
        converter=lambda x: LoggerConfig(**x) if isinstance(x, dict) else x,
        eq=False,
    )
    """Logger configuration.

    .. autoclass:: flowgate.util.configuration.LoggerConfig
       :no-index:
       :members: level, format, datefmt, loggers
    """
    metrics: MetricsConfig = field(
        validator=validators.instance_of(MetricsConfig),
        factory=MetricsConfig,
        converter=lambda x: MetricsConfig(**x) if isinstance(x, dict) else x,
        eq=False,
    )
    """Metrics configuration. Defaults to :code:`{"enabled": False, "port": 8000}`."""
    _source: Optional[str] = field(default=None, init=False, eq=False)

    @property
    def source(self) -> Optional[str]:
        """Path of the file the configuration was loaded from."""
        return self._source

    @classmethod
    def from_source(cls, config_path: str) -> "Configuration":
        """Create configuration from a YAML or JSON file.

        Parameters
        ----------
        config_path : str
            path of the file to create the configuration from.

        Returns
        -------
        config : Configuration
            Configuration object attrs class.

        Raises
        ------
        ConfigGetterException
            If the file does not exist or is neither valid YAML nor JSON.
        InvalidConfigurationError
            If the content does not describe a valid configuration.
        """
        try:
            content = Path(config_path).read_text(encoding="utf8")
            config_dict = yaml.load(content)
        except FileNotFoundError as error:
            raise ConfigGetterException(
                f"The given config file does not exist: {error.filename}"
            ) from error
        except YAMLError as error:
            raise ConfigGetterException(f"Invalid yaml or json file: {config_path} {error}") from error
        if not isinstance(config_dict, dict):
            raise InvalidConfigurationError(
                f"Invalid configuration file: {config_path} must contain a mapping"
            )
        try:
            config = Configuration(**config_dict)
        except TypeError as error:
            raise InvalidConfigurationError(
                f"Invalid configuration file: {config_path} {error.args[0]}"
            ) from error
        except ValueError as error:
            raise InvalidConfigurationError(
                f"Invalid configuration file: {config_path} {str(error)}"
            ) from error
        config._source = config_path
        logger.debug("Loaded configuration version '%s' from %s", config.version, config_path)
        return config

    def as_dict(self) -> dict:
        """Return the configuration as dict."""
        return asdict(
            self,
            filter=lambda attribute, _: not attribute.name.startswith("_"),
            recurse=True,
        )

    def as_json(self, indent=None) -> str:
        """Return the configuration as json string."""
        return json.dumps(self.as_dict(), indent=indent)

    def as_yaml(self) -> str:
        """Return the configuration as yaml string."""
        return yaml.dump(self.as_dict())
