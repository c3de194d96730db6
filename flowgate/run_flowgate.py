# pylint: disable=logging-fstring-interpolation
"""This module can be used to start flowgate."""

import logging
import os
import signal
import sys

import click

from flowgate.framework.errors import InvalidConfigurationError, OperationFailedError
from flowgate.metrics.exporter import PrometheusExporter
from flowgate.runner import Runner
from flowgate.util.configuration import Configuration
from flowgate.util.defaults import EXITCODES
from flowgate.util.helper import get_versions_string

EPILOG_STR = "Check out the README for configuration examples"

logger = logging.getLogger("root")


def _print_version(config: "Configuration") -> None:
    print(get_versions_string(config))
    sys.exit(EXITCODES.SUCCESS)


def _get_configuration(config_path: str) -> Configuration:
    try:
        config = Configuration.from_source(config_path)
        logger.info("Log level set to '%s'", config.logger.level)
        return config
    except InvalidConfigurationError as error:
        print(f"InvalidConfigurationError: {error}", file=sys.stderr)
        sys.exit(EXITCODES.CONFIGURATION_ERROR)


@click.group(name="flowgate")
@click.version_option(version=get_versions_string(), message="%(version)s")
def cli() -> None:
    """
    flowgate streams items from a JSON lines file through an async handler, keeping a bounded
    number of handler calls in flight and writing every result as soon as it is available.
    """


@cli.command(short_help="Stream the configured input through the handler", epilog=EPILOG_STR)
@click.argument("config")
@click.option(
    "--version",
    is_flag=True,
    default=False,
    help="Print version and exit (includes also config version)",
)
def run(config: str, version=None) -> None:
    """
    Run flowgate with the given configuration.

    CONFIG is a path to a configuration file.
    """
    configuration = _get_configuration(config)
    if version:
        _print_version(configuration)
    try:
        runner = Runner(configuration)
    except InvalidConfigurationError as error:
        print(f"InvalidConfigurationError: {error}", file=sys.stderr)
        sys.exit(EXITCODES.CONFIGURATION_ERROR)
    runner.setup_logging()
    for version_line in get_versions_string(configuration).split("\n"):
        logger.info(version_line)
    logger.debug(f"Metric export enabled: {configuration.metrics.enabled}")
    exporter = PrometheusExporter(configuration.metrics)
    if configuration.metrics.enabled:
        exporter.run()
    if "pytest" not in sys.modules:  # needed for not blocking tests
        signal.signal(signal.SIGTERM, signal_handler)
        signal.signal(signal.SIGINT, signal_handler)
    try:
        written = runner.run()
        logger.info(f"Finished after writing {written} results")
    except OperationFailedError as error:
        logger.error(f"{error}")
        sys.exit(EXITCODES.PIPELINE_ERROR)
    # pylint: disable=broad-except
    except Exception as error:
        if os.environ.get("DEBUG", False):
            logger.exception(f"A critical error occurred: {error}")  # pragma: no cover
        else:
            logger.critical(f"A critical error occurred: {error}")
        sys.exit(EXITCODES.ERROR)
    # pylint: enable=broad-except
    finally:
        exporter.shut_down()


@cli.command(name="print", short_help="Print the resolved configuration")
@click.argument("config")
@click.option(
    "--output",
    type=click.Choice(["json", "yaml"]),
    default="yaml",
    help="What output format to use",
)
def print_config(config: str, output: str) -> None:
    """Prints the given configuration with all defaults applied.

    CONFIG is a path to a configuration file.
    """
    configuration = _get_configuration(config)
    if output == "json":
        print(configuration.as_json(indent=2))
    else:
        print(configuration.as_yaml(), end="")


def signal_handler(__: int, _) -> None:
    """Handle signals for stopping the runner."""
    logger.debug("Received termination signal, closing stream...")
    if Runner.instance:
        Runner.instance.stop()


if __name__ == "__main__":
    cli()
