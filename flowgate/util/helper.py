"""This module contains helper functions that are shared by different modules."""

import re
import sys
from importlib import import_module
from typing import TYPE_CHECKING, Callable

from flowgate._version import __version__
from flowgate.framework.errors import InvalidConfigurationError

if TYPE_CHECKING:  # pragma: no cover
    from flowgate.util.configuration import Configuration

HANDLER_PATH_PATTERN = re.compile(r"^[A-Za-z_][\w.]*:[A-Za-z_][\w.]*$")


class HandlerImportError(InvalidConfigurationError):
    """Raise if the configured handler can not be imported."""

    def __init__(self, handler_path: str, reason: str) -> None:
        super().__init__(f"Could not import handler '{handler_path}': {reason}")


def import_handler(handler_path: str) -> Callable:
    """Imports a callable given as :code:`package.module:attribute`.

    The attribute part may be dotted to reach into classes or objects,
    e.g. :code:`package.module:Client.fetch`.

    Parameters
    ----------
    handler_path : str
        Import path of the handler

    Returns
    -------
    Callable
        The imported handler

    Raises
    ------
    HandlerImportError
        If the path is malformed, the module or attribute does not exist or the attribute is
        not callable.
    """
    if not HANDLER_PATH_PATTERN.match(handler_path):
        raise HandlerImportError(handler_path, "expected format 'package.module:attribute'")
    module_name, attribute_path = handler_path.split(":")
    try:
        handler = import_module(module_name)
    except ImportError as error:
        raise HandlerImportError(handler_path, str(error)) from error
    for attribute in attribute_path.split("."):
        try:
            handler = getattr(handler, attribute)
        except AttributeError as error:
            raise HandlerImportError(handler_path, str(error)) from error
    if not callable(handler):
        raise HandlerImportError(handler_path, "not callable")
    return handler


def get_versions_string(config: "Configuration | None" = None) -> str:
    """
    Returns the python and flowgate version. If a configuration is given then its version
    and source are added as well.
    """
    padding = 25
    version_string = f"{'python version:'.ljust(padding)}{sys.version.split()[0]}"
    version_string += f"\n{'flowgate version:'.ljust(padding)}{__version__}"
    if config:
        config_version = f"{config.version}, {config.source or 'None'}"
    else:
        config_version = "no configuration given"
    version_string += f"\n{'configuration version:'.ljust(padding)}{config_version}"
    return version_string
