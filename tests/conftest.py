"""Global configuration and fixtures for all pytest-based tests"""

import itertools

import pytest

from flowgate.runner import Runner
from tests.testdata.handlers import ControlledHandler

_names = itertools.count()


@pytest.fixture(name="handler")
def get_controlled_handler():
    return ControlledHandler()


@pytest.fixture(name="name")
def get_unique_name(request):
    """unique executor name, so metrics of different tests do not add up"""
    return f"{request.node.name}-{next(_names)}"


@pytest.fixture(autouse=True)
def reset_runner_instance():
    yield
    Runner.instance = None
