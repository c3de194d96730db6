# pylint: disable=missing-module-docstring
import re
from pathlib import Path

from setuptools import find_packages, setup

this_directory = Path(__file__).parent

with open(this_directory / "requirements.in", encoding="utf-8") as f:
    requirements = [line for line in f.read().splitlines() if line and not line.startswith("#")]

long_description = (this_directory / "README.md").read_text(encoding="utf-8")
version = re.search(
    r'__version__ = "([^"]+)"', (this_directory / "flowgate" / "_version.py").read_text()
).group(1)

setup(
    name="flowgate",
    version=version,
    description="flowgate runs async operations for a stream of items with bounded concurrency.",
    long_description=long_description,
    long_description_content_type="text/markdown",
    license="LGPL-2.1 license",
    classifiers=[
        "Programming Language :: Python",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Programming Language :: Python :: 3.13",
        "Framework :: AsyncIO",
    ],
    packages=find_packages(exclude=["tests", "tests.*"]),
    install_requires=["setuptools"] + requirements,
    extras_require={
        "dev": [
            "pytest",
            "pytest-asyncio",
        ]
    },
    python_requires=">=3.11",
    entry_points={
        "console_scripts": [
            "flowgate = flowgate.run_flowgate:cli",
        ]
    },
)
