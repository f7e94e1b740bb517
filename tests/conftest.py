"""Pytest configuration and shared fixtures."""

from pathlib import Path

import pytest

from command_gateway.protocol import RequestHandler
from command_gateway.resolver import CommandResolver, load_configuration

SAMPLE_CONFIG = """\
commands:
  - ID: C1
    Type: exec
    Command: uname -a
  - ID: C2
    Type: read_file
    Path: /etc/os-release
  - ID: C3
    Type: exec
    Command: ipconfig /all
  - ID: C4
    Type: exec
    Command: hostname
groups:
  linux: [C1, C2]
  windows: [C3]
  all: [C4, C1]
agents:
  special-agent: [C4]
"""


@pytest.fixture(scope="module")
def anyio_backend():
    """Configure anyio to use asyncio backend."""
    return "asyncio"


@pytest.fixture
def config_file(tmp_path: Path) -> Path:
    path = tmp_path / "commands.yaml"
    path.write_text(SAMPLE_CONFIG, encoding="utf-8")
    return path


@pytest.fixture
def resolver(config_file: Path) -> CommandResolver:
    return load_configuration(config_file)


@pytest.fixture
def handler(resolver: CommandResolver) -> RequestHandler:
    return RequestHandler(resolver)
