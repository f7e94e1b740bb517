"""Command resolution.

Maps an agent identity and its group memberships to the ordered list of
commands that agent should receive. The configuration is loaded once at
startup and never mutated afterwards, so a single resolver can be shared by
every concurrently served request without locking.

Configuration format (YAML, JSON also accepted):

    commands:
      - {ID: c1, Type: exec, Command: "uname -a"}
      - {ID: c2, Type: read_file, Path: /etc/os-release}
    groups:
      linux: [c1, c2]
    agents:
      a1: [c2]
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from pathlib import Path
from types import MappingProxyType
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError

logger = logging.getLogger(__name__)


class ConfigurationError(Exception):
    """Configuration source is missing or malformed."""

    pass


class Command(BaseModel):
    """A unit of work assigned to an agent.

    Only `ID` and `Type` are known to the gateway. Any other fields from the
    configuration are carried through to the agent untouched.
    """

    model_config = ConfigDict(
        extra="allow", frozen=True, populate_by_name=True, coerce_numbers_to_str=True
    )

    id: str = Field(alias="ID")
    type: str = Field(default="", alias="Type")

    def to_wire(self) -> dict[str, Any]:
        """Serialize with wire field names, JSON-compatible values only."""
        return self.model_dump(mode="json", by_alias=True)


class CommandResolver:
    """Read-only lookup from (agent, groups) to commands."""

    def __init__(
        self,
        commands: Iterable[Command],
        groups: Mapping[str, Iterable[str]] | None = None,
        agents: Mapping[str, Iterable[str]] | None = None,
    ) -> None:
        by_id: dict[str, Command] = {}
        for command in commands:
            if command.id in by_id:
                raise ConfigurationError(f"Duplicate command ID: {command.id}")
            by_id[command.id] = command

        self._commands = MappingProxyType(by_id)
        self._groups = MappingProxyType(self._link("group", groups or {}))
        self._agents = MappingProxyType(self._link("agent", agents or {}))

    def _link(
        self, kind: str, assignments: Mapping[str, Iterable[str]]
    ) -> dict[str, tuple[Command, ...]]:
        linked: dict[str, tuple[Command, ...]] = {}
        for name, command_ids in assignments.items():
            resolved = []
            for command_id in command_ids or ():
                command = self._commands.get(str(command_id))
                if command is None:
                    raise ConfigurationError(
                        f"{kind.capitalize()} '{name}' references unknown command: {command_id}"
                    )
                resolved.append(command)
            linked[str(name)] = tuple(resolved)
        return linked

    @property
    def commands(self) -> Mapping[str, Command]:
        return self._commands

    @property
    def groups(self) -> Mapping[str, tuple[Command, ...]]:
        return self._groups

    @property
    def agents(self) -> Mapping[str, tuple[Command, ...]]:
        return self._agents

    def resolve(self, agent_id: str, groups: Iterable[str]) -> list[Command]:
        """Return the commands for an agent, in delivery order.

        Agent-specific commands come first, then the commands of each group in
        the order given. A command assigned more than once is delivered once,
        at its first position. No match is an empty list, never an error.
        """
        seen: set[str] = set()
        resolved: list[Command] = []

        sources = [self._agents.get(agent_id, ())]
        sources.extend(self._groups.get(group, ()) for group in groups)

        for source in sources:
            for command in source:
                if command.id not in seen:
                    seen.add(command.id)
                    resolved.append(command)
        return resolved


def load_configuration(location: str | Path) -> CommandResolver:
    """Load a resolver from a YAML configuration file.

    Raises:
        ConfigurationError: The file is missing, unreadable or malformed.
    """
    path = Path(location)
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigurationError(f"Cannot read configuration {path}: {e}") from e

    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid YAML in {path}: {e}") from e

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ConfigurationError(f"Configuration {path} must be a mapping")

    resolver = parse_configuration(data)
    logger.info(
        f"Loaded command configuration from {path}: "
        f"{len(resolver.commands)} commands, {len(resolver.groups)} groups, "
        f"{len(resolver.agents)} agents"
    )
    return resolver


def parse_configuration(data: Mapping[str, Any]) -> CommandResolver:
    """Build a resolver from an already parsed configuration mapping."""
    raw_commands = data.get("commands") or []
    groups = data.get("groups") or {}
    agents = data.get("agents") or {}

    if not isinstance(raw_commands, list):
        raise ConfigurationError("'commands' must be a list")
    for key, value in (("groups", groups), ("agents", agents)):
        if not isinstance(value, dict):
            raise ConfigurationError(f"'{key}' must be a mapping of name to command IDs")
        for name, ids in value.items():
            if ids is not None and not isinstance(ids, list):
                raise ConfigurationError(f"'{key}.{name}' must be a list of command IDs")

    commands = []
    for index, raw in enumerate(raw_commands):
        if not isinstance(raw, dict):
            raise ConfigurationError(f"Command #{index} must be a mapping")
        try:
            commands.append(Command.model_validate(raw))
        except ValidationError as e:
            raise ConfigurationError(f"Invalid command #{index}: {e}") from e

    return CommandResolver(commands, groups=groups, agents=agents)
