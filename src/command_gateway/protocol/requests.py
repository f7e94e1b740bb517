"""Request definitions for the protocol layer.

A request is the single envelope an agent sends per connection (binary) or
per call (HTTP). Field names on the wire are fixed for compatibility with
deployed agents:

    {"Type": "GetCommands", "AgentID": "a1", "Groups": ["linux"]}
    {"Type": "SendResults", "Results": [{"CommandID": "c1", "ReturnCode": 0, "Output": "ok"}]}
"""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_serializer


class RequestType(str, Enum):
    """All supported request kinds."""

    GET_COMMANDS = "GetCommands"
    SEND_RESULTS = "SendResults"


class Result(BaseModel):
    """Outcome of one executed command.

    `Output` is raw bytes. Over msgpack it travels as a bin value; over JSON
    it is a UTF-8 string.
    """

    model_config = ConfigDict(populate_by_name=True)

    command_id: str = Field(alias="CommandID")
    return_code: int = Field(alias="ReturnCode")
    output: bytes = Field(default=b"", alias="Output")

    @field_serializer("output", when_used="json")
    def _output_as_text(self, output: bytes) -> str:
        return output.decode("utf-8", errors="replace")

    def preview(self, limit: int = 200) -> str:
        """Printable prefix of the output for logging."""
        text = self.output[:limit].decode("utf-8", errors="replace")
        if len(self.output) > limit:
            text += "..."
        return text


class AgentRequest(BaseModel):
    """A request from agent to gateway.

    `type` is kept as a plain string so an unrecognized kind reaches the
    handler and is reported there, instead of failing as a decode error.
    """

    model_config = ConfigDict(populate_by_name=True)

    type: str = Field(alias="Type")
    agent_id: str | None = Field(default=None, alias="AgentID")
    groups: list[str] | None = Field(default=None, alias="Groups")
    results: list[Result] | None = Field(default=None, alias="Results")

    @property
    def request_type(self) -> RequestType | None:
        """The recognized kind, or None for an unknown `Type`."""
        try:
            return RequestType(self.type)
        except ValueError:
            return None

    def to_wire(self) -> dict[str, Any]:
        """Serialize with wire field names, omitting unset fields."""
        return self.model_dump(by_alias=True, exclude_none=True)

    @classmethod
    def get_commands(cls, agent_id: str, groups: list[str] | None = None) -> AgentRequest:
        """Create a GetCommands request."""
        return cls(
            type=RequestType.GET_COMMANDS.value,
            agent_id=agent_id,
            groups=list(groups or []),
        )

    @classmethod
    def send_results(cls, results: list[Result]) -> AgentRequest:
        """Create a SendResults request."""
        return cls(type=RequestType.SEND_RESULTS.value, results=list(results))
