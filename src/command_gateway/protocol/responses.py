"""Response definitions for the protocol layer.

A Response is the transport-agnostic outcome of handling one request. Each
transport decides how to render it on its own wire.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, Field

from ..resolver import Command


class ResponseType(str, Enum):
    """All response kinds."""

    COMMANDS = "commands"  # Resolved command list for GetCommands
    ACK = "ack"  # Results consumed
    ERROR = "error"  # Request rejected or failed


class ErrorCode(str, Enum):
    """Why a request was not served."""

    INVALID_REQUEST = "INVALID_REQUEST"  # Required fields missing
    UNKNOWN_REQUEST = "UNKNOWN_REQUEST"  # Unrecognized Type
    WRONG_ENDPOINT = "WRONG_ENDPOINT"  # Type does not match the HTTP endpoint
    DECODE_ERROR = "DECODE_ERROR"  # Body could not be decoded
    HANDLER_ERROR = "HANDLER_ERROR"  # Unexpected failure while serving


class Response(BaseModel):
    """Outcome of a handled request."""

    type: ResponseType
    commands: list[Command] = Field(default_factory=list)
    acknowledged: int = 0
    error: str | None = None
    code: ErrorCode | None = None

    @property
    def ok(self) -> bool:
        return self.type != ResponseType.ERROR

    @classmethod
    def with_commands(cls, commands: list[Command]) -> Response:
        return cls(type=ResponseType.COMMANDS, commands=commands)

    @classmethod
    def ack(cls, count: int) -> Response:
        return cls(type=ResponseType.ACK, acknowledged=count)

    @classmethod
    def failure(cls, error: str, code: ErrorCode) -> Response:
        return cls(type=ResponseType.ERROR, error=error, code=code)
