"""Binary wire codec.

MessagePack values are self-delimiting, so no framing is added: a request is
exactly one msgpack map and a GetCommands reply is exactly one msgpack array.

Request (agent -> gateway):
    {"Type": "GetCommands", "AgentID": "a1", "Groups": ["linux"]}
    {"Type": "SendResults", "Results": [{"CommandID": "c1", "ReturnCode": 0, "Output": b"ok"}]}

Reply (gateway -> agent, GetCommands only):
    [{"ID": "c1", "Type": "exec", ...}, ...]
"""

from __future__ import annotations

import asyncio
from typing import Any

import msgpack
from pydantic import ValidationError

from ..resolver import Command
from .requests import AgentRequest

# Bytes requested from the stream per read
READ_CHUNK = 64 * 1024

# Default upper bound for a buffered request
DEFAULT_MAX_REQUEST_SIZE = 16 * 1024 * 1024


class DecodeError(Exception):
    """A wire message could not be decoded."""

    pass


def pack(value: Any) -> bytes:
    """Encode a value to msgpack bytes."""
    return msgpack.packb(value, use_bin_type=True)


def unpack(data: bytes) -> Any:
    """Decode a single msgpack value from bytes."""
    try:
        return msgpack.unpackb(data, raw=False)
    except (msgpack.UnpackException, ValueError) as e:
        raise DecodeError(f"Invalid msgpack data: {e}") from e


async def read_message(
    reader: asyncio.StreamReader,
    max_size: int = DEFAULT_MAX_REQUEST_SIZE,
) -> Any:
    """Read exactly one msgpack value from a stream.

    Blocks until a complete value has arrived. Anything after the first value
    is left unread.

    Raises:
        DecodeError: Stream ended early, data is invalid, or too large.
    """
    unpacker = msgpack.Unpacker(raw=False, max_buffer_size=max_size)
    while True:
        data = await reader.read(READ_CHUNK)
        if not data:
            raise DecodeError("Connection closed before a complete message arrived")
        try:
            unpacker.feed(data)
            for value in unpacker:
                return value
        except msgpack.BufferFull as e:
            raise DecodeError(f"Message exceeds {max_size} bytes") from e
        except (msgpack.UnpackException, ValueError) as e:
            raise DecodeError(f"Invalid msgpack data: {e}") from e


def decode_request(value: Any) -> AgentRequest:
    """Validate a decoded msgpack value as a request."""
    if not isinstance(value, dict):
        raise DecodeError(f"Request must be a map, got {type(value).__name__}")
    try:
        return AgentRequest.model_validate(value)
    except ValidationError as e:
        raise DecodeError(f"Invalid request: {e}") from e


def encode_request(request: AgentRequest) -> bytes:
    """Encode a request for the binary transport."""
    return pack(request.to_wire())


def encode_commands(commands: list[Command]) -> bytes:
    """Encode a command list as the GetCommands reply."""
    return pack([command.to_wire() for command in commands])


def decode_commands(data: bytes) -> list[Command]:
    """Decode a GetCommands reply."""
    value = unpack(data)
    if not isinstance(value, list):
        raise DecodeError(f"Reply must be an array, got {type(value).__name__}")
    try:
        return [Command.model_validate(item) for item in value]
    except ValidationError as e:
        raise DecodeError(f"Invalid command in reply: {e}") from e
