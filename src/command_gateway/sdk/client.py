"""SDK Clients - Agent side of the gateway protocol.

Both clients expose the same two operations, so an agent can switch
transports without code changes:

    commands = await client.get_commands("a1", ["linux"])
    await client.send_results([Result(command_id="c1", return_code=0, output=b"ok")])
"""

from __future__ import annotations

import asyncio
import contextlib
from dataclasses import dataclass, field
from typing import Protocol

import httpx

from ..protocol import AgentRequest, Result
from ..protocol.codec import DecodeError, decode_commands, encode_request
from ..resolver import Command


class GatewayError(Exception):
    """The gateway rejected a request or closed without replying."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class GatewayClient(Protocol):
    """Operations available to an agent."""

    async def get_commands(self, agent_id: str, groups: list[str]) -> list[Command]: ...

    async def send_results(self, results: list[Result]) -> None: ...


@dataclass
class BinaryClient:
    """Client for the binary (msgpack over TCP) transport.

    Opens one connection per call.
    """

    host: str = "127.0.0.1"
    port: int = 7000
    timeout: float | None = 30.0

    async def get_commands(self, agent_id: str, groups: list[str]) -> list[Command]:
        """Fetch commands, reading the reply until the gateway half-closes."""
        request = AgentRequest.get_commands(agent_id, groups)
        data = await asyncio.wait_for(self._exchange(encode_request(request)), self.timeout)
        if not data:
            raise GatewayError("Gateway closed the connection without a reply")
        try:
            return decode_commands(data)
        except DecodeError as e:
            raise GatewayError(f"Invalid reply from gateway: {e}") from e

    async def send_results(self, results: list[Result]) -> None:
        """Report results and wait for the gateway to close the connection."""
        request = AgentRequest.send_results(results)
        await asyncio.wait_for(self._exchange(encode_request(request)), self.timeout)

    async def _exchange(self, payload: bytes) -> bytes:
        try:
            reader, writer = await asyncio.open_connection(self.host, self.port)
        except OSError as e:
            raise GatewayError(f"Cannot connect to {self.host}:{self.port}: {e}") from e
        try:
            writer.write(payload)
            await writer.drain()
            return await reader.read()
        finally:
            writer.close()
            with contextlib.suppress(ConnectionError):
                await writer.wait_closed()


@dataclass
class HTTPClient:
    """Client for the HTTP/JSON transport."""

    base_url: str = "http://127.0.0.1:8080"
    timeout: float = 30.0
    _http_client: httpx.AsyncClient | None = field(default=None, repr=False)

    def _get_client(self) -> httpx.AsyncClient:
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(base_url=self.base_url, timeout=self.timeout)
        return self._http_client

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        if self._http_client is not None:
            await self._http_client.aclose()
            self._http_client = None

    async def __aenter__(self) -> HTTPClient:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    async def get_commands(self, agent_id: str, groups: list[str]) -> list[Command]:
        """Fetch commands via POST /commands."""
        request = AgentRequest.get_commands(agent_id, groups)
        response = await self._post("/commands", request)
        return [Command.model_validate(item) for item in response.json()]

    async def send_results(self, results: list[Result]) -> None:
        """Report results via POST /results."""
        await self._post("/results", AgentRequest.send_results(results))

    async def _post(self, path: str, request: AgentRequest) -> httpx.Response:
        try:
            response = await self._get_client().post(
                path, json=request.model_dump(mode="json", by_alias=True, exclude_none=True)
            )
        except httpx.HTTPError as e:
            raise GatewayError(f"Request to {path} failed: {e}") from e

        if response.status_code != 200:
            try:
                detail = response.json().get("error", response.text)
            except ValueError:
                detail = response.text
            raise GatewayError(
                f"Gateway returned {response.status_code} for {path}: {detail}",
                status_code=response.status_code,
            )
        return response
