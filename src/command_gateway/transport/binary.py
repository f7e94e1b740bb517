"""Binary transport.

Raw TCP listener speaking msgpack. Each accepted connection carries exactly
one request and is served by its own asyncio task, so a slow or silent agent
never blocks the accept loop or other agents.

Per connection:
    accept -> decode one request -> dispatch -> encode reply -> half-close -> close

Only GetCommands writes a reply. After the reply is flushed the write half is
shut down, so an agent reading until end-of-stream sees completion before the
full close. SendResults, rejected requests and decode failures write nothing
and just close.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from typing import TYPE_CHECKING

from ..protocol import RequestHandler, ResponseType
from ..protocol.codec import (
    DEFAULT_MAX_REQUEST_SIZE,
    DecodeError,
    decode_request,
    encode_commands,
    read_message,
)

if TYPE_CHECKING:
    from ..resolver import Command

logger = logging.getLogger(__name__)


class BinaryServer:
    """Binary protocol listener.

    Usage:
        server = BinaryServer(handler, host="0.0.0.0", port=7000)
        await server.start()
        await server.serve_forever()
    """

    def __init__(
        self,
        handler: RequestHandler,
        host: str = "0.0.0.0",
        port: int = 7000,
        read_timeout: float | None = None,
        write_timeout: float | None = None,
        max_request_size: int = DEFAULT_MAX_REQUEST_SIZE,
    ) -> None:
        """Initialize the listener.

        Args:
            handler: Shared request handler
            host: Interface to bind
            port: Port to bind (0 picks a free port)
            read_timeout: Seconds to wait for a complete request, None waits forever
            write_timeout: Seconds to wait for the reply to flush, None waits forever
            max_request_size: Upper bound on buffered request bytes
        """
        self._handler = handler
        self._host = host
        self._port = port
        self._read_timeout = read_timeout
        self._write_timeout = write_timeout
        self._max_request_size = max_request_size
        self._server: asyncio.Server | None = None

    @property
    def port(self) -> int:
        """Bound port (the real one when started with port 0)."""
        if self._server is not None and self._server.sockets:
            return self._server.sockets[0].getsockname()[1]
        return self._port

    @property
    def is_serving(self) -> bool:
        return self._server is not None and self._server.is_serving()

    async def start(self) -> None:
        """Bind and start accepting connections.

        Raises:
            OSError: The address cannot be bound.
        """
        self._server = await asyncio.start_server(
            self._handle_connection, host=self._host, port=self._port
        )
        logger.info(f"Binary transport listening on {self._host}:{self.port}")

    async def serve_forever(self) -> None:
        if self._server is None:
            await self.start()
        assert self._server is not None
        await self._server.serve_forever()

    async def stop(self) -> None:
        """Stop accepting connections."""
        if self._server is not None:
            self._server.close()
            await self._server.wait_closed()
            self._server = None
            logger.info("Binary transport stopped")

    async def __aenter__(self) -> BinaryServer:
        await self.start()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.stop()

    async def _handle_connection(
        self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter
    ) -> None:
        """Serve one request on one connection."""
        peer = writer.get_extra_info("peername")
        try:
            await self._serve(reader, writer, peer)
        except Exception as e:
            logger.exception(f"Unexpected error serving {peer}: {e}")
        finally:
            writer.close()
            with contextlib.suppress(ConnectionError):
                await writer.wait_closed()

    async def _serve(
        self,
        reader: asyncio.StreamReader,
        writer: asyncio.StreamWriter,
        peer: object,
    ) -> None:
        try:
            value = await asyncio.wait_for(
                read_message(reader, self._max_request_size), self._read_timeout
            )
            request = decode_request(value)
        except DecodeError as e:
            logger.error(f"Failed to decode request from {peer}: {e}")
            return
        except TimeoutError:
            logger.error(f"Timed out reading request from {peer}")
            return
        except ConnectionError as e:
            logger.error(f"Connection error reading request from {peer}: {e}")
            return

        response = await self._handler.handle(request)

        match response.type:
            case ResponseType.COMMANDS:
                await self._reply(writer, response.commands, peer)

            case ResponseType.ACK:
                logger.debug(f"Acknowledged {response.acknowledged} result(s) from {peer}")

            case ResponseType.ERROR:
                # Rejected requests close without a reply
                logger.error(f"Rejected request from {peer}: {response.code} {response.error}")

    async def _reply(
        self, writer: asyncio.StreamWriter, commands: list[Command], peer: object
    ) -> None:
        try:
            payload = encode_commands(commands)
        except (TypeError, ValueError, OverflowError) as e:
            logger.error(f"Failed to encode commands for {peer}: {e}")
            return

        try:
            writer.write(payload)
            await asyncio.wait_for(writer.drain(), self._write_timeout)
            if writer.can_write_eof():
                writer.write_eof()
        except TimeoutError:
            logger.error(f"Timed out writing reply to {peer}")
            # Unsent bytes would otherwise hold the close open
            writer.transport.abort()
            return
        except ConnectionError as e:
            logger.error(f"Failed to write reply to {peer}: {e}")
            return

        logger.info(f"Sent {len(commands)} command(s) to {peer} ({len(payload)} bytes)")
