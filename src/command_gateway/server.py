"""Gateway startup and wiring.

Loads the command configuration once, builds the shared handler and runs
the selected transports in a single event loop. Any startup failure
(configuration or bind) aborts before anything is served.
"""

from __future__ import annotations

import asyncio
import logging
import socket

import uvicorn

from .app import create_app
from .config import ServerConfig
from .protocol import RequestHandler
from .resolver import load_configuration
from .transport import BinaryServer

logger = logging.getLogger(__name__)


class StartupError(Exception):
    """The gateway could not start."""

    pass


class GatewayServer:
    """Runs the binary and/or HTTP transports over one handler."""

    def __init__(self, config: ServerConfig, handler: RequestHandler | None = None) -> None:
        """Initialize server.

        Args:
            config: Server configuration
            handler: Prebuilt handler; loaded from config.config_path when omitted

        Raises:
            ConfigurationError: The command configuration failed to load.
        """
        self.config = config
        self.handler = handler or RequestHandler(load_configuration(config.config_path))
        self.binary: BinaryServer | None = None
        self.http: uvicorn.Server | None = None

        if config.binary_enabled:
            self.binary = BinaryServer(
                self.handler,
                host=config.host,
                port=config.binary_port,
                read_timeout=config.read_timeout,
                write_timeout=config.write_timeout,
                max_request_size=config.max_request_size,
            )

        if config.http_enabled:
            self.http = uvicorn.Server(
                uvicorn.Config(
                    create_app(self.handler),
                    host=config.host,
                    port=config.http_port,
                    log_config=None,
                    log_level=config.log_level.lower(),
                )
            )

    async def run(self) -> None:
        """Bind the transports, then serve until cancelled.

        Every listener is bound before any of them accepts a connection, so
        a bind failure leaves nothing serving.

        Raises:
            StartupError: A listener could not be bound.
        """
        http_socket = self._bind_http() if self.http is not None else None

        if self.binary is not None:
            try:
                await self.binary.start()
            except OSError as e:
                if http_socket is not None:
                    http_socket.close()
                raise StartupError(
                    f"Cannot bind binary transport on {self.config.host}:{self.config.binary_port}: {e}"
                ) from e

        tasks: list[asyncio.Task[None]] = []
        if self.binary is not None:
            tasks.append(asyncio.create_task(self.binary.serve_forever()))
        if http_socket is not None:
            logger.info(f"HTTP transport listening on {self.config.host}:{self.config.http_port}")
            tasks.append(asyncio.create_task(self._serve_http(http_socket)))

        # The first transport to finish (shutdown or failure) stops the others
        try:
            done, _ = await asyncio.wait(tasks, return_when=asyncio.FIRST_COMPLETED)
        finally:
            for task in tasks:
                task.cancel()
            if self.binary is not None:
                await self.binary.stop()
            if http_socket is not None:
                http_socket.close()

        for task in done:
            if not task.cancelled():
                task.result()

    def _bind_http(self) -> socket.socket:
        assert self.http is not None
        try:
            return self.http.config.bind_socket()
        except SystemExit as e:
            # uvicorn exits the process when it cannot bind
            raise StartupError(
                f"Cannot bind HTTP transport on {self.config.host}:{self.config.http_port}"
            ) from e

    async def _serve_http(self, sock: socket.socket) -> None:
        assert self.http is not None
        await self.http.serve(sockets=[sock])
        if not self.http.started:
            raise StartupError(
                f"HTTP transport failed to start on {self.config.host}:{self.config.http_port}"
            )


def run_gateway(config: ServerConfig) -> None:
    """Synchronous entry point."""
    server = GatewayServer(config)
    asyncio.run(server.run())
