"""Request Handler - Transport-agnostic routing.

Dispatches a decoded request to "get commands" or "submit results".
Both transports (binary and HTTP) delegate here, so routing and validation
behave identically regardless of how the request arrived.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from .requests import AgentRequest, RequestType
from .responses import ErrorCode, Response

if TYPE_CHECKING:
    from ..resolver import CommandResolver

logger = logging.getLogger(__name__)


class RequestHandler:
    """Handles agent requests and produces a Response.

    Holds no per-request state. The resolver is read-only after startup, so
    one handler serves all connections concurrently.

    Usage:
        handler = RequestHandler(resolver)
        response = await handler.handle(request)
    """

    def __init__(self, resolver: CommandResolver, preview_limit: int = 200) -> None:
        """Initialize handler.

        Args:
            resolver: Loaded command resolver
            preview_limit: Bytes of result output included in log records
        """
        self._resolver = resolver
        self._preview_limit = preview_limit

    @property
    def resolver(self) -> CommandResolver:
        return self._resolver

    async def handle(self, request: AgentRequest) -> Response:
        """Route a request to its operation."""
        logger.info(
            f"Received request type={request.type} agent_id={request.agent_id} "
            f"groups={request.groups}"
        )

        try:
            match request.request_type:
                case RequestType.GET_COMMANDS:
                    return self._get_commands(request)

                case RequestType.SEND_RESULTS:
                    return self._send_results(request)

                case _:
                    logger.error(f"Unknown request type: {request.type!r}")
                    return Response.failure(
                        f"Unknown request type: {request.type}",
                        ErrorCode.UNKNOWN_REQUEST,
                    )

        except Exception as e:
            logger.exception(f"Error handling {request.type} request: {e}")
            return Response.failure(str(e), ErrorCode.HANDLER_ERROR)

    def _get_commands(self, request: AgentRequest) -> Response:
        if not request.agent_id:
            logger.error("GetCommands request without AgentID")
            return Response.failure("AgentID is required", ErrorCode.INVALID_REQUEST)
        if request.groups is None:
            logger.error(f"GetCommands request from {request.agent_id} without Groups")
            return Response.failure("Groups is required", ErrorCode.INVALID_REQUEST)

        commands = self._resolver.resolve(request.agent_id, request.groups)
        logger.info(
            f"Resolved commands for agent_id={request.agent_id} "
            f"groups={request.groups} count={len(commands)}"
        )
        return Response.with_commands(commands)

    def _send_results(self, request: AgentRequest) -> Response:
        results = request.results or []
        for result in results:
            logger.info(
                f"Received result command_id={result.command_id} "
                f"return_code={result.return_code} "
                f"output={result.preview(self._preview_limit)!r}"
            )
        return Response.ack(len(results))
