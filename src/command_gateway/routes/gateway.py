"""HTTP Protocol Adapter.

Thin adapter that maps HTTP calls to agent requests and handler responses
back to HTTP. All routing logic lives in the RequestHandler.

Endpoints:
- POST /commands - {"Type": "GetCommands", "AgentID": ..., "Groups": [...]} -> JSON array
- POST /results  - {"Type": "SendResults", "Results": [...]} -> 200, empty body
"""

from __future__ import annotations

import logging

from pydantic import ValidationError
from starlette.requests import Request
from starlette.responses import JSONResponse, Response
from starlette.routing import Route

from ..protocol import AgentRequest, ErrorCode, RequestHandler, RequestType, ResponseType
from ..protocol import Response as HandlerResponse

logger = logging.getLogger(__name__)


def get_handler(request: Request) -> RequestHandler:
    """Handler attached to the application at creation."""
    return request.app.state.handler


def error_response(error: str, code: ErrorCode, status_code: int = 400) -> JSONResponse:
    return JSONResponse({"error": error, "code": code.value}, status_code=status_code)


async def _parse(request: Request, expected: RequestType) -> AgentRequest | JSONResponse:
    """Decode the body and check it matches the endpoint."""
    body = await request.body()
    try:
        parsed = AgentRequest.model_validate_json(body)
    except ValidationError as e:
        logger.error(f"Failed to decode {request.url.path} request: {e}")
        return error_response(f"Invalid request body: {e}", ErrorCode.DECODE_ERROR)

    if parsed.request_type is not expected:
        logger.error(
            f"Request type {parsed.type!r} not accepted by {request.url.path}, "
            f"expected {expected.value}"
        )
        return error_response(
            f"Invalid request type: {parsed.type}, expected {expected.value}",
            ErrorCode.WRONG_ENDPOINT,
        )
    return parsed


def _render_error(response: HandlerResponse) -> JSONResponse:
    code = response.code or ErrorCode.HANDLER_ERROR
    status_code = 500 if code == ErrorCode.HANDLER_ERROR else 400
    return error_response(response.error or "Request failed", code, status_code)


async def get_commands(request: Request) -> Response:
    """Return the commands assigned to an agent."""
    parsed = await _parse(request, RequestType.GET_COMMANDS)
    if isinstance(parsed, JSONResponse):
        return parsed

    response = await get_handler(request).handle(parsed)
    if response.type != ResponseType.COMMANDS:
        return _render_error(response)

    try:
        return JSONResponse([command.to_wire() for command in response.commands])
    except (TypeError, ValueError) as e:
        logger.error(f"Failed to encode commands for {parsed.agent_id}: {e}")
        return error_response(f"Failed to encode commands: {e}", ErrorCode.HANDLER_ERROR, 500)


async def send_results(request: Request) -> Response:
    """Consume results reported by an agent."""
    parsed = await _parse(request, RequestType.SEND_RESULTS)
    if isinstance(parsed, JSONResponse):
        return parsed

    response = await get_handler(request).handle(parsed)
    if not response.ok:
        return _render_error(response)
    return Response(status_code=200)


gateway_routes = [
    Route("/commands", get_commands, methods=["POST"]),
    Route("/results", send_results, methods=["POST"]),
]
