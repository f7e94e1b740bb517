"""Command Gateway HTTP Application.

Creates the Starlette ASGI application for the HTTP transport.

Routes:
- /commands - POST, fetch commands for an agent
- /results - POST, report command results
- /health - GET, liveness check
"""

from __future__ import annotations

import logging

from starlette.applications import Starlette
from starlette.exceptions import HTTPException
from starlette.requests import Request
from starlette.responses import JSONResponse
from starlette.routing import Route

from .protocol import RequestHandler
from .routes import gateway_routes, health_routes

logger = logging.getLogger(__name__)


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Log and render HTTP errors raised by routing (404, 405)."""
    logger.warning(f"{request.method} {request.url.path} -> {exc.status_code} {exc.detail}")
    return JSONResponse(
        {"error": exc.detail},
        status_code=exc.status_code,
        headers=exc.headers,
    )


def create_app(handler: RequestHandler) -> Starlette:
    """Create the gateway application.

    Args:
        handler: Request handler shared with the binary transport

    Returns:
        Configured Starlette application
    """
    routes: list[Route] = []
    routes.extend(health_routes)
    routes.extend(gateway_routes)

    app = Starlette(
        routes=routes,
        exception_handlers={HTTPException: http_exception_handler},
    )
    app.state.handler = handler
    return app
