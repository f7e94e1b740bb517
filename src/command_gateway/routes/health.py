"""Health check endpoint."""

from starlette.requests import Request
from starlette.responses import JSONResponse
from starlette.routing import Route


async def health_check(request: Request) -> JSONResponse:
    """Health check endpoint."""
    handler = request.app.state.handler
    return JSONResponse({"status": "ok", "commands": len(handler.resolver.commands)})


health_routes = [
    Route("/health", health_check, methods=["GET"]),
]
