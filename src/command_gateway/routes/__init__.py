"""HTTP routes."""

from .gateway import gateway_routes
from .health import health_routes

__all__ = ["gateway_routes", "health_routes"]
