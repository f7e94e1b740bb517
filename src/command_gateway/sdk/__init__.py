"""Agent-side SDK.

Clients for fetching commands and reporting results over either transport.
"""

from .client import BinaryClient, GatewayClient, GatewayError, HTTPClient

__all__ = [
    "BinaryClient",
    "GatewayClient",
    "GatewayError",
    "HTTPClient",
]
