"""Command Gateway.

Serves commands to remote agents and collects their results over two
transports: msgpack over raw TCP and JSON over HTTP.
"""

from .protocol import AgentRequest, RequestHandler, RequestType, Response, Result
from .resolver import Command, CommandResolver, ConfigurationError, load_configuration

__version__ = "0.1.0"

__all__ = [
    "AgentRequest",
    "Command",
    "CommandResolver",
    "ConfigurationError",
    "RequestHandler",
    "RequestType",
    "Response",
    "Result",
    "load_configuration",
]
