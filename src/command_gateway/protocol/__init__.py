"""Transport-agnostic protocol layer.

Defines the request/response contract shared by the binary and HTTP
transports.

Key concepts:
- AgentRequest: Agent -> gateway envelope (GetCommands or SendResults)
- Response: Outcome of handling a request, rendered by each transport
- RequestHandler: The single router both transports delegate to
"""

from .handler import RequestHandler
from .requests import AgentRequest, RequestType, Result
from .responses import ErrorCode, Response, ResponseType

__all__ = [
    "AgentRequest",
    "ErrorCode",
    "RequestHandler",
    "RequestType",
    "Response",
    "ResponseType",
    "Result",
]
