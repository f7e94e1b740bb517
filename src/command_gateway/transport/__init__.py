"""Transport layer.

- binary: raw TCP, one msgpack request per connection
- HTTP: see ``command_gateway.routes`` (Starlette routes served by uvicorn)
"""

from .binary import BinaryServer

__all__ = ["BinaryServer"]
