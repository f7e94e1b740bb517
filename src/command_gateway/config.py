"""Gateway server configuration."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from .protocol.codec import DEFAULT_MAX_REQUEST_SIZE


class TransportMode(str, Enum):
    """Which listeners to start."""

    BINARY = "binary"
    HTTP = "http"
    BOTH = "both"


@dataclass
class ServerConfig:
    """Server configuration."""

    config_path: Path
    host: str = "0.0.0.0"
    binary_port: int = 7000
    http_port: int = 8080
    transport: TransportMode = TransportMode.BOTH

    # Per-connection deadlines for the binary transport (None = wait forever)
    read_timeout: float | None = None
    write_timeout: float | None = None
    max_request_size: int = DEFAULT_MAX_REQUEST_SIZE

    log_level: str = "INFO"

    @property
    def binary_enabled(self) -> bool:
        return self.transport in (TransportMode.BINARY, TransportMode.BOTH)

    @property
    def http_enabled(self) -> bool:
        return self.transport in (TransportMode.HTTP, TransportMode.BOTH)
