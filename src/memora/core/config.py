"""Shared configuration classes for memora.

This module defines the connection settings for the metadata service and
the scan settings of the agent.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

DEFAULT_SERVER_URL = "http://localhost:8000/v1"
DEFAULT_INTERVAL = 5.0
DEFAULT_MAX_WORKERS = 4


@dataclass
class ServerConfig:
    """Configuration for connecting to the metadata service.

    Attributes:
        server_url: Base URL of the service API (e.g., "http://localhost:8000/v1").
        token: Bearer credential sent on every metadata call.
        timeout: Request/connection timeout in seconds.
        verify_ssl: Whether to verify SSL certificates (default True).
    """

    server_url: str
    token: str
    timeout: float = 30.0
    verify_ssl: bool = True

    def __post_init__(self) -> None:
        """Normalize server URL."""
        self.server_url = self.server_url.rstrip("/")


@dataclass
class AgentSettings:
    """Scan settings of the agent.

    Attributes:
        root: Directory tree mirrored to the service.
        interval: Seconds between two scan ticks.
        max_workers: Capacity of the worker budget (concurrent file uploads).
    """

    root: Path
    interval: float = DEFAULT_INTERVAL
    max_workers: int = DEFAULT_MAX_WORKERS

    def __post_init__(self) -> None:
        """Resolve the root and validate numeric settings."""
        self.root = Path(self.root).expanduser().resolve()
        if self.interval <= 0:
            raise ValueError(f"interval must be positive, got {self.interval}")
        if self.max_workers < 1:
            raise ValueError(f"max_workers must be at least 1, got {self.max_workers}")
