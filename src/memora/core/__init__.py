"""Core module - Shared configuration and wire types."""

from memora.core.config import (
    DEFAULT_INTERVAL,
    DEFAULT_MAX_WORKERS,
    DEFAULT_SERVER_URL,
    AgentSettings,
    ServerConfig,
)
from memora.core.types import EntryKind, RecordStatus

__all__ = [
    # Config
    "DEFAULT_INTERVAL",
    "DEFAULT_MAX_WORKERS",
    "DEFAULT_SERVER_URL",
    "AgentSettings",
    "ServerConfig",
    # Types
    "EntryKind",
    "RecordStatus",
]
