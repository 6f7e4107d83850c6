"""Shared types for memora.

This module defines the enums exchanged with the metadata service.
Values are the wire literals the service expects.
"""

from __future__ import annotations

from enum import Enum


class EntryKind(str, Enum):
    """Kind of a filesystem entry tracked by the service."""

    FILE = "FILE"
    DIRECTORY = "DIRECTORY"


class RecordStatus(str, Enum):
    """Lifecycle status of a remote record.

    FILE records stay OPEN until their content was transferred and the
    agent finalized them.
    """

    OPEN = "OPEN"
    CLOSED = "CLOSED"
