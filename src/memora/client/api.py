"""HTTP client for the memora metadata service.

This module provides:
- HTTPClient: shared client for the metadata service and the content channel
- SyncRecord: the service's view of one filesystem entry
- Record operations (create, update) and raw content upload
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any

import httpx

from memora.core.config import ServerConfig
from memora.core.types import EntryKind, RecordStatus

logger = logging.getLogger(__name__)


class APIError(Exception):
    """Base exception for API errors."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class AuthenticationError(APIError):
    """Authentication failed."""


class NotFoundError(APIError):
    """Resource not found."""


class ResponseDecodeError(APIError):
    """The service answered with a body we cannot decode."""


class TransferError(APIError):
    """Writing content to an upload target failed."""


def _parse_timestamp(value: Any) -> datetime:
    if not isinstance(value, str):
        raise ValueError(f"expected ISO timestamp, got {value!r}")
    # The service emits RFC 3339 with a trailing "Z"
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    return datetime.fromisoformat(value)


@dataclass
class SyncRecord:
    """Record metadata from the service."""

    id: str
    name: str
    directory: str
    kind: EntryKind
    status: RecordStatus
    created_at: datetime
    modified_at: datetime
    upload_target: str | None = None
    read_target: str | None = None

    @classmethod
    def from_dict(
        cls,
        data: dict[str, Any],
        default_kind: EntryKind | None = None,
    ) -> SyncRecord:
        """Create from API response dictionary.

        Args:
            data: Decoded JSON body.
            default_kind: Kind to assume when the body carries none.

        Raises:
            ResponseDecodeError: If a field is missing or malformed.
        """
        try:
            kind = data.get("kind", data.get("file_type"))
            return cls(
                id=str(data["id"]),
                name=data["name"],
                directory=data["directory"],
                kind=EntryKind(kind) if kind is not None else EntryKind(default_kind),
                status=RecordStatus(data["status"]),
                created_at=_parse_timestamp(data["created_at"]),
                modified_at=_parse_timestamp(data["modified_at"]),
                upload_target=data.get("upload_target") or data.get("upload_presigned_url"),
                read_target=data.get("read_target") or data.get("presigned_url"),
            )
        except (AttributeError, KeyError, TypeError, ValueError) as e:
            raise ResponseDecodeError(f"Malformed record: {e!r}") from e

    def to_update(self, status: RecordStatus) -> dict[str, str]:
        """Build the body of an update call echoing this record.

        Args:
            status: Status the record should move to.
        """
        return {
            "name": self.name,
            "directory": self.directory,
            "kind": self.kind.value,
            "status": status.value,
            "created_at": self.created_at.isoformat(),
            "modified_at": self.modified_at.isoformat(),
        }


class HTTPClient:
    """HTTP client for the memora metadata service.

    Holds two connection pools: one authenticated pool for the metadata
    service and one anonymous pool for writes to upload targets. Both are
    safe to share between threads.
    """

    def __init__(
        self,
        config: ServerConfig,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            config: Connection settings.
            transport: Optional transport for both pools (e.g. httpx.MockTransport).
        """
        self._config = config
        self._client = httpx.Client(
            base_url=config.server_url,
            timeout=config.timeout,
            verify=config.verify_ssl,
            headers={"Authorization": f"Bearer {config.token}"},
            transport=transport,
        )
        # Upload targets are presigned; they must not see the bearer token
        self._content_client = httpx.Client(
            timeout=config.timeout,
            verify=config.verify_ssl,
            transport=transport,
        )

    @property
    def config(self) -> ServerConfig:
        """Get the connection settings."""
        return self._config

    def close(self) -> None:
        """Close both connection pools."""
        self._client.close()
        self._content_client.close()

    def __enter__(self) -> HTTPClient:
        """Context manager entry."""
        return self

    def __exit__(self, *args: object) -> None:
        """Context manager exit."""
        self.close()

    def _handle_response(self, response: httpx.Response) -> httpx.Response:
        """Handle API response and raise appropriate exceptions."""
        if response.status_code == 401:
            raise AuthenticationError("Invalid or expired token", 401)
        if response.status_code == 404:
            raise NotFoundError("Resource not found", 404)
        if response.status_code >= 400:
            raise APIError(self._error_detail(response), response.status_code)
        return response

    @staticmethod
    def _error_detail(response: httpx.Response) -> str:
        try:
            body = response.json()
        except ValueError:
            return response.text or f"HTTP {response.status_code}"
        if isinstance(body, dict):
            return str(body.get("error") or body.get("detail") or body)
        return str(body)

    def _send(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        try:
            response = self._client.request(method, url, **kwargs)
        except httpx.RequestError as e:
            raise APIError(f"{method} {url} failed: {e}") from e
        return self._handle_response(response)

    @staticmethod
    def _decode(response: httpx.Response, default_kind: EntryKind) -> SyncRecord:
        try:
            data = response.json()
        except ValueError as e:
            raise ResponseDecodeError(
                f"Response is not JSON: {e}", response.status_code
            ) from e
        if not isinstance(data, dict):
            raise ResponseDecodeError("Response is not an object", response.status_code)
        return SyncRecord.from_dict(data, default_kind=default_kind)

    # === Record operations ===

    def create_record(
        self,
        name: str,
        directory: str,
        kind: EntryKind,
        status: RecordStatus = RecordStatus.OPEN,
    ) -> SyncRecord:
        """Register a filesystem entry with the service.

        Args:
            name: Entry name (last path component).
            directory: Parent directory path.
            kind: FILE or DIRECTORY.
            status: Initial status, OPEN unless told otherwise.

        Returns:
            Created record; FILE records carry an upload target.

        Raises:
            APIError: On transport failure or non-success status, or if name or
                directory is not valid UTF-8.
            ResponseDecodeError: If the body cannot be decoded.
        """
        for value in (name, directory):
            try:
                value.encode("utf-8")
            except UnicodeEncodeError as e:
                raise APIError(f"Path is not valid UTF-8: {value!r}") from e

        response = self._send(
            "POST",
            "/files",
            json={
                "name": name,
                "directory": directory,
                "kind": kind.value,
                "status": status.value,
            },
        )
        return self._decode(response, kind)

    def update_record(self, record_id: str, body: dict[str, str]) -> SyncRecord:
        """Update a record on the service.

        Args:
            record_id: Identifier assigned on creation.
            body: Full update body (see SyncRecord.to_update).

        Returns:
            Updated record.

        Raises:
            NotFoundError: If the record does not exist.
            APIError: On transport failure or non-success status.
        """
        response = self._send("PUT", f"/files/{record_id}", json=body)
        return self._decode(response, EntryKind(body["kind"]))

    # === Content channel ===

    def upload_content(self, target: str, data: bytes) -> None:
        """Write raw bytes to an upload target.

        Args:
            target: Presigned URL returned on record creation.
            data: Full file content.

        Raises:
            TransferError: On transport failure or non-2xx status.
        """
        try:
            response = self._content_client.put(
                target,
                content=data,
                headers={"Content-Type": "application/octet-stream"},
            )
        except httpx.RequestError as e:
            raise TransferError(f"Upload failed: {e}") from e
        if not response.is_success:
            raise TransferError(
                f"Upload rejected: HTTP {response.status_code}", response.status_code
            )
