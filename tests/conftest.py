"""Shared pytest fixtures.

FakeService is an in-memory stand-in for the metadata service and the
object store behind the upload targets, plugged into HTTPClient through
httpx.MockTransport.
"""

from __future__ import annotations

import json
import threading
import time
import uuid
from collections.abc import Generator
from pathlib import Path

import httpx
import pytest

from memora.client.api import HTTPClient
from memora.client.index import LocalIndex
from memora.core.config import ServerConfig

SERVER_URL = "http://memora.test/v1"
STORAGE_HOST = "storage.test"
TIMESTAMP = "2025-01-01T10:00:00Z"
UPDATED_AT = "2025-01-01T10:05:00Z"


class FakeService:
    """In-memory metadata service plus object store."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self.records: dict[str, dict[str, str]] = {}
        self.objects: dict[str, bytes] = {}
        self.calls: list[tuple[str, str]] = []  # (operation, name)

        # Failure injection, keyed by entry name
        self.fail_create: set[str] = set()
        self.fail_upload: set[str] = set()
        self.drop_upload: set[str] = set()
        self.fail_update: set[str] = set()
        self.omit_target: set[str] = set()

        # Concurrency tracking for uploads
        self.upload_delay = 0.0
        self.active_uploads = 0
        self.peak_uploads = 0
        self.auth_on_upload = False

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handle)

    def names(self, operation: str) -> list[str]:
        """Names seen for an operation, in call order."""
        with self._lock:
            return [name for op, name in self.calls if op == operation]

    def records_named(self, name: str) -> list[dict[str, str]]:
        with self._lock:
            return [r for r in self.records.values() if r["name"] == name]

    def handle(self, request: httpx.Request) -> httpx.Response:
        if request.url.host == STORAGE_HOST:
            return self._upload(request)
        path = request.url.path
        if request.method == "POST" and path == "/v1/files":
            return self._create(request)
        if request.method == "PUT" and path.startswith("/v1/files/"):
            return self._update(request, path.rsplit("/", 1)[-1])
        return httpx.Response(404, json={"error": "NotFound"})

    def _create(self, request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        name = body["name"]
        with self._lock:
            self.calls.append(("create", name))
        if name in self.fail_create:
            return httpx.Response(500, json={"error": "create failed"})

        record_id = str(uuid.uuid4())
        record = {
            "id": record_id,
            "name": name,
            "directory": body["directory"],
            "kind": body["kind"],
            "status": body["status"],
            "created_at": TIMESTAMP,
            "modified_at": TIMESTAMP,
        }
        with self._lock:
            self.records[record_id] = dict(record)
        if body["kind"] == "FILE" and name not in self.omit_target:
            record["upload_target"] = f"http://{STORAGE_HOST}/bucket/{record_id}"
        return httpx.Response(200, json=record)

    def _upload(self, request: httpx.Request) -> httpx.Response:
        record_id = request.url.path.rsplit("/", 1)[-1]
        with self._lock:
            name = self.records[record_id]["name"]
            self.calls.append(("upload", name))
            if "authorization" in request.headers:
                self.auth_on_upload = True
            self.active_uploads += 1
            self.peak_uploads = max(self.peak_uploads, self.active_uploads)
        try:
            if self.upload_delay:
                time.sleep(self.upload_delay)
            if name in self.drop_upload:
                raise httpx.ConnectError("connection dropped", request=request)
            if name in self.fail_upload:
                return httpx.Response(403)
            with self._lock:
                self.objects[record_id] = request.read()
            return httpx.Response(200)
        finally:
            with self._lock:
                self.active_uploads -= 1

    def _update(self, request: httpx.Request, record_id: str) -> httpx.Response:
        body = json.loads(request.content)
        with self._lock:
            self.calls.append(("update", body["name"]))
            if record_id not in self.records:
                return httpx.Response(404, json={"error": "NotFound"})
        if body["name"] in self.fail_update:
            return httpx.Response(500, json={"error": "update failed"})
        with self._lock:
            self.records[record_id].update(body)
            self.records[record_id]["modified_at"] = UPDATED_AT
            return httpx.Response(200, json=dict(self.records[record_id]))


@pytest.fixture
def service() -> FakeService:
    """Create an empty fake service."""
    return FakeService()


@pytest.fixture
def api_client(service: FakeService) -> Generator[HTTPClient, None, None]:
    """Create an HTTPClient talking to the fake service."""
    client = HTTPClient(
        ServerConfig(server_url=SERVER_URL, token="token123", timeout=5.0),
        transport=service.transport,
    )
    yield client
    client.close()


@pytest.fixture
def index(tmp_path: Path) -> Generator[LocalIndex, None, None]:
    """Create a LocalIndex in a temporary directory."""
    idx = LocalIndex(tmp_path / "state" / "index.db")
    yield idx
    idx.close()


@pytest.fixture
def sync_root(tmp_path: Path) -> Path:
    """Create the tree used by most scenarios: a.txt and sub/b.txt."""
    root = tmp_path / "root"
    (root / "sub").mkdir(parents=True)
    (root / "a.txt").write_bytes(b"0123456789")
    (root / "sub" / "b.txt").write_bytes(b"")
    return root
