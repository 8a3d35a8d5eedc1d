"""Shared pytest fixtures and configuration for the tootube test suite.

Guidelines
----------
* No internet access in any test — remote backends run against
  ``httpx.MockTransport``.
* Filesystem backends only ever touch ``tmp_path``.
* Core tests use the in-memory document backend below.
"""

from __future__ import annotations

import copy
import json
from datetime import datetime, timezone
from typing import Any
from unittest.mock import MagicMock

import pytest

from tootube.core.models import StoredBlob
from tootube.core.platform_service import PlatformService
from tootube.core.record_store import RecordStore
from tootube.exceptions import CorruptSnapshotError

FIXED_NOW = datetime(2024, 5, 1, 12, 0, 0, 123456, tzinfo=timezone.utc)


class MemoryDocumentBackend:
    """Document backend holding the JSON text in memory.

    Documents pass through ``json`` on every read and write, so tests see
    exactly what a file-backed store would persist.
    """

    def __init__(self, document: Any | None = None, *, corrupt: bool = False) -> None:
        self.text: str | None = None if document is None else json.dumps(document)
        self.corrupt = corrupt
        self.writes = 0

    def read(self) -> Any | None:
        if self.corrupt:
            raise CorruptSnapshotError("garbage")
        return None if self.text is None else json.loads(self.text)

    def write(self, document: dict[str, Any]) -> None:
        self.text = json.dumps(copy.deepcopy(document))
        self.corrupt = False
        self.writes += 1

    def describe(self) -> str:
        return "memory"

    @property
    def document(self) -> dict[str, Any]:
        assert self.text is not None
        return json.loads(self.text)


@pytest.fixture()
def backend() -> MemoryDocumentBackend:
    return MemoryDocumentBackend()


@pytest.fixture()
def store(backend: MemoryDocumentBackend) -> RecordStore:
    return RecordStore(backend, lock_timeout=1.0, clock=lambda: FIXED_NOW)


@pytest.fixture()
def blobs() -> MagicMock:
    mock = MagicMock()
    mock.store.side_effect = lambda data, key: StoredBlob(
        reference=f"/uploads/{key}", handle=f"/uploads/{key}",
    )
    mock.describe.return_value = "mock-blobs"
    return mock


@pytest.fixture()
def service(store: RecordStore, blobs: MagicMock) -> PlatformService:
    return PlatformService(store, blobs)
