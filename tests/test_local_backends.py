"""Tests for the filesystem backends (infra/json_document.py, infra/local_blob.py).

Everything happens under ``tmp_path``.
"""

from __future__ import annotations

import json
import os
from pathlib import Path
from unittest.mock import patch

import pytest

from tootube.core.models import StoredBlob
from tootube.core.record_store import RecordStore
from tootube.exceptions import BlobStorageError, CorruptSnapshotError, StorageBackendError
from tootube.infra.json_document import JsonFileDocumentBackend
from tootube.infra.local_blob import LocalBlobBackend


# ---------------------------------------------------------------------------
# JsonFileDocumentBackend
# ---------------------------------------------------------------------------

class TestJsonFileDocumentBackend:
    def test_missing_file_reads_none(self, tmp_path: Path) -> None:
        assert JsonFileDocumentBackend(tmp_path / "data.json").read() is None

    def test_write_then_read(self, tmp_path: Path) -> None:
        backend = JsonFileDocumentBackend(tmp_path / "nested" / "data.json")
        backend.write({"users": [{"nickname": "Олена"}]})
        assert backend.read() == {"users": [{"nickname": "Олена"}]}

    def test_non_ascii_written_verbatim(self, tmp_path: Path) -> None:
        path = tmp_path / "data.json"
        JsonFileDocumentBackend(path).write({"title": "Кіно"})
        assert "Кіно" in path.read_text(encoding="utf-8")

    def test_no_temp_files_left_behind(self, tmp_path: Path) -> None:
        backend = JsonFileDocumentBackend(tmp_path / "data.json")
        backend.write({"a": 1})
        backend.write({"a": 2})
        assert sorted(p.name for p in tmp_path.iterdir()) == ["data.json"]

    @pytest.mark.parametrize("content", [b"{not json", b"\xff\xfe\x00"])
    def test_corrupt_file(self, tmp_path: Path, content: bytes) -> None:
        path = tmp_path / "data.json"
        path.write_bytes(content)
        with pytest.raises(CorruptSnapshotError):
            JsonFileDocumentBackend(path).read()

    def test_failed_replace_keeps_previous_document(self, tmp_path: Path) -> None:
        path = tmp_path / "data.json"
        backend = JsonFileDocumentBackend(path)
        backend.write({"version": 1})

        with patch("tootube.infra.json_document.os.replace", side_effect=OSError("EIO")):
            with pytest.raises(StorageBackendError, match="Cannot write"):
                backend.write({"version": 2})

        assert json.loads(path.read_text(encoding="utf-8")) == {"version": 1}
        assert sorted(p.name for p in tmp_path.iterdir()) == ["data.json"]

    def test_directory_in_place_of_file(self, tmp_path: Path) -> None:
        path = tmp_path / "data.json"
        path.mkdir()
        with pytest.raises(StorageBackendError):
            JsonFileDocumentBackend(path).read()

    def test_store_creates_file_on_first_use(self, tmp_path: Path) -> None:
        path = tmp_path / "data.json"
        RecordStore(JsonFileDocumentBackend(path)).load()
        assert json.loads(path.read_text(encoding="utf-8")) == {
            "videos": [], "users": [], "comments": [], "subscriptions": [],
        }

    def test_store_reads_legacy_document(self, tmp_path: Path) -> None:
        path = tmp_path / "data.json"
        path.write_text(
            json.dumps({
                "videos": [{
                    "id": "v1", "title": "old", "authorId": "u1", "authorName": "A",
                    "isShort": False, "views": 3, "likes": [], "dislikes": [],
                    "videoUrl": "/uploads/v1.mp4", "createdAt": "2023-01-01T00:00:00.000Z",
                }],
                "users": [], "comments": [], "subscriptions": [],
            }),
            encoding="utf-8",
        )
        snapshot = RecordStore(JsonFileDocumentBackend(path)).load()
        assert snapshot.videos[0].views == 3
        assert snapshot.videos[0].blob_handle == "/uploads/v1.mp4"


# ---------------------------------------------------------------------------
# LocalBlobBackend
# ---------------------------------------------------------------------------

class TestLocalBlobBackend:
    def test_store_writes_bytes(self, tmp_path: Path) -> None:
        backend = LocalBlobBackend(tmp_path / "uploads")
        blob = backend.store(b"\x00\x01binary", "v1.mp4")
        assert blob == StoredBlob(reference="/uploads/v1.mp4", handle="/uploads/v1.mp4")
        assert (tmp_path / "uploads" / "v1.mp4").read_bytes() == b"\x00\x01binary"

    def test_custom_prefix_gets_trailing_slash(self, tmp_path: Path) -> None:
        backend = LocalBlobBackend(tmp_path, url_prefix="/media")
        assert backend.store(b"x", "a.mp4").reference == "/media/a.mp4"

    def test_delete(self, tmp_path: Path) -> None:
        backend = LocalBlobBackend(tmp_path)
        blob = backend.store(b"x", "v1.mp4")
        assert blob.handle is not None
        backend.delete(blob.handle)
        assert not (tmp_path / "v1.mp4").exists()

    def test_delete_missing_is_success(self, tmp_path: Path) -> None:
        LocalBlobBackend(tmp_path).delete("/uploads/never-there.mp4")

    @pytest.mark.parametrize("name", ["../escape.mp4", "a/b.mp4", "", "..", "/etc/passwd"])
    def test_unsafe_names_rejected(self, tmp_path: Path, name: str) -> None:
        backend = LocalBlobBackend(tmp_path)
        with pytest.raises(BlobStorageError, match="unsafe"):
            backend.store(b"x", name)

    def test_unsafe_handle_rejected(self, tmp_path: Path) -> None:
        with pytest.raises(BlobStorageError):
            LocalBlobBackend(tmp_path).delete("/uploads/../data.json")

    @pytest.mark.skipif(os.name == "nt" or os.geteuid() == 0, reason="needs POSIX permissions")
    def test_unwritable_directory(self, tmp_path: Path) -> None:
        root = tmp_path / "ro"
        root.mkdir()
        root.chmod(0o500)
        try:
            with pytest.raises(BlobStorageError, match="Cannot write"):
                LocalBlobBackend(root).store(b"x", "v.mp4")
        finally:
            root.chmod(0o700)
