"""Tests for the HTTP backends (infra/remote_blob.py, infra/remote_document.py).

Every request is answered by ``httpx.MockTransport`` — no network.

Coverage:
* Request shape (method, URL, body, headers).
* Reply parsing and fallbacks.
* ``404`` semantics for delete and read.
* Mapping of ``httpx`` errors to our hierarchy.
"""

from __future__ import annotations

import json
from collections.abc import Callable

import httpx
import pytest

from tootube.exceptions import BlobStorageError, CorruptSnapshotError, StorageBackendError
from tootube.infra.http import build_http_client
from tootube.infra.remote_blob import HttpObjectStorageBackend
from tootube.infra.remote_document import HttpDocumentBackend

Handler = Callable[[httpx.Request], httpx.Response]


def _client(handler: Handler) -> httpx.Client:
    return httpx.Client(transport=httpx.MockTransport(handler))


def _unreachable(request: httpx.Request) -> httpx.Response:
    raise httpx.ConnectError("connection refused", request=request)


# ---------------------------------------------------------------------------
# build_http_client
# ---------------------------------------------------------------------------

class TestBuildHttpClient:
    def test_bearer_token(self) -> None:
        with build_http_client(token="s3cret", timeout=3.0) as client:
            assert client.headers["Authorization"] == "Bearer s3cret"
            assert client.timeout.read == 3.0

    def test_no_token(self) -> None:
        with build_http_client() as client:
            assert "Authorization" not in client.headers


# ---------------------------------------------------------------------------
# HttpObjectStorageBackend
# ---------------------------------------------------------------------------

class TestHttpObjectStorageStore:
    def test_uses_reply_url_and_id(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(201, json={"url": "https://cdn.example/abc", "id": "obj-42"})

        backend = HttpObjectStorageBackend("https://store.example/bucket/", client=_client(handler))
        blob = backend.store(b"\x00bytes", "v1.mp4")

        assert blob.reference == "https://cdn.example/abc"
        assert blob.handle == "obj-42"
        request = seen[0]
        assert request.method == "PUT"
        assert str(request.url) == "https://store.example/bucket/v1.mp4"
        assert request.content == b"\x00bytes"
        assert request.headers["Content-Type"] == "video/mp4"

    def test_falls_back_to_public_url_and_key(self) -> None:
        backend = HttpObjectStorageBackend(
            "https://store.example/bucket",
            public_url="https://cdn.example/media/",
            client=_client(lambda request: httpx.Response(200)),
        )
        blob = backend.store(b"x", "v1.webm")
        assert blob.reference == "https://cdn.example/media/v1.webm"
        assert blob.handle == "v1.webm"

    def test_non_json_reply_is_tolerated(self) -> None:
        backend = HttpObjectStorageBackend(
            "https://store.example",
            client=_client(lambda request: httpx.Response(200, text="OK")),
        )
        assert backend.store(b"x", "v.mp4").reference == "https://store.example/v.mp4"

    def test_keys_are_url_quoted(self) -> None:
        seen: list[str] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request.url.raw_path.decode())
            return httpx.Response(200)

        backend = HttpObjectStorageBackend("https://store.example", client=_client(handler))
        backend.store(b"x", "a b/c.mp4")
        assert seen == ["/a%20b%2Fc.mp4"]

    def test_http_error_status(self) -> None:
        backend = HttpObjectStorageBackend(
            "https://store.example",
            client=_client(lambda request: httpx.Response(507)),
        )
        with pytest.raises(BlobStorageError, match="HTTP 507"):
            backend.store(b"x", "v.mp4")

    def test_transport_error(self) -> None:
        backend = HttpObjectStorageBackend("https://store.example", client=_client(_unreachable))
        with pytest.raises(BlobStorageError, match="unreachable") as exc_info:
            backend.store(b"x", "v.mp4")
        assert exc_info.value.hint is not None


class TestHttpObjectStorageDelete:
    def test_delete_sends_request(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(204)

        backend = HttpObjectStorageBackend("https://store.example", client=_client(handler))
        backend.delete("obj-42")
        assert seen[0].method == "DELETE"
        assert str(seen[0].url) == "https://store.example/obj-42"

    def test_already_gone_is_success(self) -> None:
        backend = HttpObjectStorageBackend(
            "https://store.example",
            client=_client(lambda request: httpx.Response(404)),
        )
        backend.delete("obj-42")

    def test_other_errors_raise(self) -> None:
        backend = HttpObjectStorageBackend(
            "https://store.example",
            client=_client(lambda request: httpx.Response(403)),
        )
        with pytest.raises(BlobStorageError, match="HTTP 403"):
            backend.delete("obj-42")

    def test_transport_error(self) -> None:
        backend = HttpObjectStorageBackend("https://store.example", client=_client(_unreachable))
        with pytest.raises(BlobStorageError):
            backend.delete("obj-42")

    def test_context_manager_closes_client(self) -> None:
        client = _client(lambda request: httpx.Response(204))
        with HttpObjectStorageBackend("https://store.example", client=client):
            pass
        assert client.is_closed


# ---------------------------------------------------------------------------
# HttpDocumentBackend
# ---------------------------------------------------------------------------

class TestHttpDocumentBackend:
    URL = "https://docs.example/tootube/data.json"

    def test_read_document(self) -> None:
        doc = {"videos": [], "users": [], "comments": [], "subscriptions": []}
        backend = HttpDocumentBackend(
            self.URL, client=_client(lambda request: httpx.Response(200, json=doc)),
        )
        assert backend.read() == doc

    def test_missing_document_is_none(self) -> None:
        backend = HttpDocumentBackend(
            self.URL, client=_client(lambda request: httpx.Response(404)),
        )
        assert backend.read() is None

    def test_non_json_is_corrupt(self) -> None:
        backend = HttpDocumentBackend(
            self.URL, client=_client(lambda request: httpx.Response(200, text="<html>")),
        )
        with pytest.raises(CorruptSnapshotError):
            backend.read()

    def test_server_error_on_read(self) -> None:
        backend = HttpDocumentBackend(
            self.URL, client=_client(lambda request: httpx.Response(500)),
        )
        with pytest.raises(StorageBackendError, match="HTTP 500"):
            backend.read()

    def test_write_puts_json(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200)

        backend = HttpDocumentBackend(self.URL, client=_client(handler))
        backend.write({"users": [{"nickname": "Олена"}]})

        assert seen[0].method == "PUT"
        assert json.loads(seen[0].content) == {"users": [{"nickname": "Олена"}]}

    def test_write_failure(self) -> None:
        backend = HttpDocumentBackend(self.URL, client=_client(_unreachable))
        with pytest.raises(StorageBackendError, match="unreachable"):
            backend.write({})

    def test_describe(self) -> None:
        backend = HttpDocumentBackend(self.URL, client=_client(lambda r: httpx.Response(200)))
        assert backend.describe() == self.URL
