"""HTTP object-storage implementation of :class:`~tootube.core.protocols.BlobBackend`.

Talks to any bucket-style service exposing:

* ``PUT {endpoint}/{key}``: store the request body.  The JSON reply may
  carry ``url`` (public location) and ``id`` (deletion key).
* ``DELETE {endpoint}/{id}``: remove the object; ``404`` means it is
  already gone.

This module is the **only** place that speaks HTTP to the blob service.
Every ``httpx`` exception is caught here and re-raised as
:class:`~tootube.exceptions.BlobStorageError`.
"""

from __future__ import annotations

import logging
import mimetypes
from typing import Any
from urllib.parse import quote

import httpx

from tootube.core.models import StoredBlob
from tootube.exceptions import BlobStorageError
from tootube.infra.http import build_http_client

logger = logging.getLogger(__name__)


class HttpObjectStorageBackend:
    """Concrete :class:`BlobBackend` for a remote object store.

    Parameters
    ----------
    endpoint:
        Base URL objects are PUT to and DELETEd from.
    public_url:
        Base URL viewers fetch objects from when the service does not
        return one; defaults to *endpoint*.
    client:
        Pre-built ``httpx.Client``; when omitted one is created with
        *token* and *timeout*.
    """

    def __init__(
        self,
        endpoint: str,
        *,
        public_url: str | None = None,
        token: str | None = None,
        timeout: float = 10.0,
        client: httpx.Client | None = None,
    ) -> None:
        self.endpoint = endpoint.rstrip("/")
        self.public_url = (public_url or endpoint).rstrip("/")
        self._client = client or build_http_client(token=token, timeout=timeout)

    def __enter__(self) -> HttpObjectStorageBackend:
        return self

    def __exit__(self, exc_type: object, exc_val: object, exc_tb: object) -> None:
        self.close()

    def close(self) -> None:
        self._client.close()

    def describe(self) -> str:
        return self.endpoint

    def _object_url(self, key: str) -> str:
        return f"{self.endpoint}/{quote(key, safe='')}"

    # ------------------------------------------------------------------
    # Protocol methods
    # ------------------------------------------------------------------

    def store(self, data: bytes, suggested_id: str) -> StoredBlob:
        """Upload *data* under *suggested_id*.

        Raises
        ------
        BlobStorageError
            On transport failure or a non-2xx reply.
        """
        content_type = mimetypes.guess_type(suggested_id)[0] or "application/octet-stream"
        try:
            response = self._client.put(
                self._object_url(suggested_id),
                content=data,
                headers={"Content-Type": content_type},
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise BlobStorageError(
                f"Object store rejected upload of {suggested_id}: "
                f"HTTP {exc.response.status_code}",
            ) from exc
        except httpx.HTTPError as exc:
            raise BlobStorageError(
                f"Object store unreachable: {exc}",
                hint="Check TOOTUBE_REMOTE_BLOB_ENDPOINT and network access.",
            ) from exc

        body = self._json_body(response)
        reference = body.get("url") or f"{self.public_url}/{quote(suggested_id, safe='')}"
        handle = body.get("id") or suggested_id
        return StoredBlob(reference=str(reference), handle=str(handle))

    def delete(self, handle: str) -> None:
        """Delete the object behind *handle*; ``404`` counts as success.

        Raises
        ------
        BlobStorageError
            On transport failure or any other non-2xx reply.
        """
        try:
            response = self._client.delete(self._object_url(handle))
            if response.status_code == httpx.codes.NOT_FOUND:
                logger.debug("Blob %s already gone", handle, extra={"handle": handle})
                return
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise BlobStorageError(
                f"Object store refused to delete {handle}: "
                f"HTTP {exc.response.status_code}",
            ) from exc
        except httpx.HTTPError as exc:
            raise BlobStorageError(f"Object store unreachable: {exc}") from exc

    @staticmethod
    def _json_body(response: httpx.Response) -> dict[str, Any]:
        """Return the reply as a dict; empty or non-JSON replies yield ``{}``."""
        if not response.content:
            return {}
        try:
            body = response.json()
        except ValueError:
            return {}
        return body if isinstance(body, dict) else {}
