"""HTTP implementation of :class:`~tootube.core.protocols.DocumentBackend`.

The record document is a single JSON resource: ``GET`` returns it
(``404`` when it was never written) and ``PUT`` replaces it whole.
"""

from __future__ import annotations

from typing import Any

import httpx

from tootube.exceptions import CorruptSnapshotError, StorageBackendError
from tootube.infra.http import build_http_client


class HttpDocumentBackend:
    """Concrete :class:`DocumentBackend` for a remote JSON document."""

    def __init__(
        self,
        url: str,
        *,
        token: str | None = None,
        timeout: float = 10.0,
        client: httpx.Client | None = None,
    ) -> None:
        self.url = url
        self._client = client or build_http_client(token=token, timeout=timeout)

    def __enter__(self) -> HttpDocumentBackend:
        return self

    def __exit__(self, exc_type: object, exc_val: object, exc_tb: object) -> None:
        self.close()

    def close(self) -> None:
        self._client.close()

    def describe(self) -> str:
        return self.url

    def read(self) -> Any | None:
        """Fetch the document; ``None`` when the server answers ``404``.

        Raises
        ------
        CorruptSnapshotError
            If the reply is not JSON.
        StorageBackendError
            On transport failure or any other non-2xx reply.
        """
        try:
            response = self._client.get(self.url)
            if response.status_code == httpx.codes.NOT_FOUND:
                return None
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise StorageBackendError(
                f"Document store returned HTTP {exc.response.status_code} for {self.url}",
            ) from exc
        except httpx.HTTPError as exc:
            raise StorageBackendError(
                f"Document store unreachable: {exc}",
                hint="Check TOOTUBE_REMOTE_DOCUMENT_URL and network access.",
            ) from exc

        try:
            return response.json()
        except ValueError as exc:
            raise CorruptSnapshotError(f"{self.url} did not return JSON: {exc}") from exc

    def write(self, document: dict[str, Any]) -> None:
        """Replace the remote document.

        Raises
        ------
        StorageBackendError
            On transport failure or a non-2xx reply.
        """
        try:
            response = self._client.put(self.url, json=document)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise StorageBackendError(
                f"Document store rejected write: HTTP {exc.response.status_code}",
            ) from exc
        except httpx.HTTPError as exc:
            raise StorageBackendError(f"Document store unreachable: {exc}") from exc
