"""Protocols (interfaces) consumed by the core layer.

These define the contracts that infrastructure adapters must satisfy.
Core code depends ONLY on these protocols, never on concrete
implementations, so the local-disk and remote deployments share one
copy of every operation.
"""

from __future__ import annotations

from typing import Any, Protocol

from tootube.core.models import StoredBlob


class DocumentBackend(Protocol):
    """Contract for whole-document persistence of the record snapshot.

    Reads and writes are point-in-time and all-or-nothing: a failed
    :meth:`write` must leave the previously persisted document intact.
    """

    def read(self) -> Any | None:
        """Return the decoded document, or ``None`` when none exists yet.

        Raises
        ------
        CorruptSnapshotError
            When a document exists but cannot be decoded.
        StorageBackendError
            When the document cannot be reached at all.
        """
        ...  # pragma: no cover

    def write(self, document: dict[str, Any]) -> None:
        """Replace the persisted document with *document*.

        Raises
        ------
        StorageBackendError
            When the write fails for any reason.
        """
        ...  # pragma: no cover

    def describe(self) -> str:
        """Return a short human-readable location (path or URL)."""
        ...  # pragma: no cover


class BlobBackend(Protocol):
    """Contract for the place uploaded bytes live.

    Any object that implements :meth:`store`, :meth:`delete` and
    :meth:`describe` satisfies this protocol structurally.
    """

    def store(self, data: bytes, suggested_id: str) -> StoredBlob:
        """Persist *data* and return its reference and deletion handle.

        *suggested_id* is a file-name-like key (``"v123.mp4"``); a
        backend may use it verbatim or derive its own key from it.

        Raises
        ------
        BlobStorageError
            When the bytes cannot be stored.
        """
        ...  # pragma: no cover

    def delete(self, handle: str) -> None:
        """Remove the bytes behind *handle*.

        Already-missing content counts as success.

        Raises
        ------
        BlobStorageError
            When the backend reports any other failure.
        """
        ...  # pragma: no cover

    def describe(self) -> str:
        """Return a short human-readable location (directory or URL)."""
        ...  # pragma: no cover
