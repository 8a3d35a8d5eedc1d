"""Local-filesystem implementation of :class:`~tootube.core.protocols.BlobBackend`.

Uploaded media is written flat into one directory.  The reference handed
back is the URL path the web tier serves that directory under
(``/uploads/<name>`` by default) and doubles as the deletion handle.

Rules
-----
* Only plain file names are accepted: no sub-directories, no ``..``.
* Deleting a file that is already gone is a success.
"""

from __future__ import annotations

from pathlib import Path, PurePosixPath

from tootube.core.models import StoredBlob
from tootube.exceptions import BlobStorageError


class LocalBlobBackend:
    """Concrete :class:`BlobBackend` storing files under *root*."""

    def __init__(self, root: str | Path, *, url_prefix: str = "/uploads/") -> None:
        self.root = Path(root)
        self.url_prefix = url_prefix if url_prefix.endswith("/") else url_prefix + "/"

    def describe(self) -> str:
        return str(self.root)

    # ------------------------------------------------------------------
    # Path handling
    # ------------------------------------------------------------------

    @staticmethod
    def _checked_name(name: str) -> str:
        """Return *name* if it is a single safe path component."""
        candidate = PurePosixPath(name.replace("\\", "/"))
        if len(candidate.parts) != 1 or candidate.name in ("", ".", ".."):
            raise BlobStorageError(f"Refusing unsafe blob name: {name!r}")
        return candidate.name

    def path_for(self, handle: str) -> Path:
        """Map a reference/handle back to the file it names.

        Raises
        ------
        BlobStorageError
            If *handle* does not name a file directly under :attr:`root`.
        """
        name = handle.removeprefix(self.url_prefix)
        return self.root / self._checked_name(name)

    # ------------------------------------------------------------------
    # Protocol methods
    # ------------------------------------------------------------------

    def store(self, data: bytes, suggested_id: str) -> StoredBlob:
        """Write *data* to ``root/suggested_id``.

        Raises
        ------
        BlobStorageError
            If the name is unsafe or the file cannot be written.
        """
        name = self._checked_name(suggested_id)
        target = self.root / name
        try:
            self.root.mkdir(parents=True, exist_ok=True)
            target.write_bytes(data)
        except OSError as exc:
            raise BlobStorageError(
                f"Cannot write {target}: {exc}",
                hint="Check free disk space and upload directory permissions.",
            ) from exc
        reference = self.url_prefix + name
        return StoredBlob(reference=reference, handle=reference)

    def delete(self, handle: str) -> None:
        """Remove the file behind *handle*; a missing file is fine.

        Raises
        ------
        BlobStorageError
            If the handle is unsafe or the file cannot be removed.
        """
        target = self.path_for(handle)
        try:
            target.unlink(missing_ok=True)
        except OSError as exc:
            raise BlobStorageError(f"Cannot delete {target}: {exc}") from exc
