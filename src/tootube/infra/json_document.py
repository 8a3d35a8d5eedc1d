"""Local JSON file implementation of :class:`~tootube.core.protocols.DocumentBackend`.

The whole record document lives in one UTF-8 JSON file.  Writes go to a
temporary sibling first and are moved into place with
:func:`os.replace`, so readers never see a half-written file and a
failed write leaves the previous document untouched.
"""

from __future__ import annotations

import json
import os
import tempfile
from pathlib import Path
from typing import Any

from tootube.exceptions import CorruptSnapshotError, StorageBackendError


class JsonFileDocumentBackend:
    """Concrete :class:`DocumentBackend` backed by a single JSON file.

    Satisfies the protocol structurally, without explicit inheritance.
    """

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)

    def describe(self) -> str:
        return str(self.path)

    # ------------------------------------------------------------------
    # Protocol methods
    # ------------------------------------------------------------------

    def read(self) -> Any | None:
        """Return the decoded document, ``None`` if the file does not exist.

        Raises
        ------
        CorruptSnapshotError
            If the file is not valid UTF-8 JSON.
        StorageBackendError
            If the file exists but cannot be read.
        """
        try:
            text = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except UnicodeDecodeError as exc:
            raise CorruptSnapshotError(f"{self.path} is not UTF-8: {exc}") from exc
        except OSError as exc:
            raise StorageBackendError(
                f"Cannot read {self.path}: {exc}",
                hint="Check that the data file is readable.",
            ) from exc

        try:
            return json.loads(text)
        except json.JSONDecodeError as exc:
            raise CorruptSnapshotError(f"{self.path} is not valid JSON: {exc}") from exc

    def write(self, document: dict[str, Any]) -> None:
        """Atomically replace the file with *document*.

        Raises
        ------
        StorageBackendError
            If the directory or file cannot be written.
        """
        tmp_name: str | None = None
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with tempfile.NamedTemporaryFile(
                "w",
                encoding="utf-8",
                dir=self.path.parent,
                prefix=f".{self.path.name}.",
                suffix=".tmp",
                delete=False,
            ) as handle:
                tmp_name = handle.name
                json.dump(document, handle, indent=2, ensure_ascii=False)
            os.replace(tmp_name, self.path)
        except OSError as exc:
            if tmp_name is not None:
                Path(tmp_name).unlink(missing_ok=True)
            raise StorageBackendError(
                f"Cannot write {self.path}: {exc}",
                hint="Check free disk space and directory permissions.",
            ) from exc
