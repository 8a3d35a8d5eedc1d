"""Custom exception hierarchy for tootube.

All exceptions that cross layer boundaries must inherit from
:class:`TootubeError`.  Raw third-party exceptions (``OSError``,
``httpx.HTTPError``, JSON decode errors) must NEVER propagate beyond the
infrastructure layer; they are caught there and re-raised as a typed
subclass defined here.

Hierarchy
---------
TootubeError
├── ValidationError
├── ConflictError
│   └── DuplicateNicknameError
├── InvalidCredentialsError
├── NotFoundError
├── BackendError
│   ├── StorageBackendError
│   │   ├── CorruptSnapshotError
│   │   └── StoreBusyError
│   └── BlobStorageError
└── ConfigurationError
"""

from __future__ import annotations


class TootubeError(Exception):
    """Base exception for all tootube errors.

    Every caller-visible error condition maps to a subclass of this
    exception so that transports (HTTP router, CLI) can render a clean
    message without leaking internal stack traces.
    """

    def __init__(self, message: str, *, hint: str | None = None) -> None:
        super().__init__(message)
        self.hint: str | None = hint
        """Optional actionable guidance shown below the error message."""


# --- Caller errors ---------------------------------------------------------

class ValidationError(TootubeError):
    """Raised when required fields are missing or malformed."""


class ConflictError(TootubeError):
    """Raised when a write collides with an existing unique value."""


class DuplicateNicknameError(ConflictError):
    """Raised when a nickname is already taken by another user."""


class InvalidCredentialsError(TootubeError):
    """Raised when a nickname/password pair does not match any user."""


class NotFoundError(TootubeError):
    """Raised when a directly addressed record does not exist."""


# --- Backends --------------------------------------------------------------

class BackendError(TootubeError):
    """Raised when a persistence or blob-storage backend fails."""


class StorageBackendError(BackendError):
    """Raised when the record document cannot be read or written."""


class CorruptSnapshotError(StorageBackendError):
    """Raised by document backends when the stored document is unreadable.

    The record store treats this as an empty snapshot rather than a
    fatal error.
    """


class StoreBusyError(StorageBackendError):
    """Raised when the store lock cannot be acquired in time."""


class BlobStorageError(BackendError):
    """Raised when uploaded bytes cannot be stored or deleted."""


# --- Configuration ---------------------------------------------------------

class ConfigurationError(TootubeError):
    """Raised when settings are inconsistent or incomplete."""
