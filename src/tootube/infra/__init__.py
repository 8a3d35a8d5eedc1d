"""Infrastructure layer — the filesystem and remote services.

Every raw third-party exception (``OSError``, ``httpx.HTTPError``, JSON
decode errors) is caught here and re-raised as a
:class:`~tootube.exceptions.TootubeError` subclass.

Rules
-----
* No imports from ``cli``.
* No user-facing output.
* Classes satisfy the core protocols structurally.
"""

from tootube.infra.json_document import JsonFileDocumentBackend
from tootube.infra.local_blob import LocalBlobBackend
from tootube.infra.remote_blob import HttpObjectStorageBackend
from tootube.infra.remote_document import HttpDocumentBackend

__all__: list[str] = [
    "HttpDocumentBackend",
    "HttpObjectStorageBackend",
    "JsonFileDocumentBackend",
    "LocalBlobBackend",
]
