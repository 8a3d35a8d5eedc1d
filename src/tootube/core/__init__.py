"""Core / service layer — records, invariants and use-cases.

Rules
-----
* No ``print()`` calls.
* No direct filesystem or network I/O; backends are injected.
* No imports from ``cli`` or ``infra``.
"""

from tootube.core.models import (
    UNSET,
    Comment,
    MultipartPayload,
    Snapshot,
    StoredBlob,
    Subscription,
    UploadedFile,
    User,
    UserSummary,
    Video,
    VoteAction,
)
from tootube.core.multipart import boundary_from_content_type, decode_multipart
from tootube.core.platform_service import PlatformService
from tootube.core.protocols import BlobBackend, DocumentBackend
from tootube.core.record_store import RecordStore

__all__: list[str] = [
    "UNSET",
    "BlobBackend",
    "Comment",
    "DocumentBackend",
    "MultipartPayload",
    "PlatformService",
    "RecordStore",
    "Snapshot",
    "StoredBlob",
    "Subscription",
    "UploadedFile",
    "User",
    "UserSummary",
    "Video",
    "VoteAction",
    "boundary_from_content_type",
    "decode_multipart",
]
