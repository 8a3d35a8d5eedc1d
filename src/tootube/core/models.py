"""Domain models for tootube.

Records (:class:`Video`, :class:`User`, :class:`Comment`,
:class:`Subscription`) are mutable dataclasses because operations update
counters, membership lists and denormalized names in place.  Everything
that merely carries a result across a boundary is a **frozen**
dataclass.

The persisted document uses the camelCase keys of the established wire
format; ``to_dict`` / ``from_dict`` are the only places that know them.
"""

from __future__ import annotations

import enum
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any


# ---------------------------------------------------------------------------
# Sentinel for "argument not supplied"
# ---------------------------------------------------------------------------

class _Unset:
    """Marker type distinguishing an omitted argument from ``None``."""

    _instance: _Unset | None = None

    def __new__(cls) -> _Unset:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "UNSET"

    def __bool__(self) -> bool:
        return False


UNSET: Any = _Unset()


class VoteAction(str, enum.Enum):
    """The three vote states a user can hold on a video."""

    LIKE = "like"
    DISLIKE = "dislike"
    NONE = "none"


# ---------------------------------------------------------------------------
# Lenient coercion helpers for loading persisted records
# ---------------------------------------------------------------------------

def _text(raw: Mapping[str, Any], key: str, default: str = "") -> str:
    value = raw.get(key)
    return default if value is None else str(value)


def _optional_text(raw: Mapping[str, Any], key: str) -> str | None:
    value = raw.get(key)
    return None if value is None else str(value)


def _count(raw: Mapping[str, Any], key: str) -> int:
    value = raw.get(key)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return 0
    return max(0, int(value))


def _id_list(raw: Mapping[str, Any], key: str) -> list[str]:
    """Return a duplicate-free list of ids, preserving first-seen order."""
    value = raw.get(key)
    if not isinstance(value, list):
        return []
    return list(dict.fromkeys(str(item) for item in value if item is not None))


# ---------------------------------------------------------------------------
# Records
# ---------------------------------------------------------------------------

@dataclass(slots=True)
class Video:
    """An uploaded video and its engagement state."""

    id: str
    title: str
    author_id: str
    media_reference: str
    description: str = ""
    author_name: str = "User"
    is_short: bool = False
    views: int = 0
    likes: list[str] = field(default_factory=list)
    dislikes: list[str] = field(default_factory=list)
    blob_handle: str | None = None
    """Backend-specific deletion key for the media bytes."""
    created_at: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "authorId": self.author_id,
            "authorName": self.author_name,
            "isShort": self.is_short,
            "views": self.views,
            "likes": list(self.likes),
            "dislikes": list(self.dislikes),
            "videoUrl": self.media_reference,
            "blobHandle": self.blob_handle,
            "createdAt": self.created_at,
        }

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> Video:
        # Documents written before blob handles existed: local files were
        # deleted by their media path, so that path is the handle.
        if "blobHandle" in raw:
            blob_handle = _optional_text(raw, "blobHandle")
        else:
            blob_handle = _text(raw, "videoUrl") or None
        return cls(
            id=_text(raw, "id"),
            title=_text(raw, "title"),
            description=_text(raw, "description"),
            author_id=_text(raw, "authorId"),
            author_name=_text(raw, "authorName", "User"),
            is_short=raw.get("isShort") is True,
            views=_count(raw, "views"),
            likes=_id_list(raw, "likes"),
            dislikes=_id_list(raw, "dislikes"),
            media_reference=_text(raw, "videoUrl"),
            blob_handle=blob_handle,
            created_at=_text(raw, "createdAt"),
        )


@dataclass(slots=True)
class User:
    """A registered account.

    ``password`` is stored verbatim; see DESIGN.md for why no hashing
    step is applied.
    """

    id: str
    nickname: str
    password: str
    subscriber_count: int = 0
    avatar: Any = None
    """Opaque client-supplied value (URL, data URI or any JSON value)."""
    created_at: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "nickname": self.nickname,
            "password": self.password,
            "subscriberCount": self.subscriber_count,
            "avatar": self.avatar,
            "createdAt": self.created_at,
        }

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> User:
        return cls(
            id=_text(raw, "id"),
            nickname=_text(raw, "nickname"),
            password=_text(raw, "password"),
            subscriber_count=_count(raw, "subscriberCount"),
            avatar=raw.get("avatar"),
            created_at=_text(raw, "createdAt"),
        )


@dataclass(slots=True)
class Comment:
    id: str
    video_id: str
    author_id: str
    author_name: str
    text: str
    likes: list[str] = field(default_factory=list)
    created_at: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "videoId": self.video_id,
            "authorId": self.author_id,
            "authorName": self.author_name,
            "text": self.text,
            "likes": list(self.likes),
            "createdAt": self.created_at,
        }

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> Comment:
        return cls(
            id=_text(raw, "id"),
            video_id=_text(raw, "videoId"),
            author_id=_text(raw, "authorId"),
            author_name=_text(raw, "authorName"),
            text=_text(raw, "text"),
            likes=_id_list(raw, "likes"),
            created_at=_text(raw, "createdAt"),
        )


@dataclass(slots=True)
class Subscription:
    id: str
    subscriber_id: str
    channel_id: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "subscriberId": self.subscriber_id,
            "channelId": self.channel_id,
        }

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> Subscription:
        return cls(
            id=_text(raw, "id"),
            subscriber_id=_text(raw, "subscriberId"),
            channel_id=_text(raw, "channelId"),
        )


# ---------------------------------------------------------------------------
# Snapshot (the whole document)
# ---------------------------------------------------------------------------

def _records(raw: Mapping[str, Any], key: str) -> list[Mapping[str, Any]]:
    value = raw.get(key)
    if not isinstance(value, list):
        return []
    return [entry for entry in value if isinstance(entry, Mapping)]


@dataclass(slots=True)
class Snapshot:
    """All four collections at one point in time."""

    videos: list[Video] = field(default_factory=list)
    users: list[User] = field(default_factory=list)
    comments: list[Comment] = field(default_factory=list)
    subscriptions: list[Subscription] = field(default_factory=list)

    @classmethod
    def empty(cls) -> Snapshot:
        return cls()

    def to_dict(self) -> dict[str, Any]:
        return {
            "videos": [video.to_dict() for video in self.videos],
            "users": [user.to_dict() for user in self.users],
            "comments": [comment.to_dict() for comment in self.comments],
            "subscriptions": [sub.to_dict() for sub in self.subscriptions],
        }

    @classmethod
    def from_dict(cls, raw: object) -> Snapshot:
        """Build a snapshot from a decoded document.

        Anything that is not a mapping yields an empty snapshot; missing
        or malformed collections become empty lists.
        """
        if not isinstance(raw, Mapping):
            return cls.empty()
        return cls(
            videos=[Video.from_dict(r) for r in _records(raw, "videos")],
            users=[User.from_dict(r) for r in _records(raw, "users")],
            comments=[Comment.from_dict(r) for r in _records(raw, "comments")],
            subscriptions=[
                Subscription.from_dict(r) for r in _records(raw, "subscriptions")
            ],
        )

    # -- lookups ------------------------------------------------------------

    def find_video(self, video_id: str) -> Video | None:
        return next((v for v in self.videos if v.id == video_id), None)

    def find_user(self, user_id: str) -> User | None:
        return next((u for u in self.users if u.id == user_id), None)

    def find_comment(self, comment_id: str) -> Comment | None:
        return next((c for c in self.comments if c.id == comment_id), None)

    def find_subscription(
        self, subscriber_id: str, channel_id: str
    ) -> Subscription | None:
        return next(
            (
                s
                for s in self.subscriptions
                if s.subscriber_id == subscriber_id and s.channel_id == channel_id
            ),
            None,
        )


# ---------------------------------------------------------------------------
# Value objects crossing layer boundaries
# ---------------------------------------------------------------------------

@dataclass(frozen=True, slots=True)
class UploadedFile:
    """The single file part recovered from a multipart body."""

    field_name: str
    filename: str
    data: bytes


@dataclass(frozen=True, slots=True)
class MultipartPayload:
    """Decoded multipart body: text fields plus at most one file."""

    fields: dict[str, str] = field(default_factory=dict)
    file: UploadedFile | None = None


@dataclass(frozen=True, slots=True)
class StoredBlob:
    """Where a blob backend put some bytes."""

    reference: str
    """Externally resolvable locator (relative path or URL)."""

    handle: str | None
    """Opaque key for a later :meth:`BlobBackend.delete` call."""


@dataclass(frozen=True, slots=True)
class UserSummary:
    """The public view of a user returned by account operations."""

    user_id: str
    nickname: str

    def to_dict(self) -> dict[str, str]:
        return {"id": self.user_id, "nickname": self.nickname}
