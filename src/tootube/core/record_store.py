"""Record store — the four collections as one consistency unit.

Every composed mutation is a load → mutate → save cycle executed while
holding the store lock, so no operation can observe (or overwrite) a
half-applied change from another thread.  Cross-collection rules live
here and nowhere else:

* cascades on video and user deletion,
* the incrementally maintained ``subscriber_count``,
* ``author_name`` propagation on rename,
* the likes/dislikes exclusivity of a vote.

Guarantees
----------
* No filesystem or network I/O; persistence goes through a
  :class:`~tootube.core.protocols.DocumentBackend`.
* A snapshot is written only when the mutation actually changed it.
* Only :class:`~tootube.exceptions.TootubeError` subclasses escape.
"""

from __future__ import annotations

import logging
import secrets
import threading
import time
from collections.abc import Callable, Container, Iterator
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any

from tootube.core.models import (
    UNSET,
    Comment,
    Snapshot,
    Subscription,
    User,
    Video,
    VoteAction,
)
from tootube.core.protocols import DocumentBackend
from tootube.exceptions import (
    CorruptSnapshotError,
    DuplicateNicknameError,
    InvalidCredentialsError,
    NotFoundError,
    StorageBackendError,
    StoreBusyError,
    TootubeError,
)

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Ids and timestamps
# ---------------------------------------------------------------------------

def new_record_id(prefix: str, taken: Container[str] = ()) -> str:
    """Return ``<prefix><epoch-millis><4 hex chars>``, e.g. ``v1714567890123a1f0``.

    Candidates already in *taken* are drawn again.
    """
    while True:
        candidate = f"{prefix}{time.time_ns() // 1_000_000}{secrets.token_hex(2)}"
        if candidate not in taken:
            return candidate


def format_timestamp(moment: datetime) -> str:
    """Render *moment* as ISO-8601 UTC with millisecond precision and ``Z``."""
    utc = moment.astimezone(timezone.utc)
    return utc.strftime("%Y-%m-%dT%H:%M:%S.") + f"{utc.microsecond // 1000:03d}Z"


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _without(ids: list[str], user_id: str) -> list[str]:
    return [existing for existing in ids if existing != user_id]


# ---------------------------------------------------------------------------
# Store
# ---------------------------------------------------------------------------

class RecordStore:
    """Serialized read-modify-write access to the record document.

    Parameters
    ----------
    backend:
        Any object satisfying the :class:`DocumentBackend` protocol.
    lock_timeout:
        Seconds to wait for the store lock before raising
        :class:`StoreBusyError`.
    clock:
        Returns the current time; injectable for deterministic tests.
    """

    def __init__(
        self,
        backend: DocumentBackend,
        *,
        lock_timeout: float = 30.0,
        clock: Callable[[], datetime] = _utc_now,
    ) -> None:
        self._backend: DocumentBackend = backend
        self._lock_timeout = lock_timeout
        self._clock = clock
        self._lock = threading.RLock()

    @property
    def backend(self) -> DocumentBackend:
        return self._backend

    # ------------------------------------------------------------------
    # Whole-document access
    # ------------------------------------------------------------------

    def load(self) -> Snapshot:
        """Return the current snapshot.

        A missing document is created empty and persisted; a corrupt one
        is treated as empty (and overwritten by the next save).

        Raises
        ------
        StorageBackendError
            When the backend cannot be reached.
        """
        with self._locked():
            try:
                raw = self._backend.read()
            except CorruptSnapshotError as exc:
                logger.warning("Record document is corrupt, using an empty snapshot: %s", exc)
                return Snapshot.empty()
            except TootubeError:
                raise
            except Exception as exc:
                raise StorageBackendError(
                    f"Unexpected error reading records: {exc}",
                ) from exc

            if raw is None:
                snapshot = Snapshot.empty()
                logger.info("No record document at %s, creating one", self._backend.describe())
                self.save(snapshot)
                return snapshot
            return Snapshot.from_dict(raw)

    def save(self, snapshot: Snapshot) -> None:
        """Persist *snapshot* as the complete new document.

        Raises
        ------
        StorageBackendError
            When the write fails; the previous document stays intact.
        """
        with self._locked():
            try:
                self._backend.write(snapshot.to_dict())
            except TootubeError:
                logger.error("Failed to persist records to %s", self._backend.describe())
                raise
            except Exception as exc:
                logger.error("Failed to persist records to %s", self._backend.describe())
                raise StorageBackendError(
                    f"Unexpected error writing records: {exc}",
                ) from exc

    @contextmanager
    def transaction(self) -> Iterator[Snapshot]:
        """Yield a fresh snapshot and persist it if the block changed it.

        The store lock is held for the whole block.  An exception inside
        the block discards every change.
        """
        with self._locked():
            snapshot = self.load()
            before = snapshot.to_dict()
            yield snapshot
            if snapshot.to_dict() != before:
                self.save(snapshot)

    @contextmanager
    def _locked(self) -> Iterator[None]:
        if not self._lock.acquire(timeout=self._lock_timeout):
            raise StoreBusyError(
                f"Record store busy for more than {self._lock_timeout:g}s.",
                hint="Another operation is holding the store; retry shortly.",
            )
        try:
            yield
        finally:
            self._lock.release()

    def _now(self) -> str:
        return format_timestamp(self._clock())

    # ------------------------------------------------------------------
    # Videos
    # ------------------------------------------------------------------

    def new_video_id(self) -> str:
        """Return an id no stored video uses yet."""
        snapshot = self.load()
        return new_record_id("v", {v.id for v in snapshot.videos})

    def create_video(
        self,
        *,
        title: str,
        author_id: str,
        media_reference: str,
        video_id: str | None = None,
        blob_handle: str | None = None,
        description: str = "",
        author_name: str = "User",
        is_short: bool = False,
    ) -> Video:
        """Append a new video with zero views and no votes.

        *video_id* is used when it is still free; otherwise (or when it is
        omitted) a fresh id is drawn.  Read the final id from the returned
        record.
        """
        with self.transaction() as snapshot:
            taken = {v.id for v in snapshot.videos}
            if video_id is None or video_id in taken:
                video_id = new_record_id("v", taken)
            video = Video(
                id=video_id,
                title=title,
                description=description,
                author_id=author_id,
                author_name=author_name,
                is_short=is_short,
                media_reference=media_reference,
                blob_handle=blob_handle,
                created_at=self._now(),
            )
            snapshot.videos.append(video)
        logger.debug("Created video %s", video_id, extra={"video_id": video_id})
        return video

    def set_vote(self, video_id: str, user_id: str, action: VoteAction) -> Video:
        """Make *action* the user's only vote on the video.

        Raises
        ------
        NotFoundError
            If the video does not exist.
        """
        with self.transaction() as snapshot:
            video = snapshot.find_video(video_id)
            if video is None:
                raise NotFoundError(f"Video not found: {video_id}")
            video.likes = _without(video.likes, user_id)
            video.dislikes = _without(video.dislikes, user_id)
            if action is VoteAction.LIKE:
                video.likes.append(user_id)
            elif action is VoteAction.DISLIKE:
                video.dislikes.append(user_id)
        return video

    def increment_view(self, video_id: str) -> bool:
        """Add one view; return ``False`` (and change nothing) if the video is gone."""
        with self.transaction() as snapshot:
            video = snapshot.find_video(video_id)
            if video is None:
                return False
            video.views += 1
        return True

    def delete_video(self, video_id: str) -> Video | None:
        """Remove a video and every comment on it.

        Returns the removed record so the caller can release its blob,
        or ``None`` when nothing matched.
        """
        with self.transaction() as snapshot:
            video = snapshot.find_video(video_id)
            if video is None:
                return None
            snapshot.videos = [v for v in snapshot.videos if v.id != video_id]
            snapshot.comments = [c for c in snapshot.comments if c.video_id != video_id]
        logger.debug("Deleted video %s", video_id, extra={"video_id": video_id})
        return video

    # ------------------------------------------------------------------
    # Comments
    # ------------------------------------------------------------------

    def add_comment(
        self, video_id: str, author_id: str, author_name: str, text: str
    ) -> Comment:
        """Append a comment; the video is deliberately not checked for existence."""
        with self.transaction() as snapshot:
            comment = Comment(
                id=new_record_id("c", {c.id for c in snapshot.comments}),
                video_id=video_id,
                author_id=author_id,
                author_name=author_name,
                text=text,
                created_at=self._now(),
            )
            snapshot.comments.append(comment)
        return comment

    def toggle_comment_like(self, comment_id: str, user_id: str) -> bool | None:
        """Flip the user's like on a comment.

        Returns the new state (``True`` = liked), or ``None`` when the
        comment does not exist.
        """
        with self.transaction() as snapshot:
            comment = snapshot.find_comment(comment_id)
            if comment is None:
                return None
            if user_id in comment.likes:
                comment.likes.remove(user_id)
                return False
            comment.likes.append(user_id)
            return True

    # ------------------------------------------------------------------
    # Users
    # ------------------------------------------------------------------

    def register_user(self, nickname: str, password: str) -> User:
        """Create a user with a unique (case-sensitive) nickname.

        Raises
        ------
        DuplicateNicknameError
            If any user already has *nickname*.
        """
        with self.transaction() as snapshot:
            self._ensure_nickname_free(snapshot, nickname)
            user = User(
                id=new_record_id("u", {u.id for u in snapshot.users}),
                nickname=nickname,
                password=password,
                created_at=self._now(),
            )
            snapshot.users.append(user)
        logger.debug("Registered user %s", user.id, extra={"user_id": user.id})
        return user

    def authenticate(self, nickname: str, password: str) -> User:
        """Return the user with exactly this nickname and password.

        Raises
        ------
        InvalidCredentialsError
            If no user matches both values.
        """
        snapshot = self.load()
        for user in snapshot.users:
            if user.nickname == nickname and user.password == password:
                return user
        raise InvalidCredentialsError("Invalid nickname or password.")

    def update_user(
        self,
        user_id: str,
        *,
        nickname: str | None = None,
        password: str | None = None,
        avatar: Any = UNSET,
    ) -> User:
        """Rename and/or change the password and/or avatar of a user.

        A rename rewrites ``author_name`` on every video and comment the
        user authored, inside the same saved snapshot.  Empty *nickname*
        or *password* leaves the value unchanged; pass ``avatar=None`` to
        clear the avatar.

        Raises
        ------
        NotFoundError
            If the user does not exist.
        DuplicateNicknameError
            If another user already has the new nickname.
        """
        with self.transaction() as snapshot:
            user = snapshot.find_user(user_id)
            if user is None:
                raise NotFoundError(f"User not found: {user_id}")
            if nickname:
                self._ensure_nickname_free(snapshot, nickname, exclude_id=user_id)
                for video in snapshot.videos:
                    if video.author_id == user_id:
                        video.author_name = nickname
                for comment in snapshot.comments:
                    if comment.author_id == user_id:
                        comment.author_name = nickname
                user.nickname = nickname
            if password:
                user.password = password
            if avatar is not UNSET:
                user.avatar = avatar
        return user

    def delete_user(self, user_id: str) -> list[Video]:
        """Remove a user and everything that references them.

        Cascade: the user's videos (with the comments on them), the
        user's own comments, and every subscription where the user is
        subscriber or channel.  Channels the user was subscribed to lose
        one subscriber each.

        Returns the removed videos so the caller can release their blobs.
        """
        with self.transaction() as snapshot:
            removed = [v for v in snapshot.videos if v.author_id == user_id]
            removed_ids = {v.id for v in removed}

            snapshot.videos = [v for v in snapshot.videos if v.author_id != user_id]
            snapshot.comments = [
                c
                for c in snapshot.comments
                if c.author_id != user_id and c.video_id not in removed_ids
            ]

            kept: list[Subscription] = []
            for sub in snapshot.subscriptions:
                if sub.subscriber_id == user_id and sub.channel_id != user_id:
                    self._adjust_subscribers(snapshot, sub.channel_id, -1)
                if user_id not in (sub.subscriber_id, sub.channel_id):
                    kept.append(sub)
            snapshot.subscriptions = kept

            snapshot.users = [u for u in snapshot.users if u.id != user_id]
        logger.debug(
            "Deleted user %s with %d video(s)", user_id, len(removed),
            extra={"user_id": user_id},
        )
        return removed

    # ------------------------------------------------------------------
    # Subscriptions
    # ------------------------------------------------------------------

    def toggle_subscription(self, subscriber_id: str, channel_id: str) -> bool:
        """Subscribe, or unsubscribe if already subscribed.

        The channel's ``subscriber_count`` moves by exactly one in the
        matching direction and never drops below zero.  Returns ``True``
        when the call left the user subscribed.
        """
        with self.transaction() as snapshot:
            existing = snapshot.find_subscription(subscriber_id, channel_id)
            if existing is not None:
                snapshot.subscriptions = [
                    s for s in snapshot.subscriptions if s is not existing
                ]
                self._adjust_subscribers(snapshot, channel_id, -1)
                return False
            snapshot.subscriptions.append(
                Subscription(
                    id=new_record_id("s", {s.id for s in snapshot.subscriptions}),
                    subscriber_id=subscriber_id,
                    channel_id=channel_id,
                )
            )
            self._adjust_subscribers(snapshot, channel_id, +1)
            return True

    # ------------------------------------------------------------------
    # Invariant helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _ensure_nickname_free(
        snapshot: Snapshot, nickname: str, *, exclude_id: str | None = None
    ) -> None:
        for user in snapshot.users:
            if user.nickname == nickname and user.id != exclude_id:
                raise DuplicateNicknameError(
                    f"Nickname is already taken: {nickname}",
                    hint="Choose a different nickname.",
                )

    @staticmethod
    def _adjust_subscribers(snapshot: Snapshot, channel_id: str, delta: int) -> None:
        channel = snapshot.find_user(channel_id)
        if channel is not None:
            channel.subscriber_count = max(0, channel.subscriber_count + delta)
