"""Core platform service — the named use-cases of the video site.

This is the class a transport (HTTP router, CLI, job) talks to.  Each
public method is one request/response cycle composed from the multipart
decoder, the :class:`~tootube.core.record_store.RecordStore` and a
:class:`~tootube.core.protocols.BlobBackend` injected at construction
time.

Guarantees
----------
* No knowledge of which blob or document backend is in effect.
* Only :class:`~tootube.exceptions.TootubeError` subclasses escape.
* Blob deletions that accompany a record deletion are best-effort: they
  run after the records are persisted and their failures are logged,
  never raised.
"""

from __future__ import annotations

import logging
from pathlib import PurePosixPath
from typing import Any

from tootube.core.models import (
    UNSET,
    Snapshot,
    StoredBlob,
    UploadedFile,
    UserSummary,
    VoteAction,
)
from tootube.core.multipart import decode_request
from tootube.core.protocols import BlobBackend
from tootube.core.record_store import RecordStore
from tootube.exceptions import BlobStorageError, TootubeError, ValidationError

logger = logging.getLogger(__name__)

DEFAULT_MEDIA_EXTENSION = ".mp4"


class PlatformService:
    """Stateless orchestration of store and blob backend.

    Parameters
    ----------
    store:
        The record store owning all four collections.
    blobs:
        Any object satisfying the :class:`BlobBackend` protocol.
    """

    def __init__(self, store: RecordStore, blobs: BlobBackend) -> None:
        self._store: RecordStore = store
        self._blobs: BlobBackend = blobs

    @property
    def store(self) -> RecordStore:
        return self._store

    @property
    def blobs(self) -> BlobBackend:
        return self._blobs

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_snapshot(self) -> Snapshot:
        """Return the full four-collection document."""
        return self._store.load()

    # ------------------------------------------------------------------
    # Uploads
    # ------------------------------------------------------------------

    def create_video(
        self,
        *,
        title: str | None,
        author_id: str | None,
        file: UploadedFile | None,
        description: str | None = None,
        author_name: str | None = None,
        is_short: bool = False,
    ) -> str:
        """Store the media bytes and append a video record.

        Returns the new video id.

        Raises
        ------
        ValidationError
            If the file, the title or the author id is missing.
        BlobStorageError
            If the media bytes cannot be stored.
        StorageBackendError
            If the record cannot be persisted; the freshly stored blob
            is released again before the error propagates.
        """
        if file is None or not title or not author_id:
            raise ValidationError(
                "Missing fields",
                hint="An upload needs a file, a title and the author's user id.",
            )

        video_id = self._store.new_video_id()
        blob = self._store_blob(file.data, video_id + self._media_extension(file.filename))

        try:
            video = self._store.create_video(
                video_id=video_id,
                title=title,
                author_id=author_id,
                media_reference=blob.reference,
                blob_handle=blob.handle,
                description=description or "",
                author_name=author_name or "User",
                is_short=is_short,
            )
        except TootubeError:
            if blob.handle is not None:
                self._discard_blob(blob.handle)
            raise
        return video.id

    def create_video_from_multipart(self, body: bytes, content_type: str | None) -> str:
        """Decode a raw upload request and create the video it describes.

        Recognised fields: ``title``, ``description``, ``userId``,
        ``userName`` and ``isShort`` (``"true"`` for shorts), plus one
        file part under any name.
        """
        payload = decode_request(body, content_type)
        fields = payload.fields
        return self.create_video(
            title=fields.get("title"),
            author_id=fields.get("userId"),
            file=payload.file,
            description=fields.get("description"),
            author_name=fields.get("userName"),
            is_short=fields.get("isShort") == "true",
        )

    # ------------------------------------------------------------------
    # Accounts
    # ------------------------------------------------------------------

    def register(self, nickname: str | None, password: str | None) -> UserSummary:
        """Create an account.

        Raises
        ------
        ValidationError
            If nickname or password is empty.
        DuplicateNicknameError
            If the nickname is taken.
        """
        if not nickname or not password:
            raise ValidationError("Nickname and password are required.")
        user = self._store.register_user(nickname, password)
        return UserSummary(user_id=user.id, nickname=user.nickname)

    def login(self, nickname: str | None, password: str | None) -> UserSummary:
        """Return the account matching *nickname* and *password* exactly.

        Raises
        ------
        InvalidCredentialsError
            If no account matches.
        """
        user = self._store.authenticate(nickname or "", password or "")
        return UserSummary(user_id=user.id, nickname=user.nickname)

    def update_user(
        self,
        user_id: str,
        *,
        nickname: str | None = None,
        password: str | None = None,
        avatar: Any = UNSET,
    ) -> UserSummary:
        """Rename and/or change password and/or avatar.

        Raises
        ------
        NotFoundError
            If the user does not exist.
        DuplicateNicknameError
            If the new nickname belongs to someone else.
        """
        user = self._store.update_user(
            user_id, nickname=nickname, password=password, avatar=avatar,
        )
        return UserSummary(user_id=user.id, nickname=user.nickname)

    def delete_user(self, user_id: str) -> None:
        """Delete a user with all their videos, comments and subscriptions."""
        removed = self._store.delete_user(user_id)
        for video in removed:
            if video.blob_handle is not None:
                self._discard_blob(video.blob_handle)

    # ------------------------------------------------------------------
    # Engagement
    # ------------------------------------------------------------------

    def set_vote(self, video_id: str, user_id: str, action: VoteAction | str) -> None:
        """Set the user's vote on a video to like, dislike or none.

        Raises
        ------
        ValidationError
            If *action* is not one of ``like``, ``dislike``, ``none``.
        NotFoundError
            If the video does not exist.
        """
        self._store.set_vote(video_id, user_id, self._parse_vote(action))

    def increment_view(self, video_id: str) -> None:
        """Count one view; unknown videos are ignored."""
        self._store.increment_view(video_id)

    def add_comment(
        self, video_id: str, user_id: str, user_name: str, text: str
    ) -> str:
        """Post a comment and return its id."""
        return self._store.add_comment(video_id, user_id, user_name, text).id

    def toggle_comment_like(self, comment_id: str, user_id: str) -> None:
        """Like or un-like a comment; unknown comments are ignored."""
        self._store.toggle_comment_like(comment_id, user_id)

    def toggle_subscription(self, subscriber_id: str, channel_id: str) -> None:
        """Subscribe to a channel, or unsubscribe if already subscribed."""
        self._store.toggle_subscription(subscriber_id, channel_id)

    def delete_video(self, video_id: str) -> None:
        """Delete a video, its comments and (best-effort) its media."""
        video = self._store.delete_video(video_id)
        if video is not None and video.blob_handle is not None:
            self._discard_blob(video.blob_handle)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _parse_vote(action: VoteAction | str) -> VoteAction:
        if isinstance(action, VoteAction):
            return action
        try:
            return VoteAction(action)
        except ValueError as exc:
            raise ValidationError(
                f"Unknown vote action: {action!r}",
                hint="Use one of: like, dislike, none.",
            ) from exc

    @staticmethod
    def _media_extension(filename: str) -> str:
        """Return the uploaded file's extension, ``.mp4`` when it has none."""
        return PurePosixPath(filename.replace("\\", "/")).suffix or DEFAULT_MEDIA_EXTENSION

    def _store_blob(self, data: bytes, key: str) -> StoredBlob:
        """Call the blob backend and ensure only our exceptions escape."""
        try:
            return self._blobs.store(data, key)
        except TootubeError:
            raise
        except Exception as exc:
            raise BlobStorageError(
                f"Unexpected blob storage error: {exc}",
            ) from exc

    def _discard_blob(self, handle: str) -> None:
        """Delete a blob, logging instead of raising on failure."""
        try:
            self._blobs.delete(handle)
        except Exception:
            logger.warning(
                "Could not delete blob %s from %s",
                handle, self._blobs.describe(),
                exc_info=True,
                extra={"handle": handle},
            )
