"""Wiring — turn :class:`~tootube.config.Settings` into a ready service.

This is the single place that chooses concrete backends.  Transports
call :func:`create_service` once at startup and hand the returned
:class:`~tootube.core.platform_service.PlatformService` to their
request handlers.
"""

from __future__ import annotations

from tootube.config import Settings, load_settings
from tootube.core.platform_service import PlatformService
from tootube.core.protocols import BlobBackend, DocumentBackend
from tootube.core.record_store import RecordStore
from tootube.exceptions import ConfigurationError
from tootube.infra.json_document import JsonFileDocumentBackend
from tootube.infra.local_blob import LocalBlobBackend
from tootube.infra.remote_blob import HttpObjectStorageBackend
from tootube.infra.remote_document import HttpDocumentBackend


def build_document_backend(settings: Settings) -> DocumentBackend:
    if settings.document_backend == "remote":
        if not settings.remote_document_url:
            raise ConfigurationError(
                "Remote document backend selected without a URL.",
                hint="Set TOOTUBE_REMOTE_DOCUMENT_URL.",
            )
        return HttpDocumentBackend(
            settings.remote_document_url,
            token=settings.remote_api_token,
            timeout=settings.request_timeout,
        )
    return JsonFileDocumentBackend(settings.data_file)


def build_blob_backend(settings: Settings) -> BlobBackend:
    if settings.blob_backend == "remote":
        if not settings.remote_blob_endpoint:
            raise ConfigurationError(
                "Remote blob backend selected without an endpoint.",
                hint="Set TOOTUBE_REMOTE_BLOB_ENDPOINT.",
            )
        return HttpObjectStorageBackend(
            settings.remote_blob_endpoint,
            public_url=settings.remote_blob_public_url,
            token=settings.remote_api_token,
            timeout=settings.request_timeout,
        )
    return LocalBlobBackend(settings.upload_dir, url_prefix=settings.media_url_prefix)


def create_service(settings: Settings | None = None) -> PlatformService:
    """Build a :class:`PlatformService` for *settings* (environment by default).

    Raises
    ------
    ConfigurationError
        When settings are loaded from the environment and are invalid.
    """
    settings = settings or load_settings()
    store = RecordStore(
        build_document_backend(settings),
        lock_timeout=settings.lock_timeout,
    )
    return PlatformService(store, build_blob_backend(settings))


def close_backend(backend: object) -> None:
    """Release the HTTP client held by a remote backend.

    Local backends own no connections and are left alone.
    """
    close = getattr(backend, "close", None)
    if callable(close):
        close()


def close_service(service: PlatformService) -> None:
    """Close both backends behind a service built by :func:`create_service`."""
    close_backend(service.store.backend)
    close_backend(service.blobs)
