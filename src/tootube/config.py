"""Runtime configuration for tootube.

Settings are read from ``TOOTUBE_*`` environment variables and an
optional ``.env`` file.  Backend selection happens here, once, at
startup; nothing below the wiring layer knows which backend is active.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Literal

from pydantic import ValidationError as PydanticValidationError
from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from tootube.exceptions import ConfigurationError


class Settings(BaseSettings):
    """All tunables for the store, the blob backend and logging."""

    model_config = SettingsConfigDict(
        env_prefix="TOOTUBE_",
        env_file=".env",
        extra="ignore",
    )

    data_file: Path = Path("data.json")
    upload_dir: Path = Path("uploads")
    media_url_prefix: str = "/uploads/"

    document_backend: Literal["file", "remote"] = "file"
    remote_document_url: str | None = None

    blob_backend: Literal["local", "remote"] = "local"
    remote_blob_endpoint: str | None = None
    remote_blob_public_url: str | None = None

    remote_api_token: str | None = None
    request_timeout: float = 10.0
    lock_timeout: float = 30.0

    log_level: str = "INFO"
    log_json: bool = False

    @model_validator(mode="after")
    def _check_remote_urls(self) -> "Settings":
        if self.document_backend == "remote" and not self.remote_document_url:
            raise ValueError(
                "document_backend=remote requires remote_document_url"
            )
        if self.blob_backend == "remote" and not self.remote_blob_endpoint:
            raise ValueError(
                "blob_backend=remote requires remote_blob_endpoint"
            )
        return self

    @property
    def log_level_value(self) -> int:
        """Numeric logging level, falling back to ``INFO`` for unknown names."""
        level = logging.getLevelName(self.log_level.upper())
        return level if isinstance(level, int) else logging.INFO


def load_settings(**overrides: object) -> Settings:
    """Build :class:`Settings`, mapping pydantic failures to our hierarchy.

    Raises
    ------
    ConfigurationError
        When a setting is invalid or a remote backend lacks its URL.
    """
    try:
        return Settings(**overrides)  # type: ignore[arg-type]
    except PydanticValidationError as exc:
        raise ConfigurationError(
            f"Invalid configuration: {exc}",
            hint="Check the TOOTUBE_* environment variables or your .env file.",
        ) from exc
