"""Shared ``httpx`` client construction for the remote backends."""

from __future__ import annotations

import httpx


def build_http_client(
    *,
    token: str | None = None,
    timeout: float = 10.0,
) -> httpx.Client:
    """Return a client with a bounded timeout and optional bearer auth."""
    headers: dict[str, str] = {}
    if token:
        headers["Authorization"] = f"Bearer {token}"
    return httpx.Client(
        headers=headers,
        timeout=timeout,
        limits=httpx.Limits(max_connections=5, max_keepalive_connections=2),
    )
