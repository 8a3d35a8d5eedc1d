"""Process exit statuses returned by ``tootube`` commands.

``doctor`` and ``stats`` return these from :func:`tootube.cli.app.main`;
:func:`tootube.cli.app.cli` maps caught exceptions onto the rest.
"""

from __future__ import annotations

SUCCESS: int = 0
"""The command ran and every doctor check passed."""

GENERAL_ERROR: int = 1
"""A TootubeError reached the CLI, or at least one doctor check failed."""

KEYBOARD_INTERRUPT: int = 130
"""Interrupted with Ctrl+C (128 + SIGINT)."""

UNEXPECTED_ERROR: int = 2
"""Any other exception; its type and message are printed to stderr."""
