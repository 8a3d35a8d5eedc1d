"""Shared Rich console for operator-facing output.

Output goes to stderr so that stdout stays free for JSON-lines logs.
"""

from __future__ import annotations

from rich.console import Console

console = Console(stderr=True)
