"""``tootube doctor`` — environment diagnostics command.

Gathers configuration and backend status and renders a Rich table
summarising whether this process could serve requests.

This module lives in the CLI layer and may import from ``infra`` and
``core``.  It never mutates the record document: the data file is read,
not created.
"""

from __future__ import annotations

import os
import platform
import sys
from importlib import metadata

from rich.table import Table

from tootube.bootstrap import build_blob_backend, build_document_backend, close_backend
from tootube.cli import exit_codes
from tootube.cli.console import console
from tootube.config import Settings, load_settings
from tootube.exceptions import ConfigurationError, CorruptSnapshotError, TootubeError
from tootube.infra.local_blob import LocalBlobBackend
from tootube.version import __version__

OK = "[green]OK[/green]"
WARN = "[yellow]WARN[/yellow]"
FAIL = "[red]FAIL[/red]"

Check = tuple[str, str, str]


# ---------------------------------------------------------------------------
# Diagnostic collectors
# ---------------------------------------------------------------------------

def _tootube_version_check() -> Check:
    return "tootube", __version__, OK


def _python_version_check() -> Check:
    """Return (label, value, status) for the Python version row."""
    version = platform.python_version()
    ok = sys.version_info[:2] >= (3, 10)
    return "Python", version, OK if ok else "[red]FAIL (>=3.10 required)[/red]"


def _library_check(distribution: str) -> Check:
    """Return (label, value, status) for an installed dependency."""
    try:
        return distribution, metadata.version(distribution), OK
    except metadata.PackageNotFoundError:
        return distribution, "NOT INSTALLED", FAIL


def _document_check(settings: Settings) -> Check:
    """Probe the record document without creating it."""
    backend = build_document_backend(settings)
    label = f"records ({settings.document_backend})"
    try:
        raw = backend.read()
    except CorruptSnapshotError:
        return label, f"{backend.describe()} is corrupt, will be reset", WARN
    except TootubeError as exc:
        return label, str(exc), FAIL
    finally:
        close_backend(backend)
    if raw is None:
        return label, f"{backend.describe()} (created on first use)", WARN
    return label, backend.describe(), OK


def _blob_check(settings: Settings) -> Check:
    """Check the upload location is usable."""
    backend = build_blob_backend(settings)
    close_backend(backend)
    label = f"media ({settings.blob_backend})"
    if isinstance(backend, LocalBlobBackend):
        root = backend.root
        probe = root if root.exists() else root.parent
        if not os.access(probe, os.W_OK):
            return label, f"{root} not writable", FAIL
    return label, backend.describe(), OK


def collect_checks(settings: Settings | None = None) -> list[Check]:
    """Run every check; configuration errors become a single FAIL row."""
    checks = [
        _tootube_version_check(),
        _python_version_check(),
        _library_check("httpx"),
        _library_check("pydantic-settings"),
    ]
    try:
        settings = settings or load_settings()
    except ConfigurationError as exc:
        checks.append(("config", str(exc).splitlines()[0], FAIL))
        return checks
    checks.append(("config", "loaded", OK))
    checks.append(_document_check(settings))
    checks.append(_blob_check(settings))
    return checks


# ---------------------------------------------------------------------------
# Public entry point
# ---------------------------------------------------------------------------

def run_doctor(settings: Settings | None = None) -> int:
    """Execute all diagnostic checks and render a Rich summary table.

    Returns
    -------
    int
        :data:`exit_codes.SUCCESS` when no check failed,
        :data:`exit_codes.GENERAL_ERROR` otherwise.
    """
    checks = collect_checks(settings)
    has_failure = any("FAIL" in status for _, _, status in checks)

    table = Table(
        title="tootube doctor",
        show_header=True,
        header_style="bold cyan",
        border_style="dim",
    )
    table.add_column("Component", style="bold", min_width=12)
    table.add_column("Value", min_width=20)
    table.add_column("Status", justify="center", min_width=8)
    for label, value, status in checks:
        table.add_row(label, value, status)

    console.print()
    console.print(table)
    console.print()

    if has_failure:
        console.print("[bold red]Some checks failed.[/bold red]")
        return exit_codes.GENERAL_ERROR
    console.print("[bold green]All checks passed.[/bold green]")
    return exit_codes.SUCCESS
