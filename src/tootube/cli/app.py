"""CLI application entry point and command routing for tootube.

This module is the **sole error boundary** of the operator CLI.  It
catches :class:`~tootube.exceptions.TootubeError`, ``KeyboardInterrupt``
and any unexpected ``Exception``, rendering user-friendly messages via
Rich and returning well-defined exit codes.

Commands
--------
* ``tootube doctor``: environment diagnostics
* ``tootube stats``: collection sizes of the current snapshot
* ``tootube --version``
"""

from __future__ import annotations

import argparse
import sys

from tootube.cli import exit_codes
from tootube.cli.console import console
from tootube.exceptions import TootubeError
from tootube.version import __version__


# ---------------------------------------------------------------------------
# Argument parser
# ---------------------------------------------------------------------------

def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="tootube",
        description="Record store and media ingestion for the TooTube video site.",
    )
    parser.add_argument(
        "-V",
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "command",
        nargs="?",
        default=None,
        choices=["doctor", "stats"],
        help="'doctor' to run diagnostics, 'stats' to summarise stored records.",
    )
    return parser


# ---------------------------------------------------------------------------
# Command dispatch
# ---------------------------------------------------------------------------

def _handle_doctor() -> int:
    """Dispatch the ``doctor`` diagnostics command."""
    from tootube.cli.doctor import run_doctor

    return run_doctor()


def _handle_stats() -> int:
    """Load the configured store and print one row per collection."""
    from rich.table import Table

    from tootube.bootstrap import close_service, create_service
    from tootube.config import load_settings
    from tootube.utils.logging import setup_logging

    settings = load_settings()
    setup_logging(settings.log_level_value, json_lines=settings.log_json)
    service = create_service(settings)
    try:
        snapshot = service.get_snapshot()
    finally:
        close_service(service)

    table = Table(title="tootube stats", header_style="bold cyan", border_style="dim")
    table.add_column("Collection", style="bold")
    table.add_column("Records", justify="right")
    table.add_row("videos", str(len(snapshot.videos)))
    table.add_row("users", str(len(snapshot.users)))
    table.add_row("comments", str(len(snapshot.comments)))
    table.add_row("subscriptions", str(len(snapshot.subscriptions)))
    table.add_row("total views", str(sum(v.views for v in snapshot.videos)))

    console.print(table)
    return exit_codes.SUCCESS


# ---------------------------------------------------------------------------
# Main entry point
# ---------------------------------------------------------------------------

def main(argv: list[str] | None = None) -> int:
    """Run the tootube CLI.

    Parameters
    ----------
    argv:
        Explicit argument list.  When ``None`` (default), ``sys.argv[1:]``
        is used.

    Returns
    -------
    int
        OS process exit code.
    """
    parser = _build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return exit_codes.SUCCESS
    if args.command == "doctor":
        return _handle_doctor()
    return _handle_stats()


# ---------------------------------------------------------------------------
# Script-level error boundary
# ---------------------------------------------------------------------------

def cli() -> None:
    """Top-level error boundary invoked by the console-script entry point."""
    try:
        code = main()
        sys.exit(code)
    except TootubeError as exc:
        console.print(f"[bold red]Error:[/bold red] {exc}")
        if exc.hint:
            console.print(f"[yellow]Hint:[/yellow] {exc.hint}")
        sys.exit(exit_codes.GENERAL_ERROR)
    except KeyboardInterrupt:
        console.print("\n[yellow]Aborted by user.[/yellow]")
        sys.exit(exit_codes.KEYBOARD_INTERRUPT)
    except Exception as exc:  # noqa: BLE001
        console.print(
            "[bold red]Unexpected error.[/bold red] "
            "Please report this issue.\n"
            f"  {type(exc).__name__}: {exc}"
        )
        sys.exit(exit_codes.UNEXPECTED_ERROR)
