"""Allow ``python -m tootube`` invocation.

Delegates to the CLI error-boundary entry point so that
``python -m tootube`` behaves identically to the ``tootube`` console
script.
"""

from __future__ import annotations

from tootube.cli.app import cli

if __name__ == "__main__":
    cli()
