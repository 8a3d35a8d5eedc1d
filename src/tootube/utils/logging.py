"""Logging setup for tootube processes.

Library modules only ever call ``logging.getLogger(__name__)``; the
process entry point decides how records are rendered by calling
:func:`setup_logging` once.
"""

from __future__ import annotations

import json
import logging
import sys
import time

_EXTRA_FIELDS: tuple[str, ...] = ("video_id", "user_id", "handle", "path")


class JsonFormatter(logging.Formatter):
    """JSON line formatter for structured logging."""

    def format(self, record: logging.LogRecord) -> str:
        base: dict[str, object] = {
            "ts": time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime(record.created)),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }

        for field in _EXTRA_FIELDS:
            if hasattr(record, field):
                base[field] = getattr(record, field)

        if record.exc_info:
            base["exception"] = self.formatException(record.exc_info)

        return json.dumps(base, ensure_ascii=False)


def setup_logging(level: int = logging.INFO, *, json_lines: bool = False) -> None:
    """Install a single root handler.

    Parameters
    ----------
    level:
        Root logger level.
    json_lines:
        ``True`` emits one JSON object per line on stdout (services);
        ``False`` renders through Rich on stderr (interactive use).
    """
    handler: logging.Handler
    if json_lines:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(JsonFormatter())
    else:
        from rich.logging import RichHandler

        handler = RichHandler(show_path=False, rich_tracebacks=False)
        handler.setFormatter(logging.Formatter("%(name)s: %(message)s"))

    root_logger = logging.getLogger()
    root_logger.handlers = [handler]
    root_logger.setLevel(level)
