"""tootube — persistence and upload ingestion for a video-sharing service.

One JSON document holds every record; uploaded media lives behind a
pluggable blob backend.
"""

from tootube.version import __version__

__all__: list[str] = ["__version__"]
