"""Binary-safe ``multipart/form-data`` decoding.

Every function in this module is a **pure** transformation over bytes:
no I/O, no exceptions for malformed input.  A damaged part is skipped
and scanning resumes at the next boundary, so the worst a bad request
can produce is a payload with fewer fields.

Decoding steps (per part):

1. **Split**: the span between two consecutive boundary delimiters.
2. **Separate**: headers end at the first blank line (``CRLF CRLF``).
3. **Trim**: drop the ``CRLF`` that precedes the next delimiter.
4. **Classify**: ``filename="…"`` makes the part the file payload;
   anything else with a ``name="…"`` is a UTF-8 text field.
"""

from __future__ import annotations

import re

from tootube.core.models import MultipartPayload, UploadedFile

_HEADER_SEPARATOR = b"\r\n\r\n"
# Line terminator preceding the next delimiter; stripped from every body.
_TRAILER_LEN = 2

_BOUNDARY_RE = re.compile(r'boundary=(?:"([^"]+)"|([^;\s]+))', re.IGNORECASE)
# ``\b`` keeps ``name=`` from matching the tail of ``filename=``.
_NAME_RE = re.compile(r'\bname="([^"]+)"')
_FILENAME_RE = re.compile(r'\bfilename="([^"]+)"')
_FILENAME_MARKER = 'filename="'

DEFAULT_FILENAME = "file"


# ---------------------------------------------------------------------------
# Content-Type handling
# ---------------------------------------------------------------------------

def boundary_from_content_type(content_type: str | None) -> str | None:
    """Return the ``boundary`` parameter of a Content-Type header value.

    >>> boundary_from_content_type('multipart/form-data; boundary=abc')
    'abc'
    >>> boundary_from_content_type('application/json') is None
    True
    """
    if not content_type:
        return None
    match = _BOUNDARY_RE.search(content_type)
    if match is None:
        return None
    return match.group(1) or match.group(2)


# ---------------------------------------------------------------------------
# Part headers
# ---------------------------------------------------------------------------

def _parse_part_headers(header_text: str) -> tuple[str, str | None] | None:
    """Return ``(field_name, filename_or_None)`` for one part.

    Headers are inspected line by line; the first line carrying a
    ``name="…"`` token wins.  ``None`` means the part has no name and
    must be skipped.
    """
    for line in header_text.split("\r\n"):
        name_match = _NAME_RE.search(line)
        if name_match is None:
            continue
        if _FILENAME_MARKER not in line:
            return name_match.group(1), None
        filename_match = _FILENAME_RE.search(line)
        filename = filename_match.group(1) if filename_match else DEFAULT_FILENAME
        return name_match.group(1), filename
    return None


# ---------------------------------------------------------------------------
# Body decoding
# ---------------------------------------------------------------------------

def decode_multipart(body: bytes, boundary: str | None) -> MultipartPayload:
    """Decode *body* into text fields and at most one file.

    Parameters
    ----------
    body:
        The raw request body, exactly as received.
    boundary:
        The boundary token from the Content-Type header (without the
        leading ``--``).  ``None`` or empty yields an empty payload.

    Returns
    -------
    MultipartPayload
        Text values decoded as UTF-8; the file keeps its exact bytes.
        When several file parts are present only the last survives.
    """
    if not boundary:
        return MultipartPayload()

    delimiter = b"--" + boundary.encode("utf-8")
    fields: dict[str, str] = {}
    upload: UploadedFile | None = None

    pos = 0
    while pos < len(body):
        start = body.find(delimiter, pos)
        if start == -1:
            break
        part_start = start + len(delimiter)
        next_start = body.find(delimiter, part_start)
        if next_start == -1:
            break
        pos = next_start

        part = body[part_start:next_start]
        header_end = part.find(_HEADER_SEPARATOR)
        if header_end == -1:
            continue

        header_text = part[:header_end].decode("utf-8", errors="replace")
        content = part[header_end + len(_HEADER_SEPARATOR):len(part) - _TRAILER_LEN]

        parsed = _parse_part_headers(header_text)
        if parsed is None:
            continue
        field_name, filename = parsed

        if filename is not None:
            upload = UploadedFile(
                field_name=field_name,
                filename=filename,
                data=content,
            )
        else:
            fields[field_name] = content.decode("utf-8", errors="replace")

    return MultipartPayload(fields=fields, file=upload)


def decode_request(body: bytes, content_type: str | None) -> MultipartPayload:
    """Convenience wrapper: extract the boundary, then decode."""
    return decode_multipart(body, boundary_from_content_type(content_type))
