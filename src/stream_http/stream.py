"""Request body streams.

A request does not own its payload bytes; it holds a reference to a
**stream**, any object that can be read from and written to.  The
request never looks inside.  Only a transport reads it, at send time.

When no body is given, a request gets a fresh spooled temporary file:
an in-memory buffer that moves to disk once it grows past
``TEMP_STREAM_MAX_MEMORY`` bytes.
"""

import tempfile
from typing import IO, Protocol, runtime_checkable

from stream_http.errors import UnexpectedTypeError

TEMP_STREAM_MAX_MEMORY = 2 * 1024 * 1024


@runtime_checkable
class Stream(Protocol):
    """Anything a request body can be: readable and writable bytes."""

    def read(self, size: int = -1, /) -> bytes:
        """Read up to *size* bytes (all remaining bytes when negative)."""
        ...

    def write(self, data: bytes, /) -> int:
        """Write *data* and return the number of bytes written."""
        ...


def temp_stream() -> IO[bytes]:
    """Return an empty spooled temporary binary stream."""
    return tempfile.SpooledTemporaryFile(max_size=TEMP_STREAM_MAX_MEMORY, mode="w+b")


def create_stream(body: Stream | bytes | str | None = None) -> Stream:
    """Turn *body* into a stream.

    Args:
        body: ``None`` for an empty temp stream, ``bytes`` or ``str``
            (UTF-8 encoded) for a temp stream holding that content and
            rewound to the start, or an existing stream used as-is.

    Returns:
        A stream suitable for ``Request.body``.

    Raises:
        UnexpectedTypeError: If *body* is none of the above.

    """
    if body is None:
        return temp_stream()
    if isinstance(body, str):
        body = body.encode()
    if isinstance(body, bytes):
        stream = temp_stream()
        stream.write(body)
        stream.seek(0)
        return stream
    if isinstance(body, Stream):
        return body
    raise UnexpectedTypeError(body, "stream, bytes, string or null")
