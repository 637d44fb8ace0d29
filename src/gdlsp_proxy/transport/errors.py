"""Transport-level exceptions."""

from __future__ import annotations


class TransportError(Exception):
    """A stream could not be connected, read or written.

    Fatal to the loop that owns the stream.
    """


class FrameError(Exception):
    """Error in message framing.

    Raised when:
    - Content-Length header is missing
    - Content-Length value is not a non-negative decimal integer
    - Header format is malformed
    - The stream closes before a frame is complete
    """
