"""Content-Length message framing.

This module implements the base protocol framing shared by the editor
and the language server:
- Header parsing (Content-Length required, Content-Type optional)
- Frame reading that waits for partial payloads to complete
- Frame writing with Content-Length computed on encoded bytes

Header Format:
    Content-Length: <length>\r\n
    [Content-Type: <type>]\r\n
    \r\n
    <payload>

The payload is treated as opaque UTF-8 text here; interpreting it is
left to the transforms.
"""

from __future__ import annotations

import asyncio
import re
from dataclasses import dataclass, field

from gdlsp_proxy.transport.errors import FrameError, TransportError

# Header constants
CONTENT_LENGTH = "Content-Length"
CONTENT_TYPE = "Content-Type"
HEADER_ENCODING = "utf-8"
CONTENT_ENCODING = "utf-8"
CRLF = b"\r\n"
HEADER_SEPARATOR = b"\r\n\r\n"

DEFAULT_MAX_MESSAGE_SIZE = 10 * 1024 * 1024

_DECIMAL = re.compile(r"[0-9]+")


@dataclass
class Frame:
    """One length-prefixed unit read from (or destined for) a stream."""

    headers: dict[str, str] = field(default_factory=dict)
    payload: bytes = b""

    @property
    def content_length(self) -> int:
        return len(self.payload)

    @property
    def content_type(self) -> str | None:
        return self.headers.get(CONTENT_TYPE)

    @property
    def text(self) -> str:
        """Payload decoded as UTF-8."""
        try:
            return self.payload.decode(CONTENT_ENCODING)
        except UnicodeDecodeError as e:
            raise FrameError(f"Invalid UTF-8 in payload: {e}") from e

    @property
    def raw(self) -> bytes:
        """Header block followed by the payload, as it appeared on the wire."""
        lines = [f"{name}: {value}" for name, value in self.headers.items()]
        if CONTENT_LENGTH not in self.headers:
            lines.insert(0, f"{CONTENT_LENGTH}: {len(self.payload)}")
        header = "\r\n".join(lines).encode(HEADER_ENCODING)
        return header + HEADER_SEPARATOR + self.payload


def parse_header(header_bytes: bytes) -> dict[str, str]:
    """Parse headers from raw bytes.

    Args:
        header_bytes: Raw header bytes, with or without the trailing
            CRLF CRLF separator.

    Returns:
        Dictionary mapping header names to values, in wire order.

    Raises:
        FrameError: If headers are malformed or Content-Length is missing
            or not a non-negative decimal integer.

    Example:
        >>> parse_header(b"Content-Length: 42\\r\\nContent-Type: application/json")
        {'Content-Length': '42', 'Content-Type': 'application/json'}
    """
    headers: dict[str, str] = {}

    if not header_bytes.strip():
        raise FrameError("Empty header block")

    try:
        header_text = header_bytes.decode(HEADER_ENCODING)
    except UnicodeDecodeError as e:
        raise FrameError(f"Header is not valid UTF-8: {e}") from e

    for line in header_text.split("\r\n"):
        if not line:
            continue

        colon_pos = line.find(":")
        if colon_pos == -1:
            raise FrameError(f"Malformed header line (no colon): {line!r}")

        name = line[:colon_pos].strip()
        value = line[colon_pos + 1 :].strip()

        if not name:
            raise FrameError(f"Empty header name in line: {line!r}")

        headers[name] = value

    if CONTENT_LENGTH not in headers:
        raise FrameError("Missing required Content-Length header")

    if not _DECIMAL.fullmatch(headers[CONTENT_LENGTH]):
        raise FrameError(f"Invalid Content-Length value: {headers[CONTENT_LENGTH]!r}")

    return headers


def encode_frame(payload: str | bytes) -> bytes:
    """Frame a payload with a Content-Length header.

    The length is the UTF-8 byte count, never the character count.
    """
    body = payload.encode(CONTENT_ENCODING) if isinstance(payload, str) else payload
    header = f"{CONTENT_LENGTH}: {len(body)}\r\n\r\n".encode(HEADER_ENCODING)
    return header + body


def decode_frame(data: bytes) -> Frame:
    """Decode exactly one frame from a complete buffer.

    Raises:
        FrameError: If the header terminator is missing or the payload
            length does not match Content-Length.
    """
    separator = data.find(HEADER_SEPARATOR)
    if separator == -1:
        raise FrameError("Missing header terminator")

    headers = parse_header(data[:separator])
    content_length = int(headers[CONTENT_LENGTH])
    payload = data[separator + len(HEADER_SEPARATOR) :]

    if len(payload) != content_length:
        raise FrameError(
            f"Payload length mismatch: expected {content_length} bytes, got {len(payload)}"
        )
    return Frame(headers=headers, payload=payload)


async def read_frame(
    reader: asyncio.StreamReader,
    *,
    max_message_size: int = DEFAULT_MAX_MESSAGE_SIZE,
) -> Frame | None:
    """Read a single frame from the stream.

    Blocks until a complete frame is available or the stream ends.

    Args:
        reader: Async stream reader to read from.
        max_message_size: Maximum accepted payload size in bytes.

    Returns:
        The decoded frame, or None if the stream ended before any byte of
        a new frame was read.

    Raises:
        FrameError: If the header is malformed or the stream closes in the
            middle of a frame.
        TransportError: If the underlying stream fails.
    """
    try:
        header_bytes = await reader.readuntil(HEADER_SEPARATOR)
    except asyncio.IncompleteReadError as e:
        if not e.partial:
            return None
        raise FrameError("Unexpected end of stream while reading headers") from e
    except asyncio.LimitOverrunError as e:
        raise FrameError(f"Header block too long: {e}") from e
    except OSError as e:
        raise TransportError(f"Read failed: {e}") from e

    headers = parse_header(header_bytes[: -len(HEADER_SEPARATOR)])
    content_length = int(headers[CONTENT_LENGTH])

    if content_length > max_message_size:
        raise FrameError(f"Message size {content_length} exceeds maximum {max_message_size}")

    try:
        payload = await reader.readexactly(content_length)
    except asyncio.IncompleteReadError as e:
        raise FrameError(
            f"Incomplete payload: expected {content_length} bytes, got {len(e.partial)}"
        ) from e
    except OSError as e:
        raise TransportError(f"Read failed: {e}") from e

    return Frame(headers=headers, payload=payload)


async def write_raw(writer: asyncio.StreamWriter, data: bytes) -> None:
    """Write already-framed bytes and flush them."""
    try:
        writer.write(data)
        await writer.drain()
    except OSError as e:
        raise TransportError(f"Write failed: {e}") from e


async def write_frame(writer: asyncio.StreamWriter, payload: str | bytes) -> None:
    """Write a payload with Content-Length framing, then flush.

    Example:
        >>> await write_frame(writer, '{"jsonrpc":"2.0","id":1,"result":null}')
    """
    await write_raw(writer, encode_frame(payload))
