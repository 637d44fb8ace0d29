"""Byte-stream transport: framing, stdio and backend connections."""

from gdlsp_proxy.transport.errors import FrameError, TransportError
from gdlsp_proxy.transport.framing import (
    DEFAULT_MAX_MESSAGE_SIZE,
    Frame,
    decode_frame,
    encode_frame,
    parse_header,
    read_frame,
    write_frame,
    write_raw,
)

__all__ = [
    "DEFAULT_MAX_MESSAGE_SIZE",
    "Frame",
    "FrameError",
    "TransportError",
    "decode_frame",
    "encode_frame",
    "parse_header",
    "read_frame",
    "write_frame",
    "write_raw",
]
