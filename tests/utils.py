"""Shared test utilities for gdlsp-proxy tests."""

from __future__ import annotations

import asyncio
import json
from typing import Any
from unittest.mock import MagicMock

from gdlsp_proxy.document import Node
from gdlsp_proxy.message import Direction, Message


def frame_bytes(payload: Any) -> bytes:
    """Frame a JSON-serializable payload (or raw text) with Content-Length.

    Args:
        payload: A dict/list dumped as JSON, or a str/bytes used as-is

    Returns:
        Header block plus body
    """
    if isinstance(payload, bytes):
        body = payload
    elif isinstance(payload, str):
        body = payload.encode("utf-8")
    else:
        body = json.dumps(payload).encode("utf-8")
    return f"Content-Length: {len(body)}\r\n\r\n".encode() + body


def make_reader(data: bytes, *, eof: bool = True) -> asyncio.StreamReader:
    """Create a StreamReader pre-filled with data."""
    reader = asyncio.StreamReader()
    reader.feed_data(data)
    if eof:
        reader.feed_eof()
    return reader


def make_writer() -> MagicMock:
    """Create a mock StreamWriter that records written bytes."""
    writer = MagicMock(spec=asyncio.StreamWriter)
    writer.is_closing.return_value = False
    return writer


def written(writer: MagicMock) -> bytes:
    """All bytes passed to a mock writer's write()."""
    return b"".join(call.args[0] for call in writer.write.call_args_list)


def response(result: Any, request_id: int = 1) -> Message:
    """Server-to-client response message carrying `result`."""
    payload = Node({"jsonrpc": "2.0", "id": request_id, "result": result})
    return Message(direction=Direction.SERVER_TO_CLIENT, payload=payload)


def request(method: str, params: Any = None, request_id: int = 1) -> Message:
    """Client-to-server request message."""
    payload = Node({"jsonrpc": "2.0", "id": request_id, "method": method, "params": params})
    return Message(direction=Direction.CLIENT_TO_SERVER, payload=payload)
