"""Connection to the language server backend over TCP."""

from __future__ import annotations

import asyncio
import logging
import socket

from gdlsp_proxy.logging import get_logger
from gdlsp_proxy.transport.errors import TransportError
from gdlsp_proxy.transport.stdio import StreamPair

# Large frames (completion lists, class docs) arrive in one read
_SOCKET_BUFFER = 128 * 1024


async def open_backend(
    host: str,
    port: int,
    *,
    timeout: float = 5.0,
    logger: logging.Logger | None = None,
) -> StreamPair:
    """Connect to the backend.

    Raises:
        TransportError: If the connection cannot be established in time.
    """
    log = logger or get_logger("backend")

    try:
        reader, writer = await asyncio.wait_for(
            asyncio.open_connection(host, port, limit=_SOCKET_BUFFER),
            timeout=timeout,
        )
    except asyncio.TimeoutError as e:
        log.error("Timed out connecting to language server at %s:%d", host, port)
        raise TransportError(f"Timed out connecting to {host}:{port}") from e
    except OSError as e:
        log.error("Failed to connect to language server at %s:%d: %s", host, port, e)
        raise TransportError(f"Cannot connect to {host}:{port}: {e}") from e

    sock = writer.get_extra_info("socket")
    if sock is not None:
        sock.setsockopt(socket.IPPROTO_TCP, socket.TCP_NODELAY, 1)

    log.info("Connected to language server at %s:%d", host, port)
    return StreamPair(reader=reader, writer=writer, name="backend")
