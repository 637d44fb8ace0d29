"""Editor-side byte streams over stdin/stdout."""

from __future__ import annotations

import asyncio
import sys
from dataclasses import dataclass

from gdlsp_proxy.transport.errors import TransportError


@dataclass
class StreamPair:
    """An ordered, reliable byte stream: one reader and one writer."""

    reader: asyncio.StreamReader
    writer: asyncio.StreamWriter
    name: str = "stream"

    async def close(self) -> None:
        """Close the writing side; safe to call more than once."""
        if self.writer.is_closing():
            return
        self.writer.close()
        try:
            await self.writer.wait_closed()
        except (OSError, asyncio.CancelledError):
            pass


async def open_stdio() -> StreamPair:
    """Wrap the process's stdin/stdout as async streams."""
    loop = asyncio.get_running_loop()

    try:
        reader = asyncio.StreamReader()
        protocol = asyncio.StreamReaderProtocol(reader)
        await loop.connect_read_pipe(lambda: protocol, sys.stdin)

        writer_transport, writer_protocol = await loop.connect_write_pipe(
            asyncio.streams.FlowControlMixin, sys.stdout
        )
    except (OSError, ValueError) as e:
        raise TransportError(f"Cannot attach to stdio: {e}") from e

    writer = asyncio.StreamWriter(writer_transport, writer_protocol, reader, loop)
    return StreamPair(reader=reader, writer=writer, name="editor")
