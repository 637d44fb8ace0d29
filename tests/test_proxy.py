"""Tests for the forwarding loops and proxy session."""

from __future__ import annotations

import asyncio
import json

import pytest

from gdlsp_proxy.config import Config
from gdlsp_proxy.message import Direction
from gdlsp_proxy.pipeline import TransformPipeline, build_default_pipeline
from gdlsp_proxy.transport.framing import decode_frame, encode_frame
from gdlsp_proxy.transport.proxy import ForwardingLoop, ProxySession
from gdlsp_proxy.transport.stdio import StreamPair
from tests.utils import frame_bytes, make_reader, make_writer, written

COMPLETION_RESPONSE = {
    "jsonrpc": "2.0",
    "id": 3,
    "result": [{"label": "foo(…)", "kind": 2, "insertText": "foo()"}],
}


def _loop(data: bytes, direction: Direction = Direction.SERVER_TO_CLIENT, **kwargs):
    writer = make_writer()
    loop = ForwardingLoop(
        make_reader(data),
        writer,
        direction,
        build_default_pipeline(Config()),
        **kwargs,
    )
    return loop, writer


class TestForwardingLoop:
    """Tests for ForwardingLoop."""

    @pytest.mark.asyncio
    async def test_unmodified_frame_forwarded_verbatim(self) -> None:
        """Frames no transform touches keep their exact bytes and headers."""
        body = b'{"jsonrpc":"2.0", "id":1, "result":{"capabilities":{}}}'
        data = (
            f"Content-Length: {len(body)}\r\n"
            "Content-Type: application/vscode-jsonrpc; charset=utf-8\r\n\r\n"
        ).encode() + body
        loop, writer = _loop(data)

        stats = await loop.run()

        assert written(writer) == data
        assert stats.frames == 1
        assert stats.modified_frames == 0
        assert stats.reason == "end of stream"

    @pytest.mark.asyncio
    async def test_modified_frame_reframed(self) -> None:
        """Rewritten payloads get a fresh Content-Length."""
        loop, writer = _loop(frame_bytes(COMPLETION_RESPONSE))

        await loop.run()

        frame = decode_frame(written(writer))
        payload = json.loads(frame.text)
        assert payload["result"][0]["insertText"] == "foo($1)"
        assert frame.content_length == len(frame.payload)
        assert loop.frames == 1
        assert loop.modified_frames == 1

    @pytest.mark.asyncio
    async def test_client_requests_pass_through(self) -> None:
        """Client-to-server traffic is forwarded unchanged."""
        data = frame_bytes({"jsonrpc": "2.0", "id": 1, "method": "textDocument/hover"})
        loop, writer = _loop(data, Direction.CLIENT_TO_SERVER)

        await loop.run()

        assert written(writer) == data

    @pytest.mark.asyncio
    async def test_invalid_json_forwarded_verbatim(self, caplog_debug) -> None:
        """Payloads that are not JSON are passed on and logged."""
        data = frame_bytes("not json at all") + frame_bytes(COMPLETION_RESPONSE)
        loop, writer = _loop(data)

        stats = await loop.run()

        output = written(writer)
        assert output.startswith(frame_bytes("not json at all"))
        assert stats.frames == 2
        assert stats.modified_frames == 1
        assert "not JSON" in caplog_debug.text

    @pytest.mark.asyncio
    async def test_malformed_frame_ends_loop(self) -> None:
        """A bad header closes the direction after earlier frames went out."""
        good = frame_bytes({"jsonrpc": "2.0", "method": "initialized"})
        loop, writer = _loop(good + b"Content-Length: abc\r\n\r\n{}")

        stats = await loop.run()

        assert written(writer) == good
        assert stats.reason == "frame error"

    @pytest.mark.asyncio
    async def test_write_failure_ends_loop(self) -> None:
        """A failing destination stream stops the loop."""
        loop, writer = _loop(frame_bytes({"jsonrpc": "2.0", "method": "x"}))
        writer.drain.side_effect = BrokenPipeError("closed")

        stats = await loop.run()

        assert stats.reason == "transport error"

    @pytest.mark.asyncio
    async def test_stop_before_run(self) -> None:
        """A stopped loop reads nothing."""
        loop, writer = _loop(frame_bytes({"jsonrpc": "2.0", "method": "x"}))
        loop.stop()

        stats = await loop.run()

        assert stats.reason == "stopped"
        assert stats.frames == 0
        writer.write.assert_not_called()

    @pytest.mark.asyncio
    async def test_multibyte_content_length(self) -> None:
        """Re-framed payloads count UTF-8 bytes."""
        loop, writer = _loop(frame_bytes(COMPLETION_RESPONSE))

        await loop.run()

        output = written(writer)
        header, _, body = output.partition(b"\r\n\r\n")
        assert header == f"Content-Length: {len(body)}".encode()
        assert len(body) > len(body.decode("utf-8"))


class TestProxySession:
    """Tests for ProxySession."""

    @pytest.mark.asyncio
    async def test_both_directions_forwarded(self) -> None:
        """Each side's frames reach the other side."""
        hover_request = frame_bytes({"jsonrpc": "2.0", "id": 3, "method": "textDocument/completion"})
        client = StreamPair(make_reader(hover_request), make_writer(), "editor")
        backend = StreamPair(make_reader(frame_bytes(COMPLETION_RESPONSE)), make_writer(), "backend")

        session = ProxySession(client, backend, build_default_pipeline(Config()), drain_timeout=0.5)
        stats = await session.run()

        assert written(backend.writer) == hover_request
        payload = json.loads(decode_frame(written(client.writer)).text)
        assert payload["result"][0]["insertText"] == "foo($1)"
        assert stats[Direction.CLIENT_TO_SERVER].frames == 1
        assert stats[Direction.SERVER_TO_CLIENT].modified_frames == 1
        backend.writer.close.assert_called_once()

    @pytest.mark.asyncio
    async def test_stuck_direction_cancelled_after_drain_timeout(self) -> None:
        """The surviving loop is cancelled if it does not finish in time."""
        client = StreamPair(make_reader(b""), make_writer(), "editor")
        backend = StreamPair(make_reader(b"", eof=False), make_writer(), "backend")

        session = ProxySession(client, backend, TransformPipeline(), drain_timeout=0.05)
        stats = await session.run()

        assert stats[Direction.CLIENT_TO_SERVER].reason == "end of stream"
        assert stats[Direction.SERVER_TO_CLIENT].reason == "cancelled"

    @pytest.mark.asyncio
    async def test_stop_ends_session(self) -> None:
        """stop() winds down loops waiting on idle streams."""
        client = StreamPair(make_reader(encode_frame("{}"), eof=False), make_writer(), "editor")
        backend = StreamPair(make_reader(b"", eof=False), make_writer(), "backend")
        session = ProxySession(client, backend, TransformPipeline(), drain_timeout=0.05)

        session.stop()
        stats = await session.run()

        assert all(s.reason in ("stopped", "cancelled") for s in stats.values())

    @pytest.mark.asyncio
    async def test_stop_while_both_directions_idle(self) -> None:
        """stop() during blocked reads closes the backend and ends the session."""
        client = StreamPair(make_reader(b"", eof=False), make_writer(), "editor")
        backend = StreamPair(make_reader(b"", eof=False), make_writer(), "backend")
        # A closed socket delivers end of stream to its own reader
        backend.writer.close.side_effect = backend.reader.feed_eof
        session = ProxySession(client, backend, TransformPipeline(), drain_timeout=0.05)

        task = asyncio.create_task(session.run())
        await asyncio.sleep(0.01)
        assert not task.done()

        session.stop()
        done, _ = await asyncio.wait({task}, timeout=1.0)

        assert task in done
        stats = task.result()
        assert stats[Direction.SERVER_TO_CLIENT].reason == "end of stream"
        assert stats[Direction.CLIENT_TO_SERVER].reason == "cancelled"
        backend.writer.close.assert_called_once()
