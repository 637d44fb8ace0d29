"""Proxy transport - bidirectional forwarding between editor and backend."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field

from gdlsp_proxy.document import DocumentError
from gdlsp_proxy.logging import TRACE, get_logger
from gdlsp_proxy.message import Direction, Message
from gdlsp_proxy.pipeline import TransformPipeline
from gdlsp_proxy.transport.errors import FrameError, TransportError
from gdlsp_proxy.transport.framing import (
    DEFAULT_MAX_MESSAGE_SIZE,
    Frame,
    read_frame,
    write_frame,
    write_raw,
)
from gdlsp_proxy.transport.stdio import StreamPair


@dataclass
class LoopStats:
    """Counters kept by one forwarding loop."""

    frames: int = 0
    modified_frames: int = 0
    reason: str = "running"


class ForwardingLoop:
    """Copies frames from one stream to another, one direction only.

    Each frame is parsed, passed through the pipeline and written out.
    Frames the pipeline leaves alone are forwarded byte-for-byte with
    their original headers; rewritten frames get a fresh Content-Length.
    A frame whose payload is not valid JSON is forwarded verbatim.

    The loop ends on end of stream, a malformed frame, a transport
    failure, or after `stop()` once the in-flight frame is written.
    """

    def __init__(
        self,
        reader: asyncio.StreamReader,
        writer: asyncio.StreamWriter,
        direction: Direction,
        pipeline: TransformPipeline,
        logger: logging.Logger | None = None,
        max_message_size: int = DEFAULT_MAX_MESSAGE_SIZE,
    ) -> None:
        self.reader = reader
        self.writer = writer
        self.direction = direction
        self.pipeline = pipeline
        self.max_message_size = max_message_size
        self.log = logger or get_logger("proxy")
        self.stats = LoopStats()
        self._stopping = False

    @property
    def frames(self) -> int:
        return self.stats.frames

    @property
    def modified_frames(self) -> int:
        return self.stats.modified_frames

    def stop(self) -> None:
        """Request a stop after the frame currently being handled."""
        self._stopping = True

    async def run(self) -> LoopStats:
        """Forward frames until the source ends or a stop is requested."""
        name = self.direction.value
        self.log.info("[%s] forwarding started", name)

        while not self._stopping:
            try:
                frame = await read_frame(self.reader, max_message_size=self.max_message_size)
            except FrameError as e:
                self.log.error("[%s] malformed frame, closing direction: %s", name, e)
                self.stats.reason = "frame error"
                break
            except TransportError as e:
                self.log.error("[%s] read failed: %s", name, e)
                self.stats.reason = "transport error"
                break

            if frame is None:
                self.log.info("[%s] end of stream", name)
                self.stats.reason = "end of stream"
                break

            try:
                await self._forward(frame)
            except TransportError as e:
                self.log.error("[%s] write failed: %s", name, e)
                self.stats.reason = "transport error"
                break
        else:
            self.stats.reason = "stopped"

        self.log.info(
            "[%s] forwarding ended (%s): %d frames, %d modified",
            name,
            self.stats.reason,
            self.stats.frames,
            self.stats.modified_frames,
        )
        return self.stats

    async def _forward(self, frame: Frame) -> None:
        self.stats.frames += 1
        name = self.direction.value

        try:
            message = Message.from_frame(frame, self.direction)
        except (DocumentError, FrameError) as e:
            self.log.warning("[%s] payload is not JSON, forwarding as-is: %s", name, e)
            await write_raw(self.writer, frame.raw)
            return

        if self.log.isEnabledFor(TRACE):
            self.log.log(TRACE, "[%s] in: %s", name, frame.text)

        result = self.pipeline.process(message)

        if result is message:
            await write_raw(self.writer, frame.raw)
            return

        self.stats.modified_frames += 1
        body = result.payload.to_json()
        if self.log.isEnabledFor(TRACE):
            self.log.log(TRACE, "[%s] out: %s", name, body)
        await write_frame(self.writer, body)


@dataclass
class ProxySession:
    """Bidirectional proxy between the editor (stdio) and the backend (TCP).

    Messages flow:
    - Editor -> (stdin) -> Proxy -> (socket) -> Backend
    - Backend -> (socket) -> Proxy -> (stdout) -> Editor

    When either direction finishes, the other is asked to stop and given
    `drain_timeout` seconds before it is cancelled.
    """

    client: StreamPair
    backend: StreamPair
    pipeline: TransformPipeline
    logger: logging.Logger | None = None
    drain_timeout: float = 2.0
    max_message_size: int = DEFAULT_MAX_MESSAGE_SIZE
    _loops: dict[Direction, ForwardingLoop] = field(default_factory=dict, init=False, repr=False)
    _closing: asyncio.Task[None] | None = field(default=None, init=False, repr=False)

    def __post_init__(self) -> None:
        self.log = self.logger or get_logger("proxy")
        self._loops = {
            Direction.CLIENT_TO_SERVER: ForwardingLoop(
                self.client.reader,
                self.backend.writer,
                Direction.CLIENT_TO_SERVER,
                self.pipeline,
                self.log,
                self.max_message_size,
            ),
            Direction.SERVER_TO_CLIENT: ForwardingLoop(
                self.backend.reader,
                self.client.writer,
                Direction.SERVER_TO_CLIENT,
                self.pipeline,
                self.log,
                self.max_message_size,
            ),
        }

    @property
    def loops(self) -> dict[Direction, ForwardingLoop]:
        return dict(self._loops)

    def stop(self) -> None:
        """Ask both directions to stop and close the backend connection.

        Must be called from the event loop thread (signal handlers
        installed with `loop.add_signal_handler` are). Closing the socket
        makes the backend read see end of stream even when both loops are
        idle, so `run()` proceeds to its drain and cancel phase.
        """
        for loop in self._loops.values():
            loop.stop()
        if self._closing is None:
            self.log.info("Stopping session, closing %s", self.backend.name)
            self._closing = asyncio.get_running_loop().create_task(self.backend.close())

    async def run(self) -> dict[Direction, LoopStats]:
        """Run both directions until one ends, then wind down the other."""
        tasks = {
            asyncio.create_task(loop.run(), name=direction.value): direction
            for direction, loop in self._loops.items()
        }

        try:
            done, pending = await asyncio.wait(tasks, return_when=asyncio.FIRST_COMPLETED)
        except asyncio.CancelledError:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            raise

        for task in done:
            self.log.info("Direction %s finished first", tasks[task].value)

        self.stop()
        if self._closing is not None:
            await self._closing

        if pending:
            _, still_pending = await asyncio.wait(pending, timeout=self.drain_timeout)
            for task in still_pending:
                self.log.warning(
                    "Direction %s did not finish within %.1fs, cancelling",
                    tasks[task].value,
                    self.drain_timeout,
                )
                task.cancel()
                self._loops[tasks[task]].stats.reason = "cancelled"
            await asyncio.gather(*still_pending, return_exceptions=True)

        for task in tasks:
            if not task.cancelled() and task.exception() is not None:
                self.log.error(
                    "Direction %s failed",
                    tasks[task].value,
                    exc_info=task.exception(),
                )

        return {direction: loop.stats for direction, loop in self._loops.items()}
