"""Per-frame message passed through the transform pipeline."""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum

from gdlsp_proxy.document import Node
from gdlsp_proxy.transport.framing import Frame


class Direction(Enum):
    """Which way a message is travelling through the proxy."""

    CLIENT_TO_SERVER = "client->server"
    SERVER_TO_CLIENT = "server->client"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class Message:
    """A decoded frame plus its routing metadata.

    Created for each frame and discarded once forwarded. Transforms never
    mutate a message; they return a new one via `with_payload`.
    """

    direction: Direction
    payload: Node
    frame: Frame | None = None
    timestamp: datetime = field(default_factory=_utcnow)
    modified: bool = False

    @classmethod
    def from_frame(cls, frame: Frame, direction: Direction) -> Message:
        """Parse a frame's payload.

        Raises:
            DocumentError: If the payload is not valid JSON.
            FrameError: If the payload is not valid UTF-8.
        """
        return cls(direction=direction, payload=Node.parse(frame.text), frame=frame)

    def is_response(self) -> bool:
        """True for JSON-RPC responses (a result or error, and no method)."""
        return (
            self.payload.is_object()
            and not self.payload.has("method")
            and (self.payload.has("result") or self.payload.has("error"))
        )

    def result(self) -> Node | None:
        return self.payload.get("result")

    def with_payload(self, payload: Node) -> Message:
        """Copy of this message carrying a rewritten payload."""
        return dataclasses.replace(self, payload=payload, modified=True)
