"""Base transform class with overridable hooks."""

from __future__ import annotations

import logging

from gdlsp_proxy.logging import get_logger
from gdlsp_proxy.message import Direction, Message


class TransformError(Exception):
    """A transform met a payload it could not rewrite."""


class MessageTransform:
    """Base transform - override `should_apply` and `apply`.

    Transforms must not mutate the message they are given. `apply`
    returns either the same message (nothing to do) or a new one built
    with `Message.with_payload` from a copied, rewritten payload.

    Usage:
        class Uppercase(MessageTransform):
            name = "uppercase"
            priority = 50

            def apply(self, message):
                payload = message.payload.copy()
                ...
                return message.with_payload(payload)
    """

    name: str = "transform"
    priority: int = 0

    def __init__(self, logger: logging.Logger | None = None) -> None:
        self.log = logger or get_logger(f"transforms.{self.name}")

    def should_apply(self, message: Message) -> bool:
        """Default eligibility: responses travelling from server to client."""
        return message.direction is Direction.SERVER_TO_CLIENT and message.is_response()

    def apply(self, message: Message) -> Message:
        return message

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r}, priority={self.priority})"
