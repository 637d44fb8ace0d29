"""Transform pipeline composition."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from gdlsp_proxy.logging import TRACE, get_logger
from gdlsp_proxy.message import Message
from gdlsp_proxy.transforms.base import MessageTransform

if TYPE_CHECKING:
    from gdlsp_proxy.config import Config


class TransformPipeline:
    """Applies registered transforms to each message, highest priority first.

    Transforms with equal priority run in registration order. A transform
    that raises is logged and skipped; the message continues with the
    last value produced before the failure.
    """

    def __init__(
        self,
        transforms: list[MessageTransform] | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self.log = logger or get_logger("pipeline")
        self._transforms: list[MessageTransform] = []
        for transform in transforms or []:
            self.register(transform)

    @property
    def transforms(self) -> tuple[MessageTransform, ...]:
        return tuple(self._transforms)

    def __len__(self) -> int:
        return len(self._transforms)

    def register(self, transform: MessageTransform) -> None:
        """Add a transform and re-sort by descending priority."""
        self._transforms.append(transform)
        # list.sort is stable, so equal priorities keep registration order
        self._transforms.sort(key=lambda t: t.priority, reverse=True)
        self.log.info("Registered transform: %s (priority %d)", transform.name, transform.priority)

    def process(self, message: Message) -> Message:
        """Run the message through every eligible transform."""
        current = message

        for transform in self._transforms:
            try:
                if not transform.should_apply(current):
                    continue
                result = transform.apply(current)
            except Exception:
                self.log.exception("Transform %s failed; keeping last good message", transform.name)
                continue

            if result is not current:
                self.log.debug("%s rewrote %s message", transform.name, current.direction.value)
                if self.log.isEnabledFor(TRACE):
                    self.log.log(TRACE, "%s output: %s", transform.name, result.payload.to_json())
            current = result

        return current


def build_default_pipeline(
    config: Config,
    logger: logging.Logger | None = None,
) -> TransformPipeline:
    """Pipeline with the transforms enabled in configuration."""
    from gdlsp_proxy.transforms.completion import CompletionSnippetTransform
    from gdlsp_proxy.transforms.documentation import DocumentationTransform

    pipeline = TransformPipeline(logger=logger)
    if config.transforms.completion_snippets:
        pipeline.register(CompletionSnippetTransform())
    if config.transforms.documentation:
        pipeline.register(DocumentationTransform(language=config.language))
    return pipeline
