"""Normalize documentation in hover, signature help and completion results.

Every documentation value (bare string or `{kind, value}`) comes out as
`{kind: "markdown", value: ...}` with markup converted, fences cleaned up
and a leading declaration line moved to where the editor shows it best:
- completion items: into `detail`
- signature help: dropped (the signature label already shows it)
- hover: re-inserted as a fenced code block above the description
"""

from __future__ import annotations

import logging

from gdlsp_proxy.document import Node
from gdlsp_proxy.markup import (
    DEFAULT_LANGUAGE,
    extract_signature,
    fence_code,
    finish_markdown,
    is_signature,
    normalize_documentation,
)
from gdlsp_proxy.message import Message
from gdlsp_proxy.transforms.base import MessageTransform, TransformError
from gdlsp_proxy.transforms.completion import is_completion_item
from gdlsp_proxy.types.lsp import MarkedString, MarkupContent, MarkupKind


def _preview(text: str, limit: int = 150) -> str:
    return text.replace("\n", "\\n")[:limit]


class DocumentationTransform(MessageTransform):
    """Rewrites documentation payloads into clean Markdown."""

    name = "documentation"
    priority = 200

    def __init__(
        self,
        language: str = DEFAULT_LANGUAGE,
        logger: logging.Logger | None = None,
    ) -> None:
        super().__init__(logger)
        self.language = language

    def should_apply(self, message: Message) -> bool:
        if not super().should_apply(message):
            return False
        result = message.result()
        if result is None:
            return False
        if result.is_array():
            return True
        return result.is_object() and (
            result.has("items")
            or result.has("signatures")
            or result.has("contents")
            or is_completion_item(result)
        )

    def apply(self, message: Message) -> Message:
        try:
            payload = message.payload.copy()
            self._rewrite_result(payload.get("result"))
        except Exception:
            self.log.exception("Documentation rewrite failed; forwarding original")
            return message

        if payload == message.payload:
            return message
        return message.with_payload(payload)

    # === Dispatch ===

    def _rewrite_result(self, result: Node | None) -> None:
        if result is None:
            raise TransformError("Response has no result")

        if result.is_array():
            for item in result.as_list() or []:
                if item.is_object():
                    self._rewrite_completion_item(item)
            return

        items = result.get_list("items")
        if items is not None:
            for item in items:
                if item.is_object():
                    self._rewrite_completion_item(item)
        elif result.has("signatures"):
            self._rewrite_signature_help(result)
        elif result.has("contents"):
            self._rewrite_hover(result)
        elif is_completion_item(result):
            self._rewrite_completion_item(result)

    # === Documentation values ===

    def _doc_text(self, owner: Node, key: str = "documentation") -> str | None:
        """Text of a string or `{kind, value}` documentation field."""
        doc = owner.get(key)
        if doc is None:
            return None
        if doc.is_string():
            return doc.as_str()
        if doc.is_object():
            return doc.get_str("value")
        return None

    def _store_doc(self, owner: Node, text: str, key: str = "documentation") -> None:
        doc = owner.get(key)
        if doc is not None and doc.is_object():
            # Keep any extra fields the server attached
            doc.set("kind", MarkupKind.MARKDOWN.value)
            doc.set("value", text)
        else:
            owner.set(key, MarkupContent.markdown(text))

    def _already_rewritten(self, item: Node) -> bool:
        """Markdown documentation next to a declaration detail needs no extraction."""
        doc = item.get("documentation")
        detail = item.get_str("detail")
        return (
            doc is not None
            and doc.is_object()
            and doc.get_str("kind") == MarkupKind.MARKDOWN.value
            and detail is not None
            and is_signature(detail)
        )

    # === Result shapes ===

    def _rewrite_completion_item(self, item: Node) -> None:
        label = item.get_str("label") or "unknown"
        text = self._doc_text(item)
        if not text or not text.strip():
            return

        self.log.debug("[%s] original doc: '%s'", label, _preview(text, 200))
        if self._already_rewritten(item):
            self._store_doc(item, normalize_documentation(text, self.language))
            return

        signature, text = extract_signature(text)
        if signature is not None:
            item.set("detail", signature)
            self.log.debug("[%s] set detail to: '%s'", label, signature)

        self._store_doc(item, normalize_documentation(text, self.language))

    def _rewrite_signature_help(self, result: Node) -> None:
        signatures = result.get_list("signatures")
        if signatures is None:
            raise TransformError("signatures is not an array")

        for index, sig in enumerate(signatures):
            if not sig.is_object():
                continue
            label = sig.get_str("label") or f"sig[{index}]"

            text = self._doc_text(sig)
            if text and text.strip():
                signature, text = extract_signature(text)
                if signature is not None:
                    self.log.debug("[SIG] %s - removed embedded signature: '%s'", label, signature)
                self._store_doc(sig, normalize_documentation(text, self.language))

            for param in sig.get_list("parameters") or []:
                if not param.is_object():
                    continue
                param_text = self._doc_text(param)
                if param_text and param_text.strip():
                    self._store_doc(param, normalize_documentation(param_text, self.language))

    def _rewrite_hover(self, result: Node) -> None:
        contents = result.get("contents")

        if contents.is_array():
            combined = self._combine_hover_parts(contents.as_list() or [])
            result.set("contents", MarkupContent.markdown(combined))
            return

        if MarkedString.parse(contents.value) is not None:
            # A lone {language, value} entry renders like a one-item array
            result.set("contents", MarkupContent.markdown(self._combine_hover_parts([contents])))
            return

        text = self._doc_text(result, "contents")
        if not text or not text.strip():
            return
        self.log.debug("[HOVER] contents: '%s'", _preview(text))
        self._store_doc(result, self._hover_markdown(text), "contents")

    def _hover_markdown(self, text: str) -> str:
        signature, text = extract_signature(text)
        if signature is not None:
            self.log.debug("[HOVER] extracted signature: '%s'", signature)
            text = f"```{self.language}\n{signature}\n```\n\n{text}"
        return normalize_documentation(text, self.language)

    def _combine_hover_parts(self, parts: list[Node]) -> str:
        rendered: list[str] = []
        for part in parts:
            marked = MarkedString.parse(part.value)
            if marked is not None:
                rendered.append(fence_code(marked.value, marked.language.strip(), self.language))
                continue

            text = part.as_str() if part.is_string() else part.get_str("value")
            if text and text.strip():
                rendered.append(self._hover_markdown(text))

        combined = "\n\n".join(piece for piece in rendered if piece)
        return finish_markdown(combined, self.language)
