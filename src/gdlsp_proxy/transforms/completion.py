"""Turn function-like completion items into snippets.

The backend inserts `foo()` for a method that takes arguments, leaving the
cursor after the closing parenthesis. Rewriting the insert text to the
snippet `foo($1)` puts the cursor between the parentheses instead.
"""

from __future__ import annotations

from gdlsp_proxy.document import Node
from gdlsp_proxy.logging import TRACE
from gdlsp_proxy.message import Message
from gdlsp_proxy.transforms.base import MessageTransform
from gdlsp_proxy.types.lsp import CompletionItemKind, InsertTextFormat

# Marker the backend puts in labels of items that take parameters
PARAMETER_MARKER = "(…)"

FUNCTION_LIKE_KINDS = frozenset(
    {CompletionItemKind.METHOD, CompletionItemKind.FUNCTION, CompletionItemKind.VARIABLE}
)


def is_completion_item(node: Node) -> bool:
    """Single completion item: a label plus kind, documentation or detail."""
    return node.has("label") and (
        node.has("kind") or node.has("documentation") or node.has("detail")
    )


def completion_items(result: Node | None) -> list[Node] | None:
    """Items of a completion result, or None if the result is not one.

    Accepts a bare item array, a completion list carrying `items`, or a
    single resolved item.
    """
    if result is None:
        return None
    if result.is_array():
        return result.as_list()
    if result.is_object():
        items = result.get_list("items")
        if items is not None:
            return items
        if is_completion_item(result):
            return [result]
    return None


def is_function_like(item: Node) -> bool:
    if item.get_int("kind") in FUNCTION_LIKE_KINDS:
        return True
    detail = item.get_str("detail")
    return detail is not None and "(" in detail


def snippet_text(insert_text: str) -> str | None:
    """Snippet form of an insert text, or None if it needs no change.

    Example:
        >>> snippet_text("foo()")
        'foo($1)'
        >>> snippet_text("foo(")
        'foo($1)'
        >>> snippet_text("foo") is None
        True
    """
    if insert_text.endswith("()"):
        return insert_text[:-2] + "($1)"
    if insert_text.endswith("(") and not insert_text.endswith("(("):
        return insert_text + "$1)"
    return None


class CompletionSnippetTransform(MessageTransform):
    """Rewrites parameterized function completions into cursor snippets."""

    name = "completion-snippets"
    priority = 100

    def should_apply(self, message: Message) -> bool:
        return super().should_apply(message) and completion_items(message.result()) is not None

    def apply(self, message: Message) -> Message:
        payload = message.payload.copy()
        items = completion_items(payload.get("result")) or []

        changed = 0
        for item in items:
            if item.is_object() and self._rewrite_item(item):
                changed += 1

        if not changed:
            return message

        self.log.debug("Converted %d of %d completion item(s) to snippets", changed, len(items))
        return message.with_payload(payload)

    def _rewrite_item(self, item: Node) -> bool:
        if not is_function_like(item):
            return False

        label = item.get_str("label") or ""
        if PARAMETER_MARKER not in label:
            self.log.log(TRACE, "Skip %r - no parameter marker", label)
            return False

        insert_text = item.get_str("insertText")
        if insert_text is None:
            insert_text = label

        snippet = snippet_text(insert_text)
        if snippet is None:
            return False

        item.set("insertText", snippet)
        text_edit = item.get("textEdit")
        if text_edit is not None and text_edit.is_object():
            text_edit.set("newText", snippet)
        item.set("insertTextFormat", int(InsertTextFormat.SNIPPET))
        item.set("kind", int(CompletionItemKind.SNIPPET))

        self.log.debug("Converted %r -> %r", insert_text, snippet)
        return True
