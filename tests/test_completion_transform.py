"""Tests for the completion snippet transform."""

from __future__ import annotations

import pytest

from gdlsp_proxy.document import Node
from gdlsp_proxy.transforms.completion import (
    CompletionSnippetTransform,
    completion_items,
    snippet_text,
)
from tests.utils import request, response


@pytest.fixture
def transform() -> CompletionSnippetTransform:
    return CompletionSnippetTransform()


def _items(message) -> list[dict]:
    result = message.payload.value["result"]
    return result["items"] if isinstance(result, dict) and "items" in result else result


class TestSnippetText:
    """Tests for snippet_text."""

    def test_empty_parens(self) -> None:
        """Trailing () gets a cursor placeholder."""
        assert snippet_text("foo()") == "foo($1)"

    def test_open_paren(self) -> None:
        """A single trailing ( is closed around the placeholder."""
        assert snippet_text("foo(") == "foo($1)"

    def test_no_change(self) -> None:
        """Other insert texts are left alone."""
        assert snippet_text("foo") is None
        assert snippet_text("foo((") is None
        assert snippet_text("foo(a)") is None


class TestCompletionItems:
    """Tests for completion result shape detection."""

    def test_array(self) -> None:
        """A bare item array is a completion result."""
        assert len(completion_items(Node([{"label": "a"}, {"label": "b"}]))) == 2

    def test_list_object(self) -> None:
        """An object carrying items is a completion result."""
        result = Node({"isIncomplete": False, "items": [{"label": "a"}]})
        assert len(completion_items(result)) == 1

    def test_single_item(self) -> None:
        """A resolved item counts as a one-item result."""
        assert len(completion_items(Node({"label": "a", "kind": 2}))) == 1

    def test_other_shapes(self) -> None:
        """Hover results and scalars are not completion results."""
        assert completion_items(Node({"contents": "x"})) is None
        assert completion_items(Node("text")) is None
        assert completion_items(None) is None


class TestCompletionSnippetTransform:
    """Tests for CompletionSnippetTransform."""

    def test_method_with_marker_becomes_snippet(self, transform) -> None:
        """A parameterized method gets a snippet insert text."""
        message = response([{"label": "foo(…)", "kind": 2, "insertText": "foo()"}])

        assert transform.should_apply(message)
        result = transform.apply(message)

        assert result.modified
        assert _items(result) == [
            {"label": "foo(…)", "kind": 15, "insertText": "foo($1)", "insertTextFormat": 2}
        ]

    def test_item_without_marker_untouched(self, transform) -> None:
        """Without the parameter marker nothing changes."""
        message = response([{"label": "bar", "kind": 2, "insertText": "bar()"}])

        result = transform.apply(message)

        assert result is message
        assert _items(result) == [{"label": "bar", "kind": 2, "insertText": "bar()"}]

    def test_text_edit_mirrored(self, transform) -> None:
        """The text edit replacement follows the new insert text."""
        edit = {"range": {"start": {"line": 0, "character": 0}, "end": {"line": 0, "character": 2}}}
        message = response(
            {
                "isIncomplete": False,
                "items": [
                    {
                        "label": "emit(…)",
                        "kind": 3,
                        "insertText": "emit(",
                        "textEdit": {**edit, "newText": "emit("},
                    }
                ],
            }
        )

        item = _items(transform.apply(message))[0]

        assert item["insertText"] == "emit($1)"
        assert item["textEdit"]["newText"] == "emit($1)"
        assert item["textEdit"]["range"] == edit["range"]

    def test_detail_paren_makes_item_function_like(self, transform) -> None:
        """An item whose detail has a ( is treated as callable."""
        message = response(
            [{"label": "get(…)", "kind": 10, "detail": "func get(key)", "insertText": "get()"}]
        )

        item = _items(transform.apply(message))[0]

        assert item["insertText"] == "get($1)"
        assert item["kind"] == 15

    def test_field_is_not_function_like(self, transform) -> None:
        """Fields without a callable detail are skipped."""
        message = response([{"label": "size(…)", "kind": 5, "insertText": "size()"}])
        assert transform.apply(message) is message

    def test_label_used_when_insert_text_missing(self, transform) -> None:
        """The label stands in for a missing insert text."""
        message = response([{"label": "foo(…)", "kind": 2}])
        # Label ends with the marker, not (), so there is nothing to rewrite
        assert transform.apply(message) is message

    def test_only_matching_items_change(self, transform) -> None:
        """Unmatched items in the same result stay equal."""
        plain = {"label": "Node", "kind": 7}
        message = response([plain, {"label": "add(…)", "kind": 2, "insertText": "add()"}])

        items = _items(transform.apply(message))

        assert items[0] == plain
        assert items[1]["insertText"] == "add($1)"

    def test_original_message_not_mutated(self, transform) -> None:
        """apply works on a copy of the payload."""
        message = response([{"label": "foo(…)", "kind": 2, "insertText": "foo()"}])
        transform.apply(message)
        assert _items(message)[0]["insertText"] == "foo()"

    def test_requests_not_eligible(self, transform) -> None:
        """Client-to-server traffic is never rewritten."""
        message = request("textDocument/completion", {"items": [{"label": "foo(…)"}]})
        assert not transform.should_apply(message)

    def test_non_completion_response_not_eligible(self, transform) -> None:
        """Hover responses are not completion results."""
        assert not transform.should_apply(response({"contents": "x"}))
