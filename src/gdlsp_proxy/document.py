"""Tagged JSON document tree with safe optional-field access.

Payloads are parsed once into a `Node` and then probed by transforms
without ever raising on an unexpected shape: every accessor returns
None when the value is missing or has the wrong kind.

Example:
    >>> node = Node.parse('{"result": {"items": [{"label": "foo"}]}}')
    >>> node.get("result").get_list("items")[0].get_str("label")
    'foo'
    >>> node.get("result").get_str("missing") is None
    True
"""

from __future__ import annotations

import copy
import json
from enum import Enum
from typing import Any


class DocumentError(ValueError):
    """Payload text is not a valid JSON document."""


class NodeKind(Enum):
    """Kind tag of a document node."""

    OBJECT = "object"
    ARRAY = "array"
    STRING = "string"
    NUMBER = "number"
    BOOL = "bool"
    NULL = "null"


def _kind_of(value: Any) -> NodeKind:
    # bool is a subclass of int, so it has to be checked first
    if isinstance(value, bool):
        return NodeKind.BOOL
    if isinstance(value, dict):
        return NodeKind.OBJECT
    if isinstance(value, list):
        return NodeKind.ARRAY
    if isinstance(value, str):
        return NodeKind.STRING
    if isinstance(value, (int, float)):
        return NodeKind.NUMBER
    if value is None:
        return NodeKind.NULL
    raise DocumentError(f"Unsupported value type: {type(value).__name__}")


def _unwrap(value: Any) -> Any:
    return value.value if isinstance(value, Node) else value


class Node:
    """A view over one JSON value.

    Children returned by `get`/`at`/`as_list` share storage with their
    parent, so `set` on a child updates the whole tree. Work on a `copy()`
    when the original must stay intact.
    """

    __slots__ = ("_value", "_kind")

    def __init__(self, value: Any = None) -> None:
        self._value = _unwrap(value)
        self._kind = _kind_of(self._value)

    @classmethod
    def parse(cls, text: str | bytes) -> Node:
        """Parse JSON text into a node.

        Raises:
            DocumentError: If the text is not valid JSON.
        """
        try:
            return cls(json.loads(text))
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise DocumentError(f"Invalid JSON document: {e}") from e

    @property
    def kind(self) -> NodeKind:
        return self._kind

    @property
    def value(self) -> Any:
        """The underlying Python value (dict, list, str, int, float, bool or None)."""
        return self._value

    def is_object(self) -> bool:
        return self._kind is NodeKind.OBJECT

    def is_array(self) -> bool:
        return self._kind is NodeKind.ARRAY

    def is_string(self) -> bool:
        return self._kind is NodeKind.STRING

    # === Safe accessors ===

    def has(self, key: str) -> bool:
        return self._kind is NodeKind.OBJECT and key in self._value

    def get(self, key: str) -> Node | None:
        """Return the child under `key`, or None if absent or not an object."""
        if not self.has(key):
            return None
        return Node(self._value[key])

    def at(self, index: int) -> Node | None:
        if self._kind is not NodeKind.ARRAY:
            return None
        if not -len(self._value) <= index < len(self._value):
            return None
        return Node(self._value[index])

    def keys(self) -> list[str]:
        return list(self._value) if self._kind is NodeKind.OBJECT else []

    def as_str(self) -> str | None:
        return self._value if self._kind is NodeKind.STRING else None

    def as_int(self) -> int | None:
        if self._kind is NodeKind.NUMBER and isinstance(self._value, int):
            return self._value
        if self._kind is NodeKind.NUMBER and float(self._value).is_integer():
            return int(self._value)
        return None

    def as_bool(self) -> bool | None:
        return self._value if self._kind is NodeKind.BOOL else None

    def as_list(self) -> list[Node] | None:
        if self._kind is not NodeKind.ARRAY:
            return None
        return [Node(item) for item in self._value]

    def get_str(self, key: str) -> str | None:
        child = self.get(key)
        return child.as_str() if child is not None else None

    def get_int(self, key: str) -> int | None:
        child = self.get(key)
        return child.as_int() if child is not None else None

    def get_list(self, key: str) -> list[Node] | None:
        child = self.get(key)
        return child.as_list() if child is not None else None

    # === Mutation ===

    def set(self, key: str, value: Any) -> None:
        """Set `key` on an object node.

        Raises:
            DocumentError: If this node is not an object.
        """
        if self._kind is not NodeKind.OBJECT:
            raise DocumentError(f"Cannot set {key!r} on a {self._kind.value} node")
        raw = _unwrap(value)
        _kind_of(raw)
        self._value[key] = raw

    def copy(self) -> Node:
        """Deep copy of this node and everything below it."""
        return Node(copy.deepcopy(self._value))

    def to_json(self) -> str:
        """Serialize compactly, keeping key order and non-ASCII text."""
        return json.dumps(self._value, ensure_ascii=False, separators=(",", ":"))

    def __eq__(self, other: object) -> bool:
        if isinstance(other, Node):
            return self._kind is other._kind and self._value == other._value
        return NotImplemented

    def __repr__(self) -> str:
        return f"Node({self._kind.value}: {self.to_json()[:80]})"
