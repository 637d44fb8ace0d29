"""LSP constants and value shapes produced or recognized by the transforms."""

from __future__ import annotations

from enum import Enum, IntEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, ValidationError


class LspModel(BaseModel):
    """Base model for LSP values with populate_by_name enabled."""

    model_config = ConfigDict(populate_by_name=True)

    def to_value(self) -> dict[str, Any]:
        """Plain JSON-ready dict using wire field names."""
        return self.model_dump(by_alias=True, exclude_none=True, mode="json")


class CompletionItemKind(IntEnum):
    """Subset of completion item kinds the proxy inspects or emits."""

    TEXT = 1
    METHOD = 2
    FUNCTION = 3
    CONSTRUCTOR = 4
    FIELD = 5
    VARIABLE = 6
    SNIPPET = 15


class InsertTextFormat(IntEnum):
    PLAIN_TEXT = 1
    SNIPPET = 2


class MarkupKind(str, Enum):
    PLAINTEXT = "plaintext"
    MARKDOWN = "markdown"


class MarkupContent(LspModel):
    """Documentation value in `{kind, value}` form."""

    kind: MarkupKind = MarkupKind.MARKDOWN
    value: str

    @classmethod
    def markdown(cls, value: str) -> dict[str, Any]:
        return cls(kind=MarkupKind.MARKDOWN, value=value).to_value()


class MarkedString(LspModel):
    """Deprecated hover entry in `{language, value}` form."""

    language: str
    value: str

    @classmethod
    def parse(cls, raw: Any) -> MarkedString | None:
        """Validate a raw hover entry, returning None if it is not this shape."""
        if not isinstance(raw, dict):
            return None
        try:
            return cls.model_validate(raw)
        except ValidationError:
            return None

