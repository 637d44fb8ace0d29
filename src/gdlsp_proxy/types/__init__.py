"""LSP type definitions used by the transforms."""

from gdlsp_proxy.types.lsp import (
    CompletionItemKind,
    InsertTextFormat,
    MarkedString,
    MarkupContent,
    MarkupKind,
)

__all__ = [
    "CompletionItemKind",
    "InsertTextFormat",
    "MarkedString",
    "MarkupContent",
    "MarkupKind",
]
