"""Message transforms applied by the proxy."""

from gdlsp_proxy.transforms.base import MessageTransform, TransformError
from gdlsp_proxy.transforms.completion import CompletionSnippetTransform
from gdlsp_proxy.transforms.documentation import DocumentationTransform

__all__ = [
    "CompletionSnippetTransform",
    "DocumentationTransform",
    "MessageTransform",
    "TransformError",
]
