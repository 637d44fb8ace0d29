"""Documentation normalization engine.

Turns the backend's documentation text into Markdown an editor can
render: tag markup becomes Markdown, code fences are cleaned up and
blank-line noise outside fences is collapsed.
"""

from __future__ import annotations

from gdlsp_proxy.markup.bbcode import contains_markup, convert_markup
from gdlsp_proxy.markup.fences import (
    collapse_blanks_outside_fences,
    fence_code,
    replace_outside_fences,
    sanitize_fences,
)
from gdlsp_proxy.markup.signature import extract_signature, is_signature

DEFAULT_LANGUAGE = "gdscript"


def finish_markdown(text: str, language: str = DEFAULT_LANGUAGE) -> str:
    """Sanitize fences, clean up blank lines outside them and trim."""
    text = sanitize_fences(text, language)
    text = collapse_blanks_outside_fences(text)
    return text.strip()


def normalize_documentation(text: str, language: str = DEFAULT_LANGUAGE) -> str:
    """Convert markup (when present) and tidy the resulting Markdown.

    Signature extraction is not part of this function; callers decide
    what to do with a leading declaration line.

    Example:
        >>> normalize_documentation("`codeblock lang=gdscript`\\nfunc foo():\\n\\tpass\\n`/codeblock`")
        '```gdscript\\nfunc foo():\\n    pass\\n```'
    """
    if not text:
        return text
    if contains_markup(text):
        text = convert_markup(text, language)
    return finish_markdown(text, language)


__all__ = [
    "DEFAULT_LANGUAGE",
    "collapse_blanks_outside_fences",
    "contains_markup",
    "convert_markup",
    "extract_signature",
    "fence_code",
    "finish_markdown",
    "is_signature",
    "normalize_documentation",
    "replace_outside_fences",
    "sanitize_fences",
]
