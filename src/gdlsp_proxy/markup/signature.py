"""Detection of declaration lines embedded at the head of documentation."""

from __future__ import annotations

import re

NATIVE_PREFIX = "<Native> "

_DECLARATION_PREFIXES = (
    "func ",
    "static func ",
    "const ",
    "static const ",
    "class ",
    "enum ",
    "signal ",
    "var ",
    "extends ",
)

# A line that opens a markup block is content, not a declaration.
_BLOCK_TAG_LINE = re.compile(
    r"^(?:`|\[)(?:codeblocks|codeblock|gdscript|csharp)(?:[\s=][^`\]]*)?(?:`|\])",
    re.IGNORECASE,
)


def is_signature(line: str) -> bool:
    """Return True if a single trimmed line looks like a declaration.

    Example:
        >>> is_signature("func foo(x: int) -> void")
        True
        >>> is_signature("Returns the node's name.")
        False
    """
    if _BLOCK_TAG_LINE.match(line):
        return False

    cleaned = line[len(NATIVE_PREFIX) :] if line.startswith(NATIVE_PREFIX) else line

    if cleaned.startswith(_DECLARATION_PREFIXES):
        return True
    if cleaned.startswith("@") and ("func " in cleaned or ":" in cleaned):
        return True
    if "(" in cleaned and ")" in cleaned and "->" in cleaned:
        return True
    if ":" in cleaned and "=" in cleaned and not cleaned.startswith("func"):
        return True
    return False


def extract_signature(text: str) -> tuple[str | None, str]:
    """Split a leading declaration line off documentation text.

    Only the first non-blank line is inspected. When it is a declaration
    it is returned trimmed (with any `<Native> ` prefix kept) along with
    the remaining lines, trimmed. Otherwise the text comes back untouched.

    Example:
        >>> extract_signature("func foo(x: int) -> void\\nDoes a thing.")
        ('func foo(x: int) -> void', 'Does a thing.')
        >>> extract_signature("Just a description.")
        (None, 'Just a description.')
    """
    if not text or not text.strip():
        return None, text

    lines = text.strip().replace("\r\n", "\n").split("\n")
    first = lines[0].strip()

    if not is_signature(first):
        return None, text

    remaining = "\n".join(lines[1:]).strip()
    return first, remaining
