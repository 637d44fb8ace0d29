"""Fenced code block handling for Markdown documentation.

A fence opens on a line starting with three backticks (optionally
followed by a language label) and closes on the next such line. All
functions here are line based and leave text outside fences alone
unless stated otherwise.
"""

from __future__ import annotations

import re
from collections.abc import Callable

FENCE = "```"
TAB_WIDTH = 4

_INLINE_BACKTICKS = re.compile(r"(?<!`)`([^`]+)`(?!`)")


def _is_fence_line(line: str) -> bool:
    return line.startswith(FENCE)


def _is_blank(line: str) -> bool:
    return not line.strip()


def _expand_indent(line: str) -> str:
    body = line.lstrip(" \t")
    indent = line[: len(line) - len(body)]
    return indent.expandtabs(TAB_WIDTH) + body


def strip_inline_backticks(line: str) -> str:
    """Remove single-backtick wrapping around inline tokens."""
    return _INLINE_BACKTICKS.sub(r"\1", line)


def dedent_lines(lines: list[str]) -> list[str]:
    """Expand leading tabs, strip the common indent and trailing spaces.

    Blank lines become empty strings and do not take part in the
    common-indent computation.
    """
    expanded = [_expand_indent(line).rstrip() for line in lines]
    indents = [len(line) - len(line.lstrip(" ")) for line in expanded if line]
    common = min(indents, default=0)
    return [line[common:] if line else "" for line in expanded]


def _trim_blank_edges(lines: list[str]) -> list[str]:
    start = 0
    end = len(lines)
    while start < end and _is_blank(lines[start]):
        start += 1
    while end > start and _is_blank(lines[end - 1]):
        end -= 1
    return lines[start:end]


def looks_alternating(lines: list[str]) -> bool:
    """Detect the blank/non-blank interleaving some backends emit.

    True when there is at least one blank line, no two blank lines are
    adjacent, and the blank count is within one of the non-blank count.
    """
    blanks = sum(1 for line in lines if _is_blank(line))
    non_blanks = len(lines) - blanks
    if blanks == 0:
        return False
    for previous, current in zip(lines, lines[1:]):
        if _is_blank(previous) and _is_blank(current):
            return False
    return abs(blanks - non_blanks) <= 1


def sanitize_fence_body(lines: list[str], label: str, language: str) -> list[str]:
    """Clean the lines between an opening and closing fence."""
    lines = _trim_blank_edges(dedent_lines(lines))

    if label == language.lower():
        lines = [strip_inline_backticks(line) for line in lines]

    if looks_alternating(lines):
        return [line for line in lines if not _is_blank(line)]

    collapsed: list[str] = []
    for line in lines:
        if _is_blank(line) and collapsed and _is_blank(collapsed[-1]):
            continue
        collapsed.append(line)

    # Collapsing a double blank can leave an interleaving behind
    if looks_alternating(collapsed):
        return [line for line in collapsed if not _is_blank(line)]
    return collapsed


def fence_code(code: str, label: str, language: str) -> str:
    """Wrap a code snippet in a fence, normalizing its body.

    Returns an empty string for blank code.
    """
    if not code.strip():
        return ""
    lines = code.replace("\r\n", "\n").replace("\r", "\n").split("\n")
    body = "\n".join(sanitize_fence_body(lines, label.strip().lower(), language))
    return f"{FENCE}{label.strip()}\n{body}\n{FENCE}"


def sanitize_fences(text: str, language: str) -> str:
    """Sanitize every fenced region in the text.

    Line endings are normalized to LF. An unterminated fence is left as is.
    """
    if FENCE not in text:
        return text

    lines = text.replace("\r\n", "\n").replace("\r", "\n").split("\n")
    out: list[str] = []
    i = 0
    while i < len(lines):
        line = lines[i]
        if not _is_fence_line(line):
            out.append(line)
            i += 1
            continue

        close = next(
            (j for j in range(i + 1, len(lines)) if _is_fence_line(lines[j])),
            None,
        )
        if close is None:
            out.extend(lines[i:])
            break

        label = line[len(FENCE) :].strip().lower()
        out.append(line.rstrip())
        out.extend(sanitize_fence_body(lines[i + 1 : close], label, language))
        out.append(lines[close].rstrip())
        i = close + 1

    return "\n".join(out)


def collapse_blanks_outside_fences(text: str) -> str:
    """Collapse blank-line runs outside fences and drop trailing blanks."""
    lines = text.replace("\r\n", "\n").replace("\r", "\n").split("\n")
    out: list[str] = []
    in_fence = False
    last_blank = False

    for line in lines:
        if _is_fence_line(line):
            out.append(line)
            in_fence = not in_fence
            last_blank = False
        elif in_fence:
            out.append(line)
        elif _is_blank(line):
            if not last_blank:
                out.append("")
            last_blank = True
        else:
            out.append(line)
            last_blank = False

    if out and out[-1] == "":
        out.pop()
    return "\n".join(out).rstrip()


def replace_outside_fences(text: str, transform: Callable[[str], str]) -> str:
    """Apply `transform` to each run of text lying outside fences.

    Fence lines and fence bodies are passed through unchanged.
    """
    if not text:
        return text

    lines = text.replace("\r\n", "\n").replace("\r", "\n").split("\n")
    pieces: list[str] = []
    chunk: list[str] = []
    in_fence = False

    def flush() -> None:
        if chunk:
            pieces.append(transform("\n".join(chunk)))
            chunk.clear()

    for line in lines:
        if _is_fence_line(line):
            flush()
            in_fence = not in_fence
            pieces.append(line)
        elif in_fence:
            pieces.append(line)
        else:
            chunk.append(line)
    flush()

    return "\n".join(pieces)
