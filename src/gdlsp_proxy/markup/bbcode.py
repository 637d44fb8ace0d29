"""Conversion of the backend's tag markup to Markdown.

The backend marks up class reference documentation with paired tags
such as `b`...`/b` or `codeblock lang=gdscript`...`/codeblock`. Tags are
delimited by backticks in what the server sends; the square-bracket
spelling ([b]...[/b]) of the same tags is accepted as well.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from functools import lru_cache

from gdlsp_proxy.markup.fences import fence_code, replace_outside_fences

_FLAGS = re.IGNORECASE | re.DOTALL

INLINE_TAGS = ("b", "i", "u", "s", "url", "code")
BLOCK_TAGS = ("codeblocks", "codeblock", "gdscript", "csharp")


@dataclass(frozen=True)
class _TagSyntax:
    """Compiled patterns for one tag delimiter style."""

    open: str
    close: str

    def tag(self, body: str) -> str:
        return f"{re.escape(self.open)}{body}{re.escape(self.close)}"

    @property
    def attr(self) -> str:
        # Anything up to the closing delimiter; tags never span lines
        return f"[^{re.escape(self.close)}\\r\\n]"


_SYNTAXES = (_TagSyntax("`", "`"), _TagSyntax("[", "]"))


def _compile_any_tag() -> re.Pattern[str]:
    names = "|".join(BLOCK_TAGS + INLINE_TAGS)
    alternatives = [
        syntax.tag(rf"/?(?:{names})(?:[ \t=]{syntax.attr}*)?") for syntax in _SYNTAXES
    ]
    return re.compile("|".join(alternatives), re.IGNORECASE)


_ANY_TAG = _compile_any_tag()


def contains_markup(text: str) -> bool:
    """True if the text carries any recognized block or inline tag."""
    return bool(text) and _ANY_TAG.search(text) is not None


def _lang_attribute(attrs: str) -> str | None:
    match = re.search(r"lang\s*=\s*\"?([\w#+.-]+)\"?", attrs, re.IGNORECASE)
    return match.group(1) if match else None


def _own_lines(match: re.Match[str], block: str) -> str:
    """Put a replacement block on lines of its own within the matched text."""
    if not block:
        return block
    text = match.string
    if match.start() > 0 and text[match.start() - 1] != "\n":
        block = "\n" + block
    if match.end() < len(text) and text[match.end()] != "\n":
        block += "\n"
    return block


class _Converter:
    """Block and inline conversion for one delimiter style."""

    def __init__(self, syntax: _TagSyntax, language: str) -> None:
        self.language = language
        t, a = syntax.tag, syntax.attr

        self.codeblocks = re.compile(t("codeblocks") + r"(.*?)" + t("/codeblocks"), _FLAGS)
        self.codeblock = re.compile(
            t(rf"codeblock(?:[ \t]+({a}*))?") + r"(.*?)" + t("/codeblock"), _FLAGS
        )
        self.gdscript = re.compile(
            t(rf"gdscript(?:[ \t]+({a}*))?") + r"(.*?)" + t("/gdscript"), _FLAGS
        )
        self.csharp = re.compile(t(rf"csharp(?:[ \t]+{a}*)?") + r".*?" + t("/csharp"), _FLAGS)

        self.inline = [
            (re.compile(t(rf"b(?:[ \t]+{a}*)?") + r"(.*?)" + t("/b"), _FLAGS), r"**\1**"),
            (re.compile(t(rf"i(?:[ \t]+{a}*)?") + r"(.*?)" + t("/i"), _FLAGS), r"*\1*"),
            (re.compile(t(rf"u(?:[ \t]+{a}*)?") + r"(.*?)" + t("/u"), _FLAGS), r"__\1__"),
            (re.compile(t(rf"s(?:[ \t]+{a}*)?") + r"(.*?)" + t("/s"), _FLAGS), r"~~\1~~"),
            (re.compile(t(rf"url=({a}+)") + r"(.*?)" + t("/url"), _FLAGS), r"[\2](\1)"),
            (re.compile(t("url") + r"(.*?)" + t("/url"), _FLAGS), r"[\1](\1)"),
            (re.compile(t(rf"code(?:[ \t]+{a}*)?") + r"(.*?)" + t("/code"), _FLAGS), r"`\1`"),
        ]
        known = "|".join(INLINE_TAGS)
        self.unknown_close = re.compile(
            t(rf"/(?!(?:{known}){re.escape(syntax.close)})\w+"), re.IGNORECASE
        )
        self.leftover_close = re.compile(t(rf"/(?:{known})"), re.IGNORECASE)

    def _fence(self, code: str, label: str) -> str:
        return fence_code(code, label, self.language)

    def _codeblock(self, match: re.Match[str]) -> str:
        label = _lang_attribute(match.group(1) or "") or ""
        return _own_lines(match, self._fence(match.group(2), label))

    def _gdscript(self, match: re.Match[str]) -> str:
        label = _lang_attribute(match.group(1) or "") or self.language
        return _own_lines(match, self._fence(match.group(2), label))

    def _blocks(self, text: str) -> str:
        text = self.codeblock.sub(self._codeblock, text)
        text = self.gdscript.sub(self._gdscript, text)
        return self.csharp.sub("", text)

    def _codeblocks(self, match: re.Match[str]) -> str:
        return _own_lines(match, self._blocks(match.group(1)).strip())

    def convert_blocks(self, text: str) -> str:
        text = self.codeblocks.sub(self._codeblocks, text)
        return self._blocks(text)

    def convert_inline(self, segment: str) -> str:
        segment = self.unknown_close.sub("", segment)
        for pattern, replacement in self.inline:
            segment = pattern.sub(replacement, segment)
        return self.leftover_close.sub("", segment)


@lru_cache(maxsize=8)
def _converters(language: str) -> tuple[_Converter, ...]:
    return tuple(_Converter(syntax, language) for syntax in _SYNTAXES)


def convert_markup(text: str, language: str = "gdscript") -> str:
    """Convert tag markup to Markdown.

    Block tags become fenced code (C# blocks are dropped). Inline tags are
    converted only outside fences so code is never rewritten.

    Example:
        >>> convert_markup("Use `b`carefully`/b`.")
        'Use **carefully**.'
    """
    converters = _converters(language)
    for converter in converters:
        text = converter.convert_blocks(text)
    for converter in converters:
        text = replace_outside_fences(text, converter.convert_inline)
    return text
