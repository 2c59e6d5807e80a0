"""Markdown / HTML stripping applied to every chunk before embedding."""

from __future__ import annotations

import re

from bs4 import BeautifulSoup

# Line-level markers, matched against the lines of the original text only.
_BLOCKQUOTE = re.compile(r"^[ \t]*(?:>[ \t]?)+", re.MULTILINE)
_HEADING = re.compile(r"^[ \t]*(?:#{1,6}(?:[ \t]+|$))+", re.MULTILINE)
_LIST_MARKER = re.compile(r"^[ \t]*(?:(?:[-*+]|\d{1,3}[.)])[ \t]+)+", re.MULTILINE)

_CODE_FENCE = re.compile(r"```[^\n`]*")
_BACKTICKS = re.compile(r"`+")
_IMAGE = re.compile(r"!\[([^\]]*)\]\([^)]*\)")
_LINK = re.compile(r"\[([^\]]*)\]\([^)]*\)")
_BOLD = re.compile(r"(\*\*|__)(.+?)\1", re.DOTALL)
_ITALIC_STAR = re.compile(r"\*(?!\s)(.+?)\*", re.DOTALL)
_ITALIC_UNDERSCORE = re.compile(r"(?<!\w)_(?!\s)(.+?)_(?!\w)", re.DOTALL)
_WHITESPACE = re.compile(r"\s+")


def _strip_line_markers(text: str) -> str:
    text = _BLOCKQUOTE.sub("", text)
    text = _HEADING.sub("", text)
    return _LIST_MARKER.sub("", text)


def _strip_html(text: str) -> str:
    soup = BeautifulSoup(text, "html.parser")
    for tag in soup(["script", "style"]):
        tag.decompose()
    return soup.get_text(" ")


def _strip_inline(text: str) -> str:
    text = _CODE_FENCE.sub(" ", text)
    text = _BACKTICKS.sub("", text)
    if "<" in text:
        text = _strip_html(text)
    text = _IMAGE.sub(r"\1", text)
    text = _LINK.sub(r"\1", text)
    text = _BOLD.sub(r"\2", text)
    text = _ITALIC_STAR.sub(r"\1", text)
    return _ITALIC_UNDERSCORE.sub(r"\1", text)


def sanitize(text: str) -> str:
    """Return *text* with markup removed and whitespace collapsed.

    Strips headings, bold / italic markers, list bullets and numbering,
    blockquote markers, code fences and backticks, and HTML tags (via
    BeautifulSoup, so a bare ``a < b`` comparison is kept).  Links and
    images are reduced to their label.  The result is a single line.

    Line markers are removed once, from the lines of the input, before
    any inline markup is touched; text uncovered by unwrapping emphasis
    or code (``**2024.** was a good year``) is never taken for a marker.  Inline rules then repeat until nothing changes, so nested
    inline markup (``***both***``) is removed too.  The result is stable
    under a second ``sanitize`` unless unwrapped inline markup left a
    line marker at its very start.
    """
    if not text:
        return ""
    current = _strip_line_markers(text)
    while True:
        stripped = _strip_inline(current)
        if stripped == current:
            break
        current = stripped
    return _WHITESPACE.sub(" ", current).strip()
