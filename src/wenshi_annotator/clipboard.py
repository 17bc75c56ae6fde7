from __future__ import annotations

import re
from html.parser import HTMLParser

from .codec import strip_markers
from .document import Document

_MARKDOWN_RULES: tuple[tuple[re.Pattern[str], str], ...] = (
    (re.compile(r"\*\*(.+?)\*\*"), r"\1"),
    (re.compile(r"\*(.+?)\*"), r"\1"),
    (re.compile(r"_(.+?)_"), r"\1"),
    (re.compile(r"~~(.+?)~~"), r"\1"),
    (re.compile(r"`(.+?)`"), r"\1"),
    (re.compile(r"\[(.+?)\]\(.+?\)"), r"\1"),
    (re.compile(r"^#+\s+", re.MULTILINE), ""),
    (re.compile(r"^[*\-+]\s+", re.MULTILINE), ""),
    (re.compile(r"^\d+\.\s+", re.MULTILINE), ""),
)
_WHITESPACE_RE = re.compile(r"\s+")


def clean_pasted_text(text: str) -> str:
    """Reduce clipboard text to a single line of plain text without notation."""
    cleaned = strip_markers(text)
    for pattern, replacement in _MARKDOWN_RULES:
        cleaned = pattern.sub(replacement, cleaned)
    cleaned = _strip_tags(cleaned)
    return _WHITESPACE_RE.sub(" ", cleaned).strip()


def copy_text(document: Document, from_: int, to: int) -> str:
    """Plain text placed on the clipboard for a copy or cut."""
    return document.text_between(from_, to, "\n")


class _TagStripper(HTMLParser):
    """Collects character data and drops every tag."""

    def __init__(self) -> None:
        super().__init__()
        self._chunks: list[str] = []

    def handle_data(self, data: str) -> None:
        self._chunks.append(data)

    def get_text(self) -> str:
        return "".join(self._chunks)


def _strip_tags(text: str) -> str:
    parser = _TagStripper()
    parser.feed(text)
    parser.close()
    return parser.get_text()
