from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict

from .document import Break, Document, Paragraph, Text
from .models import AnnotationSpan, StructuredPosition

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class OffsetMap:
    """
    Correspondence between flat-text offsets and document positions for one
    document snapshot. Build a fresh map after every edit.

    ``chars`` holds one entry per character and hard break. ``boundaries``
    holds the synthetic newline between paragraphs, mapped to the position
    of the paragraph that follows it; it never stands for a character.
    """

    chars: Dict[int, int] = field(default_factory=dict)
    boundaries: Dict[int, int] = field(default_factory=dict)
    reverse: Dict[int, int] = field(default_factory=dict)
    length: int = 0

    def to_structured(self, offset: int) -> StructuredPosition | None:
        position = self.chars.get(offset)
        if position is None:
            position = self.boundaries.get(offset)
        return None if position is None else StructuredPosition(position)

    def char_position(self, offset: int) -> StructuredPosition | None:
        position = self.chars.get(offset)
        return None if position is None else StructuredPosition(position)

    def to_flat(self, position: int) -> int | None:
        return self.reverse.get(position)

    def span_range(self, span: AnnotationSpan) -> tuple[int, int] | None:
        """Document range covering ``span``, or None when an endpoint is unmapped."""
        start = self.char_position(span.start)
        last = self.char_position(span.end - 1)
        if start is None or last is None or last < start:
            logger.warning(
                "No document position for span [%d, %d) %r; skipping",
                span.start,
                span.end,
                span.text,
            )
            return None
        return start, last + 1


def build_offset_map(document: Document) -> OffsetMap:
    """Walk ``document`` once and record where each flat offset lives."""
    offset_map = OffsetMap()
    cursor = 0
    first_paragraph = True

    for node, pos in document.descendants():
        if isinstance(node, Paragraph):
            if not first_paragraph:
                offset_map.boundaries[cursor] = pos
                cursor += 1
            first_paragraph = False
            # Content start, so an empty paragraph still maps back.
            offset_map.reverse.setdefault(pos + 1, cursor)
        elif isinstance(node, Text):
            for index in range(len(node.text)):
                offset_map.chars[cursor + index] = pos + index
                offset_map.reverse[pos + index] = cursor + index
            cursor += len(node.text)
            offset_map.reverse.setdefault(pos + len(node.text), cursor)
        elif isinstance(node, Break):
            offset_map.chars[cursor] = pos
            offset_map.reverse[pos] = cursor
            cursor += 1
            offset_map.reverse.setdefault(pos + 1, cursor)
        else:
            raise TypeError(f"Unexpected node {node!r}")

    offset_map.length = cursor
    return offset_map
