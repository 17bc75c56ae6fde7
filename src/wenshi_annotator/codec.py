"""
Inline annotation notation: ``text{{count,tags}}``.

Markers are postfix. A marker annotates the ``count`` characters of clean
text emitted immediately before it (one character when ``count`` is
omitted). Tag tokens are either tag codes or their display labels.

Parsing is best effort and never raises: unknown tokens are dropped, a
marker left without tags is removed from the text without creating a span,
and anything that does not look like a complete marker stays literal text.
"""

from __future__ import annotations

import logging
import re
from typing import Iterable, List

from .models import AnnotationSpan, FlatDocument
from .tags import DEFAULT_REGISTRY, TagRegistry

logger = logging.getLogger(__name__)

MARKER_RE = re.compile(r"\{\{(?:([0-9]+),)?((?:[^\W_]|,)*)\}\}")
# Anything shaped like a marker, including bodies the parser would reject.
LOOSE_MARKER_RE = re.compile(r"\{\{[^{}]*\}\}")


def parse(raw_text: str, registry: TagRegistry = DEFAULT_REGISTRY) -> FlatDocument:
    """Split annotated text into clean text and the spans its markers describe."""
    pieces: List[str] = []
    spans: List[AnnotationSpan] = []
    last_index = 0
    prior_length = 0

    for match in MARKER_RE.finditer(raw_text):
        piece = raw_text[last_index : match.start()]
        pieces.append(piece)
        prior_length += len(piece)
        last_index = match.end()

        count_part, body = match.group(1), match.group(2)
        count = int(count_part) if count_part is not None else 1
        tags = _resolve_tokens(body, registry)
        if not tags or count < 1:
            logger.debug("Discarding marker %r at offset %d", match.group(0), match.start())
            continue

        start = max(0, prior_length - count)
        end = prior_length
        if end <= start:
            logger.debug("Marker %r has no preceding text", match.group(0))
            continue
        width = end - start
        spans.append(
            AnnotationSpan(
                start=start,
                end=end,
                text="",
                tags=tuple(tags),
                count=width if width > 1 else None,
            )
        )

    pieces.append(raw_text[last_index:])
    clean_text = "".join(pieces)
    # Span text is filled in once the clean text is assembled.
    for span in spans:
        span.text = clean_text[span.start : span.end]
    return FlatDocument(clean_text=clean_text, spans=spans)


def _resolve_tokens(body: str, registry: TagRegistry) -> list[str]:
    tags: list[str] = []
    for token in body.split(","):
        token = token.strip()
        if not token:
            continue
        code = registry.resolve(token)
        if code is None:
            logger.debug("Dropping unknown tag token %r", token)
            continue
        if code not in tags:
            tags.append(code)
    return tags


def format_marker(span: AnnotationSpan, registry: TagRegistry = DEFAULT_REGISTRY) -> str:
    labels = registry.labels_for(span.tags)
    if span.width > 1:
        return f"{{{{{span.width},{labels}}}}}"
    return f"{{{{{labels}}}}}"


def serialize(
    clean_text: str,
    spans: Iterable[AnnotationSpan],
    registry: TagRegistry = DEFAULT_REGISTRY,
) -> str:
    """Insert a postfix marker after every span, working from the end backwards."""
    result = clean_text
    # Descending end keeps earlier offsets valid while splicing.
    for span in sorted(spans, key=lambda item: item.end, reverse=True):
        if not span.tags:
            continue
        if span.start < 0 or span.end > len(clean_text) or span.start >= span.end:
            logger.warning(
                "Skipping out-of-bounds span [%d, %d) for text of length %d",
                span.start,
                span.end,
                len(clean_text),
            )
            continue
        marker = format_marker(span, registry)
        result = result[: span.end] + marker + result[span.end :]
    return result


def normalize_spans(clean_text: str, spans: Iterable[AnnotationSpan]) -> List[AnnotationSpan]:
    """
    Reduce spans to the disjoint-or-identical form the editor can display.

    Spans are visited in order. A span over exactly the same range as an
    accepted one merges its tags into it. A span that nests inside, contains,
    or partially overlaps an accepted span is dropped, so the earlier marker
    wins. Out-of-bounds spans are dropped.
    """
    accepted: List[AnnotationSpan] = []
    by_range: dict[tuple[int, int], AnnotationSpan] = {}

    for span in spans:
        if span.start < 0 or span.end > len(clean_text) or span.start >= span.end:
            logger.warning("Dropping out-of-bounds span [%d, %d)", span.start, span.end)
            continue
        existing = by_range.get((span.start, span.end))
        if existing is not None:
            existing.tags = tuple(dict.fromkeys(existing.tags + span.tags))
            continue
        clash = next(
            (
                other
                for other in accepted
                if other.start < span.end and span.start < other.end
            ),
            None,
        )
        if clash is not None:
            logger.warning(
                "Dropping span [%d, %d) overlapping [%d, %d)",
                span.start,
                span.end,
                clash.start,
                clash.end,
            )
            continue
        width = span.end - span.start
        normalized = AnnotationSpan(
            start=span.start,
            end=span.end,
            text=clean_text[span.start : span.end],
            tags=span.tags,
            count=width if width > 1 else None,
        )
        accepted.append(normalized)
        by_range[(span.start, span.end)] = normalized

    return accepted


def strip_markers(text: str) -> str:
    """Remove every marker-shaped substring, valid or not."""
    return LOOSE_MARKER_RE.sub("", text)
