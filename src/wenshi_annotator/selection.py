from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from typing import Dict, Iterable, List, Sequence

from .models import AnnotationSpan, Conflict, FlatDocument, OverlapKind
from .script import is_pure_script
from .tags import DEFAULT_REGISTRY, TagRegistry

logger = logging.getLogger(__name__)

CONFLICT_REASONS = {
    OverlapKind.FULLY_CONTAINED: "nested conflict",
    OverlapKind.PARTIAL_OVERLAP: "partial overlap",
}


class ButtonState(enum.Enum):
    DISABLED = "disabled"
    ACTIVE = "active"
    CHECKED = "checked"


@dataclass(frozen=True, slots=True)
class TagButtonState:
    state: ButtonState
    has_tag: bool = False


class ToggleKind(enum.Enum):
    ADD = "add"
    REMOVE = "remove"
    DELETE = "delete"


@dataclass(frozen=True, slots=True)
class ToggleAction:
    """What toggling ``code`` on ``[start, end)`` does to the span set."""

    kind: ToggleKind
    code: str
    start: int
    end: int
    tags: tuple[str, ...]


def classify_overlap(span: AnnotationSpan, start: int, end: int) -> OverlapKind | None:
    """Relate an existing span to the selection ``[start, end)``; None when disjoint."""
    if span.end <= start or end <= span.start:
        return None
    if span.start == start and span.end == end:
        return OverlapKind.EXACT_MATCH
    if start <= span.start and span.end <= end:
        return OverlapKind.FULLY_CONTAINED
    return OverlapKind.PARTIAL_OVERLAP


def find_conflict(spans: Iterable[AnnotationSpan], start: int, end: int) -> Conflict | None:
    for span in spans:
        kind = classify_overlap(span, start, end)
        if kind in CONFLICT_REASONS:
            return Conflict(kind=kind, reason=CONFLICT_REASONS[kind], span=span)
    return None


def span_conflicts(spans: Sequence[AnnotationSpan]) -> List[Conflict]:
    """Pairs of spans that break the disjoint-or-identical rule, reported on the later span."""
    conflicts: List[Conflict] = []
    for index, span in enumerate(spans):
        for earlier in spans[:index]:
            kind = classify_overlap(span, earlier.start, earlier.end)
            if kind is None:
                continue
            if classify_overlap(earlier, span.start, span.end) is OverlapKind.FULLY_CONTAINED:
                kind = OverlapKind.FULLY_CONTAINED
            reason = CONFLICT_REASONS.get(kind, "duplicate range")
            conflicts.append(
                Conflict(
                    kind=kind,
                    reason=f"{reason} with [{earlier.start}, {earlier.end})",
                    span=span,
                )
            )
            break
    return conflicts


def exact_span(spans: Iterable[AnnotationSpan], start: int, end: int) -> AnnotationSpan | None:
    for span in spans:
        if span.start == start and span.end == end:
            return span
    return None


def selection_blocker(document: FlatDocument, start: int, end: int) -> str | None:
    """Why no tag can be toggled on ``[start, end)``, or None when tagging is legal."""
    if end <= start:
        return "empty selection"
    if start < 0 or end > len(document.clean_text):
        return "selection out of bounds"
    if not is_pure_script(document.clean_text[start:end]):
        return "selection is not pure ideographic text"
    conflict = find_conflict(document.spans, start, end)
    if conflict is not None:
        return conflict.reason
    return None


def compute_tag_states(
    document: FlatDocument,
    start: int,
    end: int,
    registry: TagRegistry = DEFAULT_REGISTRY,
) -> Dict[str, TagButtonState]:
    """Button state for every registered tag; legality is all-or-nothing."""
    blocker = selection_blocker(document, start, end)
    if blocker is not None:
        logger.debug("Tags disabled for [%d, %d): %s", start, end, blocker)
        return {
            code: TagButtonState(ButtonState.DISABLED) for code in registry.all_codes()
        }
    span = exact_span(document.spans, start, end)
    current = span.tag_set if span is not None else frozenset()
    states: Dict[str, TagButtonState] = {}
    for code in registry.all_codes():
        has_tag = code in current
        states[code] = TagButtonState(
            ButtonState.CHECKED if has_tag else ButtonState.ACTIVE, has_tag
        )
    return states


def plan_toggle(
    document: FlatDocument,
    start: int,
    end: int,
    code: str,
    registry: TagRegistry = DEFAULT_REGISTRY,
) -> ToggleAction | None:
    if code not in registry:
        logger.debug("Ignoring toggle of unknown tag %r", code)
        return None
    if selection_blocker(document, start, end) is not None:
        return None
    span = exact_span(document.spans, start, end)
    if span is None:
        return ToggleAction(ToggleKind.ADD, code, start, end, (code,))
    if code not in span.tag_set:
        return ToggleAction(ToggleKind.ADD, code, start, end, span.tags + (code,))
    remaining = tuple(tag for tag in span.tags if tag != code)
    if not remaining:
        return ToggleAction(ToggleKind.DELETE, code, start, end, ())
    return ToggleAction(ToggleKind.REMOVE, code, start, end, remaining)


def apply_toggle(document: FlatDocument, action: ToggleAction) -> FlatDocument:
    spans: List[AnnotationSpan] = []
    replaced = False
    for span in document.spans:
        if span.start == action.start and span.end == action.end:
            replaced = True
            if action.kind is ToggleKind.DELETE:
                continue
            spans.append(
                AnnotationSpan(span.start, span.end, span.text, action.tags, span.count)
            )
        else:
            spans.append(span)
    if not replaced and action.kind is ToggleKind.ADD:
        width = action.end - action.start
        spans.append(
            AnnotationSpan(
                start=action.start,
                end=action.end,
                text=document.clean_text[action.start : action.end],
                tags=action.tags,
                count=width if width > 1 else None,
            )
        )
    return FlatDocument(clean_text=document.clean_text, spans=spans)


def toggle_tag(
    document: FlatDocument,
    start: int,
    end: int,
    code: str,
    registry: TagRegistry = DEFAULT_REGISTRY,
) -> FlatDocument | None:
    """Toggle ``code`` on ``[start, end)``; None when the toggle is not allowed."""
    action = plan_toggle(document, start, end, code, registry)
    if action is None:
        return None
    return apply_toggle(document, action)
