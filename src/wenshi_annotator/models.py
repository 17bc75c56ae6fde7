from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import NewType

StructuredPosition = NewType("StructuredPosition", int)


@dataclass(slots=True)
class AnnotationSpan:
    """A tagged half-open range ``[start, end)`` of clean text."""

    start: int
    end: int
    text: str
    tags: tuple[str, ...]
    count: int | None = None

    def __post_init__(self) -> None:
        self.tags = tuple(dict.fromkeys(self.tags))

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, AnnotationSpan):
            return NotImplemented
        return (
            self.start == other.start
            and self.end == other.end
            and self.text == other.text
            and self.tag_set == other.tag_set
        )

    @property
    def width(self) -> int:
        return self.end - self.start

    @property
    def tag_set(self) -> frozenset[str]:
        return frozenset(self.tags)

    @property
    def key(self) -> tuple[int, int, frozenset[str]]:
        """Hashable identity used when comparing span sets."""
        return (self.start, self.end, self.tag_set)


@dataclass(slots=True)
class FlatDocument:
    """Clean text plus the ordered annotation spans over it."""

    clean_text: str
    spans: list[AnnotationSpan] = field(default_factory=list)

    def span_keys(self) -> set[tuple[int, int, frozenset[str]]]:
        return {span.key for span in self.spans}


@dataclass(frozen=True, slots=True)
class AnnotationMark:
    """Attributes of an annotation mark attached to structured text."""

    tags: tuple[str, ...]
    color: str | None = None
    label: str | None = None
    count: int = 1
    annotation_index: int | None = None


class OverlapKind(enum.Enum):
    """How an existing span relates to a candidate selection."""

    EXACT_MATCH = "exact_match"
    FULLY_CONTAINED = "fully_contained"
    PARTIAL_OVERLAP = "partial_overlap"


@dataclass(slots=True)
class Conflict:
    """A structural reason a selection cannot be tagged."""

    kind: OverlapKind
    reason: str
    span: AnnotationSpan
