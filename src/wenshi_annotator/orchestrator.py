"""
Keeps the editor's annotation marks in step with the inline notation.

The annotated string is the source of truth. After every edit made through
the editor (typing, deletion, paragraph splits, hard breaks, pastes, undo/redo
and tag toggles) the live document is read back into a
:class:`FlatDocument`, serialized, parsed again and its spans re-applied as
marks with fresh indices and colours. Rebuilds are deferred through the
editor's task queue and run under a guard so that their own document
updates never schedule another rebuild or reach ``on_change``.
"""

from __future__ import annotations

import itertools
import logging
from contextlib import contextmanager
from typing import Callable, Dict, Iterator, List, Sequence

from .clipboard import clean_pasted_text, copy_text
from .codec import normalize_spans, parse, serialize
from .config import AnnotatorConfig
from .document import Break, Document, Paragraph, Text
from .editor import ORIGIN_PASTE, ORIGIN_PROGRAMMATIC, Editor, UpdateEvent
from .models import AnnotationMark, AnnotationSpan, FlatDocument
from .offsets import OffsetMap, build_offset_map
from .selection import (
    ButtonState,
    TagButtonState,
    ToggleKind,
    compute_tag_states,
    plan_toggle,
)

logger = logging.getLogger(__name__)


class Annotator:
    """Annotation controller bound to one :class:`Editor`."""

    def __init__(
        self,
        editor: Editor,
        config: AnnotatorConfig | None = None,
        *,
        on_change: Callable[[str], None] | None = None,
        editable: bool = True,
    ) -> None:
        self.editor = editor
        self.config = config or AnnotatorConfig()
        self.registry = self.config.build_registry()
        self.on_change = on_change
        self.editable = editable
        self.annotations: List[AnnotationSpan] = []
        self._rebuilding = False
        self._rebuild_scheduled = False
        # Marks set by a toggle carry negative indices until the next rebuild
        # numbers them, so adjacent pending marks never merge.
        self._pending_index = itertools.count(-1, -1)
        editor.on_update(self._handle_update)

    @property
    def rebuilding(self) -> bool:
        return self._rebuilding

    def extract(self) -> FlatDocument:
        """Read clean text and one span per annotated text run from the live document."""
        text = ""
        spans: List[AnnotationSpan] = []
        first_paragraph = True
        for node, _ in self.editor.doc.descendants():
            if isinstance(node, Paragraph):
                if not first_paragraph:
                    text += "\n"
                first_paragraph = False
            elif isinstance(node, Text):
                start = len(text)
                text += node.text
                if node.mark is not None and node.mark.tags and node.text:
                    width = len(node.text)
                    spans.append(
                        AnnotationSpan(
                            start=start,
                            end=len(text),
                            text=node.text,
                            tags=node.mark.tags,
                            count=width if width > 1 else None,
                        )
                    )
            elif isinstance(node, Break):
                text += "\n"
        return FlatDocument(clean_text=text, spans=spans)

    def get_content(self) -> str:
        document = self.extract()
        return serialize(document.clean_text, document.spans, self.registry)

    def set_content(self, content: str, preserve_cursor: bool = False) -> None:
        """Replace the document with ``content`` and queue the mark pass."""
        saved = self.editor.selection if preserve_cursor else None
        parsed = parse(content, self.registry)
        spans = normalize_spans(parsed.clean_text, parsed.spans)
        self.annotations = spans

        with self._guard():
            self.editor.dispatch(
                Document.from_text(parsed.clean_text),
                add_to_history=False,
                origin=ORIGIN_PROGRAMMATIC,
            )
        if spans:
            self.editor.tasks.schedule(lambda: self.apply_marks(spans))
        if saved is not None:
            self.editor.set_selection(saved.from_, saved.to)

    def apply_marks(self, spans: Sequence[AnnotationSpan]) -> int:
        """Attach ``spans`` as marks to the current document; return how many were applied."""
        with self._guard():
            offset_map = build_offset_map(self.editor.doc)
            document = self.editor.doc.copy()
            applied = 0
            for span in spans:
                target = offset_map.span_range(span)
                if target is None:
                    continue
                mark = AnnotationMark(
                    tags=span.tags,
                    color=self.config.color_for(applied),
                    label=self.registry.labels_for(span.tags),
                    count=span.width,
                    annotation_index=applied,
                )
                document.add_mark(target[0], target[1], mark)
                applied += 1
            selection = self.editor.selection
            self.editor.dispatch(
                document,
                selection=selection,
                add_to_history=False,
                origin=ORIGIN_PROGRAMMATIC,
            )
        logger.debug("Applied %d of %d annotation marks", applied, len(spans))
        return applied

    def rebuild_annotations(self) -> None:
        """Round-trip the live document through the notation and re-apply marks."""
        self.set_content(self.get_content(), preserve_cursor=True)

    def schedule_rebuild(self) -> None:
        if self._rebuild_scheduled:
            return
        self._rebuild_scheduled = True
        self.editor.tasks.schedule(self._run_scheduled_rebuild)

    def selection_range(self, offset_map: OffsetMap | None = None) -> tuple[int, int] | None:
        """Flat-text range of the editor selection, or None when it cannot be mapped."""
        offset_map = offset_map or build_offset_map(self.editor.doc)
        selection = self.editor.selection
        start = offset_map.to_flat(selection.from_)
        end = offset_map.to_flat(selection.to)
        if start is None or end is None:
            return None
        return start, end

    def tag_states(self) -> Dict[str, TagButtonState]:
        span_range = self.selection_range()
        if span_range is None:
            return {
                code: TagButtonState(ButtonState.DISABLED)
                for code in self.registry.all_codes()
            }
        return compute_tag_states(self.extract(), *span_range, registry=self.registry)

    def toggle_tag(self, code: str) -> bool:
        """Add or remove ``code`` on the selection; False when the toggle is not allowed."""
        span_range = self.selection_range()
        if span_range is None:
            return False
        action = plan_toggle(self.extract(), *span_range, code, registry=self.registry)
        if action is None:
            return False
        if action.kind is ToggleKind.DELETE:
            self.editor.unset_mark()
        else:
            self.editor.set_mark(
                AnnotationMark(
                    tags=action.tags,
                    color=self.config.placeholder_color,
                    label=self.registry.labels_for(action.tags),
                    count=action.end - action.start,
                    annotation_index=next(self._pending_index),
                )
            )
        logger.info(
            "Tag %s %s on [%d, %d)", action.code, action.kind.value, action.start, action.end
        )
        self.schedule_rebuild()
        return True

    def has_formatting_in_selection(self) -> bool:
        selection = self.editor.selection
        if selection.empty:
            return False
        return any(
            mark is not None
            for _, _, mark in self.editor.doc.marks_between(selection.from_, selection.to)
        )

    def reset_formatting(self) -> bool:
        """Strip annotation marks from the selection."""
        if not self.has_formatting_in_selection():
            return False
        self.editor.unset_mark()
        self.schedule_rebuild()
        return True

    def paste(self, text: str) -> bool:
        cleaned = clean_pasted_text(text)
        if not cleaned:
            return False
        self.editor.type_text(cleaned, origin=ORIGIN_PASTE)
        return True

    def copy(self) -> str:
        selection = self.editor.selection
        return copy_text(self.editor.doc, selection.from_, selection.to)

    def unannotated_ranges(self) -> List[tuple[int, int]]:
        """Document ranges of text runs that carry no annotation mark."""
        return [
            (pos, pos + node.node_size)
            for node, pos in self.editor.doc.descendants()
            if isinstance(node, Text) and node.text and node.mark is None
        ]

    def _handle_update(self, event: UpdateEvent) -> None:
        if self._rebuilding:
            return
        if event.origin != ORIGIN_PROGRAMMATIC:
            logger.debug("Scheduling annotation rebuild after %s update", event.origin)
            self.schedule_rebuild()
        if event.history:
            return
        if self.on_change is not None and self.editable:
            self.on_change(self.get_content())

    def _run_scheduled_rebuild(self) -> None:
        self._rebuild_scheduled = False
        self.rebuild_annotations()

    @contextmanager
    def _guard(self) -> Iterator[None]:
        previous = self._rebuilding
        self._rebuilding = True
        try:
            yield
        finally:
            self._rebuilding = previous
