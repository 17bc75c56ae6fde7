"""
Reference host editor: selection, undo history, update notifications and a
deferred task queue around a :class:`~wenshi_annotator.document.Document`.

Everything runs on one thread. Work that must happen after the current
update has been delivered is put on :class:`TaskQueue` and runs when the
host drains it.
"""

from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass
from typing import Callable, Deque, List, Tuple

from .document import Document
from .models import AnnotationMark

logger = logging.getLogger(__name__)

ORIGIN_USER = "user"
ORIGIN_PASTE = "paste"
ORIGIN_HISTORY = "history"
ORIGIN_PROGRAMMATIC = "programmatic"


@dataclass(frozen=True, slots=True)
class Selection:
    from_: int
    to: int

    @classmethod
    def cursor(cls, pos: int) -> "Selection":
        return cls(pos, pos)

    @property
    def empty(self) -> bool:
        return self.from_ == self.to


@dataclass(frozen=True, slots=True)
class UpdateEvent:
    origin: str = ORIGIN_USER

    @property
    def history(self) -> bool:
        return self.origin == ORIGIN_HISTORY


UpdateListener = Callable[[UpdateEvent], None]


class TaskQueue:
    """FIFO of deferred callbacks, drained by the host between events."""

    def __init__(self) -> None:
        self._tasks: Deque[Callable[[], None]] = deque()

    def __len__(self) -> int:
        return len(self._tasks)

    def schedule(self, task: Callable[[], None]) -> None:
        self._tasks.append(task)

    def run_pending(self) -> int:
        """Run queued tasks, including ones queued while running; return how many ran."""
        ran = 0
        while self._tasks:
            task = self._tasks.popleft()
            task()
            ran += 1
        return ran


class Editor:
    """Owns the live document and notifies listeners after every change."""

    def __init__(self, document: Document | None = None, tasks: TaskQueue | None = None) -> None:
        self.doc = document or Document()
        self.selection = Selection.cursor(1)
        self.tasks = tasks or TaskQueue()
        self._undo: List[Tuple[Document, Selection]] = []
        self._redo: List[Tuple[Document, Selection]] = []
        self._listeners: List[UpdateListener] = []

    def on_update(self, listener: UpdateListener) -> None:
        self._listeners.append(listener)

    def off_update(self, listener: UpdateListener) -> None:
        self._listeners.remove(listener)

    @property
    def can_undo(self) -> bool:
        return bool(self._undo)

    @property
    def can_redo(self) -> bool:
        return bool(self._redo)

    def dispatch(
        self,
        document: Document,
        *,
        selection: Selection | None = None,
        add_to_history: bool = True,
        origin: str = ORIGIN_USER,
    ) -> None:
        """Replace the document and notify listeners."""
        if add_to_history:
            self._undo.append((self.doc, self.selection))
            self._redo.clear()
        self.doc = document
        self.selection = self._clamp_selection(selection or self.selection)
        self._notify(UpdateEvent(origin))

    def set_selection(self, from_: int, to: int | None = None) -> None:
        self.selection = self._clamp_selection(
            Selection(from_, from_ if to is None else to)
        )

    def undo(self) -> bool:
        if not self._undo:
            return False
        self._redo.append((self.doc, self.selection))
        self.doc, self.selection = self._undo.pop()
        self._notify(UpdateEvent(ORIGIN_HISTORY))
        return True

    def redo(self) -> bool:
        if not self._redo:
            return False
        self._undo.append((self.doc, self.selection))
        self.doc, self.selection = self._redo.pop()
        self._notify(UpdateEvent(ORIGIN_HISTORY))
        return True

    def type_text(self, text: str, *, origin: str = ORIGIN_USER) -> None:
        """Replace the selection with ``text`` and leave the cursor after it."""
        document = self.doc.copy()
        start = self.selection.from_
        document.delete(start, self.selection.to)
        document.insert_text(start, text)
        # Each newline closes and opens a paragraph: two extra positions.
        end = start + len(text) + text.count("\n")
        self.dispatch(document, selection=Selection.cursor(end), origin=origin)

    def delete_selection(self) -> None:
        if self.selection.empty:
            return
        document = self.doc.copy()
        document.delete(self.selection.from_, self.selection.to)
        self.dispatch(document, selection=Selection.cursor(self.selection.from_))

    def split_paragraph(self) -> None:
        document = self.doc.copy()
        start = self.selection.from_
        document.delete(start, self.selection.to)
        document.split_paragraph(start)
        self.dispatch(document, selection=Selection.cursor(start + 2))

    def insert_break(self) -> None:
        document = self.doc.copy()
        start = self.selection.from_
        document.delete(start, self.selection.to)
        document.insert_break(start)
        self.dispatch(document, selection=Selection.cursor(start + 1))

    def set_mark(self, mark: AnnotationMark) -> None:
        document = self.doc.copy()
        document.add_mark(self.selection.from_, self.selection.to, mark)
        self.dispatch(document)

    def unset_mark(self) -> None:
        document = self.doc.copy()
        document.remove_mark(self.selection.from_, self.selection.to)
        self.dispatch(document)

    def _clamp_selection(self, selection: Selection) -> Selection:
        size = self.doc.content_size
        upper = max(0, size - 1)
        from_ = max(0, min(selection.from_, upper))
        to = max(from_, min(selection.to, upper))
        return Selection(from_, to)

    def _notify(self, event: UpdateEvent) -> None:
        logger.debug("Document update origin=%s", event.origin)
        for listener in list(self._listeners):
            listener(event)
