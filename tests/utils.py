from __future__ import annotations

from typing import Any

from wenshi_annotator.document import Text
from wenshi_annotator.editor import Editor
from wenshi_annotator.models import AnnotationMark, AnnotationSpan
from wenshi_annotator.orchestrator import Annotator


def make_annotator(content: str, **kwargs: Any) -> tuple[Editor, Annotator]:
    """Load ``content`` into a fresh editor and run the deferred mark pass."""
    editor = Editor()
    annotator = Annotator(editor, **kwargs)
    annotator.set_content(content)
    editor.tasks.run_pending()
    return editor, annotator


def marks_in(editor: Editor) -> list[tuple[str, AnnotationMark]]:
    """Text runs carrying a mark, in document order."""
    return [
        (node.text, node.mark)
        for node, _ in editor.doc.descendants()
        if isinstance(node, Text) and node.mark is not None
    ]


def span(start: int, end: int, text: str, *tags: str) -> AnnotationSpan:
    width = end - start
    return AnnotationSpan(start, end, text, tags, width if width > 1 else None)
