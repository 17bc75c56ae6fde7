from wenshi_annotator.document import Break, Document, Paragraph, Text
from wenshi_annotator.editor import (
    ORIGIN_HISTORY,
    ORIGIN_USER,
    Editor,
    Selection,
    TaskQueue,
    UpdateEvent,
)
from tests.utils import make_annotator


def test_task_queue_runs_tasks_queued_while_draining():
    queue = TaskQueue()
    calls: list[str] = []

    def first() -> None:
        calls.append("first")
        queue.schedule(lambda: calls.append("second"))

    queue.schedule(first)

    assert len(queue) == 1
    assert queue.run_pending() == 2
    assert calls == ["first", "second"]
    assert len(queue) == 0


def test_listeners_receive_update_origins():
    editor = Editor(Document.from_text("ab"))
    events: list[UpdateEvent] = []
    editor.on_update(events.append)

    editor.set_selection(2)
    editor.type_text("x")
    editor.undo()
    editor.off_update(events.append)
    editor.redo()

    assert [event.origin for event in events] == [ORIGIN_USER, ORIGIN_HISTORY]
    assert editor.doc == Document.from_text("axb")
    assert not editor.can_redo


def test_selection_is_clamped_to_the_document():
    editor = Editor(Document.from_text("ab"))

    editor.set_selection(-3, 99)

    assert editor.selection == Selection(0, 3)
    assert Selection.cursor(2).empty


def test_delete_selection_and_split_paragraph():
    editor = Editor(Document.from_text("abcd"))
    editor.set_selection(2, 4)

    editor.delete_selection()
    assert editor.doc == Document.from_text("ad")
    assert editor.selection == Selection.cursor(2)

    editor.split_paragraph()
    assert editor.doc == Document.from_text("a\nd")
    assert editor.selection == Selection.cursor(4)


def test_hard_break_becomes_paragraph_after_rebuild():
    editor, annotator = make_annotator("我爱{{2,Сущ}}你")
    editor.set_selection(3)

    editor.insert_break()
    assert editor.doc.paragraphs[0].children[1] == Break()
    assert annotator.get_content() == "我爱{{2,Сущ}}\n你"

    assert len(editor.tasks) == 1
    editor.tasks.run_pending()
    assert editor.doc.paragraphs == [
        Paragraph([Text("我爱", editor.doc.paragraphs[0].children[0].mark)]),
        Paragraph([Text("你")]),
    ]
    assert annotator.get_content() == "我爱{{2,Сущ}}\n你"
