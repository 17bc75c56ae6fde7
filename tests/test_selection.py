import pytest

from wenshi_annotator.models import FlatDocument, OverlapKind
from wenshi_annotator.selection import (
    ButtonState,
    ToggleKind,
    classify_overlap,
    compute_tag_states,
    find_conflict,
    plan_toggle,
    selection_blocker,
    span_conflicts,
    toggle_tag,
)
from tests.utils import span

TEXT = "漢字漢字漢字漢字"


@pytest.fixture
def document() -> FlatDocument:
    return FlatDocument(TEXT, [span(2, 5, TEXT[2:5], "n")])


def test_classify_overlap():
    existing = span(2, 5, TEXT[2:5], "n")

    assert classify_overlap(existing, 3, 4) is OverlapKind.PARTIAL_OVERLAP
    assert classify_overlap(existing, 4, 7) is OverlapKind.PARTIAL_OVERLAP
    assert classify_overlap(existing, 2, 5) is OverlapKind.EXACT_MATCH
    assert classify_overlap(existing, 0, 8) is OverlapKind.FULLY_CONTAINED
    assert classify_overlap(existing, 5, 8) is None
    assert classify_overlap(existing, 0, 2) is None


def test_conflict_reasons(document: FlatDocument):
    assert find_conflict(document.spans, 3, 4).reason == "partial overlap"
    assert find_conflict(document.spans, 0, 8).reason == "nested conflict"
    assert find_conflict(document.spans, 2, 5) is None


def test_partial_overlap_disables_every_tag(document: FlatDocument):
    states = compute_tag_states(document, 3, 4)

    assert {state.state for state in states.values()} == {ButtonState.DISABLED}


def test_exact_match_checks_existing_tag(document: FlatDocument):
    states = compute_tag_states(document, 2, 5)

    assert states["n"].state is ButtonState.CHECKED
    assert states["n"].has_tag
    assert states["v"].state is ButtonState.ACTIVE


def test_nested_selection_is_disabled(document: FlatDocument):
    states = compute_tag_states(document, 0, 8)

    assert states["n"].state is ButtonState.DISABLED
    assert states["v"].state is ButtonState.DISABLED


def test_disjoint_selection_is_active(document: FlatDocument):
    states = compute_tag_states(document, 5, 8)

    assert {state.state for state in states.values()} == {ButtonState.ACTIVE}


def test_empty_or_non_ideographic_selection_is_disabled():
    document = FlatDocument("漢字 ab", [])

    assert selection_blocker(document, 1, 1) == "empty selection"
    assert selection_blocker(document, 0, 4) == "selection is not pure ideographic text"
    assert selection_blocker(document, 0, 20) == "selection out of bounds"
    assert selection_blocker(document, 0, 2) is None


def test_toggle_twice_restores_original_spans(document: FlatDocument):
    for start, end, code in [(5, 8, "v"), (2, 5, "n"), (2, 5, "adj")]:
        once = toggle_tag(document, start, end, code)
        assert once is not None
        twice = toggle_tag(once, start, end, code)
        assert twice is not None
        assert twice.span_keys() == document.span_keys()


def test_toggle_adds_to_and_removes_from_exact_span(document: FlatDocument):
    added = toggle_tag(document, 2, 5, "v")
    assert added is not None
    assert added.spans[0].tags == ("n", "v")
    assert added.spans[0].count == 3

    removed = toggle_tag(added, 2, 5, "n")
    assert removed is not None
    assert removed.spans[0].tags == ("v",)

    deleted = toggle_tag(removed, 2, 5, "v")
    assert deleted is not None
    assert deleted.spans == []


def test_toggle_new_span(document: FlatDocument):
    toggled = toggle_tag(document, 6, 7, "adv")

    assert toggled is not None
    new_span = toggled.spans[-1]
    assert (new_span.start, new_span.end, new_span.text) == (6, 7, "漢")
    assert new_span.count is None


def test_illegal_toggles_return_none(document: FlatDocument):
    assert toggle_tag(document, 3, 4, "v") is None
    assert toggle_tag(document, 0, 8, "v") is None
    assert toggle_tag(document, 5, 8, "unknown") is None


def test_plan_toggle_kinds(document: FlatDocument):
    assert plan_toggle(document, 5, 8, "v").kind is ToggleKind.ADD
    assert plan_toggle(document, 2, 5, "n").kind is ToggleKind.DELETE
    with_two = toggle_tag(document, 2, 5, "v")
    assert plan_toggle(with_two, 2, 5, "n").kind is ToggleKind.REMOVE


def test_span_conflicts_reports_nested_partial_and_duplicate_ranges():
    spans = [
        span(1, 2, "字", "n"),
        span(0, 2, "漢字", "v"),
        span(3, 5, "字漢", "v"),
        span(4, 6, "漢字", "v"),
        span(3, 5, "字漢", "adj"),
    ]

    kinds = [conflict.kind for conflict in span_conflicts(spans)]

    assert kinds == [
        OverlapKind.FULLY_CONTAINED,
        OverlapKind.PARTIAL_OVERLAP,
        OverlapKind.EXACT_MATCH,
    ]
