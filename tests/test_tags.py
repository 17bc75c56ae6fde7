import pytest

from wenshi_annotator.tags import (
    DEFAULT_REGISTRY,
    GROUPS,
    TagDescriptor,
    TagRegistry,
    registry_from_dicts,
)


def test_default_registry_lookups():
    descriptor = DEFAULT_REGISTRY.lookup("subj")

    assert descriptor is not None
    assert descriptor.label == "П"
    assert descriptor.group == "ЧлПред"
    assert DEFAULT_REGISTRY.lookup("missing") is None
    assert len(DEFAULT_REGISTRY.all_codes()) == 20
    assert DEFAULT_REGISTRY.all_codes()[0] == "subj"


def test_label_lookup_is_case_insensitive_by_default():
    assert DEFAULT_REGISTRY.lookup_by_label("гл") == "v"
    assert DEFAULT_REGISTRY.lookup_by_label("ГЛ") == "v"
    assert DEFAULT_REGISTRY.lookup_by_label("гл", case_insensitive=False) is None
    assert DEFAULT_REGISTRY.lookup_by_label("Гл", case_insensitive=False) == "v"


def test_resolve_prefers_codes_and_label_for_falls_back():
    assert DEFAULT_REGISTRY.resolve("n") == "n"
    assert DEFAULT_REGISTRY.resolve("Сущ") == "n"
    assert DEFAULT_REGISTRY.resolve("nope") is None
    assert DEFAULT_REGISTRY.label_for("nope") == "nope"
    assert DEFAULT_REGISTRY.labels_for(["n", "v"]) == "Сущ,Гл"


def test_every_group_has_tags():
    for group in GROUPS:
        assert DEFAULT_REGISTRY.codes_in_group(group)


def test_registry_rejects_duplicates_and_unknown_groups():
    with pytest.raises(ValueError):
        TagRegistry([TagDescriptor("a", "A", "", "Служ"), TagDescriptor("a", "B", "", "Служ")])
    with pytest.raises(ValueError):
        TagRegistry([TagDescriptor("a", "A", "", "Other")])


def test_registry_from_dicts():
    registry = registry_from_dicts(
        [{"code": "x", "label": "Икс", "group": "ЧасРеч"}]
    )

    assert registry.resolve("икс") == "x"
    assert registry.lookup("x") == TagDescriptor("x", "Икс", "", "ЧасРеч")
    with pytest.raises(ValueError):
        registry_from_dicts([{"code": "x"}])


def test_legacy_noun_label_resolves_but_is_never_written():
    legacy = "C" + "ущ"  # Latin C

    assert DEFAULT_REGISTRY.resolve(legacy) == "n"
    assert DEFAULT_REGISTRY.lookup_by_label(legacy, case_insensitive=False) == "n"
    assert DEFAULT_REGISTRY.label_for("n") == "Сущ"


def test_registry_rejects_tokens_outside_marker_grammar():
    for code, label in [("n", "N."), ("n_1", "N"), ("n", "Сущ ")]:
        with pytest.raises(ValueError):
            TagRegistry([TagDescriptor(code, label, "", "ЧасРеч")])
    with pytest.raises(ValueError):
        TagRegistry([TagDescriptor("n", "N", "", "ЧасРеч", aliases=("N,X",))])
    with pytest.raises(ValueError):
        registry_from_dicts([{"code": "n", "label": "N.", "group": "ЧасРеч"}])


def test_registry_from_dicts_reads_aliases():
    registry = registry_from_dicts(
        [{"code": "x", "label": "Икс", "group": "ЧасРеч", "aliases": ["Ix"]}]
    )

    assert registry.resolve("ix") == "x"
    assert registry.label_for("x") == "Икс"
