from pathlib import Path

import pytest

from wenshi_annotator.config import (
    DEFAULT_PALETTE,
    AnnotatorConfig,
    config_from_dict,
    load_config,
)
from wenshi_annotator.tags import DEFAULT_REGISTRY


def test_defaults():
    config = load_config()

    assert config.palette == DEFAULT_PALETTE
    assert config.placeholder_color == "#999"
    assert config.min_script_ratio == 0.5
    assert config.build_registry() is DEFAULT_REGISTRY
    assert config.color_for(15) == DEFAULT_PALETTE[0]
    assert config.color_for(1) == DEFAULT_PALETTE[1]


def test_yaml_overrides(tmp_path: Path):
    path = tmp_path / "config.yaml"
    path.write_text(
        "palette: ['#000', '#111']\n"
        "min_script_ratio: 0.8\n"
        "unknown_key: ignored\n",
        encoding="utf-8",
    )

    config = load_config(path)

    assert config.palette == ["#000", "#111"]
    assert config.min_script_ratio == 0.8
    assert config.color_for(3) == "#111"


def test_tags_override_registry():
    config = config_from_dict(
        {"tags": [{"code": "x", "label": "Икс", "group": "ЧасРеч", "description": "test"}]}
    )

    registry = config.build_registry()

    assert registry.all_codes() == ("x",)
    assert registry.resolve("Икс") == "x"


def test_invalid_configuration(tmp_path: Path):
    path = tmp_path / "config.yaml"
    path.write_text("- just\n- a list\n", encoding="utf-8")

    with pytest.raises(ValueError):
        load_config(path)
    with pytest.raises(ValueError):
        config_from_dict({"palette": []})
    with pytest.raises(ValueError):
        config_from_dict({"tags": "n"})


def test_to_dict_round_trips():
    config = AnnotatorConfig(placeholder_color="#abc")

    assert config_from_dict(config.to_dict()) == config


def test_tag_labels_must_fit_the_marker_grammar():
    config = config_from_dict(
        {"tags": [{"code": "n", "label": "N.", "group": "ЧасРеч"}]}
    )

    with pytest.raises(ValueError):
        config.build_registry()
