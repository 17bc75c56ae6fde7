from __future__ import annotations

from dataclasses import asdict, dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, List, Mapping, MutableMapping

import yaml

from .tags import DEFAULT_REGISTRY, TagRegistry, registry_from_dicts

DEFAULT_PALETTE: List[str] = [
    "#F44336",
    "#2196F3",
    "#FF9800",
    "#9C27B0",
    "#4CAF50",
    "#E91E63",
    "#00BCD4",
    "#FF5722",
    "#3F51B5",
    "#8BC34A",
    "#795548",
    "#009688",
    "#FFC107",
    "#607D8B",
    "#673AB7",
]


@dataclass(slots=True)
class AnnotatorConfig:
    """Configuration options for the annotator and its file envelope."""

    palette: List[str] = field(default_factory=lambda: list(DEFAULT_PALETTE))
    placeholder_color: str = "#999"
    envelope_version: str = "1.0"
    min_script_ratio: float = 0.5
    tags: List[Dict[str, str]] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        """Return a mutable dictionary representation of the configuration."""
        return dict(asdict(self))

    def build_registry(self) -> TagRegistry:
        """Tag registry from ``tags`` when configured, otherwise the built-in one."""
        if not self.tags:
            return DEFAULT_REGISTRY
        return registry_from_dicts(self.tags)

    def color_for(self, index: int) -> str:
        if not self.palette:
            return self.placeholder_color
        return self.palette[index % len(self.palette)]


def _build_kwargs(data: Mapping[str, Any]) -> dict[str, Any]:
    allowed = {item.name for item in fields(AnnotatorConfig)}
    kwargs = {key: data[key] for key in data if key in allowed}
    if "palette" in kwargs:
        palette = kwargs["palette"]
        if not isinstance(palette, list) or not palette:
            raise ValueError("palette must be a non-empty list of colours.")
        kwargs["palette"] = [str(color) for color in palette]
    if "tags" in kwargs and not isinstance(kwargs["tags"], list):
        raise ValueError("tags must be a list of mappings.")
    return kwargs


def config_from_dict(data: Mapping[str, Any] | None) -> AnnotatorConfig:
    """Build an AnnotatorConfig from a dictionary-like input."""
    if data is None:
        return AnnotatorConfig()
    return AnnotatorConfig(**_build_kwargs(data))


def config_from_yaml(path: str | Path) -> AnnotatorConfig:
    """Load configuration from a YAML file."""
    contents = Path(path).read_text(encoding="utf-8")
    parsed = yaml.safe_load(contents) or {}
    if not isinstance(parsed, MutableMapping):
        raise ValueError("Configuration YAML must define a mapping.")
    return config_from_dict(parsed)


def load_config(path: str | Path | None = None) -> AnnotatorConfig:
    """Load configuration from YAML when provided, otherwise return defaults."""
    if path is None:
        return AnnotatorConfig()
    return config_from_yaml(path)
