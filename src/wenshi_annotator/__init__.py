"""
wenshi_annotator package exports convenience helpers for library consumers.
"""

from __future__ import annotations

from .codec import normalize_spans, parse, serialize
from .config import AnnotatorConfig, config_from_dict, config_from_yaml, load_config
from .document import Document
from .editor import Editor
from .models import AnnotationSpan, FlatDocument
from .offsets import build_offset_map
from .orchestrator import Annotator
from .selection import compute_tag_states, toggle_tag
from .tags import DEFAULT_REGISTRY, TagRegistry

__all__ = [
    "AnnotatorConfig",
    "config_from_dict",
    "config_from_yaml",
    "load_config",
    "parse",
    "serialize",
    "normalize_spans",
    "AnnotationSpan",
    "FlatDocument",
    "Document",
    "Editor",
    "Annotator",
    "build_offset_map",
    "compute_tag_states",
    "toggle_tag",
    "DEFAULT_REGISTRY",
    "TagRegistry",
]

__version__ = "0.1.0"
