from __future__ import annotations

import enum
import unicodedata

# CJK Unified Ideographs, Extension A and Extensions B-F.
SCRIPT_RANGES: tuple[tuple[int, int], ...] = (
    (0x3400, 0x4DBF),
    (0x4E00, 0x9FFF),
    (0x20000, 0x2EBEF),
)


class ScriptClass(enum.Enum):
    IN_SCRIPT = "in_script"
    OUT_OF_SCRIPT = "out_of_script"


def classify(char: str) -> ScriptClass:
    """Classify a single character against the ideograph ranges."""
    if len(char) != 1:
        return ScriptClass.OUT_OF_SCRIPT
    code = ord(char)
    for low, high in SCRIPT_RANGES:
        if low <= code <= high:
            return ScriptClass.IN_SCRIPT
    return ScriptClass.OUT_OF_SCRIPT


def is_script_char(char: str) -> bool:
    return classify(char) is ScriptClass.IN_SCRIPT


def is_pure_script(text: str) -> bool:
    """True when ``text`` is non-empty and every character is an ideograph."""
    if not text:
        return False
    return all(is_script_char(char) for char in text)


def contains_script(text: str) -> bool:
    return any(is_script_char(char) for char in text)


def is_countable(char: str) -> bool:
    """Neither whitespace nor punctuation."""
    return not char.isspace() and not unicodedata.category(char).startswith("P")


def script_ratio(text: str) -> float:
    """Share of ideographs among characters that are neither whitespace nor punctuation."""
    counted = 0
    in_script = 0
    for char in text:
        if not is_countable(char):
            continue
        counted += 1
        if is_script_char(char):
            in_script += 1
    if counted == 0:
        return 0.0
    return in_script / counted
