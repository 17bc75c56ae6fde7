from __future__ import annotations

import xml.etree.ElementTree as ET
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from xml.sax.saxutils import escape

from .codec import strip_markers
from .script import is_countable, script_ratio

ROOT_TAG = "wenshi"
DEFAULT_VERSION = "1.0"
_ATTR_ENTITIES = {'"': "&quot;"}


class EnvelopeParseError(RuntimeError):
    """Raised when a .wen envelope cannot be parsed."""


@dataclass(slots=True)
class ValidationResult:
    is_valid: bool
    error_message: str = ""


@dataclass(slots=True)
class Envelope:
    """Timestamped wrapper around annotated text."""

    version: str
    created_at: datetime
    modified_at: datetime
    content: str

    def touch(self, now: datetime | None = None) -> "Envelope":
        """Copy with ``modified_at`` refreshed; ``created_at`` is kept."""
        return replace(self, modified_at=now or _utcnow())


def validate_content(content: str, min_script_ratio: float = 0.5) -> ValidationResult:
    """Check that annotated text is non-empty, free of markup and mostly ideographic."""
    if not content.strip():
        return ValidationResult(False, "File is empty")
    clean = strip_markers(content)
    if "<" in clean or ">" in clean:
        return ValidationResult(
            False, "File contains XML tags (< or >) which are not allowed"
        )
    if not any(is_countable(char) for char in clean):
        return ValidationResult(False, "File contains no text characters")
    if script_ratio(clean) < min_script_ratio:
        return ValidationResult(
            False,
            f"File must contain at least {min_script_ratio:.0%} CJK characters",
        )
    return ValidationResult(True)


def parse_timestamp(value: str) -> datetime:
    """Parse an RFC 3339 timestamp; the offset is mandatory."""
    text = value.strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is None:
        raise ValueError(f"Timestamp {value!r} has no UTC offset.")
    return parsed


def format_timestamp(value: datetime) -> str:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    text = value.isoformat(timespec="seconds")
    return text[:-6] + "Z" if text.endswith("+00:00") else text


def parse_envelope(text: str, min_script_ratio: float = 0.5) -> Envelope:
    """Parse a serialized .wen envelope."""
    try:
        root = ET.fromstring(text.encode("utf-8"))
    except ET.ParseError as exc:
        raise EnvelopeParseError(f"Invalid .wen file: {exc}") from exc
    if root.tag != ROOT_TAG:
        raise EnvelopeParseError(
            f"Invalid .wen file: expected <{ROOT_TAG}> root, found <{root.tag}>"
        )
    if len(root):
        raise EnvelopeParseError("Invalid .wen file: unexpected child elements")

    attributes = {}
    for name in ("ver", "createdAt", "modifiedAt"):
        value = root.attrib.get(name)
        if not value:
            raise EnvelopeParseError(
                f"Invalid .wen file: missing required attribute '{name}'"
            )
        attributes[name] = value

    timestamps = {}
    for name in ("createdAt", "modifiedAt"):
        try:
            timestamps[name] = parse_timestamp(attributes[name])
        except ValueError as exc:
            raise EnvelopeParseError(
                f"Invalid .wen file: invalid timestamp format in '{name}'"
            ) from exc

    content = root.text or ""
    result = validate_content(content, min_script_ratio)
    if not result.is_valid:
        raise EnvelopeParseError(f"Invalid .wen file content: {result.error_message}")

    return Envelope(
        version=attributes["ver"],
        created_at=timestamps["createdAt"],
        modified_at=timestamps["modifiedAt"],
        content=content.strip(),
    )


def serialize_envelope(envelope: Envelope, min_script_ratio: float = 0.5) -> str:
    """Render ``envelope`` as XML with CRLF line endings inside the content."""
    result = validate_content(envelope.content, min_script_ratio)
    if not result.is_valid:
        raise ValueError(f"Invalid content: {result.error_message}")

    content = envelope.content.replace("\r\n", "\n").replace("\r", "\n")
    content = escape(content.replace("\n", "\r\n"))
    return (
        '<?xml version="1.0" encoding="UTF-8"?>\n'
        f'<{ROOT_TAG} ver="{escape(envelope.version, _ATTR_ENTITIES)}" '
        f'createdAt="{escape(format_timestamp(envelope.created_at), _ATTR_ENTITIES)}" '
        f'modifiedAt="{escape(format_timestamp(envelope.modified_at), _ATTR_ENTITIES)}">'
        f"{content}</{ROOT_TAG}>"
    )


def save_envelope(
    content: str,
    previous: Envelope | None = None,
    now: datetime | None = None,
    version: str = DEFAULT_VERSION,
) -> Envelope:
    """Envelope for saving ``content``: creation time survives, modification time is now."""
    now = now or _utcnow()
    created_at = previous.created_at if previous is not None else now
    return Envelope(
        version=version, created_at=created_at, modified_at=now, content=content
    )


def _utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(microsecond=0)
