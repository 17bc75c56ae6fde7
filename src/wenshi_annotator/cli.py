from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import List, TypedDict

import typer
import yaml

from .codec import normalize_spans, parse, serialize
from .config import AnnotatorConfig, load_config
from .envelope import (
    Envelope,
    EnvelopeParseError,
    parse_envelope,
    save_envelope,
    serialize_envelope,
    validate_content,
)
from .models import AnnotationSpan, FlatDocument
from .selection import selection_blocker, span_conflicts, toggle_tag
from .tags import GROUPS

app = typer.Typer(help="Wenshi annotation notation CLI.", no_args_is_help=True)

# File types the CLI reads; anything else is treated as plain annotated text.
ENVELOPE_SUFFIX = ".wen"


class SpanPayload(TypedDict):
    start: int
    end: int
    text: str
    tags: List[str]
    count: int | None


class DocumentPayload(TypedDict):
    clean_text: str
    spans: List[SpanPayload]


@app.callback()
def main_callback(
    log_level: str = typer.Option(
        "WARNING", "--log-level", help="Logging level (DEBUG, INFO, WARNING, ...)."
    ),
) -> None:
    """Configure logging before any sub-command runs."""
    logging.basicConfig(
        level=log_level.upper(),
        format="%(levelname)s %(name)s: %(message)s",
    )


@app.command("parse")
def parse_command(
    input_path: Path = typer.Option(..., exists=True, readable=True, dir_okay=False),
    config: Path | None = typer.Option(None, "--config", "-c"),
) -> None:
    """Print the clean text and spans of an annotated file as JSON."""
    cfg = load_config(config)
    content = _read_content(input_path, cfg)
    document = parse(content, cfg.build_registry())
    typer.echo(json.dumps(_document_dict(document), ensure_ascii=False, indent=2))


@app.command("serialize")
def serialize_command(
    input_path: Path = typer.Option(..., exists=True, readable=True, dir_okay=False),
    config: Path | None = typer.Option(None, "--config", "-c"),
) -> None:
    """Turn a JSON document (as printed by ``parse``) back into annotated text."""
    cfg = load_config(config)
    document = _document_from_json(input_path)
    spans = normalize_spans(document.clean_text, document.spans)
    typer.echo(serialize(document.clean_text, spans, cfg.build_registry()))


@app.command("toggle")
def toggle_command(
    input_path: Path = typer.Option(..., exists=True, readable=True, dir_okay=False),
    start: int = typer.Option(..., help="Selection start (clean-text offset)."),
    end: int = typer.Option(..., help="Selection end (exclusive)."),
    tag: str = typer.Option(..., "--tag", "-t", help="Tag code or label."),
    config: Path | None = typer.Option(None, "--config", "-c"),
) -> None:
    """Toggle a tag on a clean-text range and print the resulting annotated text."""
    cfg = load_config(config)
    registry = cfg.build_registry()
    code = registry.resolve(tag)
    if code is None:
        raise typer.BadParameter(f"Unknown tag '{tag}'.", param_hint="--tag")
    parsed = parse(_read_content(input_path, cfg), registry)
    document = FlatDocument(
        parsed.clean_text, normalize_spans(parsed.clean_text, parsed.spans)
    )
    toggled = toggle_tag(document, start, end, code, registry)
    if toggled is None:
        reason = selection_blocker(document, start, end) or "toggle not allowed"
        typer.echo(f"Cannot toggle '{tag}' on [{start}, {end}): {reason}", err=True)
        raise typer.Exit(code=1)
    typer.echo(serialize(toggled.clean_text, toggled.spans, registry))


@app.command("check")
def check_command(
    input_path: Path = typer.Option(..., exists=True, readable=True, dir_okay=False),
    config: Path | None = typer.Option(None, "--config", "-c"),
) -> None:
    """Validate content and report overlapping or nested spans."""
    cfg = load_config(config)
    content = _read_content(input_path, cfg)
    validation = validate_content(content, cfg.min_script_ratio)
    document = parse(content, cfg.build_registry())
    conflicts = [
        {
            "start": conflict.span.start,
            "end": conflict.span.end,
            "text": conflict.span.text,
            "kind": conflict.kind.value,
            "reason": conflict.reason,
        }
        for conflict in span_conflicts(document.spans)
    ]
    payload = {
        "valid": validation.is_valid and not conflicts,
        "error_message": validation.error_message,
        "spans": len(document.spans),
        "conflicts": conflicts,
    }
    typer.echo(json.dumps(payload, ensure_ascii=False, indent=2))
    if not payload["valid"]:
        raise typer.Exit(code=1)


@app.command("wrap")
def wrap_command(
    input_path: Path = typer.Option(..., exists=True, readable=True, dir_okay=False),
    output_path: Path = typer.Option(..., dir_okay=False),
    config: Path | None = typer.Option(None, "--config", "-c"),
) -> None:
    """Save annotated text into a .wen envelope, keeping an existing creation time."""
    cfg = load_config(config)
    content = _read_content(input_path, cfg)
    previous: Envelope | None = None
    if output_path.exists():
        try:
            previous = parse_envelope(
                output_path.read_text(encoding="utf-8"), cfg.min_script_ratio
            )
        except EnvelopeParseError:
            typer.echo(
                f"Existing {output_path} is not a valid envelope; creating a new one.",
                err=True,
            )
    envelope = save_envelope(content, previous, version=cfg.envelope_version)
    try:
        serialized = serialize_envelope(envelope, cfg.min_script_ratio)
    except ValueError as exc:
        raise typer.BadParameter(str(exc), param_hint="--input-path") from exc
    output_path.parent.mkdir(parents=True, exist_ok=True)
    output_path.write_text(serialized, encoding="utf-8")
    typer.echo(f"Wrote {output_path}")


@app.command("unwrap")
def unwrap_command(
    input_path: Path = typer.Option(..., exists=True, readable=True, dir_okay=False),
    config: Path | None = typer.Option(None, "--config", "-c"),
) -> None:
    """Print the annotated text stored in a .wen envelope."""
    cfg = load_config(config)
    typer.echo(_read_content(input_path, cfg))


@app.command("tags")
def tags_command(config: Path | None = typer.Option(None, "--config", "-c")) -> None:
    """List the tag registry grouped by category."""
    registry = load_config(config).build_registry()
    for group in GROUPS:
        codes = registry.codes_in_group(group)
        if not codes:
            continue
        typer.echo(f"[{group}]")
        for code in codes:
            descriptor = registry.lookup(code)
            if descriptor is not None:
                typer.echo(f"  {code:<6} {descriptor.label:<4} {descriptor.description}")


@app.command("print-config")
def print_config() -> None:
    """Print the default configuration as YAML."""
    cfg = AnnotatorConfig()
    typer.echo(yaml.safe_dump(cfg.to_dict(), sort_keys=False, allow_unicode=True))


def main() -> None:
    app()


def _read_content(path: Path, config: AnnotatorConfig) -> str:
    """Read annotated text, unwrapping .wen envelopes."""
    text = path.read_text(encoding="utf-8")
    if path.suffix.lower() != ENVELOPE_SUFFIX:
        return text
    try:
        return parse_envelope(text, config.min_script_ratio).content
    except EnvelopeParseError as exc:
        raise typer.BadParameter(str(exc), param_hint="--input-path") from exc


def _document_dict(document: FlatDocument) -> DocumentPayload:
    return {
        "clean_text": document.clean_text,
        "spans": [_span_dict(span) for span in document.spans],
    }


def _span_dict(span: AnnotationSpan) -> SpanPayload:
    return {
        "start": span.start,
        "end": span.end,
        "text": span.text,
        "tags": list(span.tags),
        "count": span.count,
    }


def _document_from_json(path: Path) -> FlatDocument:
    try:
        payload = json.loads(path.read_text(encoding="utf-8"))
        clean_text = payload["clean_text"]
        spans = [
            AnnotationSpan(
                start=int(item["start"]),
                end=int(item["end"]),
                text=clean_text[int(item["start"]) : int(item["end"])],
                tags=tuple(item["tags"]),
            )
            for item in payload.get("spans", [])
        ]
    except (ValueError, KeyError, TypeError) as exc:
        raise typer.BadParameter(
            f"Invalid document JSON: {exc}", param_hint="--input-path"
        ) from exc
    return FlatDocument(clean_text=clean_text, spans=spans)


if __name__ == "__main__":
    main()
