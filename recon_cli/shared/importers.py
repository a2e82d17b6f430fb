"""Record-batch loaders shared across CLIs."""

from __future__ import annotations

import csv
import io
import json
import sys
from pathlib import Path
from typing import Any, Mapping, TextIO

from .exceptions import ImportDataError

STDIN_MARKER = "-"
SUPPORTED_SUFFIXES = (".json", ".jsonl", ".ndjson", ".csv")


def load_records(source: str | Path, *, stdin: TextIO | None = None) -> list[dict[str, Any]]:
    """Load an import batch from a JSON array, JSON-lines or CSV file, or stdin (``-``).

    Stdin content is sniffed: a leading ``[`` means a JSON array, a leading ``{``
    means JSON-lines, anything else is read as CSV.
    """
    if str(source) == STDIN_MARKER:
        text = (stdin or sys.stdin).read()
        return _parse_text(text, _sniff_format(text), source_name="<stdin>")

    path = Path(source).expanduser()
    if not path.exists():
        raise ImportDataError(f"Import file not found: {path}")
    suffix = path.suffix.lower()
    if suffix not in SUPPORTED_SUFFIXES:
        raise ImportDataError(
            f"Unsupported import file type '{suffix or path.name}'; "
            f"expected one of {', '.join(SUPPORTED_SUFFIXES)}"
        )
    try:
        text = path.read_text(encoding="utf-8-sig")
    except (OSError, UnicodeDecodeError) as exc:
        raise ImportDataError(f"Cannot read import file {path}: {exc}") from exc
    fmt = "jsonl" if suffix in {".jsonl", ".ndjson"} else suffix.lstrip(".")
    return _parse_text(text, fmt, source_name=str(path))


def default_source_name(source: str | Path) -> str:
    """Name an import after its file stem; stdin imports are called ``stdin``."""
    if str(source) == STDIN_MARKER:
        return "stdin"
    return Path(source).stem


def _sniff_format(text: str) -> str:
    stripped = text.lstrip()
    if stripped.startswith("["):
        return "json"
    if stripped.startswith("{"):
        return "jsonl"
    return "csv"


def _parse_text(text: str, fmt: str, *, source_name: str) -> list[dict[str, Any]]:
    if fmt == "json":
        records = _parse_json(text, source_name)
    elif fmt == "jsonl":
        records = _parse_json_lines(text, source_name)
    else:
        records = _parse_csv(text, source_name)
    if not records:
        raise ImportDataError(f"{source_name}: no records found")
    return records


def _parse_json(text: str, source_name: str) -> list[dict[str, Any]]:
    try:
        payload = json.loads(text)
    except json.JSONDecodeError as exc:
        raise ImportDataError(f"{source_name}: invalid JSON: {exc}") from exc
    if isinstance(payload, Mapping):
        # A single object or a {"records": [...]} envelope.
        payload = payload.get("records", [payload])
    if not isinstance(payload, list):
        raise ImportDataError(f"{source_name}: expected a JSON array of objects")
    return [_as_record(item, source_name, index) for index, item in enumerate(payload)]


def _parse_json_lines(text: str, source_name: str) -> list[dict[str, Any]]:
    records: list[dict[str, Any]] = []
    for line_number, line in enumerate(text.splitlines(), start=1):
        if not line.strip():
            continue
        try:
            item = json.loads(line)
        except json.JSONDecodeError as exc:
            raise ImportDataError(f"{source_name}:{line_number}: invalid JSON: {exc}") from exc
        records.append(_as_record(item, source_name, line_number))
    return records


def _parse_csv(text: str, source_name: str) -> list[dict[str, Any]]:
    reader = csv.DictReader(io.StringIO(text))
    if not reader.fieldnames:
        raise ImportDataError(f"{source_name}: CSV input has no header row")
    records: list[dict[str, Any]] = []
    for row in reader:
        if None in row:
            raise ImportDataError(
                f"{source_name}:{reader.line_num}: row has more values than header columns"
            )
        # Empty cells carry no sample value.
        records.append({key: (value if value != "" else None) for key, value in row.items()})
    return records


def _as_record(item: Any, source_name: str, position: int) -> dict[str, Any]:
    if not isinstance(item, Mapping):
        raise ImportDataError(
            f"{source_name}: record {position} is {type(item).__name__}, expected an object"
        )
    return dict(item)
