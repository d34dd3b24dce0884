"""Raw extract loading and per-column type coercion."""

from __future__ import annotations

import csv
import math
import re
from datetime import datetime
from pathlib import Path
from typing import Any, Callable

from nyc311.common.errors import LoadError

_NON_WORD_RE = re.compile(r"[^0-9a-z]+")


def field_name_for_header(header: str) -> str:
    return _NON_WORD_RE.sub("_", header.strip().lower()).strip("_")


def _blank_to_none(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value)
    if not text.strip():
        return None
    return text


def coerce_string(value: Any) -> str | None:
    return _blank_to_none(value)


def coerce_float(value: Any) -> float | None:
    text = _blank_to_none(value)
    if text is None:
        return None
    try:
        number = float(text.strip())
    except (TypeError, ValueError):
        return None
    if not math.isfinite(number):
        return None
    return number


def coerce_datetime(value: Any, formats: list[str]) -> datetime | None:
    text = _blank_to_none(value)
    if text is None:
        return None
    text = text.strip()
    for fmt in formats:
        try:
            return datetime.strptime(text, fmt)
        except ValueError:
            continue
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None
    # Everything downstream compares naive local times.
    return parsed.replace(tzinfo=None)


def _coercer(column_type: str, datetime_formats: list[str]) -> Callable[[Any], Any]:
    if column_type == "datetime":
        return lambda value: coerce_datetime(value, datetime_formats)
    if column_type == "float":
        return coerce_float
    return coerce_string


def resolve_header_mapping(header: list[str], source_columns: dict) -> dict[str, str]:
    """Map each declared column name to the header that carries it.

    A declared column with none of its candidates present is a structural
    failure: the extract does not match the versioned input schema.
    """
    present = set(header)
    mapping: dict[str, str] = {}
    missing: list[str] = []
    for column in source_columns["columns"]:
        match = next((c for c in column["candidates"] if c in present), None)
        if match is None:
            missing.append(column["name"])
        else:
            mapping[column["name"]] = match
    if missing:
        version = source_columns.get("version")
        raise LoadError(f"Missing required columns for schema v{version}: {', '.join(missing)}")
    return mapping


def type_rows(header: list[str], raw_rows: list[dict], source_columns: dict) -> list[dict]:
    mapping = resolve_header_mapping(header, source_columns)
    formats = list(source_columns.get("datetime_formats") or [])
    coercers = {
        column["name"]: _coercer(column["type"], formats) for column in source_columns["columns"]
    }

    claimed = set(mapping.values())
    passthrough = [(h, field_name_for_header(h)) for h in header if h not in claimed]
    passthrough = [(h, name) for h, name in passthrough if name and name not in mapping]

    typed: list[dict] = []
    for raw in raw_rows:
        record = {name: coercers[name](raw.get(source)) for name, source in mapping.items()}
        for source, name in passthrough:
            record.setdefault(name, coerce_string(raw.get(source)))
        typed.append(record)
    return typed


def drop_keyless_rows(rows: list[dict]) -> list[dict]:
    # unique_key is the row identity; a row without one cannot be published.
    return [row for row in rows if row.get("unique_key") is not None]


def load_typed_records(path: Path, source_columns: dict) -> list[dict]:
    if not path.exists():
        raise LoadError(f"Missing raw extract: {path}")
    try:
        with path.open("r", encoding="utf-8-sig", newline="") as f:
            reader = csv.DictReader(f)
            header = list(reader.fieldnames or [])
            raw_rows = list(reader)
    except (OSError, UnicodeDecodeError, csv.Error) as exc:
        raise LoadError(f"Unreadable raw extract {path}: {exc}") from exc
    if not header:
        raise LoadError(f"Raw extract has no header row: {path}")
    return type_rows(header, raw_rows, source_columns)
