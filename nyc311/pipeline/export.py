"""Fact table CSV export."""

from __future__ import annotations

from datetime import datetime
from pathlib import Path

from nyc311.common.constants import FACT_COLUMNS
from nyc311.common.fs import write_csv_atomic


def _serialize_value(value: object) -> object:
    if value is None:
        return ""
    if isinstance(value, datetime):
        return value.isoformat(sep=" ")
    if isinstance(value, float):
        return repr(value)
    return value


def _serialize_row(row: dict) -> dict:
    return {key: _serialize_value(row.get(key)) for key in FACT_COLUMNS}


def write_fact_csv(out_path: Path, rows: list[dict]) -> Path:
    # Rows arrive in the canonical created_at order; keep it.
    write_csv_atomic(out_path, list(FACT_COLUMNS), (_serialize_row(row) for row in rows))
    return out_path
