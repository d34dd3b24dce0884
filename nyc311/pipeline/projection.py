"""Column pruning and final fact projection."""

from __future__ import annotations

from typing import Iterable

from nyc311.common.constants import FACT_COLUMNS


def prune_columns(rows: list[dict], keep: Iterable[str]) -> list[dict]:
    allowed = set(keep)
    return [{key: value for key, value in row.items() if key in allowed} for row in rows]


def project_facts(rows: list[dict], columns: Iterable[str] = FACT_COLUMNS) -> list[dict]:
    ordered = list(columns)
    return [{column: row.get(column) for column in ordered} for row in rows]
