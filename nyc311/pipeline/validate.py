"""Validation stage and fact table quality report generation."""

from __future__ import annotations

import csv
from collections import Counter
from pathlib import Path

from nyc311.common.constants import DATASET, FACT_COLUMNS
from nyc311.common.errors import ContractError, StageError
from nyc311.common.fs import read_json, write_json


def _read_csv_rows(path: Path) -> tuple[list[str], list[dict]]:
    if not path.exists():
        raise StageError(f"Missing CSV input: {path}")
    with path.open("r", encoding="utf-8", newline="") as f:
        reader = csv.DictReader(f)
        return list(reader.fieldnames or []), list(reader)


def _compute_fill_rates(header: list[str], rows: list[dict]) -> list[dict]:
    total = len(rows)
    stats = []
    for column in header:
        filled = sum(1 for row in rows if row.get(column, "") not in ("", None))
        null = total - filled
        fill_percent = 0.0 if total == 0 else round((filled / total) * 100, 2)
        stats.append({"column": column, "filled": filled, "null": null, "fill_percent": fill_percent})
    return stats


def _percent(part: int, total: int) -> float:
    return 0.0 if total == 0 else round((part / total) * 100, 2)


def _hours_buckets(rows: list[dict]) -> dict[str, int]:
    buckets = {"open_or_unknown": 0, "under_24h": 0, "1_7_days": 0, "7_days_plus": 0}
    for row in rows:
        raw = row.get("hours_to_close") or ""
        if raw == "":
            buckets["open_or_unknown"] += 1
            continue
        hours = float(raw)
        if hours < 24:
            buckets["under_24h"] += 1
        elif hours < 24 * 7:
            buckets["1_7_days"] += 1
        else:
            buckets["7_days_plus"] += 1
    return buckets


def fact_contract_errors(header: list[str], rows: list[dict]) -> list[str]:
    errors: list[str] = []
    if header != list(FACT_COLUMNS):
        errors.append("FACT_HEADER_MISMATCH")

    key_counts = Counter(row.get("unique_key") for row in rows)
    repeated_keys = sum(count - 1 for count in key_counts.values() if count > 1)
    if repeated_keys > 0:
        errors.append("DUPLICATE_UNIQUE_KEYS_PRESENT")
    if any(not row.get("unique_key") for row in rows):
        errors.append("MISSING_UNIQUE_KEY")
    return errors


def run_validate(pipeline_config: dict, data_dir: Path, run_id: str) -> Path:
    fact_path = data_dir / "out" / pipeline_config["output"]["fact_filename"]
    build_path = data_dir / "intermediate" / f"{DATASET}_build.json"

    header, rows = _read_csv_rows(fact_path)
    build = read_json(build_path) if build_path.exists() else {}

    warnings: list[str] = []
    errors = fact_contract_errors(header, rows)
    if errors:
        raise ContractError(";".join(errors))

    if not rows:
        warnings.append("EMPTY_FACT_TABLE")

    with_coordinates = sum(1 for row in rows if row.get("latitude") and row.get("longitude"))
    with_duration = sum(1 for row in rows if row.get("hours_to_close"))

    report_payload = {
        "dataset": DATASET,
        "run_id": run_id,
        "counts": {
            "loaded_rows": int(build.get("loaded_rows", 0)),
            "fact_rows": len(rows),
            "with_coordinates": with_coordinates,
            "without_coordinates": len(rows) - with_coordinates,
            "with_hours_to_close": with_duration,
        },
        "filters": {
            "zips_nulled": int(build.get("zips_nulled", 0)),
            "coordinates_nulled": int(build.get("coordinates_nulled", 0)),
            "durations_rejected": int(build.get("durations_rejected", 0)),
            "window_dropped": int(build.get("window_dropped", 0)),
            "keys_missing": int(build.get("keys_missing", 0)),
            "duplicates_collapsed": int(build.get("duplicates_collapsed", 0)),
        },
        "window": {
            "reference_now": build.get("reference_now"),
            "start": build.get("window_start"),
            "end_exclusive": build.get("window_end_exclusive"),
        },
        "quality": {
            "coordinate_coverage_percent": _percent(with_coordinates, len(rows)),
            "duration_coverage_percent": _percent(with_duration, len(rows)),
        },
        "hours_to_close_buckets": _hours_buckets(rows),
        "fact_fill": _compute_fill_rates(header, rows),
        "steps": build.get("steps", []),
        "warnings": warnings,
        "errors": errors,
    }

    report_path = data_dir / "out" / "reports" / "fact_report.json"
    write_json(report_path, report_payload)
    return report_path
