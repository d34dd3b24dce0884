import csv
from pathlib import Path

import pytest

from nyc311.common.constants import FACT_COLUMNS
from nyc311.common.errors import ContractError
from nyc311.common.fs import read_json, write_json
from nyc311.pipeline.reports import write_run_summary
from nyc311.pipeline.validate import run_validate

PIPELINE_CONFIG = {"output": {"fact_filename": "nyc311_fact.csv", "raw_filename": "nyc311_raw.csv"}}


def _write_csv(path: Path, header: list[str], rows: list[dict]):
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8", newline="") as f:
        writer = csv.DictWriter(f, fieldnames=header)
        writer.writeheader()
        for row in rows:
            writer.writerow(row)


def _fact(key: str, **values) -> dict:
    row = {column: "" for column in FACT_COLUMNS}
    row.update({"unique_key": key, "created_at": "2024-03-01 09:00:00"})
    row.update(values)
    return row


def test_validate_generates_fact_report(tmp_path: Path):
    _write_csv(
        tmp_path / "out" / "nyc311_fact.csv",
        list(FACT_COLUMNS),
        [
            _fact("1", latitude="40.75", longitude="-73.99", hours_to_close="2.5"),
            _fact("2", hours_to_close="200.0"),
            _fact("3"),
        ],
    )
    write_json(
        tmp_path / "intermediate" / "nyc311_build.json",
        {"loaded_rows": 9, "duplicates_collapsed": 1, "window_start": "2024-01-15"},
    )

    report_path = run_validate(PIPELINE_CONFIG, tmp_path, run_id="run-1")
    report = read_json(report_path)

    assert report["counts"]["fact_rows"] == 3
    assert report["counts"]["loaded_rows"] == 9
    assert report["counts"]["with_coordinates"] == 1
    assert report["filters"]["duplicates_collapsed"] == 1
    assert report["window"]["start"] == "2024-01-15"
    assert report["hours_to_close_buckets"] == {
        "open_or_unknown": 1,
        "under_24h": 1,
        "1_7_days": 0,
        "7_days_plus": 1,
    }
    fill = {entry["column"]: entry for entry in report["fact_fill"]}
    assert fill["unique_key"]["fill_percent"] == 100.0
    assert fill["latitude"]["filled"] == 1


def test_validate_rejects_header_mismatch(tmp_path: Path):
    header = list(FACT_COLUMNS) + ["lat_round"]
    _write_csv(tmp_path / "out" / "nyc311_fact.csv", header, [])

    with pytest.raises(ContractError, match="FACT_HEADER_MISMATCH"):
        run_validate(PIPELINE_CONFIG, tmp_path, run_id="run-2")


def test_validate_rejects_repeated_unique_keys(tmp_path: Path):
    _write_csv(tmp_path / "out" / "nyc311_fact.csv", list(FACT_COLUMNS), [_fact("1"), _fact("1")])

    with pytest.raises(ContractError, match="DUPLICATE_UNIQUE_KEYS_PRESENT"):
        run_validate(PIPELINE_CONFIG, tmp_path, run_id="run-3")


def test_run_summary_statuses(tmp_path: Path):
    missing = read_json(write_run_summary(tmp_path, "run-4", "2024-07-15T10:00:00"))
    assert missing["status"] == "error"

    _write_csv(tmp_path / "out" / "nyc311_fact.csv", list(FACT_COLUMNS), [_fact("1")])
    run_validate(PIPELINE_CONFIG, tmp_path, run_id="run-4")

    summary = read_json(write_run_summary(tmp_path, "run-4", "2024-07-15T10:00:00"))
    assert summary["status"] == "success"
    assert summary["totals"]["fact_rows"] == 1

    partial = read_json(write_run_summary(tmp_path, "run-4", "2024-07-15T10:00:00", failed_stages=["harvest"]))
    assert partial["status"] == "partial"
    assert partial["failed_stages"] == ["harvest"]
