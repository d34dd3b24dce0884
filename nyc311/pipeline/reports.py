"""Run report aggregation."""

from __future__ import annotations

from pathlib import Path

from nyc311.common.fs import read_json, write_json


def write_run_summary(
    data_dir: Path,
    run_id: str,
    reference_now: str,
    *,
    failed_stages: list[str] | None = None,
) -> Path:
    failed_stages = sorted(failed_stages or [])
    report_path = data_dir / "out" / "reports" / "fact_report.json"

    if report_path.exists():
        report = read_json(report_path)
        fact_report = {
            "counts": report.get("counts", {}),
            "filters": report.get("filters", {}),
            "window": report.get("window", {}),
            "warnings": report.get("warnings", []),
            "errors": report.get("errors", []),
        }
    else:
        fact_report = {"status": "missing_report"}

    warning_count = len(fact_report.get("warnings", []))
    error_count = len(fact_report.get("errors", [])) + (1 if "status" in fact_report else 0)

    status = "success"
    if error_count > 0:
        status = "error"
    elif warning_count > 0 or failed_stages:
        status = "partial"

    summary_path = data_dir / "out" / "reports" / "run_summary.json"
    payload = {
        "run_id": run_id,
        "reference_now": reference_now,
        "status": status,
        "failed_stages": failed_stages,
        "totals": fact_report.get("counts", {}),
        "warning_count": warning_count,
        "error_count": error_count,
        "fact_report": fact_report,
    }
    write_json(summary_path, payload)
    return summary_path
