import shutil
from pathlib import Path

import pytest

from nyc311.cli import parse_args, run_command

FIXTURE = Path("tests/fixtures/nyc311_sample.csv")


def _run_once(data_dir: Path, run_id: str) -> None:
    (data_dir / "raw").mkdir(parents=True)
    shutil.copy(FIXTURE, data_dir / "raw" / "nyc311_raw.csv")
    args = parse_args(
        [
            "build",
            "--config-dir",
            "config",
            "--data-dir",
            str(data_dir),
            "--reference-now",
            "2024-07-15T10:00:00",
            "--run-id",
            run_id,
        ]
    )
    assert run_command(args) == 0


@pytest.mark.regression
def test_fact_outputs_are_byte_stable_for_same_inputs_and_reference_time(tmp_path: Path):
    first = tmp_path / "first"
    second = tmp_path / "second"

    _run_once(first, "run-a")
    _run_once(second, "run-b")

    first_bytes = (first / "out" / "nyc311_fact.csv").read_bytes()
    second_bytes = (second / "out" / "nyc311_fact.csv").read_bytes()
    assert first_bytes == second_bytes


@pytest.mark.regression
def test_fact_output_snapshot(tmp_path: Path):
    _run_once(tmp_path, "run-c")

    lines = (tmp_path / "out" / "nyc311_fact.csv").read_text(encoding="utf-8").splitlines()

    assert lines[0] == (
        "unique_key,created_at,closed_at,resolution_updated_at,agency,complaint_type,descriptor,"
        "status,borough,city,incident_zip,location_type,address_type,latitude,longitude,hours_to_close"
    )
    assert lines[2] == (
        "1001,2024-03-01 09:00:00,2024-03-01 11:30:00,2024-03-01 11:30:00,NYPD,Noise - Residential,"
        "Loud Music/Party,Closed,MANHATTAN,New York,10001,Residential Building/House,Address,"
        "40.75001,-73.99001,2.5"
    )
    assert len(lines) == 5
