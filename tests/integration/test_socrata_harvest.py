from __future__ import annotations

import csv
from datetime import date
from pathlib import Path

import pytest

from nyc311.common.http import HttpRequestError
from nyc311.harvest.socrata_harvest import build_where_clause, run_socrata_harvest

SOCRATA_CONFIG = {
    "enabled": True,
    "endpoint": "https://data.example.test/resource/erm2-nwe9.json",
    "page_size": 2,
    "max_pages": 10,
    "date_field": "created_date",
    "order_field": "created_date,unique_key",
    "select": ["unique_key", "created_date", "incident_zip", "latitude"],
}


class FakeHttpClient:
    def __init__(self, pages: list):
        self.pages = list(pages)
        self.calls: list[tuple[str, dict]] = []

    def get_json(self, url: str, **kwargs):
        self.calls.append((url, kwargs))
        return self.pages.pop(0)

    def close(self):
        return None


def test_build_where_clause():
    assert build_where_clause("created_date", date(2024, 1, 15)) == "created_date >= '2024-01-15T00:00:00'"


@pytest.mark.integration
def test_harvest_pages_until_short_page_and_writes_csv(tmp_path: Path, monkeypatch):
    monkeypatch.setenv("SOCRATA_APP_TOKEN", "token-123")
    client = FakeHttpClient(
        [
            [
                {"unique_key": "1", "created_date": "2024-03-01T09:00:00.000", "incident_zip": "10001"},
                {"unique_key": "2", "created_date": "2024-03-01T09:30:00.000", "location": {"type": "Point"}},
            ],
            [{"unique_key": "3", "created_date": "2024-03-02T10:00:00.000", "latitude": "40.7"}],
        ]
    )
    raw_path = tmp_path / "raw" / "nyc311_raw.csv"

    payload = run_socrata_harvest(
        SOCRATA_CONFIG,
        raw_path,
        tmp_path,
        run_id="run-1",
        window_start=date(2024, 1, 15),
        http_client=client,
    )

    assert payload["row_count"] == 3
    assert len(client.calls) == 2
    first_params = client.calls[0][1]["params"]
    assert first_params["$where"] == "created_date >= '2024-01-15T00:00:00'"
    assert first_params["$offset"] == 0
    assert client.calls[1][1]["params"]["$offset"] == 2
    assert client.calls[0][1]["headers"] == {"X-App-Token": "token-123"}

    with raw_path.open("r", encoding="utf-8", newline="") as f:
        reader = csv.DictReader(f)
        rows = list(reader)
    assert reader.fieldnames == SOCRATA_CONFIG["select"]
    assert [row["unique_key"] for row in rows] == ["1", "2", "3"]
    assert rows[1]["incident_zip"] == ""
    assert (tmp_path / "intermediate" / "socrata_harvest.json").exists()


@pytest.mark.integration
def test_harvest_disabled_leaves_raw_extract_alone(tmp_path: Path):
    raw_path = tmp_path / "raw.csv"
    raw_path.write_text("previous\n", encoding="utf-8")
    config = dict(SOCRATA_CONFIG, enabled=False)

    payload = run_socrata_harvest(config, raw_path, tmp_path, "run-2", date(2024, 1, 15), http_client=FakeHttpClient([]))

    assert payload["enabled"] is False
    assert raw_path.read_text(encoding="utf-8") == "previous\n"


@pytest.mark.integration
def test_harvest_error_payload_keeps_previous_extract(tmp_path: Path):
    raw_path = tmp_path / "raw.csv"
    raw_path.write_text("previous\n", encoding="utf-8")
    client = FakeHttpClient([{"error": True, "message": "query timeout"}])

    with pytest.raises(HttpRequestError):
        run_socrata_harvest(SOCRATA_CONFIG, raw_path, tmp_path, "run-3", date(2024, 1, 15), http_client=client)

    assert raw_path.read_text(encoding="utf-8") == "previous\n"
