"""NYC Open Data (Socrata) harvest of the raw 311 extract."""

from __future__ import annotations

import os
from datetime import date
from pathlib import Path

from nyc311.common.fs import write_csv_atomic, write_json
from nyc311.common.http import HttpClient, HttpRequestError, TimeoutConfig

APP_TOKEN_ENV = "SOCRATA_APP_TOKEN"


def build_where_clause(date_field: str, window_start: date) -> str:
    return f"{date_field} >= '{window_start.isoformat()}T00:00:00'"


def _app_token_headers() -> dict[str, str]:
    token = os.getenv(APP_TOKEN_ENV)
    return {"X-App-Token": token} if token else {}


def _cell(value: object) -> object:
    # Socrata returns nested objects for location columns; keep scalars only.
    if isinstance(value, (dict, list)):
        return ""
    return "" if value is None else value


def fetch_pages(client: HttpClient, socrata_config: dict, where: str) -> list[dict]:
    page_size = int(socrata_config["page_size"])
    max_pages = int(socrata_config["max_pages"])
    headers = _app_token_headers()

    rows: list[dict] = []
    for page in range(max_pages):
        params = {
            "$select": ",".join(socrata_config["select"]),
            "$where": where,
            "$order": socrata_config["order_field"],
            "$limit": page_size,
            "$offset": page * page_size,
        }
        chunk = client.get_json(
            socrata_config["endpoint"],
            params=params,
            headers=headers,
            timeout=TimeoutConfig(connect=20, read=180),
        )
        if isinstance(chunk, dict) and chunk.get("error"):
            raise HttpRequestError(f"Socrata query failed: {chunk.get('message', chunk)}")
        if not isinstance(chunk, list):
            raise HttpRequestError("Socrata response is not a row list")
        rows.extend(chunk)
        if len(chunk) < page_size:
            break
    return rows


def run_socrata_harvest(
    socrata_config: dict,
    raw_path: Path,
    data_dir: Path,
    run_id: str,
    window_start: date,
    http_client: HttpClient | None = None,
) -> dict:
    if not socrata_config["enabled"]:
        payload = {"run_id": run_id, "source": "socrata", "enabled": False, "row_count": 0}
        write_json(data_dir / "intermediate" / "socrata_harvest.json", payload)
        return payload

    where = build_where_clause(socrata_config["date_field"], window_start)
    header = list(socrata_config["select"])

    owns_client = http_client is None
    client = http_client or HttpClient()
    try:
        rows = fetch_pages(client, socrata_config, where)
    finally:
        if owns_client:
            client.close()

    write_csv_atomic(raw_path, header, ({k: _cell(row.get(k)) for k in header} for row in rows))

    payload = {
        "run_id": run_id,
        "source": "socrata",
        "enabled": True,
        "where": where,
        "row_count": len(rows),
        "raw_path": str(raw_path),
    }
    write_json(data_dir / "intermediate" / "socrata_harvest.json", payload)
    return payload
