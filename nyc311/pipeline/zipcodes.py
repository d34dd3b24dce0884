"""Incident zip stage."""

from __future__ import annotations

from nyc311.common.zipcode import normalise_zip


def normalise_incident_zips(rows: list[dict], zip_config: dict) -> tuple[list[dict], int]:
    length = int(zip_config.get("length", 5))
    out: list[dict] = []
    nulled = 0
    for row in rows:
        raw = row.get("incident_zip")
        normalised = dict(row)
        normalised["incident_zip"] = normalise_zip(raw, length=length)
        if raw is not None and normalised["incident_zip"] is None:
            nulled += 1
        out.append(normalised)
    return out, nulled
