"""Time-to-close derivation and implausible duration rejection."""

from __future__ import annotations

from datetime import datetime

SECONDS_PER_HOUR = 3600.0


def hours_between(start: datetime | None, end: datetime | None) -> float | None:
    if start is None or end is None:
        return None
    return (end - start).total_seconds() / SECONDS_PER_HOUR


def derive_hours_to_close(rows: list[dict], duration_config: dict) -> tuple[list[dict], int]:
    """Add ``hours_to_close`` and drop rows whose value falls outside the range.

    A null duration means the request is not closed yet (or a date is
    missing); those rows are kept.
    """
    min_hours = float(duration_config["min_hours"])
    max_hours = float(duration_config["max_hours"])

    out: list[dict] = []
    rejected = 0
    for row in rows:
        hours = hours_between(row.get("created_at"), row.get("closed_at"))
        if hours is not None and not (min_hours <= hours <= max_hours):
            rejected += 1
            continue
        enriched = dict(row)
        enriched["hours_to_close"] = hours
        out.append(enriched)
    return out, rejected
