"""Near-duplicate collapse over a coarsened composite key."""

from __future__ import annotations

from datetime import datetime

from nyc311.common.deterministic import stable_sorted

DEDUP_KEY_FIELDS = ("complaint_type", "borough", "lat_round", "lng_round", "created_hour_bucket")


def hour_bucket(value: datetime | None) -> datetime | None:
    if value is None:
        return None
    return value.replace(minute=0, second=0, microsecond=0)


def round_coordinate(value: float | None, digits: int) -> float | None:
    if value is None:
        return None
    return round(value, digits)


def enrich_for_dedup(row: dict, round_digits: int) -> dict:
    enriched = dict(row)
    enriched["created_hour_bucket"] = hour_bucket(row.get("created_at"))
    enriched["lat_round"] = round_coordinate(row.get("latitude"), round_digits)
    enriched["lng_round"] = round_coordinate(row.get("longitude"), round_digits)
    return enriched


def dedup_key(row: dict) -> tuple:
    # Plain tuple equality: a None component only matches another None.
    return tuple(row.get(field) for field in DEDUP_KEY_FIELDS)


def _created_order(row: dict) -> tuple[bool, datetime]:
    created = row.get("created_at")
    return (created is None, created or datetime.min)


def collapse_near_duplicates(rows: list[dict], dedup_config: dict) -> list[dict]:
    """Keep the earliest-created row for each dedup key.

    Rows are stably sorted by ``created_at`` first, so between equal
    timestamps the one that came first in the input survives. ``status`` and
    ``descriptor`` are not part of the key: tickets that differ only there
    collapse into one.
    """
    round_digits = int(dedup_config.get("round_digits", 5))
    enriched = [enrich_for_dedup(row, round_digits) for row in rows]
    ordered = stable_sorted(enriched, key=_created_order)

    seen: set[tuple] = set()
    survivors: list[dict] = []
    for row in ordered:
        key = dedup_key(row)
        if key in seen:
            continue
        seen.add(key)
        survivors.append(row)
    return survivors
