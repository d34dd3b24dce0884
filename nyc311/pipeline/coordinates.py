"""Coordinate pair validation against the city bounding box."""

from __future__ import annotations


def within_bounds(lat: float | None, lon: float | None, bounds: dict) -> bool:
    if lat is None or lon is None:
        return False
    return (
        bounds["lat_min"] <= lat <= bounds["lat_max"]
        and bounds["lon_min"] <= lon <= bounds["lon_max"]
    )


def validate_coordinates(rows: list[dict], bounds: dict) -> tuple[list[dict], int]:
    """Null latitude and longitude together unless both sit inside ``bounds``.

    Returns the new rows and how many previously non-null pairs were cleared.
    """
    out: list[dict] = []
    cleared = 0
    for row in rows:
        lat = row.get("latitude")
        lon = row.get("longitude")
        if within_bounds(lat, lon, bounds):
            out.append(row)
            continue
        if lat is not None or lon is not None:
            cleared += 1
        validated = dict(row)
        validated["latitude"] = None
        validated["longitude"] = None
        out.append(validated)
    return out, cleared
