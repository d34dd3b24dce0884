"""Minimal strict schemas for YAML config validation."""

from __future__ import annotations

from nyc311.common.constants import FIELD_TYPES
from nyc311.common.errors import ConfigError


def _assert_required_keys(obj: dict, required: set[str], ctx: str) -> None:
    if not isinstance(obj, dict):
        raise ConfigError(f"{ctx} must be a mapping")
    missing = required - set(obj)
    if missing:
        missing_str = ", ".join(sorted(missing))
        raise ConfigError(f"Missing keys in {ctx}: {missing_str}")


def _assert_no_unknown_keys(obj: dict, known: set[str], ctx: str, allow_unknown: bool) -> None:
    if allow_unknown:
        return
    unknown = set(obj) - known
    if unknown:
        unknown_str = ", ".join(sorted(unknown))
        raise ConfigError(f"Unknown keys in {ctx}: {unknown_str}")


def _assert_ordered_range(low: float, high: float, ctx: str) -> None:
    if float(low) > float(high):
        raise ConfigError(f"{ctx} lower bound {low} exceeds upper bound {high}")


def validate_pipeline_config(cfg: dict, *, allow_unknown: bool = False) -> dict:
    top_required = {"window", "geo", "duration", "zip", "dedup", "text", "columns", "output"}
    _assert_required_keys(cfg, top_required, "pipeline config")
    _assert_no_unknown_keys(cfg, top_required, "pipeline config", allow_unknown)

    _assert_required_keys(cfg["window"], {"months"}, "window")
    if int(cfg["window"]["months"]) < 1:
        raise ConfigError("window.months must be at least 1")

    _assert_required_keys(cfg["geo"], {"lat_min", "lat_max", "lon_min", "lon_max"}, "geo")
    _assert_ordered_range(cfg["geo"]["lat_min"], cfg["geo"]["lat_max"], "geo latitude")
    _assert_ordered_range(cfg["geo"]["lon_min"], cfg["geo"]["lon_max"], "geo longitude")

    _assert_required_keys(cfg["duration"], {"min_hours", "max_hours"}, "duration")
    _assert_ordered_range(cfg["duration"]["min_hours"], cfg["duration"]["max_hours"], "duration")

    _assert_required_keys(cfg["zip"], {"length"}, "zip")
    _assert_required_keys(cfg["dedup"], {"round_digits"}, "dedup")
    _assert_required_keys(cfg["text"], {"upper_fields", "title_fields"}, "text")
    overlap = set(cfg["text"]["upper_fields"]) & set(cfg["text"]["title_fields"])
    if overlap:
        raise ConfigError(f"Fields with conflicting casing rules: {', '.join(sorted(overlap))}")

    _assert_required_keys(cfg["columns"], {"keep"}, "columns")
    if not isinstance(cfg["columns"]["keep"], list) or not cfg["columns"]["keep"]:
        raise ConfigError("columns.keep must be a non-empty list")

    _assert_required_keys(cfg["output"], {"fact_filename", "raw_filename"}, "output")
    return cfg


def validate_source_columns_config(cfg: dict) -> dict:
    _assert_required_keys(cfg, {"version", "datetime_formats", "columns"}, "source_columns")
    if not isinstance(cfg["columns"], list) or not cfg["columns"]:
        raise ConfigError("source_columns.columns must be a non-empty list")

    names: list[str] = []
    for idx, col in enumerate(cfg["columns"]):
        _assert_required_keys(col, {"name", "type", "candidates"}, f"columns[{idx}]")
        if col["type"] not in FIELD_TYPES:
            raise ConfigError(f"Unsupported type for column {col['name']}: {col['type']}")
        if not col["candidates"]:
            raise ConfigError(f"Column {col['name']} has no header candidates")
        names.append(col["name"])

    dupes = {name for name in names if names.count(name) > 1}
    if dupes:
        raise ConfigError(f"Duplicate source columns: {', '.join(sorted(dupes))}")

    return cfg


def validate_socrata_config(cfg: dict) -> dict:
    _assert_required_keys(
        cfg,
        {"enabled", "endpoint", "page_size", "max_pages", "date_field", "order_field", "select"},
        "socrata",
    )
    if int(cfg["page_size"]) < 1:
        raise ConfigError("socrata.page_size must be positive")
    return cfg
