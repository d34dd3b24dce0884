"""Configuration loading and validation."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any

from nyc311.common.errors import ConfigError
from nyc311.common.fs import read_yaml
from nyc311.common.schema import (
    validate_pipeline_config,
    validate_socrata_config,
    validate_source_columns_config,
)


@dataclass(frozen=True)
class ConfigBundle:
    pipeline: dict
    source_columns: dict
    socrata: dict


def _deep_merge(base: Any, overlay: Any) -> Any:
    if isinstance(base, dict) and isinstance(overlay, dict):
        merged = dict(base)
        for key, value in overlay.items():
            if key in merged:
                merged[key] = _deep_merge(merged[key], value)
            else:
                merged[key] = value
        return merged
    return overlay


def _load_yaml_with_overlay(path: Path, overlay_path: Path | None) -> dict:
    if not path.exists():
        raise ConfigError(f"Missing config file: {path}")
    base = read_yaml(path)
    if overlay_path is None or not overlay_path.exists():
        return base
    overlay = read_yaml(overlay_path)
    if overlay is None:
        return base
    return _deep_merge(base, overlay)


def load_all_configs(
    config_dir: Path,
    *,
    allow_unknown: bool = False,
    overlay_config_dir: Path | None = None,
) -> ConfigBundle:
    def _load(name: str) -> dict:
        overlay_path = overlay_config_dir / name if overlay_config_dir is not None else None
        return _load_yaml_with_overlay(config_dir / name, overlay_path)

    pipeline = validate_pipeline_config(_load("pipeline.yml"), allow_unknown=allow_unknown)
    source_columns = validate_source_columns_config(_load("source_columns.yml"))
    socrata = validate_socrata_config(_load("socrata.yml"))
    return ConfigBundle(pipeline=pipeline, source_columns=source_columns, socrata=socrata)


def with_window_months(bundle: ConfigBundle, months: int | None) -> ConfigBundle:
    if months is None:
        return bundle
    if months < 1:
        raise ConfigError("window months must be at least 1")
    pipeline = _deep_merge(bundle.pipeline, {"window": {"months": months}})
    return ConfigBundle(pipeline=pipeline, source_columns=bundle.source_columns, socrata=bundle.socrata)
