import copy

import pytest

from nyc311.common.errors import ConfigError
from nyc311.common.schema import (
    validate_pipeline_config,
    validate_socrata_config,
    validate_source_columns_config,
)

BASE_PIPELINE = {
    "window": {"months": 6},
    "geo": {"lat_min": 40.40, "lat_max": 40.95, "lon_min": -74.30, "lon_max": -73.65},
    "duration": {"min_hours": -0.1, "max_hours": 720.0},
    "zip": {"length": 5},
    "dedup": {"round_digits": 5},
    "text": {"upper_fields": ["agency"], "title_fields": ["city"]},
    "columns": {"keep": ["unique_key"]},
    "output": {"fact_filename": "a.csv", "raw_filename": "b.csv"},
}


def test_validate_pipeline_config_accepts_valid_shape():
    validated = validate_pipeline_config(copy.deepcopy(BASE_PIPELINE))
    assert validated["window"]["months"] == 6


def test_validate_pipeline_config_rejects_unknown_key_by_default():
    bad = copy.deepcopy(BASE_PIPELINE)
    bad["unexpected"] = True
    with pytest.raises(ConfigError):
        validate_pipeline_config(bad)
    validate_pipeline_config(bad, allow_unknown=True)


def test_validate_pipeline_config_rejects_inverted_bounds():
    bad = copy.deepcopy(BASE_PIPELINE)
    bad["geo"]["lat_min"] = 41.0
    with pytest.raises(ConfigError):
        validate_pipeline_config(bad)


def test_validate_pipeline_config_rejects_conflicting_casing():
    bad = copy.deepcopy(BASE_PIPELINE)
    bad["text"]["title_fields"] = ["agency"]
    with pytest.raises(ConfigError):
        validate_pipeline_config(bad)


def test_validate_pipeline_config_rejects_zero_month_window():
    bad = copy.deepcopy(BASE_PIPELINE)
    bad["window"]["months"] = 0
    with pytest.raises(ConfigError):
        validate_pipeline_config(bad)


def test_validate_source_columns_rejects_duplicates_and_unknown_types():
    dupes = {
        "version": "1",
        "datetime_formats": [],
        "columns": [
            {"name": "unique_key", "type": "string", "candidates": ["Unique Key"]},
            {"name": "unique_key", "type": "string", "candidates": ["unique_key"]},
        ],
    }
    with pytest.raises(ConfigError):
        validate_source_columns_config(dupes)

    bad_type = {
        "version": "1",
        "datetime_formats": [],
        "columns": [{"name": "latitude", "type": "decimal", "candidates": ["Latitude"]}],
    }
    with pytest.raises(ConfigError):
        validate_source_columns_config(bad_type)


def test_validate_socrata_config_requires_keys():
    with pytest.raises(ConfigError):
        validate_socrata_config({"enabled": True})
