"""Fact table build: the ordered normalisation and dedup pipeline."""

from __future__ import annotations

import logging
import time
from datetime import datetime
from pathlib import Path

from nyc311.common.constants import DATASET, FACT_COLUMNS
from nyc311.common.errors import ContractError
from nyc311.common.fs import write_json
from nyc311.common.logging import log_event
from nyc311.pipeline.coordinates import validate_coordinates
from nyc311.pipeline.dedup import collapse_near_duplicates
from nyc311.pipeline.duration import derive_hours_to_close
from nyc311.pipeline.export import write_fact_csv
from nyc311.pipeline.loader import drop_keyless_rows, load_typed_records
from nyc311.pipeline.projection import project_facts, prune_columns
from nyc311.pipeline.temporal import filter_to_window, resolve_window
from nyc311.pipeline.validate import fact_contract_errors
from nyc311.pipeline.text import normalise_text_fields
from nyc311.pipeline.zipcodes import normalise_incident_zips


class _StepRecorder:
    def __init__(self, logger: logging.Logger | None, run_id: str | None) -> None:
        self.logger = logger
        self.run_id = run_id
        self.steps: list[dict] = []

    def record(self, name: str, rows_in: int, rows_out: int, started: float) -> None:
        duration_ms = int((time.perf_counter() - started) * 1000)
        self.steps.append({"step": name, "rows_in": rows_in, "rows_out": rows_out})
        if self.logger is not None:
            log_event(
                self.logger,
                f"{name} done",
                run_id=self.run_id,
                stage="build",
                dataset=DATASET,
                source=name,
                event="STAGE_STEP",
                status="ok",
                rows_in=rows_in,
                rows_out=rows_out,
                duration_ms=duration_ms,
            )


def run_pipeline(
    typed_rows: list[dict],
    pipeline_config: dict,
    reference_now: datetime,
    *,
    logger: logging.Logger | None = None,
    run_id: str | None = None,
) -> tuple[list[dict], dict]:
    """Run every post-load stage in order and return fact rows plus counters.

    ``reference_now`` anchors the rolling window. It is captured once per run
    by the caller so the stage never reads the clock itself.
    """
    recorder = _StepRecorder(logger, run_id)
    rows = typed_rows

    started = time.perf_counter()
    out = normalise_text_fields(rows, pipeline_config["text"])
    recorder.record("text", len(rows), len(out), started)
    rows = out

    started = time.perf_counter()
    out = drop_keyless_rows(rows)
    recorder.record("keys", len(rows), len(out), started)
    keys_missing = len(rows) - len(out)
    rows = out

    started = time.perf_counter()
    out, zips_nulled = normalise_incident_zips(rows, pipeline_config["zip"])
    recorder.record("zip", len(rows), len(out), started)
    rows = out

    started = time.perf_counter()
    out, coordinates_nulled = validate_coordinates(rows, pipeline_config["geo"])
    recorder.record("geo", len(rows), len(out), started)
    rows = out

    started = time.perf_counter()
    out, durations_rejected = derive_hours_to_close(rows, pipeline_config["duration"])
    recorder.record("duration", len(rows), len(out), started)
    rows = out

    window = resolve_window(reference_now, int(pipeline_config["window"]["months"]))
    started = time.perf_counter()
    out = filter_to_window(rows, window)
    recorder.record("window", len(rows), len(out), started)
    window_dropped = len(rows) - len(out)
    rows = out

    started = time.perf_counter()
    out = prune_columns(rows, pipeline_config["columns"]["keep"])
    recorder.record("prune", len(rows), len(out), started)
    rows = out

    started = time.perf_counter()
    out = collapse_near_duplicates(rows, pipeline_config["dedup"])
    recorder.record("dedup", len(rows), len(out), started)
    duplicates_collapsed = len(rows) - len(out)
    rows = out

    started = time.perf_counter()
    facts = project_facts(rows)
    recorder.record("project", len(rows), len(facts), started)

    stats = {
        "loaded_rows": len(typed_rows),
        "fact_rows": len(facts),
        "reference_now": reference_now.isoformat(),
        "window_start": window.start.isoformat(),
        "window_end_exclusive": window.end_exclusive.isoformat(),
        "keys_missing": keys_missing,
        "zips_nulled": zips_nulled,
        "coordinates_nulled": coordinates_nulled,
        "durations_rejected": durations_rejected,
        "window_dropped": window_dropped,
        "duplicates_collapsed": duplicates_collapsed,
        "steps": recorder.steps,
    }
    return facts, stats


def run_build(
    config_bundle,
    data_dir: Path,
    run_id: str,
    reference_now: datetime,
    *,
    input_path: Path | None = None,
    logger: logging.Logger | None = None,
) -> dict:
    pipeline_config = config_bundle.pipeline
    output_cfg = pipeline_config["output"]
    raw_path = input_path or data_dir / "raw" / output_cfg["raw_filename"]

    started = time.perf_counter()
    typed_rows = load_typed_records(raw_path, config_bundle.source_columns)
    if logger is not None:
        log_event(
            logger,
            f"loaded {raw_path}",
            run_id=run_id,
            stage="build",
            dataset=DATASET,
            source="load",
            event="STAGE_STEP",
            status="ok",
            rows_out=len(typed_rows),
            duration_ms=int((time.perf_counter() - started) * 1000),
        )

    facts, stats = run_pipeline(
        typed_rows,
        pipeline_config,
        reference_now,
        logger=logger,
        run_id=run_id,
    )
    # The previous table is only replaced by one that passes the contract.
    errors = fact_contract_errors(list(FACT_COLUMNS), facts)
    if errors:
        raise ContractError(";".join(errors))
    out_path = write_fact_csv(data_dir / "out" / output_cfg["fact_filename"], facts)

    payload = {
        "dataset": DATASET,
        "run_id": run_id,
        "input_path": str(raw_path),
        "output_path": str(out_path),
        "schema_version": config_bundle.source_columns.get("version"),
        "window_months": int(pipeline_config["window"]["months"]),
        **stats,
    }
    write_json(data_dir / "intermediate" / f"{DATASET}_build.json", payload)
    return payload
