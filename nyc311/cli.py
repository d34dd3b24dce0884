"""CLI entrypoint for the NYC 311 fact table pipeline."""

from __future__ import annotations

import argparse
import sys
from datetime import datetime
from pathlib import Path

from nyc311.common.config_loader import ConfigBundle, load_all_configs, with_window_months
from nyc311.common.constants import DATASET, EXIT_HARD_FAIL, EXIT_PARTIAL, EXIT_SUCCESS, STAGES
from nyc311.common.errors import PipelineError
from nyc311.common.ids import generate_run_id
from nyc311.common.logging import build_logger, log_event
from nyc311.common.time_utils import parse_reference_now
from nyc311.harvest.socrata_harvest import run_socrata_harvest
from nyc311.pipeline.build import run_build
from nyc311.pipeline.reports import write_run_summary
from nyc311.pipeline.temporal import resolve_window
from nyc311.pipeline.validate import run_validate


def parse_args(argv: list[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("command", choices=[*STAGES, "all"])
    parser.add_argument("--reference-now", default=None)
    parser.add_argument("--window-months", type=int, default=None)
    parser.add_argument("--input", default=None)
    parser.add_argument("--run-id", default=None)
    parser.add_argument("--config-dir", default="./config")
    parser.add_argument("--overlay-config-dir", default=None)
    parser.add_argument("--data-dir", default="./data")
    parser.add_argument("--log-level", default="INFO", choices=["DEBUG", "INFO", "WARN", "ERROR"])
    parser.add_argument("--strict", action="store_true")
    return parser.parse_args(argv)


def _raw_path(bundle: ConfigBundle, data_dir: Path, input_override: str | None) -> Path:
    if input_override:
        return Path(input_override)
    return data_dir / "raw" / bundle.pipeline["output"]["raw_filename"]


def execute_stage(
    stage: str,
    bundle: ConfigBundle,
    data_dir: Path,
    raw_path: Path,
    run_id: str,
    reference_now: datetime,
    logger,
):
    if stage == "harvest":
        window = resolve_window(reference_now, int(bundle.pipeline["window"]["months"]))
        run_socrata_harvest(bundle.socrata, raw_path, data_dir, run_id, window.start)
    elif stage == "build":
        run_build(bundle, data_dir, run_id, reference_now, input_path=raw_path, logger=logger)
    elif stage == "validate":
        run_validate(bundle.pipeline, data_dir, run_id)
    else:
        raise ValueError(f"Unknown stage: {stage}")


def run_command(args: argparse.Namespace) -> int:
    run_id = args.run_id or generate_run_id()
    reference_now = parse_reference_now(args.reference_now)
    overlay_config_dir = Path(args.overlay_config_dir) if args.overlay_config_dir else None
    data_dir = Path(args.data_dir)

    logger = build_logger(run_id, data_dir=data_dir, level=args.log_level)
    bundle = load_all_configs(Path(args.config_dir), overlay_config_dir=overlay_config_dir)
    bundle = with_window_months(bundle, args.window_months)
    raw_path = _raw_path(bundle, data_dir, args.input)
    stages = STAGES if args.command == "all" else (args.command,)

    failed_stages: list[str] = []

    for stage in stages:
        log_event(logger, "stage start", run_id=run_id, stage=stage, dataset=DATASET, event="STAGE_START", status="ok")
        try:
            execute_stage(stage, bundle, data_dir, raw_path, run_id, reference_now, logger)
        except PipelineError as exc:
            failed_stages.append(stage)
            log_event(
                logger,
                f"stage {stage} failed: {exc}",
                run_id=run_id,
                stage=stage,
                dataset=DATASET,
                event="STAGE_FAIL",
                status="error",
                error_code=exc.error_code,
            )
            # A failed harvest is survivable when an earlier extract is still on disk.
            if stage == "harvest" and raw_path.exists() and not args.strict:
                continue
            return EXIT_HARD_FAIL
        except Exception:
            log_event(
                logger,
                f"unexpected failure in stage {stage}",
                run_id=run_id,
                stage=stage,
                dataset=DATASET,
                event="STAGE_FAIL",
                status="error",
                error_code="UNEXPECTED_ERROR",
            )
            return EXIT_HARD_FAIL
        log_event(logger, "stage end", run_id=run_id, stage=stage, dataset=DATASET, event="STAGE_END", status="ok")

    write_run_summary(data_dir, run_id, reference_now.isoformat(), failed_stages=failed_stages)
    if failed_stages:
        return EXIT_PARTIAL
    return EXIT_SUCCESS


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv or sys.argv[1:])
    try:
        return run_command(args)
    except PipelineError:
        return EXIT_HARD_FAIL
    except Exception:
        return EXIT_HARD_FAIL


if __name__ == "__main__":
    raise SystemExit(main())
