"""
Command-line entry point.

    python -m app.run_scheduler --in input.json [--out out.json] [--time 60] [--validate-only]

Exit status: 0 when the schedule validates, 1 when it needs review or was
cancelled, 2 when the input is rejected, 3 when the host refuses the run.
"""

import argparse
import json
import logging
import os
import pathlib
import sys
import time
import uuid
from datetime import datetime

from roster.engine.constraint_config import build_scheduling_options
from roster.engine.data_loader import load_input
from roster.engine.midnight_handler import calculate_coverage
from roster.engine.monitor import SchedulerMonitor, collect_metrics
from roster.engine.schedule_generator import ScheduleGenerator
from roster.engine.time_utils import get_dates_between

from app.input_validator import validate_input
from app.models import GenerateRequest, Meta
from app.output_builder import build_invalid_input_output, build_output
from app.resource_monitor import SchedulerResourceLimits, pre_run_safety_check

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_NEEDS_REVIEW = 1
EXIT_INVALID_INPUT = 2
EXIT_RESOURCES = 3


def configure_logging():
    level = os.getenv("ROSTER_LOG_LEVEL", "INFO").upper()
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )


def resolve_paths(infile: str, outfile: str = None):
    # Resolve input file path (support both direct and input/ folder)
    infile_path = pathlib.Path(infile)
    if not infile_path.exists():
        infile_path = pathlib.Path("input") / infile

    if outfile is None:
        # Auto-generate timestamp-based filename: roster_DDMM_HHmm.json
        timestamp = datetime.now().strftime("%d%m_%H%M")
        outfile_path = pathlib.Path("output") / f"roster_{timestamp}.json"
    else:
        outfile_path = pathlib.Path(outfile)
        if str(outfile_path.parent) == ".":
            outfile_path = pathlib.Path("output") / outfile

    return infile_path, outfile_path


def write_output(outfile_path: pathlib.Path, output: dict):
    outfile_path.parent.mkdir(parents=True, exist_ok=True)
    outfile_path.write_text(json.dumps(output, indent=2), encoding="utf-8")


def run(input_data: dict, time_limit: float = None, request_id: str = None):
    """
    Validate, generate and report for one input document.

    Returns:
        Tuple of (exit_code, output_dict)
    """
    request = GenerateRequest(input_json=input_data, requestId=request_id)
    input_data = request.input_json
    meta = Meta(requestId=request.requestId or str(uuid.uuid4()))

    validation = validate_input(input_data)
    for w in validation.warnings:
        logger.warning(f"[{w.code}] {w.field}: {w.message}")
    if not validation.is_valid:
        for e in validation.errors:
            logger.error(f"[{e.code}] {e.field}: {e.message}")
        return EXIT_INVALID_INPUT, build_invalid_input_output(input_data, validation, meta)

    schedule_input = load_input(input_data)

    can_run, reason, size = pre_run_safety_check(schedule_input)
    meta.problemSize = size or None
    if not can_run:
        logger.error(f"Run refused: {reason}")
        output = build_invalid_input_output(input_data, validation, meta)
        output['status'] = "RESOURCE_LIMIT"
        output['errors'] = [reason]
        return EXIT_RESOURCES, output

    if time_limit is None and not schedule_input.options.get('timeLimitSeconds'):
        time_limit = SchedulerResourceLimits.DEFAULT_TIME_LIMIT_SECONDS
    options = build_scheduling_options(
        {'options': schedule_input.options, 'constraintList': schedule_input.constraintList},
        timeLimitSeconds=time_limit,
    )

    started = time.perf_counter()
    result = ScheduleGenerator(
        schedule_input.employees,
        schedule_input.patterns,
        schedule_input.employeePatterns,
        schedule_input.shifts,
        schedule_input.staffingRequirements,
        options,
        time_off=schedule_input.timeOff,
    ).generate_schedule()
    duration = time.perf_counter() - started
    meta.durationSeconds = round(duration, 3)

    coverage = calculate_coverage(
        result.assignments,
        schedule_input.shifts,
        schedule_input.staffingRequirements,
        schedule_input.employees,
        dates=get_dates_between(options.startDate, options.endDate),
    )
    metrics = collect_metrics(result, coverage, duration)
    health = SchedulerMonitor(schedule_input.staffingRequirements).check_health(metrics, coverage)

    output = build_output(input_data, result, coverage, health, meta)
    return (EXIT_OK if result.success else EXIT_NEEDS_REVIEW), output


def main(argv=None) -> int:
    ap = argparse.ArgumentParser(description="Generate a dispatch roster from an input JSON file")
    ap.add_argument("--in", dest="infile", required=True)
    ap.add_argument("--out", dest="outfile", required=False, default=None)
    ap.add_argument("--time", dest="time_limit", type=float, default=None,
                    help="Time limit in seconds (overrides options.timeLimitSeconds)")
    ap.add_argument("--validate-only", dest="validate_only", action="store_true",
                    help="Only run input validation")
    args = ap.parse_args(argv)

    configure_logging()

    infile_path, outfile_path = resolve_paths(args.infile, args.outfile)
    with open(infile_path, 'r', encoding='utf-8') as f:
        input_data = json.load(f)

    if args.validate_only:
        validation = validate_input(input_data)
        print(json.dumps(validation.to_dict(), indent=2))
        return EXIT_OK if validation.is_valid else EXIT_INVALID_INPUT

    exit_code, output = run(input_data, time_limit=args.time_limit)
    write_output(outfile_path, output)

    print(f"✓ Status: {output['status']} → wrote {outfile_path}")
    print(f"  Assignments: {len(output.get('assignments', []))}")
    print(f"  Errors: {len(output.get('errors', []))}, warnings: {len(output.get('warnings', []))}")
    if output.get('health'):
        print(f"  Health: {output['health']['status']}")
    return exit_code


if __name__ == "__main__":
    sys.exit(main())
