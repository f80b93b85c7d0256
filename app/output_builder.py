"""
Output builder for the roster CLI.

Turns a SchedulingResult, its coverage report and the health check into a
JSON-serializable document. Persisting it is the caller's concern;
build_daily_coverage_rows() gives the flat per-(date, period) rows a
relational store expects.
"""

import json
import hashlib
from typing import Any, Dict, List, Optional

from roster.models import CoverageReport, SchedulingResult
from roster.engine.monitor import HealthCheckResult

from app.input_validator import InputValidationResult
from app.models import CoverageRow, GenerateResponse, Meta


def compute_input_hash(input_data: Dict[str, Any]) -> str:
    """Compute SHA256 hash of input JSON (keys sorted)."""
    json_str = json.dumps(input_data, sort_keys=True, default=str)
    return "sha256:" + hashlib.sha256(json_str.encode()).hexdigest()


def get_status(result: SchedulingResult) -> str:
    if result.success:
        return "SUCCESS"
    if result.validation is None:
        return "CANCELLED"
    return "NEEDS_REVIEW"


def coverage_to_dict(coverage: Dict[str, CoverageReport]) -> Dict[str, Dict[str, Any]]:
    """date -> period key -> counts, JSON-ready."""
    return {
        day: {key: period.model_dump() for key, period in report.periods.items()}
        for day, report in coverage.items()
    }


def build_daily_coverage_rows(coverage: Dict[str, CoverageReport]) -> List[CoverageRow]:
    """
    Flatten coverage into one row per (date, period).

    Returns:
        Rows ordered by date, then period key
    """
    rows = []
    for day, report in sorted(coverage.items()):
        for key, period in sorted(report.periods.items()):
            rows.append(CoverageRow(
                date=day,
                periodId=key,
                periodName=period.periodName,
                requiredCoverage=period.required,
                actualCoverage=period.actual,
                supervisorCount=period.supervisors,
                overtimeCount=period.overtime,
            ))
    return rows


def build_output(
    input_data: Dict[str, Any],
    result: SchedulingResult,
    coverage: Dict[str, CoverageReport],
    health: Optional[HealthCheckResult],
    meta: Meta
) -> Dict[str, Any]:
    """
    Build the output document for one generation run.

    Args:
        input_data: Raw input JSON (hashed into meta)
        result: Output of generate_schedule()
        coverage: Coverage for result.assignments
        health: Health check, if computed
        meta: Response metadata

    Returns:
        JSON-serializable dict
    """
    if meta.inputHash is None:
        meta.inputHash = compute_input_hash(input_data)
    meta.phaseTimings = {k: round(v, 4) for k, v in result.phaseTimings.items()}

    response = GenerateResponse(
        status=get_status(result),
        success=result.success,
        assignments=[a.model_dump(mode='json') for a in result.assignments],
        unassignedShifts=[u.model_dump(mode='json') for u in result.unassignedShifts],
        coverageGaps=[g.model_dump(mode='json') for g in result.coverageGaps],
        coverage=coverage_to_dict(coverage),
        dailyCoverage=build_daily_coverage_rows(coverage),
        validation=result.validation.model_dump(mode='json') if result.validation else None,
        errors=list(result.errors),
        warnings=list(result.warnings),
        health=health.model_dump(mode='json') if health else None,
        meta=meta,
    )
    return response.model_dump(mode='json')


def build_invalid_input_output(
    input_data: Dict[str, Any],
    validation: InputValidationResult,
    meta: Meta
) -> Dict[str, Any]:
    """Output document for input rejected before generation."""
    if meta.inputHash is None:
        meta.inputHash = compute_input_hash(input_data)
    response = GenerateResponse(
        status="INVALID_INPUT",
        success=False,
        validation=validation.to_dict(),
        errors=[e.message for e in validation.errors],
        warnings=[w.message for w in validation.warnings],
        meta=meta,
    )
    return response.model_dump(mode='json')
