"""R3: Minimum staffing per period (with supervisor presence).

Headcounts come from the midnight-aware coverage aggregator, so a night
shift counts toward the early-morning period of the following date.
Only dates that carry at least one assignment are checked.

Error details carry date, periodName, requirementId, required and actual so
the generator's repair phase can act on them without parsing messages.
"""
import logging
from typing import Iterable, List

from roster.models import Employee, ScheduleAssignment, Shift, StaffingRequirement, ValidationResult
from roster.engine.midnight_handler import MidnightShiftHandler

logger = logging.getLogger(__name__)


def validate_staffing_requirements(
    assignments: Iterable[ScheduleAssignment],
    employees: Iterable[Employee],
    shifts: Iterable[Shift],
    requirements: Iterable[StaffingRequirement]
) -> ValidationResult:
    """
    Check every requirement on every assigned date.

    Returns:
        ValidationResult with INSUFFICIENT_STAFFING and MISSING_SUPERVISOR errors
    """
    result = ValidationResult()
    assignments: List[ScheduleAssignment] = list(assignments)
    requirements = list(requirements)

    dates = sorted({a.date for a in assignments})
    if not dates or not requirements:
        return result

    coverage = MidnightShiftHandler(shifts, requirements, employees).calculate_coverage(assignments, dates)

    for day in dates:
        report = coverage[day.isoformat()]
        for req in requirements:
            period = report.periods[req.period_key]
            details = dict(
                date=day.isoformat(),
                periodName=req.periodName,
                requirementId=req.id,
                required=req.minimumEmployees,
                actual=period.actual,
            )
            if period.actual < req.minimumEmployees:
                result.add_error(
                    'INSUFFICIENT_STAFFING',
                    f"Insufficient staffing on {day} during {req.periodName}: "
                    f"{period.actual} scheduled, {req.minimumEmployees} required",
                    **details
                )
            if req.shiftSupervisorRequired and period.supervisors == 0:
                result.add_error(
                    'MISSING_SUPERVISOR',
                    f"No shift supervisor scheduled on {day} during {req.periodName}",
                    **details
                )

    if result.errors:
        logger.debug(f"Staffing check: {len(result.errors)} shortfalls across {len(dates)} dates")
    return result
