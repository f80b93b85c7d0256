"""Whole-schedule validation.

Runs every rule in roster.constraints and merges their results. Rule
violations are returned as data; only malformed times raise.
"""

import logging
from typing import Iterable, List

from roster.models import (
    Employee,
    EmployeePattern,
    ScheduleAssignment,
    Shift,
    ShiftPattern,
    StaffingRequirement,
    TimeOff,
    ValidationResult,
)
from roster.engine.constraint_config import (
    MAXIMUM_CONSECUTIVE_DAYS,
    MINIMUM_REST_HOURS,
    SchedulingOptions,
    per_employee_limits,
)
from roster.constraints.R1_rest_hours import validate_rest_hours
from roster.constraints.R2_consecutive_days import validate_consecutive_days
from roster.constraints.R3_staffing_requirements import validate_staffing_requirements
from roster.constraints.R4_weekly_hours import validate_weekly_hours
from roster.constraints.R5_pattern_compliance import validate_pattern_compliance
from roster.constraints.R6_shift_overlap import validate_shift_overlaps

logger = logging.getLogger(__name__)

STAFFING_ERROR_CODES = ('INSUFFICIENT_STAFFING', 'MISSING_SUPERVISOR')


def combine_validation_results(*results: ValidationResult) -> ValidationResult:
    """Union of errors and warnings; valid only when every input is valid."""
    combined = ValidationResult()
    for r in results:
        combined.isValid = combined.isValid and r.isValid
        combined.errors.extend(r.errors)
        combined.warnings.extend(r.warnings)
    return combined


def validate_schedule(
    assignments: Iterable[ScheduleAssignment],
    employees: Iterable[Employee],
    employee_patterns: Iterable[EmployeePattern],
    patterns: Iterable[ShiftPattern],
    shifts: Iterable[Shift],
    requirements: Iterable[StaffingRequirement],
    options,
    time_off: Iterable[TimeOff] = ()
) -> ValidationResult:
    """
    Validate a complete schedule.

    Args:
        assignments: Schedule to check
        employees: Employees referenced by the schedule
        employee_patterns: Pattern bindings
        patterns: Pattern catalog
        shifts: Shift catalog
        requirements: Staffing requirements
        options: SchedulingOptions, or a dict with minimumRestHours and
            maximumConsecutiveDays (startDate, endDate and roleOverrides optional)
        time_off: Approved leave, excused from pattern compliance

    Returns:
        Combined ValidationResult of rules R1-R6
    """
    assignments = list(assignments)
    employees = list(employees)
    shifts = list(shifts)

    if isinstance(options, SchedulingOptions):
        min_rest = options.minimumRestHours
        max_consecutive = options.maximumConsecutiveDays
        start_date, end_date = options.startDate, options.endDate
        role_overrides = options.roleOverrides
    else:
        min_rest = options['minimumRestHours']
        max_consecutive = options['maximumConsecutiveDays']
        start_date, end_date = options.get('startDate'), options.get('endDate')
        role_overrides = options.get('roleOverrides')

    result = combine_validation_results(
        validate_rest_hours(assignments, shifts, min_rest,
                            per_employee_limits(employees, MINIMUM_REST_HOURS, role_overrides)),
        validate_consecutive_days(assignments, max_consecutive,
                                  per_employee_limits(employees, MAXIMUM_CONSECUTIVE_DAYS, role_overrides)),
        validate_staffing_requirements(assignments, employees, shifts, requirements),
        validate_weekly_hours(assignments, employees, shifts),
        validate_pattern_compliance(assignments, employee_patterns, patterns, shifts, start_date, end_date,
                                    time_off),
        validate_shift_overlaps(assignments, shifts),
    )
    logger.debug(f"validate_schedule: {len(result.errors)} errors, {len(result.warnings)} warnings")
    return result


def staffing_errors(result: ValidationResult) -> List:
    """Errors raised by the staffing rule (understaffing and missing supervisor)."""
    return [e for e in result.errors if e.code in STAFFING_ERROR_CODES]
