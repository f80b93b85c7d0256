"""R2: Maximum consecutive working days.

A working day is any date with at least one assignment for the employee.
Above the maximum is an error; exactly at the maximum is a warning.
"""
from collections import defaultdict
from typing import Dict, Iterable, Optional

from roster.models import ScheduleAssignment, ValidationResult
from roster.engine.time_utils import get_consecutive_working_days


def validate_consecutive_days(
    assignments: Iterable[ScheduleAssignment],
    maximum_consecutive_days: int,
    employee_maximums: Optional[Dict[str, int]] = None
) -> ValidationResult:
    """
    Flag employees whose longest run of working dates reaches the maximum.

    employee_maximums replaces the maximum for the employees it names.
    """
    result = ValidationResult()

    dates_by_employee = defaultdict(set)
    for a in assignments:
        dates_by_employee[a.employeeId].add(a.date)

    for emp_id, dates in dates_by_employee.items():
        longest = get_consecutive_working_days(dates)
        maximum = (employee_maximums or {}).get(emp_id, maximum_consecutive_days)
        if longest > maximum:
            result.add_error(
                'CONSECUTIVE_DAYS_EXCEEDED',
                f"Employee {emp_id} is scheduled for {longest} consecutive days "
                f"(maximum {maximum})",
                employeeId=emp_id,
                consecutiveDays=longest,
                maximumConsecutiveDays=maximum,
            )
        elif longest == maximum:
            result.add_warning(
                'CONSECUTIVE_DAYS_AT_MAXIMUM',
                f"Employee {emp_id} is at the maximum of {maximum} consecutive days",
                employeeId=emp_id,
                consecutiveDays=longest,
                maximumConsecutiveDays=maximum,
            )

    return result
