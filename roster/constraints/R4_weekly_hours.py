"""R4: Weekly hours against each employee's weekly target.

Weeks start on Sunday. Hours above weeklyHoursScheduled are an error;
hours below it are a warning.
"""
from collections import defaultdict
from typing import Dict, Iterable

from roster.models import Employee, ScheduleAssignment, Shift, ValidationResult
from roster.engine.time_utils import get_week_start


def validate_weekly_hours(
    assignments: Iterable[ScheduleAssignment],
    employees: Iterable[Employee],
    shifts: Iterable[Shift]
) -> ValidationResult:
    result = ValidationResult()
    employee_map = {e.id: e for e in employees}
    shift_map = {s.id: s for s in shifts}

    # (employeeId, week start) -> hours
    hours: Dict[tuple, float] = defaultdict(float)
    for a in assignments:
        shift = shift_map.get(a.shiftId)
        if shift is None or a.employeeId not in employee_map:
            continue
        hours[(a.employeeId, get_week_start(a.date))] += shift.durationHours

    for (emp_id, week_start), total in sorted(hours.items()):
        target = employee_map[emp_id].weeklyHoursScheduled
        details = dict(
            employeeId=emp_id,
            weekStart=week_start.isoformat(),
            scheduledHours=total,
            targetHours=target,
        )
        if total > target:
            result.add_error(
                'WEEKLY_HOURS_EXCEEDED',
                f"Employee {emp_id} is scheduled for {total:g} hours in week starting "
                f"{week_start} (target {target:g})",
                **details
            )
        elif total < target:
            result.add_warning(
                'WEEKLY_HOURS_UNDER_TARGET',
                f"Employee {emp_id} is scheduled for {total:g} hours in week starting "
                f"{week_start}, below target {target:g}",
                **details
            )

    return result
