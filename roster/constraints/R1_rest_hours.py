"""R1: Minimum rest between consecutive shifts.

Rest is measured from the true end of one assignment (a shift crossing
midnight ends on the following day) to the start of the employee's next
assignment.

  rest < minimumRestHours       → INSUFFICIENT_REST (error)
  rest < minimumRestHours + 2   → MINIMAL_REST (warning)
"""
from collections import defaultdict
from typing import Dict, Iterable, List, Optional

from roster.models import ScheduleAssignment, Shift, ValidationResult
from roster.engine.time_utils import get_hours_between, shift_window

MINIMAL_REST_MARGIN_HOURS = 2


def validate_rest_hours(
    assignments: Iterable[ScheduleAssignment],
    shifts: Iterable[Shift],
    minimum_rest_hours: float,
    employee_minimums: Optional[Dict[str, float]] = None
) -> ValidationResult:
    """
    Check rest periods between consecutive assignments of each employee.

    Assignments referencing unknown shifts are ignored.

    Args:
        assignments: Schedule to check
        shifts: Shift catalog
        minimum_rest_hours: Required rest between shifts
        employee_minimums: employeeId -> required rest, for role overrides

    Returns:
        ValidationResult with INSUFFICIENT_REST errors and MINIMAL_REST warnings
    """
    result = ValidationResult()
    shift_map = {s.id: s for s in shifts}

    windows_by_employee: Dict[str, List] = defaultdict(list)
    for a in assignments:
        shift = shift_map.get(a.shiftId)
        if shift is None:
            continue
        start, end = shift_window(a.date, shift.startTime, shift.endTime)
        windows_by_employee[a.employeeId].append((start, end, a))

    for emp_id, windows in windows_by_employee.items():
        minimum = (employee_minimums or {}).get(emp_id, minimum_rest_hours)
        windows.sort(key=lambda w: w[0])
        for (_, prev_end, prev), (next_start, _, nxt) in zip(windows, windows[1:]):
            rest = get_hours_between(prev_end, next_start)
            details = dict(
                employeeId=emp_id,
                previousDate=prev.date.isoformat(),
                nextDate=nxt.date.isoformat(),
                restHours=round(rest, 2),
                minimumRestHours=minimum,
            )
            if rest < minimum:
                result.add_error(
                    'INSUFFICIENT_REST',
                    f"Employee {emp_id} has only {rest:.1f} hours rest between shifts "
                    f"on {prev.date} and {nxt.date} (minimum {minimum})",
                    **details
                )
            elif rest < minimum + MINIMAL_REST_MARGIN_HOURS:
                result.add_warning(
                    'MINIMAL_REST',
                    f"Employee {emp_id} has minimal rest ({rest:.1f} hours) between shifts "
                    f"on {prev.date} and {nxt.date}",
                    **details
                )

    return result
