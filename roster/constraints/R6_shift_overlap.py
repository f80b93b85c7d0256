"""R6: No overlapping shifts for the same employee.

Compares true start/end instants, so a night shift ending 05:00 the next
morning overlaps a 04:00 start on that morning. Touching shifts (one ends
exactly when the next starts) do not overlap.
"""
from collections import defaultdict
from typing import Iterable

from roster.models import ScheduleAssignment, Shift, ValidationResult
from roster.engine.time_utils import shift_window


def validate_shift_overlaps(
    assignments: Iterable[ScheduleAssignment],
    shifts: Iterable[Shift]
) -> ValidationResult:
    result = ValidationResult()
    shift_map = {s.id: s for s in shifts}

    by_employee = defaultdict(list)
    for a in assignments:
        shift = shift_map.get(a.shiftId)
        if shift is None:
            continue
        start, end = shift_window(a.date, shift.startTime, shift.endTime)
        by_employee[a.employeeId].append((start, end, a))

    for emp_id, windows in by_employee.items():
        windows.sort(key=lambda w: w[0])
        latest_end, latest = None, None
        for start, end, a in windows:
            if latest_end is not None and start < latest_end:
                result.add_error(
                    'SHIFT_OVERLAP',
                    f"Employee {emp_id} has overlapping shifts {latest.shiftId} on {latest.date} "
                    f"and {a.shiftId} on {a.date}",
                    employeeId=emp_id,
                    firstDate=latest.date.isoformat(),
                    firstShiftId=latest.shiftId,
                    secondDate=a.date.isoformat(),
                    secondShiftId=a.shiftId,
                )
            if latest_end is None or end > latest_end:
                latest_end, latest = end, a

    return result
