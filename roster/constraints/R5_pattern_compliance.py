"""R5: Rotation pattern compliance.

Assignments are grouped into rotation windows: consecutive blocks of
(daysOn + daysOff) days anchored at the binding's rotationStartDate.
Within each window the number of worked dates must equal the number of
on-days the rotation places inside it. For a full window that is daysOn;
a window cut short by the binding's effective range or by the scheduling
range expects only the on-days that remain. On-days covered by the
employee's approved time off are not expected either.

Every assigned shift must also last exactly the pattern's shiftDuration.
Both mismatches are errors.
"""
import logging
from collections import defaultdict
from datetime import date, timedelta
from typing import Dict, Iterable, List, Optional, Set, Tuple

from roster.models import EmployeePattern, ScheduleAssignment, Shift, ShiftPattern, TimeOff, ValidationResult
from roster.engine.time_utils import calculate_working_days, to_date

logger = logging.getLogger(__name__)


def find_binding(
    employee_id: str,
    day: date,
    employee_patterns: Iterable[EmployeePattern]
) -> Optional[EmployeePattern]:
    """First pattern binding of the employee effective on `day`."""
    for ep in employee_patterns:
        if ep.employeeId == employee_id and ep.is_effective_on(day):
            return ep
    return None


def rotation_window_start(day: date, rotation_start: date, cycle_length: int) -> date:
    """Start of the rotation window containing `day`."""
    offset = (day - rotation_start).days // cycle_length
    return rotation_start + timedelta(days=offset * cycle_length)


def expected_working_days(
    window_start: date,
    binding: EmployeePattern,
    pattern: ShiftPattern,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    leave: Iterable[TimeOff] = ()
) -> int:
    """On-days of the window inside the binding and scheduling ranges, minus leave."""
    window_end = window_start + timedelta(days=pattern.cycle_length - 1)
    lo = max(d for d in (window_start, binding.startDate, start_date) if d is not None)
    hi = min(d for d in (window_end, binding.endDate, end_date) if d is not None)
    if lo > hi:
        return 0
    leave = list(leave)
    days = calculate_working_days(lo, hi, binding.rotationStartDate, pattern.daysOn, pattern.daysOff)
    return len([d for d in days if not any(t.covers(d) for t in leave)])


def validate_pattern_compliance(
    assignments: Iterable[ScheduleAssignment],
    employee_patterns: Iterable[EmployeePattern],
    patterns: Iterable[ShiftPattern],
    shifts: Iterable[Shift],
    start_date=None,
    end_date=None,
    time_off: Iterable[TimeOff] = ()
) -> ValidationResult:
    """
    Check worked-day counts per rotation window and shift durations.

    Args:
        assignments: Schedule to check
        employee_patterns: Pattern bindings; the binding effective on each
            assignment's date is used
        patterns: Pattern catalog
        shifts: Shift catalog
        start_date: Scheduling range start (optional, clips windows)
        end_date: Scheduling range end (optional, clips windows)
        time_off: Approved leave; covered on-days are not expected

    Returns:
        ValidationResult with PATTERN_DAYS_MISMATCH and PATTERN_DURATION_MISMATCH errors
    """
    result = ValidationResult()
    employee_patterns = list(employee_patterns)
    pattern_map = {p.id: p for p in patterns}
    shift_map = {s.id: s for s in shifts}
    start_date = to_date(start_date) if start_date is not None else None
    end_date = to_date(end_date) if end_date is not None else None
    leave_by_employee: Dict[str, List[TimeOff]] = defaultdict(list)
    for t in time_off:
        leave_by_employee[t.employeeId].append(t)

    # (employeeId, bindingId, windowStart) -> worked dates
    windows: Dict[Tuple[str, str, date], Set[date]] = defaultdict(set)
    bindings: Dict[str, EmployeePattern] = {}

    for a in sorted(assignments, key=lambda x: (x.employeeId, x.date)):
        binding = find_binding(a.employeeId, a.date, employee_patterns)
        if binding is None:
            continue
        pattern = pattern_map.get(binding.patternId)
        if pattern is None:
            logger.debug(f"Binding {binding.id} references unknown pattern {binding.patternId}")
            continue

        bindings[binding.id] = binding
        window_start = rotation_window_start(a.date, binding.rotationStartDate, pattern.cycle_length)
        windows[(a.employeeId, binding.id, window_start)].add(a.date)

        shift = shift_map.get(a.shiftId)
        if shift is not None and shift.durationHours != pattern.shiftDuration:
            result.add_error(
                'PATTERN_DURATION_MISMATCH',
                f"Employee {a.employeeId} is scheduled for a {shift.durationHours:g}-hour shift on "
                f"{a.date} (pattern requires {pattern.shiftDuration:g}-hour shifts)",
                employeeId=a.employeeId,
                date=a.date.isoformat(),
                shiftId=shift.id,
                shiftHours=shift.durationHours,
                requiredHours=pattern.shiftDuration,
            )

    for (emp_id, binding_id, window_start), worked in sorted(windows.items()):
        binding = bindings[binding_id]
        pattern = pattern_map[binding.patternId]
        expected = expected_working_days(
            window_start, binding, pattern, start_date, end_date, leave_by_employee.get(emp_id, ())
        )
        if len(worked) != expected:
            result.add_error(
                'PATTERN_DAYS_MISMATCH',
                f"Employee {emp_id} is scheduled for {len(worked)} days in the rotation window "
                f"starting {window_start} (pattern requires {expected} days)",
                employeeId=emp_id,
                windowStart=window_start.isoformat(),
                scheduledDays=len(worked),
                expectedDays=expected,
                patternId=pattern.id,
            )

    return result
