"""Shift scorer shared by the generator's assignment, repair and swap phases.

For a candidate (shift, employee, date) against the assignments made so far:

  - 0 when the employee's pattern requires a different shift duration
  - 0 when the shift would leave less than minimumRestHours (or the role's
    override) between it and any other assignment of the employee
  - otherwise base (100)
      + preferenceBonus (50) if the shift type is the employee's default or
        one of their preferred shift types
      + coverageBonus (30) if fewer employees already cover this shift's
        time on that date than the largest minimum among the staffing
        requirements it overlaps

Ties between shifts go to the earliest one in catalog order.
"""

import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Dict, Iterable, List, Optional

from roster.models import (
    Employee,
    EmployeePattern,
    ScheduleAssignment,
    Shift,
    ShiftPattern,
    StaffingRequirement,
)
from roster.engine.constraint_config import MINIMUM_REST_HOURS, SchedulingOptions
from roster.engine.time_utils import do_windows_overlap, get_hours_between, shift_window
from roster.constraints.R5_pattern_compliance import find_binding

logger = logging.getLogger(__name__)


@dataclass
class ShiftScore:
    shift: Shift
    score: float = 0
    reasons: List[str] = field(default_factory=list)


class ShiftScorer:
    """
    Scores candidate shifts for an employee on a date.

    Args:
        shifts: Shift catalog (order decides ties)
        requirements: Staffing requirements
        patterns: Pattern catalog
        employee_patterns: Pattern bindings
        options: SchedulingOptions (rest minimum, preferences, weights)
    """

    def __init__(
        self,
        shifts: Iterable[Shift],
        requirements: Iterable[StaffingRequirement],
        patterns: Iterable[ShiftPattern],
        employee_patterns: Iterable[EmployeePattern],
        options: SchedulingOptions
    ):
        self.shifts: List[Shift] = list(shifts)
        self.shift_map: Dict[str, Shift] = {s.id: s for s in self.shifts}
        self.requirements: List[StaffingRequirement] = list(requirements)
        self.pattern_map: Dict[str, ShiftPattern] = {p.id: p for p in patterns}
        self.employee_patterns: List[EmployeePattern] = list(employee_patterns)
        self.options = options
        self.weights = options.scoringWeights
        self._min_coverage_cache: Dict[str, int] = {}

    def pattern_for(self, employee_id: str, day: date) -> Optional[ShiftPattern]:
        binding = find_binding(employee_id, day, self.employee_patterns)
        if binding is None:
            return None
        return self.pattern_map.get(binding.patternId)

    def is_preferred(self, shift: Shift, employee: Employee) -> bool:
        if employee.defaultShiftTypeId == shift.shiftTypeId:
            return True
        preferred = (self.options.preferredShiftTypes or {}).get(employee.id, [])
        return shift.shiftTypeId in preferred

    def minimum_coverage_needed(self, shift: Shift) -> int:
        """Largest minimumEmployees among requirements overlapping the shift (0 if none)."""
        if shift.id not in self._min_coverage_cache:
            needed = [
                r.minimumEmployees for r in self.requirements
                if do_windows_overlap(shift.startTime, shift.endTime, r.startTime, r.endTime, inclusive=False)
            ]
            self._min_coverage_cache[shift.id] = max(needed, default=0)
        return self._min_coverage_cache[shift.id]

    def current_coverage(self, shift: Shift, day: date, existing: Iterable[ScheduleAssignment]) -> int:
        """Assignments on the same date whose shift overlaps this one."""
        count = 0
        for a in existing:
            if a.date != day:
                continue
            other = self.shift_map.get(a.shiftId)
            if other is not None and do_windows_overlap(shift.startTime, shift.endTime,
                                                       other.startTime, other.endTime, inclusive=False):
                count += 1
        return count

    def has_sufficient_rest(
        self,
        shift: Shift,
        employee: Employee,
        day: date,
        existing: Iterable[ScheduleAssignment]
    ) -> bool:
        start, end = shift_window(day, shift.startTime, shift.endTime)
        minimum = self.options.limit_for(MINIMUM_REST_HOURS, employee)
        for a in existing:
            if a.employeeId != employee.id:
                continue
            other = self.shift_map.get(a.shiftId)
            if other is None:
                continue
            other_start, other_end = shift_window(a.date, other.startTime, other.endTime)
            if other_start <= start:
                rest = get_hours_between(other_end, start)
            else:
                rest = get_hours_between(end, other_start)
            if rest < minimum:
                return False
        return True

    def score(
        self,
        shift: Shift,
        employee: Employee,
        day: date,
        existing: Iterable[ScheduleAssignment]
    ) -> ShiftScore:
        existing = list(existing)
        result = ShiftScore(shift=shift)

        pattern = self.pattern_for(employee.id, day)
        if pattern is not None and shift.durationHours != pattern.shiftDuration:
            result.reasons.append('Duration does not match pattern')
            return result

        if not self.has_sufficient_rest(shift, employee, day, existing):
            result.reasons.append('Insufficient rest')
            return result

        result.score = self.weights.base
        result.reasons.append('Base score')

        if self.is_preferred(shift, employee):
            result.score += self.weights.preferenceBonus
            result.reasons.append('Preferred shift type')

        if self.current_coverage(shift, day, existing) < self.minimum_coverage_needed(shift):
            result.score += self.weights.coverageBonus
            result.reasons.append('Helps meet coverage requirements')

        return result

    def best_shift(
        self,
        employee: Employee,
        day: date,
        existing: Iterable[ScheduleAssignment],
        candidates: Optional[Iterable[Shift]] = None
    ) -> Optional[Shift]:
        """Highest-scoring usable shift, or None when every candidate scores 0."""
        existing = list(existing)
        best: Optional[ShiftScore] = None
        for shift in (self.shifts if candidates is None else candidates):
            scored = self.score(shift, employee, day, existing)
            if scored.score <= 0:
                continue
            # Strict comparison keeps the first shift on ties.
            if best is None or scored.score > best.score:
                best = scored
        if best is not None:
            logger.debug(f"{employee.id} on {day}: {best.shift.id} scored {best.score} ({', '.join(best.reasons)})")
        return best.shift if best else None

    def assignment_score(self, assignment: ScheduleAssignment, employee: Optional[Employee], others) -> float:
        """Score of an existing assignment against every other assignment."""
        shift = self.shift_map.get(assignment.shiftId)
        if employee is None or shift is None:
            return 0
        return self.score(shift, employee, assignment.date, others).score
