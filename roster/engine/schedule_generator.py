"""Pattern-driven schedule generator.

generate_schedule() runs five phases in order:

  1. filter     - a non-empty include list decides alone; otherwise the
                  exclude list removes employees
  2. initial    - each employee's rotation on-days get the best-scoring shift;
                  days with no usable shift or with approved time off are
                  recorded as unassigned
  3. repair     - up to maxCoverageRepairAttempts rounds; every staffing
                  shortfall gets at most one extra assignment per round
  4. optimize   - up to maxOptimizationPasses passes of same-date pairwise
                  shift swaps, kept only when the pair's summed score rises
  5. validate   - full rule set; success iff the schedule is valid

The generator never raises for infeasible input: it returns what it could
build together with the validation errors. Cancellation and time limits
end the run with success=False. TimeFormatError from malformed times is
not caught.
"""

import logging
import time
from collections import OrderedDict
from datetime import date
from typing import Dict, Iterable, List, Optional, Set, Tuple

from roster.models import (
    Employee,
    EmployeePattern,
    ScheduleAssignment,
    SchedulingResult,
    Shift,
    ShiftPattern,
    StaffingRequirement,
    TimeOff,
    UnassignedShift,
    ValidationError,
)
from roster.engine.constraint_config import SchedulingOptions
from roster.engine.deadline import Deadline, GenerationCancelled
from roster.engine.midnight_handler import (
    MidnightShiftHandler,
    find_coverage_gaps,
    requirement_window,
    segment_overlaps,
    split_shift_across_days,
)
from roster.engine.shift_scorer import ShiftScorer
from roster.engine.time_utils import calculate_working_days, get_dates_between
from roster.constraints.R3_staffing_requirements import validate_staffing_requirements
from roster.engine.validation import staffing_errors, validate_schedule

logger = logging.getLogger(__name__)

CANCELLED_MESSAGE = "Schedule generation cancelled"
NO_SHIFT_REASON = "No shift satisfies the pattern duration and rest requirements"
TIME_OFF_REASON = "Approved time off"


class ScheduleGenerator:
    """
    Builds a schedule for one date range.

    Args:
        employees: Employees that may be scheduled
        patterns: Shift pattern catalog
        employee_patterns: Pattern bindings per employee
        shifts: Shift catalog; order decides scoring ties
        staffing_requirements: Per-period minimum staffing
        options: SchedulingOptions or a dict accepted by it
        deadline: Optional Deadline; defaults to options.timeLimitSeconds
        time_off: Approved leave; covered days are never assigned
    """

    def __init__(
        self,
        employees: Iterable[Employee],
        patterns: Iterable[ShiftPattern],
        employee_patterns: Iterable[EmployeePattern],
        shifts: Iterable[Shift],
        staffing_requirements: Iterable[StaffingRequirement],
        options,
        deadline: Optional[Deadline] = None,
        time_off: Iterable[TimeOff] = ()
    ):
        self.employees: List[Employee] = list(employees)
        self.patterns: List[ShiftPattern] = list(patterns)
        self.employee_patterns: List[EmployeePattern] = list(employee_patterns)
        self.shifts: List[Shift] = list(shifts)
        self.staffing_requirements: List[StaffingRequirement] = list(staffing_requirements)
        self.time_off: List[TimeOff] = list(time_off)
        if not isinstance(options, SchedulingOptions):
            options = SchedulingOptions.model_validate(options)
        self.options: SchedulingOptions = options
        self._owns_deadline = deadline is None
        self.deadline = deadline or Deadline(options.timeLimitSeconds)

        self.employee_map: Dict[str, Employee] = {e.id: e for e in self.employees}
        self.pattern_map: Dict[str, ShiftPattern] = {p.id: p for p in self.patterns}
        self.requirement_map: Dict[str, StaffingRequirement] = {r.id: r for r in self.staffing_requirements}
        self.leave_map: Dict[str, List[TimeOff]] = {}
        for t in self.time_off:
            self.leave_map.setdefault(t.employeeId, []).append(t)
        self.limits = options.searchLimits
        self.scorer = ShiftScorer(
            self.shifts, self.staffing_requirements, self.patterns, self.employee_patterns, options
        )

        self._working_days: Dict[str, Set[date]] = {}
        self._assignments: List[ScheduleAssignment] = []

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def generate_schedule(self) -> SchedulingResult:
        result = SchedulingResult()
        timings = result.phaseTimings
        self._assignments = []
        if self._owns_deadline:
            self.deadline = Deadline(self.options.timeLimitSeconds)

        logger.info("=" * 80)
        logger.info("[SCHEDULE GENERATION STARTING]")
        logger.info("=" * 80)
        logger.info(f"Range: {self.options.startDate} to {self.options.endDate}")
        logger.info(f"Employees: {len(self.employees)}, shifts: {len(self.shifts)}, "
                    f"requirements: {len(self.staffing_requirements)}")

        try:
            t0 = time.perf_counter()
            available = self._filter_available_employees()
            timings['filter'] = time.perf_counter() - t0
            logger.info(f"Phase 1: {len(available)} employees eligible")
            self.deadline.check('filter')

            t0 = time.perf_counter()
            self._assignments, result.unassignedShifts = self._generate_initial_assignments(available)
            timings['initial'] = time.perf_counter() - t0
            logger.info(f"Phase 2: {len(self._assignments)} initial assignments, "
                        f"{len(result.unassignedShifts)} unassigned pattern days")
            self.deadline.check('initial assignment')

            t0 = time.perf_counter()
            self._validate_and_adjust_coverage(self._assignments, available)
            timings['repair'] = time.perf_counter() - t0
            logger.info(f"Phase 3: {len(self._assignments)} assignments after coverage repair")
            self.deadline.check('coverage repair')

            t0 = time.perf_counter()
            self._optimize_schedule(self._assignments)
            timings['optimize'] = time.perf_counter() - t0
            logger.info("Phase 4: local optimization complete")
            self.deadline.check('optimization')

            t0 = time.perf_counter()
            validation = self._validate_final_schedule(self._assignments)
            timings['validate'] = time.perf_counter() - t0
        except GenerationCancelled as e:
            result.success = False
            result.errors.append(f"{CANCELLED_MESSAGE}: {e}")
            result.assignments = self._sorted(self._assignments)
            logger.warning(f"Returning {len(result.assignments)} partial assignments after cancellation")
            return result

        result.assignments = self._sorted(self._assignments)
        result.validation = validation
        result.success = validation.isValid
        result.errors.extend(e.message for e in validation.errors)
        result.warnings.extend(w.message for w in validation.warnings)
        result.coverageGaps = self._coverage_gaps(result.assignments)

        logger.info("=" * 80)
        logger.info(f"[SCHEDULE GENERATION {'SUCCEEDED' if result.success else 'NEEDS REVIEW'}]")
        logger.info("=" * 80)
        logger.info(f"  Assignments: {len(result.assignments)}")
        logger.info(f"  Errors: {len(result.errors)}, warnings: {len(result.warnings)}")
        logger.info(f"  Coverage gaps: {len(result.coverageGaps)}")
        return result

    # ------------------------------------------------------------------
    # Phase 1: filter
    # ------------------------------------------------------------------

    def _filter_available_employees(self) -> List[Employee]:
        include = self.options.includeEmployeeIds
        if include:
            # Exclude list is ignored once an include list is given.
            return [e for e in self.employees if e.id in include]
        exclude = set(self.options.excludeEmployeeIds or [])
        return [e for e in self.employees if e.id not in exclude]

    # ------------------------------------------------------------------
    # Phase 2: initial assignment
    # ------------------------------------------------------------------

    def _get_employee_pattern(self, employee_id: str) -> Optional[Tuple[EmployeePattern, ShiftPattern]]:
        """Binding active for the whole run and its pattern."""
        for binding in self.employee_patterns:
            if binding.employeeId != employee_id:
                continue
            if not binding.is_active_for(self.options.startDate, self.options.endDate):
                continue
            pattern = self.pattern_map.get(binding.patternId)
            if pattern is not None:
                return binding, pattern
        return None

    def _employee_working_days(self, employee_id: str) -> Set[date]:
        if employee_id not in self._working_days:
            found = self._get_employee_pattern(employee_id)
            if found is None:
                days = set()
            else:
                binding, pattern = found
                days = set(calculate_working_days(
                    self.options.startDate,
                    self.options.endDate,
                    binding.rotationStartDate,
                    pattern.daysOn,
                    pattern.daysOff,
                ))
            self._working_days[employee_id] = days
        return self._working_days[employee_id]

    def _on_leave(self, employee_id: str, day: date) -> bool:
        return any(t.covers(day) for t in self.leave_map.get(employee_id, ()))

    def _generate_initial_assignments(
        self,
        available: List[Employee]
    ) -> Tuple[List[ScheduleAssignment], List[UnassignedShift]]:
        assignments: List[ScheduleAssignment] = []
        unassigned: List[UnassignedShift] = []

        for employee in available:
            self.deadline.check('initial assignment')
            if self._get_employee_pattern(employee.id) is None:
                logger.debug(f"{employee.id}: no pattern active for the whole range, skipped")
                continue

            for day in sorted(self._employee_working_days(employee.id)):
                if self._on_leave(employee.id, day):
                    unassigned.append(UnassignedShift(
                        date=day, employeeId=employee.id, shiftId=None, reason=TIME_OFF_REASON
                    ))
                    continue
                shift = self.scorer.best_shift(employee, day, assignments)
                if shift is None:
                    unassigned.append(UnassignedShift(
                        date=day, employeeId=employee.id, shiftId=None, reason=NO_SHIFT_REASON
                    ))
                    continue
                assignments.append(ScheduleAssignment(employeeId=employee.id, shiftId=shift.id, date=day))

        return assignments, unassigned

    # ------------------------------------------------------------------
    # Phase 3: coverage repair
    # ------------------------------------------------------------------

    def _validate_and_adjust_coverage(
        self,
        assignments: List[ScheduleAssignment],
        available: List[Employee]
    ) -> List[ScheduleAssignment]:
        for attempt in range(1, self.limits.maxCoverageRepairAttempts + 1):
            self.deadline.check('coverage repair')
            validation = validate_staffing_requirements(
                assignments, self.employees, self.shifts, self.staffing_requirements
            )
            issues = staffing_errors(validation)
            if not issues:
                logger.debug(f"Coverage repair: no staffing errors after {attempt - 1} rounds")
                break

            added = self._fix_coverage_issues(assignments, issues, available)
            logger.debug(f"Coverage repair round {attempt}: {len(issues)} issues, {added} assignments added")
            if not added:
                break
        return assignments

    def _shifts_serving(self, requirement: StaffingRequirement, day: date) -> List[Shift]:
        """Catalog shifts starting on `day` that count toward the requirement on `day`."""
        window = requirement_window(requirement, day)
        serving = []
        for shift in self.shifts:
            for segment in split_shift_across_days(shift, day):
                if segment.date == day and segment_overlaps(segment, window):
                    serving.append(shift)
                    break
        return serving

    def _find_available_employees_for_period(
        self,
        day: date,
        assignments: List[ScheduleAssignment],
        available: List[Employee],
        supervisors_only: bool = False
    ) -> List[Employee]:
        busy = {a.employeeId for a in assignments if a.date == day}
        candidates = []
        for employee in available:
            if employee.id in busy:
                continue
            if supervisors_only and not employee.is_supervisor:
                continue
            if self._on_leave(employee.id, day):
                continue
            if day in self._employee_working_days(employee.id):
                candidates.append(employee)
        return candidates

    def _fix_coverage_issues(
        self,
        assignments: List[ScheduleAssignment],
        issues: List[ValidationError],
        available: List[Employee]
    ) -> int:
        added = 0
        for issue in issues:
            self.deadline.check('coverage repair')
            requirement = self.requirement_map.get(issue.details.get('requirementId'))
            if requirement is None:
                continue
            day = date.fromisoformat(issue.details['date'])
            candidate_shifts = self._shifts_serving(requirement, day)
            if not candidate_shifts:
                continue

            candidates = self._find_available_employees_for_period(
                day, assignments, available, supervisors_only=issue.code == 'MISSING_SUPERVISOR'
            )
            for employee in candidates:
                shift = self.scorer.best_shift(employee, day, assignments, candidate_shifts)
                if shift is None:
                    continue
                assignments.append(ScheduleAssignment(employeeId=employee.id, shiftId=shift.id, date=day))
                logger.debug(f"Repair: {employee.id} -> {shift.id} on {day} for {requirement.periodName}")
                added += 1
                break
        return added

    # ------------------------------------------------------------------
    # Phase 4: local optimization
    # ------------------------------------------------------------------

    def _optimize_schedule(self, assignments: List[ScheduleAssignment]) -> List[ScheduleAssignment]:
        for pass_number in range(1, self.limits.maxOptimizationPasses + 1):
            self.deadline.check('optimization')
            by_date: Dict[date, List[int]] = OrderedDict()
            for idx, a in enumerate(assignments):
                by_date.setdefault(a.date, []).append(idx)

            improved = False
            for day, indexes in by_date.items():
                if self._optimize_day(assignments, indexes):
                    improved = True

            logger.debug(f"Optimization pass {pass_number}: {'improved' if improved else 'converged'}")
            if not improved:
                break
        return assignments

    def _score(self, assignments: List[ScheduleAssignment], idx: int) -> float:
        others = assignments[:idx] + assignments[idx + 1:]
        return self.scorer.assignment_score(assignments[idx], self.employee_map.get(assignments[idx].employeeId), others)

    def _optimize_day(self, assignments: List[ScheduleAssignment], indexes: List[int]) -> bool:
        """Hill-climb same-date shift swaps; True when any swap was kept."""
        changed = False
        iterations = 0
        improved = True
        while improved:
            improved = False
            for pos, i in enumerate(indexes):
                for j in indexes[pos + 1:]:
                    iterations += 1
                    if iterations > self.limits.maxDaySwapIterations:
                        return changed
                    self.deadline.check('optimization')

                    first, second = assignments[i], assignments[j]
                    if first.shiftId == second.shiftId:
                        continue

                    current = self._score(assignments, i) + self._score(assignments, j)
                    assignments[i] = first.model_copy(update={'shiftId': second.shiftId})
                    assignments[j] = second.model_copy(update={'shiftId': first.shiftId})
                    swapped = self._score(assignments, i) + self._score(assignments, j)

                    if swapped > current:
                        improved = changed = True
                    else:
                        assignments[i], assignments[j] = first, second
        return changed

    # ------------------------------------------------------------------
    # Phase 5: final validation
    # ------------------------------------------------------------------

    def _validate_final_schedule(self, assignments: List[ScheduleAssignment]):
        return validate_schedule(
            assignments,
            self.employees,
            self.employee_patterns,
            self.patterns,
            self.shifts,
            self.staffing_requirements,
            self.options,
            self.time_off,
        )

    def _coverage_gaps(self, assignments: List[ScheduleAssignment]):
        dates = get_dates_between(self.options.startDate, self.options.endDate)
        coverage = MidnightShiftHandler(
            self.shifts, self.staffing_requirements, self.employees
        ).calculate_coverage(assignments, dates)
        return find_coverage_gaps(coverage, self.staffing_requirements, dates)

    @staticmethod
    def _sorted(assignments: List[ScheduleAssignment]) -> List[ScheduleAssignment]:
        return sorted(assignments, key=lambda a: (a.employeeId, a.date))


def generate_schedule(
    employees: Iterable[Employee],
    patterns: Iterable[ShiftPattern],
    employee_patterns: Iterable[EmployeePattern],
    shifts: Iterable[Shift],
    staffing_requirements: Iterable[StaffingRequirement],
    options,
    deadline: Optional[Deadline] = None,
    time_off: Iterable[TimeOff] = ()
) -> SchedulingResult:
    """Convenience wrapper: build a ScheduleGenerator and run it once."""
    return ScheduleGenerator(
        employees, patterns, employee_patterns, shifts, staffing_requirements, options, deadline, time_off
    ).generate_schedule()
