"""Midnight-crossing shift splitting and per-period coverage.

A shift that crosses midnight contributes to two calendar dates. Coverage is
computed per segment: each segment is clipped to its own calendar day and
compared with every staffing requirement window anchored on that day.

    19:00-05:00 on 2024-01-01
      → segment 1: 2024-01-01 19:00-24:00 (5h)
      → segment 2: 2024-01-02 00:00-05:00 (5h)

so the shift counts toward 2024-01-02's 00:00-06:00 period and toward
2024-01-01's 18:00-23:00 period, never toward 2024-01-01's 00:00-06:00.
"""

import logging
from collections import defaultdict
from datetime import date, datetime, time, timedelta
from typing import Dict, Iterable, List, Optional, Set, Tuple

from roster.models import (
    CoverageGap,
    CoverageReport,
    Employee,
    PeriodCoverage,
    ScheduleAssignment,
    Shift,
    ShiftSegment,
    StaffingRequirement,
)
from roster.engine.time_utils import get_week_start, shift_window, to_date

logger = logging.getLogger(__name__)


def split_shift_across_days(shift: Shift, day: date) -> List[ShiftSegment]:
    """
    Split a shift starting on `day` into per-calendar-day segments.

    Args:
        shift: Shift template
        day: Date the shift starts on

    Returns:
        One segment, or two when the shift runs past midnight. Segment
        hours always sum to shift.durationHours; a shift ending exactly at
        midnight stays a single segment.

    Examples:
        07:00-17:00 (10h) → [(day, 10)]
        19:00-05:00 (10h) → [(day, 5), (day+1, 5)]
        18:00-00:00 (6h)  → [(day, 6)]
    """
    day = to_date(day)
    start_dt, end_dt = shift_window(day, shift.startTime, shift.endTime)
    midnight = datetime.combine(day + timedelta(days=1), time.min)

    if end_dt <= midnight:
        return [ShiftSegment(date=day, hours=shift.durationHours, start=start_dt, end=end_dt)]

    first_hours = (midnight - start_dt).total_seconds() / 3600.0
    return [
        ShiftSegment(date=day, hours=first_hours, start=start_dt, end=midnight),
        ShiftSegment(
            date=day + timedelta(days=1),
            hours=shift.durationHours - first_hours,
            start=midnight,
            end=end_dt,
        ),
    ]


def requirement_window(requirement: StaffingRequirement, day: date) -> Tuple[datetime, datetime]:
    """Requirement period anchored on `day`, running into day+1 when it wraps."""
    return shift_window(day, requirement.startTime, requirement.endTime)


def segment_overlaps(segment: ShiftSegment, window: Tuple[datetime, datetime]) -> bool:
    # Strict: a shift ending exactly when a period starts does not cover it.
    return segment.start < window[1] and segment.end > window[0]


class MidnightShiftHandler:
    """
    Aggregates schedule coverage per date and staffing period.

    Args:
        shifts: Shift catalog
        requirements: Staffing requirements
        employees: Employees (for supervisor counts and weekly targets)
    """

    def __init__(
        self,
        shifts: Iterable[Shift],
        requirements: Iterable[StaffingRequirement],
        employees: Iterable[Employee] = ()
    ):
        self.shift_map: Dict[str, Shift] = {s.id: s for s in shifts}
        self.requirements: List[StaffingRequirement] = list(requirements)
        self.employee_map: Dict[str, Employee] = {e.id: e for e in employees}

    def _empty_report(self, day: date) -> CoverageReport:
        periods = {}
        for req in self.requirements:
            key = req.period_key
            if key in periods:
                # Requirements sharing a window share one period; keep the stricter minimum.
                periods[key].required = max(periods[key].required, req.minimumEmployees)
                continue
            periods[key] = PeriodCoverage(
                startTime=req.startTime,
                endTime=req.endTime,
                periodName=req.periodName,
                required=req.minimumEmployees,
            )
        return CoverageReport(date=day, periods=periods)

    def _overtime_assignments(self, schedules: List[ScheduleAssignment]) -> Set[int]:
        """
        Indexes of assignments that push their employee past the weekly target.

        Hours accumulate per employee per Sunday week in date order.
        """
        by_employee: Dict[str, List[int]] = defaultdict(list)
        for idx, a in enumerate(schedules):
            if a.shiftId in self.shift_map and a.employeeId in self.employee_map:
                by_employee[a.employeeId].append(idx)

        overtime = set()
        for emp_id, indexes in by_employee.items():
            target = self.employee_map[emp_id].weeklyHoursScheduled
            totals: Dict[date, float] = defaultdict(float)
            for idx in sorted(indexes, key=lambda i: schedules[i].date):
                a = schedules[idx]
                week = get_week_start(a.date)
                totals[week] += self.shift_map[a.shiftId].durationHours
                if totals[week] > target:
                    overtime.add(idx)
        return overtime

    def calculate_coverage(
        self,
        schedules: Iterable[ScheduleAssignment],
        dates: Optional[Iterable[date]] = None
    ) -> Dict[str, CoverageReport]:
        """
        Coverage per ISO date and period key.

        Args:
            schedules: Assignments to count; unknown shift ids are skipped
            dates: Dates to report even when nothing is scheduled

        Returns:
            {"2024-01-02": CoverageReport(periods={"00:00-06:00": PeriodCoverage(...)})}
        """
        schedules = list(schedules)
        reports: Dict[str, CoverageReport] = {}
        for d in dates or []:
            d = to_date(d)
            reports[d.isoformat()] = self._empty_report(d)

        overtime = self._overtime_assignments(schedules)

        for idx, assignment in enumerate(schedules):
            shift = self.shift_map.get(assignment.shiftId)
            if shift is None:
                logger.debug(f"Skipping assignment with unknown shift {assignment.shiftId}")
                continue
            employee = self.employee_map.get(assignment.employeeId)
            is_supervisor = employee is not None and employee.is_supervisor

            for segment in split_shift_across_days(shift, assignment.date):
                key = segment.date.isoformat()
                report = reports.get(key)
                if report is None:
                    report = reports[key] = self._empty_report(segment.date)

                counted: Set[str] = set()
                for req in self.requirements:
                    period_key = req.period_key
                    if period_key in counted:
                        continue
                    if not segment_overlaps(segment, requirement_window(req, segment.date)):
                        continue
                    counted.add(period_key)
                    period = report.periods[period_key]
                    period.actual += 1
                    if is_supervisor:
                        period.supervisors += 1
                    if idx in overtime:
                        period.overtime += 1

        return dict(sorted(reports.items()))


def calculate_coverage(
    schedules: Iterable[ScheduleAssignment],
    shifts: Iterable[Shift],
    requirements: Iterable[StaffingRequirement],
    employees: Iterable[Employee] = (),
    dates: Optional[Iterable[date]] = None
) -> Dict[str, CoverageReport]:
    """Module-level shortcut for MidnightShiftHandler(...).calculate_coverage()."""
    return MidnightShiftHandler(shifts, requirements, employees).calculate_coverage(schedules, dates)


def find_coverage_gaps(
    coverage: Dict[str, CoverageReport],
    requirements: Iterable[StaffingRequirement],
    dates: Optional[Iterable[date]] = None
) -> List[CoverageGap]:
    """
    Periods whose headcount or supervisor presence falls short.

    Args:
        coverage: Output of calculate_coverage
        requirements: Staffing requirements
        dates: Dates to inspect (defaults to every date in coverage)

    Returns:
        One CoverageGap per (date, requirement) that is short
    """
    if dates is None:
        days = [to_date(k) for k in coverage]
    else:
        days = [to_date(d) for d in dates]

    gaps = []
    for day in days:
        report = coverage.get(day.isoformat())
        for req in requirements:
            period = report.periods.get(req.period_key) if report else None
            actual = period.actual if period else 0
            supervisors = period.supervisors if period else 0
            supervisor_missing = req.shiftSupervisorRequired and supervisors == 0
            if actual < req.minimumEmployees or supervisor_missing:
                gaps.append(CoverageGap(
                    date=day,
                    periodId=req.id,
                    periodName=req.periodName,
                    required=req.minimumEmployees,
                    actual=actual,
                    supervisorMissing=supervisor_missing,
                ))
    return gaps
