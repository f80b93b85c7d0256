"""Tests for the shift scorer"""

import pytest
import sys
import os
from datetime import date

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from roster.models import Employee, EmployeePattern, Shift, StaffingRequirement
from roster.engine.constraint_config import SchedulingOptions
from roster.engine.shift_scorer import ShiftScorer
from conftest import assign

D = date.fromisoformat


@pytest.fixture
def scorer(shifts, day_requirement, patterns, employee_patterns, week_options):
    return ShiftScorer(shifts, [day_requirement], patterns, employee_patterns, week_options)


def by_id(items, item_id):
    return next(i for i in items if i.id == item_id)


class TestScore:

    def test_default_shift_with_coverage_bonus(self, scorer, shifts, employees):
        scored = scorer.score(by_id(shifts, 'S-DAY'), by_id(employees, 'E1'), D('2024-01-01'), [])
        assert scored.score == 180
        assert 'Preferred shift type' in scored.reasons
        assert 'Helps meet coverage requirements' in scored.reasons

    def test_non_preferred_shift_outside_requirements(self, scorer, shifts, employees):
        scored = scorer.score(by_id(shifts, 'S-NIGHT'), by_id(employees, 'E1'), D('2024-01-01'), [])
        assert scored.score == 100

    def test_duration_mismatch_scores_zero(self, scorer, shifts, employees):
        scored = scorer.score(by_id(shifts, 'S-HALF'), by_id(employees, 'E1'), D('2024-01-01'), [])
        assert scored.score == 0
        assert scored.reasons == ['Duration does not match pattern']

    def test_insufficient_rest_after_prior_shift(self, scorer, shifts, employees):
        existing = [assign('E1', 'S-NIGHT', '2024-01-01')]
        scored = scorer.score(by_id(shifts, 'S-DAY'), by_id(employees, 'E1'), D('2024-01-02'), existing)
        assert scored.score == 0
        assert scored.reasons == ['Insufficient rest']

    def test_insufficient_rest_before_next_shift(self, scorer, shifts, employees):
        existing = [assign('E1', 'S-DAY', '2024-01-02')]
        scored = scorer.score(by_id(shifts, 'S-NIGHT'), by_id(employees, 'E1'), D('2024-01-01'), existing)
        assert scored.score == 0

    def test_other_employees_do_not_affect_rest(self, scorer, shifts, employees):
        existing = [assign('E2', 'S-NIGHT', '2024-01-01')]
        scored = scorer.score(by_id(shifts, 'S-DAY'), by_id(employees, 'E1'), D('2024-01-02'), existing)
        assert scored.score > 0

    def test_role_rest_override(self, shifts, employees, day_requirement, patterns, employee_patterns,
                                week_options):
        options = week_options.model_copy(update={
            'roleOverrides': {'minimumRestHours': {'Shift Supervisor': 16}}
        })
        scorer = ShiftScorer(shifts, [day_requirement], patterns, employee_patterns, options)
        day = by_id(shifts, 'S-DAY')
        # 17:00 -> 07:00 next day is 14 hours
        existing = [assign('SUP', 'S-DAY', '2024-01-01'), assign('E1', 'S-DAY', '2024-01-01')]
        assert scorer.score(day, by_id(employees, 'SUP'), D('2024-01-02'), existing).score == 0
        assert scorer.score(day, by_id(employees, 'E1'), D('2024-01-02'), existing).score > 0

    def test_no_coverage_bonus_once_met(self, scorer, shifts, employees):
        existing = [assign('E2', 'S-DAY', '2024-01-01')]
        scored = scorer.score(by_id(shifts, 'S-DAY'), by_id(employees, 'E1'), D('2024-01-01'), existing)
        assert scored.score == 150

    def test_coverage_only_counts_same_date(self, scorer, shifts):
        assert scorer.current_coverage(by_id(shifts, 'S-DAY'), D('2024-01-02'),
                                       [assign('E2', 'S-DAY', '2024-01-01')]) == 0
        assert scorer.current_coverage(by_id(shifts, 'S-DAY'), D('2024-01-01'),
                                       [assign('E2', 'S-SWING', '2024-01-01')]) == 1

    def test_minimum_coverage_needed(self, scorer, shifts):
        assert scorer.minimum_coverage_needed(by_id(shifts, 'S-DAY')) == 1
        assert scorer.minimum_coverage_needed(by_id(shifts, 'S-NIGHT')) == 0

    def test_shift_ending_at_period_start_gets_no_coverage_need(self, patterns, employee_patterns, week_options):
        day12 = Shift(id='DAY12', shiftTypeId='DAY', startTime='07:00', endTime='19:00', durationHours=12)
        night12 = Shift(id='NIGHT12', shiftTypeId='NIGHT', startTime='19:00', endTime='07:00', durationHours=12)
        night = StaffingRequirement(id='N', periodName='Night', startTime='19:00', endTime='07:00',
                                    minimumEmployees=2)
        scorer = ShiftScorer([day12, night12], [night], patterns, employee_patterns, week_options)
        assert scorer.minimum_coverage_needed(day12) == 0
        assert scorer.minimum_coverage_needed(night12) == 2
        assert scorer.current_coverage(night12, D('2024-01-01'), [assign('E1', 'DAY12', '2024-01-01')]) == 0


class TestBestShift:

    def test_picks_default_shift(self, scorer, employees):
        assert scorer.best_shift(by_id(employees, 'E1'), D('2024-01-01'), []).id == 'S-DAY'

    def test_preferred_shift_types_option(self, shifts, patterns, week_options):
        options = week_options.model_copy(update={'preferredShiftTypes': {'E9': ['NIGHT']}})
        binding = EmployeePattern(id='EP9', employeeId='E9', patternId='P4x10',
                                  startDate=D('2024-01-01'), rotationStartDate=D('2024-01-01'))
        scorer = ShiftScorer(shifts, [], patterns, [binding], options)
        employee = Employee(id='E9', weeklyHoursScheduled=40)
        assert scorer.best_shift(employee, D('2024-01-01'), []).id == 'S-NIGHT'

    def test_ties_go_to_catalog_order(self, shifts, patterns, employee_patterns, week_options):
        scorer = ShiftScorer(shifts, [], patterns, employee_patterns, week_options)
        employee = Employee(id='E1', weeklyHoursScheduled=40)
        assert scorer.best_shift(employee, D('2024-01-01'), []).id == 'S-DAY'
        reordered = ShiftScorer(list(reversed(shifts)), [], patterns, employee_patterns, week_options)
        assert reordered.best_shift(employee, D('2024-01-01'), []).id == 'S-EARLY'

    def test_candidates_restrict_choice(self, scorer, shifts, employees):
        night_only = [by_id(shifts, 'S-NIGHT')]
        assert scorer.best_shift(by_id(employees, 'E1'), D('2024-01-01'), [], night_only).id == 'S-NIGHT'

    def test_none_when_no_shift_matches_pattern(self, shifts, patterns, week_options):
        binding = EmployeePattern(id='EP', employeeId='E3', patternId='P3x12',
                                  startDate=D('2024-01-01'), rotationStartDate=D('2024-01-01'))
        scorer = ShiftScorer(shifts, [], patterns, [binding], week_options)
        assert scorer.best_shift(Employee(id='E3', weeklyHoursScheduled=36), D('2024-01-01'), []) is None

    def test_assignment_score(self, scorer, employees):
        a = assign('E1', 'S-DAY', '2024-01-01')
        assert scorer.assignment_score(a, by_id(employees, 'E1'), []) == 180
        assert scorer.assignment_score(a, None, []) == 0
        assert scorer.assignment_score(assign('E1', 'S-GONE', '2024-01-01'), by_id(employees, 'E1'), []) == 0
