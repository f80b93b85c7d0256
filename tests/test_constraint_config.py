"""Test suite for scheduling options, constraint configuration and deadlines"""

import pytest
import sys
import os
from datetime import date

from pydantic import ValidationError as PydanticValidationError

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from roster.models import Employee, Shift, StaffingRequirement, ValidationResult
from roster.engine.constraint_config import (
    SchedulingOptions,
    build_scheduling_options,
    get_constraint_param,
)
from roster.engine.deadline import CancellationToken, Deadline, GenerationCancelled


class TestGetConstraintParam:

    def test_missing_constraint_returns_default(self):
        assert get_constraint_param({}, 'minimumRestHours', default=10) == 10
        assert get_constraint_param({'constraintList': None}, 'minimumRestHours', default=10) == 10

    def test_default_value(self):
        cfg = {'constraintList': [{'id': 'minimumRestHours', 'defaultValue': 12}]}
        assert get_constraint_param(cfg, 'minimumRestHours', default=10) == 12

    def test_role_override_with_dict_employee(self):
        cfg = {'constraintList': [{
            'id': 'maximumConsecutiveDays',
            'defaultValue': 6,
            'roleOverrides': {'Shift Supervisor': 5}
        }]}
        assert get_constraint_param(cfg, 'maximumConsecutiveDays', {'employeeRole': 'Shift Supervisor'}) == 5
        assert get_constraint_param(cfg, 'maximumConsecutiveDays', {'employeeRole': 'Dispatcher'}) == 6

    def test_role_override_with_model_employee(self):
        cfg = {'constraintList': [{
            'id': 'maximumConsecutiveDays',
            'defaultValue': 6,
            'roleOverrides': {'Shift Supervisor': 5}
        }]}
        sup = Employee(id='S1', employeeRole='Shift Supervisor', weeklyHoursScheduled=40)
        assert get_constraint_param(cfg, 'maximumConsecutiveDays', sup) == 5

    def test_constraint_without_default_value(self):
        cfg = {'constraintList': [{'id': 'minimumRestHours'}]}
        assert get_constraint_param(cfg, 'minimumRestHours', default=10) == 10


class TestBuildSchedulingOptions:

    def test_defaults(self):
        options = build_scheduling_options({'options': {'startDate': '2024-01-01', 'endDate': '2024-01-07'}})
        assert options.startDate == date(2024, 1, 1)
        assert options.minimumRestHours == 10
        assert options.maximumConsecutiveDays == 6
        assert options.scoringWeights.base == 100
        assert options.scoringWeights.preferenceBonus == 50
        assert options.scoringWeights.coverageBonus == 30
        assert options.searchLimits.maxCoverageRepairAttempts == 5
        assert options.searchLimits.maxDaySwapIterations == 1000

    def test_constraint_list_wins_over_options(self):
        raw = {
            'options': {'startDate': '2024-01-01', 'endDate': '2024-01-07', 'minimumRestHours': 8},
            'constraintList': [{'id': 'minimumRestHours', 'defaultValue': 11}],
        }
        assert build_scheduling_options(raw).minimumRestHours == 11

    def test_overrides_win_and_none_is_ignored(self):
        raw = {'options': {'startDate': '2024-01-01', 'endDate': '2024-01-07', 'timeLimitSeconds': 30}}
        assert build_scheduling_options(raw, timeLimitSeconds=5).timeLimitSeconds == 5
        assert build_scheduling_options(raw, timeLimitSeconds=None).timeLimitSeconds == 30

    def test_role_overrides_carried_into_options(self):
        raw = {
            'options': {'startDate': '2024-01-01', 'endDate': '2024-01-07'},
            'constraintList': [{
                'id': 'maximumConsecutiveDays',
                'defaultValue': 6,
                'roleOverrides': {'Shift Supervisor': 3}
            }],
        }
        options = build_scheduling_options(raw)
        assert options.roleOverrides == {'maximumConsecutiveDays': {'Shift Supervisor': 3}}
        sup = Employee(id='S1', employeeRole='Shift Supervisor', weeklyHoursScheduled=40)
        dispatcher = Employee(id='D1', employeeRole='Dispatcher', weeklyHoursScheduled=40)
        assert options.limit_for('maximumConsecutiveDays', sup) == 3
        assert options.limit_for('maximumConsecutiveDays', dispatcher) == 6
        assert options.limit_for('maximumConsecutiveDays') == 6
        assert options.limit_for('minimumRestHours', sup) == 10

    def test_input_is_not_mutated(self):
        raw = {
            'options': {'startDate': '2024-01-01', 'endDate': '2024-01-07'},
            'constraintList': [{'id': 'maximumConsecutiveDays', 'defaultValue': 5}],
        }
        build_scheduling_options(raw)
        assert 'maximumConsecutiveDays' not in raw['options']

    def test_end_before_start_rejected(self):
        with pytest.raises(PydanticValidationError):
            SchedulingOptions(startDate=date(2024, 1, 7), endDate=date(2024, 1, 1))

    def test_single_day_range_allowed(self):
        options = SchedulingOptions(startDate=date(2024, 1, 1), endDate=date(2024, 1, 1))
        assert options.startDate == options.endDate


class TestDeadline:

    def test_unlimited_never_expires(self):
        deadline = Deadline()
        assert deadline.remaining() is None
        assert deadline.expired() is False
        deadline.check('anywhere')

    def test_zero_budget_expires_immediately(self):
        deadline = Deadline(time_limit_seconds=0)
        assert deadline.expired() is True
        assert deadline.remaining() == 0.0
        with pytest.raises(GenerationCancelled, match="time limit"):
            deadline.check('initial assignment')

    def test_token_cancellation(self):
        token = CancellationToken()
        deadline = Deadline(token=token)
        deadline.check()
        token.cancel("operator stopped the run")
        assert token.cancelled
        with pytest.raises(GenerationCancelled, match="operator stopped the run"):
            deadline.check()

    def test_generous_budget(self):
        deadline = Deadline(time_limit_seconds=3600)
        assert not deadline.expired()
        assert 0 < deadline.remaining() <= 3600


class TestModels:

    def test_duration_category_derived(self):
        shift = Shift(id='S', shiftTypeId='DAY', startTime='07:00', endTime='17:00', durationHours=10)
        assert shift.durationCategory == '10 hours'
        half = Shift(id='H', shiftTypeId='DAY', startTime='07:00', endTime='14:30', durationHours=7.5)
        assert half.durationCategory == '7.5 hours'

    def test_duration_category_kept_when_given(self):
        shift = Shift(id='S', shiftTypeId='DAY', startTime='07:00', endTime='17:00',
                      durationHours=10, durationCategory='long')
        assert shift.durationCategory == 'long'

    def test_crosses_midnight(self):
        night = Shift(id='N', shiftTypeId='NIGHT', startTime='19:00', endTime='05:00', durationHours=10)
        day = Shift(id='D', shiftTypeId='DAY', startTime='7:00', endTime='17:00', durationHours=10)
        assert night.crosses_midnight
        assert not day.crosses_midnight

    def test_crosses_midnight_with_unpadded_hours(self):
        morning = Shift(id='M', shiftTypeId='DAY', startTime='9:00', endTime='13:00', durationHours=4)
        late = Shift(id='L', shiftTypeId='NIGHT', startTime='22:00', endTime='6:00', durationHours=8)
        assert not morning.crosses_midnight
        assert late.crosses_midnight

    def test_requirement_period_key(self):
        req = StaffingRequirement(id='R', periodName='Early', startTime='00:00', endTime='06:00',
                                  minimumEmployees=2)
        assert req.period_key == '00:00-06:00'
        assert req.shiftSupervisorRequired is False

    def test_supervisor_role(self):
        assert Employee(id='S', employeeRole='Shift Supervisor', weeklyHoursScheduled=40).is_supervisor
        assert not Employee(id='E', weeklyHoursScheduled=40).is_supervisor

    def test_validation_result_add_error(self):
        result = ValidationResult()
        result.add_warning('MINIMAL_REST', 'close')
        assert result.isValid
        result.add_error('INSUFFICIENT_REST', 'too close', employeeId='E1')
        assert not result.isValid
        assert result.errors[0].details == {'employeeId': 'E1'}
