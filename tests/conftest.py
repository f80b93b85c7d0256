"""Shared fixtures: a small dispatch centre with day, night and swing shifts."""

import copy
import os
import sys
from datetime import date

import pytest

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from roster.models import (
    Employee,
    EmployeePattern,
    ScheduleAssignment,
    Shift,
    ShiftPattern,
    StaffingRequirement,
)
from roster.engine.constraint_config import SchedulingOptions


D = date.fromisoformat


def assign(employee_id, shift_id, day):
    """ScheduleAssignment from an ISO date string."""
    return ScheduleAssignment(employeeId=employee_id, shiftId=shift_id, date=D(day))


@pytest.fixture
def shifts():
    return [
        Shift(id='S-DAY', shiftTypeId='DAY', startTime='07:00', endTime='17:00', durationHours=10),
        Shift(id='S-NIGHT', shiftTypeId='NIGHT', startTime='19:00', endTime='05:00', durationHours=10),
        Shift(id='S-SWING', shiftTypeId='SWING', startTime='12:00', endTime='22:00', durationHours=10),
        Shift(id='S-EARLY', shiftTypeId='EARLY', startTime='04:00', endTime='14:00', durationHours=10),
        Shift(id='S-HALF', shiftTypeId='HALF', startTime='07:00', endTime='11:00', durationHours=4),
    ]


@pytest.fixture
def employees():
    return [
        Employee(id='E1', employeeRole='Dispatcher', weeklyHoursScheduled=40, defaultShiftTypeId='DAY'),
        Employee(id='E2', employeeRole='Dispatcher', weeklyHoursScheduled=40, defaultShiftTypeId='NIGHT'),
        Employee(id='SUP', employeeRole='Shift Supervisor', weeklyHoursScheduled=40, defaultShiftTypeId='DAY'),
    ]


@pytest.fixture
def patterns():
    return [
        ShiftPattern(id='P4x10', name='4x10 Standard', patternType='4x10', daysOn=4, daysOff=3, shiftDuration=10),
        ShiftPattern(id='P3x12', name='3x12', patternType='Custom', daysOn=3, daysOff=4, shiftDuration=12),
    ]


@pytest.fixture
def employee_patterns():
    return [
        EmployeePattern(id=f'EP-{emp}', employeeId=emp, patternId='P4x10',
                        startDate=D('2024-01-01'), rotationStartDate=D('2024-01-01'))
        for emp in ('E1', 'E2', 'SUP')
    ]


@pytest.fixture
def day_requirement():
    return StaffingRequirement(id='REQ-DAY', periodName='Day', startTime='07:00', endTime='17:00',
                               minimumEmployees=1)


@pytest.fixture
def early_requirement():
    return StaffingRequirement(id='REQ-EARLY', periodName='Early', startTime='00:00', endTime='06:00',
                               minimumEmployees=1)


@pytest.fixture
def week_options():
    return SchedulingOptions(startDate=D('2024-01-01'), endDate=D('2024-01-07'))


RAW_INPUT = {
    "employees": [
        {"id": "E1", "employeeRole": "Dispatcher", "weeklyHoursScheduled": 40, "defaultShiftTypeId": "DAY"}
    ],
    "shifts": [
        {"id": "S-DAY", "shiftTypeId": "DAY", "startTime": "07:00", "endTime": "17:00", "durationHours": 10}
    ],
    "patterns": [
        {"id": "P4x10", "name": "4x10 Standard", "patternType": "4x10",
         "daysOn": 4, "daysOff": 3, "shiftDuration": 10}
    ],
    "employeePatterns": [
        {"id": "EP1", "employeeId": "E1", "patternId": "P4x10",
         "startDate": "2024-01-01", "rotationStartDate": "2024-01-01"}
    ],
    "staffingRequirements": [
        {"id": "REQ-DAY", "periodName": "Day", "startTime": "07:00", "endTime": "17:00",
         "minimumEmployees": 1, "shiftSupervisorRequired": False}
    ],
    "options": {"startDate": "2024-01-01", "endDate": "2024-01-07"},
}


@pytest.fixture
def raw_input():
    """One-employee input that generates a valid schedule for 2024-01-01..07."""
    return copy.deepcopy(RAW_INPUT)
