import json
import logging
import pathlib
import re
from typing import Any, Dict, List, Union

from pydantic import BaseModel, ConfigDict, Field

from roster.models import Employee, EmployeePattern, Shift, ShiftPattern, StaffingRequirement, TimeOff

logger = logging.getLogger(__name__)

# Section names accepted in input JSON -> canonical name.
SECTION_ALIASES = {
    'employees': 'employees',
    'shifts': 'shifts',
    'patterns': 'patterns',
    'shiftPatterns': 'patterns',
    'shift_patterns': 'patterns',
    'employeePatterns': 'employeePatterns',
    'employee_patterns': 'employeePatterns',
    'staffingRequirements': 'staffingRequirements',
    'staffing_requirements': 'staffingRequirements',
    'timeOff': 'timeOff',
    'time_off': 'timeOff',
    'timeOffRequests': 'timeOff',
    'time_off_requests': 'timeOff',
    'options': 'options',
    'constraintList': 'constraintList',
    'constraint_list': 'constraintList',
}

ROW_SECTIONS = ('employees', 'shifts', 'patterns', 'employeePatterns', 'staffingRequirements', 'timeOff')

_SNAKE = re.compile(r'_([a-z0-9])')


class ScheduleInput(BaseModel):
    """Typed generation input."""
    employees: List[Employee] = Field(default_factory=list)
    shifts: List[Shift] = Field(default_factory=list)
    patterns: List[ShiftPattern] = Field(default_factory=list)
    employeePatterns: List[EmployeePattern] = Field(default_factory=list)
    staffingRequirements: List[StaffingRequirement] = Field(default_factory=list)
    timeOff: List[TimeOff] = Field(default_factory=list, description="Approved leave; optional")
    options: Dict[str, Any] = Field(default_factory=dict)
    constraintList: List[Dict[str, Any]] = Field(default_factory=list)

    model_config = ConfigDict(extra='allow')


def to_camel(key: str) -> str:
    """
    Convert a snake_case key to camelCase; camelCase keys pass through.

    Examples:
        'start_time' → 'startTime'
        'weekly_hours_scheduled' → 'weeklyHoursScheduled'
        'startTime' → 'startTime'
    """
    return _SNAKE.sub(lambda m: m.group(1).upper(), key)


def normalize_keys(row: Dict[str, Any]) -> Dict[str, Any]:
    """Camel-case every key of one record (rows exported from SQL use snake_case)."""
    return {to_camel(k): v for k, v in row.items()}


def normalize_input(data: Dict[str, Any]) -> Dict[str, Any]:
    """
    Normalize section names and row keys to the canonical camelCase shape.

    Args:
        data: Raw input dict

    Returns:
        New dict; the input is left untouched
    """
    normalized: Dict[str, Any] = {}
    for key, value in data.items():
        canonical = SECTION_ALIASES.get(key, key)
        if canonical in ROW_SECTIONS and isinstance(value, list):
            value = [normalize_keys(row) if isinstance(row, dict) else row for row in value]
        elif canonical == 'options' and isinstance(value, dict):
            value = normalize_keys(value)
        normalized[canonical] = value
    return normalized


def read_input(path: Union[str, pathlib.Path, Dict[str, Any]]) -> Dict[str, Any]:
    """Raw input dict from a file path or an already-parsed dict, with keys normalized."""
    if isinstance(path, dict):
        data = path
    else:
        p = pathlib.Path(path)
        data = json.loads(p.read_text(encoding="utf-8"))
    return normalize_input(data)


def load_input(path: Union[str, pathlib.Path, Dict[str, Any]]) -> ScheduleInput:
    """
    Load input data from file path or dict.

    Args:
        path: File path (str or Path) or dict with input data

    Returns:
        ScheduleInput with typed records

    Raises:
        pydantic.ValidationError: when records do not match the models
    """
    data = read_input(path)
    loaded = ScheduleInput.model_validate(data)
    logger.info(
        f"Loaded input: {len(loaded.employees)} employees, {len(loaded.shifts)} shifts, "
        f"{len(loaded.patterns)} patterns, {len(loaded.employeePatterns)} bindings, "
        f"{len(loaded.staffingRequirements)} requirements, {len(loaded.timeOff)} time-off entries"
    )
    return loaded
