"""Scheduling options and constraint configuration.

Everything the engine needs is passed in at construction through
SchedulingOptions; the engine never fetches configuration on its own.

Options can be tuned from the input JSON in two places:

    "options": {
      "startDate": "2024-01-01",
      "endDate": "2024-01-14",
      "excludeEmployeeIds": ["E9"],
      "preferredShiftTypes": {"E1": ["DAY"]}
    },
    "constraintList": [
      {"id": "minimumRestHours", "defaultValue": 10},
      {
        "id": "maximumConsecutiveDays",
        "defaultValue": 6,
        "roleOverrides": {"Shift Supervisor": 5}
      }
    ]

Values in constraintList win over the same keys in options. roleOverrides
are carried into SchedulingOptions.roleOverrides and apply to every employee
with that role in the rest and consecutive-day rules and the shift scorer.
"""

import logging
from datetime import date
from typing import Any, Dict, Iterable, List, Optional, Union

from pydantic import BaseModel, Field, model_validator

logger = logging.getLogger(__name__)

MINIMUM_REST_HOURS = 'minimumRestHours'
MAXIMUM_CONSECUTIVE_DAYS = 'maximumConsecutiveDays'

DEFAULT_MINIMUM_REST_HOURS = 10
DEFAULT_MAXIMUM_CONSECUTIVE_DAYS = 6


class ScoringWeights(BaseModel):
    """Additive weights of the shift scorer."""
    base: float = Field(100, description="Score of any acceptable shift")
    preferenceBonus: float = Field(50, description="Shift type is the employee's default or preferred")
    coverageBonus: float = Field(30, description="Shift overlaps a period that is still under-staffed")


class SearchLimits(BaseModel):
    """Bounds on the generator's repair and optimization loops."""
    maxCoverageRepairAttempts: int = Field(5, ge=0)
    maxOptimizationPasses: int = Field(5, ge=0)
    maxDaySwapIterations: int = Field(1000, ge=0)


class SchedulingOptions(BaseModel):
    startDate: date
    endDate: date
    includeEmployeeIds: Optional[List[str]] = Field(None, description="Restrict the run to these employees (exclude list is then ignored)")
    excludeEmployeeIds: Optional[List[str]] = Field(None, description="Remove these employees when no include list is given")
    preferredShiftTypes: Optional[Dict[str, List[str]]] = Field(None, description="employeeId -> shiftTypeIds")
    minimumRestHours: float = Field(DEFAULT_MINIMUM_REST_HOURS, ge=0)
    maximumConsecutiveDays: int = Field(DEFAULT_MAXIMUM_CONSECUTIVE_DAYS, ge=1)
    timeLimitSeconds: Optional[float] = Field(None, gt=0, description="Wall-clock budget for one run")
    scoringWeights: ScoringWeights = Field(default_factory=ScoringWeights)
    searchLimits: SearchLimits = Field(default_factory=SearchLimits)
    roleOverrides: Dict[str, Dict[str, Union[int, float]]] = Field(
        default_factory=dict, description="constraintId -> employeeRole -> value"
    )

    @model_validator(mode='after')
    def _check_range(self):
        if self.endDate < self.startDate:
            raise ValueError(f"endDate {self.endDate} is before startDate {self.startDate}")
        return self

    def limit_for(self, constraint_id: str, employee: Optional[Any] = None) -> Any:
        """Value of minimumRestHours or maximumConsecutiveDays for this employee's role."""
        default = getattr(self, constraint_id)
        if employee is None:
            return default
        return self.roleOverrides.get(constraint_id, {}).get(_employee_role(employee), default)


def get_constraint_param(
    config: dict,
    constraint_id: str,
    employee: Optional[Any] = None,
    default: Any = None
) -> Any:
    """
    Read a constraint value from an input constraintList.

    Lookup priority:
    1. roleOverrides entry for the employee's role (when an employee is given)
    2. defaultValue
    3. default parameter

    Args:
        config: Input dict carrying 'constraintList'
        constraint_id: Constraint identifier (e.g., 'minimumRestHours')
        employee: Employee model or dict with 'employeeRole' (optional)
        default: Value returned when the constraint is absent

    Returns:
        Configured value for this constraint (and employee)

    Examples:
        get_constraint_param(cfg, 'minimumRestHours', default=10)
        get_constraint_param(cfg, 'maximumConsecutiveDays', employee=emp, default=6)
    """
    constraint = get_constraint(config, constraint_id)
    if not constraint:
        return default

    if employee is not None:
        role = _employee_role(employee)
        overrides = constraint.get('roleOverrides', {}) or {}
        if role in overrides:
            return overrides[role]

    return constraint.get('defaultValue', default)


def get_constraint(config: dict, constraint_id: str) -> Optional[dict]:
    for c in config.get('constraintList', []) or []:
        if c.get('id') == constraint_id:
            return c
    return None


def _employee_role(employee: Any) -> Optional[str]:
    role = employee.get('employeeRole') if isinstance(employee, dict) else getattr(employee, 'employeeRole', None)
    return getattr(role, 'value', role)


def build_scheduling_options(raw: dict, **overrides) -> SchedulingOptions:
    """
    Merge the input's 'options' block with constraintList values.

    Args:
        raw: Input dict with 'options' and optionally 'constraintList'
        **overrides: Values that win over both (e.g., timeLimitSeconds from the CLI)

    Returns:
        Validated SchedulingOptions
    """
    options = dict(raw.get('options', {}) or {})
    role_overrides = {k: dict(v) for k, v in (options.get('roleOverrides') or {}).items()}

    for constraint_id in (MINIMUM_REST_HOURS, MAXIMUM_CONSECUTIVE_DAYS):
        value = get_constraint_param(raw, constraint_id)
        if value is not None:
            logger.debug(f"constraintList sets {constraint_id}={value}")
            options[constraint_id] = value
        by_role = (get_constraint(raw, constraint_id) or {}).get('roleOverrides') or {}
        if by_role:
            logger.debug(f"constraintList role overrides for {constraint_id}: {by_role}")
            role_overrides.setdefault(constraint_id, {}).update(by_role)

    if role_overrides:
        options['roleOverrides'] = role_overrides

    for key, value in overrides.items():
        if value is not None:
            options[key] = value

    return SchedulingOptions.model_validate(options)


def per_employee_limits(
    employees: Iterable[Any],
    constraint_id: str,
    role_overrides: Optional[Dict[str, Dict[str, Any]]]
) -> Dict[str, Any]:
    """employeeId -> value for employees whose role has an override."""
    by_role = (role_overrides or {}).get(constraint_id) or {}
    limits = {}
    for employee in employees:
        role = _employee_role(employee)
        if role in by_role:
            limits[employee.id] = by_role[role]
    return limits
