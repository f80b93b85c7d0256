"""
Pydantic models for the roster engine.

Defines the records exchanged with the engine: the read-only inputs of a
generation run (employees, shifts, patterns, staffing requirements, time off)
and the records a run produces (assignments, validation results, coverage reports).

Time-of-day fields are plain "HH:MM" strings. They are parsed by
roster.engine.time_utils, which raises TimeFormatError on malformed values,
so a bad time surfaces as that exception rather than as a model error.
"""

from datetime import date, datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator


class TimeFormatError(ValueError):
    """Raised when a time string or millisecond value cannot be interpreted."""


# ============================================================================
# ENUMS
# ============================================================================

class EmployeeRole(str, Enum):
    DISPATCHER = "Dispatcher"
    SHIFT_SUPERVISOR = "Shift Supervisor"
    MANAGEMENT = "Management"


class ShiftPatternType(str, Enum):
    FOUR_BY_TEN = "4x10"
    THREE_BY_TWELVE_ONE_BY_FOUR = "3x12_1x4"
    CUSTOM = "Custom"


class ScheduleStatus(str, Enum):
    DRAFT = "Draft"
    PUBLISHED = "Published"


# ============================================================================
# INPUT RECORDS
# ============================================================================

class Employee(BaseModel):
    """Employee available for scheduling. Immutable for one generation run."""
    id: str
    employeeRole: EmployeeRole = Field(EmployeeRole.DISPATCHER, description="Dispatcher, Shift Supervisor or Management")
    weeklyHoursScheduled: float = Field(..., ge=0, description="Weekly hours target")
    defaultShiftTypeId: Optional[str] = Field(None, description="Preferred shift type")

    model_config = ConfigDict(extra='allow', frozen=True)

    @property
    def is_supervisor(self) -> bool:
        return self.employeeRole == EmployeeRole.SHIFT_SUPERVISOR


class Shift(BaseModel):
    """
    Shift template from the catalog.

    endTime may be numerically less than startTime, meaning the shift
    crosses midnight (e.g. 19:00-05:00).
    """
    id: str
    shiftTypeId: str
    startTime: str = Field(..., description="HH:MM, 24-hour")
    endTime: str = Field(..., description="HH:MM, 24-hour")
    durationHours: float = Field(..., gt=0)
    durationCategory: Optional[str] = Field(None, description="Derived bucket, e.g. '10 hours'")

    model_config = ConfigDict(extra='allow', frozen=True)

    @model_validator(mode='before')
    @classmethod
    def _derive_duration_category(cls, data: Any) -> Any:
        if isinstance(data, dict) and not data.get('durationCategory') and data.get('durationHours') is not None:
            hours = float(data['durationHours'])
            label = int(hours) if hours.is_integer() else hours
            data = {**data, 'durationCategory': f"{label} hours"}
        return data

    @property
    def crosses_midnight(self) -> bool:
        # Parsed rather than compared as text so unpadded hours like 7:00 order correctly.
        from roster.engine.time_utils import parse_time_to_ms
        return parse_time_to_ms(self.endTime) < parse_time_to_ms(self.startTime)


class ShiftPattern(BaseModel):
    """Repeating on/off rotation of length daysOn + daysOff."""
    id: str
    name: str = ""
    patternType: ShiftPatternType = ShiftPatternType.CUSTOM
    daysOn: int = Field(..., ge=1)
    daysOff: int = Field(..., ge=0)
    shiftDuration: float = Field(..., gt=0, description="Required shift duration in hours")

    model_config = ConfigDict(extra='allow', frozen=True)

    @property
    def cycle_length(self) -> int:
        return self.daysOn + self.daysOff


class EmployeePattern(BaseModel):
    """
    Binds one employee to one ShiftPattern for an effective date range.

    rotationStartDate fixes the phase of the on/off cycle.
    """
    id: str
    employeeId: str
    patternId: str
    startDate: date
    endDate: Optional[date] = Field(None, description="Open-ended when omitted")
    rotationStartDate: date

    model_config = ConfigDict(extra='allow', frozen=True)

    def is_active_for(self, start: date, end: date) -> bool:
        """True when the binding covers the whole window [start, end]."""
        return self.startDate <= start and (self.endDate is None or self.endDate >= end)

    def is_effective_on(self, day: date) -> bool:
        return self.startDate <= day and (self.endDate is None or day <= self.endDate)


class StaffingRequirement(BaseModel):
    """Named time-of-day period with a minimum headcount."""
    id: str
    periodName: str
    startTime: str
    endTime: str
    minimumEmployees: int = Field(..., ge=0)
    shiftSupervisorRequired: bool = False

    model_config = ConfigDict(extra='allow', frozen=True)

    @property
    def period_key(self) -> str:
        return f"{self.startTime}-{self.endTime}"


class TimeOff(BaseModel):
    """Approved leave for one employee over an inclusive date range."""
    id: Optional[str] = None
    employeeId: str
    startDate: date
    endDate: date

    model_config = ConfigDict(extra='allow', frozen=True)

    @model_validator(mode='after')
    def _check_range(self):
        if self.endDate < self.startDate:
            raise ValueError(f"endDate {self.endDate} is before startDate {self.startDate}")
        return self

    def covers(self, day: date) -> bool:
        return self.startDate <= day <= self.endDate


# ============================================================================
# OUTPUT RECORDS
# ============================================================================

class ScheduleAssignment(BaseModel):
    """One employee working one shift on one date."""
    employeeId: str
    shiftId: str
    date: date
    status: ScheduleStatus = ScheduleStatus.DRAFT

    model_config = ConfigDict(extra='allow')


class ValidationError(BaseModel):
    """Single rule violation (error or warning)."""
    code: str = Field(..., description="Machine-readable rule code, e.g. INSUFFICIENT_REST")
    message: str
    details: Dict[str, Any] = Field(default_factory=dict)


class ValidationResult(BaseModel):
    isValid: bool = True
    errors: List[ValidationError] = Field(default_factory=list)
    warnings: List[ValidationError] = Field(default_factory=list)

    def add_error(self, code: str, message: str, **details):
        self.isValid = False
        self.errors.append(ValidationError(code=code, message=message, details=details))

    def add_warning(self, code: str, message: str, **details):
        self.warnings.append(ValidationError(code=code, message=message, details=details))


class ShiftSegment(BaseModel):
    """Portion of a shift falling on one calendar date."""
    date: date
    hours: float
    start: datetime
    end: datetime


class PeriodCoverage(BaseModel):
    startTime: str
    endTime: str
    periodName: str = ""
    required: int = 0
    actual: int = 0
    supervisors: int = 0
    overtime: int = Field(0, description="Counted assignments that push the employee past their weekly target")


class CoverageReport(BaseModel):
    date: date
    periods: Dict[str, PeriodCoverage] = Field(default_factory=dict)


class UnassignedShift(BaseModel):
    date: date
    employeeId: str
    shiftId: Optional[str] = None
    reason: str


class CoverageGap(BaseModel):
    date: date
    periodId: str
    periodName: str
    required: int
    actual: int
    supervisorMissing: bool = False


class SchedulingResult(BaseModel):
    """Outcome of ScheduleGenerator.generate_schedule()."""
    success: bool = False
    assignments: List[ScheduleAssignment] = Field(default_factory=list)
    unassignedShifts: List[UnassignedShift] = Field(default_factory=list)
    coverageGaps: List[CoverageGap] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)
    errors: List[str] = Field(default_factory=list)
    validation: Optional[ValidationResult] = Field(None, description="Final validation pass")
    phaseTimings: Dict[str, float] = Field(default_factory=dict, description="Seconds spent per phase")
