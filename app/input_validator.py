"""
Input Validator for the roster engine
Validates input JSON before generation to catch errors early.
"""

from typing import Dict, List, Any, Set
from datetime import date

from roster.engine.data_loader import normalize_input
from roster.engine.time_utils import TIME_PATTERN


class InputValidationError:
    """Represents a validation error or warning"""
    def __init__(self, field: str, code: str, message: str, severity: str = "error"):
        self.field = field
        self.code = code
        self.message = message
        self.severity = severity

    def to_dict(self) -> Dict[str, str]:
        return {
            "field": self.field,
            "code": self.code,
            "message": self.message,
            "severity": self.severity
        }


class InputValidationResult:
    """Result of input validation"""
    def __init__(self):
        self.errors: List[InputValidationError] = []
        self.warnings: List[InputValidationError] = []

    @property
    def is_valid(self) -> bool:
        return len(self.errors) == 0

    def add_error(self, field: str, code: str, message: str):
        self.errors.append(InputValidationError(field, code, message, "error"))

    def add_warning(self, field: str, code: str, message: str):
        self.warnings.append(InputValidationError(field, code, message, "warning"))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "valid": self.is_valid,
            "errors": [e.to_dict() for e in self.errors],
            "warnings": [w.to_dict() for w in self.warnings]
        }


REQUIRED_SECTIONS = ['employees', 'shifts', 'patterns', 'employeePatterns', 'staffingRequirements', 'options']
VALID_ROLES = ('Dispatcher', 'Shift Supervisor', 'Management')


def validate_input(data: dict) -> InputValidationResult:
    """
    Comprehensive validation of generation input.

    Accepts camelCase or snake_case keys. Returns InputValidationResult
    with errors and warnings. Errors block generation, warnings are
    informational.
    """
    result = InputValidationResult()
    data = normalize_input(data)

    # Level 1: Schema Structure
    _validate_schema_structure(data, result)

    # If critical structure missing, return early
    if not result.is_valid:
        return result

    # Level 2: Records and references
    _validate_options(data, result)
    _validate_employees(data, result)
    _validate_shifts(data, result)
    _validate_patterns(data, result)
    _validate_employee_patterns(data, result)
    _validate_staffing_requirements(data, result)
    _validate_time_off(data, result)
    _validate_constraints(data, result)

    # Level 3: Feasibility Pre-Checks
    if result.is_valid:
        _validate_feasibility(data, result)

    return result


def _parse_date(value) -> date:
    return date.fromisoformat(str(value))


def _check_date(field: str, value, result: InputValidationResult):
    try:
        return _parse_date(value)
    except (TypeError, ValueError):
        result.add_error(field, 'INVALID_DATE', f"'{value}' is not a YYYY-MM-DD date")
        return None


def _check_time(field: str, value, result: InputValidationResult) -> bool:
    if not isinstance(value, str) or not TIME_PATTERN.match(value):
        result.add_error(field, 'INVALID_TIME', f"'{value}' is not a HH:MM time")
        return False
    return True


def _check_unique_ids(section: str, rows: list, result: InputValidationResult) -> Set[str]:
    seen: Set[str] = set()
    for idx, row in enumerate(rows):
        row_id = row.get('id')
        if not row_id:
            result.add_error(f"{section}[{idx}].id", 'MISSING_FIELD', f"{section}[{idx}] has no id")
            continue
        if row_id in seen:
            result.add_error(f"{section}[{idx}].id", 'DUPLICATE_ID', f"Duplicate {section} id '{row_id}'")
        seen.add(row_id)
    return seen


def _validate_schema_structure(data: dict, result: InputValidationResult):
    """Validate basic schema structure and required sections"""

    for section in REQUIRED_SECTIONS:
        if section not in data:
            result.add_error(section, "MISSING_FIELD", f"Required section '{section}' is missing")

    for section in REQUIRED_SECTIONS[:-1]:
        if section in data and not isinstance(data[section], list):
            result.add_error(section, 'INVALID_TYPE', f"{section} must be an array")

    if 'options' in data and not isinstance(data['options'], dict):
        result.add_error('options', 'INVALID_TYPE', "options must be an object")

    for section in ('employees', 'shifts'):
        if isinstance(data.get(section), list) and len(data[section]) == 0:
            result.add_error(section, 'EMPTY_ARRAY', f"{section} array cannot be empty")

    if isinstance(data.get('staffingRequirements'), list) and not data['staffingRequirements']:
        result.add_warning('staffingRequirements', 'EMPTY_ARRAY',
                           "No staffing requirements - coverage will not be checked")


def _validate_options(data: dict, result: InputValidationResult):
    """Validate the scheduling date range and numeric options"""
    options = data['options']

    start = end = None
    for key in ('startDate', 'endDate'):
        if key not in options:
            result.add_error(f"options.{key}", 'MISSING_FIELD', f"{key} is required")
    if 'startDate' in options:
        start = _check_date('options.startDate', options['startDate'], result)
    if 'endDate' in options:
        end = _check_date('options.endDate', options['endDate'], result)

    if start and end:
        if end < start:
            result.add_error('options', 'INVALID_DATE_RANGE', f"endDate {end} is before startDate {start}")
        elif (end - start).days > 366:
            result.add_warning('options', 'LONG_HORIZON',
                               f"Scheduling range of {(end - start).days + 1} days is unusually long")

    for key in ('minimumRestHours', 'maximumConsecutiveDays', 'timeLimitSeconds'):
        value = options.get(key)
        if value is not None and (not isinstance(value, (int, float)) or value < 0):
            result.add_error(f"options.{key}", 'INVALID_VALUE', f"{key} must be a non-negative number")

    include = options.get('includeEmployeeIds') or []
    exclude = options.get('excludeEmployeeIds') or []
    if include and exclude:
        result.add_warning('options', 'INCLUDE_EXCLUDE_CONFLICT',
                           f"excludeEmployeeIds {sorted(exclude)} is ignored because includeEmployeeIds is set")


def _validate_employees(data: dict, result: InputValidationResult):
    """Validate employee records"""
    employees = data['employees']
    _check_unique_ids('employees', employees, result)

    for idx, emp in enumerate(employees):
        role = emp.get('employeeRole', 'Dispatcher')
        if role not in VALID_ROLES:
            result.add_error(f"employees[{idx}].employeeRole", 'INVALID_VALUE',
                             f"Unknown role '{role}' (expected one of {', '.join(VALID_ROLES)})")
        hours = emp.get('weeklyHoursScheduled')
        if hours is None:
            result.add_error(f"employees[{idx}].weeklyHoursScheduled", 'MISSING_FIELD',
                             f"Employee '{emp.get('id')}' has no weeklyHoursScheduled")
        elif not isinstance(hours, (int, float)) or hours < 0:
            result.add_error(f"employees[{idx}].weeklyHoursScheduled", 'INVALID_VALUE',
                             "weeklyHoursScheduled must be a non-negative number")


def _validate_shifts(data: dict, result: InputValidationResult):
    """Validate the shift catalog"""
    shifts = data['shifts']
    _check_unique_ids('shifts', shifts, result)

    for idx, shift in enumerate(shifts):
        for key in ('startTime', 'endTime'):
            if key not in shift:
                result.add_error(f"shifts[{idx}].{key}", 'MISSING_FIELD', f"{key} is required")
            else:
                _check_time(f"shifts[{idx}].{key}", shift[key], result)
        if not shift.get('shiftTypeId'):
            result.add_error(f"shifts[{idx}].shiftTypeId", 'MISSING_FIELD', "shiftTypeId is required")
        duration = shift.get('durationHours')
        if not isinstance(duration, (int, float)) or duration <= 0:
            result.add_error(f"shifts[{idx}].durationHours", 'INVALID_VALUE',
                             "durationHours must be a positive number")
        elif duration > 24:
            result.add_error(f"shifts[{idx}].durationHours", 'INVALID_VALUE',
                             "durationHours cannot exceed 24")


def _validate_patterns(data: dict, result: InputValidationResult):
    """Validate shift patterns"""
    patterns = data['patterns']
    _check_unique_ids('patterns', patterns, result)
    durations = {s.get('durationHours') for s in data['shifts']}

    for idx, pattern in enumerate(patterns):
        days_on = pattern.get('daysOn')
        days_off = pattern.get('daysOff')
        if not isinstance(days_on, int) or days_on < 1:
            result.add_error(f"patterns[{idx}].daysOn", 'INVALID_VALUE', "daysOn must be an integer >= 1")
        if not isinstance(days_off, int) or days_off < 0:
            result.add_error(f"patterns[{idx}].daysOff", 'INVALID_VALUE', "daysOff must be an integer >= 0")
        duration = pattern.get('shiftDuration')
        if not isinstance(duration, (int, float)) or duration <= 0:
            result.add_error(f"patterns[{idx}].shiftDuration", 'INVALID_VALUE',
                             "shiftDuration must be a positive number")
        elif duration not in durations:
            result.add_warning(f"patterns[{idx}].shiftDuration", 'NO_MATCHING_SHIFT',
                               f"Pattern '{pattern.get('id')}' requires {duration}-hour shifts "
                               f"but no shift in the catalog lasts that long")


def _validate_employee_patterns(data: dict, result: InputValidationResult):
    """Validate pattern bindings and their references"""
    bindings = data['employeePatterns']
    _check_unique_ids('employeePatterns', bindings, result)
    employee_ids = {e.get('id') for e in data['employees']}
    pattern_ids = {p.get('id') for p in data['patterns']}

    for idx, ep in enumerate(bindings):
        field = f"employeePatterns[{idx}]"
        if ep.get('employeeId') not in employee_ids:
            result.add_error(f"{field}.employeeId", 'UNKNOWN_REFERENCE',
                             f"Unknown employee '{ep.get('employeeId')}'")
        if ep.get('patternId') not in pattern_ids:
            result.add_error(f"{field}.patternId", 'UNKNOWN_REFERENCE',
                             f"Unknown pattern '{ep.get('patternId')}'")

        start = _check_date(f"{field}.startDate", ep.get('startDate'), result)
        _check_date(f"{field}.rotationStartDate", ep.get('rotationStartDate'), result)
        if ep.get('endDate') is not None:
            end = _check_date(f"{field}.endDate", ep['endDate'], result)
            if start and end and end < start:
                result.add_error(field, 'INVALID_DATE_RANGE', f"endDate {end} is before startDate {start}")


def _validate_time_off(data: dict, result: InputValidationResult):
    """Validate the optional timeOff section"""
    entries = data.get('timeOff')
    if entries is None:
        return
    if not isinstance(entries, list):
        result.add_error('timeOff', 'INVALID_TYPE', "timeOff must be an array")
        return

    employee_ids = {e.get('id') for e in data['employees']}
    for idx, entry in enumerate(entries):
        field = f"timeOff[{idx}]"
        if entry.get('employeeId') not in employee_ids:
            result.add_error(f"{field}.employeeId", 'UNKNOWN_REFERENCE',
                             f"Unknown employee '{entry.get('employeeId')}'")
        start = _check_date(f"{field}.startDate", entry.get('startDate'), result)
        end = _check_date(f"{field}.endDate", entry.get('endDate'), result)
        if start and end and end < start:
            result.add_error(field, 'INVALID_DATE_RANGE', f"endDate {end} is before startDate {start}")


def _validate_staffing_requirements(data: dict, result: InputValidationResult):
    """Validate staffing requirements"""
    requirements = data['staffingRequirements']
    _check_unique_ids('staffingRequirements', requirements, result)

    for idx, req in enumerate(requirements):
        field = f"staffingRequirements[{idx}]"
        for key in ('startTime', 'endTime'):
            if key not in req:
                result.add_error(f"{field}.{key}", 'MISSING_FIELD', f"{key} is required")
            else:
                _check_time(f"{field}.{key}", req[key], result)
        minimum = req.get('minimumEmployees')
        if not isinstance(minimum, int) or minimum < 0:
            result.add_error(f"{field}.minimumEmployees", 'INVALID_VALUE',
                             "minimumEmployees must be a non-negative integer")
        if not req.get('periodName'):
            result.add_error(f"{field}.periodName", 'MISSING_FIELD', "periodName is required")


def _validate_constraints(data: dict, result: InputValidationResult):
    """Validate constraintList entries"""
    known = ('minimumRestHours', 'maximumConsecutiveDays')
    for idx, constraint in enumerate(data.get('constraintList') or []):
        cid = constraint.get('id')
        if cid not in known:
            result.add_warning(f"constraintList[{idx}].id", 'UNKNOWN_CONSTRAINT',
                               f"Constraint '{cid}' is not used by the engine")
            continue
        value = constraint.get('defaultValue')
        if value is not None and (not isinstance(value, (int, float)) or value < 0):
            result.add_error(f"constraintList[{idx}].defaultValue", 'INVALID_VALUE',
                             f"{cid} must be a non-negative number")
        for role, override in (constraint.get('roleOverrides') or {}).items():
            field = f"constraintList[{idx}].roleOverrides.{role}"
            if role not in VALID_ROLES:
                result.add_error(field, 'INVALID_VALUE', f"Unknown role '{role}' in roleOverrides")
            elif not isinstance(override, (int, float)) or override < 0:
                result.add_error(field, 'INVALID_VALUE', f"{cid} override must be a non-negative number")


def _validate_feasibility(data: dict, result: InputValidationResult):
    """Cheap pre-checks that point at obviously infeasible input"""
    options = data['options']
    start = _parse_date(options['startDate'])
    end = _parse_date(options['endDate'])

    bound = set()
    for ep in data['employeePatterns']:
        ep_start = _parse_date(ep['startDate'])
        ep_end = _parse_date(ep['endDate']) if ep.get('endDate') else None
        if ep_start <= start and (ep_end is None or ep_end >= end):
            bound.add(ep['employeeId'])

    unbound = [e['id'] for e in data['employees'] if e.get('id') not in bound]
    if unbound:
        result.add_warning('employeePatterns', 'NO_ACTIVE_PATTERN',
                           f"{len(unbound)} employees have no pattern covering the whole range "
                           f"and will not be scheduled: {unbound[:10]}")

    if any(r.get('shiftSupervisorRequired') for r in data['staffingRequirements']):
        if not any(e.get('employeeRole') == 'Shift Supervisor' for e in data['employees']):
            result.add_warning('employees', 'NO_SUPERVISORS',
                               "Requirements need a shift supervisor but no employee has that role")

    peak = max((r.get('minimumEmployees', 0) for r in data['staffingRequirements']), default=0)
    if peak > len(bound):
        result.add_warning('staffingRequirements', 'INSUFFICIENT_HEADCOUNT',
                           f"A period requires {peak} employees but only {len(bound)} have an active pattern")
