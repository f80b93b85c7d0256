"""
Resource Monitor and Safety Check for schedule generation

Rejects oversized requests and refuses to start when the host is short on memory.
"""

import psutil
import logging
import os
from typing import Dict, Any, Optional, Tuple

from roster.engine.data_loader import ScheduleInput
from roster.engine.time_utils import get_dates_between

logger = logging.getLogger(__name__)


class SchedulerResourceLimits:
    """Resource limits for generation runs."""

    # Memory limits
    MAX_MEMORY_PERCENT = float(os.getenv("ROSTER_MAX_MEMORY_PERCENT", "85"))  # refuse above 85% used
    MIN_AVAILABLE_GB = 0.25

    # Problem size limit (employees × days × shifts scored per day)
    MAX_PROBLEM_UNITS = int(os.getenv("ROSTER_MAX_PROBLEM_UNITS", "2000000"))

    # Default wall-clock budget when the input sets none
    DEFAULT_TIME_LIMIT_SECONDS = float(os.getenv("ROSTER_TIME_LIMIT_SECONDS", "120"))


def estimate_problem_size(schedule_input: ScheduleInput) -> Dict[str, Any]:
    """
    Estimate problem size before generation.

    Returns:
        Dict with size metrics
    """
    options = schedule_input.options
    num_days = 0
    if options.get('startDate') and options.get('endDate'):
        num_days = len(get_dates_between(options['startDate'], options['endDate']))

    num_employees = len(schedule_input.employees)
    num_shifts = len(schedule_input.shifts)
    num_requirements = len(schedule_input.staffingRequirements)

    # Initial assignment scores every shift for every employee-day; repair and
    # swaps re-score within the same bound.
    problem_units = num_employees * num_days * max(num_shifts, 1)

    return {
        "numEmployees": num_employees,
        "numDays": num_days,
        "numShifts": num_shifts,
        "numRequirements": num_requirements,
        "problemUnits": problem_units,
    }


def check_resource_availability() -> Tuple[bool, Optional[str]]:
    """
    Check if the host has enough free memory to run.

    Returns:
        Tuple of (can_run: bool, reason: Optional[str])
    """
    memory = psutil.virtual_memory()
    available_gb = memory.available / (1024 ** 3)
    used_percent = memory.percent

    if used_percent > SchedulerResourceLimits.MAX_MEMORY_PERCENT:
        return False, (f"System memory usage too high: {used_percent:.1f}% "
                       f"(limit: {SchedulerResourceLimits.MAX_MEMORY_PERCENT}%)")

    if available_gb < SchedulerResourceLimits.MIN_AVAILABLE_GB:
        return False, f"Insufficient available memory: {available_gb:.2f}GB"

    return True, None


def validate_problem_size(schedule_input: ScheduleInput) -> Tuple[bool, Optional[str], Dict[str, Any]]:
    """
    Validate that problem size is within safe limits.

    Returns:
        Tuple of (is_valid: bool, error_message: Optional[str], size_metrics: dict)
    """
    size = estimate_problem_size(schedule_input)
    limit = SchedulerResourceLimits.MAX_PROBLEM_UNITS

    logger.info(f"Problem size: {size['numEmployees']} employees × {size['numDays']} days × "
                f"{size['numShifts']} shifts = {size['problemUnits']:,} units")

    if size['problemUnits'] > limit:
        return False, (
            f"Problem too large: {size['problemUnits']:,} units (limit: {limit:,}). "
            f"Consider shortening the date range or splitting employees into groups."
        ), size

    if size['problemUnits'] > limit * 0.7:
        logger.warning(f"⚠️ Problem size is large: {size['problemUnits'] / limit * 100:.0f}% of capacity")

    return True, None, size


def pre_run_safety_check(schedule_input: ScheduleInput) -> Tuple[bool, Optional[str], Dict[str, Any]]:
    """
    Comprehensive pre-run safety check.

    Returns:
        Tuple of (can_run: bool, error_message: Optional[str], size_metrics: dict)
    """
    can_run, resource_error = check_resource_availability()
    if not can_run:
        return False, resource_error, {}

    return validate_problem_size(schedule_input)
