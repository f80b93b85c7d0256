"""
Scheduler health monitoring.

Turns a generation result and its coverage report into run metrics, alerts
and an overall status:

    critical  - any metric at its critical threshold, or the run errored
    degraded  - any metric at its warning threshold, or any alert raised
    healthy   - otherwise

Metrics are returned to the caller; storing them is the caller's concern.
"""

import logging
from typing import Dict, Iterable, List, Optional

from pydantic import BaseModel, Field

from roster.models import CoverageReport, SchedulingResult, StaffingRequirement

logger = logging.getLogger(__name__)

CRITICAL_THRESHOLDS = {
    'coverageDeficit': 3,
    'overtimeViolations': 5,
    'patternErrors': 2,
}

WARNING_THRESHOLDS = {
    'coverageDeficit': 1,
    'overtimeViolations': 2,
    'patternErrors': 1,
}

PATTERN_ERROR_CODES = ('PATTERN_DAYS_MISMATCH', 'PATTERN_DURATION_MISMATCH')
OVERTIME_ERROR_CODES = ('WEEKLY_HOURS_EXCEEDED',)


class SchedulerMetrics(BaseModel):
    coverageDeficit: int = Field(0, description="Periods below their minimum headcount")
    overtimeViolations: int = Field(0, description="Employee-weeks above the weekly target")
    patternErrors: int = Field(0, description="Pattern compliance errors")
    scheduleGenerationTime: float = Field(0.0, description="Seconds")
    lastRunStatus: str = Field("success", description="success | failed | error")
    errorMessage: Optional[str] = None


class HealthCheckResult(BaseModel):
    status: str = Field(..., description="healthy | degraded | critical")
    metrics: SchedulerMetrics
    coverage: List[CoverageReport] = Field(default_factory=list)
    alerts: List[str] = Field(default_factory=list)


def collect_metrics(
    result: SchedulingResult,
    coverage: Dict[str, CoverageReport],
    duration: float
) -> SchedulerMetrics:
    """
    Derive run metrics from a SchedulingResult and its coverage.

    Args:
        result: Output of generate_schedule()
        coverage: Output of calculate_coverage() for the same assignments
        duration: Wall-clock seconds the run took

    Returns:
        SchedulerMetrics
    """
    deficit = sum(
        1
        for report in coverage.values()
        for period in report.periods.values()
        if period.actual < period.required
    )

    errors = result.validation.errors if result.validation else []
    overtime = sum(1 for e in errors if e.code in OVERTIME_ERROR_CODES)
    pattern_errors = sum(1 for e in errors if e.code in PATTERN_ERROR_CODES)

    if result.success:
        status, message = 'success', None
    elif result.validation is not None:
        status, message = 'failed', f"{len(result.errors)} validation errors"
    else:
        status, message = 'error', result.errors[0] if result.errors else 'Schedule generation failed'

    return SchedulerMetrics(
        coverageDeficit=deficit,
        overtimeViolations=overtime,
        patternErrors=pattern_errors,
        scheduleGenerationTime=round(duration, 3),
        lastRunStatus=status,
        errorMessage=message,
    )


class SchedulerMonitor:
    """
    Evaluates scheduler health against fixed thresholds.

    Args:
        requirements: Staffing requirements; periods that require a
            supervisor raise a warning alert when none is counted
    """

    def __init__(
        self,
        requirements: Iterable[StaffingRequirement] = (),
        critical_thresholds: Optional[Dict[str, int]] = None,
        warning_thresholds: Optional[Dict[str, int]] = None
    ):
        self.supervisor_periods = {r.period_key for r in requirements if r.shiftSupervisorRequired}
        self.critical = {**CRITICAL_THRESHOLDS, **(critical_thresholds or {})}
        self.warning = {**WARNING_THRESHOLDS, **(warning_thresholds or {})}

    def _at_threshold(self, metrics: SchedulerMetrics, thresholds: Dict[str, int]) -> List[str]:
        return [name for name, limit in thresholds.items() if getattr(metrics, name) >= limit]

    def generate_alerts(self, metrics: SchedulerMetrics, coverage: Iterable[CoverageReport]) -> List[str]:
        alerts = []
        critical = self._at_threshold(metrics, self.critical)
        if 'coverageDeficit' in critical:
            alerts.append(f"Critical: {metrics.coverageDeficit} periods are understaffed")
        if 'overtimeViolations' in critical:
            alerts.append(f"Critical: {metrics.overtimeViolations} overtime violations detected")
        if 'patternErrors' in critical:
            alerts.append(f"Critical: {metrics.patternErrors} pattern violations detected")

        for report in coverage:
            for period_key, period in report.periods.items():
                if period_key in self.supervisor_periods and period.supervisors == 0:
                    alerts.append(f"Warning: No supervisor assigned for period {period_key} on {report.date}")
        return alerts

    def determine_status(self, metrics: SchedulerMetrics, alerts: List[str]) -> str:
        if self._at_threshold(metrics, self.critical) or metrics.lastRunStatus == 'error':
            return 'critical'
        if self._at_threshold(metrics, self.warning) or alerts:
            return 'degraded'
        return 'healthy'

    def check_health(self, metrics: SchedulerMetrics, coverage: Dict[str, CoverageReport]) -> HealthCheckResult:
        reports = list(coverage.values())
        alerts = self.generate_alerts(metrics, reports)
        status = self.determine_status(metrics, alerts)
        if status != 'healthy':
            logger.warning(f"Scheduler health {status}: {len(alerts)} alerts")
        return HealthCheckResult(status=status, metrics=metrics, coverage=reports, alerts=alerts)
