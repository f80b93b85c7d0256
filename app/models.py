"""
Pydantic models for the roster command-line interface.

Defines the request/response envelopes written around the engine's output.
"""

from pydantic import BaseModel, Field, ConfigDict
from typing import Optional, Dict, List, Any
from datetime import datetime


class GenerateRequest(BaseModel):
    """
    Generation request as read from the input JSON.

    Sections (camelCase or snake_case accepted):
    - **employees**, **shifts**, **patterns**, **employeePatterns**,
      **staffingRequirements**: record lists
    - **options**: startDate, endDate, include/exclude lists, preferences
    - **timeOff**: optional approved leave (employeeId, startDate, endDate)
    - **constraintList**: overrides such as minimumRestHours, with roleOverrides
    """

    input_json: Dict[str, Any] = Field(..., description="Raw input JSON")
    requestId: Optional[str] = Field(None, description="Caller-supplied request id")

    model_config = ConfigDict(extra='allow')


class Meta(BaseModel):
    """Response metadata."""
    requestId: str = Field(..., description="Unique request ID for tracing")
    generatedAt: str = Field(default_factory=lambda: datetime.now().isoformat(), description="ISO 8601 timestamp")
    engineVersion: str = Field("1.0.0")
    inputHash: Optional[str] = Field(None, description="SHA256 of the input JSON")
    durationSeconds: float = Field(0.0, description="Generation wall-clock time")
    phaseTimings: Dict[str, float] = Field(default_factory=dict)
    problemSize: Optional[Dict[str, Any]] = Field(None, description="Estimated problem size")


class CoverageRow(BaseModel):
    """One (date, period) coverage row, flat for persistence."""
    date: str
    periodId: str
    periodName: str = ""
    requiredCoverage: int
    actualCoverage: int
    supervisorCount: int
    overtimeCount: int


class GenerateResponse(BaseModel):
    """Output document written by run_scheduler."""
    status: str = Field(..., description="SUCCESS, NEEDS_REVIEW, CANCELLED or INVALID_INPUT")
    success: bool = False
    assignments: List[Dict[str, Any]] = Field(default_factory=list)
    unassignedShifts: List[Dict[str, Any]] = Field(default_factory=list)
    coverageGaps: List[Dict[str, Any]] = Field(default_factory=list)
    coverage: Dict[str, Any] = Field(default_factory=dict, description="date -> period key -> counts")
    dailyCoverage: List[CoverageRow] = Field(default_factory=list)
    validation: Optional[Dict[str, Any]] = None
    errors: List[str] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)
    health: Optional[Dict[str, Any]] = None
    meta: Meta

    model_config = ConfigDict(extra='allow')
