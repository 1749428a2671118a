from datetime import datetime

from pydantic import BaseModel, Field

from legal_case_management.models.entities import ErrorSeverity, ErrorType


class ErrorLogCreate(BaseModel):
    source: str = Field(..., min_length=1, max_length=100, description="Module that raised the error")
    error_type: ErrorType
    error_code: str = Field(..., min_length=1, max_length=100)
    error_message: str = Field(..., min_length=1)
    root_cause_summary: str | None = None
    stack_trace: str | None = None
    entity_affected: str | None = Field(default=None, max_length=200)
    severity: ErrorSeverity | None = Field(
        default=None, description="Derived from type and code when omitted"
    )
    created_by: str | None = None
    metadata: dict = Field(default_factory=dict)


class ErrorResolve(BaseModel):
    resolution_notes: str = Field(..., min_length=1)
    resolved_by: str = Field(..., min_length=1)


class ErrorLogFilter(BaseModel):
    source: str | None = None
    error_type: ErrorType | None = None
    severity: ErrorSeverity | None = None
    resolved: bool | None = None
    error_code: str | None = None
    entity_affected: str | None = None
    created_by: str | None = None
    date_from: datetime | None = None
    date_to: datetime | None = None
