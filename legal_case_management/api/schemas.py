"""
API request schemas that have no counterpart in the domain models.
"""

from datetime import date

from pydantic import BaseModel, Field

from legal_case_management.models.entities import DeliveryStatus, OutputFormat
from legal_case_management.models.notices import CommunicationRequest, RenderNoticeRequest


class CaseIdGenerateRequest(BaseModel):
    """Request model for case id generation."""

    prefix: str | None = None
    category_code: str | None = None
    on: date | None = None


class SequenceResetRequest(BaseModel):
    prefix: str | None = None
    category_code: str | None = None
    on: date | None = None
    value: int = Field(default=0, ge=0)


class CaseIdValidateRequest(BaseModel):
    case_id: str


class DeleteRequest(BaseModel):
    deleted_by: str | None = None


class ManualDetectionRequest(BaseModel):
    """Request model for running trigger detection over a set of accounts."""

    account_numbers: list[str] = Field(..., min_length=1, max_length=500)
    trigger_types: list[str] | None = None


class RuleToggleRequest(BaseModel):
    enabled: bool


class CommunicationBatchRequest(BaseModel):
    requests: list[CommunicationRequest] = Field(..., min_length=1, max_length=100)


class DeliveryStatusRequest(BaseModel):
    status: DeliveryStatus
    metadata: dict | None = None


class TemplateRenderRequest(BaseModel):
    """Request model for rendering a stored notice template with caller supplied data."""

    template_id: str
    data: dict = Field(default_factory=dict)
    output_format: OutputFormat = OutputFormat.HTML
    custom_variables: dict | None = None
    preview: bool = False
    generated_by: str | None = None


class TemplateValidateRequest(BaseModel):
    content: str = Field(..., min_length=1)
    max_characters: int | None = Field(default=None, ge=1)


class TemplatePreviewRequest(BaseModel):
    sample_data: dict | None = None


class BatchRenderRequest(BaseModel):
    requests: list[RenderNoticeRequest] = Field(..., min_length=1, max_length=100)


class SmsFormatRequest(BaseModel):
    body: str
