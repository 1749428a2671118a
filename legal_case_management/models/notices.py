from datetime import date

from pydantic import BaseModel, Field

from legal_case_management.models.entities import (
    AcknowledgementStatus,
    CommunicationMode,
    NoticeStatus,
    OutputFormat,
    Priority,
    RecipientType,
    TriggerSeverity,
    TriggerStatus,
    TriggerType,
)


class NoticeCreate(BaseModel):
    """Pre-legal notice raised against a loan account."""

    loan_account_number: str = Field(..., min_length=1)
    dpd_days: int = Field(..., ge=0)
    trigger_type: TriggerType
    template_ids: list[str] = Field(..., description="Communication template record ids")
    communication_modes: list[str] = Field(..., min_length=1)
    state_id: str
    language_id: str
    notice_expiry_date: date
    legal_entity_name: str = Field(..., min_length=1, max_length=200)
    issued_by: str = Field(..., min_length=1, max_length=200)
    acknowledgement_required: bool = False
    notice_status: NoticeStatus = NoticeStatus.DRAFT
    remarks: str | None = Field(default=None, max_length=1000)
    created_by: str | None = None


class NoticeStatusUpdate(BaseModel):
    notice_status: NoticeStatus
    document_path: str | None = None
    remarks: str | None = Field(default=None, max_length=1000)
    updated_by: str | None = None


class NoticePreviewRequest(BaseModel):
    template_id: str
    loan_account_number: str
    dpd_days: int = Field(default=0, ge=0)
    legal_entity_name: str = Field(default="")


class AcknowledgementCreate(BaseModel):
    notice_id: str
    acknowledged_by: str = Field(..., min_length=1, max_length=200)
    relationship_to_borrower: str | None = Field(default=None, max_length=100)
    acknowledgement_date: date
    acknowledgement_mode: str = Field(default="Physical", max_length=50)
    proof_of_acknowledgement: str | None = None
    status: AcknowledgementStatus = AcknowledgementStatus.ACKNOWLEDGED
    remarks: str | None = Field(default=None, max_length=1000)
    created_by: str | None = None


class AcknowledgementUpdate(BaseModel):
    acknowledged_by: str | None = None
    relationship_to_borrower: str | None = None
    acknowledgement_date: date | None = None
    acknowledgement_mode: str | None = None
    proof_of_acknowledgement: str | None = None
    status: AcknowledgementStatus | None = None
    remarks: str | None = None
    updated_by: str | None = None


class TriggerCreate(BaseModel):
    loan_account_number: str
    trigger_type: TriggerType = TriggerType.MANUAL_TRIGGER
    criteria: str | None = Field(default=None, max_length=500)
    action_required: str | None = Field(default=None, max_length=500)
    severity: TriggerSeverity | None = Field(default=None, description="Derived from DPD when omitted")
    created_by: str | None = None


class TriggerStatusUpdate(BaseModel):
    status: TriggerStatus
    remarks: str | None = None
    updated_by: str | None = None


class CommunicationRequest(BaseModel):
    recipient_id: str
    recipient_type: RecipientType = RecipientType.BORROWER
    mode: CommunicationMode
    recipient_address: str | None = Field(
        default=None, description="Phone number, email address or postal address"
    )
    subject: str | None = None
    content: str = ""
    template_id: str | None = None
    priority: Priority = Priority.MEDIUM
    metadata: dict = Field(default_factory=dict)


class NotificationCreate(BaseModel):
    recipient_id: str
    notification_type: str = Field(..., min_length=1, max_length=50)
    title: str = Field(..., min_length=1, max_length=200)
    message: str = Field(..., min_length=1)
    priority: Priority = Priority.MEDIUM
    related_entity_type: str | None = None
    related_entity_id: str | None = None
    expires_in_days: int | None = Field(default=30, ge=1)


class RenderOptions(BaseModel):
    """Switches for the notice rendering pipeline."""

    mask_sensitive_data: bool = True
    include_audit_trail: bool = True
    watermark: str | None = None
    custom_css: str | None = None
    footer_text: str | None = None
    communication_modes: list[CommunicationMode] = Field(
        default_factory=lambda: [CommunicationMode.EMAIL]
    )


class RenderNoticeRequest(BaseModel):
    template_id: str
    loan_account_number: str
    dpd_days: int = Field(default=0, ge=0)
    legal_entity_name: str = ""
    output_format: OutputFormat = OutputFormat.HTML
    options: RenderOptions = Field(default_factory=RenderOptions)
    requested_by: str | None = None
