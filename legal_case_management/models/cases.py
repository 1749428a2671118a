from datetime import date

from pydantic import BaseModel, Field

from legal_case_management.models.entities import (
    CaseStatus,
    CaseType,
    RecordStatus,
    RecoveryAction,
    TimelineEventType,
)


class LoanAccountCreate(BaseModel):
    """Borrower and loan snapshot as delivered by the data ingestion feed."""

    loan_account_number: str = Field(..., min_length=1, max_length=50)
    borrower_name: str = Field(..., min_length=1, max_length=200)
    borrower_mobile: str | None = Field(default=None, max_length=20)
    borrower_email: str | None = Field(default=None, max_length=200)
    borrower_address: str | None = Field(default=None, max_length=500)
    pan: str | None = Field(default=None, max_length=10, description="PAN card number")
    aadhaar: str | None = Field(default=None, max_length=12, description="Aadhaar number")
    loan_amount: float = Field(default=0.0, ge=0)
    principal_outstanding: float = Field(default=0.0, ge=0)
    interest_outstanding: float = Field(default=0.0, ge=0)
    penalty_amount: float = Field(default=0.0, ge=0)
    outstanding_amount: float | None = Field(
        default=None, ge=0, description="Defaults to principal + interest + penalty"
    )
    emi_amount: float | None = Field(default=None, ge=0)
    current_dpd: int = Field(default=0, ge=0, description="Days past due")
    product_type: str | None = None
    branch_code: str | None = None
    last_payment_date: date | None = None
    last_payment_amount: float | None = Field(default=None, ge=0)


class LegalCaseCreate(BaseModel):
    loan_account_number: str = Field(..., min_length=1, max_length=50)
    borrower_name: str | None = Field(
        default=None, max_length=200, description="Defaults to the borrower on the loan account"
    )
    case_type: CaseType
    court_name: str = Field(..., min_length=1, max_length=100)
    case_filed_date: date
    lawyer_assigned_id: str | None = None
    filing_jurisdiction: str = Field(..., min_length=1, max_length=200)
    current_status: CaseStatus = CaseStatus.FILED
    next_hearing_date: date | None = None
    last_hearing_outcome: str | None = Field(default=None, max_length=500)
    recovery_action_linked: RecoveryAction | None = None
    case_remarks: str | None = Field(default=None, max_length=500)
    case_closure_date: date | None = None
    outcome_summary: str | None = Field(default=None, max_length=1000)
    created_by: str | None = None


class LegalCaseUpdate(BaseModel):
    borrower_name: str | None = Field(default=None, max_length=200)
    case_type: CaseType | None = None
    court_name: str | None = Field(default=None, min_length=1, max_length=100)
    case_filed_date: date | None = None
    lawyer_assigned_id: str | None = None
    filing_jurisdiction: str | None = Field(default=None, min_length=1, max_length=200)
    current_status: CaseStatus | None = None
    status: RecordStatus | None = None
    next_hearing_date: date | None = None
    last_hearing_outcome: str | None = Field(default=None, max_length=500)
    recovery_action_linked: RecoveryAction | None = None
    case_remarks: str | None = Field(default=None, max_length=500)
    case_closure_date: date | None = None
    outcome_summary: str | None = Field(default=None, max_length=1000)
    updated_by: str | None = None


class CaseStatusUpdate(BaseModel):
    current_status: CaseStatus
    next_hearing_date: date | None = None
    last_hearing_outcome: str | None = Field(default=None, max_length=500)
    case_closure_date: date | None = None
    outcome_summary: str | None = Field(default=None, max_length=1000)
    remarks: str | None = Field(default=None, max_length=500)
    updated_by: str | None = None


class TimelineEventCreate(BaseModel):
    legal_case_id: str
    event_type: TimelineEventType
    event_title: str = Field(..., min_length=1, max_length=200)
    event_description: str | None = Field(default=None, max_length=1000)
    event_date: date | None = Field(default=None, description="Defaults to today")
    previous_status: str | None = None
    new_status: str | None = None
    is_milestone: bool = False
    metadata: dict = Field(default_factory=dict)
    created_by: str | None = None
