from datetime import date

from pydantic import BaseModel, Field

from legal_case_management.models.entities import (
    AcknowledgementStatus,
    AllocationStatus,
    LawyerType,
)


class LawyerCreate(BaseModel):
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    email: str = Field(..., min_length=3, max_length=200, pattern=r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
    phone: str = Field(..., min_length=6, max_length=20)
    bar_number: str = Field(..., min_length=1, max_length=50)
    specialization: str = Field(..., min_length=1, max_length=100)
    experience: int = Field(default=0, ge=0, le=70, description="Years of practice")
    lawyer_type: LawyerType
    max_cases: int = Field(default=10, ge=1, le=500)
    is_active: bool = True
    is_available: bool = True
    office_location: str | None = Field(default=None, max_length=200)
    jurisdiction: str | None = Field(default=None, max_length=200)
    success_rate: float = Field(default=0.0, ge=0, le=100)
    average_case_duration: int | None = Field(default=None, ge=0, description="Days")
    created_by: str | None = None


class LawyerUpdate(BaseModel):
    first_name: str | None = Field(default=None, min_length=1, max_length=100)
    last_name: str | None = Field(default=None, min_length=1, max_length=100)
    email: str | None = Field(default=None, pattern=r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
    phone: str | None = Field(default=None, min_length=6, max_length=20)
    bar_number: str | None = Field(default=None, min_length=1, max_length=50)
    specialization: str | None = None
    experience: int | None = Field(default=None, ge=0, le=70)
    lawyer_type: LawyerType | None = None
    max_cases: int | None = Field(default=None, ge=1, le=500)
    is_active: bool | None = None
    is_available: bool | None = None
    office_location: str | None = None
    jurisdiction: str | None = None
    success_rate: float | None = Field(default=None, ge=0, le=100)
    average_case_duration: int | None = Field(default=None, ge=0)
    updated_by: str | None = None


class AllocationCreate(BaseModel):
    legal_case_id: str
    lawyer_id: str
    jurisdiction: str = Field(..., min_length=1, max_length=200)
    lawyer_type: LawyerType
    allocation_date: date | None = Field(default=None, description="Defaults to today")
    reassignment_flag: bool = False
    reassignment_reason: str | None = Field(default=None, max_length=500)
    status: AllocationStatus = AllocationStatus.ACTIVE
    lawyer_acknowledgement: AcknowledgementStatus = AcknowledgementStatus.PENDING
    remarks: str | None = Field(default=None, max_length=1000)
    created_by: str | None = None


class AllocationUpdate(BaseModel):
    jurisdiction: str | None = Field(default=None, min_length=1, max_length=200)
    lawyer_type: LawyerType | None = None
    allocation_date: date | None = None
    reassignment_flag: bool | None = None
    reassignment_reason: str | None = Field(default=None, max_length=500)
    status: AllocationStatus | None = None
    lawyer_acknowledgement: AcknowledgementStatus | None = None
    remarks: str | None = Field(default=None, max_length=1000)
    updated_by: str | None = None


class AllocationReassign(BaseModel):
    new_lawyer_id: str
    reason: str = Field(..., min_length=1, max_length=500)
    updated_by: str | None = None
