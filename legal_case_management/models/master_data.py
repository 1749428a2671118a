from pydantic import BaseModel, Field, model_validator

from legal_case_management.models.entities import MasterStatus, ScriptSupport, TemplateType


class StateCreate(BaseModel):
    state_code: str = Field(..., min_length=1, max_length=10)
    state_name: str = Field(..., min_length=1, max_length=100)
    status: MasterStatus = MasterStatus.ACTIVE
    created_by: str | None = None


class StateUpdate(BaseModel):
    state_code: str | None = Field(default=None, min_length=1, max_length=10)
    state_name: str | None = Field(default=None, min_length=1, max_length=100)
    status: MasterStatus | None = None
    updated_by: str | None = None


class DpdBucketCreate(BaseModel):
    bucket_name: str = Field(..., min_length=1, max_length=100)
    range_start: int = Field(..., ge=0)
    range_end: int = Field(..., ge=0)
    min_days: int | None = Field(default=None, ge=0)
    max_days: int | None = Field(default=None, ge=0)
    module: str | None = Field(default=None, max_length=100)
    description: str | None = Field(default=None, max_length=500)
    status: MasterStatus = MasterStatus.ACTIVE
    created_by: str | None = None

    @model_validator(mode="after")
    def check_range(self):
        if self.range_start > self.range_end:
            raise ValueError("range_start must be less than or equal to range_end")
        return self


class DpdBucketUpdate(BaseModel):
    bucket_name: str | None = Field(default=None, min_length=1, max_length=100)
    range_start: int | None = Field(default=None, ge=0)
    range_end: int | None = Field(default=None, ge=0)
    min_days: int | None = Field(default=None, ge=0)
    max_days: int | None = Field(default=None, ge=0)
    module: str | None = None
    description: str | None = None
    status: MasterStatus | None = None
    updated_by: str | None = None


class LanguageCreate(BaseModel):
    language_name: str = Field(..., min_length=1, max_length=100)
    script_support: ScriptSupport
    status: MasterStatus = MasterStatus.ACTIVE
    created_by: str | None = None


class LanguageUpdate(BaseModel):
    language_name: str | None = Field(default=None, min_length=1, max_length=100)
    script_support: ScriptSupport | None = None
    status: MasterStatus | None = None
    updated_by: str | None = None


class ChannelCreate(BaseModel):
    channel_id: str = Field(..., min_length=1, max_length=50)
    channel_name: str = Field(..., min_length=1, max_length=100)
    description: str | None = Field(default=None, max_length=500)
    status: MasterStatus = MasterStatus.ACTIVE
    created_by: str | None = None


class ChannelUpdate(BaseModel):
    channel_name: str | None = Field(default=None, min_length=1, max_length=100)
    description: str | None = None
    status: MasterStatus | None = None
    updated_by: str | None = None


class ProductNodeCreate(BaseModel):
    """Any level of the product hierarchy (group, type, subtype, variant)."""

    name: str = Field(..., min_length=1, max_length=100)
    parent_id: str | None = Field(default=None, description="Required below the group level")
    description: str | None = Field(default=None, max_length=500)
    status: MasterStatus = MasterStatus.ACTIVE
    created_by: str | None = None


class ProductNodeUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=100)
    description: str | None = None
    status: MasterStatus | None = None
    updated_by: str | None = None


class CommunicationTemplateCreate(BaseModel):
    template_id: str = Field(..., min_length=1, max_length=50)
    template_name: str = Field(..., min_length=1, max_length=200)
    message_body: str = Field(..., min_length=1)
    template_type: TemplateType
    channel_id: str = Field(..., description="Channel record id")
    language_id: str = Field(..., description="Language record id")
    sms_template_id: str | None = None
    dlt_template_id: str | None = Field(default=None, description="DLT registration id")
    is_approved: bool = False
    is_active: bool = True
    status: MasterStatus = MasterStatus.ACTIVE
    created_by: str | None = None


class CommunicationTemplateUpdate(BaseModel):
    template_name: str | None = Field(default=None, min_length=1, max_length=200)
    message_body: str | None = Field(default=None, min_length=1)
    template_type: TemplateType | None = None
    sms_template_id: str | None = None
    dlt_template_id: str | None = None
    is_approved: bool | None = None
    is_active: bool | None = None
    status: MasterStatus | None = None
    updated_by: str | None = None


class NoticeTemplateCreate(BaseModel):
    template_code: str = Field(..., min_length=1, max_length=50)
    template_name: str = Field(..., min_length=1, max_length=200)
    template_type: TemplateType
    template_content: str = Field(..., min_length=1)
    language_id: str | None = None
    max_characters: int = Field(default=2000, ge=1)
    description: str | None = Field(default=None, max_length=500)
    status: MasterStatus = MasterStatus.ACTIVE
    created_by: str | None = None


class NoticeTemplateUpdate(BaseModel):
    template_name: str | None = Field(default=None, min_length=1, max_length=200)
    template_type: TemplateType | None = None
    template_content: str | None = Field(default=None, min_length=1)
    language_id: str | None = None
    max_characters: int | None = Field(default=None, ge=1)
    description: str | None = None
    status: MasterStatus | None = None
    updated_by: str | None = None


class SchemaConfigurationCreate(BaseModel):
    schema_name: str = Field(..., min_length=1, max_length=100)
    source_type: str = Field(..., min_length=1, max_length=50)
    description: str | None = Field(default=None, max_length=500)
    status: MasterStatus = MasterStatus.ACTIVE
    created_by: str | None = None


class SchemaConfigurationUpdate(BaseModel):
    source_type: str | None = Field(default=None, min_length=1, max_length=50)
    description: str | None = None
    status: MasterStatus | None = None
    updated_by: str | None = None
