from datetime import date

from pydantic import BaseModel, Field

from legal_case_management.models.entities import (
    CaseDocumentType,
    DocumentStatus,
    LinkedEntityType,
)


class UploadedFile(BaseModel):
    """File payload handed to the document service, independent of the HTTP layer."""

    filename: str = Field(..., min_length=1)
    content_type: str
    content: bytes

    @property
    def size(self) -> int:
        return len(self.content)


class DocumentCreate(BaseModel):
    linked_entity_type: LinkedEntityType
    linked_entity_id: str = Field(..., min_length=1)
    document_name: str = Field(..., min_length=1, max_length=255)
    case_document_type: CaseDocumentType = CaseDocumentType.OTHER
    access_permissions: list[str] = Field(default_factory=lambda: ["legal-team"])
    confidential_flag: bool = False
    is_public: bool = False
    hearing_date: date | None = None
    document_date: date | None = None
    remarks_tags: list[str] = Field(default_factory=list)


class DocumentUpdate(BaseModel):
    document_name: str | None = Field(default=None, min_length=1, max_length=255)
    case_document_type: CaseDocumentType | None = None
    access_permissions: list[str] | None = None
    confidential_flag: bool | None = None
    is_public: bool | None = None
    status: DocumentStatus | None = None
    hearing_date: date | None = None
    document_date: date | None = None
    remarks_tags: list[str] | None = None
