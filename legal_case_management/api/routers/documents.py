import logging
from datetime import date

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile
from fastapi.responses import FileResponse

from legal_case_management.api.dependencies import get_requester, get_system, read_upload
from legal_case_management.models.documents import DocumentCreate, DocumentUpdate
from legal_case_management.models.entities import CaseDocumentType, LinkedEntityType
from legal_case_management.services.legal_system import LegalCaseSystem

router = APIRouter(prefix="/api/documents")

logger = logging.getLogger(__name__)


def _split(value: str | None) -> list[str]:
    return [v.strip() for v in (value or "").split(",") if v.strip()]


@router.post("/upload", status_code=201)
async def upload_document(
    file: UploadFile = File(...),
    linked_entity_type: LinkedEntityType = Form(...),
    linked_entity_id: str = Form(...),
    document_name: str | None = Form(None),
    case_document_type: CaseDocumentType = Form(CaseDocumentType.OTHER),
    access_permissions: str | None = Form(None, description="Comma separated"),
    confidential_flag: bool = Form(False),
    is_public: bool = Form(False),
    hearing_date: date | None = Form(None),
    document_date: date | None = Form(None),
    remarks_tags: str | None = Form(None, description="Comma separated"),
    system: LegalCaseSystem = Depends(get_system),
    requester: str | None = Depends(get_requester),
) -> dict:
    """Upload a file and attach it to a legal case, notice or loan account."""
    uploaded = await read_upload(file)
    data = DocumentCreate(
        linked_entity_type=linked_entity_type,
        linked_entity_id=linked_entity_id,
        document_name=document_name or uploaded.filename,
        case_document_type=case_document_type,
        access_permissions=_split(access_permissions) or ["legal-team"],
        confidential_flag=confidential_flag,
        is_public=is_public,
        hearing_date=hearing_date,
        document_date=document_date,
        remarks_tags=_split(remarks_tags),
    )
    return system.documents.upload(data, uploaded, uploaded_by=requester)


@router.get("/entity/{linked_entity_type}/{linked_entity_id}")
async def list_entity_documents(
    linked_entity_type: LinkedEntityType,
    linked_entity_id: str,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1),
    case_document_type: CaseDocumentType | None = None,
    latest_only: bool = True,
    system: LegalCaseSystem = Depends(get_system),
) -> dict:
    return system.documents.list_for_entity(
        linked_entity_type, linked_entity_id, page, limit, case_document_type, latest_only
    )


@router.get("/case/{legal_case_id}")
async def list_case_documents(
    legal_case_id: str,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1),
    case_document_type: CaseDocumentType | None = None,
    system: LegalCaseSystem = Depends(get_system),
) -> dict:
    return system.documents.list_for_case(legal_case_id, page, limit, case_document_type)


@router.get("/case/{legal_case_id}/summary")
async def case_document_summary(legal_case_id: str, system: LegalCaseSystem = Depends(get_system)) -> dict:
    return system.documents.case_document_summary(legal_case_id)


@router.get("/{document_id}")
async def get_document(
    document_id: str,
    system: LegalCaseSystem = Depends(get_system),
    requester: str | None = Depends(get_requester),
) -> dict:
    return system.documents.get(document_id, requester)


@router.put("/{document_id}")
async def update_document(
    document_id: str,
    data: DocumentUpdate,
    system: LegalCaseSystem = Depends(get_system),
    requester: str | None = Depends(get_requester),
) -> dict:
    return system.documents.update(document_id, data, requester)


@router.post("/{document_id}/versions", status_code=201)
async def upload_new_version(
    document_id: str,
    file: UploadFile = File(...),
    system: LegalCaseSystem = Depends(get_system),
    requester: str | None = Depends(get_requester),
) -> dict:
    uploaded = await read_upload(file)
    return system.documents.new_version(document_id, uploaded, uploaded_by=requester)


@router.get("/{document_id}/versions")
async def document_versions(
    document_id: str,
    system: LegalCaseSystem = Depends(get_system),
    requester: str | None = Depends(get_requester),
) -> dict:
    versions = system.documents.versions(document_id, requester)
    return {"versions": versions, "total": len(versions)}


@router.get("/{document_id}/download")
async def download_document(
    document_id: str,
    system: LegalCaseSystem = Depends(get_system),
    requester: str | None = Depends(get_requester),
) -> FileResponse:
    info = system.documents.download(document_id, requester)
    return FileResponse(info["file_path"], media_type=info["mime_type"], filename=info["file_name"])


@router.delete("/{document_id}")
async def delete_document(
    document_id: str,
    system: LegalCaseSystem = Depends(get_system),
    requester: str | None = Depends(get_requester),
) -> dict:
    return system.documents.delete(document_id, deleted_by=requester)
