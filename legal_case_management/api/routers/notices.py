import logging
from datetime import date

from fastapi import APIRouter, Depends, File, Query, UploadFile
from fastapi.responses import FileResponse

from legal_case_management.api.dependencies import get_requester, get_system, read_upload
from legal_case_management.models.entities import AcknowledgementStatus, NoticeStatus, TriggerType
from legal_case_management.models.notices import (
    AcknowledgementCreate,
    AcknowledgementUpdate,
    NoticeCreate,
    NoticePreviewRequest,
    NoticeStatusUpdate,
)
from legal_case_management.services.legal_system import LegalCaseSystem
from legal_case_management.services.security import sanitize_search_term

router = APIRouter()

logger = logging.getLogger(__name__)


@router.post("/api/notices", status_code=201)
async def create_notice(data: NoticeCreate, system: LegalCaseSystem = Depends(get_system)) -> dict:
    return await system.notices.create(data)


@router.post("/api/notices/preview")
async def preview_notice(data: NoticePreviewRequest, system: LegalCaseSystem = Depends(get_system)) -> dict:
    return system.notices.preview(data)


@router.get("/api/notices")
async def list_notices(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1),
    notice_status: NoticeStatus | None = None,
    trigger_type: TriggerType | None = None,
    loan_account_number: str | None = None,
    state_id: str | None = None,
    language_id: str | None = None,
    date_from: date | None = None,
    date_to: date | None = None,
    dpd_min: int | None = Query(None, ge=0),
    dpd_max: int | None = Query(None, ge=0),
    system: LegalCaseSystem = Depends(get_system),
) -> dict:
    return system.notices.list(
        page=page,
        limit=limit,
        notice_status=notice_status,
        trigger_type=trigger_type,
        loan_account_number=sanitize_search_term(loan_account_number),
        state_id=state_id,
        language_id=language_id,
        date_from=date_from,
        date_to=date_to,
        dpd_min=dpd_min,
        dpd_max=dpd_max,
    )


@router.get("/api/notices/{notice_id}")
async def get_notice(notice_id: str, system: LegalCaseSystem = Depends(get_system)) -> dict:
    return system.notices.get(notice_id)


@router.patch("/api/notices/{notice_id}/status")
async def update_notice_status(
    notice_id: str, data: NoticeStatusUpdate, system: LegalCaseSystem = Depends(get_system)
) -> dict:
    return system.notices.update_status(notice_id, data)


@router.post("/api/notice-acknowledgements", status_code=201)
async def acknowledge_notice(data: AcknowledgementCreate, system: LegalCaseSystem = Depends(get_system)) -> dict:
    return system.notices.acknowledge(data)


@router.get("/api/notice-acknowledgements")
async def list_acknowledgements(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1),
    notice_id: str | None = None,
    status: AcknowledgementStatus | None = None,
    date_from: date | None = None,
    date_to: date | None = None,
    system: LegalCaseSystem = Depends(get_system),
) -> dict:
    return system.notices.list_acknowledgements(
        page=page, limit=limit, notice_id=notice_id, status=status, date_from=date_from, date_to=date_to
    )


@router.get("/api/notice-acknowledgements/{acknowledgement_id}")
async def get_acknowledgement(acknowledgement_id: str, system: LegalCaseSystem = Depends(get_system)) -> dict:
    return system.notices.get_acknowledgement(acknowledgement_id)


@router.put("/api/notice-acknowledgements/{acknowledgement_id}")
async def update_acknowledgement(
    acknowledgement_id: str, data: AcknowledgementUpdate, system: LegalCaseSystem = Depends(get_system)
) -> dict:
    return system.notices.update_acknowledgement(acknowledgement_id, data)


@router.post("/api/notice-acknowledgements/{acknowledgement_id}/upload-proof", status_code=201)
async def upload_acknowledgement_proof(
    acknowledgement_id: str,
    file: UploadFile = File(...),
    system: LegalCaseSystem = Depends(get_system),
    requester: str | None = Depends(get_requester),
) -> dict:
    uploaded = await read_upload(file)
    return system.notices.upload_acknowledgement_proof(acknowledgement_id, uploaded, uploaded_by=requester)


@router.get("/api/notice-acknowledgements/{acknowledgement_id}/proof")
async def get_acknowledgement_proof(
    acknowledgement_id: str,
    system: LegalCaseSystem = Depends(get_system),
    requester: str | None = Depends(get_requester),
) -> dict:
    return system.notices.acknowledgement_proof(acknowledgement_id, requester)


@router.get("/api/notice-acknowledgements/{acknowledgement_id}/proof/download")
async def download_acknowledgement_proof(
    acknowledgement_id: str,
    system: LegalCaseSystem = Depends(get_system),
    requester: str | None = Depends(get_requester),
) -> FileResponse:
    info = system.notices.download_acknowledgement_proof(acknowledgement_id, requester)
    return FileResponse(info["file_path"], media_type=info["mime_type"], filename=info["file_name"])
