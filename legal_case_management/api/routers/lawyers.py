import logging

from fastapi import APIRouter, Depends, Query

from legal_case_management.api.dependencies import get_requester, get_system
from legal_case_management.models.entities import LawyerType
from legal_case_management.models.lawyers import LawyerCreate, LawyerUpdate
from legal_case_management.services.legal_system import LegalCaseSystem
from legal_case_management.services.security import sanitize_search_term

router = APIRouter(prefix="/api/lawyers")

logger = logging.getLogger(__name__)


@router.post("", status_code=201)
async def create_lawyer(data: LawyerCreate, system: LegalCaseSystem = Depends(get_system)) -> dict:
    return system.lawyers.create(data)


@router.get("")
async def list_lawyers(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1),
    search: str | None = None,
    lawyer_type: LawyerType | None = None,
    specialization: str | None = None,
    jurisdiction: str | None = None,
    is_active: bool | None = None,
    is_available: bool | None = None,
    system: LegalCaseSystem = Depends(get_system),
) -> dict:
    return system.lawyers.list(
        page=page,
        limit=limit,
        search=sanitize_search_term(search),
        lawyer_type=lawyer_type,
        specialization=sanitize_search_term(specialization),
        jurisdiction=sanitize_search_term(jurisdiction),
        is_active=is_active,
        is_available=is_available,
    )


@router.get("/available")
async def available_lawyers(system: LegalCaseSystem = Depends(get_system)) -> dict:
    lawyers = system.lawyers.available()
    return {"lawyers": lawyers, "total": len(lawyers)}


@router.get("/workload")
async def lawyer_workload(system: LegalCaseSystem = Depends(get_system)) -> dict:
    return system.lawyers.workload_stats()


@router.get("/best-match")
async def best_matching_lawyer(
    specialization: str | None = None,
    jurisdiction: str | None = None,
    lawyer_type: LawyerType | None = None,
    system: LegalCaseSystem = Depends(get_system),
) -> dict:
    return system.lawyers.best_match(specialization, jurisdiction, lawyer_type)


@router.get("/{lawyer_id}")
async def get_lawyer(lawyer_id: str, system: LegalCaseSystem = Depends(get_system)) -> dict:
    return system.lawyers.get(lawyer_id)


@router.put("/{lawyer_id}")
async def update_lawyer(lawyer_id: str, data: LawyerUpdate, system: LegalCaseSystem = Depends(get_system)) -> dict:
    return system.lawyers.update(lawyer_id, data)


@router.delete("/{lawyer_id}")
async def delete_lawyer(
    lawyer_id: str,
    system: LegalCaseSystem = Depends(get_system),
    requester: str | None = Depends(get_requester),
) -> dict:
    return system.lawyers.delete(lawyer_id, deleted_by=requester)
