import logging
from datetime import date

from fastapi import APIRouter, Depends, Query

from legal_case_management.api.dependencies import get_system
from legal_case_management.models.entities import AcknowledgementStatus, AllocationStatus, LawyerType
from legal_case_management.models.lawyers import AllocationCreate, AllocationReassign, AllocationUpdate
from legal_case_management.services.legal_system import LegalCaseSystem
from legal_case_management.services.security import sanitize_search_term

router = APIRouter(prefix="/api/lawyer-allocations")

logger = logging.getLogger(__name__)


@router.post("", status_code=201)
async def create_allocation(data: AllocationCreate, system: LegalCaseSystem = Depends(get_system)) -> dict:
    return system.allocations.create(data)


@router.get("")
async def list_allocations(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1),
    legal_case_id: str | None = None,
    lawyer_id: str | None = None,
    jurisdiction: str | None = None,
    lawyer_type: LawyerType | None = None,
    status: AllocationStatus | None = None,
    lawyer_acknowledgement: AcknowledgementStatus | None = None,
    reassignment_flag: bool | None = None,
    date_from: date | None = None,
    date_to: date | None = None,
    search_remarks: str | None = None,
    system: LegalCaseSystem = Depends(get_system),
) -> dict:
    return system.allocations.list(
        page=page,
        limit=limit,
        legal_case_id=legal_case_id,
        lawyer_id=lawyer_id,
        jurisdiction=sanitize_search_term(jurisdiction),
        lawyer_type=lawyer_type,
        status=status,
        lawyer_acknowledgement=lawyer_acknowledgement,
        reassignment_flag=reassignment_flag,
        date_from=date_from,
        date_to=date_to,
        search_remarks=sanitize_search_term(search_remarks),
    )


@router.get("/case/{legal_case_id}")
async def allocations_for_case(legal_case_id: str, system: LegalCaseSystem = Depends(get_system)) -> dict:
    allocations = system.allocations.by_case(legal_case_id)
    return {"allocations": allocations, "total": len(allocations)}


@router.get("/lawyer/{lawyer_id}")
async def allocations_for_lawyer(lawyer_id: str, system: LegalCaseSystem = Depends(get_system)) -> dict:
    allocations = system.allocations.by_lawyer(lawyer_id)
    return {"allocations": allocations, "total": len(allocations)}


@router.get("/{allocation_id}")
async def get_allocation(allocation_id: str, system: LegalCaseSystem = Depends(get_system)) -> dict:
    return system.allocations.get(allocation_id)


@router.put("/{allocation_id}")
async def update_allocation(
    allocation_id: str, data: AllocationUpdate, system: LegalCaseSystem = Depends(get_system)
) -> dict:
    return system.allocations.update(allocation_id, data)


@router.post("/{allocation_id}/reassign")
async def reassign_allocation(
    allocation_id: str, data: AllocationReassign, system: LegalCaseSystem = Depends(get_system)
) -> dict:
    return system.allocations.reassign(allocation_id, data)


@router.delete("/{allocation_id}")
async def delete_allocation(allocation_id: str, system: LegalCaseSystem = Depends(get_system)) -> dict:
    return system.allocations.delete(allocation_id)
