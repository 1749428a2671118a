"""
Routes for legal cases, case identifiers, loan accounts and the case timeline.
"""

import logging
from datetime import date

from fastapi import APIRouter, Depends, Query

from legal_case_management.api.dependencies import get_requester, get_system
from legal_case_management.api.schemas import (
    CaseIdGenerateRequest,
    CaseIdValidateRequest,
    SequenceResetRequest,
)
from legal_case_management.models.cases import (
    CaseStatusUpdate,
    LegalCaseCreate,
    LegalCaseUpdate,
    LoanAccountCreate,
    TimelineEventCreate,
)
from legal_case_management.models.entities import CaseStatus, CaseType, TimelineEventType
from legal_case_management.services.legal_system import LegalCaseSystem
from legal_case_management.services.security import sanitize_search_term

router = APIRouter()

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------- legal cases


@router.post("/api/legal-cases", status_code=201)
async def create_legal_case(data: LegalCaseCreate, system: LegalCaseSystem = Depends(get_system)) -> dict:
    return system.legal_cases.create(data)


@router.get("/api/legal-cases")
async def list_legal_cases(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1),
    case_type: CaseType | None = None,
    current_status: CaseStatus | None = None,
    lawyer_assigned_id: str | None = None,
    loan_account_number: str | None = None,
    borrower_name: str | None = None,
    filed_from: date | None = None,
    filed_to: date | None = None,
    system: LegalCaseSystem = Depends(get_system),
) -> dict:
    return system.legal_cases.list(
        page=page,
        limit=limit,
        case_type=case_type,
        current_status=current_status,
        lawyer_assigned_id=lawyer_assigned_id,
        loan_account_number=sanitize_search_term(loan_account_number),
        borrower_name=sanitize_search_term(borrower_name),
        filed_from=filed_from,
        filed_to=filed_to,
    )


@router.get("/api/legal-cases/summary")
async def legal_case_status_summary(system: LegalCaseSystem = Depends(get_system)) -> dict:
    return system.legal_cases.status_summary()


@router.get("/api/legal-cases/by-case-id/{case_number}")
async def get_legal_case_by_number(case_number: str, system: LegalCaseSystem = Depends(get_system)) -> dict:
    return system.legal_cases.get_by_case_id(case_number)


@router.get("/api/legal-cases/by-status/{current_status}")
async def legal_cases_by_status(current_status: CaseStatus, system: LegalCaseSystem = Depends(get_system)) -> dict:
    cases = system.legal_cases.by_status(current_status)
    return {"cases": cases, "total": len(cases)}


@router.get("/api/legal-cases/by-lawyer/{lawyer_id}")
async def legal_cases_by_lawyer(lawyer_id: str, system: LegalCaseSystem = Depends(get_system)) -> dict:
    cases = system.legal_cases.by_lawyer(lawyer_id)
    return {"cases": cases, "total": len(cases)}


@router.get("/api/legal-cases/{case_id}")
async def get_legal_case(case_id: str, system: LegalCaseSystem = Depends(get_system)) -> dict:
    return system.legal_cases.get(case_id)


@router.put("/api/legal-cases/{case_id}")
async def update_legal_case(
    case_id: str, data: LegalCaseUpdate, system: LegalCaseSystem = Depends(get_system)
) -> dict:
    return system.legal_cases.update(case_id, data)


@router.patch("/api/legal-cases/{case_id}/status")
async def update_legal_case_status(
    case_id: str, data: CaseStatusUpdate, system: LegalCaseSystem = Depends(get_system)
) -> dict:
    return system.legal_cases.update_status(case_id, data)


@router.get("/api/legal-cases/{case_id}/status-transitions")
async def legal_case_status_transitions(case_id: str, system: LegalCaseSystem = Depends(get_system)) -> dict:
    return system.legal_cases.status_transitions(case_id)


@router.delete("/api/legal-cases/{case_id}")
async def delete_legal_case(
    case_id: str,
    system: LegalCaseSystem = Depends(get_system),
    requester: str | None = Depends(get_requester),
) -> dict:
    return system.legal_cases.delete(case_id, deleted_by=requester)


# ------------------------------------------------------------------- case ids


@router.post("/api/case-ids/generate")
async def generate_case_id(data: CaseIdGenerateRequest, system: LegalCaseSystem = Depends(get_system)) -> dict:
    return system.case_ids.generate_case_id(data.prefix, data.category_code, data.on)


@router.post("/api/case-ids/validate")
async def validate_case_id(data: CaseIdValidateRequest, system: LegalCaseSystem = Depends(get_system)) -> dict:
    result = system.case_ids.validate_case_id(data.case_id)
    if result["is_valid"]:
        result["is_unique"] = system.case_ids.is_case_id_unique(data.case_id)
    return result


@router.get("/api/case-ids/sequence")
async def current_case_sequence(
    prefix: str | None = None,
    category_code: str | None = None,
    on: date | None = None,
    system: LegalCaseSystem = Depends(get_system),
) -> dict:
    return system.case_ids.current_sequence(prefix, category_code, on)


@router.post("/api/case-ids/sequence/reset")
async def reset_case_sequence(data: SequenceResetRequest, system: LegalCaseSystem = Depends(get_system)) -> dict:
    return system.case_ids.reset_sequence(data.prefix, data.category_code, data.on, data.value)


@router.get("/api/case-ids/sequences")
async def list_case_sequences(prefix: str | None = None, system: LegalCaseSystem = Depends(get_system)) -> dict:
    sequences = system.case_ids.list_sequences(prefix)
    return {"sequences": sequences, "total": len(sequences)}


# -------------------------------------------------------------- loan accounts


@router.post("/api/loan-accounts", status_code=201)
async def register_loan_account(
    data: LoanAccountCreate,
    system: LegalCaseSystem = Depends(get_system),
    requester: str | None = Depends(get_requester),
) -> dict:
    return system.borrowers.register(data, created_by=requester)


@router.get("/api/loan-accounts")
async def list_loan_accounts(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1),
    search: str | None = None,
    system: LegalCaseSystem = Depends(get_system),
) -> dict:
    return system.borrowers.list(page=page, limit=limit, search=sanitize_search_term(search))


@router.get("/api/loan-accounts/{loan_account_number}")
async def get_loan_account(loan_account_number: str, system: LegalCaseSystem = Depends(get_system)) -> dict:
    return system.borrowers.get_borrower(loan_account_number)


# ------------------------------------------------------------------- timeline


@router.post("/api/timeline/events", status_code=201)
async def add_timeline_event(data: TimelineEventCreate, system: LegalCaseSystem = Depends(get_system)) -> dict:
    system.legal_cases.get(data.legal_case_id)
    return system.timeline.add_event(data)


@router.get("/api/timeline/cases/{legal_case_id}")
async def case_timeline(legal_case_id: str, system: LegalCaseSystem = Depends(get_system)) -> dict:
    system.legal_cases.get(legal_case_id)
    return system.timeline.case_timeline(legal_case_id)


@router.get("/api/timeline/events")
async def timeline_events_by_type(
    event_type: TimelineEventType,
    legal_case_id: str | None = None,
    system: LegalCaseSystem = Depends(get_system),
) -> dict:
    events = system.timeline.events_by_type(event_type, legal_case_id)
    return {"events": events, "total": len(events)}


@router.get("/api/timeline/upcoming-hearings")
async def upcoming_hearings(
    days: int = Query(30, ge=1, le=365), system: LegalCaseSystem = Depends(get_system)
) -> dict:
    hearings = system.timeline.upcoming_hearings(days)
    return {"hearings": hearings, "total": len(hearings)}


@router.get("/api/timeline/stats")
async def timeline_stats(system: LegalCaseSystem = Depends(get_system)) -> dict:
    return system.timeline.stats()
