import logging

from fastapi import APIRouter, Depends, Query

from legal_case_management.api.dependencies import get_system
from legal_case_management.api.schemas import ManualDetectionRequest, RuleToggleRequest
from legal_case_management.models.entities import TriggerSeverity, TriggerStatus, TriggerType
from legal_case_management.models.notices import TriggerCreate, TriggerStatusUpdate
from legal_case_management.services.legal_system import LegalCaseSystem
from legal_case_management.services.security import sanitize_search_term

router = APIRouter(prefix="/api/triggers")

logger = logging.getLogger(__name__)


@router.post("", status_code=201)
async def create_trigger(data: TriggerCreate, system: LegalCaseSystem = Depends(get_system)) -> dict:
    return system.triggers.create(data)


@router.get("")
async def list_triggers(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1),
    status: TriggerStatus | None = None,
    severity: TriggerSeverity | None = None,
    trigger_type: TriggerType | None = None,
    loan_account_number: str | None = None,
    system: LegalCaseSystem = Depends(get_system),
) -> dict:
    return system.triggers.list(
        page=page,
        limit=limit,
        status=status,
        severity=severity,
        trigger_type=trigger_type,
        loan_account_number=sanitize_search_term(loan_account_number),
    )


@router.post("/detect")
async def run_manual_detection(data: ManualDetectionRequest, system: LegalCaseSystem = Depends(get_system)) -> dict:
    return system.triggers.run_manual_detection(data.account_numbers, data.trigger_types)


@router.get("/detect/{loan_account_number}")
async def detect_for_account(
    loan_account_number: str,
    trigger_types: list[str] | None = Query(None),
    system: LegalCaseSystem = Depends(get_system),
) -> dict:
    events = system.triggers.detect_for_account(loan_account_number, trigger_types)
    return {"loan_account_number": loan_account_number, "events": events}


@router.get("/statistics")
async def trigger_statistics(system: LegalCaseSystem = Depends(get_system)) -> dict:
    return system.triggers.statistics()


@router.get("/rules")
async def validation_rules(system: LegalCaseSystem = Depends(get_system)) -> dict:
    return {"rules": system.triggers.rules()}


@router.patch("/rules/{rule_id}")
async def toggle_validation_rule(
    rule_id: str, data: RuleToggleRequest, system: LegalCaseSystem = Depends(get_system)
) -> dict:
    return system.triggers.set_rule_enabled(rule_id, data.enabled)


@router.get("/{trigger_id}")
async def get_trigger(trigger_id: str, system: LegalCaseSystem = Depends(get_system)) -> dict:
    return system.triggers.get(trigger_id)


@router.patch("/{trigger_id}/status")
async def update_trigger_status(
    trigger_id: str, data: TriggerStatusUpdate, system: LegalCaseSystem = Depends(get_system)
) -> dict:
    return system.triggers.update_status(trigger_id, data)
