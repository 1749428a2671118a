import logging
from datetime import datetime

from fastapi import APIRouter, Depends, Query

from legal_case_management.api.dependencies import get_system
from legal_case_management.models.entities import ErrorSeverity, ErrorType
from legal_case_management.models.error_logs import ErrorLogCreate, ErrorLogFilter, ErrorResolve
from legal_case_management.services.legal_system import LegalCaseSystem

router = APIRouter(prefix="/api/error-handling")

logger = logging.getLogger(__name__)


def error_filters(
    source: str | None = None,
    error_type: ErrorType | None = None,
    severity: ErrorSeverity | None = None,
    resolved: bool | None = None,
    error_code: str | None = None,
    entity_affected: str | None = None,
    created_by: str | None = None,
    date_from: datetime | None = None,
    date_to: datetime | None = None,
) -> ErrorLogFilter:
    return ErrorLogFilter(
        source=source,
        error_type=error_type,
        severity=severity,
        resolved=resolved,
        error_code=error_code,
        entity_affected=entity_affected,
        created_by=created_by,
        date_from=date_from,
        date_to=date_to,
    )


@router.post("/log-error", status_code=201)
async def log_error(data: ErrorLogCreate, system: LegalCaseSystem = Depends(get_system)) -> dict:
    return await system.error_logs.log_error(data)


@router.get("/errors")
async def list_errors(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1),
    criteria: ErrorLogFilter = Depends(error_filters),
    system: LegalCaseSystem = Depends(get_system),
) -> dict:
    return system.error_logs.list(criteria, page, limit)


@router.get("/errors/{record_id}")
async def get_error(record_id: str, system: LegalCaseSystem = Depends(get_system)) -> dict:
    return system.error_logs.get(record_id)


@router.post("/resolve/{error_id}")
async def resolve_error(error_id: str, data: ErrorResolve, system: LegalCaseSystem = Depends(get_system)) -> dict:
    return system.error_logs.resolve(error_id, data)


@router.get("/statistics")
async def error_statistics(
    criteria: ErrorLogFilter = Depends(error_filters), system: LegalCaseSystem = Depends(get_system)
) -> dict:
    return system.error_logs.statistics(criteria)


@router.get("/dashboard")
async def error_dashboard(system: LegalCaseSystem = Depends(get_system)) -> dict:
    return system.error_logs.dashboard()


@router.post("/escalations/run")
async def run_escalations(system: LegalCaseSystem = Depends(get_system)) -> dict:
    return await system.error_logs.escalate_overdue()
