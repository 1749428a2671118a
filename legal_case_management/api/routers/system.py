import logging

from fastapi import APIRouter, Depends, Request

from legal_case_management.api.dependencies import get_system
from legal_case_management.services.legal_system import LegalCaseSystem
from legal_case_management.utils.dates import utc_now_iso
from legal_case_management.utils.health_check import calculate_overall_status, check_all_dependencies

router = APIRouter()

logger = logging.getLogger(__name__)


@router.get("/api/health")
async def health(system: LegalCaseSystem = Depends(get_system)) -> dict:
    dependencies = await check_all_dependencies(system.store, system.sms_gateway)
    status = calculate_overall_status(dependencies)
    if status != "healthy":
        logger.warning(f"Health check reported {status}")
    return {
        "status": status,
        "timestamp": utc_now_iso(),
        "dependencies": {name: dep.to_dict() for name, dep in dependencies.items()},
    }


@router.get("/api/_healthz")
async def _healthz(request: Request):
    return {"status": "ok", "has_system": hasattr(request.app.state, "system")}
