import logging

from fastapi import APIRouter, Depends, Query

from legal_case_management.api.dependencies import get_system
from legal_case_management.api.schemas import CommunicationBatchRequest, DeliveryStatusRequest
from legal_case_management.models.notices import CommunicationRequest
from legal_case_management.services.legal_system import LegalCaseSystem

router = APIRouter(prefix="/api/communications")

logger = logging.getLogger(__name__)


@router.post("/send")
async def send_communication(data: CommunicationRequest, system: LegalCaseSystem = Depends(get_system)) -> dict:
    return await system.communication.send(data)


@router.post("/send-batch")
async def send_communication_batch(
    data: CommunicationBatchRequest, system: LegalCaseSystem = Depends(get_system)
) -> dict:
    results = await system.communication.send_batch(data.requests)
    return {
        "results": results,
        "total": len(results),
        "succeeded": sum(1 for r in results if r["success"]),
    }


@router.post("/retry-failed")
async def retry_failed_communications(system: LegalCaseSystem = Depends(get_system)) -> dict:
    results = await system.communication.retry_failed()
    return {"results": results, "retried": len(results)}


@router.get("/statistics")
async def communication_statistics(
    days: int = Query(30, ge=1, le=365), system: LegalCaseSystem = Depends(get_system)
) -> dict:
    return system.communication.statistics(days)


@router.get("/{message_id}")
async def track_communication(message_id: str, system: LegalCaseSystem = Depends(get_system)) -> dict:
    return system.communication.track(message_id)


@router.patch("/{message_id}/status")
async def update_delivery_status(
    message_id: str, data: DeliveryStatusRequest, system: LegalCaseSystem = Depends(get_system)
) -> dict:
    return system.communication.update_delivery_status(message_id, data.status, data.metadata)
