import logging

from fastapi import APIRouter, Depends, Query

from legal_case_management.api.dependencies import get_system
from legal_case_management.models.notices import NotificationCreate
from legal_case_management.services.legal_system import LegalCaseSystem

router = APIRouter(prefix="/api/notifications")

logger = logging.getLogger(__name__)


@router.post("", status_code=201)
async def send_notification(data: NotificationCreate, system: LegalCaseSystem = Depends(get_system)) -> dict:
    return system.notifications.send(data)


@router.get("/recipient/{recipient_id}")
async def list_notifications(
    recipient_id: str,
    unread_only: bool = False,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1),
    system: LegalCaseSystem = Depends(get_system),
) -> dict:
    return system.notifications.list(recipient_id, unread_only, page, limit)


@router.get("/recipient/{recipient_id}/unread-count")
async def unread_notification_count(recipient_id: str, system: LegalCaseSystem = Depends(get_system)) -> dict:
    return {"recipient_id": recipient_id, "unread_count": system.notifications.unread_count(recipient_id)}


@router.post("/recipient/{recipient_id}/read-all")
async def mark_all_notifications_read(recipient_id: str, system: LegalCaseSystem = Depends(get_system)) -> dict:
    return system.notifications.mark_all_read(recipient_id)


@router.post("/expired/cleanup")
async def delete_expired_notifications(system: LegalCaseSystem = Depends(get_system)) -> dict:
    return system.notifications.delete_expired()


@router.get("/stats")
async def notification_stats(system: LegalCaseSystem = Depends(get_system)) -> dict:
    return system.notifications.stats()


@router.patch("/{notification_id}/read")
async def mark_notification_read(notification_id: str, system: LegalCaseSystem = Depends(get_system)) -> dict:
    return system.notifications.mark_read(notification_id)
