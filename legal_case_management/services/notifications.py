from __future__ import annotations

from collections import Counter
from datetime import timedelta
from typing import Any

from legal_case_management.models.entities import Priority
from legal_case_management.models.notices import NotificationCreate
from legal_case_management.services.base import StoreBackedService
from legal_case_management.utils.dates import utc_now, utc_now_iso

# notification_type -> (title, message, priority); formatted with str.format(**context)
NOTIFICATION_TEMPLATES: dict[str, tuple[str, str, Priority]] = {
    "lawyer_assignment": (
        "New case assigned",
        "Case {case_number} ({borrower_name}) has been assigned to you.",
        Priority.HIGH,
    ),
    "case_reassignment": (
        "Case reassigned",
        "Case {case_number} has been reassigned. Reason: {reason}",
        Priority.HIGH,
    ),
    "status_change": (
        "Case status updated",
        "Case {case_number} moved from {previous_status} to {new_status}.",
        Priority.MEDIUM,
    ),
    "hearing_scheduled": (
        "Hearing scheduled",
        "Hearing for case {case_number} is scheduled on {hearing_date} at {court_name}.",
        Priority.HIGH,
    ),
    "document_upload": (
        "Document uploaded",
        "{document_name} was uploaded to case {case_number}.",
        Priority.LOW,
    ),
    "error_logged": (
        "Error logged",
        "[{severity}] {source} {error_code}: {error_message} ({error_id})",
        Priority.HIGH,
    ),
    "error_escalation": (
        "Error escalated",
        "{severity} error {error_id} from {source} is unresolved after {age}.",
        Priority.URGENT,
    ),
}


class NotificationService(StoreBackedService):
    """In-app notifications for lawyers and back-office users."""

    collection = "notifications"
    label = "Notification"

    def send(self, data: NotificationCreate) -> dict[str, Any]:
        doc = data.model_dump(mode="json", exclude={"expires_in_days"})
        doc["is_read"] = False
        doc["read_at"] = None
        doc["expires_at"] = (
            (utc_now() + timedelta(days=data.expires_in_days)).isoformat()
            if data.expires_in_days
            else None
        )
        record = self.store.insert(self.collection, self._stamp_new(doc, None))
        self.logger.debug(f"Notification {data.notification_type} -> {data.recipient_id}")
        return record

    def send_templated(
        self,
        notification_type: str,
        recipient_ids: list[str],
        context: dict[str, Any],
        related_entity_type: str | None = None,
        related_entity_id: str | None = None,
    ) -> list[dict[str, Any]]:
        """Render a named template and deliver it to each recipient.

        Delivery is best effort: a failure for one recipient is logged and skipped.
        """
        title, message, priority = NOTIFICATION_TEMPLATES[notification_type]
        sent = []
        for recipient_id in recipient_ids:
            if not recipient_id:
                continue
            try:
                sent.append(
                    self.send(
                        NotificationCreate(
                            recipient_id=recipient_id,
                            notification_type=notification_type,
                            title=title,
                            message=message.format(**context),
                            priority=priority,
                            related_entity_type=related_entity_type,
                            related_entity_id=related_entity_id,
                        )
                    )
                )
            except Exception as e:
                self.logger.error(f"Failed to notify {recipient_id} ({notification_type}): {e}")
        return sent

    def notify_lawyer_assignment(self, lawyer_id: str, case: dict[str, Any]) -> list[dict]:
        return self.send_templated(
            "lawyer_assignment",
            [lawyer_id],
            {"case_number": case.get("case_id"), "borrower_name": case.get("borrower_name")},
            "Legal Case",
            case.get("id"),
        )

    def notify_case_reassignment(
        self, lawyer_ids: list[str], case: dict[str, Any], reason: str
    ) -> list[dict]:
        return self.send_templated(
            "case_reassignment",
            lawyer_ids,
            {"case_number": case.get("case_id"), "reason": reason},
            "Legal Case",
            case.get("id"),
        )

    def notify_status_change(
        self, recipient_ids: list[str], case: dict[str, Any], previous_status: str, new_status: str
    ) -> list[dict]:
        return self.send_templated(
            "status_change",
            recipient_ids,
            {
                "case_number": case.get("case_id"),
                "previous_status": previous_status,
                "new_status": new_status,
            },
            "Legal Case",
            case.get("id"),
        )

    def notify_hearing_scheduled(self, recipient_ids: list[str], case: dict[str, Any]) -> list[dict]:
        return self.send_templated(
            "hearing_scheduled",
            recipient_ids,
            {
                "case_number": case.get("case_id"),
                "hearing_date": case.get("next_hearing_date"),
                "court_name": case.get("court_name"),
            },
            "Legal Case",
            case.get("id"),
        )

    def notify_document_upload(
        self, recipient_ids: list[str], case: dict[str, Any], document_name: str
    ) -> list[dict]:
        return self.send_templated(
            "document_upload",
            recipient_ids,
            {"case_number": case.get("case_id"), "document_name": document_name},
            "Legal Case",
            case.get("id"),
        )

    def list(
        self, recipient_id: str, unread_only: bool = False, page: int = 1, limit: int = 20
    ) -> dict[str, Any]:
        filters: dict[str, Any] = {"recipient_id": recipient_id}
        if unread_only:
            filters["is_read"] = False
        rows, meta = self._paged(filters, page, limit, sort=[("created_at", "DESC")])
        return {"notifications": rows, **meta}

    def mark_read(self, notification_id: str) -> dict[str, Any]:
        self._require(notification_id)
        return self.store.update(
            self.collection, notification_id, {"is_read": True, "read_at": utc_now_iso()}
        )

    def mark_all_read(self, recipient_id: str) -> dict[str, Any]:
        unread = self.store.find(self.collection, {"recipient_id": recipient_id, "is_read": False})
        now = utc_now_iso()
        for n in unread:
            self.store.update(self.collection, n["id"], {"is_read": True, "read_at": now})
        return {"updated_count": len(unread)}

    def unread_count(self, recipient_id: str) -> int:
        return self.store.count(self.collection, {"recipient_id": recipient_id, "is_read": False})

    def delete_expired(self) -> dict[str, int]:
        expired = self.store.find(
            self.collection, {"expires_at__null": False, "expires_at__lt": utc_now_iso()}
        )
        deleted = sum(1 for n in expired if self.store.delete(self.collection, n["id"]))
        if deleted:
            self.logger.info(f"Deleted {deleted} expired notifications")
        return {"deleted_count": deleted}

    def stats(self) -> dict[str, Any]:
        rows = self.store.find(self.collection)
        return {
            "total": len(rows),
            "unread": sum(1 for n in rows if not n.get("is_read")),
            "by_type": dict(Counter(n.get("notification_type") for n in rows)),
        }
