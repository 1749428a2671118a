"""
Outbound communication dispatch and delivery tracking.

Only SMS has a real transport (the SMS gateway, when configured). The other
modes are recorded and acknowledged by stub dispatchers until their providers
are integrated.
"""

from __future__ import annotations

import secrets
import time
from collections import defaultdict
from datetime import timedelta
from typing import Any

from legal_case_management.domain.errors import ResourceNotFound, ValidationFailed
from legal_case_management.models.entities import CommunicationMode, DeliveryStatus
from legal_case_management.models.notices import CommunicationRequest
from legal_case_management.services.base import StoreBackedService
from legal_case_management.services.sms_format import strip_html
from legal_case_management.services.sms_gateway import SmsGatewayClient
from legal_case_management.utils.dates import utc_now, utc_now_iso

MAX_RETRIES = 3

# mode -> (tracking prefix, status reported by the stub dispatcher)
STUB_DISPATCH = {
    CommunicationMode.EMAIL: ("EMAIL", DeliveryStatus.SENT),
    CommunicationMode.SMS: ("SMS", DeliveryStatus.SENT),
    CommunicationMode.WHATSAPP: ("WA", DeliveryStatus.SENT),
    CommunicationMode.COURIER: ("COURIER", DeliveryStatus.PENDING),
    CommunicationMode.POST: ("POST", DeliveryStatus.PENDING),
    CommunicationMode.PHYSICAL_DELIVERY: ("PHYSICAL", DeliveryStatus.PENDING),
}

STATUS_TIMESTAMPS = {
    DeliveryStatus.SENT: "sent_at",
    DeliveryStatus.DELIVERED: "delivered_at",
    DeliveryStatus.FAILED: "failed_at",
    DeliveryStatus.BOUNCED: "failed_at",
}


def generate_message_id(mode: CommunicationMode) -> str:
    return f"{mode.value}-{int(time.time() * 1000)}-{secrets.token_hex(3).upper()}"


class CommunicationService(StoreBackedService):
    collection = "communications"
    label = "Communication"

    def __init__(self, store, sms_gateway: SmsGatewayClient | None = None, settings=None):
        super().__init__(store, settings)
        self.sms_gateway = sms_gateway

    @staticmethod
    def _validate(request: CommunicationRequest) -> None:
        if not request.recipient_id:
            raise ValidationFailed("Recipient ID is required")
        if not (request.content or "").strip():
            raise ValidationFailed("Content is required")
        if request.mode == CommunicationMode.EMAIL and not (request.subject or "").strip():
            raise ValidationFailed("Subject is required for EMAIL communication")

    async def _dispatch(self, request: CommunicationRequest, message_id: str) -> tuple[DeliveryStatus, str]:
        """Hand the message to its transport. Returns (status, tracking id)."""
        prefix, status = STUB_DISPATCH[request.mode]
        tracking_id = f"{prefix}-{message_id}"
        if request.mode == CommunicationMode.SMS and self.sms_gateway is not None:
            if not request.recipient_address:
                raise ValidationFailed("Recipient mobile number is required for SMS")
            await self.sms_gateway.send_sms(request.recipient_address, strip_html(request.content))
            return DeliveryStatus.SENT, tracking_id
        self.logger.info(f"Dispatching {request.mode.value} to {request.recipient_id} (stub)")
        return status, tracking_id

    @staticmethod
    def _result(record: dict[str, Any]) -> dict[str, Any]:
        return {
            "success": record["status"] != DeliveryStatus.FAILED.value,
            "message_id": record["message_id"],
            "delivery_status": record["status"],
            "error_message": record.get("error_message"),
            "tracking_id": record.get("tracking_id"),
            "retry_count": record.get("retry_count", 0),
        }

    async def send(self, request: CommunicationRequest) -> dict[str, Any]:
        """Send one message. Failures are reported in the result, never raised."""
        try:
            self._validate(request)
        except ValidationFailed as e:
            self.logger.warning(f"Rejected {request.mode.value} communication: {e}")
            return {
                "success": False,
                "message_id": None,
                "delivery_status": DeliveryStatus.FAILED.value,
                "error_message": str(e),
                "tracking_id": None,
                "retry_count": 0,
            }

        message_id = generate_message_id(request.mode)
        doc = request.model_dump(mode="json")
        doc.update(
            {
                "message_id": message_id,
                "retry_count": 0,
                "max_retries": MAX_RETRIES,
                "sent_at": None,
                "delivered_at": None,
                "failed_at": None,
                "error_message": None,
                "tracking_id": None,
            }
        )
        try:
            status, tracking_id = await self._dispatch(request, message_id)
            doc["status"] = status.value
            doc["tracking_id"] = tracking_id
            if status == DeliveryStatus.SENT:
                doc["sent_at"] = utc_now_iso()
        except Exception as e:
            self.logger.error(f"Failed to send {request.mode.value} to {request.recipient_id}: {e}")
            doc["status"] = DeliveryStatus.FAILED.value
            doc["failed_at"] = utc_now_iso()
            doc["error_message"] = str(e)

        record = self.store.insert(self.collection, self._stamp_new(doc, None))
        return self._result(record)

    async def send_batch(self, requests: list[CommunicationRequest]) -> list[dict[str, Any]]:
        self.logger.info(f"Sending batch of {len(requests)} communications")
        return [await self.send(r) for r in requests]

    def _by_message_id(self, message_id: str) -> dict[str, Any]:
        record = self.store.find_one(self.collection, {"message_id": message_id})
        if record is None:
            raise ResourceNotFound(f"Communication {message_id} not found")
        return record

    def track(self, message_id: str) -> dict[str, Any]:
        record = self._by_message_id(message_id)
        return {
            k: record.get(k)
            for k in (
                "message_id",
                "mode",
                "recipient_id",
                "status",
                "sent_at",
                "delivered_at",
                "failed_at",
                "error_message",
                "retry_count",
                "tracking_id",
                "metadata",
            )
        }

    def update_delivery_status(
        self, message_id: str, status: DeliveryStatus, metadata: dict | None = None
    ) -> dict[str, Any]:
        record = self._by_message_id(message_id)
        changes: dict[str, Any] = {"status": status.value}
        stamp_field = STATUS_TIMESTAMPS.get(status)
        if stamp_field:
            changes[stamp_field] = utc_now_iso()
        if metadata:
            changes["metadata"] = {**(record.get("metadata") or {}), **metadata}
        updated = self.store.update(self.collection, record["id"], self._stamp_update(changes, None))
        self.logger.info(f"Delivery status for {message_id} -> {status.value}")
        return self.track(updated["message_id"])

    async def retry_failed(self) -> list[dict[str, Any]]:
        failed = self.store.find(self.collection, {"status": DeliveryStatus.FAILED.value})
        results = []
        for record in failed:
            if record.get("retry_count", 0) >= record.get("max_retries", MAX_RETRIES):
                continue
            request = CommunicationRequest(
                **{k: record.get(k) for k in CommunicationRequest.model_fields if record.get(k) is not None}
            )
            changes: dict[str, Any] = {"retry_count": record.get("retry_count", 0) + 1}
            try:
                self._validate(request)
                status, tracking_id = await self._dispatch(request, record["message_id"])
                changes.update(
                    {"status": status.value, "tracking_id": tracking_id, "error_message": None}
                )
                if status == DeliveryStatus.SENT:
                    changes["sent_at"] = utc_now_iso()
            except Exception as e:
                self.logger.warning(f"Retry {changes['retry_count']} of {record['message_id']} failed: {e}")
                changes.update({"failed_at": utc_now_iso(), "error_message": str(e)})
            updated = self.store.update(self.collection, record["id"], self._stamp_update(changes, None))
            results.append(self._result(updated))
        self.logger.info(f"Retried {len(results)} failed communications")
        return results

    def statistics(self, days: int = 30) -> dict[str, Any]:
        since = (utc_now() - timedelta(days=days)).isoformat()
        rows = self.store.find(self.collection, {"created_at__gte": since})
        by_mode: dict[str, dict[str, int]] = defaultdict(lambda: {"sent": 0, "delivered": 0, "failed": 0})
        by_priority: dict[str, int] = defaultdict(int)
        for r in rows:
            mode_stats = by_mode[r.get("mode")]
            mode_stats["sent"] += 1
            if r.get("status") == DeliveryStatus.DELIVERED.value:
                mode_stats["delivered"] += 1
            elif r.get("status") in (DeliveryStatus.FAILED.value, DeliveryStatus.BOUNCED.value):
                mode_stats["failed"] += 1
            by_priority[r.get("priority")] += 1

        total = len(rows)
        delivered = sum(m["delivered"] for m in by_mode.values())
        return {
            "period_days": days,
            "total_sent": total,
            "total_delivered": delivered,
            "total_failed": sum(m["failed"] for m in by_mode.values()),
            "success_rate": round(delivered / total * 100, 2) if total else 0.0,
            "by_mode": dict(by_mode),
            "by_priority": dict(by_priority),
        }
