"""
Operational error log with severity classification, alerting and SLA escalation.

Errors are stored in ``error_logs`` and fanned out to the configured alert
recipients. Unresolved Error and Critical entries are escalated once they
outlive their SLA delay; escalation runs on request rather than on a timer.
"""

from __future__ import annotations

import secrets
import string
import time
from collections import Counter
from datetime import datetime, timedelta
from typing import Any

from legal_case_management.domain.errors import ConflictError, ResourceNotFound
from legal_case_management.models.entities import (
    CommunicationMode,
    ErrorSeverity,
    ErrorType,
    Priority,
    RecipientType,
)
from legal_case_management.models.error_logs import ErrorLogCreate, ErrorLogFilter, ErrorResolve
from legal_case_management.models.notices import CommunicationRequest
from legal_case_management.services.base import StoreBackedService
from legal_case_management.services.communication import CommunicationService
from legal_case_management.services.notifications import NotificationService
from legal_case_management.utils.dates import parse_datetime, utc_now, utc_now_iso

_BASE36 = string.digits + string.ascii_lowercase

RETRIABLE_TYPES = {ErrorType.SYSTEM, ErrorType.NETWORK, ErrorType.API}
RETRIABLE_CODES = ("TIMEOUT", "CONNECTION", "500", "503", "UNAVAILABLE")

ALERT_CHANNELS = {
    ErrorSeverity.CRITICAL: (CommunicationMode.EMAIL, CommunicationMode.SMS, "in_app"),
    ErrorSeverity.ERROR: (CommunicationMode.EMAIL, "in_app"),
    ErrorSeverity.WARNING: ("in_app",),
    ErrorSeverity.INFO: ("in_app",),
}

# minutes an unresolved error may stay open before it is escalated
ESCALATION_DELAY_MINUTES = {
    ErrorSeverity.CRITICAL: 15,
    ErrorSeverity.ERROR: 60,
}


def _base36(number: int) -> str:
    digits = []
    while number:
        number, rem = divmod(number, 36)
        digits.append(_BASE36[rem])
    return "".join(reversed(digits)) or "0"


def generate_error_id(source: str, error_type: ErrorType) -> str:
    suffix = "".join(secrets.choice(_BASE36) for _ in range(5))
    return f"{source.upper()}_{error_type.value.upper()}_{_base36(int(time.time() * 1000))}_{suffix}"


def classify_severity(error_type: ErrorType, error_code: str) -> ErrorSeverity:
    code = error_code.upper()
    if error_type == ErrorType.SYSTEM and "500" in code:
        return ErrorSeverity.CRITICAL
    if error_type == ErrorType.VALIDATION and "MANDATORY" in code:
        return ErrorSeverity.ERROR
    if error_type == ErrorType.NETWORK:
        return ErrorSeverity.WARNING
    if error_type == ErrorType.API and "TIMEOUT" in code:
        return ErrorSeverity.ERROR
    return ErrorSeverity.INFO


def is_retriable(error_type: ErrorType, error_code: str) -> bool:
    code = error_code.upper()
    return error_type in RETRIABLE_TYPES or any(c in code for c in RETRIABLE_CODES)


def describe_age(delta: timedelta) -> str:
    minutes = int(delta.total_seconds() // 60)
    hours, days = minutes // 60, minutes // (60 * 24)
    if days:
        return f"{days} day(s)"
    if hours:
        return f"{hours} hour(s)"
    return f"{minutes} minute(s)"


class ErrorLogService(StoreBackedService):
    collection = "error_logs"
    label = "Error log"

    def __init__(
        self,
        store,
        notifications: NotificationService,
        communication: CommunicationService,
        settings=None,
    ):
        super().__init__(store, settings)
        self.notifications = notifications
        self.communication = communication

    async def log_error(self, data: ErrorLogCreate) -> dict[str, Any]:
        """Persist an error and alert the recipients for its severity.

        Severity is derived from the error type and code when the caller does
        not supply one. Alert delivery failures never fail the log call.
        """
        severity = data.severity or classify_severity(data.error_type, data.error_code)
        doc = data.model_dump(mode="json", exclude={"created_by"})
        doc.update(
            {
                "error_id": generate_error_id(data.source, data.error_type),
                "severity": severity.value,
                "retriable": is_retriable(data.error_type, data.error_code),
                "timestamp": utc_now_iso(),
                "resolved": False,
                "resolution_notes": None,
                "resolved_by": None,
                "resolved_at": None,
                "escalated_at": None,
            }
        )
        record = self.store.insert(self.collection, self._stamp_new(doc, data.created_by))
        self.logger.warning(f"Error logged: {record['error_id']} [{severity.value}] {data.error_message}")

        await self._alert(record, severity)
        return record

    async def _alert(self, record: dict[str, Any], severity: ErrorSeverity) -> None:
        recipients = self.settings.error_alert_recipients
        context = {
            "severity": record["severity"],
            "source": record["source"],
            "error_code": record["error_code"],
            "error_message": record["error_message"],
            "error_id": record["error_id"],
        }
        subject = f"[{record['severity']}] {record['source']} error {record['error_code']}"
        body = (
            f"Error {record['error_id']} was logged by {record['source']}.\n"
            f"Type: {record['error_type']}\nCode: {record['error_code']}\n"
            f"Message: {record['error_message']}\n"
            f"Entity affected: {record.get('entity_affected') or 'N/A'}\n"
            f"Retriable: {'Yes' if record['retriable'] else 'No'}"
        )
        for channel in ALERT_CHANNELS[severity]:
            if channel == "in_app":
                self.notifications.send_templated("error_logged", recipients, context, "Error Log", record["id"])
            elif channel == CommunicationMode.EMAIL:
                await self._send(CommunicationMode.EMAIL, recipients, subject, body, Priority.HIGH)
            else:
                await self._send(
                    CommunicationMode.SMS,
                    self.settings.error_alert_phones,
                    None,
                    f"{subject}: {record['error_message']}",
                    Priority.URGENT,
                )

    async def _send(
        self,
        mode: CommunicationMode,
        addresses: list[str],
        subject: str | None,
        content: str,
        priority: Priority,
    ) -> None:
        if not addresses:
            self.logger.debug(f"No {mode.value} recipients configured for error alerts")
            return
        for address in addresses:
            result = await self.communication.send(
                CommunicationRequest(
                    recipient_id=address,
                    recipient_type=RecipientType.ADMIN,
                    mode=mode,
                    recipient_address=address,
                    subject=subject,
                    content=content,
                    priority=priority,
                )
            )
            if not result["success"]:
                self.logger.error(f"Error alert {mode.value} to {address} failed: {result['error_message']}")

    @staticmethod
    def _filters(criteria: ErrorLogFilter | None) -> dict[str, Any]:
        if criteria is None:
            return {}
        date_from = parse_datetime(criteria.date_from)
        date_to = parse_datetime(criteria.date_to)
        return {
            "source": criteria.source,
            "error_type": criteria.error_type.value if criteria.error_type else None,
            "severity": criteria.severity.value if criteria.severity else None,
            "resolved": criteria.resolved,
            "error_code": criteria.error_code,
            "entity_affected": criteria.entity_affected,
            "created_by": criteria.created_by,
            "created_at__gte": date_from.isoformat() if date_from else None,
            "created_at__lte": date_to.isoformat() if date_to else None,
        }

    def list(self, criteria: ErrorLogFilter | None = None, page: int = 1, limit: int = 10) -> dict[str, Any]:
        rows, meta = self._paged(
            self._filters(criteria), page, limit, sort=[("created_at", "DESC")], with_navigation=True
        )
        return {"errors": rows, **meta}

    def get(self, record_id: str) -> dict[str, Any]:
        return self._require(record_id)

    def resolve(self, error_id: str, data: ErrorResolve) -> dict[str, Any]:
        record = self.store.find_one(self.collection, {"error_id": error_id})
        if record is None:
            raise ResourceNotFound(f"Error with ID {error_id} not found")
        if record.get("resolved"):
            raise ConflictError(f"Error {error_id} is already resolved")
        updated = self.store.update(
            self.collection,
            record["id"],
            self._stamp_update(
                {
                    "resolved": True,
                    "resolution_notes": data.resolution_notes,
                    "resolved_by": data.resolved_by,
                    "resolved_at": utc_now_iso(),
                },
                data.resolved_by,
            ),
        )
        self.logger.info(f"Error resolved: {error_id} by {data.resolved_by}")
        return updated

    def statistics(self, criteria: ErrorLogFilter | None = None) -> dict[str, Any]:
        rows = self.store.find(self.collection, self._filters(criteria), sort=[("created_at", "DESC")])
        since = (utc_now() - timedelta(hours=24)).isoformat()
        resolved = sum(1 for r in rows if r.get("resolved"))
        return {
            "severity_stats": dict(Counter(r.get("severity") for r in rows)),
            "source_stats": dict(Counter(r.get("source") for r in rows).most_common()),
            "type_stats": dict(Counter(r.get("error_type") for r in rows)),
            "resolution_stats": {"resolved": resolved, "unresolved": len(rows) - resolved},
            "recent_errors": [r for r in rows if r.get("created_at", "") >= since][:10],
            "generated_at": utc_now_iso(),
        }

    def dashboard(self) -> dict[str, Any]:
        stats = self.statistics()
        return {
            "total_errors": sum(stats["severity_stats"].values()),
            "critical_errors": stats["severity_stats"].get(ErrorSeverity.CRITICAL.value, 0),
            "unresolved_errors": stats["resolution_stats"]["unresolved"],
            "top_error_sources": [
                {"source": source, "count": count} for source, count in list(stats["source_stats"].items())[:5]
            ],
            "recent_errors": stats["recent_errors"],
            "last_updated": stats["generated_at"],
        }

    async def escalate_overdue(self, now: datetime | None = None) -> dict[str, Any]:
        """Escalate unresolved errors that have outlived their severity's delay.

        Each error is escalated at most once; ``escalated_at`` marks it.
        """
        now = now or utc_now()
        escalated = []
        for severity, delay in ESCALATION_DELAY_MINUTES.items():
            overdue = self.store.find(
                self.collection,
                {
                    "severity": severity.value,
                    "resolved": False,
                    "escalated_at__null": True,
                    "timestamp__lt": (now - timedelta(minutes=delay)).isoformat(),
                },
            )
            for record in overdue:
                await self._escalate(record, severity, now)
                escalated.append(record["error_id"])
        if escalated:
            self.logger.warning(f"Escalated {len(escalated)} overdue errors")
        return {"escalated_count": len(escalated), "error_ids": escalated}

    async def _escalate(self, record: dict[str, Any], severity: ErrorSeverity, now: datetime) -> None:
        age = describe_age(now - parse_datetime(record["timestamp"]))
        recipients = self.settings.error_escalation_recipients
        self.logger.warning(f"Escalating error {record['error_id']} - {severity.value} severity")

        body = (
            f"Error {record['error_id']} has exceeded its resolution SLA and needs immediate attention.\n"
            f"Source: {record['source']}\nType: {record['error_type']}\nCode: {record['error_code']}\n"
            f"Severity: {record['severity']}\nMessage: {record['error_message']}\n"
            f"Time since error: {age}\n"
            f"Entity affected: {record.get('entity_affected') or 'N/A'}"
        )
        if record.get("root_cause_summary"):
            body += f"\nRoot cause: {record['root_cause_summary']}"
        await self._send(
            CommunicationMode.EMAIL, recipients, f"ESCALATION: {record['error_code']}", body, Priority.URGENT
        )
        if severity == ErrorSeverity.CRITICAL:
            await self._send(
                CommunicationMode.SMS,
                self.settings.error_alert_phones,
                None,
                f"ESCALATION: {record['source']} - {record['error_code']} - {record['error_message']}",
                Priority.URGENT,
            )
        self.notifications.send_templated(
            "error_escalation",
            recipients,
            {"severity": record["severity"], "error_id": record["error_id"], "source": record["source"], "age": age},
            "Error Log",
            record["id"],
        )
        self.store.update(self.collection, record["id"], {"escalated_at": now.isoformat()})
