from __future__ import annotations

from datetime import date
from typing import Any

from legal_case_management.domain.errors import ConflictError, ValidationFailed
from legal_case_management.models.entities import (
    AcknowledgementStatus,
    AllocationStatus,
    CaseStatus,
    LawyerType,
    RecordStatus,
    TimelineEventType,
)
from legal_case_management.models.lawyers import (
    AllocationCreate,
    AllocationReassign,
    AllocationUpdate,
)
from legal_case_management.services.base import StoreBackedService
from legal_case_management.services.lawyers import LawyerService
from legal_case_management.services.notifications import NotificationService
from legal_case_management.services.timeline import TimelineService
from legal_case_management.utils.dates import parse_date, today

ALLOCATION_CODE_PREFIX = "LAW"

# Case statuses that still accept a new lawyer allocation
ALLOCATABLE_CASE_STATUSES = {CaseStatus.FILED.value}

NOT_AVAILABLE = "N/A"


class LawyerAllocationService(StoreBackedService):
    """Allocation of lawyers to legal cases, including reassignment."""

    collection = "lawyer_allocations"
    label = "Lawyer allocation"

    def __init__(
        self,
        store,
        lawyers: LawyerService,
        timeline: TimelineService,
        notifications: NotificationService,
        settings=None,
    ):
        super().__init__(store, settings)
        self.lawyers = lawyers
        self.timeline = timeline
        self.notifications = notifications

    def _validate_case(self, legal_case_id: str) -> dict[str, Any]:
        case = self.store.get("legal_cases", legal_case_id)
        if case is None or case.get("status") == RecordStatus.DELETED.value:
            raise ValidationFailed(f"Legal case with ID {legal_case_id} not found")
        if case.get("current_status") not in ALLOCATABLE_CASE_STATUSES:
            raise ValidationFailed(
                f"Cannot allocate lawyer to case in status '{case.get('current_status')}'"
            )
        return case

    def _validate_lawyer(self, lawyer_id: str) -> dict[str, Any]:
        lawyer = self.store.get("lawyers", lawyer_id)
        if lawyer is None:
            raise ValidationFailed(f"Lawyer with ID {lawyer_id} not found")
        if not lawyer.get("is_active"):
            raise ValidationFailed(f"Lawyer {lawyer.get('full_name')} is not active")
        if not lawyer.get("is_available"):
            raise ValidationFailed(f"Lawyer {lawyer.get('full_name')} is not available")
        return lawyer

    @staticmethod
    def _validate_fields(allocation_date, reassignment_flag: bool, reassignment_reason: str | None) -> None:
        when = parse_date(allocation_date)
        if when and when > today():
            raise ValidationFailed("Allocation date cannot be in the future")
        if reassignment_flag and not (reassignment_reason or "").strip():
            raise ValidationFailed("Reassignment reason is required when reassignment flag is set")

    def _active_allocation(self, legal_case_id: str) -> dict[str, Any] | None:
        return self.store.find_one(
            self.collection,
            {"legal_case_id": legal_case_id, "status": AllocationStatus.ACTIVE.value},
        )

    def _enrich(self, allocation: dict[str, Any]) -> dict[str, Any]:
        case = self.store.get("legal_cases", allocation.get("legal_case_id")) or {}
        lawyer = self.store.get("lawyers", allocation.get("lawyer_id")) or {}
        return {
            **allocation,
            "case_number": case.get("case_id") or NOT_AVAILABLE,
            "borrower_name": case.get("borrower_name") or NOT_AVAILABLE,
            "loan_account_number": case.get("loan_account_number") or NOT_AVAILABLE,
            "lawyer_name": lawyer.get("full_name") or NOT_AVAILABLE,
            "lawyer_code": lawyer.get("lawyer_code") or NOT_AVAILABLE,
            "lawyer_email": lawyer.get("email") or NOT_AVAILABLE,
        }

    def _attach(self, case: dict[str, Any], lawyer: dict[str, Any], allocation: dict[str, Any], user: str | None) -> None:
        self.store.update("legal_cases", case["id"], self._stamp_update({"lawyer_assigned_id": lawyer["id"]}, user))
        self.lawyers.adjust_case_count(lawyer["id"], +1)
        event_type = (
            TimelineEventType.LAWYER_REASSIGNED
            if allocation.get("reassignment_flag")
            else TimelineEventType.LAWYER_ASSIGNED
        )
        self.timeline.record(
            case["id"],
            event_type,
            f"Lawyer {lawyer.get('full_name')} allocated",
            event_description=allocation.get("reassignment_reason"),
            metadata={"allocation_code": allocation["allocation_code"], "lawyer_id": lawyer["id"]},
            created_by=user,
        )
        self.notifications.notify_lawyer_assignment(lawyer["id"], case)

    def create(self, data: AllocationCreate) -> dict[str, Any]:
        case = self._validate_case(data.legal_case_id)
        lawyer = self._validate_lawyer(data.lawyer_id)
        if self._active_allocation(data.legal_case_id):
            raise ConflictError(f"Case {case.get('case_id')} already has an active lawyer allocation")
        self._validate_fields(data.allocation_date, data.reassignment_flag, data.reassignment_reason)

        doc = data.model_dump(mode="json", exclude={"created_by"})
        doc["allocation_date"] = doc["allocation_date"] or today().isoformat()
        doc["allocation_code"] = self._next_code(ALLOCATION_CODE_PREFIX)
        allocation = self.store.insert(self.collection, self._stamp_new(doc, data.created_by))
        self.logger.info(
            f"Allocated lawyer {lawyer.get('lawyer_code')} to case {case.get('case_id')} "
            f"({allocation['allocation_code']})"
        )
        if allocation["status"] == AllocationStatus.ACTIVE.value:
            self._attach(case, lawyer, allocation, data.created_by)
        return self._enrich(allocation)

    def get(self, allocation_id: str) -> dict[str, Any]:
        return self._enrich(self._require(allocation_id))

    def list(
        self,
        page: int = 1,
        limit: int = 10,
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
    ) -> dict[str, Any]:
        filters = {
            "legal_case_id": legal_case_id,
            "lawyer_id": lawyer_id,
            "jurisdiction__like": jurisdiction,
            "lawyer_type": lawyer_type.value if lawyer_type else None,
            "status": status.value if status else None,
            "lawyer_acknowledgement": lawyer_acknowledgement.value if lawyer_acknowledgement else None,
            "reassignment_flag": reassignment_flag,
            "allocation_date__gte": date_from.isoformat() if date_from else None,
            "allocation_date__lte": date_to.isoformat() if date_to else None,
            "remarks__like": search_remarks,
        }
        rows, meta = self._paged(
            filters, page, limit, sort=[("created_at", "DESC")], with_navigation=True
        )
        return {"allocations": [self._enrich(r) for r in rows], **meta}

    def update(self, allocation_id: str, data: AllocationUpdate) -> dict[str, Any]:
        existing = self._require(allocation_id)
        changes = data.model_dump(mode="json", exclude_unset=True, exclude={"updated_by"})
        merged = {**existing, **changes}
        self._validate_fields(
            merged.get("allocation_date"), merged.get("reassignment_flag"), merged.get("reassignment_reason")
        )
        was_active = existing.get("status") == AllocationStatus.ACTIVE.value
        becomes_active = merged.get("status") == AllocationStatus.ACTIVE.value
        if becomes_active and not was_active:
            other = self._active_allocation(existing["legal_case_id"])
            if other and other["id"] != allocation_id:
                raise ConflictError("Case already has an active lawyer allocation")

        updated = self.store.update(self.collection, allocation_id, self._stamp_update(changes, data.updated_by))
        if was_active and not becomes_active:
            self.lawyers.adjust_case_count(existing["lawyer_id"], -1)
        elif becomes_active and not was_active:
            self.lawyers.adjust_case_count(existing["lawyer_id"], +1)
        return self._enrich(updated)

    def reassign(self, allocation_id: str, data: AllocationReassign) -> dict[str, Any]:
        current = self._require(allocation_id)
        if current.get("status") != AllocationStatus.ACTIVE.value:
            raise ValidationFailed("Only active allocations can be reassigned")
        if current.get("lawyer_id") == data.new_lawyer_id:
            raise ValidationFailed("Case is already allocated to this lawyer")
        new_lawyer = self._validate_lawyer(data.new_lawyer_id)
        case = self.store.get("legal_cases", current["legal_case_id"])

        self.store.update(
            self.collection,
            allocation_id,
            self._stamp_update(
                {"status": AllocationStatus.REASSIGNED.value, "remarks": data.reason}, data.updated_by
            ),
        )
        self.lawyers.adjust_case_count(current["lawyer_id"], -1)

        doc = {
            "legal_case_id": current["legal_case_id"],
            "lawyer_id": new_lawyer["id"],
            "jurisdiction": current.get("jurisdiction"),
            "lawyer_type": new_lawyer.get("lawyer_type"),
            "allocation_date": today().isoformat(),
            "reassignment_flag": True,
            "reassignment_reason": data.reason,
            "status": AllocationStatus.ACTIVE.value,
            "lawyer_acknowledgement": AcknowledgementStatus.PENDING.value,
            "remarks": None,
            "previous_allocation_id": allocation_id,
            "allocation_code": self._next_code(ALLOCATION_CODE_PREFIX),
        }
        allocation = self.store.insert(self.collection, self._stamp_new(doc, data.updated_by))
        if case is not None:
            self._attach(case, new_lawyer, allocation, data.updated_by)
            self.notifications.notify_case_reassignment([current["lawyer_id"]], case, data.reason)
        self.logger.info(f"Reassigned {current['allocation_code']} -> {allocation['allocation_code']}")
        return self._enrich(allocation)

    def delete(self, allocation_id: str) -> dict[str, Any]:
        allocation = self._require(allocation_id)
        self.store.delete(self.collection, allocation_id)
        if allocation.get("status") == AllocationStatus.ACTIVE.value:
            self.lawyers.adjust_case_count(allocation["lawyer_id"], -1)
        self.logger.info(f"Deleted allocation {allocation['allocation_code']}")
        return {
            "success": True,
            "message": f"Allocation {allocation['allocation_code']} deleted successfully",
        }

    def by_case(self, legal_case_id: str) -> list[dict[str, Any]]:
        rows = self.store.find(self.collection, {"legal_case_id": legal_case_id}, sort=[("created_at", "DESC")])
        return [self._enrich(r) for r in rows]

    def by_lawyer(self, lawyer_id: str) -> list[dict[str, Any]]:
        rows = self.store.find(self.collection, {"lawyer_id": lawyer_id}, sort=[("created_at", "DESC")])
        return [self._enrich(r) for r in rows]
