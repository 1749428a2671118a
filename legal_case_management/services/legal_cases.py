from __future__ import annotations

from collections import Counter
from datetime import date
from typing import Any

from legal_case_management.domain.errors import ResourceNotFound, ValidationFailed
from legal_case_management.models.cases import CaseStatusUpdate, LegalCaseCreate, LegalCaseUpdate
from legal_case_management.models.entities import (
    CLOSING_CASE_STATUSES,
    CaseStatus,
    CaseType,
    RecordStatus,
    TimelineEventType,
)
from legal_case_management.services.base import StoreBackedService
from legal_case_management.services.borrowers import BorrowerDirectory
from legal_case_management.services.case_ids import CaseIdService
from legal_case_management.services.notifications import NotificationService
from legal_case_management.services.timeline import TimelineService
from legal_case_management.utils.dates import parse_date, today


# (from, to) -> fields the case must carry once the transition is applied
STATUS_TRANSITIONS: dict[tuple[CaseStatus, CaseStatus], tuple[str, ...]] = {
    (CaseStatus.FILED, CaseStatus.UNDER_TRIAL): ("next_hearing_date",),
    (CaseStatus.FILED, CaseStatus.STAYED): ("last_hearing_outcome",),
    (CaseStatus.FILED, CaseStatus.DISMISSED): ("last_hearing_outcome", "outcome_summary"),
    (CaseStatus.UNDER_TRIAL, CaseStatus.STAYED): ("last_hearing_outcome",),
    (CaseStatus.UNDER_TRIAL, CaseStatus.DISMISSED): ("last_hearing_outcome", "outcome_summary"),
    (CaseStatus.UNDER_TRIAL, CaseStatus.RESOLVED): ("outcome_summary", "case_closure_date"),
    (CaseStatus.STAYED, CaseStatus.UNDER_TRIAL): ("next_hearing_date",),
    (CaseStatus.STAYED, CaseStatus.DISMISSED): ("last_hearing_outcome", "outcome_summary"),
    (CaseStatus.RESOLVED, CaseStatus.CLOSED): ("case_closure_date",),
    (CaseStatus.DISMISSED, CaseStatus.CLOSED): ("case_closure_date",),
}


def check_status_transition(previous: str, new: str, case: dict[str, Any]) -> None:
    """Raise ValidationFailed unless ``previous -> new`` is allowed for the merged ``case`` fields."""
    if previous == new:
        return
    required = STATUS_TRANSITIONS.get((CaseStatus(previous), CaseStatus(new)))
    if required is None:
        raise ValidationFailed(f"Transition from {previous} to {new} is not allowed")
    missing = [f for f in required if not case.get(f)]
    if missing:
        raise ValidationFailed(f"Fields required for transition to {new}: {', '.join(missing)}")
    if "next_hearing_date" in required:
        hearing = parse_date(case["next_hearing_date"])
        if hearing < today():
            raise ValidationFailed("Next hearing date must be in the future")


def available_transitions(current_status: str) -> list[dict[str, Any]]:
    return [
        {"to_status": to.value, "required_fields": list(fields)}
        for (frm, to), fields in STATUS_TRANSITIONS.items()
        if frm.value == current_status
    ]


class LegalCaseService(StoreBackedService):
    """Legal case lifecycle: filing, updates, status changes and soft deletion."""

    collection = "legal_cases"
    label = "Legal case"

    def __init__(
        self,
        store,
        borrowers: BorrowerDirectory,
        case_ids: CaseIdService,
        timeline: TimelineService,
        notifications: NotificationService,
        settings=None,
    ):
        super().__init__(store, settings)
        self.borrowers = borrowers
        self.case_ids = case_ids
        self.timeline = timeline
        self.notifications = notifications

    # ------------------------------------------------------------------ helpers

    def _validate_dates(self, filed, closure) -> None:
        filed_date = parse_date(filed)
        closure_date = parse_date(closure)
        if filed_date and filed_date > today():
            raise ValidationFailed("Case filed date cannot be in the future")
        if filed_date and closure_date and closure_date < filed_date:
            raise ValidationFailed("Case closure date cannot be before case filed date")

    def _validate_lawyer(self, lawyer_id: str | None) -> dict | None:
        if not lawyer_id:
            return None
        lawyer = self.store.get("lawyers", lawyer_id)
        if lawyer is None:
            raise ValidationFailed(f"Lawyer with ID {lawyer_id} not found")
        return lawyer

    def _with_lawyer(self, case: dict[str, Any]) -> dict[str, Any]:
        lawyer = self.store.get("lawyers", case.get("lawyer_assigned_id")) if case.get("lawyer_assigned_id") else None
        return {**case, "lawyer_name": lawyer.get("full_name") if lawyer else None}

    def _visible(self, case_id: str) -> dict[str, Any]:
        case = self._require(case_id)
        if case.get("status") == RecordStatus.DELETED.value:
            raise ResourceNotFound(f"Legal case with ID {case_id} not found")
        return case

    # --------------------------------------------------------------- operations

    def create(self, data: LegalCaseCreate) -> dict[str, Any]:
        borrower = self.borrowers.get_borrower(data.loan_account_number)
        self._validate_dates(data.case_filed_date, data.case_closure_date)
        self._validate_lawyer(data.lawyer_assigned_id)

        generated = self.case_ids.generate_case_id()
        doc = data.model_dump(mode="json", exclude={"created_by"})
        doc["case_id"] = generated["case_id"]
        doc["borrower_name"] = data.borrower_name or borrower.get("borrower_name")
        doc["status"] = RecordStatus.ACTIVE.value

        case = self.store.insert(self.collection, self._stamp_new(doc, data.created_by))
        self.logger.info(f"Created legal case {case['case_id']} for {data.loan_account_number}")

        self.timeline.record(
            case["id"],
            TimelineEventType.CASE_CREATED,
            f"Case {case['case_id']} filed at {data.court_name}",
            new_status=case["current_status"],
            created_by=data.created_by,
        )
        if data.next_hearing_date:
            self.timeline.record(
                case["id"],
                TimelineEventType.HEARING_SCHEDULED,
                "Hearing scheduled",
                event_date=data.next_hearing_date,
                created_by=data.created_by,
            )
        return self._with_lawyer(case)

    def get(self, case_id: str) -> dict[str, Any]:
        return self._with_lawyer(self._visible(case_id))

    def get_by_case_id(self, case_number: str) -> dict[str, Any]:
        case = self.store.find_one(
            self.collection, {"case_id": case_number, "status__ne": RecordStatus.DELETED.value}
        )
        if case is None:
            raise ResourceNotFound(f"Legal case {case_number} not found")
        return self._with_lawyer(case)

    def list(
        self,
        page: int = 1,
        limit: int = 10,
        case_type: CaseType | None = None,
        current_status: CaseStatus | None = None,
        lawyer_assigned_id: str | None = None,
        loan_account_number: str | None = None,
        borrower_name: str | None = None,
        filed_from: date | None = None,
        filed_to: date | None = None,
    ) -> dict[str, Any]:
        filters = {
            "status__ne": RecordStatus.DELETED.value,
            "case_type": case_type.value if case_type else None,
            "current_status": current_status.value if current_status else None,
            "lawyer_assigned_id": lawyer_assigned_id,
            "loan_account_number__like": loan_account_number,
            "borrower_name__like": borrower_name,
            "case_filed_date__gte": filed_from.isoformat() if filed_from else None,
            "case_filed_date__lte": filed_to.isoformat() if filed_to else None,
        }
        rows, meta = self._paged(filters, page, limit, sort=[("created_at", "DESC")])
        return {"cases": [self._with_lawyer(r) for r in rows], **meta}

    def update(self, case_id: str, data: LegalCaseUpdate) -> dict[str, Any]:
        existing = self._visible(case_id)
        changes = data.model_dump(mode="json", exclude_unset=True, exclude={"updated_by"})
        merged = {**existing, **changes}
        self._validate_dates(merged.get("case_filed_date"), merged.get("case_closure_date"))
        if "lawyer_assigned_id" in changes:
            self._validate_lawyer(changes["lawyer_assigned_id"])
        previous_status = existing.get("current_status")
        if changes.get("current_status"):
            check_status_transition(previous_status, changes["current_status"], merged)

        updated = self.store.update(self.collection, case_id, self._stamp_update(changes, data.updated_by))

        if changes.get("current_status") and changes["current_status"] != previous_status:
            self._on_status_change(updated, previous_status, data.updated_by)
        previous_lawyer = existing.get("lawyer_assigned_id")
        if "lawyer_assigned_id" in changes and changes["lawyer_assigned_id"] != previous_lawyer:
            self._on_lawyer_change(updated, previous_lawyer, data.updated_by)
        self._on_hearing_change(existing, updated, data.updated_by)
        return self._with_lawyer(updated)

    def update_status(self, case_id: str, data: CaseStatusUpdate) -> dict[str, Any]:
        existing = self._visible(case_id)
        changes: dict[str, Any] = {"current_status": data.current_status.value}
        for field in ("next_hearing_date", "case_closure_date"):
            value = getattr(data, field)
            if value is not None:
                changes[field] = value.isoformat()
        if data.last_hearing_outcome is not None:
            changes["last_hearing_outcome"] = data.last_hearing_outcome
        if data.outcome_summary is not None:
            changes["outcome_summary"] = data.outcome_summary
        if data.remarks is not None:
            changes["case_remarks"] = data.remarks

        previous_status = existing.get("current_status")
        merged = {**existing, **changes}
        check_status_transition(previous_status, data.current_status.value, merged)
        if not merged.get("case_closure_date") and data.current_status in CLOSING_CASE_STATUSES:
            changes["case_closure_date"] = today().isoformat()
        self._validate_dates(existing.get("case_filed_date"), changes.get("case_closure_date"))

        updated = self.store.update(self.collection, case_id, self._stamp_update(changes, data.updated_by))
        if previous_status != data.current_status.value:
            self._on_status_change(updated, previous_status, data.updated_by)
        self._on_hearing_change(existing, updated, data.updated_by)
        return self._with_lawyer(updated)

    def status_transitions(self, case_id: str) -> dict[str, Any]:
        case = self._visible(case_id)
        return {
            "case_id": case["case_id"],
            "current_status": case.get("current_status"),
            "transitions": available_transitions(case.get("current_status")),
        }

    def _on_hearing_change(self, existing: dict[str, Any], updated: dict[str, Any], user: str | None) -> None:
        hearing = updated.get("next_hearing_date")
        if not hearing or hearing == existing.get("next_hearing_date"):
            return
        self.timeline.record(
            updated["id"],
            TimelineEventType.HEARING_SCHEDULED,
            "Hearing scheduled",
            event_date=hearing,
            created_by=user,
        )
        self.notifications.notify_hearing_scheduled([updated.get("lawyer_assigned_id")], updated)

    def _on_lawyer_change(self, case: dict[str, Any], previous_lawyer: str | None, user: str | None) -> None:
        lawyer_id = case.get("lawyer_assigned_id")
        lawyer = self.store.get("lawyers", lawyer_id) if lawyer_id else None
        if lawyer is None:
            title = "Lawyer unassigned"
        else:
            title = f"Lawyer {lawyer.get('full_name')} assigned"
        self.timeline.record(
            case["id"],
            TimelineEventType.LAWYER_REASSIGNED if previous_lawyer else TimelineEventType.LAWYER_ASSIGNED,
            title,
            metadata={"previous_lawyer_id": previous_lawyer, "lawyer_id": lawyer_id},
            created_by=user,
        )
        if lawyer_id:
            self.notifications.notify_lawyer_assignment(lawyer_id, case)
        if previous_lawyer:
            self.notifications.notify_case_reassignment([previous_lawyer], case, "Case assigned to another lawyer")

    def _on_status_change(self, case: dict[str, Any], previous_status: str, user: str | None) -> None:
        self.logger.info(f"Case {case['case_id']} status {previous_status} -> {case['current_status']}")
        self.timeline.record(
            case["id"],
            TimelineEventType.STATUS_CHANGE,
            f"Status changed to {case['current_status']}",
            previous_status=previous_status,
            new_status=case["current_status"],
            is_milestone=case["current_status"] in {s.value for s in CLOSING_CASE_STATUSES},
            created_by=user,
        )
        self.notifications.notify_status_change(
            [case.get("lawyer_assigned_id")], case, previous_status, case["current_status"]
        )

    def delete(self, case_id: str, deleted_by: str | None = None) -> dict[str, Any]:
        case = self._visible(case_id)
        self.store.update(
            self.collection,
            case_id,
            self._stamp_update({"status": RecordStatus.DELETED.value}, deleted_by),
        )
        self.logger.info(f"Soft-deleted legal case {case['case_id']}")
        return {"success": True, "message": f"Legal case {case['case_id']} deleted successfully"}

    def by_status(self, current_status: CaseStatus) -> list[dict[str, Any]]:
        rows = self.store.find(
            self.collection,
            {"current_status": current_status.value, "status__ne": RecordStatus.DELETED.value},
            sort=[("created_at", "DESC")],
        )
        return [self._with_lawyer(r) for r in rows]

    def by_lawyer(self, lawyer_id: str) -> list[dict[str, Any]]:
        rows = self.store.find(
            self.collection,
            {"lawyer_assigned_id": lawyer_id, "status__ne": RecordStatus.DELETED.value},
            sort=[("created_at", "DESC")],
        )
        return [self._with_lawyer(r) for r in rows]

    def status_summary(self) -> dict[str, int]:
        rows = self.store.find(self.collection, {"status__ne": RecordStatus.DELETED.value})
        counts = Counter(r.get("current_status") for r in rows)
        return {status.value: counts.get(status.value, 0) for status in CaseStatus}
