from __future__ import annotations

from collections import Counter
from datetime import timedelta
from typing import Any

from legal_case_management.models.cases import TimelineEventCreate
from legal_case_management.models.entities import TimelineEventType
from legal_case_management.services.base import StoreBackedService
from legal_case_management.utils.dates import today

MILESTONE_TYPES = {
    TimelineEventType.CASE_CREATED,
    TimelineEventType.LAWYER_ASSIGNED,
    TimelineEventType.LAWYER_REASSIGNED,
}


class TimelineService(StoreBackedService):
    """Chronological event log per legal case."""

    collection = "case_timeline_events"
    label = "Timeline event"

    def add_event(self, event: TimelineEventCreate) -> dict[str, Any]:
        doc = event.model_dump(mode="json", exclude={"created_by"})
        doc["event_date"] = doc["event_date"] or today().isoformat()
        doc["is_milestone"] = event.is_milestone or event.event_type in MILESTONE_TYPES
        return self.store.insert(self.collection, self._stamp_new(doc, event.created_by))

    def record(self, legal_case_id: str, event_type: TimelineEventType, title: str, **fields) -> dict | None:
        """Best-effort event recording used by other services. Failures are logged."""
        try:
            return self.add_event(
                TimelineEventCreate(
                    legal_case_id=legal_case_id, event_type=event_type, event_title=title, **fields
                )
            )
        except Exception as e:
            self.logger.error(f"Failed to record timeline event for case {legal_case_id}: {e}")
            return None

    def case_timeline(self, legal_case_id: str) -> dict[str, Any]:
        self._require(legal_case_id, "legal_cases", "Legal case")
        events = self.store.find(
            self.collection,
            {"legal_case_id": legal_case_id},
            sort=[("event_date", "ASC"), ("created_at", "ASC")],
        )
        return {
            "legal_case_id": legal_case_id,
            "events": events,
            "total_events": len(events),
            "milestones": [e for e in events if e.get("is_milestone")],
            "last_activity": events[-1]["created_at"] if events else None,
        }

    def events_by_type(self, event_type: TimelineEventType, legal_case_id: str | None = None) -> list[dict]:
        return self.store.find(
            self.collection,
            {"event_type": event_type.value, "legal_case_id": legal_case_id},
            sort=[("event_date", "DESC")],
        )

    def upcoming_hearings(self, days: int = 30) -> list[dict]:
        start = today()
        return self.store.find(
            self.collection,
            {
                "event_type": TimelineEventType.HEARING_SCHEDULED.value,
                "event_date__gte": start.isoformat(),
                "event_date__lte": (start + timedelta(days=days)).isoformat(),
            },
            sort=[("event_date", "ASC")],
        )

    def stats(self) -> dict[str, Any]:
        events = self.store.find(self.collection)
        by_type = Counter(e.get("event_type") for e in events)
        return {
            "total_events": len(events),
            "by_type": dict(by_type),
            "milestones": sum(1 for e in events if e.get("is_milestone")),
        }
