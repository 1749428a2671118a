from datetime import date, timedelta

import pytest

from legal_case_management.domain.errors import ResourceNotFound
from legal_case_management.models.cases import TimelineEventCreate
from legal_case_management.models.entities import Priority, TimelineEventType
from legal_case_management.models.notices import NotificationCreate
from legal_case_management.utils.dates import parse_datetime, utc_now


def notify(system, recipient_id="lawyer-1", **overrides):
    fields = {
        "recipient_id": recipient_id,
        "notification_type": "reminder",
        "title": "Reminder",
        "message": "File the reply",
    }
    fields.update(overrides)
    return system.notifications.send(NotificationCreate(**fields))


class TestNotifications:
    def test_send_sets_expiry(self, system):
        notification = notify(system)
        expires = parse_datetime(notification["expires_at"])
        assert timedelta(days=29) < expires - utc_now() <= timedelta(days=30)
        assert notification["is_read"] is False
        assert notification["priority"] == Priority.MEDIUM.value

    def test_templated_skips_empty_recipients(self, system):
        sent = system.notifications.send_templated(
            "hearing_scheduled",
            [None, "lawyer-1", ""],
            {"case_number": "LC-20240101-0001", "hearing_date": "2024-02-01", "court_name": "City Civil Court"},
        )
        assert len(sent) == 1
        assert sent[0]["message"] == (
            "Hearing for case LC-20240101-0001 is scheduled on 2024-02-01 at City Civil Court."
        )
        assert sent[0]["priority"] == Priority.HIGH.value

    def test_templated_failure_is_logged_not_raised(self, system):
        assert system.notifications.send_templated("status_change", ["lawyer-1"], {}) == []

    def test_read_tracking(self, system):
        first = notify(system)
        notify(system)
        notify(system, recipient_id="lawyer-2")

        assert system.notifications.unread_count("lawyer-1") == 2
        read = system.notifications.mark_read(first["id"])
        assert read["is_read"] is True
        assert read["read_at"] is not None
        assert system.notifications.list("lawyer-1", unread_only=True)["total"] == 1
        assert system.notifications.mark_all_read("lawyer-1") == {"updated_count": 1}
        assert system.notifications.unread_count("lawyer-1") == 0
        assert system.notifications.unread_count("lawyer-2") == 1

    def test_mark_read_unknown(self, system):
        with pytest.raises(ResourceNotFound):
            system.notifications.mark_read("missing")

    def test_delete_expired(self, system, store):
        notify(system)
        notify(system, expires_in_days=None)
        store.insert(
            "notifications",
            {"recipient_id": "lawyer-1", "expires_at": (utc_now() - timedelta(days=1)).isoformat()},
        )
        assert system.notifications.delete_expired() == {"deleted_count": 1}
        assert store.count("notifications") == 2

    def test_stats(self, system):
        first = notify(system)
        notify(system, notification_type="status_change")
        system.notifications.mark_read(first["id"])

        stats = system.notifications.stats()
        assert stats == {"total": 2, "unread": 1, "by_type": {"reminder": 1, "status_change": 1}}


class TestTimeline:
    def test_add_event_defaults(self, system, legal_case):
        event = system.timeline.add_event(
            TimelineEventCreate(
                legal_case_id=legal_case["id"],
                event_type=TimelineEventType.NOTE,
                event_title="Called borrower",
            )
        )
        assert event["event_date"] == date.today().isoformat()
        assert event["is_milestone"] is False

    def test_case_timeline_orders_events(self, system, legal_case):
        system.timeline.add_event(
            TimelineEventCreate(
                legal_case_id=legal_case["id"],
                event_type=TimelineEventType.NOTE,
                event_title="Earlier note",
                event_date=date.today() - timedelta(days=10),
            )
        )
        timeline = system.timeline.case_timeline(legal_case["id"])
        assert [e["event_title"] for e in timeline["events"]][0] == "Earlier note"
        assert timeline["total_events"] == 2
        assert len(timeline["milestones"]) == 1
        assert timeline["last_activity"] is not None

    def test_case_timeline_unknown_case(self, system):
        with pytest.raises(ResourceNotFound):
            system.timeline.case_timeline("missing")

    def test_upcoming_hearings_window(self, system, legal_case):
        for offset in (-1, 3, 45):
            system.timeline.record(
                legal_case["id"],
                TimelineEventType.HEARING_SCHEDULED,
                f"Hearing in {offset} days",
                event_date=date.today() + timedelta(days=offset),
            )
        titles = [e["event_title"] for e in system.timeline.upcoming_hearings(days=30)]
        assert titles == ["Hearing in 3 days"]

    def test_record_failure_returns_none(self, system):
        assert system.timeline.record("case-1", TimelineEventType.NOTE, "") is None

    def test_stats(self, system, legal_case):
        stats = system.timeline.stats()
        assert stats == {"total_events": 1, "by_type": {"case_created": 1}, "milestones": 1}
