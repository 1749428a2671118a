from datetime import date, timedelta

import pytest

from legal_case_management.domain.errors import ResourceNotFound, ValidationFailed
from legal_case_management.models.cases import CaseStatusUpdate, LegalCaseUpdate
from legal_case_management.models.entities import CaseStatus, CaseType, TimelineEventType


def event_types(system, case_id):
    return [e["event_type"] for e in system.timeline.case_timeline(case_id)["events"]]


def test_create_fills_borrower_and_case_id(system, legal_case, loan_account):
    assert legal_case["case_id"].startswith(f"LC-{date.today():%Y%m%d}-")
    assert legal_case["borrower_name"] == loan_account["borrower_name"]
    assert legal_case["current_status"] == CaseStatus.FILED.value
    assert legal_case["status"] == "Active"
    assert legal_case["lawyer_name"] is None

    timeline = system.timeline.case_timeline(legal_case["id"])
    assert timeline["total_events"] == 1
    assert timeline["events"][0]["event_type"] == TimelineEventType.CASE_CREATED.value
    assert timeline["milestones"] == timeline["events"]


def test_create_rejects_unknown_loan_account(make_case):
    with pytest.raises(ValidationFailed, match="not found in validated data"):
        make_case(loan_account_number="LN-UNKNOWN")


def test_create_rejects_future_filing(make_case):
    with pytest.raises(ValidationFailed, match="future"):
        make_case(case_filed_date=date.today() + timedelta(days=1))


def test_create_rejects_closure_before_filing(make_case):
    with pytest.raises(ValidationFailed, match="closure date"):
        make_case(
            case_filed_date=date.today() - timedelta(days=10),
            case_closure_date=date.today() - timedelta(days=20),
        )


def test_create_rejects_unknown_lawyer(make_case):
    with pytest.raises(ValidationFailed, match="Lawyer"):
        make_case(lawyer_assigned_id="missing")


def test_create_with_hearing_schedules_event(system, make_case):
    hearing = date.today() + timedelta(days=5)
    case = make_case(next_hearing_date=hearing)

    assert event_types(system, case["id"]) == [
        TimelineEventType.CASE_CREATED.value,
        TimelineEventType.HEARING_SCHEDULED.value,
    ]
    upcoming = system.timeline.upcoming_hearings(days=30)
    assert [e["legal_case_id"] for e in upcoming] == [case["id"]]


def test_lawyer_name_is_resolved(make_case, lawyer):
    case = make_case(lawyer_assigned_id=lawyer["id"])
    assert case["lawyer_name"] == lawyer["full_name"]


def test_closing_status_sets_closure_date_and_notifies(system, make_case, lawyer):
    case = make_case(lawyer_assigned_id=lawyer["id"])

    updated = system.legal_cases.update_status(
        case["id"],
        CaseStatusUpdate(
            current_status=CaseStatus.DISMISSED,
            last_hearing_outcome="Borrower absent",
            outcome_summary="Dismissed for default",
        ),
    )

    assert updated["current_status"] == CaseStatus.DISMISSED.value
    assert updated["case_closure_date"] == date.today().isoformat()
    assert updated["outcome_summary"] == "Dismissed for default"
    status_events = system.timeline.events_by_type(TimelineEventType.STATUS_CHANGE, case["id"])
    assert status_events[0]["previous_status"] == CaseStatus.FILED.value
    assert status_events[0]["is_milestone"]
    notifications = system.notifications.list(lawyer["id"])["notifications"]
    assert "status_change" in [n["notification_type"] for n in notifications]

    closed = system.legal_cases.update_status(case["id"], CaseStatusUpdate(current_status=CaseStatus.CLOSED))
    assert closed["current_status"] == CaseStatus.CLOSED.value
    assert closed["case_closure_date"] == date.today().isoformat()


def test_disallowed_transitions(system, legal_case):
    with pytest.raises(ValidationFailed, match="from Filed to Closed is not allowed"):
        system.legal_cases.update_status(legal_case["id"], CaseStatusUpdate(current_status=CaseStatus.CLOSED))
    with pytest.raises(ValidationFailed, match="not allowed"):
        system.legal_cases.update(legal_case["id"], LegalCaseUpdate(current_status=CaseStatus.RESOLVED))
    assert system.legal_cases.get(legal_case["id"])["current_status"] == CaseStatus.FILED.value


def test_transition_requires_fields(system, legal_case):
    with pytest.raises(ValidationFailed, match="last_hearing_outcome, outcome_summary"):
        system.legal_cases.update_status(legal_case["id"], CaseStatusUpdate(current_status=CaseStatus.DISMISSED))
    with pytest.raises(ValidationFailed, match="must be in the future"):
        system.legal_cases.update_status(
            legal_case["id"],
            CaseStatusUpdate(
                current_status=CaseStatus.UNDER_TRIAL, next_hearing_date=date.today() - timedelta(days=1)
            ),
        )


def test_trial_to_resolution(system, legal_case):
    hearing = date.today() + timedelta(days=14)
    system.legal_cases.update_status(
        legal_case["id"], CaseStatusUpdate(current_status=CaseStatus.UNDER_TRIAL, next_hearing_date=hearing)
    )
    assert [e["event_date"] for e in system.timeline.events_by_type(TimelineEventType.HEARING_SCHEDULED)] == [
        hearing.isoformat()
    ]

    with pytest.raises(ValidationFailed, match="case_closure_date"):
        system.legal_cases.update_status(
            legal_case["id"], CaseStatusUpdate(current_status=CaseStatus.RESOLVED, outcome_summary="Paid in full")
        )
    resolved = system.legal_cases.update_status(
        legal_case["id"],
        CaseStatusUpdate(
            current_status=CaseStatus.RESOLVED, outcome_summary="Paid in full", case_closure_date=date.today()
        ),
    )
    assert resolved["current_status"] == CaseStatus.RESOLVED.value

    transitions = system.legal_cases.status_transitions(legal_case["id"])["transitions"]
    assert transitions == [{"to_status": "Closed", "required_fields": ["case_closure_date"]}]


def test_lawyer_change_records_timeline_and_notifies(system, legal_case, make_lawyer):
    first = make_lawyer()
    second = make_lawyer()

    system.legal_cases.update(legal_case["id"], LegalCaseUpdate(lawyer_assigned_id=first["id"]))
    system.legal_cases.update(legal_case["id"], LegalCaseUpdate(lawyer_assigned_id=second["id"]))

    assert event_types(system, legal_case["id"]) == [
        TimelineEventType.CASE_CREATED.value,
        TimelineEventType.LAWYER_ASSIGNED.value,
        TimelineEventType.LAWYER_REASSIGNED.value,
    ]
    [reassigned] = system.timeline.events_by_type(TimelineEventType.LAWYER_REASSIGNED, legal_case["id"])
    assert reassigned["metadata"] == {"previous_lawyer_id": first["id"], "lawyer_id": second["id"]}

    first_types = [n["notification_type"] for n in system.notifications.list(first["id"])["notifications"]]
    assert sorted(first_types) == ["case_reassignment", "lawyer_assignment"]
    second_types = [n["notification_type"] for n in system.notifications.list(second["id"])["notifications"]]
    assert second_types == ["lawyer_assignment"]


def test_same_lawyer_records_no_event(system, make_case, lawyer):
    case = make_case(lawyer_assigned_id=lawyer["id"])
    system.legal_cases.update(case["id"], LegalCaseUpdate(lawyer_assigned_id=lawyer["id"], court_name="High Court"))
    assert system.timeline.events_by_type(TimelineEventType.LAWYER_ASSIGNED, case["id"]) == []


def test_same_status_records_no_event(system, legal_case):
    system.legal_cases.update_status(legal_case["id"], CaseStatusUpdate(current_status=CaseStatus.FILED))
    assert system.timeline.events_by_type(TimelineEventType.STATUS_CHANGE, legal_case["id"]) == []


def test_update_hearing_notifies_lawyer(system, make_case, lawyer):
    case = make_case(lawyer_assigned_id=lawyer["id"])
    hearing = date.today() + timedelta(days=7)

    updated = system.legal_cases.update(case["id"], LegalCaseUpdate(next_hearing_date=hearing))

    assert updated["next_hearing_date"] == hearing.isoformat()
    types = [n["notification_type"] for n in system.notifications.list(lawyer["id"])["notifications"]]
    assert "hearing_scheduled" in types


def test_update_validates_merged_dates(system, legal_case):
    with pytest.raises(ValidationFailed):
        system.legal_cases.update(
            legal_case["id"],
            LegalCaseUpdate(case_closure_date=date.today() - timedelta(days=30)),
        )


def test_soft_delete_hides_case(system, store, legal_case):
    result = system.legal_cases.delete(legal_case["id"])
    assert result["success"]

    with pytest.raises(ResourceNotFound):
        system.legal_cases.get(legal_case["id"])
    with pytest.raises(ResourceNotFound):
        system.legal_cases.get_by_case_id(legal_case["case_id"])
    assert system.legal_cases.list()["total"] == 0
    assert store.get("legal_cases", legal_case["id"])["status"] == "Deleted"


def test_list_filters(system, make_case):
    make_case()
    make_case(case_type=CaseType.ARBITRATION)

    assert system.legal_cases.list()["total"] == 2
    civil = system.legal_cases.list(case_type=CaseType.CIVIL)
    assert civil["total"] == 1
    assert civil["cases"][0]["case_type"] == CaseType.CIVIL.value
    assert system.legal_cases.list(borrower_name="rajesh")["total"] == 2
    assert system.legal_cases.list(filed_from=date.today())["total"] == 0


def test_list_rejects_oversized_pages(system):
    with pytest.raises(ValidationFailed):
        system.legal_cases.list(limit=1000)


def test_get_by_case_id(system, legal_case):
    assert system.legal_cases.get_by_case_id(legal_case["case_id"])["id"] == legal_case["id"]


def test_status_summary_lists_every_status(system, make_case):
    make_case()
    summary = system.legal_cases.status_summary()
    assert set(summary) == {s.value for s in CaseStatus}
    assert summary[CaseStatus.FILED.value] == 1


def test_by_status_and_lawyer(system, make_case, lawyer):
    case = make_case(lawyer_assigned_id=lawyer["id"])
    make_case()
    assert [c["id"] for c in system.legal_cases.by_lawyer(lawyer["id"])] == [case["id"]]
    assert len(system.legal_cases.by_status(CaseStatus.FILED)) == 2
