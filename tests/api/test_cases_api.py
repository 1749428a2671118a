from datetime import date, timedelta

import pytest


@pytest.fixture
def case_body(loan_account):
    return {
        "loan_account_number": loan_account["loan_account_number"],
        "case_type": "Civil",
        "court_name": "City Civil Court",
        "case_filed_date": (date.today() - timedelta(days=2)).isoformat(),
        "filing_jurisdiction": "Mumbai",
    }


def test_create_and_fetch_case(client, case_body):
    resp = client.post("/api/legal-cases", json=case_body)
    assert resp.status_code == 201
    case = resp.json()
    assert case["borrower_name"] == "Rajesh Kumar"
    assert case["current_status"] == "Filed"

    assert client.get(f"/api/legal-cases/{case['id']}").json()["case_id"] == case["case_id"]
    assert client.get(f"/api/legal-cases/by-case-id/{case['case_id']}").json()["id"] == case["id"]


def test_future_filing_date_is_rejected(client, case_body):
    case_body["case_filed_date"] = (date.today() + timedelta(days=1)).isoformat()
    resp = client.post("/api/legal-cases", json=case_body)
    assert resp.status_code == 422
    body = resp.json()
    assert body["detail"] == "Case filed date cannot be in the future"
    assert body["request_id"]


def test_request_model_validation(client, case_body):
    del case_body["court_name"]
    assert client.post("/api/legal-cases", json=case_body).status_code == 422


def test_unknown_case_returns_404(client):
    resp = client.get("/api/legal-cases/missing")
    assert resp.status_code == 404
    assert resp.json()["error"] == "The requested resource was not found."


def test_list_and_summary(client, case_body):
    client.post("/api/legal-cases", json=case_body)
    client.post("/api/legal-cases", json={**case_body, "case_type": "Arbitration"})

    listing = client.get("/api/legal-cases", params={"case_type": "Arbitration"}).json()
    assert listing["total"] == 1
    assert listing["cases"][0]["case_type"] == "Arbitration"

    summary = client.get("/api/legal-cases/summary").json()
    assert summary["Filed"] == 2
    assert summary["Closed"] == 0


def test_oversized_page_is_rejected(client):
    assert client.get("/api/legal-cases", params={"limit": 500}).status_code == 422


def test_injection_in_search_is_rejected(client):
    resp = client.get("/api/legal-cases", params={"borrower_name": "FOR c IN legal_cases"})
    assert resp.status_code == 400
    assert resp.json()["detail"] == "Invalid search term"


def test_status_change_and_timeline(client, case_body):
    case = client.post("/api/legal-cases", json=case_body).json()

    resp = client.patch(f"/api/legal-cases/{case['id']}/status", json={"current_status": "Closed"})
    assert resp.status_code == 422
    assert resp.json()["detail"] == "Transition from Filed to Closed is not allowed"

    resp = client.patch(
        f"/api/legal-cases/{case['id']}/status",
        json={
            "current_status": "Dismissed",
            "last_hearing_outcome": "Petitioner absent",
            "outcome_summary": "Dismissed for default",
        },
    )
    assert resp.status_code == 200
    assert resp.json()["case_closure_date"] == date.today().isoformat()

    timeline = client.get(f"/api/timeline/cases/{case['id']}").json()
    assert [e["event_type"] for e in timeline["events"]] == ["case_created", "status_change"]
    assert len(timeline["milestones"]) == 2

    by_status = client.get("/api/legal-cases/by-status/Dismissed").json()
    assert by_status["total"] == 1

    transitions = client.get(f"/api/legal-cases/{case['id']}/status-transitions").json()
    assert transitions["transitions"] == [{"to_status": "Closed", "required_fields": ["case_closure_date"]}]


def test_delete_hides_case(client, case_body):
    case = client.post("/api/legal-cases", json=case_body).json()
    resp = client.delete(f"/api/legal-cases/{case['id']}", headers={"X-User-Id": "alice"})
    assert resp.json()["success"] is True
    assert client.get(f"/api/legal-cases/{case['id']}").status_code == 404


def test_add_timeline_event_requires_case(client):
    resp = client.post(
        "/api/timeline/events",
        json={"legal_case_id": "missing", "event_type": "note", "event_title": "Called borrower"},
    )
    assert resp.status_code == 404


def test_generate_and_validate_case_id(client):
    generated = client.post("/api/case-ids/generate", json={"prefix": "LC", "on": "2024-03-01"}).json()
    assert generated["case_id"] == "LC-20240301-0001"

    validation = client.post("/api/case-ids/validate", json={"case_id": generated["case_id"]}).json()
    assert validation["is_valid"] is True
    assert validation["is_unique"] is True


def test_loan_accounts(client):
    resp = client.post(
        "/api/loan-accounts",
        json={"loan_account_number": "LN7007", "borrower_name": "Meera Iyer", "current_dpd": 40},
        headers={"X-User-Id": "ops"},
    )
    assert resp.status_code == 201
    assert client.get("/api/loan-accounts/LN7007").json()["borrower_name"] == "Meera Iyer"
    assert client.get("/api/loan-accounts", params={"search": "Meera"}).json()["total"] == 1
    assert client.get("/api/loan-accounts/LN404").status_code == 422
