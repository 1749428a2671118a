import pytest


@pytest.fixture
def bucket(client):
    return client.post(
        "/api/masters/dpd-buckets", json={"bucket_name": "91-180", "range_start": 91, "range_end": 180}
    ).json()


def test_detect_for_account(client, loan_account, bucket):
    resp = client.get("/api/triggers/detect/LN1001")
    assert resp.status_code == 200
    [event] = resp.json()["events"]
    assert event["eligibility_status"] == "ELIGIBLE"
    assert event["severity"] == "High"
    assert "Account is eligible for legal notice generation" in event["recommendations"]


def test_manual_detection_groups_accounts(client, make_account, bucket):
    make_account("LN1001")
    make_account("LN2002", current_dpd=10)

    resp = client.post("/api/triggers/detect", json={"account_numbers": ["LN1001", "LN2002", "LN404"]})
    body = resp.json()
    assert [e["loan_account_number"] for e in body["eligible_accounts"]] == ["LN1001"]
    assert sorted(e["loan_account_number"] for e in body["ineligible_accounts"]) == ["LN2002", "LN404"]
    assert body["errors"] == []


def test_manual_detection_requires_accounts(client):
    assert client.post("/api/triggers/detect", json={"account_numbers": []}).status_code == 422


def test_trigger_lifecycle(client, loan_account, bucket):
    resp = client.post("/api/triggers", json={"loan_account_number": "LN1001", "criteria": "DPD above 90"})
    assert resp.status_code == 201
    trigger = resp.json()
    assert trigger["trigger_code"].startswith("TRG-")
    assert trigger["status"] == "Open"

    updated = client.patch(f"/api/triggers/{trigger['id']}/status", json={"status": "Escalated"})
    assert updated.json()["status"] == "Escalated"

    assert client.get("/api/triggers", params={"severity": "High"}).json()["total"] == 1
    stats = client.get("/api/triggers/statistics").json()
    assert stats["by_status"] == {"Escalated": 1}


def test_unknown_account_trigger_is_rejected(client):
    assert client.post("/api/triggers", json={"loan_account_number": "LN404"}).status_code == 422


def test_rules_can_be_toggled(client):
    rules = client.get("/api/triggers/rules").json()["rules"]
    assert "BR001" in [r["rule_id"] for r in rules]

    assert client.patch("/api/triggers/rules/RR001", json={"enabled": False}).json() == {
        "rule_id": "RR001",
        "enabled": False,
    }
    assert client.patch("/api/triggers/rules/XX999", json={"enabled": False}).status_code == 404
