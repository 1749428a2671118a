from datetime import date, timedelta

import pytest


@pytest.fixture
def notice_body(loan_account, state, language, sms_template, email_template):
    return {
        "loan_account_number": loan_account["loan_account_number"],
        "dpd_days": 95,
        "trigger_type": "DPD Threshold",
        "template_ids": [sms_template["id"], email_template["id"]],
        "communication_modes": ["SMS", "Email"],
        "state_id": state["id"],
        "language_id": language["id"],
        "notice_expiry_date": (date.today() + timedelta(days=15)).isoformat(),
        "legal_entity_name": "Recovery Finance Ltd.",
        "issued_by": "Legal Ops",
        "notice_status": "Sent",
    }


def test_create_notice_dispatches_communications(client, notice_body):
    resp = client.post("/api/notices", json=notice_body)
    assert resp.status_code == 201
    notice = resp.json()
    assert notice["notice_code"].startswith("PLN-")
    assert notice["borrower_name"] == "Rajesh Kumar"
    assert sorted(c["mode"] for c in notice["communications"]) == ["EMAIL", "SMS"]

    fetched = client.get(f"/api/notices/{notice['id']}").json()
    assert fetched["notice_code"] == notice["notice_code"]


def test_duplicate_notice_conflicts(client, notice_body):
    client.post("/api/notices", json=notice_body)
    assert client.post("/api/notices", json=notice_body).status_code == 409


def test_unknown_account_is_rejected(client, notice_body):
    notice_body["loan_account_number"] = "LN404"
    assert client.post("/api/notices", json=notice_body).status_code == 422


def test_list_notices_filters_by_dpd(client, notice_body):
    client.post("/api/notices", json=notice_body)
    client.post("/api/notices", json={**notice_body, "dpd_days": 30})

    assert client.get("/api/notices").json()["total"] == 2
    listing = client.get("/api/notices", params={"dpd_min": 60}).json()
    assert [n["dpd_days"] for n in listing["notices"]] == [95]


def test_preview(client, loan_account, sms_template):
    resp = client.post(
        "/api/notices/preview",
        json={"template_id": sms_template["id"], "loan_account_number": "LN1001", "dpd_days": 95},
    )
    assert resp.status_code == 200
    assert "Rajesh Kumar" in resp.json()["rendered_html"]


def test_status_and_acknowledgement(client, notice_body):
    notice = client.post("/api/notices", json=notice_body).json()

    status = client.patch(f"/api/notices/{notice['id']}/status", json={"notice_status": "Generated"})
    assert status.json()["notice_status"] == "Generated"

    ack = client.post(
        "/api/notice-acknowledgements",
        json={
            "notice_id": notice["id"],
            "acknowledged_by": "Rajesh Kumar",
            "acknowledgement_date": date.today().isoformat(),
        },
    )
    assert ack.status_code == 201
    assert client.get(f"/api/notices/{notice['id']}").json()["notice_status"] == "Acknowledged"

    listing = client.get("/api/notice-acknowledgements", params={"notice_id": notice["id"]}).json()
    assert listing["total"] == 1
    assert client.get(f"/api/notice-acknowledgements/{ack.json()['id']}").status_code == 200


def test_referenced_template_and_language_cannot_be_deleted(client, notice_body, sms_template, language):
    assert client.post("/api/notices", json=notice_body).status_code == 201

    resp = client.delete(f"/api/masters/templates/{sms_template['id']}")
    assert resp.status_code == 409
    assert client.delete(f"/api/masters/languages/{language['id']}").status_code == 409
    assert client.get(f"/api/masters/templates/{sms_template['id']}").status_code == 200


def test_acknowledgement_proof_upload(client, notice_body):
    notice = client.post("/api/notices", json=notice_body).json()
    ack = client.post(
        "/api/notice-acknowledgements",
        json={
            "notice_id": notice["id"],
            "acknowledged_by": "Rajesh Kumar",
            "acknowledgement_date": date.today().isoformat(),
        },
    ).json()
    clerk = {"X-User-Id": "clerk"}

    assert client.get(f"/api/notice-acknowledgements/{ack['id']}/proof").json()["has_proof"] is False

    resp = client.post(
        f"/api/notice-acknowledgements/{ack['id']}/upload-proof",
        files={"file": ("signed.pdf", b"%PDF-1.4 signed receipt", "application/pdf")},
        headers=clerk,
    )
    assert resp.status_code == 201
    assert resp.json()["replaced_existing"] is False

    proof = client.get(f"/api/notice-acknowledgements/{ack['id']}/proof", headers=clerk).json()
    assert proof["has_proof"] is True
    assert proof["file_name"] == "signed.pdf"

    download = client.get(f"/api/notice-acknowledgements/{ack['id']}/proof/download", headers=clerk)
    assert download.status_code == 200
    assert download.content == b"%PDF-1.4 signed receipt"
    assert client.get(f"/api/notice-acknowledgements/{ack['id']}/proof/download").status_code == 403


def test_proof_upload_rejects_disallowed_types(client, notice_body):
    notice = client.post("/api/notices", json=notice_body).json()
    ack = client.post(
        "/api/notice-acknowledgements",
        json={
            "notice_id": notice["id"],
            "acknowledged_by": "Rajesh Kumar",
            "acknowledgement_date": date.today().isoformat(),
        },
    ).json()
    resp = client.post(
        f"/api/notice-acknowledgements/{ack['id']}/upload-proof",
        files={"file": ("run.exe", b"MZ", "application/x-msdownload")},
    )
    assert resp.status_code == 422
