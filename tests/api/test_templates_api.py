from legal_case_management.services.template_engine import mock_template_data


def test_notice_template_crud(client, notice_template):
    assert client.get("/api/notice-templates/code/PLN-01").json()["id"] == notice_template["id"]
    assert client.get("/api/notice-templates").json()["total"] == 1

    updated = client.put(
        f"/api/notice-templates/{notice_template['id']}", json={"template_name": "Pre-legal notice v2"}
    )
    assert updated.json()["template_name"] == "Pre-legal notice v2"

    assert client.delete(f"/api/notice-templates/{notice_template['id']}").json()["deleted"] is True
    assert client.get(f"/api/notice-templates/{notice_template['id']}").status_code == 404


def test_render(client, notice_template):
    resp = client.post(
        "/api/template-engine/render",
        json={"template_id": "PLN-01", "data": mock_template_data(), "output_format": "PLAIN_TEXT"},
    )
    assert resp.status_code == 200
    body = resp.json()
    assert body["content"].startswith("LEGAL NOTICE")
    assert body["metadata"]["content_type"] == "text/plain"


def test_render_with_missing_data(client, notice_template):
    resp = client.post("/api/template-engine/render", json={"template_id": "PLN-01", "data": {}})
    assert resp.status_code == 422
    assert "Borrower name is required" in resp.json()["detail"]


def test_render_notice(client, loan_account, notice_template):
    resp = client.post(
        "/api/template-engine/render-notice",
        json={"template_id": notice_template["id"], "loan_account_number": "LN1001"},
    )
    assert resp.status_code == 200
    assert resp.json()["delivery_instructions"]["urgency"] == "HIGH"


def test_render_batch(client, loan_account, notice_template):
    resp = client.post(
        "/api/template-engine/render-batch",
        json={
            "requests": [
                {"template_id": notice_template["id"], "loan_account_number": "LN1001"},
                {"template_id": notice_template["id"], "loan_account_number": "LN404"},
            ]
        },
    )
    body = resp.json()
    assert body["succeeded"] == 1
    assert body["failed"] == ["LN404"]


def test_validate_and_preview(client, notice_template):
    result = client.post(
        "/api/template-engine/validate", json={"content": "Dear {{ borrower.name }}", "max_characters": 10}
    ).json()
    assert result["is_valid"] is False

    stored = client.get(f"/api/template-engine/templates/{notice_template['id']}/validate").json()
    assert stored["is_valid"] is True

    preview = client.post(f"/api/template-engine/templates/{notice_template['id']}/preview", json={}).json()
    assert preview["metadata"]["preview"] is True


def test_sample_data_and_variables(client):
    assert client.get("/api/template-engine/sample-data").json()["loanAccount"]["totalDue"] == 387500
    variables = client.post("/api/template-engine/variables", json={"body": "{{ a }} {{ b.c }}"}).json()
    assert variables == {"variables": ["a", "b.c"]}


def test_sms_format_conversion(client):
    assert client.post("/api/sms-format/to-sms", json={"body": "Hi {{ name }}"}).json() == {"body": "Hi {#name#}"}
    assert client.post("/api/sms-format/from-sms", json={"body": "Hi {#name#}"}).json() == {"body": "Hi {{name}}"}
    detected = client.post("/api/sms-format/detect", json={"body": "Hi {#name#}"}).json()
    assert detected == {"format": "sms", "variables": ["name"]}
