def test_state_crud(client):
    resp = client.post("/api/masters/states", json={"state_code": "ka", "state_name": "Karnataka"})
    assert resp.status_code == 201
    state = resp.json()
    assert state["state_code"] == "KA"
    assert state["state_id"] == 1

    assert client.get("/api/masters/states/code/ka").json()["id"] == state["id"]
    assert client.get("/api/masters/states", params={"search": "karna"}).json()["total"] == 1

    updated = client.put(f"/api/masters/states/{state['id']}", json={"state_name": "Karnataka State"})
    assert updated.json()["state_name"] == "Karnataka State"

    assert client.delete(f"/api/masters/states/{state['id']}").json() == {"deleted": True, "id": state["id"]}
    assert client.get(f"/api/masters/states/{state['id']}").status_code == 404


def test_duplicate_state_conflicts(client, state):
    resp = client.post("/api/masters/states", json={"state_code": "MH", "state_name": "Other"})
    assert resp.status_code == 409
    assert "already exists" in resp.json()["detail"]


def test_dpd_buckets(client):
    created = client.post(
        "/api/masters/dpd-buckets", json={"bucket_name": "91-180", "range_start": 91, "range_end": 180}
    )
    assert created.status_code == 201
    assert created.json()["min_days"] == 91

    overlap = client.post(
        "/api/masters/dpd-buckets", json={"bucket_name": "150+", "range_start": 150, "range_end": 365}
    )
    assert overlap.status_code == 409

    inverted = client.post(
        "/api/masters/dpd-buckets", json={"bucket_name": "bad", "range_start": 10, "range_end": 5}
    )
    assert inverted.status_code == 422

    match = client.get("/api/masters/dpd-buckets/for-dpd/120").json()
    assert match["bucket"]["bucket_name"] == "91-180"
    assert client.get("/api/masters/dpd-buckets/for-dpd/10").json()["bucket"] is None


def test_product_tree(client):
    group = client.post("/api/masters/product-groups", json={"name": "Retail"}).json()
    ptype = client.post("/api/masters/product-types", json={"name": "Personal", "parent_id": group["id"]}).json()
    assert group["code"] == "PG001"
    assert ptype["code"] == "PT001"

    orphan = client.post("/api/masters/product-types", json={"name": "Orphan"})
    assert orphan.status_code == 422

    tree = client.get("/api/masters/products/tree").json()["tree"]
    assert tree[0]["types"][0]["name"] == "Personal"

    assert client.delete(f"/api/masters/product-groups/{group['id']}").status_code == 409


def test_languages_and_channels(client):
    language = client.post(
        "/api/masters/languages", json={"language_name": "Marathi", "script_support": "Devanagari"}
    )
    assert language.status_code == 201
    assert language.json()["language_code"] == "MR"

    channel = client.post("/api/masters/channels", json={"channel_id": "CH-WA", "channel_name": "WhatsApp"})
    assert channel.status_code == 201
    listing = client.get("/api/masters/channels").json()
    assert [c["channel_id"] for c in listing["channels"]] == ["CH-WA"]


def test_communication_templates(client, sms_channel, language):
    body = {
        "template_id": "TPL-1",
        "template_name": "First reminder",
        "message_body": "Dear {{ borrower.name }}, please pay.",
        "template_type": "Pre-Legal",
        "channel_id": sms_channel["id"],
        "language_id": language["id"],
    }
    resp = client.post("/api/masters/templates", json=body)
    assert resp.status_code == 201
    template = resp.json()

    for_channel = client.get(f"/api/masters/templates/channel/{sms_channel['id']}").json()
    assert for_channel["total"] == 1

    updated = client.put(f"/api/masters/templates/{template['id']}", json={"is_approved": True})
    assert updated.json()["is_approved"] is True

    assert client.post("/api/masters/templates", json=body).status_code == 409


def test_master_data_events_are_recorded(client):
    client.post("/api/masters/states", json={"state_code": "GJ", "state_name": "Gujarat"})
    history = client.get("/api/masters/events/history").json()["history"]
    assert history["state"][-1]["action"] == "create"
