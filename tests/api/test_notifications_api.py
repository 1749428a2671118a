def post_notification(client, recipient_id="lawyer-1", **overrides):
    body = {
        "recipient_id": recipient_id,
        "notification_type": "case_update",
        "title": "Case updated",
        "message": "Next hearing moved",
    }
    body.update(overrides)
    return client.post("/api/notifications", json=body)


def test_send_and_list(client):
    resp = post_notification(client)
    assert resp.status_code == 201
    assert resp.json()["is_read"] is False

    post_notification(client, recipient_id="lawyer-2")
    listing = client.get("/api/notifications/recipient/lawyer-1").json()
    assert listing["total"] == 1
    assert listing["notifications"][0]["title"] == "Case updated"


def test_read_tracking(client):
    first = post_notification(client).json()
    post_notification(client, notification_type="hearing_reminder")

    assert client.get("/api/notifications/recipient/lawyer-1/unread-count").json()["unread_count"] == 2
    assert client.patch(f"/api/notifications/{first['id']}/read").json()["is_read"] is True
    assert client.get("/api/notifications/recipient/lawyer-1", params={"unread_only": True}).json()["total"] == 1

    assert client.post("/api/notifications/recipient/lawyer-1/read-all").json() == {"updated_count": 1}
    stats = client.get("/api/notifications/stats").json()
    assert stats == {"total": 2, "unread": 0, "by_type": {"case_update": 1, "hearing_reminder": 1}}


def test_unknown_notification(client):
    assert client.patch("/api/notifications/missing/read").status_code == 404


def test_cleanup_without_expired(client):
    post_notification(client)
    assert client.post("/api/notifications/expired/cleanup").json() == {"deleted_count": 0}
