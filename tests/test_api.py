import re

from ticketing.core.config import settings
from ticketing.services import ticket_codes


def _create(client, headers, seed, **overrides):
    payload = {
        "subject": "Cannot log in",
        "description": "Password reset loop",
        "requester_phone": "+1 555 0199",
        "requester_email": "user@example.com",
        "priority_id": seed.priorities["low"],
        "category_ids": [seed.categories["software"]],
    }
    payload.update(overrides)
    return client.post("/api/tickets/", json=payload, headers=headers)


def test_requests_need_an_actor(client, seed):
    assert client.get("/api/tickets/").status_code == 401
    assert client.get("/api/tickets/", headers={"X-Actor-Id": "nobody"}).status_code == 401
    assert client.get("/api/tickets/", headers={"X-Actor-Id": seed.users["inactive"]}).status_code == 401


def test_create_and_get(client, headers, seed):
    response = _create(client, headers, seed)
    assert response.status_code == 201
    body = response.json()
    assert re.match(r"^TKT-\d{8}-0001$", body["ticket_code"])
    assert body["status"] == "New"
    assert body["priority"]["name"] == "Low"
    assert [c["name"] for c in body["categories"]] == ["Software"]

    detail = client.get(f"/api/tickets/{body['id']}", headers=headers).json()
    assert detail["ticket_code"] == body["ticket_code"]
    assert detail["events"] == []
    assert detail["comments"] == []
    assert detail["attachments"] == []


def test_create_validation_and_not_found(client, headers, seed):
    missing_field = client.post("/api/tickets/", json={"subject": "x"}, headers=headers)
    assert missing_field.status_code == 422

    blank = _create(client, headers, seed, subject="  ")
    assert blank.status_code == 422
    assert "subject" in blank.json()["detail"]

    unknown = _create(client, headers, seed, priority_id="nope")
    assert unknown.status_code == 404
    assert unknown.json() == {"detail": "Priority not found: nope", "retryable": False}


def test_update_records_events(client, headers, seed):
    ticket = _create(client, headers, seed).json()

    response = client.put(
        f"/api/tickets/{ticket['id']}",
        json={"priority_id": seed.priorities["high"], "status": "In_Progress"},
        headers=headers,
    )
    assert response.status_code == 200
    assert response.json()["status"] == "In_Progress"

    events = client.get(f"/api/tickets/{ticket['id']}", headers=headers).json()["events"]
    assert {(e["change_type"], e["old_value"], e["new_value"]) for e in events} == {
        ("priority_changed", "Low", "High"),
        ("status_changed", "New", "In_Progress"),
    }
    assert all(e["user"]["id"] == seed.users["admin"] for e in events)


def test_update_rejects_unknown_status(client, headers, seed):
    ticket = _create(client, headers, seed).json()
    response = client.put(f"/api/tickets/{ticket['id']}", json={"status": "Exploded"}, headers=headers)
    assert response.status_code == 422


def test_list_with_query_filters(client, headers, seed):
    _create(client, headers, seed, subject="Printer jammed", priority_id=seed.priorities["high"])
    _create(client, headers, seed, subject="VPN down")

    everything = client.get("/api/tickets/", headers=headers).json()
    assert everything["total"] == 2
    assert everything["skip"] == 0 and everything["take"] == settings.DEFAULT_PAGE_SIZE

    high = client.get("/api/tickets/", params={"priority": seed.priorities["high"]}, headers=headers).json()
    assert [t["subject"] for t in high["data"]] == ["Printer jammed"]

    searched = client.get("/api/tickets/", params={"search": "vpn", "status": "New"}, headers=headers).json()
    assert [t["subject"] for t in searched["data"]] == ["VPN down"]

    paged = client.get("/api/tickets/", params={"skip": 1, "take": 1}, headers=headers).json()
    assert paged["total"] == 2 and len(paged["data"]) == 1


def test_comments_respect_internal_flag(client, headers, seed):
    ticket = _create(client, headers, seed).json()
    url = f"/api/tickets/{ticket['id']}/comments"
    assert client.post(url, json={"content": "public"}, headers=headers).status_code == 201
    internal = client.post(url, json={"content": "internal", "is_internal": True}, headers=headers)
    assert internal.json()["is_internal"] is True

    customer_headers = {"X-Actor-Id": seed.users["customer"]}
    detail = client.get(f"/api/tickets/{ticket['id']}", headers=customer_headers).json()
    assert [c["content"] for c in detail["comments"]] == ["public"]


def test_bulk_endpoints(client, headers, seed):
    t1 = _create(client, headers, seed).json()
    t2 = _create(client, headers, seed).json()

    assigned = client.post(
        "/api/tickets/bulk-assign",
        json={"ticket_ids": [t1["id"], t2["id"]], "assignee_id": seed.users["agent"]},
        headers=headers,
    )
    assert assigned.json() == {"updated": 2}

    status = client.post(
        "/api/tickets/bulk-status",
        json={"ticket_ids": [t1["id"], "does-not-exist"], "status": "Closed"},
        headers=headers,
    )
    assert status.json() == {"updated": 1}

    detail = client.get(f"/api/tickets/{t1['id']}", headers=headers).json()
    assert detail["assignee_id"] == seed.users["agent"]
    assert detail["closed_at"] is not None
    assert [e["change_type"] for e in detail["events"]] == ["assignee_changed", "status_changed"]


def test_attachment_lifecycle(client, headers, seed):
    ticket = _create(client, headers, seed).json()
    created = client.post(
        f"/api/tickets/{ticket['id']}/attachments",
        json={
            "original_filename": "trace.log",
            "stored_filename": "2024/trace-1.log",
            "mime_type": "text/plain",
            "size": 512,
        },
        headers=headers,
    )
    assert created.status_code == 201
    attachment_id = created.json()["id"]

    first = client.post(f"/api/tickets/attachments/{attachment_id}/delete", headers=headers)
    assert first.json() == {"message": "Attachment deleted successfully"}
    second = client.post(f"/api/tickets/attachments/{attachment_id}/delete", headers=headers)
    assert second.status_code == 404

    detail = client.get(f"/api/tickets/{ticket['id']}", headers=headers).json()
    assert detail["attachments"] == []


def test_stats_endpoint(client, headers, seed):
    _create(client, headers, seed)
    _create(client, headers, seed, priority_id=seed.priorities["high"])

    stats = client.get("/api/tickets/stats", headers=headers).json()
    assert stats["total"] == 2
    assert stats["recent_7_days"] == 2
    assert stats["by_status"] == [{"status": "New", "count": 2}]
    assert sorted(p["priority_name"] for p in stats["by_priority"]) == ["High", "Low"]


def test_exhausted_code_generation_is_retryable(client, headers, seed, monkeypatch):
    monkeypatch.setattr(ticket_codes, "count_issued_today", lambda db, now: 0)
    monkeypatch.setattr(settings, "TICKET_CODE_MAX_RETRIES", 1)
    assert _create(client, headers, seed).status_code == 201

    response = _create(client, headers, seed)
    assert response.status_code == 503
    assert response.json()["retryable"] is True


def test_reference_lists(client, headers, seed):
    priorities = client.get("/api/reference/priorities", headers=headers).json()
    assert [p["name"] for p in priorities] == ["High", "Medium", "Low"]

    categories = client.get("/api/reference/categories", headers=headers).json()
    assert [c["name"] for c in categories] == ["Hardware", "Network", "Software"]


def test_reference_management(client, headers, seed):
    created = client.post("/api/reference/priorities", json={"name": "Urgent", "sort_order": 0}, headers=headers)
    assert created.status_code == 201
    urgent = created.json()

    duplicate = client.post("/api/reference/priorities", json={"name": "Urgent"}, headers=headers)
    assert duplicate.status_code == 409
    assert duplicate.json()["retryable"] is False

    renamed = client.put(f"/api/reference/priorities/{urgent['id']}", json={"name": "Critical"}, headers=headers)
    assert renamed.json()["name"] == "Critical"
    assert renamed.json()["sort_order"] == 0

    removed = client.delete(f"/api/reference/priorities/{urgent['id']}", headers=headers)
    assert removed.status_code == 200
    assert removed.json()["is_active"] is False
    assert client.get(f"/api/reference/priorities/{urgent['id']}", headers=headers).json()["name"] == "Critical"
    assert _create(client, headers, seed, priority_id=urgent["id"]).status_code == 422

    category = client.post("/api/reference/categories", json={"name": "Access"}, headers=headers).json()
    assert client.get(f"/api/reference/categories/{category['id']}", headers=headers).json()["is_active"] is True
    client.delete(f"/api/reference/categories/{category['id']}", headers=headers)
    names = [c["name"] for c in client.get("/api/reference/categories", headers=headers).json()]
    assert "Access" not in names

    assert client.get("/api/reference/categories/missing", headers=headers).status_code == 404
    assert client.post("/api/reference/categories", json={"name": "Access"}).status_code == 401
