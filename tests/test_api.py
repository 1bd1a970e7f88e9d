"""Tests for the REST API."""

from datetime import datetime, timezone

from fastapi.testclient import TestClient

from feedguard.errors import StoreError, TransientStoreError
from feedguard.moderation.service import ModerationService
from feedguard.moderation.store import MemoryStore
from web.backend.app.main import app
from web.backend.app.routers.moderation import get_service

THREAT = "I will kill you if you keep posting"
SPAM = "Buy now, earn money with crypto"
PERSONAL = "Call me at 555-123-4567 or mail jane@example.com"

REVIEWER = {"X-Reviewer-Id": "rev-1"}


class _BrokenStore(MemoryStore):
    def commit(self, state):
        raise TransientStoreError("database is locked")


def _client(store=None):
    service = ModerationService(
        store=store or MemoryStore(),
        clock=lambda: datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc),
    )
    app.dependency_overrides[get_service] = lambda: service
    return TestClient(app), service


def _queue(client, text=SPAM, content_id=None):
    body = {"text": text, "content_type": "post", "author_id": "user-1"}
    if content_id:
        body["content_id"] = content_id
    resp = client.post("/api/moderation/moderate", json=body)
    assert resp.status_code == 200, resp.text
    return resp.json()


def test_root_and_health():
    client, _ = _client()
    assert client.get("/health").json() == {"status": "healthy"}
    assert client.get("/").json()["name"] == "feedguard API"


def test_analyze_is_a_dry_run():
    client, service = _client()
    resp = client.post("/api/moderation/analyze", json={"text": THREAT})
    assert resp.status_code == 200
    data = resp.json()
    assert data["suggested_action"] == "block"
    assert data["scores"]["threat"] > 0.3
    assert service.get_stats().total == 0


def test_analyze_with_option_overrides():
    client, service = _client()
    resp = client.post(
        "/api/moderation/analyze",
        json={"text": THREAT, "options": {"enable_threat_detection": False}},
    )
    assert resp.json()["scores"]["threat"] == 0.0
    # Overrides do not persist.
    assert service.get_settings().enable_threat_detection is True


def test_analyze_rejects_out_of_range_threshold():
    client, _ = _client()
    resp = client.post("/api/moderation/analyze", json={"text": "hi", "options": {"flag_threshold": 2}})
    assert resp.status_code == 422


def test_moderate_blocks_threat():
    client, service = _client()
    data = _queue(client, THREAT, "c1")
    assert data["allowed"] is False
    assert data["queue_id"] is None
    assert data["content_id"] == "c1"

    history = client.get("/api/moderation/history/c1").json()
    assert len(history) == 1
    assert history[0]["action"] == "blocked"
    assert history[0]["automated"] is True


def test_moderate_validates_content_type():
    client, _ = _client()
    resp = client.post(
        "/api/moderation/moderate",
        json={"text": "hi", "content_type": "story", "author_id": "user-1"},
    )
    assert resp.status_code == 422


def test_bulk_keeps_order():
    client, _ = _client()
    resp = client.post(
        "/api/moderation/bulk",
        json={
            "submissions": [
                {"text": "hello", "content_type": "post", "author_id": "a", "content_id": "b0"},
                {"text": THREAT, "content_type": "reply", "author_id": "b", "content_id": "b1"},
                {"text": PERSONAL, "content_type": "profile", "author_id": "c", "content_id": "b2"},
            ]
        },
    )
    assert resp.status_code == 200
    assert [d["content_id"] for d in resp.json()] == ["b0", "b1", "b2"]
    assert [d["allowed"] for d in resp.json()] == [True, False, False]


def test_queue_listing_and_lookup():
    client, _ = _client()
    spam = _queue(client, SPAM)
    personal = _queue(client, PERSONAL)

    items = client.get("/api/moderation/queue").json()
    assert [i["id"] for i in items] == [personal["queue_id"], spam["queue_id"]]

    escalated = client.get("/api/moderation/queue", params={"status": "escalated"}).json()
    assert [i["id"] for i in escalated] == [personal["queue_id"]]

    item = client.get(f"/api/moderation/queue/{spam['queue_id']}").json()
    assert item["status"] == "pending"
    assert item["severity"] == "medium"

    assert client.get("/api/moderation/queue/missing").status_code == 404


def test_decision_requires_reviewer_header():
    client, _ = _client()
    queue_id = _queue(client)["queue_id"]
    resp = client.post(f"/api/moderation/queue/{queue_id}/decision", json={"decision": "approve"})
    assert resp.status_code == 401


def test_reject_requires_reason():
    client, service = _client()
    queue_id = _queue(client)["queue_id"]
    resp = client.post(
        f"/api/moderation/queue/{queue_id}/decision",
        json={"decision": "reject"},
        headers=REVIEWER,
    )
    assert resp.status_code == 422
    assert service.get_item(queue_id).status.value == "pending"


def test_decision_flow():
    client, _ = _client()
    decision = _queue(client, SPAM, "c2")
    url = f"/api/moderation/queue/{decision['queue_id']}/decision"

    resp = client.post(url, json={"decision": "reject", "reason": "Crypto scam"}, headers=REVIEWER)
    assert resp.status_code == 200
    assert resp.json()["status"] == "reviewed"

    resp = client.post(url, json={"decision": "approve"}, headers=REVIEWER)
    assert resp.status_code == 409

    history = client.get("/api/moderation/history/c2").json()
    assert len(history) == 1
    assert history[0]["action"] == "blocked"
    assert history[0]["reviewer_id"] == "rev-1"
    assert history[0]["reason"] == "Crypto scam"


def test_decision_on_unknown_item():
    client, _ = _client()
    resp = client.post(
        "/api/moderation/queue/missing/decision", json={"decision": "approve"}, headers=REVIEWER
    )
    assert resp.status_code == 404


def test_cleanup_and_stats():
    client, _ = _client()
    _queue(client, THREAT)
    queue_id = _queue(client, SPAM)["queue_id"]
    client.post(f"/api/moderation/queue/{queue_id}/decision", json={"decision": "approve"}, headers=REVIEWER)

    stats = client.get("/api/moderation/stats").json()
    assert stats["total"] == 2
    assert stats["automated"] == 1
    assert stats["automation_rate"] == 50.0
    assert stats["queue"]["total_in_queue"] == 0

    resp = client.post("/api/moderation/cleanup", json={"max_age_days": 0})
    assert resp.json() == {"removed": 1}

    assert client.post("/api/moderation/cleanup", json={"max_age_days": -1}).status_code == 422


def test_export_csv():
    client, _ = _client()
    _queue(client, THREAT, "c3")
    resp = client.get("/api/moderation/export", params={"format": "csv"})
    assert resp.status_code == 200
    assert resp.headers["content-type"].startswith("text/csv")
    assert "c3" in resp.text


def test_settings_round_trip():
    client, _ = _client()
    assert client.get("/api/moderation/settings").json()["flag_threshold"] == 0.6

    resp = client.put("/api/moderation/settings", json={"flag_threshold": 0.8})
    assert resp.status_code == 200
    data = client.get("/api/moderation/settings").json()
    assert data["flag_threshold"] == 0.8
    assert data["enable_spam_detection"] is True

    assert client.put("/api/moderation/settings", json={"flag_threshold": 1.5}).status_code == 422


def test_store_outage_returns_503():
    client, _ = _client(store=_BrokenStore())
    resp = client.post(
        "/api/moderation/moderate",
        json={"text": THREAT, "content_type": "post", "author_id": "user-1"},
    )
    assert resp.status_code == 503


class _CorruptStore(MemoryStore):
    def load(self):
        raise StoreError("corrupt moderation state")


def test_corrupt_store_returns_500():
    client, _ = _client(store=_CorruptStore())
    resp = client.get("/api/moderation/queue")
    assert resp.status_code == 500
    assert resp.json() == {"detail": "Moderation store error"}


def test_day_windows_are_bounded():
    client, _ = _client()
    assert client.post("/api/moderation/cleanup", json={"max_age_days": 1_000_000}).status_code == 422
    assert client.get("/api/moderation/stats", params={"days": 1_000_000}).status_code == 422

    assert client.post("/api/moderation/cleanup", json={"max_age_days": 36500}).json() == {"removed": 0}
    assert client.get("/api/moderation/stats", params={"days": 36500}).status_code == 200


def test_settings_accept_camel_case_keys():
    client, service = _client()
    resp = client.put(
        "/api/moderation/settings",
        json={"flagThreshold": 0.9, "enableSpamDetection": False},
    )
    assert resp.status_code == 200
    assert resp.json()["flag_threshold"] == 0.9
    assert resp.json()["enable_spam_detection"] is False
    assert service.get_settings().flag_threshold == 0.9

    assert client.put("/api/moderation/settings", json={"flagThreshold": 1.5}).status_code == 422


def test_analyze_options_accept_camel_case_keys():
    client, _ = _client()
    resp = client.post(
        "/api/moderation/analyze",
        json={"text": THREAT, "options": {"enableThreatDetection": False}},
    )
    assert resp.json()["scores"]["threat"] == 0.0


class _VanishingItemService(ModerationService):
    """Reports every item as gone, as if a cleanup ran right after a decision."""

    def get_item(self, queue_id):
        return None


def test_decision_response_comes_from_the_decision_itself():
    service = _VanishingItemService(store=MemoryStore())
    app.dependency_overrides[get_service] = lambda: service
    client = TestClient(app)
    queue_id = _queue(client)["queue_id"]

    resp = client.post(
        f"/api/moderation/queue/{queue_id}/decision", json={"decision": "approve"}, headers=REVIEWER
    )
    assert resp.status_code == 200
    assert resp.json()["id"] == queue_id
    assert resp.json()["status"] == "reviewed"
