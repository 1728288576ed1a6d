"""Tests for the HTTP API."""

import base64

import pytest
from fastapi.testclient import TestClient

from chat_session.api import create_fastapi_app
from chat_session.app import Application
from chat_session.config import Settings
from chat_session.errors import RequestFailed
from chat_session.uploads import SimulatedFileTransport


@pytest.fixture
def application(tmp_path):
    settings = Settings(db_path=":memory:", simulated_delay_s=(0, 0), export_dir=tmp_path / "exports")
    return Application(settings, transport=SimulatedFileTransport(step_delay_s=0))


@pytest.fixture
def client(application):
    with TestClient(create_fastapi_app(application)) as test_client:
        yield test_client


@pytest.fixture
def session_id(client):
    resp = client.post("/api/sessions", json={"user_id": "user1", "email": "user1@example.com"})
    assert resp.status_code == 201
    return resp.json()["session_id"]


class TestSessionRoutes:
    """Tests for /api/sessions."""

    def test_open_session(self, client):
        resp = client.post("/api/sessions", json={"user_id": "user1"})

        body = resp.json()
        assert resp.status_code == 201
        assert body["connectivity"] == "online"
        assert body["quota"]["plan_tier"] == "free"
        assert len(body["messages"]) == 1

    def test_unknown_session(self, client):
        assert client.get("/api/sessions/nope").status_code == 404

    def test_send_turn(self, client, session_id):
        resp = client.post(f"/api/sessions/{session_id}/messages", json={"content": "Hello"})

        assert resp.status_code == 200
        body = resp.json()
        assert body["request"]["content"] == "Hello"
        assert body["request"]["lifecycle_state"] == "delivered"
        assert body["reply"]["author"] == "assistant"

        snapshot = client.get(f"/api/sessions/{session_id}").json()
        assert snapshot["quota"]["messages_used"] == 1
        assert len(snapshot["messages"]) == 3

    def test_send_turn_with_file(self, client, session_id):
        data = base64.b64encode(b"\x89PNG fake image").decode()
        resp = client.post(
            f"/api/sessions/{session_id}/messages",
            json={"files": [{"name": "pic.png", "media_type": "image/png", "data_base64": data}]},
        )

        body = resp.json()
        assert resp.status_code == 200
        assert body["request"]["content"] == "📎 Sent attachment(s)"
        assert body["request"]["attachments"][0]["display_name"] == "pic.png"

    def test_invalid_base64(self, client, session_id):
        resp = client.post(
            f"/api/sessions/{session_id}/messages",
            json={"files": [{"name": "x.png", "media_type": "image/png", "data_base64": "***"}]},
        )
        assert resp.status_code == 400

    def test_quota_exceeded_maps_to_429(self, client):
        client.put(
            "/api/control/subscriptions/capped",
            json={"plan_tier": "free", "messages_used": 50, "message_limit": 50},
        )
        sid = client.post("/api/sessions", json={"user_id": "capped"}).json()["session_id"]

        resp = client.post(f"/api/sessions/{sid}/messages", json={"content": "Hello"})

        assert resp.status_code == 429
        assert resp.json()["detail"]["code"] == "quota_exceeded"

    def test_request_failure_then_retry(self, client, application, session_id):
        session = application.get_session(session_id)
        original = application._assistant.request

        async def failing(request):
            raise RequestFailed("HTTP 503")

        application._assistant.request = failing
        resp = client.post(f"/api/sessions/{session_id}/messages", json={"content": "Hi"})
        assert resp.status_code == 502
        failed_id = session.transcript.all()[-1].id

        application._assistant.request = original
        resp = client.post(f"/api/sessions/{session_id}/messages/{failed_id}/retry")

        assert resp.status_code == 200
        assert session.transcript.get(failed_id) is None

    def test_delete_message(self, client, session_id):
        reply_id = client.post(
            f"/api/sessions/{session_id}/messages", json={"content": "Hello"}
        ).json()["reply"]["id"]

        assert client.delete(f"/api/sessions/{session_id}/messages/{reply_id}").status_code == 204
        assert client.delete(f"/api/sessions/{session_id}/messages/{reply_id}").status_code == 404

    def test_search(self, client, session_id):
        client.post(f"/api/sessions/{session_id}/messages", json={"content": "Budget for Q3"})

        results = client.get(f"/api/sessions/{session_id}/search", params={"q": "budget"}).json()

        assert [m["content"] for m in results] == ["Budget for Q3"]

    def test_export_and_clear(self, client, session_id):
        client.post(f"/api/sessions/{session_id}/messages", json={"content": "Hello"})

        exported = client.post(f"/api/sessions/{session_id}/export").json()
        assert exported["exported"] is True
        assert exported["path"].endswith(".json")

        cleared = client.post(f"/api/sessions/{session_id}/clear").json()
        assert cleared["messages"] == []
        assert cleared["quota"]["messages_used"] == 1

    def test_refresh_quota_and_connectivity(self, client, session_id):
        client.put("/api/control/subscriptions/user1", json={"plan_tier": "pro", "message_limit": -1})

        quota = client.post(f"/api/sessions/{session_id}/quota/refresh").json()
        assert quota["plan_tier"] == "pro"
        assert quota["messages_remaining"] is None

        resp = client.post(f"/api/sessions/{session_id}/connectivity/check")
        assert resp.json() == {"connectivity": "online"}

    def test_close_session(self, client, session_id):
        assert client.delete(f"/api/sessions/{session_id}").status_code == 204
        assert client.get(f"/api/sessions/{session_id}").status_code == 404


class TestObservabilityRoutes:
    """Tests for /api/trace-events."""

    def test_trace_events_for_session(self, client, session_id):
        client.post(f"/api/sessions/{session_id}/messages", json={"content": "Hello"})

        events = client.get(
            "/api/trace-events", params={"session_id": session_id, "event_type": "turn_state_changed"}
        ).json()

        assert events
        assert all(e["actor"] == session_id for e in events)

    def test_invalid_after(self, client):
        assert client.get("/api/trace-events", params={"after": "yesterday"}).status_code == 400


class TestControlRoutes:
    """Tests for /api/control."""

    def test_reset(self, client, session_id):
        resp = client.post("/api/control/reset")

        assert resp.json() == {"status": "ok"}
        assert client.get(f"/api/sessions/{session_id}").status_code == 404
