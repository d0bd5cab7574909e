import pytest
from fastapi.testclient import TestClient

from api.runtime import get_workflow
from api_server import app

BASE = "/api/knowledge-interviews"
USER = {"X-User-Id": "user-1"}


@pytest.fixture
def client_for(make_workflow):
    def _client(**overrides):
        workflow = make_workflow(**overrides)
        app.dependency_overrides[get_workflow] = lambda: workflow
        return TestClient(app)

    yield _client
    app.dependency_overrides.clear()


def _start(client, tab_id="tab-1"):
    resp = client.post(f"{BASE}/start", json={"tab_id": tab_id}, headers=USER)
    assert resp.status_code == 200, resp.text
    return resp.json()


def test_start_answer_close_flow(client_for, pad):
    client = client_for()
    started = _start(client)
    assert started["question"].startswith("Question 1")
    assert started["progress"]["questions_answered"] == 0
    assert started["context_snapshot"]["has_global_context"] is False

    resp = client.post(
        f"{BASE}/answer",
        json={"session_id": started["session_id"], "tab_id": "tab-1", "answer": pad("I use python and docker daily. ", 120)},
        headers=USER,
    )
    assert resp.status_code == 200, resp.text
    body = resp.json()
    assert body["is_complete"] is False
    assert body["new_skills"] == ["python", "docker"]
    assert body["progress"]["questions_answered"] == 1
    assert body["next_question"].startswith("Question 2")

    status = client.get(f"{BASE}/status", params={"tab_id": "tab-1"}, headers=USER).json()
    assert status["current_session"]["session_id"] == started["session_id"]
    assert status["shared_context"]["skills"] == ["python", "docker"]

    closed = client.post(f"{BASE}/close", json={"session_id": started["session_id"], "tab_id": "tab-1"}, headers=USER)
    assert closed.status_code == 200
    assert closed.json() == {"ok": True}
    assert client.get(f"{BASE}/status", headers=USER).json()["all_sessions"] == []


def test_completion_returns_instances(client_for, pad):
    client = client_for(max_exchanges=1)
    started = _start(client)
    resp = client.post(
        f"{BASE}/answer",
        json={"session_id": started["session_id"], "tab_id": "tab-1", "answer": pad("I use python daily. ", 120)},
        headers=USER,
    )
    assert resp.status_code == 200, resp.text
    body = resp.json()
    assert body["is_complete"] is True
    assert body["instances_generated"] == 10
    assert body["session_summary"]["questions_answered"] == 1
    assert body["instances"][0]["tags"] == ["python", "docker", "operations"]


def test_missing_user_is_unauthorized(client_for):
    client = client_for()
    resp = client.post(f"{BASE}/start", json={"tab_id": "tab-1"})
    assert resp.status_code == 401
    assert resp.json()["detail"]["kind"] == "unauthorized"


def test_short_answer_is_rejected(client_for):
    client = client_for()
    started = _start(client)
    resp = client.post(
        f"{BASE}/answer",
        json={"session_id": started["session_id"], "tab_id": "tab-1", "answer": "   too short   "},
        headers=USER,
    )
    assert resp.status_code == 422


def test_fourth_tab_conflicts(client_for):
    client = client_for()
    for tab in ("tab-1", "tab-2", "tab-3"):
        _start(client, tab)
    resp = client.post(f"{BASE}/start", json={"tab_id": "tab-4"}, headers=USER)
    assert resp.status_code == 409
    assert resp.json()["detail"]["kind"] == "admission_rejected"


def test_quota_refusal_maps_to_429(client_for, quota, pad):
    quota.remaining = 5
    client = client_for(max_exchanges=1)
    started = _start(client)
    resp = client.post(
        f"{BASE}/answer",
        json={"session_id": started["session_id"], "tab_id": "tab-1", "answer": pad("A plain answer. ", 60)},
        headers=USER,
    )
    assert resp.status_code == 429
    assert resp.json()["detail"]["kind"] == "quota_exceeded"


def test_unknown_session_is_not_found(client_for):
    client = client_for()
    _start(client)
    resp = client.post(
        f"{BASE}/answer",
        json={"session_id": "nope", "tab_id": "tab-1", "answer": "A detailed enough answer."},
        headers=USER,
    )
    assert resp.status_code == 404
    resp = client.post(f"{BASE}/close", json={"session_id": "nope", "tab_id": "tab-9"}, headers=USER)
    assert resp.status_code == 404


def test_blank_tab_is_unprocessable(client_for):
    client = client_for()
    resp = client.post(f"{BASE}/start", json={"tab_id": "   "}, headers=USER)
    assert resp.status_code == 422
    assert resp.json()["detail"]["kind"] == "invalid_input"


def test_provider_failure_maps_to_502(client_for, generator, pad):
    client = client_for()
    started = _start(client)
    generator.fail_on.add("interview")
    resp = client.post(
        f"{BASE}/answer",
        json={"session_id": started["session_id"], "tab_id": "tab-1", "answer": pad("A plain answer. ", 60)},
        headers=USER,
    )
    assert resp.status_code == 502
    assert resp.json()["detail"]["kind"] == "generation_failure"


def test_health():
    assert TestClient(app).get("/health").json() == {"status": "ok"}
