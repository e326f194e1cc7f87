import pytest
import requests

from fluentify.ai import openai_client
from fluentify.core import config
from fluentify.core.errors import AIGenerationFailed
from fluentify.retell import routes as retell_routes
from fluentify.system import routes as system_routes


class FakeResponse:
    def __init__(self, status_code, payload):
        self.status_code = status_code
        self._payload = payload
        self.text = str(payload)

    def json(self):
        return self._payload


def test_root_and_health(client):
    assert client.get("/").json() == {"status": "Backend is running"}

    health = client.get("/health")
    assert health.status_code == 200
    assert health.json()["database"] == "connected"

    check = client.get("/db-check")
    assert check.status_code == 200
    assert check.json()["status"] == "Connected to sqlite"


def test_unknown_route_is_plain_404(client):
    assert client.get("/api/nope").status_code == 404


def test_debug_routes_are_not_mounted_by_default(client):
    assert client.get("/debug/diagnostics/db").status_code == 404


def test_db_diagnostics_reports_in_memory_sqlite():
    info = system_routes.db_diagnostics()
    assert info["backend"] == "sqlite"
    assert info["sqlitePath"] == ":memory:"
    assert info["sqliteExists"] is False


def test_ai_diagnostics_records_last_failure():
    with pytest.raises(AIGenerationFailed):
        openai_client.complete_text([{"role": "user", "content": "hola"}])

    info = system_routes.ai_diagnostics()
    assert info["configured"] is False
    assert info["key"] == "(missing)"
    assert "OPENAI_API_KEY" in info["lastFailure"]


# ---------------------------------------------------------------------------
# Retell voice practice
# ---------------------------------------------------------------------------

def _create_call(client, headers, agent_id="agent_123"):
    return client.post("/api/retell/create-call", json={"agentId": agent_id}, headers=headers)


def test_create_call_requires_agent_and_key(client, learner_headers, monkeypatch):
    monkeypatch.setattr(config, "RETELL_API_KEY", "")

    missing_agent = _create_call(client, learner_headers, agent_id="")
    assert missing_agent.status_code == 400
    assert missing_agent.json()["error"]["code"] == 80002

    not_configured = _create_call(client, learner_headers)
    assert not_configured.status_code == 502
    assert not_configured.json()["error"]["code"] == 80001


def test_create_call_returns_access_token(client, learner, learner_headers, monkeypatch):
    monkeypatch.setattr(config, "RETELL_API_KEY", "key_test")
    sent = {}

    def fake_post(url, json=None, headers=None, timeout=None):
        sent.update(url=url, json=json, headers=headers)
        return FakeResponse(201, {"access_token": "tok", "call_id": "call_1", "agent_id": "agent_123"})

    monkeypatch.setattr(retell_routes.requests, "post", fake_post)

    r = _create_call(client, learner_headers)
    assert r.status_code == 201, r.text
    assert r.json()["data"] == {"accessToken": "tok", "callId": "call_1", "agentId": "agent_123"}
    assert sent["url"] == config.RETELL_CREATE_CALL_URL
    assert sent["json"]["agent_id"] == "agent_123"
    assert sent["json"]["metadata"]["user_id"] == learner.id
    assert sent["headers"]["Authorization"] == "Bearer key_test"


def test_create_call_maps_upstream_errors(client, learner_headers, monkeypatch):
    monkeypatch.setattr(config, "RETELL_API_KEY", "key_test")
    cases = [
        (FakeResponse(401, {"message": "bad key"}), 502, 80007),
        (FakeResponse(429, {"message": "slow down"}), 502, 80006),
        (FakeResponse(400, {"message": "agent not found"}), 400, 80005),
        (FakeResponse(500, {"message": "boom"}), 502, 80004),
    ]
    for response, status, code in cases:
        monkeypatch.setattr(retell_routes.requests, "post", lambda *a, _r=response, **kw: _r)
        r = _create_call(client, learner_headers)
        assert r.status_code == status, response.status_code
        assert r.json()["error"]["code"] == code


def test_create_call_network_failure(client, learner_headers, monkeypatch):
    monkeypatch.setattr(config, "RETELL_API_KEY", "key_test")

    def broken(*args, **kwargs):
        raise requests.ConnectionError("refused")

    monkeypatch.setattr(retell_routes.requests, "post", broken)

    r = _create_call(client, learner_headers)
    assert r.status_code == 502
    assert r.json()["error"]["code"] == 80004
