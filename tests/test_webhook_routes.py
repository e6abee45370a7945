import hashlib
import hmac
import json

from conftest import API_KEY


def _create(client, uid, domain="medical", name=None):
    r = client.post("/api/bots", json={"name": name or uid, "domain": domain, "uid": uid})
    return r.json()["data"]


def _local_logs(client):
    return client.get("/api/call-logs", params={"source": "local"}).json()["data"]


def test_pre_call_returns_domain_data(offline_client):
    _create(offline_client, "ag_legal", domain="legal")
    r = offline_client.post("/api/pre-call", json={"event": "call", "call": {"bot_id": "ag_legal"}})
    assert r.status_code == 200
    body = r.json()
    assert body["success"] is True
    assert body["data"]["clientId"] == "456"
    assert body["data"]["name"] == "Mary Johnson"


def test_pre_call_metadata_overrides_defaults(offline_client):
    _create(offline_client, "ag_med")
    r = offline_client.post(
        "/api/pre-call", json={"botUid": "ag_med", "metadata": {"patientId": "900", "name": "Ana"}}
    )
    data = r.json()["data"]
    assert data["patientId"] == "900"
    assert data["name"] == "Ana"
    assert data["summary"] == "Regular checkup"


def test_pre_call_unknown_bot_defaults_to_medical(offline_client):
    _create(offline_client, "ag_desk", domain="receptionist")
    r = offline_client.post("/api/pre-call", json={})
    assert r.json()["data"]["patientId"] == "123"

    r = offline_client.post("/api/pre-call", json={"botUid": "missing"})
    assert r.json()["data"]["patientId"] == "123"


def test_pre_call_malformed_body_is_acknowledged(offline_client):
    r = offline_client.post("/api/pre-call", content=b"{not json", headers={"content-type": "application/json"})
    assert r.status_code == 200
    body = r.json()
    assert body["success"] is True
    assert body["error"]
    assert body["data"]["message"] == "Pre-call webhook processed with error"


def test_post_call_stores_log_for_matching_bot(offline_client):
    bot = _create(offline_client, "ag_1")
    r = offline_client.post("/api/post-call", json={
        "type": "end-of-call-report",
        "sessionId": "sess_9",
        "botUid": "ag_1",
        "transcript": [["agent", "Hello"], ["user", "Hi"]],
        "summary": "Greeting",
        "metadata": {"duration": 42},
    })
    assert r.status_code == 200
    body = r.json()
    assert body["success"] is True
    assert body["data"]["logId"]

    logs = _local_logs(offline_client)
    assert len(logs) == 1
    log = logs[0]
    assert log["id"] == body["data"]["logId"]
    assert log["botId"] == bot["id"]
    assert log["transcript"] == "agent: Hello\nuser: Hi"
    assert log["metadata"]["callId"] == "sess_9"
    assert log["metadata"]["webhookProcessed"] is True
    assert log["metadata"]["summary"] == "Greeting"
    assert log["metadata"]["duration"] == 42
    assert log["metadata"]["processedAt"]


def test_post_call_unknown_uid_uses_most_recently_updated_bot(offline_client):
    older = _create(offline_client, "ag_old", domain="legal")
    _create(offline_client, "ag_new", domain="medical")
    offline_client.patch(f"/api/bots/{older['id']}", json={"name": "Touched"})

    offline_client.post("/api/post-call", json={"transcript": "no uid"})
    assert _local_logs(offline_client)[0]["botId"] == older["id"]


def test_post_call_missing_uid_falls_back_to_medical(offline_client):
    _create(offline_client, "ag_legal", domain="legal")
    medical = _create(offline_client, "ag_med", domain="medical")

    offline_client.post("/api/post-call", json={"botUid": "ghost", "transcript": "x"})
    assert _local_logs(offline_client)[0]["botId"] == medical["id"]


def test_post_call_missing_uid_without_medical_uses_any_bot(offline_client):
    legal = _create(offline_client, "ag_legal", domain="legal")
    offline_client.post("/api/post-call", json={"botUid": "ghost", "transcript": "x"})
    assert _local_logs(offline_client)[0]["botId"] == legal["id"]


def test_post_call_without_bots_is_acknowledged(offline_client):
    r = offline_client.post("/api/post-call", json={"botUid": "ag_1", "transcript": "x"})
    assert r.status_code == 200
    assert r.json() == {"success": True, "data": {"message": "Post-call webhook processed - no bot found"}}


def test_post_call_malformed_body_is_acknowledged(offline_client):
    r = offline_client.post("/api/post-call", content=b"[", headers={"content-type": "application/json"})
    assert r.status_code == 200
    body = r.json()
    assert body["success"] is True
    assert body["error"] == body["data"]["error"]


def _signed(body: dict):
    raw = json.dumps(body).encode()
    signature = "sha256=" + hmac.new(API_KEY.encode(), raw, hashlib.sha256).hexdigest()
    return raw, signature


def test_signature_checked_when_enabled(make_client):
    client = make_client(verify_webhooks=True)
    _create(client, "ag_1")
    payload = {"botUid": "ag_1", "transcript": "signed"}
    raw, signature = _signed(payload)

    r = client.post("/api/post-call", content=raw, headers={"content-type": "application/json"})
    assert r.json()["error"] == "Invalid webhook signature"
    assert _local_logs(client) == []

    r = client.post(
        "/api/post-call",
        content=raw,
        headers={"content-type": "application/json", "x-openmic-signature": signature},
    )
    assert r.json()["data"]["logId"]
    assert len(_local_logs(client)) == 1


def test_signature_ignored_when_disabled(offline_client):
    r = offline_client.post("/api/pre-call", json={}, headers={"x-openmic-signature": "sha256=bogus"})
    assert "error" not in r.json()
