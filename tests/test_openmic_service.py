import asyncio
import hashlib
import hmac
import json
import re

import httpx

from conftest import API_KEY, Recorder, make_openmic
from services.openmic_service import CREATE_BOT_PATHS, CallLogQuery, OpenMicService


def test_create_bot_without_api_key_is_local_only():
    service = make_openmic(api_key="")
    result = asyncio.run(service.create_bot("Desk", "receptionist"))
    assert result.success is False
    assert result.error == "API key not configured"
    assert re.fullmatch(r"receptionist_\d+", result.bot_id)


def test_create_bot_tries_candidate_paths_in_order():
    def handler(request):
        if request.url.path == "/v1/bots":
            return httpx.Response(201, json={"agent_id": "ag_42"})
        return httpx.Response(404)

    recorder = Recorder(handler)
    service = make_openmic(recorder)
    result = asyncio.run(service.create_bot("Dr. Bot", "medical"))

    assert result.success is True
    assert result.bot_id == "ag_42"
    assert recorder.paths == [("POST", "/v1/agents"), ("POST", "/v1/agent"), ("POST", "/v1/bots")]

    sent = json.loads(recorder.requests[0].content)
    assert sent["name"] == "Dr. Bot"
    assert sent["voice"] == "alloy"
    assert sent["language"] == "en"
    assert "You are Dr. Bot" in sent["prompt"]
    assert sent["functions"][0]["name"] == "fetch_patient_details"
    assert sent["functions"][0]["url"] == "https://dashboard.test/api/functions/fetch_patient_details"
    assert recorder.requests[0].headers["authorization"] == f"Bearer {API_KEY}"


def test_create_bot_falls_back_when_every_path_fails():
    recorder = Recorder(lambda request: httpx.Response(500, text="boom"))
    service = make_openmic(recorder)
    result = asyncio.run(service.create_bot("Counsel", "legal", prompt="custom"))

    assert result.success is False
    assert result.error == "API endpoints not available - manual creation required"
    assert re.fullmatch(r"legal_\d+", result.bot_id)
    assert len(recorder.requests) == len(CREATE_BOT_PATHS)
    assert json.loads(recorder.requests[0].content)["prompt"] == "custom"


def test_create_bot_success_without_id_field():
    service = make_openmic(lambda request: httpx.Response(200, json={"status": "ok"}))
    result = asyncio.run(service.create_bot("Dr. Bot", "medical"))
    assert result.success is True
    assert result.bot_id is None


def test_fetch_bots_accepts_wrapped_list():
    def handler(request):
        return httpx.Response(200, json={"agents": [{"id": "a1"}, {"id": "a2"}]})

    result = asyncio.run(make_openmic(handler).fetch_bots())
    assert result.success is True
    assert [b["id"] for b in result.data] == ["a1", "a2"]


def test_fetch_bots_wraps_single_object():
    result = asyncio.run(make_openmic(lambda r: httpx.Response(200, json={"id": "solo"})).fetch_bots())
    assert result.data == [{"id": "solo"}]


def test_fetch_bots_moves_past_failing_paths():
    def handler(request):
        if request.url.path == "/v1/agents":
            return httpx.Response(200, json=[{"id": "a1"}])
        return httpx.Response(404)

    recorder = Recorder(handler)
    result = asyncio.run(make_openmic(recorder).fetch_bots())
    assert result.data == [{"id": "a1"}]
    assert recorder.paths == [("GET", "/v1/bots"), ("GET", "/v1/agents")]


def test_fetch_bots_stops_on_unauthorized():
    recorder = Recorder(lambda request: httpx.Response(401))
    result = asyncio.run(make_openmic(recorder).fetch_bots())
    assert result.success is False
    assert result.error.startswith("Unauthorized")
    assert len(recorder.requests) == 1


def test_fetch_bots_exhausted_is_empty_success():
    result = asyncio.run(make_openmic().fetch_bots())
    assert result.success is True
    assert result.data == []


def test_fetch_bots_without_api_key():
    result = asyncio.run(make_openmic(api_key="").fetch_bots())
    assert result.success is False
    assert result.error == "API key not configured"


def test_update_and_delete_bot_hit_single_endpoint():
    recorder = Recorder(lambda request: httpx.Response(200, json={}))
    service = make_openmic(recorder)

    updated = asyncio.run(service.update_bot("ag_1", name="New"))
    deleted = asyncio.run(service.delete_bot("ag_1"))

    assert updated.success and deleted.success
    assert recorder.paths == [("PATCH", "/v1/bots/ag_1"), ("DELETE", "/v1/bots/ag_1")]
    assert json.loads(recorder.requests[0].content) == {"name": "New"}


def test_update_bot_reports_platform_error():
    service = make_openmic(lambda request: httpx.Response(422))
    result = asyncio.run(service.update_bot("ag_1", voice="echo"))
    assert result.success is False
    assert result.error == "OpenMic API error: 422"


def test_call_log_query_params_are_clamped_and_renamed():
    params = CallLogQuery(
        bot_id="ag_1",
        limit=500,
        offset=-5,
        status="ended",
        start_date="2025-01-01",
        end_date="2025-02-01",
        call_type="webcall",
    ).to_params()
    assert params == {
        "bot_id": "ag_1",
        "limit": "100",
        "offset": "0",
        "call_status": "ended",
        "from_date": "2025-01-01",
        "to_date": "2025-02-01",
        "call_type": "webcall",
    }


def test_fetch_call_logs_returns_calls_and_pagination():
    recorder = Recorder(
        lambda request: httpx.Response(200, json={"calls": [{"call_id": "c1"}], "pagination": {"total": 7}})
    )
    result = asyncio.run(make_openmic(recorder).fetch_call_logs(CallLogQuery(limit=10)))

    assert result.success is True
    assert result.data == [{"call_id": "c1"}]
    assert result.pagination == {"total": 7}
    assert recorder.requests[0].url.path == "/v1/calls"
    assert recorder.requests[0].url.params["limit"] == "10"


def test_fetch_call_logs_error_includes_status_and_body():
    service = make_openmic(lambda request: httpx.Response(503, text="maintenance"))
    result = asyncio.run(service.fetch_call_logs())
    assert result.success is False
    assert result.error == "OpenMic API error: 503 - maintenance"


def _sign(body: bytes, key: str = API_KEY) -> str:
    return "sha256=" + hmac.new(key.encode(), body, hashlib.sha256).hexdigest()


def test_verify_webhook_signature():
    service = OpenMicService(api_key=API_KEY)
    body = b'{"type":"end-of-call-report"}'

    assert service.verify_webhook_signature(body, _sign(body)) is True
    assert service.verify_webhook_signature(body, _sign(body, "other")) is False
    assert service.verify_webhook_signature(body, None) is False
    assert OpenMicService(api_key="").verify_webhook_signature(body, _sign(body)) is False


def test_generate_fetch_details_keeps_requested_id():
    details = OpenMicService.generate_fetch_details("999", "legal")
    assert details["id"] == "999"
    assert details["name"] == "Mary Johnson"
