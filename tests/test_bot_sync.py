from services.bot_sync import classify_domain, extract_name, extract_uid, sync_remote_bots


def test_extract_uid_priority():
    assert extract_uid({"agent_id": "ag", "uid": "u"}) == "u"
    assert extract_uid({"_id": "mongo"}) == "mongo"
    assert extract_uid({"id": "", "botId": "b"}) == "b"
    assert extract_uid({"name": "nameless"}) is None


def test_extract_name_falls_back_to_uid():
    assert extract_name({"title": "Front Desk"}, "x") == "Front Desk"
    assert extract_name({}, "ag_9") == "OpenMic Bot ag_9"


def test_classify_domain():
    assert classify_domain("Attorney Helper") == "legal"
    assert classify_domain("Front Desk") == "receptionist"
    assert classify_domain("Clinic Line") == "medical"
    assert classify_domain("Anything") == "medical"
    assert classify_domain("Helper", "You assist a law firm") == "legal"


def test_legal_keywords_win_over_medical():
    assert classify_domain("Medical malpractice lawyer") == "legal"


def test_sync_creates_updates_and_skips(database):
    database.create_bot(uid="ag_1", name="Old name", domain="medical")

    report = sync_remote_bots(database, [
        {"id": "ag_1", "name": "Reception Bot"},
        {"agentId": "ag_2", "displayName": "Legal Intake"},
        {"name": "no id here"},
        "not a dict",
    ])

    assert report.total_fetched == 4
    assert report.created == 1
    assert report.updated == 1
    assert report.skipped == 2
    assert report.errors == []

    updated = database.find_bot(uid="ag_1")
    assert updated.name == "Reception Bot"
    assert updated.domain == "receptionist"
    assert database.find_bot(uid="ag_2").domain == "legal"

    data = report.to_dict()
    assert data["errors"] is None
    assert data["message"] == "Successfully synced bots from OpenMic: 1 created, 1 updated"


def test_sync_records_errors_and_continues(database, monkeypatch):
    original = database.upsert_bot

    def flaky(uid, name, domain):
        if uid == "bad":
            raise RuntimeError("constraint failed")
        return original(uid=uid, name=name, domain=domain)

    monkeypatch.setattr(database, "upsert_bot", flaky)
    report = sync_remote_bots(database, [{"id": "bad"}, {"id": "good"}])

    assert report.created == 1
    assert report.errors == ["Error processing bot bad: constraint failed"]
