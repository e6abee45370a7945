import pytest
from sqlalchemy.exc import IntegrityError

from app.database import CallLogFilter, Database


def test_schema_exists_and_ping(database):
    database.ping()
    assert database.schema_exists() == (True, None)


def test_schema_missing_reports_error(database_url):
    bare = Database(database_url)
    exists, error = bare.schema_exists()
    assert exists is False
    assert "bots" in error


def test_upsert_bot_creates_then_updates(database):
    bot, created = database.upsert_bot(uid="ag_1", name="First", domain="medical")
    assert created is True

    again, created = database.upsert_bot(uid="ag_1", name="Second", domain="legal")
    assert created is False
    assert again.id == bot.id
    assert again.name == "Second"
    assert again.domain == "legal"


def test_duplicate_uid_raises(database):
    database.create_bot(uid="dup", name="A", domain="medical")
    with pytest.raises(IntegrityError):
        database.create_bot(uid="dup", name="B", domain="medical")


def test_delete_bot_cascades_to_call_logs(database):
    bot = database.create_bot(uid="ag_1", name="A", domain="medical")
    other = database.create_bot(uid="ag_2", name="B", domain="legal")
    database.create_call_log(bot.id, "hello", {"callId": "c1"})
    database.create_call_log(other.id, "hi", {"callId": "c2"})

    assert database.delete_bot(bot.id) is True
    assert database.find_bot(id=bot.id) is None
    assert database.count_call_logs(CallLogFilter()) == 1
    assert database.delete_bot(bot.id) is False


def test_list_bots_includes_call_log_counts(database):
    bot = database.create_bot(uid="ag_1", name="A", domain="medical")
    database.create_bot(uid="ag_2", name="B", domain="legal")
    database.create_call_log(bot.id, "one", {})
    database.create_call_log(bot.id, "two", {})

    counts = {b.uid: n for b, n in database.list_bots()}
    assert counts == {"ag_1": 2, "ag_2": 0}


def test_list_call_logs_filters_and_loads_bot(database):
    bot = database.create_bot(uid="ag_1", name="Dr. Bot", domain="medical")
    database.create_call_log(bot.id, "Patient asked about Aspirin", {})
    database.create_call_log(bot.id, "Scheduling only", {})

    logs = database.list_call_logs(CallLogFilter(search="aspirin"))
    assert len(logs) == 1
    assert logs[0].bot.name == "Dr. Bot"
    assert database.count_call_logs(CallLogFilter(bot_id=bot.id, limit=1)) == 2
    assert len(database.list_call_logs(CallLogFilter(limit=1, offset=1))) == 1


def test_find_bot_requires_a_key(database):
    with pytest.raises(ValueError):
        database.find_bot()


def test_find_first_bot_by_domain(database):
    database.create_bot(uid="l", name="Legal", domain="legal")
    medical = database.create_bot(uid="m", name="Medical", domain="medical")
    assert database.find_first_bot(domain="medical").id == medical.id
    assert database.find_first_bot(domain="receptionist") is None
