import json

from flameview.persistence import (
    DashboardRecord,
    DashboardStore,
    InMemoryDocumentStore,
    JsonFileDocumentStore,
    MessageRecord,
)


def _record(**overrides) -> DashboardRecord:
    values = {
        "user_id": "user-1",
        "project_id": "proj-1",
        "title": "Sign-ups",
        "code": "def Dashboard(data):\n    return None",
        "messages": [MessageRecord(user_message="Show sign-ups", ai_response="```pyx\n...\n```")],
    }
    values.update(overrides)
    return DashboardRecord(**values)


def test_record_ids_and_wire_keys():
    record = _record()
    assert record.id.startswith("dashboard_")
    assert record.id != _record().id
    document = record.to_document()
    assert document["userId"] == "user-1"
    assert document["isDeleted"] is False
    assert document["messages"][0]["userMessage"] == "Show sign-ups"
    json.dumps(document)


def test_save_get_and_soft_delete():
    store = DashboardStore(InMemoryDocumentStore())
    record = _record()
    assert store.save(record) == record.id
    assert store.get(record.id) == record

    assert store.delete(record.id) is True
    assert store.get(record.id) is None
    assert store.delete(record.id) is False
    assert store.list_for_user("user-1") == []


def test_list_for_user_filters_and_orders():
    store = DashboardStore(InMemoryDocumentStore())
    older = _record(title="older")
    newer = _record(title="newer", updated_at=older.updated_at.replace(year=older.updated_at.year + 1))
    other_project = _record(project_id="proj-2")
    other_user = _record(user_id="user-2")
    for record in (older, newer, other_project, other_user):
        store.save(record)

    assert [record.title for record in store.list_for_user("user-1", "proj-1")] == ["newer", "older"]
    assert len(store.list_for_user("user-1")) == 3


def test_malformed_documents_are_ignored():
    documents = InMemoryDocumentStore()
    documents.put("dashboards", "bad", {"id": "bad", "title": "no code"})
    store = DashboardStore(documents)
    assert store.get("bad") is None
    assert store.list_for_user("user-1") == []


def test_save_best_effort_swallows_storage_errors(caplog):
    class Broken(InMemoryDocumentStore):
        def put(self, collection, key, document):
            raise OSError("read-only file system")

    store = DashboardStore(Broken())
    assert store.save_best_effort(_record()) is None
    assert "Failed to save dashboard" in caplog.text


def test_json_file_store_round_trips(tmp_path):
    path = tmp_path / "nested" / "dashboards.json"
    store = DashboardStore(JsonFileDocumentStore(path))
    record = _record()
    store.save(record)

    reopened = DashboardStore(JsonFileDocumentStore(path))
    assert reopened.get(record.id) == record
    assert json.loads(path.read_text(encoding="utf-8"))["dashboards"][record.id]["title"] == "Sign-ups"
    assert not path.with_suffix(".json.tmp").exists()
