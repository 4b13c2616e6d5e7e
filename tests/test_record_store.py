import sys
from pathlib import Path
from types import SimpleNamespace

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from app.local_cache import LocalCache, storage_key
from app.store import RecordStore, generate_local_id, remove_none_fields
from config.supabase_schema import table_name


class FakeQuery:
    def __init__(self, supabase, table_name):
        self.supabase = supabase
        self.table_name = table_name
        self._operation = None
        self._payload = None
        self._filters = []
        self._limit = None
        self._range = None

    def select(self, columns="*"):
        self._operation = "select"
        return self

    def insert(self, row):
        self._operation = "insert"
        self._payload = row
        return self

    def update(self, changes):
        self._operation = "update"
        self._payload = changes
        return self

    def delete(self):
        self._operation = "delete"
        return self

    def eq(self, column, value):
        self._filters.append((column, value))
        return self

    def limit(self, value):
        self._limit = value
        return self

    def range(self, start, end):
        self._range = (start, end)
        return self

    def _matches(self, row):
        return all(row.get(column) == value for column, value in self._filters)

    def execute(self):
        self.supabase.calls.append((self.table_name, self._operation))
        table = self.supabase.tables.setdefault(self.table_name, [])
        if self._operation == "select":
            data = [row for row in table if self._matches(row)]
            if self._range is not None:
                start, end = self._range
                data = data[start : end + 1]
            if self._limit is not None:
                data = data[: self._limit]
            return SimpleNamespace(data=data)
        if self._operation == "insert":
            row = dict(self._payload)
            row.setdefault("id", f"fake-{len(table) + 1}")
            table.append(row)
            return SimpleNamespace(data=[row])
        if self._operation == "update":
            updated = []
            for row in table:
                if self._matches(row):
                    row.update(self._payload)
                    updated.append(row)
            return SimpleNamespace(data=updated)
        if self._operation == "delete":
            kept = [row for row in table if not self._matches(row)]
            deleted = [row for row in table if self._matches(row)]
            self.supabase.tables[self.table_name] = kept
            return SimpleNamespace(data=deleted)
        return SimpleNamespace(data=None)


class FakeSupabase:
    def __init__(self):
        self.tables = {}
        self.calls = []

    def table(self, name):
        return FakeQuery(self, name)


class FailingSupabase:
    def table(self, name):
        raise RuntimeError("network unreachable")


@pytest.fixture
def cache(tmp_path):
    return LocalCache(tmp_path / "cache.db")


def test_remove_none_fields_keeps_falsy_values():
    assert remove_none_fields({"a": None, "b": 0, "c": "", "d": False}) == {
        "b": 0,
        "c": "",
        "d": False,
    }


def test_generate_local_id_shape():
    first = generate_local_id()
    second = generate_local_id()
    assert first.startswith("local_")
    prefix, millis, suffix = first.split("_")
    assert millis.isdigit()
    assert len(suffix) == 9
    assert first != second


def test_create_remote_returns_remote_id_and_mirrors(cache):
    supabase = FakeSupabase()
    store = RecordStore("defect_records", supabase, cache)

    created_id = store.create({"operator_name": "Alice", "comment": None})

    assert created_id == "fake-1"
    remote_rows = supabase.tables[table_name("defect_records")]
    assert remote_rows[0]["operator_name"] == "Alice"
    assert "comment" not in remote_rows[0]
    assert isinstance(remote_rows[0]["created_at"], str)

    mirrored = cache.get_items(storage_key("defect_records"))
    assert [item["id"] for item in mirrored] == ["fake-1"]
    assert mirrored[0]["created_at"] is not None


def test_get_all_prefers_remote_over_cache(cache):
    supabase = FakeSupabase()
    supabase.tables[table_name("defect_records")] = [{"id": "r1", "operator_name": "Bob"}]
    cache.set_items(storage_key("defect_records"), [{"id": "stale", "operator_name": "Old"}])
    store = RecordStore("defect_records", supabase, cache)

    assert [row["id"] for row in store.get_all()] == ["r1"]


def test_get_all_pages_through_remote_rows(cache):
    supabase = FakeSupabase()
    supabase.tables[table_name("defect_records")] = [
        {"id": f"r{i}", "operator_name": "Bob"} for i in range(5)
    ]
    store = RecordStore("defect_records", supabase, cache, page_size=2)

    rows = store.get_all()

    assert [row["id"] for row in rows] == ["r0", "r1", "r2", "r3", "r4"]
    assert supabase.calls.count((table_name("defect_records"), "select")) == 3


def test_remote_failure_falls_back_to_local(cache):
    store = RecordStore("defect_records", FailingSupabase(), cache)

    created_id = store.create({"operator_name": "Alice"})

    assert created_id.startswith("local_")
    assert store.get_by_id(created_id)["operator_name"] == "Alice"


def test_missing_client_behaves_like_remote_failure(cache):
    store = RecordStore("defect_records", None, cache)

    created_id = store.create({"operator_name": "Alice"})

    assert created_id.startswith("local_")
    assert [row["id"] for row in store.get_all()] == [created_id]


def test_fallback_sequence_matches_local_only_execution(cache):
    store = RecordStore("defect_records", FailingSupabase(), cache)

    first = store.create({"operator_name": "Alice", "occurrence_count": 1})
    second = store.create({"operator_name": "Bob", "occurrence_count": 2})
    third = store.create({"operator_name": "Carol", "occurrence_count": 3})
    store.update(first, {"occurrence_count": 4})
    store.delete(second)
    store.update("local_missing", {"occurrence_count": 9})

    rows = {row["id"]: row for row in store.get_all()}

    assert set(rows) == {first, third}
    assert rows[first]["occurrence_count"] == 4
    assert rows[first]["operator_name"] == "Alice"
    assert rows[third]["occurrence_count"] == 3


def test_remote_update_and_delete_are_mirrored(cache):
    supabase = FakeSupabase()
    store = RecordStore("defect_records", supabase, cache)
    created_id = store.create({"operator_name": "Alice", "occurrence_count": 1})

    store.update(created_id, {"occurrence_count": 3})
    mirrored = cache.get_items(storage_key("defect_records"))
    assert mirrored[0]["occurrence_count"] == 3
    assert supabase.tables[table_name("defect_records")][0]["occurrence_count"] == 3

    store.delete(created_id)
    assert cache.get_items(storage_key("defect_records")) == []
    assert supabase.tables[table_name("defect_records")] == []


def test_remote_update_inserts_missing_record_into_cache(cache):
    supabase = FakeSupabase()
    supabase.tables[table_name("defect_records")] = [{"id": "r1", "operator_name": "Bob"}]
    store = RecordStore("defect_records", supabase, cache)

    store.update("r1", {"comment": "checked"})

    mirrored = cache.get_items(storage_key("defect_records"))
    assert mirrored[0]["id"] == "r1"
    assert mirrored[0]["comment"] == "checked"


def test_empty_insert_response_falls_back(cache):
    class EmptyInsertSupabase(FakeSupabase):
        def table(self, name):
            query = super().table(name)
            query.execute = lambda: SimpleNamespace(data=[])
            return query

    store = RecordStore("defect_records", EmptyInsertSupabase(), cache)

    assert store.create({"operator_name": "Alice"}).startswith("local_")


def test_mirror_failure_is_ignored(tmp_path):
    class BrokenCache(LocalCache):
        def set_items(self, key, items):
            raise OSError("disk full")

    store = RecordStore("defect_records", FakeSupabase(), BrokenCache(tmp_path / "c.db"))

    assert store.create({"operator_name": "Alice"}) == "fake-1"


def test_on_create_hook_receives_record_and_failures_are_swallowed(cache):
    received = []

    def hook(data, record_id):
        received.append((data, record_id))
        raise RuntimeError("notification store down")

    store = RecordStore("defect_records", None, cache, on_create=hook)
    created_id = store.create({"operator_name": "Alice", "comment": None})

    assert received == [({"operator_name": "Alice"}, created_id)]


def test_get_by_id_returns_none_when_missing(cache):
    store = RecordStore("defect_records", FakeSupabase(), cache)
    assert store.get_by_id("nope") is None
