import pytest

from class_register.core.exceptions import NotFoundError, PersistenceError
from class_register.storage.adapter import ATTENDANCE_ENTRIES, STUDENTS
from class_register.storage.local_adapter import LocalAdapter


def test_records_are_copied_in_and_out():
    adapter = LocalAdapter()
    record = {"id": "s1", "name": "Alice", "tags": ["a"]}
    adapter.insert(STUDENTS, record)
    record["tags"].append("b")

    loaded = adapter.get(STUDENTS, "s1")
    loaded["name"] = "Changed"

    assert adapter.get(STUDENTS, "s1") == {"id": "s1", "name": "Alice", "tags": ["a"]}


def test_query_by_fields_and_predicate():
    adapter = LocalAdapter()
    adapter.insert(ATTENDANCE_ENTRIES, {"id": "1", "studentId": "a", "date": "2025-03-03", "period": None})
    adapter.insert(ATTENDANCE_ENTRIES, {"id": "2", "studentId": "a", "date": "2025-03-04", "period": 1})
    adapter.insert(ATTENDANCE_ENTRIES, {"id": "3", "studentId": "b", "date": "2025-03-04", "period": 1})

    assert [r["id"] for r in adapter.query(ATTENDANCE_ENTRIES, where={"period": None})] == ["1"]
    rows = adapter.query(ATTENDANCE_ENTRIES, where={"studentId": "a"}, predicate=lambda r: r["date"] > "2025-03-03")
    assert [r["id"] for r in rows] == ["2"]


def test_insert_and_update_contract():
    adapter = LocalAdapter()
    adapter.insert(STUDENTS, {"id": "s1", "name": "Alice"})

    with pytest.raises(PersistenceError):
        adapter.insert(STUDENTS, {"id": "s1", "name": "Again"})
    with pytest.raises(PersistenceError):
        adapter.insert(STUDENTS, {"name": "No id"})
    with pytest.raises(NotFoundError):
        adapter.update(STUDENTS, "missing", {"name": "x"})

    assert adapter.update(STUDENTS, "s1", {"name": "Alicia", "id": "ignored"}) == {"id": "s1", "name": "Alicia"}
    assert adapter.delete(STUDENTS, "s1") is True
    assert adapter.delete(STUDENTS, "s1") is False


def test_unknown_collection_is_rejected():
    with pytest.raises(ValueError):
        LocalAdapter().query("teachers")


def test_transaction_rolls_back_on_error():
    adapter = LocalAdapter()
    adapter.insert(STUDENTS, {"id": "s1", "name": "Alice"})

    with pytest.raises(RuntimeError):
        with adapter.transaction(STUDENTS):
            adapter.delete(STUDENTS, "s1")
            adapter.insert(STUDENTS, {"id": "s2", "name": "Bob"})
            with adapter.transaction(STUDENTS):
                adapter.insert(STUDENTS, {"id": "s3", "name": "Carol"})
            raise RuntimeError("interrupted")

    assert [r["id"] for r in adapter.query(STUDENTS)] == ["s1"]


def test_transaction_commits_on_success():
    adapter = LocalAdapter()
    with adapter.transaction(STUDENTS):
        adapter.insert(STUDENTS, {"id": "s1", "name": "Alice"})
    assert adapter.get(STUDENTS, "s1") is not None


def test_flush_and_reload(tmp_path):
    path = tmp_path / "data" / "register.json"
    adapter = LocalAdapter(path)
    adapter.insert(STUDENTS, {"id": "s1", "name": "김민수"})
    adapter.flush()

    reloaded = LocalAdapter(path)
    assert reloaded.get(STUDENTS, "s1") == {"id": "s1", "name": "김민수"}
    assert not path.with_suffix(".json.tmp").exists()


def test_corrupt_data_file(tmp_path):
    path = tmp_path / "register.json"
    path.write_text("{not json", encoding="utf-8")
    with pytest.raises(PersistenceError):
        LocalAdapter(path)
