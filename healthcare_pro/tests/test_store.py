import pytest
from sqlalchemy.exc import OperationalError

from healthcare_pro.services.store import DataStore
from healthcare_pro.utils.exceptions import PersistenceError, RowNotFoundError


def _search(store, name):
    return store.insert("medication_searches", {"medication_name": name, "medication_info": {"name": name}})


def test_insert_stamps_owner_and_ignores_protected_columns(store):
    row = store.insert("medication_searches", {
        "id": "chosen-id",
        "user_id": "someone-else",
        "medication_name": "Metformin",
        "medication_info": {"class": "biguanide"},
    })
    assert row["user_id"] == "user-1"
    assert row["id"] != "chosen-id"
    assert row["medication_info"] == {"class": "biguanide"}
    assert row["created_at"] is not None


def test_unknown_table_and_columns(store):
    with pytest.raises(PersistenceError):
        store.insert("appointments", {})
    with pytest.raises(PersistenceError):
        store.insert("medication_searches", {"medication_name": "x", "medication_info": {}, "colour": "red"})
    with pytest.raises(PersistenceError):
        store.select("medication_searches", filters={"colour": "red"})
    with pytest.raises(PersistenceError):
        store.select("medication_searches", order_by="colour")


def test_select_filters_orders_and_pages(store):
    for name in ("a", "b", "c"):
        _search(store, name)

    assert [r["medication_name"] for r in store.select("medication_searches")] == ["c", "b", "a"]
    assert [r["medication_name"] for r in store.select("medication_searches", descending=False)] == ["a", "b", "c"]
    assert [r["medication_name"] for r in store.select("medication_searches", filters={"medication_name": "b"})] == ["b"]
    assert [r["medication_name"] for r in store.select("medication_searches", limit=1, offset=1)] == ["b"]


def test_select_ranges(store):
    for day in ("2026-01-01", "2026-01-05", "2026-01-09"):
        store.insert("mood_entries", {"date": day, "mood": 3})
    rows = store.select(
        "mood_entries",
        order_by="date",
        descending=False,
        min_values={"date": "2026-01-02"},
        max_values={"date": "2026-01-09"},
    )
    assert [r["date"] for r in rows] == ["2026-01-05", "2026-01-09"]


def test_rows_are_scoped_to_owner(db, store):
    row = _search(store, "mine")
    other = DataStore(db, "user-2")

    assert other.select("medication_searches") == []
    with pytest.raises(RowNotFoundError):
        other.get("medication_searches", row["id"])
    with pytest.raises(RowNotFoundError):
        other.update("medication_searches", row["id"], {"medication_name": "theirs"})
    with pytest.raises(RowNotFoundError):
        other.delete("medication_searches", row["id"])
    assert store.get("medication_searches", row["id"])["medication_name"] == "mine"


def test_update_and_delete(store):
    row = _search(store, "old")
    updated = store.update("medication_searches", row["id"], {"medication_name": "new"})
    assert updated["medication_name"] == "new"
    assert updated["id"] == row["id"]

    store.delete("medication_searches", row["id"])
    with pytest.raises(RowNotFoundError):
        store.get("medication_searches", row["id"])


def test_database_failure_is_persistence_error(db, store, monkeypatch):
    def broken_commit():
        raise OperationalError("INSERT", {}, Exception("database is locked"))

    monkeypatch.setattr(db, "commit", broken_commit)
    with pytest.raises(PersistenceError) as exc:
        _search(store, "x")
    assert exc.value.details == {"table": "medication_searches"}
    assert not isinstance(exc.value, RowNotFoundError)
