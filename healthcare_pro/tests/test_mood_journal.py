from datetime import date

import pytest
from sqlalchemy import text

from healthcare_pro.services.mood_journal import MoodJournal, entry_values, parse_day
from healthcare_pro.services.store import DataStore
from healthcare_pro.utils.exceptions import RowNotFoundError, ValidationError

DAY = date(2026, 5, 4)


@pytest.fixture
def journal(store):
    return MoodJournal(store)


def test_same_day_save_overwrites(journal, store):
    first = journal.save({"mood": 2, "notes": "rough morning"}, today=DAY)
    second = journal.save({"mood": 4, "activities": ["yoga"]}, today=DAY)

    assert second["id"] == first["id"]
    rows = store.select("mood_entries")
    assert len(rows) == 1
    assert rows[0]["mood"] == 4
    assert rows[0]["activities"] == ["yoga"]
    assert rows[0]["date"] == "2026-05-04"


def test_next_day_is_a_new_entry(journal, store):
    journal.save({"mood": 3}, today=DAY)
    journal.save({"mood": 3}, today=date(2026, 5, 5))
    assert len(store.select("mood_entries")) == 2


def test_entry_date_sets_the_day(journal, store):
    # 20:00 on Monday for a user west of UTC is already Tuesday in UTC
    monday = journal.save({"mood": 2, "date": "2026-05-04"})
    tuesday = journal.save({"mood": 4, "date": "2026-05-05"})
    assert monday["date"] == "2026-05-04"
    assert tuesday["id"] != monday["id"]
    assert journal.save({"mood": 5, "date": "2026-05-04"})["id"] == monday["id"]
    assert len(store.select("mood_entries")) == 2


def test_parse_day():
    assert parse_day("2026-05-04") == DAY
    assert parse_day(None) is None
    assert parse_day("") is None
    with pytest.raises(ValidationError):
        parse_day("2026-02-30")


def test_notes_round_trip_through_encryption(journal, db):
    saved = journal.save({"mood": 3, "notes": "private thoughts"}, today=DAY)
    raw = db.execute(
        text("SELECT notes FROM mood_entries WHERE id = :id"), {"id": saved["id"]}
    ).scalar()
    assert raw != "private thoughts"
    assert journal.list()[0]["notes"] == "private thoughts"


@pytest.mark.parametrize("mood", [0, 6, "happy", None])
def test_mood_must_be_one_to_five(journal, mood):
    with pytest.raises(ValidationError):
        journal.save({"mood": mood}, today=DAY)


def test_mood_is_required(journal):
    with pytest.raises(ValidationError):
        journal.save({"notes": "no mood"}, today=DAY)


def test_entry_values_drops_unknown_fields():
    values = entry_values({"mood": "4", "emotions": None, "id": "x", "user_id": "y"})
    assert values == {"mood": 4, "emotions": []}


def test_list_filters_and_orders(journal):
    for day, mood in ((1, 3), (2, 5), (3, 1)):
        journal.save({"mood": mood}, today=date(2026, 5, day))

    assert [e["date"] for e in journal.list(start_date="2026-05-02")] == ["2026-05-03", "2026-05-02"]
    assert [e["date"] for e in journal.list(end_date="2026-05-01")] == ["2026-05-01"]
    assert [e["mood"] for e in journal.list(order_by="mood")] == [5, 3, 1]
    assert len(journal.list(limit=2)) == 2
    assert len(journal.list(limit=2, offset=2)) == 1


def test_update_and_delete(journal):
    entry = journal.save({"mood": 2}, today=DAY)
    updated = journal.update(entry["id"], {"mood": 5, "date": "2026-05-01"})
    assert updated["mood"] == 5
    assert updated["date"] == "2026-05-01"

    journal.delete(entry["id"])
    assert journal.list() == []
    with pytest.raises(RowNotFoundError):
        journal.delete(entry["id"])


def test_other_users_cannot_see_entries(db, journal):
    entry = journal.save({"mood": 3}, today=DAY)
    other = MoodJournal(DataStore(db, "user-2"))
    assert other.list() == []
    with pytest.raises(RowNotFoundError):
        other.update(entry["id"], {"mood": 1})


def test_stats(journal):
    for day, mood in enumerate([4, 4, 2, 5], start=1):
        journal.save({"mood": mood, "emotions": ["calm"], "activities": ["walk"] if mood > 3 else []},
                     today=date(2026, 5, day))

    stats = journal.stats(days=30, today=date(2026, 5, 10))
    assert stats["total"] == 4
    assert stats["average"] == 3.8
    assert stats["emotions"] == [{"emotion": "calm", "count": 4}]
    assert stats["activities"] == [{"activity": "walk", "count": 3}]


def test_stats_empty(journal):
    assert journal.stats(today=DAY)["total"] == 0
