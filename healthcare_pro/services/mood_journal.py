"""Mood journal: one entry per calendar day, plus listing and stats."""
import logging
from datetime import date, datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

from healthcare_pro.services import analytics
from healthcare_pro.services.store import DataStore
from healthcare_pro.utils.exceptions import ValidationError

logger = logging.getLogger("healthcare_pro")

TABLE = "mood_entries"
ENTRY_FIELDS = ("mood", "emoji", "emotions", "activities", "tags", "notes", "sleep_hours", "energy_level")
STATS_DAYS = 30


def _today() -> date:
    return datetime.now(timezone.utc).date()


def parse_day(value: Optional[str]) -> Optional[date]:
    """Read a client-supplied ``YYYY-MM-DD`` calendar day; ``None`` passes through."""
    if not value:
        return None
    try:
        return date.fromisoformat(str(value)[:10])
    except ValueError:
        raise ValidationError("Date must be a valid YYYY-MM-DD day", {"date": value}) from None


def _check_mood(value: Any) -> int:
    try:
        mood = int(value)
    except (TypeError, ValueError):
        raise ValidationError("Mood must be a number from 1 to 5", {"mood": value}) from None
    if not 1 <= mood <= 5:
        raise ValidationError("Mood must be a number from 1 to 5", {"mood": value})
    return mood


def entry_values(entry: Dict[str, Any]) -> Dict[str, Any]:
    values = {k: entry[k] for k in ENTRY_FIELDS if k in entry}
    if "mood" in values:
        values["mood"] = _check_mood(values["mood"])
    for field in ("emotions", "activities", "tags"):
        if field in values:
            values[field] = list(values[field] or [])
    return values


class MoodJournal:
    def __init__(self, store: DataStore):
        self.store = store

    def save(self, entry: Dict[str, Any], today: Optional[date] = None) -> Dict[str, Any]:
        """Insert the entry for the day, or overwrite it if one already exists.

        The day is ``today``, else the entry's own ``date`` (the user's local
        calendar day), else the current UTC day.

        The lookup and the write are two separate store calls. Two concurrent
        saves can both miss the existing row and insert twice.
        """
        if "mood" not in entry:
            raise ValidationError("Mood is required")
        day = (today or parse_day(entry.get("date")) or _today()).isoformat()
        values = entry_values(entry)

        existing = self.store.select(TABLE, filters={"date": day}, limit=1)
        if existing:
            logger.info({"function": "mood_save", "date": day, "path": "update"})
            return self.store.update(TABLE, existing[0]["id"], values)
        logger.info({"function": "mood_save", "date": day, "path": "insert"})
        return self.store.insert(TABLE, {"date": day, **values})

    def list(
        self,
        limit: Optional[int] = None,
        offset: Optional[int] = None,
        start_date: Optional[str] = None,
        end_date: Optional[str] = None,
        order_by: str = "date",
    ) -> List[Dict[str, Any]]:
        min_values = {"date": start_date} if start_date else None
        max_values = {"date": end_date} if end_date else None
        column = "mood" if order_by == "mood" else "created_at"
        return self.store.select(
            TABLE, order_by=column, limit=limit, offset=offset, min_values=min_values, max_values=max_values,
        )

    def recent(self, days: int = STATS_DAYS, today: Optional[date] = None) -> List[Dict[str, Any]]:
        start = (today or _today()) - timedelta(days=days)
        return self.list(start_date=start.isoformat())

    def update(self, entry_id: str, updates: Dict[str, Any]) -> Dict[str, Any]:
        values = entry_values(updates)
        if updates.get("date"):
            values["date"] = parse_day(updates["date"]).isoformat()
        return self.store.update(TABLE, entry_id, values)

    def delete(self, entry_id: str) -> None:
        self.store.delete(TABLE, entry_id)

    def stats(self, days: int = STATS_DAYS, today: Optional[date] = None) -> Dict[str, Any]:
        entries = self.recent(days, today)
        if not entries:
            return {"average": 0, "total": 0, "trend": "neutral", "emotions": [], "activities": [],
                    "recent7_average": 0, "previous7_average": 0}

        trend = analytics.seven_day_trend(entries)
        emotions = analytics.top_n(analytics.count_values(entries, "emotions"), 5)
        activities = analytics.top_n(analytics.count_values(entries, "activities"), 5)
        return {
            "average": analytics.average(analytics.moods(entries)),
            "total": len(entries),
            "trend": trend["trend"],
            "recent7_average": trend["recent7_average"],
            "previous7_average": trend["previous7_average"],
            "emotions": [{"emotion": e, "count": c} for e, c in emotions],
            "activities": [{"activity": a, "count": c} for a, c in activities],
        }
