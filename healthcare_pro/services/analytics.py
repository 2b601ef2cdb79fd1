"""In-memory aggregation over already-fetched mood rows.

Everything here is a pure function of a list of entry dicts (as returned by
the data store). Nothing is persisted except through the health report.
"""
from __future__ import annotations

import math
from collections import defaultdict
from datetime import date, datetime, timedelta, timezone
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

WEEKDAY_SHORT = ("Sun", "Mon", "Tue", "Wed", "Thu", "Fri", "Sat")
WEEKDAY_NAMES = ("sunday", "monday", "tuesday", "wednesday", "thursday", "friday", "saturday")

SPIKE_THRESHOLD = 2
TREND_THRESHOLD = 0.2
POSITIVE_MOOD = 4
NEGATIVE_MOOD = 2


# ---- helpers ----

def _entry_date(entry: Dict[str, Any]) -> Optional[date]:
    value = entry.get("date")
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value)[:10])
    except ValueError:
        return None


def _entry_time(entry: Dict[str, Any]) -> Optional[datetime]:
    value = entry.get("recorded_at") or entry.get("created_at")
    if isinstance(value, str):
        try:
            value = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return None
    return value if isinstance(value, datetime) else None


def _sort_key(entry: Dict[str, Any]) -> Tuple[str, str]:
    stamp = _entry_time(entry)
    return str(entry.get("date") or ""), stamp.isoformat() if stamp else ""


def chronological(entries: Iterable[Dict[str, Any]]) -> List[Dict[str, Any]]:
    return sorted(entries, key=_sort_key)


def newest_first(entries: Iterable[Dict[str, Any]]) -> List[Dict[str, Any]]:
    return sorted(entries, key=_sort_key, reverse=True)


def moods(entries: Iterable[Dict[str, Any]]) -> List[int]:
    return [int(e["mood"]) for e in entries if e.get("mood") is not None]


def mean(values: Sequence[float]) -> float:
    return sum(values) / len(values) if values else 0.0


def average(values: Sequence[float], ndigits: int = 1) -> float:
    return round(mean(values), ndigits)


# ---- frequency counts ----

def count_values(entries: Iterable[Dict[str, Any]], field: str) -> Dict[str, int]:
    """Occurrences of each value of a list field, in first-seen order."""
    counts: Dict[str, int] = {}
    for entry in entries:
        for value in entry.get(field) or []:
            counts[value] = counts.get(value, 0) + 1
    return counts


def top_n(counts: Dict[Any, int], n: int) -> List[Tuple[Any, int]]:
    # sorted() is stable, so equal counts keep first-seen order
    return sorted(counts.items(), key=lambda kv: kv[1], reverse=True)[:n]


def mood_distribution(entries: Iterable[Dict[str, Any]]) -> Dict[int, int]:
    dist = {m: 0 for m in range(1, 6)}
    for mood in moods(entries):
        if mood in dist:
            dist[mood] += 1
    return dist


# ---- bucketing ----

def weekday_index(day: date) -> int:
    """0 = Sunday .. 6 = Saturday."""
    return (day.weekday() + 1) % 7


def weekday_averages(entries: Iterable[Dict[str, Any]]) -> List[float]:
    buckets: List[List[int]] = [[] for _ in range(7)]
    for entry in entries:
        day = _entry_date(entry)
        if day is not None and entry.get("mood") is not None:
            buckets[weekday_index(day)].append(int(entry["mood"]))
    return [round(mean(b), 2) if b else 0 for b in buckets]


def hourly_averages(entries: Iterable[Dict[str, Any]]) -> List[float]:
    buckets: List[List[int]] = [[] for _ in range(24)]
    for entry in entries:
        stamp = _entry_time(entry)
        if stamp is not None and entry.get("mood") is not None:
            buckets[stamp.hour].append(int(entry["mood"]))
    return [round(mean(b), 2) if b else 0 for b in buckets]


def best_and_worst_weekday(weekday_avgs: Sequence[float]) -> Tuple[Optional[int], Optional[int]]:
    filled = [(i, v) for i, v in enumerate(weekday_avgs) if v > 0]
    if not filled:
        return None, None
    best = max(filled, key=lambda iv: iv[1])[0]
    worst = min(filled, key=lambda iv: iv[1])[0]
    return best, worst


# ---- change detection ----

def mood_spikes(entries: Iterable[Dict[str, Any]], threshold: int = SPIKE_THRESHOLD) -> List[Dict[str, Any]]:
    ordered = [e for e in chronological(entries) if e.get("mood") is not None]
    spikes = []
    for prev, cur in zip(ordered, ordered[1:]):
        change = int(cur["mood"]) - int(prev["mood"])
        if abs(change) >= threshold:
            spikes.append({
                "date": cur.get("date"),
                "from": int(prev["mood"]),
                "to": int(cur["mood"]),
                "change": change,
                "activities": list(cur.get("activities") or []),
                "emotions": list(cur.get("emotions") or []),
                "notes": cur.get("notes") or "",
            })
    return spikes


def _streak_kind(mood: int) -> str:
    if mood >= POSITIVE_MOOD:
        return "positive"
    if mood <= NEGATIVE_MOOD:
        return "negative"
    return "neutral"


def longest_streak(entries: Iterable[Dict[str, Any]]) -> int:
    """Longest run of consecutive entries in the same band (positive, neutral or negative)."""
    longest = current = 0
    kind = None
    for mood in moods(chronological(entries)):
        this_kind = _streak_kind(mood)
        if this_kind == kind:
            current += 1
        else:
            kind = this_kind
            current = 1
        longest = max(longest, current)
    return longest


def numeric_average(entries: Iterable[Dict[str, Any]], field: str) -> Optional[float]:
    values = [float(e[field]) for e in entries if isinstance(e.get(field), (int, float))]
    return average(values) if values else None


def seven_day_trend(entries: Iterable[Dict[str, Any]]) -> Dict[str, Any]:
    """Latest seven entries against the seven before them."""
    ordered = newest_first(entries)
    recent = moods(ordered[:7])
    previous = moods(ordered[7:14])
    recent_avg = mean(recent)
    previous_avg = mean(previous) if previous else recent_avg
    if recent_avg > previous_avg + TREND_THRESHOLD:
        trend = "improving"
    elif recent_avg < previous_avg - TREND_THRESHOLD:
        trend = "declining"
    else:
        trend = "neutral"
    return {"trend": trend, "recent7_average": round(recent_avg, 1), "previous7_average": round(previous_avg, 1)}


def summarize(entries: Sequence[Dict[str, Any]], timeframe: str = "30d") -> Dict[str, Any]:
    """Dashboard aggregate used by the analytics endpoint, insights and exports."""
    ordered = chronological(entries)
    activity_counts = count_values(ordered, "activities")
    emotion_counts = count_values(ordered, "emotions")
    weekday_avgs = weekday_averages(ordered)
    best_day, worst_day = best_and_worst_weekday(weekday_avgs)
    top_tags = top_n(activity_counts, 10)
    return {
        "timeframe": timeframe,
        "total_entries": len(ordered),
        "avg_mood": average(moods(ordered)),
        "most_common_tag": top_tags[0][0] if top_tags else None,
        "mood_distribution": mood_distribution(ordered),
        "top_tags": top_tags,
        "top_emotions": top_n(emotion_counts, 5),
        "weekday_avgs": weekday_avgs,
        "hourly_avgs": hourly_averages(ordered),
        "best_weekday": WEEKDAY_SHORT[best_day] if best_day is not None else None,
        "worst_weekday": WEEKDAY_SHORT[worst_day] if worst_day is not None else None,
        "mood_trend": [{"date": e.get("date"), "mood": e.get("mood")} for e in ordered],
        "mood_spikes": mood_spikes(ordered),
        "longest_streak": longest_streak(ordered),
        "avg_sleep_hours": numeric_average(ordered, "sleep_hours"),
        "avg_energy_level": numeric_average(ordered, "energy_level"),
        **seven_day_trend(ordered),
    }


# ---- local pattern model ----

PATTERN_THRESHOLD = 0.6


def mood_std_dev(entries: Sequence[Dict[str, Any]]) -> float:
    values = moods(entries)
    if len(values) < 2:
        return 0.0
    m = mean(values)
    return math.sqrt(sum((v - m) ** 2 for v in values) / len(values))


def confidence_for(entries: Sequence[Dict[str, Any]]) -> float:
    n = len(entries)
    if n < 5:
        return 0.3
    if n < 15:
        return 0.6
    if n < 30:
        return 0.8
    return 0.9


def weekly_pattern(entries: Sequence[Dict[str, Any]]) -> Dict[str, Any]:
    buckets: Dict[str, List[int]] = defaultdict(list)
    for entry in entries:
        day = _entry_date(entry)
        if day is not None and entry.get("mood") is not None:
            buckets[WEEKDAY_NAMES[weekday_index(day)]].append(int(entry["mood"]))
    averages = {name: mean(buckets[name]) for name in WEEKDAY_NAMES}
    filled = [(name, avg) for name, avg in averages.items() if avg > 0]
    if len(filled) < 3:
        return {"strength": 0, "description": "", "data": {}}

    values = [avg for _, avg in filled]
    m = mean(values)
    variance = sum((v - m) ** 2 for v in values) / len(values)
    ranked = sorted(filled, key=lambda kv: kv[1], reverse=True)
    return {
        "strength": min(variance / 2, 1),
        "description": f"Your mood tends to be highest on {ranked[0][0]}s and lowest on {ranked[-1][0]}s",
        "data": averages,
    }


def temporal_pattern(entries: Sequence[Dict[str, Any]]) -> Dict[str, Any]:
    ordered = moods(chronological(entries))
    recent, older = ordered[-14:], ordered[-28:-14]
    if len(recent) < 5 or len(older) < 5:
        return {"strength": 0, "description": "", "data": {}}

    recent_avg, old_avg = mean(recent), mean(older)
    trend = recent_avg - old_avg
    if trend > 0.5:
        description = "Your mood has been improving over the past two weeks"
    elif trend < -0.5:
        description = "Your mood has been declining over the past two weeks"
    else:
        description = "Your mood has been relatively stable recently"
    return {
        "strength": min(abs(trend) / 2, 1),
        "description": description,
        "data": {"trend": trend, "recentAvg": recent_avg, "oldAvg": old_avg},
    }


def activity_correlation(entries: Sequence[Dict[str, Any]]) -> Dict[str, Any]:
    by_activity: Dict[str, List[int]] = {}
    for entry in entries:
        for activity in entry.get("activities") or []:
            by_activity.setdefault(activity, []).append(int(entry["mood"]))
    overall = mean(moods(entries))
    correlations = []
    for activity, values in by_activity.items():
        if len(values) >= 3:
            avg = mean(values)
            correlations.append({
                "activity": activity,
                "correlation": avg - overall,
                "avgMood": avg,
                "count": len(values),
            })
    if not correlations:
        return {"strength": 0, "description": "", "data": {}}

    correlations.sort(key=lambda c: abs(c["correlation"]), reverse=True)
    strongest = correlations[0]
    verb = "boost" if strongest["correlation"] > 0 else "lower"
    return {
        "strength": min(abs(strongest["correlation"]) / 2, 1),
        "description": f"{strongest['activity']} tends to {verb} your mood",
        "data": {"correlations": correlations[:5]},
    }


def detect_patterns(entries: Sequence[Dict[str, Any]]) -> List[Dict[str, Any]]:
    patterns = []
    for kind, fn in (("weekly", weekly_pattern), ("temporal", temporal_pattern), ("activity", activity_correlation)):
        found = fn(entries)
        if found["strength"] > PATTERN_THRESHOLD:
            patterns.append({"type": kind, **found})
    return patterns


def local_insights(entries: Sequence[Dict[str, Any]]) -> List[Dict[str, Any]]:
    insights = []
    ordered = moods(chronological(entries))
    if len(ordered) >= 7 and ordered[-14:-7]:
        recent_avg, older_avg = mean(ordered[-7:]), mean(ordered[-14:-7])
        if recent_avg > older_avg + 0.5:
            insights.append({
                "type": "positive_trend",
                "title": "Mood is Improving",
                "description": "Your mood has been on an upward trend this week compared to last week.",
                "confidence": 0.8,
            })
        elif recent_avg < older_avg - 0.5:
            insights.append({
                "type": "negative_trend",
                "title": "Mood Declining",
                "description": "Your mood has been lower this week compared to last week. Consider reaching out for support.",
                "confidence": 0.8,
            })

    spread = mood_std_dev(entries)
    if spread < 0.5:
        insights.append({
            "type": "stability",
            "title": "Stable Mood",
            "description": "Your mood has been relatively stable, which is a positive sign.",
            "confidence": 0.7,
        })
    elif spread > 1.5:
        insights.append({
            "type": "volatility",
            "title": "Mood Variability",
            "description": "Your mood has been quite variable. Consider tracking potential triggers.",
            "confidence": 0.7,
        })
    return insights


def local_recommendations(entries: Sequence[Dict[str, Any]], patterns: Sequence[Dict[str, Any]]) -> List[Dict[str, Any]]:
    recs = []
    ordered = chronological(entries)
    if len([m for m in moods(ordered[-7:]) if m <= NEGATIVE_MOOD]) >= 3:
        recs.append({
            "type": "self_care",
            "priority": "high",
            "title": "Focus on Self-Care",
            "description": "You've had several low mood days recently. Try incorporating more self-care activities.",
            "actions": ["Take a short walk", "Practice deep breathing", "Connect with a friend", "Engage in a hobby you enjoy"],
        })

    for pattern in patterns:
        if pattern["type"] != "activity":
            continue
        positive = next((c for c in pattern["data"].get("correlations", []) if c["correlation"] > 0.5), None)
        if positive:
            recs.append({
                "type": "activity",
                "priority": "medium",
                "title": "Boost Your Mood",
                "description": f"{positive['activity']} seems to improve your mood. Consider doing it more often.",
                "actions": [f"Schedule more time for {positive['activity']}"],
            })

    if len(ordered) >= 7 and mean(moods(ordered)) >= POSITIVE_MOOD:
        recs.append({
            "type": "maintenance",
            "priority": "low",
            "title": "Keep Up the Good Work",
            "description": "Your overall mood is good. Continue with your current habits and self-care routine.",
            "actions": ["Maintain your current routine", "Stay connected with supportive people"],
        })
    return recs


def analyze_patterns(entries: Sequence[Dict[str, Any]]) -> Dict[str, Any]:
    if not entries:
        return {"patterns": [], "insights": [], "recommendations": [], "confidence": 0}
    patterns = detect_patterns(entries)
    return {
        "patterns": patterns,
        "insights": local_insights(entries),
        "recommendations": local_recommendations(entries, patterns),
        "confidence": confidence_for(entries),
    }


def predict_mood(entries: Sequence[Dict[str, Any]], days_ahead: int = 7, today: Optional[date] = None) -> Dict[str, Any]:
    """Least-squares line through the last 14 moods, extended ``days_ahead`` days."""
    if len(entries) < 5:
        return {"predictions": [], "confidence": 0, "message": "Need more data for predictions"}

    y = moods(chronological(entries))[-14:]
    n = len(y)
    xs = range(n)
    sum_x, sum_y = sum(xs), sum(y)
    sum_xy = sum(x * v for x, v in zip(xs, y))
    sum_xx = sum(x * x for x in xs)
    denom = n * sum_xx - sum_x * sum_x
    slope = (n * sum_xy - sum_x * sum_y) / denom if denom else 0.0
    intercept = (sum_y - slope * sum_x) / n

    start = today or datetime.now(timezone.utc).date()
    predictions = []
    for i in range(1, days_ahead + 1):
        predicted = max(1.0, min(5.0, slope * (n + i - 1) + intercept))
        predictions.append({
            "date": (start + timedelta(days=i)).isoformat(),
            "predictedMood": round(predicted, 1),
            "confidence": round(max(0.3, 0.9 - i * 0.1), 2),
        })

    if slope > 0.1:
        trend = "improving"
    elif slope < -0.1:
        trend = "declining"
    else:
        trend = "stable"
    return {"predictions": predictions, "confidence": confidence_for(entries), "trend": trend}
