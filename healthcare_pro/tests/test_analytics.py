from datetime import date, datetime, timedelta

import pytest

from healthcare_pro.services import analytics


def entry(day, mood, activities=(), emotions=(), hour=12, **extra):
    d = date(2026, 6, 1) + timedelta(days=day)
    return {
        "date": d.isoformat(),
        "mood": mood,
        "activities": list(activities),
        "emotions": list(emotions),
        "recorded_at": datetime(d.year, d.month, d.day, hour),
        **extra,
    }


def test_top_n_keeps_first_seen_order_for_ties():
    counts = {"A": 5, "B": 5, "C": 3}
    assert analytics.top_n(counts, 3) == [("A", 5), ("B", 5), ("C", 3)]
    assert analytics.top_n({"C": 3, "B": 5, "A": 5}, 2) == [("B", 5), ("A", 5)]


def test_count_values():
    entries = [entry(0, 3, ["run", "read"]), entry(1, 4, ["read"]), entry(2, 2)]
    assert analytics.count_values(entries, "activities") == {"run": 1, "read": 2}


def test_mood_distribution_has_every_level():
    assert analytics.mood_distribution([entry(0, 5), entry(1, 5), entry(2, 1)]) == {1: 1, 2: 0, 3: 0, 4: 0, 5: 2}


def test_weekday_index_starts_on_sunday():
    assert analytics.weekday_index(date(2026, 6, 7)) == 0  # Sunday
    assert analytics.weekday_index(date(2026, 6, 13)) == 6  # Saturday


def test_weekday_and_hourly_averages():
    # 2026-06-01 is a Monday
    entries = [entry(0, 4, hour=8), entry(7, 2, hour=8), entry(1, 5, hour=21)]
    weekdays = analytics.weekday_averages(entries)
    assert weekdays[1] == 3.0
    assert weekdays[2] == 5.0
    assert weekdays[0] == 0
    hours = analytics.hourly_averages(entries)
    assert hours[8] == 3.0
    assert hours[21] == 5.0
    assert analytics.best_and_worst_weekday(weekdays) == (2, 1)
    assert analytics.best_and_worst_weekday([0] * 7) == (None, None)


def test_spikes_use_chronological_order():
    entries = [entry(2, 5, ["gym"]), entry(0, 2), entry(1, 2), entry(3, 4)]
    spikes = analytics.mood_spikes(entries)
    assert len(spikes) == 1
    assert spikes[0]["date"] == "2026-06-03"
    assert spikes[0]["change"] == 3
    assert spikes[0]["activities"] == ["gym"]


def test_longest_streak_counts_bands():
    moods = [4, 5, 4, 3, 1, 2, 2, 2, 5]
    entries = [entry(i, m) for i, m in enumerate(moods)]
    assert analytics.longest_streak(entries) == 4
    assert analytics.longest_streak([]) == 0


@pytest.mark.parametrize("recent,previous,trend", [
    ([5] * 7, [3] * 7, "improving"),
    ([2] * 7, [4] * 7, "declining"),
    ([3] * 7, [3] * 7, "neutral"),
])
def test_seven_day_trend(recent, previous, trend):
    entries = [entry(i, m) for i, m in enumerate(previous + recent)]
    assert analytics.seven_day_trend(entries)["trend"] == trend


def test_seven_day_trend_without_history_is_neutral():
    result = analytics.seven_day_trend([entry(0, 5), entry(1, 4)])
    assert result == {"trend": "neutral", "recent7_average": 4.5, "previous7_average": 4.5}


def test_summarize():
    entries = [
        entry(0, 2, ["work"], ["tired"], sleep_hours=6),
        entry(1, 4, ["walk", "work"], ["calm"], sleep_hours=8),
        entry(2, 5, ["walk"], ["happy"]),
    ]
    summary = analytics.summarize(entries, "7d")
    assert summary["timeframe"] == "7d"
    assert summary["total_entries"] == 3
    assert summary["avg_mood"] == 3.7
    assert summary["top_tags"] == [("work", 2), ("walk", 2)]
    assert summary["most_common_tag"] == "work"
    assert summary["best_weekday"] == "Wed"
    assert summary["worst_weekday"] == "Mon"
    assert summary["avg_sleep_hours"] == 7.0
    assert summary["avg_energy_level"] is None
    assert [s["change"] for s in summary["mood_spikes"]] == [2]
    assert summary["mood_trend"][0] == {"date": "2026-06-01", "mood": 2}


def test_summarize_empty():
    summary = analytics.summarize([])
    assert summary["total_entries"] == 0
    assert summary["avg_mood"] == 0
    assert summary["most_common_tag"] is None
    assert summary["best_weekday"] is None


def test_confidence_grows_with_data():
    assert [analytics.confidence_for([{}] * n) for n in (1, 5, 15, 30)] == [0.3, 0.6, 0.8, 0.9]


def test_activity_correlation():
    entries = [entry(i, 5, ["yoga"]) for i in range(3)] + [entry(i + 3, 1) for i in range(3)]
    result = analytics.activity_correlation(entries)
    assert result["description"] == "yoga tends to boost your mood"
    assert result["strength"] == 1
    assert result["data"]["correlations"][0]["count"] == 3


def test_analyze_patterns():
    assert analytics.analyze_patterns([]) == {"patterns": [], "insights": [], "recommendations": [], "confidence": 0}

    entries = [entry(i, 5, ["yoga"]) for i in range(4)] + [entry(i + 4, 1) for i in range(4)]
    result = analytics.analyze_patterns(entries)
    assert "activity" in [p["type"] for p in result["patterns"]]
    assert any(r["title"] == "Boost Your Mood" for r in result["recommendations"])
    assert any(i["type"] == "volatility" for i in result["insights"])
    assert result["confidence"] == 0.6


def test_predict_needs_five_entries():
    result = analytics.predict_mood([entry(i, 3) for i in range(4)])
    assert result["predictions"] == []
    assert result["message"] == "Need more data for predictions"


def test_predict_extends_linear_trend():
    entries = [entry(i, m) for i, m in enumerate([1, 2, 3, 4, 5])]
    result = analytics.predict_mood(entries, days_ahead=3, today=date(2026, 6, 10))
    assert result["trend"] == "improving"
    assert [p["date"] for p in result["predictions"]] == ["2026-06-11", "2026-06-12", "2026-06-13"]
    # clamped to the 1-5 scale
    assert all(p["predictedMood"] == 5.0 for p in result["predictions"])
    assert [p["confidence"] for p in result["predictions"]] == [0.8, 0.7, 0.6]


def test_predict_flat():
    result = analytics.predict_mood([entry(i, 3) for i in range(6)], days_ahead=1, today=date(2026, 6, 10))
    assert result["trend"] == "stable"
    assert result["predictions"][0]["predictedMood"] == 3.0
