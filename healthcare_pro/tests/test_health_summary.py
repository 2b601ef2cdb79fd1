from datetime import datetime, timezone

import pytest

from healthcare_pro.services import health_summary as hs
from healthcare_pro.services.store import DataStore
from healthcare_pro.utils.exceptions import PersistenceError

NOW = datetime(2026, 7, 1, 12, tzinfo=timezone.utc)


def _report(store, text, conditions, urgency="low"):
    report = store.insert("symptom_reports", {"symptoms": [text]})
    store.insert("diagnosis_logs", {
        "symptom_report_id": report["id"],
        "analysis_result": {},
        "possible_conditions": [{"name": c} for c in conditions],
        "urgency_level": urgency,
    })
    return report


def _prescription(store, medications, interactions=()):
    return store.insert("prescription_analyses", {
        "prescription_text": "rx",
        "analysis_result": {
            "prescriptionSummary": {"totalMedications": len(medications)},
            "medications": [{"name": m} for m in medications],
            "drugInteractions": list(interactions),
        },
    })


def test_condition_counts_accept_names_and_strings():
    logs = [
        {"possible_conditions": [{"name": "Flu"}, {"condition": "Cold"}, "Flu", None]},
        {"possible_conditions": None},
    ]
    assert hs.condition_counts(logs) == {"Flu": 2, "Cold": 1}


def test_urgency_counts_ignore_unknown_levels():
    logs = [{"urgency_level": "High"}, {"urgency_level": "low"}, {"urgency_level": "weird"}, {}]
    assert hs.urgency_counts(logs) == {"low": 2, "medium": 0, "high": 1, "urgent": 0}


def test_mood_health_correlation():
    reports = [{"created_at": datetime(2026, 6, 2, 9)}]
    moods = [{"date": "2026-06-02", "mood": 2}, {"date": "2026-06-03", "mood": 4}, {"date": "2026-06-04", "mood": 5}]
    result = hs.mood_health_correlation(moods, reports)
    assert result == {"withSymptoms": "2.0", "withoutSymptoms": "4.5", "correlation": "negative"}


def test_risk_factors():
    conditions = {"Migraine": 3, "Cold": 1}
    analyses = [{"analysis_result": {"drugInteractions": [
        {"medications": ["Warfarin", "Aspirin"], "interactionType": "Major"},
        {"medications": ["A", "B"], "interactionType": "Minor"},
    ]}}]
    risks = hs.risk_factors(conditions, analyses)
    assert [r["type"] for r in risks] == ["recurring_condition", "drug_interaction"]
    assert risks[0]["description"] == "Recurring Migraine (3 times)"
    assert risks[1]["description"] == "Major drug interaction: Warfarin + Aspirin"
    assert risks[1]["severity"] == "high"


def test_generate_summary_and_snapshot(store):
    for _ in range(3):
        _report(store, "I have a pounding headache", ["Migraine"], urgency="medium")
    _prescription(store, ["Warfarin", "Aspirin"], [{"medications": ["Warfarin", "Aspirin"], "interactionType": "Major"}])
    store.insert("mood_entries", {"date": "2026-06-30", "mood": 4})

    result = hs.generate_health_summary(store, now=NOW)
    summary = result["summary"]

    assert summary["totalSymptomReports"] == 3
    assert summary["totalPrescriptionAnalyses"] == 1
    assert summary["totalMoodEntries"] == 1
    assert summary["commonConditions"] == [{"condition": "Migraine", "count": 3}]
    assert summary["commonMedications"] == [{"medication": "Warfarin", "count": 1}, {"medication": "Aspirin", "count": 1}]
    assert summary["healthTrends"]["urgencyTrends"]["medium"] == 3
    assert summary["generatedAt"] == NOW.isoformat()
    assert {r["type"] for r in summary["riskFactors"]} == {"recurring_condition", "drug_interaction"}
    assert len(summary["recentActivity"]) == 4
    assert summary["recentActivity"][-1]["title"].startswith("Symptom Analysis: I have a pounding headache")

    assert result["sync_status"] == "synced"
    saved = hs.list_reports(store)
    assert [r["id"] for r in saved] == [result["report_id"]]
    assert saved[0]["conditions_summary"] == ["Migraine"]
    assert saved[0]["report_data"]["totalSymptomReports"] == 3


def test_refined_log_replaces_first_pass(store):
    report = _report(store, "Cough", ["Cold"])
    store.insert("diagnosis_logs", {
        "symptom_report_id": report["id"],
        "analysis_result": {},
        "possible_conditions": [{"name": "Bronchitis"}],
        "is_refined": True,
    })
    summary = hs.generate_health_summary(store, now=NOW)["summary"]
    assert summary["commonConditions"] == [{"condition": "Bronchitis", "count": 1}]


def test_empty_history(store):
    result = hs.generate_health_summary(store, now=NOW)
    summary = result["summary"]
    assert summary["totalSymptomReports"] == 0
    assert summary["commonConditions"] == []
    assert summary["recentActivity"] == []
    assert summary["healthTrends"]["symptomFrequency"] == {"total": 0, "avgPerWeek": "0.0", "trend": "stable"}


@pytest.mark.parametrize("error", [
    PersistenceError("Could not insert health_reports"),
    ConnectionError("remote store unreachable"),
])
def test_snapshot_failure_still_returns_summary(db, monkeypatch, error):
    store = DataStore(db, "user-1")

    def refuse(table, values):
        raise error

    monkeypatch.setattr(store, "insert", refuse)
    result = hs.generate_health_summary(store, now=NOW)
    assert result["sync_status"] == "failed"
    assert result["report_id"] is None
    assert result["summary"]["totalSymptomReports"] == 0
