"""Health summary built from the user's recent symptom, prescription and mood rows."""
import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

from healthcare_pro.db.types import as_utc
from healthcare_pro.services import analytics
from healthcare_pro.services.store import DataStore

logger = logging.getLogger("healthcare_pro")

SYMPTOM_LIMIT = 10
PRESCRIPTION_LIMIT = 10
MOOD_LIMIT = 30
TOP_LIMIT = 10
RECURRING_THRESHOLD = 3
WEEKS_PER_MONTH = 4.29
SERIOUS_INTERACTIONS = ("Major", "Contraindicated")
URGENCY_LEVELS = ("low", "medium", "high", "urgent")


def _iso(value: Any) -> Optional[str]:
    if isinstance(value, datetime):
        return as_utc(value).isoformat()
    return value


def _condition_name(item: Any) -> Optional[str]:
    if isinstance(item, dict):
        return item.get("condition") or item.get("name")
    return item if isinstance(item, str) else None


def condition_counts(logs: List[Dict[str, Any]]) -> Dict[str, int]:
    counts: Dict[str, int] = {}
    for log in logs:
        for item in log.get("possible_conditions") or []:
            name = _condition_name(item)
            if name:
                counts[name] = counts.get(name, 0) + 1
    return counts


def medication_counts(analyses: List[Dict[str, Any]]) -> Dict[str, int]:
    counts: Dict[str, int] = {}
    for analysis in analyses:
        for med in (analysis.get("analysis_result") or {}).get("medications") or []:
            name = (med.get("name") or med.get("genericName")) if isinstance(med, dict) else None
            if name:
                counts[name] = counts.get(name, 0) + 1
    return counts


def symptom_frequency(reports: List[Dict[str, Any]], now: datetime) -> Dict[str, Any]:
    since = now - timedelta(days=30)
    recent = [r for r in reports if r.get("created_at") and as_utc(r["created_at"]) >= since]
    return {
        "total": len(recent),
        "avgPerWeek": f"{len(recent) / WEEKS_PER_MONTH:.1f}",
        "trend": "increasing" if recent else "stable",
    }


def mood_health_correlation(moods: List[Dict[str, Any]], reports: List[Dict[str, Any]]) -> Dict[str, Any]:
    """Average mood on days with a symptom report against days without one."""
    report_days = {as_utc(r["created_at"]).date().isoformat() for r in reports if r.get("created_at")}
    with_symptoms = [int(m["mood"]) for m in moods if str(m.get("date"))[:10] in report_days]
    without = [int(m["mood"]) for m in moods if str(m.get("date"))[:10] not in report_days]
    avg_with = analytics.mean(with_symptoms)
    avg_without = analytics.mean(without)
    return {
        "withSymptoms": f"{avg_with:.1f}",
        "withoutSymptoms": f"{avg_without:.1f}",
        "correlation": "negative" if avg_with < avg_without else "positive",
    }


def urgency_counts(logs: List[Dict[str, Any]]) -> Dict[str, int]:
    counts = {level: 0 for level in URGENCY_LEVELS}
    for log in logs:
        level = str(log.get("urgency_level") or "low").lower()
        if level in counts:
            counts[level] += 1
    return counts


def recent_activity(reports: List[Dict[str, Any]], analyses: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    items = []
    for report in reports[:5]:
        text = ", ".join(str(s) for s in report.get("symptoms") or [])
        items.append({
            "type": "symptom",
            "id": report["id"],
            "date": _iso(report.get("created_at")),
            "title": f"Symptom Analysis: {text[:50]}...",
        })
    for analysis in analyses[:5]:
        summary = (analysis.get("analysis_result") or {}).get("prescriptionSummary") or {}
        items.append({
            "type": "prescription",
            "id": analysis["id"],
            "date": _iso(analysis.get("created_at")),
            "title": f"Prescription Analysis: {summary.get('totalMedications') or 0} medications",
        })
    items.sort(key=lambda item: item["date"] or "", reverse=True)
    return items[:TOP_LIMIT]


def risk_factors(conditions: Dict[str, int], analyses: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    risks = []
    for condition, count in conditions.items():
        if count >= RECURRING_THRESHOLD:
            risks.append({
                "type": "recurring_condition",
                "description": f"Recurring {condition} ({count} times)",
                "severity": "medium",
                "recommendation": "Consider consulting a healthcare provider for persistent symptoms",
            })
    for analysis in analyses:
        for interaction in (analysis.get("analysis_result") or {}).get("drugInteractions") or []:
            if not isinstance(interaction, dict):
                continue
            kind = interaction.get("interactionType")
            if kind in SERIOUS_INTERACTIONS:
                meds = " + ".join(str(m) for m in interaction.get("medications") or [])
                risks.append({
                    "type": "drug_interaction",
                    "description": f"{kind} drug interaction: {meds}",
                    "severity": "high",
                    "recommendation": "Consult healthcare provider immediately",
                })
    return risks


def latest_logs(store: DataStore, reports: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Most recent diagnosis log per report, so a refinement replaces the first pass."""
    logs = []
    for report in reports:
        rows = store.select("diagnosis_logs", filters={"symptom_report_id": report["id"]}, limit=1)
        logs.extend(rows)
    return logs


def build_summary(
    reports: List[Dict[str, Any]],
    logs: List[Dict[str, Any]],
    analyses: List[Dict[str, Any]],
    moods: List[Dict[str, Any]],
    now: Optional[datetime] = None,
) -> Dict[str, Any]:
    now = now or datetime.now(timezone.utc)
    conditions = condition_counts(logs)
    medications = medication_counts(analyses)
    return {
        "totalSymptomReports": len(reports),
        "totalPrescriptionAnalyses": len(analyses),
        "totalMoodEntries": len(moods),
        "commonConditions": [{"condition": c, "count": n} for c, n in analytics.top_n(conditions, TOP_LIMIT)],
        "commonMedications": [{"medication": m, "count": n} for m, n in analytics.top_n(medications, TOP_LIMIT)],
        "healthTrends": {
            "symptomFrequency": symptom_frequency(reports, now),
            "moodHealthCorrelation": mood_health_correlation(moods, reports),
            "urgencyTrends": urgency_counts(logs),
        },
        "recentActivity": recent_activity(reports, analyses),
        "riskFactors": risk_factors(conditions, analyses),
        "generatedAt": now.isoformat(),
    }


def generate_health_summary(store: DataStore, now: Optional[datetime] = None) -> Dict[str, Any]:
    """Read the recent rows, summarise them and record the snapshot.

    Read failures propagate. The snapshot write is best-effort: the summary is
    returned either way and ``sync_status`` says whether it was stored.
    """
    reports = store.select("symptom_reports", limit=SYMPTOM_LIMIT)
    analyses = store.select("prescription_analyses", limit=PRESCRIPTION_LIMIT)
    moods = store.select("mood_entries", limit=MOOD_LIMIT)
    summary = build_summary(reports, latest_logs(store, reports), analyses, moods, now)

    report_id, sync_status = None, "synced"
    try:
        saved = store.insert("health_reports", {
            "report_type": "health_summary",
            "report_data": summary,
            "conditions_summary": [c["condition"] for c in summary["commonConditions"]],
            "medications_summary": [m["medication"] for m in summary["commonMedications"]],
        })
        report_id = saved["id"]
    except Exception as exc:
        logger.warning({"function": "generate_health_summary", "persist": "health_report",
                        "error": getattr(exc, "message", None) or str(exc)})
        sync_status = "failed"
    return {"summary": summary, "report_id": report_id, "sync_status": sync_status}


def list_reports(store: DataStore, limit: int = 20) -> List[Dict[str, Any]]:
    return store.select("health_reports", order_by="generated_at", limit=limit)
