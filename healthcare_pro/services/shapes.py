"""Expected response shapes and their defaulting rules.

Every normaliser copies its defaults, so normalising the same input twice
yields equal results and no caller can mutate a shared default.
"""
import copy
import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Dict, FrozenSet, List, Optional

from healthcare_pro.utils.exceptions import ParseError
from healthcare_pro.services import response_parser as rp

DISCLAIMER = (
    "This analysis is for informational purposes only and does not replace professional medical advice. "
    "Always consult with a healthcare provider for proper diagnosis and treatment."
)
PRESCRIPTION_DISCLAIMER = (
    "This analysis is for educational purposes only. Always consult healthcare professionals for medical decisions."
)


@dataclass(frozen=True)
class Shape:
    name: str
    normalize: Callable[[Dict[str, Any], Optional[str]], Dict[str, Any]]
    fallback: Optional[Callable[[str, Optional[str]], Dict[str, Any]]] = None
    fallback_stages: FrozenSet[str] = field(default_factory=frozenset)


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _list_or(value: Any, default: List[Any]) -> List[Any]:
    return list(value) if isinstance(value, list) else copy.deepcopy(default)


def _dict_or(value: Any) -> Dict[str, Any]:
    return dict(value) if isinstance(value, dict) else {}


def _number_or(value: Any, default: float) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return default
    return value


# ---- Symptom analysis ----

SYMPTOM_DEFAULTS: Dict[str, Any] = {
    "recommendations": [
        "Monitor symptoms closely",
        "Stay hydrated and rest",
        "Consult healthcare provider if symptoms worsen",
    ],
    "homeRemedies": [
        "Rest and adequate sleep",
        "Stay hydrated",
        "Apply appropriate temperature therapy",
    ],
    "redFlags": [
        "Severe worsening of symptoms",
        "High fever over 101.3°F (38.5°C)",
        "Difficulty breathing",
    ],
    "similarCases": [],
    "followUpQuestions": [
        "Have your symptoms worsened in the last 24 hours?",
        "Are you experiencing any fever?",
        "Have you taken any medications for these symptoms?",
    ],
}


def normalize_condition(item: Any) -> Dict[str, Any]:
    item = _dict_or(item)
    return {
        "name": item.get("name") or "Unknown Condition",
        "likelihood": _number_or(item.get("likelihood"), 50),
        "description": item.get("description") or "No description provided",
        "severity": item.get("severity") or "Medium",
    }


def normalize_symptom_analysis(obj: Dict[str, Any], _source: Optional[str] = None) -> Dict[str, Any]:
    risk = _dict_or(obj.get("riskAssessment"))
    conditions = obj.get("conditions")
    out = {
        "conditions": [normalize_condition(c) for c in conditions] if isinstance(conditions, list) else [],
        "riskAssessment": {
            "overall": risk.get("overall") or "Medium",
            "urgency": risk.get("urgency") or "Consult healthcare provider",
            "timeframe": risk.get("timeframe") or "Seek medical attention if symptoms persist",
        },
    }
    for key, default in SYMPTOM_DEFAULTS.items():
        out[key] = _list_or(obj.get(key), default)
    out["followUpQuestions"] = [q for q in out["followUpQuestions"] if isinstance(q, str) and q.strip()]
    out["disclaimer"] = obj.get("disclaimer") or DISCLAIMER
    out["confidence"] = _number_or(obj.get("confidence"), 0.7)
    out["generatedAt"] = obj.get("generatedAt") or _now_iso()
    out["aiGenerated"] = True
    out["source"] = obj.get("source") or "Groq AI"
    return out


# ---- Prescriptions and medications ----

_MED_LINE = re.compile(r"\b[A-Z][a-z]+\b")
_MG = re.compile(r"\d+\s*mg")
_MED_UNITS = ("mg", "tablet", "capsule", "ml")

_FALLBACK_MEDICATION = {
    "name": "Medication from prescription",
    "genericName": "Generic name not available - consult pharmacist",
    "dosage": "As prescribed",
    "frequency": "As prescribed",
    "route": "As prescribed",
    "duration": "As prescribed",
    "purpose": "Treatment as prescribed by healthcare provider",
    "category": "Prescription medication",
    "instructions": "Follow healthcare provider instructions exactly",
    "foodInteractions": "Consult healthcare provider or pharmacist",
    "storageInstructions": "Store as directed on prescription label",
    "costEstimate": "Contact pharmacy for pricing",
}


def prescription_fallback(_raw: str, prescription_text: Optional[str]) -> Dict[str, Any]:
    """Simplified analysis built from the prescription text itself."""
    text = prescription_text or ""
    lines = [line for line in text.split("\n") if line.strip()]
    candidates = [
        line for line in lines
        if _MED_LINE.search(line) and any(unit in line for unit in _MED_UNITS)
    ]
    medications = []
    for line in candidates:
        med = dict(_FALLBACK_MEDICATION)
        med["name"] = line.split(" ")[0] or _FALLBACK_MEDICATION["name"]
        dose = _MG.search(line)
        med["dosage"] = dose.group(0) if dose else "As prescribed"
        medications.append(med)
    return {
        "prescriptionSummary": {
            "totalMedications": len(candidates) or 1,
            "complexityLevel": "Medium",
            "estimatedCost": "Contact pharmacy for pricing",
            "treatmentDuration": "As prescribed by healthcare provider",
            "extractedText": text[:200] + ("..." if len(text) > 200 else ""),
        },
        "medications": medications or [dict(_FALLBACK_MEDICATION)],
        "drugInteractions": [],
        "warnings": [
            "This is a simplified analysis. The AI could not fully process your prescription.",
            "Please consult your healthcare provider or pharmacist for complete information",
        ],
        "patientInstructions": [
            "Take medications exactly as prescribed",
            "Contact healthcare provider with any questions or concerns",
            "Do not stop or change medications without medical supervision",
            "Report any adverse reactions to your healthcare provider immediately",
        ],
        "emergencyContacts": {
            "poisonControl": "1-800-222-1222",
            "instructions": "Contact emergency services (911) for serious medical emergencies",
        },
        "isFallback": True,
    }


def normalize_prescription(obj: Dict[str, Any], prescription_text: Optional[str] = None) -> Dict[str, Any]:
    if not obj.get("medications") or not obj.get("prescriptionSummary"):
        return prescription_fallback("", prescription_text)
    out = dict(obj)
    for key in ("medications", "drugInteractions", "contraindications", "patientInstructions",
                "monitoringParameters", "warningsAndPrecautions"):
        out[key] = _list_or(obj.get(key), [])
    side = _dict_or(obj.get("sideEffects"))
    out["sideEffects"] = {k: _list_or(side.get(k), []) for k in ("common", "serious", "whenToSeekHelp")}
    out["lifestyle"] = _dict_or(obj.get("lifestyle"))
    out["emergencyContacts"] = _dict_or(obj.get("emergencyContacts")) or {
        "poisonControl": "1-800-222-1222",
        "instructions": "When to call emergency services",
    }
    out["isFallback"] = False
    return out


def medication_fallback(_raw: str, medication_name: Optional[str]) -> Dict[str, Any]:
    consult = "Consult healthcare provider"
    return {
        "medication": {
            "name": medication_name or "Unknown medication",
            "genericName": "Information not available",
            "brandNames": ["Information not available"],
            "classification": "Information not available",
            "mechanism": "Consult healthcare provider for mechanism of action",
            "indications": ["As prescribed by healthcare provider"],
            "contraindications": [consult],
            "dosageForm": ["Various forms available"],
            "strengthsAvailable": ["Various strengths available"],
        },
        "dosing": {
            "adult": "As prescribed by healthcare provider",
            "pediatric": consult,
            "geriatric": consult,
            "renalAdjustment": consult,
            "hepaticAdjustment": consult,
        },
        "administration": {
            "route": "As prescribed",
            "instructions": "Follow healthcare provider instructions",
            "foodInteractions": consult,
            "timingRecommendations": "As prescribed",
        },
        "sideEffects": {
            "common": ["Consult healthcare provider for side effect information"],
            "serious": ["Contact healthcare provider immediately for serious side effects"],
            "rare": ["Report any unusual symptoms to healthcare provider"],
        },
        "monitoring": {
            "parameters": ["Follow up with healthcare provider"],
            "frequency": "As recommended by healthcare provider",
            "labTests": ["As ordered by healthcare provider"],
        },
        "patientEducation": {
            "keyPoints": ["Take as prescribed", "Do not stop without consulting healthcare provider"],
            "lifestyle": ["Consult healthcare provider for lifestyle recommendations"],
            "warnings": ["This is incomplete information - consult healthcare provider"],
        },
        "storage": "Store as directed",
        "costInformation": "Contact pharmacy for pricing",
        "isFallback": True,
    }


def normalize_medication_info(obj: Dict[str, Any], medication_name: Optional[str] = None) -> Dict[str, Any]:
    if not isinstance(obj.get("medication"), dict):
        return medication_fallback("", medication_name)
    out = dict(obj)
    out["isFallback"] = False
    return out


def normalize_interactions(obj: Dict[str, Any], _source: Optional[str] = None) -> Dict[str, Any]:
    interactions = []
    for item in _list_or(obj.get("interactions"), []):
        item = _dict_or(item)
        interactions.append({
            "medications": _list_or(item.get("medications"), []),
            "severity": item.get("severity") or "Unknown",
            "mechanism": item.get("mechanism") or "",
            "clinicalEffects": item.get("clinicalEffects") or "",
            "management": item.get("management") or "Consult your pharmacist",
            "monitoringRequired": item.get("monitoringRequired") or "",
        })
    return {
        "interactions": interactions,
        "riskLevel": obj.get("riskLevel") or "Unknown",
        "recommendations": _list_or(obj.get("recommendations"), []),
        "alternativeOptions": _list_or(obj.get("alternativeOptions"), []),
    }


# ---- Mood ----

BLOCKED_RECOMMENDATION_TERMS = (
    "medication", "drug", "pill", "prescription", "diagnose", "disorder",
    "suicide", "self-harm", "harm", "violence", "alcohol", "drinking",
    "inappropriate", "sexual", "illegal", "dangerous",
)
WELLNESS_TERMS = (
    "mood", "mental", "wellness", "health", "exercise", "mindfulness",
    "sleep", "stress", "anxiety", "emotion", "feeling", "social",
    "therapy", "support", "routine", "activity", "relax", "breathing",
)
MIN_RECOMMENDATIONS = 3
MAX_RECOMMENDATIONS = 10


def is_appropriate_recommendation(rec: Dict[str, Any]) -> bool:
    content = f"{rec.get('title', '')} {rec.get('description', '')}".lower()
    if any(term in content for term in BLOCKED_RECOMMENDATION_TERMS):
        return False
    if not any(term in content for term in WELLNESS_TERMS):
        return False
    return len(str(rec.get("title", ""))) > 5


def normalize_mood_recommendations(obj: Dict[str, Any], _source: Optional[str] = None) -> Dict[str, Any]:
    raw = obj.get("recommendations") if isinstance(obj.get("recommendations"), list) else []
    valid = []
    for rec in raw:
        if not isinstance(rec, dict) or not rec.get("title") or not rec.get("description"):
            continue
        if not is_appropriate_recommendation(rec):
            continue
        concerns = rec.get("relevantConcerns")
        valid.append({
            "title": str(rec["title"])[:100],
            "description": str(rec["description"])[:300],
            "category": rec.get("category") or "general",
            "priority": rec.get("priority") or "medium",
            "icon": rec.get("icon") or "💡",
            "relevantConcerns": list(concerns)[:3] if isinstance(concerns, list) else [],
        })
    valid = valid[:MAX_RECOMMENDATIONS]
    if len(valid) < MIN_RECOMMENDATIONS:
        raise ParseError(
            "validate",
            f"Insufficient recommendations generated. Only {len(valid)} valid recommendations found, "
            f"but at least {MIN_RECOMMENDATIONS} are required.",
        )
    return {"recommendations": valid}


INSIGHT_KEYS = (
    "weeklyMoodSummary", "triggerPatternDetection", "behavioralSuggestion", "tagCorrelation",
    "sentimentMoodMapping", "moodSpikeDetection", "timeOfDayInsights", "weekdayPatterns",
    "predictiveInsights", "customTitle", "riskFactors", "positivePatterns",
)


def insights_fallback(raw: str, _source: Optional[str] = None) -> Dict[str, Any]:
    """Text-only insights used when the model's answer is not JSON."""
    out = {key: "Analysis unavailable" for key in INSIGHT_KEYS}
    out.update({
        "weeklyMoodSummary": raw,
        "triggerPatternDetection": "Unable to parse detailed analysis",
        "behavioralSuggestion": "Please try again for detailed recommendations",
        "customTitle": "Mood Analysis",
        "riskFactors": "None identified",
        "positivePatterns": "Continue current practices",
        "isFallback": True,
    })
    return out


def normalize_insights(obj: Dict[str, Any], _source: Optional[str] = None) -> Dict[str, Any]:
    out = {key: obj.get(key) or "Analysis unavailable" for key in INSIGHT_KEYS}
    if out["customTitle"] == "Analysis unavailable":
        out["customTitle"] = "Mood Analysis"
    out["isFallback"] = False
    return out


def _normalize_day(value: Any) -> Dict[str, Any]:
    value = _dict_or(value)
    return {
        "date": value.get("date"),
        "mood": value.get("mood"),
        "emoji": value.get("emoji") or "",
        "reason": value.get("reason") or "",
    }


def normalize_best_day(obj: Dict[str, Any], _source: Optional[str] = None) -> Dict[str, Any]:
    if not isinstance(obj.get("bestDay"), dict) and not isinstance(obj.get("challengingDay"), dict):
        raise ParseError("validate", "Could not parse AI response as JSON")
    return {
        "bestDay": _normalize_day(obj.get("bestDay")),
        "challengingDay": _normalize_day(obj.get("challengingDay")),
    }


_ALL_STAGES = frozenset({rp.SLICE_OUTER_BRACES, rp.TRY_PARSE, rp.REPAIR_AND_RETRY})

SYMPTOM_ANALYSIS = Shape("symptom_analysis", normalize_symptom_analysis)
PRESCRIPTION = Shape(
    "prescription", normalize_prescription, prescription_fallback, frozenset({rp.SLICE_OUTER_BRACES})
)
MEDICATION_INFO = Shape(
    "medication_info", normalize_medication_info, medication_fallback, frozenset({rp.SLICE_OUTER_BRACES})
)
DRUG_INTERACTIONS = Shape("drug_interactions", normalize_interactions)
MOOD_RECOMMENDATIONS = Shape("mood_recommendations", normalize_mood_recommendations)
MOOD_INSIGHTS = Shape("mood_insights", normalize_insights, insights_fallback, _ALL_STAGES)
BEST_DAY = Shape("best_day", normalize_best_day)
