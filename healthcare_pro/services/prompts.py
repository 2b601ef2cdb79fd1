"""Prompt builders.

Each builder is a pure function of one input dataclass and returns the prompt
text; nothing here touches the network or the database.
"""
import json
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence, Tuple

from healthcare_pro.services.shapes import DISCLAIMER

WEEKDAYS = ("Sunday", "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday")


@dataclass(frozen=True)
class SymptomPromptInput:
    symptoms: str
    profile: Dict[str, Any] = field(default_factory=dict)
    follow_up_answers: Dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class RefinementPromptInput:
    symptoms: str
    previous_analysis: Dict[str, Any]
    follow_up_answers: Dict[str, str]
    profile: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class PrescriptionPromptInput:
    prescription_text: str
    profile: Dict[str, Any] = field(default_factory=dict)
    analysis_type: str = "full"


@dataclass(frozen=True)
class InteractionPromptInput:
    medications: Tuple[str, ...]


@dataclass(frozen=True)
class MedicationPromptInput:
    medication_name: str


@dataclass(frozen=True)
class MoodRecommendationInput:
    average_mood: float = 3
    mood_trend: str = "neutral"
    total_entries: int = 0
    common_emotions: Sequence[Dict[str, Any]] = ()
    common_activities: Sequence[Dict[str, Any]] = ()
    recent7_average: float = 3
    previous7_average: float = 3
    recent_entries: Sequence[Dict[str, Any]] = ()


@dataclass(frozen=True)
class MoodInsightsInput:
    avg_mood: float = 0
    total_entries: int = 0
    mood_distribution: Dict[int, int] = field(default_factory=dict)
    top_tags: Sequence[Tuple[str, int]] = ()
    top_emotions: Sequence[Tuple[str, int]] = ()
    weekday_avgs: Sequence[float] = (0, 0, 0, 0, 0, 0, 0)
    hourly_avgs: Sequence[float] = tuple([0] * 24)
    entries: Sequence[Dict[str, Any]] = ()
    timeframe: str = "period"


@dataclass(frozen=True)
class BestDayInput:
    entries: Sequence[Dict[str, Any]]


# ---- Symptom check ----

def describe_profile(profile: Dict[str, Any]) -> str:
    age = profile.get("age")
    gender = profile.get("gender")
    if not (age and gender):
        return "Patient profile: Not provided."
    history = ""
    preconditions = profile.get("preconditions") or []
    if preconditions:
        history = f" with medical history of: {', '.join(preconditions)}"
    return f"Patient profile: {age}-year-old {gender}{history}."


def enrich_symptoms(text: str, details: Optional[Dict[str, Dict[str, Any]]] = None) -> str:
    """Append selected symptom details, e.g. "headache: mild severity, lasting 2 days"."""
    parts = []
    for name, info in (details or {}).items():
        info = info or {}
        piece = name
        if info.get("severity"):
            piece += f": {info['severity']} severity"
        if info.get("duration"):
            piece += f"{',' if info.get('severity') else ':'} lasting {info['duration']}"
        parts.append(piece)
    if not parts:
        return text.strip()
    return f"{text.strip()}. Details: {'; '.join(parts)}"


SYMPTOM_RESPONSE_SCHEMA = """{
  "conditions": [
    {"name": "Condition Name", "likelihood": 75, "description": "Brief description", "severity": "Low|Medium|High"}
  ],
  "riskAssessment": {
    "overall": "Low|Medium|High",
    "urgency": "Monitor at home|See doctor within days|Seek immediate care",
    "timeframe": "Specific guidance on when to seek care"
  },
  "recommendations": ["Specific actionable recommendation"],
  "homeRemedies": ["Safe home remedy"],
  "redFlags": ["Warning sign that requires immediate attention"],
  "similarCases": [{"case": "Brief case description", "outcome": "What happened", "duration": "Recovery time"}],
  "followUpQuestions": ["Yes/no question to refine diagnosis?"],
  "disclaimer": "%s",
  "confidence": 0.85
}""" % DISCLAIMER


def build_symptom_prompt(ctx: SymptomPromptInput) -> str:
    follow_up = ""
    if ctx.follow_up_answers:
        pairs = "; ".join(f"Q: {q} - A: {a}" for q, a in ctx.follow_up_answers.items())
        follow_up = f"\n\nFollow-up information: {pairs}"
    return f"""You are a certified virtual medical assistant providing preliminary health assessment. You MUST ONLY analyze legitimate medical or psychological symptoms and health concerns. {describe_profile(ctx.profile)}

STRICT CONTENT POLICY:
- ONLY respond to actual medical symptoms, physical conditions, or psychological health concerns
- REJECT any non-medical content, inappropriate language, or random text

Patient reports these symptoms: {ctx.symptoms}{follow_up}

IMPORTANT: If the reported symptoms are not legitimate medical or psychological concerns, respond with:
{{"error": "Please provide only legitimate medical symptoms or health concerns. Non-medical content cannot be analyzed."}}

Otherwise provide a comprehensive analysis in the following JSON structure (respond ONLY with valid JSON):

{SYMPTOM_RESPONSE_SCHEMA}

GUIDELINES:
- Provide 2-3 most likely conditions with realistic likelihood percentages
- Include red flag symptoms that warrant immediate attention
- Ask 3 yes/no follow-up questions that would most change the assessment
- Keep responses professional and non-alarming
- Do not provide specific medication recommendations
- Encourage professional medical consultation for serious concerns

Respond with ONLY the JSON structure above, no additional text."""


def build_refinement_prompt(ctx: RefinementPromptInput) -> str:
    return f"""You are a certified virtual medical assistant providing a refined health assessment. The follow-up answers below should improve the accuracy and specificity of the initial analysis.

INITIAL ANALYSIS:
{json.dumps(ctx.previous_analysis, indent=2, default=str)}

ORIGINAL SYMPTOMS: {ctx.symptoms}

PATIENT PROFILE: {json.dumps(ctx.profile, default=str)}

FOLLOW-UP ANSWERS: {json.dumps(ctx.follow_up_answers)}

REFINEMENT RULES:
- If an answer confirms a symptom, raise the likelihood of related conditions
- If an answer rules a symptom out, lower the likelihood of related conditions
- Add conditions the answers reveal and remove conditions they contradict
- Give specific recommendations with care timelines (e.g. "see a doctor within 24-48 hours if X occurs")
- Add red flags specific to the refined assessment

Respond ONLY with valid JSON in exactly the same structure as the initial analysis."""


# ---- Prescriptions ----

PRESCRIPTION_SYSTEM_PROMPT = """You are a clinical pharmacist and medical AI assistant specializing in prescription analysis and medication management. Provide accurate, patient-friendly explanations of prescriptions and medications.

YOU MUST RETURN ONLY VALID JSON - NO MARKDOWN, NO EXPLANATION TEXT.

This is an educational tool. Patients must consult healthcare professionals before making medication decisions and must never stop or change medications without medical supervision.

Return a JSON object with this exact structure:
{
  "prescriptionSummary": {"totalMedications": 0, "complexityLevel": "Low/Medium/High", "estimatedCost": "string", "treatmentDuration": "string"},
  "medications": [{"name": "string", "genericName": "string", "dosage": "string", "frequency": "string", "route": "string", "duration": "string", "purpose": "string", "category": "string", "instructions": "string", "foodInteractions": "string", "storageInstructions": "string", "costEstimate": "string"}],
  "drugInteractions": [{"medications": ["string"], "interactionType": "Minor/Moderate/Major/Contraindicated", "description": "string", "recommendations": "string"}],
  "sideEffects": {"common": ["string"], "serious": ["string"], "whenToSeekHelp": ["string"]},
  "contraindications": [{"condition": "string", "medications": ["string"], "severity": "string", "explanation": "string"}],
  "patientInstructions": [{"category": "string", "instruction": "string", "importance": "High/Medium/Low"}],
  "monitoringParameters": [{"parameter": "string", "frequency": "string", "normalRange": "string", "reason": "string"}],
  "lifestyle": {"dietary": ["string"], "activity": ["string"], "avoidance": ["string"], "sleep": ["string"], "hydration": ["string"], "stressManagement": ["string"], "other": ["string"]},
  "warningsAndPrecautions": [{"warning": "string", "severity": "Critical/High/Medium/Low", "explanation": "string"}],
  "emergencyContacts": {"poisonControl": "1-800-222-1222", "instructions": "When to call emergency services"}
}

Extract every medication with complete details, identify interactions, highlight serious warnings and contraindications, include monitoring requirements and at least 6 specific lifestyle recommendations, and take the patient profile into account."""


def _listish(value: Any, empty: str) -> str:
    if isinstance(value, (list, tuple)):
        return ", ".join(str(v) for v in value) or empty
    return str(value) if value else empty


def build_prescription_prompt(ctx: PrescriptionPromptInput) -> str:
    p = ctx.profile
    return f"""Please analyze this prescription and provide a comprehensive explanation:

Prescription Details:
{ctx.prescription_text}

Patient Profile:
- Age: {p.get('age') or 'Not specified'}
- Gender: {p.get('gender') or 'Not specified'}
- Weight: {p.get('weight') or 'Not specified'}
- Allergies: {_listish(p.get('allergies'), 'None specified')}
- Medical Conditions: {_listish(p.get('preconditions'), 'None specified')}
- Current Medications: {_listish(p.get('medications'), 'None specified')}

Analysis Type: {ctx.analysis_type}

Focus on medication safety, interactions, proper usage and patient education."""


INTERACTION_SYSTEM_PROMPT = """You are a clinical pharmacist specializing in drug interactions. Analyze the provided medications for potential interactions and provide detailed safety information.

Return your analysis as a JSON object with this structure:
{
  "interactions": [{"medications": ["drug1", "drug2"], "severity": "Minor/Moderate/Major/Contraindicated", "mechanism": "string", "clinicalEffects": "string", "management": "string", "monitoringRequired": "string"}],
  "riskLevel": "Low/Medium/High/Critical",
  "recommendations": ["string"],
  "alternativeOptions": ["string"]
}"""


def build_interaction_prompt(ctx: InteractionPromptInput) -> str:
    listed = "\n".join(f"{i}. {med}" for i, med in enumerate(ctx.medications, start=1))
    return (
        f"Analyze these medications for drug interactions:\n{listed}\n\n"
        "Please provide a comprehensive interaction analysis with clinical significance and management recommendations."
    )


MEDICATION_SYSTEM_PROMPT = """You are a clinical pharmacist providing comprehensive medication information.

YOU MUST RETURN ONLY VALID JSON - NO MARKDOWN, NO EXPLANATION TEXT.

Return a JSON object with this exact structure:
{
  "medication": {"name": "string", "genericName": "string", "brandNames": ["string"], "classification": "string", "mechanism": "string", "indications": ["string"], "contraindications": ["string"], "dosageForm": ["string"], "strengthsAvailable": ["string"]},
  "dosing": {"adult": "string", "pediatric": "string", "geriatric": "string", "renalAdjustment": "string", "hepaticAdjustment": "string"},
  "administration": {"route": "string", "instructions": "string", "foodInteractions": "string", "timingRecommendations": "string"},
  "sideEffects": {"common": ["string"], "serious": ["string"], "rare": ["string"]},
  "monitoring": {"parameters": ["string"], "frequency": "string", "labTests": ["string"]},
  "patientEducation": {"keyPoints": ["string"], "lifestyle": ["string"], "warnings": ["string"]},
  "storage": "string",
  "costInformation": "string"
}"""


def build_medication_prompt(ctx: MedicationPromptInput) -> str:
    return (
        f"Please provide comprehensive information about this medication: {ctx.medication_name}\n\n"
        "Include all relevant clinical information, dosing guidelines, safety considerations, and patient education points."
    )


# ---- Mood ----

def mood_label(mood: int) -> str:
    if mood >= 5:
        return "Very Good"
    if mood >= 4:
        return "Good"
    if mood >= 3:
        return "Neutral"
    if mood >= 2:
        return "Low"
    return "Very Low"


def _entry_day(entry: Dict[str, Any]) -> str:
    stamp = entry.get("recorded_at") or entry.get("date")
    if isinstance(stamp, datetime):
        return stamp.date().isoformat()
    return str(stamp or "unknown date")[:10]


def _describe_entry(entry: Dict[str, Any], default_notes: str) -> str:
    mood = entry.get("mood") or 0
    return (
        f"Mood={mood_label(mood)}({mood}/5), "
        f"Emotions=[{', '.join(entry.get('emotions') or []) or 'none'}], "
        f"Activities=[{', '.join(entry.get('activities') or []) or 'none'}], "
        f"Notes=\"{entry.get('notes') or default_notes}\""
    )


def is_minimal_entry(entry: Optional[Dict[str, Any]]) -> bool:
    return bool(entry) and len((entry.get("notes") or "").strip()) < 5


def build_mood_recommendation_prompt(ctx: MoodRecommendationInput) -> str:
    latest = ctx.recent_entries[0] if ctx.recent_entries else None
    minimal = is_minimal_entry(latest)

    if minimal:
        label = mood_label(latest.get("mood") or 0)
        context = (
            f"MOST RECENT ENTRY (TODAY): {_describe_entry(latest, 'Simple emoji entry')}\n\n"
            "This is a simple, quick mood check-in without detailed notes."
        )
        instructions = f"""CURRENT ENTRY ANALYSIS (FOCUS ON THIS):
1. The user just logged a simple mood entry ({label}) without detailed notes
2. Base recommendations on the current mood level and selected emotions/activities
3. Provide general wellness advice appropriate for someone feeling "{label}"
4. Do NOT reference issues from older entries"""
    else:
        lines = [
            f"Entry ({_entry_day(e)}): {_describe_entry(e, 'No notes')}" for e in list(ctx.recent_entries)[:5]
        ]
        context = "RECENT MOOD ENTRIES (ANALYZE CAREFULLY):\n" + ("\n".join(lines) or "No recent entries available")
        instructions = """ANALYSIS INSTRUCTIONS:
1. Read each entry's notes carefully
2. Identify specific issues mentioned (career, relationships, family, health, finances, etc.)
3. Detect contradictions between the mood rating and the notes
4. Give actionable advice for the specific problems mentioned, not generic wellness tips"""

    emotions = ", ".join(f"{e['emotion']} ({e['count']} times)" for e in ctx.common_emotions) or "None reported"
    activities = ", ".join(f"{a['activity']} ({a['count']} times)" for a in ctx.common_activities) or "None reported"

    return f"""You are a certified mental health advisor providing personalized wellness recommendations based on mood tracking data.

MOOD DATA ANALYSIS:
- Average Mood: {ctx.average_mood}/5 (1=Very Low, 5=Very High)
- Recent Trend: {ctx.mood_trend} (recent 7-entry average: {ctx.recent7_average}, previous 7: {ctx.previous7_average})
- Total Journal Entries: {ctx.total_entries}
- Common Emotions: {emotions}
- Common Activities: {activities}

{context}

{instructions}

CONTENT REQUIREMENTS:
- ONLY provide appropriate mental health and wellness recommendations
- NO medication recommendations and NO diagnosis
- Focus on evidence-based wellness practices

Provide 6-8 personalized recommendations in this JSON format:

{{
  "recommendations": [
    {{
      "title": "Actionable recommendation",
      "description": "Helpful description (2-3 sentences)",
      "category": "exercise|mindfulness|social|routine|creativity|professional|nutrition|sleep|career|academic|coping",
      "priority": "high|medium|low",
      "icon": "appropriate emoji",
      "relevantConcerns": ["issue this addresses"]
    }}
  ]
}}

RESPOND ONLY WITH VALID JSON - NO ADDITIONAL TEXT OR EXPLANATIONS."""


def _best_and_worst(values: Sequence[float]) -> Tuple[str, str]:
    filled = [v for v in values if v > 0]
    if not filled:
        return "N/A", "N/A"
    best = max(values)
    worst = min(filled)
    return f"{list(values).index(best)} ({best:.1f}/5)", f"{list(values).index(worst)} ({worst:.1f}/5)"


INSIGHT_HINTS: List[Tuple[str, str]] = [
    ("weeklyMoodSummary", "Natural language summary of mood trends this period"),
    ("triggerPatternDetection", "Identified patterns in mood triggers and timing"),
    ("behavioralSuggestion", "Specific actionable advice to improve mood"),
    ("tagCorrelation", "Which activities/tags correlate with mood changes"),
    ("sentimentMoodMapping", "How journal entry length/content relates to mood"),
    ("moodSpikeDetection", "Notable mood changes and their potential causes"),
    ("timeOfDayInsights", "When mood is typically highest/lowest and why"),
    ("weekdayPatterns", "Day-of-week mood patterns and insights"),
    ("predictiveInsights", "Prediction of future mood trends based on current patterns"),
    ("customTitle", "Creative title for this mood period"),
    ("riskFactors", "Any concerning patterns that need attention"),
    ("positivePatterns", "Mood-boosting activities and circumstances to encourage"),
]


def build_mood_insights_prompt(ctx: MoodInsightsInput) -> str:
    distribution = ", ".join(f"{mood}/5: {count} times" for mood, count in ctx.mood_distribution.items())
    tags = ", ".join(f"{tag} ({count}x)" for tag, count in ctx.top_tags)
    emotions = ", ".join(f"{emotion} ({count}x)" for emotion, count in ctx.top_emotions)
    best_day, worst_day = _best_and_worst(ctx.weekday_avgs)
    best_hour, _ = _best_and_worst(ctx.hourly_avgs)
    recent = "\n".join(
        f"- {_entry_day(e)}: Mood {e.get('mood') or 'N/A'}/5, "
        f"Activities: [{', '.join(e.get('activities') or []) or 'none'}], "
        f"Emotions: [{', '.join(e.get('emotions') or []) or 'none'}], "
        f"Notes: \"{e.get('notes') or 'none'}\""
        for e in list(ctx.entries)[-10:]
    )
    keys = ",\n".join(f'  "{key}": "{hint}"' for key, hint in INSIGHT_HINTS)
    return f"""As a mental health analytics expert, analyze this mood data and provide advanced insights:

MOOD DATA SUMMARY:
- Average Mood: {ctx.avg_mood}/5 over {ctx.total_entries} entries ({ctx.timeframe})
- Mood Distribution: {distribution or 'No mood data available'}
- Top Activities: {tags or 'No activity data'}
- Top Emotions: {emotions or 'No emotion data'}
- Best Day (0=Sunday): {best_day}
- Worst Day (0=Sunday): {worst_day}
- Best Hour: {best_hour}

RECENT ENTRIES (last 10):
{recent or 'No recent entries available'}

Provide a JSON response with these specific insights:

{{
{keys}
}}

Focus on actionable insights that help understand mood patterns and improve mental wellness."""


def build_best_day_prompt(ctx: BestDayInput) -> str:
    return f"""You are a mental health assistant. Given the following mood entries for a user (each with date, mood score 1-5, emoji, and notes), analyze both the mood/emoji and the notes. Determine:
1. The most positive (best) day of the month
2. The most challenging day of the month

For each, return the date, mood score, emoji and a short reason based on both mood/emoji and notes.

Respond ONLY in this JSON format:
{{
  "bestDay": {{ "date": "YYYY-MM-DD", "mood": 1-5, "emoji": "", "reason": "..." }},
  "challengingDay": {{ "date": "YYYY-MM-DD", "mood": 1-5, "emoji": "", "reason": "..." }}
}}

Mood entries:
{json.dumps(list(ctx.entries), indent=2, default=str)}
"""
