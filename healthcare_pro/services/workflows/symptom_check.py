"""Symptom check: validate, analyse, ask follow-up questions, refine.

    initial -> validating -> analyzing -> followup -> refining -> complete
                   |             |                        |
                   v             v                        v
               emergency       error  <-------------------+

An analysis without follow-up questions goes straight to ``complete``. From
``error`` the user re-issues the step that failed; from ``emergency`` they may
submit a new description.
"""
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Union

from healthcare_pro.services import prompts, shapes
from healthcare_pro.services.input_validator import ensure_acceptable
from healthcare_pro.services.response_parser import parse
from healthcare_pro.services.workflows.base import Workflow, WorkflowState as S, user_message
from healthcare_pro.utils.exceptions import (
    ApiError,
    ContentRefusedError,
    EmergencyDetected,
    ParseError,
    ValidationError,
)

logger = logging.getLogger("healthcare_pro")

ANALYSIS_TEMPERATURE = 0.3
REFINE_TEMPERATURE = 0.2
MAX_TOKENS = 2048
MAX_CONFIDENCE = 0.95
CONFIDENCE_STEP = 0.1

GENERIC_ANALYSIS_ERROR = "Unable to analyze symptoms. Please try again later."
GENERIC_REFINE_ERROR = "Failed to process follow-up questions. Please try again."
RATE_LIMIT_MESSAGE = "LLM API rate limit exceeded. Please check your usage limits or try again later."
INVALID_KEY_MESSAGE = "Invalid LLM API key. Please check your API key configuration."

ERROR_TABLE = (
    (("rate limit", "quota exceeded"), RATE_LIMIT_MESSAGE),
    (("Invalid API Key",), INVALID_KEY_MESSAGE),
    (("API key",), None),
)

_STEP_FAILURES = (ApiError, ParseError, ContentRefusedError)


def parse_answer(value: Union[bool, str]) -> bool:
    if isinstance(value, bool):
        return value
    lowered = str(value).strip().lower()
    if lowered in ("yes", "y", "true"):
        return True
    if lowered in ("no", "n", "false"):
        return False
    raise ValidationError("Answers must be yes or no", {"answer": value})


def diagnosis_log_values(report_id: str, analysis: Dict[str, Any]) -> Dict[str, Any]:
    risk = analysis.get("riskAssessment") or {}
    return {
        "symptom_report_id": report_id,
        "analysis_result": analysis,
        "possible_conditions": analysis.get("conditions") or [],
        "recommendations": analysis.get("recommendations") or [],
        "urgency_level": str(risk.get("overall") or "low").lower(),
        "follow_up_questions": analysis.get("followUpQuestions") or [],
        "ai_confidence": analysis.get("confidence", 0.5),
        "is_refined": bool(analysis.get("isRefined")),
    }


def mark_refined(refined: Dict[str, Any], previous: Dict[str, Any], answers: Dict[str, str]) -> Dict[str, Any]:
    previous_confidence = previous.get("confidence", 0.7)
    confidence = min(refined.get("confidence", 0.7) + CONFIDENCE_STEP, MAX_CONFIDENCE)
    out = dict(refined)
    out.update({
        "confidence": confidence,
        "isRefined": True,
        "refinedAt": datetime.now(timezone.utc).isoformat(),
        "previousConfidence": previous_confidence,
        "confidenceImprovement": round(confidence - previous_confidence, 3),
        "followUpProcessed": True,
        "followUpAnswers": answers,
        "source": "Groq AI - Refined",
    })
    return out


class SymptomCheckWorkflow(Workflow):
    kind = "symptom_check"
    transitions = {
        S.INITIAL: frozenset({S.VALIDATING}),
        S.VALIDATING: frozenset({S.ANALYZING, S.EMERGENCY, S.ERROR}),
        S.ANALYZING: frozenset({S.FOLLOWUP, S.COMPLETE, S.ERROR}),
        S.FOLLOWUP: frozenset({S.REFINING}),
        S.REFINING: frozenset({S.COMPLETE, S.ERROR}),
        S.ERROR: frozenset({S.VALIDATING, S.REFINING}),
        S.EMERGENCY: frozenset({S.VALIDATING}),
        S.COMPLETE: frozenset(),
    }

    def __init__(self, user_id: str):
        super().__init__(user_id)
        self.symptoms: str = ""
        self.details: Dict[str, Dict[str, Any]] = {}
        self.profile: Dict[str, Any] = {}
        self.analysis: Optional[Dict[str, Any]] = None
        self.initial_analysis: Optional[Dict[str, Any]] = None
        self.questions: list = []
        self.answers: Dict[int, bool] = {}
        self.report_id: Optional[str] = None
        self.emergency = False

    @property
    def formatted_answers(self) -> Dict[str, str]:
        return {q: ("Yes" if self.answers[i] else "No") for i, q in enumerate(self.questions) if i in self.answers}

    # ---- steps ----

    async def submit(self, symptoms: str, llm, store, details=None, profile=None) -> "SymptomCheckWorkflow":
        if not (self.state == S.ERROR and self.failed_step == "submit"):
            self.require(S.INITIAL, S.EMERGENCY, action="submit")
        self.transition(S.VALIDATING)
        self.clear_error()
        self.message = None
        self.emergency = False
        self.symptoms = symptoms or ""
        self.details = dict(details or {})
        self.profile = dict(profile or {})

        try:
            ensure_acceptable(self.symptoms)
        except EmergencyDetected as exc:
            self.transition(S.EMERGENCY)
            self.emergency = True
            self.message = exc.message
            return self
        except ValidationError as exc:
            self.fail(exc.message, step="submit")
            return self

        self.transition(S.ANALYZING)
        prompt = prompts.build_symptom_prompt(prompts.SymptomPromptInput(
            symptoms=prompts.enrich_symptoms(self.symptoms, self.details),
            profile=self.profile,
        ))
        try:
            raw = await llm.complete(prompt, temperature=ANALYSIS_TEMPERATURE, max_tokens=MAX_TOKENS)
            analysis = parse(raw, shapes.SYMPTOM_ANALYSIS)
        except _STEP_FAILURES as exc:
            logger.warning({"workflow": self.kind, "id": self.id, "step": "analyze", "error": str(exc)})
            self.fail(user_message(exc, ERROR_TABLE, GENERIC_ANALYSIS_ERROR), step="submit")
            return self

        self.analysis = analysis
        self.initial_analysis = analysis
        self.questions = list(analysis["followUpQuestions"])
        self.answers = {}
        self.report_id = None
        self.transition(S.FOLLOWUP if self.questions else S.COMPLETE)
        self.persist(lambda: self._save_report(store, analysis), "initial_analysis")
        return self

    def answer(self, index: int, value: Union[bool, str]) -> "SymptomCheckWorkflow":
        self.require(S.FOLLOWUP, action="answer")
        if not 0 <= index < len(self.questions):
            raise ValidationError("No follow-up question with that index", {"index": index})
        self.answers[index] = parse_answer(value)
        return self

    def unanswered(self) -> list:
        return [i for i in range(len(self.questions)) if i not in self.answers]

    async def refine(self, llm, store) -> "SymptomCheckWorkflow":
        if not (self.state == S.ERROR and self.failed_step == "refine"):
            self.require(S.FOLLOWUP, action="refine")
        missing = self.unanswered()
        if missing:
            raise ValidationError("Please answer all follow-up questions before submitting", {"unanswered": missing})

        self.transition(S.REFINING)
        self.clear_error()
        answers = self.formatted_answers
        prompt = prompts.build_refinement_prompt(prompts.RefinementPromptInput(
            symptoms=prompts.enrich_symptoms(self.symptoms, self.details),
            previous_analysis=self.initial_analysis or {},
            follow_up_answers=answers,
            profile=self.profile,
        ))
        try:
            raw = await llm.complete(prompt, temperature=REFINE_TEMPERATURE, max_tokens=MAX_TOKENS)
            refined = parse(raw, shapes.SYMPTOM_ANALYSIS)
        except _STEP_FAILURES as exc:
            logger.warning({"workflow": self.kind, "id": self.id, "step": "refine", "error": str(exc)})
            self.fail(user_message(exc, ERROR_TABLE, GENERIC_REFINE_ERROR), step="refine")
            return self

        self.analysis = mark_refined(refined, self.initial_analysis or {}, answers)
        self.transition(S.COMPLETE)
        analysis = self.analysis
        self.persist(lambda: self._save_refined(store, analysis, answers), "refined_analysis")
        return self

    async def retry(self, llm, store) -> "SymptomCheckWorkflow":
        self.require(S.ERROR, action="retry")
        if self.failed_step == "refine":
            return await self.refine(llm, store)
        return await self.submit(self.symptoms, llm, store, self.details, self.profile)

    # ---- persistence ----

    def _report_values(self, follow_up_answers: Optional[Dict[str, str]] = None) -> Dict[str, Any]:
        return {
            "symptoms": [self.symptoms],
            "symptom_details": self.details,
            "user_profile": self.profile,
            "follow_up_answers": follow_up_answers or {},
            "severity_level": "moderate",
        }

    def _save_report(self, store, analysis: Dict[str, Any]) -> None:
        if self.report_id is None:
            report = store.insert("symptom_reports", self._report_values())
            self.report_id = report["id"]
        store.insert("diagnosis_logs", diagnosis_log_values(self.report_id, analysis))

    def _save_refined(self, store, analysis: Dict[str, Any], answers: Dict[str, str]) -> None:
        if self.report_id is None:
            report = store.insert("symptom_reports", self._report_values(answers))
            self.report_id = report["id"]
        store.insert("diagnosis_logs", diagnosis_log_values(self.report_id, analysis))

    def snapshot(self) -> Dict[str, Any]:
        out = super().snapshot()
        out.update({
            "symptoms": self.symptoms,
            "emergency": self.emergency,
            "analysis": self.analysis,
            "follow_up_questions": [
                {"index": i, "question": q, "answer": self.answers.get(i)} for i, q in enumerate(self.questions)
            ],
            "report_id": self.report_id,
        })
        return out
