"""Prescription explainer, drug interaction check and medication lookup."""
import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence

from healthcare_pro.services import prompts, shapes
from healthcare_pro.services.response_parser import parse
from healthcare_pro.services.workflows.base import SyncStatus, Workflow, WorkflowState as S, user_message
from healthcare_pro.utils.exceptions import (
    ApiError,
    ContentRefusedError,
    ParseError,
    ValidationError,
)

logger = logging.getLogger("healthcare_pro")

TEMPERATURE = 0.2
TOP_P = 0.9
PRESCRIPTION_MAX_TOKENS = 3000
INTERACTION_MAX_TOKENS = 2000
MEDICATION_MAX_TOKENS = 3000
MAX_PRESCRIPTION_CHARS = 10000
ANALYSIS_TYPES = ("full", "drug-interactions", "side-effects", "dosage", "lifestyle")

GENERIC_ERROR = "Analysis failed. Please try again."
ERROR_TABLE = (
    (("rate limit",), "Rate limit exceeded. Please try again in a few minutes."),
    (("Invalid API Key",), "Invalid API key. Please check your Groq API configuration."),
    (("API key",), None),
    (("JSON",), "Failed to parse AI response. Please try again."),
)


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class PrescriptionWorkflow(Workflow):
    kind = "prescription"
    transitions = {
        S.INITIAL: frozenset({S.ANALYZING}),
        S.ANALYZING: frozenset({S.COMPLETE, S.ERROR}),
        S.ERROR: frozenset({S.ANALYZING}),
        S.COMPLETE: frozenset(),
    }

    def __init__(self, user_id: str):
        super().__init__(user_id)
        self.prescription_text = ""
        self.profile: Dict[str, Any] = {}
        self.analysis_type = "full"
        self.result: Optional[Dict[str, Any]] = None
        self.analysis_id: Optional[str] = None

    async def analyze(self, prescription_text: str, llm, store, profile=None, analysis_type: str = "full"):
        text = (prescription_text or "").strip()
        if not text:
            raise ValidationError("Please provide prescription information")
        if len(text) > MAX_PRESCRIPTION_CHARS:
            raise ValidationError(f"Prescription text is too long (maximum {MAX_PRESCRIPTION_CHARS} characters)")
        if analysis_type not in ANALYSIS_TYPES:
            raise ValidationError("Unknown analysis type", {"allowed": list(ANALYSIS_TYPES)})

        self.transition(S.ANALYZING)
        self.clear_error()
        self.prescription_text = text
        self.profile = dict(profile or {})
        self.analysis_type = analysis_type

        prompt = prompts.build_prescription_prompt(prompts.PrescriptionPromptInput(
            prescription_text=text, profile=self.profile, analysis_type=analysis_type,
        ))
        try:
            raw = await llm.complete(
                prompt,
                temperature=TEMPERATURE,
                max_tokens=PRESCRIPTION_MAX_TOKENS,
                system=prompts.PRESCRIPTION_SYSTEM_PROMPT,
                top_p=TOP_P,
            )
            analysis = parse(raw, shapes.PRESCRIPTION, source_text=text)
        except (ApiError, ParseError, ContentRefusedError) as exc:
            logger.warning({"workflow": self.kind, "id": self.id, "error": str(exc)})
            self.fail(user_message(exc, ERROR_TABLE, GENERIC_ERROR), step="analyze")
            return self

        self.result = {
            "success": True,
            "analysis": analysis,
            "timestamp": _now_iso(),
            "disclaimer": shapes.PRESCRIPTION_DISCLAIMER,
        }
        self.transition(S.COMPLETE)
        saved = self.persist(lambda: store.insert("prescription_analyses", {
            "prescription_text": text,
            "analysis_result": analysis,
            "user_profile": self.profile,
            "analysis_type": analysis_type,
        }), "prescription_analysis")
        if saved:
            self.analysis_id = saved["id"]
        return self

    async def retry(self, llm, store):
        self.require(S.ERROR, action="retry")
        return await self.analyze(self.prescription_text, llm, store, self.profile, self.analysis_type)

    def snapshot(self) -> Dict[str, Any]:
        out = super().snapshot()
        out.update({
            "analysis_type": self.analysis_type,
            "result": self.result,
            "analysis_id": self.analysis_id,
        })
        return out


def clean_medication_names(medications: Sequence[str]) -> List[str]:
    names = []
    for med in medications or []:
        name = str(med).strip()
        if name and name.lower() not in {n.lower() for n in names}:
            names.append(name)
    return names


async def check_interactions(medications: Sequence[str], llm) -> Dict[str, Any]:
    names = clean_medication_names(medications)
    if not names:
        raise ValidationError("Please provide at least one medication")
    raw = await llm.complete(
        prompts.build_interaction_prompt(prompts.InteractionPromptInput(tuple(names))),
        temperature=TEMPERATURE,
        max_tokens=INTERACTION_MAX_TOKENS,
        system=prompts.INTERACTION_SYSTEM_PROMPT,
        top_p=TOP_P,
    )
    analysis = parse(raw, shapes.DRUG_INTERACTIONS)
    return {"success": True, "analysis": analysis, "timestamp": _now_iso()}


async def lookup_medication(medication_name: str, llm, store) -> Dict[str, Any]:
    """Fetch medication information and record the search.

    The search row is an audit trail only; a failure to write it is logged and
    reported through ``sync_status``.
    """
    name = (medication_name or "").strip()
    if not name:
        raise ValidationError("Please provide medication name")
    raw = await llm.complete(
        prompts.build_medication_prompt(prompts.MedicationPromptInput(name)),
        temperature=TEMPERATURE,
        max_tokens=MEDICATION_MAX_TOKENS,
        system=prompts.MEDICATION_SYSTEM_PROMPT,
        top_p=TOP_P,
    )
    info = parse(raw, shapes.MEDICATION_INFO, source_text=name)

    sync_status = SyncStatus.SYNCED
    try:
        store.insert("medication_searches", {"medication_name": name, "medication_info": info})
    except Exception as exc:
        logger.warning({"function": "lookup_medication", "persist": "medication_search",
                        "error": getattr(exc, "message", None) or str(exc)})
        sync_status = SyncStatus.FAILED
    return {"success": True, "info": info, "timestamp": _now_iso(), "sync_status": sync_status.value}
