# healthcare_pro/schemas/symptoms.py
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, Field


class SymptomDetail(BaseModel):
    severity: Optional[str] = Field(None, description="mild|moderate|severe")
    duration: Optional[str] = Field(None, description="Free text, e.g. '2 days'")


class SymptomCheckRequest(BaseModel):
    """Start a symptom check. Length limits are enforced by the input validator."""

    symptoms: str = Field(..., description="User-provided description of symptoms.")
    details: Dict[str, SymptomDetail] = Field(default_factory=dict)
    use_profile: bool = Field(True, description="Include the stored user profile in the prompt.")


class FollowUpAnswer(BaseModel):
    index: int = Field(..., ge=0)
    answer: Union[bool, str]


class FollowUpAnswers(BaseModel):
    answers: List[FollowUpAnswer] = Field(..., min_length=1)


class FollowUpQuestionOut(BaseModel):
    index: int
    question: str
    answer: Optional[bool] = None


class WorkflowOut(BaseModel):
    id: str
    kind: str
    state: str
    message: Optional[str] = None
    error: Optional[str] = None
    failed_step: Optional[str] = None
    sync_status: str
    sync_error: Optional[str] = None
    created_at: str
    updated_at: str


class SymptomCheckOut(WorkflowOut):
    symptoms: str
    emergency: bool = False
    analysis: Optional[Dict[str, Any]] = None
    follow_up_questions: List[FollowUpQuestionOut] = Field(default_factory=list)
    report_id: Optional[str] = None
