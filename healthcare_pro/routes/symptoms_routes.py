# healthcare_pro/routes/symptoms_routes.py
import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.orm import Session

from healthcare_pro.auth.deps import get_current_user
from healthcare_pro.db.session import get_db
from healthcare_pro.middleware.rate_limit import limiter, llm_limit, user_rate_key
from healthcare_pro.models.user import User
from healthcare_pro.routes.profile_routes import profile_context
from healthcare_pro.schemas.symptoms import FollowUpAnswers, SymptomCheckOut, SymptomCheckRequest
from healthcare_pro.services.llm_client import LLMClient, get_llm_client
from healthcare_pro.services.store import DataStore
from healthcare_pro.services.workflows.registry import WorkflowRegistry, get_registry
from healthcare_pro.services.workflows.symptom_check import SymptomCheckWorkflow

router = APIRouter(prefix="/api/symptoms", tags=["symptoms"])
logger = logging.getLogger("healthcare_pro")

HISTORY_LIMIT = 10


@router.post("/check", response_model=SymptomCheckOut, status_code=status.HTTP_200_OK)
@limiter.limit(llm_limit, key_func=user_rate_key)
async def start_check(
    request: Request,
    payload: SymptomCheckRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    llm: LLMClient = Depends(get_llm_client),
    registry: WorkflowRegistry = Depends(get_registry),
):
    """Validate and analyse a symptom description.

    Step failures come back as a workflow in the ``error`` state with a user
    message, not as an HTTP error, so the client can offer a retry.
    """
    profile = profile_context(db, current_user.id) if payload.use_profile else {}
    details = {name: d.model_dump(exclude_none=True) for name, d in payload.details.items()}
    workflow = registry.add(SymptomCheckWorkflow(current_user.id))
    await workflow.submit(payload.symptoms, llm, DataStore(db, current_user.id), details, profile)
    return workflow.snapshot()


@router.get("/check/{workflow_id}", response_model=SymptomCheckOut)
def get_check(
    workflow_id: str,
    current_user: User = Depends(get_current_user),
    registry: WorkflowRegistry = Depends(get_registry),
):
    return registry.get(current_user.id, workflow_id, SymptomCheckWorkflow).snapshot()


@router.post("/check/{workflow_id}/answers", response_model=SymptomCheckOut)
def answer_questions(
    workflow_id: str,
    payload: FollowUpAnswers,
    current_user: User = Depends(get_current_user),
    registry: WorkflowRegistry = Depends(get_registry),
):
    workflow = registry.get(current_user.id, workflow_id, SymptomCheckWorkflow)
    for item in payload.answers:
        workflow.answer(item.index, item.answer)
    return workflow.snapshot()


@router.post("/check/{workflow_id}/refine", response_model=SymptomCheckOut)
@limiter.limit(llm_limit, key_func=user_rate_key)
async def refine_check(
    request: Request,
    workflow_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    llm: LLMClient = Depends(get_llm_client),
    registry: WorkflowRegistry = Depends(get_registry),
):
    workflow = registry.get(current_user.id, workflow_id, SymptomCheckWorkflow)
    await workflow.refine(llm, DataStore(db, current_user.id))
    return workflow.snapshot()


@router.post("/check/{workflow_id}/retry", response_model=SymptomCheckOut)
@limiter.limit(llm_limit, key_func=user_rate_key)
async def retry_check(
    request: Request,
    workflow_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    llm: LLMClient = Depends(get_llm_client),
    registry: WorkflowRegistry = Depends(get_registry),
):
    workflow = registry.get(current_user.id, workflow_id, SymptomCheckWorkflow)
    await workflow.retry(llm, DataStore(db, current_user.id))
    return workflow.snapshot()


def _matches(report: Dict[str, Any], search: str) -> bool:
    text = " ".join(str(s) for s in report.get("symptoms") or []).lower()
    return search.lower() in text


@router.get("/reports")
def list_reports(
    search: Optional[str] = Query(None, max_length=200),
    limit: int = Query(HISTORY_LIMIT, ge=1, le=100),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> List[Dict[str, Any]]:
    """Saved symptom reports, newest first, each with its latest diagnosis log."""
    store = DataStore(db, current_user.id)
    reports = store.select("symptom_reports", limit=None if search else limit)
    if search:
        reports = [r for r in reports if _matches(r, search)][:limit]
    for report in reports:
        logs = store.select("diagnosis_logs", filters={"symptom_report_id": report["id"]}, limit=1)
        report["diagnosis"] = logs[0] if logs else None
    return reports


@router.delete("/reports/{report_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_report(
    report_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    DataStore(db, current_user.id).delete("symptom_reports", report_id)
    return None
