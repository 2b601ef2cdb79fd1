# healthcare_pro/routes/prescription_routes.py
import logging
from typing import Any, Dict, List

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.orm import Session

from healthcare_pro.auth.deps import get_current_user
from healthcare_pro.db.session import get_db
from healthcare_pro.middleware.rate_limit import limiter, llm_limit, user_rate_key
from healthcare_pro.models.user import User
from healthcare_pro.routes.profile_routes import profile_context
from healthcare_pro.schemas.prescriptions import (
    InteractionRequest,
    MedicationLookupRequest,
    PrescriptionOut,
    PrescriptionRequest,
)
from healthcare_pro.services.llm_client import LLMClient, get_llm_client
from healthcare_pro.services.store import DataStore
from healthcare_pro.services.workflows.prescription import (
    PrescriptionWorkflow,
    check_interactions,
    lookup_medication,
)
from healthcare_pro.services.workflows.registry import WorkflowRegistry, get_registry

router = APIRouter(prefix="/api/prescriptions", tags=["prescriptions"])
medications_router = APIRouter(prefix="/api/medications", tags=["medications"])
logger = logging.getLogger("healthcare_pro")

HISTORY_LIMIT = 10


@router.post("/analyze", response_model=PrescriptionOut)
@limiter.limit(llm_limit, key_func=user_rate_key)
async def analyze_prescription(
    request: Request,
    payload: PrescriptionRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    llm: LLMClient = Depends(get_llm_client),
    registry: WorkflowRegistry = Depends(get_registry),
):
    """Explain a prescription. Bad input is rejected with 422 before any LLM call."""
    profile = profile_context(db, current_user.id) if payload.use_profile else {}
    workflow = PrescriptionWorkflow(current_user.id)
    await workflow.analyze(
        payload.prescription_text, llm, DataStore(db, current_user.id), profile, payload.analysis_type,
    )
    registry.add(workflow)
    return workflow.snapshot()


@router.get("/analyze/{workflow_id}", response_model=PrescriptionOut)
def get_analysis_workflow(
    workflow_id: str,
    current_user: User = Depends(get_current_user),
    registry: WorkflowRegistry = Depends(get_registry),
):
    return registry.get(current_user.id, workflow_id, PrescriptionWorkflow).snapshot()


@router.post("/analyze/{workflow_id}/retry", response_model=PrescriptionOut)
@limiter.limit(llm_limit, key_func=user_rate_key)
async def retry_analysis(
    request: Request,
    workflow_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    llm: LLMClient = Depends(get_llm_client),
    registry: WorkflowRegistry = Depends(get_registry),
):
    workflow = registry.get(current_user.id, workflow_id, PrescriptionWorkflow)
    await workflow.retry(llm, DataStore(db, current_user.id))
    return workflow.snapshot()


@router.post("/interactions")
@limiter.limit(llm_limit, key_func=user_rate_key)
async def drug_interactions(
    request: Request,
    payload: InteractionRequest,
    current_user: User = Depends(get_current_user),
    llm: LLMClient = Depends(get_llm_client),
):
    return await check_interactions(payload.medications, llm)


@router.get("/analyses")
def list_analyses(
    limit: int = Query(HISTORY_LIMIT, ge=1, le=100),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> List[Dict[str, Any]]:
    return DataStore(db, current_user.id).select("prescription_analyses", limit=limit)


@router.delete("/analyses/{analysis_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_analysis(
    analysis_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    DataStore(db, current_user.id).delete("prescription_analyses", analysis_id)
    return None


@medications_router.post("/lookup")
@limiter.limit(llm_limit, key_func=user_rate_key)
async def medication_lookup(
    request: Request,
    payload: MedicationLookupRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    llm: LLMClient = Depends(get_llm_client),
):
    """Always asks the model; past searches are kept as history, never as a cache."""
    return await lookup_medication(payload.medication_name, llm, DataStore(db, current_user.id))


@medications_router.get("/searches")
def list_searches(
    limit: int = Query(HISTORY_LIMIT, ge=1, le=100),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> List[Dict[str, Any]]:
    return DataStore(db, current_user.id).select("medication_searches", limit=limit)
