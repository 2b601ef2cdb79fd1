# healthcare_pro/routes/mood_routes.py
import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Literal, Optional

from fastapi import APIRouter, Depends, Query, Request, status
from fastapi.responses import HTMLResponse, Response
from sqlalchemy.orm import Session

from healthcare_pro.auth.deps import get_current_user
from healthcare_pro.db.session import get_db
from healthcare_pro.middleware.rate_limit import limiter, llm_limit, user_rate_key
from healthcare_pro.models.user import User
from healthcare_pro.schemas.mood import (
    DAY_PATTERN,
    MoodEntryIn,
    MoodEntryOut,
    MoodEntryUpdate,
    MoodInsightOut,
    MoodInsightRequest,
)
from healthcare_pro.services import analytics, export
from healthcare_pro.services.llm_client import LLMClient, get_llm_client
from healthcare_pro.services.mood_journal import MoodJournal, parse_day
from healthcare_pro.services.preferences import PreferencesStore, get_preferences_store
from healthcare_pro.services.store import DataStore
from healthcare_pro.services.workflows.base import WorkflowState
from healthcare_pro.services.workflows.mood_insight import TIMEFRAMES, MoodInsightWorkflow
from healthcare_pro.services.workflows.registry import WorkflowRegistry, get_registry

router = APIRouter(prefix="/api/mood", tags=["mood"])
logger = logging.getLogger("healthcare_pro")

Timeframe = Literal["7d", "30d", "90d", "1y"]
PATTERN_WINDOW = 100


def _journal(db: Session, user: User) -> MoodJournal:
    return MoodJournal(DataStore(db, user.id))


def _attachment(name: str, ext: str) -> Dict[str, str]:
    stamp = datetime.now(timezone.utc).strftime("%Y-%m-%d")
    return {"Content-Disposition": f'attachment; filename="{name}-{stamp}.{ext}"'}


# ---- Entries ----

@router.post("/entries", response_model=MoodEntryOut)
def save_entry(
    payload: MoodEntryIn,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Save the entry for the user's day; a second save on the same day overwrites the first."""
    return _journal(db, current_user).save(payload.model_dump(), today=parse_day(payload.date))


@router.get("/entries", response_model=List[MoodEntryOut])
def list_entries(
    limit: Optional[int] = Query(None, ge=1, le=1000),
    offset: Optional[int] = Query(None, ge=0),
    start_date: Optional[str] = Query(None, pattern=r"^\d{4}-\d{2}-\d{2}$"),
    end_date: Optional[str] = Query(None, pattern=r"^\d{4}-\d{2}-\d{2}$"),
    order_by: Literal["date", "mood"] = "date",
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return _journal(db, current_user).list(limit, offset, start_date, end_date, order_by)


@router.patch("/entries/{entry_id}", response_model=MoodEntryOut)
def update_entry(
    entry_id: str,
    payload: MoodEntryUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return _journal(db, current_user).update(entry_id, payload.model_dump(exclude_none=True))


@router.delete("/entries/{entry_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_entry(
    entry_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    _journal(db, current_user).delete(entry_id)
    return None


# ---- Local analytics ----

@router.get("/stats")
def mood_stats(
    days: int = Query(30, ge=1, le=365),
    today: Optional[str] = Query(None, pattern=DAY_PATTERN),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return _journal(db, current_user).stats(days, parse_day(today))


@router.get("/analytics")
def mood_analytics(
    timeframe: Timeframe = "30d",
    today: Optional[str] = Query(None, pattern=DAY_PATTERN),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    entries = _journal(db, current_user).recent(TIMEFRAMES[timeframe], parse_day(today))
    return analytics.summarize(entries, timeframe)


@router.get("/patterns")
def mood_patterns(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return analytics.analyze_patterns(_journal(db, current_user).list(limit=PATTERN_WINDOW))


@router.get("/predictions")
def mood_predictions(
    days_ahead: int = Query(7, ge=1, le=30),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return analytics.predict_mood(_journal(db, current_user).list(limit=PATTERN_WINDOW), days_ahead)


# ---- LLM-backed insights ----

@router.post("/ai/{request_kind}", response_model=MoodInsightOut)
@limiter.limit(llm_limit, key_func=user_rate_key)
async def start_insight(
    request: Request,
    request_kind: str,
    payload: Optional[MoodInsightRequest] = None,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    llm: LLMClient = Depends(get_llm_client),
    registry: WorkflowRegistry = Depends(get_registry),
):
    """Run one of ``recommendations``, ``insights`` or ``best_day``.

    An empty journal is rejected with 422 before the model is called.
    """
    timeframe = payload.timeframe if payload else "30d"
    today = parse_day(payload.today) if payload else None
    workflow = MoodInsightWorkflow(current_user.id, request_kind, timeframe)
    await workflow.run(llm, _journal(db, current_user), today)
    registry.add(workflow)
    return workflow.snapshot()


@router.get("/ai/workflows/{workflow_id}", response_model=MoodInsightOut)
def get_insight(
    workflow_id: str,
    current_user: User = Depends(get_current_user),
    registry: WorkflowRegistry = Depends(get_registry),
):
    return registry.get(current_user.id, workflow_id, MoodInsightWorkflow).snapshot()


@router.post("/ai/workflows/{workflow_id}/retry", response_model=MoodInsightOut)
@limiter.limit(llm_limit, key_func=user_rate_key)
async def retry_insight(
    request: Request,
    workflow_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    llm: LLMClient = Depends(get_llm_client),
    registry: WorkflowRegistry = Depends(get_registry),
):
    workflow = registry.get(current_user.id, workflow_id, MoodInsightWorkflow)
    await workflow.retry(llm, _journal(db, current_user))
    return workflow.snapshot()


# ---- Export ----

@router.get("/export")
def export_entries(
    format: Optional[Literal["json", "csv"]] = None,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    prefs_store: PreferencesStore = Depends(get_preferences_store),
):
    """Raw entries as JSON or CSV; the format defaults to the user's preference."""
    fmt = format or prefs_store.load(current_user.id).export_format
    entries = _journal(db, current_user).list()
    if fmt == "csv":
        return Response(export.mood_entries_csv(entries), media_type="text/csv",
                        headers=_attachment("mood-entries", "csv"))
    return Response(export.mood_entries_json(entries), media_type="application/json",
                    headers=_attachment("mood-entries", "json"))


def _completed_insights(registry: WorkflowRegistry, user_id: str, workflow_id: Optional[str]) -> Optional[Dict[str, Any]]:
    if not workflow_id:
        return None
    workflow = registry.get(user_id, workflow_id, MoodInsightWorkflow)
    return workflow.result if workflow.state == WorkflowState.COMPLETE else None


@router.get("/export/report")
def export_report(
    format: Literal["pdf", "html"] = "pdf",
    timeframe: Timeframe = "30d",
    today: Optional[str] = Query(None, pattern=DAY_PATTERN),
    insights_id: Optional[str] = None,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    registry: WorkflowRegistry = Depends(get_registry),
):
    """Mood analytics report built from the fetched entries and, optionally, a finished insights run."""
    entries = _journal(db, current_user).recent(TIMEFRAMES[timeframe], parse_day(today))
    summary = analytics.summarize(entries, timeframe)
    insights = _completed_insights(registry, current_user.id, insights_id)
    if format == "html":
        return HTMLResponse(export.mood_analytics_html(summary, insights))
    return Response(export.mood_analytics_pdf(summary, insights), media_type="application/pdf",
                    headers=_attachment("mood-analytics", "pdf"))
