# healthcare_pro/routes/reports_routes.py
from typing import List, Literal

from fastapi import APIRouter, Depends, Query
from fastapi.responses import HTMLResponse, Response
from sqlalchemy.orm import Session

from healthcare_pro.auth.deps import get_current_user
from healthcare_pro.db.session import get_db
from healthcare_pro.models.user import User
from healthcare_pro.schemas.reports import HealthReportOut, HealthSummaryOut
from healthcare_pro.services import export, health_summary
from healthcare_pro.services.store import DataStore

router = APIRouter(prefix="/api/reports", tags=["reports"])


@router.post("/health-summary", response_model=HealthSummaryOut)
def generate_summary(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Build a summary from recent rows and store it as a new health report."""
    return health_summary.generate_health_summary(DataStore(db, current_user.id))


@router.get("/", response_model=List[HealthReportOut])
def list_reports(
    limit: int = Query(20, ge=1, le=100),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return health_summary.list_reports(DataStore(db, current_user.id), limit)


@router.get("/{report_id}/export")
def export_report(
    report_id: str,
    format: Literal["pdf", "html"] = "pdf",
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    report = DataStore(db, current_user.id).get("health_reports", report_id)
    summary = report["report_data"] or {}
    if format == "html":
        return HTMLResponse(export.health_summary_html(summary))
    patient = getattr(current_user, "name", None) or getattr(current_user, "email", "")
    stamp = str(summary.get("generatedAt") or "")[:10]
    return Response(
        export.health_summary_pdf(summary, patient),
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="health-summary-{stamp}.pdf"'},
    )
