# healthcare_pro/schemas/reports.py
from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel


class HealthSummaryOut(BaseModel):
    summary: Dict[str, Any]
    report_id: Optional[str] = None
    sync_status: str


class HealthReportOut(BaseModel):
    id: str
    report_type: str
    report_data: Dict[str, Any]
    conditions_summary: List[str] = []
    medications_summary: List[str] = []
    generated_at: datetime

    class Config:
        from_attributes = True
