"""Symptom reports and the diagnosis logs produced for them.

A report is written once per symptom check. Every analysis call adds a
DiagnosisLog; a refinement adds a second log against the same report with
``is_refined`` set.
"""
import uuid
from datetime import datetime
from typing import List, Optional

from sqlalchemy import String, DateTime, ForeignKey, Float, Boolean
from sqlalchemy.orm import Mapped, mapped_column, relationship

from healthcare_pro.db.session import Base
from healthcare_pro.db.types import uuid_col_type, json_col_type, utcnow
from healthcare_pro.utils.encryption import EncryptedJSON


class SymptomReport(Base):
    __tablename__ = "symptom_reports"

    id: Mapped[str] = mapped_column(uuid_col_type(), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id: Mapped[str] = mapped_column(
        uuid_col_type(), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    symptoms: Mapped[list] = mapped_column(json_col_type(), nullable=False, default=list)
    symptom_details: Mapped[dict] = mapped_column(json_col_type(), nullable=False, default=dict)
    user_profile: Mapped[Optional[dict]] = mapped_column(EncryptedJSON, nullable=True)
    follow_up_answers: Mapped[dict] = mapped_column(json_col_type(), nullable=False, default=dict)
    severity_level: Mapped[str] = mapped_column(String(20), nullable=False, default="moderate")
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow, index=True)

    diagnosis_logs: Mapped[List["DiagnosisLog"]] = relationship(
        "DiagnosisLog",
        back_populates="symptom_report",
        cascade="all, delete-orphan",
    )


class DiagnosisLog(Base):
    __tablename__ = "diagnosis_logs"

    id: Mapped[str] = mapped_column(uuid_col_type(), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id: Mapped[str] = mapped_column(
        uuid_col_type(), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    symptom_report_id: Mapped[str] = mapped_column(
        uuid_col_type(), ForeignKey("symptom_reports.id", ondelete="CASCADE"), nullable=False, index=True
    )
    analysis_result: Mapped[dict] = mapped_column(json_col_type(), nullable=False)
    possible_conditions: Mapped[list] = mapped_column(json_col_type(), nullable=False, default=list)
    recommendations: Mapped[list] = mapped_column(json_col_type(), nullable=False, default=list)
    urgency_level: Mapped[str] = mapped_column(String(32), nullable=False, default="low")
    follow_up_questions: Mapped[list] = mapped_column(json_col_type(), nullable=False, default=list)
    ai_confidence: Mapped[float] = mapped_column(Float, nullable=False, default=0.5)
    is_refined: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow, index=True)

    symptom_report: Mapped["SymptomReport"] = relationship("SymptomReport", back_populates="diagnosis_logs")
