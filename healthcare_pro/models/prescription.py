import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import String, DateTime, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column

from healthcare_pro.db.session import Base
from healthcare_pro.db.types import uuid_col_type, json_col_type, utcnow
from healthcare_pro.utils.encryption import EncryptedText, EncryptedJSON


class PrescriptionAnalysis(Base):
    __tablename__ = "prescription_analyses"

    id: Mapped[str] = mapped_column(uuid_col_type(), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id: Mapped[str] = mapped_column(
        uuid_col_type(), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    prescription_text: Mapped[str] = mapped_column(EncryptedText, nullable=False)
    analysis_result: Mapped[dict] = mapped_column(json_col_type(), nullable=False)
    user_profile: Mapped[Optional[dict]] = mapped_column(EncryptedJSON, nullable=True)
    analysis_type: Mapped[str] = mapped_column(String(40), nullable=False, default="full")
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow, index=True)


class MedicationSearch(Base):
    """Audit trail of medication lookups. Never read back as a cache."""

    __tablename__ = "medication_searches"

    id: Mapped[str] = mapped_column(uuid_col_type(), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id: Mapped[str] = mapped_column(
        uuid_col_type(), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    medication_name: Mapped[str] = mapped_column(String(255), nullable=False)
    medication_info: Mapped[dict] = mapped_column(json_col_type(), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow, index=True)
