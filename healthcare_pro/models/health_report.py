import uuid
from datetime import datetime

from sqlalchemy import String, DateTime, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column

from healthcare_pro.db.session import Base
from healthcare_pro.db.types import uuid_col_type, json_col_type, utcnow


class HealthReport(Base):
    """Snapshot of a generated health summary. A new row per generation."""

    __tablename__ = "health_reports"

    id: Mapped[str] = mapped_column(uuid_col_type(), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id: Mapped[str] = mapped_column(
        uuid_col_type(), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    report_type: Mapped[str] = mapped_column(String(40), nullable=False, default="health_summary")
    report_data: Mapped[dict] = mapped_column(json_col_type(), nullable=False)
    conditions_summary: Mapped[list] = mapped_column(json_col_type(), nullable=False, default=list)
    medications_summary: Mapped[list] = mapped_column(json_col_type(), nullable=False, default=list)
    generated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow, index=True)
