import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import String, DateTime, ForeignKey, Integer, Float
from sqlalchemy.orm import Mapped, mapped_column

from healthcare_pro.db.session import Base
from healthcare_pro.db.types import uuid_col_type, json_col_type, utcnow
from healthcare_pro.utils.encryption import EncryptedText


class MoodEntry(Base):
    """One journal entry. ``date`` is the calendar day as a YYYY-MM-DD string.

    No unique constraint on (user_id, date); one entry per day is kept by the
    journal's lookup-then-write upsert, which is not atomic.
    """

    __tablename__ = "mood_entries"

    id: Mapped[str] = mapped_column(uuid_col_type(), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id: Mapped[str] = mapped_column(
        uuid_col_type(), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    date: Mapped[str] = mapped_column(String(10), nullable=False, index=True)
    mood: Mapped[int] = mapped_column(Integer, nullable=False)
    emoji: Mapped[Optional[str]] = mapped_column(String(16), nullable=True)
    emotions: Mapped[list] = mapped_column(json_col_type(), nullable=False, default=list)
    activities: Mapped[list] = mapped_column(json_col_type(), nullable=False, default=list)
    tags: Mapped[list] = mapped_column(json_col_type(), nullable=False, default=list)
    notes: Mapped[Optional[str]] = mapped_column(EncryptedText, nullable=True)
    sleep_hours: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    energy_level: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    recorded_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow, index=True)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)
