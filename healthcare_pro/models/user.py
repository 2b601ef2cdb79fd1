import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import String, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from healthcare_pro.db.session import Base
from healthcare_pro.db.types import uuid_col_type, utcnow
from healthcare_pro.utils.encryption import EncryptedText, EncryptedJSON


class User(Base):
    __tablename__ = "users"
    __table_args__ = (
        UniqueConstraint("email", name="uq_users_email"),
    )

    id: Mapped[str] = mapped_column(
        uuid_col_type(),
        primary_key=True,
        default=lambda: str(uuid.uuid4()),   # force string not UUID object
    )
    email: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    hashed_password: Mapped[str] = mapped_column(String(255), nullable=False)
    name: Mapped[Optional[str]] = mapped_column(String(120), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)

    profile: Mapped["UserProfile"] = relationship(
        "UserProfile",
        back_populates="user",
        uselist=False,
        cascade="all, delete-orphan"
    )


class UserProfile(Base):
    """
    Per-user clinical context passed into symptom and prescription prompts.
    """
    __tablename__ = "user_profile"

    user_id: Mapped[str] = mapped_column(
        uuid_col_type(),
        ForeignKey("users.id", ondelete="CASCADE"),
        primary_key=True,
    )

    age: Mapped[Optional[int]] = mapped_column(EncryptedJSON, nullable=True)
    gender: Mapped[Optional[str]] = mapped_column(EncryptedText, nullable=True)
    weight: Mapped[Optional[str]] = mapped_column(EncryptedText, nullable=True)

    preconditions: Mapped[Optional[list]] = mapped_column(EncryptedJSON, nullable=True, default=None)
    medications: Mapped[Optional[list]] = mapped_column(EncryptedJSON, nullable=True, default=None)
    allergies: Mapped[Optional[list]] = mapped_column(EncryptedJSON, nullable=True, default=None)

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        onupdate=utcnow,
    )

    user: Mapped["User"] = relationship("User", back_populates="profile")
