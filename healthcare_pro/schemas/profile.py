# healthcare_pro/schemas/profile.py
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field


class UserProfileIn(BaseModel):
    age: Optional[int] = Field(default=None, ge=0, le=130)
    gender: Optional[str] = Field(default=None, description="male|female|other")
    weight: Optional[str] = None
    preconditions: Optional[List[str]] = None
    medications: Optional[List[str]] = None
    allergies: Optional[List[str]] = None


class UserProfileOut(UserProfileIn):
    user_id: str
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True

    def as_context(self) -> dict:
        """Profile snapshot passed into prompts and stored alongside analyses."""
        return self.model_dump(exclude={"user_id", "updated_at"}, exclude_none=True)
