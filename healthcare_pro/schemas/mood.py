# healthcare_pro/schemas/mood.py
from datetime import datetime
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field

from healthcare_pro.schemas.symptoms import WorkflowOut

DAY_PATTERN = r"^\d{4}-\d{2}-\d{2}$"


class MoodEntryIn(BaseModel):
    # The user's local calendar day; the server falls back to the UTC day
    date: Optional[str] = Field(None, pattern=DAY_PATTERN)
    mood: int = Field(..., ge=1, le=5)
    emoji: Optional[str] = None
    emotions: List[str] = Field(default_factory=list)
    activities: List[str] = Field(default_factory=list)
    tags: List[str] = Field(default_factory=list)
    notes: Optional[str] = Field(None, max_length=5000)
    sleep_hours: Optional[float] = Field(None, ge=0, le=24)
    energy_level: Optional[int] = Field(None, ge=1, le=5)


class MoodEntryUpdate(BaseModel):
    date: Optional[str] = Field(None, pattern=DAY_PATTERN)
    mood: Optional[int] = Field(None, ge=1, le=5)
    emoji: Optional[str] = None
    emotions: Optional[List[str]] = None
    activities: Optional[List[str]] = None
    tags: Optional[List[str]] = None
    notes: Optional[str] = Field(None, max_length=5000)
    sleep_hours: Optional[float] = Field(None, ge=0, le=24)
    energy_level: Optional[int] = Field(None, ge=1, le=5)


class MoodEntryOut(BaseModel):
    id: str
    date: str
    mood: int
    emoji: Optional[str] = None
    emotions: List[str] = Field(default_factory=list)
    activities: List[str] = Field(default_factory=list)
    tags: List[str] = Field(default_factory=list)
    notes: Optional[str] = None
    sleep_hours: Optional[float] = None
    energy_level: Optional[int] = None
    recorded_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class MoodInsightRequest(BaseModel):
    timeframe: Literal["7d", "30d", "90d", "1y"] = "30d"
    today: Optional[str] = Field(None, pattern=DAY_PATTERN)


class MoodInsightOut(WorkflowOut):
    request: str
    timeframe: str
    result: Optional[Dict[str, Any]] = None
