# healthcare_pro/schemas/preferences.py
import re
from typing import List, Literal, Optional

from pydantic import BaseModel, Field, field_validator

WEEKDAYS = ["monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday"]
_HHMM = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")


class Preferences(BaseModel):
    """Device-local UI settings. Never written to the remote store."""

    dark_mode: bool = False
    language: str = Field("en", min_length=2, max_length=10)
    export_format: Literal["json", "csv"] = "json"
    reminder_enabled: bool = False
    reminder_time: str = "20:00"
    reminder_days: List[str] = Field(default_factory=lambda: list(WEEKDAYS))
    bookmarks: List[str] = Field(default_factory=list)

    @field_validator("reminder_time")
    @classmethod
    def _check_time(cls, value: str) -> str:
        if not _HHMM.match(value):
            raise ValueError("reminder_time must be HH:MM")
        return value

    @field_validator("reminder_days")
    @classmethod
    def _check_days(cls, value: List[str]) -> List[str]:
        days = [d.lower() for d in value]
        unknown = [d for d in days if d not in WEEKDAYS]
        if unknown:
            raise ValueError(f"unknown weekday(s): {', '.join(unknown)}")
        return days


class PreferencesUpdate(BaseModel):
    dark_mode: Optional[bool] = None
    language: Optional[str] = None
    export_format: Optional[Literal["json", "csv"]] = None
    reminder_enabled: Optional[bool] = None
    reminder_time: Optional[str] = None
    reminder_days: Optional[List[str]] = None
    bookmarks: Optional[List[str]] = None
