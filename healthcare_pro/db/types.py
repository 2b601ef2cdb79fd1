"""Dialect-aware column helpers shared by every model.

IDs are stored as String(36) everywhere so SQLite and Postgres agree; JSON
columns become JSONB on Postgres unless FORCE_GENERIC_JSON is set (tests).
"""
import os
from datetime import datetime, timezone

from sqlalchemy import String
from sqlalchemy.types import JSON as SA_JSON

from healthcare_pro.db.session import engine

try:
    from sqlalchemy.dialects.postgresql import JSONB as PG_JSONB
except ImportError:
    PG_JSONB = None


def uuid_col_type():
    return String(36)


def json_col_type():
    if os.getenv("FORCE_GENERIC_JSON", "").lower() in ("1", "true", "yes"):
        return SA_JSON
    if engine.dialect.name == "postgresql" and PG_JSONB is not None:
        return PG_JSONB
    return SA_JSON


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """SQLite hands back naive datetimes; treat them as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)
