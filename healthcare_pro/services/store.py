"""Table-oriented data store client.

Every call is scoped to one owner: inserts stamp ``user_id`` and every read,
update and delete filters on it, so a caller can never reach another user's
rows. Rows come back as plain dicts. Any database failure is raised as
PersistenceError; a missing or foreign row is RowNotFoundError.
"""
import logging
from typing import Any, Dict, Iterable, List, Optional, Type

from sqlalchemy import inspect
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from healthcare_pro.models.health_report import HealthReport
from healthcare_pro.models.mood_entry import MoodEntry
from healthcare_pro.models.prescription import MedicationSearch, PrescriptionAnalysis
from healthcare_pro.models.symptom_report import DiagnosisLog, SymptomReport
from healthcare_pro.utils.exceptions import PersistenceError, RowNotFoundError

logger = logging.getLogger("healthcare_pro")

TABLES: Dict[str, Type] = {
    "symptom_reports": SymptomReport,
    "diagnosis_logs": DiagnosisLog,
    "prescription_analyses": PrescriptionAnalysis,
    "medication_searches": MedicationSearch,
    "mood_entries": MoodEntry,
    "health_reports": HealthReport,
}

# Columns the caller may never set directly
_PROTECTED = {"id", "user_id"}


def row_to_dict(row) -> Dict[str, Any]:
    return {attr.key: getattr(row, attr.key) for attr in inspect(row).mapper.column_attrs}


class DataStore:
    def __init__(self, db: Session, user_id: str):
        self.db = db
        self.user_id = str(user_id)

    def _model(self, table: str):
        try:
            return TABLES[table]
        except KeyError:
            raise PersistenceError(f"Unknown table '{table}'") from None

    def _columns(self, model) -> set:
        return {attr.key for attr in inspect(model).column_attrs}

    def _clean(self, model, values: Dict[str, Any]) -> Dict[str, Any]:
        columns = self._columns(model)
        unknown = set(values) - columns
        if unknown:
            raise PersistenceError(f"Unknown column(s) for {model.__tablename__}: {', '.join(sorted(unknown))}")
        return {k: v for k, v in values.items() if k not in _PROTECTED}

    def _owned(self, model, row_id: str):
        row = (
            self.db.query(model)
            .filter(model.id == str(row_id), model.user_id == self.user_id)
            .first()
        )
        if row is None:
            raise RowNotFoundError(f"{model.__tablename__} row not found", {"id": str(row_id)})
        return row

    def _fail(self, op: str, table: str, exc: SQLAlchemyError):
        self.db.rollback()
        logger.error({"function": op, "table": table, "error": str(exc)})
        raise PersistenceError(f"Could not {op} {table}", {"table": table}) from exc

    def insert(self, table: str, values: Dict[str, Any]) -> Dict[str, Any]:
        model = self._model(table)
        row = model(user_id=self.user_id, **self._clean(model, values))
        try:
            self.db.add(row)
            self.db.commit()
            self.db.refresh(row)
        except SQLAlchemyError as exc:
            self._fail("insert", table, exc)
        logger.info({"function": "insert", "table": table, "id": row.id})
        return row_to_dict(row)

    def select(
        self,
        table: str,
        filters: Optional[Dict[str, Any]] = None,
        order_by: Optional[str] = "created_at",
        descending: bool = True,
        limit: Optional[int] = None,
        offset: Optional[int] = None,
        min_values: Optional[Dict[str, Any]] = None,
        max_values: Optional[Dict[str, Any]] = None,
    ) -> List[Dict[str, Any]]:
        """Equality filters plus optional inclusive ranges, ordering and paging."""
        model = self._model(table)
        columns = self._columns(model)
        referenced: Iterable[str] = list(filters or {}) + list(min_values or {}) + list(max_values or {})
        unknown = [c for c in referenced if c not in columns]
        if order_by and order_by not in columns:
            unknown.append(order_by)
        if unknown:
            raise PersistenceError(f"Unknown column(s) for {table}: {', '.join(unknown)}")

        qry = self.db.query(model).filter(model.user_id == self.user_id)
        for name, value in (filters or {}).items():
            qry = qry.filter(getattr(model, name) == value)
        for name, value in (min_values or {}).items():
            qry = qry.filter(getattr(model, name) >= value)
        for name, value in (max_values or {}).items():
            qry = qry.filter(getattr(model, name) <= value)
        if order_by:
            col = getattr(model, order_by)
            qry = qry.order_by(col.desc() if descending else col.asc())
        if offset:
            qry = qry.offset(offset)
        if limit:
            qry = qry.limit(limit)
        try:
            rows = qry.all()
        except SQLAlchemyError as exc:
            self._fail("select", table, exc)
        return [row_to_dict(r) for r in rows]

    def get(self, table: str, row_id: str) -> Dict[str, Any]:
        model = self._model(table)
        try:
            row = self._owned(model, row_id)
        except SQLAlchemyError as exc:
            self._fail("select", table, exc)
        return row_to_dict(row)

    def update(self, table: str, row_id: str, values: Dict[str, Any]) -> Dict[str, Any]:
        model = self._model(table)
        cleaned = self._clean(model, values)
        try:
            row = self._owned(model, row_id)
            for name, value in cleaned.items():
                setattr(row, name, value)
            self.db.commit()
            self.db.refresh(row)
        except SQLAlchemyError as exc:
            self._fail("update", table, exc)
        logger.info({"function": "update", "table": table, "id": row.id})
        return row_to_dict(row)

    def delete(self, table: str, row_id: str) -> None:
        model = self._model(table)
        try:
            row = self._owned(model, row_id)
            self.db.delete(row)
            self.db.commit()
        except SQLAlchemyError as exc:
            self._fail("delete", table, exc)
        logger.info({"function": "delete", "table": table, "id": str(row_id)})
