"""
SQLAlchemy-backed ConceptStore.

Each commit runs in its own transaction: the patch is validated against the
current row before any column is written, and session_scope rolls back on
any error, so a record is never left half-updated.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Optional

from loguru import logger
from sqlalchemy import select
from sqlalchemy.orm import Session, sessionmaker

from neuro_review.db.database import get_session_factory, session_scope
from neuro_review.db.models import ConceptRow, ModuleRow
from neuro_review.exceptions import ConceptNotFoundError, InvalidRecordError
from neuro_review.models import ConceptRecord, ConceptStatus, EligibilityFilter, ModuleStatus
from neuro_review.store import ConceptStore, apply_patch


def _as_utc(value: Optional[datetime]) -> Optional[datetime]:
    # SQLite drops tzinfo on the way back; values are stored as UTC
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _to_utc(value: Optional[datetime]) -> Optional[datetime]:
    if value is not None and value.tzinfo is not None:
        return value.astimezone(timezone.utc)
    return value


def row_to_record(row: ConceptRow) -> ConceptRecord:
    return ConceptRecord(
        concept_id=row.concept_id,
        module_id=row.module_id,
        status=ConceptStatus(row.status),
        strength=row.strength,
        last_reviewed=_as_utc(row.last_reviewed),
        explicit_review_flag=bool(row.explicit_review_flag),
        title=row.title or "",
    )


class SqlConceptStore(ConceptStore):
    """Concept store persisted through SQLAlchemy."""

    def __init__(self, session_factory: Optional[sessionmaker[Session]] = None):
        self.session_factory = session_factory or get_session_factory()

    def list_eligible(self, filter: EligibilityFilter) -> list[ConceptRecord]:
        stmt = select(ConceptRow).where(
            ConceptRow.status.in_([s.value for s in filter.statuses])
        )
        if filter.installed_only:
            stmt = stmt.join(ModuleRow).where(ModuleRow.status == ModuleStatus.INSTALLED.value)
        if filter.module_id:
            stmt = stmt.where(ConceptRow.module_id == filter.module_id)

        records = []
        with session_scope(self.session_factory) as session:
            for row in session.scalars(stmt):
                try:
                    records.append(row_to_record(row))
                except ValueError as e:
                    # Unknown status string in the table; leave it out of scheduling
                    logger.warning(f"Skipping unreadable concept row {row.concept_id}: {e}")
        return records

    def get(self, concept_id: str) -> ConceptRecord:
        with session_scope(self.session_factory) as session:
            row = session.get(ConceptRow, concept_id)
            if row is None:
                raise ConceptNotFoundError(f"Concept not found: {concept_id}")
            return row_to_record(row)

    def commit(self, concept_id: str, patch: dict[str, Any]) -> ConceptRecord:
        with session_scope(self.session_factory) as session:
            row = session.get(ConceptRow, concept_id)
            if row is None:
                raise ConceptNotFoundError(f"Concept not found: {concept_id}")

            updated = apply_patch(row_to_record(row), patch)
            row.status = updated.status.value
            row.strength = updated.strength
            row.last_reviewed = _to_utc(updated.last_reviewed)
            row.explicit_review_flag = updated.explicit_review_flag

        logger.debug(f"Committed {sorted(patch)} for concept {concept_id}")
        return updated

    def list_concepts(self, module_id: str) -> list[ConceptRecord]:
        stmt = select(ConceptRow).where(ConceptRow.module_id == module_id).order_by(ConceptRow.concept_id)
        with session_scope(self.session_factory) as session:
            return [row_to_record(row) for row in session.scalars(stmt)]

    def add_module(self, module_id: str, status: ModuleStatus = ModuleStatus.NEW, title: str = "") -> None:
        with session_scope(self.session_factory) as session:
            row = session.get(ModuleRow, module_id)
            if row is None:
                session.add(ModuleRow(module_id=module_id, status=ModuleStatus(status).value, title=title))
            else:
                row.title = title or row.title

    def add_concept(self, record: ConceptRecord) -> None:
        if not record.concept_id or not record.module_id:
            raise InvalidRecordError("Concept records need concept_id and module_id")

        with session_scope(self.session_factory) as session:
            if session.get(ConceptRow, record.concept_id) is not None:
                raise InvalidRecordError(f"Concept already exists: {record.concept_id}")
            if session.get(ModuleRow, record.module_id) is None:
                session.add(ModuleRow(module_id=record.module_id, status=ModuleStatus.NEW.value))
            session.add(
                ConceptRow(
                    concept_id=record.concept_id,
                    module_id=record.module_id,
                    title=record.title,
                    status=ConceptStatus(record.status).value,
                    strength=record.strength,
                    last_reviewed=_to_utc(record.last_reviewed),
                    explicit_review_flag=record.explicit_review_flag,
                )
            )

    def get_module_status(self, module_id: str) -> ModuleStatus:
        with session_scope(self.session_factory) as session:
            row = session.get(ModuleRow, module_id)
            if row is None:
                raise ConceptNotFoundError(f"Module not found: {module_id}")
            return ModuleStatus(row.status)

    def set_module_status(self, module_id: str, status: ModuleStatus) -> None:
        with session_scope(self.session_factory) as session:
            row = session.get(ModuleRow, module_id)
            if row is None:
                raise ConceptNotFoundError(f"Module not found: {module_id}")
            row.status = ModuleStatus(status).value
