"""
Concept record store interface.

The scheduler never owns persistence: it reads and writes ConceptRecords
through this narrow interface. Two implementations ship with the package:

- InMemoryConceptStore (here): process-local, used by tests and embedders
- SqlConceptStore (neuro_review.db.sql_store): SQLAlchemy-backed

commit() must be atomic per record: either every field in the patch lands
or none does.
"""

from __future__ import annotations

import math
from abc import ABC, abstractmethod
from dataclasses import replace
from typing import Any, Iterable, Optional

from loguru import logger

from neuro_review.exceptions import ConceptNotFoundError, InvalidRecordError
from neuro_review.models import ConceptRecord, ConceptStatus, EligibilityFilter, ModuleStatus

# Fields a commit may touch; identifiers are immutable after creation
PATCHABLE_FIELDS = frozenset({"status", "strength", "last_reviewed", "explicit_review_flag"})


def apply_patch(record: ConceptRecord, patch: dict[str, Any]) -> ConceptRecord:
    """
    Build the post-commit record, validating the whole patch up front.

    Raises:
        InvalidRecordError: Unknown/immutable field, bad strength, or a
            last_reviewed that would move backwards
    """
    unknown = set(patch) - PATCHABLE_FIELDS
    if unknown:
        raise InvalidRecordError(
            f"Cannot patch {sorted(unknown)} on concept {record.concept_id}"
        )

    changes = dict(patch)
    if "status" in changes:
        changes["status"] = ConceptStatus(changes["status"])

    strength = changes.get("strength", record.strength)
    if strength is not None and (
        not math.isfinite(strength) or strength < 0 or strength > 100
    ):
        raise InvalidRecordError(
            f"Strength {strength!r} out of range for concept {record.concept_id}"
        )

    new_last = changes.get("last_reviewed", record.last_reviewed)
    if (
        record.last_reviewed is not None
        and "last_reviewed" in changes
        and (new_last is None or new_last < record.last_reviewed)
    ):
        raise InvalidRecordError(
            f"last_reviewed may not move backwards for concept {record.concept_id}"
        )

    return replace(record, **changes)


class ConceptStore(ABC):
    """Abstract store for ConceptRecords and module statuses."""

    @abstractmethod
    def list_eligible(self, filter: EligibilityFilter) -> list[ConceptRecord]:
        """Records matching the filter, in no particular order."""

    @abstractmethod
    def get(self, concept_id: str) -> ConceptRecord:
        """Fetch one record. Raises ConceptNotFoundError."""

    @abstractmethod
    def commit(self, concept_id: str, patch: dict[str, Any]) -> ConceptRecord:
        """Atomically apply a patch and return the stored record."""

    @abstractmethod
    def list_concepts(self, module_id: str) -> list[ConceptRecord]:
        """Every record in a module, regardless of status."""

    @abstractmethod
    def add_module(self, module_id: str, status: ModuleStatus = ModuleStatus.NEW, title: str = "") -> None:
        """
        Register a module.

        Re-registering an existing module only updates its title; status
        changes go through the lifecycle.
        """

    @abstractmethod
    def add_concept(self, record: ConceptRecord) -> None:
        """Register a new concept record."""

    @abstractmethod
    def get_module_status(self, module_id: str) -> ModuleStatus:
        """Current module status. Raises ConceptNotFoundError for unknown modules."""

    @abstractmethod
    def set_module_status(self, module_id: str, status: ModuleStatus) -> None:
        """Persist a module status (transition rules live in lifecycle)."""


class InMemoryConceptStore(ConceptStore):
    """
    Dictionary-backed store.

    commit() validates and builds the replacement record before swapping it
    in, so a failed commit leaves the previous record untouched.
    """

    def __init__(
        self,
        records: Optional[Iterable[ConceptRecord]] = None,
        modules: Optional[dict[str, ModuleStatus]] = None,
    ):
        self._records: dict[str, ConceptRecord] = {}
        self._modules: dict[str, ModuleStatus] = dict(modules or {})
        for record in records or []:
            self.add_concept(record)

    def list_eligible(self, filter: EligibilityFilter) -> list[ConceptRecord]:
        result = []
        for record in self._records.values():
            if filter.module_id and record.module_id != filter.module_id:
                continue
            if record.status not in filter.statuses:
                continue
            if filter.installed_only and self._modules.get(record.module_id) != ModuleStatus.INSTALLED:
                continue
            result.append(record)
        return result

    def get(self, concept_id: str) -> ConceptRecord:
        try:
            return self._records[concept_id]
        except KeyError:
            raise ConceptNotFoundError(f"Concept not found: {concept_id}") from None

    def commit(self, concept_id: str, patch: dict[str, Any]) -> ConceptRecord:
        updated = apply_patch(self.get(concept_id), patch)
        self._records[concept_id] = updated
        logger.debug(f"Committed {sorted(patch)} for concept {concept_id}")
        return updated

    def list_concepts(self, module_id: str) -> list[ConceptRecord]:
        return [r for r in self._records.values() if r.module_id == module_id]

    def add_module(self, module_id: str, status: ModuleStatus = ModuleStatus.NEW, title: str = "") -> None:
        if module_id in self._modules:
            return
        self._modules[module_id] = ModuleStatus(status)

    def add_concept(self, record: ConceptRecord) -> None:
        if not record.concept_id or not record.module_id:
            raise InvalidRecordError("Concept records need concept_id and module_id")
        if record.concept_id in self._records:
            raise InvalidRecordError(f"Concept already exists: {record.concept_id}")
        self._records[record.concept_id] = record
        self._modules.setdefault(record.module_id, ModuleStatus.NEW)

    def get_module_status(self, module_id: str) -> ModuleStatus:
        try:
            return self._modules[module_id]
        except KeyError:
            raise ConceptNotFoundError(f"Module not found: {module_id}") from None

    def set_module_status(self, module_id: str, status: ModuleStatus) -> None:
        if module_id not in self._modules:
            raise ConceptNotFoundError(f"Module not found: {module_id}")
        self._modules[module_id] = ModuleStatus(status)
