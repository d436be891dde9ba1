"""
Concept and module lifecycle state machine.

A module moves through download -> install; its concepts follow along:

    module:  new -> in_library -> downloading -> downloaded -> installing -> installed
    concept: new -> downloading -> downloaded -> familiar -> installing -> understood <-> needs_review

Transitions are one-directional apart from the understood/needs_review
oscillation driven by reviews. Aborting a download or install steps the
module back, but a concept never drops below familiar once it got there.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Callable, Optional

from loguru import logger

from neuro_review.exceptions import InvalidRecordError, InvalidTransitionError
from neuro_review.models import ConceptRecord, ConceptStatus, ModuleStatus
from neuro_review.review.scheduler import utc_now
from neuro_review.store import ConceptStore, apply_patch

CONCEPT_TRANSITIONS: dict[ConceptStatus, frozenset[ConceptStatus]] = {
    ConceptStatus.NEW: frozenset({ConceptStatus.DOWNLOADING, ConceptStatus.FAMILIAR}),
    ConceptStatus.DOWNLOADING: frozenset({ConceptStatus.DOWNLOADED, ConceptStatus.FAMILIAR, ConceptStatus.NEW}),
    ConceptStatus.DOWNLOADED: frozenset({ConceptStatus.FAMILIAR, ConceptStatus.INSTALLING}),
    ConceptStatus.FAMILIAR: frozenset({ConceptStatus.INSTALLING, ConceptStatus.UNDERSTOOD}),
    ConceptStatus.INSTALLING: frozenset({ConceptStatus.UNDERSTOOD, ConceptStatus.FAMILIAR}),
    ConceptStatus.UNDERSTOOD: frozenset({ConceptStatus.NEEDS_REVIEW}),
    ConceptStatus.NEEDS_REVIEW: frozenset({ConceptStatus.UNDERSTOOD}),
}

MODULE_TRANSITIONS: dict[ModuleStatus, frozenset[ModuleStatus]] = {
    ModuleStatus.NEW: frozenset({ModuleStatus.IN_LIBRARY, ModuleStatus.DOWNLOADING}),
    ModuleStatus.IN_LIBRARY: frozenset({ModuleStatus.DOWNLOADING}),
    ModuleStatus.DOWNLOADING: frozenset({ModuleStatus.DOWNLOADED, ModuleStatus.IN_LIBRARY}),
    ModuleStatus.DOWNLOADED: frozenset({ModuleStatus.INSTALLING}),
    ModuleStatus.INSTALLING: frozenset({ModuleStatus.INSTALLED, ModuleStatus.DOWNLOADED}),
    ModuleStatus.INSTALLED: frozenset(),
}

# Concept status each module status drives its concepts towards
MODULE_CASCADE: dict[ModuleStatus, ConceptStatus] = {
    ModuleStatus.DOWNLOADING: ConceptStatus.DOWNLOADING,
    ModuleStatus.DOWNLOADED: ConceptStatus.FAMILIAR,
    ModuleStatus.INSTALLING: ConceptStatus.INSTALLING,
    ModuleStatus.INSTALLED: ConceptStatus.UNDERSTOOD,
}

# Ordering used to stop a cascade from regressing a concept
CONCEPT_RANK: dict[ConceptStatus, int] = {
    ConceptStatus.NEW: 0,
    ConceptStatus.DOWNLOADING: 1,
    ConceptStatus.DOWNLOADED: 2,
    ConceptStatus.FAMILIAR: 3,
    ConceptStatus.INSTALLING: 4,
    ConceptStatus.UNDERSTOOD: 5,
    ConceptStatus.NEEDS_REVIEW: 5,
}


def can_transition(current: ConceptStatus, requested: ConceptStatus) -> bool:
    return current == requested or requested in CONCEPT_TRANSITIONS[current]


def can_transition_module(current: ModuleStatus, requested: ModuleStatus) -> bool:
    return current == requested or requested in MODULE_TRANSITIONS[current]


# Aborting a phase only rolls back concepts still mid-phase
MODULE_ABORT_ROLLBACK: dict[ModuleStatus, tuple[ConceptStatus, ConceptStatus]] = {
    ModuleStatus.IN_LIBRARY: (ConceptStatus.DOWNLOADING, ConceptStatus.NEW),
    ModuleStatus.DOWNLOADED: (ConceptStatus.INSTALLING, ConceptStatus.FAMILIAR),
}


def cascade_target(current: ConceptStatus, module_status: ModuleStatus) -> Optional[ConceptStatus]:
    """
    Concept status a module transition implies, or None to leave it alone.

    Concepts already at or beyond the target are untouched, which keeps
    aborts (installing -> downloaded) from pulling understood concepts back.
    """
    rollback = MODULE_ABORT_ROLLBACK.get(module_status)
    if rollback and current == rollback[0]:
        return rollback[1]

    target = MODULE_CASCADE.get(module_status)
    if target is None or CONCEPT_RANK[current] >= CONCEPT_RANK[target]:
        return None
    return target


class LifecycleManager:
    """Drives module and concept status changes through the concept store."""

    def __init__(
        self,
        store: ConceptStore,
        initial_strength: float = 100.0,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.store = store
        self.initial_strength = initial_strength
        self.clock = clock

    def transition_concept(self, concept_id: str, status: ConceptStatus | str) -> ConceptRecord:
        """Move one concept to a new status, seeding strength when it first becomes understood."""
        status = ConceptStatus(status)
        record = self.store.get(concept_id)
        if not can_transition(record.status, status):
            raise InvalidTransitionError("concept", record.status.value, status.value)
        if record.status == status:
            return record
        return self.store.commit(concept_id, self._patch_for(record, status))

    def set_module_status(self, module_id: str, status: ModuleStatus | str) -> list[ConceptRecord]:
        """
        Move a module to a new status and cascade onto its concepts.

        Returns:
            Concept records changed by the cascade
        """
        status = ModuleStatus(status)
        current = self.store.get_module_status(module_id)
        if not can_transition_module(current, status):
            raise InvalidTransitionError("module", current.value, status.value)
        if current == status:
            return []

        patches = []
        for record in self.store.list_concepts(module_id):
            target = cascade_target(record.status, status)
            if target is None:
                continue
            patch = self._patch_for(record, target)
            apply_patch(record, patch)
            patches.append((record.concept_id, patch))

        changed = [self.store.commit(concept_id, patch) for concept_id, patch in patches]
        # Module status last: a failed cascade leaves the module where it was
        self.store.set_module_status(module_id, status)

        logger.info(
            f"Module {module_id}: {current.value} -> {status.value} ({len(changed)} concepts updated)"
        )
        return changed

    def flag_for_review(self, concept_id: str) -> ConceptRecord:
        """Learner marked the concept as struggled: force it into the next review."""
        record = self.store.get(concept_id)
        if not record.is_reviewable:
            raise InvalidRecordError(
                f"Concept {concept_id} has status '{record.status.value}' and cannot be flagged"
            )
        updated = self.store.commit(
            concept_id,
            {"explicit_review_flag": True, "status": ConceptStatus.NEEDS_REVIEW},
        )
        logger.info(f"Flagged {concept_id} for review")
        return updated

    def _patch_for(self, record: ConceptRecord, status: ConceptStatus) -> dict[str, Any]:
        patch: dict[str, Any] = {"status": status}
        if status == ConceptStatus.UNDERSTOOD and not record.is_reviewable:
            patch["strength"] = self.initial_strength
            now = self.clock()
            if record.last_reviewed is None or record.last_reviewed <= now:
                patch["last_reviewed"] = now
        return patch
