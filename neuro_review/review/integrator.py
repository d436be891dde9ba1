"""
Evaluation Integrator - Outcome to Strength/Status Update.

Given an evaluation outcome for the concept under review:
- delta = strength_delta(score, is_pass)
- new strength = clamp(decayed strength at review time + delta)
- status -> understood on pass, needs_review on fail
- last_reviewed -> now
- explicit review flag cleared on pass

All fields are committed through one store.commit() call so a record can
never show a new strength next to a stale status.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Callable, Optional

from loguru import logger

from neuro_review.exceptions import InvalidRecordError
from neuro_review.models import ConceptRecord, ConceptStatus, EvaluationOutcome
from neuro_review.review import memory_model
from neuro_review.review.scheduler import utc_now
from neuro_review.store import ConceptStore


class EvaluationIntegrator:
    """Applies evaluation outcomes to concept records."""

    def __init__(
        self,
        store: ConceptStore,
        clock: Callable[[], datetime] = utc_now,
        decay_before_update: bool = True,
    ):
        self.store = store
        self.clock = clock
        # False reproduces the legacy behaviour of adding the delta to the raw stored strength
        self.decay_before_update = decay_before_update

    def compute_patch(
        self,
        record: ConceptRecord,
        outcome: EvaluationOutcome,
        now: datetime,
    ) -> dict[str, Any]:
        """
        Compute the commit patch without touching the store.

        Raises:
            InvalidRecordError: If the record is not in a reviewable status
        """
        if not record.is_reviewable:
            raise InvalidRecordError(
                f"Concept {record.concept_id} has status '{record.status.value}' and cannot be reviewed"
            )

        if not 0 <= outcome.score <= 100:
            logger.warning(
                f"Evaluator score {outcome.score} for {record.concept_id} outside 0-100; clamping"
            )

        current = record.strength if record.strength is not None else 0.0
        if self.decay_before_update:
            current = memory_model.decay(current, record.last_reviewed, now)
        delta = memory_model.strength_delta(outcome.score, outcome.is_pass)
        new_strength = memory_model.clamp_strength(current + delta)

        last_reviewed = now
        if record.last_reviewed is not None and record.last_reviewed > now:
            last_reviewed = record.last_reviewed

        patch: dict[str, Any] = {
            "strength": new_strength,
            "status": ConceptStatus.UNDERSTOOD if outcome.is_pass else ConceptStatus.NEEDS_REVIEW,
            "last_reviewed": last_reviewed,
        }
        if outcome.is_pass:
            patch["explicit_review_flag"] = False
        return patch

    def apply(
        self,
        record: ConceptRecord,
        outcome: EvaluationOutcome,
        now: Optional[datetime] = None,
    ) -> ConceptRecord:
        """
        Apply an outcome and persist it atomically.

        Args:
            record: Record under review (latest persisted state)
            outcome: Evaluator score and verdict
            now: Review instant (defaults to the clock)

        Returns:
            The updated record as stored
        """
        now = now or self.clock()
        patch = self.compute_patch(record, outcome, now)
        updated = self.store.commit(record.concept_id, patch)

        logger.info(
            f"Reviewed {record.concept_id}: score={outcome.score:.0f} "
            f"{'pass' if outcome.is_pass else 'fail'}, "
            f"strength {record.strength if record.strength is not None else 0:.1f} -> {updated.strength:.1f}, "
            f"status={updated.status.value}"
        )
        return updated
