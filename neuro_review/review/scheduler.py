"""
Review Scheduler - Ranked Due-Work Computation.

Turns a snapshot of ConceptRecords into ranked ReviewCandidates:
1. Project current strength through MemoryModel.decay
2. Compute due date and due flags (now / end of today / +7 days)
3. Score priority: explicit flag + capped overdue hours + strength deficit
4. Sort descending by priority, ties broken by concept_id
5. Filter by view (upcoming / overdue / all) on the same ranked list

Only understood/needs_review concepts in installed modules are eligible.
Malformed records are skipped, never raised: one corrupt record must not
block review of all others.
"""

from __future__ import annotations

import math
import numbers
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Iterable, Optional

from loguru import logger

from neuro_review.models import (
    DEFAULT_VIEW,
    ConceptRecord,
    EligibilityFilter,
    ReviewCandidate,
    ReviewView,
    ScheduleSummary,
)
from neuro_review.review import memory_model
from neuro_review.store import ConceptStore


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class PriorityWeights:
    """Constants of the priority formula (tuned by trial, kept configurable)."""

    explicit_flag: float = 200.0
    overdue_cap_hours: float = 200.0
    strength_ceiling: float = 100.0

    @classmethod
    def from_settings(cls, settings) -> PriorityWeights:
        return cls(**settings.get_priority_weights())


class ReviewScheduler:
    """
    Computes ranked review candidates from the concept store.

    Pure computation apart from the single store read per pass.
    """

    def __init__(
        self,
        store: ConceptStore,
        weights: Optional[PriorityWeights] = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.store = store
        self.weights = weights or PriorityWeights()
        self.clock = clock

    # =========================================================================
    # Candidate construction
    # =========================================================================

    @staticmethod
    def validate_record(record: ConceptRecord) -> Optional[str]:
        """Return a reason the record cannot be scheduled, or None if it is fine."""
        if not record.concept_id or not record.module_id:
            return "missing identifier"
        if not record.is_reviewable:
            return f"status '{getattr(record.status, 'value', record.status)}' is not reviewable"
        if record.strength is None:
            return "missing strength"
        if isinstance(record.strength, bool) or not isinstance(record.strength, numbers.Real):
            return f"strength {record.strength!r} is not a number"
        if not math.isfinite(record.strength) or not 0 <= record.strength <= 100:
            return f"strength {record.strength!r} out of range"
        if record.last_reviewed is not None and (
            not isinstance(record.last_reviewed, datetime) or record.last_reviewed.tzinfo is None
        ):
            return f"last_reviewed {record.last_reviewed!r} is not a timezone-aware datetime"
        return None

    def priority_score(
        self,
        current_strength: float,
        hours_overdue: float,
        explicit_review_flag: bool,
    ) -> float:
        w = self.weights
        return (
            (w.explicit_flag if explicit_review_flag else 0.0)
            + min(hours_overdue, w.overdue_cap_hours)
            + (w.strength_ceiling - current_strength)
        )

    def build_candidate(self, record: ConceptRecord, now: datetime) -> ReviewCandidate:
        """Project a single (valid) record into a ReviewCandidate."""
        if record.last_reviewed is None:
            # Never reviewed: immediately due, treated as fully forgotten
            current = 0.0
        else:
            current = memory_model.decay(record.strength, record.last_reviewed, now)

        due = memory_model.due_date(record.strength, record.last_reviewed)
        overdue = memory_model.hours_overdue(due, now)

        return ReviewCandidate(
            concept_id=record.concept_id,
            module_id=record.module_id,
            current_strength=current,
            due_date=due,
            is_due=memory_model.is_due(due, now),
            is_due_today=memory_model.is_due_today(due, now),
            is_due_this_week=memory_model.is_due_this_week(due, now),
            priority_score=self.priority_score(current, overdue, record.explicit_review_flag),
            explicit_review_flag=record.explicit_review_flag,
            last_reviewed=record.last_reviewed,
            title=record.title,
        )

    def rank(self, records: Iterable[ConceptRecord], now: Optional[datetime] = None) -> list[ReviewCandidate]:
        """
        Build and sort candidates for a set of records.

        Args:
            records: ConceptRecord snapshot
            now: Instant to schedule against (defaults to the clock)

        Returns:
            Candidates sorted by priority descending, then concept_id
        """
        now = now or self.clock()
        candidates = []
        skipped = 0

        for record in records:
            reason = self.validate_record(record)
            if reason:
                skipped += 1
                logger.warning(f"Skipping concept {record.concept_id or '<unknown>'}: {reason}")
                continue
            try:
                candidates.append(self.build_candidate(record, now))
            except (TypeError, ValueError, OverflowError) as e:
                skipped += 1
                logger.warning(f"Skipping concept {record.concept_id}: {e}")

        candidates.sort(key=lambda c: (-c.priority_score, c.concept_id))

        logger.debug(
            f"Scheduling pass: {len(candidates)} candidates, {skipped} skipped, "
            f"{sum(1 for c in candidates if c.is_due)} due"
        )
        return candidates

    # =========================================================================
    # Store-backed queries
    # =========================================================================

    def ranked_candidates(
        self,
        module_id: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> list[ReviewCandidate]:
        """Rank every eligible record, optionally restricted to one module."""
        records = self.store.list_eligible(EligibilityFilter(module_id=module_id))
        return self.rank(records, now)

    @staticmethod
    def filter_view(candidates: list[ReviewCandidate], view: ReviewView | str) -> list[ReviewCandidate]:
        """Apply a dashboard view to an already ranked list."""
        view = ReviewView(view)
        if view is ReviewView.UPCOMING:
            return [c for c in candidates if c.is_due_this_week]
        if view is ReviewView.OVERDUE:
            return [c for c in candidates if c.is_due]
        return list(candidates)

    def get_candidates(
        self,
        view: ReviewView | str = DEFAULT_VIEW,
        module_id: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> list[ReviewCandidate]:
        return self.filter_view(self.ranked_candidates(module_id, now), view)

    @staticmethod
    def summarize(candidates: list[ReviewCandidate]) -> ScheduleSummary:
        """Aggregate dashboard counts over an unfiltered candidate list."""
        return ScheduleSummary(
            due_today_count=sum(1 for c in candidates if c.is_due_today),
            due_this_week_count=sum(1 for c in candidates if c.is_due_this_week),
            overdue_count=sum(1 for c in candidates if c.is_due),
            total_eligible_count=len(candidates),
        )
