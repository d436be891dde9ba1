"""
Review Service - the surface exposed to the UI.

Wires scheduler, session orchestrator and evaluation integrator together:

    service = ReviewService(store)
    session = service.start_session("standard")
    while (item := service.current(session)):
        await service.review_response(session, learner_text, evaluator)

Scheduling queries (get_candidates / get_summary) read the same ranked list
the sessions are built from.
"""

from __future__ import annotations

import random
from datetime import datetime
from typing import Callable, Optional

from loguru import logger

from neuro_review.config import Settings, get_settings
from neuro_review.exceptions import EvaluationUnavailableError, SessionStateError
from neuro_review.integrations.evaluator_client import Evaluator
from neuro_review.models import (
    DEFAULT_VIEW,
    ConceptRecord,
    EligibilityFilter,
    EvaluationOutcome,
    ReviewCandidate,
    ReviewView,
    ScheduleSummary,
    SessionMode,
)
from neuro_review.review.integrator import EvaluationIntegrator
from neuro_review.review.interaction import InteractionModeSelector
from neuro_review.review.lifecycle import LifecycleManager
from neuro_review.review.scheduler import PriorityWeights, ReviewScheduler, utc_now
from neuro_review.review.session import ReviewSession, SessionItem, SessionOrchestrator
from neuro_review.store import ConceptStore


class ReviewService:
    """Session API and scheduling queries over a concept store."""

    def __init__(
        self,
        store: ConceptStore,
        settings: Optional[Settings] = None,
        clock: Callable[[], datetime] = utc_now,
        rng: Optional[random.Random] = None,
    ):
        self.store = store
        self.settings = settings or get_settings()
        self.clock = clock

        self.scheduler = ReviewScheduler(
            store,
            weights=PriorityWeights.from_settings(self.settings),
            clock=clock,
        )
        self.orchestrator = SessionOrchestrator(
            selector=InteractionModeSelector(self.settings.get_mode_weights(), rng=rng),
            session_size=self.settings.session_size,
        )
        self.integrator = EvaluationIntegrator(
            store,
            clock=clock,
            decay_before_update=self.settings.decay_before_update,
        )
        self.lifecycle = LifecycleManager(
            store,
            initial_strength=self.settings.installed_initial_strength,
            clock=clock,
        )

    # =========================================================================
    # Scheduling queries
    # =========================================================================

    def get_candidates(
        self,
        view: ReviewView | str = DEFAULT_VIEW,
        module_id: Optional[str] = None,
    ) -> list[ReviewCandidate]:
        """Ranked candidates for a dashboard view."""
        return self.scheduler.get_candidates(view, module_id, now=self.clock())

    def get_summary(self, module_id: Optional[str] = None) -> ScheduleSummary:
        """Due today / due this week / overdue / total counts."""
        return self.scheduler.summarize(
            self.scheduler.ranked_candidates(module_id, now=self.clock())
        )

    # =========================================================================
    # Session API
    # =========================================================================

    def start_session(
        self,
        mode: SessionMode | str = SessionMode.STANDARD,
        module_id: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> Optional[ReviewSession]:
        """
        Start a review session.

        Returns:
            Active session, or None when nothing is available to review
        """
        records = self.store.list_eligible(EligibilityFilter(module_id=module_id))
        candidates = self.scheduler.rank(records, now=self.clock())
        by_id = {r.concept_id: r for r in records}
        return self.orchestrator.build(candidates, by_id, mode=mode, limit=limit)

    @staticmethod
    def current(session: ReviewSession) -> Optional[SessionItem]:
        return session.current()

    def submit_outcome(self, session: ReviewSession, outcome: EvaluationOutcome) -> ConceptRecord:
        """
        Commit an outcome for the current item and advance the cursor.

        The record is re-read from the store so the update applies to the
        latest persisted state rather than the queue snapshot.
        """
        item = session.current()
        if item is None:
            raise SessionStateError(f"Session {session.session_id} has no current item")

        record = self.store.get(item.concept_id)
        updated = self.integrator.apply(record, outcome, now=self.clock())
        item.reviewed = updated
        session.advance()
        return updated

    async def review_response(
        self,
        session: ReviewSession,
        learner_response: str,
        evaluator: Evaluator,
    ) -> ConceptRecord:
        """
        Evaluate a response for the current item, then submit the outcome.

        Raises:
            EvaluationUnavailableError: Evaluator failed; the item is neither
                advanced nor mutated, so it can be retried
        """
        item = session.current()
        if item is None:
            raise SessionStateError(f"Session {session.session_id} has no current item")

        try:
            outcome = await evaluator.evaluate(item.concept_id, learner_response, item.mode)
        except EvaluationUnavailableError:
            raise
        except Exception as e:  # Intentionally broad - any evaluator failure is retryable
            logger.warning(f"Evaluator failed for {item.concept_id}: {e}")
            raise EvaluationUnavailableError(item.concept_id, str(e)) from e

        return self.submit_outcome(session, outcome)

    @staticmethod
    def exit(session: ReviewSession) -> None:
        session.exit()
