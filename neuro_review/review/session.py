"""
Review Session: ordered walk through a ranked queue of concepts.

State machine:
    idle --start--> active --advance (last item)--> exhausted
                    active --exit--> idle

Sessions are process-local and never persisted. Each item's outcome is
committed independently as soon as it resolves, so exiting mid-queue has
nothing to roll back.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional

from loguru import logger

from neuro_review.exceptions import SessionStateError
from neuro_review.models import (
    ConceptRecord,
    ConceptStatus,
    InteractionMode,
    ReviewCandidate,
    SessionMode,
)
from neuro_review.review.interaction import InteractionModeSelector
from neuro_review.review.scheduler import utc_now


class SessionState(str, Enum):
    IDLE = "idle"
    ACTIVE = "active"
    EXHAUSTED = "exhausted"


@dataclass
class SessionItem:
    """One queued concept with the interaction mode chosen for it."""

    record: ConceptRecord
    candidate: ReviewCandidate
    mode: InteractionMode
    reviewed: Optional[ConceptRecord] = None  # record as committed after review

    @property
    def concept_id(self) -> str:
        return self.record.concept_id


@dataclass
class ReviewSession:
    """Queue, cursor and state for one review pass."""

    mode: SessionMode
    queue: list[SessionItem] = field(default_factory=list)
    cursor: int = 0
    state: SessionState = SessionState.IDLE
    session_id: str = field(default_factory=lambda: uuid.uuid4().hex[:12])
    started_at: datetime = field(default_factory=utc_now)

    @property
    def is_active(self) -> bool:
        return self.state == SessionState.ACTIVE

    @property
    def remaining(self) -> int:
        return max(0, len(self.queue) - self.cursor)

    @property
    def completed(self) -> list[SessionItem]:
        return [item for item in self.queue if item.reviewed is not None]

    def activate(self) -> None:
        if self.state != SessionState.IDLE:
            raise SessionStateError(f"Session {self.session_id} is {self.state.value}, not idle")
        if not self.queue:
            raise SessionStateError("Cannot activate a session with an empty queue")
        self.cursor = 0
        self.state = SessionState.ACTIVE

    def current(self) -> Optional[SessionItem]:
        """Item at the cursor, or None once the session is not active."""
        if not self.is_active:
            return None
        return self.queue[self.cursor]

    def advance(self) -> Optional[SessionItem]:
        """Move to the next item; returns it, or None when the queue is exhausted."""
        if not self.is_active:
            raise SessionStateError(f"Session {self.session_id} is {self.state.value}, not active")
        self.cursor += 1
        if self.cursor >= len(self.queue):
            self.state = SessionState.EXHAUSTED
            logger.info(
                f"Review session {self.session_id} complete: {len(self.completed)} reviewed"
            )
            return None
        return self.queue[self.cursor]

    def exit(self) -> None:
        """Abandon the remaining queue. Already committed outcomes stay."""
        if self.state == SessionState.ACTIVE:
            logger.info(
                f"Review session {self.session_id} exited with {self.remaining} item(s) left"
            )
            self.state = SessionState.IDLE

    def summary(self) -> dict:
        """Get summary of the session so far."""
        reviewed = self.completed
        passed = sum(
            1 for item in reviewed if item.reviewed.status == ConceptStatus.UNDERSTOOD
        )
        return {
            "session_id": self.session_id,
            "mode": self.mode.value,
            "state": self.state.value,
            "total": len(self.queue),
            "reviewed": len(reviewed),
            "passed": passed,
            "failed": len(reviewed) - passed,
            "remaining": self.remaining if self.is_active else 0,
        }


class SessionOrchestrator:
    """Builds sessions from ranked candidates and assigns interaction modes."""

    def __init__(
        self,
        selector: Optional[InteractionModeSelector] = None,
        session_size: int = 10,
    ):
        self.selector = selector or InteractionModeSelector()
        self.session_size = session_size

    @staticmethod
    def select_candidates(
        candidates: list[ReviewCandidate],
        mode: SessionMode | str,
    ) -> list[ReviewCandidate]:
        """Standard sessions take due or flagged work; manual takes everything."""
        if SessionMode(mode) is SessionMode.STANDARD:
            return [c for c in candidates if c.needs_session]
        return list(candidates)

    def build(
        self,
        candidates: list[ReviewCandidate],
        records: dict[str, ConceptRecord],
        mode: SessionMode | str = SessionMode.STANDARD,
        limit: Optional[int] = None,
    ) -> Optional[ReviewSession]:
        """
        Materialize an active session from ranked candidates.

        Args:
            candidates: Candidates in ranked order
            records: ConceptRecord snapshots keyed by concept_id
            mode: standard (due only) or manual (anything eligible)
            limit: Override for the session size (at least 1)

        Returns:
            Active ReviewSession, or None when there is nothing to review

        Raises:
            ValueError: If limit is below 1
        """
        mode = SessionMode(mode)
        if limit is not None and limit < 1:
            raise ValueError(f"Session limit must be at least 1, got {limit}")
        size = self.session_size if limit is None else limit
        selected = self.select_candidates(candidates, mode)[:size]

        queue = [
            SessionItem(
                record=records[c.concept_id],
                candidate=c,
                mode=self.selector.choose(),
            )
            for c in selected
            if c.concept_id in records
        ]
        if not queue:
            logger.info(f"No concepts to review ({mode.value} session)")
            return None

        session = ReviewSession(mode=mode, queue=queue)
        session.activate()
        logger.info(
            f"Started {mode.value} review session {session.session_id} with {len(queue)} concept(s)"
        )
        return session
