"""
Core data types for the review scheduler.

- ConceptRecord: persisted per-learner state for one concept
- ReviewCandidate: derived scheduling view, recomputed every pass
- EvaluationOutcome: score + verdict returned by an evaluator
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Optional


class ConceptStatus(str, Enum):
    """Lifecycle status of a concept (a "node" in the learning product)."""

    NEW = "new"
    DOWNLOADING = "downloading"
    DOWNLOADED = "downloaded"
    FAMILIAR = "familiar"
    INSTALLING = "installing"
    UNDERSTOOD = "understood"
    NEEDS_REVIEW = "needs_review"


class ModuleStatus(str, Enum):
    """Lifecycle status of a module (a container of concepts)."""

    NEW = "new"
    IN_LIBRARY = "in_library"
    DOWNLOADING = "downloading"
    DOWNLOADED = "downloaded"
    INSTALLING = "installing"
    INSTALLED = "installed"


class InteractionMode(str, Enum):
    """How a queued concept is presented to the learner."""

    PROBE = "probe"
    EXPLAIN = "explain"
    IMPLEMENT = "implement"
    CONNECT = "connect"


class ReviewView(str, Enum):
    """Dashboard filter layered on top of the ranked candidate list."""

    UPCOMING = "upcoming"
    OVERDUE = "overdue"
    ALL = "all"


DEFAULT_VIEW = ReviewView.UPCOMING


class SessionMode(str, Enum):
    """Standard sessions take due work only; manual takes anything eligible."""

    STANDARD = "standard"
    MANUAL = "manual"


REVIEWABLE_STATUSES = frozenset({ConceptStatus.UNDERSTOOD, ConceptStatus.NEEDS_REVIEW})


@dataclass(frozen=True)
class ConceptRecord:
    """One concept for one learner, as held by the concept store."""

    concept_id: str
    module_id: str
    status: ConceptStatus = ConceptStatus.NEW
    strength: Optional[float] = None  # 0-100, meaningful only when reviewable
    last_reviewed: Optional[datetime] = None
    explicit_review_flag: bool = False
    title: str = ""

    @property
    def is_reviewable(self) -> bool:
        return self.status in REVIEWABLE_STATUSES

    def to_dict(self) -> dict[str, Any]:
        """Convert to a JSON-friendly dictionary."""
        return {
            "concept_id": self.concept_id,
            "module_id": self.module_id,
            "status": self.status.value,
            "strength": self.strength,
            "last_reviewed": self.last_reviewed.isoformat() if self.last_reviewed else None,
            "explicit_review_flag": self.explicit_review_flag,
            "title": self.title,
        }


@dataclass(frozen=True)
class EvaluationOutcome:
    """Result of evaluating one learner response."""

    score: float  # nominally 0-100; integrator clamps noisy values
    is_pass: bool
    feedback: str = ""

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> EvaluationOutcome:
        """Parse an evaluator payload (accepts camelCase or snake_case keys)."""
        is_pass = data.get("is_pass", data.get("isPass"))
        if "score" not in data or is_pass is None:
            raise ValueError(f"Evaluation payload missing score/isPass: {data!r}")
        return cls(
            score=float(data["score"]),
            is_pass=bool(is_pass),
            feedback=data.get("feedback") or data.get("overallFeedback") or "",
        )


@dataclass(frozen=True)
class ReviewCandidate:
    """Scheduling projection of a ConceptRecord at a given instant."""

    concept_id: str
    module_id: str
    current_strength: float
    due_date: datetime
    is_due: bool
    is_due_today: bool
    is_due_this_week: bool
    priority_score: float
    explicit_review_flag: bool = False
    last_reviewed: Optional[datetime] = None
    title: str = ""

    @property
    def needs_session(self) -> bool:
        """Whether a standard session should pick this candidate up."""
        return self.is_due or self.explicit_review_flag


@dataclass
class EligibilityFilter:
    """Selection criteria passed to ConceptStore.list_eligible()."""

    statuses: frozenset[ConceptStatus] = field(default_factory=lambda: REVIEWABLE_STATUSES)
    installed_only: bool = True
    module_id: Optional[str] = None


@dataclass(frozen=True)
class ScheduleSummary:
    """Aggregate counts for dashboard display."""

    due_today_count: int
    due_this_week_count: int
    overdue_count: int
    total_eligible_count: int
