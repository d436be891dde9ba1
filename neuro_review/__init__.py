"""
neuro-review: adaptive review scheduler for concept-based learning.

Tracks per-learner memory strength, decays it over time, schedules due
reviews by priority and walks learners through review sessions.
"""

from neuro_review.models import (
    ConceptRecord,
    ConceptStatus,
    EvaluationOutcome,
    InteractionMode,
    ModuleStatus,
    ReviewCandidate,
    ReviewView,
    SessionMode,
)
from neuro_review.review.review_service import ReviewService
from neuro_review.store import ConceptStore, InMemoryConceptStore

__version__ = "1.0.0"

__all__ = [
    "ConceptRecord",
    "ConceptStatus",
    "ConceptStore",
    "EvaluationOutcome",
    "InMemoryConceptStore",
    "InteractionMode",
    "ModuleStatus",
    "ReviewCandidate",
    "ReviewService",
    "ReviewView",
    "SessionMode",
]
