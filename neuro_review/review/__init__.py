"""
Review Module for spaced concept review.

Provides:
- Memory strength decay and due-date tiers
- Priority-ranked review scheduling
- Review session orchestration
- Evaluation-driven strength updates
- Concept/module lifecycle transitions
"""

from neuro_review.review.integrator import EvaluationIntegrator
from neuro_review.review.interaction import InteractionModeSelector
from neuro_review.review.lifecycle import LifecycleManager
from neuro_review.review.review_service import ReviewService
from neuro_review.review.scheduler import PriorityWeights, ReviewScheduler
from neuro_review.review.session import (
    ReviewSession,
    SessionItem,
    SessionOrchestrator,
    SessionState,
)

__all__ = [
    "EvaluationIntegrator",
    "InteractionModeSelector",
    "LifecycleManager",
    "PriorityWeights",
    "ReviewScheduler",
    "ReviewService",
    "ReviewSession",
    "SessionItem",
    "SessionOrchestrator",
    "SessionState",
]
