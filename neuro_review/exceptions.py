"""
Error taxonomy for the review scheduler.

An empty review queue and an out-of-range evaluator score have no error
class: the first is a normal result (start_session returns None), the
second is clamped by the integrator.
"""

from __future__ import annotations


class NeuroReviewError(Exception):
    """Base class for all scheduler errors."""


class EvaluationUnavailableError(NeuroReviewError):
    """The external evaluator failed or timed out. Safe to retry the same item."""

    def __init__(self, concept_id: str, reason: str = ""):
        self.concept_id = concept_id
        self.reason = reason
        message = f"Evaluation unavailable for concept {concept_id}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)


class InvalidRecordError(NeuroReviewError):
    """A ConceptRecord is missing required fields or is not reviewable."""


class InvalidTransitionError(NeuroReviewError):
    """A lifecycle status change that the state machine does not allow."""

    def __init__(self, kind: str, current: str, requested: str):
        self.kind = kind
        self.current = current
        self.requested = requested
        super().__init__(f"Cannot move {kind} from '{current}' to '{requested}'")


class ConceptNotFoundError(NeuroReviewError, KeyError):
    """No record exists for the requested concept (or module)."""

    def __str__(self) -> str:
        return str(self.args[0]) if self.args else "Concept not found"


class SessionStateError(NeuroReviewError):
    """Operation requires an active review session."""
