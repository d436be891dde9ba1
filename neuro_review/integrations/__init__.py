"""External collaborators: response evaluators."""

from .evaluator_client import Evaluator, HttpEvaluator, SelfGradeEvaluator

__all__ = ["Evaluator", "HttpEvaluator", "SelfGradeEvaluator"]
