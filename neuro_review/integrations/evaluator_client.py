"""
Evaluator clients for learner responses.

The evaluator is the only suspending step in a review: it scores a free-text
response (usually through an LLM service) and returns {score, isPass}. Any
failure surfaces as EvaluationUnavailableError so the caller can retry the
same item without touching its ConceptRecord.
"""

from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod
from typing import Any, Callable

import httpx
from loguru import logger

from neuro_review.exceptions import EvaluationUnavailableError
from neuro_review.models import EvaluationOutcome, InteractionMode


class Evaluator(ABC):
    """Scores a learner response for one concept."""

    @abstractmethod
    async def evaluate(
        self,
        concept_id: str,
        learner_response: str,
        interaction_mode: InteractionMode,
    ) -> EvaluationOutcome:
        """Return the outcome, or raise EvaluationUnavailableError."""

    async def close(self) -> None:
        """Release any held resources."""


class HttpEvaluator(Evaluator):
    """HTTP client for a remote response-evaluation service."""

    def __init__(
        self,
        api_url: str,
        api_key: str | None = None,
        timeout_ms: int = 30000,
        retry_attempts: int = 3,
        endpoint: str = "/evaluate",
    ):
        """
        Initialize evaluator client.

        Args:
            api_url: Base URL for the evaluation API
            api_key: Optional key sent as X-API-Key
            timeout_ms: Request timeout in milliseconds
            retry_attempts: Number of attempts before giving up
            endpoint: Path of the evaluation route
        """
        self.api_url = api_url.rstrip("/")
        self.endpoint = endpoint
        self.timeout_seconds = timeout_ms / 1000.0
        self.retry_attempts = max(1, retry_attempts)

        headers = {"Content-Type": "application/json"}
        if api_key:
            headers["X-API-Key"] = api_key
        self.client = httpx.AsyncClient(
            headers=headers,
            timeout=httpx.Timeout(self.timeout_seconds),
            follow_redirects=True,
        )

    @classmethod
    def from_settings(cls, settings) -> HttpEvaluator:
        return cls(
            api_url=settings.evaluator_api_url,
            api_key=settings.evaluator_api_key,
            timeout_ms=settings.evaluator_timeout_ms,
            retry_attempts=settings.evaluator_retry_attempts,
        )

    async def __aenter__(self) -> HttpEvaluator:
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()

    async def close(self) -> None:
        """Close the HTTP client."""
        await self.client.aclose()

    async def evaluate(
        self,
        concept_id: str,
        learner_response: str,
        interaction_mode: InteractionMode,
    ) -> EvaluationOutcome:
        """
        Score a response with retry logic.

        Timeouts, connection errors and 5xx responses are retried with
        exponential backoff; 4xx responses and malformed payloads are not.

        Raises:
            EvaluationUnavailableError: When no usable outcome was obtained
        """
        payload = {
            "concept_id": concept_id,
            "learner_response": learner_response,
            "interaction_mode": InteractionMode(interaction_mode).value,
        }
        last_error: Exception | None = None

        for attempt in range(self.retry_attempts):
            try:
                response = await self.client.post(f"{self.api_url}{self.endpoint}", json=payload)
                response.raise_for_status()
                return EvaluationOutcome.from_dict(response.json())

            except (httpx.TimeoutException, httpx.TransportError) as e:
                last_error = e
                logger.warning(
                    f"Evaluator unreachable on attempt {attempt + 1}/{self.retry_attempts}: {e}"
                )

            except httpx.HTTPStatusError as e:
                last_error = e
                if e.response.status_code < 500:
                    logger.error(f"Evaluator rejected request for {concept_id}: {e.response.status_code}")
                    break
                logger.warning(
                    f"Evaluator error {e.response.status_code} on attempt "
                    f"{attempt + 1}/{self.retry_attempts}"
                )

            except ValueError as e:
                # Non-JSON body or missing score/isPass
                logger.error(f"Malformed evaluation payload for {concept_id}: {e}")
                raise EvaluationUnavailableError(concept_id, str(e)) from e

            if attempt < self.retry_attempts - 1:
                await asyncio.sleep(2 ** attempt)  # 1s, 2s, 4s

        raise EvaluationUnavailableError(concept_id, str(last_error)) from last_error


class SelfGradeEvaluator(Evaluator):
    """
    Offline evaluator: the learner grades their own response.

    grade_fn receives (concept_id, response, mode) and returns a 0-100 score;
    scores at or above pass_threshold count as a pass.
    """

    def __init__(
        self,
        grade_fn: Callable[[str, str, InteractionMode], float],
        pass_threshold: float = 80.0,
    ):
        self.grade_fn = grade_fn
        self.pass_threshold = pass_threshold

    async def evaluate(
        self,
        concept_id: str,
        learner_response: str,
        interaction_mode: InteractionMode,
    ) -> EvaluationOutcome:
        try:
            score = float(self.grade_fn(concept_id, learner_response, interaction_mode))
        except (TypeError, ValueError) as e:
            raise EvaluationUnavailableError(concept_id, f"invalid self-grade: {e}") from e
        return EvaluationOutcome(score=score, is_pass=score >= self.pass_threshold)
