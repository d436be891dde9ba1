"""
Unit tests for the evaluator clients.
"""

import asyncio

import pytest
import pytest_asyncio
from httpx import ConnectError, Request, Response, TimeoutException

from neuro_review.exceptions import EvaluationUnavailableError
from neuro_review.integrations.evaluator_client import HttpEvaluator, SelfGradeEvaluator
from neuro_review.models import EvaluationOutcome, InteractionMode


@pytest_asyncio.fixture
async def client():
    """HTTP evaluator instance."""
    client = HttpEvaluator(
        api_url="http://localhost:8095/",
        api_key="test-key",
        timeout_ms=5000,
        retry_attempts=3,
    )
    yield client
    await client.close()


@pytest.fixture(autouse=True)
def no_backoff(monkeypatch):
    """Skip real sleeps between retries."""
    async def fake_sleep(seconds):
        return None

    monkeypatch.setattr(asyncio, "sleep", fake_sleep)


class TestEvaluationOutcome:
    """Tests for parsing evaluator payloads."""

    def test_from_dict_camel_case(self):
        outcome = EvaluationOutcome.from_dict({"score": 92, "isPass": True, "overallFeedback": "Solid"})

        assert outcome.score == 92.0
        assert outcome.is_pass is True
        assert outcome.feedback == "Solid"

    def test_from_dict_snake_case(self):
        outcome = EvaluationOutcome.from_dict({"score": 40, "is_pass": False})

        assert outcome.is_pass is False
        assert outcome.feedback == ""

    def test_from_dict_missing_verdict(self):
        with pytest.raises(ValueError):
            EvaluationOutcome.from_dict({"score": 40})


class TestHttpEvaluator:
    """Tests for HttpEvaluator class."""

    @pytest.mark.asyncio
    async def test_api_key_header(self, client):
        assert client.client.headers["X-API-Key"] == "test-key"
        assert client.api_url == "http://localhost:8095"

    @pytest.mark.asyncio
    async def test_evaluate_success(self, client, monkeypatch):
        """Test a successful evaluation round trip."""
        seen = {}

        async def mock_post(url, **kwargs):
            seen["url"] = url
            seen["json"] = kwargs["json"]
            return Response(200, json={"score": 92, "isPass": True}, request=Request("POST", url))

        monkeypatch.setattr(client.client, "post", mock_post)

        outcome = await client.evaluate("concept-001", "TCP is connection-oriented", InteractionMode.EXPLAIN)

        assert outcome.score == 92.0
        assert outcome.is_pass is True
        assert seen["url"] == "http://localhost:8095/evaluate"
        assert seen["json"] == {
            "concept_id": "concept-001",
            "learner_response": "TCP is connection-oriented",
            "interaction_mode": "explain",
        }

    @pytest.mark.asyncio
    async def test_timeout_retry(self, client, monkeypatch):
        """Test retry logic on timeout."""
        call_count = 0

        async def mock_post(url, **kwargs):
            nonlocal call_count
            call_count += 1
            if call_count < 2:
                raise TimeoutException("Timeout")
            return Response(200, json={"score": 70, "isPass": False}, request=Request("POST", url))

        monkeypatch.setattr(client.client, "post", mock_post)

        outcome = await client.evaluate("concept-001", "answer", InteractionMode.PROBE)

        assert call_count == 2
        assert outcome.is_pass is False

    @pytest.mark.asyncio
    async def test_server_error_retried_until_exhausted(self, client, monkeypatch):
        call_count = 0

        async def mock_post(url, **kwargs):
            nonlocal call_count
            call_count += 1
            return Response(503, json={"error": "busy"}, request=Request("POST", url))

        monkeypatch.setattr(client.client, "post", mock_post)

        with pytest.raises(EvaluationUnavailableError) as exc:
            await client.evaluate("concept-001", "answer", InteractionMode.PROBE)

        assert call_count == 3
        assert exc.value.concept_id == "concept-001"

    @pytest.mark.asyncio
    async def test_client_error_not_retried(self, client, monkeypatch):
        call_count = 0

        async def mock_post(url, **kwargs):
            nonlocal call_count
            call_count += 1
            return Response(422, json={"error": "bad input"}, request=Request("POST", url))

        monkeypatch.setattr(client.client, "post", mock_post)

        with pytest.raises(EvaluationUnavailableError):
            await client.evaluate("concept-001", "answer", InteractionMode.PROBE)

        assert call_count == 1

    @pytest.mark.asyncio
    async def test_connection_error(self, client, monkeypatch):
        async def mock_post(url, **kwargs):
            raise ConnectError("Connection refused")

        monkeypatch.setattr(client.client, "post", mock_post)

        with pytest.raises(EvaluationUnavailableError) as exc:
            await client.evaluate("concept-001", "answer", InteractionMode.CONNECT)

        assert "Connection refused" in exc.value.reason

    @pytest.mark.asyncio
    async def test_malformed_payload(self, client, monkeypatch):
        call_count = 0

        async def mock_post(url, **kwargs):
            nonlocal call_count
            call_count += 1
            return Response(200, json={"verdict": "good"}, request=Request("POST", url))

        monkeypatch.setattr(client.client, "post", mock_post)

        with pytest.raises(EvaluationUnavailableError):
            await client.evaluate("concept-001", "answer", InteractionMode.IMPLEMENT)

        assert call_count == 1


class TestSelfGradeEvaluator:
    """Tests for the offline self-grading evaluator."""

    @pytest.mark.asyncio
    async def test_threshold(self):
        evaluator = SelfGradeEvaluator(lambda *_: 80)

        outcome = await evaluator.evaluate("concept-001", "answer", InteractionMode.PROBE)

        assert outcome.is_pass is True
        assert outcome.score == 80.0

    @pytest.mark.asyncio
    async def test_below_threshold_fails(self):
        evaluator = SelfGradeEvaluator(lambda *_: 79, pass_threshold=80)

        outcome = await evaluator.evaluate("concept-001", "answer", InteractionMode.PROBE)

        assert outcome.is_pass is False

    @pytest.mark.asyncio
    async def test_unparseable_grade(self):
        evaluator = SelfGradeEvaluator(lambda *_: "great")

        with pytest.raises(EvaluationUnavailableError):
            await evaluator.evaluate("concept-001", "answer", InteractionMode.PROBE)
