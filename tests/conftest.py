"""
Pytest Configuration and Fixtures.

This file configures pytest and provides shared fixtures for all tests.
"""
import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

# Add project root to path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from neuro_review.config import Settings  # noqa: E402
from neuro_review.models import ConceptRecord, ConceptStatus, ModuleStatus  # noqa: E402
from neuro_review.store import InMemoryConceptStore  # noqa: E402

INSTALLED_MODULE = "mod-networking"


def pytest_configure(config):
    """Configure pytest markers."""
    config.addinivalue_line("markers", "unit: Unit tests")
    config.addinivalue_line("markers", "integration: Integration tests (require database)")
    config.addinivalue_line("markers", "smoke: Smoke tests for CLI commands")
    config.addinivalue_line("markers", "slow: Slow tests")


def pytest_collection_modifyitems(config, items):
    """Automatically mark tests based on their location."""
    for item in items:
        if "unit" in str(item.fspath):
            item.add_marker(pytest.mark.unit)
        elif "integration" in str(item.fspath):
            item.add_marker(pytest.mark.integration)
        elif "smoke" in str(item.fspath):
            item.add_marker(pytest.mark.smoke)


@pytest.fixture
def now():
    """A fixed instant in the middle of a day, so end-of-day math is stable."""
    return datetime(2025, 6, 15, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def settings():
    """Default settings, isolated from any local .env file."""
    return Settings(_env_file=None)


@pytest.fixture
def make_record(now):
    """Factory for reviewable concept records in the installed module."""

    def _make(
        concept_id="concept-001",
        strength=50.0,
        hours_ago=48,
        status=ConceptStatus.UNDERSTOOD,
        flagged=False,
        module_id=INSTALLED_MODULE,
        title="",
    ):
        return ConceptRecord(
            concept_id=concept_id,
            module_id=module_id,
            status=status,
            strength=strength,
            last_reviewed=None if hours_ago is None else now - timedelta(hours=hours_ago),
            explicit_review_flag=flagged,
            title=title,
        )

    return _make


@pytest.fixture
def store():
    """Empty in-memory store with one installed module."""
    return InMemoryConceptStore(modules={INSTALLED_MODULE: ModuleStatus.INSTALLED})
