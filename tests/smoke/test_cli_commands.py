"""
Smoke Tests for CLI Commands.

These tests verify that CLI commands run without errors and produce output.
They don't validate correctness deeply - just that commands work. The
service is swapped for one over an in-memory store.

Usage:
    pytest tests/smoke/test_cli_commands.py -v
    pytest tests/smoke/test_cli_commands.py -v -m smoke
"""

import json
import sys

import pytest
from loguru import logger
from typer.testing import CliRunner

from neuro_review.cli import review_cli
from neuro_review.models import ConceptStatus, ModuleStatus
from neuro_review.review.review_service import ReviewService

# Mark all tests in this module as smoke tests
pytestmark = pytest.mark.smoke

runner = CliRunner()


@pytest.fixture(autouse=True)
def restore_logging():
    """The CLI callback rebinds loguru to the runner's stderr; put it back afterwards."""
    yield
    logger.remove()
    logger.add(sys.stderr)


@pytest.fixture
def service(store, settings, now, make_record, monkeypatch):
    store.add_concept(make_record("osi-model", strength=50, hours_ago=60, title="OSI Model"))
    store.add_concept(make_record("tcp-handshake", strength=95, hours_ago=1))
    service = ReviewService(store, settings=settings, clock=lambda: now)
    monkeypatch.setattr(review_cli, "_get_service", lambda: service)
    return service


class TestCLIHelp:
    """Test that help commands work."""

    def test_main_help(self):
        result = runner.invoke(review_cli.app, ["--help"])

        assert result.exit_code == 0
        assert "candidates" in result.stdout
        assert "review" in result.stdout

    @pytest.mark.parametrize("command", ["candidates", "review", "flag", "module-status", "load", "init-db"])
    def test_command_help(self, command):
        result = runner.invoke(review_cli.app, [command, "--help"])

        assert result.exit_code == 0


class TestCandidatesCommand:
    def test_lists_due_concepts(self, service):
        result = runner.invoke(review_cli.app, ["candidates", "--view", "overdue"])

        assert result.exit_code == 0
        assert "Memory Optimization" in result.stdout
        assert "OSI Model" in result.stdout
        assert "tcp-handshake" not in result.stdout

    def test_empty_view(self, service, store):
        result = runner.invoke(review_cli.app, ["candidates", "--module", "mod-missing"])

        assert result.exit_code == 0
        assert "No upcoming reviews" in result.stdout


class TestLifecycleCommands:
    def test_flag(self, service, store):
        result = runner.invoke(review_cli.app, ["flag", "tcp-handshake"])

        assert result.exit_code == 0
        assert store.get("tcp-handshake").explicit_review_flag is True

    def test_flag_unknown_concept(self, service):
        result = runner.invoke(review_cli.app, ["flag", "nope"])

        assert result.exit_code == 1

    def test_module_status_invalid_transition(self, service, store):
        store.add_module("mod-new", ModuleStatus.NEW)

        result = runner.invoke(review_cli.app, ["module-status", "mod-new", "installed"])

        assert result.exit_code == 1
        assert store.get_module_status("mod-new") == ModuleStatus.NEW

    def test_load_then_download(self, service, store, tmp_path):
        path = tmp_path / "modules.json"
        path.write_text(
            json.dumps(
                {
                    "modules": [
                        {
                            "module_id": "mod-dns",
                            "title": "DNS",
                            "concepts": [{"concept_id": "dns-records"}, {"concept_id": "dns-caching"}],
                        }
                    ]
                }
            )
        )

        result = runner.invoke(review_cli.app, ["load", str(path)])
        assert result.exit_code == 0
        assert "Loaded 2 concept(s)" in result.stdout

        result = runner.invoke(review_cli.app, ["module-status", "mod-dns", "downloading"])
        assert result.exit_code == 0
        assert store.get("dns-records").status == ConceptStatus.DOWNLOADING

    def test_reload_keeps_installed_module(self, service, store, tmp_path):
        path = tmp_path / "modules.json"
        path.write_text(
            json.dumps(
                {
                    "modules": [
                        {
                            "module_id": "mod-dns",
                            "status": "new",
                            "concepts": [{"concept_id": "dns-records"}],
                        }
                    ]
                }
            )
        )
        assert runner.invoke(review_cli.app, ["load", str(path)]).exit_code == 0
        for status in ("downloading", "downloaded", "installing", "installed"):
            assert runner.invoke(review_cli.app, ["module-status", "mod-dns", status]).exit_code == 0

        result = runner.invoke(review_cli.app, ["load", str(path)])

        assert result.exit_code == 0
        assert "Loaded 0 concept(s)" in result.stdout
        assert store.get_module_status("mod-dns") == ModuleStatus.INSTALLED
        assert store.get("dns-records").status == ConceptStatus.UNDERSTOOD


class TestReviewCommand:
    def test_nothing_to_review(self, store, settings, now, make_record, monkeypatch):
        store.add_concept(make_record("fresh", strength=95, hours_ago=1))
        service = ReviewService(store, settings=settings, clock=lambda: now)
        monkeypatch.setattr(review_cli, "_get_service", lambda: service)

        result = runner.invoke(review_cli.app, ["review"])

        assert result.exit_code == 0
        assert "Nothing to review" in result.stdout

    def test_negative_limit_rejected(self, service):
        result = runner.invoke(review_cli.app, ["review", "-n", "-1"])

        assert result.exit_code != 0

    def test_self_graded_review(self, service, store, monkeypatch):
        monkeypatch.setattr(review_cli.get_settings(), "evaluator_api_url", None)

        result = runner.invoke(review_cli.app, ["review"], input="Seven layers of abstraction\n90\n")

        assert result.exit_code == 0, result.stdout
        assert store.get("osi-model").status == ConceptStatus.UNDERSTOOD
        assert "1 reviewed" in result.stdout
