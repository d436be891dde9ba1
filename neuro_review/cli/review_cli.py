"""
neuro-review CLI - terminal front end for the review scheduler.

Usage:
    neuro-review init-db                       # Create tables
    neuro-review load modules.json             # Import modules and concepts
    neuro-review candidates --view overdue     # Ranked review dashboard
    neuro-review review                        # Standard (due-only) session
    neuro-review review --manual -n 5          # Manual session over anything eligible
    neuro-review flag CONCEPT_ID               # Mark a concept as struggled
    neuro-review module-status MOD installed   # Drive the module lifecycle
"""

import asyncio
import json
import sys
from pathlib import Path
from typing import Annotated, Optional

import typer
from loguru import logger
from rich.console import Console
from rich.panel import Panel
from rich.prompt import Confirm, IntPrompt, Prompt
from rich.table import Table

from neuro_review.config import get_settings
from neuro_review.exceptions import (
    ConceptNotFoundError,
    EvaluationUnavailableError,
    InvalidRecordError,
    InvalidTransitionError,
)
from neuro_review.integrations.evaluator_client import Evaluator, HttpEvaluator, SelfGradeEvaluator
from neuro_review.models import (
    DEFAULT_VIEW,
    ConceptRecord,
    ConceptStatus,
    InteractionMode,
    ModuleStatus,
    ReviewView,
)
from neuro_review.review.review_service import ReviewService
from neuro_review.review.session import ReviewSession

# =============================================================================
# CLI Setup
# =============================================================================

app = typer.Typer(
    name="neuro-review",
    help="Adaptive review scheduler - keep learned concepts from fading",
    add_completion=False,
    rich_markup_mode="rich",
)

console = Console()

MODE_PROMPTS = {
    InteractionMode.PROBE: "Answer a probing question about",
    InteractionMode.EXPLAIN: "Explain in your own words",
    InteractionMode.IMPLEMENT: "Describe how you would apply",
    InteractionMode.CONNECT: "Connect to another concept you know",
}


def configure_logging(level: str) -> None:
    logger.remove()
    logger.add(
        sys.stderr,
        level=level.upper(),
        format="<dim>{time:HH:mm:ss}</dim> | <level>{level: <8}</level> | {message}",
    )


def _get_service() -> ReviewService:
    """Build a ReviewService over the configured SQL store."""
    from neuro_review.db.database import init_db
    from neuro_review.db.sql_store import SqlConceptStore

    init_db()
    return ReviewService(SqlConceptStore())


def _strength_style(strength: float) -> str:
    if strength < 40:
        return "red"
    if strength < 75:
        return "yellow"
    return "green"


@app.callback()
def main(
    log_level: Annotated[
        Optional[str], typer.Option("--log-level", help="Override the configured log level")
    ] = None,
) -> None:
    configure_logging(log_level or get_settings().log_level)


# =============================================================================
# Data Commands
# =============================================================================


@app.command("init-db")
def init_db_command() -> None:
    """Create the concept store tables."""
    _get_service()
    console.print("[green]✓ Database ready[/]")


@app.command()
def load(
    path: Annotated[Path, typer.Argument(help="JSON file with modules and their concepts")],
) -> None:
    """
    Import modules and concepts.

    Expected format:
        {"modules": [{"module_id": "m1", "title": "...", "status": "new",
                      "concepts": [{"concept_id": "c1", "title": "..."}]}]}
    """
    service = _get_service()
    data = json.loads(path.read_text(encoding="utf-8"))

    added = 0
    for module in data.get("modules", []):
        service.store.add_module(
            module["module_id"],
            ModuleStatus(module.get("status", "new")),
            module.get("title", ""),
        )
        for concept in module.get("concepts", []):
            try:
                service.store.add_concept(
                    ConceptRecord(
                        concept_id=concept["concept_id"],
                        module_id=module["module_id"],
                        title=concept.get("title", ""),
                        status=ConceptStatus(concept.get("status", "new")),
                        strength=concept.get("strength"),
                    )
                )
                added += 1
            except InvalidRecordError as e:
                console.print(f"[yellow]⚠ {e}[/]")

    console.print(f"[green]Loaded {added} concept(s)[/]")


# =============================================================================
# Scheduling Commands
# =============================================================================


@app.command()
def candidates(
    view: Annotated[
        ReviewView, typer.Option("--view", "-v", help="upcoming, overdue or all")
    ] = DEFAULT_VIEW,
    module: Annotated[
        Optional[str], typer.Option("--module", "-m", help="Restrict to one module")
    ] = None,
) -> None:
    """Show ranked review candidates and due counts."""
    service = _get_service()
    summary = service.get_summary(module)
    ranked = service.get_candidates(view, module)

    console.print(
        Panel(
            f"Due today: [bold red]{summary.due_today_count}[/]   "
            f"Due this week: [bold yellow]{summary.due_this_week_count}[/]   "
            f"Overdue: [bold]{summary.overdue_count}[/]   "
            f"Total: [bold cyan]{summary.total_eligible_count}[/]",
            title="Memory Optimization",
            border_style="cyan",
        )
    )

    if not ranked:
        console.print(f"[dim]No {view.value} reviews.[/]")
        return

    table = Table(show_header=True, header_style="bold")
    table.add_column("Concept")
    table.add_column("Module", style="dim")
    table.add_column("Strength", justify="right")
    table.add_column("Due", justify="right")
    table.add_column("Priority", justify="right")

    for c in ranked:
        style = _strength_style(c.current_strength)
        due = "[red]overdue[/]" if c.is_due else c.due_date.strftime("%Y-%m-%d %H:%M")
        flag = " [magenta]⚑[/]" if c.explicit_review_flag else ""
        table.add_row(
            f"{c.title or c.concept_id}{flag}",
            c.module_id,
            f"[{style}]{c.current_strength:.0f}%[/]",
            due,
            f"{c.priority_score:.0f}",
        )
    console.print(table)


@app.command()
def flag(
    concept_id: Annotated[str, typer.Argument(help="Concept to mark as struggled")],
) -> None:
    """Force a concept into the next review."""
    service = _get_service()
    try:
        service.lifecycle.flag_for_review(concept_id)
    except (ConceptNotFoundError, InvalidRecordError) as e:
        console.print(f"[red]✗ {e}[/]")
        raise typer.Exit(code=1)
    console.print(f"[green]⚑ {concept_id} flagged for review[/]")


@app.command("module-status")
def module_status(
    module_id: Annotated[str, typer.Argument(help="Module to update")],
    status: Annotated[ModuleStatus, typer.Argument(help="Target module status")],
) -> None:
    """Move a module through download/install; its concepts follow."""
    service = _get_service()
    try:
        changed = service.lifecycle.set_module_status(module_id, status)
    except (ConceptNotFoundError, InvalidTransitionError) as e:
        console.print(f"[red]✗ {e}[/]")
        raise typer.Exit(code=1)
    console.print(f"[green]{module_id} → {status.value}[/] ({len(changed)} concept(s) updated)")


# =============================================================================
# Review Session
# =============================================================================


@app.command()
def review(
    manual: Annotated[
        bool, typer.Option("--manual", help="Review any eligible concept, due or not")
    ] = False,
    limit: Annotated[
        Optional[int], typer.Option("--limit", "-n", min=1, help="Maximum concepts in the session")
    ] = None,
    module: Annotated[
        Optional[str], typer.Option("--module", "-m", help="Restrict to one module")
    ] = None,
) -> None:
    """Start an interactive review session."""
    service = _get_service()
    session = service.start_session("manual" if manual else "standard", module_id=module, limit=limit)

    if session is None:
        console.print("[yellow]Nothing to review right now. 🎉[/]")
        return

    settings = get_settings()
    if settings.has_evaluator_configured():
        evaluator: Evaluator = HttpEvaluator.from_settings(settings)
    else:
        evaluator = SelfGradeEvaluator(_ask_self_grade, pass_threshold=settings.pass_threshold)

    asyncio.run(_run_session(service, session, evaluator))


def _ask_self_grade(concept_id: str, response: str, mode: InteractionMode) -> int:
    return IntPrompt.ask("Grade your answer (0-100)", default=70)


async def _run_session(service: ReviewService, session: ReviewSession, evaluator: Evaluator) -> None:
    console.print(
        Panel(
            f"[bold cyan]REVIEW SESSION[/]\nMode: {session.mode.value.upper()}\n"
            f"Concepts: {len(session.queue)}",
            border_style="cyan",
        )
    )

    try:
        while (item := service.current(session)) is not None:
            label = item.record.title or item.concept_id
            console.print(
                f"\n[bold]{session.cursor + 1}/{len(session.queue)}[/] "
                f"[cyan]{item.mode.value.upper()}[/] - {MODE_PROMPTS[item.mode]} [bold]{label}[/]"
            )
            response = Prompt.ask("Your answer (blank to exit)", default="")
            if not response.strip():
                service.exit(session)
                break

            try:
                updated = await service.review_response(session, response, evaluator)
            except EvaluationUnavailableError as e:
                console.print(f"[yellow]⚠ {e}[/]")
                if Confirm.ask("Retry this concept?", default=True):
                    continue
                service.exit(session)
                break

            style = _strength_style(updated.strength or 0)
            verdict = "[green]PASS[/]" if updated.status == ConceptStatus.UNDERSTOOD else "[red]NEEDS REVIEW[/]"
            console.print(f"{verdict}  strength [{style}]{updated.strength:.0f}%[/]")
    finally:
        await evaluator.close()

    summary = session.summary()
    console.print(
        f"\n[bold]Session {summary['state']}[/]: {summary['reviewed']} reviewed, "
        f"{summary['passed']} passed, {summary['failed']} need review"
    )


def run() -> None:
    """Entry point for the neuro-review console script."""
    app()


if __name__ == "__main__":
    run()
