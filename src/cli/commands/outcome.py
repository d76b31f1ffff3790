"""Outcome recording CLI commands."""

import click
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from cli.utils import learning_session, parse_csv
from learning.models import OutcomeSignals
from shared_types import DecompositionStrategy, FeedbackType

console = Console()

_TYPE_STYLES = {
    FeedbackType.HELPFUL: "green",
    FeedbackType.HARMFUL: "red",
    FeedbackType.NEUTRAL: "yellow",
}


@click.group()
def outcome():
    """Score finished subtasks into criterion feedback."""
    pass


@outcome.command("record")
@click.argument("task_id")
@click.option("--duration-ms", type=int, required=True, help="Wall-clock duration of the subtask")
@click.option("--errors", "error_count", type=int, default=0, help="Errors encountered")
@click.option("--retries", "retry_count", type=int, default=0, help="Retry attempts")
@click.option("--failed", is_flag=True, help="Subtask did not succeed")
@click.option("--files", help="Comma-separated files touched")
@click.option(
    "--strategy",
    type=click.Choice([s.value for s in DecompositionStrategy]),
    help="Decomposition strategy used",
)
@click.option("--failure-details", help="Failure message; classified into a failure mode")
@click.option("--criteria", help="Comma-separated criteria (default: configured criteria)")
@click.option("--dry-run", is_flag=True, help="Score without storing feedback")
def outcome_record(
    task_id, duration_ms, error_count, retry_count, failed, files, strategy,
    failure_details, criteria, dry_run,
):
    """Score a subtask outcome and store one feedback event per criterion."""
    with learning_session() as service:
        signals = OutcomeSignals(
            task_id=task_id,
            duration_ms=duration_ms,
            error_count=error_count,
            retry_count=retry_count,
            success=not failed,
            files_touched=tuple(parse_csv(files)),
            strategy=strategy,
            failure_details=failure_details,
        )
        record = service.record_outcome(
            signals, criteria=parse_csv(criteria) or None, persist=not dry_run
        )

    scored = record.scored
    style = _TYPE_STYLES[scored.type]
    console.print(f"[{style}]{scored.type.value}[/] score={scored.raw_score:.2f}  {escape(scored.reasoning)}")
    if scored.signals.failure_mode:
        console.print(f"Failure mode: [bold]{scored.signals.failure_mode.value}[/]")

    table = Table(show_header=True, title="Feedback" + (" (not stored)" if dry_run else ""))
    table.add_column("Criterion", style="cyan")
    table.add_column("Type")
    table.add_column("Value", justify="right")
    table.add_column("Context", style="dim", max_width=60)
    for e in record.feedback_events:
        table.add_row(e.criterion, f"[{_TYPE_STYLES[e.type]}]{e.type.value}[/]", f"{e.raw_value:.2f}", escape(e.context or ""))
    console.print(table)
