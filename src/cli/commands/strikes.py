"""3-strike escalation CLI commands."""

import click
from rich.console import Console
from rich.markup import escape
from rich.markdown import Markdown

from cli.utils import learning_session

console = Console()


@click.group()
def strikes():
    """Track failed fix attempts; stop after three and rethink."""
    pass


@strikes.command("check")
@click.argument("task_id")
def strikes_check(task_id):
    """Show strike count for a task."""
    with learning_session() as service:
        detector = service.strikes
        record = detector.get_record(task_id)
        struck_out = detector.is_struck_out(task_id)
        remaining = detector.remaining(task_id)

    console.print(f"Task {escape(task_id)}: {record.strike_count}/{detector.max_strikes} strikes")
    for i, f in enumerate(record.failures, start=1):
        console.print(f"  {i}. {escape(f.attempt)} [dim]- {escape(f.reason)}[/]")
    if struck_out:
        console.print("[red]Struck out. Run `swarm-learn strikes prompt` before any further fix.[/]")
    else:
        console.print(f"[green]{remaining} attempt(s) left.[/]")


@strikes.command("add")
@click.argument("task_id")
@click.option("--attempt", required=True, help="Fix that was tried")
@click.option("--reason", required=True, help="Why it failed")
def strikes_add(task_id, attempt, reason):
    """Record a failed fix attempt."""
    with learning_session() as service:
        record, memory = service.record_failed_fix(task_id, attempt, reason)
        max_strikes = service.strikes.max_strikes

    console.print(f"Strike {record.strike_count}/{max_strikes} for {escape(task_id)}")
    if memory:
        console.print("[red bold]Struck out. Architecture review required.[/]")
        console.print(f"[dim]Learning to persist ({escape(', '.join(memory.tags))}):[/]")
        console.print(escape(memory.information))


@strikes.command("clear")
@click.argument("task_id")
def strikes_clear(task_id):
    """Reset strikes after a successful fix."""
    with learning_session() as service:
        service.strikes.clear_strikes(task_id)
    console.print(f"[green]Cleared strikes for {escape(task_id)}.[/]")


@strikes.command("prompt")
@click.argument("task_id")
def strikes_prompt(task_id):
    """Print the architecture review prompt for a struck-out task."""
    with learning_session() as service:
        prompt = service.strikes.get_architecture_prompt(task_id)

    if prompt is None:
        console.print(f"[yellow]Task {escape(task_id)} has not struck out.[/]")
        return
    console.print(Markdown(prompt))
