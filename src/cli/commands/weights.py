"""Criterion weight CLI commands."""

import click
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from cli.utils import learning_session, parse_csv
from learning.outcomes import should_deprecate_criterion

console = Console()


@click.group()
def weights():
    """Inspect learned criterion weights."""
    pass


@weights.command("show")
@click.option("--criteria", help="Comma-separated criteria (default: every criterion with feedback)")
def weights_show(criteria):
    """Show decayed weights per criterion."""
    with learning_session() as service:
        result = service.criterion_weights(parse_csv(criteria) or None)
        config = service.learning_config

    if not result:
        console.print("[yellow]No feedback recorded yet.[/]")
        return

    table = Table(show_header=True, title="Criterion Weights")
    table.add_column("Criterion", style="cyan")
    table.add_column("Weight", justify="right")
    table.add_column("Helpful", justify="right", style="green")
    table.add_column("Harmful", justify="right", style="red")
    table.add_column("Last validated", style="dim")
    table.add_column("Status")

    for name, w in result.items():
        status = "[red]deprecated[/]" if should_deprecate_criterion(w, config) else "active"
        last = w.last_validated.strftime("%Y-%m-%d") if w.last_validated else "-"
        table.add_row(escape(name), f"{w.weight:.2f}", str(w.helpful_count), str(w.harmful_count), last, status)

    console.print(table)


@weights.command("deprecated")
def weights_deprecated():
    """List criteria whose harmful share is too high to keep trusting."""
    with learning_session() as service:
        names = service.deprecated_criteria()

    if not names:
        console.print("[green]No deprecated criteria.[/]")
        return
    for name in names:
        console.print(f"[red]-[/] {escape(name)}")
