"""Pattern maturity CLI commands."""

import click
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from cli.utils import learning_session
from learning.maturity import format_maturity_for_prompt, get_maturity_multiplier
from shared_types import MaturityState

console = Console()

_STATE_STYLES = {
    MaturityState.CANDIDATE: "dim",
    MaturityState.ESTABLISHED: "cyan",
    MaturityState.PROVEN: "green",
    MaturityState.DEPRECATED: "red",
}


def _print_maturity(m):
    style = _STATE_STYLES[m.state]
    console.print(f"[{style}]{escape(m.pattern_id)}[/] {escape(format_maturity_for_prompt(m))}")


@click.group()
def maturity():
    """Pattern lifecycle: candidate, established, proven, deprecated."""
    pass


@maturity.command("feedback")
@click.argument("pattern_id")
@click.option("--helpful/--harmful", required=True)
@click.option("--weight", type=float, default=1.0, help="Strength of the feedback (0-1)")
def maturity_feedback(pattern_id, helpful, weight):
    """Record helpful or harmful feedback and recompute maturity."""
    with learning_session() as service:
        m = service.record_maturity_feedback(
            pattern_id, "helpful" if helpful else "harmful", weight=weight
        )
    _print_maturity(m)


@maturity.command("show")
@click.argument("pattern_id")
def maturity_show(pattern_id):
    """Show a pattern's maturity."""
    with learning_session() as service:
        m = service.get_maturity(pattern_id)
    _print_maturity(m)
    console.print(f"Multiplier: {get_maturity_multiplier(m.state)}")
    if m.deprecation_reason:
        console.print(f"[dim]Reason: {escape(m.deprecation_reason)}[/]")


@maturity.command("promote")
@click.argument("pattern_id")
def maturity_promote(pattern_id):
    """Mark a pattern as proven."""
    with learning_session() as service:
        m = service.promote(pattern_id)
    _print_maturity(m)


@maturity.command("deprecate")
@click.argument("pattern_id")
@click.option("--reason", help="Why the pattern should no longer be used")
def maturity_deprecate(pattern_id, reason):
    """Mark a pattern as deprecated."""
    with learning_session() as service:
        m = service.deprecate(pattern_id, reason)
    _print_maturity(m)


@maturity.command("list")
@click.option(
    "--state",
    type=click.Choice([s.value for s in MaturityState]),
    help="Only patterns in this state",
)
def maturity_list(state):
    """List maturity records."""
    with learning_session() as service:
        rows = (
            service.storage.get_maturity_by_state(state)
            if state
            else service.storage.get_all_maturity()
        )

    if not rows:
        console.print("[yellow]No maturity records.[/]")
        return

    table = Table(show_header=True, title="Pattern Maturity")
    table.add_column("Pattern", style="dim")
    table.add_column("State")
    table.add_column("Helpful", justify="right", style="green")
    table.add_column("Harmful", justify="right", style="red")
    table.add_column("Last validated", style="dim", width=10)

    for m in rows:
        style = _STATE_STYLES[m.state]
        table.add_row(
            escape(m.pattern_id),
            f"[{style}]{m.state.value}[/]",
            str(m.helpful_count),
            str(m.harmful_count),
            m.last_validated.strftime("%Y-%m-%d"),
        )
    console.print(table)
