"""Decomposition pattern CLI commands."""

import click
from rich.console import Console
from rich.markdown import Markdown
from rich.markup import escape
from rich.table import Table

from cli.utils import learning_session, parse_csv
from learning.patterns import extract_patterns_from_description
from shared_types import PatternKind

console = Console()


@click.group()
def patterns():
    """Track decomposition patterns and anti-patterns."""
    pass


@patterns.command("add")
@click.argument("content")
@click.option("--tags", help="Comma-separated tags")
def patterns_add(content, tags):
    """Store a decomposition pattern."""
    with learning_session() as service:
        pattern = service.add_pattern(content, tags=parse_csv(tags))
    console.print(f"[green]Pattern:[/] {escape(pattern.id)}  {escape(pattern.content)}")


@patterns.command("list")
@click.option("--query", "-q", help="Substring match on content or tags")
@click.option("--anti-only", is_flag=True, help="Only anti-patterns")
@click.option("--tag", help="Filter by tag")
@click.option("--limit", "-n", default=20)
def patterns_list(query, anti_only, tag, limit):
    """List stored patterns."""
    with learning_session() as service:
        storage = service.storage
        if query:
            rows = storage.find_similar_patterns(query, limit=limit)
        elif anti_only:
            rows = storage.get_anti_patterns()
        elif tag:
            rows = storage.get_patterns_by_tag(tag)
        else:
            rows = storage.get_all_patterns()
        if anti_only:
            rows = [p for p in rows if p.kind == PatternKind.ANTI_PATTERN]
        if tag:
            rows = [p for p in rows if tag in p.tags]
        rows = rows[:limit]

    if not rows:
        console.print("[yellow]No patterns found.[/]")
        return

    table = Table(show_header=True, title="Patterns")
    table.add_column("ID", style="dim")
    table.add_column("Content", max_width=50)
    table.add_column("Kind")
    table.add_column("OK", justify="right", style="green")
    table.add_column("Fail", justify="right", style="red")
    table.add_column("Tags", style="dim")

    for p in rows:
        kind = "[red]anti[/]" if p.kind == PatternKind.ANTI_PATTERN else "pattern"
        table.add_row(
            escape(p.id),
            escape(p.content),
            kind,
            str(p.success_count),
            str(p.failure_count),
            escape(", ".join(p.tags[:3])),
        )

    console.print(table)


@patterns.command("observe")
@click.argument("pattern_id")
@click.option("--success/--failure", required=True, help="Outcome of the decomposition")
@click.option("--task-id", help="Task that used the pattern")
def patterns_observe(pattern_id, success, task_id):
    """Count one outcome against a pattern."""
    with learning_session() as service:
        obs = service.observe_pattern(pattern_id, success, task_id)

    p = obs.pattern
    console.print(f"{escape(p.content)}: {p.success_count} ok / {p.failure_count} failed")
    if obs.inversion:
        console.print(f"[red]Inverted:[/] {escape(obs.inversion.inverted.content)}")
        console.print(f"[dim]{escape(obs.inversion.reason)}[/]")


@patterns.command("extract")
@click.argument("description")
@click.option(
    "--record",
    type=click.Choice(["success", "failure"]),
    help="Also record this outcome against every pattern found",
)
@click.option("--task-id", help="Task the description belongs to")
def patterns_extract(description, record, task_id):
    """Find known pattern markers in a decomposition description."""
    if not record:
        names = extract_patterns_from_description(description)
        if not names:
            console.print("[yellow]No known patterns mentioned.[/]")
            return
        for name in names:
            console.print(f"- {name}")
        return

    with learning_session() as service:
        observations = service.observe_description(description, record == "success", task_id)

    if not observations:
        console.print("[yellow]No known patterns mentioned.[/]")
        return
    for obs in observations:
        marker = " [red](inverted)[/]" if obs.inversion else ""
        console.print(f"- {escape(obs.pattern.content)}{marker}")


@patterns.command("guidance")
def patterns_guidance():
    """Render learned guidance for decomposition prompts."""
    with learning_session() as service:
        text = service.decomposition_guidance()

    if not text:
        console.print("[yellow]Nothing learned yet.[/]")
        return
    console.print(Markdown(text))
