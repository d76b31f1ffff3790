"""swarm-learn command line."""

import sys
from pathlib import Path

import click
from rich.console import Console

from cli.commands import maturity, outcome, patterns, strikes, weights
from cli.config import load_config_model
from cli.logging_config import setup_logging

console = Console()


@click.group()
@click.version_option(version="0.1.0")
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging")
@click.option("--json-logs", is_flag=True, help="Emit logs as JSON lines on stderr")
@click.option(
    "-c",
    "--config",
    "config_path",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Config file (default: ./swarm-learning.yaml, then ~/.swarm/config.yaml)",
)
@click.pass_context
def cli(ctx: click.Context, verbose: bool, json_logs: bool, config_path: Path | None):
    """Swarm learning - outcome feedback, pattern lifecycle and 3-strike escalation."""
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path

    try:
        log_cfg = load_config_model(config_path).logging
    except ValueError as e:
        console.print(f"[red]Config error:[/] {e}")
        sys.exit(1)
    setup_logging(
        json_mode=json_logs or log_cfg.json_output,
        level="DEBUG" if verbose else log_cfg.level,
    )


cli.add_command(outcome)
cli.add_command(weights)
cli.add_command(patterns)
cli.add_command(maturity)
cli.add_command(strikes)


if __name__ == "__main__":
    cli()
