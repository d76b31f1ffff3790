"""Shared CLI utilities."""

import sys
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional

import click
import structlog
from rich.console import Console
from rich.markup import escape

from learning import LearningError, LearningService, create_storage

console = Console()
logger = structlog.get_logger()


def _config_path() -> Optional[Path]:
    ctx = click.get_current_context(silent=True)
    if ctx is None or not ctx.find_root().obj:
        return None
    return ctx.find_root().obj.get("config_path")


def get_components(config_path: Optional[Path] = None) -> dict:
    """Initialize config, storage and service for one CLI invocation."""
    from cli.config import load_config_model

    try:
        config = load_config_model(config_path or _config_path())
    except ValueError as e:
        console.print(f"[red]Config error:[/] {e}")
        sys.exit(1)

    storage = create_storage(config.storage)
    logger.debug("components_initialized", backend=config.storage.backend.value)
    service = LearningService(
        storage,
        learning=config.learning,
        anti_patterns=config.anti_patterns,
        maturity=config.maturity,
        strikes=config.strikes,
    )
    return {
        "config": config,
        "storage": storage,
        "service": service,
    }


@contextmanager
def learning_session() -> Iterator[LearningService]:
    """Yield a configured service; report LearningError in red and exit 1."""
    service = get_components()["service"]
    try:
        yield service
    except LearningError as e:
        console.print(f"[red]Error:[/] {escape(str(e))}")
        sys.exit(1)
    finally:
        service.close()


def parse_csv(value: Optional[str]) -> list[str]:
    """Split a comma-separated option into trimmed, non-empty items."""
    if not value:
        return []
    return [item.strip() for item in value.split(",") if item.strip()]
