"""Configuration loading and management."""

import os
from pathlib import Path
from typing import Optional

import yaml

from .config_models import SwarmConfig

DB_ENV_VAR = "SWARM_LEARNING_DB"


def find_config() -> Optional[Path]:
    """Find config file in standard locations."""
    locations = [
        Path.cwd() / "swarm-learning.yaml",
        Path.home() / ".swarm" / "config.yaml",
    ]
    for loc in locations:
        if loc.exists():
            return loc
    return None


def load_config_model(config_path: Optional[Path] = None) -> SwarmConfig:
    """Load configuration as Pydantic model with validation.

    ``SWARM_LEARNING_DB`` in the environment overrides ``storage.db_path``.
    """
    base_config = {}

    path = config_path or find_config()
    if path and Path(path).exists():
        try:
            with open(path) as f:
                base_config = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ValueError(f"Invalid YAML in config file: {e}")
        if not isinstance(base_config, dict):
            raise ValueError(f"Config file must contain a mapping, got {type(base_config).__name__}")

    db_override = os.getenv(DB_ENV_VAR)
    if db_override:
        base_config = _deep_merge(base_config, {"storage": {"db_path": db_override}})

    try:
        return SwarmConfig.from_dict(base_config)
    except Exception as e:
        raise ValueError(f"Config validation failed: {e}")


def _deep_merge(base: dict, override: dict) -> dict:
    """Deep merge two dictionaries."""
    result = base.copy()
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value
    return result
