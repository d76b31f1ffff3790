"""Pydantic configuration models for swarm-learning."""

from pathlib import Path

from pydantic import BaseModel, Field, field_validator

from learning.config import (
    AntiPatternConfig,
    LearningConfig,
    MaturityConfig,
    StorageConfig,
    StrikeConfig,
)

VALID_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = "WARNING"
    json_output: bool = Field(default=False, alias="json")

    model_config = {"populate_by_name": True}

    @field_validator("level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        v_upper = v.upper()
        if v_upper not in VALID_LOG_LEVELS:
            raise ValueError(f"Invalid log level: {v}. Must be one of {VALID_LOG_LEVELS}")
        return v_upper


class SwarmConfig(BaseModel):
    """Main configuration model."""

    learning: LearningConfig = Field(default_factory=LearningConfig)
    anti_patterns: AntiPatternConfig = Field(default_factory=AntiPatternConfig)
    maturity: MaturityConfig = Field(default_factory=MaturityConfig)
    strikes: StrikeConfig = Field(default_factory=StrikeConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @classmethod
    def from_dict(cls, data: dict) -> "SwarmConfig":
        """Create config from a parsed YAML dict."""
        data = dict(data or {})
        storage = data.get("storage")
        if isinstance(storage, dict) and isinstance(storage.get("db_path"), str):
            data["storage"] = {**storage, "db_path": Path(storage["db_path"])}
        return cls.model_validate(data)

    def to_dict(self) -> dict:
        return self.model_dump(mode="python", by_alias=True)

    def with_overrides(self, overrides: dict) -> "SwarmConfig":
        """New config with ``overrides`` deep-merged onto the current values."""
        from .config import _deep_merge

        return SwarmConfig.from_dict(_deep_merge(self.to_dict(), overrides or {}))
