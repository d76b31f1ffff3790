"""Pydantic configuration models for the learning engine."""

from pathlib import Path

from pydantic import BaseModel, Field, field_validator, model_validator

from shared_types import StorageBackend

DEFAULT_CRITERIA = ["type_safe", "no_bugs", "patterns", "readable"]


def _validate_ratio(name: str, v: float) -> float:
    if not 0.0 <= v <= 1.0:
        raise ValueError(f"{name} must be 0-1, got {v}")
    return v


class LearningConfig(BaseModel):
    """Feedback scoring and criterion weighting."""

    half_life_days: float = Field(default=90.0, gt=0)
    min_feedback_for_adjustment: int = Field(default=3, ge=0)
    max_harmful_ratio: float = 0.3
    fast_completion_threshold_ms: int = Field(default=5 * 60 * 1000, ge=0)
    slow_completion_threshold_ms: int = Field(default=30 * 60 * 1000, ge=0)
    max_errors_for_helpful: int = Field(default=2, ge=0)
    default_criteria: list[str] = Field(default_factory=lambda: list(DEFAULT_CRITERIA))

    @field_validator("max_harmful_ratio")
    @classmethod
    def validate_ratio(cls, v: float) -> float:
        return _validate_ratio("max_harmful_ratio", v)

    @model_validator(mode="after")
    def validate_thresholds(self):
        """Fast threshold must not exceed slow threshold."""
        if self.fast_completion_threshold_ms > self.slow_completion_threshold_ms:
            raise ValueError(
                "fast_completion_threshold_ms must be <= slow_completion_threshold_ms, got "
                f"{self.fast_completion_threshold_ms} > {self.slow_completion_threshold_ms}"
            )
        return self


class AntiPatternConfig(BaseModel):
    """Pattern inversion thresholds."""

    min_observations: int = Field(default=3, ge=1)
    failure_ratio_threshold: float = 0.6
    anti_pattern_prefix: str = "AVOID: "
    min_success_rate: float = 0.7

    @field_validator("failure_ratio_threshold", "min_success_rate")
    @classmethod
    def validate_ratio(cls, v: float, info) -> float:
        return _validate_ratio(info.field_name, v)


class MaturityConfig(BaseModel):
    """Pattern maturity classification thresholds."""

    min_feedback: int = Field(default=3, ge=1)
    deprecation_threshold: float = 0.6
    proven_min_total: int = Field(default=10, ge=1)
    proven_min_helpful_ratio: float = 0.9
    half_life_days: float = Field(default=90.0, gt=0)

    @field_validator("deprecation_threshold", "proven_min_helpful_ratio")
    @classmethod
    def validate_ratio(cls, v: float, info) -> float:
        return _validate_ratio(info.field_name, v)


class StrikeConfig(BaseModel):
    """3-strike escalation."""

    max_strikes: int = Field(default=3, ge=1)


class StorageConfig(BaseModel):
    """Which backend holds feedback, patterns, maturity and strikes."""

    backend: StorageBackend = StorageBackend.SQLITE
    db_path: Path = Path("~/.swarm/learning.db")

    @model_validator(mode="after")
    def expand_paths(self):
        """Expand ~ in db_path."""
        self.db_path = self.db_path.expanduser()
        return self
