"""Data models for the learning engine.

Records that describe something that already happened (feedback events,
outcome signals, maturity feedback) are frozen. Records that accumulate
(patterns, maturity, strikes) are plain dataclasses, but engine helpers
return updated copies via ``dataclasses.replace`` instead of mutating.
"""

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

from shared_types import (
    DecompositionStrategy,
    ErrorType,
    FailureMode,
    FeedbackType,
    MaturityState,
    PatternKind,
)

from .decay import DEFAULT_HALF_LIFE_DAYS, to_datetime, utcnow
from .errors import LearningValidationError


def new_id(prefix: str = "") -> str:
    return f"{prefix}{uuid.uuid4().hex[:12]}"


def _set(obj, name: str, value) -> None:
    object.__setattr__(obj, name, value)


def _coerce_enum(obj, name: str, enum_cls: type[Enum], allowed=None) -> None:
    value = getattr(obj, name)
    if value is None:
        return
    try:
        coerced = enum_cls(value)
    except ValueError as e:
        valid = [m.value for m in (allowed or enum_cls)]
        raise LearningValidationError(name, f"{value!r} not one of {valid}") from e
    if allowed is not None and coerced not in allowed:
        raise LearningValidationError(name, f"{value!r} not one of {[m.value for m in allowed]}")
    _set(obj, name, coerced)


def _coerce_time(obj, name: str, optional: bool = False) -> None:
    value = getattr(obj, name)
    if value is None and optional:
        return
    _set(obj, name, to_datetime(value, name))


def _require_text(obj, name: str) -> None:
    value = getattr(obj, name)
    if not isinstance(value, str) or not value.strip():
        raise LearningValidationError(name, "must be a non-empty string")


def _require_count(obj, name: str) -> None:
    value = getattr(obj, name)
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise LearningValidationError(name, f"must be a non-negative integer, got {value!r}")


def _require_unit(obj, name: str) -> None:
    value = getattr(obj, name)
    if isinstance(value, bool) or not isinstance(value, (int, float)) or not 0.0 <= value <= 1.0:
        raise LearningValidationError(name, f"must be within [0, 1], got {value!r}")
    _set(obj, name, float(value))


# --- Feedback ledger -------------------------------------------------------


@dataclass(frozen=True)
class FeedbackEvent:
    """One signed observation about a named criterion."""

    id: str
    criterion: str
    type: FeedbackType
    timestamp: datetime = field(default_factory=utcnow)
    raw_value: float = 1.0
    task_id: str | None = None
    context: str | None = None

    def __post_init__(self):
        _require_text(self, "id")
        _require_text(self, "criterion")
        _coerce_enum(self, "type", FeedbackType)
        _coerce_time(self, "timestamp")
        _require_unit(self, "raw_value")


@dataclass
class CriterionWeight:
    """Aggregated, decayed confidence for one criterion."""

    criterion: str
    weight: float
    helpful_count: int = 0
    harmful_count: int = 0
    last_validated: datetime | None = None
    half_life_days: float = DEFAULT_HALF_LIFE_DAYS

    def __post_init__(self):
        _require_unit(self, "weight")
        _require_count(self, "helpful_count")
        _require_count(self, "harmful_count")
        _coerce_time(self, "last_validated", optional=True)

    @property
    def total(self) -> int:
        return self.helpful_count + self.harmful_count


# --- Outcomes --------------------------------------------------------------


@dataclass(frozen=True)
class OutcomeSignals:
    """Raw facts about one completed subtask."""

    task_id: str
    duration_ms: int
    error_count: int = 0
    retry_count: int = 0
    success: bool = True
    files_touched: tuple[str, ...] = ()
    timestamp: datetime = field(default_factory=utcnow)
    strategy: DecompositionStrategy | None = None
    failure_mode: FailureMode | None = None
    failure_details: str | None = None

    def __post_init__(self):
        _require_text(self, "task_id")
        _require_count(self, "duration_ms")
        _require_count(self, "error_count")
        _require_count(self, "retry_count")
        if not isinstance(self.success, bool):
            raise LearningValidationError("success", f"must be a bool, got {self.success!r}")
        _set(self, "files_touched", tuple(self.files_touched or ()))
        _coerce_time(self, "timestamp")
        _coerce_enum(self, "strategy", DecompositionStrategy)
        _coerce_enum(self, "failure_mode", FailureMode)


@dataclass(frozen=True)
class ScoredOutcome:
    """Implicit feedback derived from OutcomeSignals. Recomputable, never stored."""

    signals: OutcomeSignals
    type: FeedbackType
    decayed_value: float
    reasoning: str
    raw_score: float = 0.0

    def __post_init__(self):
        _coerce_enum(self, "type", FeedbackType)
        _require_unit(self, "decayed_value")
        _require_unit(self, "raw_score")


# --- Patterns --------------------------------------------------------------


@dataclass
class DecompositionPattern:
    """A named decomposition heuristic and its observation history."""

    id: str
    content: str
    kind: PatternKind = PatternKind.PATTERN
    is_negative: bool = False
    success_count: int = 0
    failure_count: int = 0
    tags: list[str] = field(default_factory=list)
    example_task_ids: list[str] = field(default_factory=list)
    reason: str | None = None
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)

    def __post_init__(self):
        _require_text(self, "id")
        _require_text(self, "content")
        _coerce_enum(self, "kind", PatternKind)
        _require_count(self, "success_count")
        _require_count(self, "failure_count")
        self.tags = list(self.tags)
        self.example_task_ids = list(self.example_task_ids)
        _coerce_time(self, "created_at")
        _coerce_time(self, "updated_at")

    @property
    def total_observations(self) -> int:
        return self.success_count + self.failure_count

    @property
    def success_rate(self) -> float | None:
        total = self.total_observations
        return self.success_count / total if total else None


@dataclass(frozen=True)
class AntiPatternInversion:
    """Result of turning a pattern into an explicit anti-pattern."""

    original: DecompositionPattern
    inverted: DecompositionPattern
    reason: str


@dataclass(frozen=True)
class PatternObservation:
    pattern: DecompositionPattern
    inversion: AntiPatternInversion | None = None


# --- Maturity --------------------------------------------------------------


@dataclass
class PatternMaturity:
    """Lifecycle classification of a pattern."""

    pattern_id: str
    state: MaturityState = MaturityState.CANDIDATE
    helpful_count: int = 0
    harmful_count: int = 0
    last_validated: datetime = field(default_factory=utcnow)
    promoted_at: datetime | None = None
    deprecated_at: datetime | None = None
    deprecation_reason: str | None = None

    def __post_init__(self):
        _require_text(self, "pattern_id")
        _coerce_enum(self, "state", MaturityState)
        _require_count(self, "helpful_count")
        _require_count(self, "harmful_count")
        _coerce_time(self, "last_validated")
        _coerce_time(self, "promoted_at", optional=True)
        _coerce_time(self, "deprecated_at", optional=True)


@dataclass(frozen=True)
class MaturityFeedback:
    """One signed observation feeding a pattern's maturity. Append-only."""

    pattern_id: str
    type: FeedbackType
    timestamp: datetime = field(default_factory=utcnow)
    weight: float = 1.0

    def __post_init__(self):
        _require_text(self, "pattern_id")
        _coerce_enum(
            self, "type", FeedbackType, allowed=(FeedbackType.HELPFUL, FeedbackType.HARMFUL)
        )
        _coerce_time(self, "timestamp")
        _require_unit(self, "weight")


# --- Strikes ---------------------------------------------------------------


@dataclass(frozen=True)
class StrikeFailure:
    attempt: str
    reason: str
    timestamp: datetime = field(default_factory=utcnow)

    def __post_init__(self):
        _require_text(self, "attempt")
        _require_text(self, "reason")
        _coerce_time(self, "timestamp")


@dataclass
class StrikeRecord:
    """Accumulated failed fix attempts for one task."""

    task_id: str
    strike_count: int = 0
    failures: list[StrikeFailure] = field(default_factory=list)
    first_strike_at: datetime | None = None
    last_strike_at: datetime | None = None

    def __post_init__(self):
        _require_text(self, "task_id")
        _require_count(self, "strike_count")
        self.failures = list(self.failures)
        if self.strike_count != len(self.failures):
            raise LearningValidationError(
                "strike_count",
                f"{self.strike_count} does not match {len(self.failures)} recorded failures",
            )
        _coerce_time(self, "first_strike_at", optional=True)
        _coerce_time(self, "last_strike_at", optional=True)


# --- Error accumulator -----------------------------------------------------


@dataclass
class ErrorEntry:
    """An error raised while a subtask was running; feeds retry prompts."""

    id: str
    task_id: str
    error_type: ErrorType
    message: str
    timestamp: datetime = field(default_factory=utcnow)
    stack_trace: str | None = None
    tool_name: str | None = None
    context: str | None = None
    resolved: bool = False

    def __post_init__(self):
        _require_text(self, "task_id")
        _require_text(self, "message")
        _coerce_enum(self, "error_type", ErrorType)
        _coerce_time(self, "timestamp")


@dataclass(frozen=True)
class ErrorStats:
    total: int = 0
    unresolved: int = 0
    by_type: dict[str, int] = field(default_factory=dict)
