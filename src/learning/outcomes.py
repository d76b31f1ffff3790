"""Outcome scoring and criterion weighting.

Turns raw subtask outcome signals into implicit feedback, and aggregates a
criterion's feedback history into a decayed confidence weight:

- Duration: fast completion = helpful, slow = harmful
- Errors: few errors = helpful, many = harmful
- Retries: no retries = helpful, many = harmful
- Success: success = helpful, failure = harmful (weighted highest)

Weights are always recomputed from the full event list; decay makes
incremental running totals drift as events age.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, Mapping

import structlog

from shared_types import FailureMode, FeedbackType

from .config import LearningConfig
from .decay import calculate_decayed_value, to_datetime, utcnow
from .errors import LearningValidationError
from .models import CriterionWeight, FeedbackEvent, OutcomeSignals, ScoredOutcome, new_id

logger = structlog.get_logger()

MIN_CRITERION_WEIGHT = 0.1

HELPFUL_THRESHOLD = 0.7
HARMFUL_THRESHOLD = 0.4

COMPONENT_WEIGHTS = {
    "success": 0.4,
    "duration": 0.2,
    "errors": 0.2,
    "retries": 0.2,
}

_FAILURE_KEYWORDS: list[tuple[FailureMode, tuple[str, ...]]] = [
    (FailureMode.TIMEOUT, ("timeout",)),
    (FailureMode.CONFLICT, ("conflict", "reservation")),
    (FailureMode.VALIDATION, ("validation", "schema")),
    (FailureMode.CONTEXT_OVERFLOW, ("context", "token")),
    (FailureMode.DEPENDENCY_BLOCKED, ("blocked", "dependency")),
    (FailureMode.USER_CANCELLED, ("cancel",)),
    (FailureMode.TOOL_FAILURE, ("tool", "command", "failed to execute")),
]


@dataclass(frozen=True)
class WeightedScore:
    raw: float
    weighted: float
    weight: float


def _duration_score(duration_ms: int, config: LearningConfig) -> float:
    if duration_ms < config.fast_completion_threshold_ms:
        return 1.0
    if duration_ms > config.slow_completion_threshold_ms:
        return 0.2
    return 0.6


def _error_score(error_count: int, config: LearningConfig) -> float:
    if error_count == 0:
        return 1.0
    if error_count <= config.max_errors_for_helpful:
        return 0.6
    return 0.2


def _retry_score(retry_count: int) -> float:
    if retry_count == 0:
        return 1.0
    if retry_count == 1:
        return 0.7
    return 0.3


def _describe(signals: OutcomeSignals) -> str:
    seconds = round(signals.duration_ms / 1000)
    status = "succeeded" if signals.success else "failed"
    return (
        f"{seconds}s, {signals.error_count} errors, "
        f"{signals.retry_count} retries, {status}"
    )


def score_implicit_feedback(
    signals: OutcomeSignals,
    config: LearningConfig | None = None,
    now: datetime | None = None,
) -> ScoredOutcome:
    """Infer whether a subtask outcome was helpful, harmful, or neutral.

    Args:
        signals: Outcome signals from a completed subtask.
        config: Thresholds; defaults to ``LearningConfig()``.
        now: Reference time for decay (default: current UTC time).

    Returns:
        ScoredOutcome whose ``decayed_value`` is the raw score scaled by the
        signal's age.
    """
    if not isinstance(signals, OutcomeSignals):
        raise LearningValidationError("signals", f"expected OutcomeSignals, got {type(signals).__name__}")
    config = config or LearningConfig()

    raw_score = (
        (1.0 if signals.success else 0.0) * COMPONENT_WEIGHTS["success"]
        + _duration_score(signals.duration_ms, config) * COMPONENT_WEIGHTS["duration"]
        + _error_score(signals.error_count, config) * COMPONENT_WEIGHTS["errors"]
        + _retry_score(signals.retry_count) * COMPONENT_WEIGHTS["retries"]
    )
    # float sums like 0.4 + 0.2*3 can land a hair above 1.0
    raw_score = min(1.0, raw_score)

    if raw_score >= HELPFUL_THRESHOLD:
        feedback_type = FeedbackType.HELPFUL
        reasoning = f"Fast completion ({_describe(signals)})"
    elif raw_score <= HARMFUL_THRESHOLD:
        feedback_type = FeedbackType.HARMFUL
        reasoning = f"Slow completion ({_describe(signals)})"
    else:
        feedback_type = FeedbackType.NEUTRAL
        reasoning = f"Mixed signals ({_describe(signals)})"

    decayed = calculate_decayed_value(signals.timestamp, now, config.half_life_days)
    scored = ScoredOutcome(
        signals=signals,
        type=feedback_type,
        decayed_value=raw_score * decayed,
        reasoning=reasoning,
        raw_score=raw_score,
    )
    logger.debug(
        "outcome_scored",
        task_id=signals.task_id,
        type=feedback_type.value,
        raw_score=round(raw_score, 3),
        decayed_value=round(scored.decayed_value, 3),
    )
    return scored


def outcome_to_feedback(scored: ScoredOutcome, criterion: str) -> FeedbackEvent:
    """Project a scored outcome into a feedback event for ``criterion``."""
    signals = scored.signals
    return FeedbackEvent(
        id=new_id(f"{signals.task_id}-{criterion}-"),
        criterion=criterion,
        type=scored.type,
        timestamp=signals.timestamp,
        raw_value=scored.decayed_value,
        task_id=signals.task_id,
        context=scored.reasoning,
    )


def calculate_criterion_weight(
    events: Iterable[FeedbackEvent],
    config: LearningConfig | None = None,
    now: datetime | None = None,
    criterion: str | None = None,
) -> CriterionWeight:
    """Aggregate a criterion's feedback history into a decayed weight.

    Each event contributes ``raw_value * decay(age)`` to the helpful or
    harmful sum; neutral events are ignored. The weight is
    ``helpful / (helpful + harmful)`` floored at 0.1, or 1.0 when there is
    no helpful or harmful feedback. Counts are raw (undecayed).
    """
    config = config or LearningConfig()
    now = to_datetime(now, "now") if now is not None else utcnow()
    events = list(events)

    helpful_sum = 0.0
    harmful_sum = 0.0
    helpful_count = 0
    harmful_count = 0
    last_validated: datetime | None = None

    for event in events:
        value = event.raw_value * calculate_decayed_value(
            event.timestamp, now, config.half_life_days
        )
        if event.type == FeedbackType.HELPFUL:
            helpful_sum += value
            helpful_count += 1
            if last_validated is None or event.timestamp >= last_validated:
                last_validated = event.timestamp
        elif event.type == FeedbackType.HARMFUL:
            harmful_sum += value
            harmful_count += 1

    total = helpful_sum + harmful_sum
    weight = max(MIN_CRITERION_WEIGHT, helpful_sum / total) if total > 0 else 1.0

    name = criterion or (events[0].criterion if events else "unknown")
    return CriterionWeight(
        criterion=name,
        weight=weight,
        helpful_count=helpful_count,
        harmful_count=harmful_count,
        last_validated=last_validated,
        half_life_days=config.half_life_days,
    )


def apply_weights(
    criteria_scores: Mapping[str, float],
    weights: Mapping[str, CriterionWeight],
) -> dict[str, WeightedScore]:
    """Scale raw criterion scores by their learned weights (unknown = 1.0)."""
    result = {}
    for name, raw in criteria_scores.items():
        if isinstance(raw, bool) or not isinstance(raw, (int, float)) or not 0.0 <= raw <= 1.0:
            raise LearningValidationError(f"criteria_scores[{name}]", f"must be within [0, 1], got {raw!r}")
        known = weights.get(name)
        weight = known.weight if known is not None else 1.0
        result[name] = WeightedScore(raw=raw, weighted=raw * weight, weight=weight)
    return result


def should_deprecate_criterion(
    weight: CriterionWeight, config: LearningConfig | None = None
) -> bool:
    """True when enough feedback exists and the harmful share is too high."""
    config = config or LearningConfig()
    total = weight.helpful_count + weight.harmful_count
    if total < config.min_feedback_for_adjustment:
        return False
    deprecate = weight.harmful_count / total > config.max_harmful_ratio
    if deprecate:
        logger.info(
            "criterion_deprecated",
            criterion=weight.criterion,
            harmful=weight.harmful_count,
            total=total,
        )
    return deprecate


def classify_failure(message: str) -> FailureMode:
    """Keyword classification of a failure message."""
    msg = (message or "").lower()
    for mode, keywords in _FAILURE_KEYWORDS:
        if any(k in msg for k in keywords):
            return mode
    return FailureMode.UNKNOWN
