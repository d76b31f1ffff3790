"""Pattern maturity lifecycle.

    candidate -> established -> proven | deprecated

State is a pure classification of the feedback history: the same history
always yields the same state. The exception is an explicit
``promote_pattern`` / ``deprecate_pattern`` call, which stamps
``promoted_at`` / ``deprecated_at`` and pins the state until feedback newer
than the stamp arrives.
"""

from dataclasses import replace
from datetime import datetime
from typing import Iterable

import structlog

from shared_types import FeedbackType, MaturityState

from .config import MaturityConfig
from .decay import calculate_decayed_value, to_datetime, utcnow
from .errors import InvalidTransitionError, LearningValidationError
from .models import MaturityFeedback, PatternMaturity

logger = structlog.get_logger()

MATURITY_MULTIPLIERS = {
    MaturityState.CANDIDATE: 0.5,
    MaturityState.ESTABLISHED: 1.0,
    MaturityState.PROVEN: 1.5,
    MaturityState.DEPRECATED: 0.0,
}


def create_pattern_maturity(pattern_id: str) -> PatternMaturity:
    return PatternMaturity(pattern_id=pattern_id)


def calculate_decayed_counts(
    feedback: Iterable[MaturityFeedback],
    config: MaturityConfig | None = None,
    now: datetime | None = None,
) -> tuple[float, float]:
    """Decayed (helpful, harmful) sums; each event counts ``weight * decay(age)``."""
    config = config or MaturityConfig()
    now = to_datetime(now, "now") if now is not None else utcnow()
    helpful = 0.0
    harmful = 0.0
    for fb in feedback:
        value = fb.weight * calculate_decayed_value(fb.timestamp, now, config.half_life_days)
        if fb.type == FeedbackType.HELPFUL:
            helpful += value
        else:
            harmful += value
    return helpful, harmful


def calculate_maturity_state(
    feedback: Iterable[MaturityFeedback],
    config: MaturityConfig | None = None,
    now: datetime | None = None,
) -> MaturityState:
    """Classify a pattern from its feedback history.

    Minimum totals use raw event counts; ratios use decayed sums, so old
    feedback counts for less than recent feedback.
    """
    config = config or MaturityConfig()
    feedback = list(feedback)
    helpful_count = sum(1 for fb in feedback if fb.type == FeedbackType.HELPFUL)
    harmful_count = len(feedback) - helpful_count
    total = helpful_count + harmful_count

    if total < config.min_feedback:
        return MaturityState.CANDIDATE

    helpful, harmful = calculate_decayed_counts(feedback, config, now)
    decayed_total = helpful + harmful
    if decayed_total <= 0:
        # zero-weight feedback only; fall back to raw counts
        helpful, harmful, decayed_total = helpful_count, harmful_count, total

    if harmful / decayed_total > config.deprecation_threshold:
        return MaturityState.DEPRECATED
    if total >= config.proven_min_total and helpful / decayed_total >= config.proven_min_helpful_ratio:
        return MaturityState.PROVEN
    return MaturityState.ESTABLISHED


def _pin_time(maturity: PatternMaturity) -> datetime | None:
    if maturity.state == MaturityState.DEPRECATED:
        return maturity.deprecated_at
    if maturity.state == MaturityState.PROVEN:
        return maturity.promoted_at
    return None


def update_pattern_maturity(
    maturity: PatternMaturity,
    feedback: Iterable[MaturityFeedback],
    config: MaturityConfig | None = None,
    now: datetime | None = None,
) -> PatternMaturity:
    """Recompute counts and state from the pattern's full feedback history."""
    config = config or MaturityConfig()
    feedback = [fb for fb in feedback if fb.pattern_id == maturity.pattern_id]
    helpful = [fb for fb in feedback if fb.type == FeedbackType.HELPFUL]
    last_validated = max((fb.timestamp for fb in helpful), default=maturity.last_validated)

    pinned_at = _pin_time(maturity)
    if pinned_at is not None and all(fb.timestamp <= pinned_at for fb in feedback):
        state = maturity.state
    else:
        state = calculate_maturity_state(feedback, config, now)

    updated = replace(
        maturity,
        state=state,
        helpful_count=len(helpful),
        harmful_count=len(feedback) - len(helpful),
        last_validated=last_validated,
    )
    if state != MaturityState.DEPRECATED:
        updated = replace(updated, deprecated_at=None, deprecation_reason=None)
    if state != MaturityState.PROVEN:
        updated = replace(updated, promoted_at=None)

    if state != maturity.state:
        logger.info(
            "maturity_changed",
            pattern_id=maturity.pattern_id,
            from_state=maturity.state.value,
            to_state=state.value,
        )
    return updated


def promote_pattern(maturity: PatternMaturity, now: datetime | None = None) -> PatternMaturity:
    """Pin a pattern as proven. Deprecated patterns must recover through feedback first."""
    if maturity.state == MaturityState.DEPRECATED:
        raise InvalidTransitionError(
            maturity.pattern_id,
            maturity.state.value,
            MaturityState.PROVEN.value,
            hint="deprecated patterns must be re-observed before promotion",
        )
    if maturity.state == MaturityState.PROVEN:
        return maturity
    logger.info("pattern_promoted", pattern_id=maturity.pattern_id, from_state=maturity.state.value)
    return replace(maturity, state=MaturityState.PROVEN, promoted_at=now or utcnow())


def deprecate_pattern(
    maturity: PatternMaturity, reason: str | None = None, now: datetime | None = None
) -> PatternMaturity:
    """Pin a pattern as deprecated. Idempotent."""
    if maturity.state == MaturityState.DEPRECATED:
        return maturity
    logger.info("pattern_deprecated", pattern_id=maturity.pattern_id, reason=reason)
    return replace(
        maturity,
        state=MaturityState.DEPRECATED,
        deprecated_at=now or utcnow(),
        deprecation_reason=reason,
        promoted_at=None,
    )


def get_maturity_multiplier(state: MaturityState | str) -> float:
    """How strongly a pattern in ``state`` should weigh on future prompts."""
    try:
        return MATURITY_MULTIPLIERS[MaturityState(state)]
    except ValueError as e:
        raise LearningValidationError("state", f"unknown maturity state {state!r}") from e


def format_maturity_for_prompt(maturity: PatternMaturity) -> str:
    total = maturity.helpful_count + maturity.harmful_count
    counts = f"{maturity.helpful_count} helpful, {maturity.harmful_count} harmful"
    if total == 0:
        return f"[{maturity.state.value.upper()}] {counts} (no feedback yet)"
    pct = maturity.helpful_count / total
    return f"[{maturity.state.value.upper()}] {counts} ({pct:.0%} helpful)"
