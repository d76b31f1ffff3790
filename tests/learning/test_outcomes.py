"""Tests for outcome scoring and criterion weighting."""

import pytest

from learning.config import LearningConfig
from learning.errors import LearningValidationError
from learning.models import CriterionWeight, FeedbackEvent, OutcomeSignals
from learning.outcomes import (
    MIN_CRITERION_WEIGHT,
    apply_weights,
    calculate_criterion_weight,
    classify_failure,
    outcome_to_feedback,
    score_implicit_feedback,
    should_deprecate_criterion,
)
from shared_types import FailureMode, FeedbackType


def _signals(now, **overrides):
    data = dict(task_id="bd-1.2", duration_ms=60_000, error_count=0, retry_count=0, success=True, timestamp=now)
    data.update(overrides)
    return OutcomeSignals(**data)


class TestScoreImplicitFeedback:
    def test_fast_clean_success_is_helpful(self, now):
        scored = score_implicit_feedback(_signals(now), now=now)
        assert scored.type == FeedbackType.HELPFUL
        assert scored.raw_score == pytest.approx(1.0)
        assert scored.decayed_value == pytest.approx(1.0)
        assert scored.reasoning == "Fast completion (60s, 0 errors, 0 retries, succeeded)"

    def test_slow_failure_is_harmful(self, now):
        signals = _signals(now, duration_ms=40 * 60_000, error_count=5, retry_count=3, success=False)
        scored = score_implicit_feedback(signals, now=now)
        assert scored.type == FeedbackType.HARMFUL
        assert scored.raw_score == pytest.approx(0.14)
        assert scored.reasoning.startswith("Slow completion (2400s, 5 errors, 3 retries, failed")

    def test_fast_failure_is_neutral(self, now):
        scored = score_implicit_feedback(_signals(now, success=False), now=now)
        assert scored.type == FeedbackType.NEUTRAL
        assert scored.raw_score == pytest.approx(0.6)
        assert scored.reasoning.startswith("Mixed signals")

    def test_medium_success_with_some_errors(self, now):
        signals = _signals(now, duration_ms=10 * 60_000, error_count=1, retry_count=1)
        scored = score_implicit_feedback(signals, now=now)
        assert scored.raw_score == pytest.approx(0.78)
        assert scored.type == FeedbackType.HELPFUL

    def test_old_signals_are_decayed(self, now, days_ago):
        scored = score_implicit_feedback(_signals(now, timestamp=days_ago(90)), now=now)
        assert scored.raw_score == pytest.approx(1.0)
        assert scored.decayed_value == pytest.approx(0.5)

    def test_thresholds_come_from_config(self, now):
        config = LearningConfig(fast_completion_threshold_ms=1000, slow_completion_threshold_ms=2000)
        scored = score_implicit_feedback(_signals(now, duration_ms=60_000), config, now=now)
        assert scored.raw_score == pytest.approx(0.84)

    def test_rejects_non_signals(self, now):
        with pytest.raises(LearningValidationError) as exc_info:
            score_implicit_feedback({"task_id": "x"}, now=now)
        assert exc_info.value.field == "signals"


class TestOutcomeSignalsValidation:
    def test_negative_duration_rejected(self, now):
        with pytest.raises(LearningValidationError) as exc_info:
            _signals(now, duration_ms=-1)
        assert exc_info.value.field == "duration_ms"

    def test_negative_retries_rejected(self, now):
        with pytest.raises(LearningValidationError) as exc_info:
            _signals(now, retry_count=-2)
        assert exc_info.value.field == "retry_count"

    def test_empty_task_id_rejected(self, now):
        with pytest.raises(LearningValidationError) as exc_info:
            _signals(now, task_id=" ")
        assert exc_info.value.field == "task_id"

    def test_strategy_coerced_from_string(self, now):
        signals = _signals(now, strategy="file-based")
        assert signals.strategy.value == "file-based"

    def test_unknown_strategy_rejected(self, now):
        with pytest.raises(LearningValidationError) as exc_info:
            _signals(now, strategy="vibes-based")
        assert exc_info.value.field == "strategy"


class TestOutcomeToFeedback:
    def test_projects_scored_outcome(self, now):
        scored = score_implicit_feedback(_signals(now), now=now)
        event = outcome_to_feedback(scored, "type_safe")
        assert event.criterion == "type_safe"
        assert event.type == FeedbackType.HELPFUL
        assert event.raw_value == pytest.approx(scored.decayed_value)
        assert event.task_id == "bd-1.2"
        assert event.context == scored.reasoning
        assert event.timestamp == now
        assert event.id.startswith("bd-1.2-type_safe-")

    def test_ids_are_unique(self, now):
        scored = score_implicit_feedback(_signals(now), now=now)
        assert outcome_to_feedback(scored, "x").id != outcome_to_feedback(scored, "x").id


class TestFeedbackEventValidation:
    def test_raw_value_above_one_rejected(self):
        with pytest.raises(LearningValidationError) as exc_info:
            FeedbackEvent(id="fb", criterion="type_safe", type="helpful", raw_value=1.5)
        assert exc_info.value.field == "raw_value"

    def test_unknown_type_rejected(self):
        with pytest.raises(LearningValidationError) as exc_info:
            FeedbackEvent(id="fb", criterion="type_safe", type="meh")
        assert exc_info.value.field == "type"


class TestCalculateCriterionWeight:
    def test_no_feedback_is_full_weight(self, now):
        weight = calculate_criterion_weight([], now=now, criterion="readable")
        assert weight.weight == 1.0
        assert weight.criterion == "readable"
        assert weight.total == 0

    def test_all_helpful(self, now, make_feedback):
        events = [make_feedback() for _ in range(3)]
        weight = calculate_criterion_weight(events, now=now)
        assert weight.weight == pytest.approx(1.0)
        assert weight.helpful_count == 3
        assert weight.criterion == "type_safe"

    def test_balanced_feedback_is_half(self, now, make_feedback):
        events = [make_feedback(type="helpful"), make_feedback(type="harmful")]
        assert calculate_criterion_weight(events, now=now).weight == pytest.approx(0.5)

    def test_all_harmful_floored(self, now, make_feedback):
        events = [make_feedback(type="harmful") for _ in range(4)]
        weight = calculate_criterion_weight(events, now=now)
        assert weight.weight == MIN_CRITERION_WEIGHT
        assert weight.harmful_count == 4

    def test_mixed_feedback_between_half_and_high(self, now, make_feedback):
        events = [make_feedback(type="helpful") for _ in range(3)] + [make_feedback(type="harmful")]
        assert 0.5 < calculate_criterion_weight(events, now=now).weight < 0.9

    def test_recent_harmful_outweighs_helpful_past_two_half_lives(self, now, make_feedback):
        events = [make_feedback(type="helpful", age_days=200), make_feedback(type="harmful")]
        assert calculate_criterion_weight(events, now=now).weight < 0.5

    def test_old_harmful_counts_less(self, now, make_feedback):
        events = [make_feedback(type="helpful"), make_feedback(type="harmful", age_days=90)]
        assert calculate_criterion_weight(events, now=now).weight == pytest.approx(1 / 1.5)

    def test_neutral_ignored(self, now, make_feedback):
        events = [make_feedback(type="helpful"), make_feedback(type="neutral"), make_feedback(type="neutral")]
        weight = calculate_criterion_weight(events, now=now)
        assert weight.weight == pytest.approx(1.0)
        assert weight.total == 1

    def test_raw_value_scales_contribution(self, now, make_feedback):
        events = [make_feedback(type="helpful", raw_value=0.5), make_feedback(type="harmful", raw_value=0.5)]
        assert calculate_criterion_weight(events, now=now).weight == pytest.approx(0.5)

    def test_last_validated_is_latest_helpful(self, now, make_feedback, days_ago):
        events = [
            make_feedback(type="helpful", age_days=10),
            make_feedback(type="helpful", age_days=2),
            make_feedback(type="harmful", age_days=1),
        ]
        assert calculate_criterion_weight(events, now=now).last_validated == days_ago(2)

    def test_weight_uses_configured_half_life(self, now, make_feedback):
        config = LearningConfig(half_life_days=10)
        events = [make_feedback(type="helpful"), make_feedback(type="harmful", age_days=10)]
        weight = calculate_criterion_weight(events, config, now=now)
        assert weight.weight == pytest.approx(1 / 1.5)
        assert weight.half_life_days == 10


class TestApplyWeights:
    def test_scales_by_weight(self):
        weights = {"type_safe": CriterionWeight(criterion="type_safe", weight=0.5)}
        result = apply_weights({"type_safe": 0.8, "readable": 0.6}, weights)
        assert result["type_safe"].weighted == pytest.approx(0.4)
        assert result["type_safe"].raw == 0.8
        assert result["readable"].weight == 1.0
        assert result["readable"].weighted == pytest.approx(0.6)

    def test_out_of_range_score_rejected(self):
        with pytest.raises(LearningValidationError):
            apply_weights({"type_safe": 1.5}, {})


class TestShouldDeprecateCriterion:
    def test_needs_minimum_feedback(self):
        weight = CriterionWeight(criterion="c", weight=0.1, helpful_count=0, harmful_count=2)
        assert should_deprecate_criterion(weight) is False

    def test_mostly_harmful_deprecated(self):
        weight = CriterionWeight(criterion="c", weight=0.25, helpful_count=1, harmful_count=3)
        assert should_deprecate_criterion(weight) is True

    def test_mostly_helpful_kept(self):
        weight = CriterionWeight(criterion="c", weight=0.75, helpful_count=3, harmful_count=1)
        assert should_deprecate_criterion(weight) is False

    def test_ratio_at_limit_kept(self):
        config = LearningConfig(max_harmful_ratio=0.5)
        weight = CriterionWeight(criterion="c", weight=0.5, helpful_count=2, harmful_count=2)
        assert should_deprecate_criterion(weight, config) is False


class TestClassifyFailure:
    @pytest.mark.parametrize(
        "message,expected",
        [
            ("Request timeout after 30s", FailureMode.TIMEOUT),
            ("file reservation conflict", FailureMode.CONFLICT),
            ("Schema validation failed for output", FailureMode.VALIDATION),
            ("context window exceeded: too many tokens", FailureMode.CONTEXT_OVERFLOW),
            ("blocked waiting on upstream", FailureMode.DEPENDENCY_BLOCKED),
            ("user cancelled the run", FailureMode.USER_CANCELLED),
            ("bash failed to execute", FailureMode.TOOL_FAILURE),
            ("???", FailureMode.UNKNOWN),
            ("", FailureMode.UNKNOWN),
        ],
    )
    def test_keywords(self, message, expected):
        assert classify_failure(message) == expected
