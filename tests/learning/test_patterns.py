"""Tests for decomposition patterns and anti-pattern inversion."""

import pytest

from learning.config import AntiPatternConfig
from learning.errors import LearningValidationError
from learning.patterns import (
    base_content,
    create_pattern,
    extract_patterns_from_description,
    format_anti_patterns_for_prompt,
    format_successful_patterns_for_prompt,
    invert_to_anti_pattern,
    record_pattern_observation,
    should_invert_pattern,
)
from shared_types import PatternKind


def _observed(content="Split by file type", successes=0, failures=0):
    pattern = create_pattern(content, tags=["decomposition"])
    for _ in range(successes):
        pattern = record_pattern_observation(pattern, True).pattern
    for _ in range(failures):
        pattern = record_pattern_observation(pattern, False).pattern
    return pattern


class TestCreatePattern:
    def test_defaults(self):
        pattern = create_pattern("Split by feature", tags=["a"])
        assert pattern.id.startswith("pattern-")
        assert pattern.kind == PatternKind.PATTERN
        assert pattern.is_negative is False
        assert pattern.total_observations == 0
        assert pattern.success_rate is None
        assert pattern.tags == ["a"]

    def test_empty_content_rejected(self):
        with pytest.raises(LearningValidationError) as exc_info:
            create_pattern("  ")
        assert exc_info.value.field == "content"


class TestShouldInvertPattern:
    @pytest.mark.parametrize(
        "successes, failures, expected",
        [
            pytest.param(1, 1, False, id="too-few-observations"),
            pytest.param(1, 4, True, id="four-of-five-failed"),
        ],
    )
    def test_default_config(self, successes, failures, expected):
        assert should_invert_pattern(_observed(successes=successes, failures=failures)) is expected

    def test_needs_minimum_observations(self):
        assert should_invert_pattern(_observed(failures=2)) is False

    def test_inverts_at_threshold(self):
        # 2 of 3 failed = 0.67 >= 0.6
        assert should_invert_pattern(_observed(successes=1, failures=2)) is True

    def test_mostly_successful_not_inverted(self):
        assert should_invert_pattern(_observed(successes=3, failures=1)) is False

    def test_anti_patterns_never_invert_again(self):
        pattern = _observed(failures=3)
        inverted = invert_to_anti_pattern(pattern, "failed a lot").inverted
        assert should_invert_pattern(inverted) is False

    def test_custom_threshold(self):
        config = AntiPatternConfig(min_observations=2, failure_ratio_threshold=0.5)
        assert should_invert_pattern(_observed(successes=1, failures=1), config) is True


class TestInvertToAntiPattern:
    def test_inversion_prefixes_and_flags(self):
        pattern = _observed(successes=1, failures=3)
        result = invert_to_anti_pattern(pattern, "Failed 3/4 times")
        inverted = result.inverted
        assert inverted.content == "AVOID: Split by file type"
        assert inverted.kind == PatternKind.ANTI_PATTERN
        assert inverted.is_negative is True
        assert inverted.reason == "Failed 3/4 times"
        assert inverted.id == pattern.id
        assert inverted.failure_count == 3
        assert result.original is pattern
        assert result.original.kind == PatternKind.PATTERN

    def test_prefix_not_doubled(self):
        pattern = create_pattern("AVOID: Split by file type")
        inverted = invert_to_anti_pattern(pattern, "again").inverted
        assert inverted.content == "AVOID: Split by file type"

    def test_reason_required(self):
        with pytest.raises(LearningValidationError) as exc_info:
            invert_to_anti_pattern(create_pattern("x"), "")
        assert exc_info.value.field == "reason"

    def test_base_content_strips_prefix(self):
        assert base_content("AVOID: AVOID: Split by layer") == "Split by layer"
        assert base_content("Split by layer") == "Split by layer"


class TestRecordPatternObservation:
    def test_counts_and_examples(self):
        pattern = create_pattern("Split by component")
        obs = record_pattern_observation(pattern, True, task_id="t-1")
        obs = record_pattern_observation(obs.pattern, False, task_id="t-2")
        obs = record_pattern_observation(obs.pattern, True, task_id="t-1")
        assert obs.pattern.success_count == 2
        assert obs.pattern.failure_count == 1
        assert obs.pattern.example_task_ids == ["t-1", "t-2"]
        assert obs.inversion is None

    def test_input_not_mutated(self):
        pattern = create_pattern("Split by component")
        record_pattern_observation(pattern, False, task_id="t-1")
        assert pattern.failure_count == 0
        assert pattern.example_task_ids == []

    def test_inversion_after_repeated_failure(self):
        pattern = create_pattern("Split by file type")
        obs = None
        for _ in range(3):
            obs = record_pattern_observation(pattern if obs is None else obs.pattern, False)
        assert obs.inversion is not None
        assert obs.inversion.inverted.content == "AVOID: Split by file type"
        assert obs.inversion.reason == "Failed 3/3 times (100% failure rate)"


class TestExtractPatterns:
    def test_finds_known_markers(self):
        text = "We'll split by file type, handle shared types first, and keep tests alongside the implementation."
        assert extract_patterns_from_description(text) == [
            "Split by file type",
            "Handle shared types first",
            "Tests alongside implementation",
        ]

    def test_case_insensitive(self):
        assert extract_patterns_from_description("SPLITTING BY FEATURE") == ["Split by feature"]

    def test_nothing_found(self):
        assert extract_patterns_from_description("just do it") == []
        assert extract_patterns_from_description("") == []


class TestFormatting:
    def test_anti_pattern_block(self):
        anti = invert_to_anti_pattern(create_pattern("Split by file type"), "bad").inverted
        text = format_anti_patterns_for_prompt([anti, create_pattern("Split by feature")])
        assert text.startswith("## Anti-Patterns to Avoid")
        assert "- AVOID: Split by file type" in text
        assert "Split by feature" not in text

    def test_anti_pattern_block_empty(self):
        assert format_anti_patterns_for_prompt([create_pattern("x")]) == ""

    def test_successful_block_filters_by_rate(self):
        good = _observed("Split by feature", successes=4, failures=1)
        weak = _observed("Split by layer", successes=1, failures=1)
        unseen = create_pattern("API routes first")
        text = format_successful_patterns_for_prompt([good, weak, unseen])
        assert "## Successful Patterns" in text
        assert "- Split by feature (80% success rate)" in text
        assert "Split by layer" not in text
        assert "API routes first" not in text

    def test_successful_block_custom_rate(self):
        weak = _observed("Split by layer", successes=1, failures=1)
        assert "Split by layer (50% success rate)" in format_successful_patterns_for_prompt([weak], 0.5)
