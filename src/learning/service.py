"""Learning service: wires scoring, patterns, maturity and strikes to one storage."""

from dataclasses import dataclass, replace
from datetime import datetime
from typing import Iterable, Mapping

import structlog

from observability import Metrics, log_run_summary
from shared_types import FeedbackType, MaturityState, PatternKind

from .accumulator import ErrorAccumulator
from .config import AntiPatternConfig, LearningConfig, MaturityConfig, StrikeConfig
from .decay import utcnow
from .errors import LearningValidationError
from .maturity import (
    create_pattern_maturity,
    deprecate_pattern,
    format_maturity_for_prompt,
    get_maturity_multiplier,
    promote_pattern,
    update_pattern_maturity,
)
from .models import (
    CriterionWeight,
    DecompositionPattern,
    ErrorStats,
    FeedbackEvent,
    MaturityFeedback,
    OutcomeSignals,
    PatternMaturity,
    PatternObservation,
    ScoredOutcome,
    StrikeRecord,
)
from .outcomes import (
    WeightedScore,
    apply_weights,
    calculate_criterion_weight,
    classify_failure,
    outcome_to_feedback,
    score_implicit_feedback,
    should_deprecate_criterion,
)
from .patterns import (
    base_content,
    create_pattern,
    extract_patterns_from_description,
    format_anti_patterns_for_prompt,
    format_successful_patterns_for_prompt,
    record_pattern_observation,
)
from .storage.base import LearningStorage
from .strikes import StrikeDetector, StrikeMemory, format_strike_memory

logger = structlog.get_logger()


@dataclass(frozen=True)
class OutcomeRecord:
    """What ``record_outcome`` produced for one subtask."""

    scored: ScoredOutcome
    feedback_events: list[FeedbackEvent]
    error_stats: ErrorStats


class LearningService:
    """Orchestrates the learning engine against an injected storage backend.

    Holds no global state: the caller builds the storage, the error
    accumulator and the config models, and owns the service's lifetime.
    """

    def __init__(
        self,
        storage: LearningStorage,
        learning: LearningConfig | None = None,
        anti_patterns: AntiPatternConfig | None = None,
        maturity: MaturityConfig | None = None,
        strikes: StrikeConfig | None = None,
        errors: ErrorAccumulator | None = None,
        metrics: Metrics | None = None,
    ):
        self.storage = storage
        self.learning_config = learning or LearningConfig()
        self.anti_pattern_config = anti_patterns or AntiPatternConfig()
        self.maturity_config = maturity or MaturityConfig()
        self.strikes = StrikeDetector(storage, strikes)
        self.errors = errors or ErrorAccumulator()
        self.metrics = metrics or Metrics()

    # === Outcomes & criterion weights ===

    def record_outcome(
        self,
        signals: OutcomeSignals,
        criteria: Iterable[str] | None = None,
        persist: bool = True,
        now: datetime | None = None,
    ) -> OutcomeRecord:
        """Score a finished subtask and turn it into one feedback event per criterion.

        Failed outcomes that carry ``failure_details`` but no ``failure_mode``
        are classified first. Each event's context is tagged with the
        decomposition strategy and the task's accumulated error counts.
        """
        if not signals.success and signals.failure_mode is None and signals.failure_details:
            signals = replace(signals, failure_mode=classify_failure(signals.failure_details))

        criteria = list(criteria) if criteria is not None else list(self.learning_config.default_criteria)
        if not criteria:
            raise LearningValidationError("criteria", "at least one criterion is required")

        with self.metrics.timer("record_outcome"):
            scored = score_implicit_feedback(signals, self.learning_config, now)
            error_stats = self.errors.get_error_stats(signals.task_id)

            suffix = ""
            if signals.strategy is not None:
                suffix += f" [strategy: {signals.strategy.value}]"
            if signals.failure_mode is not None:
                suffix += f" [failure: {signals.failure_mode.value}]"
            if error_stats.total:
                counts = ", ".join(f"{k}:{v}" for k, v in error_stats.by_type.items())
                suffix += f" [errors: {counts}]"

            events = []
            for criterion in criteria:
                event = outcome_to_feedback(scored, criterion)
                if suffix:
                    event = replace(event, context=f"{event.context or ''}{suffix}")
                events.append(event)

            if persist:
                for event in events:
                    self.storage.store_feedback(event)
                self.metrics.counter("feedback_stored", len(events))

        self.metrics.counter("outcomes_scored")
        logger.info(
            "outcome_recorded",
            task_id=signals.task_id,
            type=scored.type.value,
            events=len(events),
            persisted=persist,
        )
        return OutcomeRecord(scored=scored, feedback_events=events, error_stats=error_stats)

    def store_feedback(self, event: FeedbackEvent) -> None:
        """Append an explicit feedback event to the ledger."""
        self.storage.store_feedback(event)
        self.metrics.counter("feedback_stored")

    def criterion_weight(self, criterion: str, now: datetime | None = None) -> CriterionWeight:
        events = self.storage.get_feedback_by_criterion(criterion)
        return calculate_criterion_weight(events, self.learning_config, now, criterion=criterion)

    def criterion_weights(
        self, criteria: Iterable[str] | None = None, now: datetime | None = None
    ) -> dict[str, CriterionWeight]:
        """Weights for ``criteria``, or for every criterion in the ledger."""
        if criteria is None:
            names = sorted({e.criterion for e in self.storage.get_all_feedback()})
        else:
            names = list(criteria)
        return {name: self.criterion_weight(name, now) for name in names}

    def weighted_scores(
        self, criteria_scores: Mapping[str, float], now: datetime | None = None
    ) -> dict[str, WeightedScore]:
        return apply_weights(criteria_scores, self.criterion_weights(criteria_scores, now))

    def deprecated_criteria(self, now: datetime | None = None) -> list[str]:
        return [
            name
            for name, weight in self.criterion_weights(now=now).items()
            if should_deprecate_criterion(weight, self.learning_config)
        ]

    # === Patterns ===

    def get_pattern(self, pattern_id: str) -> DecompositionPattern:
        pattern = self.storage.get_pattern(pattern_id)
        if pattern is None:
            raise LearningValidationError("pattern_id", f"no pattern with id {pattern_id!r}")
        return pattern

    def find_pattern(self, content: str) -> DecompositionPattern | None:
        """Stored pattern whose text (ignoring any anti-pattern prefix) equals ``content``."""
        prefix = self.anti_pattern_config.anti_pattern_prefix
        wanted = base_content(content, prefix).lower()
        for pattern in self.storage.get_all_patterns():
            if base_content(pattern.content, prefix).lower() == wanted:
                return pattern
        return None

    def add_pattern(
        self, content: str, tags: Iterable[str] | None = None
    ) -> DecompositionPattern:
        """Store a new pattern, or return the existing one with the same text."""
        existing = self.find_pattern(content)
        if existing is not None:
            return existing
        pattern = create_pattern(content, tags)
        self.storage.store_pattern(pattern)
        logger.info("pattern_added", pattern_id=pattern.id, content=pattern.content)
        return pattern

    def observe_pattern(
        self, pattern_id: str, success: bool, task_id: str | None = None
    ) -> PatternObservation:
        """Count an outcome against a pattern; persists the inverted form if it flips.

        The count and any inversion are applied to the stored pattern in a
        single ``update_pattern`` call.
        """
        observed: list[PatternObservation] = []

        def apply(pattern: DecompositionPattern) -> DecompositionPattern:
            observation = record_pattern_observation(
                pattern, success, task_id, self.anti_pattern_config
            )
            observed.append(observation)
            if observation.inversion is not None:
                return observation.inversion.inverted
            return observation.pattern

        if self.storage.update_pattern(pattern_id, apply) is None:
            raise LearningValidationError("pattern_id", f"no pattern with id {pattern_id!r}")

        observation = observed[-1]
        if observation.inversion is not None:
            self.metrics.counter("patterns_inverted")
        return observation

    def observe_description(
        self, description: str, success: bool, task_id: str | None = None
    ) -> list[PatternObservation]:
        """Record an outcome against every known pattern named in a decomposition."""
        observations = []
        for name in extract_patterns_from_description(description):
            pattern = self.add_pattern(name, tags=["extracted"])
            observations.append(self.observe_pattern(pattern.id, success, task_id))
        return observations

    # === Maturity ===

    def get_maturity(self, pattern_id: str) -> PatternMaturity:
        return self.storage.get_maturity(pattern_id) or create_pattern_maturity(pattern_id)

    def record_maturity_feedback(
        self,
        pattern_id: str,
        feedback_type: FeedbackType | str,
        weight: float = 1.0,
        now: datetime | None = None,
    ) -> PatternMaturity:
        """Append feedback for a stored pattern and recompute its maturity."""
        self.get_pattern(pattern_id)
        feedback = MaturityFeedback(
            pattern_id=pattern_id,
            type=feedback_type,
            timestamp=now or utcnow(),
            weight=weight,
        )
        self.storage.store_maturity_feedback(feedback)
        return self.refresh_maturity(pattern_id, now)

    def refresh_maturity(self, pattern_id: str, now: datetime | None = None) -> PatternMaturity:
        """Recompute a pattern's maturity from its stored feedback and persist it."""
        current = self.get_maturity(pattern_id)
        updated = update_pattern_maturity(
            current,
            self.storage.get_maturity_feedback(pattern_id),
            self.maturity_config,
            now,
        )
        self.storage.store_maturity(updated)
        logger.debug(
            "maturity_recomputed",
            pattern_id=pattern_id,
            state=updated.state.value,
            helpful=updated.helpful_count,
            harmful=updated.harmful_count,
        )
        return updated

    def promote(self, pattern_id: str) -> PatternMaturity:
        self.get_pattern(pattern_id)
        updated = promote_pattern(self.get_maturity(pattern_id))
        self.storage.store_maturity(updated)
        return updated

    def deprecate(self, pattern_id: str, reason: str | None = None) -> PatternMaturity:
        self.get_pattern(pattern_id)
        updated = deprecate_pattern(self.get_maturity(pattern_id), reason)
        self.storage.store_maturity(updated)
        return updated

    def pattern_multiplier(self, pattern_id: str) -> float:
        return get_maturity_multiplier(self.get_maturity(pattern_id).state)

    # === Guidance ===

    def decomposition_guidance(self) -> str:
        """Prompt section with anti-patterns, then successful patterns with maturity labels.

        Deprecated patterns are left out of the successful list. Returns ""
        when nothing has been learned yet.
        """
        patterns = self.storage.get_all_patterns()
        usable = []
        for p in patterns:
            if p.kind == PatternKind.ANTI_PATTERN:
                continue
            if self.get_maturity(p.id).state == MaturityState.DEPRECATED:
                continue
            usable.append(p)

        sections = [
            format_anti_patterns_for_prompt(patterns),
            format_successful_patterns_for_prompt(
                usable, self.anti_pattern_config.min_success_rate
            ),
        ]

        labelled = [p for p in usable if self.storage.get_maturity(p.id) is not None]
        if labelled:
            lines = ["## Pattern Maturity", ""]
            lines.extend(
                f"- {p.content}: {format_maturity_for_prompt(self.get_maturity(p.id))}"
                for p in labelled
            )
            sections.append("\n".join(lines))

        return "\n\n".join(s for s in sections if s)

    # === Strikes ===

    def record_failed_fix(
        self, task_id: str, attempt: str, reason: str
    ) -> tuple[StrikeRecord, StrikeMemory | None]:
        """Add a strike; on strike-out also return the learning worth persisting."""
        record = self.strikes.add_strike(task_id, attempt, reason)
        self.metrics.counter("strikes_added")
        if record.strike_count == self.strikes.max_strikes:
            self.metrics.counter("struck_out")
            return record, format_strike_memory(record)
        return record, None

    def close(self) -> None:
        log_run_summary(self.metrics)
        self.storage.close()
