"""Storage contract required by the learning engine.

Feedback, maturity feedback and strike failures are append-only: there is
no update for them, corrections are new events. A task's strike record is
derived from its failures and cleared by deleting them. Patterns and
maturity records are upserted by id; `update_pattern` applies a change to
the stored pattern as one atomic read-modify-write.
"""

from typing import Callable, Protocol, runtime_checkable

from shared_types import MaturityState

from ..models import (
    DecompositionPattern,
    FeedbackEvent,
    MaturityFeedback,
    PatternMaturity,
    StrikeFailure,
    StrikeRecord,
)


@runtime_checkable
class LearningStorage(Protocol):
    # Feedback ledger
    def store_feedback(self, event: FeedbackEvent) -> None: ...

    def get_feedback_by_criterion(self, criterion: str) -> list[FeedbackEvent]: ...

    def get_feedback_by_task(self, task_id: str) -> list[FeedbackEvent]: ...

    def get_all_feedback(self) -> list[FeedbackEvent]: ...

    def find_similar_feedback(self, query: str, limit: int = 10) -> list[FeedbackEvent]: ...

    # Patterns
    def store_pattern(self, pattern: DecompositionPattern) -> None: ...

    def update_pattern(
        self,
        pattern_id: str,
        change: Callable[[DecompositionPattern], DecompositionPattern],
    ) -> DecompositionPattern | None: ...

    def get_pattern(self, pattern_id: str) -> DecompositionPattern | None: ...

    def get_all_patterns(self) -> list[DecompositionPattern]: ...

    def get_anti_patterns(self) -> list[DecompositionPattern]: ...

    def get_patterns_by_tag(self, tag: str) -> list[DecompositionPattern]: ...

    def find_similar_patterns(self, query: str, limit: int = 10) -> list[DecompositionPattern]: ...

    # Maturity
    def store_maturity(self, maturity: PatternMaturity) -> None: ...

    def get_maturity(self, pattern_id: str) -> PatternMaturity | None: ...

    def get_all_maturity(self) -> list[PatternMaturity]: ...

    def get_maturity_by_state(self, state: MaturityState | str) -> list[PatternMaturity]: ...

    def store_maturity_feedback(self, feedback: MaturityFeedback) -> None: ...

    def get_maturity_feedback(self, pattern_id: str) -> list[MaturityFeedback]: ...

    # Strikes
    def append_strike(self, task_id: str, failure: StrikeFailure) -> StrikeRecord: ...

    def get_strikes(self, task_id: str) -> StrikeRecord | None: ...

    def clear_strikes(self, task_id: str) -> None: ...

    def close(self) -> None: ...


def feedback_matches(event: FeedbackEvent, query: str) -> bool:
    """Case-insensitive substring match over criterion, task id and context."""
    q = query.lower()
    return any(
        q in field.lower()
        for field in (event.criterion, event.task_id or "", event.context or "")
    )


def pattern_matches(pattern: DecompositionPattern, query: str) -> bool:
    return query.lower() in pattern.content.lower()


def strike_record(task_id: str, failures: list[StrikeFailure]) -> StrikeRecord:
    """Record for ``task_id`` built from its failures in insertion order."""
    return StrikeRecord(
        task_id=task_id,
        strike_count=len(failures),
        failures=list(failures),
        first_strike_at=failures[0].timestamp if failures else None,
        last_strike_at=failures[-1].timestamp if failures else None,
    )
