"""In-process storage for tests and ephemeral sessions."""

import copy
from typing import Callable

from shared_types import MaturityState, PatternKind

from ..models import (
    DecompositionPattern,
    FeedbackEvent,
    MaturityFeedback,
    PatternMaturity,
    StrikeFailure,
    StrikeRecord,
)
from .base import feedback_matches, pattern_matches, strike_record


class InMemoryStorage:
    """Holds everything in process memory; nothing survives the process.

    Mutable records are copied on the way in and out so callers never
    share state with the store.
    """

    def __init__(self):
        self._feedback: list[FeedbackEvent] = []
        self._patterns: dict[str, DecompositionPattern] = {}
        self._maturity: dict[str, PatternMaturity] = {}
        self._maturity_feedback: list[MaturityFeedback] = []
        self._strike_failures: dict[str, list[StrikeFailure]] = {}

    # Feedback

    def store_feedback(self, event: FeedbackEvent) -> None:
        self._feedback.append(event)

    def get_feedback_by_criterion(self, criterion: str) -> list[FeedbackEvent]:
        return [e for e in self._feedback if e.criterion == criterion]

    def get_feedback_by_task(self, task_id: str) -> list[FeedbackEvent]:
        return [e for e in self._feedback if e.task_id == task_id]

    def get_all_feedback(self) -> list[FeedbackEvent]:
        return list(self._feedback)

    def find_similar_feedback(self, query: str, limit: int = 10) -> list[FeedbackEvent]:
        return [e for e in self._feedback if feedback_matches(e, query)][:limit]

    # Patterns

    def store_pattern(self, pattern: DecompositionPattern) -> None:
        self._patterns[pattern.id] = copy.deepcopy(pattern)

    def update_pattern(
        self,
        pattern_id: str,
        change: Callable[[DecompositionPattern], DecompositionPattern],
    ) -> DecompositionPattern | None:
        current = self.get_pattern(pattern_id)
        if current is None:
            return None
        updated = change(current)
        self.store_pattern(updated)
        return copy.deepcopy(updated)

    def get_pattern(self, pattern_id: str) -> DecompositionPattern | None:
        pattern = self._patterns.get(pattern_id)
        return copy.deepcopy(pattern) if pattern else None

    def get_all_patterns(self) -> list[DecompositionPattern]:
        return [copy.deepcopy(p) for p in self._patterns.values()]

    def get_anti_patterns(self) -> list[DecompositionPattern]:
        return [p for p in self.get_all_patterns() if p.kind == PatternKind.ANTI_PATTERN]

    def get_patterns_by_tag(self, tag: str) -> list[DecompositionPattern]:
        return [p for p in self.get_all_patterns() if tag in p.tags]

    def find_similar_patterns(self, query: str, limit: int = 10) -> list[DecompositionPattern]:
        return [p for p in self.get_all_patterns() if pattern_matches(p, query)][:limit]

    # Maturity

    def store_maturity(self, maturity: PatternMaturity) -> None:
        self._maturity[maturity.pattern_id] = copy.deepcopy(maturity)

    def get_maturity(self, pattern_id: str) -> PatternMaturity | None:
        maturity = self._maturity.get(pattern_id)
        return copy.deepcopy(maturity) if maturity else None

    def get_all_maturity(self) -> list[PatternMaturity]:
        return [copy.deepcopy(m) for m in self._maturity.values()]

    def get_maturity_by_state(self, state: MaturityState | str) -> list[PatternMaturity]:
        state = MaturityState(state)
        return [m for m in self.get_all_maturity() if m.state == state]

    def store_maturity_feedback(self, feedback: MaturityFeedback) -> None:
        self._maturity_feedback.append(feedback)

    def get_maturity_feedback(self, pattern_id: str) -> list[MaturityFeedback]:
        return [f for f in self._maturity_feedback if f.pattern_id == pattern_id]

    # Strikes

    def append_strike(self, task_id: str, failure: StrikeFailure) -> StrikeRecord:
        self._strike_failures.setdefault(task_id, []).append(failure)
        return strike_record(task_id, self._strike_failures[task_id])

    def get_strikes(self, task_id: str) -> StrikeRecord | None:
        failures = self._strike_failures.get(task_id)
        return strike_record(task_id, failures) if failures else None

    def clear_strikes(self, task_id: str) -> None:
        self._strike_failures.pop(task_id, None)

    def close(self) -> None:
        pass
