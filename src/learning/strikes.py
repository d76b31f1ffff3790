"""3-strike escalation for repeated failed fixes.

After ``max_strikes`` failed fix attempts on one task the agent must stop
and question the architecture instead of trying fix #4. Callers check
``is_struck_out`` before every fix attempt.
"""

from dataclasses import dataclass

import structlog

from .config import StrikeConfig
from .decay import utcnow
from .errors import LearningValidationError
from .models import StrikeFailure, StrikeRecord
from .storage.base import LearningStorage

logger = structlog.get_logger()


@dataclass(frozen=True)
class StrikeMemory:
    """Text and tags for persisting a struck-out task as a long-term learning."""

    information: str
    tags: tuple[str, ...]


class StrikeDetector:
    """Tracks failed fix attempts per task against an injected storage."""

    def __init__(self, storage: LearningStorage, config: StrikeConfig | None = None):
        self.storage = storage
        self.config = config or StrikeConfig()

    @property
    def max_strikes(self) -> int:
        return self.config.max_strikes

    def get_record(self, task_id: str) -> StrikeRecord:
        return self.storage.get_strikes(task_id) or StrikeRecord(task_id=task_id)

    def get_strikes(self, task_id: str) -> int:
        return self.get_record(task_id).strike_count

    def add_strike(self, task_id: str, attempt: str, reason: str) -> StrikeRecord:
        """Record one failed fix attempt and return the updated record.

        The failure is appended in storage; the returned count includes every
        strike recorded for the task so far, from any writer.
        """
        if not task_id or not task_id.strip():
            raise LearningValidationError("task_id", "task id is required")
        if not attempt or not attempt.strip():
            raise LearningValidationError("attempt", "describe the fix that was attempted")
        if not reason or not reason.strip():
            raise LearningValidationError("reason", "say why the fix failed")

        failure = StrikeFailure(attempt=attempt, reason=reason, timestamp=utcnow())
        updated = self.storage.append_strike(task_id, failure)

        logger.info("strike_added", task_id=task_id, strike_count=updated.strike_count)
        if updated.strike_count == self.max_strikes:
            logger.warning("struck_out", task_id=task_id, strikes=updated.strike_count)
        return updated

    def is_struck_out(self, task_id: str) -> bool:
        return self.get_strikes(task_id) >= self.max_strikes

    def clear_strikes(self, task_id: str) -> None:
        """Reset after a successful fix."""
        self.storage.clear_strikes(task_id)
        logger.info("strikes_cleared", task_id=task_id)

    def remaining(self, task_id: str) -> int:
        return max(0, self.max_strikes - self.get_strikes(task_id))

    def get_architecture_prompt(self, task_id: str) -> str | None:
        """Architecture review prompt for a struck-out task, else None."""
        record = self.get_record(task_id)
        if record.strike_count < self.max_strikes:
            return None

        attempts = "\n".join(
            f"{i}. **{f.attempt}** - Failed: {f.reason}"
            for i, f in enumerate(record.failures, start=1)
        )
        return f"""## Architecture Review Required

Task `{task_id}` has failed {record.strike_count} consecutive fix attempts:

{attempts}

This pattern suggests an **architectural problem**, not a bug.

**Questions to consider:**
- Is this pattern fundamentally sound?
- Are we sticking with it through sheer inertia?
- Should we refactor the architecture instead of fixing symptoms?
- What assumption do all {record.strike_count} attempts share?

**Recommended action:** Do NOT attempt fix #{record.strike_count + 1}. \
Discuss with a human partner before making further changes."""


def format_strike_memory(record: StrikeRecord) -> StrikeMemory:
    """Learning worth persisting once a task strikes out."""
    attempts = "; ".join(f"{f.attempt} (failed: {f.reason})" for f in record.failures)
    info = (
        f"Architecture problem on task {record.task_id}: "
        f"{record.strike_count} fix attempts failed. Attempts: {attempts}. "
        "Repeated fixes did not converge; the approach itself needs rethinking."
    )
    return StrikeMemory(information=info, tags=("3-strike", "architecture", record.task_id))
