"""Per-session error accumulation for retry prompts."""

import copy
from collections import Counter

import structlog

from shared_types import ErrorType

from .errors import LearningValidationError
from .models import ErrorEntry, ErrorStats, new_id

logger = structlog.get_logger()


class ErrorAccumulator:
    """Collects errors raised while subtasks run so retries can see them.

    One instance per session, passed to whoever records or reads errors.
    Entries handed out are copies; only ``resolve_error`` changes stored state.
    """

    def __init__(self):
        self._errors: dict[str, ErrorEntry] = {}

    def record_error(
        self,
        task_id: str,
        error_type: ErrorType | str,
        message: str,
        stack_trace: str | None = None,
        tool_name: str | None = None,
        context: str | None = None,
    ) -> ErrorEntry:
        entry = ErrorEntry(
            id=new_id("err-"),
            task_id=task_id,
            error_type=error_type,
            message=message,
            stack_trace=stack_trace,
            tool_name=tool_name,
            context=context,
        )
        self._errors[entry.id] = entry
        logger.info("error_recorded", task_id=task_id, error_type=entry.error_type.value)
        return copy.deepcopy(entry)

    def get_errors(self, task_id: str, include_resolved: bool = False) -> list[ErrorEntry]:
        return [
            copy.deepcopy(e)
            for e in self._errors.values()
            if e.task_id == task_id and (include_resolved or not e.resolved)
        ]

    def resolve_error(self, error_id: str) -> ErrorEntry:
        entry = self._errors.get(error_id)
        if entry is None:
            raise LearningValidationError("error_id", f"no error recorded with id {error_id!r}")
        entry.resolved = True
        logger.info("error_resolved", error_id=error_id, task_id=entry.task_id)
        return copy.deepcopy(entry)

    def get_error_context(self, task_id: str, include_resolved: bool = False) -> str:
        """Markdown block summarising past errors, grouped by type; "" if none."""
        errors = self.get_errors(task_id, include_resolved)
        if not errors:
            return ""

        by_type: dict[ErrorType, list[ErrorEntry]] = {}
        for e in errors:
            by_type.setdefault(e.error_type, []).append(e)

        lines = [
            "## Previous Errors",
            "",
            "The following errors were encountered during execution:",
            "",
        ]
        for error_type, entries in by_type.items():
            lines.append(f"### {error_type.value} ({len(entries)} error{'s' if len(entries) != 1 else ''})")
            lines.append("")
            for e in entries:
                lines.append(f"- **{e.message}**")
                if e.context:
                    lines.append(f"  - Context: {e.context}")
                if e.tool_name:
                    lines.append(f"  - Tool: {e.tool_name}")
                if e.stack_trace:
                    lines.append(f"  - Stack: `{e.stack_trace[:100]}`")
                lines.append(f"  - Time: {e.timestamp.isoformat()}{' (resolved)' if e.resolved else ''}")
            lines.append("")

        lines.append("**Action Required**: Address these errors before proceeding.")
        return "\n".join(lines)

    def get_error_stats(self, task_id: str) -> ErrorStats:
        errors = self.get_errors(task_id, include_resolved=True)
        return ErrorStats(
            total=len(errors),
            unresolved=sum(1 for e in errors if not e.resolved),
            by_type=dict(Counter(e.error_type.value for e in errors)),
        )
