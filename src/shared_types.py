"""Shared enums and types for swarm-learning."""

from enum import StrEnum


class FeedbackType(StrEnum):
    HELPFUL = "helpful"
    HARMFUL = "harmful"
    NEUTRAL = "neutral"


class DecompositionStrategy(StrEnum):
    FILE_BASED = "file-based"
    FEATURE_BASED = "feature-based"
    RISK_BASED = "risk-based"
    RESEARCH_BASED = "research-based"


class FailureMode(StrEnum):
    TIMEOUT = "timeout"
    CONFLICT = "conflict"
    VALIDATION = "validation"
    TOOL_FAILURE = "tool_failure"
    CONTEXT_OVERFLOW = "context_overflow"
    DEPENDENCY_BLOCKED = "dependency_blocked"
    USER_CANCELLED = "user_cancelled"
    UNKNOWN = "unknown"


class PatternKind(StrEnum):
    PATTERN = "pattern"
    ANTI_PATTERN = "anti_pattern"


class MaturityState(StrEnum):
    CANDIDATE = "candidate"
    ESTABLISHED = "established"
    PROVEN = "proven"
    DEPRECATED = "deprecated"


class ErrorType(StrEnum):
    VALIDATION = "validation"
    TIMEOUT = "timeout"
    CONFLICT = "conflict"
    TOOL_FAILURE = "tool_failure"
    UNKNOWN = "unknown"


class StorageBackend(StrEnum):
    SQLITE = "sqlite"
    MEMORY = "memory"
