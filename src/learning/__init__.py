"""Adaptive learning and pattern lifecycle engine for task decomposition."""

from .accumulator import ErrorAccumulator
from .config import (
    AntiPatternConfig,
    LearningConfig,
    MaturityConfig,
    StorageConfig,
    StrikeConfig,
)
from .errors import (
    InvalidTransitionError,
    LearningError,
    LearningValidationError,
    UnknownBackendError,
)
from .models import (
    CriterionWeight,
    DecompositionPattern,
    FeedbackEvent,
    MaturityFeedback,
    OutcomeSignals,
    PatternMaturity,
    ScoredOutcome,
    StrikeRecord,
)
from .service import LearningService, OutcomeRecord
from .storage import InMemoryStorage, LearningStorage, SQLiteStorage, create_storage
from .strikes import StrikeDetector

__all__ = [
    "AntiPatternConfig",
    "CriterionWeight",
    "DecompositionPattern",
    "ErrorAccumulator",
    "FeedbackEvent",
    "InMemoryStorage",
    "InvalidTransitionError",
    "LearningConfig",
    "LearningError",
    "LearningService",
    "LearningStorage",
    "LearningValidationError",
    "MaturityConfig",
    "MaturityFeedback",
    "OutcomeRecord",
    "OutcomeSignals",
    "PatternMaturity",
    "SQLiteStorage",
    "ScoredOutcome",
    "StorageConfig",
    "StrikeConfig",
    "StrikeDetector",
    "StrikeRecord",
    "UnknownBackendError",
    "create_storage",
]
