"""SQLite persistence for learning data: feedback, patterns, maturity, strikes."""

import json
import sqlite3
from datetime import datetime
from pathlib import Path
from typing import Callable

import structlog

from db import wal_session
from shared_types import MaturityState, PatternKind

from ..models import (
    DecompositionPattern,
    FeedbackEvent,
    MaturityFeedback,
    PatternMaturity,
    StrikeFailure,
    StrikeRecord,
)
from .base import strike_record

logger = structlog.get_logger()

_SCHEMA = [
    """
    CREATE TABLE IF NOT EXISTS learning_feedback (
        seq INTEGER PRIMARY KEY AUTOINCREMENT,
        id TEXT NOT NULL,
        criterion TEXT NOT NULL,
        type TEXT NOT NULL CHECK(type IN ('helpful','harmful','neutral')),
        timestamp TEXT NOT NULL,
        raw_value REAL NOT NULL DEFAULT 1.0,
        task_id TEXT,
        context TEXT
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_feedback_criterion ON learning_feedback(criterion)",
    "CREATE INDEX IF NOT EXISTS idx_feedback_task ON learning_feedback(task_id)",
    """
    CREATE TABLE IF NOT EXISTS decomposition_patterns (
        id TEXT PRIMARY KEY,
        content TEXT NOT NULL,
        kind TEXT NOT NULL CHECK(kind IN ('pattern','anti_pattern')),
        is_negative INTEGER NOT NULL DEFAULT 0,
        success_count INTEGER NOT NULL DEFAULT 0,
        failure_count INTEGER NOT NULL DEFAULT 0,
        tags TEXT NOT NULL DEFAULT '[]',
        example_task_ids TEXT NOT NULL DEFAULT '[]',
        reason TEXT,
        created_at TEXT NOT NULL,
        updated_at TEXT NOT NULL
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_patterns_kind ON decomposition_patterns(kind)",
    """
    CREATE TABLE IF NOT EXISTS pattern_maturity (
        pattern_id TEXT PRIMARY KEY,
        state TEXT NOT NULL,
        helpful_count INTEGER NOT NULL DEFAULT 0,
        harmful_count INTEGER NOT NULL DEFAULT 0,
        last_validated TEXT NOT NULL,
        promoted_at TEXT,
        deprecated_at TEXT,
        deprecation_reason TEXT
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_maturity_state ON pattern_maturity(state)",
    """
    CREATE TABLE IF NOT EXISTS maturity_feedback (
        seq INTEGER PRIMARY KEY AUTOINCREMENT,
        pattern_id TEXT NOT NULL,
        type TEXT NOT NULL CHECK(type IN ('helpful','harmful')),
        timestamp TEXT NOT NULL,
        weight REAL NOT NULL DEFAULT 1.0
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_maturity_feedback_pattern ON maturity_feedback(pattern_id)",
    """
    CREATE TABLE IF NOT EXISTS strike_failures (
        seq INTEGER PRIMARY KEY AUTOINCREMENT,
        task_id TEXT NOT NULL,
        attempt TEXT NOT NULL,
        reason TEXT NOT NULL,
        timestamp TEXT NOT NULL
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_strike_failures_task ON strike_failures(task_id)",
]


_UPSERT_PATTERN = """INSERT INTO decomposition_patterns
   (id, content, kind, is_negative, success_count, failure_count,
    tags, example_task_ids, reason, created_at, updated_at)
   VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
   ON CONFLICT(id) DO UPDATE SET
     content = excluded.content,
     kind = excluded.kind,
     is_negative = excluded.is_negative,
     success_count = excluded.success_count,
     failure_count = excluded.failure_count,
     tags = excluded.tags,
     example_task_ids = excluded.example_task_ids,
     reason = excluded.reason,
     updated_at = excluded.updated_at"""


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


class SQLiteStorage:
    """Persistent learning storage in a single SQLite file (WAL mode)."""

    def __init__(self, db_path: str | Path):
        self.db_path = Path(db_path).expanduser()
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._init_db()

    def _init_db(self):
        with wal_session(self.db_path) as conn:
            for stmt in _SCHEMA:
                conn.execute(stmt)

    def _query(self, sql: str, params: tuple | list = ()) -> list[sqlite3.Row]:
        with wal_session(self.db_path) as conn:
            return conn.execute(sql, params).fetchall()

    def _execute(self, sql: str, params: tuple | list = ()) -> None:
        with wal_session(self.db_path) as conn:
            conn.execute(sql, params)

    # Feedback

    def store_feedback(self, event: FeedbackEvent) -> None:
        self._execute(
            """INSERT INTO learning_feedback
               (id, criterion, type, timestamp, raw_value, task_id, context)
               VALUES (?, ?, ?, ?, ?, ?, ?)""",
            (
                event.id,
                event.criterion,
                event.type.value,
                _iso(event.timestamp),
                event.raw_value,
                event.task_id,
                event.context,
            ),
        )
        logger.debug("feedback_stored", id=event.id, criterion=event.criterion)

    def get_feedback_by_criterion(self, criterion: str) -> list[FeedbackEvent]:
        rows = self._query(
            "SELECT * FROM learning_feedback WHERE criterion = ? ORDER BY seq", (criterion,)
        )
        return [self._row_to_feedback(r) for r in rows]

    def get_feedback_by_task(self, task_id: str) -> list[FeedbackEvent]:
        rows = self._query(
            "SELECT * FROM learning_feedback WHERE task_id = ? ORDER BY seq", (task_id,)
        )
        return [self._row_to_feedback(r) for r in rows]

    def get_all_feedback(self) -> list[FeedbackEvent]:
        rows = self._query("SELECT * FROM learning_feedback ORDER BY seq")
        return [self._row_to_feedback(r) for r in rows]

    def find_similar_feedback(self, query: str, limit: int = 10) -> list[FeedbackEvent]:
        """Case-insensitive substring search over criterion, task id and context."""
        q = query.lower()
        rows = self._query(
            """SELECT * FROM learning_feedback
               WHERE instr(lower(criterion), ?) > 0
                  OR instr(lower(coalesce(task_id, '')), ?) > 0
                  OR instr(lower(coalesce(context, '')), ?) > 0
               ORDER BY seq LIMIT ?""",
            (q, q, q, limit),
        )
        return [self._row_to_feedback(r) for r in rows]

    # Patterns

    def store_pattern(self, pattern: DecompositionPattern) -> None:
        self._execute(_UPSERT_PATTERN, self._pattern_params(pattern))

    def update_pattern(
        self,
        pattern_id: str,
        change: Callable[[DecompositionPattern], DecompositionPattern],
    ) -> DecompositionPattern | None:
        """Apply ``change`` to the stored pattern inside one write transaction."""
        with wal_session(self.db_path, immediate=True) as conn:
            row = conn.execute(
                "SELECT * FROM decomposition_patterns WHERE id = ?", (pattern_id,)
            ).fetchone()
            if row is None:
                return None
            updated = change(self._row_to_pattern(row))
            conn.execute(_UPSERT_PATTERN, self._pattern_params(updated))
        return updated

    def get_pattern(self, pattern_id: str) -> DecompositionPattern | None:
        rows = self._query("SELECT * FROM decomposition_patterns WHERE id = ?", (pattern_id,))
        return self._row_to_pattern(rows[0]) if rows else None

    def get_all_patterns(self) -> list[DecompositionPattern]:
        rows = self._query("SELECT * FROM decomposition_patterns ORDER BY created_at, id")
        return [self._row_to_pattern(r) for r in rows]

    def get_anti_patterns(self) -> list[DecompositionPattern]:
        rows = self._query(
            "SELECT * FROM decomposition_patterns WHERE kind = ? ORDER BY created_at, id",
            (PatternKind.ANTI_PATTERN.value,),
        )
        return [self._row_to_pattern(r) for r in rows]

    def get_patterns_by_tag(self, tag: str) -> list[DecompositionPattern]:
        return [p for p in self.get_all_patterns() if tag in p.tags]

    def find_similar_patterns(self, query: str, limit: int = 10) -> list[DecompositionPattern]:
        rows = self._query(
            """SELECT * FROM decomposition_patterns
               WHERE instr(lower(content), ?) > 0
               ORDER BY created_at, id LIMIT ?""",
            (query.lower(), limit),
        )
        return [self._row_to_pattern(r) for r in rows]

    # Maturity

    def store_maturity(self, maturity: PatternMaturity) -> None:
        self._execute(
            """INSERT OR REPLACE INTO pattern_maturity
               (pattern_id, state, helpful_count, harmful_count, last_validated,
                promoted_at, deprecated_at, deprecation_reason)
               VALUES (?, ?, ?, ?, ?, ?, ?, ?)""",
            (
                maturity.pattern_id,
                maturity.state.value,
                maturity.helpful_count,
                maturity.harmful_count,
                _iso(maturity.last_validated),
                _iso(maturity.promoted_at),
                _iso(maturity.deprecated_at),
                maturity.deprecation_reason,
            ),
        )

    def get_maturity(self, pattern_id: str) -> PatternMaturity | None:
        rows = self._query("SELECT * FROM pattern_maturity WHERE pattern_id = ?", (pattern_id,))
        return self._row_to_maturity(rows[0]) if rows else None

    def get_all_maturity(self) -> list[PatternMaturity]:
        rows = self._query("SELECT * FROM pattern_maturity ORDER BY pattern_id")
        return [self._row_to_maturity(r) for r in rows]

    def get_maturity_by_state(self, state: MaturityState | str) -> list[PatternMaturity]:
        rows = self._query(
            "SELECT * FROM pattern_maturity WHERE state = ? ORDER BY pattern_id",
            (MaturityState(state).value,),
        )
        return [self._row_to_maturity(r) for r in rows]

    def store_maturity_feedback(self, feedback: MaturityFeedback) -> None:
        self._execute(
            """INSERT INTO maturity_feedback (pattern_id, type, timestamp, weight)
               VALUES (?, ?, ?, ?)""",
            (feedback.pattern_id, feedback.type.value, _iso(feedback.timestamp), feedback.weight),
        )

    def get_maturity_feedback(self, pattern_id: str) -> list[MaturityFeedback]:
        rows = self._query(
            "SELECT * FROM maturity_feedback WHERE pattern_id = ? ORDER BY seq", (pattern_id,)
        )
        return [
            MaturityFeedback(
                pattern_id=r["pattern_id"],
                type=r["type"],
                timestamp=r["timestamp"],
                weight=r["weight"],
            )
            for r in rows
        ]

    # Strikes

    def append_strike(self, task_id: str, failure: StrikeFailure) -> StrikeRecord:
        """Insert one failure row and return the task's record as of that insert."""
        with wal_session(self.db_path) as conn:
            conn.execute(
                """INSERT INTO strike_failures (task_id, attempt, reason, timestamp)
                   VALUES (?, ?, ?, ?)""",
                (task_id, failure.attempt, failure.reason, _iso(failure.timestamp)),
            )
            rows = conn.execute(
                "SELECT * FROM strike_failures WHERE task_id = ? ORDER BY seq", (task_id,)
            ).fetchall()
        return strike_record(task_id, [self._row_to_strike_failure(r) for r in rows])

    def get_strikes(self, task_id: str) -> StrikeRecord | None:
        rows = self._query(
            "SELECT * FROM strike_failures WHERE task_id = ? ORDER BY seq", (task_id,)
        )
        if not rows:
            return None
        return strike_record(task_id, [self._row_to_strike_failure(r) for r in rows])

    def clear_strikes(self, task_id: str) -> None:
        self._execute("DELETE FROM strike_failures WHERE task_id = ?", (task_id,))

    def close(self) -> None:
        # connections are per-call; nothing held open
        pass

    # Row mapping

    @staticmethod
    def _row_to_feedback(row: sqlite3.Row) -> FeedbackEvent:
        return FeedbackEvent(
            id=row["id"],
            criterion=row["criterion"],
            type=row["type"],
            timestamp=row["timestamp"],
            raw_value=row["raw_value"],
            task_id=row["task_id"],
            context=row["context"],
        )

    @staticmethod
    def _row_to_pattern(row: sqlite3.Row) -> DecompositionPattern:
        return DecompositionPattern(
            id=row["id"],
            content=row["content"],
            kind=row["kind"],
            is_negative=bool(row["is_negative"]),
            success_count=row["success_count"],
            failure_count=row["failure_count"],
            tags=json.loads(row["tags"]),
            example_task_ids=json.loads(row["example_task_ids"]),
            reason=row["reason"],
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )

    @staticmethod
    def _pattern_params(pattern: DecompositionPattern) -> tuple:
        return (
            pattern.id,
            pattern.content,
            pattern.kind.value,
            int(pattern.is_negative),
            pattern.success_count,
            pattern.failure_count,
            json.dumps(pattern.tags),
            json.dumps(pattern.example_task_ids),
            pattern.reason,
            _iso(pattern.created_at),
            _iso(pattern.updated_at),
        )

    @staticmethod
    def _row_to_strike_failure(row: sqlite3.Row) -> StrikeFailure:
        return StrikeFailure(attempt=row["attempt"], reason=row["reason"], timestamp=row["timestamp"])

    @staticmethod
    def _row_to_maturity(row: sqlite3.Row) -> PatternMaturity:
        return PatternMaturity(
            pattern_id=row["pattern_id"],
            state=row["state"],
            helpful_count=row["helpful_count"],
            harmful_count=row["harmful_count"],
            last_validated=row["last_validated"],
            promoted_at=row["promoted_at"],
            deprecated_at=row["deprecated_at"],
            deprecation_reason=row["deprecation_reason"],
        )
